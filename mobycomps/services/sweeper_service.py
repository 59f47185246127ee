import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.config import SWEEP_BATCH
from mobycomps.domain.cart import crud as cart_crud
from mobycomps.domain.tickets import crud as ticket_crud

logger = logging.getLogger("mobycomps.sweeper")


async def sweep_competition(db: AsyncSession, competition_id: int) -> int:
    now = datetime.now(timezone.utc)
    released = await ticket_crud.sweep_expired(db, now, competition_id=competition_id)
    if released:
        logger.info("Released %d lapsed holds competition_id=%s", released, competition_id)
    return released


async def sweep_holder(db: AsyncSession, holder_ref: str) -> int:
    now = datetime.now(timezone.utc)
    released = await ticket_crud.sweep_expired(db, now, holder_ref=holder_ref)
    if released:
        logger.info("Released %d lapsed holds holder_ref=%s", released, holder_ref)
    return released


async def sweep_expired_reservations(db: AsyncSession, limit: int = SWEEP_BATCH) -> dict:
    """
    Return every lapsed hold to AVAILABLE and drop cart rows nothing is held for anymore.
    Safe to run concurrently and repeatedly: a second pass over the same state releases nothing.
    """
    async with AuditSpan(scope="SWEEPER", action="SWEEP_EXPIRED", object_type="ticket", meta={"limit": limit}) as span:
        now = datetime.now(timezone.utc)
        stats = {"tickets_released": 0, "cart_items_removed": 0}

        stats["tickets_released"] = await ticket_crud.sweep_expired(db, now, limit=limit)
        stats["cart_items_removed"] = await cart_crud.delete_orphaned_items(db, now)
        await db.flush()

        if stats["tickets_released"] or stats["cart_items_removed"]:
            logger.info(
                "Sweep released=%d cart_items_removed=%d",
                stats["tickets_released"], stats["cart_items_removed"]
            )
        span.meta.update(stats)
        return stats
