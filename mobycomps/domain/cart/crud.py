from datetime import datetime
from typing import Iterable
from sqlalchemy import select, delete, and_, any_
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.domain.tickets.models import Ticket, TicketStatus
from .models import CartItem


async def get_cart_item(db: AsyncSession, cart_item_id: int) -> CartItem | None:
    return await db.scalar(select(CartItem).where(CartItem.id == cart_item_id).with_for_update())


async def get_holder_item(db: AsyncSession, holder_ref: str, competition_id: int) -> CartItem | None:
    return await db.scalar(
        select(CartItem)
        .where(CartItem.holder_ref == holder_ref, CartItem.competition_id == competition_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def list_holder_items(db: AsyncSession, holder_ref: str) -> list[CartItem]:
    result = await db.scalars(
        select(CartItem)
        .where(CartItem.holder_ref == holder_ref)
        .order_by(CartItem.created_at, CartItem.id)
        .with_for_update()
    )
    return list(result.all())


async def delete_holder_items(db: AsyncSession, holder_ref: str) -> int:
    result = await db.execute(delete(CartItem).where(CartItem.holder_ref == holder_ref))
    return int(result.rowcount or 0)


async def detach_numbers(db: AsyncSession, holder_ref: str, competition_id: int, numbers: Iterable[int]) -> None:
    item = await get_holder_item(db, holder_ref, competition_id)
    if not item:
        return
    dropped = set(numbers)
    remaining = [n for n in item.ticket_numbers if n not in dropped]
    if remaining:
        item.ticket_numbers = remaining
    else:
        await db.delete(item)
    await db.flush()


async def delete_orphaned_items(db: AsyncSession, now: datetime) -> int:
    """Remove lapsed cart rows none of whose numbers are still held by their holder."""
    still_held = (
        select(1)
        .select_from(Ticket)
        .where(
            Ticket.competition_id == CartItem.competition_id,
            Ticket.holder_ref == CartItem.holder_ref,
            Ticket.status == TicketStatus.RESERVED,
            Ticket.number == any_(CartItem.ticket_numbers)
        )
        .exists()
    )
    result = await db.execute(
        delete(CartItem)
        .where(and_(CartItem.expires_at <= now, ~still_held))
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def merge_holder_item(
        db: AsyncSession,
        holder_ref: str,
        competition_id: int,
        numbers: list[int],
        expires_at: datetime
) -> CartItem:
    await db.execute(
        insert(CartItem)
        .values(holder_ref=holder_ref, competition_id=competition_id, ticket_numbers=numbers, expires_at=expires_at)
        .on_conflict_do_nothing(index_elements=[CartItem.holder_ref, CartItem.competition_id])
    )
    item = await get_holder_item(db, holder_ref, competition_id)
    item.ticket_numbers = sorted(set(item.ticket_numbers) | set(numbers))
    item.expires_at = min(item.expires_at, expires_at)
    await db.flush()
    return item
