from datetime import datetime
from typing import Iterable
from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.config import TICKET_INSERT_BATCH
from .models import Ticket, TicketStatus


async def insert_ticket_range(db: AsyncSession, competition_id: int, first: int, last: int) -> int:
    """Insert AVAILABLE rows for numbers first..last (inclusive); existing numbers are left untouched."""
    inserted = 0
    for start in range(first, last + 1, TICKET_INSERT_BATCH):
        stop = min(start + TICKET_INSERT_BATCH - 1, last)
        rows = [{"competition_id": competition_id, "number": n} for n in range(start, stop + 1)]
        result = await db.execute(
            insert(Ticket)
            .values(rows)
            .on_conflict_do_nothing(index_elements=[Ticket.competition_id, Ticket.number])
        )
        inserted += int(result.rowcount or 0)
    return inserted


async def reserve_available(
        db: AsyncSession,
        competition_id: int,
        numbers: Iterable[int],
        holder_ref: str,
        now: datetime,
        until: datetime
) -> list[int]:
    result = await db.scalars(
        update(Ticket)
        .where(
            Ticket.competition_id == competition_id,
            Ticket.number.in_(list(numbers)),
            Ticket.status == TicketStatus.AVAILABLE
        )
        .values(status=TicketStatus.RESERVED, holder_ref=holder_ref, reserved_at=now, reserved_until=until)
        .returning(Ticket.number)
        .execution_options(synchronize_session=False)
    )
    return sorted(result.all())


async def release_held(db: AsyncSession, competition_id: int, numbers: Iterable[int], holder_ref: str) -> list[int]:
    result = await db.scalars(
        update(Ticket)
        .where(
            Ticket.competition_id == competition_id,
            Ticket.number.in_(list(numbers)),
            Ticket.status == TicketStatus.RESERVED,
            Ticket.holder_ref == holder_ref
        )
        .values(status=TicketStatus.AVAILABLE, holder_ref=None, reserved_at=None, reserved_until=None)
        .returning(Ticket.number)
        .execution_options(synchronize_session=False)
    )
    return sorted(result.all())


async def release_all_for_holder(db: AsyncSession, holder_ref: str) -> int:
    result = await db.execute(
        update(Ticket)
        .where(Ticket.status == TicketStatus.RESERVED, Ticket.holder_ref == holder_ref)
        .values(status=TicketStatus.AVAILABLE, holder_ref=None, reserved_at=None, reserved_until=None)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def sweep_expired(
        db: AsyncSession,
        now: datetime,
        *,
        competition_id: int | None = None,
        holder_ref: str | None = None,
        limit: int | None = None
) -> int:
    where = [Ticket.status == TicketStatus.RESERVED, Ticket.reserved_until <= now]
    if competition_id is not None:
        where.append(Ticket.competition_id == competition_id)
    if holder_ref is not None:
        where.append(Ticket.holder_ref == holder_ref)

    stmt = update(Ticket).where(*where)
    if limit:
        batch = select(Ticket.id).where(*where).limit(limit).with_for_update(skip_locked=True)
        stmt = stmt.where(Ticket.id.in_(batch.scalar_subquery()))
    result = await db.execute(
        stmt
        .values(status=TicketStatus.AVAILABLE, holder_ref=None, reserved_at=None, reserved_until=None)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def list_held(
        db: AsyncSession,
        holder_ref: str,
        competition_id: int,
        numbers: Iterable[int]
) -> list[tuple[int, datetime]]:
    result = await db.execute(
        select(Ticket.number, Ticket.reserved_until)
        .where(
            Ticket.competition_id == competition_id,
            Ticket.number.in_(list(numbers)),
            Ticket.status == TicketStatus.RESERVED,
            Ticket.holder_ref == holder_ref
        )
        .order_by(Ticket.number)
    )
    return [(number, until) for number, until in result.all()]


async def find_foreign_holds(
        db: AsyncSession,
        competition_id: int,
        numbers: Iterable[int],
        holder_ref: str
) -> list[int]:
    result = await db.scalars(
        select(Ticket.number)
        .where(
            Ticket.competition_id == competition_id,
            Ticket.number.in_(list(numbers)),
            Ticket.status != TicketStatus.AVAILABLE,
            Ticket.holder_ref.is_distinct_from(holder_ref)
        )
        .order_by(Ticket.number)
    )
    return list(result.all())


async def purchase_held(
        db: AsyncSession,
        competition_id: int,
        numbers: Iterable[int],
        holder_ref: str,
        user_id: int,
        now: datetime
) -> list[int]:
    result = await db.scalars(
        update(Ticket)
        .where(
            Ticket.competition_id == competition_id,
            Ticket.number.in_(list(numbers)),
            Ticket.status == TicketStatus.RESERVED,
            Ticket.holder_ref == holder_ref,
            Ticket.reserved_until > now
        )
        .values(
            status=TicketStatus.PURCHASED,
            holder_ref=None,
            reserved_at=None,
            reserved_until=None,
            user_id=user_id,
            purchased_at=now
        )
        .returning(Ticket.number)
        .execution_options(synchronize_session=False)
    )
    return sorted(result.all())


async def list_tickets(
        db: AsyncSession,
        competition_id: int,
        status: TicketStatus | None = None
) -> list[tuple[int, TicketStatus]]:
    stmt = select(Ticket.number, Ticket.status).where(Ticket.competition_id == competition_id)
    if status is not None:
        stmt = stmt.where(Ticket.status == status)
    result = await db.execute(stmt.order_by(Ticket.number))
    return [(number, status_) for number, status_ in result.all()]


async def count_by_status(db: AsyncSession, competition_id: int) -> dict[TicketStatus, int]:
    result = await db.execute(
        select(Ticket.status, func.count(Ticket.id))
        .where(Ticket.competition_id == competition_id)
        .group_by(Ticket.status)
    )
    counts = {s: 0 for s in TicketStatus}
    for status_, cnt in result.all():
        counts[status_] = int(cnt)
    return counts


async def release_competition_holds(db: AsyncSession, competition_id: int) -> int:
    result = await db.execute(
        update(Ticket)
        .where(Ticket.competition_id == competition_id, Ticket.status == TicketStatus.RESERVED)
        .values(status=TicketStatus.AVAILABLE, holder_ref=None, reserved_at=None, reserved_until=None)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
