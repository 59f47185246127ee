from collections import Counter
from datetime import datetime, timedelta, timezone
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.config import HOLD_MINUTES
from mobycomps.domain.cart import crud as cart_crud
from mobycomps.domain.competitions.models import Competition, CompetitionStatus
from mobycomps.domain.exceptions import NotFound, EmptySelection, DuplicateSelection, InvalidRange, \
    CompetitionNotLive, AlreadyHeld, NotHolder
from mobycomps.domain.tickets import crud as ticket_crud
from mobycomps.domain.tickets.models import TicketStatus
from mobycomps.services.sweeper_service import sweep_competition


def _require_selection(numbers: list[int]) -> list[int]:
    if not numbers:
        raise EmptySelection("No ticket numbers selected")
    duplicates = sorted(n for n, cnt in Counter(numbers).items() if cnt > 1)
    if duplicates:
        raise DuplicateSelection("Ticket numbers must be unique", ctx={"duplicates": duplicates})
    return sorted(numbers)


def _require_in_range(competition: Competition, numbers: list[int]) -> None:
    invalid = [n for n in numbers if n < 1 or n > competition.max_tickets]
    if invalid:
        raise InvalidRange(
            "Ticket numbers out of range",
            ctx={"competition_id": competition.id, "max_tickets": competition.max_tickets, "invalid": invalid}
        )


async def _require_competition(db: AsyncSession, competition_id: int, *, public: bool = False) -> Competition:
    competition = await db.scalar(select(Competition).where(Competition.id == competition_id))
    if not competition or (public and competition.status == CompetitionStatus.DRAFT):
        raise NotFound("Competition not found", ctx={"competition_id": competition_id})
    return competition


async def _require_live_competition(db: AsyncSession, competition_id: int) -> Competition:
    competition = await _require_competition(db, competition_id)
    if competition.status != CompetitionStatus.LIVE:
        raise CompetitionNotLive(
            "Competition is not accepting entries",
            ctx={"competition_id": competition_id, "status": competition.status.value}
        )
    return competition


async def reserve_numbers(
        db: AsyncSession,
        competition_id: int,
        numbers: list[int],
        holder_ref: str
) -> tuple[Competition, list[int], datetime]:
    """
    Hold every requested number for holder_ref or none of them.
    - Selection, competition state and range are checked before any ticket row is touched
    - A single conditional update claims the AVAILABLE rows; anything it flipped is handed back
      when the batch comes up short
    """
    async with AuditSpan(
        scope="RESERVATION",
        action="RESERVE",
        object_type="ticket",
        competition_id=competition_id,
        meta={"requested": len(numbers)}
    ) as span:
        numbers = _require_selection(numbers)
        competition = await _require_live_competition(db, competition_id)
        _require_in_range(competition, numbers)

        await sweep_competition(db, competition_id)

        now = datetime.now(timezone.utc)
        until = now + timedelta(minutes=HOLD_MINUTES)
        flipped = await ticket_crud.reserve_available(db, competition_id, numbers, holder_ref, now, until)

        if len(flipped) != len(numbers):
            unavailable = sorted(set(numbers) - set(flipped))
            if flipped:
                await ticket_crud.release_held(db, competition_id, flipped, holder_ref)
            span.meta.update({"unavailable": unavailable})
            raise AlreadyHeld(
                "Some ticket numbers are no longer available",
                unavailable=unavailable,
                ctx={"competition_id": competition_id}
            )

        span.meta.update({"reserved": flipped, "expires_at": until.isoformat()})
        return competition, flipped, until


async def release_numbers(db: AsyncSession, competition_id: int, numbers: list[int], holder_ref: str) -> list[int]:
    async with AuditSpan(
        scope="RESERVATION",
        action="RELEASE",
        object_type="ticket",
        competition_id=competition_id,
        meta={"requested": len(numbers)}
    ) as span:
        numbers = _require_selection(numbers)
        competition = await _require_competition(db, competition_id)
        _require_in_range(competition, numbers)

        foreign = await ticket_crud.find_foreign_holds(db, competition_id, numbers, holder_ref)
        if foreign:
            raise NotHolder(
                "Ticket numbers are not held by you",
                ctx={"competition_id": competition_id, "numbers": foreign}
            )

        released = await ticket_crud.release_held(db, competition_id, numbers, holder_ref)
        await cart_crud.detach_numbers(db, holder_ref, competition_id, numbers)

        span.meta.update({"released": released})
        return released


async def list_tickets(
        db: AsyncSession,
        competition_id: int,
        status: TicketStatus | None = None
) -> list[tuple[int, TicketStatus]]:
    await _require_competition(db, competition_id, public=True)
    await sweep_competition(db, competition_id)
    return await ticket_crud.list_tickets(db, competition_id, status)


async def get_status_summary(db: AsyncSession, competition_id: int) -> dict:
    competition = await _require_competition(db, competition_id, public=True)
    await sweep_competition(db, competition_id)
    counts = await ticket_crud.count_by_status(db, competition_id)

    total = competition.max_tickets
    purchased = counts[TicketStatus.PURCHASED]
    return {
        "competition_id": competition_id,
        "total_tickets": total,
        "available": counts[TicketStatus.AVAILABLE],
        "reserved": counts[TicketStatus.RESERVED],
        "purchased": purchased,
        "sold_out_percentage": purchased * 100 // total if total else 0,
    }
