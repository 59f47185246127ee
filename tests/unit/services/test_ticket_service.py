import pytest
import time_machine
from datetime import datetime, timezone, timedelta
from mobycomps.services import ticket_service
from mobycomps.domain.competitions.models import CompetitionStatus
from mobycomps.domain.tickets.models import TicketStatus
from mobycomps.domain.exceptions import EmptySelection, DuplicateSelection, InvalidRange, CompetitionNotLive, \
    NotFound, AlreadyHeld, NotHolder
from tests.helper import db_with_scalar, create_competition


@pytest.fixture
def crud(mocker):
    return {
        "sweep": mocker.patch("mobycomps.services.ticket_service.sweep_competition", new=mocker.AsyncMock(return_value=0)),
        "reserve": mocker.patch("mobycomps.domain.tickets.crud.reserve_available", new=mocker.AsyncMock()),
        "release": mocker.patch("mobycomps.domain.tickets.crud.release_held", new=mocker.AsyncMock()),
        "foreign": mocker.patch("mobycomps.domain.tickets.crud.find_foreign_holds", new=mocker.AsyncMock(return_value=[])),
        "detach": mocker.patch("mobycomps.domain.cart.crud.detach_numbers", new=mocker.AsyncMock()),
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("numbers, exception", [
    ([], EmptySelection),
    ([1, 2, 2], DuplicateSelection),
])
async def test_reserve_numbers_bad_selection_never_touches_storage(mocker, crud, numbers, exception):
    db = db_with_scalar(mocker, create_competition(mocker))

    with pytest.raises(exception):
        await ticket_service.reserve_numbers(db, 1, numbers, "session:a")

    db.scalar.assert_not_awaited()
    crud["reserve"].assert_not_awaited()


@pytest.mark.asyncio
async def test_reserve_numbers_duplicates_are_reported(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker))

    with pytest.raises(DuplicateSelection) as e:
        await ticket_service.reserve_numbers(db, 1, [3, 1, 3, 1, 2], "session:a")

    assert e.value.ctx["duplicates"] == [1, 3]


@pytest.mark.asyncio
async def test_reserve_numbers_out_of_range_raises_invalid_range(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker, max_tickets=10))

    with pytest.raises(InvalidRange) as e:
        await ticket_service.reserve_numbers(db, 1, [0, 5, 11], "session:a")

    assert e.value.ctx["invalid"] == [0, 11]
    crud["sweep"].assert_not_awaited()
    crud["reserve"].assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [CompetitionStatus.COMPLETED, CompetitionStatus.CANCELLED])
async def test_reserve_numbers_closed_competition_raises_not_live(mocker, crud, status):
    db = db_with_scalar(mocker, create_competition(mocker, status=status))

    with pytest.raises(CompetitionNotLive):
        await ticket_service.reserve_numbers(db, 1, [1], "session:a")

    crud["reserve"].assert_not_awaited()


@pytest.mark.asyncio
async def test_reserve_numbers_unknown_competition_raises_not_found(mocker, crud):
    db = db_with_scalar(mocker, None)

    with pytest.raises(NotFound):
        await ticket_service.reserve_numbers(db, 1, [1], "session:a")


@pytest.mark.asyncio
async def test_reserve_numbers_draft_competition_raises_not_live(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker, status=CompetitionStatus.DRAFT))

    with pytest.raises(CompetitionNotLive) as e:
        await ticket_service.reserve_numbers(db, 1, [1], "session:a")

    assert e.value.ctx["status"] == "DRAFT"
    crud["sweep"].assert_not_awaited()
    crud["reserve"].assert_not_awaited()


@pytest.mark.asyncio
async def test_list_tickets_hides_draft_competition(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker, status=CompetitionStatus.DRAFT))

    with pytest.raises(NotFound):
        await ticket_service.list_tickets(db, 1)

    crud["sweep"].assert_not_awaited()


@time_machine.travel("2025-01-01 12:00:00", tick=False)
@pytest.mark.asyncio
async def test_reserve_numbers_success_holds_for_hold_minutes(mocker, crud, auditspan_stub):
    competition = create_competition(mocker)
    db = db_with_scalar(mocker, competition)
    crud["reserve"].return_value = [1, 2]

    result, reserved, until = await ticket_service.reserve_numbers(db, 1, [2, 1], "session:a")

    now = datetime.now(timezone.utc)
    assert result is competition
    assert reserved == [1, 2]
    assert until == now + timedelta(minutes=15)
    crud["sweep"].assert_awaited_once_with(db, 1)
    crud["reserve"].assert_awaited_once_with(db, 1, [1, 2], "session:a", now, until)
    crud["release"].assert_not_awaited()
    assert auditspan_stub[0].meta["reserved"] == [1, 2]


@pytest.mark.asyncio
async def test_reserve_numbers_partial_claim_is_rolled_back_and_reports_unavailable(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker))
    crud["reserve"].return_value = [3]

    with pytest.raises(AlreadyHeld) as e:
        await ticket_service.reserve_numbers(db, 1, [2, 3], "session:b")

    assert e.value.unavailable == [2]
    assert e.value.ctx["unavailable"] == [2]
    crud["release"].assert_awaited_once_with(db, 1, [3], "session:b")


@pytest.mark.asyncio
async def test_reserve_numbers_nothing_claimed_releases_nothing(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker))
    crud["reserve"].return_value = []

    with pytest.raises(AlreadyHeld) as e:
        await ticket_service.reserve_numbers(db, 1, [4, 2], "session:b")

    assert e.value.unavailable == [2, 4]
    crud["release"].assert_not_awaited()


@pytest.mark.asyncio
async def test_release_numbers_held_by_someone_else_raises_not_holder(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker))
    crud["foreign"].return_value = [2]

    with pytest.raises(NotHolder) as e:
        await ticket_service.release_numbers(db, 1, [1, 2], "session:a")

    assert e.value.ctx["numbers"] == [2]
    crud["release"].assert_not_awaited()
    crud["detach"].assert_not_awaited()


@pytest.mark.asyncio
async def test_release_numbers_releases_and_detaches_from_cart(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker))
    crud["release"].return_value = [1]

    released = await ticket_service.release_numbers(db, 1, [2, 1], "session:a")

    assert released == [1]
    crud["release"].assert_awaited_once_with(db, 1, [1, 2], "session:a")
    crud["detach"].assert_awaited_once_with(db, "session:a", 1, [1, 2])


@pytest.mark.asyncio
async def test_release_numbers_on_closed_competition_is_allowed(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker, status=CompetitionStatus.CANCELLED))
    crud["release"].return_value = []

    assert await ticket_service.release_numbers(db, 1, [1], "session:a") == []


@pytest.mark.asyncio
async def test_list_tickets_sweeps_before_reading(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker))
    rows = [(1, TicketStatus.AVAILABLE), (2, TicketStatus.RESERVED)]
    list_spy = mocker.patch("mobycomps.domain.tickets.crud.list_tickets", new=mocker.AsyncMock(return_value=rows))

    result = await ticket_service.list_tickets(db, 1, None)

    assert result == rows
    crud["sweep"].assert_awaited_once_with(db, 1)
    list_spy.assert_awaited_once_with(db, 1, None)


@pytest.mark.asyncio
async def test_get_status_summary_counts_and_percentage(mocker, crud):
    db = db_with_scalar(mocker, create_competition(mocker, max_tickets=8))
    mocker.patch(
        "mobycomps.domain.tickets.crud.count_by_status",
        new=mocker.AsyncMock(return_value={
            TicketStatus.AVAILABLE: 4,
            TicketStatus.RESERVED: 1,
            TicketStatus.PURCHASED: 3,
        })
    )

    summary = await ticket_service.get_status_summary(db, 1)

    assert summary == {
        "competition_id": 1,
        "total_tickets": 8,
        "available": 4,
        "reserved": 1,
        "purchased": 3,
        "sold_out_percentage": 37,
    }


class _TicketTable:
    """In-memory ticket rows applying the same guards as the conditional updates."""

    def __init__(self, size: int):
        self.rows = {n: {"status": TicketStatus.AVAILABLE, "holder_ref": None, "reserved_until": None}
                     for n in range(1, size + 1)}

    async def reserve_available(self, db, competition_id, numbers, holder_ref, now, until):
        claimed = []
        for n in numbers:
            row = self.rows[n]
            if row["status"] == TicketStatus.AVAILABLE:
                row.update(status=TicketStatus.RESERVED, holder_ref=holder_ref, reserved_until=until)
                claimed.append(n)
        return sorted(claimed)

    async def release_held(self, db, competition_id, numbers, holder_ref):
        released = []
        for n in numbers:
            row = self.rows[n]
            if row["status"] == TicketStatus.RESERVED and row["holder_ref"] == holder_ref:
                row.update(status=TicketStatus.AVAILABLE, holder_ref=None, reserved_until=None)
                released.append(n)
        return sorted(released)


@pytest.mark.asyncio
async def test_overlapping_reservation_fails_whole_batch_and_leaves_free_number_available(mocker):
    table = _TicketTable(5)
    mocker.patch("mobycomps.services.ticket_service.sweep_competition", new=mocker.AsyncMock(return_value=0))
    mocker.patch("mobycomps.domain.tickets.crud.reserve_available", new=table.reserve_available)
    mocker.patch("mobycomps.domain.tickets.crud.release_held", new=table.release_held)
    db = db_with_scalar(mocker, create_competition(mocker))

    _, reserved, _ = await ticket_service.reserve_numbers(db, 1, [1, 2], "session:a")
    with pytest.raises(AlreadyHeld) as e:
        await ticket_service.reserve_numbers(db, 1, [2, 3], "session:b")

    assert reserved == [1, 2]
    assert e.value.unavailable == [2]
    assert table.rows[2]["holder_ref"] == "session:a"
    assert table.rows[3] == {"status": TicketStatus.AVAILABLE, "holder_ref": None, "reserved_until": None}
    assert [n for n, row in table.rows.items() if row["holder_ref"] == "session:b"] == []
