import pytest
import time_machine
from datetime import datetime, timezone
from mobycomps.services import sweeper_service
from tests.helper import session_mock


@time_machine.travel("2025-01-01 12:00:00", tick=False)
@pytest.mark.asyncio
async def test_sweep_expired_reservations_returns_stats(mocker, auditspan_stub):
    db = session_mock(mocker)
    sweep_spy = mocker.patch("mobycomps.domain.tickets.crud.sweep_expired", new=mocker.AsyncMock(return_value=4))
    orphan_spy = mocker.patch("mobycomps.domain.cart.crud.delete_orphaned_items", new=mocker.AsyncMock(return_value=1))

    stats = await sweeper_service.sweep_expired_reservations(db, limit=100)

    now = datetime.now(timezone.utc)
    assert stats == {"tickets_released": 4, "cart_items_removed": 1}
    sweep_spy.assert_awaited_once_with(db, now, limit=100)
    orphan_spy.assert_awaited_once_with(db, now)
    assert auditspan_stub[0].meta == {"limit": 100, "tickets_released": 4, "cart_items_removed": 1}


@pytest.mark.asyncio
async def test_sweep_expired_reservations_second_pass_is_a_no_op(mocker):
    db = session_mock(mocker)
    mocker.patch("mobycomps.domain.tickets.crud.sweep_expired", new=mocker.AsyncMock(return_value=0))
    mocker.patch("mobycomps.domain.cart.crud.delete_orphaned_items", new=mocker.AsyncMock(return_value=0))
    info_spy = mocker.patch("mobycomps.services.sweeper_service.logger.info")

    stats = await sweeper_service.sweep_expired_reservations(db)

    assert stats == {"tickets_released": 0, "cart_items_removed": 0}
    info_spy.assert_not_called()


@pytest.mark.asyncio
async def test_sweep_competition_is_scoped_to_competition(mocker):
    db = session_mock(mocker)
    sweep_spy = mocker.patch("mobycomps.domain.tickets.crud.sweep_expired", new=mocker.AsyncMock(return_value=2))

    assert await sweeper_service.sweep_competition(db, 5) == 2
    assert sweep_spy.await_args.kwargs == {"competition_id": 5}


@pytest.mark.asyncio
async def test_sweep_holder_is_scoped_to_holder(mocker):
    db = session_mock(mocker)
    sweep_spy = mocker.patch("mobycomps.domain.tickets.crud.sweep_expired", new=mocker.AsyncMock(return_value=0))

    assert await sweeper_service.sweep_holder(db, "user:1") == 0
    assert sweep_spy.await_args.kwargs == {"holder_ref": "user:1"}
