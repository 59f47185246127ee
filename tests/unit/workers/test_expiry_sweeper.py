import asyncio
import pytest
from sqlalchemy.exc import OperationalError
from mobycomps.workers import expiry_sweeper


@pytest.mark.asyncio
async def test_sweep_forever_stops_when_event_set(mocker):
    stop = asyncio.Event()

    async def _sweep(session):
        stop.set()
        return {"tickets_released": 1, "cart_items_removed": 0}

    sweep_spy = mocker.patch("mobycomps.workers.expiry_sweeper.sweep_once", side_effect=_sweep)

    await expiry_sweeper.sweep_forever(mocker.Mock(), stop, interval=0.01)

    sweep_spy.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweep_forever_full_batch_sweeps_again_without_waiting(mocker):
    stop = asyncio.Event()
    mocker.patch("mobycomps.workers.expiry_sweeper.SWEEP_BATCH", 10)
    results = iter([
        {"tickets_released": 10, "cart_items_removed": 0},
        {"tickets_released": 3, "cart_items_removed": 0},
    ])

    async def _sweep(session):
        stats = next(results)
        if stats["tickets_released"] < 10:
            stop.set()
        return stats

    sweep_spy = mocker.patch("mobycomps.workers.expiry_sweeper.sweep_once", side_effect=_sweep)

    await asyncio.wait_for(expiry_sweeper.sweep_forever(mocker.Mock(), stop, interval=60), timeout=1)

    assert sweep_spy.await_count == 2


@pytest.mark.asyncio
async def test_sweep_forever_survives_database_errors(mocker):
    stop = asyncio.Event()
    calls = []

    async def _sweep(session):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("stmt", {}, Exception("connection refused"))
        stop.set()
        return {"tickets_released": 0, "cart_items_removed": 0}

    mocker.patch("mobycomps.workers.expiry_sweeper.sweep_once", side_effect=_sweep)
    log_spy = mocker.patch("mobycomps.workers.expiry_sweeper.logger.exception")

    await expiry_sweeper.sweep_forever(mocker.Mock(), stop, interval=0.01)

    assert len(calls) == 2
    log_spy.assert_called_once()
