import asyncio
import logging
import signal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from mobycomps.core.config import LOG_FORMAT, LOG_LEVEL, SWEEP_INTERVAL_SECONDS, SWEEP_BATCH
from mobycomps.core.database import make_session_factory
from mobycomps.services.sweeper_service import sweep_expired_reservations

logger = logging.getLogger("mobycomps.sweeper")


async def sweep_once(session: async_sessionmaker, limit: int = SWEEP_BATCH) -> dict:
    async with session() as db:
        async with db.begin():
            return await sweep_expired_reservations(db, limit=limit)


async def sweep_forever(session: async_sessionmaker, stop: asyncio.Event, interval: float = SWEEP_INTERVAL_SECONDS) -> None:
    """Sweep, then sleep for interval seconds or until stop is set; a full batch sweeps again at once."""
    while not stop.is_set():
        stats = None
        try:
            stats = await sweep_once(session)
        except SQLAlchemyError:
            logger.exception("Sweep failed; retrying in %ss", interval)

        if stats and stats["tickets_released"] >= SWEEP_BATCH:
            continue
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass


async def run() -> None:
    engine, session = make_session_factory()

    stop = asyncio.Event()

    def _graceful(*_):
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _graceful)
        except NotImplementedError:
            pass

    interval = SWEEP_INTERVAL_SECONDS or 60
    logger.info("Expiry sweeper started | interval=%ss batch=%d", interval, SWEEP_BATCH)
    try:
        await sweep_forever(session, stop, interval)
    finally:
        await engine.dispose()
        logger.info("Expiry sweeper stopped.")


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    asyncio.run(run())
