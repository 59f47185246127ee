import functools
import logging
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger("mobycomps.db")


def retry_read_once(fn):
    """
    Retry an idempotent read a single time when the connection was dropped underneath it.
    Never wrap anything that writes: a mutation must be re-checked, not replayed.
    """
    @functools.wraps(fn)
    async def _inner(db: AsyncSession, *args, **kwargs):
        try:
            return await fn(db, *args, **kwargs)
        except DBAPIError as e:
            if not e.connection_invalidated:
                raise
            logger.warning("Connection invalidated during %s, retrying once", fn.__name__)
            await db.rollback()
            return await fn(db, *args, **kwargs)
    return _inner
