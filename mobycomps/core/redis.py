import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from mobycomps.core.config import REDIS_URL

logger = logging.getLogger("mobycomps.redis")


async def create_redis(url: str = REDIS_URL, *, check: bool = True) -> redis.Redis:
    """
    Client for the audit stream. The storefront keeps serving when Redis is down
    (audit events are dropped with a warning), so a failed startup ping only logs.
    """
    client = redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
        retry_on_timeout=True,
        socket_connect_timeout=5,
        socket_keepalive=True
    )
    if check:
        try:
            await client.ping()
        except RedisError:
            logger.warning("Redis unreachable at startup url=%s; audit events will be dropped", url)
    return client
