from collections.abc import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from esign_engine.core.config import get_settings
from esign_engine.core.logging import get_logger

logger = get_logger(__name__)


async def get_redis_client() -> AsyncIterator[Redis | None]:
    settings = get_settings()
    if not settings.redis_enabled:
        yield None
        return
    client = Redis.from_url(settings.redis_url)
    try:
        await client.ping()
    except RedisError as exc:
        logger.warning("redis.unavailable", error=str(exc))
        await client.aclose()
        yield None
        return
    try:
        yield client
    finally:
        await client.aclose()
