from redis.asyncio import Redis

from humanivio.core.config import get_settings

_redis: Redis | None = None


def get_redis(url: str | None = None) -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(url or get_settings().redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
    _redis = None
