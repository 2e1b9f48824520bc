"""Redis client factory: used for real-time event fan-out only.

Market and bet state never goes through Redis; the engine's in-memory
records (optionally backed by PostgreSQL) are authoritative.
"""

import redis.asyncio as aioredis

_redis_pool: aioredis.Redis | None = None


async def get_redis(redis_url: str) -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            redis_url,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
