import os

from arq.connections import ArqRedis, RedisSettings, create_pool


def get_redis_settings(redis_url: str | None = None) -> RedisSettings:
    """Get Redis settings from the given URL or the REDIS_URL environment variable."""
    return RedisSettings.from_dsn(
        redis_url or os.environ.get("REDIS_URL", "redis://redis:6379")
    )


async def get_queue(redis_url: str | None = None) -> ArqRedis:
    """Create a connection pool to the Redis queue."""
    return await create_pool(get_redis_settings(redis_url))
