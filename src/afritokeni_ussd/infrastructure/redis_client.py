"""Process-wide redis connection for the redis session and code backends.

Only opened when ``session_backend=redis``. The lifespan owns it:
``init_redis`` at startup, ``close_redis`` at shutdown. The health route
asks ``is_redis_initialized`` before pinging.
"""

from __future__ import annotations

from urllib.parse import urlsplit

import redis.asyncio as aioredis

from afritokeni_ussd.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None


def masked_url(url: str) -> str:
    """``redis://:secret@host:6379/0`` -> ``redis://***@host:6379/0``."""
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    return parts._replace(netloc="***@" + parts.netloc.rsplit("@", 1)[1]).geturl()


async def init_redis(url: str, socket_timeout: float = 5.0) -> aioredis.Redis:
    """Connect and ping. A failing ping propagates so the caller can fall back."""
    global _redis_client
    client = aioredis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )
    await client.ping()
    _redis_client = client
    logger.info("redis.connected", url=masked_url(url))
    return client


def get_redis() -> aioredis.Redis:
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def is_redis_initialized() -> bool:
    return _redis_client is not None


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None
