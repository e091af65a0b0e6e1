from __future__ import annotations

import os
from collections.abc import Generator

import redis

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def create_redis(url: str | None = None) -> redis.Redis:
    """Client for the session store; strings in/out (decode_responses=True)."""

    return redis.Redis.from_url(url or os.environ.get("REDIS_URL", DEFAULT_REDIS_URL), decode_responses=True)


def get_redis() -> Generator[redis.Redis, None, None]:
    # One client per request; tests swap this out via app.dependency_overrides.
    client = create_redis()
    try:
        yield client
    finally:
        client.close()
