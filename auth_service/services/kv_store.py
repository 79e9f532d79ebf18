"""
Key-value store used for all OTP state.

Two implementations share the ``KeyValueStore`` protocol:

* ``RedisKeyValueStore`` – production backend on ``redis.asyncio``; expiry
  is enforced by Redis itself.
* ``InMemoryKeyValueStore`` – single-process backend for development and
  tests; expired entries are dropped lazily when read.

Any backend failure surfaces as ``StoreError`` so callers can apply their
own fail-open / fail-closed policy without knowing which backend is in use.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the key-value store cannot be reached or fails."""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> int: ...

    async def close(self) -> None: ...


class RedisKeyValueStore:
    """Thin async wrapper over a Redis connection pool."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise StoreError(f"GET {key} failed") from e

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise StoreError(f"SET {key} failed") from e

    async def delete(self, key: str) -> int:
        try:
            return await self._client.delete(key)
        except RedisError as e:
            raise StoreError(f"DEL {key} failed") from e

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis connection closed")


class InMemoryKeyValueStore:
    """
    Dict-backed store with per-key expiry.

    Entries carry an absolute deadline taken from *clock*; a read past the
    deadline removes the entry and reports it absent, so an expired key is
    indistinguishable from one that was never set.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}

    def _live(self, key: str) -> tuple[str, float] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._clock() >= entry[1]:
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> int:
        if self._live(key) is None:
            return 0
        del self._data[key]
        return 1

    async def close(self) -> None:
        self._data.clear()

    def ttl(self, key: str) -> float | None:
        """Seconds until *key* expires, or None when absent."""
        entry = self._live(key)
        if entry is None:
            return None
        return entry[1] - self._clock()
