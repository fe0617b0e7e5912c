"""Async Redis client wrapper.

Provides a small async interface to Redis with connection pooling,
JSON serialization, and best-effort error handling: every operation
logs and degrades to a miss/no-op instead of raising. Deletes return None
when Redis could not be reached, so callers can tell a failed delete from
an absent key.

is_connected follows the outcome of the latest command: an error clears
it and the next successful command (or ping) sets it again.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any, Optional, Union

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from config.settings import RedisSettings, get_settings

logger = logging.getLogger(__name__)

_CACHE_ERRORS = (RedisError, OSError)


class RedisClient:
    """Async Redis client with connection pooling.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.set("permissions:s1:TEACHER", ["view_students"], ttl=300)
        data = await client.get("permissions:s1:TEACHER")
        await client.delete_pattern("permissions:s1:*")

        await client.close()
    """

    def __init__(self, settings: Optional[RedisSettings] = None):
        """Initialize Redis client.

        Args:
            settings: Redis settings. Uses default if not provided.
        """
        self.settings = settings or get_settings().redis
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._connected and self._client is not None

    def _key(self, key: str) -> str:
        prefix = self.settings.key_prefix
        return f"{prefix}{key}" if prefix else key

    async def connect(self) -> None:
        """Establish connection to Redis.

        Creates a connection pool and tests connectivity. The client is kept
        even when the ping fails so that later calls can reconnect once the
        server is reachable again.
        """
        if self._connected:
            return

        try:
            self._pool = ConnectionPool.from_url(
                self.settings.url,
                max_connections=self.settings.max_connections,
                decode_responses=True,
                socket_timeout=self.settings.socket_timeout,
                socket_connect_timeout=self.settings.socket_connect_timeout,
            )
            self._client = Redis(connection_pool=self._pool)

            await self._client.ping()
            self._connected = True
            logger.info(f"Connected to Redis at {self.settings.url}")

        except _CACHE_ERRORS:
            # Logged by the caller, which decides whether the outage is fatal
            self._connected = False
            raise

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.disconnect()
            self._pool = None

        self._connected = False
        logger.info("Redis connection closed")

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False

        try:
            self._connected = bool(await self._client.ping())
        except _CACHE_ERRORS:
            self._connected = False
        return self._connected

    def _serialize(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def _deserialize(self, data: Optional[str]) -> Any:
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return data

    async def get(self, key: str) -> Any:
        """Get a value by key.

        Returns:
            Cached value, or None if missing or Redis is unavailable.
        """
        if not self._client:
            return None

        try:
            data = await self._client.get(self._key(key))
        except _CACHE_ERRORS as e:
            logger.warning(f"Redis GET error for {key}: {e}")
            self._connected = False
            return None

        self._connected = True
        return self._deserialize(data)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[Union[int, timedelta]] = None,
    ) -> bool:
        """Set a value with a TTL (defaults to settings.default_ttl).

        Returns:
            True if successful.
        """
        if not self._client:
            return False

        if ttl is None:
            ttl = self.settings.default_ttl
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())

        try:
            await self._client.set(self._key(key), self._serialize(value), ex=ttl)
        except _CACHE_ERRORS as e:
            logger.warning(f"Redis SET error for {key}: {e}")
            self._connected = False
            return False

        self._connected = True
        return True

    async def delete(self, key: str) -> Optional[bool]:
        """Delete a key.

        Returns:
            True if the key was deleted, False if it did not exist, None if
            Redis could not be reached.
        """
        if not self._client:
            return None

        try:
            result = await self._client.delete(self._key(key))
        except _CACHE_ERRORS as e:
            logger.warning(f"Redis DELETE error for {key}: {e}")
            self._connected = False
            return None

        self._connected = True
        return result > 0

    async def delete_pattern(self, pattern: str) -> Optional[int]:
        """Delete all keys matching a glob pattern (SCAN, never KEYS).

        Args:
            pattern: Glob-style pattern (e.g., "permissions:school-1:*").

        Returns:
            Number of keys deleted, or None if Redis could not be reached.
        """
        if not self._client:
            return None

        try:
            keys = [key async for key in self._client.scan_iter(match=self._key(pattern))]
            deleted = await self._client.delete(*keys) if keys else 0
        except _CACHE_ERRORS as e:
            logger.warning(f"Redis DELETE PATTERN error for {pattern}: {e}")
            self._connected = False
            return None

        self._connected = True
        return deleted

    async def health_check(self) -> dict:
        """Health check result dict."""
        is_healthy = await self.ping()
        return {
            "status": "healthy" if is_healthy else "unhealthy",
            "connected": self.is_connected,
        }
