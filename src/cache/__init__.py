"""Cache layer for the school permission service.

Provides the Redis-based cache in front of role permission lookups.
"""

from .redis_client import RedisClient

__all__ = [
    "RedisClient",
]
