"""
Permission Service

Resolves the permission set of a (school, role) pair, with a Redis
read-through cache in front of the role_permissions table.

Cache policy:
    - Key: permissions:{school_id}:{role}, TTL 300 seconds by default
    - Cache errors and timeouts count as a miss; the store is authoritative
    - Writes commit to the store first, then delete the affected keys
    - Keys are never repopulated on write; the next read fills them
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional, Set, Tuple, Union

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cache.redis_client import RedisClient
from config.settings import Settings, get_settings
from database.models import School, Staff
from database.repositories import (
    RolePermissionRepository,
    SchoolRepository,
    StaffRepository,
)

from .permissions import Permission, is_permission, normalize_permissions
from .roles import RoleConfig

logger = logging.getLogger(__name__)

PermissionLike = Union[Permission, str]

CACHE_KEY_PREFIX = "permissions"


def permission_cache_key(school_id: str, role: str) -> str:
    """Cache key holding the permission set of one role."""
    return f"{CACHE_KEY_PREFIX}:{school_id}:{role}"


def school_cache_pattern(school_id: str) -> str:
    """Glob pattern matching every cached role of a school."""
    return f"{CACHE_KEY_PREFIX}:{school_id}:*"


# =============================================================================
# TRANSACTION
# =============================================================================

class PermissionTransaction:
    """
    A unit of work over the permission tables.

    Everything written through one transaction commits together. Cache
    invalidations are only recorded here; PermissionService applies them
    after the commit succeeds.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.schools = SchoolRepository(session)
        self.role_permissions = RolePermissionRepository(session)
        self._stale_roles: Set[Tuple[str, str]] = set()
        self._stale_schools: Set[str] = set()

    async def get_school(self, school_id: str) -> Optional[School]:
        return await self.schools.get(school_id)

    async def save_role_config(self, school: School, role_config: RoleConfig) -> None:
        await self.schools.save_role_config(school, role_config)

    async def set_role_permissions(
        self,
        school_id: str,
        role: str,
        permissions: Iterable[PermissionLike],
    ) -> List[Permission]:
        """
        Replace the permission set of a role.

        Duplicates are dropped, first occurrence wins.

        Raises:
            ValueError: If an entry is not a known permission
        """
        values = normalize_permissions(permissions)
        await self.role_permissions.upsert(school_id, role, [p.value for p in values])
        self._stale_roles.add((school_id, role))
        return values

    def invalidate_school(self, school_id: str) -> None:
        """Drop every cached role of the school once this transaction commits."""
        self._stale_schools.add(school_id)

    @property
    def stale_keys(self) -> List[str]:
        """Single keys to delete (roles of wholesale-invalidated schools excluded)."""
        return sorted(
            permission_cache_key(school_id, role)
            for school_id, role in self._stale_roles
            if school_id not in self._stale_schools
        )

    @property
    def stale_schools(self) -> List[str]:
        return sorted(self._stale_schools)


# =============================================================================
# SERVICE
# =============================================================================

class PermissionService:
    """
    Permission lookups and updates for school roles.

    One instance per application, created at startup and closed at
    shutdown.

    Usage:
        service = PermissionService(cache, session_factory)

        perms = await service.get_permissions(school_id, "TEACHER")
        allowed = await service.has_permission(school_id, "TEACHER", Permission.VIEW_STUDENTS)
        await service.update_permissions(school_id, "TEACHER", [Permission.VIEW_STUDENTS])
    """

    def __init__(
        self,
        cache: RedisClient,
        session_factory: async_sessionmaker[AsyncSession],
        cache_ttl: int = 300,
    ):
        self._cache = cache
        self._session_factory = session_factory
        self._cache_ttl = cache_ttl

    @property
    def cache(self) -> RedisClient:
        return self._cache

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_permissions(self, school_id: str, role: str) -> List[Permission]:
        """
        Get the permission set of a role within a school.

        Returns an empty list when the school has no record for the role or
        the role is neither enabled nor a custom role of the school. Empty
        results are not cached.
        """
        key = permission_cache_key(school_id, role)

        cached = await self._read_cache(key)
        if cached is not None:
            return cached

        async with self._session_factory() as session:
            permissions = await self._load_permissions(session, school_id, role)

        if permissions is None:
            return []

        await self._cache.set(key, [p.value for p in permissions], ttl=self._cache_ttl)
        return permissions

    async def has_permission(
        self, school_id: str, role: str, permission: PermissionLike
    ) -> bool:
        """Check if a role of a school holds a permission."""
        return permission in await self.get_permissions(school_id, role)

    async def get_staff_member(self, user_id: str, school_id: str) -> Optional[Staff]:
        """Staff record linking a user to a school, if any."""
        async with self._session_factory() as session:
            return await StaffRepository(session).get_membership(user_id, school_id)

    async def get_role_config(self, school_id: str) -> Optional[RoleConfig]:
        """Role configuration of a school, or None if the school does not exist."""
        async with self._session_factory() as session:
            school = await SchoolRepository(session).get(school_id)
            return school.role_config if school is not None else None

    async def _read_cache(self, key: str) -> Optional[List[Permission]]:
        value = await self._cache.get(key)
        if value is None:
            return None

        if not isinstance(value, list) or not all(is_permission(v) for v in value):
            logger.warning(f"Ignoring malformed cache entry {key}")
            return None

        return normalize_permissions(value)

    async def _load_permissions(
        self, session: AsyncSession, school_id: str, role: str
    ) -> Optional[List[Permission]]:
        school = await SchoolRepository(session).get(school_id)
        if school is None or not school.role_config.has_role(role):
            return None

        stored = await RolePermissionRepository(session).get_permissions(school_id, role)
        if stored is None:
            return None

        unknown = [value for value in stored if not is_permission(value)]
        if unknown:
            logger.warning(
                f"Skipping unknown permissions stored for {school_id}/{role}: {', '.join(map(str, unknown))}"
            )
        return normalize_permissions(value for value in stored if is_permission(value))

    # =========================================================================
    # Writes
    # =========================================================================

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PermissionTransaction]:
        """
        Open a unit of work over the permission tables.

        Commits when the block exits cleanly, then invalidates the cache keys
        the block touched. On error the session rolls back, nothing is
        invalidated, and the exception propagates.

        Usage:
            async with service.transaction() as tx:
                school = await tx.get_school(school_id)
                await tx.set_role_permissions(school_id, "TEACHER", perms)
        """
        async with self._session_factory() as session:
            tx = PermissionTransaction(session)
            try:
                yield tx
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        await self._invalidate(tx)

    async def update_permissions(
        self,
        school_id: str,
        role: str,
        permissions: Iterable[PermissionLike],
    ) -> List[Permission]:
        """
        Replace the permission set of a role and drop its cache entry.

        Returns:
            The stored permission set.
        """
        async with self.transaction() as tx:
            stored = await tx.set_role_permissions(school_id, role, permissions)

        logger.info(f"Updated permissions for {school_id}/{role}: {len(stored)} granted")
        return stored

    async def invalidate_school_cache(self, school_id: str) -> Optional[int]:
        """
        Drop every cached permission set of a school.

        Returns:
            Number of keys deleted, or None if the cache could not be reached.
        """
        deleted = await self._cache.delete_pattern(school_cache_pattern(school_id))
        if deleted is not None:
            logger.debug(f"Invalidated {deleted} cached role(s) for school {school_id}")
        return deleted

    async def _invalidate(self, tx: PermissionTransaction) -> None:
        failed = []

        for key in tx.stale_keys:
            if await self._cache.delete(key) is None:
                failed.append(key)

        for school_id in tx.stale_schools:
            if await self.invalidate_school_cache(school_id) is None:
                failed.append(school_cache_pattern(school_id))

        if failed:
            logger.warning(
                f"Changes committed but cache invalidation failed for {', '.join(failed)}; "
                f"entries expire within {self._cache_ttl}s"
            )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def health(self) -> dict:
        """Cache health, as reported by the Redis client."""
        return await self._cache.health_check()

    async def close(self) -> None:
        await self._cache.close()


async def create_permission_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
    cache: Optional[RedisClient] = None,
) -> PermissionService:
    """
    Build a PermissionService and connect its cache.

    A cache that cannot be reached at startup is logged and kept; lookups
    fall through to the database until Redis becomes reachable.
    """
    settings = settings or get_settings()
    cache = cache or RedisClient(settings.redis)

    try:
        await cache.connect()
    except (RedisError, OSError) as e:
        logger.warning(f"Permission cache unavailable, serving from database: {e}")

    return PermissionService(
        cache=cache,
        session_factory=session_factory,
        cache_ttl=settings.permission_cache_ttl,
    )
