"""Role Permission Repository Implementation.

Persistence for the role_permissions table. One row per (school, role);
writes replace the stored permission list in a single upsert statement so
concurrent writers never produce duplicate rows.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import RolePermissionRecord

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class RolePermissionRepository:
    """
    Repository for role permission rows.

    The caller owns the transaction: nothing here commits.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with a session.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    async def get(self, school_id: str, role: str) -> Optional[RolePermissionRecord]:
        """Get the row for (school_id, role), if any."""
        result = await self._session.execute(
            select(RolePermissionRecord).where(
                RolePermissionRecord.school_id == school_id,
                RolePermissionRecord.role == role,
            )
        )
        return result.scalar_one_or_none()

    async def get_permissions(self, school_id: str, role: str) -> Optional[List[str]]:
        """
        Stored permission values for (school_id, role).

        Returns:
            The stored list, or None when no row exists.
        """
        result = await self._session.execute(
            select(RolePermissionRecord.permissions).where(
                RolePermissionRecord.school_id == school_id,
                RolePermissionRecord.role == role,
            )
        )
        permissions = result.scalar_one_or_none()
        if permissions is None:
            return None
        return list(permissions)

    async def list_for_school(self, school_id: str) -> Dict[str, List[str]]:
        """All stored permission sets of a school, keyed by role."""
        result = await self._session.execute(
            select(RolePermissionRecord.role, RolePermissionRecord.permissions)
            .where(RolePermissionRecord.school_id == school_id)
            .order_by(RolePermissionRecord.role)
        )
        return {role: list(permissions or []) for role, permissions in result.all()}

    async def existing_roles(self, school_id: str) -> List[str]:
        """Roles of a school that already have a row."""
        result = await self._session.execute(
            select(RolePermissionRecord.role).where(
                RolePermissionRecord.school_id == school_id
            )
        )
        return list(result.scalars().all())

    async def upsert(self, school_id: str, role: str, permissions: Iterable[str]) -> None:
        """
        Insert or replace the permission list for (school_id, role).

        Args:
            school_id: School identifier.
            role: Role name.
            permissions: Permission values; stored as given.
        """
        values = [str(getattr(p, "value", p)) for p in permissions]
        now = datetime.utcnow()
        dialect = self._session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)

        if insert is None:
            await self._upsert_fallback(school_id, role, values, now)
            return

        stmt = insert(RolePermissionRecord).values(
            id=str(uuid4()),
            school_id=school_id,
            role=role,
            permissions=values,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RolePermissionRecord.school_id, RolePermissionRecord.role],
            set_={"permissions": stmt.excluded.permissions, "updated_at": now},
        )
        await self._session.execute(stmt)
        logger.debug(f"Upserted permissions for {school_id}/{role} ({len(values)} entries)")

    async def _upsert_fallback(
        self, school_id: str, role: str, values: List[str], now: datetime
    ) -> None:
        # Dialects without ON CONFLICT support
        record = await self.get(school_id, role)
        if record is None:
            self._session.add(RolePermissionRecord(
                school_id=school_id,
                role=role,
                permissions=values,
                created_at=now,
                updated_at=now,
            ))
        else:
            record.permissions = values
            record.updated_at = now
        await self._session.flush()
