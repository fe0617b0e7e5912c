"""School Repository Implementation."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import School
from rbac.roles import RoleConfig


class SchoolRepository:
    """Repository for schools and their role configuration."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, school_id: str) -> Optional[School]:
        """Get a school by ID."""
        return await self._session.get(School, school_id)

    async def list_ids(self) -> List[str]:
        """IDs of every school, oldest first."""
        result = await self._session.execute(
            select(School.id).order_by(School.created_at)
        )
        return list(result.scalars().all())

    async def create(
        self,
        name: str,
        role_config: Optional[RoleConfig] = None,
        school_id: Optional[str] = None,
    ) -> School:
        """Add a new school; new schools get the default role configuration."""
        school = School(
            name=name,
            role_config=role_config if role_config is not None else RoleConfig.default(),
        )
        if school_id:
            school.id = school_id
        self._session.add(school)
        await self._session.flush()
        return school

    async def save_role_config(self, school: School, role_config: RoleConfig) -> None:
        """Replace a school's role configuration."""
        school.role_config = role_config
        await self._session.flush()
