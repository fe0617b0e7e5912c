"""Staff Repository Implementation."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Staff


class StaffRepository:
    """Repository for staff memberships."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_membership(self, user_id: str, school_id: str) -> Optional[Staff]:
        """
        Get the staff record linking a user to a school.

        Args:
            user_id: Authenticated user identifier.
            school_id: School identifier.

        Returns:
            Staff record or None if the user is not a member of the school.
        """
        result = await self._session.execute(
            select(Staff).where(
                Staff.user_id == user_id,
                Staff.school_id == school_id,
            )
        )
        return result.scalar_one_or_none()

    async def add(
        self, user_id: str, school_id: str, role: str, status: str = "ACTIVE"
    ) -> Staff:
        staff = Staff(user_id=user_id, school_id=school_id, role=role, status=status)
        self._session.add(staff)
        await self._session.flush()
        return staff
