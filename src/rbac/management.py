"""
Role Management

Administrative operations on a school's roles: editing permission sets,
defining custom roles, and choosing which standard roles are enabled.

Every write runs in a single PermissionService transaction. Store failures
roll the whole operation back; the cache is only touched after commit.
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy.exc import SQLAlchemyError

from database.models import School
from security.api_errors import BadRequestError, NotFoundError

from .permissions import Permission, find_invalid_permissions, get_default_permissions
from .roles import CUSTOM_ROLE_MAX_LENGTH, CUSTOM_ROLE_MIN_LENGTH, is_standard_role
from .service import PermissionService, PermissionTransaction

logger = logging.getLogger(__name__)


def _validate_permissions(permissions: Iterable[str]) -> List[str]:
    values = list(permissions)
    invalid = find_invalid_permissions(values)
    if invalid:
        raise BadRequestError(f"Invalid permissions: {', '.join(invalid)}")
    return values


async def _require_school(tx: PermissionTransaction, school_id: str) -> School:
    school = await tx.get_school(school_id)
    if school is None:
        raise NotFoundError("School not found")
    return school


class RoleManagementService:
    """Role administration for the caller's school."""

    def __init__(self, permission_service: PermissionService):
        self._permissions = permission_service

    async def list_role_permissions(self, school_id: str) -> List[Dict[str, object]]:
        """
        Permission sets of every role the school uses.

        Returns:
            [{"role": ..., "permissions": [...]}] for enabled roles, then
            custom roles.

        Raises:
            NotFoundError: School does not exist
        """
        role_config = await self._permissions.get_role_config(school_id)
        if role_config is None:
            raise NotFoundError("School not found")

        result = []
        for role in role_config.all_roles:
            permissions = await self._permissions.get_permissions(school_id, role)
            result.append({"role": role, "permissions": [p.value for p in permissions]})
        return result

    async def update_role_permissions(
        self, school_id: str, role: str, permissions: Iterable[str]
    ) -> List[Permission]:
        """Replace the permission set of an enabled or custom role."""
        values = _validate_permissions(permissions)

        try:
            async with self._permissions.transaction() as tx:
                school = await _require_school(tx, school_id)
                if not school.role_config.has_role(role):
                    raise BadRequestError("Invalid role for this school")

                stored = await tx.set_role_permissions(school_id, role, values)

        except SQLAlchemyError as e:
            logger.error(f"Updating permissions failed for school {school_id}, role {role}: {e}")
            raise

        logger.info(f"Permissions of {role} updated in school {school_id}")
        return stored

    async def create_custom_role(
        self, school_id: str, role: str, permissions: Iterable[str]
    ) -> str:
        """
        Define a custom role with its permission set.

        Returns:
            The stored (trimmed) role name.
        """
        name = (role or "").strip()
        if not CUSTOM_ROLE_MIN_LENGTH <= len(name) <= CUSTOM_ROLE_MAX_LENGTH:
            raise BadRequestError("Invalid role name")

        values = _validate_permissions(permissions)

        try:
            async with self._permissions.transaction() as tx:
                school = await _require_school(tx, school_id)
                role_config = school.role_config
                if role_config.has_role(name):
                    raise BadRequestError("Role already exists")

                await tx.save_role_config(school, role_config.with_custom_role(name))
                await tx.set_role_permissions(school_id, name, values)

        except SQLAlchemyError as e:
            logger.error(f"Creating custom role failed for school {school_id}, role {name}: {e}")
            raise

        logger.info(f"Custom role {name} created in school {school_id}")
        return name

    async def update_enabled_roles(self, school_id: str, roles: Iterable[str]) -> List[str]:
        """
        Replace the school's enabled standard roles.

        Newly enabled roles get their default permission set; roles that
        stay enabled keep their current one.

        Returns:
            The newly enabled roles.
        """
        requested = list(roles)
        invalid = [str(r) for r in requested if not is_standard_role(r)]
        if invalid:
            raise BadRequestError(f"Invalid standard roles: {', '.join(invalid)}")

        try:
            async with self._permissions.transaction() as tx:
                school = await _require_school(tx, school_id)
                role_config = school.role_config

                clashing = [r for r in requested if r in role_config.custom_roles]
                if clashing:
                    raise BadRequestError(
                        f"Roles already defined as custom roles: {', '.join(clashing)}"
                    )

                updated = role_config.with_enabled_roles(requested)
                newly_enabled = [
                    r for r in updated.enabled_roles if r not in role_config.enabled_roles
                ]

                await tx.save_role_config(school, updated)
                for role in newly_enabled:
                    await tx.set_role_permissions(school_id, role, get_default_permissions(role))
                tx.invalidate_school(school_id)

        except SQLAlchemyError as e:
            logger.error(f"Updating enabled roles failed for school {school_id}: {e}")
            raise

        logger.info(
            f"Enabled roles of school {school_id} set to {', '.join(updated.enabled_roles) or '(none)'}"
        )
        return newly_enabled

    async def delete_custom_role(self, school_id: str, role: str) -> None:
        """Remove a custom role and clear its permission set."""
        try:
            async with self._permissions.transaction() as tx:
                school = await _require_school(tx, school_id)
                role_config = school.role_config
                if role not in role_config.custom_roles:
                    raise BadRequestError("Custom role not found")

                await tx.save_role_config(school, role_config.without_custom_role(role))
                await tx.set_role_permissions(school_id, role, [])
                tx.invalidate_school(school_id)

        except SQLAlchemyError as e:
            logger.error(f"Deleting custom role failed for school {school_id}, role {role}: {e}")
            raise

        logger.info(f"Custom role {role} deleted from school {school_id}")
