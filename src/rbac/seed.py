"""
Role Permission Seeding

Gives a school its out-of-the-box role setup: a default role
configuration when it has none, and the default permission set for every
enabled standard role that has no row yet. Existing rows are left alone,
so seeding is safe to repeat.

Usage:
    python scripts/seed_role_permissions.py --school-id <id>
    python scripts/seed_role_permissions.py --all
"""

import logging
from typing import List

from .permissions import get_default_permissions
from .roles import RoleConfig, is_standard_role
from .service import PermissionService

logger = logging.getLogger(__name__)


class SchoolNotFoundError(LookupError):
    """Raised when seeding a school that does not exist."""


async def bootstrap_school_roles(service: PermissionService, school_id: str) -> List[str]:
    """
    Seed default role permissions for a school.

    Args:
        service: Permission service to write through.
        school_id: School to seed.

    Returns:
        Roles that received a new permission row.

    Raises:
        SchoolNotFoundError: If the school does not exist
    """
    async with service.transaction() as tx:
        school = await tx.get_school(school_id)
        if school is None:
            raise SchoolNotFoundError(school_id)

        role_config = school.role_config
        if not role_config.all_roles:
            role_config = RoleConfig.default()
            await tx.save_role_config(school, role_config)
            logger.info(f"Applied default role configuration to school {school_id}")

        existing = set(await tx.role_permissions.existing_roles(school_id))
        seeded = []
        for role in role_config.enabled_roles:
            if role in existing or not is_standard_role(role):
                continue
            await tx.set_role_permissions(school_id, role, get_default_permissions(role))
            seeded.append(role)

    if seeded:
        logger.info(f"Seeded default permissions for {', '.join(seeded)} in school {school_id}")
    else:
        logger.info(f"School {school_id} already has permissions for every enabled role")

    return seeded


async def bootstrap_all_schools(service: PermissionService) -> dict:
    """Seed every school. Returns {school_id: seeded roles}."""
    async with service.transaction() as tx:
        school_ids = await tx.schools.list_ids()

    results = {}
    for school_id in school_ids:
        results[school_id] = await bootstrap_school_roles(service, school_id)
    return results
