"""
School Role-Based Access Control (RBAC)

Permissions are granted per (school, role). Every school uses a subset of
the four standard roles plus any custom roles it defines.

Standard roles:
    - ADMIN: Full access
    - PRINCIPAL: Everything except deletes, marks entry and role management
    - TEACHER: Classroom work (attendance, marks, read access)
    - STUDENT: Own fees

Only the role and permission catalogs are exported here; the database
models depend on them. Import the service and the FastAPI gates from their
modules:

    from rbac.service import PermissionService
    from rbac.dependencies import RequestContext, require_permission
"""

from .roles import Role, RoleConfig, STANDARD_ROLES, is_standard_role
from .permissions import (
    Permission,
    Category,
    PERMISSION_CATEGORIES,
    DEFAULT_ROLE_PERMISSIONS,
    get_default_permissions,
)

__all__ = [
    # Roles
    "Role",
    "RoleConfig",
    "STANDARD_ROLES",
    "is_standard_role",

    # Permissions
    "Permission",
    "Category",
    "PERMISSION_CATEGORIES",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_default_permissions",
]
