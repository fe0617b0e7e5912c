"""Repository implementations for the school permission service."""

from .role_permission_repository import RolePermissionRepository
from .school_repository import SchoolRepository
from .staff_repository import StaffRepository

__all__ = [
    "RolePermissionRepository",
    "SchoolRepository",
    "StaffRepository",
]
