"""
Database Layer for the school permission service.

This module provides:
- SQLAlchemy ORM models for schools, staff and role permissions
- Async database engine with connection pooling
- Repositories over the permission tables
"""

from .models import (
    Base,
    JSONB,
    School,
    Staff,
    RolePermissionRecord,
)

from .async_engine import (
    create_engine,
    get_async_engine,
    get_session_factory,
    init_database,
    close_database,
    check_database,
)

__all__ = [
    # Models
    "Base",
    "JSONB",
    "School",
    "Staff",
    "RolePermissionRecord",
    # Engine
    "create_engine",
    "get_async_engine",
    "get_session_factory",
    "init_database",
    "close_database",
    "check_database",
]
