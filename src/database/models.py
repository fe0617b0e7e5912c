"""
SQLAlchemy ORM Models for school role/permission storage.

Tables:
- schools: tenant record, carries the typed role configuration
- staff: a user's membership and role within a school
- role_permissions: permission set per (school, role)

Architecture:
- Primary Keys: UUID strings (globally unique, portable across dialects)
- JSON columns: JSONB on PostgreSQL, JSON elsewhere
- Constraints: one staff row per (user, school), one permission row per
  (school, role)
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Index, UniqueConstraint, JSON
)
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

from rbac.roles import RoleConfig


# Cross-database compatible JSON type
# Uses JSONB on PostgreSQL, JSON on SQLite/others
class JSONB(TypeDecorator):
    """A portable JSONB type that works with both PostgreSQL and SQLite."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_JSONB())
        else:
            return dialect.type_descriptor(JSON())


class RoleConfigType(JSONB):
    """Stores a RoleConfig as JSON and validates it on the way in and out."""
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return RoleConfig().to_json()
        if isinstance(value, RoleConfig):
            return value.to_json()
        return RoleConfig.from_raw(value).to_json()

    def process_result_value(self, value, dialect):
        return RoleConfig.from_raw(value)


def _new_id() -> str:
    return str(uuid4())


Base = declarative_base()


# =============================================================================
# SCHOOL
# =============================================================================

class School(Base):
    """
    School (tenant).

    role_config lists the standard roles the school has enabled and the
    custom roles it has defined.
    """
    __tablename__ = "schools"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)

    role_config = Column(
        RoleConfigType,
        nullable=False,
        default=lambda: RoleConfig.default(),
        comment="{enabledRoles: [...], customRoles: [...]}",
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    role_permissions = relationship(
        "RolePermissionRecord",
        back_populates="school",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<School(id={self.id}, name={self.name})>"


# =============================================================================
# STAFF
# =============================================================================

class Staff(Base):
    """A user's membership in a school, with the role they act under."""
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False, index=True)
    school_id = Column(
        String(36),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String(50), nullable=False)
    status = Column(
        String(20),
        nullable=False,
        default="ACTIVE",
        comment="ACTIVE | INACTIVE | ON_LEAVE | TERMINATED",
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "school_id", name="uq_staff_user_school"),
    )

    def __repr__(self):
        return f"<Staff(user={self.user_id}, school={self.school_id}, role={self.role})>"


# =============================================================================
# ROLE PERMISSIONS
# =============================================================================

class RolePermissionRecord(Base):
    """
    Permission set granted to a role within a school.

    permissions holds permission values (e.g. "view_students"). The whole
    list is replaced on every update.
    """
    __tablename__ = "role_permissions"

    id = Column(String(36), primary_key=True, default=_new_id)
    school_id = Column(
        String(36),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    role = Column(String(50), nullable=False)
    permissions = Column(JSONB, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school = relationship("School", back_populates="role_permissions")

    __table_args__ = (
        UniqueConstraint("school_id", "role", name="role_permissions_school_role_unique"),
        Index("ix_role_permissions_school", "school_id"),
    )

    def __repr__(self):
        return f"<RolePermissionRecord(school={self.school_id}, role={self.role})>"
