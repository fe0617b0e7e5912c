"""
School Role Definitions

Four standard roles shared by every school:

    ADMIN      - school administrator, full access
    PRINCIPAL  - academic head, everything except destructive operations
    TEACHER    - classroom staff
    STUDENT    - learner self-service

Schools may additionally define custom roles (free-form names). Which
roles a school actually uses is recorded in its RoleConfig.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    """
    Standard roles.

    Naming convention: value equals the member name, as stored in
    staff records and role_permissions rows.
    """

    ADMIN = "ADMIN"
    PRINCIPAL = "PRINCIPAL"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


STANDARD_ROLES = frozenset(role.value for role in Role)

# Enabled for newly created schools
DEFAULT_ENABLED_ROLES = (Role.ADMIN.value, Role.TEACHER.value, Role.STUDENT.value)

CUSTOM_ROLE_MIN_LENGTH = 3
CUSTOM_ROLE_MAX_LENGTH = 50


def is_standard_role(role: str) -> bool:
    """Check whether a role name is one of the standard roles."""
    return role in STANDARD_ROLES


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class RoleConfig(BaseModel):
    """
    Per-school role configuration (schools.role_config).

    A role is usable by the school only when it is listed in exactly one of
    the two lists. Serialized with camelCase keys for compatibility with
    existing rows: {"enabledRoles": [...], "customRoles": [...]}.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    enabled_roles: List[str] = Field(default_factory=list, alias="enabledRoles")
    custom_roles: List[str] = Field(default_factory=list, alias="customRoles")

    @field_validator("enabled_roles", "custom_roles")
    @classmethod
    def _unique(cls, value: List[str]) -> List[str]:
        return _dedupe(value)

    @model_validator(mode="after")
    def _disjoint(self) -> "RoleConfig":
        overlap = set(self.enabled_roles) & set(self.custom_roles)
        if overlap:
            raise ValueError(
                f"Roles listed as both enabled and custom: {', '.join(sorted(overlap))}"
            )
        return self

    @classmethod
    def default(cls) -> "RoleConfig":
        return cls(enabled_roles=list(DEFAULT_ENABLED_ROLES), custom_roles=[])

    @classmethod
    def from_raw(cls, raw: Optional[dict]) -> "RoleConfig":
        """Build from a stored JSON value; empty or missing means no roles."""
        return cls.model_validate(raw or {})

    @property
    def all_roles(self) -> List[str]:
        """Enabled roles followed by custom roles."""
        return [*self.enabled_roles, *self.custom_roles]

    def has_role(self, role: str) -> bool:
        return role in self.enabled_roles or role in self.custom_roles

    def with_enabled_roles(self, roles: List[str]) -> "RoleConfig":
        return RoleConfig(enabled_roles=list(roles), custom_roles=list(self.custom_roles))

    def with_custom_role(self, role: str) -> "RoleConfig":
        return RoleConfig(
            enabled_roles=list(self.enabled_roles),
            custom_roles=[*self.custom_roles, role],
        )

    def without_custom_role(self, role: str) -> "RoleConfig":
        return RoleConfig(
            enabled_roles=list(self.enabled_roles),
            custom_roles=[r for r in self.custom_roles if r != role],
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)
