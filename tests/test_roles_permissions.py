"""Tests for the role and permission catalogs."""

import pytest
from pydantic import ValidationError


class TestPermissionCatalog:
    """Tests for the Permission enum and helpers."""

    def test_catalog_has_26_permissions(self):
        from rbac.permissions import Permission
        assert len(Permission) == 26

    def test_values_are_lowercase_tokens(self):
        from rbac.permissions import Permission
        for permission in Permission:
            assert permission.value == permission.name.lower()

    def test_every_permission_has_a_category(self):
        from rbac.permissions import Permission, PERMISSION_CATEGORIES
        assert set(PERMISSION_CATEGORIES) == set(Permission)

    def test_is_permission(self):
        from rbac.permissions import is_permission, Permission
        assert is_permission("view_students")
        assert is_permission(Permission.MANAGE_ROLES)
        assert not is_permission("VIEW_STUDENTS")
        assert not is_permission("view_everything")
        assert not is_permission(42)

    def test_find_invalid_permissions_keeps_input_order(self):
        from rbac.permissions import find_invalid_permissions
        invalid = find_invalid_permissions(["zeta", "view_fees", "alpha"])
        assert invalid == ["zeta", "alpha"]

    def test_normalize_drops_duplicates(self):
        from rbac.permissions import normalize_permissions, Permission
        result = normalize_permissions(["view_fees", "add_fee", "view_fees"])
        assert result == [Permission.VIEW_FEES, Permission.ADD_FEE]

    def test_normalize_rejects_unknown(self):
        from rbac.permissions import normalize_permissions
        with pytest.raises(ValueError):
            normalize_permissions(["view_fees", "fly"])


class TestDefaultRolePermissions:
    """Tests for the out-of-the-box permission sets."""

    def test_admin_has_everything(self):
        from rbac.permissions import DEFAULT_ROLE_PERMISSIONS, Permission
        from rbac.roles import Role
        assert set(DEFAULT_ROLE_PERMISSIONS[Role.ADMIN]) == set(Permission)

    def test_principal_cannot_delete_or_manage_roles(self):
        from rbac.permissions import DEFAULT_ROLE_PERMISSIONS, Permission
        from rbac.roles import Role
        principal = set(DEFAULT_ROLE_PERMISSIONS[Role.PRINCIPAL])
        assert len(principal) == 21
        assert Permission.MANAGE_ROLES not in principal
        assert Permission.ENTER_MARKS not in principal
        assert not any(p.value.startswith("delete_") for p in principal)

    def test_teacher_set(self):
        from rbac.permissions import DEFAULT_ROLE_PERMISSIONS, Permission
        from rbac.roles import Role
        assert set(DEFAULT_ROLE_PERMISSIONS[Role.TEACHER]) == {
            Permission.VIEW_STUDENTS,
            Permission.VIEW_CLASSES,
            Permission.VIEW_SUBJECTS,
            Permission.VIEW_ATTENDANCE,
            Permission.MARK_ATTENDANCE,
            Permission.VIEW_EXAMS,
            Permission.ENTER_MARKS,
            Permission.VIEW_REPORTS,
        }

    def test_student_can_only_view_fees(self):
        from rbac.permissions import get_default_permissions, Permission
        assert get_default_permissions("STUDENT") == [Permission.VIEW_FEES]

    def test_unknown_role_has_no_defaults(self):
        from rbac.permissions import get_default_permissions
        assert get_default_permissions("LIBRARIAN") == []


class TestRoleConfig:
    """Tests for the per-school role configuration."""

    def test_default_enables_admin_teacher_student(self):
        from rbac.roles import RoleConfig
        config = RoleConfig.default()
        assert config.enabled_roles == ["ADMIN", "TEACHER", "STUDENT"]
        assert config.custom_roles == []

    def test_serializes_with_camel_case_keys(self):
        from rbac.roles import RoleConfig
        config = RoleConfig(enabled_roles=["ADMIN"], custom_roles=["LIBRARIAN"])
        assert config.to_json() == {"enabledRoles": ["ADMIN"], "customRoles": ["LIBRARIAN"]}

    def test_from_raw_accepts_stored_json(self):
        from rbac.roles import RoleConfig
        config = RoleConfig.from_raw({"enabledRoles": ["TEACHER"], "customRoles": ["COACH"]})
        assert config.enabled_roles == ["TEACHER"]
        assert config.custom_roles == ["COACH"]

    def test_from_raw_empty_means_no_roles(self):
        from rbac.roles import RoleConfig
        assert RoleConfig.from_raw(None).all_roles == []
        assert RoleConfig.from_raw({}).all_roles == []

    def test_duplicates_are_dropped(self):
        from rbac.roles import RoleConfig
        config = RoleConfig(enabled_roles=["ADMIN", "ADMIN", "TEACHER"])
        assert config.enabled_roles == ["ADMIN", "TEACHER"]

    def test_role_cannot_be_both_enabled_and_custom(self):
        from rbac.roles import RoleConfig
        with pytest.raises(ValidationError):
            RoleConfig(enabled_roles=["ADMIN"], custom_roles=["ADMIN"])

    def test_has_role_and_all_roles(self):
        from rbac.roles import RoleConfig
        config = RoleConfig(enabled_roles=["ADMIN"], custom_roles=["LIBRARIAN"])
        assert config.has_role("ADMIN")
        assert config.has_role("LIBRARIAN")
        assert not config.has_role("TEACHER")
        assert config.all_roles == ["ADMIN", "LIBRARIAN"]

    def test_updates_return_new_objects(self):
        from rbac.roles import RoleConfig
        config = RoleConfig.default()
        added = config.with_custom_role("LIBRARIAN")
        removed = added.without_custom_role("LIBRARIAN")
        assert config.custom_roles == []
        assert added.custom_roles == ["LIBRARIAN"]
        assert removed.custom_roles == []
        assert config.with_enabled_roles(["ADMIN"]).enabled_roles == ["ADMIN"]

    def test_is_standard_role(self):
        from rbac.roles import is_standard_role
        assert is_standard_role("PRINCIPAL")
        assert not is_standard_role("principal")
        assert not is_standard_role("LIBRARIAN")
