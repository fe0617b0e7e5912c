"""Tests for default role permission seeding."""

import pytest

from rbac.permissions import DEFAULT_ROLE_PERMISSIONS, Permission
from rbac.roles import Role, RoleConfig
from rbac.seed import SchoolNotFoundError, bootstrap_all_schools, bootstrap_school_roles


class TestBootstrapSchoolRoles:

    @pytest.mark.asyncio
    async def test_seeds_every_enabled_standard_role(self, service, school_factory):
        school_id = await school_factory()

        seeded = await bootstrap_school_roles(service, school_id)

        assert seeded == ["ADMIN", "TEACHER", "STUDENT"]
        for role in (Role.ADMIN, Role.TEACHER, Role.STUDENT):
            assert await service.get_permissions(school_id, role.value) == list(
                DEFAULT_ROLE_PERMISSIONS[role]
            )

    @pytest.mark.asyncio
    async def test_school_without_roles_gets_default_config(self, service, school_factory):
        school_id = await school_factory(role_config=RoleConfig(enabled_roles=[]))

        seeded = await bootstrap_school_roles(service, school_id)

        assert seeded == ["ADMIN", "TEACHER", "STUDENT"]
        assert (await service.get_role_config(school_id)).enabled_roles == [
            "ADMIN", "TEACHER", "STUDENT"
        ]

    @pytest.mark.asyncio
    async def test_existing_rows_are_not_overwritten(self, service, school_factory):
        school_id = await school_factory()
        await service.update_permissions(school_id, "TEACHER", [Permission.VIEW_FEES])

        seeded = await bootstrap_school_roles(service, school_id)

        assert seeded == ["ADMIN", "STUDENT"]
        assert await service.get_permissions(school_id, "TEACHER") == [Permission.VIEW_FEES]

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, service, school_factory):
        school_id = await school_factory()
        await bootstrap_school_roles(service, school_id)

        assert await bootstrap_school_roles(service, school_id) == []

    @pytest.mark.asyncio
    async def test_custom_roles_are_not_seeded(self, service, school_factory):
        config = RoleConfig(enabled_roles=["ADMIN"], custom_roles=["LIBRARIAN"])
        school_id = await school_factory(role_config=config)

        assert await bootstrap_school_roles(service, school_id) == ["ADMIN"]

    @pytest.mark.asyncio
    async def test_missing_school(self, service):
        with pytest.raises(SchoolNotFoundError):
            await bootstrap_school_roles(service, "no-such-school")


class TestBootstrapAllSchools:

    @pytest.mark.asyncio
    async def test_seeds_each_school(self, service, school_factory):
        first = await school_factory(name="North")
        second = await school_factory(name="South")
        await bootstrap_school_roles(service, second)

        results = await bootstrap_all_schools(service)

        assert results == {first: ["ADMIN", "TEACHER", "STUDENT"], second: []}
