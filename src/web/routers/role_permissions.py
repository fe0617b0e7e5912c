"""
Role Permission Management Routes

Endpoints (all require the manage_roles permission and act on the
caller's school):
- GET    /role-permissions                      - List roles and their permissions
- PUT    /role-permissions/{role}/permissions   - Replace a role's permissions
- POST   /role-permissions/custom               - Create a custom role
- PUT    /role-permissions/enabled              - Replace the enabled standard roles
- DELETE /role-permissions/custom/{role}        - Delete a custom role
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from rbac.dependencies import RequestContext, get_permission_service, require_permission
from rbac.management import RoleManagementService
from rbac.permissions import Permission
from rbac.service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/role-permissions", tags=["Role Permissions"])

require_manage_roles = require_permission(Permission.MANAGE_ROLES)


# =============================================================================
# SCHEMAS
# =============================================================================

class RolePermissionsItem(BaseModel):
    role: str
    permissions: List[str]


class RolePermissionsResponse(BaseModel):
    success: bool = True
    data: List[RolePermissionsItem]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UpdatePermissionsRequest(BaseModel):
    """Request to replace a role's permission set."""
    permissions: List[str]


class CreateCustomRoleRequest(BaseModel):
    """Request to create a custom role."""
    role: str
    permissions: List[str]


class UpdateEnabledRolesRequest(BaseModel):
    """Request to replace the school's enabled standard roles."""
    model_config = ConfigDict(populate_by_name=True)

    enabled_roles: List[str] = Field(..., alias="enabledRoles")


def get_role_management(
    service: PermissionService = Depends(get_permission_service),
) -> RoleManagementService:
    return RoleManagementService(service)


# =============================================================================
# ROUTES
# =============================================================================

@router.get("", response_model=RolePermissionsResponse)
async def list_role_permissions(
    ctx: RequestContext = Depends(require_manage_roles),
    management: RoleManagementService = Depends(get_role_management),
):
    """List every enabled and custom role of the school with its permissions."""
    data = await management.list_role_permissions(ctx.school_id)
    return {"success": True, "data": data}


@router.put("/enabled", response_model=MessageResponse)
async def update_enabled_roles(
    request: UpdateEnabledRolesRequest,
    ctx: RequestContext = Depends(require_manage_roles),
    management: RoleManagementService = Depends(get_role_management),
):
    """
    Replace the enabled standard roles.

    Newly enabled roles start from their default permission set.
    """
    await management.update_enabled_roles(ctx.school_id, request.enabled_roles)
    return {"success": True, "message": "Enabled roles updated successfully"}


@router.put("/{role}/permissions", response_model=MessageResponse)
async def update_role_permissions(
    role: str,
    request: UpdatePermissionsRequest,
    ctx: RequestContext = Depends(require_manage_roles),
    management: RoleManagementService = Depends(get_role_management),
):
    """Replace the permission set of an enabled or custom role."""
    await management.update_role_permissions(ctx.school_id, role, request.permissions)
    return {"success": True, "message": "Role permissions updated successfully"}


@router.post("/custom", response_model=MessageResponse)
async def create_custom_role(
    request: CreateCustomRoleRequest,
    ctx: RequestContext = Depends(require_manage_roles),
    management: RoleManagementService = Depends(get_role_management),
):
    """Create a custom role with its permission set."""
    await management.create_custom_role(ctx.school_id, request.role, request.permissions)
    return {"success": True, "message": "Custom role created successfully"}


@router.delete("/custom/{role}", response_model=MessageResponse)
async def delete_custom_role(
    role: str,
    ctx: RequestContext = Depends(require_manage_roles),
    management: RoleManagementService = Depends(get_role_management),
):
    """Delete a custom role; its permission set is cleared."""
    await management.delete_custom_role(ctx.school_id, role)
    return {"success": True, "message": "Custom role deleted successfully"}
