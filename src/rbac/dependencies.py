"""
FastAPI Dependencies

Authorization gates for route protection. Each gate authenticates the
caller, loads their staff record for the school named in the token, and
checks the role's permission set through the PermissionService.

Usage:
    from rbac import Permission
    from rbac.dependencies import RequestContext, require_permission

    @router.get("/students")
    async def list_students(
        ctx: RequestContext = Depends(require_permission(Permission.VIEW_STUDENTS)),
    ):
        return await load_students(ctx.school_id)

    @router.post("/fees/{fee_id}/collect")
    async def collect_fee(
        ctx: RequestContext = Depends(
            require_all_permissions([Permission.VIEW_FEES, Permission.COLLECT_FEE])
        ),
    ):
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Union

import jwt as pyjwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import Settings, get_settings
from database.models import Staff
from security.api_errors import ErrorCode, ForbiddenError, UnauthorizedError

from .jwt import TokenIdentity, identity_from_token
from .permissions import Permission
from .roles import Role
from .service import PermissionService

logger = logging.getLogger(__name__)

PermissionLike = Union[Permission, str]


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

@dataclass(frozen=True)
class RequestContext:
    """
    Authorization context of the current request.

    Returned by every gate and passed to the handler; holds the caller's
    identity, staff record and resolved permission set.
    """

    user_id: str
    school_id: str
    staff: Staff
    role: str
    permissions: List[Permission] = field(default_factory=list)

    def has_permission(self, permission: PermissionLike) -> bool:
        return permission in self.permissions

    def has_any_permission(self, permissions: Iterable[PermissionLike]) -> bool:
        return any(self.has_permission(p) for p in permissions)

    def has_all_permissions(self, permissions: Iterable[PermissionLike]) -> bool:
        return all(self.has_permission(p) for p in permissions)


# =============================================================================
# HTTP BEARER SECURITY
# =============================================================================

security = HTTPBearer(auto_error=False)


# =============================================================================
# CORE DEPENDENCIES
# =============================================================================

def get_permission_service(request: Request) -> PermissionService:
    """The PermissionService created at application startup."""
    return request.app.state.permission_service


async def get_token_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> TokenIdentity:
    """
    Verify the bearer token and extract (user_id, school_id).

    Raises:
        UnauthorizedError: No token, or the token is invalid or expired
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    try:
        return identity_from_token(credentials.credentials, settings.auth)
    except pyjwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired", code=ErrorCode.AUTH_INVALID_TOKEN)
    except pyjwt.InvalidTokenError as e:
        logger.debug(f"Invalid JWT token: {e}")
        raise UnauthorizedError("Invalid token", code=ErrorCode.AUTH_INVALID_TOKEN)


async def get_request_context(
    identity: TokenIdentity = Depends(get_token_identity),
    service: PermissionService = Depends(get_permission_service),
) -> RequestContext:
    """
    Load the caller's staff record and permission set.

    Raises:
        UnauthorizedError: The user has no staff record in the school
    """
    staff = await service.get_staff_member(identity.user_id, identity.school_id)
    if staff is None:
        logger.info(
            f"No staff record for user {identity.user_id} in school {identity.school_id}"
        )
        raise UnauthorizedError("Staff record not found")

    permissions = await service.get_permissions(identity.school_id, staff.role)

    return RequestContext(
        user_id=identity.user_id,
        school_id=identity.school_id,
        staff=staff,
        role=staff.role,
        permissions=permissions,
    )


def _deny(ctx: RequestContext, required: str) -> None:
    logger.info(
        f"Permission denied: user {ctx.user_id} ({ctx.role}) in school {ctx.school_id} "
        f"requires {required}"
    )
    raise ForbiddenError("Insufficient permissions")


def _values(permissions: Iterable[PermissionLike]) -> List[str]:
    return [p.value if isinstance(p, Permission) else str(p) for p in permissions]


# =============================================================================
# GATES
# =============================================================================

def require_permission(permission: PermissionLike) -> Callable:
    """
    Require a single permission.

    Usage:
        ctx: RequestContext = Depends(require_permission(Permission.MANAGE_ROLES))
    """
    async def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if not ctx.has_permission(permission):
            _deny(ctx, _values([permission])[0])
        return ctx

    return dependency


def require_any_permission(permissions: Iterable[PermissionLike]) -> Callable:
    """Require at least one of the given permissions."""
    required = list(permissions)

    async def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if not ctx.has_any_permission(required):
            _deny(ctx, "any of " + ", ".join(_values(required)))
        return ctx

    return dependency


def require_all_permissions(permissions: Iterable[PermissionLike]) -> Callable:
    """Require every one of the given permissions."""
    required = list(permissions)

    async def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if not ctx.has_all_permissions(required):
            _deny(ctx, "all of " + ", ".join(_values(required)))
        return ctx

    return dependency


def require_role(roles: Union[Role, str, Iterable[Union[Role, str]]]) -> Callable:
    """
    Require the caller's role to be one of the given roles.

    Usage:
        ctx: RequestContext = Depends(require_role([Role.ADMIN, Role.PRINCIPAL]))
    """
    if isinstance(roles, (Role, str)):
        roles = [roles]
    allowed = {r.value if isinstance(r, Role) else str(r) for r in roles}

    async def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.role not in allowed:
            _deny(ctx, "role " + " or ".join(sorted(allowed)))
        return ctx

    return dependency
