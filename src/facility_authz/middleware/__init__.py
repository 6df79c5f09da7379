"""Enforcement wrappers and HTTP integration."""

from src.facility_authz.middleware.auth_middleware import (
    JWTConfig,
    extract_session,
    session_from_request,
)
from src.facility_authz.middleware.require_permission import (
    all_permissions_required,
    any_permission_required,
    guard,
    permission_required,
    require_all_permissions,
    require_all_roles,
    require_any_permission,
    require_any_role,
    require_permission,
    require_role,
    role_required,
    with_all_permissions,
    with_all_roles,
    with_any_permission,
    with_any_role,
    with_permission,
    with_role,
)

__all__ = [
    "JWTConfig",
    "all_permissions_required",
    "any_permission_required",
    "extract_session",
    "guard",
    "permission_required",
    "require_all_permissions",
    "require_all_roles",
    "require_any_permission",
    "require_any_role",
    "require_permission",
    "require_role",
    "role_required",
    "session_from_request",
    "with_all_permissions",
    "with_all_roles",
    "with_any_permission",
    "with_any_role",
    "with_permission",
    "with_role",
]
