"""Role registry, predicates and the session permission facade."""

from src.facility_authz.auth.enums import (
    VALID_PERMISSIONS,
    VALID_ROLES,
    Permission,
    Role,
)
from src.facility_authz.auth.permission_utils import (
    PermissionUtils,
    ReactivePermissions,
    get_permission_utils,
    resolve_session,
)
from src.facility_authz.auth.rbac import (
    filter_valid_roles,
    has_all_permissions,
    has_all_roles,
    has_any_permission,
    has_any_role,
    has_permission,
    has_role,
    permissions_for_roles,
)
from src.facility_authz.auth.registry import (
    DEFAULT_REGISTRY,
    ROLE_PERMISSIONS,
    RoleRegistry,
    get_registry,
    permissions_of,
)
from src.facility_authz.auth.session import SessionIdentity, SessionState

__all__ = [
    "DEFAULT_REGISTRY",
    "Permission",
    "PermissionUtils",
    "ROLE_PERMISSIONS",
    "ReactivePermissions",
    "Role",
    "RoleRegistry",
    "SessionIdentity",
    "SessionState",
    "VALID_PERMISSIONS",
    "VALID_ROLES",
    "filter_valid_roles",
    "get_permission_utils",
    "get_registry",
    "has_all_permissions",
    "has_all_roles",
    "has_any_permission",
    "has_any_role",
    "has_permission",
    "has_role",
    "permissions_for_roles",
    "permissions_of",
    "resolve_session",
]
