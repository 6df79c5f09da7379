"""Permission and role enforcement for route handlers.

Three layers, each built on the one before:

1. Checks (``require_permission``, ``require_role``, ...): resolve the
   session once and raise ``UnauthorizedError`` / ``ForbiddenError``.
2. ``guard(handler, check)``: returns a handler with the same signature that
   runs the check, then forwards every argument unchanged to ``handler``.
   ``with_permission``/``with_role``/... are ready-made guards.
3. Decorator factories for route modules:

    @router.delete("/facilities/{facility_id}")
    @permission_required(Permission.FACILITY_DELETE)
    async def delete_facility(request: Request, facility_id: str):
        ...

When no ``session_source`` is given, the session is read from the bearer
token of the ``Request`` found among the handler's arguments.

Each gate is single-shot: one check per invocation, no retry. "No session"
is checked before any requirement. Failures of the identity source itself,
including cancellation, propagate unchanged and are never reported as
Unauthorized.

Requirement names are validated against the registry when a guard is built,
so a typo fails application startup instead of silently denying everyone.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, ParamSpec, TypeVar

from starlette.requests import Request

from src.facility_authz.auth import rbac
from src.facility_authz.auth.permission_utils import (
    PermissionUtils,
    SessionSource,
    get_permission_utils,
)
from src.facility_authz.auth.registry import DEFAULT_REGISTRY, RoleRegistry
from src.facility_authz.errors.auth_errors import (
    ForbiddenError,
    InvalidPermissionError,
    InvalidRoleError,
    UnauthorizedError,
)
from src.facility_authz.logging_utils import sanitize_roles, user_id_prefix
from src.facility_authz.middleware.auth_middleware import session_from_request

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# A check inspects the resolved facade and raises ForbiddenError on failure
Check = Callable[[PermissionUtils], None]


# =============================================================================
# Checks
# =============================================================================


def _requirements(values: str | Iterable[str]) -> list[str]:
    if isinstance(values, str):
        return [values]
    return list(values)


def _deny(utils: PermissionUtils, error: ForbiddenError, detail: list[str]) -> None:
    logger.debug(
        f"Authorization denied: user {user_id_prefix(utils.user_id)} "
        f"has roles [{sanitize_roles(utils.roles)}], "
        f"missing [{sanitize_roles(detail)}]"
    )
    raise error


def permission_check(permission: str) -> Check:
    def check(utils: PermissionUtils) -> None:
        if not utils.can(permission):
            _deny(utils, ForbiddenError(permission, "permission"), [permission])

    return check


def role_check(role: str) -> Check:
    def check(utils: PermissionUtils) -> None:
        if not utils.is_(role):
            _deny(utils, ForbiddenError(role, "role"), [role])

    return check


def any_permission_check(permissions: Iterable[str]) -> Check:
    required = _requirements(permissions)

    def check(utils: PermissionUtils) -> None:
        if not utils.can_any(required):
            _deny(utils, ForbiddenError(required, "permission", "any"), required)

    return check


def all_permissions_check(permissions: Iterable[str]) -> Check:
    required = _requirements(permissions)

    def check(utils: PermissionUtils) -> None:
        if not utils.can_all(required):
            missing = rbac.missing_permissions(utils.roles, required, utils.registry)
            _deny(utils, ForbiddenError(required, "permission", "all"), missing)

    return check


def any_role_check(roles: Iterable[str]) -> Check:
    required = _requirements(roles)

    def check(utils: PermissionUtils) -> None:
        if not utils.is_any(required):
            _deny(utils, ForbiddenError(required, "role", "any"), required)

    return check


def all_roles_check(roles: Iterable[str]) -> Check:
    required = _requirements(roles)

    def check(utils: PermissionUtils) -> None:
        if not utils.is_all(required):
            missing = rbac.missing_roles(utils.roles, required)
            _deny(utils, ForbiddenError(required, "role", "all"), missing)

    return check


async def authorize(
    check: Check,
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    """Resolve the session and run ``check`` against it.

    Returns:
        The facade for the resolved session, for handlers that need it

    Raises:
        UnauthorizedError: No session
        ForbiddenError: Session present, requirement not met
    """
    utils = await get_permission_utils(session_source, registry)
    if not utils.is_authenticated:
        logger.debug("Authorization denied: no session, returning Unauthorized")
        raise UnauthorizedError()
    check(utils)
    return utils


async def require_permission(
    permission: str,
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    """Raise unless the current session grants ``permission``."""
    return await authorize(permission_check(permission), session_source, registry)


async def require_role(
    role: str,
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    """Raise unless the current session holds ``role``."""
    return await authorize(role_check(role), session_source, registry)


async def require_any_permission(
    permissions: Iterable[str],
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    return await authorize(
        any_permission_check(permissions), session_source, registry
    )


async def require_all_permissions(
    permissions: Iterable[str],
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    return await authorize(
        all_permissions_check(permissions), session_source, registry
    )


async def require_any_role(
    roles: Iterable[str],
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    return await authorize(any_role_check(roles), session_source, registry)


async def require_all_roles(
    roles: Iterable[str],
    session_source: SessionSource,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> PermissionUtils:
    return await authorize(all_roles_check(roles), session_source, registry)


# =============================================================================
# Wrap-time validation
# =============================================================================


def validate_permissions(
    permissions: str | Iterable[str], registry: RoleRegistry = DEFAULT_REGISTRY
) -> list[str]:
    """Reject permission names no role in ``registry`` grants.

    Raises:
        InvalidPermissionError: For the first unknown name
    """
    names = _requirements(permissions)
    known = registry.permissions
    for name in names:
        if name not in known:
            raise InvalidPermissionError(name, known)
    return names


def validate_roles(
    roles: str | Iterable[str], registry: RoleRegistry = DEFAULT_REGISTRY
) -> list[str]:
    """Reject role names absent from ``registry``.

    Raises:
        InvalidRoleError: For the first unknown name
    """
    names = _requirements(roles)
    for name in names:
        if not registry.is_valid_role(name):
            raise InvalidRoleError(name, registry.roles)
    return names


# =============================================================================
# Guards
# =============================================================================


def _find_request(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Request:
    request = kwargs.get("request")
    if isinstance(request, Request):
        return request
    for arg in args:
        if isinstance(arg, Request):
            return arg
    logger.error("Authorization guard: no Request object found in handler args")
    raise RuntimeError(
        "No session_source given and no Request found in handler arguments"
    )


def guard(
    handler: Callable[P, Awaitable[R]],
    check: Check,
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    """Wrap ``handler`` so it only runs when ``check`` passes.

    Args:
        handler: Sync or async callable to protect
        check: Requirement check, e.g. ``permission_check("org:edit")``
        session_source: Where to read the session from; None reads the
            bearer token of the Request among the handler's arguments
        registry: Role table to check against

    Returns:
        Async callable with the handler's signature. It forwards all
        arguments unchanged and returns the handler's result.
    """

    @functools.wraps(handler)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if session_source is None:
            request = _find_request(args, kwargs)
            source: SessionSource = functools.partial(session_from_request, request)
        else:
            source = session_source

        await authorize(check, source, registry)

        result = handler(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return wrapper


def with_permission(
    handler: Callable[P, Awaitable[R]],
    permission: str,
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    """Guard ``handler`` behind a single permission."""
    validate_permissions(permission, registry)
    return guard(handler, permission_check(permission), session_source, registry)


def with_role(
    handler: Callable[P, Awaitable[R]],
    role: str,
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    """Guard ``handler`` behind a single role."""
    validate_roles(role, registry)
    return guard(handler, role_check(role), session_source, registry)


def with_any_permission(
    handler: Callable[P, Awaitable[R]],
    permissions: Iterable[str],
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    """Guard ``handler``; any one of ``permissions`` suffices."""
    required = validate_permissions(permissions, registry)
    return guard(handler, any_permission_check(required), session_source, registry)


def with_all_permissions(
    handler: Callable[P, Awaitable[R]],
    permissions: Iterable[str],
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    """Guard ``handler``; every one of ``permissions`` is required."""
    required = validate_permissions(permissions, registry)
    return guard(handler, all_permissions_check(required), session_source, registry)


def with_any_role(
    handler: Callable[P, Awaitable[R]],
    roles: Iterable[str],
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    required = validate_roles(roles, registry)
    return guard(handler, any_role_check(required), session_source, registry)


def with_all_roles(
    handler: Callable[P, Awaitable[R]],
    roles: Iterable[str],
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[P, Awaitable[R]]:
    required = validate_roles(roles, registry)
    return guard(handler, all_roles_check(required), session_source, registry)


# =============================================================================
# Decorator factories
# =============================================================================


def permission_required(
    permission: str,
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator factory for ``with_permission``.

    Raises:
        InvalidPermissionError: At decoration time for unknown names
    """
    validate_permissions(permission, registry)

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        return with_permission(func, permission, session_source, registry)

    return decorator


def role_required(
    role: str,
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator factory for ``with_role``.

    Raises:
        InvalidRoleError: At decoration time for unknown names
    """
    validate_roles(role, registry)

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        return with_role(func, role, session_source, registry)

    return decorator


def any_permission_required(
    permissions: Iterable[str],
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    required = validate_permissions(permissions, registry)

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        return with_any_permission(func, required, session_source, registry)

    return decorator


def all_permissions_required(
    permissions: Iterable[str],
    session_source: SessionSource | None = None,
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    required = validate_permissions(permissions, registry)

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        return with_all_permissions(func, required, session_source, registry)

    return decorator
