"""FastAPI integration for the authorization core.

Maps structured authorization failures onto HTTP responses and offers the
same checks as FastAPI dependencies:

    app = FastAPI()
    register_authz_handlers(app)

    @app.post("/facilities", dependencies=[Depends(requires_permission("facility:create"))])
    async def create_facility(...):
        ...

Status mapping:
    UnauthorizedError   -> 401 {"error": "Unauthorized: Authentication required"}
    ForbiddenError      -> 403 {"error": "Forbidden: Missing required permission: ..."}
    IdentitySourceError -> 503 {"error": "Identity service unavailable"}
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import ParamSpec, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.facility_authz.auth.permission_utils import (
    PermissionUtils,
    SessionSource,
    get_permission_utils,
)
from src.facility_authz.auth.registry import DEFAULT_REGISTRY, RoleRegistry
from src.facility_authz.errors.auth_errors import (
    AuthorizationError,
    IdentitySourceError,
    auth_error_response,
)
from src.facility_authz.logging_utils import sanitize_for_log
from src.facility_authz.middleware.auth_middleware import session_from_request
from src.facility_authz.middleware.require_permission import (
    Check,
    all_permissions_check,
    any_permission_check,
    authorize,
    guard,
    permission_check,
    role_check,
    validate_permissions,
    validate_roles,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

IDENTITY_UNAVAILABLE_MESSAGE = "Identity service unavailable"


def register_authz_handlers(app: FastAPI) -> None:
    """Install exception handlers translating authorization failures."""

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(
        request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        logger.warning(
            f"HTTP {exc.status_code} at {sanitize_for_log(request.url.path)}: "
            f"{sanitize_for_log(exc.message)}"
        )
        return JSONResponse(
            status_code=exc.status_code, content=auth_error_response(exc)
        )

    @app.exception_handler(IdentitySourceError)
    async def handle_identity_source_error(
        request: Request, exc: IdentitySourceError
    ) -> JSONResponse:
        logger.error(
            f"Identity source failure at {sanitize_for_log(request.url.path)}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=503, content={"error": IDENTITY_UNAVAILABLE_MESSAGE}
        )


def _no_requirement(utils: PermissionUtils) -> None:
    return None


async def get_permission_utils_dependency(request: Request) -> PermissionUtils:
    """Dependency returning the facade for the request's bearer token.

    Anonymous requests get a facade with no roles; nothing is raised.
    """
    return await get_permission_utils(functools.partial(session_from_request, request))


def _dependency(check: Check, registry: RoleRegistry):
    async def dependency(request: Request) -> PermissionUtils:
        return await authorize(
            check, functools.partial(session_from_request, request), registry
        )

    return dependency


def requires_auth(registry: RoleRegistry = DEFAULT_REGISTRY):
    """Dependency factory: any authenticated session."""
    return _dependency(_no_requirement, registry)


def requires_permission(permission: str, registry: RoleRegistry = DEFAULT_REGISTRY):
    """Dependency factory: the session must grant ``permission``.

    Usage:
        @router.post("/", dependencies=[Depends(requires_permission("facility:create"))])
    """
    validate_permissions(permission, registry)
    return _dependency(permission_check(permission), registry)


def requires_role(role: str, registry: RoleRegistry = DEFAULT_REGISTRY):
    validate_roles(role, registry)
    return _dependency(role_check(role), registry)


def requires_any_permission(
    permissions: Iterable[str], registry: RoleRegistry = DEFAULT_REGISTRY
):
    required = validate_permissions(permissions, registry)
    return _dependency(any_permission_check(required), registry)


def requires_all_permissions(
    permissions: Iterable[str], registry: RoleRegistry = DEFAULT_REGISTRY
):
    required = validate_permissions(permissions, registry)
    return _dependency(all_permissions_check(required), registry)


def with_auth(
    handler: Callable[P, Awaitable[R]],
    session_source: SessionSource | None = None,
) -> Callable[P, Awaitable[R]]:
    """Guard ``handler`` behind authentication only."""
    return guard(handler, _no_requirement, session_source)
