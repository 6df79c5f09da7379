"""Error types for the authorization core."""

from src.facility_authz.errors.auth_errors import (
    AUTH_ERROR_STATUS,
    AuthErrorKind,
    AuthorizationError,
    ForbiddenError,
    IdentitySourceError,
    InvalidPermissionError,
    InvalidRoleError,
    UnauthorizedError,
    auth_error_response,
)

__all__ = [
    "AUTH_ERROR_STATUS",
    "AuthErrorKind",
    "AuthorizationError",
    "ForbiddenError",
    "IdentitySourceError",
    "InvalidPermissionError",
    "InvalidRoleError",
    "UnauthorizedError",
    "auth_error_response",
]
