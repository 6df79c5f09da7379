"""Authorization error types.

The enforcement wrappers are the only place that turns "no session" into
``UnauthorizedError`` and "session without the requirement" into
``ForbiddenError``. Both carry enough structure (kind, and for Forbidden the
missing requirement) for the HTTP layer to map them mechanically to 401/403.

Identity-source failures are a separate category (``IdentitySourceError``)
and must never be reported as 401/403.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any, Literal

RequirementKind = Literal["permission", "role"]
RequirementMode = Literal["one", "any", "all"]


class AuthErrorKind(str, Enum):
    """Structured failure kinds returned to the HTTP layer."""

    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"


AUTH_ERROR_STATUS: dict[AuthErrorKind, int] = {
    AuthErrorKind.UNAUTHORIZED: 401,
    AuthErrorKind.FORBIDDEN: 403,
}

UNAUTHORIZED_MESSAGE = "Unauthorized: Authentication required"


class AuthorizationError(Exception):
    """Base class for authorization gate failures."""

    kind: AuthErrorKind

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return AUTH_ERROR_STATUS[self.kind]

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value}


class UnauthorizedError(AuthorizationError):
    """No session or identity is present at all."""

    kind = AuthErrorKind.UNAUTHORIZED

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE) -> None:
        super().__init__(message)


class ForbiddenError(AuthorizationError):
    """Session present but the permission/role requirement is not met.

    Attributes:
        missing: The single requirement, or the full requirement list for
            any/all checks
        requirement: "permission" or "role"
        mode: "one" for a single requirement, "any" or "all" for lists
    """

    kind = AuthErrorKind.FORBIDDEN

    def __init__(
        self,
        missing: str | Iterable[str],
        requirement: RequirementKind = "permission",
        mode: RequirementMode = "one",
    ) -> None:
        if isinstance(missing, str):
            self.missing: str | list[str] = str(missing)
        else:
            self.missing = [str(item) for item in missing]
        self.requirement = requirement
        self.mode = mode
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        if isinstance(self.missing, str):
            return f"Forbidden: Missing required {self.requirement}: {self.missing}"
        names = ", ".join(self.missing)
        plural = f"{self.requirement}s"
        if self.mode == "any":
            return f"Forbidden: Missing at least one of the required {plural}: {names}"
        return f"Forbidden: Missing one or more required {plural}: {names}"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "missing": self.missing}


class IdentitySourceError(RuntimeError):
    """The identity/session source failed or is misconfigured.

    Maps to a 5xx at the HTTP layer, never to 401/403.
    """


class InvalidRoleError(ValueError):
    """Raised at wrap time for a role name outside the registry.

    Indicates a programming mistake (typo in role name) and should fail
    application startup.
    """

    def __init__(self, role: str, valid_roles: Iterable[str]) -> None:
        self.role = role
        self.valid_roles = frozenset(valid_roles)
        super().__init__(
            f"Invalid role '{role}'. Valid roles: {sorted(self.valid_roles)}"
        )


class InvalidPermissionError(ValueError):
    """Raised at wrap time for a permission no role in the registry grants."""

    def __init__(self, permission: str, valid_permissions: Iterable[str]) -> None:
        self.permission = permission
        self.valid_permissions = frozenset(valid_permissions)
        super().__init__(
            f"Invalid permission '{permission}'. "
            f"Valid permissions: {sorted(self.valid_permissions)}"
        )


def auth_error_response(error: AuthorizationError) -> dict[str, str]:
    """Create the JSON body for an authorization failure.

    Example:
        return JSONResponse(
            status_code=error.status_code,
            content=auth_error_response(error),
        )
    """
    return {"error": error.message}
