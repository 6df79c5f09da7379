"""Session identity model and reactive session state.

The authorization core never authenticates anyone. It consumes the identity
produced by the authentication layer: at minimum a user id and the role list
of the user's active organization membership.

``SessionState`` is the client-side holder of that identity. Views subscribe
to it and are notified whenever sign-in, sign-out or an organization switch
replaces the session.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

USER_ID_KEYS = ("user_id", "userId", "id", "sub")


def _first(claims: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = claims.get(key)
        if value:
            return value
    return None


def claims_user_id(claims: Mapping[str, Any]) -> str | None:
    """User id carried by a claims mapping, or None when absent or empty."""
    user_id = _first(claims, *USER_ID_KEYS)
    return str(user_id) if user_id else None


class SessionIdentity(BaseModel):
    """Authenticated identity as seen by the authorization core."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Authenticated user id")
    roles: list[str] | None = Field(
        None, description="Roles of the active organization membership"
    )
    email: str | None = None
    organization_id: str | None = None
    organization_name: str | None = None
    organization_slug: str | None = None

    @property
    def role_list(self) -> list[str]:
        """Roles as a list; a missing roles field reads as no roles."""
        return list(self.roles or [])

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> SessionIdentity:
        """Build an identity from JWT claims or a session dict.

        Accepts snake_case, camelCase and short (``org_*``) keys, takes the
        user id from ``user_id``, ``userId``, ``id`` or ``sub`` and ignores a
        ``roles`` value that is not a list.

        Raises:
            pydantic.ValidationError: No usable user id; callers check
                ``claims_user_id`` first.
        """
        user_id = claims_user_id(claims)
        roles = claims.get("roles")
        if roles is not None and not isinstance(roles, (list, tuple)):
            roles = None
        return cls(
            user_id=user_id or "",
            roles=[str(role) for role in roles] if roles is not None else None,
            email=claims.get("email"),
            organization_id=_first(
                claims, "organization_id", "organizationId", "org_id"
            ),
            organization_name=_first(
                claims, "organization_name", "organizationName", "org_name"
            ),
            organization_slug=_first(
                claims, "organization_slug", "organizationSlug", "org_slug"
            ),
        )


SessionListener = Callable[[SessionIdentity | None], None]


class SessionState:
    """Observable holder of the current session (client side).

    Listeners are called only when the session reference actually changes,
    so re-publishing the same object is a no-op.
    """

    def __init__(self, session: SessionIdentity | None = None):
        self._session = session
        self._listeners: list[SessionListener] = []

    @property
    def session(self) -> SessionIdentity | None:
        return self._session

    def set(self, session: SessionIdentity | None) -> None:
        """Replace the current session and notify listeners on change."""
        if session is self._session:
            return
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    def clear(self) -> None:
        """Drop the session (sign-out)."""
        self.set(None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
