"""Session permission facade.

Binds the predicate library to one resolved session so that callers can ask
``utils.can("facility:edit")`` instead of threading role lists around.

Two adapters share the same facade:

- Request-scoped: ``await get_permission_utils(source)`` resolves the
  session from an explicit source on every call. Nothing is cached between
  calls, and failures (including cancellation) from the source propagate
  unchanged.
- Reactive: ``ReactivePermissions(state)`` follows a ``SessionState`` and
  rebuilds its facade whenever the session reference changes.

Usage:
    utils = await get_permission_utils(lambda: current_session)
    if utils.can(Permission.FACILITY_CREATE):
        ...
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from src.facility_authz.auth import rbac
from src.facility_authz.auth.registry import DEFAULT_REGISTRY, RoleRegistry
from src.facility_authz.auth.session import (
    SessionIdentity,
    SessionState,
    claims_user_id,
)
from src.facility_authz.errors.auth_errors import IdentitySourceError

SessionValue = Union[SessionIdentity, Mapping[str, Any], None]
SessionSource = Union[
    SessionValue,
    Callable[[], SessionValue],
    Callable[[], Awaitable[SessionValue]],
]


def coerce_session(value: Any) -> SessionIdentity | None:
    """Turn whatever the identity source returned into a ``SessionIdentity``.

    Mappings may be flat claims or carry the identity under a ``user`` key.
    A mapping without a user id is an anonymous session.

    Raises:
        IdentitySourceError: If the source returned an unsupported type.
    """
    if value is None or isinstance(value, SessionIdentity):
        return value
    if isinstance(value, Mapping):
        claims = value.get("user") if isinstance(value.get("user"), Mapping) else value
        if claims_user_id(claims) is None:
            return None
        return SessionIdentity.from_claims(claims)
    raise IdentitySourceError(
        f"Identity source returned unsupported type {type(value).__name__}"
    )


async def resolve_session(source: SessionSource) -> SessionIdentity | None:
    """Resolve a session source, awaiting it if needed."""
    value = source() if callable(source) else source
    if inspect.isawaitable(value):
        value = await value
    return coerce_session(value)


@dataclass(frozen=True)
class PermissionUtils:
    """Permission and role checks bound to one session.

    Attributes:
        session: The resolved identity, or None when anonymous
        roles: The session's roles, immutable (empty when anonymous or
            roles missing)
        registry: Role table the checks resolve against
    """

    session: SessionIdentity | None = None
    roles: tuple[str, ...] = ()
    registry: RoleRegistry = DEFAULT_REGISTRY

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", tuple(self.roles))

    @classmethod
    def from_session(
        cls, session: SessionValue, registry: RoleRegistry = DEFAULT_REGISTRY
    ) -> PermissionUtils:
        identity = coerce_session(session)
        roles = tuple(identity.role_list) if identity is not None else ()
        return cls(session=identity, roles=roles, registry=registry)

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def user_id(self) -> str | None:
        return self.session.user_id if self.session is not None else None

    def can(self, permission: str) -> bool:
        """Check if the user has a specific permission."""
        return rbac.has_permission(self.roles, permission, self.registry)

    def can_any(self, permissions: Iterable[str]) -> bool:
        """Check if the user has any of the specified permissions."""
        return rbac.has_any_permission(self.roles, permissions, self.registry)

    def can_all(self, permissions: Iterable[str]) -> bool:
        """Check if the user has all of the specified permissions."""
        return rbac.has_all_permissions(self.roles, permissions, self.registry)

    def is_(self, role: str) -> bool:
        """Check if the user has a specific role."""
        return rbac.has_role(self.roles, role)

    def is_any(self, roles: Iterable[str]) -> bool:
        return rbac.has_any_role(self.roles, roles)

    def is_all(self, roles: Iterable[str]) -> bool:
        return rbac.has_all_roles(self.roles, roles)

    def permissions(self) -> frozenset[str]:
        """Every permission the session's valid roles grant."""
        return rbac.permissions_for_roles(
            rbac.filter_valid_roles(self.roles, self.registry), self.registry
        )


async def get_permission_utils(
    source: SessionSource, registry: RoleRegistry = DEFAULT_REGISTRY
) -> PermissionUtils:
    """Resolve the current session and return a fresh facade for it.

    Args:
        source: Session value, or a sync/async callable producing one
        registry: Role table to check against

    Returns:
        PermissionUtils bound to the session resolved by this call

    Raises:
        Whatever the identity source raises; a failing lookup is never
        reported as an anonymous session.
    """
    session = await resolve_session(source)
    return PermissionUtils.from_session(session, registry)


class ReactivePermissions:
    """Facade that follows a ``SessionState``.

    ``current`` always reflects the latest session. Listeners registered with
    ``on_change`` receive the new facade after each session change so views
    can re-render.
    """

    def __init__(
        self, state: SessionState, registry: RoleRegistry = DEFAULT_REGISTRY
    ):
        self._registry = registry
        self._listeners: list[Callable[[PermissionUtils], None]] = []
        self.current = PermissionUtils.from_session(state.session, registry)
        self._unsubscribe: Callable[[], None] | None = state.subscribe(
            self._on_session
        )

    def _on_session(self, session: SessionIdentity | None) -> None:
        self.current = PermissionUtils.from_session(session, self._registry)
        for listener in list(self._listeners):
            listener(self.current)

    def on_change(
        self, listener: Callable[[PermissionUtils], None]
    ) -> Callable[[], None]:
        """Register a re-render callback; returns its unsubscribe callable."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def close(self) -> None:
        """Stop following the session state."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    @property
    def roles(self) -> tuple[str, ...]:
        return self.current.roles

    @property
    def session(self) -> SessionIdentity | None:
        return self.current.session

    def can(self, permission: str) -> bool:
        return self.current.can(permission)

    def can_any(self, permissions: Iterable[str]) -> bool:
        return self.current.can_any(permissions)

    def can_all(self, permissions: Iterable[str]) -> bool:
        return self.current.can_all(permissions)

    def is_(self, role: str) -> bool:
        return self.current.is_(role)

    def is_any(self, roles: Iterable[str]) -> bool:
        return self.current.is_any(roles)

    def is_all(self, roles: Iterable[str]) -> bool:
        return self.current.is_all(roles)
