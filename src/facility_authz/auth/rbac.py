"""Authorization predicates over a caller's role list.

Every function here is pure and total: it accepts any role list (including
``None``, duplicates and unknown strings) and never raises. Unknown roles
contribute no permissions.

Empty requirement lists are asymmetric on purpose:
- ``has_all_*(roles, [])`` is True (nothing to violate)
- ``has_any_*(roles, [])`` is False (nothing that could match)

Examples:
    >>> has_permission(["manager"], "facility:create")
    True
    >>> has_permission(["manager"], "org:delete")
    False
    >>> has_any_role([], ["admin"])
    False
    >>> has_all_roles(["admin"], [])
    True
"""

from __future__ import annotations

from collections.abc import Iterable

from src.facility_authz.auth.registry import DEFAULT_REGISTRY, RoleRegistry

RoleList = Iterable[str] | None


def _as_tuple(values: object) -> tuple:
    """Normalize caller input into a tuple without raising.

    A bare string counts as a single entry rather than a sequence of
    characters.
    """
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    try:
        return tuple(values)  # type: ignore[arg-type]
    except TypeError:
        return ()


def filter_valid_roles(
    roles: RoleList, registry: RoleRegistry = DEFAULT_REGISTRY
) -> list[str]:
    """Return the roles present in the registry, de-duplicated, in order."""
    valid: list[str] = []
    for role in _as_tuple(roles):
        if registry.is_valid_role(role) and role not in valid:
            valid.append(role)
    return valid


def has_role(roles: RoleList, role: str) -> bool:
    """Check if ``role`` is one of the caller's roles (exact match)."""
    return role in _as_tuple(roles)


def has_any_role(roles: RoleList, required: Iterable[str]) -> bool:
    """Check if the caller holds at least one of ``required``."""
    held = _as_tuple(roles)
    return any(role in held for role in _as_tuple(required))


def has_all_roles(roles: RoleList, required: Iterable[str]) -> bool:
    """Check if the caller holds every role in ``required``."""
    held = _as_tuple(roles)
    return all(role in held for role in _as_tuple(required))


def missing_roles(roles: RoleList, required: Iterable[str]) -> list[str]:
    """Return the entries of ``required`` the caller does not hold."""
    held = _as_tuple(roles)
    return [role for role in _as_tuple(required) if role not in held]


def permissions_for_roles(
    roles: RoleList, registry: RoleRegistry = DEFAULT_REGISTRY
) -> frozenset[str]:
    """Union of the permissions granted by each role.

    Args:
        roles: Caller's role list; unknown entries contribute nothing
        registry: Role table to resolve against

    Returns:
        De-duplicated set of granted permissions (empty for no roles)
    """
    granted: set[str] = set()
    for role in _as_tuple(roles):
        granted |= registry.permissions_of(role)
    return frozenset(granted)


def has_permission(
    roles: RoleList, permission: str, registry: RoleRegistry = DEFAULT_REGISTRY
) -> bool:
    """Check if any of the caller's roles grants ``permission``."""
    if not isinstance(permission, str):
        return False
    granted = permissions_for_roles(filter_valid_roles(roles, registry), registry)
    return permission in granted


def has_all_permissions(
    roles: RoleList,
    required: Iterable[str],
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> bool:
    """Check if every permission in ``required`` is granted."""
    return all(
        has_permission(roles, permission, registry)
        for permission in _as_tuple(required)
    )


def has_any_permission(
    roles: RoleList,
    required: Iterable[str],
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> bool:
    """Check if at least one permission in ``required`` is granted."""
    return any(
        has_permission(roles, permission, registry)
        for permission in _as_tuple(required)
    )


def missing_permissions(
    roles: RoleList,
    required: Iterable[str],
    registry: RoleRegistry = DEFAULT_REGISTRY,
) -> list[str]:
    """Return the entries of ``required`` not granted to the caller."""
    return [
        permission
        for permission in _as_tuple(required)
        if not has_permission(roles, permission, registry)
    ]
