"""Role → permission registry.

The registry is a fixed mapping from each role to the set of permissions it
grants. It is built once at import time from ``ROLE_PERMISSIONS`` and never
mutated afterwards, so any number of concurrent requests can read it without
locking.

Consumers receive the registry as an explicit ``registry=`` argument
(defaulting to ``DEFAULT_REGISTRY``) so tests and alternate deployments can
supply their own role tables.

Convention (not enforced): a more privileged role grants at least as many
permissions as a lesser one. In the reference table the admin set strictly
dominates every other role, and every role can view the organization.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from src.facility_authz.auth.enums import Permission, Role

ROLE_PERMISSIONS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        Role.ADMIN: frozenset(
            {
                Permission.ORG_VIEW,
                Permission.ORG_EDIT,
                Permission.ORG_DELETE,
                Permission.ORG_MANAGE_MEMBERS,
                Permission.ORG_BILLING,
                Permission.USER_VIEW,
                Permission.USER_EDIT,
                Permission.USER_DELETE,
                Permission.FACILITY_VIEW,
                Permission.FACILITY_CREATE,
                Permission.FACILITY_EDIT,
                Permission.FACILITY_DELETE,
                Permission.SETTINGS_VIEW,
                Permission.SETTINGS_EDIT,
            }
        ),
        # Manager: no org delete/billing, no user or facility delete
        Role.MANAGER: frozenset(
            {
                Permission.ORG_VIEW,
                Permission.ORG_EDIT,
                Permission.ORG_MANAGE_MEMBERS,
                Permission.USER_VIEW,
                Permission.USER_EDIT,
                Permission.FACILITY_VIEW,
                Permission.FACILITY_CREATE,
                Permission.FACILITY_EDIT,
                Permission.SETTINGS_VIEW,
                Permission.SETTINGS_EDIT,
            }
        ),
        Role.STAFF: frozenset(
            {
                Permission.ORG_VIEW,
                Permission.USER_VIEW,
                Permission.FACILITY_VIEW,
                Permission.FACILITY_EDIT,
                Permission.SETTINGS_VIEW,
            }
        ),
        Role.MEMBER: frozenset(
            {
                Permission.ORG_VIEW,
                Permission.USER_VIEW,
                Permission.FACILITY_VIEW,
                Permission.SETTINGS_VIEW,
            }
        ),
        Role.GUEST: frozenset(
            {
                Permission.ORG_VIEW,
                Permission.FACILITY_VIEW,
            }
        ),
    }
)

_EMPTY: frozenset[str] = frozenset()


@dataclass(frozen=True)
class RoleRegistry:
    """Read-only role → permission table.

    Attributes:
        table: Mapping of role string to the frozenset of permission strings
            it grants. Wrapped in a ``MappingProxyType`` on construction.
    """

    table: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {
            str(role): frozenset(str(p) for p in permissions)
            for role, permissions in self.table.items()
        }
        object.__setattr__(self, "table", MappingProxyType(frozen))

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Iterable[str]]
    ) -> RoleRegistry:
        """Build a registry from any role → iterable-of-permissions mapping."""
        return cls(table={role: frozenset(perms) for role, perms in mapping.items()})

    @property
    def roles(self) -> frozenset[str]:
        """All roles known to this registry."""
        return frozenset(self.table)

    @property
    def permissions(self) -> frozenset[str]:
        """Every permission granted by at least one role."""
        granted: set[str] = set()
        for permissions in self.table.values():
            granted |= permissions
        return frozenset(granted)

    def permissions_of(self, role: str) -> frozenset[str]:
        """Return the permissions granted by ``role``.

        Unknown roles (and non-string input) yield an empty set rather than
        raising.
        """
        try:
            return self.table.get(role, _EMPTY)
        except TypeError:
            # Unhashable input, e.g. a list smuggled into a role list
            return _EMPTY

    def is_valid_role(self, role: object) -> bool:
        return isinstance(role, str) and role in self.table


DEFAULT_REGISTRY = RoleRegistry(table=ROLE_PERMISSIONS)


def get_registry() -> RoleRegistry:
    """Return the process-wide default registry."""
    return DEFAULT_REGISTRY


def permissions_of(
    role: str, registry: RoleRegistry = DEFAULT_REGISTRY
) -> frozenset[str]:
    """Shortcut for ``registry.permissions_of(role)``."""
    return registry.permissions_of(role)
