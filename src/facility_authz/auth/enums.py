"""Canonical enum definitions for facility platform RBAC.

This module defines the roles and permissions used throughout the
platform. Both enumerations are closed: the registry, the enforcement
wrappers and persisted membership records all use these exact strings.

Permission values are namespaced by resource area ("org:", "user:",
"facility:", "settings:"). They are stored inside membership records and
sent back in error payloads, so renaming one is a breaking change that
needs a data migration.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Organization roles, most privileged first.

    A user holds one or more roles per organization membership.
    """

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    MEMBER = "member"
    GUEST = "guest"


class Permission(StrEnum):
    """Atomic capability tokens guarding one action on one resource area."""

    # Organization
    ORG_VIEW = "org:view"
    ORG_EDIT = "org:edit"
    ORG_DELETE = "org:delete"
    ORG_MANAGE_MEMBERS = "org:manage-members"
    ORG_BILLING = "org:billing"

    # Users
    USER_VIEW = "user:view"
    USER_EDIT = "user:edit"
    USER_DELETE = "user:delete"

    # Facilities
    FACILITY_VIEW = "facility:view"
    FACILITY_CREATE = "facility:create"
    FACILITY_EDIT = "facility:edit"
    FACILITY_DELETE = "facility:delete"

    # Settings
    SETTINGS_VIEW = "settings:view"
    SETTINGS_EDIT = "settings:edit"


# Immutable sets for O(1) validation
VALID_ROLES: frozenset[str] = frozenset(role.value for role in Role)
VALID_PERMISSIONS: frozenset[str] = frozenset(p.value for p in Permission)
