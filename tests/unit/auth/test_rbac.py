"""Tests for the authorization predicates."""

from src.facility_authz.auth import rbac
from src.facility_authz.auth.rbac import (
    filter_valid_roles,
    has_all_permissions,
    has_all_roles,
    has_any_permission,
    has_any_role,
    has_permission,
    has_role,
    missing_permissions,
    missing_roles,
    permissions_for_roles,
)
from src.facility_authz.auth.registry import RoleRegistry


class TestReferenceScenarios:
    """Literal behavior of the reference role table."""

    def test_admin_and_guest_permission_sets(self):
        admin = permissions_for_roles(["admin"])
        guest = permissions_for_roles(["guest"])

        assert "org:edit" in admin
        assert "facility:delete" in admin
        assert "org:edit" not in guest
        assert "facility:delete" not in guest

    def test_has_role(self):
        assert has_role(["admin", "manager"], "admin") is True
        assert has_role(["staff", "member"], "admin") is False

    def test_empty_role_requirements(self):
        assert has_any_role([], ["admin"]) is False
        assert has_all_roles(["admin"], []) is True

    def test_manager_permissions(self):
        assert has_permission(["manager"], "facility:create") is True
        assert has_permission(["manager"], "org:delete") is False

    def test_invalid_roles_are_ignored(self):
        assert has_permission(["invalid_role", "admin"], "org:edit") is True
        assert has_permission(["invalid_role1", "invalid_role2"], "org:view") is False


class TestEmptyRequirementLaws:
    """All-of an empty list passes, any-of an empty list fails."""

    def test_all_permissions_of_nothing(self):
        assert has_all_permissions([], []) is True
        assert has_all_permissions(["guest"], []) is True

    def test_any_permission_of_nothing(self):
        assert has_any_permission(["admin"], []) is False

    def test_all_roles_of_nothing(self):
        assert has_all_roles([], []) is True

    def test_any_role_of_nothing(self):
        assert has_any_role(["admin"], []) is False


class TestPermissionPredicates:
    """Permission checks over role lists."""

    def test_union_across_roles(self):
        roles = ["staff", "guest"]
        assert permissions_for_roles(roles) == permissions_for_roles(["staff"])

    def test_duplicate_roles_do_not_change_result(self):
        assert permissions_for_roles(["staff", "staff"]) == permissions_for_roles(
            ["staff"]
        )

    def test_no_roles_grants_nothing(self):
        assert permissions_for_roles([]) == frozenset()
        assert has_permission([], "org:view") is False

    def test_none_roles_read_as_empty(self):
        assert permissions_for_roles(None) == frozenset()
        assert has_permission(None, "org:view") is False
        assert has_role(None, "admin") is False

    def test_unknown_permission_is_never_granted(self):
        assert has_permission(["admin"], "org:teleport") is False

    def test_non_string_permission_is_never_granted(self):
        assert has_permission(["admin"], None) is False  # type: ignore[arg-type]
        assert has_permission(["admin"], 42) is False  # type: ignore[arg-type]

    def test_has_all_permissions(self):
        assert has_all_permissions(["manager"], ["org:view", "org:edit"]) is True
        assert has_all_permissions(["manager"], ["org:view", "org:delete"]) is False

    def test_has_any_permission(self):
        assert has_any_permission(["member"], ["org:edit", "org:view"]) is True
        assert has_any_permission(["member"], ["org:edit", "org:delete"]) is False

    def test_single_string_is_one_requirement(self):
        # Not a sequence of characters
        assert has_all_permissions(["guest"], "org:view") is True

    def test_missing_permissions(self):
        assert missing_permissions(
            ["staff"], ["facility:edit", "facility:create", "facility:delete"]
        ) == ["facility:create", "facility:delete"]
        assert missing_permissions(["admin"], ["org:delete"]) == []


class TestRolePredicates:
    """Role checks are exact string membership."""

    def test_role_match_is_exact(self):
        assert has_role(["Admin"], "admin") is False
        assert has_role(["administrator"], "admin") is False

    def test_unknown_role_can_still_be_held(self):
        # Roles outside the registry match literally but grant nothing
        assert has_role(["auditor"], "auditor") is True
        assert permissions_for_roles(["auditor"]) == frozenset()

    def test_has_any_role(self):
        assert has_any_role(["staff"], ["admin", "staff"]) is True
        assert has_any_role(["staff"], ["admin", "manager"]) is False

    def test_has_all_roles(self):
        assert has_all_roles(["staff", "member"], ["staff", "member"]) is True
        assert has_all_roles(["staff"], ["staff", "member"]) is False

    def test_missing_roles(self):
        assert missing_roles(["staff"], ["staff", "admin"]) == ["admin"]


class TestMalformedInput:
    """Predicates are total: garbage in, False out."""

    def test_role_list_with_non_strings(self):
        roles = ["admin", None, 3, ["manager"]]
        assert has_permission(roles, "org:delete") is True  # type: ignore[arg-type]
        assert filter_valid_roles(roles) == ["admin"]  # type: ignore[arg-type]

    def test_non_iterable_role_list(self):
        assert has_permission(7, "org:view") is False  # type: ignore[arg-type]
        assert has_role(7, "admin") is False  # type: ignore[arg-type]

    def test_bare_string_role_list(self):
        assert has_role("admin", "admin") is True
        assert has_role("admin", "a") is False

    def test_filter_valid_roles_dedupes_in_order(self):
        assert filter_valid_roles(["guest", "x", "admin", "guest"]) == [
            "guest",
            "admin",
        ]


class TestInjectedRegistry:
    """Predicates resolve against the registry they are given."""

    def test_custom_registry(self):
        registry = RoleRegistry.from_mapping({"owner": ["org:delete"]})

        assert has_permission(["owner"], "org:delete", registry) is True
        assert has_permission(["admin"], "org:delete", registry) is False
        assert rbac.has_permission(["owner"], "org:delete") is False
