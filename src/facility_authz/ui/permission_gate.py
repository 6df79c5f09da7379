"""Conditional rendering by permission or role.

A view wraps restricted content in a gate and gets either the content or a
fallback. Denial is not an error here: the gate never raises.

    gate = PermissionGate(permission="facility:create")
    gate.render(utils, lambda: create_button(), fallback=None)

Requirements combine with AND across kinds, AND within ``all_*`` and OR
within ``any_*``. Evaluation runs in a fixed order (permission,
any_permission, all_permissions, role, any_role, all_roles) and stops at the
first failing requirement.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from src.facility_authz.auth.permission_utils import PermissionUtils


@dataclass(frozen=True)
class PermissionGate:
    """Requirement set for a piece of UI.

    A field left as None places no requirement. An empty ``any_*`` list is
    a requirement nothing can satisfy; an empty ``all_*`` list is trivially
    met.
    """

    permission: str | None = None
    any_permission: Sequence[str] | None = None
    all_permissions: Sequence[str] | None = None
    role: str | None = None
    any_role: Sequence[str] | None = None
    all_roles: Sequence[str] | None = None

    def allows(self, utils: PermissionUtils) -> bool:
        """Check every supplied requirement against ``utils``."""
        if self.permission is not None and not utils.can(self.permission):
            return False
        if self.any_permission is not None and not utils.can_any(self.any_permission):
            return False
        if self.all_permissions is not None and not utils.can_all(
            self.all_permissions
        ):
            return False
        if self.role is not None and not utils.is_(self.role):
            return False
        if self.any_role is not None and not utils.is_any(self.any_role):
            return False
        if self.all_roles is not None and not utils.is_all(self.all_roles):
            return False
        return True

    def render(self, utils: PermissionUtils, children: Any, fallback: Any = None) -> Any:
        """Return ``children`` when allowed, else ``fallback``.

        Callables are invoked only for the branch that is returned, so the
        hidden branch is never built.
        """
        chosen = children if self.allows(utils) else fallback
        return _materialize(chosen)


def _materialize(branch: Any | Callable[[], Any]) -> Any:
    if callable(branch):
        return branch()
    return branch


def permission_gate(
    utils: PermissionUtils,
    children: Any,
    fallback: Any = None,
    **requirements: Any,
) -> Any:
    """Functional form of ``PermissionGate(**requirements).render(...)``."""
    return PermissionGate(**requirements).render(utils, children, fallback)
