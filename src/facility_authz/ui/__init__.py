"""Permission-aware conditional rendering."""

from src.facility_authz.ui.permission_gate import PermissionGate, permission_gate

__all__ = ["PermissionGate", "permission_gate"]
