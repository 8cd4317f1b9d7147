"""RBAC permission matrix and checker.

Roles inherit cumulatively: viewer < welder < foreman/qc_inspector
< project_manager < admin < owner. Permissions are (action, resource_type)
tuples in a set for O(1) lookup.
"""

import uuid

from app.models.enums import UserRole


# ── Actions ───────────────────────────────────────────────────────────────


class Action:
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    EXPORT = "export"
    MANAGE_SETTINGS = "manage_settings"


# ── Resource Types ────────────────────────────────────────────────────────


class Resource:
    PROJECT = "project"
    REPORT = "report"
    SETTINGS = "settings"


# ── Per-role permission sets ──────────────────────────────────────────────

_VIEWER_PERMS: set[tuple[str, str]] = {
    (Action.VIEW, Resource.PROJECT),
    (Action.VIEW, Resource.REPORT),
    (Action.VIEW, Resource.SETTINGS),
}

_FIELD_EXTRA: set[tuple[str, str]] = {
    (Action.EXPORT, Resource.REPORT),
}

_SUPERVISOR_EXTRA: set[tuple[str, str]] = {
    (Action.CREATE, Resource.REPORT),
    (Action.EDIT, Resource.REPORT),
    (Action.DELETE, Resource.REPORT),
}

_PROJECT_MANAGER_EXTRA: set[tuple[str, str]] = {
    (Action.MANAGE_SETTINGS, Resource.SETTINGS),
}

_ADMIN_EXTRA: set[tuple[str, str]] = {
    (Action.EDIT, Resource.PROJECT),
}

_OWNER_EXTRA: set[tuple[str, str]] = {
    (Action.DELETE, Resource.PROJECT),
}

# ── Cumulative permission matrix ──────────────────────────────────────────

_SUPERVISOR = _VIEWER_PERMS | _FIELD_EXTRA | _SUPERVISOR_EXTRA

PERMISSION_MATRIX: dict[UserRole, set[tuple[str, str]]] = {
    UserRole.VIEWER: _VIEWER_PERMS,
    UserRole.WELDER: _VIEWER_PERMS | _FIELD_EXTRA,
    UserRole.FOREMAN: _SUPERVISOR,
    UserRole.QC_INSPECTOR: _SUPERVISOR,
    UserRole.PROJECT_MANAGER: _SUPERVISOR | _PROJECT_MANAGER_EXTRA,
    UserRole.ADMIN: _SUPERVISOR | _PROJECT_MANAGER_EXTRA | _ADMIN_EXTRA,
    UserRole.OWNER: _SUPERVISOR | _PROJECT_MANAGER_EXTRA | _ADMIN_EXTRA | _OWNER_EXTRA,
}


# ── Public API ────────────────────────────────────────────────────────────


def check_permission(
    role: UserRole,
    action: str,
    resource_type: str,
    resource_id: uuid.UUID | None = None,  # reserved for object-level checks
) -> bool:
    """Check if a role has permission for an action on a resource type."""
    perms = PERMISSION_MATRIX.get(role)
    if perms is None:
        return False
    return (action, resource_type) in perms
