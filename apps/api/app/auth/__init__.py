"""Auth package: Clerk token verification, field-role RBAC, FastAPI dependencies."""

from app.auth.dependencies import get_current_user, require_permission
from app.auth.rbac import Action, Resource, check_permission

__all__ = [
    "Action",
    "Resource",
    "check_permission",
    "get_current_user",
    "require_permission",
]
