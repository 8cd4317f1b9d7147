"""Tenant scoping helpers.

Projects belong to an organization; every project lookup is scoped to the
caller's org_id so one tenant can never report on another's components.
"""

import uuid

from sqlalchemy.sql import Select


def tenant_filter(stmt: Select, org_id: uuid.UUID, model: type) -> Select:
    """Append org_id filter to a SQLAlchemy select statement.

    Usage:
        stmt = select(Project)
        stmt = tenant_filter(stmt, current_user.org_id, Project)
    """
    if hasattr(model, "org_id"):
        return stmt.where(model.org_id == org_id)  # type: ignore[attr-defined]
    return stmt
