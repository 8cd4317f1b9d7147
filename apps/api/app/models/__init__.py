"""SQLAlchemy models: tenancy, projects, groups, components and report settings."""

from app.models.base import BaseModel, ModelMixin
from app.models.core import Organization, User
from app.models.enums import ComponentType, GroupingDimension, StandardCategory, UserRole
from app.models.progress import (
    Area,
    Component,
    Project,
    ProjectProgressTemplate,
    ReportConfig,
    System,
    TestPackage,
)

__all__ = [
    "BaseModel",
    "ModelMixin",
    "Organization",
    "User",
    "Project",
    "Area",
    "System",
    "TestPackage",
    "Component",
    "ProjectProgressTemplate",
    "ReportConfig",
    "ComponentType",
    "GroupingDimension",
    "StandardCategory",
    "UserRole",
]
