"""Component progress models: Project, grouping tables, Component, templates, saved report configs."""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.models.enums import GroupingDimension


class Project(BaseModel):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_org_id", "org_id"),
    )

    org_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    organization: Mapped["Organization"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="projects"
    )
    components: Mapped[list["Component"]] = relationship(back_populates="project")

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name!r})>"


class Area(BaseModel):
    __tablename__ = "areas"
    __table_args__ = (
        Index("ix_areas_project_id", "project_id"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class System(BaseModel):
    __tablename__ = "systems"
    __table_args__ = (
        Index("ix_systems_project_id", "project_id"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class TestPackage(BaseModel):
    __tablename__ = "test_packages"
    __table_args__ = (
        Index("ix_test_packages_project_id", "project_id"),
    )
    __test__ = False  # not a pytest class

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class Component(BaseModel):
    __tablename__ = "components"
    __table_args__ = (
        Index("ix_components_project_id", "project_id"),
        Index("ix_components_project_id_type", "project_id", "component_type"),
        Index("ix_components_area_id", "area_id"),
        Index("ix_components_system_id", "system_id"),
        Index("ix_components_test_package_id", "test_package_id"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Free text: values outside the catalog surface as configuration errors
    component_type: Mapped[str] = mapped_column(String(50), nullable=False)
    identity_key: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    area_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id", ondelete="SET NULL")
    )
    system_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("systems.id", ondelete="SET NULL")
    )
    test_package_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("test_packages.id", ondelete="SET NULL")
    )
    current_milestones: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default="{}"
    )
    percent_complete: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    is_retired: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="components")
    area: Mapped["Area | None"] = relationship()
    system: Mapped["System | None"] = relationship()
    test_package: Mapped["TestPackage | None"] = relationship()

    def __repr__(self) -> str:
        return f"<Component(id={self.id}, type={self.component_type!r})>"


class ProjectProgressTemplate(BaseModel):
    """Project-level weight override for one milestone of one component type."""

    __tablename__ = "project_progress_templates"
    __table_args__ = (
        Index(
            "ix_project_progress_templates_unique",
            "project_id", "component_type", "milestone_name",
            unique=True,
        ),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    component_type: Mapped[str] = mapped_column(String(50), nullable=False)
    milestone_name: Mapped[str] = mapped_column(String(100), nullable=False)
    weight: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    milestone_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)


class ReportConfig(BaseModel):
    __tablename__ = "report_configs"
    __table_args__ = (
        Index("ix_report_configs_project_id", "project_id"),
        Index("ix_report_configs_created_by", "created_by"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    grouping_dimension: Mapped[GroupingDimension] = mapped_column(nullable=False)
    # NULL = all component types
    component_type_filter: Mapped[list[str] | None] = mapped_column(ARRAY(String(50)))
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ReportConfig(id={self.id}, name={self.name!r})>"
