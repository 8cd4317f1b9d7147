"""Create organizations, users and progress reporting tables.

Revision ID: 0001_progress_reporting
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_progress_reporting"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# SQLAlchemy persists enum member names
_USER_ROLE = sa.Enum(
    "OWNER", "ADMIN", "PROJECT_MANAGER", "FOREMAN", "QC_INSPECTOR", "WELDER", "VIEWER",
    name="userrole",
)
_GROUPING_DIMENSION = sa.Enum("AREA", "SYSTEM", "TEST_PACKAGE", name="groupingdimension")


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default="false"),
    ]


def _group_table(name: str) -> None:
    op.create_table(
        name,
        *_base_columns(),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(f"ix_{name}_project_id", name, ["project_id"])


def upgrade() -> None:
    op.create_table(
        "organizations",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", _USER_ROLE, nullable=False),
        sa.Column("external_auth_id", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_org_id", "users", ["org_id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_external_auth_id", "users", ["external_auth_id"], unique=True)

    op.create_table(
        "projects",
        *_base_columns(),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_org_id", "projects", ["org_id"])

    _group_table("areas")
    _group_table("systems")
    _group_table("test_packages")

    op.create_table(
        "components",
        *_base_columns(),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("component_type", sa.String(50), nullable=False),
        sa.Column("identity_key", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("area_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("system_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("test_package_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("current_milestones", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("percent_complete", sa.Numeric(5, 2), nullable=True),
        sa.Column("is_retired", sa.Boolean(), nullable=False, server_default="false"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["system_id"], ["systems.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["test_package_id"], ["test_packages.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "percent_complete IS NULL OR (percent_complete >= 0 AND percent_complete <= 100)",
            name="ck_components_percent_complete_range",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_components_project_id", "components", ["project_id"])
    op.create_index("ix_components_project_id_type", "components", ["project_id", "component_type"])
    op.create_index("ix_components_area_id", "components", ["area_id"])
    op.create_index("ix_components_system_id", "components", ["system_id"])
    op.create_index("ix_components_test_package_id", "components", ["test_package_id"])

    op.create_table(
        "project_progress_templates",
        *_base_columns(),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("component_type", sa.String(50), nullable=False),
        sa.Column("milestone_name", sa.String(100), nullable=False),
        sa.Column("weight", sa.Numeric(5, 2), nullable=False),
        sa.Column("milestone_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.CheckConstraint("weight >= 0 AND weight <= 100", name="ck_project_progress_templates_weight_range"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_project_progress_templates_unique",
        "project_progress_templates",
        ["project_id", "component_type", "milestone_name"],
        unique=True,
    )

    op.create_table(
        "report_configs",
        *_base_columns(),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("grouping_dimension", _GROUPING_DIMENSION, nullable=False),
        sa.Column("component_type_filter", postgresql.ARRAY(sa.String(50)), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("length(trim(name)) > 0", name="ck_report_configs_name_not_blank"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_report_configs_project_id", "report_configs", ["project_id"])
    op.create_index("ix_report_configs_created_by", "report_configs", ["created_by"])
    # Names are unique per project among live rows
    op.create_index(
        "ix_report_configs_project_name_live",
        "report_configs",
        ["project_id", sa.text("lower(name)")],
        unique=True,
        postgresql_where=sa.text("is_deleted = false"),
    )


def downgrade() -> None:
    op.drop_table("report_configs")
    op.drop_table("project_progress_templates")
    op.drop_table("components")
    op.drop_table("test_packages")
    op.drop_table("systems")
    op.drop_table("areas")
    op.drop_table("projects")
    op.drop_table("users")
    op.drop_table("organizations")
    _GROUPING_DIMENSION.drop(op.get_bind(), checkfirst=True)
    _USER_ROLE.drop(op.get_bind(), checkfirst=True)
