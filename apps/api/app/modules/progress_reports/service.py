"""Progress report service: data loading, report orchestration, saved configs, weight templates."""

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.middleware.tenant import tenant_filter
from app.models.enums import GroupingDimension
from app.models.progress import (
    Area,
    Component,
    Project,
    ProjectProgressTemplate,
    ReportConfig,
    System,
    TestPackage,
)
from app.modules.progress_reports.aggregation import aggregate, component_values
from app.modules.progress_reports.assembly import ProgressReport, assemble
from app.modules.progress_reports.catalog import (
    WeightCatalog,
    default_catalog,
    quantize_weight,
    validate_template_weights,
)
from app.modules.progress_reports.domain import ComponentProgressRecord, GroupKeys, GroupRef
from app.modules.progress_reports.exceptions import ValidationError
from app.modules.progress_reports.schemas import (
    CreateReportConfigRequest,
    OnInvalid,
    UpdateReportConfigRequest,
)
from app.schemas.auth import CurrentUser

logger = structlog.get_logger()

_GROUP_MODELS: dict[GroupingDimension, type] = {
    GroupingDimension.AREA: Area,
    GroupingDimension.SYSTEM: System,
    GroupingDimension.TEST_PACKAGE: TestPackage,
}


# ── Loaders ─────────────────────────────────────────────────────────────────


async def load_project(
    db: AsyncSession,
    project_id: uuid.UUID,
    org_id: uuid.UUID,
) -> Project | None:
    stmt = select(Project).where(
        Project.id == project_id,
        Project.is_deleted.is_(False),
    )
    stmt = tenant_filter(stmt, org_id, Project)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _to_record(
    component: Component,
    area_name: str | None,
    system_name: str | None,
    test_package_name: str | None,
) -> ComponentProgressRecord:
    percent = component.percent_complete
    # A join miss (group soft-deleted) reads as unassigned
    return ComponentProgressRecord(
        id=component.id,
        component_type=component.component_type,
        current_milestones=dict(component.current_milestones or {}),
        group_keys=GroupKeys(
            area_id=component.area_id if area_name is not None else None,
            area_name=area_name,
            system_id=component.system_id if system_name is not None else None,
            system_name=system_name,
            test_package_id=component.test_package_id if test_package_name is not None else None,
            test_package_name=test_package_name,
        ),
        percent_complete=float(percent) if percent is not None else None,
        is_retired=component.is_retired,
    )


async def load_components(
    db: AsyncSession,
    project_id: uuid.UUID,
) -> list[ComponentProgressRecord]:
    """Fetch the project's component universe with group names resolved.

    Soft-deleted groups read as unassigned.
    """
    area = aliased(Area)
    system = aliased(System)
    test_package = aliased(TestPackage)
    stmt = (
        select(Component, area.name, system.name, test_package.name)
        .outerjoin(area, (Component.area_id == area.id) & area.is_deleted.is_(False))
        .outerjoin(system, (Component.system_id == system.id) & system.is_deleted.is_(False))
        .outerjoin(
            test_package,
            (Component.test_package_id == test_package.id) & test_package.is_deleted.is_(False),
        )
        .where(
            Component.project_id == project_id,
            Component.is_deleted.is_(False),
        )
        .order_by(Component.id)
    )
    result = await db.execute(stmt)
    return [_to_record(*row) for row in result.all()]


async def load_groups(
    db: AsyncSession,
    project_id: uuid.UUID,
    dimension: GroupingDimension,
) -> list[GroupRef]:
    """Every live group of the dimension, so empty ones still produce rows."""
    model = _GROUP_MODELS[GroupingDimension(dimension)]
    stmt = select(model.id, model.name).where(
        model.project_id == project_id,
        model.is_deleted.is_(False),
    )
    result = await db.execute(stmt)
    return [GroupRef(id=row.id, name=row.name) for row in result.all()]


async def load_catalog(db: AsyncSession, project_id: uuid.UUID) -> WeightCatalog:
    """Default catalog with the project's stored weight overrides applied."""
    stmt = select(ProjectProgressTemplate).where(
        ProjectProgressTemplate.project_id == project_id,
        ProjectProgressTemplate.is_deleted.is_(False),
    ).order_by(ProjectProgressTemplate.component_type, ProjectProgressTemplate.milestone_order)
    result = await db.execute(stmt)

    overrides: dict[str, dict[str, float]] = {}
    for row in result.scalars().all():
        overrides.setdefault(row.component_type, {})[row.milestone_name] = float(row.weight)

    catalog = default_catalog()
    for component_type, weights in overrides.items():
        catalog = catalog.with_overrides(component_type, weights)
    return catalog


# ── Report orchestration ────────────────────────────────────────────────────


def build_progress_report(
    components: Iterable[ComponentProgressRecord],
    dimension: GroupingDimension,
    project_name: str,
    catalog: WeightCatalog,
    groups: Iterable[GroupRef] | None = None,
    on_invalid: OnInvalid = OnInvalid.SKIP,
    generated_at: datetime | None = None,
    component_types: Iterable[str] | None = None,
) -> tuple[ProgressReport, list[uuid.UUID]]:
    """Validate, aggregate and assemble one report.

    Components failing validation are skipped (and counted) or abort the
    whole report depending on ``on_invalid``. Configuration errors always
    propagate.
    """
    dimension = GroupingDimension(dimension)
    on_invalid = OnInvalid(on_invalid)
    # None reports every type; an empty filter matches nothing
    type_filter = None
    if component_types is not None:
        type_filter = {str(getattr(t, "value", t)) for t in component_types}

    valid: list[ComponentProgressRecord] = []
    skipped: list[uuid.UUID] = []
    for component in components:
        if type_filter is not None and component.component_type not in type_filter:
            continue
        if component.is_retired:
            continue
        try:
            component_values(component, catalog)
        except ValidationError as exc:
            if on_invalid is OnInvalid.ABORT:
                raise
            logger.warning(
                "component_skipped",
                component_id=str(component.id),
                component_type=component.component_type,
                reason=exc.message,
            )
            skipped.append(component.id)
            continue
        valid.append(component)

    rows, grand_total = aggregate(valid, dimension, catalog, groups)
    report = assemble(
        rows,
        grand_total,
        dimension,
        project_name,
        generated_at or datetime.now(timezone.utc),
        skipped_count=len(skipped),
    )
    logger.info(
        "progress_report_built",
        dimension=dimension.value,
        rows=len(rows),
        components=grand_total.budget,
        skipped=len(skipped),
    )
    return report, skipped


async def generate_project_report(
    db: AsyncSession,
    project: Project,
    dimension: GroupingDimension,
    on_invalid: OnInvalid = OnInvalid.SKIP,
    component_types: Iterable[str] | None = None,
) -> tuple[ProgressReport, list[uuid.UUID]]:
    """Fetch the component universe first, then run the pure core over it."""
    components = await load_components(db, project.id)
    groups = await load_groups(db, project.id, dimension)
    catalog = await load_catalog(db, project.id)
    return build_progress_report(
        components,
        dimension,
        project.name,
        catalog,
        groups=groups,
        on_invalid=on_invalid,
        component_types=component_types,
    )


# ── Saved report configurations ─────────────────────────────────────────────


async def list_configs(db: AsyncSession, project_id: uuid.UUID) -> list[ReportConfig]:
    stmt = (
        select(ReportConfig)
        .where(
            ReportConfig.project_id == project_id,
            ReportConfig.is_deleted.is_(False),
        )
        .order_by(ReportConfig.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_config(
    db: AsyncSession,
    config_id: uuid.UUID,
    project_id: uuid.UUID,
) -> ReportConfig | None:
    stmt = select(ReportConfig).where(
        ReportConfig.id == config_id,
        ReportConfig.project_id == project_id,
        ReportConfig.is_deleted.is_(False),
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _ensure_unique_name(
    db: AsyncSession,
    project_id: uuid.UUID,
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = select(func.count()).select_from(ReportConfig).where(
        ReportConfig.project_id == project_id,
        func.lower(ReportConfig.name) == name.lower(),
        ReportConfig.is_deleted.is_(False),
    )
    if exclude_id is not None:
        stmt = stmt.where(ReportConfig.id != exclude_id)
    if (await db.execute(stmt)).scalar():
        raise ValueError(f"A report configuration named '{name}' already exists")


def _type_values(types) -> list[str] | None:
    if types is None:
        return None
    return [t.value for t in types]


async def create_config(
    db: AsyncSession,
    project_id: uuid.UUID,
    current_user: CurrentUser,
    body: CreateReportConfigRequest,
) -> ReportConfig:
    """Create a saved configuration. Raises ValueError on a duplicate name."""
    await _ensure_unique_name(db, project_id, body.name)
    config = ReportConfig(
        project_id=project_id,
        name=body.name,
        description=body.description,
        grouping_dimension=body.grouping_dimension,
        component_type_filter=_type_values(body.component_type_filter),
        created_by=current_user.user_id,
    )
    db.add(config)
    await db.flush()
    logger.info("report_config_created", config_id=str(config.id), project_id=str(project_id))
    return config


async def update_config(
    db: AsyncSession,
    config: ReportConfig,
    body: UpdateReportConfigRequest,
) -> ReportConfig:
    """Apply a partial update. Raises ValueError on a duplicate name."""
    updates = body.model_dump(exclude_unset=True)
    if "name" in updates and updates["name"] is not None:
        await _ensure_unique_name(db, config.project_id, updates["name"], exclude_id=config.id)
        config.name = updates["name"]
    if "description" in updates:
        config.description = updates["description"]
    if updates.get("grouping_dimension") is not None:
        config.grouping_dimension = body.grouping_dimension
    if "component_type_filter" in updates:
        config.component_type_filter = _type_values(body.component_type_filter)
    await db.flush()
    return config


async def delete_config(db: AsyncSession, config: ReportConfig) -> None:
    """Soft-delete a saved configuration."""
    config.is_deleted = True
    await db.flush()
    logger.info("report_config_deleted", config_id=str(config.id))


# ── Milestone weight templates ──────────────────────────────────────────────


async def update_template_weights(
    db: AsyncSession,
    project_id: uuid.UUID,
    component_type: str,
    weights: Mapping[str, float],
    current_user: CurrentUser,
) -> WeightCatalog:
    """Validate and store project weights for one component type.

    Weights are rounded half-up to two decimals before validation, so the
    stored template is the one checked. Unlisted milestones keep their
    current weight; the result must total 100. Returns the updated catalog.
    """
    catalog = await load_catalog(db, project_id)
    definitions = catalog.milestones_for(component_type)
    known = {d.name for d in definitions}
    unknown = sorted(set(weights) - known)
    if unknown:
        raise ValidationError(
            f"Invalid milestone name(s): {', '.join(unknown)}",
            component_type=component_type,
            milestones=unknown,
        )

    merged = [(d.name, quantize_weight(weights.get(d.name, d.weight))) for d in definitions]
    validate_template_weights(merged)

    stmt = select(ProjectProgressTemplate).where(
        ProjectProgressTemplate.project_id == project_id,
        ProjectProgressTemplate.component_type == component_type,
    )
    existing = {row.milestone_name: row for row in (await db.execute(stmt)).scalars().all()}
    for order, (name, weight) in enumerate(merged, 1):
        row = existing.get(name)
        if row is None:
            db.add(
                ProjectProgressTemplate(
                    project_id=project_id,
                    component_type=component_type,
                    milestone_name=name,
                    weight=weight,
                    milestone_order=order,
                    updated_by=current_user.user_id,
                )
            )
        else:
            row.weight = weight
            row.milestone_order = order
            row.is_deleted = False
            row.updated_by = current_user.user_id
    await db.flush()

    logger.info(
        "milestone_weights_updated",
        project_id=str(project_id),
        component_type=component_type,
        user_id=str(current_user.user_id),
    )
    return catalog.with_overrides(component_type, dict(merged))
