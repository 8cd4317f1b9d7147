"""Progress report API router: report, export, saved configurations, milestone templates."""

import unicodedata
import uuid
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_permission
from app.core.config import settings
from app.core.database import get_db
from app.models.enums import ComponentType, GroupingDimension
from app.modules.progress_reports import service
from app.modules.progress_reports.aggregation import ReportRow
from app.modules.progress_reports.assembly import ProgressReport
from app.modules.progress_reports.catalog import WeightCatalog
from app.modules.progress_reports.generators import get_exporter
from app.modules.progress_reports.schemas import (
    CreateReportConfigRequest,
    ExportFormat,
    MilestoneTemplateEntry,
    MilestoneTemplateListResponse,
    MilestoneTemplateResponse,
    OnInvalid,
    ProgressReportResponse,
    ReportConfigListResponse,
    ReportConfigResponse,
    ReportRowResponse,
    UpdateMilestoneWeightsRequest,
    UpdateReportConfigRequest,
)
from app.modules.progress_reports.sorting import SortColumn, SortDirection, sort_report
from app.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/projects/{project_id}", tags=["progress-reports"])


# ── Helpers ─────────────────────────────────────────────────────────────────


def _row_to_response(row: ReportRow) -> ReportRowResponse:
    return ReportRowResponse(
        group_name=row.group_name,
        group_id=row.group_id,
        budget=row.budget,
        pct_received=row.pct_received,
        pct_installed=row.pct_installed,
        pct_punch=row.pct_punch,
        pct_tested=row.pct_tested,
        pct_restored=row.pct_restored,
        pct_total=row.pct_total,
    )


def _report_to_response(
    project_id: uuid.UUID,
    report: ProgressReport,
    skipped: list[uuid.UUID],
) -> ProgressReportResponse:
    return ProgressReportResponse(
        project_id=project_id,
        title=report.title,
        project_name=report.project_name,
        generated_at=report.generated_at,
        grouping_dimension=report.grouping_dimension,
        rows=[_row_to_response(r) for r in report.rows],
        grand_total=_row_to_response(report.grand_total),
        skipped_count=report.skipped_count,
        skipped_component_ids=skipped,
    )


def _config_to_response(c) -> ReportConfigResponse:
    return ReportConfigResponse(
        id=c.id,
        project_id=c.project_id,
        name=c.name,
        description=c.description,
        grouping_dimension=c.grouping_dimension,
        component_type_filter=c.component_type_filter,
        created_by=c.created_by,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def _template_to_response(catalog: WeightCatalog, component_type: str) -> MilestoneTemplateResponse:
    entries = [MilestoneTemplateEntry(**m) for m in catalog.to_dict()[component_type]]
    return MilestoneTemplateResponse(
        component_type=component_type,
        milestones=entries,
        total_weight=sum(e.weight for e in entries),
    )


async def _get_project_or_404(db: AsyncSession, project_id: uuid.UUID, current_user: CurrentUser):
    project = await service.load_project(db, project_id, current_user.org_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def _resolve_report_options(
    db: AsyncSession,
    project_id: uuid.UUID,
    dimension: GroupingDimension | None,
    config_id: uuid.UUID | None,
) -> tuple[GroupingDimension, list[str] | None]:
    """An explicit dimension wins over the saved configuration's."""
    component_types = None
    if config_id is not None:
        config = await service.get_config(db, config_id, project_id)
        if not config:
            raise HTTPException(status_code=404, detail="Report configuration not found")
        dimension = dimension or config.grouping_dimension
        component_types = config.component_type_filter
    return dimension or GroupingDimension.AREA, component_types


def _default_on_invalid() -> OnInvalid:
    return OnInvalid.SKIP if settings.REPORT_SKIP_INVALID_COMPONENTS else OnInvalid.ABORT


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback plus the UTF-8 name (RFC 6266)."""
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


# ── Report ──────────────────────────────────────────────────────────────────


@router.get("/progress-report", response_model=ProgressReportResponse)
async def get_progress_report(
    project_id: uuid.UUID,
    dimension: GroupingDimension | None = Query(None),
    config_id: uuid.UUID | None = Query(None),
    on_invalid: OnInvalid | None = Query(None),
    sort: SortColumn | None = Query(None),
    direction: SortDirection = Query(SortDirection.ASC),
    current_user: CurrentUser = Depends(require_permission("view", "report")),
    db: AsyncSession = Depends(get_db),
):
    project = await _get_project_or_404(db, project_id, current_user)
    dimension, component_types = await _resolve_report_options(db, project_id, dimension, config_id)
    report, skipped = await service.generate_project_report(
        db,
        project,
        dimension,
        on_invalid=on_invalid or _default_on_invalid(),
        component_types=component_types,
    )
    report = sort_report(report, sort, direction)
    return _report_to_response(project_id, report, skipped)


@router.get("/progress-report/export")
async def export_progress_report(
    project_id: uuid.UUID,
    format: ExportFormat = Query(ExportFormat.PDF),
    dimension: GroupingDimension | None = Query(None),
    config_id: uuid.UUID | None = Query(None),
    sort: SortColumn | None = Query(None),
    direction: SortDirection = Query(SortDirection.ASC),
    current_user: CurrentUser = Depends(require_permission("export", "report")),
    db: AsyncSession = Depends(get_db),
):
    """Download the report as PDF-ready HTML, XLSX or CSV."""
    project = await _get_project_or_404(db, project_id, current_user)
    dimension, component_types = await _resolve_report_options(db, project_id, dimension, config_id)
    report, _ = await service.generate_project_report(
        db,
        project,
        dimension,
        on_invalid=_default_on_invalid(),
        component_types=component_types,
    )
    report = sort_report(report, sort, direction)
    exporter = get_exporter(format)
    content, content_type = exporter.generate(report)
    filename = exporter.filename(report)
    logger.info(
        "progress_report_exported",
        project_id=str(project_id),
        format=format.value,
        user_id=str(current_user.user_id),
    )
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": _content_disposition(filename)},
    )


# ── Saved configurations ────────────────────────────────────────────────────


@router.get("/report-configs", response_model=ReportConfigListResponse)
async def list_report_configs(
    project_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "report")),
    db: AsyncSession = Depends(get_db),
):
    await _get_project_or_404(db, project_id, current_user)
    configs = await service.list_configs(db, project_id)
    return ReportConfigListResponse(
        items=[_config_to_response(c) for c in configs],
        total=len(configs),
    )


@router.post(
    "/report-configs",
    response_model=ReportConfigResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_report_config(
    project_id: uuid.UUID,
    body: CreateReportConfigRequest,
    current_user: CurrentUser = Depends(require_permission("create", "report")),
    db: AsyncSession = Depends(get_db),
):
    await _get_project_or_404(db, project_id, current_user)
    try:
        config = await service.create_config(db, project_id, current_user, body)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    await db.refresh(config)
    return _config_to_response(config)


@router.get("/report-configs/{config_id}", response_model=ReportConfigResponse)
async def get_report_config(
    project_id: uuid.UUID,
    config_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "report")),
    db: AsyncSession = Depends(get_db),
):
    await _get_project_or_404(db, project_id, current_user)
    config = await service.get_config(db, config_id, project_id)
    if not config:
        raise HTTPException(status_code=404, detail="Report configuration not found")
    return _config_to_response(config)


@router.put("/report-configs/{config_id}", response_model=ReportConfigResponse)
async def update_report_config(
    project_id: uuid.UUID,
    config_id: uuid.UUID,
    body: UpdateReportConfigRequest,
    current_user: CurrentUser = Depends(require_permission("edit", "report")),
    db: AsyncSession = Depends(get_db),
):
    await _get_project_or_404(db, project_id, current_user)
    config = await service.get_config(db, config_id, project_id)
    if not config:
        raise HTTPException(status_code=404, detail="Report configuration not found")
    if config.created_by != current_user.user_id:
        raise HTTPException(status_code=403, detail="Only the creator can edit this configuration")
    try:
        config = await service.update_config(db, config, body)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    await db.refresh(config)
    return _config_to_response(config)


@router.delete("/report-configs/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report_config(
    project_id: uuid.UUID,
    config_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("delete", "report")),
    db: AsyncSession = Depends(get_db),
):
    await _get_project_or_404(db, project_id, current_user)
    config = await service.get_config(db, config_id, project_id)
    if not config:
        raise HTTPException(status_code=404, detail="Report configuration not found")
    if config.created_by != current_user.user_id:
        raise HTTPException(status_code=403, detail="Only the creator can delete this configuration")
    await service.delete_config(db, config)


# ── Milestone templates ─────────────────────────────────────────────────────


@router.get("/milestone-templates", response_model=MilestoneTemplateListResponse)
async def list_milestone_templates(
    project_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "settings")),
    db: AsyncSession = Depends(get_db),
):
    await _get_project_or_404(db, project_id, current_user)
    catalog = await service.load_catalog(db, project_id)
    return MilestoneTemplateListResponse(
        items=[_template_to_response(catalog, t) for t in catalog.component_types],
    )


@router.put(
    "/milestone-templates/{component_type}",
    response_model=MilestoneTemplateResponse,
)
async def update_milestone_template(
    project_id: uuid.UUID,
    component_type: ComponentType,
    body: UpdateMilestoneWeightsRequest,
    current_user: CurrentUser = Depends(require_permission("manage_settings", "settings")),
    db: AsyncSession = Depends(get_db),
):
    """Edit milestone weights for one component type; the template must total 100%."""
    await _get_project_or_404(db, project_id, current_user)
    weights = {w.name: w.weight for w in body.weights}
    if len(weights) != len(body.weights):
        raise HTTPException(status_code=422, detail="Duplicate milestone names in request")
    catalog = await service.update_template_weights(
        db, project_id, component_type.value, weights, current_user
    )
    return _template_to_response(catalog, component_type.value)
