"""Progress report Pydantic schemas: report, saved configurations, milestone templates."""

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.enums import ComponentType, GroupingDimension, StandardCategory


# ── Enums (request-only) ────────────────────────────────────────────────────


class ExportFormat(str, enum.Enum):
    PDF = "pdf"
    XLSX = "xlsx"
    CSV = "csv"


class OnInvalid(str, enum.Enum):
    SKIP = "skip"
    ABORT = "abort"


# ── Report ──────────────────────────────────────────────────────────────────


class ReportRowResponse(BaseModel):
    group_name: str
    group_id: uuid.UUID | None
    budget: int = Field(ge=0)
    pct_received: int = Field(ge=0, le=100)
    pct_installed: int = Field(ge=0, le=100)
    pct_punch: int = Field(ge=0, le=100)
    pct_tested: int = Field(ge=0, le=100)
    pct_restored: int = Field(ge=0, le=100)
    pct_total: int = Field(ge=0, le=100)


class ProgressReportResponse(BaseModel):
    project_id: uuid.UUID
    title: str
    project_name: str
    generated_at: datetime
    grouping_dimension: GroupingDimension
    rows: list[ReportRowResponse]
    grand_total: ReportRowResponse
    skipped_count: int = 0
    skipped_component_ids: list[uuid.UUID] = Field(default_factory=list)


# ── Saved configurations ────────────────────────────────────────────────────


def _check_type_filter(v: list[ComponentType] | None) -> list[ComponentType] | None:
    # null means every type; an empty list would match nothing
    if v is not None and not v:
        raise ValueError("component_type_filter must list at least one type, or be null for all types")
    return v


class CreateReportConfigRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    grouping_dimension: GroupingDimension
    component_type_filter: list[ComponentType] | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("component_type_filter")
    @classmethod
    def _non_empty_filter(cls, v: list[ComponentType] | None) -> list[ComponentType] | None:
        return _check_type_filter(v)


class UpdateReportConfigRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    grouping_dimension: GroupingDimension | None = None
    component_type_filter: list[ComponentType] | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("component_type_filter")
    @classmethod
    def _non_empty_filter(cls, v: list[ComponentType] | None) -> list[ComponentType] | None:
        return _check_type_filter(v)


class ReportConfigResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    description: str | None
    grouping_dimension: GroupingDimension
    component_type_filter: list[ComponentType] | None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


class ReportConfigListResponse(BaseModel):
    items: list[ReportConfigResponse]
    total: int


# ── Milestone templates ─────────────────────────────────────────────────────


class MilestoneTemplateEntry(BaseModel):
    name: str
    weight: float
    is_partial: bool
    category: StandardCategory | None
    order: int


class MilestoneTemplateResponse(BaseModel):
    component_type: str
    milestones: list[MilestoneTemplateEntry]
    total_weight: float


class MilestoneTemplateListResponse(BaseModel):
    items: list[MilestoneTemplateResponse]


class MilestoneWeightUpdate(BaseModel):
    name: str = Field(min_length=1)
    weight: float = Field(ge=0, le=100)


class UpdateMilestoneWeightsRequest(BaseModel):
    weights: list[MilestoneWeightUpdate] = Field(min_length=1)
