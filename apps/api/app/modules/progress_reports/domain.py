"""In-memory records consumed by the earned-value mapper and aggregation engine."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Union

from app.models.enums import GroupingDimension


@dataclass(frozen=True)
class Complete:
    """Discrete milestone state: done or not done."""

    done: bool


@dataclass(frozen=True)
class Partial:
    """Partial milestone state, percent complete in [0, 100]."""

    percent: float


MilestoneValue = Union[Complete, Partial]

# Raw values as stored on a component: JSON booleans and numbers, or already
# tagged values.
RawMilestoneValue = Union[bool, int, float, Complete, Partial, None]


@dataclass(frozen=True)
class GroupRef:
    """A reportable group (area, system or test package)."""

    id: uuid.UUID | None
    name: str


@dataclass(frozen=True)
class GroupKeys:
    area_id: uuid.UUID | None = None
    area_name: str | None = None
    system_id: uuid.UUID | None = None
    system_name: str | None = None
    test_package_id: uuid.UUID | None = None
    test_package_name: str | None = None

    def for_dimension(self, dimension: GroupingDimension) -> GroupRef | None:
        """Group this component belongs to along ``dimension``; None if unassigned."""
        dimension = GroupingDimension(dimension)
        group_id = getattr(self, f"{dimension.value}_id")
        if group_id is None:
            return None
        name = getattr(self, f"{dimension.value}_name") or str(group_id)
        return GroupRef(id=group_id, name=name)


@dataclass(frozen=True)
class ComponentProgressRecord:
    id: uuid.UUID
    component_type: str
    current_milestones: Mapping[str, RawMilestoneValue] = field(default_factory=dict)
    group_keys: GroupKeys = field(default_factory=GroupKeys)
    percent_complete: float | None = None  # None -> derived from the catalog
    is_retired: bool = False
