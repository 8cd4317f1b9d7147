"""Aggregation engine: per-group and grand-total category averages.

Every component counts equally inside its group (unweighted mean), and the
grand total is recomputed from raw per-component values over the whole
filtered universe, never from group rows. Means keep full float precision;
rounding happens only in ``GroupProgress.to_row``.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.models.enums import GroupingDimension, StandardCategory
from app.modules.progress_reports.catalog import WeightCatalog
from app.modules.progress_reports.domain import ComponentProgressRecord, GroupRef
from app.modules.progress_reports.earned_value import compute_percent_complete, earned_values
from app.modules.progress_reports.exceptions import ValidationError

UNASSIGNED_LABEL = "(Unassigned)"
GRAND_TOTAL_LABEL = "Grand Total"


@dataclass(frozen=True)
class ReportRow:
    """A presentation-ready row: budget plus whole-number percentages."""

    group_name: str
    group_id: uuid.UUID | None
    budget: int
    pct_received: int
    pct_installed: int
    pct_punch: int
    pct_tested: int
    pct_restored: int
    pct_total: int

    def to_dict(self) -> dict:
        return {
            "group_name": self.group_name,
            "group_id": str(self.group_id) if self.group_id else None,
            "budget": self.budget,
            "pct_received": self.pct_received,
            "pct_installed": self.pct_installed,
            "pct_punch": self.pct_punch,
            "pct_tested": self.pct_tested,
            "pct_restored": self.pct_restored,
            "pct_total": self.pct_total,
        }


@dataclass(frozen=True)
class GroupProgress:
    """Unrounded aggregate for one group (or the grand total)."""

    group_name: str
    group_id: uuid.UUID | None
    budget: int
    categories: Mapping[StandardCategory, float]
    pct_total: float

    def to_row(self) -> ReportRow:
        return ReportRow(
            group_name=self.group_name,
            group_id=self.group_id,
            budget=self.budget,
            pct_received=round_percent(self.categories[StandardCategory.RECEIVED]),
            pct_installed=round_percent(self.categories[StandardCategory.INSTALLED]),
            pct_punch=round_percent(self.categories[StandardCategory.PUNCH]),
            pct_tested=round_percent(self.categories[StandardCategory.TESTED]),
            pct_restored=round_percent(self.categories[StandardCategory.RESTORED]),
            pct_total=round_percent(self.pct_total),
        )


@dataclass(frozen=True)
class _ComponentValues:
    categories: Mapping[StandardCategory, float]
    percent_complete: float


def round_percent(value: float) -> int:
    """Round half-up to a whole percent (33.33 -> 33, 66.67 -> 67, 50.5 -> 51)."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def component_values(
    component: ComponentProgressRecord, catalog: WeightCatalog
) -> _ComponentValues:
    """Category values and overall percent for one component.

    Propagates ConfigurationError / ValidationError from the mapper.
    """
    categories = earned_values(component.component_type, component.current_milestones, catalog)
    if component.percent_complete is None:
        percent = compute_percent_complete(
            component.component_type, component.current_milestones, catalog
        )
    else:
        percent = float(component.percent_complete)
        if math.isnan(percent) or percent < 0 or percent > 100:
            raise ValidationError(
                f"percent_complete {percent:g} is outside 0-100",
                component_id=str(component.id),
                value=percent,
            )
    return _ComponentValues(categories=categories, percent_complete=percent)


def summarise(
    group_name: str,
    group_id: uuid.UUID | None,
    values: Sequence[_ComponentValues],
) -> GroupProgress:
    return GroupProgress(
        group_name=group_name,
        group_id=group_id,
        budget=len(values),
        categories={
            category: _mean([v.categories[category] for v in values])
            for category in StandardCategory
        },
        pct_total=_mean([v.percent_complete for v in values]),
    )


def _sort_key(group: GroupRef) -> tuple[str, str, str]:
    return (group.name.casefold(), group.name, str(group.id))


def aggregate_progress(
    components: Iterable[ComponentProgressRecord],
    dimension: GroupingDimension,
    catalog: WeightCatalog,
    groups: Iterable[GroupRef] | None = None,
) -> tuple[list[GroupProgress], GroupProgress]:
    """Unrounded aggregation; see ``aggregate`` for the presentation form.

    ``groups`` lists every known group for the dimension so that groups
    without active components still yield a zero row.
    """
    dimension = GroupingDimension(dimension)
    known: dict[uuid.UUID, GroupRef] = {g.id: g for g in groups or () if g.id is not None}
    buckets: dict[uuid.UUID | None, list[_ComponentValues]] = {gid: [] for gid in known}
    universe: list[_ComponentValues] = []

    for component in components:
        if component.is_retired:
            continue
        values = component_values(component, catalog)
        universe.append(values)
        group = component.group_keys.for_dimension(dimension)
        key = group.id if group else None
        if group is not None and key not in known:
            known[key] = group
        buckets.setdefault(key, []).append(values)

    results = [
        summarise(group.name, group.id, buckets[group.id])
        for group in sorted(known.values(), key=_sort_key)
    ]
    if buckets.get(None):
        results.append(summarise(UNASSIGNED_LABEL, None, buckets[None]))

    grand_total = summarise(GRAND_TOTAL_LABEL, None, universe)
    return results, grand_total


def aggregate(
    components: Iterable[ComponentProgressRecord],
    dimension: GroupingDimension,
    catalog: WeightCatalog,
    groups: Iterable[GroupRef] | None = None,
) -> tuple[list[ReportRow], ReportRow]:
    """Group non-retired components by ``dimension`` into report rows plus a grand total."""
    results, grand_total = aggregate_progress(components, dimension, catalog, groups)
    return [r.to_row() for r in results], grand_total.to_row()
