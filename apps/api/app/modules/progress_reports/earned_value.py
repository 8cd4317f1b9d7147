"""Earned-value mapper: native milestone state -> standard category percentage.

Pure functions, no I/O. Each standard category's value is normalised by the
weight of the milestones that map into it, so a spool with only Erect done
(Erect 40 + Connect 40 -> Installed) reports 50% Installed.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from app.models.enums import StandardCategory
from app.modules.progress_reports.catalog import MilestoneDefinition, WeightCatalog
from app.modules.progress_reports.domain import Complete, MilestoneValue, Partial, RawMilestoneValue
from app.modules.progress_reports.exceptions import ValidationError

NOT_STARTED = Complete(False)


def coerce_milestone_value(
    definition: MilestoneDefinition, raw: RawMilestoneValue
) -> MilestoneValue:
    """Turn a stored milestone value into a tagged value, validating its domain."""
    if raw is None:
        return NOT_STARTED
    if isinstance(raw, Complete):
        return raw
    if isinstance(raw, bool):
        return Complete(raw)
    if isinstance(raw, Partial):
        percent = raw.percent
    elif isinstance(raw, (int, float)):
        percent = float(raw)
    else:
        raise ValidationError(
            f"Milestone '{definition.name}' has unsupported value {raw!r}",
            milestone=definition.name,
            value=raw,
        )

    if not definition.is_partial:
        raise ValidationError(
            f"Milestone '{definition.name}' is discrete and only accepts true/false, got {raw!r}",
            milestone=definition.name,
            value=raw,
        )
    if math.isnan(percent) or percent < 0 or percent > 100:
        raise ValidationError(
            f"Milestone '{definition.name}' value {percent:g} is outside 0-100",
            milestone=definition.name,
            value=percent,
        )
    return Partial(percent)


def validate_milestone_state(
    component_type: str,
    milestone_state: Mapping[str, RawMilestoneValue],
    catalog: WeightCatalog,
) -> dict[str, MilestoneValue]:
    """Check every entry of a component's state against its type's catalog.

    Raises ConfigurationError for an unknown type or an undefined milestone
    name, ValidationError for an invalid value. Missing milestones are
    simply absent from the result (not started).
    """
    definitions = catalog.milestones_for(component_type)
    validated: dict[str, MilestoneValue] = {}
    for name, raw in (milestone_state or {}).items():
        definition = catalog.milestone(component_type, name)
        validated[name] = coerce_milestone_value(definition, raw)
    # Keep catalog order so float accumulation order never depends on the
    # caller's dict ordering.
    return {d.name: validated[d.name] for d in definitions if d.name in validated}


def _earned_weight(definition: MilestoneDefinition, value: MilestoneValue) -> float:
    if isinstance(value, Partial):
        return definition.weight * (value.percent / 100.0)
    return definition.weight if value.done else 0.0


def _category_value(
    definitions: tuple[MilestoneDefinition, ...],
    state: Mapping[str, MilestoneValue],
) -> float:
    total_weight = math.fsum(d.weight for d in definitions)
    if not definitions or total_weight <= 0:
        return 0.0
    earned = math.fsum(
        _earned_weight(d, state.get(d.name, NOT_STARTED)) for d in definitions
    )
    return 100.0 * earned / total_weight


def earned_value(
    component_type: str,
    milestone_state: Mapping[str, RawMilestoneValue],
    category: StandardCategory,
    catalog: WeightCatalog,
) -> float:
    """Earned percentage (0-100) of one component for one standard category."""
    state = validate_milestone_state(component_type, milestone_state, catalog)
    category = StandardCategory(category)
    return _category_value(catalog.milestones_in_category(component_type, category), state)


def earned_values(
    component_type: str,
    milestone_state: Mapping[str, RawMilestoneValue],
    catalog: WeightCatalog,
) -> dict[StandardCategory, float]:
    """Earned percentage for all five categories, validating the state once."""
    state = validate_milestone_state(component_type, milestone_state, catalog)
    return {
        category: _category_value(
            catalog.milestones_in_category(component_type, category), state
        )
        for category in StandardCategory
    }


def compute_percent_complete(
    component_type: str,
    milestone_state: Mapping[str, RawMilestoneValue],
    catalog: WeightCatalog,
) -> float:
    """Overall weighted percent complete across all of a type's milestones."""
    state = validate_milestone_state(component_type, milestone_state, catalog)
    return _category_value(catalog.milestones_for(component_type), state)
