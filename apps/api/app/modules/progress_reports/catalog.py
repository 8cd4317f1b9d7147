"""Milestone weight catalog: component type -> ordered milestone definitions.

The catalog is an immutable value passed explicitly into the earned-value
mapper and the aggregation engine. Project-level weight overrides produce a
new catalog via ``with_overrides``; the set of milestones per type is fixed.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType

from app.models.enums import ComponentType, StandardCategory
from app.modules.progress_reports.exceptions import ConfigurationError, ValidationError

_RCV = StandardCategory.RECEIVED
_INS = StandardCategory.INSTALLED
_PCH = StandardCategory.PUNCH
_TST = StandardCategory.TESTED
_RST = StandardCategory.RESTORED

# Matches the Numeric(5, 2) weight column
WEIGHT_PRECISION = Decimal("0.01")


@dataclass(frozen=True)
class MilestoneDefinition:
    """One native milestone of a component type."""

    name: str
    weight: float
    is_partial: bool = False
    category: StandardCategory | None = None


@dataclass(frozen=True)
class WeightCatalog:
    """Read-only mapping of component type to its milestone definitions."""

    templates: Mapping[str, tuple[MilestoneDefinition, ...]]

    def __post_init__(self) -> None:
        frozen = {str(_type_key(k)): tuple(v) for k, v in self.templates.items()}
        object.__setattr__(self, "templates", MappingProxyType(frozen))

    @property
    def component_types(self) -> list[str]:
        return list(self.templates)

    def milestones_for(self, component_type: str) -> tuple[MilestoneDefinition, ...]:
        key = _type_key(component_type)
        try:
            return self.templates[key]
        except KeyError:
            raise ConfigurationError(
                f"Unknown component type '{key}'",
                component_type=key,
            ) from None

    def milestones_in_category(
        self, component_type: str, category: StandardCategory
    ) -> tuple[MilestoneDefinition, ...]:
        return tuple(
            m for m in self.milestones_for(component_type) if m.category == category
        )

    def milestone(self, component_type: str, name: str) -> MilestoneDefinition:
        for definition in self.milestones_for(component_type):
            if definition.name == name:
                return definition
        raise ConfigurationError(
            f"Milestone '{name}' is not defined for component type '{_type_key(component_type)}'",
            component_type=_type_key(component_type),
            milestone=name,
        )

    def with_overrides(
        self, component_type: str, weights: Mapping[str, float]
    ) -> WeightCatalog:
        """Return a copy of the catalog with new weights for one type's milestones."""
        current = self.milestones_for(component_type)
        known = {m.name for m in current}
        unknown = sorted(set(weights) - known)
        if unknown:
            raise ConfigurationError(
                f"Invalid milestone name(s) for '{_type_key(component_type)}': {', '.join(unknown)}",
                component_type=_type_key(component_type),
                milestones=unknown,
            )
        updated = tuple(
            MilestoneDefinition(
                name=m.name,
                weight=float(weights.get(m.name, m.weight)),
                is_partial=m.is_partial,
                category=m.category,
            )
            for m in current
        )
        templates = dict(self.templates)
        templates[_type_key(component_type)] = updated
        return WeightCatalog(templates)

    def to_dict(self) -> dict[str, list[dict]]:
        return {
            component_type: [
                {
                    "name": m.name,
                    "weight": m.weight,
                    "is_partial": m.is_partial,
                    "category": m.category.value if m.category else None,
                    "order": order,
                }
                for order, m in enumerate(milestones, 1)
            ]
            for component_type, milestones in self.templates.items()
        }


def _type_key(component_type: str) -> str:
    if isinstance(component_type, ComponentType):
        return component_type.value
    return str(component_type)


def quantize_weight(weight: float) -> float:
    """Round a weight half-up to the precision it is stored at."""
    return float(Decimal(repr(float(weight))).quantize(WEIGHT_PRECISION, rounding=ROUND_HALF_UP))


def validate_template_weights(definitions: Iterable[tuple[str, float]]) -> None:
    """Save-path check for an edited weight template.

    Each weight must be within 0-100, names must be unique and the weights,
    rounded to two decimals as stored, must total exactly 100. The mapper
    itself never re-runs this check.
    """
    seen: set[str] = set()
    total = Decimal(0)
    for name, weight in definitions:
        if name in seen:
            raise ValidationError(f"Duplicate milestone '{name}'", milestone=name)
        seen.add(name)
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise ValidationError(
                f"Weight for '{name}' must be a number", milestone=name, weight=weight
            )
        if math.isnan(weight) or weight < 0 or weight > 100:
            raise ValidationError(
                f"Weight for '{name}' must be between 0 and 100",
                milestone=name,
                weight=weight,
            )
        total += Decimal(repr(quantize_weight(weight)))
    if not seen:
        raise ValidationError("Template must define at least one milestone")
    if total != 100:
        raise ValidationError(
            f"Weights must sum to 100% (got {float(total):g}%)", total=float(total)
        )


# ── Default catalog ──────────────────────────────────────────────────────────


def _discrete(*milestones: tuple[str, float, StandardCategory]) -> tuple[MilestoneDefinition, ...]:
    return tuple(MilestoneDefinition(name, weight, False, cat) for name, weight, cat in milestones)


_STANDARD_DISCRETE = _discrete(
    ("Receive", 10, _RCV),
    ("Install", 60, _INS),
    ("Punch", 10, _PCH),
    ("Test", 15, _TST),
    ("Restore", 5, _RST),
)

DEFAULT_TEMPLATES: dict[str, tuple[MilestoneDefinition, ...]] = {
    ComponentType.SPOOL.value: _discrete(
        ("Receive", 5, _RCV),
        ("Erect", 40, _INS),
        ("Connect", 40, _INS),
        ("Punch", 5, _PCH),
        ("Test", 5, _TST),
        ("Restore", 5, _RST),
    ),
    ComponentType.FIELD_WELD.value: _discrete(
        ("Fit-up", 10, _RCV),
        ("Weld Complete", 60, _INS),
        ("Punch", 10, _PCH),
        ("Test", 15, _TST),
        ("Restore", 5, _RST),
    ),
    ComponentType.SUPPORT.value: _STANDARD_DISCRETE,
    ComponentType.VALVE.value: _STANDARD_DISCRETE,
    ComponentType.FITTING.value: _STANDARD_DISCRETE,
    ComponentType.FLANGE.value: _STANDARD_DISCRETE,
    ComponentType.INSTRUMENT.value: _STANDARD_DISCRETE,
    ComponentType.TUBING.value: _STANDARD_DISCRETE,
    ComponentType.HOSE.value: _STANDARD_DISCRETE,
    ComponentType.MISC.value: _STANDARD_DISCRETE,
    # Hybrid workflow: the five install-phase milestones accept partial %
    ComponentType.THREADED_PIPE.value: (
        MilestoneDefinition("Fabricate", 16, True, _INS),
        MilestoneDefinition("Install", 16, True, _INS),
        MilestoneDefinition("Erect", 16, True, _INS),
        MilestoneDefinition("Connect", 16, True, _INS),
        MilestoneDefinition("Support", 16, True, _INS),
        MilestoneDefinition("Punch", 5, False, _PCH),
        MilestoneDefinition("Test", 10, False, _TST),
        MilestoneDefinition("Restore", 5, False, _RST),
    ),
}

DEFAULT_CATALOG = WeightCatalog(DEFAULT_TEMPLATES)


def default_catalog() -> WeightCatalog:
    return DEFAULT_CATALOG
