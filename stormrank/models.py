"""
Data model (records and rows)
=============================

Each row of the storm table becomes a `RawRecord`. The pipeline then derives:

    RawRecord -> NormalizedRecord -> CategorizedRecord -> AggregateRow -> RankedRow

Everything is immutable (`frozen=True`) so that a stage can never edit the
output of an earlier one; every step builds new values instead.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

# The four harm metrics, in display order.
METRICS = ("fatalities", "injuries", "property_damage", "crop_damage")

METRIC_LABELS = {
    "fatalities": "Fatalities",
    "injuries": "Injuries",
    "property_damage": "Property damage (US$)",
    "crop_damage": "Crop damage (US$)",
}


class UnknownMetricError(ValueError):
    pass


def check_metric(metric: str) -> str:
    """Normalize a metric name (`prop`, `Property_Damage`, ...) or raise."""
    m = str(metric).lower().strip().replace("-", "_")
    aliases = {
        "deaths": "fatalities", "fatal": "fatalities",
        "injured": "injuries",
        "prop": "property_damage", "property": "property_damage",
        "crop": "crop_damage", "crops": "crop_damage",
    }
    m = aliases.get(m, m)
    if m not in METRICS:
        raise UnknownMetricError(f"metric must be one of: {', '.join(METRICS)} (got {metric!r})")
    return m


@dataclass(frozen=True)
class RawRecord:
    """One row of the storm table, exactly as the loader read it.

    Coefficients stay untyped: a cell may hold text, and decoding (not the
    loader) decides what that text is worth.
    """
    event_label: str
    fatalities: Any
    injuries: Any
    property_coefficient: Any
    property_exponent_code: Optional[str]
    crop_coefficient: Any
    crop_exponent_code: Optional[str]


@dataclass(frozen=True)
class NormalizedRecord:
    """A record with both damage pairs decoded to plain US$ values (>= 0)."""
    event_label: str
    fatalities: float
    injuries: float
    property_damage: float
    crop_damage: float

    def is_harmless(self) -> bool:
        """True when all four metrics are zero (nothing to rank)."""
        return not (self.fatalities or self.injuries or self.property_damage or self.crop_damage)


@dataclass(frozen=True)
class CategorizedRecord:
    category: str
    fatalities: float
    injuries: float
    property_damage: float
    crop_damage: float


@dataclass(frozen=True)
class AggregateRow:
    """Per-category totals of the four metrics."""
    category: str
    total_fatalities: float = 0.0
    total_injuries: float = 0.0
    total_property_damage: float = 0.0
    total_crop_damage: float = 0.0

    def value(self, metric: str) -> float:
        return getattr(self, "total_" + check_metric(metric))


@dataclass(frozen=True)
class RankedRow(AggregateRow):
    """AggregateRow plus each metric's share of the denominator total.

    A share is NaN when the metric's denominator total is zero
    ("not applicable", which is different from a 0.0 share).
    """
    pct_fatalities: float = 0.0
    pct_injuries: float = 0.0
    pct_property_damage: float = 0.0
    pct_crop_damage: float = 0.0

    def share(self, metric: str) -> float:
        return getattr(self, "pct_" + check_metric(metric))
