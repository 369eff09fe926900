"""
Ranking (dominant categories and percentage shares)
===================================================

Works on a list of `AggregateRow` values, the *working set*. Nothing here
keeps state: floors and denominators are passed in explicitly, so the same
rows can be ranked against different thresholds or totals.

- `threshold`      top-K floor: the smallest of the k largest values
- `filter_dominant` rows that reach the floor of at least one metric
- `percentages`    each metric divided by its total over a denominator set

Shares and denominators
-----------------------
`percentages(rows)` divides by the totals of `rows` themselves, so each
share column sums to 1.0. `percentages(dominant, denominator=all_rows)`
divides by the totals of the full table instead; the shares then sum to the
fraction of harm the dominant categories account for (less than 1.0).

A metric whose denominator total is zero has no meaningful share. Every row
then gets NaN for it, never 0.0.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import math

from .dsa import k_largest, merge_sort
from .models import METRICS, AggregateRow, RankedRow, check_metric


def _rows(rows: Iterable[AggregateRow]) -> List[AggregateRow]:
    if isinstance(rows, Mapping):
        return list(rows.values())
    return list(rows)


def threshold(rows: Iterable[AggregateRow], metric: str, k: int) -> float:
    """Top-K floor: the minimum among the k largest values of `metric`.

    With fewer than k rows this is the minimum over all rows; with no rows
    it is NaN.
    """
    metric = check_metric(metric)
    top = k_largest((r.value(metric) for r in _rows(rows)), k)
    if not top:
        return math.nan
    return top[-1]


def thresholds(rows: Iterable[AggregateRow], k: int) -> Dict[str, float]:
    """Top-K floors for all four metrics."""
    rows = _rows(rows)
    return {m: threshold(rows, m, k) for m in METRICS}


def reaches(value: float, floor: float) -> bool:
    """True when `value` makes a row dominant for a metric with this floor.

    The floor is inclusive (ties at the K-th value all count), but a zero
    value never counts: with a floor of 0 the value must exceed it.
    """
    if math.isnan(floor):
        return False
    return value > floor or (value == floor and floor > 0)


def filter_dominant(rows: Iterable[AggregateRow], floors: Mapping[str, float]) -> List[AggregateRow]:
    """Rows that reach the floor of at least one metric in `floors`."""
    checked = {check_metric(m): f for m, f in floors.items()}
    return [
        r for r in _rows(rows)
        if any(reaches(r.value(m), f) for m, f in checked.items())
    ]


def totals(rows: Iterable[AggregateRow]) -> Dict[str, float]:
    rows = _rows(rows)
    return {m: math.fsum(r.value(m) for r in rows) for m in METRICS}


def percentages(
    rows: Iterable[AggregateRow],
    denominator: Optional[Iterable[AggregateRow]] = None,
) -> List[RankedRow]:
    """Attach per-metric shares to each row.

    `denominator` is the row set whose totals divide each metric; it defaults
    to `rows` itself. A zero total yields NaN shares for that metric.
    """
    rows = _rows(rows)
    denom = totals(rows if denominator is None else denominator)

    def share(v: float, metric: str) -> float:
        t = denom[metric]
        return v / t if t else math.nan

    return [
        RankedRow(
            category=r.category,
            total_fatalities=r.total_fatalities,
            total_injuries=r.total_injuries,
            total_property_damage=r.total_property_damage,
            total_crop_damage=r.total_crop_damage,
            pct_fatalities=share(r.total_fatalities, "fatalities"),
            pct_injuries=share(r.total_injuries, "injuries"),
            pct_property_damage=share(r.total_property_damage, "property_damage"),
            pct_crop_damage=share(r.total_crop_damage, "crop_damage"),
        )
        for r in rows
    ]


def share_totals(ranked: Iterable[RankedRow]) -> Dict[str, float]:
    """Sum of each share column (NaN if the column is undefined)."""
    ranked = list(ranked)
    out: Dict[str, float] = {}
    for m in METRICS:
        shares = [r.share(m) for r in ranked]
        out[m] = math.nan if any(math.isnan(s) for s in shares) else math.fsum(shares)
    return out


def rank(rows: Iterable[AggregateRow], metric: str) -> List[AggregateRow]:
    """Rows sorted by `metric`, largest first; ties ordered by category name."""
    metric = check_metric(metric)
    by_name = merge_sort(_rows(rows), key=lambda r: r.category)
    return merge_sort(by_name, key=lambda r: r.value(metric), reverse=True)


def top(rows: Iterable[AggregateRow], metric: str, n: int) -> List[AggregateRow]:
    return rank(rows, metric)[:max(n, 0)]


def combined_order(rows: Sequence[AggregateRow]) -> List[AggregateRow]:
    """Display order: fatalities first, then injuries, property, crop damage."""
    by_name = merge_sort(list(rows), key=lambda r: r.category)
    return merge_sort(
        by_name,
        key=lambda r: (r.total_fatalities, r.total_injuries, r.total_property_damage, r.total_crop_damage),
        reverse=True,
    )
