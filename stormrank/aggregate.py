"""
Aggregation (categorized records -> per-category totals)
========================================================

Groups records by category and sums the four metrics independently.

Sums are kept as exact fractions while folding and rounded to float once at
the end, so the totals do not depend on record order or on how the records
were split into shards. A shard returns its exact `Partial`; `combine` adds
partials and `finish` turns the result into `AggregateRow` values.
"""

from __future__ import annotations
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .models import AggregateRow, CategorizedRecord

RecordLike = Union[CategorizedRecord, Tuple[str, float, float, float, float]]

# category -> [fatalities, injuries, property_damage, crop_damage], exact
Partial = Dict[str, List[Fraction]]


def _unpack(rec: RecordLike) -> Tuple[str, float, float, float, float]:
    if isinstance(rec, CategorizedRecord):
        return rec.category, rec.fatalities, rec.injuries, rec.property_damage, rec.crop_damage
    category, fat, inj, prop, crop = rec
    return category, fat, inj, prop, crop


def _zero() -> List[Fraction]:
    return [Fraction(0), Fraction(0), Fraction(0), Fraction(0)]


def accumulate(records: Iterable[RecordLike], into: Optional[Partial] = None) -> Partial:
    """Fold records into exact per-category sums (optionally onto `into`)."""
    sums: Partial = into if into is not None else {}
    for rec in records:
        category, *values = _unpack(rec)
        acc = sums.setdefault(category, _zero())
        for i, v in enumerate(values):
            acc[i] += Fraction(v)
    return sums


def combine(*partials: Partial) -> Partial:
    """Add exact partial sums category-wise."""
    out: Partial = {}
    for part in partials:
        for category, values in part.items():
            acc = out.setdefault(category, _zero())
            for i, v in enumerate(values):
                acc[i] += v
    return out


def finish(partial: Partial) -> Dict[str, AggregateRow]:
    return {
        c: AggregateRow(
            category=c,
            total_fatalities=float(v[0]),
            total_injuries=float(v[1]),
            total_property_damage=float(v[2]),
            total_crop_damage=float(v[3]),
        )
        for c, v in partial.items()
    }


def aggregate(records: Iterable[RecordLike]) -> Dict[str, AggregateRow]:
    """Sum fatalities, injuries, property and crop damage per category.

    Accepts `CategorizedRecord` values or plain 5-tuples
    `(category, fatalities, injuries, property_damage, crop_damage)`.
    Empty input gives an empty mapping.
    """
    return finish(accumulate(records))


def merge(*tables: Dict[str, AggregateRow]) -> Dict[str, AggregateRow]:
    """Combine finished aggregate tables by summing matching categories.

    The float totals are added exactly, so the merge order does not matter.
    """
    partial: Partial = {}
    for table in tables:
        for category, row in table.items():
            acc = partial.setdefault(category, _zero())
            acc[0] += Fraction(row.total_fatalities)
            acc[1] += Fraction(row.total_injuries)
            acc[2] += Fraction(row.total_property_damage)
            acc[3] += Fraction(row.total_crop_damage)
    return finish(partial)
