"""
Pipeline driver (stormrank)
===========================

This is where the stages meet:

1) Decode magnitudes      RawRecord -> NormalizedRecord  (harmless rows dropped)
2) Classify labels        NormalizedRecord -> CategorizedRecord
3) Aggregate              -> Dict[category, AggregateRow]
4) Rank                   working set -> dominant subset -> RankedRow shares

The engine keeps a *working set*: the category names currently being ranked.
It starts as every category; `filter_dominant` and `keep` narrow it, and
`undo` / `redo` walk back and forth through earlier working sets (stacks of
snapshots, as a view history).

Steps 1-3 have no cross-record dependency. With `workers > 1` the raw records
are cut into shards, each shard is decoded, classified and aggregated in its
own process, and the partial tables are merged.
"""

from __future__ import annotations
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import csv
import json
import logging
import math

from .aggregate import Partial, accumulate, combine, finish
from .classifier import RULES, Rule, classify
from .dsa import chunked
from .magnitude import normalize_record
from .models import METRICS, AggregateRow, CategorizedRecord, RankedRow, RawRecord
from . import ranking

log = logging.getLogger(__name__)

DENOMINATORS = ("working", "full")


@dataclass
class PipelineConfig:
    """Knobs for one pipeline run.

    top_k        K used for top-K floors when picking dominant categories
    denominator  "working": shares over the ranked rows themselves
                 "full": shares over every category in the dataset
    workers      >1 runs decoding/classification/aggregation in a process pool
    shard_size   records per shard in parallel mode
    """
    top_k: int = 10
    denominator: str = "working"
    workers: int = 1
    shard_size: int = 50_000
    rules: Sequence[Rule] = RULES


@dataclass
class ShardResult:
    """Output of one shard: exact partial totals plus bookkeeping."""
    partial: Partial
    vocabulary: Dict[str, str]
    kept: int
    dropped: int


def categorize(
    records: Iterable[RawRecord],
    rules: Sequence[Rule] = RULES,
    vocabulary: Optional[Dict[str, str]] = None,
) -> Iterator[CategorizedRecord]:
    """Decode and classify records, skipping those with no harm at all.

    `vocabulary` (label -> category) is filled as labels are first seen so
    each distinct label is classified once.
    """
    vocab = vocabulary if vocabulary is not None else {}
    for raw in records:
        norm = normalize_record(raw)
        if norm.is_harmless():
            continue
        label = norm.event_label
        category = vocab.get(label)
        if category is None:
            category = vocab[label] = classify(label, rules)
        yield CategorizedRecord(
            category=category,
            fatalities=norm.fatalities,
            injuries=norm.injuries,
            property_damage=norm.property_damage,
            crop_damage=norm.crop_damage,
        )


def summarize_shard(records: Sequence[RawRecord], rules: Sequence[Rule] = RULES) -> ShardResult:
    vocab: Dict[str, str] = {}
    categorized = list(categorize(records, rules, vocab))
    return ShardResult(
        partial=accumulate(categorized),
        vocabulary=vocab,
        kept=len(categorized),
        dropped=len(records) - len(categorized),
    )


def _run_shards(records: Sequence[RawRecord], config: PipelineConfig) -> List[ShardResult]:
    shards = list(chunked(records, config.shard_size))
    if config.workers <= 1 or len(shards) <= 1:
        return [summarize_shard(s, config.rules) for s in shards]
    log.info("Processing %d shards with %d workers", len(shards), config.workers)
    with ProcessPoolExecutor(max_workers=config.workers) as pool:
        return list(pool.map(summarize_shard, shards, [config.rules] * len(shards)))


@dataclass
class WorkingSet:
    """Category names currently being ranked (like a view)."""
    categories: List[str]


@dataclass
class StormRank:
    """Storm damage ranking engine.

    Holds the aggregated table for one dataset and a working set over it.
    Filters change `state.categories` only; the aggregates never change.
    """
    records: Sequence[RawRecord]
    config: PipelineConfig = field(default_factory=PipelineConfig)
    dataset_path: Optional[str] = None
    # Stores CLI commands (for reproducibility in reports)
    command_log: List[str] = field(default_factory=list)

    aggregates: Dict[str, AggregateRow] = field(init=False)
    vocabulary: Dict[str, str] = field(init=False)
    kept: int = field(init=False, default=0)
    dropped: int = field(init=False, default=0)
    state: WorkingSet = field(init=False)

    # Stacks for undo/redo (store snapshots of the working set)
    _undo: List[List[str]] = field(default_factory=list, init=False)
    _redo: List[List[str]] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        if self.config.denominator not in DENOMINATORS:
            raise ValueError(f"denominator must be one of: {', '.join(DENOMINATORS)}")
        results = _run_shards(list(self.records), self.config)
        self.aggregates = finish(combine(*(r.partial for r in results)))
        self.vocabulary = {}
        for r in results:
            self.vocabulary.update(r.vocabulary)
        self.kept = sum(r.kept for r in results)
        self.dropped = sum(r.dropped for r in results)
        self.state = WorkingSet(categories=sorted(self.aggregates))
        log.info(
            "Aggregated %d records into %d categories (%d harmless records dropped, %d distinct labels)",
            self.kept, len(self.aggregates), self.dropped, len(self.vocabulary),
        )

    # ---------------- History (Stacks) ----------------
    def _push_history(self) -> None:
        self._undo.append(self.state.categories[:])
        self._redo.clear()

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.state.categories[:])
        self.state.categories = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.state.categories[:])
        self.state.categories = self._redo.pop()
        return True

    # ---------------- Working set ----------------
    def reset(self) -> None:
        """Reset the working set to every category."""
        self._push_history()
        self.state = WorkingSet(categories=sorted(self.aggregates))

    def working_rows(self) -> List[AggregateRow]:
        return [self.aggregates[c] for c in self.state.categories]

    def all_rows(self) -> List[AggregateRow]:
        return [self.aggregates[c] for c in sorted(self.aggregates)]

    def floors(self, k: Optional[int] = None) -> Dict[str, float]:
        """Top-K floors of the current working set."""
        return ranking.thresholds(self.working_rows(), self.config.top_k if k is None else k)

    def filter_dominant(self, k: Optional[int] = None) -> Dict[str, float]:
        """Narrow the working set to categories that reach a top-K floor.

        Returns the floors used so callers can show them.
        """
        floors = self.floors(k)
        self._push_history()
        kept = ranking.filter_dominant(self.working_rows(), floors)
        self.state.categories = [r.category for r in kept]
        log.debug("Dominant filter floors=%s kept=%d", floors, len(kept))
        return floors

    def keep(self, categories: Iterable[str]) -> None:
        """Narrow the working set to the named categories (unknown names ignored)."""
        wanted = {c.lower() for c in categories}
        self._push_history()
        self.state.categories = [c for c in self.state.categories if c.lower() in wanted]

    # ---------------- Output operations ----------------
    def ranked(self, denominator: Optional[str] = None) -> List[RankedRow]:
        """Shares of the working rows, in display order.

        denominator="working" divides by the working-set totals,
        denominator="full" by the totals of every category.
        """
        scope = denominator or self.config.denominator
        if scope not in DENOMINATORS:
            raise ValueError(f"denominator must be one of: {', '.join(DENOMINATORS)}")
        rows = ranking.combined_order(self.working_rows())
        denom = self.all_rows() if scope == "full" else rows
        return ranking.percentages(rows, denominator=denom)

    def top(self, metric: str, n: int = 10) -> List[AggregateRow]:
        return ranking.top(self.working_rows(), metric, n)

    def export_csv(self, path: str, denominator: Optional[str] = None) -> None:
        rows = self.ranked(denominator)
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["category"]
                       + [f"total_{m}" for m in METRICS]
                       + [f"pct_{m}" for m in METRICS])
            for r in rows:
                # NaN share -> empty cell ("not applicable", not zero)
                w.writerow([r.category]
                           + [r.value(m) for m in METRICS]
                           + ["" if math.isnan(r.share(m)) else r.share(m) for m in METRICS])

    def export_json(self, path: str, denominator: Optional[str] = None) -> None:
        """Export the ranked working set to a JSON file (NaN shares become null)."""
        payload = [
            {
                "category": r.category,
                "totals": {m: r.value(m) for m in METRICS},
                "shares": {m: (None if math.isnan(r.share(m)) else r.share(m)) for m in METRICS},
            }
            for r in self.ranked(denominator)
        ]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)


def run_pipeline(
    records: Sequence[RawRecord],
    k: int = 10,
    denominator: str = "working",
    workers: int = 1,
) -> Tuple[List[RankedRow], Dict[str, float]]:
    """Aggregate, keep the dominant categories, and compute their shares.

    Returns the ranked rows and the floors that selected them.
    """
    engine = StormRank(records, PipelineConfig(top_k=k, denominator=denominator, workers=workers))
    floors = engine.filter_dominant()
    return engine.ranked(), floors
