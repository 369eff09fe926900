"""
stormrank Command Line Interface (CLI)
======================================

Run it like:

    python -m stormrank.cli --data "repdata_data_StormData.csv.bz2"

Loads the storm table once, aggregates it, then starts a small REPL over the
working set of categories. `--summary` prints the dominant-category table and
exits instead.

The CLI never modifies the dataset file.
"""

from __future__ import annotations
from typing import List, Optional, Sequence
import argparse
import logging
import math
import os
import shlex

from .classifier import classify
from .engine import DENOMINATORS, PipelineConfig, StormRank
from .loader import load_storm_table
from .models import METRICS, AggregateRow, RankedRow, check_metric

HELP = """
Commands:
  help
  stats
  reset
  undo
  redo

  categories [prefix]             categories in the working set
  labels "<Category>"             raw labels folded into a category
  classify "<label>"              show which category a raw label maps to

  dominant [k]                    keep categories reaching a top-k floor
  keep "<Category>" ...           keep only the named categories

  show [working|full]             shares of the working set (denominator scope)
  top <metric> [n]
  export csv|json "<path>" [working|full]
  report "<path.docx>" [working|full]
  quit

Metrics: fatalities, injuries, property_damage, crop_damage
"""

_LOG_COMMANDS = ("help", "show", "categories", "labels", "classify", "stats", "top", "quit")


def _fmt_share(v: float) -> str:
    return "n/a" if math.isnan(v) else f"{v * 100:6.2f}%"


def _fmt_num(v: float) -> str:
    return f"{v:,.0f}"


def _print_ranked(rows: Sequence[RankedRow]) -> None:
    if not rows:
        print("(working set is empty)")
        return
    width = max(len(r.category) for r in rows)
    print(f"{'Category':<{width}} | " + " | ".join(f"{m:>18}" for m in METRICS))
    for r in rows:
        cells = [f"{_fmt_num(r.value(m)):>10} {_fmt_share(r.share(m)):>7}" for m in METRICS]
        print(f"{r.category:<{width}} | " + " | ".join(cells))


def _print_rows(rows: Sequence[AggregateRow], metric: str) -> None:
    for i, r in enumerate(rows, 1):
        print(f"{i:>3}. {r.category}: {_fmt_num(r.value(metric))}")


def _scope(parts: List[str], idx: int, default: str) -> str:
    scope = parts[idx].lower() if len(parts) > idx else default
    if scope not in DENOMINATORS:
        raise ValueError(f"scope must be: {' | '.join(DENOMINATORS)}")
    return scope


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stormrank", description="Rank storm event categories by harm.")
    ap.add_argument("--data", required=True, help="Path to Storm Data CSV (.csv/.csv.bz2) or XLSX")
    ap.add_argument("--top-k", type=int, default=10, help="K for top-K floors (default: 10)")
    ap.add_argument("--denominator", choices=DENOMINATORS, default="working",
                    help="Share denominator: working set or full table")
    ap.add_argument("--workers", type=int, default=1, help="Processes for aggregation (default: 1)")
    ap.add_argument("--nrows", type=int, default=None, help="Only read the first N rows")
    ap.add_argument("--summary", action="store_true", help="Print the dominant categories and exit")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the stormrank CLI.

    1) Load dataset
    2) Decode, classify, aggregate
    3) Print a summary or start an interactive REPL
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Loading dataset...")
    records = load_storm_table(args.data, nrows=args.nrows)
    config = PipelineConfig(top_k=args.top_k, denominator=args.denominator, workers=args.workers)
    engine = StormRank(records, config=config, dataset_path=args.data)
    print(f"Loaded {len(records)} records: {engine.kept} with harm in "
          f"{len(engine.aggregates)} categories. Type 'help' for commands.")

    if args.summary:
        handle(engine, "dominant")
        handle(engine, "show")
        return

    while True:
        try:
            line = input("stormrank> ")
        except EOFError:
            break
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("quit", "exit"):
            break
        # Keep a lightweight log of state-changing commands for the report.
        if stripped.split()[0].lower() not in _LOG_COMMANDS:
            engine.command_log.append(stripped)
        try:
            handle(engine, stripped)
        except Exception as e:
            print(f"Error: {e}")


def handle(engine: StormRank, line: str) -> None:
    """Handle one CLI command line by calling the matching engine method."""
    parts = shlex.split(line)
    if not parts:
        return
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "stats":
        print(f"Records with harm: {engine.kept} | harmless dropped: {engine.dropped}")
        print(f"Distinct labels: {len(engine.vocabulary)} | Categories: {len(engine.aggregates)}"
              f" | Working set: {len(engine.state.categories)}")
        return

    if cmd == "reset":
        engine.reset()
        print(f"Working set reset. Size={len(engine.state.categories)}")
        return

    if cmd == "undo":
        print("Undone." if engine.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if engine.redo() else "Nothing to redo.")
        return

    if cmd == "categories":
        prefix = parts[1].lower() if len(parts) >= 2 else ""
        for c in engine.state.categories:
            if c.lower().startswith(prefix):
                print(c)
        return

    if cmd == "labels":
        if len(parts) < 2:
            print('Usage: labels "<Category>"')
            return
        category = parts[1]
        labels = sorted(l for l, c in engine.vocabulary.items() if c.lower() == category.lower())
        for l in labels[:50]:
            print(l)
        if len(labels) > 50:
            print(f"... ({len(labels)} total, showing 50)")
        return

    if cmd == "classify":
        label = " ".join(parts[1:])
        print(f"{label!r} -> {classify(label, engine.config.rules)}")
        return

    if cmd == "dominant":
        k = int(parts[1]) if len(parts) >= 2 else None
        floors = engine.filter_dominant(k)
        shown = ", ".join(f"{m}>={_fmt_num(f) if not math.isnan(f) else 'n/a'}" for m, f in floors.items())
        print(f"Kept dominant categories ({shown}). Size={len(engine.state.categories)}")
        return

    if cmd == "keep":
        engine.keep(parts[1:])
        print(f"Kept {len(engine.state.categories)} categories.")
        return

    if cmd == "show":
        scope = _scope(parts, 1, engine.config.denominator)
        print(f"Shares over {scope} totals:")
        _print_ranked(engine.ranked(scope))
        return

    if cmd == "top":
        if len(parts) < 2:
            print("Usage: top <metric> [n]")
            return
        metric = check_metric(parts[1])
        n = int(parts[2]) if len(parts) >= 3 else 10
        print(f"Top {n} by {metric}:")
        _print_rows(engine.top(metric, n), metric)
        return

    if cmd == "export":
        # export <csv|json> "<path>" [working|full]
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt, out_path = parts[1].lower(), parts[2]
        scope = _scope(parts, 3, engine.config.denominator)
        if not engine.state.categories:
            print("Nothing to export: working set is empty.")
            return
        if fmt == "csv":
            engine.export_csv(out_path, scope)
        elif fmt == "json":
            engine.export_json(out_path, scope)
        else:
            print("Unknown export format. Use: csv or json")
            return
        print(f"Exported {fmt.upper()} to {out_path}")
        return

    if cmd == "report":
        # report "<path.docx>" [working|full]
        if len(parts) < 2:
            print('Usage: report "<path.docx>" [working|full]')
            return
        from .report import ReportConfig, generate_docx_report
        path = parts[1]
        scope = _scope(parts, 2, engine.config.denominator)
        cfg = ReportConfig(
            dataset_name=os.path.basename(engine.dataset_path) if engine.dataset_path else "Storm Data",
            denominator=scope,
            top_k=engine.config.top_k,
            command_log=engine.command_log,
        )
        generate_docx_report(engine.ranked(scope), path, config=cfg)
        print(f"Report written to {path}")
        return

    print("Unknown command. Type 'help'.")


if __name__ == "__main__":
    main()
