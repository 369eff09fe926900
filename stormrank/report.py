from __future__ import annotations

"""
stormrank report generator
--------------------------
Builds a DOCX report from a ranked category table (`RankedRow` list).

- One bar chart of shares per metric (matplotlib), then a ranked table.
- NaN shares mean the metric's total is zero; they are written as "n/a"
  and left out of the charts, never drawn as zero bars.
- python-docx / matplotlib are imported lazily so the rest of stormrank
  works without them.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import math
import os
import tempfile

from .models import METRIC_LABELS, METRICS, RankedRow


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Storm Damage Ranking"
    subtitle: str = "Harm by canonical event category"
    dataset_name: str = "NOAA Storm Data"
    # "working" or "full": which totals the shares were divided by
    denominator: str = "working"
    top_k: Optional[int] = None

    # How many categories to show per bar chart
    top_n: int = 10

    # Optional: list of CLI commands used to create the working set
    command_log: Optional[List[str]] = None


def _fmt_share(v: float) -> str:
    return "n/a" if math.isnan(v) else f"{v * 100:.2f}%"


def chart_series(rows: Sequence[RankedRow], metric: str, top_n: int) -> Tuple[List[str], List[float]]:
    """Largest shares for one metric (NaN shares skipped), largest first."""
    pairs = [(r.category, r.share(metric)) for r in rows if not math.isnan(r.share(metric))]
    pairs.sort(key=lambda p: (-p[1], p[0]))
    pairs = pairs[:top_n]
    return [c for c, _ in pairs], [v * 100 for _, v in pairs]


def generate_docx_report(
    rows: Sequence[RankedRow],
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """Generate a DOCX report with share charts for a ranked working set."""
    config = config or ReportConfig()

    # Lazy imports: only required when "report" is used.
    try:
        from docx import Document
        from docx.shared import Inches, Pt
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e

    if not rows:
        raise ValueError("No categories to report on (working set is empty).")

    # -----------------------------
    # 1) Charts: one horizontal bar chart per metric
    # -----------------------------
    with tempfile.TemporaryDirectory(prefix="stormrank_report_") as tmpdir:
        chart_paths: List[Tuple[str, str]] = []
        for metric in METRICS:
            labels, values = chart_series(rows, metric, config.top_n)
            if not labels:
                continue
            title = f"Share of {METRIC_LABELS[metric].lower()} by category"
            y = np.arange(len(labels))
            path = os.path.join(tmpdir, f"share_{metric}.png")
            fig = plt.figure(figsize=(7, 0.45 * len(labels) + 1.5))
            try:
                plt.barh(y, values, edgecolor="black", linewidth=0.6)
                plt.yticks(y, labels)
                plt.gca().invert_yaxis()
                plt.xlabel("Share (%)")
                plt.title(title)
                plt.tight_layout()
                plt.savefig(path, dpi=200)
            finally:
                plt.close(fig)
            chart_paths.append((title, path))

        # -----------------------------
        # 2) Build DOCX report
        # -----------------------------
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

        def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
            p = doc.add_paragraph()
            r = p.add_run(text)
            r.bold = bold
            r.italic = italic
            r.font.size = Pt(size)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        def _kv(key: str, value: str) -> None:
            p = doc.add_paragraph()
            r = p.add_run(f"{key}: ")
            r.bold = True
            p.add_run(value)

        _center_title(config.title, 22, bold=True)
        _center_title(config.subtitle, 12, italic=True)

        doc.add_paragraph("")
        _kv("Dataset", config.dataset_name)
        _kv("Categories in scope", str(len(rows)))
        if config.top_k is not None:
            _kv("Top-K floor", str(config.top_k))
        _kv("Share denominator",
            "all categories in the dataset" if config.denominator == "full" else "categories in this report")

        if config.command_log:
            doc.add_paragraph("")
            doc.add_heading("Command log (reproducibility)", level=1)
            for line in config.command_log:
                doc.add_paragraph(line, style="List Bullet")

        doc.add_paragraph("")
        doc.add_heading("Shares by metric", level=1)
        for title, path in chart_paths:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.5))

        doc.add_paragraph("")
        doc.add_heading("Ranked categories", level=1)
        t = doc.add_table(rows=1, cols=1 + 2 * len(METRICS))
        h = t.rows[0].cells
        h[0].text = "Category"
        for i, m in enumerate(METRICS):
            h[1 + 2 * i].text = METRIC_LABELS[m]
            h[2 + 2 * i].text = "Share"
        for r in rows:
            cells = t.add_row().cells
            cells[0].text = r.category
            for i, m in enumerate(METRICS):
                cells[1 + 2 * i].text = f"{r.value(m):,.0f}"
                cells[2 + 2 * i].text = _fmt_share(r.share(m))

        undefined = [METRIC_LABELS[m] for m in METRICS if any(math.isnan(r.share(m)) for r in rows)]
        if undefined:
            doc.add_paragraph("")
            doc.add_paragraph(
                "n/a: the total of " + ", ".join(undefined) + " is zero for this scope, "
                "so no share can be computed."
            )

        from . import __version__
        from datetime import datetime as _dt
        doc.add_paragraph("")
        doc.add_paragraph(f"stormrank version: {__version__}")
        doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        doc.save(out_path)
    return out_path
