# recon_report.py
# Purpose: Bounded terminal view of reconciliation diff records.

from dataclasses import dataclass, field
from typing import List, Sequence

import pandas as pd

from recon_core import DiffRecord

NO_DIFFERENCES = "✅ No differences found."
ELLIPSIS = "..."
REPORT_COLUMNS = ["key", "column", "file1", "file2"]


@dataclass
class ReportView:
    rows: List[DiffRecord] = field(default_factory=list)
    total: int = 0
    hidden: int = 0
    truncated: bool = False
    summary: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.total == 0


def truncate_cell(value: str, max_width: int) -> str:
    if len(value) <= max_width:
        return value
    return value[: max(max_width - 3, 0)] + ELLIPSIS


def _truncate_record(diff: DiffRecord, max_width: int) -> DiffRecord:
    return DiffRecord(
        key=truncate_cell(diff.key, max_width),
        column=truncate_cell(diff.column, max_width),
        file1=truncate_cell(diff.file1, max_width),
        file2=truncate_cell(diff.file2, max_width),
    )


def elision_marker(hidden: int) -> DiffRecord:
    return DiffRecord(
        key=ELLIPSIS,
        column=f"... ({hidden} more rows) ...",
        file1=ELLIPSIS,
        file2=ELLIPSIS,
    )


def format_report(
    diffs: Sequence[DiffRecord],
    max_rows: int = 20,
    max_cell_width: int = 30,
    no_truncate: bool = False,
) -> ReportView:
    """Window the diff records into head + elision marker + tail.

    With ``no_truncate`` every record is kept as-is and no summary lines are added.
    """
    total = len(diffs)
    if total == 0:
        return ReportView()
    if no_truncate:
        return ReportView(rows=list(diffs), total=total)

    cells = [_truncate_record(d, max_cell_width) for d in diffs]

    if total <= max_rows:
        return ReportView(
            rows=cells,
            total=total,
            summary=[f"📊 Total differences: {total}"],
        )

    head_rows = max_rows // 2
    tail_rows = max(max_rows - head_rows - 1, 0)
    hidden = total - max_rows

    # Tail never reaches back into the head window
    remaining = cells[head_rows:]
    tail = remaining[len(remaining) - min(tail_rows, len(remaining)):] if tail_rows else []
    rows = cells[:head_rows] + [elision_marker(hidden)] + tail

    return ReportView(
        rows=rows,
        total=total,
        hidden=hidden,
        truncated=True,
        summary=[
            f"📊 Summary: {total} total differences found",
            f"   Showing {max_rows} rows (use --max-rows to adjust or --no-truncate to show all)",
        ],
    )


def to_frame(view: ReportView) -> pd.DataFrame:
    return pd.DataFrame([d.as_row() for d in view.rows], columns=REPORT_COLUMNS)


def render_report(view: ReportView) -> str:
    if view.empty:
        return NO_DIFFERENCES
    text = to_frame(view).to_string(index=False)
    if view.summary:
        text += "\n\n" + "\n".join(view.summary)
    return text
