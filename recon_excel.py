# recon_excel.py
# Purpose: Export reconciliation diff records as a styled multi-sheet Excel workbook.

import io
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from recon_core import DiffRecord

STATUS_MATCH = "Match"
STATUS_ONLY_IN_FILE1 = "OnlyInFile1"
STATUS_ONLY_IN_FILE2 = "OnlyInFile2"

KIND_LABELS = {
    "cell_mismatch": "Value mismatch",
    "column_only_in_file1": "Column only in file1",
    "column_only_in_file2": "Column only in file2",
    "missing_in_file2": "Row only in file1",
    "missing_in_file1": "Row only in file2",
}


@dataclass(frozen=True)
class WorkbookStyle:
    header_color: str = "BDD7EE"
    title_color: str = "DDEBF7"
    match_color: str = "C6EFCE"
    mismatch_color: str = "F8CBAD"
    only_left_color: str = "FFC7CE"
    only_right_color: str = "E2EFDA"
    max_col_width: int = 60

    def fill(self, color: str) -> PatternFill:
        return PatternFill(start_color=color, end_color=color, fill_type="solid")


DEFAULT_STYLE = WorkbookStyle()


def compare_headers(headers1: Sequence[str], headers2: Sequence[str]) -> List[Dict[str, Any]]:
    """Per-column presence in each file, file1 order first then file2-only columns."""
    in1, in2 = set(headers1), set(headers2)
    ordered: List[str] = []
    for name in list(headers1) + list(headers2):
        if name not in ordered:
            ordered.append(name)

    out = []
    for name in ordered:
        if name in in1 and name in in2:
            status = STATUS_MATCH
        elif name in in1:
            status = STATUS_ONLY_IN_FILE1
        else:
            status = STATUS_ONLY_IN_FILE2
        out.append({"column": name, "in_file1": name in in1, "in_file2": name in in2, "status": status})
    return out


def diff_counts(diffs: Iterable[DiffRecord]) -> Dict[str, int]:
    counts = {kind: 0 for kind in KIND_LABELS}
    for d in diffs:
        counts[d.kind] += 1
    return counts


def _append_text(ws: Worksheet, values: Sequence[Any]) -> None:
    """Append a row; strings are stored as literal text (no formulas, no control characters)."""
    ws.append([ILLEGAL_CHARACTERS_RE.sub("", v) if isinstance(v, str) else v for v in values])
    for cell in ws[ws.max_row]:
        if isinstance(cell.value, str):
            cell.data_type = "s"


def _style_header(ws: Worksheet, style: WorkbookStyle) -> None:
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.fill = style.fill(style.header_color)
        cell.alignment = Alignment(horizontal="center", vertical="center")


def _auto_width(ws: Worksheet, style: WorkbookStyle) -> None:
    for col_idx, col_cells in enumerate(ws.columns, start=1):
        max_len = max(len(str(c.value)) if c.value is not None else 0 for c in list(col_cells)[:5000])
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 3, style.max_col_width)


def _write_summary(
    ws: Worksheet,
    diffs: Sequence[DiffRecord],
    file1: str,
    file2: str,
    key_columns: Sequence[str],
    style: WorkbookStyle,
) -> None:
    counts = diff_counts(diffs)
    _append_text(ws, ["Metric", "Value"])
    for k, v in [
        ("File 1", file1),
        ("File 2", file2),
        ("Keys used", ", ".join(key_columns)),
        ("Total differences", len(diffs)),
        ("Value mismatches", counts["cell_mismatch"]),
        ("Column presence differences", counts["column_only_in_file1"] + counts["column_only_in_file2"]),
        ("Rows only in file1", counts["missing_in_file2"]),
        ("Rows only in file2", counts["missing_in_file1"]),
    ]:
        _append_text(ws, [k, v])
    _style_header(ws, style)
    for row in ws.iter_rows(min_row=2, max_col=1):
        row[0].fill = style.fill(style.title_color)
    ws.auto_filter.ref = f"A1:B{ws.max_row}"
    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["B"].width = min(max(len(file1), len(file2), 22) + 3, style.max_col_width)


def _write_headers(ws: Worksheet, headers1: Sequence[str], headers2: Sequence[str], style: WorkbookStyle) -> None:
    status_fill = {
        STATUS_MATCH: style.fill(style.match_color),
        STATUS_ONLY_IN_FILE1: style.fill(style.only_left_color),
        STATUS_ONLY_IN_FILE2: style.fill(style.only_right_color),
    }
    _append_text(ws, ["Column", "In File1", "In File2", "Status"])
    for entry in compare_headers(headers1, headers2):
        _append_text(ws, [
            entry["column"],
            "YES" if entry["in_file1"] else "NO",
            "YES" if entry["in_file2"] else "NO",
            entry["status"],
        ])
        ws.cell(row=ws.max_row, column=4).fill = status_fill[entry["status"]]
    _style_header(ws, style)
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = ws.dimensions
    _auto_width(ws, style)


def _write_differences(ws: Worksheet, diffs: Sequence[DiffRecord], style: WorkbookStyle) -> None:
    kind_fill = {
        "cell_mismatch": style.fill(style.mismatch_color),
        "column_only_in_file1": style.fill(style.only_left_color),
        "column_only_in_file2": style.fill(style.only_right_color),
        "missing_in_file2": style.fill(style.only_left_color),
        "missing_in_file1": style.fill(style.only_right_color),
    }
    _append_text(ws, ["Key", "Column", "File1", "File2", "Type"])
    for d in diffs:
        _append_text(ws, d.as_row() + [KIND_LABELS[d.kind]])
        row_ref = ws.max_row
        for j in range(1, 5):
            # Keep values as text (IDs with leading zeros etc.)
            ws.cell(row=row_ref, column=j).number_format = "@"
        ws.cell(row=row_ref, column=5).fill = kind_fill[d.kind]
    _style_header(ws, style)
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = ws.dimensions
    _auto_width(ws, style)


def write_excel(
    diffs: Sequence[DiffRecord],
    headers1: Sequence[str],
    headers2: Sequence[str],
    file1: str,
    file2: str,
    key_columns: Sequence[str] = (),
    style: WorkbookStyle = DEFAULT_STYLE,
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Summary"
    _write_summary(ws, diffs, os.path.basename(str(file1)), os.path.basename(str(file2)), key_columns, style)
    _write_headers(wb.create_sheet("Headers"), headers1, headers2, style)
    _write_differences(wb.create_sheet("Differences"), diffs, style)

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def export_result(result: Any, key_columns: Sequence[str], out_path: Optional[str] = None) -> bytes:
    """Workbook bytes for a ReconResult; also written to ``out_path`` when given."""
    data = write_excel(
        diffs=result.diffs,
        headers1=result.table1.header,
        headers2=result.table2.header,
        file1=result.table1.source or "file1",
        file2=result.table2.source or "file2",
        key_columns=key_columns,
    )
    if out_path:
        with open(out_path, "wb") as f:
            f.write(data)
    return data
