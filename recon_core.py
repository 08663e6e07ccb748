# recon_core.py
# Purpose: Reconcile two CSV/Excel tables by key column(s) and produce diff records.

import logging
import zipfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"
MISSING_IN_FILE1 = "[missing in file1]"
MISSING_IN_FILE2 = "[missing in file2]"
COLUMN_NOT_IN_FILE1 = "[column not in file1]"
COLUMN_NOT_IN_FILE2 = "[column not in file2]"
PREVIEW_WIDTH = 50


class ReconConfig:
    def __init__(
        self,
        # Keys / columns
        key_columns: Optional[List[str]] = None,
        ignore_columns: Optional[List[str]] = None,

        # Terminal report
        max_rows: int = 20,
        max_cell_width: int = 30,
        no_truncate: bool = False,

        # Excel inputs
        sheet_left: Optional[str] = None,
        sheet_right: Optional[str] = None,
    ):
        self.key_columns = list(key_columns or [])
        self.ignore_columns = list(ignore_columns or [])
        self.max_rows = max_rows
        self.max_cell_width = max_cell_width
        self.no_truncate = no_truncate
        self.sheet_left = sheet_left
        self.sheet_right = sheet_right

    def validate(self) -> "ReconConfig":
        if not self.key_columns:
            raise ValueError("At least one key column is required.")
        if self.max_rows < 0:
            raise ValueError(f"max_rows must be >= 0, got {self.max_rows}")
        if self.max_cell_width < 0:
            raise ValueError(f"max_cell_width must be >= 0, got {self.max_cell_width}")
        return self


# ---------- Errors ----------
class ReconError(ValueError):
    """Fatal reconciliation error; aborts the run."""


class TableLoadError(ReconError):
    def __init__(self, source: Any, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not load table '{source}': {reason}")


class UnknownKeyColumnError(ReconError):
    def __init__(self, column: str, source: Optional[str] = None):
        self.column = column
        self.source = source
        where = f" in '{source}'" if source else ""
        super().__init__(f"Key column '{column}' not found{where}")


# ---------- Table source ----------
@dataclass
class Table:
    header: List[str]
    rows: List[List[str]]
    source: Optional[str] = None

    def position(self, name: str) -> Optional[int]:
        """Index of the first header equal to ``name``, or None."""
        for i, h in enumerate(self.header):
            if h == name:
                return i
        return None

    @classmethod
    def from_frame(cls, df: pd.DataFrame, source: Optional[str] = None) -> "Table":
        df = df.fillna("")
        header = [str(c) for c in df.columns]
        rows = [[str(v) for v in row] for row in df.itertuples(index=False, name=None)]
        return cls(header=header, rows=rows, source=source)


def _source_name(source: Any) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return getattr(source, "name", "uploaded")


def load_table(source: Any, sheet: Optional[str] = None) -> Table:
    """Read a CSV/TXT/XLSX path or file-like into a Table of strings.

    Short rows come back padded with empty strings; every value stays text.
    """
    name = _source_name(source)
    # Reset pointer for file-like
    if hasattr(source, "seek"):
        source.seek(0)

    try:
        if name.lower().endswith((".csv", ".txt")):
            df = pd.read_csv(source, dtype=str, keep_default_na=False, index_col=False)
        else:
            df = pd.read_excel(
                source, sheet_name=sheet or 0, dtype=str, keep_default_na=False, engine="openpyxl"
            )
    except (OSError, ValueError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise TableLoadError(name, str(exc)) from exc

    if isinstance(df, dict):  # dict of sheets → pick first
        df = df[next(iter(df))]

    table = Table.from_frame(df, source=name)
    logger.debug("Loaded %s: %d rows, %d columns", table.source, len(table.rows), len(table.header))
    return table


# ---------- Row indexer ----------
@dataclass
class RowIndex:
    header: List[str]
    key_columns: List[str]
    key_positions: List[int]
    rows: Dict[str, List[str]] = field(default_factory=dict)
    collisions: int = 0
    duplicate_keys: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __contains__(self, key: str) -> bool:
        return key in self.rows

    def get(self, key: str) -> Optional[List[str]]:
        return self.rows.get(key)

    def keys(self):
        return self.rows.keys()


def _field(row: Sequence[str], pos: Optional[int]) -> str:
    if pos is None or pos >= len(row):
        return ""
    return row[pos]


def composite_key(row: Sequence[str], positions: Sequence[int]) -> str:
    return KEY_SEPARATOR.join(_field(row, i) for i in positions)


def build_row_index(table: Table, key_columns: Sequence[str]) -> RowIndex:
    """Map composite key → row; a later row silently replaces an earlier one with the same key."""
    if not key_columns:
        raise ValueError("At least one key column is required.")

    positions = []
    for name in key_columns:
        pos = table.position(name)
        if pos is None:
            raise UnknownKeyColumnError(name, table.source)
        positions.append(pos)

    index = RowIndex(header=list(table.header), key_columns=list(key_columns), key_positions=positions)
    seen_dupes = set()
    for row in table.rows:
        key = composite_key(row, positions)
        if key in index.rows:
            index.collisions += 1
            if key not in seen_dupes:
                seen_dupes.add(key)
                index.duplicate_keys.append(key)
        index.rows[key] = row

    if index.collisions:
        logger.info(
            "%s: %d row(s) overwritten by later rows sharing a key (%d distinct keys)",
            table.source, index.collisions, len(index.duplicate_keys),
        )
    logger.debug("Indexed %s: %d unique keys", table.source, len(index.rows))
    return index


# ---------- Column reconciler ----------
class ColumnRole(str, Enum):
    KEY = "key"
    IGNORED = "ignored"
    COMPARABLE = "comparable"
    LEFT_ONLY = "left_only"
    RIGHT_ONLY = "right_only"


@dataclass(frozen=True)
class CellResolution:
    file1: str
    file2: str
    different: bool


def classify_columns(
    headers1: Sequence[str],
    headers2: Sequence[str],
    key_columns: Iterable[str],
    ignore_columns: Iterable[str] = (),
) -> Dict[str, ColumnRole]:
    keys = set(key_columns)
    ignored = set(ignore_columns)
    in1, in2 = set(headers1), set(headers2)

    roles: Dict[str, ColumnRole] = {}
    for col in sorted(in1 | in2):
        if col in keys:
            roles[col] = ColumnRole.KEY
        elif col in ignored:
            roles[col] = ColumnRole.IGNORED
        elif col in in1 and col in in2:
            roles[col] = ColumnRole.COMPARABLE
        elif col in in1:
            roles[col] = ColumnRole.LEFT_ONLY
        else:
            roles[col] = ColumnRole.RIGHT_ONLY
    return roles


def header_positions(header: Sequence[str]) -> Dict[str, int]:
    """Name → first position; duplicate names resolve to the first match."""
    positions: Dict[str, int] = {}
    for i, name in enumerate(header):
        positions.setdefault(name, i)
    return positions


def resolve_cell(
    column: str,
    role: ColumnRole,
    row1: Sequence[str],
    row2: Sequence[str],
    positions1: Dict[str, int],
    positions2: Dict[str, int],
) -> CellResolution:
    v1 = _field(row1, positions1.get(column))
    v2 = _field(row2, positions2.get(column))
    if role == ColumnRole.COMPARABLE:
        return CellResolution(v1, v2, v1 != v2)
    if role == ColumnRole.LEFT_ONLY:
        return CellResolution(v1, COLUMN_NOT_IN_FILE2, True)
    if role == ColumnRole.RIGHT_ONLY:
        return CellResolution(COLUMN_NOT_IN_FILE1, v2, True)
    # KEY / IGNORED never count as differences
    return CellResolution(v1, v2, False)


# ---------- Diff engine ----------
@dataclass(frozen=True)
class DiffRecord:
    key: str
    column: str
    file1: str
    file2: str

    @property
    def kind(self) -> str:
        if self.column == MISSING_IN_FILE2:
            return "missing_in_file2"
        if self.column == MISSING_IN_FILE1:
            return "missing_in_file1"
        if self.file2 == COLUMN_NOT_IN_FILE2:
            return "column_only_in_file1"
        if self.file1 == COLUMN_NOT_IN_FILE1:
            return "column_only_in_file2"
        return "cell_mismatch"

    def as_row(self) -> List[str]:
        return [self.key, self.column, self.file1, self.file2]


def row_preview(row: Sequence[str], width: int = PREVIEW_WIDTH) -> str:
    text = ",".join(row)
    if len(text) >= width:
        return text[: width - 3] + "..."
    return text


def reconcile(
    index1: RowIndex,
    index2: RowIndex,
    headers1: Sequence[str],
    headers2: Sequence[str],
    key_columns: Iterable[str],
    ignore_columns: Iterable[str] = (),
) -> List[DiffRecord]:
    """Walk the union of keys (sorted) and emit one record per divergence."""
    roles = classify_columns(headers1, headers2, key_columns, ignore_columns)
    compared = [(c, r) for c, r in roles.items() if r not in (ColumnRole.KEY, ColumnRole.IGNORED)]
    pos1 = header_positions(headers1)
    pos2 = header_positions(headers2)

    diffs: List[DiffRecord] = []
    for key in sorted(set(index1.keys()) | set(index2.keys())):
        r1 = index1.get(key)
        r2 = index2.get(key)
        if r1 is not None and r2 is not None:
            for col, role in compared:
                cell = resolve_cell(col, role, r1, r2, pos1, pos2)
                if cell.different:
                    diffs.append(DiffRecord(key, col, cell.file1, cell.file2))
        elif r1 is not None:
            diffs.append(DiffRecord(key, MISSING_IN_FILE2, row_preview(r1), ""))
        else:
            diffs.append(DiffRecord(key, MISSING_IN_FILE1, "", row_preview(r2)))
    return diffs


# ---------- Orchestration ----------
@dataclass
class ReconResult:
    table1: Table
    table2: Table
    index1: RowIndex
    index2: RowIndex
    columns: Dict[str, ColumnRole]
    diffs: List[DiffRecord]
    header_mismatch: bool = False

    def counts(self) -> Dict[str, int]:
        out = {
            "total": len(self.diffs),
            "cell_mismatches": 0,
            "column_differences": 0,
            "only_in_file1": 0,
            "only_in_file2": 0,
        }
        for d in self.diffs:
            kind = d.kind
            if kind == "cell_mismatch":
                out["cell_mismatches"] += 1
            elif kind.startswith("column_only"):
                out["column_differences"] += 1
            elif kind == "missing_in_file2":
                out["only_in_file1"] += 1
            else:
                out["only_in_file2"] += 1
        return out


def compare_tables(table1: Table, table2: Table, cfg: ReconConfig) -> ReconResult:
    cfg.validate()
    index1 = build_row_index(table1, cfg.key_columns)
    index2 = build_row_index(table2, cfg.key_columns)

    header_mismatch = table1.header != table2.header
    if header_mismatch:
        logger.warning(
            "Header mismatch between %s and %s; comparing columns by name.",
            table1.source or "file1", table2.source or "file2",
        )

    columns = classify_columns(table1.header, table2.header, cfg.key_columns, cfg.ignore_columns)
    diffs = reconcile(index1, index2, table1.header, table2.header, cfg.key_columns, cfg.ignore_columns)
    logger.info(
        "Reconciled %d/%d keys: %d difference(s)",
        len(index1), len(index2), len(diffs),
    )
    return ReconResult(
        table1=table1,
        table2=table2,
        index1=index1,
        index2=index2,
        columns=columns,
        diffs=diffs,
        header_mismatch=header_mismatch,
    )


def compare_files(left_source: Any, right_source: Any, cfg: ReconConfig) -> ReconResult:
    cfg.validate()
    table1 = load_table(left_source, cfg.sheet_left)
    table2 = load_table(right_source, cfg.sheet_right)
    return compare_tables(table1, table2, cfg)
