from __future__ import annotations

import logging
from collections import Counter

from recon_core import (
    COLUMN_NOT_IN_FILE1,
    MISSING_IN_FILE1,
    MISSING_IN_FILE2,
    ColumnRole,
    DiffRecord,
    ReconConfig,
    Table,
    build_row_index,
    compare_files,
    compare_tables,
    reconcile,
    row_preview,
)


def _run(t1: Table, t2: Table, keys: list[str], ignore: list[str] | None = None) -> list[DiffRecord]:
    i1 = build_row_index(t1, keys)
    i2 = build_row_index(t2, keys)
    return reconcile(i1, i2, t1.header, t2.header, keys, ignore or [])


def test_example_value_change_and_one_sided_rows() -> None:
    a = Table(["id", "name", "value"], [["1", "x", "10"], ["2", "y", "20"]])
    b = Table(["id", "name", "value"], [["1", "x", "11"], ["3", "z", "30"]])

    diffs = _run(a, b, ["id"])

    assert diffs == [
        DiffRecord("1", "value", "10", "11"),
        DiffRecord("2", MISSING_IN_FILE2, "2,y,20", ""),
        DiffRecord("3", MISSING_IN_FILE1, "", "3,z,30"),
    ]
    assert [d.kind for d in diffs] == ["cell_mismatch", "missing_in_file2", "missing_in_file1"]


def test_self_comparison_is_empty() -> None:
    t = Table(["id", "a", "b"], [["1", "x", "y"], ["2", "", "z"], ["3", "q"]])

    assert _run(t, t, ["id"]) == []


def test_key_columns_never_reported() -> None:
    a = Table(["k1", "k2", "v"], [["1", "a", "x"], ["2", "b", "y"]])
    b = Table(["k1", "k2", "v"], [["1", "a", "z"], ["2", "c", "y"]])

    diffs = _run(a, b, ["k1", "k2"])

    assert all(d.column not in ("k1", "k2") for d in diffs)
    assert {d.key for d in diffs} == {"1|a", "2|b", "2|c"}


def test_ignored_columns_are_skipped() -> None:
    a = Table(["id", "v", "ts"], [["1", "x", "t1"]])
    b = Table(["id", "v", "ts"], [["1", "x", "t2"]])

    assert _run(a, b, ["id"], ["ts"]) == []
    assert _run(a, b, ["id"]) == [DiffRecord("1", "ts", "t1", "t2")]


def test_union_coverage_each_key_once() -> None:
    a = Table(["id", "v"], [["1", "a"], ["2", "b"], ["4", "d"]])
    b = Table(["id", "v"], [["2", "b"], ["3", "c"], ["4", "e"]])

    diffs = _run(a, b, ["id"])
    per_key = Counter(d.key for d in diffs)

    assert set(per_key) == {"1", "3", "4"}
    assert all(n == 1 for n in per_key.values())
    assert [d.column for d in diffs] == [MISSING_IN_FILE2, MISSING_IN_FILE1, "v"]


def test_keys_visited_in_lexicographic_order() -> None:
    a = Table(["id"], [["10"], ["2"], ["1"]])
    b = Table(["id"], [])

    assert [d.key for d in _run(a, b, ["id"])] == ["1", "10", "2"]


def test_extra_column_in_right_table() -> None:
    a = Table(["id", "name"], [["1", "x"], ["2", "y"]])
    b = Table(["id", "name", "extra"], [["1", "x", "e1"], ["2", "y", ""]])

    diffs = _run(a, b, ["id"])

    assert diffs == [
        DiffRecord("1", "extra", COLUMN_NOT_IN_FILE1, "e1"),
        DiffRecord("2", "extra", COLUMN_NOT_IN_FILE1, ""),
    ]
    assert diffs[0].kind == "column_only_in_file2"


def test_reordered_columns_compare_by_name() -> None:
    a = Table(["id", "a", "b"], [["1", "x", "y"]])
    b = Table(["b", "id", "a"], [["y", "1", "x"]])

    assert _run(a, b, ["id"]) == []


def test_row_preview_truncates_long_rows() -> None:
    assert row_preview(["a", "b"]) == "a,b"
    assert row_preview(["x" * 49]) == "x" * 49

    long = row_preview(["y" * 30, "z" * 30])

    assert len(long) == 50
    assert long == "y" * 30 + "," + "z" * 16 + "..."


def test_compare_tables_flags_header_mismatch(caplog) -> None:
    a = Table(["id", "name"], [["1", "x"]], source="a.csv")
    b = Table(["id", "name", "extra"], [["1", "x", "e"]], source="b.csv")

    with caplog.at_level(logging.WARNING, logger="recon_core"):
        result = compare_tables(a, b, ReconConfig(key_columns=["id"]))

    assert result.header_mismatch
    assert "Header mismatch" in caplog.text
    assert result.columns["extra"] == ColumnRole.RIGHT_ONLY
    assert result.counts()["column_differences"] == 1


def test_compare_files_counts(write_csv) -> None:
    left = write_csv("left.csv", "id,name,value\n1,x,10\n2,y,20\n2,y,21\n")
    right = write_csv("right.csv", "id,name,value\n1,x,11\n3,z,30\n")

    result = compare_files(left, right, ReconConfig(key_columns=["id"]))

    assert not result.header_mismatch
    assert result.index1.collisions == 1
    assert result.index1.get("2") == ["2", "y", "21"]
    assert result.counts() == {
        "total": 3,
        "cell_mismatches": 1,
        "column_differences": 0,
        "only_in_file1": 1,
        "only_in_file2": 1,
    }


def test_xlsx_na_text_differs_from_empty_csv(tmp_path, write_csv) -> None:
    from openpyxl import Workbook

    wb = Workbook()
    wb.active.append(["id", "v"])
    wb.active.append(["1", "NA"])
    left = tmp_path / "left.xlsx"
    wb.save(left)
    right = write_csv("right.csv", "id,v\n1,\n")

    result = compare_files(left, right, ReconConfig(key_columns=["id"]))

    assert result.diffs == [DiffRecord("1", "v", "NA", "")]
