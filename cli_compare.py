# cli_compare.py
import argparse
import logging
import sys
from typing import List, Optional

from recon_core import ReconConfig, compare_files
from recon_excel import export_result
from recon_report import format_report, render_report

__version__ = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="csv-recon",
        description="Compare two CSV files based on key column(s), with options to ignore some columns.",
    )
    ap.add_argument("--file1", required=True, help="First CSV/XLSX file path")
    ap.add_argument("--file2", required=True, help="Second CSV/XLSX file path")
    ap.add_argument("--sheet1", default=None, help="Worksheet to read from --file1 when it is an Excel file (default: first)")
    ap.add_argument("--sheet2", default=None, help="Worksheet to read from --file2 when it is an Excel file (default: first)")
    ap.add_argument("-k", "--key", action="append", required=True, dest="keys",
                    help="Key column (repeat for composite keys)")
    ap.add_argument("-i", "--ignore", action="append", default=[], dest="ignore",
                    help="Column to ignore when comparing (repeatable)")
    ap.add_argument("--max-rows", type=int, default=20,
                    help="Maximum number of rows to display (default: 20)")
    ap.add_argument("--max-cell-width", type=int, default=30,
                    help="Maximum width for cell content (default: 30)")
    ap.add_argument("--no-truncate", action="store_true",
                    help="Show all differences without truncation")
    ap.add_argument("--excel-out", default=None,
                    help="Optional path to write an Excel workbook of the differences")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cfg = ReconConfig(
        key_columns=args.keys,
        ignore_columns=args.ignore,
        max_rows=args.max_rows,
        max_cell_width=args.max_cell_width,
        no_truncate=args.no_truncate,
        sheet_left=args.sheet1,
        sheet_right=args.sheet2,
    )

    try:
        cfg.validate()
        result = compare_files(args.file1, args.file2, cfg)
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    view = format_report(result.diffs, cfg.max_rows, cfg.max_cell_width, cfg.no_truncate)
    print(render_report(view))

    if args.excel_out:
        try:
            export_result(result, cfg.key_columns, args.excel_out)
        except OSError as e:
            print(f"❌ Error: could not write {args.excel_out}: {e}", file=sys.stderr)
            return 1
        print(f"✅ Wrote: {args.excel_out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
