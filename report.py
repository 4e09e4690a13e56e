"""
Filing report for one company and fiscal period.

Prints the aggregated view grouped by statement category and can export
it to Excel (one sheet per category, or one per source in separated mode).

Usage:
    python report.py --company 1 --year 2023 --period FY
    python report.py --company 1 --year 2023 --period Q2 --shape separated
    python report.py --company 1 --year 2023 --period FY --excel output/aapl_2023.xlsx
"""

import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent))

import pandas as pd

from utils import log
from utils.excel_formatter import ExcelFormatter
from utils.formatting import (
    CATEGORY_ORDER,
    categorize_tag,
    format_cik,
    format_number,
    format_statement_values,
)
from aggregation import (
    DataSourceError,
    FieldTagMapper,
    FinancialAggregator,
    NotFound,
    OutputShape,
)
from api.config import settings
from api.data_access import FinancialDataProvider
from models import FiscalPeriod, MergedView, SeparatedView

logger = log.setup_verbose_logging("report")


def _nulls_to_none(df: pd.DataFrame) -> pd.DataFrame:
    # openpyxl writes NaN literally; blank cells read better
    return df.astype(object).where(df.notna(), None)


def group_by_category(view: MergedView) -> dict:
    """category -> entries, categories in display order, empty ones dropped."""
    groups = {category: [] for category in CATEGORY_ORDER}
    for entry in view.data:
        groups[categorize_tag(entry.tag_name)].append(entry)
    return {category: entries for category, entries in groups.items() if entries}


def merged_frames(view: MergedView) -> dict:
    """One DataFrame per statement category."""
    frames = {}
    for category, entries in group_by_category(view).items():
        frames[category] = _nulls_to_none(pd.DataFrame([
            {
                "tag_name": e.tag_name,
                "label": e.label,
                "unit": e.unit,
                "val_filtered": e.raw_value,
                **{f"statement_{table_id}": value for table_id, value in e.statement_values.items()},
                "dataset_standard": e.standardized_value,
            }
            for e in entries
        ]))
    return frames


def separated_frames(view: SeparatedView) -> dict:
    """One DataFrame per source."""
    return {
        "Val Filtered": _nulls_to_none(pd.DataFrame([v.model_dump() for v in view.val_filtered_data])),
        "Statement Data": _nulls_to_none(pd.DataFrame([v.model_dump() for v in view.statement_data])),
        "Dataset Standard": _nulls_to_none(pd.DataFrame([v.model_dump() for v in view.dataset_standard_data])),
    }


def print_merged(view: MergedView) -> None:
    if not view.data:
        log.warn("No financial data available for the selected period.")
        return

    for category, entries in group_by_category(view).items():
        log.section(category)
        log.value_row("Tag", "Val Filtered", "Statement Data", "Dataset Std")
        for e in entries:
            statement_lines = format_statement_values(e.statement_values).split("\n")
            log.value_row(
                e.tag_name,
                format_number(e.raw_value),
                statement_lines[0],
                format_number(e.standardized_value),
            )
            for extra in statement_lines[1:]:
                log.value_row("", "", extra, "")

    log.summary_table("Summary", [
        ("Metrics", str(len(view.data))),
        ("With raw value", str(sum(1 for e in view.data if e.raw_value is not None))),
        ("With statement value", str(sum(1 for e in view.data if e.statement_values))),
        ("With standardized value", str(sum(1 for e in view.data if e.standardized_value is not None))),
    ])


def print_separated(view: SeparatedView) -> None:
    log.section("Val Filtered (raw data)")
    for v in view.val_filtered_data:
        log.value_row(v.tag_name, format_number(v.value), "", "")

    log.section("Statement Data")
    for v in view.statement_data:
        log.value_row(v.tag_name, "", f"{v.statement_table_id}: {format_number(v.value)}", "")

    log.section("Dataset Standard (calculated)")
    for f in view.dataset_standard_data:
        log.value_row(f.tag_name, "", "", format_number(f.value))

    log.summary_table("Summary", [
        ("Val filtered rows", str(len(view.val_filtered_data))),
        ("Statement rows", str(len(view.statement_data))),
        ("Standardized fields", str(len(view.dataset_standard_data))),
    ])


def export_excel(view, path: str) -> str:
    frames = merged_frames(view) if isinstance(view, MergedView) else separated_frames(view)
    excel = ExcelFormatter()
    for sheet_name, df in frames.items():
        excel.add_to_sheet(df, sheet_name)
    return excel.save(path)


def run(
    company_id: int,
    year: int,
    period: FiscalPeriod,
    shape: OutputShape = OutputShape.MERGED,
    excel_path: str = None,
    db_path: str = None,
) -> int:
    """Build and print the report. Returns a process exit code."""
    try:
        provider = FinancialDataProvider(db_path)
    except FileNotFoundError as e:
        log.err(str(e))
        return 2

    log.step(f"Aggregating company {company_id} {FiscalPeriod(period).value} {year} ({OutputShape(shape).value})")
    try:
        aggregator = FinancialAggregator(provider, FieldTagMapper.from_json(settings.FIELD_TAG_MAP_PATH))
        view = aggregator.aggregate(company_id, year, period, shape)
    except NotFound as e:
        log.err(str(e))
        return 1
    except DataSourceError as e:
        log.err(f"Database error: {e}")
        logger.exception(f"Aggregation failed for company {company_id} {year} {FiscalPeriod(period).value}")
        return 2
    finally:
        provider.close()

    log.header(f"{view.company.name}  |  CIK {format_cik(view.company.cik)}  |  {view.period.value} {view.year}")

    if isinstance(view, MergedView):
        print_merged(view)
    else:
        print_separated(view)

    if excel_path:
        written = export_excel(view, excel_path)
        log.ok(f"Saved workbook to {written}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Show SEC filing data for a company and fiscal period")
    parser.add_argument("--company", type=int, required=True, help="Internal company id")
    parser.add_argument("--year", type=int, required=True, help="Fiscal year (e.g., 2023)")
    parser.add_argument("--period", choices=[p.value for p in FiscalPeriod], default="FY", help="Fiscal period")
    parser.add_argument("--shape", choices=[s.value for s in OutputShape], default=OutputShape.MERGED.value,
                        help="merged: one row per tag; separated: one list per source")
    parser.add_argument("--excel", help="Write the report to this .xlsx file")
    parser.add_argument("--db", help="Path to the SQLite database (default: SEC_DB_PATH)")
    args = parser.parse_args(argv)

    return run(
        company_id=args.company,
        year=args.year,
        period=FiscalPeriod(args.period),
        shape=OutputShape(args.shape),
        excel_path=args.excel,
        db_path=args.db,
    )


if __name__ == "__main__":
    sys.exit(main())
