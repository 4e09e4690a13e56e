"""
Write DataFrames to an Excel workbook, one styled table per sheet.

Used by the report CLI to export the aggregated view of a company/period.
"""

import os
import re

import pandas as pd
from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows
from openpyxl.worksheet.table import Table, TableStyleInfo

# Excel limit
MAX_SHEET_NAME = 31


class ExcelFormatter:
    def __init__(self):
        self.wb = Workbook()
        self._table_names = set()
        self._used_default = False

    def add_to_sheet(self, df: pd.DataFrame, sheet_name: str) -> None:
        """
        Append `df` as a styled table on a new sheet called `sheet_name`.

        :param df: rows to write (header row taken from the columns)
        :param sheet_name: sheet title; trimmed to Excel's length limit
        """
        title = sheet_name[:MAX_SHEET_NAME]
        if not self._used_default:
            ws = self.wb.active
            ws.title = title
            self._used_default = True
        else:
            ws = self.wb.create_sheet(title=title)

        for row in dataframe_to_rows(df, index=False, header=True):
            ws.append(row)

        # An empty frame still gets its header row; a table needs at least that
        if len(df.columns) == 0:
            return

        table_ref = f"A1:{get_column_letter(ws.max_column)}{max(ws.max_row, 2)}"

        display_name = re.sub(r"\W", "", title) or "Sheet"
        if display_name[0].isdigit():
            display_name = f"T{display_name}"
        base_name = display_name
        counter = 2
        while display_name in self._table_names:
            display_name = f"{base_name}_{counter}"
            counter += 1
        self._table_names.add(display_name)

        table = Table(displayName=display_name, ref=table_ref)
        table.tableStyleInfo = TableStyleInfo(
            name="TableStyleMedium9",
            showFirstColumn=False,
            showLastColumn=False,
            showRowStripes=True,
            showColumnStripes=False
        )
        ws.add_table(table)

        # Sample up to 500 rows for column widths
        sample = df.head(500)
        for i, col in enumerate(df.columns, start=1):
            max_len = max(len(str(cell)) for cell in [col] + sample[col].astype(str).tolist())
            ws.column_dimensions[get_column_letter(i)].width = min(max_len + 4, 60)

    @property
    def sheet_names(self) -> list[str]:
        return self.wb.sheetnames

    def save(self, path: str) -> str:
        """
        Save the workbook to `path` (must end in .xlsx), creating the parent
        directory if needed, then start a fresh workbook.

        Returns the absolute path written.
        """
        if not path.lower().endswith(".xlsx"):
            raise ValueError(f"Output file must be .xlsx: {path}")

        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        self.wb.save(path)
        self._reset_workbook()
        return os.path.abspath(path)

    def _reset_workbook(self):
        self.wb = Workbook()
        self._table_names = set()
        self._used_default = False
