"""
Excel export helper wrapping xlsxwriter.

Provides ``ExcelExporter``, a builder that writes a styled single-sheet
workbook in memory and returns its bytes for streaming via FastAPI's
``StreamingResponse``.

Usage example::

    exporter = ExcelExporter(title="Bookings report", filters={"Status": "all"})
    exporter.add_header(num_cols=len(headers))
    exporter.add_summary_row({"Bookings": 42, "Revenue": 1250.5})
    exporter.add_data_table(headers, rows, money_cols={6}, percent_cols={5})
    file_bytes = exporter.finalize()

Money cells use three decimals (baisa precision for OMR); percentage cells
expect 0–100 integers and are shown with a ``%`` suffix.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Sequence

import xlsxwriter

_COLOR_PRIMARY = "#0F766E"
_COLOR_DARK = "#134E4A"
_COLOR_WHITE = "#FFFFFF"
_COLOR_LIGHT_GREY = "#F3F4F6"
_COLOR_BORDER = "#E5E7EB"

_MONEY_FORMAT = "#,##0.000"
_MAX_COL_WIDTH = 60
_MIN_COL_WIDTH = 8


class ExcelExporter:
    """Workbook builder for marketplace exports.

    Args:
        title: Title shown in the merged header band.
        filters: Applied filter labels, written one per row under the header.
        sheet_name: Worksheet tab name.
    """

    def __init__(
        self,
        title: str,
        filters: dict[str, str] | None = None,
        sheet_name: str = "Data",
    ) -> None:
        self._title = title
        self._filters = filters or {}
        self._buffer = io.BytesIO()
        self._workbook = xlsxwriter.Workbook(self._buffer, {"in_memory": True})
        self._worksheet = self._workbook.add_worksheet(sheet_name)
        self._row = 0
        self._formats = self._build_formats()

    # -----------------------------------------------------------------------
    # Format factory
    # -----------------------------------------------------------------------

    def _build_formats(self) -> dict[str, Any]:
        wb = self._workbook
        cell = {"font_size": 9, "valign": "vcenter", "border": 1, "border_color": _COLOR_BORDER}

        formats: dict[str, Any] = {
            "title": wb.add_format({
                "bold": True, "font_size": 16, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_PRIMARY, "align": "center", "valign": "vcenter",
            }),
            "subtitle": wb.add_format({
                "font_size": 10, "font_color": _COLOR_WHITE, "bg_color": _COLOR_DARK,
                "align": "center", "valign": "vcenter",
            }),
            "filter_key": wb.add_format({
                "bold": True, "font_size": 9, "bg_color": _COLOR_BORDER, "align": "right",
            }),
            "filter_value": wb.add_format({"font_size": 9, "align": "left"}),
            "summary_label": wb.add_format({
                "bold": True, "font_size": 10, "bg_color": "#F0FDFA", "align": "center",
                "border": 1, "border_color": "#99F6E4",
            }),
            "summary_value": wb.add_format({
                "bold": True, "font_size": 12, "font_color": _COLOR_PRIMARY,
                "bg_color": "#F0FDFA", "align": "center", "num_format": "#,##0.###",
                "border": 1, "border_color": "#99F6E4",
            }),
            "col_header": wb.add_format({
                "bold": True, "font_size": 10, "font_color": _COLOR_WHITE,
                "bg_color": _COLOR_DARK, "align": "center", "valign": "vcenter",
                "border": 1, "text_wrap": True,
            }),
        }
        for alt, bg in ((False, _COLOR_WHITE), (True, _COLOR_LIGHT_GREY)):
            suffix = "_alt" if alt else ""
            formats[f"text{suffix}"] = wb.add_format({**cell, "bg_color": bg, "align": "left"})
            formats[f"money{suffix}"] = wb.add_format(
                {**cell, "bg_color": bg, "align": "right", "num_format": _MONEY_FORMAT}
            )
            formats[f"percent{suffix}"] = wb.add_format(
                {**cell, "bg_color": bg, "align": "right", "num_format": '0"%"'}
            )
        return formats

    # -----------------------------------------------------------------------
    # Public builder methods
    # -----------------------------------------------------------------------

    def add_header(self, num_cols: int = 6) -> "ExcelExporter":
        """Write the title band, generation timestamp and filter rows."""
        ws = self._worksheet
        last_col = max(num_cols, 2) - 1

        ws.set_row(self._row, 32)
        ws.merge_range(self._row, 0, self._row, last_col, self._title, self._formats["title"])
        self._row += 1

        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        ws.merge_range(
            self._row, 0, self._row, last_col, f"Generated: {generated}", self._formats["subtitle"]
        )
        self._row += 1

        for key, value in self._filters.items():
            ws.write(self._row, 0, key, self._formats["filter_key"])
            ws.merge_range(self._row, 1, self._row, last_col, value, self._formats["filter_value"])
            self._row += 1

        self._row += 1
        return self

    def add_summary_row(self, values: dict[str, Any]) -> "ExcelExporter":
        """Write ``{label: value}`` pairs as a label row above a value row."""
        ws = self._worksheet
        for col, (label, value) in enumerate(values.items()):
            ws.write(self._row, col, label, self._formats["summary_label"])
            ws.write(self._row + 1, col, value, self._formats["summary_value"])
        self._row += 3
        return self

    def add_data_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[Any]],
        money_cols: set[int] | None = None,
        percent_cols: set[int] | None = None,
    ) -> "ExcelExporter":
        """Write a table with alternating row shading and auto-sized columns."""
        ws = self._worksheet
        money_cols = money_cols or set()
        percent_cols = percent_cols or set()
        widths = [len(str(h)) for h in headers]

        ws.set_row(self._row, 20)
        for ci, header in enumerate(headers):
            ws.write(self._row, ci, header, self._formats["col_header"])
        self._row += 1

        for ri, data_row in enumerate(rows):
            suffix = "_alt" if ri % 2 == 1 else ""
            for ci, value in enumerate(data_row):
                if ci in money_cols:
                    kind = "money"
                elif ci in percent_cols:
                    kind = "percent"
                else:
                    kind = "text"
                if value is None:
                    ws.write_blank(self._row, ci, None, self._formats[kind + suffix])
                else:
                    ws.write(self._row, ci, value, self._formats[kind + suffix])
                widths[ci] = min(_MAX_COL_WIDTH, max(widths[ci], len(str(value or ""))))
            self._row += 1

        for ci, width in enumerate(widths):
            ws.set_column(ci, ci, max(width + 2, _MIN_COL_WIDTH))
        return self

    def finalize(self) -> bytes:
        """Close the workbook and return the ``.xlsx`` bytes."""
        self._workbook.close()
        self._buffer.seek(0)
        return self._buffer.read()
