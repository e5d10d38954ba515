"""Decode workbook bytes into header-keyed sheets with typed cell metadata."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from io import BytesIO
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.cell import Cell
from openpyxl.utils.cell import range_boundaries
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from spreadsheet_ingest.services.number_format import as_datetime, render_display_text
from spreadsheet_ingest.utils.exceptions import DecodeError, ErrorCode
from spreadsheet_ingest.utils.logging import get_logger
from spreadsheet_ingest.workbook_document import (
    CellRecord,
    RowRecord,
    SheetRecord,
    ValueKind,
    WorkbookDocument,
)

logger = get_logger(__name__)

HEADER_ROW = 1


def to_iso_text(value: datetime | date | time | timedelta) -> str:
    """Normalize a temporal cell value to ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return as_datetime(value).isoformat(timespec="milliseconds") + "Z"


class WorkbookDecoder:
    """Decode Office Open XML workbooks using openpyxl."""

    def decode(self, data: bytes) -> WorkbookDocument:
        """Decode raw workbook bytes into a WorkbookDocument.

        Args:
            data: The complete workbook file contents.

        Returns:
            One SheetRecord per worksheet, in workbook order.

        Raises:
            DecodeError: If the bytes are not a readable workbook or a sheet's
                occupied range cannot be determined.
        """
        # Load twice: once to capture formulas, once for cached values
        workbook = self._load(data, data_only=False)
        computed_wb = self._load(data, data_only=True)

        try:
            sheets = [
                self._decode_sheet(sheet, computed_wb[sheet.title])
                for sheet in workbook.worksheets
            ]
        finally:
            workbook.close()
            computed_wb.close()

        document = WorkbookDocument(sheets=sheets)
        logger.info(
            "Workbook decoded",
            sheets=len(document.sheets),
            rows=document.row_count,
        )
        return document

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _load(data: bytes, *, data_only: bool) -> Workbook:
        try:
            return load_workbook(
                filename=BytesIO(data), data_only=data_only, read_only=False
            )
        except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as e:
            raise DecodeError(
                f"Unable to read workbook: {e}",
                error_code=ErrorCode.UNREADABLE_WORKBOOK,
                details={"size_bytes": len(data)},
            ) from e

    def _decode_sheet(self, sheet: Worksheet, computed_sheet: Worksheet) -> SheetRecord:
        """Decode a single worksheet into header-keyed rows."""
        min_col, min_row, max_col, max_row = self._occupied_range(sheet)
        record = SheetRecord(name=sheet.title)

        headers = self._read_headers(computed_sheet, min_col, max_col)
        first_data_row = max(min_row, HEADER_ROW + 1)
        if max_row < first_data_row:
            return record

        row_iter: Iterable[tuple[Cell, ...]] = sheet.iter_rows(
            min_row=first_data_row, max_row=max_row, min_col=min_col, max_col=max_col
        )
        computed_iter = computed_sheet.iter_rows(
            min_row=first_data_row,
            max_row=max_row,
            min_col=min_col,
            max_col=max_col,
            values_only=True,
        )

        for row_cells, computed_values in zip(row_iter, computed_iter, strict=True):
            row: RowRecord = {}
            for cell, computed_value in zip(row_cells, computed_values, strict=True):
                header = headers.get(cell.column)
                if header is None:
                    continue
                cell_record = self._build_cell(cell, computed_value=computed_value)
                if cell_record is not None:
                    row[header] = cell_record
            record.rows.append(row)

        return record

    @staticmethod
    def _occupied_range(sheet: Worksheet) -> tuple[int, int, int, int]:
        """Return ``(min_col, min_row, max_col, max_row)`` of the sheet."""
        try:
            dimension = sheet.calculate_dimension()
            min_col, min_row, max_col, max_row = range_boundaries(dimension)
        except (TypeError, ValueError) as e:
            raise DecodeError(
                f"Cannot determine the occupied range of sheet '{sheet.title}'",
                sheet_name=sheet.title,
                error_code=ErrorCode.INVALID_SHEET_RANGE,
            ) from e

        if None in (min_col, min_row, max_col, max_row):
            raise DecodeError(
                f"Sheet '{sheet.title}' has an open-ended range: {dimension}",
                sheet_name=sheet.title,
                error_code=ErrorCode.INVALID_SHEET_RANGE,
            )
        return min_col, min_row, max_col, max_row

    @staticmethod
    def _read_headers(sheet: Worksheet, min_col: int, max_col: int) -> dict[int, str]:
        """Map column index to header text for non-empty text headers."""
        headers: dict[int, str] = {}
        for row in sheet.iter_rows(
            min_row=HEADER_ROW, max_row=HEADER_ROW, min_col=min_col, max_col=max_col
        ):
            for cell in row:
                if isinstance(cell.value, str) and cell.value:
                    headers[cell.column] = cell.value
        return headers

    def _build_cell(self, cell: Cell, *, computed_value: Any) -> CellRecord | None:
        """Create a CellRecord, or None when the cell holds nothing."""
        formula = None
        value = computed_value

        if cell.data_type == "f":
            formula = self._formula_text(cell.value)
            if value is None:
                value = ""
        elif value is None:
            value = cell.value

        if value is None:
            return None

        display_text = render_display_text(value, cell.number_format)
        if isinstance(value, (datetime, date, time, timedelta)):
            value = to_iso_text(value)

        value_kind = self._map_value_kind(value)
        if value_kind is ValueKind.TEXT and not isinstance(value, str):
            value = str(value)

        return CellRecord(
            raw_value=value,
            value_kind=value_kind,
            display_text=display_text,
            formula=formula,
            hyperlink=self._hyperlink_target(cell),
        )

    @staticmethod
    def _map_value_kind(value: Any) -> ValueKind:
        if isinstance(value, bool):
            return ValueKind.BOOLEAN
        if isinstance(value, (int, float)):
            return ValueKind.NUMBER
        return ValueKind.TEXT

    @staticmethod
    def _formula_text(value: Any) -> str:
        # Array formulas wrap their text in an object with a ``text`` attribute.
        text = str(getattr(value, "text", value) or "")
        return text[1:] if text.startswith("=") else text

    @staticmethod
    def _hyperlink_target(cell: Cell) -> str | None:
        link = cell.hyperlink
        if link is None:
            return None
        if link.target:
            return str(link.target)
        if link.location:
            return f"#{link.location}"
        return None
