"""Smart cleanup: drop rows that are too sparse compared to their sheet."""

from __future__ import annotations

from spreadsheet_ingest.utils.logging import get_logger
from spreadsheet_ingest.workbook_document import SheetRecord, WorkbookDocument

logger = get_logger(__name__)

MIN_COLUMN_FILL_RATIO = 0.5
"""Rows populating less than this share of the densest row's columns are removed."""


def apply_smart_cleanup(document: WorkbookDocument, enabled: bool) -> WorkbookDocument:
    """Remove sparse rows from every sheet of ``document``.

    Each sheet is judged on its own: a row is kept when its populated column
    count divided by the sheet's densest row count is at least
    ``MIN_COLUMN_FILL_RATIO``. Sheets whose densest row is empty are left
    untouched. Sheet order and the order of kept rows are preserved.

    Args:
        document: Decoded workbook.
        enabled: When False the document is returned unchanged.

    Returns:
        The cleaned document.
    """
    if not enabled:
        return document

    cleaned = WorkbookDocument(sheets=[_clean_sheet(sheet) for sheet in document.sheets])
    removed = document.row_count - cleaned.row_count
    logger.info(
        "Smart cleanup applied",
        rows_kept=cleaned.row_count,
        rows_removed=removed,
    )
    return cleaned


def _clean_sheet(sheet: SheetRecord) -> SheetRecord:
    max_columns = sheet.max_columns
    if max_columns == 0:
        return SheetRecord(name=sheet.name, rows=list(sheet.rows))

    kept = [
        row for row in sheet.rows if len(row) / max_columns >= MIN_COLUMN_FILL_RATIO
    ]
    return SheetRecord(name=sheet.name, rows=kept)
