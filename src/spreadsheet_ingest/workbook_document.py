"""Dataclasses representing a decoded, header-keyed workbook."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ValueKind(str, Enum):
    """Runtime type of a decoded cell value.

    Values match the ``data_type`` tags stored in serialized payloads.
    """

    TEXT = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


CellValue = str | int | float | bool


@dataclass(frozen=True)
class CellRecord:
    """A single decoded cell with its type tag and optional metadata."""

    raw_value: CellValue
    value_kind: ValueKind
    display_text: str | None = None
    formula: str | None = None
    hyperlink: str | None = None


RowRecord = dict[str, CellRecord]
"""Mapping from header name to the cell found under that header."""

ColumnManifest = dict[str, list[str]]
"""Mapping from sheet name to the ordered column names of its first row."""


@dataclass
class SheetRecord:
    """A worksheet and its data rows (the header row is never included)."""

    name: str
    rows: list[RowRecord] = field(default_factory=list)

    @property
    def max_columns(self) -> int:
        """Number of populated columns in the densest row."""
        return max((len(row) for row in self.rows), default=0)


@dataclass
class WorkbookDocument:
    """Sheets of a workbook in source order."""

    sheets: list[SheetRecord] = field(default_factory=list)

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    @property
    def row_count(self) -> int:
        return sum(len(sheet.rows) for sheet in self.sheets)

    def column_manifest(self) -> ColumnManifest:
        """Build the per-sheet column manifest from each first data row.

        A sheet without data rows maps to an empty column list.
        """
        return {
            sheet.name: list(sheet.rows[0].keys()) if sheet.rows else []
            for sheet in self.sheets
        }
