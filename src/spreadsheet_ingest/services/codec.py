"""Serialize and compress workbook documents for storage in a text column.

Wire format:
    base64( gzip( utf-8( json({"json": [{<sheet>: [<row>, ...]}, ...]}) ) ) )

A row maps header names to cell objects with the keys ``raw_value``,
``data_type``, ``formula`` (always present, null for plain values) and the
optional ``row_str_value`` and ``hyperlink`` keys, which are omitted when
absent. JSON keeps the string/number/boolean distinction and integer vs.
float numbers, so ``decompress_document(compress_document(d)) == d``.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import Any

from spreadsheet_ingest.utils.exceptions import CodecError, ErrorCode
from spreadsheet_ingest.workbook_document import (
    CellRecord,
    RowRecord,
    SheetRecord,
    ValueKind,
    WorkbookDocument,
)

ENVELOPE_KEY = "json"

_KIND_TYPES: dict[ValueKind, tuple[type, ...]] = {
    ValueKind.TEXT: (str,),
    ValueKind.NUMBER: (int, float),
    ValueKind.BOOLEAN: (bool,),
}


def cell_to_dict(cell: CellRecord) -> dict[str, Any]:
    """Serialize a cell to its wire mapping."""
    data: dict[str, Any] = {
        "raw_value": cell.raw_value,
        "formula": cell.formula,
        "data_type": cell.value_kind.value,
    }
    if cell.display_text is not None:
        data["row_str_value"] = cell.display_text
    if cell.hyperlink is not None:
        data["hyperlink"] = cell.hyperlink
    return data


def cell_from_dict(data: dict[str, Any]) -> CellRecord:
    """Create a cell from its wire mapping, validating the type tag."""
    value_kind = ValueKind(data["data_type"])
    raw_value = data["raw_value"]
    if not isinstance(raw_value, _KIND_TYPES[value_kind]) or (
        value_kind is ValueKind.NUMBER and isinstance(raw_value, bool)
    ):
        raise ValueError(
            f"raw_value {raw_value!r} does not match data_type {value_kind.value}"
        )
    return CellRecord(
        raw_value=raw_value,
        value_kind=value_kind,
        display_text=_optional_text(data, "row_str_value"),
        formula=_optional_text(data, "formula"),
        hyperlink=_optional_text(data, "hyperlink"),
    )


def _optional_text(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string or null, got {type(value).__name__}")
    return value


def document_to_payload(document: WorkbookDocument) -> list[dict[str, list[dict]]]:
    """Convert a document to the ordered list-of-sheets wire structure."""
    return [
        {
            sheet.name: [
                {column: cell_to_dict(cell) for column, cell in row.items()}
                for row in sheet.rows
            ]
        }
        for sheet in document.sheets
    ]


def document_from_payload(payload: Any) -> WorkbookDocument:
    """Rebuild a document from the list-of-sheets wire structure."""
    if not isinstance(payload, list):
        raise ValueError("Document payload must be a list of sheets")

    sheets: list[SheetRecord] = []
    for entry in payload:
        if not isinstance(entry, dict) or len(entry) != 1:
            raise ValueError("Each sheet entry must map exactly one sheet name")
        ((name, rows),) = entry.items()
        if not isinstance(rows, list):
            raise ValueError(f"Rows of sheet '{name}' must be a list")
        decoded_rows: list[RowRecord] = [
            {column: cell_from_dict(cell) for column, cell in row.items()}
            for row in rows
        ]
        sheets.append(SheetRecord(name=name, rows=decoded_rows))
    return WorkbookDocument(sheets=sheets)


def serialize_document(document: WorkbookDocument) -> bytes:
    """Serialize a document to UTF-8 JSON bytes.

    Raises:
        CodecError: If the document holds values JSON cannot represent
            exactly (e.g. NaN or infinity).
    """
    try:
        text = json.dumps(
            {ENVELOPE_KEY: document_to_payload(document)},
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as e:
        raise CodecError(
            f"Failed to serialize document: {e}",
            stage="serialize",
            error_code=ErrorCode.SERIALIZATION_FAILED,
        ) from e
    return text.encode("utf-8")


def deserialize_document(data: bytes) -> WorkbookDocument:
    """Parse UTF-8 JSON bytes produced by :func:`serialize_document`.

    A ``meta`` key next to the envelope's ``json`` key is ignored.

    Raises:
        CodecError: If the bytes are not a valid serialized document.
    """
    try:
        envelope = json.loads(data.decode("utf-8"))
        if not isinstance(envelope, dict) or ENVELOPE_KEY not in envelope:
            raise ValueError(f"Missing '{ENVELOPE_KEY}' envelope key")
        return document_from_payload(envelope[ENVELOPE_KEY])
    except (
        AttributeError,
        KeyError,
        TypeError,
        UnicodeDecodeError,
        ValueError,
    ) as e:
        raise CodecError(
            f"Failed to deserialize document: {e}",
            stage="deserialize",
            error_code=ErrorCode.DESERIALIZATION_FAILED,
        ) from e


def compress_document(document: WorkbookDocument) -> str:
    """Serialize, gzip and base64-encode a document for storage.

    Returns:
        ASCII text safe to store in a text column.
    """
    serialized = serialize_document(document)
    try:
        compressed = gzip.compress(serialized)
    except (OSError, zlib.error) as e:
        raise CodecError(
            f"Failed to compress document: {e}",
            stage="compress",
            error_code=ErrorCode.COMPRESSION_FAILED,
        ) from e
    return base64.b64encode(compressed).decode("ascii")


def decompress_document(compressed: str) -> WorkbookDocument:
    """Invert :func:`compress_document`.

    Raises:
        CodecError: If the text is not valid base64/gzip or the decompressed
            payload is not a serialized document.
    """
    try:
        raw = base64.b64decode(compressed, validate=True)
        serialized = gzip.decompress(raw)
    except (binascii.Error, EOFError, OSError, TypeError, ValueError, zlib.error) as e:
        raise CodecError(
            f"Failed to decompress document: {e}",
            stage="decompress",
            error_code=ErrorCode.DECOMPRESSION_FAILED,
        ) from e
    return deserialize_document(serialized)
