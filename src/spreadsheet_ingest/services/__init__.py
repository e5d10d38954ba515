"""Services for spreadsheet ingestion."""

from spreadsheet_ingest.services.cleanup import apply_smart_cleanup
from spreadsheet_ingest.services.codec import compress_document, decompress_document
from spreadsheet_ingest.services.workbook_decoder import WorkbookDecoder

__all__ = [
    "WorkbookDecoder",
    "apply_smart_cleanup",
    "compress_document",
    "decompress_document",
]
