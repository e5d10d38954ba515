"""Spreadsheet Ingest - background workbook ingestion service."""

from spreadsheet_ingest.api import app, create_app

__all__ = ["app", "create_app"]
__version__ = "0.1.0"


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from spreadsheet_ingest.config import settings

    uvicorn.run(
        "spreadsheet_ingest.api:app",
        host=settings.server_host,
        port=settings.server_port,
    )
