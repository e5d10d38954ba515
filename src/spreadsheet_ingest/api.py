"""FastAPI application hosting the spreadsheet ingestion worker."""

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime
from typing import Any

from docket import Worker
from fastapi import FastAPI, Request

from spreadsheet_ingest.config import settings, validate_settings_on_startup
from spreadsheet_ingest.db.session import dispose_engine
from spreadsheet_ingest.docket_tasks import tasks
from spreadsheet_ingest.models import HealthResponse
from spreadsheet_ingest.services.docket_client import build_docket
from spreadsheet_ingest.utils.logging import configure_logging, get_logger

VERSION = "0.1.0"

# Configure structured logging using settings
configure_logging(
    level=settings.log_level_int,
    use_structured_formatter=True,
)
logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        docket = build_docket()
        await docket.__aenter__()
        for task in tasks:
            docket.register(task)
        app.state.docket = docket

        worker: Worker | None = None
        worker_task: asyncio.Task[None] | None = None
        if settings.run_inline_worker:
            worker = Worker(docket, concurrency=settings.worker_concurrency)
            await worker.__aenter__()
            worker_task = asyncio.create_task(worker.run_forever())
            logger.info(
                "Inline worker started",
                docket=settings.docket_name,
                concurrency=settings.worker_concurrency,
            )
        app.state.worker = worker

        try:
            yield
        finally:
            if worker_task is not None:
                worker_task.cancel()
                with suppress(asyncio.CancelledError):
                    await worker_task
            if worker is not None:
                await worker.__aexit__(None, None, None)
                logger.info("Inline worker stopped")
            app.state.worker = None

            await docket.__aexit__(None, None, None)
            app.state.docket = None
            await dispose_engine()

    app = FastAPI(
        title="Spreadsheet Ingest",
        description=(
            "Background worker that decodes uploaded workbooks, compresses "
            "them and stores them against their spreadsheet records."
        ),
        version=VERSION,
        lifespan=lifespan,
    )

    # Validate settings on startup
    validate_settings_on_startup(settings)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> dict[str, Any]:
        """Check the health status of the service.

        Returns:
            HealthResponse: Service status, timestamp, version and whether
                an inline worker is attached.
        """
        worker = getattr(request.app.state, "worker", None)
        logger.debug("Health check requested")
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": VERSION,
            "worker_running": worker is not None,
        }

    return app


app = create_app()
