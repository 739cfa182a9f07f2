"""FastAPI application exposing transaction lookup, token search and monitor scans."""

import io
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .correlation import TransactionCorrelator
from .delivery import build_notifier
from .errors import LogMinerError, InvalidQuery, IOUnavailable
from .ingestion import LogFileStore, read_log_file, read_path
from .logging_config import setup_logging
from .monitor import ExceptionMonitor
from .scheduler import build_scheduler
from .search import PagedTokenSearch

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

ERROR_STATUS = {
    InvalidQuery: 400,
    IOUnavailable: 404,
}


class LogsRequest(BaseModel):
    """Body of the paged search endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    file: str
    unique_data: str = Field(alias="uniqueData")
    page: int = 0
    size: int = 10


def status_for(error: LogMinerError) -> int:
    # Everything that is not a bad request or a missing file degrades to "not found"
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 404


def create_app(
    settings: Optional[Settings] = None,
    monitor: Optional[ExceptionMonitor] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration (read from the environment when omitted)
        monitor: Pre-built monitor, mainly for tests

    Returns:
        Configured FastAPI app
    """
    settings = settings or Settings.from_env()
    monitor = monitor or ExceptionMonitor(settings, notifier=build_notifier(settings))
    store = LogFileStore(settings.log_dir)
    searcher = PagedTokenSearch(
        window_seconds=settings.search_window_seconds,
        min_token_length=settings.min_token_length,
    )
    correlator = TransactionCorrelator()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        scheduler = None
        if settings.monitor_enabled:
            scheduler = build_scheduler(monitor)
            scheduler.start()
            logger.info("Hourly monitor scheduled for %s", settings.monitor_file)
        yield
        if scheduler is not None:
            scheduler.shutdown(wait=False)

    app = FastAPI(
        title="Log Miner",
        description="""
        Mines thread-tagged application logs.

        ## Features
        - Reconstructs register / payment / billing spans from a serial or reference
        - Paged and streaming token search with per-thread evidence windows
        - Hourly exception and adapter-error digests
        - Ad-hoc analysis of uploaded `.log`, `.txt` and `.gz` files
        """,
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.monitor = monitor

    @app.exception_handler(LogMinerError)
    async def log_miner_error(request: Request, exc: LogMinerError):
        return JSONResponse(status_code=status_for(exc), content=exc.to_dict())

    @app.get("/")
    async def root():
        """Health check and API info."""
        return {
            "service": "Log Miner",
            "version": VERSION,
            "status": "healthy",
            "endpoints": {
                "files": "GET /api/filter/files - List available log files",
                "search": "POST /api/filter/file - Paged token search",
                "stream": "GET /api/filter/stream - Streaming token search",
                "transaction": "GET /api/transactions/{token} - Transaction evidence",
                "scan": "POST /api/monitor/scan - Preview the monitor scan",
                "analyze": "POST /api/monitor/analyze - Analyze an uploaded log file",
            },
        }

    @app.get("/health")
    async def health_check():
        """Simple health check endpoint."""
        return {"status": "healthy"}

    @app.get("/api/filter/files")
    def list_files():
        """List the log files available for searching."""
        return store.list_files()

    @app.post("/api/filter/file")
    def search_file(req: LogsRequest):
        """Return one page of evidence windows for a token."""
        lines = store.read_lines(req.file)
        return searcher.search(lines, req.unique_data, req.page, req.size)

    @app.get("/api/filter/stream")
    def stream_file(
        file: str = Query(..., description="Log file name"),
        token: str = Query(..., description="Search token"),
        page: int = Query(default=0),
        size: int = Query(default=10),
    ):
        """Stream the evidence windows of one page, one window at a time."""
        lines = store.read_lines(file)
        expansions = searcher.iter_expansions(lines, token, page, size)

        def body():
            for expansion in expansions:
                yield "\n".join(expansion) + "\n"

        return StreamingResponse(body(), media_type="text/plain")

    @app.get("/api/transactions/{token}")
    def find_transaction(
        token: str,
        file: Optional[str] = Query(default=None, description="Log file name (defaults to the transaction log)"),
        output_format: str = Query(default="json", alias="format", pattern="^(json|text)$"),
    ):
        """Reconstruct the register, payment and billing spans of a transaction."""
        if file:
            lines = store.read_lines(file)
        else:
            lines = read_path(settings.default_transaction_file)
        evidence = correlator.correlate(lines, token)
        if output_format == "text":
            return PlainTextResponse(evidence.render())
        return evidence.to_dict()

    @app.post("/api/monitor/scan")
    def scan_now(
        hours: int = Query(default=1, ge=1, le=72, description="Hours to look back"),
    ):
        """Run both monitor pipelines over the recent window without sending anything."""
        return monitor.preview(hours=hours).to_dict()

    @app.post("/api/monitor/analyze")
    async def analyze_upload(
        file: UploadFile = File(..., description="Log file (.log, .txt or .gz)"),
    ):
        """Find unique exception blocks and adapter errors in an uploaded file."""
        if not file.filename:
            raise HTTPException(status_code=400, detail="Filename is required")

        filename_lower = file.filename.lower()
        if not any(filename_lower.endswith(ext) for ext in ['.log', '.txt', '.gz']):
            raise HTTPException(
                status_code=400,
                detail="Unsupported file type. Please upload .log, .txt, or .gz files."
            )

        content = await file.read()
        if len(content) > settings.max_file_size_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {settings.max_file_size_mb}MB."
            )
        if len(content) == 0:
            raise HTTPException(status_code=400, detail="File is empty")

        try:
            lines = list(read_log_file(io.BytesIO(content), filename_lower))
        except (OSError, EOFError) as e:
            raise HTTPException(status_code=400, detail=f"Cannot read file: {e}")

        return monitor.analyze_lines(lines).to_dict()

    return app


app = create_app()
