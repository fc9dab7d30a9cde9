"""
FastAPI application for the transaction reconciliation engine.
Parsed files come in as JSON; every outcome is recorded in the history store.
"""

import asyncio
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field
import structlog

from .config import get_settings
from .errors import BatchInputError, HistoryStoreError, ReconciliationError
from .models import (
    BatchOutcome,
    FilePair,
    ParsedFile,
    RecordMetadata,
    SingleOutcome,
    TimeRange,
    Transaction,
)
from .reconciliation import BatchOrchestrator, TransactionMatcher, validate_file_pairs
from .analytics import (
    batch_summary_report,
    executive_summary,
    generate_analytics,
    single_summary_report,
)
from .storage import HistoryStore, JsonFileHistoryStore
from .utils.clock import utc_now

logger = structlog.get_logger()
settings = get_settings()


def setup_logging():
    """Configure logging to file and console."""
    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "app.log"

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
    )
    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_file, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    # Configure standard logging
    logging.basicConfig(
        level=settings.app_log_level.upper(),
        handlers=handlers,
        force=True,
    )

    # Configure structlog to use standard logging
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager: owns the history store."""
    logger.info("Starting reconciliation API", env=settings.app_env)
    store = JsonFileHistoryStore()
    app.state.history_store = store.open()
    yield
    store.close()
    logger.info("Shutting down reconciliation API")


app = FastAPI(
    title="MiniRecon",
    description="Transaction reconciliation between internal records and provider exports",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_history_store(request: Request) -> HistoryStore:
    """History store opened by the lifespan handler."""
    store = getattr(request.app.state, "history_store", None)
    if store is None:
        raise HTTPException(503, "History store is not available")
    return store


# Request models
class ParsedFilePayload(BaseModel):
    name: str
    data: List[Dict[str, Any]] = Field(default_factory=list)
    headers: List[str] = Field(default_factory=list)
    size: int = 0

    def to_parsed_file(self) -> ParsedFile:
        return ParsedFile(
            name=self.name,
            data=[Transaction.from_dict(row) for row in self.data],
            headers=list(self.headers),
            size=self.size,
        )


class ReconcileRequest(BaseModel):
    internal_file: ParsedFilePayload
    provider_file: ParsedFilePayload


class FilePairPayload(BaseModel):
    id: Optional[str] = None
    internal_file: Optional[ParsedFilePayload] = None
    provider_file: Optional[ParsedFilePayload] = None

    def to_file_pair(self) -> FilePair:
        pair = FilePair(
            internal_file=self.internal_file.to_parsed_file() if self.internal_file else None,
            provider_file=self.provider_file.to_parsed_file() if self.provider_file else None,
        )
        if self.id:
            pair.id = self.id
        return pair


class BatchRequest(BaseModel):
    pairs: List[FilePairPayload]


class ImportRequest(BaseModel):
    backup: str


# API Endpoints
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": utc_now().isoformat()}


@app.post("/api/reconcile")
def reconcile(request: ReconcileRequest, store: HistoryStore = Depends(get_history_store)):
    """Reconcile one internal file against one provider file. Runs in the threadpool."""
    internal = request.internal_file.to_parsed_file()
    provider = request.provider_file.to_parsed_file()

    start = time.perf_counter()
    try:
        result = TransactionMatcher().reconcile(internal.data, provider.data)
    except ReconciliationError as e:
        logger.warning("Reconciliation rejected", error=e.message, details=e.details)
        raise HTTPException(422, e.message)
    processing_time_ms = (time.perf_counter() - start) * 1000

    record = store.save_outcome(
        SingleOutcome(result),
        RecordMetadata(
            processing_time_ms=processing_time_ms,
            internal_file_name=internal.name,
            provider_file_name=provider.name,
        ),
    )

    return {
        "record_id": record.id,
        "processing_time_ms": processing_time_ms,
        "result": result.to_dict(),
        "report": single_summary_report(result),
    }


@app.post("/api/batch")
async def reconcile_batch(request: BatchRequest, store: HistoryStore = Depends(get_history_store)):
    """Reconcile a list of file pairs sequentially."""
    pairs = [p.to_file_pair() for p in request.pairs]

    validation = validate_file_pairs(pairs)
    if not validation.valid:
        raise HTTPException(400, {"errors": validation.errors})

    try:
        result = await BatchOrchestrator().run(pairs)
    except BatchInputError as e:
        raise HTTPException(400, e.message)

    # History write is blocking file I/O
    record = await asyncio.to_thread(
        store.save_outcome,
        BatchOutcome(result),
        RecordMetadata(
            processing_time_ms=result.processing_time_ms,
            file_pair_count=len(pairs),
        ),
    )

    logger.info(
        "Batch request complete",
        record_id=record.id,
        successful=result.aggregate_stats.successful_pairs,
        failed=result.aggregate_stats.failed_pairs,
    )

    return {
        "record_id": record.id,
        "result": result.to_dict(),
        "report": batch_summary_report(result),
    }


@app.get("/api/history")
async def get_history(
    time_range: TimeRange = TimeRange.LAST_30_DAYS,
    store: HistoryStore = Depends(get_history_store),
):
    """Stored outcomes inside a look-back window, oldest first."""
    records = store.query(time_range)
    return {
        "time_range": time_range.value,
        "count": len(records),
        "records": [r.to_dict() for r in records],
    }


@app.delete("/api/history")
async def clear_history(store: HistoryStore = Depends(get_history_store)):
    store.clear()
    return {"status": "cleared"}


@app.get("/api/history/export")
async def export_history(store: HistoryStore = Depends(get_history_store)):
    """Download the whole history as a JSON backup."""
    return Response(
        content=store.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="minirecon_history.json"'},
    )


@app.post("/api/history/import")
async def import_history(request: ImportRequest, store: HistoryStore = Depends(get_history_store)):
    """Replace the history with a previously exported backup."""
    try:
        count = store.import_json(request.backup)
    except HistoryStoreError as e:
        raise HTTPException(400, e.message)
    return {"status": "imported", "count": count}


@app.get("/api/analytics")
async def get_analytics(
    time_range: TimeRange = TimeRange.LAST_30_DAYS,
    store: HistoryStore = Depends(get_history_store),
):
    """Analytics for the most recent outcome, compared with earlier ones in the window."""
    records = store.query(time_range)
    if not records:
        raise HTTPException(404, "No reconciliation history in the selected range")

    latest = records[-1]
    report = generate_analytics(latest.outcome, records[:-1])

    return {
        "record_id": latest.id,
        "time_range": time_range.value,
        "analytics": report.to_dict(),
        "executive_summary": executive_summary(report),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
