import logging
import os
from contextlib import asynccontextmanager
from typing import (
    Any,
    Dict,
)
from fastapi import (
    FastAPI,
    Request,
)
from fastapi.middleware.cors import CORSMiddleware

from billscan.config.mongodb import close_mongo_connection, connect_to_mongo, get_bills_collection
from billscan.config.settings import load_gemini_settings, load_mongo_settings
from billscan.api.error_handlers import FailureResponseError, failure_response_handler
from billscan.api.v1.bills import router as bills_router
from billscan.services.bill_pipeline import BillIngestionPipeline
from billscan.services.bill_store import BillStore
from billscan.services.gemini_client import GeminiBillExtractor

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Missing Gemini settings abort startup.
    gemini_settings = load_gemini_settings()
    mongo_settings = load_mongo_settings()

    await connect_to_mongo(mongo_settings)
    extractor = GeminiBillExtractor(gemini_settings)
    store = BillStore(get_bills_collection(), timeout_seconds=mongo_settings.timeout_seconds)

    app.state.bill_store = store
    app.state.pipeline = BillIngestionPipeline(extractor, store)
    logger.info("Bill ingestion pipeline ready")

    yield

    await extractor.aclose()
    await close_mongo_connection()
    logger.info("Shutting down")


app = FastAPI(
    title="BillScan",
    description="Receipt image to structured bill extraction",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(FailureResponseError, failure_response_handler)

# Include API routers
app.include_router(bills_router, prefix="/api/bills")


@app.get("/")
async def root(request: Request):
    """Root endpoint returning basic API information."""
    return {"name": "BillScan", "version": "0.1.0", "status": "healthy"}


@app.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint returning basic API information."""
    return {"status": "healthy"}
