# batch_hub/main.py
# Batch Hub - sale resolution + product feed over PostgreSQL
from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from batch_hub.settings import settings
from batch_hub.routers.sales import router as sales_router
from batch_hub.routers.listing import router as listing_router
from batch_hub.database import init_db, close_db, check_db_health

__version__ = "1.0.0"

# ---------------------------------------------------------
# Logging setup
# ---------------------------------------------------------
from batch_hub.logging_setup import setup_logging
setup_logging(settings)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Lifespan: Database init/cleanup
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    try:
        await init_db()
        logger.info("Database engine initialized")
    except Exception as e:
        logger.error("Database initialization failed: %s", e)
    yield
    # Shutdown
    await close_db()
    logger.info("Database engine disposed")

# ---------------------------------------------------------
# FastAPI app + CORS
# ---------------------------------------------------------
app = FastAPI(
    title="Batch Hub API",
    version=__version__,
    description="Shop sales by barcode/scan with FEFO batch selection, and the product feed",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sales_router)
app.include_router(listing_router)

# ---------------------------------------------------------
# Endpoints
# ---------------------------------------------------------
@app.get("/health")
async def health():
    """Health check endpoint with database status."""
    result = {
        "status": "ok",
        "version": __version__,
        "ocr_configured": bool(settings.OCR_SERVICE_URL),
    }
    db_health = await check_db_health()
    result["database"] = db_health
    if db_health.get("status") != "healthy":
        result["status"] = "degraded"
    return result
