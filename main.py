"""
Wedding Gift Tracker - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from app.core.config import settings
from app.core.db import check_database, get_engine, init_db
from app.core.exceptions import GuestServiceError
from app.api import routes_guest
from app.utils.responses import (
    error_response,
    guest_error_response,
    internal_error_response,
    success_response,
)

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # A DatabaseError here aborts startup
    init_db(get_engine())
    logger.info("Database ready")
    yield
    get_engine().dispose()
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Wedding Gift Tracker",
    description="Guest registry and gift contribution tracking for weddings",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(GuestServiceError)
async def handle_guest_error(request: Request, exc: GuestServiceError):
    return guest_error_response(exc)

@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return internal_error_response(exc)

# Include routers
app.include_router(routes_guest.router, prefix="/guests", tags=["guests"])

@app.get("/health")
async def health():
    """Database connectivity and schema check"""
    status = check_database()
    if not status["connected"] or not status["tables_exist"]:
        return error_response("Database unavailable", error_code="DatabaseUnavailable", status_code=503)
    return success_response("OK", data=status)

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
