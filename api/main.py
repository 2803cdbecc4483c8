"""
FastAPI application entry point.

Configures the API with all routes, middleware, and error handling.
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from kerjaya import __version__
from kerjaya.errors import AuthError, RateLimited

from .routes.router import router as api_router
from .deps import get_services, close_services

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
# Telethon is chatty at INFO (connection and DC switching noise)
logging.getLogger("telethon").setLevel(logging.WARNING)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def sweep_login_challenges():
    """Background job to drop login challenges whose code has expired."""
    try:
        get_services().auth.purge_expired_challenges()
    except Exception as e:
        logger.error(f"Login challenge sweep failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    global scheduler

    logger.info("Starting Kerjaya API...")

    # Initialize services on startup; a corrupt session file in strict mode stops here
    services = get_services()
    interval = services.config.auth.challenge_sweep_seconds

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_login_challenges,
        trigger=IntervalTrigger(seconds=interval),
        id="challenge_sweep",
        name="Drop expired login challenges",
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Background scheduler started - challenge sweep every {interval}s")

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    close_services()


app = FastAPI(
    title="Kerjaya API",
    description="Job board backend with Telegram login",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    headers = None
    if isinstance(exc, RateLimited) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Rejected request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body."}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


# Health check
@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "kerjaya-api"}


# Include API routes
app.include_router(api_router, prefix="/api")


# Root endpoint
@app.get("/", tags=["System"])
async def root():
    """API root endpoint."""
    return {
        "name": "Kerjaya API",
        "version": __version__,
        "docs": "/docs"
    }
