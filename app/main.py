from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import settings
from app.api.v1.router import api_router
from app.database import init_db, async_session_factory
from app.jobs.scheduler import start_scheduler, shutdown_scheduler, get_job_status


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and start the recurring invoice scheduler."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    start_scheduler()

    yield

    shutdown_scheduler()
    logger.info(f"{settings.APP_NAME} stopped")


API_DESCRIPTION = """
## AXIS CRM Billing API

Recurring invoice engine for landlords: templates describe what to bill a
tenant and how often; the engine generates one invoice per billing period,
emails the tenant a PDF copy and advances the schedule.

Template endpoints require a JWT access token (`Authorization: Bearer <token>`).
The cron endpoint accepts `CRON_SECRET` as `?secret=` or as a Bearer token.
"""

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Recurring Invoices", "description": "Recurring invoice templates and manual generation"},
        {"name": "Cron", "description": "Endpoints called by external schedulers"},
        {"name": "Health", "description": "Service health"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """JSON body for errors no endpoint handled."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")

    content = {
        "error": str(exc) or type(exc).__name__,
        "type": type(exc).__name__,
        "path": request.url.path,
    }
    if settings.DEBUG:
        content["traceback"] = traceback.format_exc()
    return JSONResponse(status_code=500, content=content)


async def check_database() -> str:
    async with async_session_factory() as session:
        await session.execute(text("SELECT 1"))
    return "connected"


@app.get("/health", tags=["Health"])
async def health_check():
    """Database connectivity and scheduled jobs; 503 when the database is unreachable."""
    health = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
        "jobs": get_job_status(),
    }

    try:
        health["checks"]["database"] = await check_database()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        health["status"] = "unhealthy"
        health["checks"]["database"] = f"error: {e}"
        return JSONResponse(status_code=503, content=health)

    return health


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
