"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from reset_otp.api.router import get_otp_store, register_exception_handlers
from reset_otp.api.router import router as reset_router
from reset_otp.config import settings
from reset_otp.database.engine import dispose_db, init_db
from reset_otp.otp.reaper import OtpReaper
from reset_otp.otp.store import BaseOtpStore

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s in %s mode …", settings.app_name, settings.reset_mode)
    await init_db()
    logger.info("Database initialised")
    reaper = OtpReaper(
        get_otp_store(),
        ttl_seconds=settings.otp_ttl_seconds,
        interval_seconds=settings.sweep_interval_seconds,
    )
    reaper.start()
    yield
    await reaper.stop()
    await dispose_db()
    logger.info("Shutting down %s …", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="One-time-code password reset service",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(reset_router)
register_exception_handlers(app)


@app.get("/health")
async def health_check(store: BaseOtpStore = Depends(get_otp_store)):
    """Simple liveness probe."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "pending_resets": len(store),
    }
