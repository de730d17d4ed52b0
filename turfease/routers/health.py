"""Health check endpoint."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from turfease.database import engine
from turfease.dependencies import get_otp_store
from turfease.utils.otp_store import OtpStore
from turfease.version import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(otp_store: OtpStore = Depends(get_otp_store)):
    """Health check endpoint for monitoring."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "Database connection failed"})

    return {
        "status": "ok",
        "database": "connected",
        "otp_store": otp_store.backend,
        "version": APP_VERSION,
    }
