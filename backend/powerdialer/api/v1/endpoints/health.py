"""
Health Check Endpoint
Provides health status for Docker health checks and monitoring
"""
from fastapi import APIRouter, status
from typing import Dict

from powerdialer.core.config import get_settings
from powerdialer.utils.time_utils import utc_now

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Health check endpoint for Docker and monitoring systems.

    Returns:
        Dict with status, timestamp and the configured lead store
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": "powerdialer-backend",
        "store_backend": settings.store_backend,
        "reservations": "enabled" if settings.reservation_enabled else "disabled",
    }
