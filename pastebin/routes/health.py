"""
Health check route.
"""
import logging

from fastapi import APIRouter, Request

from pastebin.models import HealthCheck

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/healthz", response_model=HealthCheck)
async def health_check(request: Request) -> HealthCheck:
    """
    Health check endpoint.
    Returns 200 with ok=true if application and storage backend are healthy.
    """
    backend = request.app.state.backend
    try:
        is_healthy = await backend.ping()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        is_healthy = False
    return HealthCheck(ok=is_healthy, storage=backend.name)
