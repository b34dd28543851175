"""
Service-level API routes: stats, public config and maintenance.
"""
import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from pastebin.analytics import Analytics
from pastebin.config import Settings
from pastebin.dependencies import get_analytics, get_settings, get_store
from pastebin.errors import AnalyticsError, StorageError
from pastebin.models import AnalyticsStats, ExpiryOption, PublicConfig, PurgeResponse
from pastebin.storage import PasteStore
from pastebin.utils import format_duration

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


@router.get("/stats", response_model=AnalyticsStats)
async def stats(
    days: int = Query(7, ge=1, le=90),
    analytics: Analytics = Depends(get_analytics),
) -> AnalyticsStats:
    try:
        return await analytics.get_stats(days)
    except AnalyticsError as e:
        logger.error(f"Error getting stats: {e}")
        raise HTTPException(status_code=500, detail=e.to_dict())


@router.get("/config", response_model=PublicConfig)
async def public_config(settings: Settings = Depends(get_settings)) -> PublicConfig:
    """Limits and options a client needs to build a create form."""
    return PublicConfig(
        max_content_size=settings.MAX_CONTENT_SIZE,
        max_title_length=settings.MAX_TITLE_LENGTH,
        supported_languages=settings.SUPPORTED_LANGUAGES,
        expiry_options=[
            ExpiryOption(value=key, seconds=seconds, label=format_duration(seconds))
            for key, seconds in settings.EXPIRY_OPTIONS.items()
        ],
        default_expiry=settings.DEFAULT_EXPIRY,
    )


@router.post("/admin/purge", response_model=PurgeResponse)
async def purge_expired(
    x_admin_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    store: PasteStore = Depends(get_store),
) -> PurgeResponse:
    """Delete expired pastes the backend TTL sweep has not reached yet."""
    if not settings.ADMIN_TOKEN:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Not found"})
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.ADMIN_TOKEN):
        raise HTTPException(status_code=403, detail={"code": "FORBIDDEN", "message": "Invalid admin token"})

    try:
        purged = await store.purge_expired()
    except StorageError as e:
        logger.error(f"Purge failed [{e.code}]: {e.message}")
        raise HTTPException(status_code=500, detail={"code": e.code, "message": "Failed to purge pastes"})
    return PurgeResponse(purged=purged)
