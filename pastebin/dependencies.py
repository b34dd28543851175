"""
FastAPI dependency providers. Everything is built once in ``create_app`` and
kept on ``app.state``.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Header, Request

from pastebin.analytics import Analytics
from pastebin.config import Settings
from pastebin.services.creation import CreationService
from pastebin.services.retrieval import RetrievalService
from pastebin.storage import PasteStore

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> PasteStore:
    return request.app.state.store


def get_analytics(request: Request) -> Analytics:
    return request.app.state.analytics


def get_creation_service(request: Request) -> CreationService:
    return request.app.state.creation_service


def get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def get_client_ip(request: Request) -> str:
    """Best guess at the caller address, preferring proxy-provided headers."""
    headers = request.headers
    if headers.get("cf-connecting-ip"):
        return headers["cf-connecting-ip"]
    if headers.get("x-forwarded-for"):
        # May contain a chain, the first entry is the client
        return headers["x-forwarded-for"].split(",")[0].strip()
    if headers.get("x-real-ip"):
        return headers["x-real-ip"]
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_current_time(
    request: Request,
    x_test_now_ms: Optional[str] = Header(None),
) -> datetime:
    """
    Get current time, respecting TEST_MODE for deterministic testing.

    Args:
        x_test_now_ms: Test timestamp header (milliseconds since epoch)

    Returns:
        Current datetime in UTC
    """
    if request.app.state.settings.TEST_MODE and x_test_now_ms:
        try:
            # Convert milliseconds to seconds
            timestamp_ms = int(x_test_now_ms)
            return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")

    return request.app.state.clock()
