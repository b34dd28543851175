"""
Secure Pastebin - Main FastAPI application.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pastebin.analytics import Analytics, create_analytics
from pastebin.config import Settings, settings as default_settings
from pastebin.database import KVBackend, create_backend
from pastebin.errors import ValidationError
from pastebin.routes import api, health, pastes
from pastebin.security import ContentValidator
from pastebin.services.creation import CreationService
from pastebin.services.retrieval import RetrievalService
from pastebin.storage import PasteStore
from pastebin.utils import utcnow

# Configure logging
logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[KVBackend] = None,
    analytics: Optional[Analytics] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """
    Build the application and wire storage, analytics and services once.

    Args:
        settings: Configuration; defaults to the environment-backed settings
        backend: Key-value backend; built from STORAGE_BACKEND when omitted
        analytics: Analytics collaborator; built from ANALYTICS_BACKEND when omitted
        clock: Source of the current time
    """
    settings = settings or default_settings
    if backend is None:
        backend = create_backend(
            settings.STORAGE_BACKEND,
            redis_url=settings.REDIS_URL,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            clock=clock,
        )
    if analytics is None:
        analytics = create_analytics(
            settings.ANALYTICS_BACKEND,
            backend,
            retention_days=settings.ANALYTICS_RETENTION_DAYS,
            clock=clock,
        )

    store = PasteStore(
        backend,
        id_length=settings.ID_LENGTH,
        id_max_attempts=settings.ID_MAX_ATTEMPTS,
        clock=clock,
    )
    validator = ContentValidator(
        max_content_size=settings.MAX_CONTENT_SIZE,
        max_title_length=settings.MAX_TITLE_LENGTH,
        min_expiry=settings.MIN_EXPIRY,
        max_expiry=settings.MAX_EXPIRY,
        suspicious_patterns_enabled=settings.SUSPICIOUS_PATTERNS_ENABLED,
        strict_validation=settings.STRICT_VALIDATION,
    )

    app = FastAPI(
        title="Secure Pastebin",
        description="Share text through unguessable links that burn after reading or expire",
        version="1.0.0",
    )

    app.state.settings = settings
    app.state.clock = clock
    app.state.backend = backend
    app.state.analytics = analytics
    app.state.store = store
    app.state.creation_service = CreationService(
        store,
        validator,
        analytics,
        base_url=settings.APP_DOMAIN,
        expiry_options=settings.EXPIRY_OPTIONS,
        default_expiry=settings.DEFAULT_EXPIRY,
        supported_languages=settings.SUPPORTED_LANGUAGES,
        clock=clock,
    )
    app.state.retrieval_service = RetrievalService(store, analytics, clock=clock)

    # Add CORS middleware (optional, for cross-origin requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies and parameters get the same failure shape as rejected content."""
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        logger.info(f"Rejected request [{ValidationError.INVALID_REQUEST}]: {message}")
        return JSONResponse(
            status_code=400,
            content={"detail": {"code": ValidationError.INVALID_REQUEST, "message": message}},
        )

    # Include route modules
    app.include_router(health.router)
    app.include_router(api.router)
    app.include_router(pastes.router)

    @app.on_event("startup")
    async def startup_event():
        """Startup event handler."""
        logger.info("Secure Pastebin application starting...")

        # Log storage status
        if not backend.persistent:
            logger.warning("⚠️  STORAGE: Using IN-MEMORY backend")
            logger.warning("   Data will NOT persist across server restarts!")
            return
        try:
            await backend.ping()
            logger.info(f"✅ STORAGE: Connected to {backend.name}")
        except Exception as e:
            logger.error(f"❌ STORAGE: {backend.name} unreachable: {type(e).__name__}: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Shutdown event handler."""
        logger.info("Secure Pastebin application shutting down...")
        await backend.close()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pastebin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
    )
