"""
Paste creation: validation, language and expiry resolution, storage write.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, Optional

from pastebin.analytics import Analytics, track_safely
from pastebin.config import EXPIRY_OPTIONS, SUPPORTED_LANGUAGES
from pastebin.errors import StorageError, ValidationError
from pastebin.languages import detect_language, sanitize_language
from pastebin.models import PasteCreate, PasteDescriptor, PasteInput
from pastebin.security import ContentValidator
from pastebin.storage import PasteStore
from pastebin.utils import build_share_url, sanitize_user_input, utcnow, utf8_size

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Paste"
FALLBACK_EXPIRY_SECONDS = 86400


class CreationService:
    def __init__(
        self,
        store: PasteStore,
        validator: ContentValidator,
        analytics: Analytics,
        base_url: str,
        expiry_options: Optional[Dict[str, int]] = None,
        default_expiry: str = "1d",
        supported_languages: Iterable[str] = SUPPORTED_LANGUAGES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.validator = validator
        self.analytics = analytics
        self.base_url = base_url
        self.expiry_options = expiry_options or EXPIRY_OPTIONS
        self.default_expiry = default_expiry
        self.supported_languages = list(supported_languages)
        self._clock = clock

    async def create(self, request: PasteCreate, client_ip: str = "unknown",
                     now: Optional[datetime] = None) -> PasteDescriptor:
        """
        Create a new paste.

        Args:
            request: Raw create input
            client_ip: Caller address, hashed before analytics sees it
            now: Override for the current time

        Returns:
            Descriptor with the share URL and any non-blocking warnings

        Raises:
            ValidationError: Input rejected; nothing was written
            StorageError: Backend failure; the paste was not created
        """
        title = sanitize_user_input(request.title or "")
        content = (request.content or "").strip()

        validation = self.validator.validate(content, title)
        validation.raise_for_error()

        language = self.resolve_language(request.language, content)
        expiry_seconds = self.resolve_expiry(request)

        now = now or self._clock()
        data = PasteInput(
            title=title or DEFAULT_TITLE,
            content=content,
            language=language,
            expires_at=now + timedelta(seconds=expiry_seconds),
            size=utf8_size(content),
            one_time_view=request.one_time_view,
        )

        try:
            paste = await self.store.create(data, now=now)
        except StorageError as e:
            logger.error(f"Paste creation failed [{e.code}]: {e.message}")
            await track_safely(self.analytics.track_error("paste_creation_failed", client_ip), "creation error")
            raise

        await track_safely(self.analytics.track_created(paste.language, paste.size, client_ip), "paste creation")

        return PasteDescriptor(
            id=paste.id,
            share_url=build_share_url(self.base_url, paste.id),
            title=paste.title,
            language=paste.language,
            expires_at=paste.expires_at,
            size=paste.size,
            created_at=paste.created_at,
            one_time_view=paste.one_time_view,
            warnings=validation.warnings,
        )

    def resolve_language(self, requested: Optional[str], content: str) -> str:
        if requested and requested.strip():
            return sanitize_language(requested, self.supported_languages)
        return sanitize_language(detect_language(content), self.supported_languages)

    def resolve_expiry(self, request: PasteCreate) -> int:
        """Symbolic key, then raw seconds, then the configured default; bounds-checked."""
        if request.expires:
            key = request.expires.strip()
            if key not in self.expiry_options:
                raise ValidationError(f"Invalid expiry option: {key}", ValidationError.UNSUPPORTED_EXPIRY_KEY)
            seconds = self.expiry_options[key]
        elif request.expires_in is not None:
            seconds = request.expires_in
        else:
            seconds = self.expiry_options.get(self.default_expiry, FALLBACK_EXPIRY_SECONDS)

        self.validator.validate_expiry(seconds).raise_for_error()
        return seconds
