"""
Paste retrieval: delivery, metadata probe, preview, download and deletion.

Each request runs a small state machine over the stored record:

    NOT_FOUND         no record (includes consumed-and-gone one-time pastes)
    EXPIRED           expires_at has passed; the record is deleted on sight
    ALREADY_CONSUMED  record flagged consumed
    LIVE              readable
    DELIVERED         content handed out (one-time pastes are gone afterwards)

Expired pastes are reported as EXPIRED on every read path the first time the
lazy check sees them; later reads find nothing and report NOT_FOUND.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pastebin.analytics import Analytics, track_safely
from pastebin.errors import ValidationError
from pastebin.languages import file_extension
from pastebin.models import Paste, PasteMetadata, PastePreview, PasteView
from pastebin.storage import PasteStore
from pastebin.utils import sanitize_paste_id, utcnow

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 500
DOWNLOAD_FORMATS = ("auto", "txt", "md")


class PasteState(str, Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ALREADY_CONSUMED = "already_consumed"
    LIVE = "live"
    DELIVERED = "delivered"


@dataclass
class Retrieval:
    state: PasteState
    paste: Optional[Paste] = None
    data: Any = None

    @property
    def available(self) -> bool:
        return self.state in (PasteState.LIVE, PasteState.DELIVERED)


@dataclass
class Download:
    filename: str
    media_type: str
    content: str


class RetrievalService:
    def __init__(self, store: PasteStore, analytics: Analytics,
                 clock: Callable[[], datetime] = utcnow, preview_length: int = PREVIEW_LENGTH):
        self.store = store
        self.analytics = analytics
        self.preview_length = preview_length
        self._clock = clock

    async def view(self, paste_id: str, client_ip: str = "unknown",
                   now: Optional[datetime] = None) -> Retrieval:
        """Deliver a paste, consuming it when it is one-time."""
        result = await self._deliver(paste_id, client_ip, now)
        if result.state is PasteState.DELIVERED:
            paste = result.paste
            result.data = PasteView(
                id=paste.id,
                title=paste.title,
                content=paste.content,
                language=paste.language,
                size=paste.size,
                created_at=paste.created_at,
                consumed=paste.one_time_view,
            )
        return result

    async def metadata(self, paste_id: str, now: Optional[datetime] = None) -> Retrieval:
        """Existence probe; never consumes."""
        now = now or self._clock()
        result = await self._probe(paste_id, now)
        if result.state is PasteState.LIVE:
            paste = result.paste
            remaining = None
            if paste.expires_at is not None:
                remaining = max(0, int((paste.expires_at - now).total_seconds()))
            result.data = PasteMetadata(
                id=paste.id,
                language=paste.language,
                size=paste.size,
                created_at=paste.created_at,
                expires_at=paste.expires_at,
                time_remaining=remaining,
                one_time_view=paste.one_time_view,
            )
        return result

    async def preview(self, paste_id: str, now: Optional[datetime] = None) -> Retrieval:
        """First ``preview_length`` characters without spending a one-time view."""
        result = await self._probe(paste_id, now)
        if result.state is PasteState.LIVE:
            paste = result.paste
            truncated = len(paste.content) > self.preview_length
            content = paste.content[:self.preview_length] + "..." if truncated else paste.content
            result.data = PastePreview(
                id=paste.id,
                title=paste.title,
                content=content,
                language=paste.language,
                size=paste.size,
                created_at=paste.created_at,
                expires_at=paste.expires_at,
                truncated=truncated,
                full_size=len(paste.content),
            )
        return result

    async def download(self, paste_id: str, fmt: str = "auto", client_ip: str = "unknown",
                       now: Optional[datetime] = None) -> Retrieval:
        """Deliver a paste as a file. Spends a one-time view exactly like ``view``."""
        _check_format(fmt)
        result = await self._deliver(paste_id, client_ip, now)
        if result.state is PasteState.DELIVERED:
            result.data = render_download(result.paste, fmt)
        return result

    async def describe_download(self, paste_id: str, fmt: str = "auto",
                                now: Optional[datetime] = None) -> Retrieval:
        """What ``download`` would return, without spending a one-time view."""
        _check_format(fmt)
        result = await self._probe(paste_id, now)
        if result.state is PasteState.LIVE:
            result.data = render_download(result.paste, fmt)
        return result

    async def delete(self, paste_id: str) -> bool:
        """
        Remove a paste early. Anyone holding the ID may do this.

        Returns:
            Whether a readable paste existed; deleting a missing ID is not an error
        """
        clean_id = sanitize_paste_id(paste_id)
        if clean_id is None:
            return False
        existed = await self.store.get(clean_id) is not None
        await self.store.delete(clean_id)
        logger.info(f"Paste {clean_id} deleted (existed={existed})")
        return existed

    async def _probe(self, paste_id: str, now: Optional[datetime] = None) -> Retrieval:
        clean_id = sanitize_paste_id(paste_id)
        if clean_id is None:
            return Retrieval(PasteState.NOT_FOUND)

        lookup = await self.store.lookup(clean_id, now or self._clock())
        if lookup.paste is None:
            logger.info(f"Paste {clean_id} not found")
            return Retrieval(PasteState.NOT_FOUND)
        if lookup.expired:
            await track_safely(self.analytics.track_expired(clean_id), "paste expiry")
            return Retrieval(PasteState.EXPIRED)
        if lookup.paste.consumed:
            logger.info(f"Paste {clean_id} already consumed")
            return Retrieval(PasteState.ALREADY_CONSUMED)
        return Retrieval(PasteState.LIVE, lookup.paste)

    async def _deliver(self, paste_id: str, client_ip: str, now: Optional[datetime]) -> Retrieval:
        now = now or self._clock()
        result = await self._probe(paste_id, now)
        if result.state is not PasteState.LIVE:
            return result

        paste = result.paste
        if paste.one_time_view:
            paste = await self.store.consume(paste.id, now)
            if paste is None:
                # Lost the consume race, or expired in between
                logger.info(f"Paste {result.paste.id} gone before it could be consumed")
                return Retrieval(PasteState.NOT_FOUND)

        await track_safely(self.analytics.track_viewed(paste.id, client_ip), "paste view")
        return Retrieval(PasteState.DELIVERED, paste)


def _check_format(fmt: str) -> None:
    if fmt not in DOWNLOAD_FORMATS:
        raise ValidationError(
            f"Unsupported download format: {fmt} (expected one of {', '.join(DOWNLOAD_FORMATS)})",
            ValidationError.UNSUPPORTED_FORMAT,
        )


def render_download(paste: Paste, fmt: str) -> Download:
    base_name = re.sub(r"[^a-z0-9]", "_", (paste.title or "paste").lower())
    if fmt == "md":
        body = (
            f"# {paste.title}\n\n"
            f"**Created:** {paste.created_at.isoformat()}  \n"
            f"**Language:** {paste.language}  \n"
            f"**Size:** {len(paste.content):,} characters\n\n"
            f"---\n\n"
            f"```{paste.language}\n{paste.content}\n```\n"
        )
        return Download(f"{base_name}.md", "text/markdown", body)
    extension = file_extension(paste.language) if fmt == "auto" else ".txt"
    return Download(f"{base_name}{extension}", "text/plain", paste.content)
