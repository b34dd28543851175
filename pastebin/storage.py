"""
Paste storage on top of a key-value backend.

Handles create (with optional TTL), lookup with lazy expiry, one-time
consumption, deletion and listing. Backend TTL enforcement is approximate,
so every read re-checks ``expires_at`` against the clock.
"""
import logging
import math
from datetime import datetime
from typing import Callable, List, NamedTuple, Optional, Tuple

from pydantic import ValidationError as RecordDecodeError

from pastebin.database import KVBackend
from pastebin.errors import StorageError
from pastebin.identifiers import IdentifierGenerator
from pastebin.models import Paste, PasteInput
from pastebin.utils import utcnow

logger = logging.getLogger(__name__)

KEY_PREFIX = "paste:"


def paste_key(paste_id: str) -> str:
    return f"{KEY_PREFIX}{paste_id}"


class Lookup(NamedTuple):
    """Raw fetch result. ``expired`` records have already been deleted."""
    paste: Optional[Paste]
    expired: bool = False


class PasteStore:
    """Wrapper for backend operations on pastes."""

    def __init__(
        self,
        backend: KVBackend,
        id_length: int = 12,
        id_max_attempts: int = 10,
        clock: Callable[[], datetime] = utcnow,
        id_generator: Optional[IdentifierGenerator] = None,
    ):
        self.backend = backend
        self._clock = clock
        self.id_generator = id_generator or IdentifierGenerator(
            self.exists, length=id_length, max_attempts=id_max_attempts
        )

    async def exists(self, paste_id: str) -> bool:
        try:
            return await self.backend.exists(paste_key(paste_id))
        except Exception as e:
            raise StorageError(f"Failed to check paste {paste_id}", StorageError.FETCH_FAILED) from e

    async def create(self, data: PasteInput, now: Optional[datetime] = None) -> Paste:
        """
        Write a new paste under a freshly generated ID.

        Args:
            data: Validated paste fields
            now: Override for the current time

        Returns:
            The stored record

        Raises:
            StorageError: INVALID_EXPIRY when ``expires_at`` is not in the
                future, CREATE_FAILED on backend errors, ID_GENERATION_FAILED
                when every ID candidate collided
        """
        now = now or self._clock()

        ttl_seconds = None
        if data.expires_at is not None:
            ttl_seconds = math.floor((data.expires_at - now).total_seconds())
            if ttl_seconds <= 0:
                raise StorageError("Paste expiration is in the past", StorageError.INVALID_EXPIRY)

        paste_id = await self.id_generator.generate()
        paste = Paste(
            id=paste_id,
            title=data.title,
            content=data.content,
            language=data.language,
            created_at=now,
            expires_at=data.expires_at,
            consumed=False,
            size=data.size,
            one_time_view=data.one_time_view,
        )

        try:
            await self.backend.set(paste_key(paste_id), paste.model_dump_json(by_alias=True), ttl_seconds)
        except Exception as e:
            logger.error(f"Error saving paste {paste_id}: {e}")
            raise StorageError("Failed to create paste", StorageError.CREATE_FAILED) from e

        logger.info(f"Paste {paste_id} saved (ttl={ttl_seconds}, one_time_view={paste.one_time_view})")
        return paste

    async def lookup(self, paste_id: str, now: Optional[datetime] = None) -> Lookup:
        """Fetch a record, deleting it if it is logically expired."""
        paste = await self._fetch(paste_id)
        if paste is None:
            return Lookup(None)

        if paste.is_expired(now or self._clock()):
            logger.info(f"Paste {paste_id} has expired (lazy check)")
            await self.delete(paste_id)
            return Lookup(paste, expired=True)

        return Lookup(paste)

    async def get(self, paste_id: str, now: Optional[datetime] = None) -> Optional[Paste]:
        lookup = await self.lookup(paste_id, now)
        if lookup.expired:
            return None
        return lookup.paste

    async def consume(self, paste_id: str, now: Optional[datetime] = None) -> Optional[Paste]:
        """
        Read and delete a one-time paste.

        Read-then-delete is not atomic: concurrent consumers may both get the
        content before either delete lands. No lock is taken.
        """
        lookup = await self.lookup(paste_id, now)
        paste = lookup.paste
        if paste is None or lookup.expired or paste.consumed:
            return None

        await self.delete(paste_id)
        logger.info(f"Paste {paste_id} consumed")
        return paste

    async def delete(self, paste_id: str) -> None:
        try:
            await self.backend.delete(paste_key(paste_id))
        except Exception as e:
            logger.error(f"Error deleting paste {paste_id}: {e}")
            raise StorageError("Failed to delete paste", StorageError.DELETE_FAILED) from e

    async def list(self, limit: int = 10, cursor: Optional[int] = None) -> Tuple[List[Paste], Optional[int]]:
        """
        Enumerate stored pastes for administration.

        Returns:
            (pastes, next_cursor); next_cursor is None when iteration is done
        """
        try:
            next_cursor, keys = await self.backend.scan(cursor or 0, match=f"{KEY_PREFIX}*", count=limit)
            pastes = []
            for key in keys:
                raw = await self.backend.get(key)
                paste = self._decode(key, raw)
                if paste is not None:
                    pastes.append(paste)
        except Exception as e:
            logger.error(f"Error listing pastes: {e}")
            raise StorageError("Failed to list pastes", StorageError.LIST_FAILED) from e

        return pastes, (next_cursor or None)

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every logically expired record the backend has not swept yet."""
        now = now or self._clock()
        expired_ids = []
        cursor = None
        # Collect first; deleting mid-scan can shift cursors
        while True:
            pastes, cursor = await self.list(limit=100, cursor=cursor)
            expired_ids.extend(paste.id for paste in pastes if paste.is_expired(now))
            if cursor is None:
                break
        for paste_id in expired_ids:
            await self.delete(paste_id)
        logger.info(f"Purged {len(expired_ids)} expired paste(s)")
        return len(expired_ids)

    async def _fetch(self, paste_id: str) -> Optional[Paste]:
        key = paste_key(paste_id)
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            logger.error(f"Error fetching paste {paste_id}: {e}")
            raise StorageError("Failed to fetch paste", StorageError.FETCH_FAILED) from e
        return self._decode(key, raw)

    @staticmethod
    def _decode(key: str, raw: Optional[str]) -> Optional[Paste]:
        if not raw:
            return None
        try:
            return Paste.model_validate_json(raw)
        except RecordDecodeError:
            logger.warning(f"Skipping undecodable record under {key}")
            return None
