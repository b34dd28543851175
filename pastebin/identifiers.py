"""
Public paste identifiers.
"""
import logging
import secrets
import string
from typing import Awaitable, Callable, Optional

from pastebin.errors import GenerationExhausted

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_letters + string.digits


def random_id(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class IdentifierGenerator:
    """
    Produces short random IDs and re-rolls on collision.

    ``exists`` is an async predicate against the store. The check-then-write
    is not atomic; with 62**12 candidates an undetected overwrite is accepted.
    """

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        length: int = 12,
        max_attempts: int = 10,
        source: Optional[Callable[[int], str]] = None,
    ):
        if length < 8:
            raise ValueError("ID length must be at least 8")
        self._exists = exists
        self.length = length
        self.max_attempts = max_attempts
        self._source = source or random_id

    async def generate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._source(self.length)
            if not await self._exists(candidate):
                return candidate
            logger.warning(f"ID collision on attempt {attempt}, retrying")
        raise GenerationExhausted(self.max_attempts)
