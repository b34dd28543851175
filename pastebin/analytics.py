"""
Usage analytics collaborator.

Services hold an ``Analytics`` instance and call it fire-and-forget; every
call site suppresses failures. Two variants: ``InMemoryAnalytics`` keeps an
event list scoped to one process, ``KVAnalytics`` keeps counters in the same
key-value backend as the pastes under the ``analytics:`` namespace.
"""
import json
import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from pastebin.database import KVBackend
from pastebin.errors import AnalyticsError
from pastebin.models import AnalyticsStats, DailyStats, LanguageCount
from pastebin.utils import short_hash, utcnow

logger = logging.getLogger(__name__)

PASTE_CREATED = "paste_created"
PASTE_VIEWED = "paste_viewed"
PASTE_EXPIRED = "paste_expired"
ERROR = "error"

MAX_SIZE_SAMPLES = 1000


def hash_client(client_ip: str) -> str:
    return f"ip_{short_hash(client_ip)}"


def mask_paste_id(paste_id: str) -> str:
    return f"{paste_id[:4]}***"


async def track_safely(awaitable: Awaitable[None], description: str) -> None:
    """Await an analytics call; failures are logged and never propagate."""
    try:
        await awaitable
    except Exception as e:
        logger.warning(f"Failed to track {description}: {e}")


def top_languages(languages: Dict[str, int], limit: int = 10) -> List[LanguageCount]:
    total = sum(languages.values())
    ranked = sorted(languages.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [
        LanguageCount(
            language=language,
            count=count,
            percentage=round(count / total * 100) if total else 0,
        )
        for language, count in ranked
    ]


class Analytics(ABC):
    @abstractmethod
    async def track_created(self, language: str, size: int, client_ip: str) -> None:
        ...

    @abstractmethod
    async def track_viewed(self, paste_id: str, client_ip: str) -> None:
        ...

    @abstractmethod
    async def track_expired(self, paste_id: str) -> None:
        ...

    @abstractmethod
    async def track_error(self, kind: str, client_ip: Optional[str] = None) -> None:
        ...

    @abstractmethod
    async def get_stats(self, days: int = 7) -> AnalyticsStats:
        ...


@dataclass
class AnalyticsEvent:
    type: str
    timestamp: datetime
    client: Optional[str] = None
    paste_id: Optional[str] = None
    language: Optional[str] = None
    size: Optional[int] = None
    error: Optional[str] = None


class InMemoryAnalytics(Analytics):
    """Event list bounded by retention and a maximum event count."""

    def __init__(self, retention_days: int = 30, max_stored_events: int = 10000,
                 clock: Callable[[], datetime] = utcnow):
        self.retention_days = retention_days
        self.max_stored_events = max_stored_events
        self.events: List[AnalyticsEvent] = []
        self._clock = clock

    async def track_created(self, language: str, size: int, client_ip: str) -> None:
        self._add(AnalyticsEvent(PASTE_CREATED, self._clock(), client=hash_client(client_ip),
                                 language=language, size=size))

    async def track_viewed(self, paste_id: str, client_ip: str) -> None:
        self._add(AnalyticsEvent(PASTE_VIEWED, self._clock(), client=hash_client(client_ip),
                                 paste_id=mask_paste_id(paste_id)))

    async def track_expired(self, paste_id: str) -> None:
        self._add(AnalyticsEvent(PASTE_EXPIRED, self._clock(), paste_id=mask_paste_id(paste_id)))

    async def track_error(self, kind: str, client_ip: Optional[str] = None) -> None:
        client = hash_client(client_ip) if client_ip else None
        self._add(AnalyticsEvent(ERROR, self._clock(), client=client, error=kind))

    async def get_stats(self, days: int = 7) -> AnalyticsStats:
        cutoff = self._clock() - timedelta(days=days)
        events = [e for e in self.events if e.timestamp >= cutoff]

        stats = AnalyticsStats()
        languages: Counter = Counter()
        sizes = []
        clients = set()
        for event in events:
            if event.client:
                clients.add(event.client)
            day = stats.daily_stats.setdefault(event.timestamp.date().isoformat(), DailyStats())
            if event.type == PASTE_CREATED:
                stats.total_shares += 1
                day.shares += 1
                if event.language:
                    languages[event.language] += 1
                if event.size:
                    sizes.append(event.size)
            elif event.type == PASTE_VIEWED:
                stats.total_views += 1
                day.views += 1
            elif event.type == PASTE_EXPIRED:
                stats.total_expired += 1
            elif event.type == ERROR:
                stats.total_errors += 1
                day.errors += 1

        stats.unique_visitors = len(clients)
        stats.languages = dict(languages)
        stats.top_languages = top_languages(stats.languages)
        if sizes:
            stats.avg_paste_size = round(sum(sizes) / len(sizes))
        return stats

    def _add(self, event: AnalyticsEvent) -> None:
        self.events.append(event)
        if len(self.events) > self.max_stored_events:
            self.events = self.events[-self.max_stored_events:]
        retention_cutoff = self._clock() - timedelta(days=self.retention_days)
        self.events = [e for e in self.events if e.timestamp >= retention_cutoff]


class KVAnalytics(Analytics):
    """Persistent counters in the shared key-value backend."""

    PREFIX = "analytics:"

    def __init__(self, backend: KVBackend, retention_days: int = 30,
                 clock: Callable[[], datetime] = utcnow):
        self.backend = backend
        self.retention_days = retention_days
        self._clock = clock

    @property
    def _retention_seconds(self) -> int:
        return self.retention_days * 24 * 60 * 60

    async def track_created(self, language: str, size: int, client_ip: str) -> None:
        try:
            today = self._date_key()
            await self._incr_daily(today, "shares")
            await self.backend.incr(f"{self.PREFIX}language:{language}")
            await self.backend.incr(f"{self.PREFIX}total:shares")
            await self._add_size_sample(size)
        except Exception as e:
            raise AnalyticsError("Failed to track paste creation", "TRACK_CREATE_FAILED") from e

    async def track_viewed(self, paste_id: str, client_ip: str) -> None:
        try:
            await self._incr_daily(self._date_key(), "views")
            await self.backend.incr(f"{self.PREFIX}total:views")
        except Exception as e:
            raise AnalyticsError("Failed to track paste view", "TRACK_VIEW_FAILED") from e

    async def track_expired(self, paste_id: str) -> None:
        try:
            await self.backend.incr(f"{self.PREFIX}total:expired")
        except Exception as e:
            raise AnalyticsError("Failed to track paste expiry", "TRACK_EXPIRED_FAILED") from e

    async def track_error(self, kind: str, client_ip: Optional[str] = None) -> None:
        try:
            await self._incr_daily(self._date_key(), "errors")
            await self.backend.incr(f"{self.PREFIX}total:errors")
        except Exception as e:
            raise AnalyticsError("Failed to track error", "TRACK_ERROR_FAILED") from e

    async def get_stats(self, days: int = 7) -> AnalyticsStats:
        try:
            stats = AnalyticsStats(
                total_shares=await self._counter(f"{self.PREFIX}total:shares"),
                total_views=await self._counter(f"{self.PREFIX}total:views"),
                total_expired=await self._counter(f"{self.PREFIX}total:expired"),
                total_errors=await self._counter(f"{self.PREFIX}total:errors"),
            )
            stats.languages = await self._language_counts()
            stats.top_languages = top_languages(stats.languages)
            stats.avg_paste_size = await self._average_size()

            now = self._clock()
            for offset in range(days):
                day = (now - timedelta(days=offset)).date().isoformat()
                stats.daily_stats[day] = DailyStats(
                    shares=await self._counter(f"{self.PREFIX}daily:{day}:shares"),
                    views=await self._counter(f"{self.PREFIX}daily:{day}:views"),
                    errors=await self._counter(f"{self.PREFIX}daily:{day}:errors"),
                )
        except Exception as e:
            logger.error(f"Failed to get analytics stats: {e}")
            raise AnalyticsError("Failed to get analytics stats", "GET_STATS_FAILED") from e
        return stats

    def _date_key(self) -> str:
        return self._clock().date().isoformat()

    async def _incr_daily(self, day: str, field: str) -> None:
        await self.backend.incr(f"{self.PREFIX}daily:{day}:{field}", ttl_seconds=self._retention_seconds)

    async def _counter(self, key: str) -> int:
        value = await self.backend.get(key)
        return int(value) if value else 0

    async def _add_size_sample(self, size: int) -> None:
        # Read-modify-write; a concurrent writer may drop a sample
        key = f"{self.PREFIX}sizes"
        raw = await self.backend.get(key)
        samples = json.loads(raw) if raw else []
        samples.append(size)
        await self.backend.set(key, json.dumps(samples[-MAX_SIZE_SAMPLES:]))

    async def _average_size(self) -> int:
        raw = await self.backend.get(f"{self.PREFIX}sizes")
        samples = json.loads(raw) if raw else []
        if not samples:
            return 0
        return round(sum(samples) / len(samples))

    async def _language_counts(self) -> Dict[str, int]:
        prefix = f"{self.PREFIX}language:"
        counts: Dict[str, int] = {}
        cursor = 0
        while True:
            cursor, keys = await self.backend.scan(cursor, match=f"{prefix}*", count=100)
            for key in keys:
                count = await self._counter(key)
                if count > 0:
                    counts[key[len(prefix):]] = count
            if cursor == 0:
                break
        return counts


def create_analytics(backend_name: str, kv: KVBackend, retention_days: int = 30,
                     clock: Callable[[], datetime] = utcnow) -> Analytics:
    if backend_name == "kv":
        return KVAnalytics(kv, retention_days=retention_days, clock=clock)
    if backend_name == "memory":
        return InMemoryAnalytics(retention_days=retention_days, clock=clock)
    raise ValueError(f"Unknown ANALYTICS_BACKEND {backend_name!r} (expected 'kv' or 'memory')")
