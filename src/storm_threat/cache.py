"""In-process cache with per-entry TTL expiry."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from storm_threat.models import CacheEntry, Source

logger = logging.getLogger(__name__)

# TTLs in seconds
ALERTS_TTL = 120  # 2 minutes
SHELTERS_TTL = 300  # 5 minutes
DISCUSSIONS_TTL = 300  # 5 minutes
STORM_REPORTS_TTL = 600  # 10 minutes
INSTABILITY_TTL = 3600  # 1 hour
OUTLOOK_TTL = 21600  # 6 hours

SOURCE_TTLS: dict[Source, int] = {
    Source.ALERTS: ALERTS_TTL,
    Source.STATE_ALERTS: ALERTS_TTL,
    Source.TORNADO_REPORTS: STORM_REPORTS_TTL,
    Source.WIND_REPORTS: STORM_REPORTS_TTL,
    Source.HAIL_REPORTS: STORM_REPORTS_TTL,
    Source.SHELTERS: SHELTERS_TTL,
    Source.STATE_SHELTERS: SHELTERS_TTL,
    Source.INSTABILITY: INSTABILITY_TTL,
    Source.OUTLOOK: OUTLOOK_TTL,
    Source.DISCUSSIONS: DISCUSSIONS_TTL,
}


def make_key(
    source: Source | str,
    latitude: float | None = None,
    longitude: float | None = None,
    **params: Any,
) -> str:
    """Build a deterministic cache key.

    Coordinates are rounded to two decimals (~1 km) so that repeated
    queries from nearly the same spot share an entry.
    """
    parts = [source.value if isinstance(source, Source) else str(source)]
    if latitude is not None and longitude is not None:
        parts.append(f"{latitude:.2f}")
        parts.append(f"{longitude:.2f}")
    for name in sorted(params):
        parts.append(f"{name}={params[name]}")
    return ":".join(parts)


class TTLCache:
    """Keyed store whose entries disappear once their TTL has elapsed.

    ``clock`` returns seconds and defaults to ``time.monotonic``; tests
    inject a fake clock. All operations hold a lock because fetches
    populate the cache from worker threads.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Return the cached value if still fresh, else None."""
        assert isinstance(key, str) and key, f"invalid cache key: {key!r}"
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss for %s", key)
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                logger.debug("Cache expired for %s", key)
                return None
        logger.debug("Cache hit for %s", key)
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds, replacing any entry."""
        assert isinstance(key, str) and key, f"invalid cache key: {key!r}"
        assert ttl >= 0, f"negative ttl for {key}"
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key, value=value, expires_at=self._clock() + ttl
            )
        logger.debug("Cached %s (ttl=%ss)", key, ttl)

    def discard(self, key: str) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry, e.g. after the user's location changes."""
        with self._lock:
            self._entries.clear()
