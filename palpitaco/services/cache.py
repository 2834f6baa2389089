"""Short-TTL in-memory caches keyed by normalized query signatures.

Caches are built once per app (see ``palpitaco.extensions``) and injected
into the services; entries die by TTL or with the process.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from threading import Lock
from typing import Any, TypeVar

DEFAULT_TTL_SECONDS = 600

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    created_at: float


class TTLCache:
    """Thread-safe key -> value map whose entries expire ``ttl_seconds`` after insertion."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self._ttl

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._expired(entry, self._clock()):
                del self._entries[key]
                return default
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())

    def get_or_load(self, key: str, loader: Callable[[], T]) -> T:
        """Return the cached value or compute, store and return it.

        The loader runs outside the lock; two concurrent misses may both load.
        """

        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]
        value = loader()
        self.set(key, value)
        return value

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [k for k, e in self._entries.items() if self._expired(e, now)]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass
class QueryCaches:
    """The three process-wide caches: partition bounds, prize sets and draw lists."""

    bounds: TTLCache
    prizes: TTLCache
    draws: TTLCache

    @classmethod
    def create(cls, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> QueryCaches:
        return cls(
            bounds=TTLCache(ttl_seconds, clock),
            prizes=TTLCache(ttl_seconds, clock),
            draws=TTLCache(ttl_seconds, clock),
        )

    def clear(self) -> None:
        self.bounds.clear()
        self.prizes.clear()
        self.draws.clear()


def _positions_part(positions: Iterable[int] | None) -> str:
    if not positions:
        return "*"
    return ",".join(str(p) for p in sorted({int(p) for p in positions}))


def cache_key(
    kind: str,
    partition: str,
    *,
    date: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    positions: Iterable[int] | None = None,
    close_hour: str | None = None,
    hour_bucket: str | None = None,
    mode: str | None = None,
    draw_id: str | None = None,
    base_date: str | None = None,
) -> str:
    """Deterministic signature: same normalized inputs -> same key, whatever the argument order."""

    if date:
        when = date
    elif date_from or date_to:
        when = f"{date_from or ''}..{date_to or ''}"
    else:
        when = "*"

    parts = [
        kind,
        partition,
        when,
        f"pos={_positions_part(positions)}",
        f"hour={close_hour or '*'}",
        f"bucket={hour_bucket or '*'}",
        f"mode={mode or '*'}",
    ]
    if draw_id:
        parts.append(f"id={draw_id}")
    if base_date:
        parts.append(f"base={base_date}")
    return "|".join(parts)
