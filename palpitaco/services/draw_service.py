"""Read-side entry points: bounds, day, range and staleness queries."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from palpitaco.errors import ValidationError
from palpitaco.models.draw import Draw, PartitionBounds, StalenessRow
from palpitaco.models.scope import Scope
from palpitaco.services.bounds_service import BoundsService
from palpitaco.services.cache import QueryCaches, cache_key
from palpitaco.services.draw_mapper import filter_by_hour
from palpitaco.services.prize_normalizer import MAX_POSITION, MIN_POSITION
from palpitaco.services.prize_service import HydrationPool
from palpitaco.services.range_service import RangeFetcher
from palpitaco.services.scope_service import resolve_scope
from palpitaco.services.staleness_service import StalenessQuery, StalenessService, build_rows
from palpitaco.utils.dates import day_count, hour_bucket, normalize_hhmm, normalize_ymd

logger = logging.getLogger(__name__)

DEFAULT_AUTO_AGGREGATE_DAYS = 60


class RangeMode(str, Enum):
    DETAILED = "detailed"
    AGGREGATED = "aggregated"
    AUTO = "auto"


@dataclass(frozen=True)
class RangeResult:
    partition: str
    date_from: str
    date_to: str
    mode: RangeMode
    draws: list[Draw]


@dataclass(frozen=True)
class StalenessResult:
    partition: str
    date_from: str
    date_to: str
    base_date: str
    positions: tuple[int, ...]
    rows: list[StalenessRow]


def _require_ymd(name: str, value: Any) -> str:
    ymd = normalize_ymd(value)
    if not ymd:
        raise ValidationError(
            message=f"Invalid {name}",
            details={name: ["Expected YYYY-MM-DD or DD/MM/YYYY"]},
        )
    return ymd


def _positions(raw: Iterable[int] | None) -> tuple[int, ...]:
    if not raw:
        return ()
    out = tuple(sorted({int(p) for p in raw}))
    bad = [p for p in out if p < MIN_POSITION or p > MAX_POSITION]
    if bad:
        raise ValidationError(
            message="Invalid positions",
            details={"positions": [f"Positions must be within {MIN_POSITION}..{MAX_POSITION}"]},
        )
    return out


def _hour_filters(close_hour: str | None, bucket: str | None) -> tuple[str | None, str | None]:
    hhmm = normalize_hhmm(close_hour) if close_hour else None
    if close_hour and not hhmm:
        raise ValidationError(message="Invalid closeHour", details={"closeHour": ["Unrecognized hour"]})
    hh = hour_bucket(bucket) if bucket else None
    if bucket and not hh:
        raise ValidationError(message="Invalid hourBucket", details={"hourBucket": ["Unrecognized hour"]})
    return hhmm, hh


def _ordered_window(scope: Scope, date_from: str, date_to: str) -> tuple[str, str]:
    """Swap an inverted window and raise its start to the partition floor.

    A window lying entirely before the floor comes back with ``start > end``.
    """

    if date_from > date_to:
        date_from, date_to = date_to, date_from
    return scope.clamp_date(date_from) or date_from, date_to


class DrawService:
    """Ties scope resolution, caching, fetching and hydration together."""

    def __init__(
        self,
        caches: QueryCaches,
        fetcher: RangeFetcher,
        pool: HydrationPool,
        bounds: BoundsService,
        staleness: StalenessService,
        *,
        auto_aggregate_days: int = DEFAULT_AUTO_AGGREGATE_DAYS,
        scope_resolver: Callable[[str | None], Scope] = resolve_scope,
    ) -> None:
        self._caches = caches
        self._fetcher = fetcher
        self._pool = pool
        self._bounds = bounds
        self._staleness = staleness
        self._auto_days = auto_aggregate_days
        self._resolve = scope_resolver

    def get_bounds(self, partition: str | None) -> PartitionBounds:
        return self._bounds.get_bounds(self._resolve(partition))

    def get_day(
        self,
        partition: str | None,
        date: Any,
        positions: Iterable[int] | None = None,
        close_hour: str | None = None,
        hour_bucket: str | None = None,
    ) -> list[Draw]:
        scope = self._resolve(partition)
        ymd = _require_ymd("date", date)
        pos = _positions(positions)
        hhmm, bucket = _hour_filters(close_hour, hour_bucket)

        if scope.min_date and ymd < scope.min_date:
            return []

        key = cache_key("day", scope.key, date=ymd, positions=pos, close_hour=hhmm, hour_bucket=bucket)

        def load() -> list[Draw]:
            draws = filter_by_hour(self._fetcher.fetch_day(scope, ymd), hhmm, bucket)
            return self._pool.hydrate_all(draws, pos)

        return self._caches.draws.get_or_load(key, load)

    def resolve_mode(self, mode: str | RangeMode | None, date_from: str, date_to: str) -> RangeMode:
        try:
            parsed = RangeMode(mode or RangeMode.AUTO)
        except ValueError as exc:
            raise ValidationError(
                message="Invalid mode",
                details={"mode": ["Must be one of detailed|aggregated|auto"]},
            ) from exc
        if parsed is not RangeMode.AUTO:
            return parsed
        if day_count(date_from, date_to) >= self._auto_days:
            return RangeMode.AGGREGATED
        return RangeMode.DETAILED

    def get_range(
        self,
        partition: str | None,
        date_from: Any,
        date_to: Any,
        positions: Iterable[int] | None = None,
        close_hour: str | None = None,
        hour_bucket: str | None = None,
        mode: str | RangeMode | None = RangeMode.AUTO,
    ) -> RangeResult:
        scope = self._resolve(partition)
        start, end = _ordered_window(scope, _require_ymd("dateFrom", date_from), _require_ymd("dateTo", date_to))
        pos = _positions(positions)
        hhmm, bucket = _hour_filters(close_hour, hour_bucket)
        resolved = self.resolve_mode(mode, start, end)

        if start > end:
            return RangeResult(partition=scope.key, date_from=start, date_to=end, mode=resolved, draws=[])

        key = cache_key(
            "range",
            scope.key,
            date_from=start,
            date_to=end,
            positions=None if resolved is RangeMode.AGGREGATED else pos,
            close_hour=hhmm,
            hour_bucket=bucket,
            mode=resolved.value,
        )

        def load() -> list[Draw]:
            if resolved is RangeMode.AGGREGATED:
                draws = self._fetcher.fetch_chunked(scope, start, end)
                return [d.without_prizes() for d in filter_by_hour(draws, hhmm, bucket)]
            draws = filter_by_hour(self._fetcher.fetch_range(scope, start, end), hhmm, bucket)
            return self._pool.hydrate_all(draws, pos)

        draws = self._caches.draws.get_or_load(key, load)
        logger.debug("Range %s [%s..%s] mode=%s -> %s draw(s)", scope.key, start, end, resolved.value, len(draws))
        return RangeResult(partition=scope.key, date_from=start, date_to=end, mode=resolved, draws=draws)

    def get_staleness(
        self,
        partition: str | None,
        date_from: Any,
        date_to: Any,
        base_date: Any | None = None,
        positions: Iterable[int] | None = None,
        close_hour: str | None = None,
        hour_bucket: str | None = None,
    ) -> StalenessResult:
        scope = self._resolve(partition)
        start, end = _ordered_window(scope, _require_ymd("dateFrom", date_from), _require_ymd("dateTo", date_to))
        base = _require_ymd("baseDate", base_date) if base_date else end
        pos = _positions(positions) or (1,)
        hhmm, bucket = _hour_filters(close_hour, hour_bucket)

        if start > end:
            return StalenessResult(
                partition=scope.key,
                date_from=start,
                date_to=end,
                base_date=base,
                positions=pos,
                rows=build_rows({}, base),
            )

        query = StalenessQuery(
            date_from=start,
            date_to=end,
            base_date=base,
            positions=pos,
            close_hour=hhmm,
            hour_bucket=bucket,
        )
        key = cache_key(
            "staleness",
            scope.key,
            date_from=start,
            date_to=end,
            positions=pos,
            close_hour=hhmm,
            hour_bucket=bucket,
            base_date=base,
        )
        rows = self._caches.draws.get_or_load(key, lambda: self._staleness.compute(scope, query))
        return StalenessResult(
            partition=scope.key,
            date_from=start,
            date_to=end,
            base_date=base,
            positions=pos,
            rows=rows,
        )
