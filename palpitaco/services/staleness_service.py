"""Days since each category last appeared at a given prize position ("atraso").

The window is scanned backwards in chunks, newest first. Within a chunk
draws are walked newest first and the first hit per category is kept, so
the scan can stop as soon as all 25 categories have been seen.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from palpitaco.models.category import CATEGORY_COUNT, category_label
from palpitaco.models.draw import Draw, StalenessRow
from palpitaco.models.scope import Scope
from palpitaco.services.draw_mapper import filter_by_hour, sort_draws
from palpitaco.services.prize_service import HydrationPool
from palpitaco.services.range_service import RangeFetcher
from palpitaco.utils.dates import add_days, days_between, hour_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_DAYS = 15

_NO_HOUR = 24 * 60


@dataclass(frozen=True)
class Sighting:
    date: str
    hour: str


@dataclass(frozen=True)
class StalenessQuery:
    date_from: str
    date_to: str
    base_date: str
    positions: tuple[int, ...] = (1,)
    close_hour: str | None = None
    hour_bucket: str | None = None


def record_sightings(
    draws: Iterable[Draw],
    positions: Iterable[int],
    seen: dict[int, Sighting],
) -> bool:
    """Record the first sighting per category walking ``draws`` in the given order.

    Returns ``True`` once every category is recorded.
    """

    wanted = set(positions)
    for draw in draws:
        if not draw.date:
            continue
        for prize in draw.prizes:
            if prize.position not in wanted or prize.category in seen:
                continue
            seen[prize.category] = Sighting(date=draw.date, hour=draw.close_hour)
        if len(seen) >= CATEGORY_COUNT:
            return True
    return len(seen) >= CATEGORY_COUNT


def _rank_key(row: StalenessRow) -> tuple[int, int, int, int]:
    unseen = row.elapsed_days is None
    elapsed = -(row.elapsed_days or 0)
    minutes = hour_to_minutes(row.last_seen_hour)
    return (1 if unseen else 0, elapsed, _NO_HOUR if minutes is None else minutes, row.category)


def build_rows(seen: dict[int, Sighting], base_date: str) -> list[StalenessRow]:
    """All 25 categories, ranked: most days elapsed first, earlier hour first, category last.

    Categories never seen (``elapsed_days is None``) come after every seen one.
    """

    rows = []
    for category in range(1, CATEGORY_COUNT + 1):
        hit = seen.get(category)
        elapsed = None
        if hit is not None:
            diff = days_between(hit.date, base_date)
            elapsed = max(0, diff) if diff is not None else None
        rows.append(
            StalenessRow(
                category=category,
                label=category_label(category),
                last_seen_date=hit.date if hit else None,
                last_seen_hour=hit.hour if hit else "",
                elapsed_days=elapsed,
            )
        )

    rows.sort(key=_rank_key)
    return [replace(r, rank=i) for i, r in enumerate(rows, start=1)]


class StalenessService:
    def __init__(self, fetcher: RangeFetcher, pool: HydrationPool, chunk_days: int = DEFAULT_CHUNK_DAYS) -> None:
        self._fetcher = fetcher
        self._pool = pool
        self._chunk_days = max(1, int(chunk_days))

    def _chunk(self, scope: Scope, start: str, end: str, query: StalenessQuery) -> Sequence[Draw]:
        draws = filter_by_hour(self._fetcher.fetch_range(scope, start, end), query.close_hour, query.hour_bucket)
        hydrated = self._pool.hydrate_all(draws, query.positions)
        return sort_draws(hydrated, descending=True)

    def compute(self, scope: Scope, query: StalenessQuery) -> list[StalenessRow]:
        seen: dict[int, Sighting] = {}
        cursor = query.date_to
        chunks = 0

        while cursor >= query.date_from:
            start = max(add_days(cursor, -(self._chunk_days - 1)), query.date_from)
            chunks += 1
            done = record_sightings(self._chunk(scope, start, cursor, query), query.positions, seen)
            if done:
                break
            cursor = add_days(start, -1)

        logger.debug(
            "Staleness %s pos=%s: %s/%s categories seen after %s chunk(s)",
            scope.key,
            ",".join(str(p) for p in query.positions),
            len(seen),
            CATEGORY_COUNT,
            chunks,
        )
        return build_rows(seen, query.base_date)
