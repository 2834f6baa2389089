"""Day and range fetching with chunked fallbacks.

A range is first asked for in one ranged query. When the store reports a
missing composite index, or answers nothing for a short range, the range
is retried as one equality query per day, which needs no composite index.
Long ranges can also be walked in multi-day chunks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from pymongo.errors import PyMongoError

from palpitaco.errors import MissingIndexError
from palpitaco.models.draw import Draw
from palpitaco.models.scope import Scope
from palpitaco.repositories.draw_store import composite_index_keys
from palpitaco.repositories.query_executor import DATE_ORDER_FIELD, QueryExecutor, is_index_error
from palpitaco.services.draw_mapper import dedupe_draws, map_documents, sort_draws
from palpitaco.utils.dates import add_days, day_count, iter_days, parse_ymd

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_DAYS = 60
DEFAULT_INDEX_FALLBACK_MAX_DAYS = 120
DEFAULT_EMPTY_FALLBACK_MAX_DAYS = 120


def split_days(date_from: str, date_to: str) -> list[str]:
    return list(iter_days(date_from, date_to))


def split_chunks(date_from: str, date_to: str, chunk_days: int = DEFAULT_CHUNK_DAYS) -> list[tuple[str, str]]:
    """Ordered, contiguous, non-overlapping ``(start, end)`` chunks covering the inclusive range."""

    if chunk_days < 1:
        raise ValueError("chunk_days must be >= 1")
    if parse_ymd(date_from) is None or parse_ymd(date_to) is None or date_from > date_to:
        return []

    chunks: list[tuple[str, str]] = []
    start = date_from
    while start <= date_to:
        end = min(add_days(start, chunk_days - 1), date_to)
        chunks.append((start, end))
        start = add_days(end, 1)
    return chunks


def _within(draw: Draw, date_from: str, date_to: str) -> bool:
    return draw.date is None or date_from <= draw.date <= date_to


def _index_spec(fields: list[tuple[str, int]]) -> str:
    return ", ".join(f"{name} ASC" for name, _ in fields)


class RangeFetcher:
    """Reads mapped, deduplicated, date-ordered draws of one scope (prizes not hydrated)."""

    def __init__(
        self,
        executor: QueryExecutor,
        tz: Any | None = None,
        *,
        chunk_days: int = DEFAULT_CHUNK_DAYS,
        index_fallback_max_days: int = DEFAULT_INDEX_FALLBACK_MAX_DAYS,
        empty_fallback_max_days: int = DEFAULT_EMPTY_FALLBACK_MAX_DAYS,
    ) -> None:
        self._executor = executor
        self._tz = tz
        self.chunk_days = chunk_days
        self.index_fallback_max_days = index_fallback_max_days
        self.empty_fallback_max_days = empty_fallback_max_days

    def _finish(self, scope: Scope, docs: list[dict[str, Any]], date_from: str, date_to: str) -> list[Draw]:
        draws = [d for d in map_documents(docs, scope.key, self._tz) if _within(d, date_from, date_to)]
        return sort_draws(dedupe_draws(draws))

    def fetch_day(self, scope: Scope, ymd: str) -> list[Draw]:
        result = self._executor.find(scope, date=ymd)
        return self._finish(scope, result.items, ymd, ymd)

    def _fetch_by_day(self, scope: Scope, date_from: str, date_to: str) -> list[Draw]:
        docs: list[dict[str, Any]] = []
        for ymd in iter_days(date_from, date_to):
            docs.extend(self._executor.find(scope, date=ymd).items)
        return self._finish(scope, docs, date_from, date_to)

    def _missing_index(self, scope: Scope, date_from: str, date_to: str, exc: PyMongoError) -> MissingIndexError:
        days = day_count(date_from, date_to)
        queries = self._executor.build_queries(
            scope, date_from=date_from, date_to=date_to, order_by=((DATE_ORDER_FIELD, 1),)
        )
        index = _index_spec(composite_index_keys(queries[0][1])) if queries else "?"
        return MissingIndexError(
            f"Range of {days} days needs a composite index on ({index}); "
            f"day-by-day fallback is limited to {self.index_fallback_max_days} days. "
            "Create the index (scripts/create_indexes.py) or narrow the range.",
            details={
                "index": index,
                "days": days,
                "max_days": self.index_fallback_max_days,
                "store_error": str(exc),
            },
        )

    def fetch_range(self, scope: Scope, date_from: str, date_to: str) -> list[Draw]:
        days = day_count(date_from, date_to)
        if days == 0:
            return []
        if days == 1:
            return self.fetch_day(scope, date_from)

        try:
            result = self._executor.find(
                scope,
                date_from=date_from,
                date_to=date_to,
                order_by=((DATE_ORDER_FIELD, 1),),
            )
        except PyMongoError as exc:
            if not is_index_error(exc):
                raise
            if days > self.index_fallback_max_days:
                raise self._missing_index(scope, date_from, date_to, exc) from exc
            logger.info(
                "Composite index missing for %s [%s..%s]; falling back to %s day queries",
                scope.key,
                date_from,
                date_to,
                days,
            )
            return self._fetch_by_day(scope, date_from, date_to)

        if result.items:
            return self._finish(scope, result.items, date_from, date_to)

        if days <= self.empty_fallback_max_days:
            logger.debug("Empty range %s [%s..%s]; retrying day by day", scope.key, date_from, date_to)
            return self._fetch_by_day(scope, date_from, date_to)
        return []

    def iter_chunks(
        self,
        scope: Scope,
        date_from: str,
        date_to: str,
        chunk_days: int | None = None,
        *,
        newest_first: bool = False,
    ) -> Iterator[tuple[tuple[str, str], list[Draw]]]:
        """Yield ``((start, end), draws)`` per chunk; lazily, so callers may stop early."""

        chunks = split_chunks(date_from, date_to, chunk_days or self.chunk_days)
        if newest_first:
            chunks.reverse()
        for start, end in chunks:
            yield (start, end), self.fetch_range(scope, start, end)

    def fetch_chunked(self, scope: Scope, date_from: str, date_to: str, chunk_days: int | None = None) -> list[Draw]:
        draws: list[Draw] = []
        for _, chunk in self.iter_chunks(scope, date_from, date_to, chunk_days):
            draws.extend(chunk)
        return sort_draws(dedupe_draws(draws))
