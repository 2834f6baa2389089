"""Query execution with field-fallback and read-policy cascades.

A logical query ("draws of PT_RIO on 2024-03-05") becomes an ordered list
of concrete store queries: every date field candidate crossed with every
partition filter of the scope. Each one is read according to the read
policy. The first non-empty answer wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Generic, TypeVar

from pymongo.errors import PyMongoError

from palpitaco.models.scope import Scope
from palpitaco.repositories.draw_store import DEFAULT_DATE_FIELD, DrawQuery, DrawStore, ReadSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Placeholder for "whatever date field this strategy queries".
DATE_ORDER_FIELD = "$date"

DATE_QUERY_FIELDS: tuple[str, ...] = (DEFAULT_DATE_FIELD, "date")

# MongoDB: IndexNotFound, NoQueryExecutionPlans.
_INDEX_ERROR_CODES = {27, 291}
_INDEX_PHRASES = (
    "failed-precondition",
    "failed_precondition",
    "requires an index",
    "hint provided does not correspond to an existing index",
    "no query solutions",
    "index not found",
    "noqueryexecutionplans",
)


def is_index_error(exc: BaseException) -> bool:
    """True when a store error means "composite index missing" rather than a real failure."""

    code = getattr(exc, "code", None)
    if isinstance(code, int) and code in _INDEX_ERROR_CODES:
        return True

    code_text = str(code or "").lower()
    if "failed-precondition" in code_text or "failed_precondition" in code_text:
        return True

    msg = str(exc).lower()
    if any(p in msg for p in _INDEX_PHRASES):
        return True
    return "index" in msg and "create" in msg


class ReadPolicy(str, Enum):
    CACHE_FIRST = "cache"
    SERVER_FIRST = "server"

    @classmethod
    def parse(cls, raw: str | None) -> ReadPolicy:
        return cls.SERVER_FIRST if str(raw or "").strip().lower() == "server" else cls.CACHE_FIRST

    def sources(self) -> tuple[ReadSource, ReadSource]:
        if self is ReadPolicy.SERVER_FIRST:
            return (ReadSource.SERVER, ReadSource.CACHE)
        return (ReadSource.CACHE, ReadSource.SERVER)


@dataclass(frozen=True)
class StrategyResult(Generic[T]):
    items: list[T]
    strategy: str | None


Strategy = tuple[str, Callable[[], list[T]]]


def first_non_empty(strategies: Sequence[Strategy[T]]) -> StrategyResult[T]:
    """Run strategies in order and return the first non-empty answer.

    A strategy failing on a missing index is skipped; any other store error
    propagates at once. If no strategy yields anything: an empty result when
    at least one ran cleanly, otherwise the first index error is re-raised
    so the caller can switch to a chunked fallback.
    """

    errors: list[PyMongoError] = []
    ran_clean = False

    for label, fn in strategies:
        try:
            items = fn()
        except PyMongoError as exc:
            if not is_index_error(exc):
                raise
            logger.debug("Strategy %s needs a missing index: %s", label, exc)
            errors.append(exc)
            continue

        ran_clean = True
        if items:
            return StrategyResult(items=list(items), strategy=label)
        logger.debug("Strategy %s returned nothing", label)

    if ran_clean or not errors:
        return StrategyResult(items=[], strategy=None)
    raise errors[0]


class QueryExecutor:
    """Runs logical draw queries against a :class:`DrawStore`."""

    def __init__(
        self,
        store: DrawStore,
        read_policy: ReadPolicy = ReadPolicy.CACHE_FIRST,
        date_fields: Sequence[str] = DATE_QUERY_FIELDS,
    ) -> None:
        self._store = store
        self._policy = read_policy
        self._date_fields = tuple(date_fields)

    @property
    def read_policy(self) -> ReadPolicy:
        return self._policy

    @property
    def primary_date_field(self) -> str:
        return self._date_fields[0]

    def read_draws(self, query: DrawQuery) -> list[dict[str, Any]]:
        strategies: list[Strategy[dict[str, Any]]] = [
            (src.value, partial(self._store.find_draws, query, src)) for src in self._policy.sources()
        ]
        return first_non_empty(strategies).items

    def read_prizes(self, draw_id: str) -> list[dict[str, Any]]:
        strategies: list[Strategy[dict[str, Any]]] = [
            (src.value, partial(self._store.find_prizes, draw_id, src)) for src in self._policy.sources()
        ]
        return first_non_empty(strategies).items

    def build_queries(
        self,
        scope: Scope,
        *,
        date: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        order_by: Sequence[tuple[str, int]] = (),
        limit: int | None = None,
        from_end: bool = False,
    ) -> list[tuple[str, DrawQuery]]:
        """Expand one logical query into the ordered list of concrete store queries."""

        uses_date = bool(date or date_from or date_to) or any(f == DATE_ORDER_FIELD for f, _ in order_by)
        date_fields = self._date_fields if uses_date else (self.primary_date_field,)

        queries: list[tuple[str, DrawQuery]] = []
        for date_field in date_fields:
            for pf in scope.filters:
                equals = pf.predicates()
                if date:
                    equals[date_field] = date
                order = tuple((date_field if f == DATE_ORDER_FIELD else f, d) for f, d in order_by)
                query = DrawQuery(
                    equals=tuple(equals.items()),
                    date_field=date_field,
                    date_from=date_from,
                    date_to=date_to,
                    order_by=order,
                    limit=limit,
                    from_end=from_end,
                )
                label = f"{pf.label}@{date_field}" if uses_date else pf.label
                queries.append((label, query))
        return queries

    def find(
        self,
        scope: Scope,
        *,
        date: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        order_by: Sequence[tuple[str, int]] = (),
        limit: int | None = None,
        from_end: bool = False,
    ) -> StrategyResult[dict[str, Any]]:
        queries = self.build_queries(
            scope,
            date=date,
            date_from=date_from,
            date_to=date_to,
            order_by=order_by,
            limit=limit,
            from_end=from_end,
        )
        result = first_non_empty([(label, partial(self.read_draws, q)) for label, q in queries])
        if result.strategy and result.strategy != queries[0][0]:
            logger.info("Partition %s answered by fallback strategy %s", scope.key, result.strategy)
        return result
