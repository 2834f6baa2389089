"""Shared fixtures: an in-memory draw store and a Flask test client."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable
from typing import Any

import pytest
from pymongo.errors import OperationFailure

from palpitaco import create_app
from palpitaco.repositories.draw_store import DrawQuery, ReadSource
from palpitaco.repositories.query_executor import QueryExecutor
from palpitaco.services.bounds_service import BoundsService
from palpitaco.services.cache import QueryCaches

_ids = itertools.count(1)


def dezena_for(category: int) -> str:
    return f"{(category * 4) % 100:02d}"


def prize_doc(position: int, category: int, **extra: Any) -> dict[str, Any]:
    """A valid prize record whose result falls inside ``category``."""

    dz = dezena_for(category)
    number = f"1{dz}" if position == 7 else f"12{dz}"
    doc = {"position": position, "grupo": category, "numero": number}
    doc.update(extra)
    return doc


def draw_doc(
    ymd: str,
    hour: str = "09:00",
    categories: Iterable[int] | None = None,
    *,
    partition: str = "PT_RIO",
    embed: bool = True,
    **extra: Any,
) -> dict[str, Any]:
    """A draw document; ``categories`` are the groups of positions 1, 2, 3..."""

    doc: dict[str, Any] = {
        "_id": f"d{next(_ids)}",
        "ymd": ymd,
        "close_hour": hour,
        "lottery_key": partition,
    }
    if partition == "PT_RIO":
        doc["uf"] = "RJ"
    if categories is not None and embed:
        doc["prizes"] = [prize_doc(i, c) for i, c in enumerate(categories, start=1)]
    doc.update(extra)
    return doc


def _sort_value(value: Any) -> tuple[int, Any]:
    # MongoDB orders missing/null before strings.
    return (0, "") if value is None else (1, str(value))


class FakeDrawStore:
    """In-memory :class:`DrawStore` with call accounting.

    ``missing_index``: ranged queries fail like a hinted query without its index.
    ``stale_cache``: cache-source reads return nothing (replica lagging).
    ``missing_sort_index``: queries ordered by a date field fail the same way.
    ``blind_ranges``: ranged queries answer nothing (partial index coverage).
    ``error``: every call raises this exception.
    ``cache_error``: cache-source calls raise this exception.
    """

    def __init__(self) -> None:
        self.draws: list[dict[str, Any]] = []
        self.prizes: dict[str, list[dict[str, Any]]] = {}
        self.missing_index = False
        self.stale_cache = False
        self.blind_ranges = False
        self.missing_sort_index = False
        self.error: Exception | None = None
        self.cache_error: Exception | None = None
        self.draw_calls: list[tuple[DrawQuery, ReadSource]] = []
        self.prize_calls: list[tuple[str, ReadSource]] = []

    def add(self, *docs: dict[str, Any]) -> None:
        self.draws.extend(docs)

    def add_prizes(self, draw_id: str, prizes: Iterable[dict[str, Any]]) -> None:
        self.prizes.setdefault(draw_id, []).extend(prizes)

    def ranged_calls(self) -> list[DrawQuery]:
        return [q for q, _ in self.draw_calls if q.is_ranged]

    def day_calls(self) -> list[DrawQuery]:
        return [q for q, _ in self.draw_calls if not q.is_ranged and any(k in ("ymd", "date") for k, _ in q.equals)]

    def _matches(self, doc: dict[str, Any], query: DrawQuery) -> bool:
        for key, value in query.equals:
            if doc.get(key) != value:
                return False
        if query.is_ranged:
            value = doc.get(query.date_field)
            if not isinstance(value, str):
                return False
            if query.date_from is not None and value < query.date_from:
                return False
            if query.date_to is not None and value > query.date_to:
                return False
        return True

    def find_draws(self, query: DrawQuery, source: ReadSource) -> list[dict[str, Any]]:
        self.draw_calls.append((query, source))
        if self.error is not None:
            raise self.error
        if self.cache_error is not None and source == ReadSource.CACHE:
            raise self.cache_error
        if self.missing_index and query.is_ranged:
            raise OperationFailure("error processing query: hint provided does not correspond to an existing index", code=291)
        if self.missing_sort_index and any(f in ("ymd", "date") for f, _ in query.order_by):
            raise OperationFailure("error processing query: hint provided does not correspond to an existing index", code=291)
        if self.stale_cache and source == ReadSource.CACHE:
            return []
        if self.blind_ranges and query.is_ranged:
            return []

        docs = [d for d in self.draws if self._matches(d, query)]
        for field, direction in reversed(query.order_by):
            docs.sort(key=lambda d, f=field: _sort_value(d.get(f)), reverse=direction < 0)
        if query.limit:
            docs = docs[-query.limit :] if query.from_end else docs[: query.limit]
        return [dict(d) for d in docs]

    def find_prizes(self, draw_id: str, source: ReadSource) -> list[dict[str, Any]]:
        self.prize_calls.append((draw_id, source))
        if self.error is not None:
            raise self.error
        if self.cache_error is not None and source == ReadSource.CACHE:
            raise self.cache_error
        if self.stale_cache and source == ReadSource.CACHE:
            return []
        return [dict(p) for p in self.prizes.get(draw_id, [])]


@pytest.fixture
def store() -> FakeDrawStore:
    return FakeDrawStore()


@pytest.fixture
def executor(store: FakeDrawStore) -> QueryExecutor:
    return QueryExecutor(store)


@pytest.fixture
def caches() -> QueryCaches:
    return QueryCaches.create(ttl_seconds=600)


@pytest.fixture
def test_config() -> dict[str, Any]:
    return {
        "TESTING": True,
        "BOUNDS_API_URL": "",
        "READ_POLICY": "cache",
        "CACHE_TTL_SECONDS": 600,
        "INDEX_FALLBACK_MAX_DAYS": 120,
        "EMPTY_FALLBACK_MAX_DAYS": 120,
        "BOUNDS_PROBE_DAYS": 3,
    }


@pytest.fixture
def app(store: FakeDrawStore, test_config: dict[str, Any]):  # type: ignore[no-untyped-def]
    return create_app(test_config=test_config, store=store)


@pytest.fixture
def client(app):  # type: ignore[no-untyped-def]
    return app.test_client()


@pytest.fixture
def draw_service(app):  # type: ignore[no-untyped-def]
    return app.extensions["draw_service"]


@pytest.fixture
def make_bounds_service(executor: QueryExecutor, caches: QueryCaches) -> Callable[..., BoundsService]:
    def factory(**kwargs: Any) -> BoundsService:
        kwargs.setdefault("today", lambda: "2024-06-30")
        kwargs.setdefault("probe_days", 5)
        return BoundsService(executor, caches.bounds, **kwargs)

    return factory
