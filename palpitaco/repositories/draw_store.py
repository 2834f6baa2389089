"""Document store access for draw and prize documents.

The services only talk to the :class:`DrawStore` protocol. The production
implementation is :class:`MongoDrawStore`; tests use an in-memory fake.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from pymongo import ASCENDING, DESCENDING, ReadPreference
from pymongo.database import Database

ID_FIELD = "_id"
DEFAULT_DATE_FIELD = "ymd"


class ReadSource(str, Enum):
    """Where a read may be served from: any (possibly lagging) member, or the primary."""

    CACHE = "cache"
    SERVER = "server"


@dataclass(frozen=True)
class DrawQuery:
    """Equality predicates plus an optional inclusive date range and ordering."""

    equals: tuple[tuple[str, Any], ...] = ()
    date_field: str = DEFAULT_DATE_FIELD
    date_from: str | None = None
    date_to: str | None = None
    order_by: tuple[tuple[str, int], ...] = ()
    limit: int | None = None
    # Take ``limit`` documents from the end of the ordering (returned in ordering order).
    from_end: bool = False

    @property
    def is_ranged(self) -> bool:
        return self.date_from is not None or self.date_to is not None

    def describe(self) -> str:
        parts = [f"{k}={v}" for k, v in self.equals]
        if self.is_ranged:
            parts.append(f"{self.date_field}∈[{self.date_from or ''},{self.date_to or ''}]")
        if self.order_by:
            parts.append("order=" + ",".join(f"{f}{'+' if d > 0 else '-'}" for f, d in self.order_by))
        if self.limit:
            parts.append(f"{'last' if self.from_end else 'limit'}={self.limit}")
        return " ".join(parts)


class DrawStore(Protocol):
    def find_draws(self, query: DrawQuery, source: ReadSource) -> list[dict[str, Any]]: ...

    def find_prizes(self, draw_id: str, source: ReadSource) -> list[dict[str, Any]]: ...


def build_filter(query: DrawQuery) -> dict[str, Any]:
    flt: dict[str, Any] = {k: v for k, v in query.equals}
    if query.is_ranged:
        rng: dict[str, Any] = {}
        if query.date_from is not None:
            rng["$gte"] = query.date_from
        if query.date_to is not None:
            rng["$lte"] = query.date_to
        flt[query.date_field] = rng
    return flt


def build_sort(query: DrawQuery) -> list[tuple[str, int]]:
    sort = [(f, ASCENDING if d > 0 else DESCENDING) for f, d in query.order_by]
    if query.from_end:
        sort = [(f, -d) for f, d in sort]
    return sort


def composite_index_keys(query: DrawQuery) -> list[tuple[str, int]]:
    """Index a ranged query needs: every equality field, then the date field."""

    keys = [(k, ASCENDING) for k, _ in query.equals]
    keys.append((query.date_field, ASCENDING))
    return keys


def _plain(doc: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(doc)
    if ID_FIELD in out:
        out[ID_FIELD] = str(out[ID_FIELD])
    return out


class MongoDrawStore:
    """pymongo-backed store.

    ``ReadSource.CACHE`` reads go to ``secondaryPreferred`` members, which may
    lag; ``ReadSource.SERVER`` reads go to the primary.
    """

    def __init__(
        self,
        db: Database,
        *,
        draws_collection: str = "draws",
        prizes_collection: str = "prizes",
        require_composite_index: bool = False,
    ) -> None:
        self._db = db
        self._draws_name = draws_collection
        self._prizes_name = prizes_collection
        self._require_index = require_composite_index

    def _collection(self, name: str, source: ReadSource):  # type: ignore[no-untyped-def]
        pref = ReadPreference.SECONDARY_PREFERRED if source == ReadSource.CACHE else ReadPreference.PRIMARY
        return self._db[name].with_options(read_preference=pref)

    def find_draws(self, query: DrawQuery, source: ReadSource) -> list[dict[str, Any]]:
        cursor = self._collection(self._draws_name, source).find(build_filter(query))

        sort = build_sort(query)
        if sort:
            cursor = cursor.sort(sort)
        if query.limit:
            cursor = cursor.limit(int(query.limit))
        if self._require_index and query.is_ranged:
            # Fails with OperationFailure when the composite index is absent.
            cursor = cursor.hint(composite_index_keys(query))

        docs = [_plain(d) for d in cursor]
        if query.from_end:
            docs.reverse()
        return docs

    def find_prizes(self, draw_id: str, source: ReadSource) -> list[dict[str, Any]]:
        cursor = (
            self._collection(self._prizes_name, source)
            .find({"draw_id": str(draw_id)})
            .sort([("position", ASCENDING)])
        )
        return [_plain(d) for d in cursor]
