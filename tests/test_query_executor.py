from __future__ import annotations

import pytest
from pymongo.errors import AutoReconnect, OperationFailure

from conftest import draw_doc
from palpitaco.repositories.draw_store import DrawQuery, ReadSource, build_filter, build_sort, composite_index_keys
from palpitaco.repositories.query_executor import (
    QueryExecutor,
    ReadPolicy,
    first_non_empty,
    is_index_error,
)
from palpitaco.services.scope_service import resolve_scope


@pytest.mark.parametrize(
    "exc",
    [
        OperationFailure("hint provided does not correspond to an existing index", code=291),
        OperationFailure("planner failed", code=27),
        OperationFailure("FAILED_PRECONDITION: The query requires an index. You can create it here"),
    ],
)
def test_index_errors_are_recognized(exc):
    assert is_index_error(exc)


def test_other_errors_are_not_index_errors():
    assert not is_index_error(AutoReconnect("connection reset"))
    assert not is_index_error(OperationFailure("not authorized", code=13))


def test_first_non_empty_skips_empty_and_index_failing_strategies():
    def no_index():
        raise OperationFailure("index not found", code=27)

    result = first_non_empty([("a", list), ("b", no_index), ("c", lambda: [1, 2])])
    assert result.items == [1, 2]
    assert result.strategy == "c"


def test_first_non_empty_empty_when_one_strategy_ran_clean():
    def no_index():
        raise OperationFailure("index not found", code=27)

    result = first_non_empty([("a", no_index), ("b", list)])
    assert result.items == []
    assert result.strategy is None


def test_first_non_empty_transient_error_propagates_at_once():
    calls = []

    def transient():
        raise AutoReconnect("down")

    def later():
        calls.append("later")
        return []

    with pytest.raises(AutoReconnect):
        first_non_empty([("a", transient), ("b", later)])
    assert calls == []


def test_first_non_empty_reraises_index_error_when_all_fail():
    def no_index():
        raise OperationFailure("index not found", code=27)

    with pytest.raises(OperationFailure):
        first_non_empty([("a", no_index), ("b", no_index)])


def test_cache_read_failure_is_not_reported_as_empty(store):
    # Replica down, primary has nothing for the day.
    store.cache_error = AutoReconnect("connection reset")

    with pytest.raises(AutoReconnect):
        QueryExecutor(store, ReadPolicy.CACHE_FIRST).find(resolve_scope("RJ"), date="2024-03-05")


def test_cache_first_falls_back_to_server_on_empty(store):
    store.add(draw_doc("2024-03-05"))
    store.stale_cache = True

    docs = QueryExecutor(store, ReadPolicy.CACHE_FIRST).find(resolve_scope("RJ"), date="2024-03-05").items

    assert len(docs) == 1
    assert [src for _, src in store.draw_calls[:2]] == [ReadSource.CACHE, ReadSource.SERVER]


def test_server_first_reads_primary_first(store):
    store.add(draw_doc("2024-03-05"))

    QueryExecutor(store, ReadPolicy.parse("server")).find(resolve_scope("RJ"), date="2024-03-05")

    assert store.draw_calls[0][1] == ReadSource.SERVER
    assert len(store.draw_calls) == 1


def test_field_cascade_reaches_alias_fields(store):
    # Only carries the camelCase discriminator and a plain "date" field.
    store.add({"_id": "x1", "lotteryKey": "PT_RIO", "date": "2024-03-05", "close_hour": "09:00"})

    result = QueryExecutor(store).find(resolve_scope("RJ"), date="2024-03-05")

    assert [d["_id"] for d in result.items] == ["x1"]
    assert result.strategy == "lotteryKey=PT_RIO@date"


def test_rio_region_query_never_leaks_other_lotteries(store):
    store.add(draw_doc("2024-03-05", partition="LOOK", uf="RJ"))

    result = QueryExecutor(store).find(resolve_scope("RJ"), date="2024-03-05")

    assert result.items == []


def test_build_filter_and_sort():
    query = DrawQuery(
        equals=(("lottery_key", "PT_RIO"),),
        date_field="ymd",
        date_from="2024-01-01",
        date_to="2024-01-31",
        order_by=(("ymd", 1), ("_id", 1)),
        limit=10,
        from_end=True,
    )
    assert build_filter(query) == {"lottery_key": "PT_RIO", "ymd": {"$gte": "2024-01-01", "$lte": "2024-01-31"}}
    assert build_sort(query) == [("ymd", -1), ("_id", -1)]
    assert composite_index_keys(query) == [("lottery_key", 1), ("ymd", 1)]


def test_fake_store_limit_from_end_keeps_ordering(store):
    store.add(draw_doc("2024-01-01"), draw_doc("2024-01-02"), draw_doc("2024-01-03"))
    query = DrawQuery(equals=(("lottery_key", "PT_RIO"),), order_by=(("ymd", 1),), limit=2, from_end=True)

    docs = store.find_draws(query, ReadSource.SERVER)

    assert [d["ymd"] for d in docs] == ["2024-01-02", "2024-01-03"]
