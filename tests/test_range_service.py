from __future__ import annotations

import pytest
from pymongo.errors import AutoReconnect

from conftest import draw_doc
from palpitaco.errors import MissingIndexError
from palpitaco.services.range_service import RangeFetcher, split_chunks, split_days
from palpitaco.services.scope_service import resolve_scope
from palpitaco.utils.dates import iter_days

RJ = resolve_scope("RJ")


def test_split_days_is_inclusive():
    assert split_days("2024-01-30", "2024-02-02") == ["2024-01-30", "2024-01-31", "2024-02-01", "2024-02-02"]
    assert split_days("2024-02-02", "2024-01-30") == []


def test_split_chunks_cover_range_without_gaps():
    chunks = split_chunks("2024-01-01", "2024-04-10", 60)
    assert chunks == [("2024-01-01", "2024-02-29"), ("2024-03-01", "2024-04-10")]
    assert split_chunks("2024-01-01", "2024-01-01", 15) == [("2024-01-01", "2024-01-01")]
    with pytest.raises(ValueError):
        split_chunks("2024-01-01", "2024-01-02", 0)


def _seed_every_day(store, date_from, date_to):
    for ymd in iter_days(date_from, date_to):
        store.add(draw_doc(ymd, "09:00", categories=[1]), draw_doc(ymd, "14:00", categories=[2]))


def test_missing_index_falls_back_to_day_queries(store, executor):
    # 2024-01-01..2024-04-10 without the composite index.
    _seed_every_day(store, "2024-01-01", "2024-04-10")
    expected = []
    for ymd in iter_days("2024-01-01", "2024-04-10"):
        expected.extend(RangeFetcher(executor).fetch_day(RJ, ymd))

    store.missing_index = True
    draws = RangeFetcher(executor, index_fallback_max_days=120).fetch_range(RJ, "2024-01-01", "2024-04-10")

    assert draws == expected
    assert draws[0].date == "2024-01-01"
    assert draws[-1].date == "2024-04-10"
    assert len(draws) == 2 * 101


def test_missing_index_beyond_ceiling_raises_with_remediation(store, executor):
    store.missing_index = True
    fetcher = RangeFetcher(executor, index_fallback_max_days=31)

    with pytest.raises(MissingIndexError) as info:
        fetcher.fetch_range(RJ, "2024-01-01", "2024-03-01")

    err = info.value
    assert err.status_code == 412
    assert err.details["days"] == 61
    assert err.details["max_days"] == 31
    assert "uf ASC, lottery_key ASC, ymd ASC" in err.message
    assert store.day_calls() == []


def test_empty_range_is_retried_day_by_day(store, executor):
    _seed_every_day(store, "2024-03-04", "2024-03-06")
    store.blind_ranges = True

    draws = RangeFetcher(executor).fetch_range(RJ, "2024-03-04", "2024-03-06")

    assert [d.date for d in draws] == ["2024-03-04", "2024-03-04", "2024-03-05", "2024-03-05", "2024-03-06", "2024-03-06"]
    assert len(store.day_calls()) >= 3


def test_empty_range_beyond_ceiling_stays_empty(store, executor):
    draws = RangeFetcher(executor, empty_fallback_max_days=10).fetch_range(RJ, "2024-01-01", "2024-02-01")
    assert draws == []
    assert store.day_calls() == []


def test_transient_errors_propagate(store, executor):
    store.error = AutoReconnect("connection reset")
    with pytest.raises(AutoReconnect):
        RangeFetcher(executor).fetch_range(RJ, "2024-01-01", "2024-01-10")


def test_range_results_are_deduplicated_and_ordered(store, executor):
    store.add(
        draw_doc("2024-03-06", "09:00", categories=[1]),
        draw_doc("2024-03-05", "14:00", categories=[1]),
        draw_doc("2024-03-05", "09:00", categories=[1]),
        draw_doc("2024-03-05", "09:00", categories=[1, 2, 3, 4, 5, 6, 7]),
    )

    draws = RangeFetcher(executor).fetch_range(RJ, "2024-03-05", "2024-03-06")

    assert [(d.date, d.close_hour) for d in draws] == [
        ("2024-03-05", "09:00"),
        ("2024-03-05", "14:00"),
        ("2024-03-06", "09:00"),
    ]
    assert draws[0].prize_count == 7


def test_fetch_chunked_spans_chunks(store, executor):
    _seed_every_day(store, "2024-01-01", "2024-03-31")
    fetcher = RangeFetcher(executor, chunk_days=30)

    draws = fetcher.fetch_chunked(RJ, "2024-01-01", "2024-03-31")

    assert len(draws) == 2 * 91
    # Four chunks; the last one is the single day 2024-03-31, read by equality.
    assert len(store.ranged_calls()) == 3
    assert draws[-1].date == "2024-03-31"
