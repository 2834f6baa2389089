from __future__ import annotations

from conftest import draw_doc
from palpitaco.models.category import CATEGORY_COUNT
from palpitaco.repositories.query_executor import QueryExecutor
from palpitaco.services.cache import TTLCache
from palpitaco.services.prize_service import HydrationPool, PrizeHydrator
from palpitaco.services.range_service import RangeFetcher
from palpitaco.services.scope_service import resolve_scope
from palpitaco.services.staleness_service import Sighting, StalenessQuery, StalenessService, build_rows
from palpitaco.utils.dates import add_days

FED = resolve_scope("FEDERAL")


def _service(store, chunk_days=15):
    executor = QueryExecutor(store)
    return StalenessService(
        RangeFetcher(executor),
        HydrationPool(PrizeHydrator(executor, TTLCache())),
        chunk_days=chunk_days,
    )


def _assert_well_formed(rows):
    assert len(rows) == CATEGORY_COUNT
    assert sorted(r.category for r in rows) == list(range(1, CATEGORY_COUNT + 1))
    assert [r.rank for r in rows] == list(range(1, CATEGORY_COUNT + 1))


def test_unseen_category_has_null_elapsed_and_sorts_last(store):
    # Every category except 9 shows up at position 1, category c last seen 3*c days before the baseline.
    for c in range(1, CATEGORY_COUNT + 1):
        if c == 9:
            continue
        store.add(draw_doc(add_days("2024-06-30", -3 * c), "09:00", categories=[c], partition="FEDERAL"))
    # Outside the window: must not count.
    store.add(draw_doc("2023-12-31", "09:00", categories=[9], partition="FEDERAL"))
    # Category 9 at another position: must not count either.
    store.add(draw_doc("2024-06-15", "14:00", categories=[1, 9], partition="FEDERAL"))

    query = StalenessQuery(date_from="2024-01-01", date_to="2024-06-30", base_date="2024-06-30", positions=(1,))
    rows = _service(store).compute(FED, query)

    _assert_well_formed(rows)
    assert rows[-1].category == 9
    assert rows[-1].elapsed_days is None
    assert rows[-1].last_seen_date is None
    assert rows[0].category == 25
    assert rows[0].elapsed_days == 75
    numeric = [r.elapsed_days for r in rows if r.elapsed_days is not None]
    assert numeric == sorted(numeric, reverse=True)
    by_cat = {r.category: r for r in rows}
    assert by_cat[1].last_seen_date == "2024-06-27"
    assert by_cat[1].label == "AVESTRUZ"
    assert by_cat[1].category2 == "01"


def test_scan_stops_once_every_category_is_seen(store):
    for c in range(1, CATEGORY_COUNT + 1):
        store.add(draw_doc(add_days("2024-06-30", -(c % 10)), f"{9 + c // 10:02d}:00", categories=[c], partition="FEDERAL"))
    store.add(draw_doc("2024-01-10", "09:00", categories=[1], partition="FEDERAL"))

    query = StalenessQuery(date_from="2024-01-01", date_to="2024-06-30", base_date="2024-06-30")
    rows = _service(store).compute(FED, query)

    _assert_well_formed(rows)
    assert all(r.elapsed_days is not None for r in rows)
    assert len(store.ranged_calls()) == 1


def test_most_recent_sighting_wins_within_a_chunk(store):
    store.add(
        draw_doc("2024-06-20", "09:00", categories=[5], partition="FEDERAL"),
        draw_doc("2024-06-20", "14:00", categories=[5], partition="FEDERAL"),
        draw_doc("2024-06-10", "09:00", categories=[5], partition="FEDERAL"),
    )

    query = StalenessQuery(date_from="2024-06-01", date_to="2024-06-30", base_date="2024-06-30")
    row = next(r for r in _service(store).compute(FED, query) if r.category == 5)

    assert (row.last_seen_date, row.last_seen_hour, row.elapsed_days) == ("2024-06-20", "14:00", 10)


def test_multiple_positions(store):
    store.add(draw_doc("2024-06-20", "09:00", categories=[3, 4, 6], partition="FEDERAL"))

    query = StalenessQuery(date_from="2024-06-01", date_to="2024-06-30", base_date="2024-06-30", positions=(1, 2))
    rows = {r.category: r for r in _service(store).compute(FED, query)}

    assert rows[3].elapsed_days == 10
    assert rows[4].elapsed_days == 10
    assert rows[6].elapsed_days is None


def test_hour_filter_applies_to_the_scan(store):
    store.add(
        draw_doc("2024-06-20", "09:00", categories=[7], partition="FEDERAL"),
        draw_doc("2024-06-25", "14:00", categories=[7], partition="FEDERAL"),
    )

    query = StalenessQuery(date_from="2024-06-01", date_to="2024-06-30", base_date="2024-06-30", hour_bucket="09h")
    row = next(r for r in _service(store).compute(FED, query) if r.category == 7)

    assert row.last_seen_date == "2024-06-20"


def test_ties_break_on_earlier_hour_then_category():
    seen = {
        4: Sighting(date="2024-06-20", hour="14:00"),
        2: Sighting(date="2024-06-20", hour="09:00"),
        3: Sighting(date="2024-06-20", hour="09:00"),
        1: Sighting(date="2024-06-25", hour="09:00"),
    }

    rows = build_rows(seen, "2024-06-30")

    assert [r.category for r in rows[:4]] == [2, 3, 4, 1]
    # Never seen: category order.
    assert [r.category for r in rows[4:]] == list(range(5, CATEGORY_COUNT + 1))


def test_elapsed_days_never_negative():
    rows = build_rows({1: Sighting(date="2024-07-05", hour="09:00")}, "2024-06-30")
    assert rows[0].category == 1
    assert rows[0].elapsed_days == 0
