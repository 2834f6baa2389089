from __future__ import annotations

from datetime import date, datetime, time

import pytest
import pytz

from palpitaco.utils.dates import (
    add_days,
    day_count,
    days_between,
    hour_bucket,
    iter_days,
    normalize_hhmm,
    normalize_ymd,
)


class _Stamp:
    def __init__(self, seconds: int) -> None:
        self.seconds = seconds


class _Convertible:
    def to_datetime(self) -> datetime:
        return datetime(2024, 3, 5, 15, 0, tzinfo=pytz.utc)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-05", "2024-03-05"),
        ("2024-03-05T23:59:00Z", "2024-03-05"),
        ("05/03/2024", "2024-03-05"),
        (date(2024, 3, 5), "2024-03-05"),
        ({"seconds": 1709650800}, "2024-03-05"),
        ({"_seconds": 1709650800}, "2024-03-05"),
        (_Stamp(1709650800), "2024-03-05"),
        (_Convertible(), "2024-03-05"),
    ],
)
def test_normalize_ymd_accepts_every_shape(raw, expected):
    assert normalize_ymd(raw) == expected


def test_normalize_ymd_uses_fixed_timezone_not_utc():
    # 01:30 UTC on the 6th is still the 5th in Sao Paulo (UTC-3).
    assert normalize_ymd(datetime(2024, 3, 6, 1, 30, tzinfo=pytz.utc)) == "2024-03-05"
    # Naive driver datetimes are UTC.
    assert normalize_ymd(datetime(2024, 3, 6, 1, 30)) == "2024-03-05"


@pytest.mark.parametrize("raw", [None, "", "garbage", "2024-02-30", "31/02/2024", True, object()])
def test_normalize_ymd_returns_none_on_bad_input(raw):
    assert normalize_ymd(raw) is None


@pytest.mark.parametrize("raw", ["2024-03-05", "05/03/2024", {"seconds": 1709650800}, date(2024, 3, 5)])
def test_normalize_ymd_is_idempotent(raw):
    once = normalize_ymd(raw)
    assert normalize_ymd(once) == once


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9", "09:00"),
        ("09", "09:00"),
        ("09h", "09:00"),
        ("09hs", "09:00"),
        ("09hr", "09:00"),
        ("9:0", "09:00"),
        ("09:00:00", "09:00"),
        ("900", "09:00"),
        ("0900", "09:00"),
        ("21:20", "21:20"),
        ("9h30", "09:30"),
        (time(18, 5), "18:05"),
    ],
)
def test_normalize_hhmm(raw, expected):
    assert normalize_hhmm(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "25", "12:75", "abc", "12345"])
def test_normalize_hhmm_returns_empty_on_bad_input(raw):
    assert normalize_hhmm(raw) == ""


def test_hour_bucket():
    assert hour_bucket("09:40") == "09h"
    assert hour_bucket("9h") == "09h"
    assert hour_bucket("nope") == ""


def test_day_arithmetic():
    assert add_days("2024-02-28", 2) == "2024-03-01"
    assert days_between("2024-01-01", "2024-01-31") == 30
    assert days_between("bad", "2024-01-31") is None
    assert day_count("2024-01-01", "2024-04-10") == 101
    assert day_count("2024-01-02", "2024-01-01") == 0
    assert list(iter_days("2024-12-30", "2025-01-02")) == [
        "2024-12-30",
        "2024-12-31",
        "2025-01-01",
        "2025-01-02",
    ]


def test_add_days_rejects_bad_input():
    with pytest.raises(ValueError):
        add_days("05/03/2024", 1)
