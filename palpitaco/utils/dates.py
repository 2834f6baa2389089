"""Canonical calendar-day and closing-hour normalization.

Draw documents carry dates as ISO strings, Brazilian ``DD/MM/YYYY``
strings, driver datetimes, ``{seconds: ...}`` timestamp payloads or
objects with a ``to_datetime()`` style converter. All of them reduce to a
``YYYY-MM-DD`` string computed in one fixed timezone so day boundaries do
not move with the caller's locale.

Hours reduce to ``HH:MM``; :func:`hour_bucket` reduces them further to
the ``HHh`` bucket used for coarse filtering.

Nothing in here raises on bad input: an unparseable date is ``None`` and
an unparseable hour is ``""``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from typing import Any

import pytz

DEFAULT_TIMEZONE = "America/Sao_Paulo"

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_BR_DATE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_YMD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

_HOUR_ONLY = re.compile(r"^(\d{1,2})(?:h|hs|hr|hrs)?$")
_HOUR_H_MINUTES = re.compile(r"^(\d{1,2})h(\d{2})$")
_HOUR_COLON = re.compile(r"^(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?$")
_HOUR_COMPACT = re.compile(r"^(\d{1,2})(\d{2})$")

_CONVERTER_ATTRS = ("to_datetime", "toDate", "to_date")


@lru_cache(maxsize=8)
def get_timezone(name: str = DEFAULT_TIMEZONE) -> Any:
    return pytz.timezone(name)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_datetime(dt: datetime, tz: Any) -> str:
    # Naive datetimes come from the driver in UTC.
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(tz).strftime("%Y-%m-%d")


def _epoch_seconds(value: Any) -> float | None:
    if isinstance(value, (timedelta, str, bytes)):
        return None

    if isinstance(value, Mapping):
        candidates = (value.get("seconds"), value.get("_seconds"))
    else:
        candidates = (getattr(value, "seconds", None), getattr(value, "_seconds", None))

    for raw in candidates:
        if raw is None or isinstance(raw, bool):
            continue
        try:
            return float(raw)
        except (TypeError, ValueError):
            continue
    return None


def _ymd_from_string(raw: str) -> str | None:
    s = raw.strip()
    if not s:
        return None

    m = _ISO_PREFIX.match(s)
    if m:
        d = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        return d.isoformat() if d else None

    m = _BR_DATE.match(s)
    if m:
        d = _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        return d.isoformat() if d else None

    return None


def normalize_ymd(value: Any, tz: Any | None = None) -> str | None:
    """Reduce any supported date representation to ``YYYY-MM-DD`` (or ``None``)."""

    if value is None or isinstance(value, bool):
        return None

    zone = tz if tz is not None else get_timezone()

    if isinstance(value, str):
        return _ymd_from_string(value)

    if isinstance(value, datetime):
        return _from_datetime(value, zone)

    if isinstance(value, date):
        return value.isoformat()

    for attr in _CONVERTER_ATTRS:
        converter = getattr(value, attr, None)
        if not callable(converter):
            continue
        try:
            converted = converter()
        except (TypeError, ValueError, OverflowError):
            continue
        if isinstance(converted, date):
            return normalize_ymd(converted, zone)

    seconds = _epoch_seconds(value)
    if seconds is not None:
        try:
            dt = datetime.fromtimestamp(seconds, tz=pytz.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return _from_datetime(dt, zone)

    return None


def is_ymd(value: Any) -> bool:
    """Strict ``YYYY-MM-DD`` check, including calendar validity."""

    return parse_ymd(value) is not None


def parse_ymd(value: Any) -> date | None:
    m = _YMD.match(str(value or "").strip())
    if not m:
        return None
    return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def add_days(ymd: str, days: int) -> str:
    d = parse_ymd(ymd)
    if d is None:
        raise ValueError(f"Not a YYYY-MM-DD date: {ymd!r}")
    return (d + timedelta(days=int(days))).isoformat()


def days_between(start: str, end: str) -> int | None:
    """Signed day difference ``end - start``; ``None`` if either side is invalid."""

    a = parse_ymd(start)
    b = parse_ymd(end)
    if a is None or b is None:
        return None
    return (b - a).days


def day_count(date_from: str, date_to: str) -> int:
    """Inclusive number of calendar days in ``[date_from, date_to]`` (0 if inverted/invalid)."""

    diff = days_between(date_from, date_to)
    if diff is None or diff < 0:
        return 0
    return diff + 1


def iter_days(date_from: str, date_to: str) -> Iterator[str]:
    start = parse_ymd(date_from)
    end = parse_ymd(date_to)
    if start is None or end is None:
        return
    cur = start
    while cur <= end:
        yield cur.isoformat()
        cur += timedelta(days=1)


def today_ymd(tz_name: str = DEFAULT_TIMEZONE) -> str:
    return datetime.now(get_timezone(tz_name)).strftime("%Y-%m-%d")


def _valid_clock(hh: int, mm: int) -> bool:
    return 0 <= hh <= 23 and 0 <= mm <= 59


def normalize_hhmm(value: Any) -> str:
    """Reduce ``9``, ``09h``, ``09hs``, ``9:0``, ``09:00:00``, ``0900``... to ``HH:MM``."""

    if value is None or isinstance(value, bool):
        return ""

    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"

    s = re.sub(r"\s+", "", str(value)).lower()
    if not s:
        return ""

    hh: int | None = None
    mm: int | None = None

    for pattern in (_HOUR_ONLY, _HOUR_H_MINUTES, _HOUR_COLON, _HOUR_COMPACT):
        m = pattern.match(s)
        if not m:
            continue
        hh = int(m.group(1))
        mm = int(m.group(2)) if pattern is not _HOUR_ONLY else 0
        break

    if hh is None or mm is None or not _valid_clock(hh, mm):
        return ""
    return f"{hh:02d}:{mm:02d}"


def hour_bucket(value: Any) -> str:
    """``09:40`` / ``9h`` / ``0940`` -> ``09h``; ``""`` when the hour is unparseable."""

    hhmm = normalize_hhmm(value)
    if not hhmm:
        return ""
    return f"{hhmm[:2]}h"


def hour_to_minutes(value: Any) -> int | None:
    hhmm = normalize_hhmm(value)
    if not hhmm:
        return None
    return int(hhmm[:2]) * 60 + int(hhmm[3:])
