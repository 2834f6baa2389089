"""Raw draw document -> :class:`Draw`, and logical deduplication.

Each concept (date, hour, run code, prize count...) is read from an
ordered list of accepted field names; the first one that normalizes wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from palpitaco.models.draw import Draw
from palpitaco.utils.dates import hour_bucket, normalize_hhmm, normalize_ymd

logger = logging.getLogger(__name__)

ID_FIELDS = ("_id", "id", "drawId")
DATE_FIELDS = ("ymd", "date", "draw_date", "drawDate", "close_date", "closeDate", "data", "dt")
HOUR_FIELDS = ("close_hour", "closeHour", "hour", "hora")
RUN_CODE_FIELDS = ("lottery_code", "lotteryCode", "lot_code", "code")
PRIZE_ARRAY_FIELDS = ("prizes", "premios", "results")
PRIZE_COUNT_FIELDS = ("prizesCount", "prizes_count", "prizeCount")


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def first_present(doc: Mapping[str, Any], fields: Sequence[str]) -> Any:
    for name in fields:
        value = doc.get(name)
        if _present(value):
            return value
    return None


def extract_id(doc: Mapping[str, Any]) -> str:
    value = first_present(doc, ID_FIELDS)
    return str(value).strip() if value is not None else ""


def extract_date(doc: Mapping[str, Any], tz: Any | None = None) -> str | None:
    for name in DATE_FIELDS:
        value = doc.get(name)
        if not _present(value):
            continue
        ymd = normalize_ymd(value, tz)
        if ymd:
            return ymd
    return None


def extract_hour(doc: Mapping[str, Any]) -> str:
    for name in HOUR_FIELDS:
        value = doc.get(name)
        if not _present(value):
            continue
        hhmm = normalize_hhmm(value)
        if hhmm:
            return hhmm
    return ""


def extract_run_code(doc: Mapping[str, Any]) -> str | None:
    value = first_present(doc, RUN_CODE_FIELDS)
    if value is None:
        return None
    return str(value).strip() or None


def extract_embedded_prizes(doc: Mapping[str, Any]) -> tuple[Mapping[str, Any], ...] | None:
    for name in PRIZE_ARRAY_FIELDS:
        value = doc.get(name)
        if isinstance(value, (list, tuple)) and value:
            return tuple(p for p in value if isinstance(p, Mapping))
    return None


def extract_prize_count(doc: Mapping[str, Any]) -> int:
    value = first_present(doc, PRIZE_COUNT_FIELDS)
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def map_document(doc: Mapping[str, Any], partition: str, tz: Any | None = None) -> Draw:
    embedded = extract_embedded_prizes(doc)
    count = len(embedded) if embedded else extract_prize_count(doc)
    return Draw(
        id=extract_id(doc),
        date=extract_date(doc, tz),
        close_hour=extract_hour(doc),
        partition=partition,
        run_code=extract_run_code(doc),
        prize_count=count,
        raw_prizes=embedded,
    )


def map_documents(docs: Iterable[Mapping[str, Any]], partition: str, tz: Any | None = None) -> list[Draw]:
    return [map_document(d, partition, tz) for d in docs]


def _richness(draw: Draw) -> tuple[int, int, int]:
    return (len(draw.prizes), draw.prize_count, 1 if draw.has_logical_key else 0)


def dedupe_draws(draws: Iterable[Draw]) -> list[Draw]:
    """Collapse records of the same logical draw, keeping the richest one.

    The key is (date, hour, run code) when date and hour resolve, the
    document identity otherwise. First-seen order is preserved.
    """

    kept: dict[tuple[str, ...], Draw] = {}
    order: list[tuple[str, ...]] = []
    replaced = 0

    for i, draw in enumerate(draws):
        key = draw.dedup_key
        if key == ("id", ""):
            key = ("idx", str(i))

        prev = kept.get(key)
        if prev is None:
            kept[key] = draw
            order.append(key)
            continue

        replaced += 1
        if _richness(draw) > _richness(prev):
            kept[key] = draw

    if replaced:
        logger.debug("Deduplicated %s draw record(s)", replaced)
    return [kept[k] for k in order]


def sort_draws(draws: Iterable[Draw], *, descending: bool = False) -> list[Draw]:
    return sorted(draws, key=lambda d: d.sort_key, reverse=descending)


def filter_by_hour(draws: Iterable[Draw], close_hour: str | None = None, bucket: str | None = None) -> list[Draw]:
    """Keep draws closing exactly at ``close_hour`` and/or inside the ``HHh`` ``bucket``."""

    hhmm = normalize_hhmm(close_hour) if close_hour else ""
    hh = hour_bucket(bucket) if bucket else ""
    if (close_hour and not hhmm) or (bucket and not hh):
        # An unparseable filter matches nothing.
        return []

    out = []
    for draw in draws:
        if hhmm and draw.close_hour != hhmm:
            continue
        if hh and hour_bucket(draw.close_hour) != hh:
            continue
        out.append(draw)
    return out
