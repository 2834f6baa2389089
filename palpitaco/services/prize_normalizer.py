"""Typed parsing and validation of raw prize records.

One parser per concept (position, category, result number), each
returning ``None`` for anything unusable. :func:`normalize_prize` combines
them and enforces the width rule: the 7th prize is a 3-digit result, every
other position a 4-digit one. Entries that do not fit are dropped, never
truncated or renumbered.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from palpitaco.models.category import category_for_dezena, is_valid_category
from palpitaco.models.draw import Prize

POSITION_FIELDS = ("position", "posicao", "pos", "colocacao")
CATEGORY_FIELDS = ("grupo", "group", "grupo2", "group2", "category")
NUMBER_FIELDS = (
    "numero",
    "milhar",
    "milhares",
    "number",
    "num",
    "value",
    "valor",
    "resultado",
    "result",
)

MIN_POSITION = 1
MAX_POSITION = 10
CENTENA_POSITION = 7

_NON_DIGITS = re.compile(r"\D+")


def _digits(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float):
        if not value.is_integer():
            return ""
        value = int(value)
    return _NON_DIGITS.sub("", str(value))


def _first(raw: Mapping[str, Any], fields: Iterable[str]) -> Any:
    for name in fields:
        value = raw.get(name)
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    return None


def parse_position(value: Any) -> int | None:
    """``1``, ``"1"``, ``"1º"`` -> 1; ``None`` outside 1..10."""

    digits = _digits(value)
    if not digits:
        return None
    pos = int(digits)
    if MIN_POSITION <= pos <= MAX_POSITION:
        return pos
    return None


def parse_category(value: Any) -> int | None:
    """``18``, ``"018"``, ``"GRUPO 18"``, ``"G18"`` -> 18; ``None`` outside 1..25."""

    digits = _digits(value)
    if not digits:
        return None
    category = int(digits)
    return category if is_valid_category(category) else None


def required_width(position: int) -> int:
    return 3 if int(position) == CENTENA_POSITION else 4


def fit_width(value: Any, width: int) -> str | None:
    """Left-pad the result digits to ``width``; ``None`` when they cannot fit without truncation."""

    digits = _digits(value)
    if not digits:
        return None
    if len(digits) > width:
        digits = digits.lstrip("0") or "0"
        if len(digits) > width:
            return None
    return digits.zfill(width)


def normalize_prize(raw: Mapping[str, Any]) -> Prize | None:
    position = parse_position(_first(raw, POSITION_FIELDS))
    if position is None:
        return None

    number = fit_width(_first(raw, NUMBER_FIELDS), required_width(position))
    if number is None:
        return None

    raw_category = _first(raw, CATEGORY_FIELDS)
    if raw_category is None:
        # No category recorded at all: it is implied by the last two digits.
        category = category_for_dezena(number[-2:])
    else:
        category = parse_category(raw_category)
    if category is None:
        return None

    return Prize(
        position=position,
        category=category,
        number=number,
        dezena=number[-2:],
        centena=number[-3:],
    )


def normalize_prizes(raws: Iterable[Mapping[str, Any]]) -> list[Prize]:
    """Normalize, drop invalid entries, keep one entry per position, sort by position."""

    by_position: dict[int, Prize] = {}
    for raw in raws:
        if not isinstance(raw, Mapping):
            continue
        prize = normalize_prize(raw)
        if prize is None:
            continue
        by_position.setdefault(prize.position, prize)
    return [by_position[p] for p in sorted(by_position)]


def filter_positions(prizes: Iterable[Prize], positions: Iterable[int] | None) -> list[Prize]:
    if not positions:
        return list(prizes)
    wanted = {int(p) for p in positions}
    return [p for p in prizes if p.position in wanted]
