"""Partition ("scope") resolution from loose region/lottery input."""

from __future__ import annotations

import re

from palpitaco.errors import ValidationError
from palpitaco.models.scope import PartitionFilter, Scope

PT_RIO = "PT_RIO"
FEDERAL = "FEDERAL"

# Earliest trustworthy date for PT_RIO; older scans are incomplete.
PT_RIO_MIN_DATE = "2022-06-07"

_ALIASES: dict[str, str] = {
    "RJ": PT_RIO,
    "RIO": PT_RIO,
    "PT_RIO": PT_RIO,
    "PTRIO": PT_RIO,
    "FED": FEDERAL,
    "FEDERAL": FEDERAL,
    "BR": FEDERAL,
    "NACIONAL": FEDERAL,
}


def _alias_key(raw: str) -> str:
    return re.sub(r"[\s_\-]+", "_", raw.strip().upper())


def _filters_for(key: str) -> tuple[PartitionFilter, ...]:
    if key == PT_RIO:
        # "uf" is shared by every lottery of the state: always pin lottery_key too.
        return (
            PartitionFilter("uf", "RJ", extra=(("lottery_key", PT_RIO),)),
            PartitionFilter("lottery_key", PT_RIO),
            PartitionFilter("lotteryKey", PT_RIO),
        )
    if key == FEDERAL:
        return (
            PartitionFilter("lottery_key", FEDERAL),
            PartitionFilter("lotteryKey", FEDERAL),
        )
    return (
        PartitionFilter("lottery_key", key),
        PartitionFilter("lotteryKey", key),
        PartitionFilter("uf", key),
    )


def resolve_scope(raw: str | None) -> Scope:
    """Map ``"rj"``, ``"pt-rio"``, ``"Federal"``... onto a canonical :class:`Scope`.

    Unknown inputs pass through upper-cased and trimmed.
    """

    text = str(raw or "").strip()
    if not text:
        raise ValidationError("partition is required", details={"partition": ["Missing value"]})

    key = _ALIASES.get(_alias_key(text), text.upper())
    return Scope(
        key=key,
        filters=_filters_for(key),
        min_date=PT_RIO_MIN_DATE if key == PT_RIO else None,
    )
