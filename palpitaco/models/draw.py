"""Read-side records for draws, prizes, partition bounds and staleness rows.

These are plain frozen dataclasses: documents are owned by the ingestion
tools, this layer only maps and caches them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class Prize:
    """One ranked outcome of a draw, already width-validated."""

    position: int
    category: int
    number: str
    dezena: str
    centena: str


@dataclass(frozen=True)
class Draw:
    """One lottery closing event inside a partition."""

    id: str
    date: str | None
    close_hour: str
    partition: str
    run_code: str | None = None
    prizes: tuple[Prize, ...] = ()
    prize_count: int = 0
    # Embedded prize array exactly as stored; normalized later by the hydrator.
    raw_prizes: tuple[Mapping[str, Any], ...] | None = field(default=None, compare=False, repr=False)

    @property
    def has_logical_key(self) -> bool:
        return bool(self.date and self.close_hour)

    @property
    def dedup_key(self) -> tuple[str, ...]:
        if self.has_logical_key:
            return ("logical", str(self.date), self.close_hour, self.run_code or "")
        return ("id", self.id)

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.date or "", self.close_hour or "", self.run_code or "", self.id)

    def with_prizes(self, prizes: tuple[Prize, ...]) -> Draw:
        return replace(self, prizes=tuple(prizes), prize_count=len(prizes), raw_prizes=None)

    def without_prizes(self) -> Draw:
        return replace(self, prizes=(), raw_prizes=None)


@dataclass(frozen=True)
class PartitionBounds:
    """Earliest/latest available date of a partition."""

    partition: str
    min_date: str | None
    max_date: str | None
    source: str = "none"

    @property
    def ok(self) -> bool:
        return bool(self.min_date and self.max_date)


@dataclass(frozen=True)
class StalenessRow:
    category: int
    label: str
    last_seen_date: str | None
    last_seen_hour: str
    elapsed_days: int | None
    rank: int = 0

    @property
    def category2(self) -> str:
        return f"{self.category:02d}"
