"""Partition ("scope") value objects."""

from __future__ import annotations

from dataclasses import dataclass, field

from palpitaco.utils.dates import is_ymd


@dataclass(frozen=True)
class PartitionFilter:
    """One way of pinning a query to a partition.

    ``extra`` holds equality predicates that must travel with ``field``.
    """

    field: str
    value: str
    extra: tuple[tuple[str, str], ...] = ()

    def predicates(self) -> dict[str, str]:
        out = {self.field: self.value}
        out.update(dict(self.extra))
        return out

    @property
    def label(self) -> str:
        parts = [f"{self.field}={self.value}"]
        parts.extend(f"{k}={v}" for k, v in self.extra)
        return "+".join(parts)


@dataclass(frozen=True)
class Scope:
    """A canonical partition plus the ordered ways of querying it."""

    key: str
    filters: tuple[PartitionFilter, ...] = field(default=())
    min_date: str | None = None

    def clamp_date(self, ymd: str | None) -> str | None:
        if ymd and self.min_date and is_ymd(ymd) and ymd < self.min_date:
            return self.min_date
        return ymd

    def clamp_bounds(self, min_date: str | None, max_date: str | None) -> tuple[str | None, str | None]:
        """Apply the regulatory floor to a computed ``(min, max)`` pair."""

        if not self.min_date:
            return min_date, max_date
        if min_date and min_date < self.min_date:
            min_date = self.min_date
        if max_date and max_date < self.min_date:
            max_date = self.min_date
        return min_date, max_date
