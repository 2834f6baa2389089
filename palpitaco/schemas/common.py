"""Shared query-string fields and base schema."""

from __future__ import annotations

import re

from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load

from palpitaco.utils.dates import normalize_hhmm, normalize_ymd

_RANGE = re.compile(r"^(\d{1,2})\s*(?:-|\.\.)\s*(\d{1,2})$")


def parse_positions(raw: str) -> list[int]:
    """``"1-5"`` / ``"1..5"`` -> 1..5, ``"1,3,7"`` -> [1, 3, 7]."""

    text = str(raw or "").strip()
    if not text:
        return []

    m = _RANGE.match(text)
    if m:
        lo, hi = int(m.group(1)), int(m.group(2))
        if lo > hi:
            lo, hi = hi, lo
        return list(range(lo, hi + 1))

    out: list[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise ValueError(f"Invalid position {part!r}")
        out.append(int(part))
    return sorted(set(out))


class Positions(fields.Field):
    """Position list from ``"1-5"``, ``"1..5"``, ``"1,2,3"`` or a JSON list."""

    def _deserialize(self, value, attr, data, **kwargs):  # type: ignore[no-untyped-def]
        try:
            if isinstance(value, (list, tuple)):
                positions = sorted({int(v) for v in value})
            else:
                positions = parse_positions(str(value))
        except (TypeError, ValueError) as exc:
            raise ValidationError("Expected a list like 1-5, 1..5 or 1,2,3") from exc

        if any(p < 1 or p > 10 for p in positions):
            raise ValidationError("Positions must be within 1..10")
        return positions


def validate_ymd(value: str) -> None:
    if not normalize_ymd(value):
        raise ValidationError("Expected YYYY-MM-DD or DD/MM/YYYY")


def validate_hour(value: str) -> None:
    if not normalize_hhmm(value):
        raise ValidationError("Unrecognized hour")


class PartitionQuerySchema(Schema):
    """Base for query-string schemas: ``partition`` with ``lottery``/``uf`` aliases."""

    class Meta:
        unknown = EXCLUDE

    partition = fields.String(required=True)

    @pre_load
    def _partition_alias(self, data, **kwargs):  # type: ignore[no-untyped-def]
        data = dict(data)
        if not str(data.get("partition") or "").strip():
            for alias in ("lottery", "uf"):
                if str(data.get(alias) or "").strip():
                    data["partition"] = data[alias]
                    break
        return data


class HourFilterMixin(Schema):
    close_hour = fields.String(data_key="closeHour", load_default=None, validate=validate_hour)
    hour_bucket = fields.String(data_key="hourBucket", load_default=None, validate=validate_hour)
    positions = Positions(load_default=None)
