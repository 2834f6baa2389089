"""Schemas for the staleness ("atraso") endpoint."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from palpitaco.schemas.common import HourFilterMixin, PartitionQuerySchema, validate_ymd


class StalenessQuerySchema(PartitionQuerySchema, HourFilterMixin):
    date_from = fields.String(required=True, data_key="dateFrom", validate=validate_ymd)
    date_to = fields.String(required=True, data_key="dateTo", validate=validate_ymd)
    base_date = fields.String(data_key="baseDate", load_default=None, validate=validate_ymd)
    position = fields.Integer(load_default=None, validate=validate.Range(min=1, max=10))
    channel = fields.String(load_default=None, validate=validate.Length(min=1, max=64))

    @validates_schema
    def _validate_position_choice(self, data, **kwargs):  # type: ignore[no-untyped-def]
        if data.get("position") is not None and data.get("positions"):
            raise ValidationError({"positions": ["Use either position or positions"]})


class StalenessRowSchema(Schema):
    rank = fields.Integer()
    category = fields.Integer(data_key="grupo")
    category2 = fields.String(data_key="grupo2")
    label = fields.String()
    last_seen_date = fields.String(data_key="lastSeenDate", allow_none=True)
    last_seen_hour = fields.String(data_key="lastSeenHour")
    elapsed_days = fields.Integer(data_key="elapsedDays", allow_none=True)


class StalenessResponseSchema(Schema):
    partition = fields.String()
    date_from = fields.String(data_key="dateFrom")
    date_to = fields.String(data_key="dateTo")
    base_date = fields.String(data_key="baseDate")
    positions = fields.List(fields.Integer())
    rows = fields.List(fields.Nested(StalenessRowSchema))
