"""Schemas for bounds and draw query endpoints."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from palpitaco.schemas.common import HourFilterMixin, PartitionQuerySchema, validate_ymd


class BoundsQuerySchema(PartitionQuerySchema):
    pass


class DayQuerySchema(PartitionQuerySchema, HourFilterMixin):
    date = fields.String(required=True, validate=validate_ymd)


class RangeQuerySchema(PartitionQuerySchema, HourFilterMixin):
    date_from = fields.String(required=True, data_key="dateFrom", validate=validate_ymd)
    date_to = fields.String(required=True, data_key="dateTo", validate=validate_ymd)
    mode = fields.String(
        load_default="auto",
        validate=validate.OneOf(["detailed", "aggregated", "auto"]),
    )
    # A newer request on the same channel supersedes this one.
    channel = fields.String(load_default=None, validate=validate.Length(min=1, max=64))


class PrizeSchema(Schema):
    position = fields.Integer()
    grupo = fields.Integer(attribute="category")
    numero = fields.String(attribute="number")
    dezena = fields.String()
    centena = fields.String()


class DrawSchema(Schema):
    id = fields.String()
    date = fields.String(allow_none=True)
    close_hour = fields.String(data_key="closeHour")
    partition = fields.String()
    run_code = fields.String(data_key="runCode", allow_none=True)
    prize_count = fields.Integer(data_key="prizesCount")
    prizes = fields.List(fields.Nested(PrizeSchema))


class BoundsSchema(Schema):
    partition = fields.String()
    min_date = fields.String(data_key="minDate", allow_none=True)
    max_date = fields.String(data_key="maxDate", allow_none=True)
    source = fields.String()
    ok = fields.Boolean()


class RangeResponseSchema(Schema):
    partition = fields.String()
    date_from = fields.String(data_key="dateFrom")
    date_to = fields.String(data_key="dateTo")
    mode = fields.Function(lambda r: r.mode.value)
    count = fields.Function(lambda r: len(r.draws))
    draws = fields.List(fields.Nested(DrawSchema))
