"""Bounds and draw query routes (controllers). No business logic here."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from flask import Blueprint, redirect, request, url_for

from palpitaco.extensions import get_draw_service, get_run_tracker
from palpitaco.schemas.draw import (
    BoundsQuerySchema,
    BoundsSchema,
    DayQuerySchema,
    DrawSchema,
    RangeQuerySchema,
    RangeResponseSchema,
)
from palpitaco.utils.responses import fail, ok

draw_bp = Blueprint("draws", __name__)

_bounds_query = BoundsQuerySchema()
_day_query = DayQuerySchema()
_range_query = RangeQuerySchema()
_bounds_schema = BoundsSchema()
_draws_schema = DrawSchema(many=True)
_range_schema = RangeResponseSchema()


def run_superseding(channel: str | None, compute: Callable[[], Any]):  # type: ignore[no-untyped-def]
    """Run ``compute``; with a channel, report a 409 when a newer request on it started meanwhile."""

    if not channel:
        return compute(), None

    result, run_id, current = get_run_tracker().run(channel, compute)
    if not current:
        return None, fail(
            "superseded",
            "A newer request on this channel replaced this one",
            409,
            details={"channel": channel, "runId": run_id},
        )
    return result, None


@draw_bp.get("/bounds")
def get_bounds():
    args = _bounds_query.load(request.args.to_dict())
    bounds = get_draw_service().get_bounds(args["partition"])
    return ok(_bounds_schema.dump(bounds))


@draw_bp.get("/draws/day")
def get_day():
    args = _day_query.load(request.args.to_dict())
    draws = get_draw_service().get_day(
        args["partition"],
        args["date"],
        positions=args.get("positions"),
        close_hour=args.get("close_hour"),
        hour_bucket=args.get("hour_bucket"),
    )
    return ok(_draws_schema.dump(draws), meta={"count": len(draws)})


@draw_bp.get("/draws/range")
def get_range():
    args = _range_query.load(request.args.to_dict())

    def compute():  # type: ignore[no-untyped-def]
        return get_draw_service().get_range(
            args["partition"],
            args["date_from"],
            args["date_to"],
            positions=args.get("positions"),
            close_hour=args.get("close_hour"),
            hour_bucket=args.get("hour_bucket"),
            mode=args.get("mode"),
        )

    result, superseded = run_superseding(args.get("channel"), compute)
    if superseded is not None:
        return superseded
    return ok(_range_schema.dump(result))


@draw_bp.get("/king/results/day")
def legacy_day():
    return redirect(_with_query(url_for("draws.get_day")), code=308)


@draw_bp.get("/king/results/range")
def legacy_range():
    return redirect(_with_query(url_for("draws.get_range")), code=308)


def _with_query(path: str) -> str:
    qs = request.query_string.decode("utf-8")
    return f"{path}?{qs}" if qs else path
