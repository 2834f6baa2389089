"""Staleness ("atraso") routes."""

from __future__ import annotations

from flask import Blueprint, request

from palpitaco.extensions import get_draw_service
from palpitaco.routes.draw import run_superseding
from palpitaco.schemas.staleness import StalenessQuerySchema, StalenessResponseSchema
from palpitaco.utils.responses import ok

staleness_bp = Blueprint("staleness", __name__)

_query_schema = StalenessQuerySchema()
_response_schema = StalenessResponseSchema()


@staleness_bp.get("/staleness")
def get_staleness():
    args = _query_schema.load(request.args.to_dict())
    positions = args.get("positions") or ([args["position"]] if args.get("position") else None)

    def compute():  # type: ignore[no-untyped-def]
        return get_draw_service().get_staleness(
            args["partition"],
            args["date_from"],
            args["date_to"],
            base_date=args.get("base_date"),
            positions=positions,
            close_hour=args.get("close_hour"),
            hour_bucket=args.get("hour_bucket"),
        )

    result, superseded = run_superseding(args.get("channel"), compute)
    if superseded is not None:
        return superseded
    return ok(_response_schema.dump(result))
