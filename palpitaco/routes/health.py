"""Health check routes."""

from __future__ import annotations

from flask import Blueprint

from palpitaco.db import get_store
from palpitaco.utils.responses import ok

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health_check():
    """Health check endpoint; does not touch the store."""

    return ok({"status": "ok", "store": type(get_store()).__name__})
