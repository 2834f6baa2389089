"""Helpers for the JSON envelope every endpoint answers with."""

from __future__ import annotations

from typing import Any

from flask import Response, jsonify


def ok(data: Any, status_code: int = 200, meta: dict[str, Any] | None = None) -> Response:
    """Success envelope; ``meta`` carries query echo such as partition and mode."""

    body: dict[str, Any] = {"success": True, "data": data, "error": None}
    if meta is not None:
        body["meta"] = meta
    return jsonify(body), status_code


def fail(code: str, message: str, status_code: int, details: Any | None = None) -> Response:
    """Error envelope."""

    return (
        jsonify(
            {
                "success": False,
                "data": None,
                "error": {"code": code, "message": message, "details": details},
            }
        ),
        status_code,
    )
