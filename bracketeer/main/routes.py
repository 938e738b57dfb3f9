"""Routes for the main blueprint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import jsonify

from bracketeer.store import to_iso, utcnow

from . import bp

if TYPE_CHECKING:
    from flask import Response


@bp.route("/health")
def health_check() -> Response:
    """Perform a simple health check."""
    return jsonify({"status": "OK", "timestamp": to_iso(utcnow())})
