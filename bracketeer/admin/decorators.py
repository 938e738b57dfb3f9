"""Decorators for administrative endpoints."""

import hmac
from functools import wraps

from flask import current_app, request

from bracketeer.core.constants import ADMIN_TOKEN_HEADER
from bracketeer.errors import ForbiddenError


def admin_required(f):
    """Reject the request unless it carries the configured admin token."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_TOKEN")
        supplied = request.headers.get(ADMIN_TOKEN_HEADER, "")
        if not expected:
            current_app.logger.warning(
                f"Admin request to {request.path} refused: ADMIN_TOKEN is not set"
            )
            raise ForbiddenError("Admin access is not configured.")
        if not hmac.compare_digest(supplied.encode(), str(expected).encode()):
            raise ForbiddenError("You are not authorized to perform this action.")
        return f(*args, **kwargs)

    return decorated_function
