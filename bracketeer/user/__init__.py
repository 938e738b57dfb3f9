"""The user blueprints."""

from flask import Blueprint

bp = Blueprint("user", __name__, url_prefix="/user")
users_bp = Blueprint("users", __name__, url_prefix="/users")

from . import routes  # noqa: E402

__all__ = ["routes"]
