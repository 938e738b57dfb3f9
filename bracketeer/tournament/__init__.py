"""The games blueprint: catalog, tournaments and matches."""

from flask import Blueprint

bp = Blueprint("games", __name__, url_prefix="/games")

from . import routes  # noqa: E402

__all__ = ["routes"]
