"""Leaderboard blueprint for ranking players by tournament wins."""

from flask import Blueprint

bp = Blueprint("leaderboard", __name__, url_prefix="/leaderboard")

from . import routes  # noqa: E402, F401
