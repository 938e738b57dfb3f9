from __future__ import annotations

from typing import Any

from flask import jsonify, request
from wtforms import IntegerField
from wtforms.validators import NumberRange, Optional

from bracketeer.extensions import get_services
from bracketeer.utils import APIForm, validate_form

from . import bp

GLOBAL_LIMIT = 10
GAME_LIMIT = 50


class LeaderboardQueryForm(APIForm):
    limit = IntegerField(
        "Limit",
        validators=[Optional(), NumberRange(min=1, max=500)],
    )


def _limit(default: int) -> int:
    form = validate_form(LeaderboardQueryForm, request.args.to_dict())
    return form.limit.data or default


@bp.route("")
def global_leaderboard() -> Any:
    """Top players across every game."""
    return jsonify(get_services().users.leaderboard(limit=_limit(GLOBAL_LIMIT)))


@bp.route("/<string:game_id>")
def game_leaderboard(game_id: str) -> Any:
    """Top players of one game."""
    services = get_services()
    game = services.tournaments.get_game(game_id)
    return jsonify(
        services.users.game_leaderboard(
            game_id, game["name"], limit=_limit(GAME_LIMIT)
        )
    )
