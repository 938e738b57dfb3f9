"""Routes for games, tournaments and matches."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from bracketeer.admin.decorators import admin_required
from bracketeer.core.constants import STATUS_FINISHED, STATUS_REGISTRATION
from bracketeer.errors import ValidationError
from bracketeer.extensions import get_services
from bracketeer.utils import request_json, validate_form

from . import bp
from .forms import (
    AdminResultForm,
    ForceCompleteForm,
    GameResultForm,
    MoveForm,
    ParticipantForm,
    ResultSubmissionForm,
    TournamentForm,
)

TOURNAMENT_URL = "/<string:game_id>/tournaments/<string:tournament_id>"
MATCH_URL = f"{TOURNAMENT_URL}/matches/<string:match_id>"


def _tournaments():
    return get_services().tournaments


@bp.route("")
def list_games() -> Any:
    """List the games catalog."""
    return jsonify({"games": _tournaments().list_games()})


@bp.route("/<string:game_id>")
def view_game(game_id: str) -> Any:
    """Show one game with its tournaments."""
    service = _tournaments()
    return jsonify(
        {
            "game": service.get_game(game_id),
            "tournaments": service.list_tournaments(game_id=game_id),
        }
    )


@bp.route("/<string:game_id>/tournaments")
def list_tournaments(game_id: str) -> Any:
    """List tournaments of a game, optionally filtered by status."""
    status = request.args.get("status") or None
    tournaments = _tournaments().list_tournaments(game_id=game_id, status=status)
    return jsonify({"tournaments": tournaments})


@bp.route("/<string:game_id>/tournaments", methods=["POST"])
def create_tournament(game_id: str) -> Any:
    """Create a tournament in the registration phase."""
    form = validate_form(TournamentForm)
    tournament = _tournaments().create_tournament(
        game_id,
        form.name.data,
        description=form.description.data,
        auto_start_threshold=form.auto_start_player_count.data,
    )
    current_app.logger.info(f"Tournament {tournament['id']} created via API")
    return (
        jsonify({"message": "Tournament created.", "tournament": tournament}),
        201,
    )


@bp.route(TOURNAMENT_URL)
def view_tournament(game_id: str, tournament_id: str) -> Any:
    """Show a tournament."""
    return jsonify(_tournaments().get_tournament(tournament_id, game_id=game_id))


@bp.route(f"{TOURNAMENT_URL}/bracket")
def view_bracket(game_id: str, tournament_id: str) -> Any:
    """Show a tournament's bracket."""
    return jsonify(_tournaments().get_bracket(tournament_id, game_id=game_id))


@bp.route(f"{TOURNAMENT_URL}/export")
@admin_required
def export(game_id: str, tournament_id: str) -> Any:
    """Export a tournament with its participants and bracket."""
    data = _tournaments().export_tournament(tournament_id, game_id=game_id)
    current_app.logger.info(f"Tournament {tournament_id} exported by admin")
    return jsonify(data)


@bp.route(f"{TOURNAMENT_URL}/participants")
def view_participants(game_id: str, tournament_id: str) -> Any:
    """List a tournament's participants."""
    participants = _tournaments().get_participants(tournament_id, game_id=game_id)
    return jsonify({"participants": participants, "count": len(participants)})


@bp.route(f"{TOURNAMENT_URL}/register", methods=["POST"])
def register(game_id: str, tournament_id: str) -> Any:
    """Register a wallet for a tournament."""
    form = validate_form(ParticipantForm)
    tournament = _tournaments().register_participant(
        tournament_id, form.wallet_address.data, game_id=game_id
    )
    message = "Registered for tournament."
    if tournament["status"] != STATUS_REGISTRATION:
        message = "Registered for tournament. The tournament has started."
    return jsonify({"message": message, "tournament": tournament})


@bp.route(f"{TOURNAMENT_URL}/unregister", methods=["POST"])
def unregister(game_id: str, tournament_id: str) -> Any:
    """Withdraw a wallet from a tournament."""
    form = validate_form(ParticipantForm)
    tournament = _tournaments().unregister_participant(
        tournament_id, form.wallet_address.data, game_id=game_id
    )
    return jsonify(
        {"message": "Unregistered from tournament.", "tournament": tournament}
    )


@bp.route(f"{TOURNAMENT_URL}/start", methods=["POST"])
def start(game_id: str, tournament_id: str) -> Any:
    """Start a tournament and build its bracket."""
    tournament = _tournaments().start_tournament(tournament_id, game_id=game_id)
    return jsonify({"message": "Tournament started.", "tournament": tournament})


@bp.route(f"{TOURNAMENT_URL}/reset", methods=["POST"])
@admin_required
def reset(game_id: str, tournament_id: str) -> Any:
    """Clear the participants of a tournament in registration."""
    tournament = _tournaments().reset_tournament(tournament_id, game_id=game_id)
    current_app.logger.info(f"Tournament {tournament_id} reset by admin")
    return jsonify({"message": "Tournament reset.", "tournament": tournament})


@bp.route(f"{TOURNAMENT_URL}/cancel", methods=["POST"])
@bp.route(TOURNAMENT_URL, methods=["DELETE"])
@admin_required
def cancel(game_id: str, tournament_id: str) -> Any:
    """Cancel and delete a tournament that has not finished."""
    _tournaments().cancel_tournament(tournament_id, game_id=game_id)
    current_app.logger.info(f"Tournament {tournament_id} cancelled by admin")
    return jsonify({"message": "Tournament cancelled."})


@bp.route(f"{TOURNAMENT_URL}/force-complete", methods=["POST"])
@admin_required
def force_complete(game_id: str, tournament_id: str) -> Any:
    """Finish a tournament with a chosen winner."""
    form = validate_form(ForceCompleteForm)
    tournament = _tournaments().force_complete(
        tournament_id, form.winner_id.data, game_id=game_id
    )
    current_app.logger.info(f"Tournament {tournament_id} force-completed by admin")
    return jsonify({"message": "Tournament completed.", "tournament": tournament})


@bp.route(f"{MATCH_URL}/submit-result", methods=["POST"])
def submit_result(game_id: str, tournament_id: str, match_id: str) -> Any:
    """Report a match score; the match completes when both players agree."""
    form = validate_form(ResultSubmissionForm)
    tournament, outcome = _tournaments().submit_result(
        tournament_id,
        match_id,
        form.submitted_by.data,
        form.score1.data,
        form.score2.data,
        game_id=game_id,
    )
    if outcome.conflict:
        return jsonify(
            {
                "message": "Result submitted. The results conflict and need an "
                "admin decision.",
                "conflict": True,
            }
        )
    if outcome.waiting_for_opponent:
        return jsonify(
            {
                "message": "Result submitted. Waiting for the opponent.",
                "waitingForOpponent": True,
            }
        )
    message = "Match completed."
    if tournament["status"] == STATUS_FINISHED:
        message = "Match completed. The tournament has finished."
    return jsonify({"message": message, "tournament": tournament})


@bp.route(f"{MATCH_URL}/result", methods=["POST"])
@admin_required
def set_result(game_id: str, tournament_id: str, match_id: str) -> Any:
    """Admin override of a match result."""
    form = validate_form(AdminResultForm)
    tournament = _tournaments().set_match_result(
        tournament_id,
        match_id,
        winner_id=form.winner_id.data or None,
        score1=form.score1.data,
        score2=form.score2.data,
        game_id=game_id,
    )
    current_app.logger.info(f"Match {match_id} result set by admin")
    return jsonify({"message": "Match result set.", "tournament": tournament})


@bp.route(f"{MATCH_URL}/reset", methods=["POST"])
@admin_required
def reset_match(game_id: str, tournament_id: str, match_id: str) -> Any:
    """Admin reset of a completed match."""
    tournament = _tournaments().reset_match(
        tournament_id, match_id, game_id=game_id
    )
    current_app.logger.info(f"Match {match_id} reset by admin")
    return jsonify({"message": "Match reset.", "tournament": tournament})


@bp.route(f"{MATCH_URL}/move", methods=["POST"])
def move(game_id: str, tournament_id: str, match_id: str) -> Any:
    """Play one move of an in-match game."""
    form = validate_form(MoveForm)
    tournament, match = _tournaments().play_move(
        tournament_id,
        match_id,
        form.player_id.data,
        form.move.data,
        game_id=game_id,
    )
    return jsonify(
        {
            "message": "Move played.",
            "gameState": match.get("gameState"),
            "matchStatus": match["status"],
            "winner": match.get("winner"),
            "tournamentStatus": tournament["status"],
        }
    )


@bp.route(f"{MATCH_URL}/state")
def match_state(game_id: str, tournament_id: str, match_id: str) -> Any:
    """Show the gameplay state of a match."""
    return jsonify(
        _tournaments().get_match_state(tournament_id, match_id, game_id=game_id)
    )


@bp.route("/<string:game_id>/matches/<string:match_id>/result", methods=["POST"])
def report_game_result(game_id: str, match_id: str) -> Any:
    """Accept the outcome of a match played on an external game server."""
    payload = request_json()
    form = validate_form(GameResultForm, payload)
    game_data = payload.get("gameData")
    if game_data is not None and not isinstance(game_data, dict):
        raise ValidationError("Game data must be a JSON object.")
    tournament = _tournaments().submit_game_result(
        game_id,
        match_id,
        form.winner.data,
        form.wallet_address.data,
        game_data=game_data,
    )
    message = "Game result submitted."
    if tournament["status"] == STATUS_FINISHED:
        message = "Game result submitted. The tournament has finished."
    return jsonify({"message": message, "tournament": tournament})
