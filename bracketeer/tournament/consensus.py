"""Match result protocol: dual submission, admin override and admin reset.

All functions work on a tournament document already loaded under its lock.
Every check runs before the first mutation so that a rejected call leaves the
document untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from bracketeer.core.constants import (
    COMPLETED_BY_ADMIN,
    COMPLETED_BY_CONSENSUS,
    COMPLETED_BY_GAME_REPORT,
    GAME_REPORT_SIDES,
    MATCH_COMPLETED,
    MATCH_PENDING,
    STATUS_FINISHED,
    STATUS_STARTED,
)
from bracketeer.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

from .advancement import AdvancementResult, advance_round

if TYPE_CHECKING:
    from .models import Match, Participant, PendingResult, Tournament

logger = logging.getLogger(__name__)

OUTCOME_COMPLETED = "completed"
OUTCOME_WAITING = "waiting"
OUTCOME_CONFLICT = "conflict"


@dataclass
class SubmissionOutcome:
    """Result of a player's score submission."""

    status: str
    advancement: AdvancementResult = field(default_factory=AdvancementResult)

    @property
    def conflict(self) -> bool:
        return self.status == OUTCOME_CONFLICT

    @property
    def waiting_for_opponent(self) -> bool:
        return self.status == OUTCOME_WAITING


def find_match(tournament: Tournament, match_id: str) -> tuple[int, Match]:
    """Locate a match and the index of its round."""
    bracket = tournament.get("bracket")
    if not bracket:
        raise InvalidStateError("Tournament has not started.")
    for index, round_ in enumerate(bracket["rounds"]):
        for match in round_["matches"]:
            if match["id"] == match_id:
                return index, match
    raise NotFoundError("Match not found.")


def validate_scores(score1: int, score2: int) -> None:
    """Reject negative scores and draws."""
    if score1 < 0 or score2 < 0:
        raise ValidationError("Scores cannot be negative.")
    if score1 == score2:
        raise ValidationError("Draws are not allowed in bracket matches.")


def _require_started(tournament: Tournament) -> None:
    if tournament.get("status") != STATUS_STARTED:
        raise InvalidStateError("Tournament is not in progress.")


def _require_pending(match: Match) -> None:
    if match["status"] == MATCH_COMPLETED:
        raise InvalidStateError("Match has already been completed.")


def match_slot(match: Match, participant_id: str) -> int | None:
    """Return 1 or 2 for a match participant, None for anyone else."""
    if match.get("player1") and match["player1"]["id"] == participant_id:
        return 1
    if match.get("player2") and match["player2"]["id"] == participant_id:
        return 2
    return None


def finalize_match(  # noqa: PLR0913
    tournament: Tournament,
    round_index: int,
    match: Match,
    winner: Participant,
    completed_by: str,
    now: str,
    score1: Optional[int] = None,
    score2: Optional[int] = None,
) -> AdvancementResult:
    """Complete a match and run round advancement."""
    match["winner"] = winner
    match["score1"] = score1
    match["score2"] = score2
    match["status"] = MATCH_COMPLETED
    match["completedAt"] = now
    match["completedBy"] = completed_by
    return advance_round(tournament, round_index, now)


def submit_result(  # noqa: PLR0913
    tournament: Tournament,
    match_id: str,
    submitter_id: str,
    score1: int,
    score2: int,
    now: str,
) -> SubmissionOutcome:
    """Record one participant's result; finalize when both agree."""
    _require_started(tournament)
    validate_scores(score1, score2)
    round_index, match = find_match(tournament, match_id)
    _require_pending(match)
    if match_slot(match, submitter_id) is None:
        raise ForbiddenError("You are not a participant of this match.")

    pending: list[PendingResult] = match.setdefault("pendingResults", [])
    if any(r["submitterId"] == submitter_id for r in pending):
        raise DuplicateResourceError("You have already submitted a result.")
    if len(pending) >= 2:  # noqa: PLR2004
        raise InvalidStateError("Match results are awaiting an admin decision.")

    pending.append({
        "submitterId": submitter_id,
        "score1": score1,
        "score2": score2,
        "submittedAt": now,
        "conflict": False,
    })

    if len(pending) < 2:  # noqa: PLR2004
        return SubmissionOutcome(OUTCOME_WAITING)

    first, second = pending
    if (first["score1"], first["score2"]) != (second["score1"], second["score2"]):
        for r in pending:
            r["conflict"] = True
        logger.warning(
            f"Conflicting results for match {match_id} in tournament "
            f"{tournament['id']}: {first['score1']}-{first['score2']} vs "
            f"{second['score1']}-{second['score2']}"
        )
        return SubmissionOutcome(OUTCOME_CONFLICT)

    winner = match["player1"] if score1 > score2 else match["player2"]
    advancement = finalize_match(
        tournament,
        round_index,
        match,
        winner,
        COMPLETED_BY_CONSENSUS,
        now,
        score1=score1,
        score2=score2,
    )
    return SubmissionOutcome(OUTCOME_COMPLETED, advancement)


def set_result(  # noqa: PLR0913
    tournament: Tournament,
    match_id: str,
    now: str,
    winner_id: Optional[str] = None,
    score1: Optional[int] = None,
    score2: Optional[int] = None,
) -> AdvancementResult:
    """Admin override: finalize a pending match by winner or by score."""
    _require_started(tournament)
    round_index, match = find_match(tournament, match_id)
    _require_pending(match)

    if score1 is not None and score2 is not None:
        validate_scores(score1, score2)
        winner = match["player1"] if score1 > score2 else match["player2"]
    elif winner_id:
        slot = match_slot(match, winner_id)
        if slot is None:
            raise ValidationError("Winner must be one of the match participants.")
        winner = match["player1"] if slot == 1 else match["player2"]
        score1 = score2 = None
    else:
        raise ValidationError("A winner or a score pair is required.")

    match["pendingResults"] = []
    return finalize_match(
        tournament,
        round_index,
        match,
        winner,
        COMPLETED_BY_ADMIN,
        now,
        score1=score1,
        score2=score2,
    )


def report_game_result(  # noqa: PLR0913
    tournament: Tournament,
    match_id: str,
    winner_side: str,
    reported_by: str,
    now: str,
    game_data: Optional[dict[str, Any]] = None,
) -> AdvancementResult:
    """Finalize a match from a winner reported by an external game server.

    ``winner_side`` is ``white`` for player one and ``black`` for player two.
    ``reported_by`` is the user ID of one of the two players.
    """
    _require_started(tournament)
    if winner_side not in GAME_REPORT_SIDES:
        raise ValidationError("Winner must be white or black.")
    round_index, match = find_match(tournament, match_id)
    _require_pending(match)
    players = (match.get("player1") or {}, match.get("player2") or {})
    if reported_by not in {p.get("userId") for p in players}:
        raise ForbiddenError("You are not a participant of this match.")

    white, black = match["player1"], match["player2"]
    winner = white if winner_side == GAME_REPORT_SIDES[0] else black
    match["gameData"] = game_data
    match["pendingResults"] = []
    logger.info(
        f"Match {match_id} in tournament {tournament['id']} reported won by "
        f"{winner_side}"
    )
    return finalize_match(
        tournament, round_index, match, winner, COMPLETED_BY_GAME_REPORT, now
    )


def reset_match(tournament: Tournament, match_id: str) -> Optional[Participant]:
    """Admin reset: revert a completed match to pending.

    The tournament itself is reopened only when the reset match is the final
    that decided it. Returns the former tournament winner in that case,
    otherwise None. Later rounds are left as they are.
    """
    round_index, match = find_match(tournament, match_id)
    if match["status"] != MATCH_COMPLETED:
        raise InvalidStateError("Match has not been completed.")

    bracket = tournament["bracket"]
    reopen = (
        tournament.get("status") == STATUS_FINISHED
        and round_index == len(bracket["rounds"]) - 1
        and len(bracket["rounds"][round_index]["matches"]) == 1
        and (match.get("winner") or {}).get("id")
        == (tournament.get("winner") or {}).get("id")
    )

    reset_players = {
        p["id"] for p in (match.get("player1"), match.get("player2")) if p
    }
    for later in bracket["rounds"][round_index + 1 :]:
        for other in later["matches"]:
            players = {
                p["id"] for p in (other.get("player1"), other.get("player2")) if p
            }
            if players & reset_players:
                logger.warning(
                    f"Match {match_id} reset in tournament {tournament['id']} but "
                    f"round {later['number']} match {other['id']} already "
                    "includes one of its players."
                )

    match["winner"] = None
    match["score1"] = None
    match["score2"] = None
    match["status"] = MATCH_PENDING
    match["completedAt"] = None
    match["completedBy"] = None
    match["pendingResults"] = []
    match.pop("gameState", None)
    match.pop("gameData", None)

    if not reopen:
        return None

    former_winner = tournament.get("winner")
    tournament["status"] = STATUS_STARTED
    tournament["finishedAt"] = None
    tournament["winner"] = None
    bracket["isComplete"] = False
    bracket["winner"] = None
    logger.info(
        f"Tournament {tournament['id']} reopened by reset of match {match_id}"
    )
    return former_winner
