"""Round advancement: promote winners, merge byes, finish the tournament."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from bracketeer.core.constants import MATCH_COMPLETED, STATUS_FINISHED
from bracketeer.errors import IntegrityFault

from .bracket import expected_advancing, pair_round

if TYPE_CHECKING:
    from .models import Participant, Tournament

logger = logging.getLogger(__name__)


@dataclass
class AdvancementResult:
    """What a finalization did to the bracket."""

    round_completed: bool = False
    new_round: Optional[int] = None
    tournament_completed: bool = False
    winner: Optional[Participant] = None


def complete_tournament(tournament: Tournament, winner: Participant, now: str) -> None:
    """Mark the tournament and its bracket as won by ``winner``."""
    bracket = tournament.get("bracket")
    if bracket:
        bracket["isComplete"] = True
        bracket["winner"] = winner
    tournament["winner"] = winner
    tournament["status"] = STATUS_FINISHED
    tournament["finishedAt"] = now
    logger.info(
        f"Tournament {tournament['id']} finished, winner "
        f"{winner.get('platformUsername', winner.get('id'))}"
    )


def advance_round(
    tournament: Tournament, round_index: int, now: str
) -> AdvancementResult:
    """Run advancement after a match in ``round_index`` was finalized."""
    bracket = tournament["bracket"]
    if bracket is None:
        raise IntegrityFault("Tournament has no bracket to advance.")
    rounds = bracket["rounds"]
    if not 0 <= round_index < len(rounds):
        raise IntegrityFault(f"Round index {round_index} is outside the bracket.")

    matches = rounds[round_index]["matches"]
    if not all(m["status"] == MATCH_COMPLETED for m in matches):
        return AdvancementResult()

    result = AdvancementResult(round_completed=True)

    if round_index + 1 != bracket["currentRound"]:
        # A later round already exists; re-finalizing an earlier match after an
        # admin reset must not rebuild or finish anything.
        logger.warning(
            f"Round {round_index + 1} of tournament {tournament['id']} completed "
            f"again while round {bracket['currentRound']} is current; not advancing."
        )
        return result

    advancing: list[Participant] = [m["winner"] for m in matches]
    if any(p is None for p in advancing):
        raise IntegrityFault(
            f"Completed match without a winner in round {round_index + 1}."
        )

    if round_index == 0 and bracket.get("byeParticipants"):
        advancing.extend(bracket["byeParticipants"])
        bracket["byeParticipants"] = []

    expected = expected_advancing(bracket, round_index)
    if len(advancing) != expected:
        raise IntegrityFault(
            f"Round {round_index + 1} of tournament {tournament['id']} advanced "
            f"{len(advancing)} players, expected {expected}."
        )

    if len(advancing) == 1:
        complete_tournament(tournament, advancing[0], now)
        result.tournament_completed = True
        result.winner = advancing[0]
        return result

    bracket["currentRound"] += 1
    next_round = pair_round(advancing, bracket["currentRound"], now)
    rounds.append(next_round)
    result.new_round = bracket["currentRound"]
    logger.info(
        f"Round {bracket['currentRound']} created for tournament "
        f"{tournament['id']} with {len(next_round['matches'])} matches"
    )
    return result
