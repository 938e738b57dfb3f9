"""Single-elimination bracket construction."""

from __future__ import annotations

import math
import random
import uuid
from typing import TYPE_CHECKING

from bracketeer.core.constants import MATCH_PENDING, MIN_PARTICIPANTS
from bracketeer.errors import IntegrityFault, ValidationError

if TYPE_CHECKING:
    from .models import Bracket, Match, Participant, Round


def next_power_of_two(n: int) -> int:
    """Return the smallest power of two >= n."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def new_match(
    round_number: int, slot: int, player1: Participant, player2: Participant, now: str
) -> Match:
    """Create a fresh pending match."""
    return {
        "id": f"r{round_number}m{slot}_{uuid.uuid4().hex[:8]}",
        "player1": player1,
        "player2": player2,
        "status": MATCH_PENDING,
        "winner": None,
        "score1": None,
        "score2": None,
        "pendingResults": [],
        "completedBy": None,
        "createdAt": now,
        "completedAt": None,
    }


def pair_round(players: list[Participant], round_number: int, now: str) -> Round:
    """Pair players (0,1), (2,3), ... into a new round."""
    if len(players) % 2 != 0:
        raise IntegrityFault(
            f"Cannot pair {len(players)} players for round {round_number}."
        )
    matches = [
        new_match(round_number, i // 2, players[i], players[i + 1], now)
        for i in range(0, len(players), 2)
    ]
    return {"number": round_number, "matches": matches}


def build_bracket(
    participants: list[Participant], now: str, rng: random.Random | None = None
) -> Bracket:
    """Seed participants randomly into a power-of-two bracket.

    Participants beyond the last full pair sit out round one as byes; the byes
    are drawn uniformly without replacement and join the bracket in round two.
    """
    if len(participants) < MIN_PARTICIPANTS:
        raise ValidationError(
            f"At least {MIN_PARTICIPANTS} participants are required."
        )
    rng = rng or random.Random()  # nosec B311

    shuffled = list(participants)
    rng.shuffle(shuffled)

    size = next_power_of_two(len(shuffled))
    byes = size - len(shuffled)

    bye_indexes = set(rng.sample(range(len(shuffled)), byes))
    bye_participants = [p for i, p in enumerate(shuffled) if i in bye_indexes]
    playing = [p for i, p in enumerate(shuffled) if i not in bye_indexes]

    return {
        "size": size,
        "totalRounds": int(math.log2(size)),
        "currentRound": 1,
        "rounds": [pair_round(playing, 1, now)],
        "byeParticipants": bye_participants,
        "isComplete": False,
        "winner": None,
    }


def expected_advancing(bracket: Bracket, round_index: int) -> int:
    """Number of players that must advance out of ``round_index``."""
    return bracket["size"] >> (round_index + 1)


def total_matches(bracket: Bracket) -> int:
    """Count the matches materialized so far."""
    return sum(len(r["matches"]) for r in bracket.get("rounds", []))
