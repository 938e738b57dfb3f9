"""Statistics applied to user records when a tournament completes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bracketeer.locks import user_key
from bracketeer.store import to_iso, utcnow

if TYPE_CHECKING:
    from bracketeer.locks import KeyedLocks
    from bracketeer.store import DocumentStore
    from bracketeer.tournament.models import Participant, Tournament

    from .models import UserRecord

logger = logging.getLogger(__name__)


class StatsUpdater:
    """Applies win and participation counters.

    Every participant's ``tournamentsPlayed`` for the game moves by one and the
    winner's ``totalWins`` and per-game ``wins`` move by one. Each user
    document is updated under its own lock.
    """

    def __init__(self, store: DocumentStore, locks: KeyedLocks) -> None:
        self.store = store
        self.locks = locks

    def record_completion(self, tournament: Tournament) -> None:
        """Apply the counters for a completed tournament."""
        self._apply(tournament, +1)

    def revert_completion(self, tournament: Tournament, winner: Participant) -> None:
        """Undo the counters applied for ``winner``'s completion."""
        self._apply({**tournament, "winner": winner}, -1)

    def _apply(self, tournament: Tournament, delta: int) -> None:
        game_id = tournament["gameId"]
        winner = tournament.get("winner") or {}
        winner_user_id = winner.get("userId")
        for participant in tournament.get("participants", []):
            user_id = participant.get("userId")
            if not user_id:
                continue
            self._update_user(
                user_id, game_id, delta, is_winner=user_id == winner_user_id
            )

    def _update_user(
        self, user_id: str, game_id: str, delta: int, is_winner: bool
    ) -> None:
        with self.locks.hold(user_key(user_id)):
            user = self.store.get_user(user_id)
            if user is None:
                logger.warning(f"Skipping stats for unknown user {user_id}")
                return
            apply_delta(user, game_id, delta, is_winner)
            user["updatedAt"] = to_iso(utcnow())
            self.store.save_user(user)


def apply_delta(user: UserRecord, game_id: str, delta: int, is_winner: bool) -> None:
    """Adjust counters in place, never letting them drop below zero."""
    stats = user.setdefault("stats", {"totalWins": 0, "gameStats": {}})
    stats.setdefault("totalWins", 0)
    game_stats = stats.setdefault("gameStats", {}).setdefault(
        game_id, {"tournamentsPlayed": 0, "wins": 0}
    )
    game_stats["tournamentsPlayed"] = max(
        0, game_stats.get("tournamentsPlayed", 0) + delta
    )
    if is_winner:
        stats["totalWins"] = max(0, stats["totalWins"] + delta)
        game_stats["wins"] = max(0, game_stats.get("wins", 0) + delta)
