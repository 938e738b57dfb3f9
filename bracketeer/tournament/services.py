"""Service layer for tournament business logic."""

from __future__ import annotations

import logging
import random
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Optional

from bracketeer.core.constants import (
    AUTO_START_SIZES,
    COMPLETED_BY_GAMEPLAY,
    MATCH_COMPLETED,
    MAX_TOURNAMENT_NAME_LENGTH,
    MIN_PARTICIPANTS,
    STATUS_FINISHED,
    STATUS_REGISTRATION,
    STATUS_STARTED,
)
from bracketeer.errors import (
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bracketeer.locks import tournament_key
from bracketeer.store import to_iso, utcnow
from bracketeer.user.services import normalize_wallet, smart_display_name

from . import consensus
from .advancement import AdvancementResult, complete_tournament
from .bracket import build_bracket

if TYPE_CHECKING:
    from bracketeer.gameplay import GameplayRegistry
    from bracketeer.locks import KeyedLocks
    from bracketeer.store import DocumentStore
    from bracketeer.user.stats import StatsUpdater

    from .consensus import SubmissionOutcome
    from .models import Bracket, Match, Participant, Tournament

logger = logging.getLogger(__name__)

TournamentListener = Callable[["Tournament"], None]


class TournamentService:
    """Handles business logic and data access for tournaments.

    Every mutation loads the tournament document, validates, mutates and
    writes it back while holding that tournament's lock. Statistics and
    completion listeners run after the lock is released.
    """

    def __init__(  # noqa: PLR0913
        self,
        store: DocumentStore,
        locks: KeyedLocks,
        stats: StatsUpdater,
        games: Mapping[str, str],
        gameplay: GameplayRegistry | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.locks = locks
        self.stats = stats
        self.games = dict(games)
        self.gameplay = gameplay
        self.rng = rng or random.Random()  # nosec B311
        self.completion_listeners: list[TournamentListener] = []
        self.start_listeners: list[TournamentListener] = []

    # Helpers

    def get_game(self, game_id: str) -> dict[str, str]:
        """Return a catalog entry for ``game_id``."""
        if game_id not in self.games:
            raise NotFoundError("Game not found.")
        return {"id": game_id, "name": self.games[game_id]}

    def list_games(self) -> list[dict[str, str]]:
        """Return the games catalog."""
        return [{"id": gid, "name": name} for gid, name in self.games.items()]

    def _load(self, tournament_id: str, game_id: str | None = None) -> Tournament:
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None or (game_id and tournament.get("gameId") != game_id):
            raise NotFoundError("Tournament not found.")
        return tournament

    @contextmanager
    def _mutate(
        self, tournament_id: str, game_id: str | None = None
    ) -> Iterator[Tournament]:
        """Read-modify-write one tournament under its lock.

        The document is saved only when the block exits without an exception.
        """
        with self.locks.hold(tournament_key(tournament_id)):
            tournament = self._load(tournament_id, game_id)
            yield tournament
            tournament["updatedAt"] = to_iso(utcnow())
            self.store.save_tournament(tournament)

    @staticmethod
    def _notify(listeners: list[TournamentListener], tournament: Tournament) -> None:
        for listener in listeners:
            try:
                listener(tournament)
            except Exception as e:  # noqa: BLE001
                logger.error(f"Listener failed for tournament {tournament['id']}: {e}")

    def _after_completion(self, tournament: Tournament) -> None:
        if not tournament.get("statsApplied"):
            return
        self.stats.record_completion(tournament)
        self._notify(self.completion_listeners, tournament)

    def _mark_completed(self, tournament: Tournament) -> None:
        # Set inside the critical section so a completion is counted once.
        tournament["statsApplied"] = True

    def _start(self, tournament: Tournament, now: str) -> None:
        tournament["bracket"] = build_bracket(
            tournament["participants"], now, rng=self.rng
        )
        tournament["status"] = STATUS_STARTED
        tournament["startedAt"] = now
        logger.info(
            f"Tournament {tournament['id']} started with "
            f"{len(tournament['participants'])} players"
        )

    # Creation and registration

    def create_tournament(
        self,
        game_id: str,
        name: str,
        description: str | None = None,
        auto_start_threshold: int | None = None,
        is_auto_generated: bool = False,
    ) -> Tournament:
        """Create a tournament in the registration phase."""
        self.get_game(game_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tournament name is required.")
        if len(name) > MAX_TOURNAMENT_NAME_LENGTH:
            raise ValidationError(
                f"Tournament name must be at most {MAX_TOURNAMENT_NAME_LENGTH} "
                "characters."
            )
        if (
            auto_start_threshold is not None
            and auto_start_threshold not in AUTO_START_SIZES
        ):
            raise ValidationError("Invalid player count for auto-start.")

        prefix = "tournament"
        if is_auto_generated:
            prefix = f"auto_tournament_{game_id}_{auto_start_threshold}p"
        now = to_iso(utcnow())
        tournament: Tournament = {
            "id": f"{prefix}_{uuid.uuid4().hex[:12]}",
            "gameId": game_id,
            "name": name,
            "description": (description or "").strip(),
            "status": STATUS_REGISTRATION,
            "participants": [],
            "bracket": None,
            "autoStartThreshold": auto_start_threshold,
            "isAutoGenerated": is_auto_generated,
            "createdAt": now,
            "updatedAt": now,
            "startedAt": None,
            "finishedAt": None,
            "winner": None,
            "statsApplied": False,
        }
        with self.locks.hold(tournament_key(tournament["id"])):
            self.store.save_tournament(tournament)
        logger.info(f"Tournament {tournament['id']} created for {game_id}")
        return tournament

    def register_participant(
        self, tournament_id: str, wallet_address: str, game_id: str | None = None
    ) -> Tournament:
        """Add a registered user to a tournament; may trigger auto-start."""
        if not wallet_address:
            raise ValidationError("Wallet address is required.")
        user = self.store.get_user(normalize_wallet(wallet_address))
        if user is None:
            raise NotFoundError("User must register before joining a tournament.")

        with self._mutate(tournament_id, game_id) as tournament:
            if tournament["status"] != STATUS_REGISTRATION:
                raise InvalidStateError("Registration for this tournament is closed.")
            participants = tournament.setdefault("participants", [])
            if any(p.get("userId") == user["id"] for p in participants):
                raise DuplicateResourceError("Already registered for this tournament.")

            now = to_iso(utcnow())
            participants.append({
                "id": uuid.uuid4().hex,
                "userId": user["id"],
                "walletAddress": user.get("walletAddress", user["id"]),
                "platformUsername": smart_display_name(user),
                "gamertags": dict(user.get("gamertags") or {}),
                "registrationTime": now,
            })

            threshold = tournament.get("autoStartThreshold")
            started = bool(threshold and len(participants) >= threshold)
            if started:
                logger.info(
                    f"Auto-starting tournament {tournament_id} "
                    f"with {len(participants)} players"
                )
                self._start(tournament, now)
        if started:
            self._notify(self.start_listeners, tournament)
        return tournament

    def unregister_participant(
        self, tournament_id: str, wallet_address: str, game_id: str | None = None
    ) -> Tournament:
        """Remove a participant during registration."""
        if not wallet_address:
            raise ValidationError("Wallet address is required.")
        user_id = normalize_wallet(wallet_address)
        with self._mutate(tournament_id, game_id) as tournament:
            if tournament["status"] != STATUS_REGISTRATION:
                raise InvalidStateError(
                    "Unregistering is only possible during registration."
                )
            participants = tournament.get("participants", [])
            remaining = [p for p in participants if p.get("userId") != user_id]
            if len(remaining) == len(participants):
                raise NotFoundError("Not registered for this tournament.")
            tournament["participants"] = remaining
        return tournament

    def start_tournament(
        self, tournament_id: str, game_id: str | None = None
    ) -> Tournament:
        """Build the bracket and move to the started phase."""
        with self._mutate(tournament_id, game_id) as tournament:
            if tournament["status"] != STATUS_REGISTRATION:
                raise InvalidStateError("Tournament has already been started.")
            if len(tournament.get("participants", [])) < MIN_PARTICIPANTS:
                raise ValidationError(
                    f"At least {MIN_PARTICIPANTS} players must be registered."
                )
            self._start(tournament, to_iso(utcnow()))
        self._notify(self.start_listeners, tournament)
        return tournament

    # Match results

    def _track_completion(
        self, tournament: Tournament, result: AdvancementResult
    ) -> None:
        if result.tournament_completed:
            self._mark_completed(tournament)

    def submit_result(  # noqa: PLR0913
        self,
        tournament_id: str,
        match_id: str,
        submitter_id: str,
        score1: int,
        score2: int,
        game_id: str | None = None,
    ) -> tuple[Tournament, SubmissionOutcome]:
        """Dual-submission path for a match result."""
        with self._mutate(tournament_id, game_id) as tournament:
            outcome = consensus.submit_result(
                tournament, match_id, submitter_id, score1, score2, to_iso(utcnow())
            )
            self._track_completion(tournament, outcome.advancement)
        if outcome.advancement.tournament_completed:
            self._after_completion(tournament)
        return tournament, outcome

    def set_match_result(  # noqa: PLR0913
        self,
        tournament_id: str,
        match_id: str,
        winner_id: Optional[str] = None,
        score1: Optional[int] = None,
        score2: Optional[int] = None,
        game_id: str | None = None,
    ) -> Tournament:
        """Admin override for a match result."""
        with self._mutate(tournament_id, game_id) as tournament:
            result = consensus.set_result(
                tournament,
                match_id,
                to_iso(utcnow()),
                winner_id=winner_id,
                score1=score1,
                score2=score2,
            )
            self._track_completion(tournament, result)
        if result.tournament_completed:
            self._after_completion(tournament)
        return tournament

    def reset_match(
        self, tournament_id: str, match_id: str, game_id: str | None = None
    ) -> Tournament:
        """Admin reset of a completed match."""
        with self._mutate(tournament_id, game_id) as tournament:
            former_winner = consensus.reset_match(tournament, match_id)
            revert_stats = former_winner is not None and tournament.get("statsApplied")
            if revert_stats:
                tournament["statsApplied"] = False
        if revert_stats:
            self.stats.revert_completion(tournament, former_winner)
        return tournament

    def play_move(  # noqa: PLR0913
        self,
        tournament_id: str,
        match_id: str,
        player_id: str,
        move: Any,
        game_id: str | None = None,
    ) -> tuple[Tournament, Match]:
        """Apply one gameplay move; a decisive game finalizes the match."""
        with self._mutate(tournament_id, game_id) as tournament:
            capability = (
                self.gameplay.get(tournament["gameId"]) if self.gameplay else None
            )
            if capability is None:
                raise ValidationError("This game is not played move by move.")
            if tournament["status"] != STATUS_STARTED:
                raise InvalidStateError("Tournament is not in progress.")
            round_index, match = consensus.find_match(tournament, match_id)
            if match["status"] == MATCH_COMPLETED:
                raise InvalidStateError("Game has already finished.")
            slot = consensus.match_slot(match, player_id)
            if slot is None:
                raise ForbiddenError("You are not a participant of this match.")

            now = to_iso(utcnow())
            state = match.get("gameState") or capability.initial_state(match, now)
            capability.validate_move(state, match, slot, move)
            state = capability.apply_move(state, match, slot, move, now)
            terminal = capability.detect_terminal(state, match)

            result = AdvancementResult()
            if terminal is not None and terminal.draw:
                state = capability.initial_state(match, now)
            match["gameState"] = state
            if terminal is not None and terminal.winner_slot:
                winner = (
                    match["player1"] if terminal.winner_slot == 1 else match["player2"]
                )
                result = consensus.finalize_match(
                    tournament, round_index, match, winner, COMPLETED_BY_GAMEPLAY, now
                )
                self._track_completion(tournament, result)
        if result.tournament_completed:
            self._after_completion(tournament)
        return tournament, match

    def _locate_match(self, game_id: str, match_id: str) -> str:
        """Return the ID of the running tournament of ``game_id`` holding a match."""
        for tournament in self.store.list_tournaments(
            game_id=game_id, status=STATUS_STARTED
        ):
            for round_ in (tournament.get("bracket") or {}).get("rounds", []):
                if any(m["id"] == match_id for m in round_["matches"]):
                    return tournament["id"]
        raise NotFoundError("Match not found.")

    def submit_game_result(  # noqa: PLR0913
        self,
        game_id: str,
        match_id: str,
        winner_side: str,
        wallet_address: str,
        game_data: dict[str, Any] | None = None,
    ) -> Tournament:
        """Finalize a match from the outcome reported by an external game."""
        self.get_game(game_id)
        if self.gameplay and self.gameplay.get(game_id) is not None:
            raise ValidationError("This game is played move by move.")
        if not wallet_address:
            raise ValidationError("Wallet address is required.")
        tournament_id = self._locate_match(game_id, match_id)
        with self._mutate(tournament_id, game_id) as tournament:
            result = consensus.report_game_result(
                tournament,
                match_id,
                winner_side,
                normalize_wallet(wallet_address),
                to_iso(utcnow()),
                game_data=game_data,
            )
            self._track_completion(tournament, result)
        if result.tournament_completed:
            self._after_completion(tournament)
        return tournament

    def get_match_state(
        self, tournament_id: str, match_id: str, game_id: str | None = None
    ) -> dict[str, Any]:
        """Read-only view of a match's gameplay."""
        tournament = self._load(tournament_id, game_id)
        _, match = consensus.find_match(tournament, match_id)
        return {
            "gameState": match.get("gameState"),
            "status": match["status"],
            "winner": match.get("winner"),
            "player1": match.get("player1"),
            "player2": match.get("player2"),
        }

    # Administrative lifecycle

    def force_complete(
        self, tournament_id: str, winner_id: str, game_id: str | None = None
    ) -> Tournament:
        """Finish a tournament with ``winner_id`` regardless of the bracket."""
        if not winner_id:
            raise ValidationError("Winner ID is required.")
        with self._mutate(tournament_id, game_id) as tournament:
            if tournament["status"] == STATUS_FINISHED:
                raise InvalidStateError("Tournament has already finished.")
            if tournament["status"] != STATUS_STARTED:
                raise InvalidStateError(
                    "Only started tournaments can be force-completed."
                )
            winner = next(
                (p for p in tournament.get("participants", []) if p["id"] == winner_id),
                None,
            )
            if winner is None:
                raise ValidationError("Winner is not a participant of this tournament.")
            complete_tournament(tournament, winner, to_iso(utcnow()))
            self._mark_completed(tournament)
        self._after_completion(tournament)
        return tournament

    def cancel_tournament(
        self, tournament_id: str, game_id: str | None = None
    ) -> Tournament:
        """Delete a tournament that has not finished."""
        with self.locks.hold(tournament_key(tournament_id)):
            tournament = self._load(tournament_id, game_id)
            if tournament["status"] == STATUS_FINISHED:
                raise InvalidStateError("Finished tournaments cannot be cancelled.")
            self.store.delete_tournament(tournament_id)
        logger.info(f"Tournament {tournament_id} cancelled")
        return tournament

    def reset_tournament(
        self, tournament_id: str, game_id: str | None = None
    ) -> Tournament:
        """Clear participants and bracket of a tournament in registration."""
        with self._mutate(tournament_id, game_id) as tournament:
            if tournament["status"] != STATUS_REGISTRATION:
                raise InvalidStateError(
                    "Only tournaments in registration can be reset."
                )
            tournament["participants"] = []
            tournament["bracket"] = None
            tournament["winner"] = None
            tournament["finishedAt"] = None
        return tournament

    def delete_finished(self, tournament_id: str) -> bool:
        """Remove a finished tournament. Used by retention cleanup."""
        with self.locks.hold(tournament_key(tournament_id)):
            tournament = self.store.get_tournament(tournament_id)
            if tournament is None or tournament.get("status") != STATUS_FINISHED:
                return False
            self.store.delete_tournament(tournament_id)
        return True

    # Queries

    def get_tournament(
        self, tournament_id: str, game_id: str | None = None
    ) -> Tournament:
        """Fetch one tournament."""
        return self._load(tournament_id, game_id)

    def get_bracket(self, tournament_id: str, game_id: str | None = None) -> Bracket:
        """Fetch the bracket of a started tournament."""
        tournament = self._load(tournament_id, game_id)
        if not tournament.get("bracket"):
            raise InvalidStateError("Tournament has not started.")
        return tournament["bracket"]

    def get_participants(
        self, tournament_id: str, game_id: str | None = None
    ) -> list[Participant]:
        """Fetch the participant list."""
        return list(self._load(tournament_id, game_id).get("participants", []))

    def export_tournament(
        self, tournament_id: str, game_id: str | None = None
    ) -> dict[str, Any]:
        """Self-contained archive of a tournament for admins."""
        tournament = self._load(tournament_id, game_id)
        info_keys = (
            "name",
            "description",
            "gameId",
            "status",
            "createdAt",
            "startedAt",
            "finishedAt",
        )
        return {
            "tournamentInfo": {key: tournament.get(key) for key in info_keys},
            "participants": tournament.get("participants") or [],
            "bracket": tournament.get("bracket"),
            "winner": tournament.get("winner"),
            "exportedAt": to_iso(utcnow()),
            "exportedBy": "admin",
        }

    def list_tournaments(
        self, game_id: str | None = None, status: str | None = None
    ) -> list[Tournament]:
        """List tournaments for a game."""
        if game_id:
            self.get_game(game_id)
        return self.store.list_tournaments(game_id=game_id, status=status)
