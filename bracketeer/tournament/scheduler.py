"""Keeps one open auto-generated tournament per configured game and size."""

from __future__ import annotations

import datetime
import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable

from bracketeer.core.constants import STATUS_FINISHED, STATUS_REGISTRATION
from bracketeer.locks import auto_pair_key
from bracketeer.store import from_iso, utcnow

if TYPE_CHECKING:
    from .models import Tournament
    from .services import TournamentService

logger = logging.getLogger(__name__)


def auto_tournament_name(game_name: str, size: int, now: datetime.datetime) -> str:
    """Name an auto tournament after its game, size and creation time."""
    return f"{game_name} {size}P - {now.strftime('%d.%m.%Y %H:%M')}"


class AutoTournamentScheduler:
    """Replenishes and prunes auto-generated tournaments.

    ``start()`` runs one pass immediately and then repeats ``ensure()`` and
    ``cleanup()`` every ``interval_seconds`` on a daemon thread. Replacements
    for tournaments that filled up or finished are created on short-lived
    timers so they never run inside another tournament's critical section.
    """

    def __init__(  # noqa: PLR0913
        self,
        service: TournamentService,
        games: Iterable[str],
        sizes: Iterable[int],
        interval_seconds: float,
        retention: datetime.timedelta,
        replacement_delay: float = 1.0,
    ) -> None:
        self.service = service
        self.games = [g for g in games if g in service.games]
        self.sizes = list(sizes)
        self.interval_seconds = interval_seconds
        self.retention = retention
        self.replacement_delay = replacement_delay

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._timers: set[threading.Timer] = set()
        self._timers_lock = threading.Lock()

        service.completion_listeners.append(self._on_tournament_closed)
        service.start_listeners.append(self._on_tournament_closed)

    # Lifecycle

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run one pass now and keep running on a background thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._run_pass()
        self._thread = threading.Thread(
            target=self._loop, name="auto-tournaments", daemon=True
        )
        self._thread.start()
        logger.info(
            f"Auto-tournament scheduler started for {len(self.games)} games, "
            f"sizes {self.sizes}"
        )

    def stop(self) -> None:
        """Stop the loop and cancel pending replacements."""
        self._stop_event.set()
        with self._timers_lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Auto-tournament scheduler stopped")

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self._run_pass()

    def _run_pass(self) -> None:
        try:
            self.ensure()
            self.cleanup()
        except Exception as e:  # noqa: BLE001
            logger.error(f"Auto-tournament pass failed: {e}")

    # Replenishment

    def _open_tournament(self, game_id: str, size: int) -> Tournament | None:
        for tournament in self.service.list_tournaments(
            game_id=game_id, status=STATUS_REGISTRATION
        ):
            if (
                tournament.get("isAutoGenerated")
                and tournament.get("autoStartThreshold") == size
            ):
                return tournament
        return None

    def ensure_pair(self, game_id: str, size: int) -> Tournament | None:
        """Create an open auto tournament for the pair unless one exists.

        Returns the created tournament, or None if one was already open.
        """
        with self.service.locks.hold(auto_pair_key(game_id, size)):
            if self._open_tournament(game_id, size) is not None:
                return None
            game = self.service.get_game(game_id)
            tournament = self.service.create_tournament(
                game_id,
                auto_tournament_name(game["name"], size, utcnow()),
                description=f"Automatic {size}-player tournament",
                auto_start_threshold=size,
                is_auto_generated=True,
            )
        logger.info(f"Auto tournament created: {tournament['name']}")
        return tournament

    def ensure(self) -> list[Tournament]:
        """Fill every configured pair that has no open auto tournament."""
        created = []
        for game_id in self.games:
            for size in self.sizes:
                tournament = self.ensure_pair(game_id, size)
                if tournament is not None:
                    created.append(tournament)
        return created

    def schedule_replacement(self, game_id: str, size: int) -> threading.Timer:
        """Run ``ensure_pair`` for the pair after ``replacement_delay``."""

        def task() -> None:
            with self._timers_lock:
                self._timers.discard(timer)
            if self._stop_event.is_set():
                return
            try:
                self.ensure_pair(game_id, size)
            except Exception as e:  # noqa: BLE001
                logger.error(
                    f"Replacement auto tournament for {game_id} {size}P failed: {e}"
                )

        timer = threading.Timer(self.replacement_delay, task)
        timer.daemon = True
        with self._timers_lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def _on_tournament_closed(self, tournament: Tournament) -> None:
        if not tournament.get("isAutoGenerated"):
            return
        size = tournament.get("autoStartThreshold")
        game_id = tournament.get("gameId")
        if game_id in self.games and size in self.sizes:
            self.schedule_replacement(game_id, size)

    # Retention

    def cleanup(self, now: datetime.datetime | None = None) -> int:
        """Delete finished auto tournaments older than the retention window."""
        cutoff = (now or utcnow()) - self.retention
        removed = 0
        for tournament in self.service.list_tournaments(status=STATUS_FINISHED):
            if not tournament.get("isAutoGenerated"):
                continue
            finished_at = from_iso(tournament.get("finishedAt"))
            if finished_at is None or finished_at >= cutoff:
                continue
            if self.service.delete_finished(tournament["id"]):
                removed += 1
        if removed:
            logger.info(f"Cleaned up {removed} finished auto tournaments")
        return removed

    def status(self) -> dict[str, Any]:
        """Open auto tournament per configured pair."""
        pairs = []
        for game_id in self.games:
            for size in self.sizes:
                tournament = self._open_tournament(game_id, size)
                pairs.append({
                    "gameId": game_id,
                    "size": size,
                    "open": tournament is not None,
                    "tournamentId": tournament["id"] if tournament else None,
                    "name": tournament["name"] if tournament else None,
                    "participants": (
                        len(tournament.get("participants", [])) if tournament else 0
                    ),
                })
        return {"running": self.is_running, "tournaments": pairs}
