"""Tests for the auto-tournament scheduler."""

from __future__ import annotations

import datetime
import re
import threading
import unittest
from unittest.mock import patch

from bracketeer.store import to_iso
from bracketeer.tournament.scheduler import (
    AutoTournamentScheduler,
    auto_tournament_name,
)
from helpers import ServiceBundle, patch_mockfirestore

patch_mockfirestore()

NOW = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)


class AutoTournamentSchedulerTestCase(unittest.TestCase):
    """Tests for replenishment, retention and lifecycle."""

    def setUp(self) -> None:
        self.bundle = ServiceBundle()
        self.service = self.bundle.tournaments
        self.scheduler = AutoTournamentScheduler(
            self.service,
            games=["fifa", "chess", "unknown"],
            sizes=[2, 4],
            interval_seconds=3600,
            retention=datetime.timedelta(hours=24),
            replacement_delay=0,
        )
        self.addCleanup(self.scheduler.stop)

    def open_auto(self, game_id: str | None = None) -> list[dict]:
        return [
            t
            for t in self.service.list_tournaments(game_id, "registration")
            if t.get("isAutoGenerated")
        ]

    def test_name_format(self) -> None:
        self.assertEqual(
            auto_tournament_name("Call of Duty", 8, NOW),
            "Call of Duty 8P - 01.05.2024 12:00",
        )

    def test_unknown_games_are_ignored(self) -> None:
        self.assertEqual(self.scheduler.games, ["fifa", "chess"])

    def test_ensure_is_idempotent(self) -> None:
        """A second ensure creates nothing."""
        created = self.scheduler.ensure()
        self.assertEqual(len(created), 4)

        self.assertEqual(self.scheduler.ensure(), [])
        self.assertEqual(len(self.open_auto()), 4)
        for game_id in ("fifa", "chess"):
            sizes = sorted(t["autoStartThreshold"] for t in self.open_auto(game_id))
            self.assertEqual(sizes, [2, 4])

    def test_created_tournament_fields(self) -> None:
        tournament = self.scheduler.ensure_pair("fifa", 4)
        self.assertTrue(tournament["isAutoGenerated"])
        self.assertEqual(tournament["autoStartThreshold"], 4)
        self.assertEqual(tournament["status"], "registration")
        self.assertRegex(
            tournament["name"], r"^FIFA 4P - \d{2}\.\d{2}\.\d{4} \d{2}:\d{2}$"
        )
        self.assertTrue(tournament["id"].startswith("auto_tournament_fifa_4p_"))

    def test_concurrent_ensure_pair_creates_one(self) -> None:
        threads = [
            threading.Thread(target=self.scheduler.ensure_pair, args=("chess", 2))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(self.open_auto("chess")), 1)

    def test_filled_tournament_schedules_replacement(self) -> None:
        """An auto tournament that starts frees its slot for a new one."""
        tournament = self.scheduler.ensure_pair("fifa", 2)
        wallets = self.bundle.register_users(2)
        with patch.object(self.scheduler, "schedule_replacement") as mock_schedule:
            for wallet in wallets:
                self.service.register_participant(tournament["id"], wallet)
        mock_schedule.assert_called_once_with("fifa", 2)

    def test_completion_schedules_replacement(self) -> None:
        tournament = self.scheduler.ensure_pair("chess", 2)
        wallets = self.bundle.register_users(2)
        for wallet in wallets:
            tournament = self.service.register_participant(tournament["id"], wallet)
        with patch.object(self.scheduler, "schedule_replacement") as mock_schedule:
            self.service.force_complete(
                tournament["id"], tournament["participants"][0]["id"]
            )
        mock_schedule.assert_called_once_with("chess", 2)

    def test_manual_tournaments_do_not_schedule(self) -> None:
        with patch.object(self.scheduler, "schedule_replacement") as mock_schedule:
            self.bundle.started_tournament(2)
        mock_schedule.assert_not_called()

    def test_schedule_replacement_creates_open_tournament(self) -> None:
        timer = self.scheduler.schedule_replacement("fifa", 4)
        timer.join(timeout=5)
        self.assertEqual(len(self.open_auto("fifa")), 1)
        self.scheduler.schedule_replacement("fifa", 4).join(timeout=5)
        self.assertEqual(len(self.open_auto("fifa")), 1)

    def _store_tournament(
        self, status: str, finished_hours_ago: float | None, auto: bool = True
    ) -> str:
        tournament = self.service.create_tournament(
            "fifa",
            f"{status} {finished_hours_ago}",
            auto_start_threshold=2 if auto else None,
            is_auto_generated=auto,
        )
        tournament["status"] = status
        if finished_hours_ago is not None:
            tournament["finishedAt"] = to_iso(
                NOW - datetime.timedelta(hours=finished_hours_ago)
            )
        self.bundle.store.save_tournament(tournament)
        return tournament["id"]

    def test_cleanup_respects_retention_and_status(self) -> None:
        """Only old finished auto tournaments are deleted."""
        old = self._store_tournament("finished", 30)
        recent = self._store_tournament("finished", 2)
        manual = self._store_tournament("finished", 30, auto=False)
        open_old = self._store_tournament("registration", None)
        started = self._store_tournament("started", 48)

        removed = self.scheduler.cleanup(now=NOW)

        self.assertEqual(removed, 1)
        self.assertIsNone(self.bundle.store.get_tournament(old))
        for kept in (recent, manual, open_old, started):
            self.assertIsNotNone(self.bundle.store.get_tournament(kept))

    def test_status(self) -> None:
        self.scheduler.ensure_pair("fifa", 2)
        status = self.scheduler.status()
        self.assertFalse(status["running"])
        pairs = {(p["gameId"], p["size"]): p for p in status["tournaments"]}
        self.assertEqual(len(pairs), 4)
        self.assertTrue(pairs[("fifa", 2)]["open"])
        self.assertEqual(pairs[("fifa", 2)]["participants"], 0)
        self.assertFalse(pairs[("chess", 4)]["open"])
        self.assertIsNone(pairs[("chess", 4)]["tournamentId"])

    def test_start_and_stop(self) -> None:
        """Starting runs a pass immediately and stopping ends the thread."""
        self.scheduler.start()
        self.assertTrue(self.scheduler.is_running)
        self.assertEqual(len(self.open_auto()), 4)

        self.scheduler.stop()
        self.assertFalse(self.scheduler.is_running)

    def test_failed_pass_is_logged(self) -> None:
        with patch.object(self.scheduler, "ensure", side_effect=RuntimeError("boom")):
            with self.assertLogs("bracketeer.tournament.scheduler", "ERROR") as logs:
                self.scheduler._run_pass()
        self.assertTrue(any(re.search("boom", line) for line in logs.output))


if __name__ == "__main__":
    unittest.main()
