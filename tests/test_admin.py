"""Tests for the admin blueprint."""

from __future__ import annotations

import datetime
import unittest

from bracketeer.admin.services import AdminService
from bracketeer.store import to_iso
from helpers import AppTestCase, ServiceBundle, patch_mockfirestore, play_round

patch_mockfirestore()

NOW = datetime.datetime(2024, 5, 10, 12, 0, tzinfo=datetime.timezone.utc)


class AdminServiceTestCase(unittest.TestCase):
    """Tests for AdminService.get_admin_stats."""

    def setUp(self) -> None:
        self.bundle = ServiceBundle()

    def _backdate_user(self, wallet: str, days: float) -> None:
        user = self.bundle.store.get_user(wallet)
        user["createdAt"] = to_iso(NOW - datetime.timedelta(days=days))
        self.bundle.store.save_user(user)

    def test_counts(self) -> None:
        """Tournaments, matches and registrations are tallied."""
        service = self.bundle.tournaments
        service.create_tournament("fifa", "Open")
        finished = self.bundle.started_tournament(2)
        play_round(service, finished)
        self.bundle.started_tournament(4, game_id="cod")

        wallets = [u["id"] for u in self.bundle.store.list_users()]
        self._backdate_user(wallets[0], 0)
        self._backdate_user(wallets[1], 3)
        for wallet in wallets[2:]:
            self._backdate_user(wallet, 30)

        stats = AdminService.get_admin_stats(self.bundle.store, now=NOW)

        self.assertEqual(stats["totalUsers"], 6)
        self.assertEqual(stats["totalTournaments"], 3)
        self.assertEqual(stats["activeTournaments"], 2)
        self.assertEqual(stats["completedTournaments"], 1)
        self.assertEqual(stats["totalMatches"], 3)
        self.assertEqual(stats["completedMatches"], 1)
        self.assertEqual(stats["todayRegistrations"], 1)
        self.assertEqual(stats["weekRegistrations"], 2)

    def test_empty_store(self) -> None:
        stats = AdminService.get_admin_stats(self.bundle.store, now=NOW)
        self.assertEqual(stats["totalUsers"], 0)
        self.assertEqual(stats["totalMatches"], 0)


class AdminRoutesTestCase(AppTestCase):
    """Tests for the admin routes and token check."""

    def test_token_is_required(self) -> None:
        """Missing or wrong tokens are forbidden."""
        for headers in ({}, self.admin_headers("wrong")):
            with self.subTest(headers=headers):
                response = self.client.get("/admin/stats", headers=headers)
                self.assertEqual(response.status_code, 403)
                self.assertIn("error", response.get_json())

    def test_unconfigured_token_refuses_everyone(self) -> None:
        self.app.config["ADMIN_TOKEN"] = None
        with self.assertLogs(self.app.logger, "WARNING"):
            response = self.client.get("/admin/stats", headers=self.admin_headers())
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            response.get_json(), {"error": "Admin access is not configured."}
        )

    def test_stats(self) -> None:
        self.register_user("0xabc", "alice")
        response = self.client.get("/admin/stats", headers=self.admin_headers())
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["totalUsers"], 1)
        self.assertEqual(data["totalTournaments"], 0)

    def test_auto_tournament_endpoints(self) -> None:
        """Ensure fills every pair once; status reports them."""
        response = self.client.post(
            "/admin/auto-tournaments/ensure", headers=self.admin_headers()
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()["created"]), 4)

        response = self.client.post(
            "/admin/auto-tournaments/ensure", headers=self.admin_headers()
        )
        self.assertEqual(response.get_json()["created"], [])

        response = self.client.get(
            "/admin/auto-tournaments/status", headers=self.admin_headers()
        )
        data = response.get_json()
        self.assertFalse(data["running"])
        self.assertTrue(all(pair["open"] for pair in data["tournaments"]))

        response = self.client.post(
            "/admin/auto-tournaments/cleanup", headers=self.admin_headers()
        )
        self.assertEqual(response.get_json()["removed"], 0)

    def test_auto_tournament_endpoints_require_token(self) -> None:
        response = self.client.post("/admin/auto-tournaments/ensure")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.services.store.list_tournaments(), [])


if __name__ == "__main__":
    unittest.main()
