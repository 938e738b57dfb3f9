"""Common utilities for tests."""

from __future__ import annotations

import random
import unittest
from typing import Any, Optional

from mockfirestore import CollectionReference, MockFirestore, Query

from bracketeer import create_app
from bracketeer.extensions import get_services
from bracketeer.gameplay import default_registry
from bracketeer.locks import KeyedLocks
from bracketeer.store import DocumentStore
from bracketeer.tournament.services import TournamentService
from bracketeer.user.services import UserService
from bracketeer.user.stats import StatsUpdater

TEST_GAMES = {
    "fifa": "FIFA",
    "cod": "Call of Duty",
    "chess": "Chess",
    "tiktaktoe": "TikTakToe",
}
ADMIN_TOKEN = "test-admin-token"  # nosec B105


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where


class ServiceBundle:
    """Store, locks and services over one in-memory Firestore."""

    def __init__(self, seed: int = 7) -> None:
        self.db = MockFirestore()
        self.store = DocumentStore(self.db)
        self.locks = KeyedLocks()
        self.stats = StatsUpdater(self.store, self.locks)
        self.users = UserService(self.store, self.locks, TEST_GAMES.keys())
        self.tournaments = TournamentService(
            self.store,
            self.locks,
            self.stats,
            TEST_GAMES,
            gameplay=default_registry(),
            rng=random.Random(seed),  # nosec B311
        )

    def register_users(self, count: int, prefix: str = "0xwallet") -> list[str]:
        """Create ``count`` users and return their wallet addresses."""
        wallets = []
        for i in range(count):
            wallet = f"{prefix}{i:02d}"
            self.users.register_user(wallet, f"{prefix}-p{i:02d}")
            wallets.append(wallet)
        return wallets

    def started_tournament(
        self, players: int, game_id: str = "fifa", **kwargs: Any
    ) -> dict[str, Any]:
        """Create, fill and start a tournament with ``players`` new users."""
        tournament = self.tournaments.create_tournament(game_id, "Cup", **kwargs)
        prefix = f"0x{tournament['id'][-6:]}"
        for wallet in self.register_users(players, prefix=prefix):
            self.tournaments.register_participant(tournament["id"], wallet)
        return self.tournaments.start_tournament(tournament["id"])


def participant(pid: str) -> dict[str, Any]:
    """A minimal participant snapshot."""
    return {
        "id": pid,
        "userId": f"0x{pid}",
        "walletAddress": f"0x{pid}",
        "platformUsername": pid,
        "gamertags": {},
        "registrationTime": "2024-01-01T00:00:00+00:00",
    }


def play_round(
    service: TournamentService, tournament: dict[str, Any]
) -> dict[str, Any]:
    """Finish every pending match of the current round with consensus."""
    bracket = tournament["bracket"]
    current = bracket["rounds"][bracket["currentRound"] - 1]
    for match in current["matches"]:
        if match["status"] == "completed":
            continue
        for player in (match["player1"], match["player2"]):
            tournament, _ = service.submit_result(
                tournament["id"], match["id"], player["id"], 3, 1
            )
    return tournament


class AppTestCase(unittest.TestCase):
    """A test client over an app backed by an in-memory Firestore."""

    def setUp(self) -> None:
        """Set up the app, a test client and an app context."""
        patch_mockfirestore()
        self.db = MockFirestore()
        self.app = create_app(
            {
                "TESTING": True,
                "FIRESTORE_CLIENT": self.db,
                "ADMIN_TOKEN": ADMIN_TOKEN,
                "GAMES": dict(TEST_GAMES),
                "AUTO_TOURNAMENT_GAMES": ["fifa", "chess"],
                "AUTO_TOURNAMENT_SIZES": [2, 4],
                "AUTO_TOURNAMENT_REPLACEMENT_DELAY": 0,
                "BRACKET_RNG": random.Random(1),  # nosec B311
            }
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.services = get_services()
        self.addCleanup(self.services.scheduler.stop)

    def tearDown(self) -> None:
        """Tear down the app context."""
        self.app_context.pop()

    def admin_headers(self, token: str = ADMIN_TOKEN) -> dict[str, str]:
        return {"X-Admin-Token": token}

    def register_user(self, wallet: str, username: str) -> dict[str, Any]:
        response = self.client.post(
            "/user/register",
            json={"walletAddress": wallet, "platformUsername": username},
        )
        self.assertIn(response.status_code, (200, 201), response.get_json())
        return response.get_json()["user"]
