"""Data models for the user blueprint."""

from __future__ import annotations

from typing import TypedDict

from bracketeer.core.types import FirestoreDocument


class GameStats(TypedDict):
    """Per-game counters."""

    tournamentsPlayed: int
    wins: int


class UserStatsRecord(TypedDict):
    """Cumulative counters kept on the user document."""

    totalWins: int
    gameStats: dict[str, GameStats]


class UserRecord(FirestoreDocument, total=False):
    """A user document in Firestore, keyed by lower-cased wallet address."""

    walletAddress: str
    platformUsername: str
    gamertags: dict[str, str]
    stats: UserStatsRecord
