"""Data models for the tournament blueprint."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from bracketeer.core.types import FirestoreDocument


class Participant(TypedDict, total=False):
    """A registered player, snapshotted from the user registry."""

    id: str
    userId: str
    walletAddress: str
    platformUsername: str
    gamertags: dict[str, str]
    registrationTime: str


class PendingResult(TypedDict):
    """One player's reported score for a match."""

    submitterId: str
    score1: int
    score2: int
    submittedAt: str
    conflict: bool


class Match(TypedDict, total=False):
    """A single pairing inside a round."""

    id: str
    player1: Participant
    player2: Participant
    status: str
    winner: Optional[Participant]
    score1: Optional[int]
    score2: Optional[int]
    pendingResults: list[PendingResult]
    completedBy: Optional[str]
    createdAt: str
    completedAt: Optional[str]
    gameState: Optional[dict[str, Any]]


class Round(TypedDict):
    """Matches produced together.

    Stored as a map because Firestore rejects arrays nested in arrays.
    """

    number: int
    matches: list[Match]


class Bracket(TypedDict, total=False):
    """Single-elimination bracket state."""

    size: int
    totalRounds: int
    currentRound: int
    rounds: list[Round]
    byeParticipants: list[Participant]
    isComplete: bool
    winner: Optional[Participant]


class Tournament(FirestoreDocument, total=False):
    """A tournament document in Firestore."""

    gameId: str
    name: str
    description: str
    status: str
    participants: list[Participant]
    bracket: Optional[Bracket]
    autoStartThreshold: Optional[int]
    isAutoGenerated: bool
    startedAt: Optional[str]
    finishedAt: Optional[str]
    winner: Optional[Participant]
    statsApplied: bool
