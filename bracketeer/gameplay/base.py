"""Pluggable in-match gameplay."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from bracketeer.tournament.models import Match


@dataclass(frozen=True)
class Terminal:
    """A finished game: either a winning slot (1 or 2) or a draw."""

    winner_slot: Optional[int] = None
    draw: bool = False


class GameplayCapability(ABC):
    """Rules for a game that can be played move by move inside a match.

    The capability owns the shape of ``state`` and never touches the match
    status. A winning terminal is finalized through the same path as score
    submissions; a drawn terminal restarts from ``initial_state``.
    """

    game_id: str = ""

    @abstractmethod
    def initial_state(self, match: Match, now: str) -> dict[str, Any]:
        """Return the state of a fresh game for ``match``."""

    @abstractmethod
    def validate_move(
        self, state: dict[str, Any], match: Match, slot: int, move: Any
    ) -> None:
        """Raise ValidationError or InvalidStateError if ``move`` is illegal."""

    @abstractmethod
    def apply_move(
        self, state: dict[str, Any], match: Match, slot: int, move: Any, now: str
    ) -> dict[str, Any]:
        """Return the state after ``move``."""

    @abstractmethod
    def detect_terminal(self, state: dict[str, Any], match: Match) -> Terminal | None:
        """Return a Terminal if the game is over."""


class GameplayRegistry:
    """Capabilities keyed by game id."""

    def __init__(self, capabilities: list[GameplayCapability] | None = None) -> None:
        self._capabilities: dict[str, GameplayCapability] = {}
        for capability in capabilities or []:
            self.register(capability)

    def register(self, capability: GameplayCapability) -> None:
        self._capabilities[capability.game_id] = capability

    def get(self, game_id: str) -> GameplayCapability | None:
        return self._capabilities.get(game_id)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._capabilities
