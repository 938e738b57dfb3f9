"""In-match gameplay capabilities."""

from .base import GameplayCapability, GameplayRegistry, Terminal
from .tictactoe import TicTacToe


def default_registry() -> GameplayRegistry:
    """Registry with every built-in capability."""
    return GameplayRegistry([TicTacToe()])


__all__ = [
    "GameplayCapability",
    "GameplayRegistry",
    "Terminal",
    "TicTacToe",
    "default_registry",
]
