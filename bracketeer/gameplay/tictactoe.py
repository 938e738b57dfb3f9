"""3x3 grid game played inside a bracket match."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bracketeer.errors import InvalidStateError, ValidationError

from .base import GameplayCapability, Terminal

if TYPE_CHECKING:
    from bracketeer.tournament.models import Match

BOARD_CELLS = 9
SYMBOLS = {1: "X", 2: "O"}
WINNING_LINES = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),  # diagonals
)


def winning_symbol(board: list[str | None]) -> str | None:
    """Return the symbol owning a full line, if any."""
    for a, b, c in WINNING_LINES:
        if board[a] and board[a] == board[b] == board[c]:
            return board[a]
    return None


class TicTacToe(GameplayCapability):
    """Player one is X and always opens."""

    game_id = "tiktaktoe"

    def initial_state(self, match: Match, now: str) -> dict[str, Any]:
        return {
            "board": [None] * BOARD_CELLS,
            "currentSlot": 1,
            "moves": [],
            "startedAt": now,
        }

    def validate_move(
        self, state: dict[str, Any], match: Match, slot: int, move: Any
    ) -> None:
        if state["currentSlot"] != slot:
            raise InvalidStateError("It is not your turn.")
        if isinstance(move, bool) or not isinstance(move, int):
            raise ValidationError("Move must be a board position from 0 to 8.")
        if not 0 <= move < BOARD_CELLS or state["board"][move] is not None:
            raise ValidationError("Invalid move.")

    def apply_move(
        self, state: dict[str, Any], match: Match, slot: int, move: Any, now: str
    ) -> dict[str, Any]:
        board = list(state["board"])
        board[move] = SYMBOLS[slot]
        moves = [
            *state["moves"],
            {"slot": slot, "symbol": SYMBOLS[slot], "position": move, "timestamp": now},
        ]
        return {
            **state,
            "board": board,
            "moves": moves,
            "currentSlot": 2 if slot == 1 else 1,
        }

    def detect_terminal(self, state: dict[str, Any], match: Match) -> Terminal | None:
        board = state["board"]
        symbol = winning_symbol(board)
        if symbol is not None:
            return Terminal(winner_slot=1 if symbol == SYMBOLS[1] else 2)
        if all(cell is not None for cell in board):
            return Terminal(draw=True)
        return None
