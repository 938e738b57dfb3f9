"""Tests for round advancement."""

from __future__ import annotations

import random
import unittest

from bracketeer.errors import IntegrityFault
from bracketeer.tournament.advancement import advance_round
from bracketeer.tournament.bracket import build_bracket, new_match
from helpers import participant

NOW = "2024-05-01T12:00:00+00:00"


def complete(match: dict, winner: dict) -> None:
    match["status"] = "completed"
    match["winner"] = winner


def tournament_with(bracket: dict) -> dict:
    return {
        "id": "t1",
        "gameId": "fifa",
        "status": "started",
        "participants": [],
        "bracket": bracket,
        "winner": None,
        "finishedAt": None,
    }


class AdvanceRoundTestCase(unittest.TestCase):
    """Tests for advance_round."""

    def setUp(self) -> None:
        self.a, self.b, self.c, self.d = (participant(x) for x in "abcd")
        self.bracket = {
            "size": 4,
            "totalRounds": 2,
            "currentRound": 1,
            "rounds": [
                {
                    "number": 1,
                    "matches": [
                        new_match(1, 0, self.a, self.c, NOW),
                        new_match(1, 1, self.b, self.d, NOW),
                    ],
                }
            ],
            "byeParticipants": [],
            "isComplete": False,
            "winner": None,
        }
        self.tournament = tournament_with(self.bracket)

    def test_incomplete_round_is_a_no_op(self) -> None:
        """Nothing happens while a round still has pending matches."""
        complete(self.bracket["rounds"][0]["matches"][0], self.a)
        result = advance_round(self.tournament, 0, NOW)
        self.assertFalse(result.round_completed)
        self.assertEqual(len(self.bracket["rounds"]), 1)
        self.assertEqual(self.bracket["currentRound"], 1)

    def test_completed_round_builds_next_round(self) -> None:
        """Winners A and B meet in a single next-round match."""
        first, second = self.bracket["rounds"][0]["matches"]
        complete(first, self.a)
        complete(second, self.b)

        result = advance_round(self.tournament, 0, NOW)

        self.assertTrue(result.round_completed)
        self.assertEqual(result.new_round, 2)
        self.assertEqual(self.bracket["currentRound"], 2)
        final = self.bracket["rounds"][1]["matches"]
        self.assertEqual(len(final), 1)
        self.assertEqual(final[0]["player1"]["id"], "a")
        self.assertEqual(final[0]["player2"]["id"], "b")
        self.assertEqual(final[0]["status"], "pending")

    def test_single_winner_finishes_tournament(self) -> None:
        """The last remaining player wins the tournament."""
        first, second = self.bracket["rounds"][0]["matches"]
        complete(first, self.a)
        complete(second, self.b)
        advance_round(self.tournament, 0, NOW)
        complete(self.bracket["rounds"][1]["matches"][0], self.b)

        result = advance_round(self.tournament, 1, NOW)

        self.assertTrue(result.tournament_completed)
        self.assertEqual(result.winner["id"], "b")
        self.assertEqual(self.tournament["status"], "finished")
        self.assertEqual(self.tournament["winner"]["id"], "b")
        self.assertEqual(self.tournament["finishedAt"], NOW)
        self.assertTrue(self.bracket["isComplete"])
        self.assertEqual(self.bracket["winner"]["id"], "b")

    def test_stale_round_does_not_advance(self) -> None:
        """Re-completing an earlier round never rebuilds or finishes."""
        first, second = self.bracket["rounds"][0]["matches"]
        complete(first, self.a)
        complete(second, self.b)
        advance_round(self.tournament, 0, NOW)

        with self.assertLogs("bracketeer.tournament.advancement", "WARNING"):
            result = advance_round(self.tournament, 0, NOW)

        self.assertTrue(result.round_completed)
        self.assertIsNone(result.new_round)
        self.assertFalse(result.tournament_completed)
        self.assertEqual(len(self.bracket["rounds"]), 2)
        self.assertEqual(self.tournament["status"], "started")

    def test_byes_join_second_round(self) -> None:
        """Bye participants are merged after round one and then cleared."""
        people = [participant(f"p{i}") for i in range(3)]
        bracket = build_bracket(people, NOW, rng=random.Random(5))
        tournament = tournament_with(bracket)
        (bye,) = bracket["byeParticipants"]
        (match,) = bracket["rounds"][0]["matches"]
        complete(match, match["player1"])

        advance_round(tournament, 0, NOW)

        self.assertEqual(bracket["byeParticipants"], [])
        (final,) = bracket["rounds"][1]["matches"]
        self.assertEqual(final["player1"]["id"], match["player1"]["id"])
        self.assertEqual(final["player2"]["id"], bye["id"])

    def test_count_mismatch_is_integrity_fault(self) -> None:
        """A bracket whose advancing count is off aborts advancement."""
        self.bracket["size"] = 8
        first, second = self.bracket["rounds"][0]["matches"]
        complete(first, self.a)
        complete(second, self.b)
        with self.assertRaises(IntegrityFault):
            advance_round(self.tournament, 0, NOW)
        self.assertEqual(len(self.bracket["rounds"]), 1)

    def test_winnerless_completed_match_is_integrity_fault(self) -> None:
        """A completed match must carry a winner."""
        first, second = self.bracket["rounds"][0]["matches"]
        complete(first, self.a)
        complete(second, None)
        with self.assertRaises(IntegrityFault):
            advance_round(self.tournament, 0, NOW)


if __name__ == "__main__":
    unittest.main()
