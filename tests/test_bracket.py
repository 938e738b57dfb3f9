"""Tests for bracket construction."""

from __future__ import annotations

import random
import unittest

from bracketeer.errors import IntegrityFault, ValidationError
from bracketeer.tournament.bracket import (
    build_bracket,
    expected_advancing,
    next_power_of_two,
    pair_round,
    total_matches,
)
from helpers import participant

NOW = "2024-05-01T12:00:00+00:00"


def players(n: int) -> list[dict]:
    return [participant(f"p{i}") for i in range(n)]


class BracketBuilderTestCase(unittest.TestCase):
    """Tests for build_bracket."""

    def test_next_power_of_two(self) -> None:
        """Sizes round up to the next power of two."""
        self.assertEqual(next_power_of_two(2), 2)
        self.assertEqual(next_power_of_two(3), 4)
        self.assertEqual(next_power_of_two(4), 4)
        self.assertEqual(next_power_of_two(5), 8)
        self.assertEqual(next_power_of_two(17), 32)

    def test_size_byes_and_first_round_matches(self) -> None:
        """Every participant count gets the expected size, byes and pairings."""
        for n in range(2, 40):
            with self.subTest(n=n):
                bracket = build_bracket(players(n), NOW, rng=random.Random(n))
                size = next_power_of_two(n)
                byes = size - n
                self.assertEqual(bracket["size"], size)
                self.assertEqual(len(bracket["byeParticipants"]), byes)
                self.assertEqual(len(bracket["rounds"][0]["matches"]), (n - byes) // 2)
                self.assertEqual(bracket["currentRound"], 1)
                self.assertFalse(bracket["isComplete"])
                self.assertIsNone(bracket["winner"])

    def test_every_participant_placed_exactly_once(self) -> None:
        """Round one players and byes partition the participants."""
        bracket = build_bracket(players(11), NOW, rng=random.Random(3))
        seen = [p["id"] for p in bracket["byeParticipants"]]
        for match in bracket["rounds"][0]["matches"]:
            seen.extend([match["player1"]["id"], match["player2"]["id"]])
        self.assertCountEqual(seen, [f"p{i}" for i in range(11)])

    def test_byes_never_play_first_round(self) -> None:
        """Bye participants are absent from round one."""
        bracket = build_bracket(players(6), NOW, rng=random.Random(1))
        bye_ids = {p["id"] for p in bracket["byeParticipants"]}
        for match in bracket["rounds"][0]["matches"]:
            self.assertNotIn(match["player1"]["id"], bye_ids)
            self.assertNotIn(match["player2"]["id"], bye_ids)

    def test_power_of_two_has_no_byes(self) -> None:
        """Exact powers of two produce an empty bye list."""
        bracket = build_bracket(players(8), NOW, rng=random.Random(0))
        self.assertEqual(bracket["byeParticipants"], [])
        self.assertEqual(len(bracket["rounds"][0]["matches"]), 4)

    def test_new_matches_are_pending(self) -> None:
        """Fresh matches start pending with no scores."""
        bracket = build_bracket(players(4), NOW, rng=random.Random(0))
        for match in bracket["rounds"][0]["matches"]:
            self.assertEqual(match["status"], "pending")
            self.assertIsNone(match["winner"])
            self.assertIsNone(match["score1"])
            self.assertIsNone(match["score2"])
            self.assertEqual(match["pendingResults"], [])
            self.assertTrue(match["id"].startswith("r1m"))

    def test_seeding_is_shuffled(self) -> None:
        """Different seeds produce different first-round pairings."""
        pairings = set()
        for seed in range(20):
            bracket = build_bracket(players(8), NOW, rng=random.Random(seed))
            first = bracket["rounds"][0]["matches"][0]
            pairings.add((first["player1"]["id"], first["player2"]["id"]))
        self.assertGreater(len(pairings), 1)

    def test_rejects_fewer_than_two(self) -> None:
        """A single participant cannot form a bracket."""
        with self.assertRaises(ValidationError):
            build_bracket(players(1), NOW)

    def test_pair_round_rejects_odd_counts(self) -> None:
        """Odd player counts are an integrity fault."""
        with self.assertRaises(IntegrityFault):
            pair_round(players(3), 2, NOW)

    def test_expected_advancing(self) -> None:
        """Each round halves the field."""
        bracket = build_bracket(players(5), NOW, rng=random.Random(0))
        self.assertEqual(expected_advancing(bracket, 0), 4)
        self.assertEqual(expected_advancing(bracket, 1), 2)
        self.assertEqual(expected_advancing(bracket, 2), 1)
        self.assertEqual(total_matches(bracket), 1)


if __name__ == "__main__":
    unittest.main()
