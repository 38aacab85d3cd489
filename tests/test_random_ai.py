import random
import unittest
from collections import Counter
from unittest.mock import MagicMock

import chess

from random_ai_plugin.ai import NoLegalMovesError
from random_ai_plugin.ai_utils import extract_moves_for_mover
from random_ai_plugin.games import ChessGame, Move
from random_ai_plugin.random_ai import RandomAI

A = Move(1, chess.Move.from_uci("a2a3"))
B = Move(2, chess.Move.from_uci("b7b6"))
C = Move(1, chess.Move.from_uci("c2c3"))


class FakeGame:
    """Game stand-in with a fixed move list."""

    def __init__(self, moves, alternating=True):
        self._moves = list(moves)
        self.alternating = alternating

    def is_alternating_move_game(self):
        return self.alternating

    def moves(self, context):
        return list(self._moves)


def _rng_drawing(index):
    rng = MagicMock(spec=random.Random)
    rng.randrange.return_value = index
    return rng


class RandomAITests(unittest.TestCase):
    def test_init_ai_records_player(self):
        ai = RandomAI()
        self.assertEqual(ai.player, -1)
        ai.init_ai(ChessGame(), 2)
        self.assertEqual(ai.player, 2)

    def test_returns_legal_chess_move(self):
        game = ChessGame()
        ctx = game.new_context()
        ai = RandomAI(rng=random.Random(7))
        ai.init_ai(game, 1)
        legal = game.moves(ctx)
        for _ in range(200):
            move = ai.select_action(game, ctx, 1.0, -1, -1)
            self.assertIn(move, legal)
            self.assertIn(move.action, ctx.board.legal_moves)

    def test_draw_picks_move_at_index(self):
        rng = _rng_drawing(1)
        ai = RandomAI(rng=rng)
        ai.init_ai(None, 1)
        move = ai.select_action(FakeGame([A, B, C]), context=None)
        self.assertEqual(move, B)
        rng.randrange.assert_called_once_with(3)

    def test_alternating_game_uses_full_move_set(self):
        rng = _rng_drawing(1)
        ai = RandomAI(rng=rng)
        ai.init_ai(None, 1)
        move = ai.select_action(FakeGame([A, B, C], alternating=True), context=None)
        # B belongs to player 2 but alternating games are not filtered
        self.assertEqual(move, B)

    def test_non_alternating_game_filters_to_own_moves(self):
        rng = _rng_drawing(1)
        ai = RandomAI(rng=rng)
        ai.init_ai(None, 1)
        move = ai.select_action(FakeGame([A, B, C], alternating=False), context=None)
        rng.randrange.assert_called_once_with(2)
        self.assertEqual(move, C)

    def test_non_alternating_game_never_returns_other_players_move(self):
        ai = RandomAI(rng=random.Random(3))
        ai.init_ai(None, 1)
        game = FakeGame([A, B, C], alternating=False)
        seen = {ai.select_action(game, None) for _ in range(200)}
        self.assertEqual(seen, {A, C})

    def test_distribution_is_roughly_uniform(self):
        ai = RandomAI(rng=random.Random(1234))
        ai.init_ai(None, 1)
        game = FakeGame([A, B, C])
        n = 6000
        counts = Counter(ai.select_action(game, None) for _ in range(n))
        self.assertEqual(set(counts), {A, B, C})
        for move in (A, B, C):
            self.assertAlmostEqual(counts[move] / n, 1 / 3, delta=0.03)

    def test_budget_hints_are_ignored(self):
        ai = RandomAI(rng=random.Random(5))
        ai.init_ai(None, 1)
        move = ai.select_action(FakeGame([A]), None, max_seconds=0.0, max_iterations=0, max_depth=0)
        self.assertEqual(move, A)

    def test_empty_move_set_raises(self):
        ai = RandomAI()
        ai.init_ai(None, 1)
        with self.assertRaises(NoLegalMovesError):
            ai.select_action(FakeGame([]), None)

    def test_empty_after_filtering_raises(self):
        ai = RandomAI()
        ai.init_ai(None, 1)
        with self.assertRaises(NoLegalMovesError):
            ai.select_action(FakeGame([B], alternating=False), None)

    def test_report_and_name(self):
        ai = RandomAI(name="Custom Random")
        self.assertEqual(ai.friendly_name, "Custom Random")
        self.assertIn("Custom Random", ai.generate_analysis_report())
        self.assertEqual(RandomAI().friendly_name, "Python Random AI")


class ExtractMovesForMoverTests(unittest.TestCase):
    def test_keeps_order_and_player(self):
        self.assertEqual(extract_moves_for_mover([A, B, C], 1), [A, C])
        self.assertEqual(extract_moves_for_mover([A, B, C], 2), [B])
        self.assertEqual(extract_moves_for_mover([A, B, C], 3), [])


if __name__ == "__main__":
    unittest.main()
