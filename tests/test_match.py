import random
import unittest

import chess

from random_ai_plugin.ai import AI, NoLegalMovesError
from random_ai_plugin.context import BLACK_PLAYER, WHITE_PLAYER
from random_ai_plugin.games import Move
from random_ai_plugin.match import MatchConfig, MatchRunner
from random_ai_plugin.random_ai import RandomAI

FOOLS_MATE_FEN = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


class IllegalAI(AI):
    friendly_name = "Illegal"

    def select_action(self, game, context, max_seconds=-1.0, max_iterations=-1, max_depth=-1):
        return Move(context.mover, chess.Move.from_uci("e2e5"))


class StuckAI(AI):
    friendly_name = "Stuck"

    def select_action(self, game, context, max_seconds=-1.0, max_iterations=-1, max_depth=-1):
        raise NoLegalMovesError("nothing to play")


class RecordingAI(RandomAI):
    def __init__(self):
        super().__init__(rng=random.Random(0), name="Recorder")
        self.calls = []

    def select_action(self, game, context, max_seconds=-1.0, max_iterations=-1, max_depth=-1):
        self.calls.append((context, max_seconds, max_iterations, max_depth))
        return super().select_action(game, context, max_seconds, max_iterations, max_depth)


class MatchRunnerTests(unittest.TestCase):
    def test_random_vs_random_plays_legal_moves(self):
        runner = MatchRunner(
            {WHITE_PLAYER: RandomAI(rng=random.Random(1)), BLACK_PLAYER: RandomAI(rng=random.Random(2))},
            cfg=MatchConfig(max_plies=60),
        )
        result = runner.play()
        self.assertIn(result, {"1-0", "0-1", "1/2-1/2"})
        self.assertLessEqual(len(runner.records), 60)
        self.assertTrue(all(r["ok"] for r in runner.records))
        self.assertIsNotNone(runner.termination_reason)

        history = runner.export_structured_history()
        board = chess.Board(history["initial_fen"])
        for entry in history["moves"]:
            mv = chess.Move.from_uci(entry["uci"])
            self.assertIn(mv, board.legal_moves)
            board.push(mv)
        self.assertEqual(board.fen(), runner.ctx.board.fen())

    def test_init_ai_assigns_seats(self):
        white, black = RandomAI(), RandomAI()
        MatchRunner({WHITE_PLAYER: white, BLACK_PLAYER: black})
        self.assertEqual(white.player, WHITE_PLAYER)
        self.assertEqual(black.player, BLACK_PLAYER)

    def test_ai_receives_copy_and_budget_hints(self):
        ai = RecordingAI()
        runner = MatchRunner({WHITE_PLAYER: ai}, cfg=MatchConfig(max_seconds=0.5, max_iterations=10, max_depth=3))
        rec = runner.step_ai()
        self.assertTrue(rec["ok"])
        ctx, secs, iters, depth = ai.calls[0]
        self.assertIsNot(ctx, runner.ctx)
        self.assertEqual((secs, iters, depth), (0.5, 10, 3))
        self.assertEqual(len(runner.ctx.board.move_stack), 1)
        self.assertFalse(runner.needs_ai_turn())

    def test_finished_position_ends_immediately(self):
        runner = MatchRunner({WHITE_PLAYER: RandomAI(), BLACK_PLAYER: RandomAI()}, starting_fen=FOOLS_MATE_FEN)
        self.assertEqual(runner.play(), "0-1")
        self.assertEqual(runner.records, [])

    def test_mating_move_sets_termination_reason(self):
        # black to move, Qh4# is the mate
        fen = "rnbqkbnr/pppp1ppp/8/4p3/6P1/5P2/PPPPP2P/RNBQKBNR b KQkq - 0 2"

        class MateAI(AI):
            friendly_name = "Mate"

            def select_action(self, game, context, max_seconds=-1.0, max_iterations=-1, max_depth=-1):
                return Move(context.mover, chess.Move.from_uci("d8h4"))

        runner = MatchRunner({BLACK_PLAYER: MateAI()}, starting_fen=fen)
        runner.step_ai()
        self.assertEqual(runner.termination_reason, "checkmate")
        self.assertEqual(runner.ctx.status(), "0-1")
        self.assertIn("Termination: checkmate", runner.ctx.pgn())

    def test_illegal_ai_move_forfeits(self):
        runner = MatchRunner({WHITE_PLAYER: IllegalAI(), BLACK_PLAYER: RandomAI()})
        self.assertEqual(runner.play(), "0-1")
        self.assertEqual(runner.termination_reason, "illegal_ai_move")
        self.assertEqual(runner.metrics()["illegal_ai_moves"], 1)

    def test_failing_ai_forfeits(self):
        runner = MatchRunner({WHITE_PLAYER: RandomAI(rng=random.Random(4)), BLACK_PLAYER: StuckAI()})
        with self.assertLogs("MatchRunner", level="ERROR"):
            result = runner.play()
        self.assertEqual(result, "1-0")
        self.assertEqual(runner.termination_reason, "ai_error:NoLegalMovesError")

    def test_max_plies_caps_match(self):
        runner = MatchRunner(
            {WHITE_PLAYER: RandomAI(rng=random.Random(9)), BLACK_PLAYER: RandomAI(rng=random.Random(10))},
            cfg=MatchConfig(max_plies=4),
        )
        self.assertEqual(runner.play(), "1/2-1/2")
        self.assertEqual(runner.termination_reason, "max_plies")
        self.assertEqual(runner.metrics()["plies"], 4)

    def test_play_requires_every_mover_seated(self):
        runner = MatchRunner({BLACK_PLAYER: RandomAI()})
        with self.assertRaises(RuntimeError):
            runner.play()

    def test_external_move_for_unseated_player(self):
        runner = MatchRunner({BLACK_PLAYER: RandomAI(rng=random.Random(1))})
        ok, san = runner.apply_external_uci("e2e4")
        self.assertTrue(ok)
        self.assertEqual(san, "e4")
        self.assertEqual(runner.records[-1]["player"], WHITE_PLAYER)
        self.assertTrue(runner.needs_ai_turn())
        self.assertEqual(runner.apply_external_uci("e2e4"), (False, None))


if __name__ == "__main__":
    unittest.main()
