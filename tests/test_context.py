import unittest

import chess

from random_ai_plugin.context import BLACK_PLAYER, UNFINISHED, WHITE_PLAYER, Context, color_for_player, player_for_color

FOOLS_MATE_FEN = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


class ContextTests(unittest.TestCase):
    def test_player_ids_follow_colors(self):
        self.assertEqual(player_for_color(chess.WHITE), WHITE_PLAYER)
        self.assertEqual(player_for_color(chess.BLACK), BLACK_PLAYER)
        self.assertEqual(color_for_player(BLACK_PLAYER), chess.BLACK)

    def test_apply_uci_returns_san(self):
        ctx = Context()
        self.assertEqual(ctx.apply_uci("g1f3"), (True, "Nf3"))
        self.assertEqual(ctx.mover, BLACK_PLAYER)
        self.assertEqual(ctx.num_moves, 1)

    def test_apply_uci_rejects_illegal_garbage_and_null_move(self):
        ctx = Context()
        for uci in ("e2e5", "zz", "0000", ""):
            self.assertEqual(ctx.apply_uci(uci), (False, None), uci)
        self.assertEqual(ctx.num_moves, 0)

    def test_copy_is_independent(self):
        ctx = Context()
        ctx.set_headers(white="A", black="B")
        other = ctx.copy()
        other.apply_uci("e2e4")
        other.tags["White"] = "C"
        self.assertEqual(ctx.num_moves, 0)
        self.assertEqual(ctx.headers["White"], "A")

    def test_status_and_termination(self):
        ctx = Context()
        self.assertEqual(ctx.status(), UNFINISHED)
        self.assertIsNone(ctx.termination_reason())
        mated = Context(FOOLS_MATE_FEN)
        self.assertEqual(mated.status(), "0-1")
        self.assertEqual(mated.termination_reason(), "checkmate")

    def test_imposed_result_in_pgn(self):
        ctx = Context()
        ctx.set_headers(white="Human", black="Bot")
        ctx.apply_uci("e2e4")
        ctx.set_result("1/2-1/2", "max_plies")
        pgn = ctx.pgn()
        self.assertEqual(ctx.status(), "1/2-1/2")
        self.assertIn('[Result "1/2-1/2"]', pgn)
        self.assertIn('[White "Human"]', pgn)
        self.assertIn("Termination: max_plies", pgn)
        self.assertIn("1. e4", pgn)


if __name__ == "__main__":
    unittest.main()
