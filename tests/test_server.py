import random
import threading
import unittest
from dataclasses import replace
from unittest.mock import MagicMock

from random_ai_plugin.config import SETTINGS
from random_ai_plugin.mcts import ExplainableMcts
from random_ai_plugin.mcts_factory import mcts_from_config
from random_ai_plugin.random_ai import RandomAI
from random_ai_plugin.registry import AIRegistry
from random_ai_plugin.server import create_app

AI_NAME = "Test Random AI"


class PlayServerTests(unittest.TestCase):
    def setUp(self):
        self.registry = AIRegistry()
        self.registry.register_ai(AI_NAME, lambda: RandomAI(rng=random.Random(42), name=AI_NAME), lambda game: True)
        self.registry.register_ai("Nope", RandomAI, lambda game: False)
        self.app = create_app(self.registry)
        self.client = self.app.test_client()

    def _start(self, **payload):
        payload.setdefault("ai", AI_NAME)
        resp = self.client.post("/api/games", json=payload)
        self.assertEqual(resp.status_code, 201, resp.get_json())
        return resp.get_json()

    def test_list_ais(self):
        data = self.client.get("/api/ais").get_json()
        self.assertEqual(data["game"], "Chess")
        self.assertEqual(
            data["ais"],
            [{"name": AI_NAME, "supports_game": True}, {"name": "Nope", "supports_game": False}],
        )

    def test_human_white_waits_for_human(self):
        data = self._start()
        self.assertIsNone(data["ai_move"])
        self.assertEqual(data["side_to_move"], "white")
        self.assertEqual(data["status"], "running")
        self.assertEqual(data["moves"], [])

    def test_human_black_gets_ai_opening_move(self):
        data = self._start(human_plays="black")
        self.assertTrue(data["ai_move"]["ok"])
        self.assertEqual(data["side_to_move"], "black")
        self.assertEqual(len(data["moves"]), 1)

    def test_human_move_gets_ai_reply(self):
        game_id = self._start()["game_id"]
        resp = self.client.post(f"/api/games/{game_id}/move", json={"move": "e4"})
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["moves"][0], "e2e4")
        self.assertTrue(data["ai_move"]["ok"])
        self.assertEqual(len(data["moves"]), 2)
        self.assertEqual(data["side_to_move"], "white")

        state = self.client.get(f"/api/games/{game_id}").get_json()
        self.assertEqual(state["moves"], data["moves"])

    def test_uci_move_accepted(self):
        game_id = self._start()["game_id"]
        resp = self.client.post(f"/api/games/{game_id}/move", json={"move": "g1f3"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["moves"][0], "g1f3")

    def test_illegal_and_missing_moves_rejected(self):
        game_id = self._start()["game_id"]
        resp = self.client.post(f"/api/games/{game_id}/move", json={"move": "e2e5"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "illegal_move")
        resp = self.client.post(f"/api/games/{game_id}/move", json={})
        self.assertEqual(resp.status_code, 400)

    def test_unknown_missing_and_unsupported_ai(self):
        self.assertEqual(self.client.post("/api/games", json={"ai": "ghost"}).status_code, 404)
        self.assertEqual(self.client.post("/api/games", json={}).status_code, 400)
        self.assertEqual(self.client.post("/api/games", json={"ai": "Nope"}).status_code, 400)

    def test_unknown_game(self):
        self.assertEqual(self.client.get("/api/games/nope").status_code, 404)
        self.assertEqual(self.client.post("/api/games/nope/move", json={"move": "e4"}).status_code, 404)

    def test_report_and_pgn(self):
        game_id = self._start()["game_id"]
        self.client.post(f"/api/games/{game_id}/move", json={"move": "e4"})
        report = self.client.get(f"/api/games/{game_id}/report").get_json()
        self.assertEqual(report["ai"], AI_NAME)
        self.assertIn(AI_NAME, report["reports"]["2"])
        pgn = self.client.get(f"/api/games/{game_id}/pgn").get_data(as_text=True)
        self.assertIn("1. e4", pgn)
        self.assertIn(f'[Black "{AI_NAME}"]', pgn)

    def test_finished_game_ignores_further_moves(self):
        # white to move and mate with Qxf7#
        fen = "r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5Q2/PPPP1PPP/RNB1K1NR w KQkq - 4 4"
        game_id = self._start(fen=fen)["game_id"]
        data = self.client.post(f"/api/games/{game_id}/move", json={"move": "Qxf7#"}).get_json()
        self.assertEqual(data["status"], "finished")
        self.assertEqual(data["winner"], "human")
        self.assertEqual(data["termination_reason"], "checkmate")
        self.assertIsNone(data["ai_move"])
        again = self.client.post(f"/api/games/{game_id}/move", json={"move": "a2a3"}).get_json()
        self.assertEqual(again["moves"], data["moves"])

    def test_cors_headers(self):
        resp = self.client.get("/api/ais")
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    def test_bad_max_seconds_rejected(self):
        for value in ("fast", 0, -1.5, True, None, "nan"):
            resp = self.client.post("/api/games", json={"ai": AI_NAME, "max_seconds": value})
            self.assertEqual(resp.status_code, 400, value)
            self.assertEqual(resp.get_json()["error"], "max_seconds must be a number greater than 0")
        self.assertEqual(self.app.extensions["games"], {})

    def test_numeric_string_max_seconds_accepted(self):
        self._start(max_seconds="0.25")

    def test_non_string_fen_rejected(self):
        for value in (123, ["8/8/8/8/8/8/8/8 w - - 0 1"], {"fen": "x"}):
            resp = self.client.post("/api/games", json={"ai": AI_NAME, "fen": value})
            self.assertEqual(resp.status_code, 400, value)
            self.assertEqual(resp.get_json()["error"], "fen must be a string")
        resp = self.client.post("/api/games", json={"ai": AI_NAME, "fen": "not a fen"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("invalid fen", resp.get_json()["error"])

    def test_non_string_move_rejected(self):
        game_id = self._start()["game_id"]
        resp = self.client.post(f"/api/games/{game_id}/move", json={"move": 123})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "move must be a string")

    def test_non_object_body_rejected(self):
        resp = self.client.post("/api/games", json=["ai", AI_NAME])
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "ai is required")


class StaleGameCleanupTests(unittest.TestCase):
    def setUp(self):
        registry = AIRegistry()
        registry.register_ai(AI_NAME, lambda: RandomAI(rng=random.Random(3), name=AI_NAME), lambda game: True)
        self.app = create_app(registry, settings=replace(SETTINGS, game_ttl_s=60))
        self.client = self.app.test_client()

    def _expire(self):
        game_id = self.client.post("/api/games", json={"ai": AI_NAME}).get_json()["game_id"]
        session = self.app.extensions["games"][game_id]
        session["updated_at"] -= 3600
        return game_id, session

    def test_expired_game_closed_under_session_lock(self):
        game_id, session = self._expire()
        held = []
        session["runner"].close = MagicMock(side_effect=lambda: held.append(session["lock"].locked()))
        self.assertEqual(self.client.get(f"/api/games/{game_id}").status_code, 404)
        self.assertEqual(held, [True])
        self.assertNotIn(game_id, self.app.extensions["games"])

    def test_cleanup_waits_for_in_flight_request(self):
        game_id, session = self._expire()
        close = MagicMock()
        session["runner"].close = close
        session["lock"].acquire()
        try:
            worker = threading.Thread(target=lambda: self.app.test_client().get("/api/games/other"))
            worker.start()
            worker.join(0.5)
            # the game is already out of the table but its runner is still in use
            self.assertNotIn(game_id, self.app.extensions["games"])
            close.assert_not_called()
        finally:
            session["lock"].release()
        worker.join(5)
        self.assertFalse(worker.is_alive())
        close.assert_called_once_with()

    def test_fresh_games_survive_cleanup(self):
        game_id = self.client.post("/api/games", json={"ai": AI_NAME}).get_json()["game_id"]
        self.client.post("/api/games", json={"ai": AI_NAME})
        self.assertEqual(self.client.get(f"/api/games/{game_id}").status_code, 200)


class SearchAIServerTests(unittest.TestCase):
    def test_mcts_reply_and_explanation_report(self):
        registry = AIRegistry()
        registry.register_ai(
            "MCTS",
            lambda: mcts_from_config({"playoutPolicy": "uniform", "maxPlayoutPlies": 10}, rng=random.Random(5), name="MCTS"),
            ExplainableMcts.supports_game,
        )
        client = create_app(registry).test_client()
        data = client.post("/api/games", json={"ai": "MCTS", "human_plays": "black", "max_seconds": 0.05}).get_json()
        self.assertTrue(data["ai_move"]["ok"])
        report = client.get(f"/api/games/{data['game_id']}/report").get_json()["reports"]["1"]
        self.assertTrue(report.startswith("[MCTS] Performed"))
        self.assertIn("Selected move:", report)


if __name__ == "__main__":
    unittest.main()
