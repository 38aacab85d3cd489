"""
Minimal Flask play server: the host application that registered AIs plug into.

Endpoints:
- GET  /api/ais                    -> registered AIs and whether each supports the hosted game
- POST /api/games                  -> start a human vs AI game (AI moves first if the human plays black)
- GET  /api/games/<game_id>        -> current state of a game
- POST /api/games/<game_id>/move   -> submit a human move (SAN or UCI) and receive the AI reply
- GET  /api/games/<game_id>/report -> the AI's analysis report
- GET  /api/games/<game_id>/pgn    -> PGN of the game so far

Games live in memory only and are dropped after SETTINGS.game_ttl_s of inactivity.
"""
from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from typing import Dict, Optional

import chess
from flask import Flask, jsonify, request

from .config import SETTINGS, Settings
from .context import BLACK_PLAYER, WHITE_PLAYER
from .games import ChessGame
from .match import MatchConfig, MatchRunner
from .registry import AIRegistry

log = logging.getLogger("server")


def _side_name(player_id: int) -> str:
    return "white" if player_id == WHITE_PLAYER else "black"


def _winner_label_from_result(result: str, human_side: str) -> Optional[str]:
    if result in ("1/2-1/2", "draw"):
        return "draw"
    if result == "1-0":
        color = "white"
    elif result == "0-1":
        color = "black"
    else:
        return None
    return "human" if color == human_side else "ai"


def _parse_human_move(board: chess.Board, raw_move: str) -> Optional[chess.Move]:
    """Accept a move in UCI or SAN; return None unless it is legal."""
    raw_move = (raw_move or "").strip()
    if not raw_move:
        return None
    try:
        candidate = chess.Move.from_uci(raw_move)
        if candidate in board.legal_moves:
            return candidate
    except ValueError:
        pass
    try:
        return board.parse_san(raw_move)
    except ValueError:
        return None


def _parse_max_seconds(raw) -> Optional[float]:
    """Positive finite float, or None when the value cannot be used as a time budget."""
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) and value > 0 else None


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _serialize_session(session: dict, ai_move: Optional[dict] = None) -> dict:
    runner: MatchRunner = session["runner"]
    finished = runner.is_finished()
    result = runner.ctx.status()
    return {
        "game_id": session["id"],
        "ai": session["ai_name"],
        "human_side": session["human_side"],
        "status": "finished" if finished else "running",
        "ai_move": ai_move,
        "current_fen": runner.ctx.board.fen(),
        "side_to_move": _side_name(runner.ctx.mover),
        "result": result,
        "winner": _winner_label_from_result(result, session["human_side"]) if finished else None,
        "termination_reason": runner.termination_reason,
        "moves": [r.get("uci") for r in runner.records if r.get("ok")],
    }


def create_app(registry: AIRegistry, game=None, settings: Settings = SETTINGS) -> Flask:
    """Build the play server around an explicit registry."""
    app = Flask(__name__)
    hosted_game = game or ChessGame()
    games: Dict[str, dict] = {}
    games_lock = threading.Lock()

    app.extensions["ai_registry"] = registry
    app.extensions["games"] = games

    def _cleanup_stale_games(max_age_s: int = settings.game_ttl_s):
        now = time.time()
        with games_lock:
            expired = [gid for gid, sess in games.items() if now - sess.get("updated_at", now) > max_age_s]
            sessions = [games.pop(gid) for gid in expired]
        # close outside games_lock; a request still holding the session finishes first
        for session in sessions:
            with session["lock"]:
                session["runner"].close()

    def _get_session(game_id: str) -> Optional[dict]:
        _cleanup_stale_games()
        with games_lock:
            return games.get(game_id)

    def _play_ai_turn(session: dict) -> Optional[dict]:
        runner: MatchRunner = session["runner"]
        if not runner.needs_ai_turn():
            return None
        rec = runner.step_ai()
        session["updated_at"] = time.time()
        return {"uci": rec.get("uci"), "san": rec.get("san"), "ok": rec.get("ok"), "error": rec.get("error")}

    @app.route("/api/ais", methods=["GET"])
    def list_ais():
        supported = set(registry.supported_names(hosted_game))
        return jsonify({
            "game": getattr(hosted_game, "name", None),
            "ais": [{"name": name, "supports_game": name in supported} for name in registry.names()],
        })

    @app.route("/api/games", methods=["POST"])
    def create_game():
        _cleanup_stale_games()
        data = _json_body()
        ai_name = data.get("ai")
        if not ai_name:
            return jsonify({"error": "ai is required"}), 400
        if ai_name not in registry:
            return jsonify({"error": f"unknown ai '{ai_name}'"}), 404
        if not registry.entry(ai_name).supports(hosted_game):
            return jsonify({"error": f"ai '{ai_name}' does not support {getattr(hosted_game, 'name', 'this game')}"}), 400
        human_side = "black" if str(data.get("human_plays", "white")).lower() == "black" else "white"
        ai_player = WHITE_PLAYER if human_side == "black" else BLACK_PLAYER
        max_seconds = _parse_max_seconds(data.get("max_seconds", settings.max_seconds))
        if max_seconds is None:
            return jsonify({"error": "max_seconds must be a number greater than 0"}), 400
        fen = data.get("fen")
        if fen is not None and not isinstance(fen, str):
            return jsonify({"error": "fen must be a string"}), 400
        try:
            ai = registry.create(ai_name)
        except Exception as exc:  # noqa: BLE001
            log.exception("Failed to create AI %s", ai_name)
            return jsonify({"error": f"failed to create ai '{ai_name}': {exc}"}), 500
        cfg = MatchConfig(max_seconds=max_seconds, max_plies=settings.max_plies)
        try:
            runner = MatchRunner({ai_player: ai}, game=hosted_game, cfg=cfg, starting_fen=fen)
        except ValueError as exc:
            ai.close()
            return jsonify({"error": f"invalid fen: {exc}"}), 400
        game_id = f"game_{int(time.time())}_{uuid.uuid4().hex[:6]}"
        session = {
            "id": game_id,
            "runner": runner,
            "ai_name": ai_name,
            "human_side": human_side,
            "created_at": time.time(),
            "updated_at": time.time(),
            "lock": threading.Lock(),
        }
        with session["lock"]:
            ai_move = _play_ai_turn(session)
        with games_lock:
            games[game_id] = session
        log.info("Started game %s: human=%s vs %s", game_id, human_side, ai_name)
        return jsonify(_serialize_session(session, ai_move=ai_move)), 201

    @app.route("/api/games/<game_id>", methods=["GET"])
    def game_state(game_id: str):
        session = _get_session(game_id)
        if not session:
            return jsonify({"error": "not found"}), 404
        with session["lock"]:
            return jsonify(_serialize_session(session))

    @app.route("/api/games/<game_id>/move", methods=["POST"])
    def human_move(game_id: str):
        session = _get_session(game_id)
        if not session:
            return jsonify({"error": "not found"}), 404
        data = _json_body()
        raw_move = data.get("move")
        if raw_move is None:
            return jsonify({"error": "move is required"}), 400
        if not isinstance(raw_move, str):
            return jsonify({"error": "move must be a string"}), 400

        with session["lock"]:
            runner: MatchRunner = session["runner"]
            if runner.is_finished():
                return jsonify(_serialize_session(session))
            if runner.needs_ai_turn():
                return jsonify({"error": "not_human_turn", "side_to_move": _side_name(runner.ctx.mover)}), 400
            mv = _parse_human_move(runner.ctx.board, raw_move)
            if mv is None:
                return jsonify({"error": "illegal_move"}), 400
            runner.apply_external_uci(mv.uci())
            session["updated_at"] = time.time()
            ai_move = _play_ai_turn(session)
            return jsonify(_serialize_session(session, ai_move=ai_move))

    @app.route("/api/games/<game_id>/report", methods=["GET"])
    def ai_report(game_id: str):
        session = _get_session(game_id)
        if not session:
            return jsonify({"error": "not found"}), 404
        with session["lock"]:
            reports = {str(pid): ai.generate_analysis_report() for pid, ai in session["runner"].ais.items()}
        return jsonify({"game_id": game_id, "ai": session["ai_name"], "reports": reports})

    @app.route("/api/games/<game_id>/pgn", methods=["GET"])
    def game_pgn(game_id: str):
        session = _get_session(game_id)
        if not session:
            return jsonify({"error": "not found"}), 404
        with session["lock"]:
            return app.response_class(session["runner"].ctx.pgn(), mimetype="application/x-chess-pgn")

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Cache-Control"] = "no-store, max-age=0"
        return response

    @app.route("/api/<path:path>", methods=["OPTIONS"])
    def cors_preflight(path: str):
        return app.make_response(("", 204))

    return app


def start_app(registry: AIRegistry, host: str | None = None, port: int | None = None, settings: Settings = SETTINGS) -> None:
    """Application entry point: serve the play server until the process exits."""
    app = create_app(registry, settings=settings)
    host = host or settings.host
    port = port or settings.port
    log.info("Serving %d registered AI(s) on http://%s:%d", len(registry), host, port)
    app.run(host=host, port=port)
