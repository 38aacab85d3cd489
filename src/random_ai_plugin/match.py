"""
Single-match runner and config.

- MatchConfig: knobs for max plies, search-budget hints handed to AIs, and console logging.
- MatchRunner: orchestrates one match between AIs seated by player id.
  - Calls init_ai() once per seat, then select_action() whenever a seated player is to move.
  - Validates each returned move against the legal set and applies it through the Context.
  - Records per-ply history and exposes step_ai()/play() plus metrics and structured history.

Unseated players (e.g. a human in the play server) move through the Context directly.
"""
from __future__ import annotations
import time, logging, statistics
from dataclasses import dataclass
from typing import Dict, Optional

import chess

from .ai import AI
from .context import WHITE_PLAYER, BLACK_PLAYER
from .games import ChessGame


@dataclass
class MatchConfig:
    max_plies: int = 400
    max_seconds: float = 1.0
    max_iterations: int = -1
    max_depth: int = -1
    # Console logging of moves as they happen
    game_log: bool = False


class MatchRunner:
    def __init__(self, ais: Dict[int, AI], game=None, cfg: MatchConfig | None = None, starting_fen: str | None = None):
        self.log = logging.getLogger("MatchRunner")
        self.game = game or ChessGame()
        self.ais = dict(ais)
        self.cfg = cfg or MatchConfig()
        self.ctx = self.game.new_context(starting_fen)
        self.ctx.set_headers(white=self._seat_name(WHITE_PLAYER), black=self._seat_name(BLACK_PLAYER))
        self.records: list[dict] = []  # list of dicts per ply
        self.termination_reason: str | None = None
        self.start_ts = time.time()
        for player_id, ai in self.ais.items():
            ai.init_ai(self.game, player_id)

    def _seat_name(self, player_id: int) -> str:
        ai = self.ais.get(player_id)
        return ai.friendly_name if ai else "Human"

    # --------------- Turn handling ---------------
    def is_finished(self) -> bool:
        return self.termination_reason is not None or self.game.is_over(self.ctx)

    def needs_ai_turn(self) -> bool:
        return not self.is_finished() and self.ctx.mover in self.ais

    def step_ai(self) -> dict:
        """Ask the AI seated for the player to move for one move and apply it.

        Returns the ply record. A failing or illegal AI move ends the match with
        a loss for that player.
        """
        player = self.ctx.mover
        ai = self.ais[player]
        legal = self.game.moves(self.ctx)
        t0 = time.time()
        try:
            move = ai.select_action(
                self.game,
                self.ctx.copy(),
                self.cfg.max_seconds,
                self.cfg.max_iterations,
                self.cfg.max_depth,
            )
        except Exception as exc:
            ms = int((time.time() - t0) * 1000)
            self.log.exception("AI %s failed to select a move at ply %d", ai.friendly_name, len(self.records) + 1)
            rec = {"actor": "AI", "player": player, "ai": ai.friendly_name, "uci": None, "san": None, "ok": False, "ms": ms, "error": str(exc)}
            self.records.append(rec)
            self._forfeit(player, f"ai_error:{type(exc).__name__}")
            return rec
        ms = int((time.time() - t0) * 1000)
        uci = move.uci() if move is not None else None
        ok = move is not None and move in legal
        san = self.game.apply(self.ctx, move) if ok else None
        rec = {"actor": "AI", "player": player, "ai": ai.friendly_name, "uci": uci, "san": san, "ok": ok, "ms": ms}
        self.records.append(rec)
        if self.cfg.game_log:
            self.log.info("[ply %d] P%d %s: move=%s (%s) time_ms=%d", len(self.records), player, ai.friendly_name, san or uci, uci, ms)
        else:
            self.log.debug("Ply %d P%d move %s ok=%s san=%s ms=%d", len(self.records), player, uci, ok, san, ms)
        if not ok:
            self.log.error("Terminating due to illegal AI move at ply %d", len(self.records))
            self._forfeit(player, "illegal_ai_move")
        else:
            self.finalize_if_terminated()
        return rec

    def apply_external_uci(self, uci: str, actor: str = "human") -> tuple[bool, str | None]:
        """Apply a move for an unseated player. Returns (ok, san)."""
        player = self.ctx.mover
        ok, san = self.ctx.apply_uci(uci)
        if ok:
            self.records.append({"actor": actor, "player": player, "uci": uci, "san": san, "ok": True, "ms": 0})
            self.finalize_if_terminated()
        return ok, san

    def _forfeit(self, player: int, reason: str) -> None:
        result = "0-1" if player == WHITE_PLAYER else "1-0"
        self.termination_reason = reason
        self.ctx.set_result(result, reason)

    def finalize_if_terminated(self) -> None:
        if self.termination_reason is None and self.game.is_over(self.ctx):
            self.termination_reason = self.ctx.termination_reason() or "normal_game_end"
            self.ctx.set_result(self.ctx.board.result(), self.termination_reason)

    def play(self) -> str:
        """Run until the game ends, an AI fails, or max_plies is reached. Returns the PGN result."""
        if not self.ais:
            raise ValueError("At least one AI must be seated to play a match")
        self.finalize_if_terminated()
        while not self.is_finished():
            if len(self.records) >= self.cfg.max_plies:
                self.termination_reason = "max_plies"
                self.ctx.set_result("1/2-1/2", self.termination_reason)
                break
            if not self.needs_ai_turn():
                raise RuntimeError(f"Player {self.ctx.mover} has no AI seated; play() needs every mover seated")
            self.step_ai()
        result = self.ctx.status()
        self.log.info("Match finished result=%s reason=%s plies=%d", result, self.termination_reason, len(self.records))
        return result

    # --------------- Reporting ---------------
    def metrics(self) -> dict:
        times = [r["ms"] for r in self.records if r.get("actor") == "AI" and r.get("ok")]
        return {
            "plies": len(self.records),
            "ai_moves": len(times),
            "illegal_ai_moves": sum(1 for r in self.records if r.get("actor") == "AI" and not r.get("ok")),
            "avg_ai_ms": statistics.mean(times) if times else 0.0,
            "max_ai_ms": max(times) if times else 0,
            "result": self.ctx.status(),
            "termination_reason": self.termination_reason,
            "duration_s": round(time.time() - self.start_ts, 3),
        }

    def export_structured_history(self) -> dict:
        """Return a structured representation of the match suitable for visualization.
        Includes headers, result, termination reason, and per-ply entries with SAN, UCI, FENs.
        """
        board = self.ctx.board.root()
        initial_fen = board.fen()
        moves = []
        for rec in self.records:
            uci = rec.get("uci")
            if not rec.get("ok") or not uci:
                continue
            board.push(chess.Move.from_uci(uci))
            moves.append({
                "ply": len(moves) + 1,
                "player": rec.get("player"),
                "actor": rec.get("ai") or rec.get("actor"),
                "uci": uci,
                "san": rec.get("san"),
                "fen": board.fen(),
            })
        return {
            "headers": self.ctx.headers,
            "initial_fen": initial_fen,
            "result": self.ctx.status(),
            "termination_reason": self.termination_reason,
            "players": {str(pid): ai.friendly_name for pid, ai in self.ais.items()},
            "moves": moves,
        }

    def close(self) -> None:
        for ai in self.ais.values():
            try:
                ai.close()
            except Exception:
                self.log.exception("Failed closing AI %s", ai.friendly_name)

    def last_record(self) -> Optional[dict]:
        return self.records[-1] if self.records else None
