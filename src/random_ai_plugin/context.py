"""
Context: one match's position plus the bookkeeping the host keeps about it.

Agents get their own copy() and may push moves on it freely; the live
context is only advanced by the match runner. A result can be imposed
(forfeits, ply cap) and is then reported instead of the board outcome.
"""
from __future__ import annotations

import datetime
from typing import Optional

import chess
import chess.pgn

WHITE_PLAYER = 1
BLACK_PLAYER = 2

UNFINISHED = "*"


def player_for_color(color: chess.Color) -> int:
    return WHITE_PLAYER if color == chess.WHITE else BLACK_PLAYER


def color_for_player(player_id: int) -> chess.Color:
    if player_id not in (WHITE_PLAYER, BLACK_PLAYER):
        raise ValueError(f"Unknown player id {player_id}")
    return chess.WHITE if player_id == WHITE_PLAYER else chess.BLACK


class Context:
    def __init__(self, starting_fen: str | None = None, board: chess.Board | None = None):
        if board is None:
            board = chess.Board(starting_fen) if starting_fen else chess.Board()
        self.board = board
        self.tags: dict[str, str] = {}
        self.imposed_result: Optional[str] = None
        self.imposed_reason: Optional[str] = None

    @property
    def mover(self) -> int:
        return player_for_color(self.board.turn)

    @property
    def num_moves(self) -> int:
        """Plies played since the starting position."""
        return len(self.board.move_stack)

    def copy(self) -> "Context":
        other = Context(board=self.board.copy())
        other.tags = dict(self.tags)
        other.imposed_result = self.imposed_result
        other.imposed_reason = self.imposed_reason
        return other

    def set_headers(self, white: str = "?", black: str = "?", event: str = "Random AI Match", **extra: str) -> None:
        self.tags.update(Event=event, Date=datetime.date.today().strftime("%Y.%m.%d"), White=white, Black=black)
        self.tags.update(extra)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self.tags)

    def set_result(self, result: str, termination_reason: Optional[str] = None) -> None:
        self.imposed_result = result
        self.imposed_reason = termination_reason or self.imposed_reason

    def play(self, action: chess.Move, notate: bool = True) -> Optional[str]:
        """Push a move known to be legal; returns its SAN unless notate is False."""
        san = self.board.san(action) if notate else None
        self.board.push(action)
        return san

    def apply_uci(self, uci: str) -> tuple[bool, str | None]:
        try:
            action = self.board.parse_uci(uci)
        except ValueError:
            return False, None
        if not action:  # "0000" parses to the null move
            return False, None
        return True, self.play(action)

    def status(self) -> str:
        if self.imposed_result:
            return self.imposed_result
        outcome = self.board.outcome()
        return outcome.result() if outcome else UNFINISHED

    def termination_reason(self) -> Optional[str]:
        """Lower-case name of the rule that ended the game, or None while it runs."""
        outcome = self.board.outcome()
        return outcome.termination.name.lower() if outcome else None

    def pgn(self) -> str:
        game = chess.pgn.Game.from_board(self.board)
        game.headers.update(self.tags)
        game.headers["Result"] = self.status()
        if self.imposed_reason:
            game.comment = f"Termination: {self.imposed_reason}"
        return str(game)
