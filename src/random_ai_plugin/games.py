"""
Game definitions exposed to agents.

- Move: an engine move attributed to the player who makes it.
- ChessGame: standard chess backed by python-chess; move generation and legality stay in the library.

The random AI only relies on is_alternating_move_game() and moves(context), so any
object providing those two can be handed to it (including simultaneous-move games).
Search agents additionally use apply(), is_over(), utilities() and history().
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List

import chess

from .context import Context, player_for_color

WIN_SCORE = 1.0
LOSS_SCORE = -1.0
DRAW_SCORE = 0.0


@dataclass(frozen=True)
class Move:
    mover: int
    action: chess.Move

    def uci(self) -> str:
        return self.action.uci()

    def __str__(self) -> str:
        return f"P{self.mover}:{self.uci()}"


class ChessGame:
    name: str = "Chess"
    num_players: int = 2

    def players(self) -> range:
        return range(1, self.num_players + 1)

    def new_context(self, starting_fen: str | None = None) -> Context:
        return Context(starting_fen=starting_fen)

    def is_alternating_move_game(self) -> bool:
        return True

    def is_stochastic_game(self) -> bool:
        return False

    def has_hidden_information(self) -> bool:
        return False

    def moves(self, context: Context) -> List[Move]:
        """Full legal-move set for the player to move."""
        mover = context.mover
        return [Move(mover, mv) for mv in context.board.legal_moves]

    def apply(self, context: Context, move: Move, notate: bool = True):
        return context.play(move.action, notate=notate)

    def is_over(self, context: Context) -> bool:
        return context.board.is_game_over()

    def utilities(self, context: Context) -> Dict[int, float]:
        """Per-player score of a position: +1 win, -1 loss, 0 for draws and unfinished games."""
        winner = context.board.outcome().winner if self.is_over(context) else None
        if winner is None:
            return {p: DRAW_SCORE for p in self.players()}
        return {p: WIN_SCORE if player_for_color(winner) == p else LOSS_SCORE for p in self.players()}

    def history(self, context: Context, start: int = 0) -> List[Move]:
        """Moves played from ply ``start`` onwards, each attributed to its mover."""
        stack = context.board.move_stack
        # colour that made the first move on the stack
        first = context.board.turn if len(stack) % 2 == 0 else not context.board.turn
        return [
            Move(player_for_color(first if i % 2 == 0 else not first), stack[i])
            for i in range(max(0, start), len(stack))
        ]

    def __repr__(self) -> str:
        return f"<Game {self.name}>"
