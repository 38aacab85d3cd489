"""
RandomAI: picks a uniformly random legal move.

- Useful as a fast, low-difficulty baseline and for smoke-testing the host loop.
- Ignores every search-budget hint; init_ai() only remembers the player id.
- In games that are not strictly alternating, only moves made by its own player are candidates.

"""
from __future__ import annotations
import random
from typing import Optional

from .ai import AI, NoLegalMovesError
from .ai_utils import extract_moves_for_mover
from .games import Move


class RandomAI(AI):
    """Simple AI that picks a uniformly random legal move."""
    friendly_name: str = "Python Random AI"

    def __init__(self, rng: Optional[random.Random] = None, name: Optional[str] = None):
        self.player = -1
        self._rng = rng or random.Random()
        if name:
            self.friendly_name = name

    def init_ai(self, game, player_id: int) -> None:
        self.player = player_id

    def select_action(self, game, context, max_seconds: float = -1.0, max_iterations: int = -1, max_depth: int = -1) -> Move:
        legal_moves = list(game.moves(context))

        if not game.is_alternating_move_game():
            legal_moves = extract_moves_for_mover(legal_moves, self.player)

        if not legal_moves:
            raise NoLegalMovesError(f"{self.friendly_name} has no legal move for player {self.player}")

        move_id = self._rng.randrange(len(legal_moves))
        return legal_moves[move_id]

    def generate_analysis_report(self) -> str:
        return f"{self.friendly_name}: uniform random choice among legal moves"
