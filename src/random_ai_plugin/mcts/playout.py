"""
Playout policies: finish a copied context so the search can score it.

A playout stops when the game ends or after ``max_plies`` moves; a cut-off
playout scores as a draw. MAST and NST are epsilon-greedy over statistics
the agent collects across all simulations (see ExplainableMcts).
"""
from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

from ..context import Context
from ..games import Move
from .node import ActionStats, Backprop

DEFAULT_PLAYOUT_PLIES = 200
UNSEEN_SCORE = -1.0


class PlayoutPolicy:
    name = "playout"
    flags = Backprop.NONE
    max_ngram_length = 0

    def __init__(self, max_plies: int = DEFAULT_PLAYOUT_PLIES, rng: Optional[random.Random] = None):
        self.max_plies = max_plies
        self.rng = rng or random.Random()

    def run(self, game, context: Context) -> int:
        """Play moves on ``context`` until the game ends or the ply cap is hit. Returns plies played."""
        plies = 0
        while not game.is_over(context) and (self.max_plies < 0 or plies < self.max_plies):
            moves = game.moves(context)
            game.apply(context, self.choose(game, context, moves), notate=False)
            plies += 1
        return plies

    def choose(self, game, context: Context, moves: List[Move]) -> Move:
        return self.rng.choice(moves)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class UniformPlayout(PlayoutPolicy):
    name = "Uniform"


class EpsilonGreedyPlayout(PlayoutPolicy):
    """Play a uniform random move with probability epsilon, the greedy choice otherwise."""

    def __init__(self, epsilon: float = 0.1, **kwargs):
        super().__init__(**kwargs)
        self.epsilon = epsilon

    def choose(self, game, context: Context, moves: List[Move]) -> Move:
        if self.rng.random() < self.epsilon:
            return self.rng.choice(moves)
        return self.greedy(game, context, moves)

    def greedy(self, game, context: Context, moves: List[Move]) -> Move:
        raise NotImplementedError

    def _argmax(self, moves: Sequence[Move], scores: Sequence[float]) -> Move:
        best = max(scores)
        return self.rng.choice([m for m, s in zip(moves, scores) if s == best])


class MastPlayout(EpsilonGreedyPlayout):
    """Move-Average Sampling: prefer moves with the best average result anywhere in the search."""

    flags = Backprop.GLOBAL_ACTION_STATS

    def __init__(self, epsilon: float = 0.1, **kwargs):
        super().__init__(epsilon=epsilon, **kwargs)
        self.name = f"MAST (epsilon-greedy, epsilon={epsilon:g})"
        self.action_stats: Dict[Move, ActionStats] = {}

    def greedy(self, game, context: Context, moves: List[Move]) -> Move:
        scores = []
        for move in moves:
            stats = self.action_stats.get(move)
            scores.append(stats.mean(move.mover) if stats else UNSEEN_SCORE)
        return self._argmax(moves, scores)


class NstPlayout(EpsilonGreedyPlayout):
    """N-gram Selection Technique: average the scores of every known n-gram ending in the move."""

    flags = Backprop.GLOBAL_NGRAM_STATS

    def __init__(self, max_ngram_length: int = 3, epsilon: float = 0.1, **kwargs):
        super().__init__(epsilon=epsilon, **kwargs)
        self.max_ngram_length = max_ngram_length
        self.name = f"NST with max N-gram length: {max_ngram_length} (epsilon-greedy, epsilon={epsilon:g})"
        self.ngram_stats: Dict[Tuple[Move, ...], ActionStats] = {}

    def greedy(self, game, context: Context, moves: List[Move]) -> Move:
        previous = game.history(context, start=context.num_moves - (self.max_ngram_length - 1))
        return self._argmax(moves, [self.ngram_score(previous, move) for move in moves])

    def ngram_score(self, previous: List[Move], move: Move) -> float:
        total, count = 0.0, 0
        for n in range(1, self.max_ngram_length + 1):
            if n - 1 > len(previous):
                break
            key = tuple(previous[len(previous) - (n - 1):]) + (move,) if n > 1 else (move,)
            stats = self.ngram_stats.get(key)
            if stats is None:
                if n == 1:
                    return UNSEEN_SCORE
                break
            total += stats.mean(move.mover)
            count += 1
        return total / count
