"""
Search-tree node shared by the MCTS agent and its policies.

Each node owns a private copy of the context it stands for and keeps, per player:
- score sums of every simulation that went through it,
- pessimistic/optimistic score bounds in [-1, 1] (solver),
- AMAF statistics for every move played below it,
- proof/disproof numbers when proof-number backpropagation is on.
"""
from __future__ import annotations

import enum
import random
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..context import Context
from ..games import LOSS_SCORE, WIN_SCORE, Move

INFINITE_PROOF = sys.maxsize


class Backprop(enum.IntFlag):
    """What has to be updated after each simulation."""

    NONE = 0
    SCORE_BOUNDS = 1
    AMAF_STATS = 2
    GLOBAL_ACTION_STATS = 4
    GLOBAL_NGRAM_STATS = 8
    PROOF_NUMBERS = 16


def describe_flags(flags: int) -> str:
    names = [flag.name.lower().replace("_", " ") for flag in Backprop if flag and flags & flag]
    return ", ".join(names)


@dataclass
class ActionStats:
    visit_count: int = 0
    score_sums: Dict[int, float] = field(default_factory=dict)

    def add(self, utilities: Dict[int, float]) -> None:
        self.visit_count += 1
        for player, utility in utilities.items():
            self.score_sums[player] = self.score_sums.get(player, 0.0) + utility

    def mean(self, player: int) -> float:
        if self.visit_count == 0:
            return 0.0
        return self.score_sums.get(player, 0.0) / self.visit_count


@dataclass
class SimulationResult:
    context: Context
    utilities: Dict[int, float]


def record_stats(table: Dict, key, utilities: Dict[int, float]) -> None:
    table.setdefault(key, ActionStats()).add(utilities)


class Node:
    def __init__(self, game, context: Context, parent: Optional["Node"] = None,
                 move: Optional[Move] = None, rng: Optional[random.Random] = None):
        self.game = game
        self.context = context
        self.parent = parent
        self.move = move
        self.rng = rng or (parent.rng if parent else random.Random())

        self.player = context.mover
        self.depth_index = context.num_moves
        self.terminal = game.is_over(context)

        players = list(game.players())
        self.visit_count = 0
        self.score_sums = {p: 0.0 for p in players}
        self.pessimistic = {p: LOSS_SCORE for p in players}
        self.optimistic = {p: WIN_SCORE for p in players}
        self.amaf: Dict[Move, ActionStats] = {}
        self.proof_number = -1
        self.disproof_number = -1

        self.children: List[Node] = []
        self.unexpanded: List[Move] = [] if self.terminal else list(game.moves(context))

    # -- state -------------------------------------------------------------
    @property
    def expanded(self) -> bool:
        return not self.unexpanded

    @property
    def branching_factor(self) -> int:
        return len(self.children) + len(self.unexpanded)

    def mean_score(self, player: int) -> float:
        if self.visit_count == 0:
            return 0.0
        return self.score_sums[player] / self.visit_count

    def amaf_stats(self, move: Move) -> ActionStats:
        return self.amaf.get(move) or ActionStats()

    def is_solved(self, player: int) -> bool:
        return self.pessimistic[player] == self.optimistic[player]

    def is_win(self, player: int) -> bool:
        return self.pessimistic[player] == WIN_SCORE

    def is_loss(self, player: int) -> bool:
        return self.optimistic[player] == LOSS_SCORE

    def child_for(self, move: Move) -> Optional["Node"]:
        for child in self.children:
            if child.move == move:
                return child
        return None

    def detach(self) -> None:
        self.parent = None
        self.move = None

    # -- search steps ------------------------------------------------------
    def select(self, policy) -> Optional["Node"]:
        """Child with the highest policy value; ties are broken at random."""
        best: List[Node] = []
        best_value = float("-inf")
        for child in self.children:
            value = policy.value(child)
            if value > best_value or not best:
                best, best_value = [child], value
            elif value == best_value:
                best.append(child)
        return self.rng.choice(best) if best else None

    def expand(self) -> "Node":
        if self.expanded or self.terminal or self.is_solved(self.player):
            return self
        move = self.unexpanded.pop(self.rng.randrange(len(self.unexpanded)))
        context = self.context.copy()
        self.game.apply(context, move, notate=False)
        child = Node(self.game, context, parent=self, move=move)
        self.children.append(child)
        return child

    def simulate(self, playout) -> SimulationResult:
        if self.is_solved(self.player):
            return SimulationResult(self.context, dict(self.pessimistic))
        context = self.context
        if not self.terminal:
            context = context.copy()
            playout.run(self.game, context)
        return SimulationResult(context, self.game.utilities(context))

    def propagate(self, result: SimulationResult, flags: int, proof_player: int = -1) -> None:
        utilities = result.utilities
        if flags & Backprop.SCORE_BOUNDS and self.terminal:
            self._propagate_bounds(utilities)
        if flags & Backprop.AMAF_STATS:
            self._propagate_amaf(result)
        if flags & Backprop.PROOF_NUMBERS:
            self._propagate_proof_numbers(utilities, proof_player)

        node = self
        while node is not None:
            node.visit_count += 1
            for player, utility in utilities.items():
                node.score_sums[player] += utility
            node = node.parent

    def _propagate_bounds(self, utilities: Dict[int, float]) -> None:
        self.pessimistic.update(utilities)
        self.optimistic.update(utilities)

        node = self.parent
        while node is not None:
            for player in node.pessimistic:
                pess = [c.pessimistic[player] for c in node.children]
                opt = [c.optimistic[player] for c in node.children]
                if player == node.player:
                    # the mover picks the best child; unexpanded moves may still win
                    node.pessimistic[player] = max(pess, default=LOSS_SCORE)
                    node.optimistic[player] = max(opt, default=WIN_SCORE) if node.expanded else WIN_SCORE
                else:
                    node.pessimistic[player] = min(pess, default=LOSS_SCORE) if node.expanded else LOSS_SCORE
                    node.optimistic[player] = min(opt, default=WIN_SCORE)
            node = node.parent

    def _propagate_amaf(self, result: SimulationResult) -> None:
        node = self
        played = self.game.history(result.context, start=0)
        while node is not None:
            for move in played[node.depth_index:]:
                record_stats(node.amaf, move, result.utilities)
            node = node.parent

    def _propagate_proof_numbers(self, utilities: Dict[int, float], proof_player: int) -> None:
        if self.terminal:
            if utilities[proof_player] == WIN_SCORE:
                self.proof_number, self.disproof_number = 0, INFINITE_PROOF
            else:
                self.proof_number, self.disproof_number = INFINITE_PROOF, 0
        elif self.player == proof_player:
            self.proof_number, self.disproof_number = 1, max(1, self.branching_factor)
        else:
            self.proof_number, self.disproof_number = max(1, self.branching_factor), 1

        node = self.parent
        while node is not None:
            proofs = [c.proof_number for c in node.children]
            disproofs = [c.disproof_number for c in node.children]
            if node.player == proof_player:
                node.proof_number = min(proofs)
                node.disproof_number = saturating_sum(disproofs)
            else:
                node.proof_number = saturating_sum(proofs)
                node.disproof_number = min(disproofs)
            node = node.parent


def saturating_sum(numbers: List[int]) -> int:
    total = 0
    for n in numbers:
        if n == INFINITE_PROOF:
            return INFINITE_PROOF
        total += n
    return min(total, INFINITE_PROOF)
