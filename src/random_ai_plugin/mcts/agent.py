"""
ExplainableMcts: Monte Carlo Tree Search that can say why it picked a move.

Each iteration: descend with the selection policy -> expand one move -> play
it out -> backpropagate (score sums always; score bounds, AMAF, proof numbers
and global MAST/NST tables when the configured policies need them).

The tree survives between turns: the next call walks the old root down by the
moves played since and keeps that subtree. init_ai() starts afresh.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Dict, Optional, Tuple

from ..ai import AI, NoLegalMovesError
from ..context import Context
from ..games import Move
from .explanations import ExplanationGenerator
from .node import ActionStats, Backprop, Node, SimulationResult, describe_flags, record_stats
from .playout import PlayoutPolicy, UniformPlayout
from .selection import ProvenWinFinal, ScoreBounded, ScoreBoundedFinal, SelectionPolicy, UCB1, MostVisited

# used when the host gives neither a time nor an iteration budget
DEFAULT_MAX_ITERATIONS = 1000


class ExplainableMcts(AI):
    friendly_name = "Explainable MCTS"

    def __init__(self, selection: SelectionPolicy | None = None, final_selection: SelectionPolicy | None = None,
                 playout: PlayoutPolicy | None = None, use_score_bounds: bool = False, use_pns: bool = False,
                 rng: Optional[random.Random] = None, name: str | None = None):
        self.log = logging.getLogger("ExplainableMcts")
        if name:
            self.friendly_name = name
        self.rng = rng or random.Random()

        selection = selection or UCB1()
        final_selection = final_selection or MostVisited()
        if use_score_bounds:
            selection = ScoreBounded(selection)
            final_selection = ScoreBoundedFinal(final_selection)
        if use_pns:
            final_selection = ProvenWinFinal(final_selection)
        self.selection = selection
        self.final_selection = final_selection
        self.playout = playout or UniformPlayout(rng=self.rng)
        self.flags = Backprop(self.selection.flags | self.final_selection.flags | self.playout.flags)

        # tables shared with MAST/NST playouts; otherwise filled only for reporting
        self.action_stats: Dict[Move, ActionStats] = getattr(self.playout, "action_stats", {})
        self.ngram_stats: Dict[Tuple[Move, ...], ActionStats] = getattr(self.playout, "ngram_stats", {})
        self.max_ngram_length = self.playout.max_ngram_length

        self.player = -1
        self.game = None
        self.root: Optional[Node] = None
        self.last_history_size = 0
        self.last_iterations = 0
        self.last_value = 0.0
        self.last_selected: Optional[Node] = None
        self.analysis_report = ""

        self.log.info(
            "[%s] selection policy: %s; final move selection policy: %s; playout policy: %s; backpropagation flags: {%s}",
            self.friendly_name, self.selection.name, self.final_selection.name, self.playout.name,
            describe_flags(self.flags),
        )

    # -- lifecycle ---------------------------------------------------------
    def init_ai(self, game, player_id: int) -> None:
        self.game = game
        self.player = player_id
        self._reset()

    def close(self) -> None:
        self.player = -1
        self._reset()

    def _reset(self) -> None:
        self.root = None
        self.last_history_size = 0
        self.last_iterations = 0
        self.last_value = 0.0
        self.last_selected = None
        self.action_stats.clear()
        self.ngram_stats.clear()

    @staticmethod
    def supports_game(game) -> bool:
        return not game.is_stochastic_game() and game.is_alternating_move_game()

    # -- decisions ---------------------------------------------------------
    def select_action(self, game, context: Context, max_seconds: float = -1.0,
                      max_iterations: int = -1, max_depth: int = -1) -> Move:
        self.game = game
        if self.player < 0:
            self.player = context.mover
        if game.is_over(context):
            raise NoLegalMovesError(f"{self.friendly_name}: the game is already over")

        deadline = time.monotonic() + max_seconds if max_seconds > 0 else None
        if max_iterations >= 0:
            budget = max_iterations
        else:
            budget = None if deadline else DEFAULT_MAX_ITERATIONS

        root = self._init_root(game, context)
        iterations = 0
        while not root.children or (
            (budget is None or iterations < budget)
            and (deadline is None or time.monotonic() < deadline)
            and not root.is_solved(self.player)
        ):
            self._iterate(root)
            iterations += 1

        selected = root.select(self.final_selection)
        self.last_iterations = iterations
        self.last_selected = selected
        self.last_value = selected.mean_score(self.player)
        self.analysis_report = f"{self._debug_line()}\n{self._explain()}\n"
        self.log.debug("%s", self.analysis_report)
        return selected.move

    def generate_analysis_report(self) -> str:
        return self.analysis_report

    def estimate_value(self) -> float:
        return self.last_value

    # -- search --------------------------------------------------------------
    def _init_root(self, game, context: Context) -> Node:
        history = game.history(context)
        root = self.root
        if root is not None:
            if len(history) < self.last_history_size:
                root = None
            for move in history[self.last_history_size:]:
                if root is None:
                    break
                root = root.child_for(move)
        if root is None:
            root = Node(game, context, rng=self.rng)
        else:
            root.detach()
        self.root = root
        self.last_history_size = len(history)
        return root

    def _iterate(self, root: Node) -> None:
        node = root
        while not node.terminal and node.expanded and not node.is_solved(node.player):
            node = node.select(self.selection)
        leaf = node.expand()
        result = leaf.simulate(self.playout)
        leaf.propagate(result, self.flags, proof_player=self.player)
        self._propagate_global(root, result)

    def _propagate_global(self, root: Node, result: SimulationResult) -> None:
        if self.flags & Backprop.GLOBAL_ACTION_STATS:
            for move in self.game.history(result.context, start=root.depth_index):
                record_stats(self.action_stats, move, result.utilities)
        if self.flags & Backprop.GLOBAL_NGRAM_STATS and self.max_ngram_length > 0:
            offset = max(0, root.depth_index - self.max_ngram_length + 1)
            played = self.game.history(result.context, start=offset)
            for i in range(root.depth_index - offset, len(played)):
                for j in range(max(0, i - self.max_ngram_length + 1), i + 1):
                    record_stats(self.ngram_stats, tuple(played[j:i + 1]), result.utilities)

    # -- reporting -----------------------------------------------------------
    def _debug_line(self) -> str:
        node, move = self.last_selected, self.last_selected.move
        base = f"[{self.friendly_name}] Performed {self.last_iterations} iterations, selected node: {{visits: {node.visit_count}"
        line = base + f", score: {self.last_value:.4f}"
        if self.flags & Backprop.AMAF_STATS:
            amaf = self.root.amaf_stats(move)
            line += f", AMAF visits: {amaf.visit_count}, AMAF score: {amaf.mean(self.player):.4f}"
        if self.flags & Backprop.GLOBAL_ACTION_STATS:
            stats = self.action_stats.get(move, ActionStats())
            line += f", global action visits: {stats.visit_count}, global action score: {stats.mean(self.player):.4f}"
        if self.flags & Backprop.GLOBAL_NGRAM_STATS:
            stats = self.ngram_stats.get((move,), ActionStats())
            line += f", 1-gram visits: {stats.visit_count}, 1-gram score: {stats.mean(self.player):.4f}"
        if self.flags & Backprop.SCORE_BOUNDS:
            if node.is_solved(self.player):
                line = base + f", solved node with score {node.pessimistic[self.player]:.4f}"
                if node.is_win(self.player):
                    line += " (win)"
                elif node.is_loss(self.player):
                    line += " (loss)"
            else:
                line += f", pess: {node.pessimistic[self.player]:.4f}, opt: {node.optimistic[self.player]:.4f}"
        if self.flags & Backprop.PROOF_NUMBERS:
            line += f", proof: {node.proof_number}, disproof: {node.disproof_number}"
        return line + "}"

    def _explain(self) -> str:
        return ExplanationGenerator(
            self.root, self.last_selected, self.final_selection, self.flags,
            self.action_stats, self.ngram_stats, self.max_ngram_length,
        ).generate()
