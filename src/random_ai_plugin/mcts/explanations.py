"""
Natural-language explanations of an MCTS decision.

- Outliers: sort the root's children by some criterion and bucket them relative
  to the selected move (equal / slightly / much better or worse) and absolutely
  (neutral / good / very good / bad / very bad).
- ForcedMoves: follow the principal variation a few plies and note how many
  options each side really has.
- ExplanationGenerator: turns both, plus the solver and MAST/NST/AMAF
  statistics, into the text returned by the agent's analysis report.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..games import Move
from .node import ActionStats, Backprop, Node

RELATIVE_CATEGORIES = ("equal", "slightly worse", "much worse", "slightly better", "much better")
ABSOLUTE_CATEGORIES = ("neutral", "bad", "very bad", "good", "very good")

MAST_WELL_THRESHOLD = 0.25
AMAF_WELL_THRESHOLD = 0.5
FORCED_MOVES_DEPTH = 3


@dataclass(frozen=True)
class OutlierThresholds:
    epsilon: float = 1e-8
    slight_diff: float = 0.1
    neutral: float = 0.1
    very: float = 0.63


class Outliers:
    def __init__(self, root: Node, selected: Node, rank: Callable[[Node], float],
                 thresholds: OutlierThresholds = OutlierThresholds()):
        selected_rank = rank(selected)
        self.sorted_nodes = sorted(root.children, key=rank, reverse=True)
        self.categories: Dict[str, List[Node]] = {c: [] for c in RELATIVE_CATEGORIES + ABSOLUTE_CATEGORIES}

        for node in self.sorted_nodes:
            value = rank(node)
            diff = abs(value - selected_rank)
            if diff <= thresholds.epsilon:
                relative = "equal"
            elif diff < thresholds.slight_diff:
                relative = "slightly better" if value > selected_rank else "slightly worse"
            else:
                relative = "much better" if value > selected_rank else "much worse"
            self.categories[relative].append(node)

            magnitude = abs(value)
            if magnitude <= thresholds.neutral:
                absolute = "neutral"
            elif magnitude < thresholds.very:
                absolute = "good" if value > 0 else "bad"
            else:
                absolute = "very good" if value > 0 else "very bad"
            self.categories[absolute].append(node)

    def get(self, category: str) -> List[Node]:
        return self.categories.get(category, [])


@dataclass
class NodeStats:
    branching_factor: int
    proven_bad: List[Node]


class ForcedMoves:
    """Principal variation through ``selected`` with per-ply mobility statistics."""

    def __init__(self, root: Node, selected: Node, policy, max_depth: int = FORCED_MOVES_DEPTH):
        self.principal_variation: List[Node] = []
        self.node_stats: List[NodeStats] = []
        node: Optional[Node] = root
        depth = 1
        while node is not None and not node.terminal and depth <= max_depth:
            self.principal_variation.append(node)
            proven_bad = [c for c in node.children if c.is_loss(node.player)]
            self.node_stats.append(NodeStats(node.branching_factor, proven_bad))
            node = selected if node is root else node.select(policy)
            depth += 1


def move_text(node: Node) -> str:
    """SAN of the move leading to ``node``, read from its parent's position."""
    return node.parent.context.board.san(node.move.action)


def average_branching_factor(root: Node) -> float:
    counts, stack = [], [root]
    while stack:
        node = stack.pop()
        if not node.terminal:
            counts.append(node.branching_factor)
        stack.extend(node.children)
    return sum(counts) / len(counts) if counts else 0.0


class ExplanationGenerator:
    def __init__(self, root: Node, selected: Node, final_policy, flags: int,
                 action_stats: Dict[Move, ActionStats],
                 ngram_stats: Dict[Tuple[Move, ...], ActionStats],
                 max_ngram_length: int = 0):
        self.root = root
        self.selected = selected
        self.final_policy = final_policy
        self.flags = flags
        self.action_stats = action_stats
        self.ngram_stats = ngram_stats
        self.max_ngram_length = max_ngram_length
        self.player = root.player
        self.branching = average_branching_factor(root)

    def generate(self) -> str:
        parts = [f"Selected move: {move_text(self.selected)}.\n", self.basic_explanation()]
        reasons = [s for s in (self.score_bounds_explanation(), self.mast_explanation(),
                               self.nst_explanation(), self.amaf_explanation()) if s]
        parts += reasons or ["This move was selected because it is currently the best available option."]
        parts.append("\n")

        parts.append(self.outliers_explanation(lambda n: n.mean_score(self.player), "average score"))
        if self.flags & Backprop.AMAF_STATS:
            parts.append(self.outliers_explanation(
                lambda n: self.root.amaf_stats(n.move).mean(self.player), "AMAF score"))
        if self.flags & Backprop.GLOBAL_ACTION_STATS:
            parts.append(self.outliers_explanation(
                lambda n: self.action_stats.get(n.move, ActionStats()).mean(self.player), "MAST score"))

        parts.append("\n")
        parts.append(self.forced_moves_explanation(self.selected, "the selected move", 0))
        for child in self.root.children:
            if child is not self.selected:
                parts.append(self.forced_moves_explanation(child, move_text(child), 1))

        text = " ".join(p for p in parts if p)
        return re.sub(r"[ \t]{2,}", " ", re.sub(r" *\n *", "\n", text)).strip()

    # -- comparison with siblings ------------------------------------------
    def basic_explanation(self) -> str:
        if len(self.root.children) == 1:
            return "Since there was only one move available, it was the only one chosen."
        selected_value = self.final_policy.value(self.selected)
        equal, slightly_worse, much_worse = [], [], []
        for child in self.root.children:
            if child is self.selected:
                continue
            value = self.final_policy.value(child)
            if value == selected_value:
                equal.append(move_text(child))
            elif _ratio_above(value, selected_value, 0.75):
                slightly_worse.append(move_text(child))
            else:
                much_worse.append(move_text(child))

        sentences = []
        if equal:
            sentences.append("The selected move has the same estimated value as following moves: "
                             f"{', '.join(equal)}. It was chosen randomly from among them.")
        if slightly_worse:
            sentences.append("The following moves are considered slightly worse than the one chosen: "
                             f"{', '.join(slightly_worse)}.")
        if much_worse:
            sentences.append("The selected move was significantly better than all other options.")
        return " ".join(sentences)

    # -- solver and global statistics --------------------------------------
    def score_bounds_explanation(self) -> str:
        node = self.selected
        if not node.is_solved(self.player):
            return ""
        if node.is_win(self.player):
            outcome = "win"
            text = "This move leads to a state where we win regardless of the opponent's actions."
        elif node.is_loss(self.player):
            outcome = "loss"
            text = ("This move leads to a loss, assuming the opponent plays optimally. "
                    "It was selected because all available moves result in a loss.")
        else:
            outcome = "draw"
            text = "This move leads to a draw."

        text += " After we play this move "
        while not node.terminal:
            nxt = node.select(self.final_policy)
            if nxt is None:
                break
            if node.player == self.player:
                text += f"we will play {move_text(nxt)}, then "
            else:
                text += f"player {node.player} will most likely play {move_text(nxt)}, then "
            node = nxt
        return text + f"the game ends with a {outcome}."

    def mast_explanation(self) -> str:
        stats = self.action_stats.get(self.selected.move)
        if stats and stats.mean(self.player) > MAST_WELL_THRESHOLD:
            return "This move generally performs well, regardless of when it is played."
        return ""

    def nst_explanation(self) -> str:
        previous = self.root.game.history(self.root.context, start=self.root.depth_index - self.max_ngram_length + 1)
        sentences = []
        for n in range(1, self.max_ngram_length + 1):
            if n - 1 > len(previous):
                break
            key = tuple(previous[len(previous) - (n - 1):]) + (self.selected.move,) if n > 1 else (self.selected.move,)
            stats = self.ngram_stats.get(key)
            if stats is None:
                break
            if stats.mean(self.player) <= MAST_WELL_THRESHOLD:
                continue
            if n == 1:
                sentences.append("This move generally performs well, regardless of when it is played.")
            elif n == 2:
                sentences.append("This move generally performs well when played after the previous move.")
            else:
                sentences.append("This move generally performs well when played after a sequence of "
                                 f"{n - 1} preceding moves.")
        return " ".join(sentences)

    def amaf_explanation(self) -> str:
        stats = self.root.amaf_stats(self.selected.move)
        if stats.visit_count > 0 and stats.mean(self.player) > AMAF_WELL_THRESHOLD:
            return "This move tends to perform well in game phases that follow the current state."
        return ""

    # -- outliers ------------------------------------------------------------
    def outliers_explanation(self, rank: Callable[[Node], float], criteria: str) -> str:
        outliers = Outliers(self.root, self.selected, rank)
        total = len(self.root.children)
        others = total - 1
        messages = []

        for category, nodes in outliers.categories.items():
            if category != "equal" and self.selected in nodes:
                messages.append(f"The selected node is considered {category} by the {criteria} criteria.")
                break
        if total == 1:
            return " ".join(messages)

        worse = len(outliers.get("slightly worse")) + len(outliers.get("much worse"))
        better = len(outliers.get("slightly better")) + len(outliers.get("much better"))
        equal = len(outliers.get("equal"))

        if worse > 0 and worse == others:
            messages.append(f"All other moves were worse than the selected one by the {criteria} criteria.")
        elif worse > others * 8 // 10:
            messages.append(f"The majority of other moves ({worse} out of {others}) were worse than "
                            f"the selected one by the {criteria} criteria.")
            if equal > 1:
                messages.append(f"{equal - 1} out of remaining moves were considered equal to the selected.")
            if better > 0:
                messages.append("The remaining nodes were better.")

        if better > 0 and better == others:
            messages.append(f"All other moves were better than the selected one by the {criteria} criteria.")
        elif better > others * 8 // 10:
            messages.append(f"The majority of other moves ({better} out of {others}) were better than "
                            f"the selected one by the {criteria} criteria.")
            if equal > 1:
                messages.append(f"{equal - 1} out of remaining moves were considered equal to the selected.")
            if worse > 0:
                messages.append("The remaining nodes were worse.")

        if equal == total:
            messages.append(f"All moves are equal by the {criteria} criteria.")
        elif equal - 1 > others * 8 // 10:
            messages.append(f"The majority of other moves ({equal - 1} out of {others}) were equal to "
                            f"the selected one by the {criteria} criteria.")
            if better > 0:
                messages.append(f"{better} out of remaining moves were considered better than the selected.")
            if worse > 0:
                messages.append("The remaining nodes were worse.")
        elif 1 < equal < total // 10:
            messages.append(f"The selected move was one of {equal} moves that are equal by the {criteria} criteria.")
            messages.append(f"They were a minority among all {total} available moves.")

        counts = [f"{len(outliers.get(c))} moves {c}" for c in
                  ("equal", "much better", "slightly better", "slightly worse", "much worse")
                  if len(outliers.get(c)) > 1]
        if counts:
            messages.append(f"By the {criteria} criteria there are {', '.join(counts)}.")

        very_good, good = outliers.get("very good"), outliers.get("good")
        if len(very_good) == 1 or 0 < len(very_good) < total // 10:
            messages.append(self._category_sentence("very good", very_good, total, criteria))
        elif not very_good and (len(good) == 1 or 0 < len(good) < total // 10):
            messages.append(self._category_sentence("good", good, total, criteria))

        for category in ABSOLUTE_CATEGORIES:
            if len(outliers.get(category)) == total:
                messages.append(f"All nodes are in {category} category by the {criteria} criteria.")

        good_or_better = good + very_good
        if total * 8 // 10 < len(good_or_better) < total:
            messages.append(self._category_sentence("good and very good", good_or_better, total, criteria))
            neutral = outliers.get("neutral")
            if neutral:
                messages.append(f"{len(neutral)} out of remaining moves were considered neutral.")
            if outliers.get("bad") or outliers.get("very bad"):
                messages.append("The remaining nodes were bad or very bad.")

        return " ".join(messages)

    def _category_sentence(self, label: str, nodes: List[Node], total: int, criteria: str) -> str:
        among = "among" if self.selected in nodes else "not among"
        return (f"There are {len(nodes)} {label} moves (out of {total}) by the {criteria} criteria; "
                f"the selected move is {among} them.")

    # -- forced moves --------------------------------------------------------
    def forced_moves_explanation(self, wanted: Node, label: str, start_depth: int) -> str:
        forced = ForcedMoves(self.root, wanted, self.final_policy, FORCED_MOVES_DEPTH)
        pv, stats = forced.principal_variation, forced.node_stats
        depth = min(FORCED_MOVES_DEPTH, len(pv))

        lead_ins = [f"After we play {label}, "]
        for node in pv[2:depth]:
            if node.parent.player == self.player:
                lead_ins.append(f"we will play {move_text(node)}, then ")
            else:
                lead_ins.append(f"the opponent will most likely play {move_text(node)}, then ")

        messages, prefix = [], ""
        for i in range(start_depth, depth):
            node, node_stats = pv[i], stats[i]
            if i > 0:
                prefix += lead_ins[i - 1]
            ours = node.player == self.player
            if node_stats.branching_factor < self.branching / 8:
                messages.append(
                    f"{prefix}{'we have' if ours else 'the opponent has'} {node_stats.branching_factor} "
                    "available moves, which is significantly less than the estimated average branching "
                    f"factor of the game ({self.branching:.2f}).")
                messages.append(f"In this state {'we are' if ours else 'the opponent is'} forced to choose "
                                "from limited number of options.")
                prefix = ""
            if len(node_stats.proven_bad) > node_stats.branching_factor / 2:
                messages.append(
                    f"{prefix}the majority of available moves ({len(node_stats.proven_bad)} out of "
                    f"{node_stats.branching_factor}) are proven to lead {'us' if ours else 'the opponent'} to loss.")
                messages.append(f"Thus in this state {'we are' if ours else 'the opponent is'} forced to "
                                "choose from limited number of options.")
                prefix = ""
        return " ".join(messages)


def _ratio_above(value: float, reference: float, threshold: float) -> bool:
    if reference == 0 or not math.isfinite(reference) or not math.isfinite(value):
        return False
    return value / reference > threshold
