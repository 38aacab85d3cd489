"""
Selection policies: score a child from the point of view of the player moving at its parent.

The same objects serve two roles: picking children while descending the tree and
picking the final move at the root. Each policy declares the Backprop flags its
statistics depend on.
"""
from __future__ import annotations

import math

from .node import Backprop, Node

INF = float("inf")


class SelectionPolicy:
    name = "selection"
    flags = Backprop.NONE

    def value(self, node: Node) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class UCB1(SelectionPolicy):
    name = "UCB1"

    def value(self, node: Node) -> float:
        if node.visit_count == 0:
            return INF
        parent = node.parent
        exploit = node.score_sums[parent.player] / node.visit_count
        explore = math.sqrt(2.0 * math.log(max(1, parent.visit_count)) / node.visit_count)
        return exploit + explore


class MostVisited(SelectionPolicy):
    """Robust child: the most simulated move."""

    name = "Robust Child"

    def value(self, node: Node) -> float:
        return float(node.visit_count)


class Grave(SelectionPolicy):
    """GRAVE: blend a child's mean score with the AMAF mean of its move.

    AMAF statistics are read at the closest ancestor with more than ``ref`` visits;
    with ref=0 that is always the parent, which is plain RAVE.
    """

    flags = Backprop.AMAF_STATS

    def __init__(self, bias: float = 1e-6, ref: int = 100):
        self.bias = bias
        self.ref = ref
        self.name = f"GRAVE with bias: {bias:g}, ref: {ref}" + (" (RAVE)" if ref == 0 else "")

    def reference_node(self, node: Node) -> Node:
        ref_node = node.parent
        while ref_node.parent is not None and ref_node.visit_count <= self.ref:
            ref_node = ref_node.parent
        return ref_node

    def value(self, node: Node) -> float:
        player = node.parent.player
        p = node.visit_count
        amaf = self.reference_node(node).amaf_stats(node.move)
        pa = amaf.visit_count
        if p == 0 and pa == 0:
            return INF
        w = node.score_sums[player]
        wa = amaf.score_sums.get(player, 0.0)
        beta = pa / (pa + p + self.bias * pa * p)
        mean = w / p if p else 0.0
        amaf_mean = wa / pa if pa else 0.0
        return (1.0 - beta) * mean + beta * amaf_mean


class Rave(Grave):
    def __init__(self, bias: float = 1e-6):
        super().__init__(bias=bias, ref=0)


class ScoreBounded(SelectionPolicy):
    """Skip children whose optimistic bound cannot beat what the parent already secured."""

    def __init__(self, wrapped: SelectionPolicy):
        self.wrapped = wrapped
        self.name = f"Score Bounded {wrapped.name}"
        self.flags = Backprop.SCORE_BOUNDS | wrapped.flags

    def value(self, node: Node) -> float:
        player = node.parent.player
        if node.optimistic[player] <= node.parent.pessimistic[player]:
            return -INF
        return self.wrapped.value(node)


class ScoreBoundedFinal(SelectionPolicy):
    """Final move choice that never plays a proven loss and always plays a proven win."""

    def __init__(self, wrapped: SelectionPolicy):
        self.wrapped = wrapped
        self.name = f"Score Bounded {wrapped.name}"
        self.flags = Backprop.SCORE_BOUNDS | wrapped.flags

    def value(self, node: Node) -> float:
        player = node.parent.player
        if node.is_loss(player):
            return -INF
        if node.is_win(player):
            return INF
        return self.wrapped.value(node)


class ProvenWinFinal(SelectionPolicy):
    """Final move choice that prefers a child whose proof number reached zero."""

    def __init__(self, wrapped: SelectionPolicy):
        self.wrapped = wrapped
        self.name = f"{wrapped.name} with PNS"
        self.flags = Backprop.PROOF_NUMBERS | wrapped.flags

    def value(self, node: Node) -> float:
        if node.proof_number == 0:
            return INF
        return self.wrapped.value(node)
