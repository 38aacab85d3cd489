"""Explainable Monte Carlo Tree Search and its pluggable policies."""
from .agent import ExplainableMcts
from .node import Backprop, Node
from .playout import MastPlayout, NstPlayout, UniformPlayout
from .selection import UCB1, Grave, MostVisited, Rave, ScoreBounded, ScoreBoundedFinal

__all__ = [
    "ExplainableMcts",
    "Backprop",
    "Node",
    "UCB1",
    "Grave",
    "Rave",
    "MostVisited",
    "ScoreBounded",
    "ScoreBoundedFinal",
    "UniformPlayout",
    "MastPlayout",
    "NstPlayout",
]
