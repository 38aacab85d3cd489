"""
Proof-Number Search: try to prove that the player to move can force a win.

OR nodes are positions where the proving player moves (one proven child is
enough), AND nodes are the opponent's (every child must be proven). The search
repeatedly expands the most-proving leaf until the root is proved or disproved
or the budget runs out. Without a proof the move is picked at random.
"""
from __future__ import annotations

import enum
import logging
import random
import sys
import time
from typing import List, Optional

from .ai import AI, NoLegalMovesError
from .context import Context
from .games import Move

INFINITE = sys.maxsize
DEFAULT_MAX_ITERATIONS = 10_000


class NodeType(enum.Enum):
    OR = "or"
    AND = "and"


class Value(enum.Enum):
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"


class PNSNode:
    def __init__(self, game, context: Context, proof_player: int, parent: Optional["PNSNode"] = None):
        self.parent = parent
        self.context = context
        self.type = NodeType.OR if context.mover == proof_player else NodeType.AND
        self.legal_moves: List[Move] = [] if game.is_over(context) else game.moves(context)
        self.children: List[Optional[PNSNode]] = [None] * len(self.legal_moves)
        self.expanded = False
        self.value = Value.UNKNOWN
        self.proof_number = -1
        self.disproof_number = -1

    @property
    def solved(self) -> bool:
        return self.proof_number == 0 or self.disproof_number == 0

    def delete_subtree(self) -> None:
        self.children = [None] * len(self.legal_moves)


class ProofNumberSearch(AI):
    friendly_name = "Proof-Number Search"

    def __init__(self, rng: Optional[random.Random] = None, name: str | None = None):
        self.log = logging.getLogger("ProofNumberSearch")
        if name:
            self.friendly_name = name
        self.rng = rng or random.Random()
        self.proof_player = -1
        self.game = None
        self.last_iterations = 0
        self.last_root: Optional[PNSNode] = None

    def init_ai(self, game, player_id: int) -> None:
        self.game = game
        self.proof_player = player_id

    def close(self) -> None:
        self.proof_player = -1
        self.last_root = None

    @staticmethod
    def supports_game(game) -> bool:
        if getattr(game, "num_players", 0) != 2:
            return False
        if game.is_stochastic_game() or game.has_hidden_information():
            return False
        return game.is_alternating_move_game()

    def select_action(self, game, context: Context, max_seconds: float = -1.0,
                      max_iterations: int = -1, max_depth: int = -1) -> Move:
        self.game = game
        if self.proof_player != context.mover:
            self.log.warning("Current mover = %d, but proof player = %d!", context.mover, self.proof_player)
        if game.is_over(context):
            raise NoLegalMovesError(f"{self.friendly_name}: the game is already over")

        root = PNSNode(game, context, self.proof_player)
        self._evaluate(root)
        self._set_numbers(root)

        deadline = time.monotonic() + max_seconds if max_seconds > 0 else None
        if max_iterations >= 0:
            budget = max_iterations
        else:
            budget = None if deadline else DEFAULT_MAX_ITERATIONS

        current = root
        iterations = 0
        while ((budget is None or iterations < budget)
               and (deadline is None or time.monotonic() < deadline)
               and not root.solved):
            most_proving = self._most_proving(current)
            self._expand(most_proving)
            current = self._update_ancestors(most_proving)
            iterations += 1

        self.last_iterations = iterations
        self.last_root = root
        if root.proof_number == 0:
            self.log.info("Proved a win!")
        elif root.disproof_number == 0:
            self.log.info("Disproved a win!")
        else:
            self.log.info("No proof after %d iterations", iterations)

        for move, child in zip(root.legal_moves, root.children):
            if child is not None and child.proof_number == 0:
                return move
        return root.legal_moves[self.rng.randrange(len(root.legal_moves))]

    def generate_analysis_report(self) -> str:
        root = self.last_root
        if root is None:
            return ""
        if root.proof_number == 0:
            verdict = "proved a forced win"
        elif root.disproof_number == 0:
            verdict = "disproved a forced win"
        else:
            verdict = "found no proof"
        return (f"[{self.friendly_name}] Performed {self.last_iterations} iterations and {verdict} "
                f"(root proof: {_fmt(root.proof_number)}, disproof: {_fmt(root.disproof_number)})")

    # -- search ----------------------------------------------------------------
    def _evaluate(self, node: PNSNode) -> None:
        if self.game.is_over(node.context):
            utilities = self.game.utilities(node.context)
            node.value = Value.TRUE if utilities[self.proof_player] == max(utilities.values()) > 0 else Value.FALSE
        else:
            node.value = Value.UNKNOWN

    @staticmethod
    def _set_numbers(node: PNSNode) -> None:
        if node.expanded:
            children = [c for c in node.children if c is not None]
            if node.type is NodeType.AND:
                node.proof_number = _sum(c.proof_number for c in children)
                node.disproof_number = min((c.disproof_number for c in children), default=INFINITE)
            else:
                node.proof_number = min((c.proof_number for c in children), default=INFINITE)
                node.disproof_number = _sum(c.disproof_number for c in children)
        elif node.value is Value.TRUE:
            node.proof_number, node.disproof_number = 0, INFINITE
        elif node.value is Value.FALSE:
            node.proof_number, node.disproof_number = INFINITE, 0
        elif node.type is NodeType.AND:
            node.proof_number, node.disproof_number = max(1, len(node.children)), 1
        else:
            node.proof_number, node.disproof_number = 1, max(1, len(node.children))

    @staticmethod
    def _most_proving(node: PNSNode) -> PNSNode:
        while node.expanded:
            children = [c for c in node.children if c is not None]
            if node.type is NodeType.OR:
                match = [c for c in children if c.proof_number == node.proof_number]
            else:
                match = [c for c in children if c.disproof_number == node.disproof_number]
            node = match[0] if match else children[0]
        return node

    def _expand(self, node: PNSNode) -> None:
        for i, move in enumerate(node.legal_moves):
            context = node.context.copy()
            self.game.apply(context, move, notate=False)
            child = PNSNode(self.game, context, self.proof_player, parent=node)
            node.children[i] = child
            self._evaluate(child)
            self._set_numbers(child)
            if (node.type is NodeType.OR and child.proof_number == 0) or (
                    node.type is NodeType.AND and child.disproof_number == 0):
                break
        node.expanded = True

    def _update_ancestors(self, node: PNSNode) -> PNSNode:
        while True:
            old = (node.proof_number, node.disproof_number)
            self._set_numbers(node)
            if (node.proof_number, node.disproof_number) == old:
                return node
            # the root keeps its children so the proving move can still be read
            if node.solved and node.parent is not None:
                node.delete_subtree()
            if node.parent is None:
                return node
            node = node.parent


def _sum(numbers) -> int:
    total = 0
    for n in numbers:
        if n >= INFINITE:
            return INFINITE
        total += n
    return min(total, INFINITE)


def _fmt(number: int) -> str:
    return "inf" if number >= INFINITE else str(number)
