from __future__ import annotations
"""Helpers shared by AIs."""
from typing import Iterable, List

from .games import Move


def extract_moves_for_mover(moves: Iterable[Move], player_id: int) -> List[Move]:
    """Keep only the moves made by ``player_id``, in their original order."""
    return [mv for mv in moves if mv.mover == player_id]
