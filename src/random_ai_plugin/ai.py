"""
Agent abstractions shared by every pluggable AI.

An AI is bound to one player for the duration of a match. The host calls
init_ai() once when the match starts, then select_action() each time that
player has to decide. Search-budget hints are advisory; an AI may ignore them.
"""
from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import cycle protection for type hints
    from .context import Context
    from .games import Move


class NoLegalMovesError(RuntimeError):
    """Raised when an AI is asked to act but has no legal move to choose from."""


class AI:
    """Interface for agents that pick moves on behalf of one player."""

    friendly_name: str = "AI"

    # -- lifecycle ---------------------------------------------------------
    def init_ai(self, game: Any, player_id: int) -> None:
        """Prepare for a new match as ``player_id``."""

    def close(self) -> None:
        """Release any resources held by the AI."""

    # -- decisions ---------------------------------------------------------
    def select_action(
        self,
        game: Any,
        context: "Context",
        max_seconds: float = -1.0,
        max_iterations: int = -1,
        max_depth: int = -1,
    ) -> "Move":
        """Return one legal move for this AI's player."""
        raise NotImplementedError

    def generate_analysis_report(self) -> str:
        return ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.friendly_name!r}>"
