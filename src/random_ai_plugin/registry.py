"""
AI registry: discovers and instantiates pluggable AIs by display name.

The registry is an ordinary object handed to whoever needs it (launcher, play
server, command-line tools); nothing in the package reaches for a global one.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from .ai import AI

log = logging.getLogger("AIRegistry")

AIFactory = Callable[[], AI]
SupportsGame = Callable[[Any], bool]


@dataclass(frozen=True)
class AIEntry:
    name: str
    factory: AIFactory
    supports_game: SupportsGame

    def supports(self, game: Any) -> bool:
        try:
            return bool(self.supports_game(game))
        except Exception:
            log.exception("supports_game predicate failed for AI %r", self.name)
            return False


class AIRegistry:
    def __init__(self) -> None:
        self._entries: Dict[str, AIEntry] = {}
        self._lock = threading.Lock()

    def register_ai(self, name: str, factory: AIFactory, supports_game: SupportsGame) -> bool:
        """Register ``factory`` under ``name``. Returns False if the name is already taken."""
        with self._lock:
            if name in self._entries:
                return False
            self._entries[name] = AIEntry(name=name, factory=factory, supports_game=supports_game)
        log.debug("Registered AI %r", name)
        return True

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def names(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def entry(self, name: str) -> AIEntry:
        with self._lock:
            try:
                return self._entries[name]
            except KeyError:
                raise KeyError(f"No AI registered under {name!r}") from None

    def supported_names(self, game: Any) -> List[str]:
        with self._lock:
            entries = list(self._entries.values())
        return [e.name for e in entries if e.supports(game)]

    def create(self, name: str) -> AI:
        """Return a fresh AI instance from the factory registered under ``name``."""
        return self.entry(name).factory()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries
