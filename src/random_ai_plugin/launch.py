"""
Start-up: register the plugin's AIs and hand control to the play server.

Registers the random AI, "Explainable MCTS" (built from config/mctsConfig.json,
falling back to config/defaultMctsConfig.json) and "Proof-Number Search".

Run: random-ai-plugin [--name NAME] [--seed N] [--config-dir DIR] [--host HOST] [--port PORT] [--log-level LEVEL]
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from typing import Callable, Optional

from .config import SETTINGS
from .mcts import ExplainableMcts
from .mcts_factory import load_mcts_config, mcts_from_config
from .pns import ProofNumberSearch
from .random_ai import RandomAI
from .registry import AIRegistry
from .server import start_app

log = logging.getLogger("launch")

MCTS_NAME = "Explainable MCTS"
PNS_NAME = "Proof-Number Search"


def registration_log() -> logging.Logger:
    """Logger for registration conflicts; always reaches stderr whatever the root level is."""
    reg_log = logging.getLogger("launch.registration")
    if not reg_log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        reg_log.addHandler(handler)
        reg_log.setLevel(logging.WARNING)
        reg_log.propagate = False
    return reg_log


def register_or_warn(registry: AIRegistry, name: str, factory, supports_game) -> bool:
    if not registry.register_ai(name, factory, supports_game):
        registration_log().warning("Failed to register AI %r because one with that name already existed!", name)
        return False
    return True


def register_ais(registry: AIRegistry, name: str | None = None, seed: Optional[int] = None,
                 config_dir: str | None = None) -> None:
    """Register the random AI, the configured MCTS agent and proof-number search."""
    name = name or SETTINGS.ai_name
    seed = seed if seed is not None else SETTINGS.seed
    seeder = random.Random(seed) if seed is not None else None
    mcts_config = load_mcts_config(config_dir or SETTINGS.mcts_config_dir)

    def next_rng() -> Optional[random.Random]:
        # each instance gets its own stream; seeded runs stay reproducible
        return random.Random(seeder.getrandbits(64)) if seeder else None

    register_or_warn(registry, name, lambda: RandomAI(rng=next_rng(), name=name), lambda game: True)
    register_or_warn(registry, MCTS_NAME, lambda: mcts_from_config(mcts_config, rng=next_rng(), name=MCTS_NAME),
                     ExplainableMcts.supports_game)
    register_or_warn(registry, PNS_NAME, lambda: ProofNumberSearch(rng=next_rng(), name=PNS_NAME),
                     ProofNumberSearch.supports_game)


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Register the plugin's AIs and start the play server.")
    ap.add_argument("--name", default=None, help="Display name for the random AI (default: RANDOM_AI_NAME)")
    ap.add_argument("--seed", type=int, default=None, help="Seed for reproducible random choices")
    ap.add_argument("--config-dir", default=None, help="Directory holding mctsConfig.json (default: MCTS_CONFIG_DIR)")
    ap.add_argument("--host", default=None, help="Server host (default: RANDOM_AI_HOST)")
    ap.add_argument("--port", type=int, default=None, help="Server port (default: RANDOM_AI_PORT)")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")
    return ap.parse_args(argv)


def main(argv=None, app_entry: Callable[..., None] = start_app) -> None:
    args = parse_args(argv)
    log_level = (args.log_level or SETTINGS.log_level).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    registry = AIRegistry()
    register_ais(registry, name=args.name, seed=args.seed, config_dir=args.config_dir)
    log.info("Registered AIs: %s", ", ".join(registry.names()))

    app_entry(registry, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
