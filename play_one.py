import argparse
import json
import logging

from random_ai_plugin.launch import register_ais
from random_ai_plugin.match import MatchConfig, MatchRunner
from random_ai_plugin.registry import AIRegistry
from random_ai_plugin.config import SETTINGS
from random_ai_plugin.context import WHITE_PLAYER, BLACK_PLAYER


def load_json_config(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except Exception as e:
        logging.getLogger("play_one").error("Failed to read config %s: %s", path, e)
        return {}


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Play one AI-vs-AI match between registered AIs.")
    ap.add_argument("--config", default=None, help="Optional JSON config file to load defaults from.")
    ap.add_argument("--white", default=None, help="Registered AI name for White (default: the random AI)")
    ap.add_argument("--black", default=None, help="Registered AI name for Black (default: the random AI)")
    ap.add_argument("--seed", type=int, default=None, help="Seed for reproducible random choices")
    ap.add_argument("--max-plies", type=int, default=None)
    ap.add_argument("--max-seconds", type=float, default=None, help="Per-move time hint handed to each AI")
    ap.add_argument("--fen", default=None, help="Optional starting position")
    ap.add_argument("--game-log", action="store_true", help="Log every move as it happens")
    ap.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")

    args = ap.parse_args()

    cfg_dict = load_json_config(args.config) if args.config else {}

    # Resolve values with precedence: CLI arg if provided -> config -> default
    def pick(*keys, default=None):
        for k in keys:
            v = getattr(args, k, None)
            if v is not None:
                return v
            if k in cfg_dict and cfg_dict[k] is not None:
                return cfg_dict[k]
        return default

    log_level = pick("log_level", default=SETTINGS.log_level).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("play_one")

    registry = AIRegistry()
    register_ais(registry, seed=pick("seed", default=None))

    white_name = pick("white", default=SETTINGS.ai_name)
    black_name = pick("black", default=SETTINGS.ai_name)
    for name in (white_name, black_name):
        if name not in registry:
            raise SystemExit(f"Unknown AI '{name}'. Registered: {', '.join(registry.names())}")

    mcfg = MatchConfig(
        max_plies=int(pick("max_plies", default=SETTINGS.max_plies)),
        max_seconds=float(pick("max_seconds", default=SETTINGS.max_seconds)),
        game_log=args.game_log or bool(cfg_dict.get("game_log", False)),
    )
    runner = MatchRunner(
        {WHITE_PLAYER: registry.create(white_name), BLACK_PLAYER: registry.create(black_name)},
        cfg=mcfg,
        starting_fen=pick("fen", default=None),
    )
    log.info("Starting match: %s (white) vs %s (black) max_plies=%d", white_name, black_name, mcfg.max_plies)
    try:
        result = runner.play()
    finally:
        runner.close()

    print("Result:", result)
    print("Termination:", runner.termination_reason)
    print("Metrics:", runner.metrics())
    print("PGN:\n", runner.ctx.pgn())

    if args.pgn_out:
        with open(args.pgn_out, "w", encoding="utf-8") as f:
            f.write(runner.ctx.pgn())
        log.info("Wrote PGN to %s", args.pgn_out)
