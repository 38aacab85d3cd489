"""
Build ExplainableMcts agents from a JSON configuration.

Keys (camelCase, as in config/defaultMctsConfig.json):
  useScoreBounds, usePNS               -> solver / proof-number backpropagation
  selectionPolicy, finalMoveSelectionPolicy
                                       -> grave | rave | ucb1 | robust_child | mostvisited
  graveBias, graveRef                  -> GRAVE parameters
  playoutPolicy                        -> uniform | mast | nst
  eps, maxNGramLength                  -> MAST/NST parameters
  maxPlayoutPlies                      -> playout cut-off (scored as a draw), -1 for none

Missing keys take the defaults below; unknown keys or policy names raise ValueError.
"""
from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .mcts import ExplainableMcts
from .mcts.playout import DEFAULT_PLAYOUT_PLIES, MastPlayout, NstPlayout, PlayoutPolicy, UniformPlayout
from .mcts.selection import UCB1, Grave, MostVisited, Rave, SelectionPolicy

log = logging.getLogger("mcts_factory")

CONFIG_NAME = "mctsConfig"
DEFAULT_CONFIG_NAME = "defaultMctsConfig"

DEFAULT_MCTS_CONFIG: Dict[str, Any] = {
    "useScoreBounds": True,
    "usePNS": False,
    "selectionPolicy": "ucb1",
    "finalMoveSelectionPolicy": "robust_child",
    "graveBias": 1e-6,
    "graveRef": 100,
    "playoutPolicy": "mast",
    "eps": 0.1,
    "maxNGramLength": 3,
    "maxPlayoutPlies": DEFAULT_PLAYOUT_PLIES,
}

_SELECTION_POLICIES: Dict[str, Callable[[Mapping[str, Any]], SelectionPolicy]] = {
    "grave": lambda cfg: Grave(float(cfg["graveBias"]), int(cfg["graveRef"])),
    "rave": lambda cfg: Rave(float(cfg["graveBias"])),
    "ucb1": lambda cfg: UCB1(),
    "robust_child": lambda cfg: MostVisited(),
    "mostvisited": lambda cfg: MostVisited(),
}

_PLAYOUT_POLICIES: Dict[str, Callable[[Mapping[str, Any], random.Random], PlayoutPolicy]] = {
    "uniform": lambda cfg, rng: UniformPlayout(max_plies=int(cfg["maxPlayoutPlies"]), rng=rng),
    "mast": lambda cfg, rng: MastPlayout(float(cfg["eps"]), max_plies=int(cfg["maxPlayoutPlies"]), rng=rng),
    "nst": lambda cfg, rng: NstPlayout(int(cfg["maxNGramLength"]), float(cfg["eps"]),
                                       max_plies=int(cfg["maxPlayoutPlies"]), rng=rng),
}


def normalize_config(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Fill defaults and validate names; the result is safe to build agents from repeatedly."""
    if not isinstance(data, Mapping):
        raise ValueError(f"MCTS config must be a JSON object, got {type(data).__name__}")
    unknown = sorted(set(data) - set(DEFAULT_MCTS_CONFIG))
    if unknown:
        raise ValueError(f"Unknown MCTS config key(s): {', '.join(unknown)}")
    cfg = {**DEFAULT_MCTS_CONFIG, **{k: v for k, v in data.items() if v is not None}}
    for key in ("selectionPolicy", "finalMoveSelectionPolicy", "playoutPolicy"):
        cfg[key] = str(cfg[key]).lower()
    for key, cast in (("graveBias", float), ("graveRef", int), ("eps", float),
                      ("maxNGramLength", int), ("maxPlayoutPlies", int)):
        try:
            cfg[key] = cast(cfg[key])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for {key}: {cfg[key]!r}") from exc
    for key in ("useScoreBounds", "usePNS"):
        if not isinstance(cfg[key], bool):
            raise ValueError(f"{key} must be true or false, got {cfg[key]!r}")
    if cfg["selectionPolicy"] not in _SELECTION_POLICIES:
        raise ValueError(f"Unknown selection policy: {cfg['selectionPolicy']}")
    if cfg["finalMoveSelectionPolicy"] not in _SELECTION_POLICIES:
        raise ValueError(f"Unknown final selection policy: {cfg['finalMoveSelectionPolicy']}")
    if cfg["playoutPolicy"] not in _PLAYOUT_POLICIES:
        raise ValueError(f"Unknown playout policy: {cfg['playoutPolicy']}")
    return cfg


def mcts_from_config(data: Mapping[str, Any], rng: Optional[random.Random] = None,
                     name: str | None = None) -> ExplainableMcts:
    cfg = normalize_config(data)
    rng = rng or random.Random()
    return ExplainableMcts(
        selection=_SELECTION_POLICIES[cfg["selectionPolicy"]](cfg),
        final_selection=_SELECTION_POLICIES[cfg["finalMoveSelectionPolicy"]](cfg),
        playout=_PLAYOUT_POLICIES[cfg["playoutPolicy"]](cfg, rng),
        use_score_bounds=bool(cfg["useScoreBounds"]),
        use_pns=bool(cfg["usePNS"]),
        rng=rng,
        name=name,
    )


def mcts_from_json(text: str, rng: Optional[random.Random] = None) -> ExplainableMcts:
    return mcts_from_config(json.loads(text), rng=rng)


def read_config(config_dir: str | Path, name: str) -> Optional[str]:
    """Text of ``<config_dir>/<name>.json``, or None (logged) when it cannot be read."""
    path = Path(config_dir) / f"{name}.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        log.error("Failed to read %s: %s", name, exc)
        return None


def load_mcts_config(config_dir: str | Path) -> Dict[str, Any]:
    """mctsConfig.json if usable, else defaultMctsConfig.json, else the built-in defaults."""
    for name in (CONFIG_NAME, DEFAULT_CONFIG_NAME):
        if name == DEFAULT_CONFIG_NAME:
            log.warning("Using default config")
        text = read_config(config_dir, name)
        if text is None:
            continue
        try:
            return normalize_config(json.loads(text))
        except ValueError as exc:
            log.error("Failed to parse config %s: %s", name, exc)
    return dict(DEFAULT_MCTS_CONFIG)
