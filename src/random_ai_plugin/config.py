"""
Settings for the plugin, resolved once at import time.

Sources, first hit wins: settings.yml at the repo root, then the process
environment (a .env file is loaded into it), then the built-in default. A key
that is present but null, blank or of the wrong type counts as absent.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")

REPO_ROOT = Path(__file__).resolve().parents[2]
SETTINGS_FILE = REPO_ROOT / "settings.yml"


def read_settings_file(path: os.PathLike | str) -> dict:
    """Top-level mapping of a YAML file; {} when it is missing, unreadable or not a mapping."""
    path = Path(path)
    if not path.is_file():
        return {}
    try:
        with path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        log.warning("Ignoring settings file %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def lookup(key: str, default: Any, cast: Callable[[Any], Any] | None,
           file_values: Mapping[str, Any], environ: Mapping[str, str]) -> Any:
    for source in (file_values, environ):
        value = source.get(key)
        if _blank(value):
            continue
        if not cast:
            return value
        try:
            return cast(value)
        except (TypeError, ValueError):
            log.warning("Ignoring %s=%r: expected %s", key, value, cast.__name__)
    return default


@dataclass(frozen=True)
class Settings:
    # Registration
    ai_name: str
    seed: Optional[int]
    mcts_config_dir: str

    # Play server
    host: str
    port: int
    game_ttl_s: int

    # Match knobs (hints handed to select_action)
    max_seconds: float
    max_plies: int

    log_level: str


def load_settings(path: os.PathLike | str = SETTINGS_FILE, environ: Mapping[str, str] | None = None) -> Settings:
    file_values = read_settings_file(path)
    env = os.environ if environ is None else environ

    def get(key, default, cast=None):
        return lookup(key, default, cast, file_values, env)

    return Settings(
        ai_name=str(get("RANDOM_AI_NAME", "Python Random AI")),
        seed=get("RANDOM_AI_SEED", None, int),
        mcts_config_dir=str(get("MCTS_CONFIG_DIR", str(REPO_ROOT / "config"))),
        host=str(get("RANDOM_AI_HOST", "127.0.0.1")),
        port=get("RANDOM_AI_PORT", 8000, int),
        game_ttl_s=get("RANDOM_AI_GAME_TTL_S", 3600, int),
        max_seconds=get("RANDOM_AI_MAX_SECONDS", 1.0, float),
        max_plies=get("RANDOM_AI_MAX_PLIES", 400, int),
        log_level=str(get("RANDOM_AI_LOG_LEVEL", "INFO")),
    )


SETTINGS = load_settings()
