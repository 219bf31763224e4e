"""Game settings: config/settings.yaml over built-in defaults, plus .env overrides."""

from __future__ import annotations

import copy
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULTS: dict = {
    "storage": {"game_db": "data/island.db", "log_file": None},
    "catalog": {"path": "config/catalog.yaml"},
    "actions": {"walking_seconds": 0.5, "searching_seconds": 0.8, "result_seconds": 1.5},
    "xp": {
        "crafting": 15,
        "flashcard": {"again": 0, "hard": 5, "good": 10, "easy": 15},
    },
}


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _env_overrides() -> dict:
    seed = os.getenv("ISLAND_RNG_SEED", "").strip()
    try:
        rng_seed = int(seed) if seed else None
    except ValueError:
        rng_seed = None
    return {
        "data_dir": os.getenv("ISLAND_DATA_DIR", ""),
        "rng_seed": rng_seed,
    }


def load_config(config_dir: str | Path | None = None) -> dict:
    """Return DEFAULTS overlaid with settings.yaml; env values land in cfg["_env"].

    Raises FileNotFoundError when settings.yaml is missing.
    """
    config_dir = Path(config_dir) if config_dir is not None else PROJECT_ROOT / "config"

    # .env is optional
    load_dotenv(config_dir / ".env")

    settings_path = config_dir / "settings.yaml"
    if not settings_path.exists():
        raise FileNotFoundError(f"Config not found: {settings_path}")
    with open(settings_path, encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}

    cfg = _merge(copy.deepcopy(DEFAULTS), loaded)
    cfg["_env"] = _env_overrides()
    return cfg


def resolve_path(cfg: dict, raw: str | Path) -> Path:
    """Relative paths hang off ISLAND_DATA_DIR when set, else the project root."""
    path = Path(raw)
    if path.is_absolute():
        return path
    base = cfg.get("_env", {}).get("data_dir") or PROJECT_ROOT
    return Path(base) / path
