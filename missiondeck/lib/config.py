import copy
import shutil
from functools import lru_cache
from pathlib import Path

import yaml

from . import paths


def get_default_config_path() -> Path:
    return paths.package_root() / "config.yaml"


def config_file() -> Path:
    """Return config file path in <root>/.missiondeck/"""
    return paths.dot_dir() / "config.yaml"


def clear_cache():
    load_config.cache_clear()
    _defaults.cache_clear()


@lru_cache(maxsize=1)
def _defaults() -> dict:
    with open(get_default_config_path()) as f:
        return yaml.safe_load(f) or {}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate_config(cfg: dict) -> None:
    """Validate config structure. Fail fast on invalid types."""
    if not isinstance(cfg, dict):
        raise ValueError(f"Config must be a dict, got {type(cfg).__name__}")

    sections = ("thresholds", "watcher", "monitor", "broadcast", "subscriber", "content", "api")
    for section in sections:
        if section in cfg and not isinstance(cfg[section], dict):
            raise ValueError(f"Config '{section}' must be a dict")

    for status, levels in cfg.get("thresholds", {}).items():
        if not isinstance(levels, dict) or not {"yellow", "red"} <= set(levels):
            raise ValueError(f"Threshold '{status}' needs yellow and red hours")
        if levels["yellow"] > levels["red"]:
            raise ValueError(f"Threshold '{status}': yellow must not exceed red")


@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load config.yaml merged over the packaged defaults."""
    path = config_file()
    user_cfg: dict = {}
    if path.exists():
        with open(path) as f:
            user_cfg = yaml.safe_load(f) or {}
        _validate_config(user_cfg)
    return _merge(_defaults(), user_cfg)


def init_config() -> Path:
    """Initialize <root>/.missiondeck/config.yaml from defaults if missing."""
    target = config_file()
    if target.exists():
        return target

    target.parent.mkdir(parents=True, exist_ok=True)

    default_config_path = get_default_config_path()
    if not default_config_path.exists():
        raise FileNotFoundError(f"Default config not found at {default_config_path}")

    shutil.copy(default_config_path, target)
    return target


def thresholds(cfg: dict | None = None) -> dict[str, tuple[float, float]]:
    """Per-status (yellow, red) alert thresholds in hours."""
    cfg = cfg if cfg is not None else load_config()
    return {
        status: (float(levels["yellow"]), float(levels["red"]))
        for status, levels in cfg.get("thresholds", {}).items()
    }


def section(name: str, cfg: dict | None = None) -> dict:
    cfg = cfg if cfg is not None else load_config()
    return cfg.get(name) or {}
