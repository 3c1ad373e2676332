# pylint: disable=too-many-nested-blocks
"""rasterkit.utils.config – user paths and TOML config loader"""

from __future__ import annotations

import os
import pathlib
import tomllib
from functools import lru_cache
from typing import Any, Dict, cast

DEFAULT_CONFIG_DIR = pathlib.Path.home() / ".config" / "rasterkit"
# Allow overriding the config directory at import time via environment variable
CONFIG_DIR = pathlib.Path(os.getenv("RASTERKIT_CONFIG_DIR", str(DEFAULT_CONFIG_DIR))).expanduser()
CONFIG_FILE = CONFIG_DIR / "config.toml"

RESIZE_MODES = ("AUTOMATIC", "FIT", "FILL", "EXACT")
RESIZE_QUALITIES = ("LOW", "MEDIUM", "HIGH", "ULTRA")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_config_path() -> pathlib.Path:
    """Return config file path honoring environment variables."""
    env_file = os.getenv("RASTERKIT_CONFIG_FILE")
    if env_file:
        return pathlib.Path(env_file).expanduser()
    env_dir = os.getenv("RASTERKIT_CONFIG_DIR")
    if env_dir:
        return pathlib.Path(env_dir).expanduser() / "config.toml"
    return CONFIG_FILE


DEFAULTS: Dict[str, Any] = {
    "resize": {
        "mode": "AUTOMATIC",
        "quality": "MEDIUM",
    },
    "batch": {
        "preserve_order": True,
        # 0 lets concurrent.futures pick the worker count
        "elastic_max_workers": 0,
    },
    "watermark": {
        "font_path": "",
        "font_size": 24,
    },
    "logging": {
        "level": "INFO",
    },
}

EXPECTED_SCHEMA: Dict[str, Any] = {
    "resize": {"mode": str, "quality": str},
    "batch": {"preserve_order": bool, "elastic_max_workers": int},
    "watermark": {"font_path": str, "font_size": int},
    "logging": {"level": str},
}

_CHOICES: Dict[tuple[str, str], tuple[str, ...]] = {
    ("resize", "mode"): RESIZE_MODES,
    ("resize", "quality"): RESIZE_QUALITIES,
    ("logging", "level"): LOG_LEVELS,
}


def _validate_config(data: Dict[str, Any]) -> None:
    errors: list[str] = []
    for key, expected in EXPECTED_SCHEMA.items():
        if key not in data:
            data[key] = dict(DEFAULTS[key])
            continue
        value = data[key]
        if not isinstance(value, dict):
            errors.append(f"section '{key}' must be a table")
            data[key] = dict(DEFAULTS[key])
            continue
        for sub, exptype in expected.items():
            if sub not in value:
                value[sub] = DEFAULTS[key][sub]
                continue
            subval = value[sub]
            # bool is an int subclass; reject it where an int is expected
            if not isinstance(subval, exptype) or (exptype is int and isinstance(subval, bool)):
                errors.append(f"'{key}.{sub}' must be {exptype.__name__}")
                value[sub] = DEFAULTS[key][sub]
                continue
            choices = _CHOICES.get((key, sub))
            if choices and subval.upper() not in choices:
                errors.append(f"'{key}.{sub}' must be one of {', '.join(choices)}")
                value[sub] = DEFAULTS[key][sub]
    batch = data["batch"]
    if isinstance(batch.get("elastic_max_workers"), int) and batch["elastic_max_workers"] < 0:
        errors.append("'batch.elastic_max_workers' must be >= 0")
    font_size = data["watermark"].get("font_size")
    if isinstance(font_size, int) and font_size <= 0:
        errors.append("'watermark.font_size' must be > 0")
    if errors:
        raise ValueError("Invalid configuration: " + "; ".join(errors))


@lru_cache(maxsize=1)
def _load_config() -> Dict[str, Any]:
    """Load configuration from TOML and validate."""
    data: Dict[str, Any] = {key: dict(value) for key, value in DEFAULTS.items()}

    cfg_path = get_config_path()
    if cfg_path.exists():
        with cfg_path.open("rb") as fp:
            try:
                loaded_data = tomllib.load(fp)
            except tomllib.TOMLDecodeError as exc:
                raise ValueError(f"Invalid TOML in {cfg_path}: {exc}") from exc

        for key, value in loaded_data.items():
            if key in data and isinstance(data[key], dict) and isinstance(value, dict):
                data[key].update(value)
            else:
                data[key] = value

    _validate_config(data)
    return data


def reload_config() -> None:
    """Drop the cached configuration so the next getter re-reads the file."""
    _load_config.cache_clear()


# public helpers -----------------------------------------------------------


def get_default_resize_mode() -> str:
    resize_config = _load_config().get("resize", {})
    return cast(str, resize_config.get("mode", DEFAULTS["resize"]["mode"])).upper()


def get_default_resize_quality() -> str:
    resize_config = _load_config().get("resize", {})
    return cast(str, resize_config.get("quality", DEFAULTS["resize"]["quality"])).upper()


def get_default_preserve_order() -> bool:
    batch_config = _load_config().get("batch", {})
    return cast(bool, batch_config.get("preserve_order", DEFAULTS["batch"]["preserve_order"]))


def get_elastic_max_workers() -> int | None:
    """Return the worker cap for system-created elastic pools, None for the executor default."""
    batch_config = _load_config().get("batch", {})
    workers = cast(int, batch_config.get("elastic_max_workers", DEFAULTS["batch"]["elastic_max_workers"]))
    return workers or None


def get_default_font_path() -> pathlib.Path | None:
    watermark_config = _load_config().get("watermark", {})
    font_path = cast(str, watermark_config.get("font_path", DEFAULTS["watermark"]["font_path"]))
    if not font_path:
        return None
    return pathlib.Path(font_path).expanduser()


def get_default_font_size() -> int:
    watermark_config = _load_config().get("watermark", {})
    return cast(int, watermark_config.get("font_size", DEFAULTS["watermark"]["font_size"]))


def get_logging_level() -> str:
    logging_config = _load_config().get("logging", {})
    level = logging_config.get("level", DEFAULTS["logging"]["level"])
    if not isinstance(level, str):
        level = DEFAULTS["logging"]["level"]
    return cast(str, level)
