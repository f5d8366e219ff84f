"""Configuration loading for pdfdelta.

The configuration is a JSON file listing the tracked locations plus optional
engine settings::

    {
        "locations": [
            {"current_path": "docs", "last_path": "baseline", "diff_path": "diffs"}
        ],
        "render_width": 500,
        "render_workers": "auto",
        "poll_interval_seconds": 60,
        "private_key_path": "key.pem"
    }

Relative paths are resolved against the directory holding the file. The file
location and the signing key can also be given through environment variables,
which may come from a ``.env`` file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from .core.types import TrackedLocation
from .engine import RenderSettings, default_worker_count
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PDFDELTA_CONFIG"
PRIVATE_KEY_ENV_VAR = "PDFDELTA_PRIVATE_KEY"
DEFAULT_CONFIG_PATH = Path("pdfdelta.json")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "render_width": 500,
    "max_height": 10000,
    "rotate_landscape": True,
    "overlay_scale": 5,
    "marker_width_px": 10,
    "render_workers": "auto",
    "match_workers": "auto",
    "poll_interval_seconds": 60,
    "private_key_path": None,
}

_LOCATION_KEYS = ("current_path", "last_path", "diff_path")


@dataclass(frozen=True)
class AppConfig:
    locations: Tuple[TrackedLocation, ...]
    render: RenderSettings
    poll_interval: timedelta
    private_key_path: Optional[Path] = None


def load_env() -> None:
    """Load variables from a ``.env`` file if present."""

    try:
        load_dotenv()
    except Exception:
        # a broken .env file should not prevent startup
        logger.warning("Unable to load .env file", exc_info=True)


def config_path_from_env(default: Path = DEFAULT_CONFIG_PATH) -> Path:
    value = os.getenv(CONFIG_ENV_VAR)
    return Path(value) if value else default


def _resolve(base: Path, value: Any, what: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{what} must be a non-empty string")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def _parse_location(base: Path, item: Any, index: int) -> TrackedLocation:
    if not isinstance(item, dict):
        raise ConfigError(f"Location {index} must be an object")
    missing = [key for key in _LOCATION_KEYS if key not in item]
    if missing:
        raise ConfigError(f"Location {index} is missing {', '.join(missing)}")
    return TrackedLocation(
        current_dir=_resolve(base, item["current_path"], f"Location {index} current_path"),
        baseline_dir=_resolve(base, item["last_path"], f"Location {index} last_path"),
        output_dir=_resolve(base, item["diff_path"], f"Location {index} diff_path"),
    )


def _workers(value: Any, key: str) -> int:
    if value == "auto":
        return default_worker_count()
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer or 'auto'")
    return value


def _positive_int(settings: Dict[str, Any], key: str) -> int:
    value = settings[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer")
    return value


def parse_config(data: Any, base_dir: Path) -> AppConfig:
    """Validate raw configuration ``data``; relative paths use ``base_dir``."""

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")
    locations = data.get("locations")
    if not isinstance(locations, list) or not locations:
        raise ConfigError("Configuration needs a non-empty 'locations' list")

    settings = DEFAULT_SETTINGS.copy()
    settings.update({key: value for key, value in data.items() if key in DEFAULT_SETTINGS})

    render = RenderSettings(
        target_width=_positive_int(settings, "render_width"),
        max_height=_positive_int(settings, "max_height"),
        rotate_landscape=bool(settings["rotate_landscape"]),
        overlay_scale=_positive_int(settings, "overlay_scale"),
        marker_width_px=_positive_int(settings, "marker_width_px"),
        render_workers=_workers(settings["render_workers"], "render_workers"),
        match_workers=_workers(settings["match_workers"], "match_workers"),
    )

    key_value = os.getenv(PRIVATE_KEY_ENV_VAR) or settings["private_key_path"]
    private_key_path = _resolve(base_dir, key_value, "private_key_path") if key_value else None

    return AppConfig(
        locations=tuple(_parse_location(base_dir, item, i) for i, item in enumerate(locations)),
        render=render,
        poll_interval=timedelta(seconds=_positive_int(settings, "poll_interval_seconds")),
        private_key_path=private_key_path,
    )


def load_config(path: str | Path | None = None) -> AppConfig:
    """Read and validate the JSON configuration at ``path``."""

    config_path = Path(path) if path is not None else config_path_from_env()
    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"No configuration found at {config_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to read configuration {config_path}: {exc}") from exc
    config = parse_config(data, config_path.resolve().parent)
    logger.debug("Loaded %d location(s) from %s", len(config.locations), config_path)
    return config
