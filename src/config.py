"""
Configuration Management

Environment overrides layered over the packaged TOML defaults.
"""

import os
import sys
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib as tomli
else:  # pragma: no cover
    import tomli  # type: ignore


class Config:
    """Environment configuration."""

    # Storage
    DATA_DIR = os.environ.get("INVENTORY_DATA_DIR")
    STORAGE_BACKEND = os.environ.get("INVENTORY_STORAGE_BACKEND")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_JSON = os.environ.get("LOG_JSON", "false").lower() == "true"
    LOG_FILE = os.environ.get("LOG_FILE")

    @classmethod
    def validate(cls):
        """Validate configuration and raise errors for bad values."""
        if cls.STORAGE_BACKEND and cls.STORAGE_BACKEND not in {"json", "sqlite"}:
            raise ValueError(
                "INVENTORY_STORAGE_BACKEND must be 'json' or 'sqlite', "
                f"got {cls.STORAGE_BACKEND!r}"
            )


def _deep_update(d: Dict[str, Any], u: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict) and isinstance(d.get(k), dict):
            _deep_update(d[k], v)
        else:
            d[k] = v
    return d


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load packaged defaults, a user TOML file, then environment overrides."""
    Config.validate()
    cfg_path = resources.files("config").joinpath("config.default.toml")
    with cfg_path.open("rb") as f:
        config = tomli.load(f)
    if config_path:
        with Path(config_path).open("rb") as f:
            _deep_update(config, tomli.load(f))
    storage = config.setdefault("storage", {})
    if Config.DATA_DIR:
        storage["path"] = Config.DATA_DIR
    if Config.STORAGE_BACKEND:
        storage["backend"] = Config.STORAGE_BACKEND
    return config
