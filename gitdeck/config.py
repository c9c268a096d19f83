from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "gitdeck"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOG_PATH = CONFIG_DIR / "gitdeck.log"
MODES = ("status", "review")


@dataclass
class AppConfig:
    auth_token: str | None = None
    remote: str = "origin"
    review_cache_ttl_seconds: float = 120
    sequence_timeout_ms: int = 500
    width_ratio: float = 0.6
    height_ratio: float = 0.6
    show_icons: bool = False
    editor: str | None = None
    default_mode: str = "status"

    @staticmethod
    def from_dict(data: dict[str, Any]) -> AppConfig:
        """Create an `AppConfig` instance from a plain dictionary.

        Unknown keys are ignored and missing ones take their defaults, so
        config files written by older versions keep loading.

        Args:
            data: A mapping parsed from JSON.

        Returns:
            A populated `AppConfig` object.
        """
        defaults = AppConfig()
        mode = data.get("default_mode", defaults.default_mode)
        if mode not in MODES:
            mode = defaults.default_mode
        return AppConfig(
            auth_token=data.get("auth_token"),
            remote=data.get("remote") or defaults.remote,
            review_cache_ttl_seconds=float(data.get("review_cache_ttl_seconds", defaults.review_cache_ttl_seconds)),
            sequence_timeout_ms=int(data.get("sequence_timeout_ms", defaults.sequence_timeout_ms)),
            width_ratio=_ratio(data.get("width_ratio"), defaults.width_ratio),
            height_ratio=_ratio(data.get("height_ratio"), defaults.height_ratio),
            show_icons=bool(data.get("show_icons", defaults.show_icons)),
            editor=data.get("editor"),
            default_mode=mode,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize this configuration to a JSON-safe dictionary.

        Returns:
            A dictionary suitable for `json.dump`.
        """
        return {
            "auth_token": self.auth_token,
            "remote": self.remote,
            "review_cache_ttl_seconds": self.review_cache_ttl_seconds,
            "sequence_timeout_ms": self.sequence_timeout_ms,
            "width_ratio": self.width_ratio,
            "height_ratio": self.height_ratio,
            "show_icons": self.show_icons,
            "editor": self.editor,
            "default_mode": self.default_mode,
        }

    def resolve_editor(self) -> str:
        """Editor command: config, then `$VISUAL`, then `$EDITOR`, then `vi`."""
        return self.editor or os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"


def _ratio(value: Any, default: float) -> float:
    try:
        ratio = float(value)
    except (TypeError, ValueError):
        return default
    return ratio if 0.1 <= ratio <= 1.0 else default


def resolve_token(cfg: AppConfig) -> str | None:
    """Find a GitHub token for the API client.

    Checked in order: the config file, `GITHUB_TOKEN`, `GH_TOKEN`, then the
    output of `gh auth token`.

    Args:
        cfg: Loaded application configuration.

    Returns:
        The token, or None when no source provides one.
    """
    if cfg.auth_token:
        return cfg.auth_token
    for name in ("GITHUB_TOKEN", "GH_TOKEN"):
        value = os.environ.get(name)
        if value:
            return value
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, check=False)
    except FileNotFoundError:
        return None
    token = result.stdout.strip()
    return token if result.returncode == 0 and token else None


def ensure_config_dir() -> None:
    """Ensure the configuration directory exists.

    Raises:
        OSError: If the directory cannot be created.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_config() -> AppConfig:
    """Load configuration from `CONFIG_PATH`, creating a default if missing.

    Returns:
        The loaded or newly created `AppConfig` instance.

    Raises:
        OSError: If reading the file fails.
        json.JSONDecodeError: If the file exists but contains invalid JSON.
    """
    ensure_config_dir()
    if not CONFIG_PATH.exists():
        cfg = AppConfig()
        save_config(cfg)
        return cfg
    with CONFIG_PATH.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return AppConfig.from_dict(data)


def save_config(cfg: AppConfig) -> None:
    """Persist configuration to `CONFIG_PATH` as JSON.

    Args:
        cfg: The configuration to save.

    Raises:
        OSError: If writing the file fails.
    """
    ensure_config_dir()
    with CONFIG_PATH.open("w", encoding="utf-8") as f:
        json.dump(cfg.to_dict(), f, indent=2)
