"""User settings for ai-config-switcher."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ai_config_switcher.errors import CorruptStoreError
from ai_config_switcher.store import CONFIG_DIR, STORE_FILE, write_atomic

CONFIG_FILE = CONFIG_DIR / "config.json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Settings:
    """Root settings object."""

    store_path: str = str(STORE_FILE)
    backup: bool = True
    log_level: str = "WARNING"

    @property
    def store_file(self) -> Path:
        return Path(self.store_path).expanduser()


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from disk. Returns defaults if the file doesn't exist."""
    path = path or CONFIG_FILE
    if not path.exists():
        return Settings()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CorruptStoreError(f"Settings file {path} is not valid JSON: {e}") from e
    except OSError as e:
        raise CorruptStoreError(f"Settings file {path} cannot be read: {e}") from e
    if not isinstance(data, dict):
        raise CorruptStoreError(f"Settings file {path} must contain an object.")

    defaults = Settings()
    level = str(data.get("log_level", defaults.log_level)).upper()
    if level not in LOG_LEVELS:
        level = defaults.log_level

    return Settings(
        store_path=data.get("store_path", defaults.store_path),
        backup=bool(data.get("backup", defaults.backup)),
        log_level=level,
    )


def save_settings(settings: Settings, path: Path | None = None) -> None:
    """Save settings to disk."""
    path = path or CONFIG_FILE

    data: dict[str, Any] = {
        "store_path": settings.store_path,
        "backup": settings.backup,
    }
    if settings.log_level != "WARNING":
        data["log_level"] = settings.log_level

    write_atomic(path, json.dumps(data, indent=2) + "\n")
