"""Persistent, global store of named profiles."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from ai_config_switcher.errors import (
    CorruptStoreError,
    DuplicateNameError,
    InvalidProfileError,
    NotFoundError,
)
from ai_config_switcher.models import Profile

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "ai-config-switcher"
STORE_FILE = CONFIG_DIR / "profiles.json"
STORE_VERSION = 1


def write_atomic(path: Path, text: str) -> None:
    """Replace path with text so readers see either the old or new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class ProfileStore:
    """Mapping of profile name to Profile, persisted as one JSON document.

    Every mutation rewrites the whole document through a temp file and
    ``os.replace``. Saves from the same process are serialised by a lock;
    the last writer wins.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else STORE_FILE
        self._lock = threading.RLock()
        # Top-level keys written by other versions, carried through saves.
        self._extra: dict[str, Any] = {}

    def load(self) -> dict[str, Profile]:
        """Read the document. A missing document is created empty."""
        with self._lock:
            if not self.path.exists():
                logger.info("No profile store at %s, creating an empty one", self.path)
                self.save({})
                return {}

            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise CorruptStoreError(f"Profile store {self.path} is not valid JSON: {e}") from e
            except OSError as e:
                raise CorruptStoreError(f"Profile store {self.path} cannot be read: {e}") from e

            if not isinstance(data, dict) or not isinstance(data.get("profiles", {}), dict):
                raise CorruptStoreError(f"Profile store {self.path} has an unexpected layout.")

            version = data.get("version", STORE_VERSION)
            if version != STORE_VERSION:
                logger.warning(
                    "Profile store %s has version %s, this build writes %s",
                    self.path,
                    version,
                    STORE_VERSION,
                )

            profiles = {}
            for name, record in data.get("profiles", {}).items():
                try:
                    profiles[name] = Profile.from_dict(name, record)
                except (ValueError, TypeError) as e:
                    raise CorruptStoreError(
                        f"Profile '{name}' in {self.path} is malformed: {e}"
                    ) from e

            self._extra = {k: v for k, v in data.items() if k not in ("version", "profiles")}
            return profiles

    def save(self, profiles: dict[str, Profile]) -> None:
        """Persist the full mapping in one atomic replace."""
        with self._lock:
            data: dict[str, Any] = dict(self._extra)
            data["version"] = STORE_VERSION
            data["profiles"] = {name: p.to_dict() for name, p in profiles.items()}
            write_atomic(self.path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        logger.debug("Saved %d profile(s) to %s", len(profiles), self.path)

    def get(self, name: str) -> Profile:
        profiles = self.load()
        if name not in profiles:
            raise NotFoundError(f"Profile '{name}' not found.")
        return profiles[name]

    def names(self) -> list[str]:
        return list(self.load())

    def upsert(self, name: str, profile: Profile, create_only: bool = False) -> Profile:
        """Store profile under name, overwriting unless create_only is set."""
        if profile.name != name:
            profile.name = name
        profile.validate()

        with self._lock:
            profiles = self.load()
            if create_only and name in profiles:
                raise DuplicateNameError(f"Profile '{name}' already exists.")
            profiles[name] = profile
            self.save(profiles)
        logger.info("Stored profile '%s' (%s)", name, profile.ai_tool)
        return profile

    def remove(self, name: str) -> bool:
        """Delete a profile. Returns False if it was not stored."""
        with self._lock:
            profiles = self.load()
            if name not in profiles:
                return False
            del profiles[name]
            self.save(profiles)
        logger.info("Removed profile '%s'", name)
        return True

    def rename(self, old: str, new: str) -> Profile:
        if not new or not new.strip():
            raise InvalidProfileError("Profile name must not be empty.")

        with self._lock:
            profiles = self.load()
            if old not in profiles:
                raise NotFoundError(f"Profile '{old}' not found.")
            if new in profiles:
                raise DuplicateNameError(f"Profile '{new}' already exists.")
            # Rebuild so the renamed profile keeps its position.
            renamed = {}
            for name, p in profiles.items():
                if name == old:
                    p.name = new
                    renamed[new] = p
                else:
                    renamed[name] = p
            self.save(renamed)
        logger.info("Renamed profile '%s' to '%s'", old, new)
        return renamed[new]
