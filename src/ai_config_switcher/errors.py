"""Exceptions raised by the profile store and the switch engine."""

from __future__ import annotations

from pathlib import Path


class AiConfigError(Exception):
    """Base class for every error surfaced to the user."""


class InvalidTargetError(AiConfigError):
    """The target directory is missing or not a directory."""


class NotFoundError(AiConfigError):
    """No profile is stored under the requested name."""


class DuplicateNameError(AiConfigError):
    """A profile with that name already exists."""


class CorruptStoreError(AiConfigError):
    """A persisted document exists but cannot be parsed."""


class InvalidProfileError(AiConfigError, ValueError):
    """A profile record breaks a naming or path rule."""


class SwitchInProgressError(AiConfigError):
    """Another switch is already running against the same directory."""


class SwitchError(AiConfigError):
    """A switch failed part-way. Carries where it stopped."""

    def __init__(
        self,
        message: str,
        target_dir: Path | None = None,
        state: str | None = None,
        backup_path: Path | None = None,
    ):
        super().__init__(message)
        self.target_dir = target_dir
        self.state = state
        self.backup_path = backup_path
        self.restored = False


class BackupError(SwitchError):
    """Backing up failed; the target directory was not modified."""


class ClearError(SwitchError):
    """Removing existing tool files failed; the directory may be mixed."""


class WriteError(SwitchError):
    """Writing the profile files failed; the directory may be partial."""
