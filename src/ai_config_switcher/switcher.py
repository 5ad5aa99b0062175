"""Switch engine: back up, clear, and rewrite a directory's AI config files."""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

from ai_config_switcher.catalog import (
    BACKUP_DIR_NAME,
    MANIFEST_NAME,
    all_footprint_paths,
)
from ai_config_switcher.detect import manifest_files, present_paths
from ai_config_switcher.errors import (
    BackupError,
    ClearError,
    InvalidTargetError,
    NotFoundError,
    SwitchError,
    SwitchInProgressError,
    WriteError,
)
from ai_config_switcher.models import Profile
from ai_config_switcher.store import ProfileStore, write_atomic

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%f"


class SwitchState(str, Enum):
    IDLE = "idle"
    BACKING_UP = "backing-up"
    CLEARING = "clearing"
    WRITING = "writing"
    DONE = "done"
    ERROR = "error"


@dataclass
class SwitchResult:
    """Outcome of one switch."""

    target_dir: Path
    profile_name: str
    state: SwitchState = SwitchState.IDLE
    backup_path: Path | None = None
    removed: list[str] = field(default_factory=list)
    written: list[str] = field(default_factory=list)


# Held for the whole of a switch, keyed by resolved absolute directory.
# Entries drop out once no switch holds a reference to the lock.
_dir_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
_dir_locks_guard = threading.Lock()


@contextmanager
def directory_lock(target_dir: Path) -> Iterator[None]:
    """Exclusive access to target_dir; fails fast if already held."""
    key = str(Path(target_dir).resolve())
    with _dir_locks_guard:
        lock = _dir_locks.get(key)
        if lock is None:
            lock = _dir_locks[key] = threading.Lock()
    if not lock.acquire(blocking=False):
        raise SwitchInProgressError(f"A switch is already running in {key}.")
    try:
        yield
    finally:
        lock.release()


def _check_target(target_dir: Path | str) -> Path:
    target = Path(target_dir).expanduser()
    if not target.exists():
        raise InvalidTargetError(f"Directory not found: {target}")
    if not target.is_dir():
        raise InvalidTargetError(f"Not a directory: {target}")
    return target.resolve()


def managed_paths(target_dir: Path, extra: list[str] | None = None) -> list[Path]:
    """Existing paths a switch owns: every tool footprint, plus whatever the
    previous switch wrote and its manifest."""
    entries = list(all_footprint_paths())
    entries.extend(manifest_files(target_dir))
    entries.extend(extra or [])
    entries.append(MANIFEST_NAME)
    return present_paths(target_dir, entries)


def _rel(target_dir: Path, path: Path) -> str:
    return path.relative_to(target_dir).as_posix()


def _copy_path(src: Path, dst: Path) -> None:
    """Copy a file, directory, or symlink, keeping symlinks as links."""
    dst.parent.mkdir(parents=True, exist_ok=True)
    if src.is_symlink():
        # Already copied as part of an enclosing directory.
        if dst.is_symlink():
            dst.unlink()
        os.symlink(os.readlink(src), dst)
    elif src.is_dir():
        shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dst)


def _remove_path(path: Path) -> bool:
    """Remove a file, symlink, or tree. Returns False if it was already gone."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    return True


def list_backups(target_dir: Path) -> list[Path]:
    """Backup directories under target_dir, newest first."""
    root = Path(target_dir) / BACKUP_DIR_NAME
    if not root.is_dir():
        return []
    backups = [p for p in root.iterdir() if p.is_dir() and p.name.startswith(BACKUP_PREFIX)]
    return sorted(backups, key=lambda p: p.name, reverse=True)


class Switcher:
    """Replaces the live AI config files in a directory with one profile's.

    A switch moves through IDLE -> BACKING_UP -> CLEARING -> WRITING -> DONE,
    or ends in ERROR. Only one switch may run per directory at a time.

    on_change is called with the target directory once the directory has
    been touched, whether the switch succeeded or not.
    """

    def __init__(
        self,
        on_change: Callable[[Path], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.on_change = on_change
        self.clock = clock

    def switch_to(
        self,
        target_dir: Path | str,
        profile: Profile,
        backup: bool = True,
    ) -> SwitchResult:
        if not isinstance(profile, Profile):
            raise NotFoundError(
                f"Profile {profile!r} is not a resolved record; look it up in the store first."
            )
        target = _check_target(target_dir)
        profile.validate()

        with directory_lock(target):
            return self._run(target, profile, backup)

    def switch_by_name(
        self,
        store: ProfileStore,
        target_dir: Path | str,
        name: str,
        backup: bool = True,
    ) -> SwitchResult:
        return self.switch_to(target_dir, store.get(name), backup=backup)

    def _enter(self, result: SwitchResult, state: SwitchState) -> None:
        logger.debug(
            "switch %s in %s: %s -> %s",
            result.profile_name,
            result.target_dir,
            result.state.value,
            state.value,
        )
        result.state = state

    def _run(self, target: Path, profile: Profile, backup: bool) -> SwitchResult:
        result = SwitchResult(target_dir=target, profile_name=profile.name)
        paths = managed_paths(target)

        if backup:
            self._enter(result, SwitchState.BACKING_UP)
            try:
                result.backup_path = self._backup(target, paths)
            except BackupError:
                self._enter(result, SwitchState.ERROR)
                raise

        try:
            self._enter(result, SwitchState.CLEARING)
            result.removed = self._clear(target, paths)
            self._enter(result, SwitchState.WRITING)
            self._write(target, profile, result.written)
        except SwitchError as e:
            failed_in = result.state
            self._enter(result, SwitchState.ERROR)
            e.target_dir = target
            e.state = failed_in.value
            e.backup_path = result.backup_path
            if result.backup_path is not None:
                e.restored = self._restore(target, result.backup_path, result.written)
            raise
        finally:
            self._notify(target)

        self._enter(result, SwitchState.DONE)
        logger.info(
            "Switched %s to '%s' (%d removed, %d written)",
            target,
            profile.name,
            len(result.removed),
            len(result.written),
        )
        return result

    def _backup(self, target: Path, paths: list[Path]) -> Path:
        stamp = self.clock().strftime(TIMESTAMP_FORMAT)
        dest = target / BACKUP_DIR_NAME / f"{BACKUP_PREFIX}{stamp}"
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.mkdir()
        except FileExistsError:
            raise BackupError(
                f"Backup {dest} already exists; refusing to overwrite it.",
                target_dir=target,
                state=SwitchState.BACKING_UP.value,
            ) from None
        except OSError as e:
            raise BackupError(
                f"Could not create backup directory {dest}: {e}",
                target_dir=target,
                state=SwitchState.BACKING_UP.value,
            ) from e

        for path in paths:
            try:
                _copy_path(path, dest / _rel(target, path))
            except (OSError, ValueError) as e:
                shutil.rmtree(dest, ignore_errors=True)
                raise BackupError(
                    f"Could not back up {_rel(target, path)}: {e}",
                    target_dir=target,
                    state=SwitchState.BACKING_UP.value,
                ) from e

        logger.info("Backed up %d path(s) to %s", len(paths), dest)
        return dest

    def _clear(self, target: Path, paths: list[Path]) -> list[str]:
        removed = []
        for path in paths:
            try:
                if _remove_path(path):
                    removed.append(_rel(target, path))
            except (OSError, ValueError) as e:
                raise ClearError(f"Could not remove {_rel(target, path)}: {e}") from e
        return removed

    def _write(self, target: Path, profile: Profile, written: list[str]) -> None:
        """Write the profile's files, appending each path to written once it is opened."""
        for rel, text in profile.materialized_files().items():
            dst = target / rel
            try:
                data = text.encode("utf-8")
            except UnicodeEncodeError as e:
                raise WriteError(f"Could not encode {rel}: {e}") from e
            try:
                dst.parent.mkdir(parents=True, exist_ok=True)
                if not dst.parent.resolve().is_relative_to(target):
                    raise WriteError(f"{rel} resolves outside {target}")
                with open(dst, "wb") as fh:
                    # From here on a failure leaves a partial file to clean up.
                    written.append(rel)
                    fh.write(data)
            except (OSError, ValueError) as e:
                raise WriteError(f"Could not write {rel}: {e}") from e

        manifest = {
            "profile": profile.name,
            "aiTool": profile.ai_tool.value,
            "files": written,
            "switchedAt": self.clock().isoformat(timespec="seconds"),
        }
        try:
            write_atomic(target / MANIFEST_NAME, json.dumps(manifest, indent=2) + "\n")
        except (OSError, ValueError) as e:
            raise WriteError(f"Could not write {MANIFEST_NAME}: {e}") from e

    def _restore(self, target: Path, backup_path: Path, written: list[str]) -> bool:
        """Put the backed-up files back after a failed clear or write."""
        logger.warning("Restoring %s from %s", target, backup_path)
        try:
            for path in managed_paths(target, written):
                _remove_path(path)
            for item in backup_path.iterdir():
                _copy_path(item, target / item.name)
        except OSError as e:
            logger.error("Restore of %s from %s failed: %s", target, backup_path, e)
            return False
        return True

    def _notify(self, target: Path) -> None:
        if self.on_change is not None:
            self.on_change(target)
