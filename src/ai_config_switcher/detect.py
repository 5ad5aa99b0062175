"""Read-only inspection of which tools are configured in a directory."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Mapping

from ai_config_switcher.catalog import (
    FOOTPRINTS,
    MANIFEST_NAME,
    RESERVED_PATHS,
    ToolId,
    expand,
)
from ai_config_switcher.errors import InvalidProfileError
from ai_config_switcher.models import Profile, check_relative_path

logger = logging.getLogger(__name__)


def _safe_expand(target_dir: Path, entry: str) -> list[Path]:
    try:
        return expand(target_dir, entry)
    except OSError as e:
        # Detection is advisory: an unreadable path counts as absent.
        logger.warning("Could not check %s in %s: %s", entry, target_dir, e)
        return []


def read_manifest(target_dir: Path) -> dict | None:
    """Return the record of the last switch in target_dir, if readable."""
    path = Path(target_dir) / MANIFEST_NAME
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: not an object", path)
        return None
    return data


def manifest_files(target_dir: Path, manifest: dict | None = None) -> list[str]:
    """Safe relative paths the last switch recorded as written."""
    if manifest is None:
        manifest = read_manifest(target_dir)
    if not manifest:
        return []
    files = []
    for rel in manifest.get("files", []):
        try:
            check_relative_path(rel)
        except (InvalidProfileError, TypeError, AttributeError):
            logger.warning("Ignoring unsafe path %r in %s", rel, MANIFEST_NAME)
            continue
        files.append(rel)
    return files


def _manifest_tool(manifest: dict) -> ToolId | None:
    try:
        return ToolId.parse(manifest.get("aiTool", ""))
    except ValueError:
        return None


def detect(target_dir: Path) -> set[ToolId]:
    """Return the tools configured under target_dir.

    A tool counts once any of its own footprint paths exists. The reserved
    files (.rules, .aiignore, memory_bank) are written for every tool, so they
    are credited to the tool recorded by the last switch, and to ``other``
    only when no switch accounts for them.
    """
    target_dir = Path(target_dir)
    try:
        if not target_dir.is_dir():
            return set()
    except OSError as e:
        logger.warning("Could not inspect %s: %s", target_dir, e)
        return set()

    found = set()
    for tool, footprint in FOOTPRINTS.items():
        for entry in footprint:
            if entry in RESERVED_PATHS:
                continue
            if _safe_expand(target_dir, entry):
                found.add(tool)
                break

    manifest = read_manifest(target_dir)
    recorded = set(manifest_files(target_dir, manifest)) if manifest else set()
    if manifest and any(_safe_expand(target_dir, rel) for rel in recorded):
        tool = _manifest_tool(manifest)
        if tool is not None:
            found.add(tool)

    reserved = [rel for rel in RESERVED_PATHS if _safe_expand(target_dir, rel)]
    if any(rel not in recorded for rel in reserved):
        found.add(ToolId.OTHER)

    logger.debug("Detected %s in %s", sorted(t.value for t in found), target_dir)
    return found


def present_paths(target_dir: Path, entries: Iterable[str]) -> list[Path]:
    """List the existing paths matched by entries, without duplicates."""
    target_dir = Path(target_dir)
    seen: dict[Path, None] = {}
    for entry in entries:
        for p in _safe_expand(target_dir, entry):
            seen.setdefault(p, None)
    return list(seen)


def find_matching_profile(
    target_dir: Path, profiles: Mapping[str, Profile]
) -> Profile | None:
    """First profile, in mapping order, whose tool is detected.

    When several profiles share a detected tool the pick is arbitrary.
    """
    tools = detect(target_dir)
    if not tools:
        return None
    for profile in profiles.values():
        if profile.ai_tool in tools:
            return profile
    return None
