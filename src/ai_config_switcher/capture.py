"""Build a profile from the AI config files already in a directory."""

from __future__ import annotations

import logging
from pathlib import Path

from ai_config_switcher.catalog import (
    IGNORE_PATH,
    MEMORY_PATH,
    RESERVED_PATHS,
    RULES_PATH,
    ToolId,
    footprint_of,
)
from ai_config_switcher.detect import detect, present_paths
from ai_config_switcher.errors import InvalidTargetError
from ai_config_switcher.models import Profile

logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.warning("Skipping binary file %s", path)
        return None
    except OSError as e:
        raise InvalidTargetError(f"Cannot read {path}: {e}") from e


def collect_files(base_dir: Path, entries: list[str]) -> dict[str, str]:
    """Collect text files matched by footprint entries, keyed by relative path."""
    files = {}
    for path in present_paths(base_dir, entries):
        if path.is_dir():
            candidates = sorted(f for f in path.rglob("*") if f.is_file())
        elif path.is_file():
            candidates = [path]
        else:
            continue
        for f in candidates:
            content = _read_text(f)
            if content is not None:
                files[f.relative_to(base_dir).as_posix()] = content
    return files


def capture(
    target_dir: Path,
    name: str,
    tool: ToolId | str | None = None,
    description: str = "",
) -> Profile:
    """Snapshot the current config of target_dir as an unsaved Profile.

    Without an explicit tool, the first detected non-generic tool is used,
    falling back to ``other``.
    """
    target_dir = Path(target_dir)
    if not target_dir.is_dir():
        raise InvalidTargetError(f"Not a directory: {target_dir}")

    if tool is None:
        detected = detect(target_dir)
        tool = next((t for t in ToolId if t in detected and t is not ToolId.OTHER), ToolId.OTHER)
    tool = ToolId.parse(tool)

    entries = [e for e in footprint_of(tool) if e not in RESERVED_PATHS]
    files = collect_files(target_dir, entries)

    texts = {}
    for rel in RESERVED_PATHS:
        path = target_dir / rel
        if path.is_file():
            texts[rel] = _read_text(path) or ""
        elif path.exists():
            logger.warning("Not capturing %s: only a plain file is supported", path)

    profile = Profile(
        name=name,
        ai_tool=tool,
        description=description,
        files=files,
        rules_text=texts.get(RULES_PATH, ""),
        ignore_text=texts.get(IGNORE_PATH, ""),
        memory_text=texts.get(MEMORY_PATH, ""),
    )
    profile.validate()
    logger.info("Captured %d file(s) from %s as '%s'", len(files), target_dir, name)
    return profile
