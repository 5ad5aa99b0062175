"""Built-in footprints for the supported AI coding tools."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from types import MappingProxyType


class ToolId(str, Enum):
    CURSOR = "cursor"
    WINDSURF = "windsurf"
    KILOCODE = "kilocode"
    CLAUDE_DEV = "claude-dev"
    COPILOT = "copilot"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | ToolId) -> ToolId:
        """Convert user input to a ToolId, raising ValueError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown AI tool '{value}' (known: {known})") from None

    def __str__(self) -> str:
        return self.value


RULES_PATH = ".rules"
IGNORE_PATH = ".aiignore"
MEMORY_PATH = "memory_bank"
RESERVED_PATHS = (RULES_PATH, IGNORE_PATH, MEMORY_PATH)

BACKUP_DIR_NAME = ".ai-config-backups"
# Written after each switch; records the active profile and the files it wrote.
MANIFEST_NAME = ".ai-config-active.json"

FOOTPRINTS = MappingProxyType(
    {
        ToolId.CURSOR: (
            ".cursorrules",
            ".cursorignore",
            ".cursorindexingignore",
            ".cursor/rules",
        ),
        ToolId.WINDSURF: (
            ".windsurfrules",
            ".codeiumignore",
            ".windsurf/rules",
        ),
        ToolId.KILOCODE: (
            ".kilocode/rules",
            ".kilocodeignore",
            ".kilocodemodes",
        ),
        ToolId.CLAUDE_DEV: (
            ".clinerules",
            ".clineignore",
        ),
        ToolId.COPILOT: (
            ".github/copilot-instructions.md",
            ".github/instructions/*.instructions.md",
        ),
        ToolId.OTHER: RESERVED_PATHS,
    }
)


def footprint_of(tool: ToolId) -> tuple[str, ...]:
    """Return the relative paths that identify a tool's configuration."""
    return FOOTPRINTS[ToolId.parse(tool)]


def all_footprint_paths() -> tuple[str, ...]:
    """Union of every tool's footprint, in catalog order, without duplicates."""
    seen: dict[str, None] = {}
    for paths in FOOTPRINTS.values():
        for p in paths:
            seen.setdefault(p, None)
    return tuple(seen)


def is_pattern(entry: str) -> bool:
    return any(ch in entry for ch in "*?[")


def expand(target_dir: Path, entry: str) -> list[Path]:
    """Resolve a footprint entry to the paths that exist under target_dir.

    Literal entries are checked by exact path; patterns are globbed relative
    to target_dir. Raises OSError if the filesystem check itself fails.
    """
    if is_pattern(entry):
        return sorted(target_dir.glob(entry))
    path = target_dir / entry
    # lstat so a dangling symlink still counts as present
    try:
        path.lstat()
    except FileNotFoundError:
        return []
    except NotADirectoryError:
        return []
    return [path]


def list_tools() -> dict[ToolId, tuple[str, ...]]:
    """Return all catalogued tools and their footprints."""
    return dict(FOOTPRINTS)
