"""Profile records and their document representation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Union

from ai_config_switcher.catalog import (
    BACKUP_DIR_NAME,
    IGNORE_PATH,
    MANIFEST_NAME,
    MEMORY_PATH,
    RESERVED_PATHS,
    RULES_PATH,
    ToolId,
)
from ai_config_switcher.errors import InvalidProfileError

FileContent = Union[str, dict, list]

# Fields understood by this version; anything else in a record is kept in
# Profile.extra and written back unchanged.
_KNOWN_FIELDS = ("description", "aiTool", "files", "rulesText", "ignoreText", "memoryText")


@dataclass
class Profile:
    """A named bundle of one AI tool's configuration files."""

    name: str
    ai_tool: ToolId
    description: str = ""
    files: dict[str, FileContent] = field(default_factory=dict)
    rules_text: str = ""
    ignore_text: str = ""
    memory_text: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.ai_tool = ToolId.parse(self.ai_tool)

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidProfileError("Profile name must not be empty.")
        for rel in self.files:
            check_relative_path(rel)
            first = PurePosixPath(normalize_path(rel)).parts[0]
            if first in RESERVED_PATHS:
                raise InvalidProfileError(
                    f"'{rel}' is reserved; use the rules/ignore/memory text instead."
                )
            if first in (BACKUP_DIR_NAME, MANIFEST_NAME):
                raise InvalidProfileError(f"'{rel}' is managed by the switcher itself.")

    def materialized_files(self) -> dict[str, str]:
        """Every path this profile writes, mapped to its rendered text.

        Declared files come first, then the reserved files whose text is set.
        """
        out = {normalize_path(rel): render(content) for rel, content in self.files.items()}
        for rel, text in (
            (RULES_PATH, self.rules_text),
            (IGNORE_PATH, self.ignore_text),
            (MEMORY_PATH, self.memory_text),
        ):
            if text:
                out[rel] = text
        return out

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "description": self.description,
                "aiTool": self.ai_tool.value,
                "files": dict(self.files),
                "rulesText": self.rules_text,
                "ignoreText": self.ignore_text,
                "memoryText": self.memory_text,
            }
        )
        return data

    @classmethod
    def from_dict(cls, name: str, d: dict) -> Profile:
        if not isinstance(d, dict):
            raise ValueError(f"record for '{name}' is not an object")
        files = d.get("files") or {}
        if not isinstance(files, dict):
            raise ValueError(f"'files' of '{name}' is not an object")
        return cls(
            name=name,
            ai_tool=ToolId.parse(d.get("aiTool", ToolId.OTHER.value)),
            description=d.get("description", "") or "",
            files=dict(files),
            rules_text=d.get("rulesText", "") or "",
            ignore_text=d.get("ignoreText", "") or "",
            memory_text=d.get("memoryText", "") or "",
            extra={k: v for k, v in d.items() if k not in _KNOWN_FIELDS},
        )


def render(content: FileContent) -> str:
    """Text is written verbatim; structured values become formatted JSON."""
    if isinstance(content, str):
        return content
    return json.dumps(content, indent=2, sort_keys=True) + "\n"


def normalize_path(rel: str) -> str:
    return PurePosixPath(rel.replace("\\", "/")).as_posix()


def check_relative_path(rel: str) -> None:
    """Reject paths that are empty, absolute, or climb out of the target."""
    if not rel or not rel.strip():
        raise InvalidProfileError("File path must not be empty.")
    posix = PurePosixPath(rel.replace("\\", "/"))
    if posix.is_absolute() or PureWindowsPath(rel).is_absolute() or PureWindowsPath(rel).drive:
        raise InvalidProfileError(f"File path '{rel}' must be relative.")
    if ".." in posix.parts:
        raise InvalidProfileError(f"File path '{rel}' must not contain '..'.")
    if posix.as_posix() == ".":
        raise InvalidProfileError(f"File path '{rel}' does not name a file.")
