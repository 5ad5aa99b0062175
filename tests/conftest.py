"""Shared test fixtures."""

from datetime import datetime, timedelta

import pytest

from ai_config_switcher.catalog import ToolId
from ai_config_switcher.models import Profile
from ai_config_switcher.store import ProfileStore


@pytest.fixture
def store_path(tmp_path):
    """Return a path for a temporary profile store."""
    return tmp_path / "store" / "profiles.json"


@pytest.fixture
def store(store_path):
    return ProfileStore(store_path)


@pytest.fixture
def workspace(tmp_path):
    """An empty project directory."""
    ws = tmp_path / "project"
    ws.mkdir()
    return ws


@pytest.fixture
def cursor_profile():
    return Profile(
        name="react-cursor",
        ai_tool=ToolId.CURSOR,
        description="React rules for Cursor",
        files={
            ".cursorrules": "use hooks\n",
            ".cursor/rules/react.mdc": "prefer function components\n",
        },
        rules_text="use hooks",
    )


@pytest.fixture
def windsurf_profile():
    return Profile(
        name="py-windsurf",
        ai_tool=ToolId.WINDSURF,
        files={
            ".windsurfrules": "type everything\n",
            ".windsurf/rules/settings.json": {"strict": True, "indent": 4},
        },
        ignore_text="build/\n",
    )


@pytest.fixture
def mixed_workspace(workspace):
    """A project with leftovers from several tools."""
    (workspace / ".cursorrules").write_text("old cursor rules\n")
    (workspace / ".windsurfrules").write_text("old windsurf rules\n")
    rules = workspace / ".kilocode" / "rules"
    rules.mkdir(parents=True)
    (rules / "a.md").write_text("kilo a\n")
    (workspace / "README.md").write_text("# project\n")
    return workspace


class FakeClock:
    """Deterministic, strictly increasing timestamps."""

    def __init__(self, start=datetime(2024, 1, 2, 3, 4, 5)):
        self.now = start

    def __call__(self):
        value = self.now
        self.now += timedelta(seconds=1)
        return value


@pytest.fixture
def clock():
    return FakeClock()
