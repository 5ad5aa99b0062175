"""Tests for the CLI interface."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from ai_config_switcher.catalog import ToolId
from ai_config_switcher.cli import cli
from ai_config_switcher.config import Settings, save_settings
from ai_config_switcher.errors import WriteError
from ai_config_switcher.models import Profile
from ai_config_switcher.store import ProfileStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, store_path, tmp_path):
    """Run the CLI against a temporary store and settings file."""
    config_path = tmp_path / "config.json"

    def _invoke(*args, **kwargs):
        return runner.invoke(
            cli,
            ["--store", str(store_path), "--config", str(config_path), *args],
            **kwargs,
        )

    return _invoke


class TestVersion:
    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "ai-config-switcher" in result.output


class TestTools:
    def test_lists_catalog(self, invoke):
        result = invoke("tools")
        assert result.exit_code == 0
        assert "cursor" in result.output
        assert ".windsurfrules" in result.output


class TestCreateAndList:
    def test_list_empty(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "No profiles yet" in result.output

    def test_create_then_list(self, invoke, store):
        result = invoke("create", "react-cursor", "--tool", "cursor", "--rules", "use hooks", "-d", "React")
        assert result.exit_code == 0, result.output
        assert "created" in result.output

        result = invoke("list")
        assert "react-cursor" in result.output
        assert "(cursor)" in result.output
        assert store.get("react-cursor").rules_text == "use hooks"

    def test_create_with_file(self, invoke, store, tmp_path):
        src = tmp_path / "rules.md"
        src.write_text("be terse\n")
        result = invoke("create", "w", "-t", "windsurf", "--file", f".windsurfrules={src}")
        assert result.exit_code == 0, result.output
        assert store.get("w").files == {".windsurfrules": "be terse\n"}

    def test_create_bad_file_spec(self, invoke):
        result = invoke("create", "w", "-t", "windsurf", "--file", "nonsense")
        assert result.exit_code == 2
        assert "REL=SOURCE" in result.output

    def test_create_duplicate(self, invoke):
        invoke("create", "p", "--tool", "cursor")
        result = invoke("create", "p", "--tool", "cursor")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_create_rejects_reserved_file(self, invoke, tmp_path):
        src = tmp_path / "r"
        src.write_text("x")
        result = invoke("create", "p", "-t", "other", "--file", f".rules={src}")
        assert result.exit_code == 1
        assert "reserved" in result.output

    def test_unknown_tool(self, invoke):
        result = invoke("create", "p", "--tool", "emacs")
        assert result.exit_code == 2


class TestShowDeleteRename:
    @pytest.fixture(autouse=True)
    def seeded(self, store, cursor_profile):
        store.upsert("react-cursor", cursor_profile)

    def test_show(self, invoke):
        result = invoke("show", "react-cursor")
        assert result.exit_code == 0
        assert ".cursor/rules/react.mdc" in result.output
        assert "React rules for Cursor" in result.output

    def test_show_missing(self, invoke):
        result = invoke("show", "nope")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_delete_confirmed(self, invoke, store):
        result = invoke("delete", "react-cursor", input="y\n")
        assert result.exit_code == 0
        assert "deleted" in result.output
        assert store.names() == []

    def test_delete_declined(self, invoke, store):
        result = invoke("delete", "react-cursor", input="n\n")
        assert "Kept" in result.output
        assert store.names() == ["react-cursor"]

    def test_delete_missing(self, invoke):
        result = invoke("delete", "nope", "--yes")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rename(self, invoke, store):
        result = invoke("rename", "react-cursor", "cursor-react")
        assert result.exit_code == 0
        assert store.names() == ["cursor-react"]


class TestCapture:
    def test_capture_and_force(self, invoke, store, mixed_workspace):
        result = invoke("capture", "snap", str(mixed_workspace), "--tool", "kilocode")
        assert result.exit_code == 0, result.output
        assert store.get("snap").ai_tool is ToolId.KILOCODE

        result = invoke("capture", "snap", str(mixed_workspace))
        assert result.exit_code == 1
        assert "already exists" in result.output

        result = invoke("capture", "snap", str(mixed_workspace), "--force")
        assert result.exit_code == 0
        assert store.get("snap").ai_tool is ToolId.CURSOR


    def test_unreadable_file_is_reported(self, invoke, store, workspace):
        (workspace / ".cursorrules").write_text("x")
        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            result = invoke("capture", "snap", str(workspace))
        assert result.exit_code == 1
        assert "denied" in result.output
        assert store.names() == []


class TestDetect:
    def test_detect(self, invoke, store, workspace, cursor_profile):
        (workspace / ".cursorrules").write_text("x")
        store.upsert("react-cursor", cursor_profile)
        result = invoke("detect", str(workspace))
        assert result.exit_code == 0
        assert "Tools: cursor" in result.output
        assert "Matching profile: react-cursor" in result.output

    def test_detect_nothing(self, invoke, workspace):
        result = invoke("detect", str(workspace))
        assert "No AI tool config found" in result.output


class TestSwitch:
    def test_switch(self, invoke, store, workspace):
        (workspace / ".windsurfrules").write_text("old")
        store.upsert("react-cursor", Profile(name="react-cursor", ai_tool="cursor", rules_text="use hooks"))

        result = invoke("switch", "react-cursor", str(workspace), "--no-backup")
        assert result.exit_code == 0, result.output
        assert "Switched to 'react-cursor'" in result.output
        assert "Removed: .windsurfrules" in result.output
        assert (workspace / ".rules").read_text() == "use hooks"
        assert not (workspace / ".windsurfrules").exists()

        result = invoke("detect", str(workspace))
        assert "Active profile: react-cursor" in result.output

    def test_switch_backs_up_by_default(self, invoke, store, workspace, cursor_profile):
        (workspace / ".windsurfrules").write_text("old")
        store.upsert("react-cursor", cursor_profile)
        result = invoke("switch", "react-cursor", str(workspace))
        assert "Backup:" in result.output

        result = invoke("backups", str(workspace))
        assert "backup-" in result.output

    def test_settings_can_disable_backup(self, invoke, store, workspace, cursor_profile, tmp_path):
        save_settings(Settings(backup=False), tmp_path / "config.json")
        store.upsert("react-cursor", cursor_profile)
        result = invoke("switch", "react-cursor", str(workspace))
        assert result.exit_code == 0
        assert "Backup:" not in result.output

    def test_switch_unknown_profile(self, invoke, workspace):
        result = invoke("switch", "nope", str(workspace))
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_switch_missing_directory(self, invoke, store, tmp_path, cursor_profile):
        store.upsert("react-cursor", cursor_profile)
        result = invoke("switch", "react-cursor", str(tmp_path / "nope"))
        assert result.exit_code == 1
        assert "Directory not found" in result.output

    @patch("ai_config_switcher.cli.Switcher")
    def test_write_failure_mentions_backup(self, mock_switcher, invoke, store, workspace, cursor_profile):
        store.upsert("react-cursor", cursor_profile)
        err = WriteError("Could not write .rules: disk full", backup_path=workspace / "bk")
        mock_switcher.return_value.switch_by_name.side_effect = err
        result = invoke("switch", "react-cursor", str(workspace))
        assert result.exit_code == 1
        assert "disk full" in result.output
        assert "Backup:" in result.output


class TestBackups:
    def test_no_backups(self, invoke, workspace):
        result = invoke("backups", str(workspace))
        assert "No backups" in result.output


class TestCorruptStore:
    def test_corrupt_store_is_reported(self, invoke, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{oops")
        result = invoke("list")
        assert result.exit_code == 1
        assert "not valid JSON" in result.output
        assert store_path.read_text() == "{oops"
