"""CLI interface for ai-config-switcher."""

from __future__ import annotations

import functools
import logging
from pathlib import Path

import click

from ai_config_switcher import __version__
from ai_config_switcher.capture import capture
from ai_config_switcher.catalog import ToolId, list_tools
from ai_config_switcher.config import CONFIG_FILE, load_settings
from ai_config_switcher.detect import detect, find_matching_profile, read_manifest
from ai_config_switcher.errors import AiConfigError, ClearError, WriteError
from ai_config_switcher.models import Profile
from ai_config_switcher.store import ProfileStore
from ai_config_switcher.switcher import Switcher, list_backups

TOOL_CHOICE = click.Choice([t.value for t in ToolId], case_sensitive=False)
DIR_ARG = click.argument("directory", default=".", type=click.Path(path_type=Path))


def styled(text: str, **kwargs) -> str:
    return click.style(text, **kwargs)


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def success(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='green')}")


def warn(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='yellow')}")


def error(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='red')}")


def heading(msg: str) -> None:
    click.echo(f"\n  {styled(msg, bold=True)}")


def reports_errors(f):
    """Print AiConfigError as a red message and exit with status 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except AiConfigError as e:
            error(str(e))
            if isinstance(e, (ClearError, WriteError)):
                if e.backup_path is None:
                    warn("No backup was taken; the directory may be left half switched.")
                elif e.restored:
                    warn(f"Previous files restored from {e.backup_path}")
                else:
                    warn(f"Directory may be half switched. Backup: {e.backup_path}")
            raise SystemExit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="ai-config-switcher")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="AI_CONFIG_SWITCHER_STORE",
    default=None,
    help="Profile store file.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="AI_CONFIG_SWITCHER_CONFIG",
    default=None,
    help=f"Settings file (default {CONFIG_FILE}).",
)
@click.pass_context
@reports_errors
def cli(ctx: click.Context, verbose: bool, store_path: Path | None, config_path: Path | None) -> None:
    """Switch AI coding tool configs in a project directory."""
    settings = load_settings(config_path)
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["settings"] = settings
    ctx.obj["store"] = ProfileStore(store_path or settings.store_file)


def _store(ctx: click.Context) -> ProfileStore:
    return ctx.obj["store"]


@cli.command("tools")
def tools_cmd() -> None:
    """Show supported AI tools and the files that identify them."""
    click.echo()
    heading("Supported tools")
    click.echo()

    for tool, paths in list_tools().items():
        info(f"{styled(tool.value, bold=True)}")
        info(f"  Files: {', '.join(paths)}")
        click.echo()


@cli.command("list")
@click.pass_context
@reports_errors
def list_cmd(ctx: click.Context) -> None:
    """List stored profiles."""
    profiles = _store(ctx).load()
    if not profiles:
        warn("No profiles yet. Try: ai-config-switcher capture <name>")
        return

    click.echo()
    for name, profile in profiles.items():
        line = f"{styled(name, bold=True)} ({profile.ai_tool.value})"
        if profile.description:
            line += f" - {profile.description}"
        info(line)
    click.echo()


@cli.command()
@click.argument("name")
@click.pass_context
@reports_errors
def show(ctx: click.Context, name: str) -> None:
    """Show one profile."""
    profile = _store(ctx).get(name)

    heading(f"{profile.name} ({profile.ai_tool.value})")
    if profile.description:
        info(profile.description)
    for rel in profile.materialized_files():
        info(f"  {styled(rel, fg='cyan')}")
    click.echo()


def _parse_file_option(value: str) -> tuple[str, str]:
    rel, sep, src = value.partition("=")
    if not sep or not rel or not src:
        raise click.BadParameter(f"expected REL=SOURCE, got '{value}'", param_hint="--file")
    try:
        return rel, Path(src).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        raise click.BadParameter(f"cannot read {src}: {e}", param_hint="--file") from e


@cli.command()
@click.argument("name")
@click.option("--tool", "-t", "tool", type=TOOL_CHOICE, required=True, help="AI tool.")
@click.option("--description", "-d", default="", help="Free-text description.")
@click.option("--rules", default="", help="Text for .rules")
@click.option("--ignore", "ignore_text", default="", help="Text for .aiignore")
@click.option("--memory", default="", help="Text for memory_bank")
@click.option(
    "--file",
    "-f",
    "file_specs",
    multiple=True,
    help="REL=SOURCE: store SOURCE's content at REL. Repeatable.",
)
@click.pass_context
@reports_errors
def create(
    ctx: click.Context,
    name: str,
    tool: str,
    description: str,
    rules: str,
    ignore_text: str,
    memory: str,
    file_specs: tuple[str, ...],
) -> None:
    """Create a new profile."""
    files = dict(_parse_file_option(spec) for spec in file_specs)
    profile = Profile(
        name=name,
        ai_tool=ToolId.parse(tool),
        description=description,
        files=files,
        rules_text=rules,
        ignore_text=ignore_text,
        memory_text=memory,
    )
    _store(ctx).upsert(name, profile, create_only=True)
    success(f"Profile '{name}' created.")


@cli.command("capture")
@click.argument("name")
@DIR_ARG
@click.option("--tool", "-t", "tool", type=TOOL_CHOICE, default=None, help="Override detection.")
@click.option("--description", "-d", default="", help="Free-text description.")
@click.option("--force", is_flag=True, help="Overwrite an existing profile.")
@click.pass_context
@reports_errors
def capture_cmd(
    ctx: click.Context,
    name: str,
    directory: Path,
    tool: str | None,
    description: str,
    force: bool,
) -> None:
    """Save the AI config currently in DIRECTORY as a profile."""
    profile = capture(directory, name, tool=tool, description=description)
    _store(ctx).upsert(name, profile, create_only=not force)
    success(f"Captured {len(profile.materialized_files())} file(s) as '{name}' ({profile.ai_tool.value}).")


@cli.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.pass_context
@reports_errors
def delete(ctx: click.Context, name: str, yes: bool) -> None:
    """Delete a profile."""
    if not yes and not click.confirm(f"  Delete profile '{name}'?", default=False):
        info("Kept.")
        return
    if _store(ctx).remove(name):
        success(f"Profile '{name}' deleted.")
    else:
        error(f"Profile '{name}' not found.")
        raise SystemExit(1)


@cli.command()
@click.argument("old")
@click.argument("new")
@click.pass_context
@reports_errors
def rename(ctx: click.Context, old: str, new: str) -> None:
    """Rename a profile."""
    _store(ctx).rename(old, new)
    success(f"Profile '{old}' renamed to '{new}'.")


@cli.command("detect")
@DIR_ARG
@click.pass_context
@reports_errors
def detect_cmd(ctx: click.Context, directory: Path) -> None:
    """Show which AI tools are configured in DIRECTORY."""
    tools = detect(directory)
    heading(f"{directory.resolve()}")
    if not tools:
        info("No AI tool config found.")
        click.echo()
        return

    info(f"Tools: {', '.join(sorted(t.value for t in tools))}")

    manifest = read_manifest(directory)
    if manifest and manifest.get("profile"):
        info(f"Active profile: {styled(str(manifest['profile']), fg='green')}")

    match = find_matching_profile(directory, _store(ctx).load())
    if match:
        info(f"Matching profile: {match.name}")
    click.echo()


@cli.command()
@click.argument("name")
@DIR_ARG
@click.option(
    "--backup/--no-backup",
    default=None,
    help="Back up existing AI config files first (default from settings).",
)
@click.pass_context
@reports_errors
def switch(ctx: click.Context, name: str, directory: Path, backup: bool | None) -> None:
    """Switch DIRECTORY to profile NAME."""
    if backup is None:
        backup = ctx.obj["settings"].backup

    result = Switcher().switch_by_name(_store(ctx), directory, name, backup=backup)

    if result.backup_path:
        info(f"Backup: {result.backup_path}")
    for rel in result.removed:
        info(f"Removed: {styled(rel, fg='yellow')}")
    for rel in result.written:
        info(f"Wrote: {styled(rel, fg='cyan')}")
    success(f"Switched to '{name}'.")


@cli.command()
@DIR_ARG
@reports_errors
def backups(directory: Path) -> None:
    """List backups taken in DIRECTORY, newest first."""
    found = list_backups(directory)
    if not found:
        info("No backups.")
        return
    for path in found:
        info(str(path))
