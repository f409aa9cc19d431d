"""Typer CLI for autoenv."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, NoReturn

import typer
from result import Err

from autoenv.config import Config
from autoenv.services.shell import ShellKind, hook_script

if TYPE_CHECKING:
    from autoenv.services.container import ServiceContainer

app = typer.Typer(
    name="autoenv",
    help="Automatically load .env files when entering registered project directories.",
    invoke_without_command=True,
    no_args_is_help=False,
)
configure_app = typer.Typer(help="Manage defaults stored beside the project registry.")
app.add_typer(configure_app, name="configure")

ShellOption = Annotated[ShellKind, typer.Option("--shell", help="Shell syntax to emit")]


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output")] = False,
) -> None:
    """Set up logging; show help when no command is given."""
    config = Config.from_env()
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="autoenv %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command()
def hook(shell: Annotated[ShellKind, typer.Argument(help="bash or zsh")]) -> None:
    """Print the hook to eval from your shell rc file."""
    typer.echo(hook_script(shell), nl=False)


@app.command(hidden=True)
def export(shell: Annotated[ShellKind, typer.Argument(help="bash or zsh")]) -> None:
    """Emit unset/export commands for the current directory (called by the hook)."""
    output = asyncio.run(_do_export(Config.from_env(), shell, shell_pid(), os.getcwd()))
    typer.echo(output, nl=False)


@app.command()
def load(
    project: Annotated[
        Path | None,
        typer.Option("--project", "-p", help="Directory to register (defaults to current)"),
    ] = None,
    name: Annotated[str, typer.Option("--name", help="Display name for the project")] = "",
    shell: ShellOption = ShellKind.ZSH,
) -> None:
    """Register a project directory and emit export commands for its .env.

    The output must be applied by the calling shell: eval "$(autoenv load)".
    The function installed by "autoenv hook" does this automatically.
    """
    _require_eval("load")
    directory = os.path.abspath(project or os.getcwd())
    output = asyncio.run(_do_load(Config.from_env(), shell, shell_pid(), directory, name))
    typer.echo(output, nl=False)


@app.command()
def clear(shell: ShellOption = ShellKind.ZSH) -> None:
    """Unset every variable autoenv loaded into this shell.

    The output must be applied by the calling shell: eval "$(autoenv clear)".
    The function installed by "autoenv hook" does this automatically.
    """
    _require_eval("clear")
    output = asyncio.run(_do_clear(Config.from_env(), shell, shell_pid()))
    typer.echo(output, nl=False)


@app.command("list")
def list_projects() -> None:
    """List registered projects."""
    asyncio.run(_do_list(Config.from_env()))


@app.command()
def remove(path: Annotated[Path, typer.Argument(help="Project directory to unregister")]) -> None:
    """Unregister a project directory."""
    asyncio.run(_do_remove(Config.from_env(), os.path.abspath(path)))


@app.command()
def sync(
    target: Annotated[
        str | None,
        typer.Argument(help="github.com/owner/repo, owner/repo, or repo with a default owner"),
    ] = None,
    db: Annotated[bool, typer.Option("--db", help="Sync the project registry replica")] = False,
) -> None:
    """Upload .env values as GitHub secrets, or sync the registry replica with --db."""
    if db:
        asyncio.run(_do_sync_registry(Config.from_env()))
    elif target:
        asyncio.run(_do_sync_secrets(Config.from_env(), target, os.getcwd()))
    else:
        _fail("target required (e.g. autoenv sync github.com/owner/repo) or use --db")


@configure_app.command("set")
def configure_set(key: str, value: str) -> None:
    """Set a default value."""
    asyncio.run(_do_configure_set(Config.from_env(), key, value))


@configure_app.command("get")
def configure_get(key: str) -> None:
    """Print a default value."""
    asyncio.run(_do_configure_get(Config.from_env(), key))


@configure_app.command("list")
def configure_list() -> None:
    """List all defaults."""
    asyncio.run(_do_configure_list(Config.from_env()))


def shell_pid() -> int:
    """The interactive shell's pid: ``AUTOENV_SHELL_PID`` or our parent."""
    override = os.environ.get("AUTOENV_SHELL_PID", "").strip()
    if override.isdigit() and int(override) > 0:
        return int(override)
    return os.getppid()


def _stdout_is_terminal() -> bool:
    return sys.stdout.isatty()


def _require_eval(command: str) -> None:
    """Refuse to change session state when nothing will apply the output."""
    if _stdout_is_terminal():
        _fail(
            f'output must be applied by the shell: eval "$(autoenv {command})", '
            "or install the shell function printed by 'autoenv hook'"
        )


def _fail(message: str) -> NoReturn:
    typer.echo(f"autoenv: {message}", err=True)
    raise typer.Exit(code=1)


@asynccontextmanager
async def _services(config: Config) -> AsyncIterator[ServiceContainer]:
    from autoenv.data.db import StoreUnavailableError
    from autoenv.services.container import ServiceContainer

    try:
        container = await ServiceContainer.create(config)
    except StoreUnavailableError as exc:
        _fail(str(exc))
    try:
        yield container
    finally:
        await container.close()


async def _do_export(config: Config, shell: ShellKind, pid: int, cwd: str) -> str:
    async with _services(config) as services:
        result = await services.export_service.export(shell, pid, cwd)
    if isinstance(result, Err):
        _fail(result.err_value)
    return result.ok_value


async def _do_load(config: Config, shell: ShellKind, pid: int, directory: str, name: str) -> str:
    async with _services(config) as services:
        result = await services.export_service.register(shell, pid, directory, name)
    if isinstance(result, Err):
        _fail(result.err_value)
    project, output = result.ok_value
    count = sum(1 for line in output.splitlines() if line.startswith("export "))
    typer.echo(f"autoenv: registered {project.path} ({count} variables exported)", err=True)
    return output


async def _do_clear(config: Config, shell: ShellKind, pid: int) -> str:
    async with _services(config) as services:
        result = await services.export_service.clear(shell, pid)
    if isinstance(result, Err):
        _fail(result.err_value)
    return result.ok_value


async def _do_list(config: Config) -> None:
    async with _services(config) as services:
        result = await services.project_service.list_projects()
    if isinstance(result, Err):
        _fail(result.err_value)
    projects = result.ok_value
    if not projects:
        typer.echo("No registered projects.")
        return
    _echo_table(
        ("NAME", "PATH", "CREATED"),
        [(p.display_name, p.path, p.created_at) for p in projects],
    )


async def _do_remove(config: Config, path: str) -> None:
    async with _services(config) as services:
        result = await services.project_service.remove_project(path)
    if isinstance(result, Err):
        _fail(result.err_value)
    typer.echo(f"Removed {result.ok_value}")


async def _do_sync_registry(config: Config) -> None:
    async with _services(config) as services:
        result = await services.sync_service.sync_registry()
    if isinstance(result, Err):
        _fail(result.err_value)
    summary = result.ok_value
    typer.echo(
        f"Registry sync complete: pulled {summary.projects_pulled} projects and "
        f"{summary.settings_pulled} defaults, pushed {summary.projects_pushed} "
        f"projects and {summary.settings_pushed} defaults."
    )


async def _do_sync_secrets(config: Config, target: str, cwd: str) -> None:
    async with _services(config) as services:
        result = await services.sync_service.sync_secrets(cwd, target)
    if isinstance(result, Err):
        _fail(result.err_value)
    repo, count = result.ok_value
    typer.echo(f"Synced {count} secrets to {repo}")


async def _do_configure_set(config: Config, key: str, value: str) -> None:
    async with _services(config) as services:
        result = await services.settings_service.set(key, value)
    if isinstance(result, Err):
        _fail(result.err_value)
    typer.echo(f"Set {key} = {value}")


async def _do_configure_get(config: Config, key: str) -> None:
    async with _services(config) as services:
        result = await services.settings_service.get(key)
    if isinstance(result, Err):
        _fail(result.err_value)
    typer.echo(result.ok_value)


async def _do_configure_list(config: Config) -> None:
    async with _services(config) as services:
        result = await services.settings_service.list_settings()
    if isinstance(result, Err):
        _fail(result.err_value)
    settings = result.ok_value
    if not settings:
        typer.echo("No defaults configured.")
        return
    _echo_table(("KEY", "VALUE"), [(s.key, s.value) for s in settings])


def _echo_table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    widths = [max(len(str(cell)) for cell in column) for column in zip(header, *rows, strict=False)]
    for row in (header, *rows):
        cells = [str(cell).ljust(width) for cell, width in zip(row, widths, strict=True)]
        typer.echo("  ".join(cells).rstrip())
