"""API key commands: get, set, stats, hide, new, watch and wait."""

import asyncio
import contextlib
import sys
from collections.abc import AsyncIterator
from typing import Annotated

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from structlog import get_logger

from keyman.auth import KeyManager, PromptTimeoutError
from keyman.auth.models import KeyAccepted
from keyman.auth.notifications import KeyNotifier
from keyman.cli.helpers import (
    ConsoleNotifier,
    display_key,
    get_rich_toolkit,
    read_lines,
    say_missing,
)
from keyman.config.settings import Settings, get_settings


console = Console()
logger = get_logger(__name__)


def get_key_manager(settings: Settings, notifier: KeyNotifier | None = None) -> KeyManager:
    """Build the key manager used by the commands."""
    return KeyManager(settings=settings.keys, notifier=notifier)


@contextlib.asynccontextmanager
async def open_manager(
    settings: Settings,
    validate: bool = True,
    notifier: KeyNotifier | None = None,
) -> AsyncIterator[KeyManager]:
    """Load the key, optionally start its validation, and close on exit."""
    manager = get_key_manager(settings, notifier)
    try:
        await manager.start(validate=validate)
        yield manager
    finally:
        await manager.close()


def _settings_from_context(ctx: typer.Context) -> Settings:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("settings"), Settings):
        return ctx.obj["settings"]
    return get_settings()


def get_command(ctx: typer.Context) -> None:
    """Display your current API key."""
    toolkit = get_rich_toolkit()
    settings = _settings_from_context(ctx)

    async def run() -> tuple[str | None, bool, bool]:
        async with open_manager(settings, notifier=ConsoleNotifier(toolkit)) as manager:
            key = await manager.wait_validated()
            return key, manager.has_value(), manager.state.hidden

    key, has_value, hidden = asyncio.run(run())

    if key:
        toolkit.print(f"Your API key is {display_key(key, hidden)}", tag="key")
        return

    # A rejected key was already reported by the notifier
    if not has_value:
        say_missing(toolkit)
    raise typer.Exit(1)


def set_command(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="The API key to validate and save")] = "",
) -> None:
    """Set your current API key after checking it with the remote service."""
    toolkit = get_rich_toolkit()
    if not key:
        toolkit.print("Please enter your key with `keyman set <key>`.", tag="error")
        raise typer.Exit(1)

    settings = _settings_from_context(ctx)

    async def run() -> tuple[bool, str, bool]:
        async with open_manager(settings, validate=False) as manager:
            outcome = await manager.try_set(key)
            cause = "" if outcome.accepted else outcome.cause
            return outcome.accepted, cause, manager.state.hidden

    accepted, cause, hidden = asyncio.run(run())

    if accepted:
        toolkit.print(f"Saved your API key as {display_key(key, hidden)}", tag="success")
        return

    toolkit.print("It appears your API key was invalid!", tag="error")
    toolkit.print(f"[dim]{escape(cause)}[/dim]", tag="info")
    raise typer.Exit(1)


def stats_command(
    ctx: typer.Context,
    key: Annotated[
        str | None,
        typer.Argument(help="Key to look up instead of your own"),
    ] = None,
) -> None:
    """View stats about your API key (or another key)."""
    toolkit = get_rich_toolkit()
    settings = _settings_from_context(ctx)
    own = not key

    async def run() -> tuple[KeyAccepted | None, str, bool, bool]:
        async with open_manager(settings, validate=False) as manager:
            if own and not manager.has_value():
                return None, "", False, manager.state.hidden
            outcome = await manager.get_info(key)
            if isinstance(outcome, KeyAccepted):
                return outcome, "", True, manager.state.hidden
            return None, outcome.cause, True, manager.state.hidden

    accepted, cause, had_key, hidden = asyncio.run(run())

    if accepted is None:
        if not had_key:
            say_missing(toolkit)
        elif own:
            toolkit.print("Uh oh! Looks like your API key was invalid!", tag="error")
            toolkit.print(f"[dim]{escape(cause)}[/dim]", tag="info")
        else:
            toolkit.print("Looks like that key is invalid!", tag="error")
            toolkit.print(f"[dim]{escape(cause)}[/dim]", tag="info")
        raise typer.Exit(1)

    info = accepted.info
    table = Table(
        show_header=False,
        box=box.ROUNDED,
        title="API Key Stats",
        title_style="bold white",
    )
    table.add_column("Field", style="green")
    table.add_column("Value", style="cyan")
    key_cell = display_key(accepted.key, hidden) if own else escape(accepted.key)
    table.add_row("Key", key_cell)
    table.add_row("Owner", escape(info.owner))
    table.add_row("Limit", f"{info.limit:,}")
    table.add_row("Queries in the last minute", f"{info.queries_in_past_min:,}")
    table.add_row("Total Queries", f"{info.total_queries:,}")
    console.print(table)


def hide_command(ctx: typer.Context) -> None:
    """Toggle whether your API key is shown in command output."""
    toolkit = get_rich_toolkit()
    settings = _settings_from_context(ctx)

    async def run() -> bool:
        async with open_manager(settings, validate=False) as manager:
            return await manager.state.toggle_hidden()

    if asyncio.run(run()):
        toolkit.print("Your key is now hidden from commands.", tag="success")
    else:
        toolkit.print("Your key is no longer hidden from commands.", tag="warning")


def new_command() -> None:
    """Explain how to get a newly issued API key."""
    toolkit = get_rich_toolkit()
    toolkit.print("Run [bold]/api new[/bold] on the server to issue a new key.", tag="info")
    toolkit.print(
        "Pipe the server output into [bold]keyman watch[/bold] and the key is saved automatically.",
        tag="info",
    )


def watch_command(
    ctx: typer.Context,
    echo: Annotated[
        bool,
        typer.Option("--echo/--no-echo", help="Pass non-announcement lines through to stdout"),
    ] = False,
) -> None:
    """Read lines from stdin and adopt every announced new API key."""
    toolkit = get_rich_toolkit()
    settings = _settings_from_context(ctx)

    async def run() -> int:
        adopted = 0
        async with open_manager(settings, validate=False) as manager:
            async for line in read_lines(sys.stdin):
                key = await manager.announcements.feed(line)
                if key is None:
                    if echo:
                        console.print(line, markup=False, highlight=False)
                    continue
                adopted += 1
                toolkit.print(
                    f"Your new API key is {display_key(key, manager.state.hidden)}",
                    tag="success",
                )
        return adopted

    adopted = asyncio.run(run())
    logger.debug("watch_finished", adopted=adopted)


def wait_command(
    ctx: typer.Context,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Seconds to wait (defaults to keys.prompt_timeout)"),
    ] = None,
    feature: Annotated[
        str,
        typer.Option("--feature", help="Name shown in the 'requires your API key' message"),
    ] = "keyman wait",
) -> None:
    """Wait until a usable API key is available.

    Announcement lines piped on stdin are picked up while waiting.
    """
    toolkit = get_rich_toolkit()
    settings = _settings_from_context(ctx)

    async def run() -> tuple[str, bool]:
        async with open_manager(settings, notifier=ConsoleNotifier(toolkit)) as manager:

            async def watch() -> None:
                async for line in read_lines(sys.stdin):
                    await manager.announcements.feed(line)

            watcher = asyncio.create_task(watch())
            try:
                key = await manager.await_credential(feature, timeout=timeout)
            finally:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher
            return key, manager.state.hidden

    try:
        key, hidden = asyncio.run(run())
    except PromptTimeoutError as e:
        toolkit.print(escape(str(e)), tag="error")
        raise typer.Exit(1) from e

    toolkit.print(f"Your API key is {display_key(key, hidden)}", tag="key")
