"""keyman command line: ``keyman get|set|stats|hide|new|watch|wait``."""

from pathlib import Path
from typing import Annotated

import typer

from keyman._version import __version__
from keyman.cli.helpers import get_rich_toolkit
from keyman.config.settings import ConfigurationError, Settings, get_settings
from keyman.core.logging import get_logger, setup_logging

from .commands.keys import (
    get_command,
    hide_command,
    new_command,
    set_command,
    stats_command,
    wait_command,
    watch_command,
)


logger = get_logger(__name__)

app = typer.Typer(
    name="keyman",
    help="Store, validate and wait for your API key.",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


def _show_version(value: bool) -> None:
    if not value:
        return
    get_rich_toolkit().print(f"keyman {__version__}", tag="version")
    raise typer.Exit()


def _configure_logging(settings: Settings) -> None:
    options = settings.logging
    setup_logging(
        log_level_name=options.level,
        log_file=options.file,
        fmt=options.format,
        show_path=options.show_path,
        show_time=options.show_time,
        console_width=options.console_width,
    )


@app.callback()
def app_main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=_show_version,
            is_eager=True,
            help="Show the keyman version and exit.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="TOML file to read instead of the discovered one",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
) -> None:
    """Store, validate and wait for your API key."""
    try:
        settings = get_settings(config_path=config)
    except ConfigurationError as e:
        get_rich_toolkit().print(str(e), tag="error")
        raise typer.Exit(1) from e

    _configure_logging(settings)
    ctx.obj = {"settings": settings, "config_path": config}
    logger.debug("cli_started", command=ctx.invoked_subcommand, config=str(config or ""))


app.command(name="get")(get_command)
app.command(name="set")(set_command)
app.command(name="stats")(stats_command)
app.command(name="hide")(hide_command)
app.command(name="new")(new_command)
app.command(name="watch")(watch_command)
app.command(name="wait")(wait_command)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
