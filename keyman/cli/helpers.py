"""CLI helper utilities for keyman."""

import asyncio
import threading
from collections.abc import AsyncIterator
from typing import TextIO

from rich.markup import escape
from rich_toolkit import RichToolkit, RichToolkitTheme
from rich_toolkit.styles import TaggedStyle

from keyman.auth.models import format_key
from keyman.auth.notifications import MAKE_KEY_HINT


TOOLKIT_THEME = {
    "tag.title": "black on #e5b400",
    "tag": "black on #c99a00",
    "text": "white",
    "placeholder": "grey70",
    "selected": "#c99a00",
    "progress": "on #c99a00",
    "result": "grey85",
    "error": "bold red",
    "success": "bold green",
    "warning": "bold yellow",
    "info": "bright_blue",
    "key": "bold cyan",
    "version": "cyan",
}


def get_rich_toolkit() -> RichToolkit:
    """Toolkit printing ``[tag] message`` lines in the keyman palette."""
    return RichToolkit(
        theme=RichToolkitTheme(style=TaggedStyle(tag_width=9), theme=TOOLKIT_THEME)
    )


def display_key(key: str, hidden: bool) -> str:
    """Key (or its hidden placeholder) escaped for rich markup."""
    return f"[cyan]{escape(format_key(key, hidden))}[/cyan]"


def say_make_key(toolkit: RichToolkit) -> None:
    toolkit.print(escape(MAKE_KEY_HINT), tag="info")


def say_missing(toolkit: RichToolkit) -> None:
    toolkit.print("You do not have an API key set!", tag="error")
    say_make_key(toolkit)


def say_invalid(toolkit: RichToolkit) -> None:
    toolkit.print("Your current API key is invalid!", tag="error")
    say_make_key(toolkit)


class ConsoleNotifier:
    """Notifier that talks to the user on the terminal."""

    def __init__(self, toolkit: RichToolkit | None = None):
        self.toolkit = toolkit or get_rich_toolkit()

    def key_required(self, feature: str) -> None:
        self.toolkit.print(
            f"[bold]{escape(feature)}[/bold] requires your API key to operate!",
            tag="warning",
        )
        say_make_key(self.toolkit)

    def key_missing(self) -> None:
        say_missing(self.toolkit)

    def key_invalid(self) -> None:
        say_invalid(self.toolkit)


async def read_lines(stream: TextIO) -> AsyncIterator[str]:
    """Yield lines from a blocking text stream without blocking the event loop.

    A daemon thread does the reading, so an abandoned reader never keeps the
    process alive.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    def push(item: str | None) -> bool:
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # Event loop already closed
            return False
        return True

    def pump() -> None:
        for line in stream:
            if not push(line):
                return
        push(None)

    threading.Thread(target=pump, name="keyman-line-reader", daemon=True).start()

    while (line := await queue.get()) is not None:
        yield line.rstrip("\r\n")
