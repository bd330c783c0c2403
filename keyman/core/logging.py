"""Structured logging configuration for keyman.

All modules log through structlog with event-style names
(``logger.info("key_saved", key=...)``). The stdlib logging module is the
transport: structlog events are handed to stdlib handlers and rendered by a
``structlog.stdlib.ProcessorFormatter`` so that third-party loggers (httpx)
end up in the same output.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


# Custom theme for the logger
CUSTOM_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "critical": "bold white on red",
        "debug": "dim white",
        "timestamp": "dim cyan",
        "path": "dim blue",
    }
)

NOISY_LOGGERS = ("httpx", "httpcore")


class StderrHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property  # type: ignore[override]
    def stream(self) -> Any:
        return sys.stderr

    @stream.setter
    def stream(self, value: Any) -> None:
        pass


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _drop_handler_fields(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    # RichHandler already prints time and level
    event_dict.pop("timestamp", None)
    event_dict.pop("level", None)
    return event_dict


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def _resolve_format(fmt: str) -> str:
    fmt = fmt.lower()
    if fmt == "auto":
        return "rich" if sys.stderr.isatty() else "plain"
    return fmt


def setup_logging(
    json_logs: bool = False,
    log_level_name: str = "INFO",
    log_file: str | Path | None = None,
    fmt: str = "auto",
    show_path: bool = False,
    show_time: bool = True,
    console_width: int | None = None,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        json_logs: Force JSON lines on stderr regardless of ``fmt``
        log_level_name: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of an additional JSON log file
        fmt: Console format: 'rich', 'plain', 'json' or 'auto'
        show_path: Whether to show the module path (rich format only)
        show_time: Whether to show timestamps (rich format only)
        console_width: Optional console width override (rich format only)

    Returns:
        A logger bound to the ``keyman`` namespace
    """
    level = getattr(logging, log_level_name.upper(), logging.INFO)
    console_format = "json" if json_logs else _resolve_format(fmt)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler: logging.Handler
    if console_format == "rich":
        handler = RichHandler(
            console=Console(theme=CUSTOM_THEME, width=console_width, stderr=True),
            show_time=show_time,
            show_path=show_path,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=_shared_processors(),
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _drop_handler_fields,
                    structlog.dev.ConsoleRenderer(colors=False),
                ],
            )
        )
    elif console_format == "json":
        handler = StderrHandler()
        handler.setFormatter(_json_formatter())
    else:
        handler = StderrHandler()
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=_shared_processors(),
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.dev.ConsoleRenderer(colors=False),
                ],
            )
        )

    handlers: list[logging.Handler] = [handler]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(_json_formatter())
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(level, logging.WARNING))

    return get_logger("keyman")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance with the given name.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
