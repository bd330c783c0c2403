"""Out-of-band user notifications about the key."""

from typing import Protocol

from keyman.core.logging import get_logger


logger = get_logger(__name__)

MAKE_KEY_HINT = "Set one with `keyman set <key>` or generate a new one with `keyman new`."


class KeyNotifier(Protocol):
    """Receives the messages the user should see about their key."""

    def key_required(self, feature: str) -> None:
        """A feature is blocked until a usable key is available."""
        ...

    def key_missing(self) -> None:
        """No key is stored at all."""
        ...

    def key_invalid(self) -> None:
        """A key is stored but the remote authority rejected it."""
        ...


class LogNotifier:
    """Notifier that reports through the structured logger."""

    def key_required(self, feature: str) -> None:
        logger.warning("key_required", feature=feature, hint=MAKE_KEY_HINT)

    def key_missing(self) -> None:
        logger.warning("key_missing", hint=MAKE_KEY_HINT)

    def key_invalid(self) -> None:
        logger.warning("key_invalid", hint=MAKE_KEY_HINT)
