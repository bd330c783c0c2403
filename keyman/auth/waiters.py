"""Registry of callbacks waiting for a key to become usable."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from keyman.core.logging import get_logger


logger = get_logger(__name__)

KeyCallback = Callable[[str], None]


class WaiterMode(str, Enum):
    """How long a waiter stays registered."""

    SINGLE = "single"
    PERSISTENT = "persistent"


@dataclass(eq=False)
class Waiter:
    callback: KeyCallback
    mode: WaiterMode = WaiterMode.SINGLE

    @property
    def single(self) -> bool:
        return self.mode is WaiterMode.SINGLE


class WaiterRegistry:
    """Ordered list of waiters notified whenever a key becomes usable.

    Single-fire waiters are called at most once and dropped after the
    notification pass that called them. Persistent waiters stay registered
    for the lifetime of the registry.
    """

    def __init__(self) -> None:
        self._waiters: list[Waiter] = []

    def __len__(self) -> int:
        return len(self._waiters)

    def register(
        self, callback: KeyCallback, mode: WaiterMode = WaiterMode.SINGLE
    ) -> Waiter:
        """Append a waiter.

        Args:
            callback: Called with the new key
            mode: SINGLE to fire once, PERSISTENT to fire on every change
        """
        waiter = Waiter(callback=callback, mode=mode)
        self._waiters.append(waiter)
        logger.debug("waiter_registered", mode=mode.value, waiters=len(self._waiters))
        return waiter

    def discard(self, waiter: Waiter) -> bool:
        """Drop a waiter whose caller stopped waiting before it fired.

        Returns:
            Whether the waiter was still registered
        """
        try:
            self._waiters.remove(waiter)
        except ValueError:
            return False
        return True

    def notify_all(self, key: str) -> int:
        """Invoke every registered waiter with ``key`` in registration order.

        A failing callback is logged and does not stop the others. Waiters
        registered while the pass runs are neither called nor pruned by it.

        Returns:
            Number of waiters invoked
        """
        snapshot = list(self._waiters)
        for waiter in snapshot:
            try:
                waiter.callback(key)
            except Exception as e:
                logger.error(
                    "waiter_callback_failed",
                    callback=getattr(waiter.callback, "__qualname__", repr(waiter.callback)),
                    error=str(e),
                    exc_info=e,
                )

        fired = {waiter for waiter in snapshot if waiter.single}
        self._waiters = [waiter for waiter in self._waiters if waiter not in fired]
        return len(snapshot)
