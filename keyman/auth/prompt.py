"""Waiting for a usable key, up to a deadline."""

import asyncio

from keyman.auth.exceptions import PromptTimeoutError
from keyman.auth.state import KeyState
from keyman.auth.waiters import WaiterMode
from keyman.core.logging import get_logger


logger = get_logger(__name__)

DEFAULT_PROMPT_TIMEOUT = 30.0


class PromptCoordinator:
    """Lets features block until a usable key exists.

    Each call is independent: it registers its own single-fire waiter and
    runs its own deadline, so one key change releases every pending caller.
    """

    def __init__(self, state: KeyState, default_timeout: float = DEFAULT_PROMPT_TIMEOUT):
        self.state = state
        self.default_timeout = default_timeout

    async def await_credential(
        self, feature: str = "This feature", timeout: float | None = None
    ) -> str:
        """Resolve with a usable key.

        1. A currently valid key is returned immediately.
        2. Otherwise an in-flight validation session is awaited first.
        3. If there is still no usable key, the user is told that ``feature``
           needs one and a single-fire waiter is registered.

        Steps 2 and 3 together are bounded by ``timeout`` seconds.

        Args:
            feature: Name shown to the user in the "key required" message
            timeout: Seconds to wait; defaults to ``default_timeout``

        Raises:
            PromptTimeoutError: No usable key became available in time
        """
        key = self.state.current()
        if key:
            return key

        deadline = self.default_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._resolve(feature), timeout=deadline)
        except TimeoutError as e:
            logger.info("key_prompt_timeout", feature=feature, timeout=deadline)
            raise PromptTimeoutError(feature, deadline) from e

    async def _resolve(self, feature: str) -> str:
        session = self.state.validation_session
        if session is not None and not session.done():
            try:
                await asyncio.shield(session)
            except asyncio.CancelledError:
                if session.cancelled():
                    logger.debug("validation_session_cancelled", feature=feature)
                else:
                    raise
            except Exception as e:
                logger.warning("validation_session_failed", feature=feature, error=str(e))

        key = self.state.current()
        if key:
            return key

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()

        def settle(new_key: str) -> None:
            # The deadline may already have cancelled the future
            if not future.done():
                future.set_result(new_key)

        waiter = self.state.waiters.register(settle, WaiterMode.SINGLE)
        self.state.notifier.key_required(feature)
        logger.debug("key_prompt_waiting", feature=feature)
        try:
            return await future
        finally:
            if future.cancelled():
                self.state.waiters.discard(waiter)
