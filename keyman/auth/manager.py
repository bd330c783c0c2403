"""Key manager wiring storage, validation, state and prompting together."""

import asyncio
from typing import Any

import httpx

from keyman.auth.announcements import AnnouncementWatcher
from keyman.auth.models import ValidationOutcome
from keyman.auth.notifications import KeyNotifier
from keyman.auth.prompt import PromptCoordinator
from keyman.auth.state import KeyState
from keyman.auth.storage import KeyFileStorage, TokenStorage
from keyman.auth.validator import RemoteValidator
from keyman.auth.waiters import KeyCallback, Waiter, WaiterMode
from keyman.config.keys import KeySettings
from keyman.core.logging import get_logger


logger = get_logger(__name__)


class KeyManager:
    """Facade over the key state for applications and the CLI.

    Use as an async context manager: entering loads the stored key and starts
    its validation, leaving cancels pending sessions and closes the HTTP
    client when the manager created it.
    """

    def __init__(
        self,
        settings: KeySettings | None = None,
        storage: TokenStorage[Any] | None = None,
        validator: RemoteValidator | None = None,
        http_client: httpx.AsyncClient | None = None,
        notifier: KeyNotifier | None = None,
    ):
        """Initialize the key manager.

        Args:
            settings: Key settings (uses defaults if not provided)
            storage: Storage backend (uses the JSON key file if not provided)
            validator: Remote validator (creates one if not provided)
            http_client: HTTP client handed to a validator created here
            notifier: Receives user-facing messages
        """
        self.settings = settings or KeySettings()
        self.storage = storage or KeyFileStorage(
            self.settings.get_storage_path(),
            legacy_path=self.settings.get_legacy_path(),
        )
        self.validator = validator or RemoteValidator(
            base_url=self.settings.api_base_url,
            http_client=http_client,
            timeout=self.settings.request_timeout,
        )
        self.state = KeyState(self.storage, self.validator, notifier=notifier)
        self.prompt = PromptCoordinator(
            self.state, default_timeout=self.settings.prompt_timeout
        )
        self.announcements = AnnouncementWatcher(self.state)

    async def __aenter__(self) -> "KeyManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def start(self, validate: bool = True) -> None:
        """Load the stored key and begin validating it in the background.

        Args:
            validate: Start the startup validation session. Callers that only
                write a new key can skip the request for the old one.
        """
        await self.state.load()
        if validate:
            self.state.startup_validation()
        logger.debug(
            "key_manager_started",
            storage=self.storage.get_location(),
            validating=validate,
        )

    async def close(self) -> None:
        await self.state.aclose()
        await self.validator.close()

    async def wait_validated(self) -> str | None:
        """Wait for any in-flight validation, then return the usable key if any.

        The session is shared, so cancelling this call leaves it running.
        """
        session = self.state.validation_session
        if session is not None and not session.done():
            try:
                await asyncio.shield(session)
            except asyncio.CancelledError:
                if not session.cancelled():
                    raise
                logger.debug("validation_session_cancelled")
        return self.state.current()

    # Delegates used by applications

    def current(self) -> str | None:
        return self.state.current()

    def has_value(self) -> bool:
        return self.state.has_value()

    async def try_set(self, candidate: str) -> ValidationOutcome:
        return await self.state.try_set(candidate)

    async def replace(self, new_value: str) -> None:
        await self.state.replace(new_value)

    async def get_info(self, candidate: str | None = None) -> ValidationOutcome:
        return await self.state.get_info(candidate)

    async def await_credential(
        self, feature: str = "This feature", timeout: float | None = None
    ) -> str:
        return await self.prompt.await_credential(feature, timeout=timeout)

    def on_key_change(
        self, callback: KeyCallback, mode: WaiterMode = WaiterMode.PERSISTENT
    ) -> Waiter:
        """Register a callback for key changes (persistent by default)."""
        return self.state.waiters.register(callback, mode)
