"""The single source of truth for the managed API key."""

import asyncio
from typing import Any

from keyman.auth.exceptions import CredentialsInvalidError, CredentialsStorageError
from keyman.auth.models import StoredKey, ValidationOutcome, mask_key
from keyman.auth.notifications import KeyNotifier, LogNotifier
from keyman.auth.storage.base import TokenStorage
from keyman.auth.validator import RemoteValidator
from keyman.auth.waiters import WaiterRegistry
from keyman.core.logging import get_logger


logger = get_logger(__name__)


class KeyState:
    """Holds the key, its validity and the in-flight validation sessions.

    Every write to the key goes through this class. ``replace`` and an
    accepted ``try_set`` update value and validity together, notify waiters
    and persist under one lock, so no other mutation can interleave with a
    notification pass. The remote request itself runs outside the lock.

    Validity is fail-closed: a freshly loaded key reads as unusable until the
    startup validation accepts it.
    """

    def __init__(
        self,
        storage: TokenStorage[StoredKey] | None,
        validator: RemoteValidator,
        waiters: WaiterRegistry | None = None,
        notifier: KeyNotifier | None = None,
    ):
        """Initialize the key state.

        Args:
            storage: Backend the key record is loaded from and saved to;
                None keeps the key in memory only
            validator: Remote validator used for untrusted keys
            waiters: Registry notified when a key becomes usable
            notifier: Receives user-facing messages
        """
        self._storage = storage
        self._validator = validator
        self.waiters = waiters if waiters is not None else WaiterRegistry()
        self.notifier: KeyNotifier = notifier if notifier is not None else LogNotifier()

        self._key = ""
        self._valid = False
        self._hidden = False

        self._lock = asyncio.Lock()
        self._in_flight: dict[str, asyncio.Task[ValidationOutcome]] = {}
        self._startup_started = False
        self._startup_session: asyncio.Task[str | None] | None = None
        self._set_session: asyncio.Task[ValidationOutcome] | None = None

    # ==================== Queries ====================

    def current(self) -> str | None:
        """Return the key only while it is known to be valid."""
        if self._valid and self._key:
            return self._key
        return None

    def has_value(self) -> bool:
        """Whether any key is stored, valid or not."""
        return bool(self._key)

    @property
    def key(self) -> str:
        """The stored key regardless of validity."""
        return self._key

    @property
    def is_valid(self) -> bool:
        return self._valid

    @property
    def hidden(self) -> bool:
        return self._hidden

    @property
    def validation_session(self) -> "asyncio.Future[Any] | None":
        """The session a waiter should await before prompting.

        An explicit ``try_set`` still in flight takes precedence over the
        startup session.
        """
        if self._set_session is not None and not self._set_session.done():
            return self._set_session
        return self._startup_session

    # ==================== Loading ====================

    async def load(self) -> None:
        """Load the key record from storage.

        A missing, unreadable or corrupt record is treated as "no key".
        """
        record: StoredKey | None = None
        if self._storage is not None:
            try:
                record = await self._storage.load()
            except (CredentialsStorageError, CredentialsInvalidError) as e:
                logger.error("key_load_failed", error=str(e), exc_info=e)
                record = None

        if record is None:
            record = StoredKey()

        self._key = record.key
        self._hidden = record.hidden
        self._valid = False
        logger.debug("key_loaded", has_key=bool(self._key), hidden=self._hidden)

    def startup_validation(self) -> "asyncio.Task[str | None] | None":
        """Start the one-off validation of the loaded key.

        The session is created on the first call only, and only when a key is
        stored; later calls return the same task. It resolves to the key when
        accepted and to None otherwise.
        """
        if not self._startup_started:
            self._startup_started = True
            if self._key:
                self._startup_session = asyncio.create_task(
                    self._run_startup_validation(self._key),
                    name="keyman-startup-validation",
                )
        return self._startup_session

    async def _run_startup_validation(self, key: str) -> str | None:
        outcome = await self.validate(key)
        async with self._lock:
            if self._key != key:
                # Replaced while the request was in flight; the newer key wins
                return self.current()

            if outcome.accepted:
                self._valid = True
                notified = self.waiters.notify_all(key)
                logger.info(
                    "startup_validation_accepted",
                    key=mask_key(key),
                    waiters_notified=notified,
                )
                return key

            self._valid = False

        logger.warning("startup_validation_rejected", key=mask_key(key), cause=outcome.cause)
        self.notifier.key_invalid()
        return None

    # ==================== Validation ====================

    async def validate(self, candidate: str | None) -> ValidationOutcome:
        """Validate a candidate, sharing one request between concurrent callers.

        Does not change state.
        """
        if not candidate:
            return await self._validator.validate(candidate)

        task = self._in_flight.get(candidate)
        if task is None:
            task = asyncio.create_task(self._validator.validate(candidate))
            self._in_flight[candidate] = task

            def _forget(done: "asyncio.Task[ValidationOutcome]") -> None:
                if self._in_flight.get(candidate) is done:
                    del self._in_flight[candidate]

            task.add_done_callback(_forget)
        else:
            logger.debug("key_validation_joined", key=mask_key(candidate))

        # Shielded so a cancelled caller does not cancel the shared request
        return await asyncio.shield(task)

    async def get_info(self, candidate: str | None = None) -> ValidationOutcome:
        """Look up usage information for ``candidate`` or the stored key.

        When the stored key itself is rejected it is marked invalid.
        """
        checking = candidate or self._key
        outcome = await self.validate(checking)
        if not outcome.accepted and checking and checking == self._key:
            self.invalidate()
        return outcome

    # ==================== Mutations ====================

    async def replace(self, new_value: str) -> None:
        """Adopt a key from a trusted source without validating it.

        Sets the key and marks it valid, notifies all waiters in registration
        order, drops single-fire waiters and persists the record.
        """
        if not new_value:
            logger.warning("key_replace_ignored", reason="empty")
            return

        async with self._lock:
            self._key = new_value
            self._valid = True
            notified = self.waiters.notify_all(new_value)
            await self._persist()

        logger.info("key_replaced", key=mask_key(new_value), waiters_notified=notified)

    async def try_set(self, candidate: str) -> ValidationOutcome:
        """Validate an untrusted key and adopt it when accepted.

        On rejection the current state is left untouched.

        Returns:
            The validation outcome
        """
        session = asyncio.create_task(
            self._validate_and_adopt(candidate), name="keyman-set-validation"
        )
        self._set_session = session
        return await asyncio.shield(session)

    async def _validate_and_adopt(self, candidate: str) -> ValidationOutcome:
        outcome = await self.validate(candidate)
        if outcome.accepted:
            await self.replace(candidate)
        else:
            logger.info("key_set_rejected", key=mask_key(candidate), cause=outcome.cause)
        return outcome

    def invalidate(self) -> None:
        """Mark the stored key as no longer valid, keeping its value."""
        if self._valid:
            logger.warning("key_invalidated", key=mask_key(self._key))
        self._valid = False

    async def toggle_hidden(self) -> bool:
        """Flip and persist the hidden display preference.

        Returns:
            The new value
        """
        async with self._lock:
            self._hidden = not self._hidden
            await self._persist()
        logger.debug("key_hidden_toggled", hidden=self._hidden)
        return self._hidden

    async def _persist(self) -> bool:
        if self._storage is None:
            return False
        try:
            return await self._storage.save(StoredKey(key=self._key, hidden=self._hidden))
        except CredentialsStorageError as e:
            logger.error("key_save_failed", error=str(e), exc_info=e)
            return False

    # ==================== Teardown ====================

    async def aclose(self) -> None:
        """Cancel validation sessions that are still running."""
        pending = [
            task
            for task in (self._startup_session, self._set_session, *self._in_flight.values())
            if task is not None and not task.done()
        ]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
