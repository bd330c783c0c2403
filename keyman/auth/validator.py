"""Remote validation of API keys."""

from typing import Any

import httpx
from pydantic import ValidationError

from keyman.auth.models import (
    KeyAccepted,
    KeyInfo,
    KeyRejected,
    ValidationOutcome,
    mask_key,
    no_credential_outcome,
)
from keyman.config.keys import DEFAULT_API_BASE_URL
from keyman.core.logging import get_logger


logger = get_logger(__name__)


class RemoteValidator:
    """Checks a candidate key against the remote authority.

    One call to :meth:`validate` issues at most one request to
    ``{base_url}/key?key=<candidate>``. The response body is expected to be
    ``{"success": bool, "record": {...}, "cause": str}``. Expected failures
    (rejection, transport errors, unreadable bodies) are returned as
    :class:`KeyRejected`, never raised.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """Initialize the validator.

        Args:
            base_url: Base URL of the remote authority
            http_client: HTTP client for making requests (creates one if not provided)
            timeout: Request timeout in seconds for a client created here
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client
        self._owns_http_client = http_client is None

    async def __aenter__(self) -> "RemoteValidator":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating one if needed."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this validator created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/key"

    async def validate(self, candidate: str | None) -> ValidationOutcome:
        """Validate a candidate key.

        Args:
            candidate: The key to check. Empty or None is rejected without a request.

        Returns:
            KeyAccepted with the key's usage record, or KeyRejected with a cause
        """
        if not candidate:
            logger.debug("key_validation_skipped", reason="empty")
            return no_credential_outcome()

        masked = mask_key(candidate)
        logger.debug("key_validation_start", key=masked, url=self.endpoint)

        try:
            response = await self.http_client.get(
                self.endpoint, params={"key": candidate}
            )
        except httpx.HTTPError as e:
            logger.warning(
                "key_validation_transport_failed",
                key=masked,
                error=str(e),
                error_type=type(e).__name__,
            )
            return KeyRejected(
                key=candidate,
                cause=str(e) or type(e).__name__,
                transport_error=True,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(
                "key_validation_bad_response",
                key=masked,
                status_code=response.status_code,
                error=str(e),
            )
            return KeyRejected(
                key=candidate,
                cause=f"Unreadable response from {self.endpoint} (HTTP {response.status_code})",
                transport_error=True,
            )

        if not isinstance(payload, dict) or not payload.get("success"):
            cause = payload.get("cause") if isinstance(payload, dict) else None
            if not cause:
                cause = f"Key rejected (HTTP {response.status_code})"
            logger.info(
                "key_validation_rejected",
                key=masked,
                status_code=response.status_code,
                cause=cause,
            )
            return KeyRejected(key=candidate, cause=str(cause))

        try:
            info = KeyInfo.model_validate(payload.get("record") or {})
        except ValidationError as e:
            logger.warning("key_validation_bad_record", key=masked, error=str(e))
            return KeyRejected(
                key=candidate,
                cause=f"Malformed key record from {self.endpoint}",
                transport_error=True,
            )

        logger.debug("key_validation_accepted", key=masked, owner=info.owner)
        return KeyAccepted(key=candidate, info=info)

    async def is_valid(self, candidate: str | None) -> bool:
        """Check whether a candidate key is accepted, discarding cause and info."""
        outcome = await self.validate(candidate)
        return outcome.accepted
