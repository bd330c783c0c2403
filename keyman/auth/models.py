"""Pydantic models for the key record and validation outcomes."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from keyman.auth.exceptions import (
    NO_CREDENTIAL_CAUSE,
    InvalidCredentialError,
    NoCredentialProvidedError,
    TransportFailureError,
)


class StoredKey(BaseModel):
    """The persisted key record."""

    key: str = ""
    hidden: bool = False


class KeyInfo(BaseModel):
    """Usage record returned by the remote authority for an accepted key."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    owner: str
    limit: int
    queries_in_past_min: int = Field(alias="queriesInPastMin")
    total_queries: int = Field(alias="totalQueries")


class KeyAccepted(BaseModel):
    """The remote authority accepted the candidate key."""

    model_config = ConfigDict(frozen=True)

    accepted: Literal[True] = True
    key: str
    info: KeyInfo

    def raise_for_rejection(self) -> KeyInfo:
        return self.info


class KeyRejected(BaseModel):
    """The candidate key was rejected, or could not be checked at all."""

    model_config = ConfigDict(frozen=True)

    accepted: Literal[False] = False
    key: str | None = None
    cause: str
    transport_error: bool = False

    @property
    def no_credential(self) -> bool:
        return not self.key

    def raise_for_rejection(self) -> KeyInfo:
        """Raise the exception matching this rejection.

        Raises:
            NoCredentialProvidedError: No key was given
            TransportFailureError: The request did not complete
            InvalidCredentialError: The remote authority rejected the key
        """
        if self.no_credential:
            raise NoCredentialProvidedError(self.cause)
        if self.transport_error:
            raise TransportFailureError(self.cause)
        raise InvalidCredentialError(self.cause)


ValidationOutcome = KeyAccepted | KeyRejected


def no_credential_outcome() -> KeyRejected:
    return KeyRejected(key=None, cause=NO_CREDENTIAL_CAUSE)


def mask_key(key: str | None) -> str:
    """Return a log-safe form of a key, keeping only its last four characters."""
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{'*' * 8}{key[-4:]}"


def format_key(key: str, hidden: bool) -> str:
    """Render a key for display, honouring the hidden preference."""
    return "[Hidden]" if hidden else key
