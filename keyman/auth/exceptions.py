"""Custom exceptions for API key handling."""


NO_CREDENTIAL_CAUSE = "no credential provided"


class CredentialsError(Exception):
    """Base exception for all key-related errors."""

    pass


class CredentialsStorageError(CredentialsError):
    """Raised when there's an error reading or writing the key record."""

    pass


class CredentialsInvalidError(CredentialsError):
    """Raised when the stored key record is found but corrupted."""

    pass


class InvalidCredentialError(CredentialsError):
    """Raised when the remote authority rejects a key.

    Attributes:
        cause: Remote-supplied or locally synthesized reason
    """

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause


class NoCredentialProvidedError(InvalidCredentialError):
    """Raised when validation is attempted with an empty or missing key."""

    def __init__(self, cause: str = NO_CREDENTIAL_CAUSE) -> None:
        super().__init__(cause)


class TransportFailureError(InvalidCredentialError):
    """Raised when the validation request itself could not complete."""

    pass


class PromptTimeoutError(CredentialsError):
    """Raised when no usable key became available before the deadline."""

    def __init__(self, feature: str, timeout: float) -> None:
        super().__init__(f"{feature} gave up waiting for an API key after {timeout:g}s")
        self.feature = feature
        self.timeout = timeout
