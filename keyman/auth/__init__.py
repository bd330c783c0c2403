"""API key lifecycle: storage, validation, state and waiting."""

from keyman.auth.announcements import AnnouncementWatcher, extract_new_key
from keyman.auth.exceptions import (
    CredentialsError,
    CredentialsInvalidError,
    CredentialsStorageError,
    InvalidCredentialError,
    NoCredentialProvidedError,
    PromptTimeoutError,
    TransportFailureError,
)
from keyman.auth.manager import KeyManager
from keyman.auth.models import (
    KeyAccepted,
    KeyInfo,
    KeyRejected,
    StoredKey,
    ValidationOutcome,
)
from keyman.auth.notifications import KeyNotifier, LogNotifier
from keyman.auth.prompt import PromptCoordinator
from keyman.auth.state import KeyState
from keyman.auth.validator import RemoteValidator
from keyman.auth.waiters import Waiter, WaiterMode, WaiterRegistry


__all__ = [
    # Manager
    "KeyManager",
    # Core
    "KeyState",
    "RemoteValidator",
    "WaiterRegistry",
    "Waiter",
    "WaiterMode",
    "PromptCoordinator",
    "AnnouncementWatcher",
    "extract_new_key",
    # Models
    "KeyAccepted",
    "KeyRejected",
    "KeyInfo",
    "StoredKey",
    "ValidationOutcome",
    # Notifications
    "KeyNotifier",
    "LogNotifier",
    # Exceptions
    "CredentialsError",
    "CredentialsInvalidError",
    "CredentialsStorageError",
    "InvalidCredentialError",
    "NoCredentialProvidedError",
    "PromptTimeoutError",
    "TransportFailureError",
]
