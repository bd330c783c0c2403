"""Key storage implementations."""

from keyman.auth.storage.base import BaseJsonStorage, TokenStorage
from keyman.auth.storage.json_file import KeyFileStorage


__all__ = [
    "TokenStorage",
    "BaseJsonStorage",
    "KeyFileStorage",
]
