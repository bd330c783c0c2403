"""Storage interface for the key record and a JSON file base class."""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from keyman.auth.exceptions import CredentialsInvalidError, CredentialsStorageError
from keyman.core.logging import get_logger


logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# Owner read/write only
FILE_MODE = 0o600


class TokenStorage(ABC, Generic[RecordT]):
    """Where the key record lives between runs."""

    @abstractmethod
    async def load(self) -> RecordT | None:
        """Return the stored record, or None when nothing is stored.

        Raises:
            CredentialsInvalidError: The stored data cannot be parsed
            CredentialsStorageError: The storage cannot be read
        """

    @abstractmethod
    async def save(self, record: RecordT) -> bool:
        """Store ``record``, replacing any previous one.

        Raises:
            CredentialsStorageError: The storage cannot be written
        """

    @abstractmethod
    async def exists(self) -> bool:
        """Whether a record is currently stored."""

    @abstractmethod
    def get_location(self) -> str:
        """Human-readable location of the record, for messages and logs."""


class BaseJsonStorage(TokenStorage[RecordT], Generic[RecordT]):
    """A record kept as a JSON object in a single file.

    Reads and writes run in a worker thread. Writes go to a sibling temp file
    that is renamed over the target, so readers never see a half-written
    record.
    """

    def __init__(self, file_path: Path):
        self.file_path = file_path

    def _read_object(self) -> dict[str, Any]:
        try:
            text = self.file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            raise CredentialsInvalidError(f"{self.file_path} is not UTF-8 text: {e}") from e
        except OSError as e:
            raise CredentialsStorageError(f"Cannot read {self.file_path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CredentialsInvalidError(
                f"{self.file_path} is not valid JSON (line {e.lineno}): {e.msg}"
            ) from e

        if not isinstance(data, dict):
            raise CredentialsInvalidError(
                f"Expected a JSON object in {self.file_path}, got {type(data).__name__}"
            )
        return data

    def _write_object(self, data: dict[str, Any]) -> None:
        payload = json.dumps(data, indent=2)
        temp_path = self.file_path.with_name(f".{self.file_path.name}.tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            os.fchmod(fd, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            temp_path.replace(self.file_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise CredentialsStorageError(f"Cannot write {self.file_path}: {e}") from e

    async def _read_json(self) -> dict[str, Any]:
        """Parsed JSON object from the file; empty when the file is absent."""
        try:
            return await asyncio.to_thread(self._read_object)
        except (CredentialsInvalidError, CredentialsStorageError) as e:
            logger.error("json_read_failed", path=str(self.file_path), error=str(e))
            raise

    async def _write_json(self, data: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write_object, data)
        except CredentialsStorageError as e:
            logger.error("json_write_failed", path=str(self.file_path), error=str(e))
            raise
        logger.debug("json_written", path=str(self.file_path))

    async def exists(self) -> bool:
        return await asyncio.to_thread(self.file_path.is_file)

    def get_location(self) -> str:
        return str(self.file_path)
