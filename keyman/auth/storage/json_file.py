"""JSON file storage for the key record, with the legacy key.txt upgrade path."""

import asyncio
from pathlib import Path

from pydantic import ValidationError

from keyman.auth.exceptions import CredentialsInvalidError, CredentialsStorageError
from keyman.auth.models import StoredKey, mask_key
from keyman.auth.storage.base import BaseJsonStorage
from keyman.core.logging import get_logger


logger = get_logger(__name__)


class KeyFileStorage(BaseJsonStorage[StoredKey]):
    """Stores ``{"key": ..., "hidden": ...}`` in a JSON file.

    Older installs kept the bare key in a plain-text file. When the JSON
    record carries no key, that file is read instead so the key survives the
    upgrade; the next save writes it into the JSON record.
    """

    def __init__(self, file_path: Path, legacy_path: Path | None = None):
        """Initialize key file storage.

        Args:
            file_path: Path to the JSON key record
            legacy_path: Optional path to a plain-text key file from older versions
        """
        super().__init__(file_path)
        self.legacy_path = legacy_path

    async def load(self) -> StoredKey | None:
        """Load the key record.

        Returns:
            The stored record, or None when neither the record nor the legacy
            key file exists

        Raises:
            CredentialsInvalidError: If the JSON file is corrupt
            CredentialsStorageError: If a file cannot be read
        """
        data = await self._read_json()
        if not data and not await self._legacy_exists():
            logger.debug("key_record_not_found", path=str(self.file_path))
            return None

        try:
            record = StoredKey.model_validate(data)
        except ValidationError as e:
            logger.error("key_record_validation_error", path=str(self.file_path), error=str(e))
            raise CredentialsInvalidError(
                f"Invalid key record format in {self.file_path}: {e}"
            ) from e

        if not record.key:
            legacy_key = await self._read_legacy_key()
            if legacy_key:
                logger.info(
                    "legacy_key_loaded",
                    path=str(self.legacy_path),
                    key=mask_key(legacy_key),
                )
                record = record.model_copy(update={"key": legacy_key})

        logger.debug("key_record_loaded", path=str(self.file_path), has_key=bool(record.key))
        return record

    async def save(self, record: StoredKey) -> bool:
        """Save the key record.

        Raises:
            CredentialsStorageError: If the file cannot be written
        """
        await self._write_json(record.model_dump(mode="json"))
        logger.debug("key_record_saved", path=str(self.file_path))
        return True

    async def _legacy_exists(self) -> bool:
        if self.legacy_path is None:
            return False
        legacy_path = self.legacy_path
        return await asyncio.to_thread(
            lambda: legacy_path.exists() and legacy_path.is_file()
        )

    async def _read_legacy_key(self) -> str:
        legacy_path = self.legacy_path
        if legacy_path is None or not await self._legacy_exists():
            return ""
        try:
            text = await asyncio.to_thread(legacy_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("legacy_key_read_error", path=str(legacy_path), error=str(e))
            raise CredentialsStorageError(
                f"Error reading legacy key file {legacy_path}: {e}"
            ) from e
        return text.strip()
