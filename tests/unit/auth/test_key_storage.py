"""Tests for the JSON key file storage."""

import json
import stat
from pathlib import Path

import pytest

from keyman.auth.exceptions import CredentialsInvalidError
from keyman.auth.models import StoredKey
from keyman.auth.storage import KeyFileStorage


class TestKeyFileStorage:
    """Test loading and saving the key record."""

    async def test_missing_files_load_as_none(self, key_storage: KeyFileStorage) -> None:
        assert await key_storage.load() is None
        assert not await key_storage.exists()

    async def test_save_writes_owner_only_json(
        self, key_storage: KeyFileStorage, key_dir: Path
    ) -> None:
        assert await key_storage.save(StoredKey(key="abc", hidden=True))

        path = key_dir / "localdata.json"
        assert json.loads(path.read_text(encoding="utf-8")) == {"key": "abc", "hidden": True}
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert not (key_dir / ".localdata.json.tmp").exists()

        loaded = await key_storage.load()
        assert loaded == StoredKey(key="abc", hidden=True)

    async def test_save_creates_missing_directory(self, tmp_path: Path) -> None:
        storage = KeyFileStorage(tmp_path / "nested" / "dir" / "localdata.json")

        await storage.save(StoredKey(key="abc"))

        assert await storage.exists()
        assert storage.get_location().endswith("localdata.json")

    async def test_legacy_key_file_is_read(
        self, key_storage: KeyFileStorage, key_dir: Path
    ) -> None:
        (key_dir / "key.txt").write_text("legacy-key\n", encoding="utf-8")

        loaded = await key_storage.load()

        assert loaded == StoredKey(key="legacy-key", hidden=False)

    async def test_legacy_key_fills_empty_record(
        self, key_storage: KeyFileStorage, key_dir: Path
    ) -> None:
        (key_dir / "localdata.json").write_text(
            json.dumps({"key": "", "hidden": True}), encoding="utf-8"
        )
        (key_dir / "key.txt").write_text("  legacy-key  ", encoding="utf-8")

        loaded = await key_storage.load()

        assert loaded == StoredKey(key="legacy-key", hidden=True)

    async def test_empty_record_without_legacy_path(self, key_dir: Path) -> None:
        (key_dir / "localdata.json").write_text(
            json.dumps({"key": "", "hidden": True}), encoding="utf-8"
        )
        (key_dir / "key.txt").write_text("legacy-key", encoding="utf-8")
        storage = KeyFileStorage(key_dir / "localdata.json")

        loaded = await storage.load()

        assert loaded == StoredKey(key="", hidden=True)

    async def test_record_key_wins_over_legacy_file(
        self, key_storage: KeyFileStorage, key_dir: Path
    ) -> None:
        (key_dir / "localdata.json").write_text(json.dumps({"key": "current"}), encoding="utf-8")
        (key_dir / "key.txt").write_text("legacy-key", encoding="utf-8")

        loaded = await key_storage.load()

        assert loaded is not None
        assert loaded.key == "current"

    async def test_unknown_fields_are_kept_out(
        self, key_storage: KeyFileStorage, key_dir: Path
    ) -> None:
        (key_dir / "localdata.json").write_text(
            json.dumps({"key": "abc", "hidden": False, "theme": "dark"}), encoding="utf-8"
        )

        loaded = await key_storage.load()

        assert loaded == StoredKey(key="abc", hidden=False)

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[1, 2, 3]",
            json.dumps({"key": ["not", "a", "string"]}),
        ],
        ids=["invalid_json", "not_an_object", "wrong_field_type"],
    )
    async def test_corrupt_record_raises(
        self, key_storage: KeyFileStorage, key_dir: Path, content: str
    ) -> None:
        (key_dir / "localdata.json").write_text(content, encoding="utf-8")

        with pytest.raises(CredentialsInvalidError):
            await key_storage.load()
