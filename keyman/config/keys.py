"""API key settings: remote authority, storage location and prompt timing."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from keyman.utils.xdg import get_keyman_config_dir


DEFAULT_API_BASE_URL = "https://api.hypixel.net"


class KeySettings(BaseModel):
    """Settings for the managed API key."""

    model_config = ConfigDict(validate_assignment=True)

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        description="Base URL of the remote authority; keys are checked at {api_base_url}/key",
    )

    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout in seconds for a single validation request",
    )

    prompt_timeout: float = Field(
        default=30.0,
        gt=0,
        le=3600,
        description="Seconds a feature waits for a usable key before giving up",
    )

    storage_dir: Path | None = Field(
        default=None,
        description="Directory holding the key record (defaults to XDG_CONFIG_HOME/keyman)",
    )

    storage_file: str = Field(
        default="localdata.json",
        description="File name of the JSON key record",
    )

    legacy_file: str = Field(
        default="key.txt",
        description="Plain-text key file written by older versions, read when the record has no key",
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def get_storage_dir(self) -> Path:
        if self.storage_dir is not None:
            return self.storage_dir.expanduser()
        return get_keyman_config_dir()

    def get_storage_path(self) -> Path:
        return self.get_storage_dir() / self.storage_file

    def get_legacy_path(self) -> Path:
        return self.get_storage_dir() / self.legacy_file
