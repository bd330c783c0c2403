"""Logging configuration settings."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["auto", "rich", "plain", "json"]


class LoggingSettings(BaseModel):
    """How keyman reports what it is doing (stderr and an optional file)."""

    model_config = ConfigDict(validate_assignment=True)

    level: LogLevel = Field(
        default="WARNING",
        description="Minimum level written to the console and the log file",
    )

    format: LogFormat = Field(
        default="auto",
        description="Console format; 'auto' picks 'rich' on a terminal and 'plain' otherwise",
    )

    file: str | None = Field(
        default=None,
        description="Also write JSON lines to this file",
    )

    show_path: bool = Field(default=False, description="Rich format: show the logger path")
    show_time: bool = Field(default=True, description="Rich format: show timestamps")
    console_width: int | None = Field(
        default=None, gt=0, description="Rich format: fixed console width"
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v
