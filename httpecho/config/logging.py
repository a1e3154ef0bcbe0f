"""Logging and request diagnostics settings."""

import sys

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingSettings(BaseModel):
    """Application logging plus the per-request diagnostic switches."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    format: str = Field(
        default="auto",
        description="Logging output format: 'rich' for development, 'json' for production, 'auto' for automatic selection",
    )

    console_width: int | None = Field(
        default=None,
        description="Optional console width override for Rich output",
    )

    verbose: bool = Field(
        default=False,
        description="Log incoming requests completely",
    )

    verbose_headers: bool = Field(
        default=False,
        description="Log incoming requests' headers",
    )

    verbose_body: bool = Field(
        default=False,
        description="Log incoming requests' body",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        upper_v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate and normalize log format."""
        lower_v = v.lower()
        valid_formats = ["auto", "rich", "json"]
        if lower_v not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return lower_v

    @property
    def json_logs(self) -> bool:
        if self.format == "auto":
            return not sys.stderr.isatty()
        return self.format == "json"
