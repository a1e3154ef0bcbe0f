"""Echo behavior settings."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EchoSettings(BaseModel):
    """How request headers and bodies are mirrored into the response."""

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(
        default="X-Echo-",
        description="Prefix prepended to every echoed header name",
    )

    suffix: str = Field(
        default="",
        description="Suffix appended to every echoed header name",
    )

    wait: bool = Field(
        default=False,
        description=(
            "Read the whole request body before sending the response "
            "(some clients choke on interleaved reads and writes)"
        ),
    )

    @field_validator("prefix", "suffix")
    @classmethod
    def validate_header_affix(cls, v: str) -> str:
        """Echoed header names go on the wire as latin-1."""
        try:
            v.encode("latin-1")
        except UnicodeEncodeError as e:
            raise ValueError(
                f"Header name affix must be latin-1 encodable: {v!r}"
            ) from e
        if any(c in v for c in ":\r\n"):
            raise ValueError(f"Header name affix must not contain ':' or line breaks: {v!r}")
        return v

    def echoed_name(self, name: str) -> str:
        return f"{self.prefix}{name}{self.suffix}"
