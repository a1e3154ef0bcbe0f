"""Server configuration settings."""

from pydantic import BaseModel, ConfigDict, Field


class ServerSettings(BaseModel):
    """Listener configuration handed to uvicorn."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        default="localhost",
        description="Server host address",
    )

    port: int = Field(
        default=8080,
        description="Server port number",
        ge=1,
        le=65535,
    )

    backlog: int = Field(
        default=1,
        description="Maximum number of queued incoming connections",
        ge=1,
    )
