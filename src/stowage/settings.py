"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the Stowage engine and its REST API server.

    Values are read from environment variables prefixed with ``STOWAGE_``
    and from a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="STOWAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"

    # Artifact output layout: <project_output_root>/artifacts/<artifact name>
    project_output_root: str = "out"

    # REST API
    api_server_host: str = "localhost"
    api_server_port: int = 8000
    # Hosting platforms inject a bare PORT; it takes precedence over api_server_port
    port: int | None = Field(None, validation_alias="PORT")

    @property
    def effective_port(self) -> int:
        """Return the port to listen on (injected PORT takes precedence)."""
        return self.port if self.port is not None else self.api_server_port
