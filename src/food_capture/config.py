"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_SERVER_BASE_URI = "http://192.168.68.111:5000"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    server_base_uri: str = DEFAULT_SERVER_BASE_URI
    artifact_dir: str = "~/.food_capture/artifacts"
    upload_timeout_seconds: float = 300.0
    connect_timeout_seconds: float = 10.0
    upload_max_attempts: int = 3
    upload_backoff_seconds: float = 1.0
    settle_delay_seconds: float = 0.1
    mirror_rgb: bool = True
    replay_dir: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="FOOD_CAPTURE_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


@dataclass
class ServerEndpoint:
    """Base URI of the processing service, editable at runtime."""

    base_uri: str

    @property
    def process_url(self) -> str:
        """Return the upload URL."""
        return f"{self.base_uri.rstrip('/')}/process"

    def update(self, base_uri: str) -> None:
        """Point subsequent uploads at a new base URI."""
        cleaned = base_uri.strip()
        if not cleaned:
            raise ValueError("Server base URI must not be empty")
        self.base_uri = cleaned
