"""Configuration management for the form engine submission layer."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OpenMRS REST backend
    openmrs_rest_url: str = Field(
        default="http://localhost:8080/openmrs/ws/rest/v1",
        description="Base URL of the OpenMRS REST web services",
    )
    openmrs_username: str = Field(
        default="admin",
        description="Username for HTTP basic auth against OpenMRS",
    )
    openmrs_password: str = Field(
        default="",
        description="Password for HTTP basic auth against OpenMRS",
    )
    request_timeout: int = Field(
        default=30,
        description="Timeout in seconds for backend requests",
    )

    # Submission telemetry
    submission_log_enabled: bool = Field(
        default=True,
        description="Write submission events to JSON Lines files",
    )
    submission_log_dir: Path = Field(
        default=Path("./data/logs"),
        description="Directory for submission telemetry",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def has_credentials(self) -> bool:
        """Check if backend credentials are configured."""
        return bool(self.openmrs_username and self.openmrs_password)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
