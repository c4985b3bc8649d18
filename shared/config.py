"""
Shared configuration management for the CRPT document gateway.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CRPT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8020)


class CrptConfig(BaseConfig):
    """Settings for the document submission client and its HTTP front door."""

    service_name: str = Field(default="crpt")

    # Remote endpoint
    api_url: str = Field(default="https://ismp.crpt.ru")
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    # Admission window
    request_limit: int = Field(default=10)
    time_unit_seconds: float = Field(default=1.0)

    @property
    def time_unit(self) -> timedelta:
        """Window length as a ``timedelta``."""
        return timedelta(seconds=self.time_unit_seconds)


def get_config(**overrides) -> CrptConfig:
    """Get configuration, with explicit overrides taking precedence over the environment."""
    return CrptConfig(**overrides)
