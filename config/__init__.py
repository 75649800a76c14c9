"""
Client configuration.

Values come from environment variables (prefix ``TLC_``) or a ``.env`` file.

Usage:
    from config import get_settings

    settings = get_settings()
    settings.api_base_url
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_APP_DIR = Path.home() / ".tlc_library"
_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TLC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend (base URL without the /api prefix)
    api_base_url: str = "http://localhost:8001"
    environment: Literal["development", "production"] = "development"

    # HTTP timeouts in seconds
    connect_timeout: float = 3.0
    read_timeout: float = 30.0
    # Document uploads (educational support) are large base64 payloads
    upload_read_timeout: float = 300.0
    # Retry budget for idempotent GETs; POSTs are never retried
    get_retries: int = 3

    # Browser checkout waits this long for the member to finish paying
    checkout_timeout: float = 900.0

    # "file" downloads the PDF locally, "url" hands out the receipt URL
    receipt_mode: Literal["file", "url"] = "file"
    receipt_dir: Path = _APP_DIR / "receipts"

    # Deny protected actions when the overdue summary could not be loaded
    overdue_fail_closed: bool = False

    # Credential storage
    secrets_dir: Path = _APP_DIR
    use_keyring: bool = True

    # Logging
    log_dir: Path = _APP_DIR / "logs"
    log_level: str = "INFO"

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("TLC_API_BASE_URL must not be empty")
        return v.rstrip("/")

    @field_validator("get_retries")
    @classmethod
    def non_negative_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("TLC_GET_RETRIES must be >= 0")
        return v

    @model_validator(mode="after")
    def require_https_in_production(self) -> "Settings":
        if self.api_base_url.startswith("https://") or self.is_local_backend:
            return self
        if self.environment == "production":
            raise ValueError(
                "TLC_API_BASE_URL must use HTTPS in production. "
                f"Got: {self.api_base_url}"
            )
        logger.warning(
            "SECURITY WARNING: Using HTTP for non-localhost backend %s",
            self.api_base_url,
        )
        return self

    @property
    def is_local_backend(self) -> bool:
        return urlparse(self.api_base_url).hostname in _LOCAL_HOSTS

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    @property
    def upload_timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.upload_read_timeout)


@lru_cache()
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.

    Raises:
        utils.error_handlers.ConfigurationError: if the environment is invalid
    """
    from pydantic import ValidationError

    from utils.error_handlers import ConfigurationError

    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(
            message="Invalid client configuration",
            recovery_hint="Check the TLC_* environment variables or the .env file",
            original_error=e,
        ) from e
