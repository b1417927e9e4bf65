import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://api.sr.se/api/v2"
DEFAULT_REFRESH_INTERVAL_SEC = 3600


class RadioInfoSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Defaults match the public Sveriges Radio API and an hourly refresh, so
    the service runs without any environment at all.
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    refresh_interval_sec: int = DEFAULT_REFRESH_INTERVAL_SEC
    http_timeout_sec: float = 15.0
    parse_timeout_sec: int = 60  # XML parsing timeout, 0 disables timeout
    notification_history_size: int = 100
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="RADIOINFO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, value: str) -> str:
        """Validate API base URL is HTTP/HTTPS and strip the trailing slash."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"API base URL must be HTTP/HTTPS: {value}")
        return value.rstrip("/")

    @field_validator("refresh_interval_sec", "notification_history_size")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure interval and history size are positive integers."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("http_timeout_sec")
    @classmethod
    def validate_http_timeout(cls, value: float) -> float:
        """Keep HTTP requests bounded."""
        if value <= 0:
            raise ValueError("http_timeout_sec must be > 0")
        if value > 120:
            raise ValueError("http_timeout_sec must be <= 120 seconds")
        return value

    @field_validator("parse_timeout_sec")
    @classmethod
    def validate_parse_timeout(cls, value: int) -> int:
        """Validate XML parsing timeout (seconds)."""
        if value < 0:
            raise ValueError("parse_timeout_sec must be >= 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @property
    def channels_url(self) -> str:
        return f"{self.api_base_url}/channels"

    @property
    def schedule_url(self) -> str:
        return f"{self.api_base_url}/scheduledepisodes"

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  API base URL: %s", self.api_base_url)
        logger.info("  Refresh interval: %ss", self.refresh_interval_sec)
        logger.info("  HTTP timeout: %ss", self.http_timeout_sec)
        logger.info(
            "  Parse Timeout: %s seconds",
            self.parse_timeout_sec or "disabled",
        )
        logger.info("  Notification history: %s", self.notification_history_size)


settings = RadioInfoSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
