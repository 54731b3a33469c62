"""
Feedhook Configuration System
=============================

Configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence, e.g.
``FEEDHOOK_WEBHOOK__URL`` sets ``settings.webhook.url``.
"""

from pathlib import Path
from typing import List, Optional
from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..routing.category_router import parse_category_map
from ..utils.exceptions import ConfigurationError, ErrorCode


DEFAULT_EMBED_COLOR = 2605643
DEFAULT_DESCRIPTION_LIMIT = 4000


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class WebhookSettings(BaseModel):
    """Destination and routing rules for outbound webhook messages."""
    url: str = Field(default="", description="Default webhook endpoint")
    username: str = Field(default="Feedhook", description="Username shown on delivered messages")
    avatar_url: str = Field(default="", description="Avatar shown on delivered messages")
    ignore_autoread: bool = Field(default=False, description="Skip entries the host already marked as read")
    embed_as_link_patterns: str = Field(
        default="",
        description="Newline-separated regular expressions; matching URLs are posted as plain links",
    )
    embed_as_image_patterns: str = Field(
        default="",
        description="Newline-separated regular expressions; matching URLs are uploaded as images",
    )
    category_webhooks: str = Field(
        default="",
        description="Newline-separated category=webhookURL pairs overriding the default endpoint",
    )

    @field_validator("url", "username", "avatar_url", "embed_as_link_patterns",
                     "embed_as_image_patterns", "category_webhooks", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        """Treat unset values as empty strings."""
        return "" if v is None else v


class DeliverySettings(BaseModel):
    """HTTP delivery tuning."""
    request_timeout: Optional[float] = Field(
        default=30.0, gt=0, description="Webhook POST timeout in seconds (None = transport default)"
    )
    image_timeout: float = Field(default=10.0, gt=0, le=120, description="Total image download timeout in seconds")
    image_max_redirects: int = Field(default=5, ge=0, le=20, description="Maximum redirects when downloading images")
    description_limit: int = Field(
        default=DEFAULT_DESCRIPTION_LIMIT, ge=0, le=4096, description="Maximum embed description length"
    )
    embed_color: int = Field(default=DEFAULT_EMBED_COLOR, ge=0, le=0xFFFFFF, description="Embed side-bar colour")
    user_agent: str = Field(default="Feedhook/1.0", description="User-Agent sent with every request")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedhook.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedhookSettings(BaseSettings):
    """Main application settings."""

    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Application metadata
    app_name: str = Field(default="Feedhook", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDHOOK_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration.

        An empty default endpoint is allowed here; it only becomes an error
        when a dispatch actually needs it.
        """
        errors = []

        if self.webhook.url and not _is_http_url(self.webhook.url):
            errors.append(f"Default webhook URL must be http(s): {self.webhook.url}")

        if self.webhook.avatar_url and not _is_http_url(self.webhook.avatar_url):
            errors.append(f"Avatar URL must be http(s): {self.webhook.avatar_url}")

        for category, endpoint in parse_category_map(self.webhook.category_webhooks).items():
            if not _is_http_url(endpoint):
                errors.append(f"Webhook for category '{category}' must be http(s): {endpoint}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except Exception as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value

    def configured_endpoints(self) -> List[str]:
        """Return the default endpoint followed by every category endpoint."""
        endpoints = [self.webhook.url] if self.webhook.url else []
        endpoints.extend(parse_category_map(self.webhook.category_webhooks).values())
        return endpoints


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def load_settings() -> FeedhookSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        # Pydantic handles precedence: environment, then .env file, then defaults
        settings = FeedhookSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_PARSE_ERROR
        ) from e


# Global settings instance
_settings: Optional[FeedhookSettings] = None


def get_settings(reload: bool = False) -> FeedhookSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings, e.g. after the host saved new values

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
