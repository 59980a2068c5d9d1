"""Settings configuration for the knowledge gateway."""

import os
import tomllib
from pathlib import Path
from typing import Any

import structlog
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from knowledge_gateway.config.discovery import find_toml_config_file

from .billing import BillingSettings
from .cors import CORSSettings
from .database import DatabaseSettings
from .gateway import GatewaySettings
from .oauth import OAuthSettings
from .rate_limit import RateLimitSettings
from .search import SearchSettings
from .security import SecuritySettings
from .server import ServerSettings


__all__ = [
    "Settings",
    "ConfigurationError",
    "get_settings",
]


logger = structlog.get_logger(__name__)


class ConfigurationError(Exception):
    """Settings could not be read or did not validate."""


def _coerce_settings(value: Any, settings_class: type) -> Any:
    """Build a section model from TOML data, a model instance, or nothing."""
    if value is None:
        return settings_class()
    if isinstance(value, settings_class):
        return value
    if isinstance(value, dict):
        return settings_class(**value)
    if hasattr(value, "model_dump"):
        return settings_class(**value.model_dump())
    return value


_SECTIONS: dict[str, type] = {
    "server": ServerSettings,
    "database": DatabaseSettings,
    "security": SecuritySettings,
    "oauth": OAuthSettings,
    "rate_limit": RateLimitSettings,
    "gateway": GatewaySettings,
    "search": SearchSettings,
    "billing": BillingSettings,
    "cors": CORSSettings,
}


class Settings(BaseSettings):
    """
    Configuration settings for the knowledge gateway.

    Settings are loaded from environment variables, .env files, and TOML configuration files.
    Environment variables take precedence over .env file values; nested values use a
    double underscore (``RATE_LIMIT__REPOSITORY_LIMIT=120``).
    TOML configuration files are loaded in the following order:
    1. .knowledge_gateway.toml in current directory
    2. knowledge_gateway.toml in current directory
    3. config.toml in user config directory/knowledge_gateway/ (platform-specific)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    server: ServerSettings = Field(
        default_factory=ServerSettings,
        description="Server configuration settings",
    )

    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings,
        description="Credential store location",
    )

    security: SecuritySettings = Field(
        default_factory=SecuritySettings,
        description="Security configuration settings",
    )

    oauth: OAuthSettings = Field(
        default_factory=OAuthSettings,
        description="Credential lifetimes",
    )

    rate_limit: RateLimitSettings = Field(
        default_factory=RateLimitSettings,
        description="Gateway rate limiting",
    )

    gateway: GatewaySettings = Field(
        default_factory=GatewaySettings,
        description="Protocol gateway behaviour",
    )

    search: SearchSettings = Field(
        default_factory=SearchSettings,
        description="Search collaborator connection",
    )

    billing: BillingSettings = Field(
        default_factory=BillingSettings,
        description="Billing webhook",
    )

    cors: CORSSettings = Field(
        default_factory=CORSSettings,
        description="CORS configuration settings",
    )

    @field_validator(*_SECTIONS, mode="before")
    @classmethod
    def validate_section(cls, v: Any, info: ValidationInfo) -> Any:
        return _coerce_settings(v, _SECTIONS[info.field_name])

    @property
    def server_url(self) -> str:
        """URL derived from the bind address."""
        return f"http://{self.server.host}:{self.server.port}"

    @property
    def issuer(self) -> str:
        """Base URL advertised in discovery metadata and generated links."""
        return self.server.public_url or self.server_url

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Parse ``toml_path``; read and syntax errors surface as ValueError."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ValueError(f"{toml_path} is not readable: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"{toml_path} is not valid TOML: {e}") from e

    @classmethod
    def from_config(
        cls, config_path: Path | str | None = None, **kwargs: Any
    ) -> "Settings":
        """Build settings from a TOML file plus the environment.

        The file is ``config_path`` when given, else ``CONFIG_FILE``, else the
        first discovered ``knowledge_gateway.toml``. Values from the file are
        passed as init arguments, so they override the environment; ``kwargs``
        override the file.
        """
        path = config_path or os.environ.get("CONFIG_FILE")
        config_path = Path(path) if path else find_toml_config_file()

        config_data: dict[str, Any] = {}
        if config_path and config_path.exists():
            if config_path.suffix.lower() != ".toml":
                raise ValueError(f"{config_path.name}: configuration files must be TOML")
            config_data = cls.load_toml_config(config_path)
            logger.debug("config_file_loaded", path=str(config_path))

        return cls(**{**config_data, **kwargs})


def get_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings for the server or CLI.

    Raises:
        ConfigurationError: the file is unreadable or a value is invalid
    """
    try:
        settings = Settings.from_config(config_path=config_path)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Configuration error: {e}") from e

    if settings.security.token_pepper_generated:
        logger.warning(
            "token_pepper_generated",
            message="KBGW_TOKEN_PEPPER is not set; issued tokens will not survive a restart",
        )
    return settings
