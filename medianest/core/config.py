"""MediaNest settings, read from the environment and ``.env``."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Settings are unusable for the current environment."""


_DEFAULT_JWT_SECRET = "medianest-dev-secret-change-me"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("json", "text")


class Settings(BaseSettings):
    """
    Process-wide settings.

    One instance is handed to ``create_app`` and lives on the application
    context; nothing reads settings from a module global.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(default=Environment.DEVELOPMENT)

    # Comma-separated; a wildcard is rejected by get_cors_origins.
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Origins allowed to call the API",
    )

    # Storage
    database_url: str = Field(default="sqlite:///./medianest.db")
    # Pool tuning applies to PostgreSQL only.
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is replaced")

    # Folder management is open to every caller while auth is disabled.
    auth_enabled: bool = Field(default=False)
    jwt_secret_key: str = Field(default=_DEFAULT_JWT_SECRET, description="HMAC key for bearer tokens")
    jwt_algorithm: str = Field(default="HS256")

    audit_retention_days: int = Field(
        default=365,
        description="Audit entries older than this are purged at startup; 0 keeps everything",
    )

    system_folder_name: str = Field(
        default="Uncategorized",
        description="Display name of the protected default folder",
    )
    recognized_item_kind: str = Field(
        default="attachment",
        description="Only items of this kind can be filed into folders",
    )

    default_per_page: int = Field(default=40, ge=1)
    max_per_page: int = Field(default=200, ge=1)

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' for log shippers, 'text' for terminals")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return fmt

    @field_validator("system_folder_name", "recognized_item_kind")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "Settings":
        if self.default_per_page > self.max_per_page:
            raise ValueError("default_per_page cannot exceed max_per_page")
        return self

    def get_cors_origins(self) -> List[str]:
        """Explicit origins from ``cors_allowed_origins``. Wildcards are refused."""
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError("Wildcard CORS (*) is not allowed; list origins in CORS_ALLOWED_ORIGINS")
        return origins

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret_key == _DEFAULT_JWT_SECRET

    def security_problems(self) -> List[str]:
        """Settings that are acceptable for development but not for production."""
        problems = []
        if self.uses_default_secret:
            problems.append("JWT_SECRET_KEY is the built-in development value (generate one with: openssl rand -hex 32)")
        if not self.auth_enabled:
            problems.append("AUTH_ENABLED is false, so anyone can reorganize folders")
        local = [o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o]
        if local:
            problems.append(f"CORS allows local origins: {local}")
        return problems

    def validate_production_config(self) -> None:
        """Refuse to start a production deployment with development settings.

        Raises:
            ConfigurationError: listing every problem found.
        """
        if self.environment != Environment.PRODUCTION:
            return
        problems = self.security_problems()
        if problems:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(problems)
            )
