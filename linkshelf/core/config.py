"""Application configuration with validation."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Values come from environment variables (or a ``.env`` file).
    Names are case-insensitive: ``LOG_LEVEL`` and ``log_level`` are equivalent.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    database_url: str = Field(
        default="sqlite:///./linkshelf.db",
        description="Database connection URL"
    )

    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Identity is established upstream (gateway / session layer); the API only
    # reads the already-authenticated user id from this header.
    user_id_header: str = Field(
        default="X-User-ID",
        description="Request header carrying the authenticated user id"
    )

    # Upper bound on parent-chain walks. A chain longer than this is treated
    # as corrupted data and resolves to "no access".
    max_collection_depth: int = Field(
        default=256,
        ge=1,
        description="Maximum collection nesting depth followed by permission walks"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """Parse the comma-separated origin list. Wildcards are rejected."""
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ("json", "text"):
            raise ValueError("Invalid log format. Must be 'json' or 'text'")
        return v_lower

    def validate_production_config(self) -> None:
        """Fail startup when production runs with development-only settings.

        Raises:
            ConfigurationError: If production config is unsafe.
        """
        if self.environment != Environment.PRODUCTION:
            return

        errors: list[str] = []

        if self.database_url.startswith("sqlite"):
            errors.append(
                "DATABASE_URL points at SQLite. Use a server database in production."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors:
            raise ConfigurationError(
                "Production configuration is unsafe:\n  - " + "\n  - ".join(errors)
            )


# Global settings instance
settings = Settings()
