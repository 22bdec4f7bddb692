import logging
import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _get_version() -> str:
    """Read version from pyproject.toml or environment variable."""
    # First check environment variable (for Docker/CI overrides)
    if env_version := os.getenv("APP_VERSION"):
        return env_version

    pyproject_path = Path(__file__).parent.parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        for line in pyproject_path.read_text().split("\n"):
            if line.startswith("version"):
                # Parse: version = "0.1.0"
                return line.split("=")[1].strip().strip('"').strip("'")

    return "0.0.0-dev"


# Application version - read from pyproject.toml, env var, or default to dev
APP_VERSION = _get_version()


class Settings(BaseSettings):
    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "ledger"
    POSTGRES_PASSWORD: str = "devpassword"
    POSTGRES_DB: str = "ledger"

    # Full URL override (any async SQLAlchemy URL), mostly for tests
    DATABASE_URL_OVERRIDE: str | None = None

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # App
    APP_NAME: str = "Ledger API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Comma separated list of allowed browser origins
    CORS_ORIGINS: str = "http://localhost:3000"

    # Login throttling
    LOGIN_ATTEMPT_LIMIT: int = 5
    LOGIN_COOLDOWN_MINUTES: int = 30
    LOGIN_ATTEMPT_MAX_ENTRIES: int = 10000

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept level names the logging module knows about."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got '{v}'")
        return level

    @field_validator("LOGIN_ATTEMPT_LIMIT", "LOGIN_COOLDOWN_MINUTES", "LOGIN_ATTEMPT_MAX_ENTRIES")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
