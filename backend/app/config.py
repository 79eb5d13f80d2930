"""
Wayfarer Backend — Application Configuration
==============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.

Environment-driven options:
    DATABASE            Connection URL containing a `<PASSWORD>` placeholder
    DATABASE_PASSWORD   Substituted into the placeholder at startup
    ENVIRONMENT         development | production (logging and error exposure)
    HOST / PORT         Listener address
"""

from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

PASSWORD_PLACEHOLDER = "<PASSWORD>"

# backend/ directory; public assets and templates live relative to it
BACKEND_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments MUST
    override DATABASE and DATABASE_PASSWORD and set ENVIRONMENT=production.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # What: Async connection string; `<PASSWORD>` is replaced by database_password
    # Format: postgresql+asyncpg://user:<PASSWORD>@host:port/dbname
    database: str = Field(
        default="postgresql+asyncpg://wayfarer:<PASSWORD>@localhost:5432/wayfarer",
        description="Async database URL with a <PASSWORD> placeholder",
    )
    database_password: str = Field(default="", description="Substituted into DATABASE")

    db_pool_size: int = Field(default=20, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Runtime Mode ──────────────────────────────────────────────────────
    # What: Switches request logging and error detail exposure
    # development: access log on, full error detail in responses
    # production:  access log off, programming errors masked
    environment: str = Field(default="production")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Only the two recognized modes are accepted."""
        mode = v.strip().lower()
        if mode not in {"development", "production"}:
            raise ValueError(f"Invalid environment '{v}'. Must be development or production")
        return mode

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Per-IP fixed window on every path under rate_limit_prefix
    rate_limit_requests: int = Field(default=100, ge=1, le=10000)
    rate_limit_window: int = Field(default=3600, ge=1, le=86400)  # seconds
    rate_limit_prefix: str = Field(default="/api")

    # ── Request Bodies ────────────────────────────────────────────────────
    # What: Cap for JSON and URL-encoded bodies (10 KB)
    body_limit_bytes: int = Field(default=10_240, ge=1)

    # ── Parameter Pollution ───────────────────────────────────────────────
    # Query parameters allowed to keep every occurrence as a list
    hpp_whitelist: List[str] = Field(
        default=[
            "duration",
            "ratingsQuantity",
            "ratingsAverage",
            "maxGroupSize",
            "difficulty",
            "price",
        ]
    )

    # ── Views & Static Assets ─────────────────────────────────────────────
    public_dir: str = Field(default=str(BACKEND_ROOT / "public"))
    templates_dir: str = Field(default=str(BACKEND_ROOT / "app" / "templates"))

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def database_url(self) -> str:
        """Connection URL with the password placeholder substituted."""
        return self.database.replace(PASSWORD_PLACEHOLDER, self.database_password)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


# Singleton instance, imported throughout the application
settings = Settings()
