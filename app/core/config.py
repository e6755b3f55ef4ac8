"""
Configuration management for the attendance finalization backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

APP_ENVS = ("local", "staging", "prod")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Store and token
    DATABASE_URL: str = Field(..., description="Relational store URL (PostgreSQL in prod, SQLite locally)")
    JWT_SECRET_KEY: str = Field(..., description="Secret used to verify actor tokens")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="Lifetime of tokens minted by create_access_token")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated CORS origins for the attendance UI. '*' is accepted outside prod only."
    )

    # Operator local timezone; decides what "today" means for edit validation.
    # Kept apart from the POSIX TZ variable, which hosts often set to ":UTC" or similar.
    OPERATOR_TZ: str = Field(default="Asia/Kolkata", description="Operator IANA timezone (timestamps are stored in UTC)")

    # Edit validation bounds
    MIN_WORK_MINUTES: int = Field(default=15, ge=1, description="Shortest accepted clock-in/clock-out span")
    MAX_WORK_HOURS: int = Field(default=24, ge=1, description="Longest accepted clock-in/clock-out span")

    VERSION: Optional[str] = Field(default=None, description="Build identifier reported by /version")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        if v not in APP_ENVS:
            raise ValueError(f"APP_ENV must be one of {list(APP_ENVS)}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(LOG_LEVELS)}")
        return v.upper()

    @field_validator("OPERATOR_TZ")
    @classmethod
    def validate_operator_tz(cls, v: str) -> str:
        """OPERATOR_TZ must resolve to an IANA zone (tzdata ships them on Windows)"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"OPERATOR_TZ must be an IANA timezone name, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_work_bounds(self) -> "Settings":
        if self.MIN_WORK_MINUTES >= self.MAX_WORK_HOURS * 60:
            raise ValueError("MIN_WORK_MINUTES must be shorter than MAX_WORK_HOURS")
        return self

    def validate_production(self) -> None:
        """
        Reject settings that are only acceptable for local work.

        Row locks taken by finalize, unlock and edit need a server database,
        so SQLite is refused in prod alongside the usual secret and CORS checks.

        Raises:
            ValueError: listing every problem found
        """
        if self.APP_ENV != "prod":
            return

        problems = []
        if len(self.JWT_SECRET_KEY) < 32:
            problems.append("JWT_SECRET_KEY must be at least 32 characters in production environment")
        if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
            problems.append("ALLOWED_ORIGINS must be explicitly set (not '*') in production environment")
        if self.DATABASE_URL.startswith("sqlite"):
            problems.append("DATABASE_URL must point to a server database in production environment")
        if problems:
            raise ValueError("; ".join(problems))

    def get_allowed_origins_list(self) -> List[str]:
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()
settings.validate_production()
