"""Application settings loaded from environment variables (+ optional .env)."""

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

load_dotenv()


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    app_name: str = "Task Manager API"
    version: str = "1.0.0"
    environment: str = "development"
    port: int = Field(default=5000, ge=1, le=65535)

    # Database
    database_url: str = "sqlite:///./task_manager.db"
    db_echo: bool = False

    # JWT
    jwt_secret: str = Field(min_length=1)
    jwt_refresh_secret: str = Field(min_length=1)
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "task-manager-api"
    jwt_audience: str = "task-manager-client"
    access_token_expire_minutes: int = Field(default=15, gt=0)
    refresh_token_expire_days: int = Field(default=7, gt=0)

    # Password hashing
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # CORS / cookies
    allowed_origins: List[str] = ["http://localhost:3000"]
    cookie_secure: Optional[bool] = None

    log_level: str = "INFO"

    @field_validator("environment")
    @classmethod
    def check_environment(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"development", "production", "test"}:
            raise ValueError("environment must be one of development, production, test")
        return v

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def assemble_allowed_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v

    @model_validator(mode="after")
    def check_secrets_and_cookies(self) -> "Settings":
        if self.jwt_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be different")
        if self.cookie_secure is None:
            self.cookie_secure = self.environment == "production"
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Raises:
            ValueError: If a required variable is missing or a value is invalid.
        """
        jwt_secret = os.getenv("JWT_SECRET")
        jwt_refresh_secret = os.getenv("JWT_REFRESH_SECRET")
        if not jwt_secret:
            raise ValueError("JWT_SECRET environment variable is not set.")
        if not jwt_refresh_secret:
            raise ValueError("JWT_REFRESH_SECRET environment variable is not set.")

        values = {
            "jwt_secret": jwt_secret,
            "jwt_refresh_secret": jwt_refresh_secret,
            "cookie_secure": _env_bool("COOKIE_SECURE"),
        }
        env_map = {
            "APP_NAME": "app_name",
            "ENVIRONMENT": "environment",
            "PORT": "port",
            "DATABASE_URL": "database_url",
            "DB_ECHO": "db_echo",
            "ACCESS_TOKEN_EXPIRE_MINUTES": "access_token_expire_minutes",
            "REFRESH_TOKEN_EXPIRE_DAYS": "refresh_token_expire_days",
            "BCRYPT_ROUNDS": "bcrypt_rounds",
            "ALLOWED_ORIGINS": "allowed_origins",
            "LOG_LEVEL": "log_level",
        }
        for env_name, field_name in env_map.items():
            raw = os.getenv(env_name)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()

        # pydantic's ValidationError is a ValueError subclass
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
