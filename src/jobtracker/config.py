from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ConfigError(RuntimeError):
    """Raised when a required configuration value is missing."""


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Connection settings for the applications API.

    ``base_url`` is required; endpoint paths are appended to it verbatim.
    """

    base_url: str
    timeout_sec: int

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise ConfigError("API_URL is not configured")


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Cognito user pool settings. ``user_pool_id`` and ``client_id`` are required."""

    user_pool_id: str
    client_id: str
    region: str = ""
    timeout_sec: int = 30

    def __post_init__(self) -> None:
        missing = [
            name
            for name, value in (("COGNITO_USER_POOL_ID", self.user_pool_id), ("COGNITO_CLIENT_ID", self.client_id))
            if not value.strip()
        ]
        if missing:
            raise ConfigError(f"missing auth configuration: {', '.join(missing)}")

    @property
    def resolved_region(self) -> str:
        if self.region.strip():
            return self.region.strip()
        # pool ids look like "ap-southeast-2_AbCdEf"
        return self.user_pool_id.split("_", 1)[0]

    @property
    def endpoint(self) -> str:
        return f"https://cognito-idp.{self.resolved_region}.amazonaws.com/"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Job Application Tracker"
    app_env: str = "development"
    log_level: str = "INFO"

    api_url: str = ""
    api_timeout_sec: int = 30

    cognito_user_pool_id: str = ""
    cognito_client_id: str = ""
    cognito_region: str = ""

    session_file: Path = Path("./data/session.json")

    notice_clear_delay_sec: float = 3.0
    require_login: bool = True

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("notice_clear_delay_sec")
    @classmethod
    def validate_notice_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("notice_clear_delay_sec must not be negative")
        return value

    def api_config(self) -> ApiConfig:
        return ApiConfig(base_url=self.api_url.rstrip("/"), timeout_sec=self.api_timeout_sec)

    def auth_config(self) -> AuthConfig:
        return AuthConfig(
            user_pool_id=self.cognito_user_pool_id,
            client_id=self.cognito_client_id,
            region=self.cognito_region,
            timeout_sec=self.api_timeout_sec,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
