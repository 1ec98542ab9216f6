from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    PROJECT_NAME: str = "TripStitch API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///../tripstitch.db"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    JWT_ALGORITHM: str = "HS256"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Links embedded in invitation emails and join links
    FRONTEND_URL: str = "http://localhost:3000"

    # Invitations
    INVITATION_EXPIRE_DAYS: int = 7
    RESEND_API_KEY: str = ""
    INVITE_FROM_EMAIL: str = "TripStitch <noreply@tripstitch.io>"

    # Rate limiting of the public token endpoints
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    INVITATION_RATE_LIMIT: str = "30/minute"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: List[str] | str) -> List[str]:
        """Allow both comma-separated strings and list inputs."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def invitation_link_base(self) -> str:
        return f"{self.FRONTEND_URL.rstrip('/')}/invite/accept"

    @property
    def join_link_base(self) -> str:
        return f"{self.FRONTEND_URL.rstrip('/')}/join"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
