"""
Application configuration with environment-based settings.
"""
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True)

    # ============= Application Settings =============
    APP_NAME: str = "SchoolHub API"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Academic catalog, resources and quiz attempts"
    ENVIRONMENT: str = Field(default="development")
    API_V1_PREFIX: str = "/v1"
    DOCS_URL: Optional[str] = "/docs"

    # ============= Database Settings =============
    DATABASE_URL: str = Field(default="sqlite:///./schoolhub.db")
    DATABASE_ECHO: bool = False

    # ============= Security Settings =============
    SECRET_KEY: SecretStr = Field(default="change-me-in-production")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    # ============= Storage Settings =============
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_UPLOAD_TYPES: List[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/png",
        "image/gif",
    ]

    # ============= Logging Settings =============
    LOG_LEVEL: str = "INFO"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
