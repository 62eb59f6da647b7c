"""Configuration for the document service"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime configuration, read from the environment or a .env file."""

    # Service metadata
    APP_NAME: str = "BeaverDoc"
    APP_VERSION: str = "1.0.0"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Database
    DATABASE_URL: str = Field(
        default="postgresql://postgres:root@db:5432/documents",
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL"),
    )

    # Uploads
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MB
    SCAN_PREFIX_BYTES: int = 50 * 1024
    TEMP_UPLOAD_DIR: str = str(ROOT_DIR / "temp_uploads")
    TEMP_UPLOAD_MAX_AGE_SECONDS: int = 60 * 60
    CLEANUP_INTERVAL_MINUTES: int = 60

    # Rate limiting
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_PREFIX: str = "/documents"

    # Identity
    COMPANY_ID: int = 7890
    DEFAULT_ACTOR_ID: int = 1
    DEFAULT_USER_USERNAME: str = "operateur"
    DEFAULT_USER_DISPLAY_NAME: str = "Opérateur BeaverDoc"
    DEFAULT_USER_INITIALS: str = "OB"
    DEFAULT_USER_COMPANY: str = "BeaverDoc Consulting"

    # Provenance metadata
    PROVENANCE_AUTHOR: str = "BeaverDoc"
    PROVENANCE_CREATOR: str = "BeaverDoc Consulting"
    PROVENANCE_PRODUCER: str = "BeaverDoc Secure Document System"
    VERIFICATION_CONTACT: str = "beaverdoc.verify.com"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=str(ROOT_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
