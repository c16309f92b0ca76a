"""
Configuration settings for the annotator backend.

Reads values from the environment and an optional .env file and provides
typed settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Metadata store
    database_url: str = Field(
        default="sqlite:///./annotator.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL for document metadata"
    )

    # Blob storage
    storage_backend: str = Field(
        default="local",
        alias="STORAGE_BACKEND",
        description="Blob store implementation: 'local' or 's3'"
    )
    storage_dir: Path = Field(
        default=Path("./storage"),
        alias="STORAGE_DIR",
        description="Root directory for the local blob store"
    )
    public_base_url: str = Field(
        default="http://localhost:8080",
        alias="PUBLIC_BASE_URL",
        description="Base URL used when building signed local blob URLs"
    )
    blob_signing_secret: str = Field(
        default="change-me-blob-signing-secret",
        alias="BLOB_SIGNING_SECRET"
    )
    signed_url_ttl_seconds: int = Field(
        default=3600,
        description="Lifetime of signed read URLs in seconds"
    )

    # AWS S3 (only used when storage_backend == "s3")
    aws_bucket_name: Optional[str] = Field(default=None, alias="AWS_BUCKET_NAME")
    aws_region: Optional[str] = Field(default=None, alias="AWS_REGION")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")

    # Gemini API (summaries are skipped when no key is configured)
    gemini_api_key: str = Field(
        default="",
        alias="GEMINI_API_KEY",
        description="Google Gemini API key"
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model for summaries")
    summary_max_chars: int = Field(
        default=10000,
        description="Max characters of extracted text sent for summarization"
    )

    # Auth
    jwt_secret: str = Field(default="change-me-jwt-secret", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Uploads
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted PDF upload size"
    )

    # Application settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @property
    def s3_configured(self) -> bool:
        """True when every S3 credential needed by the blob store is present."""
        return all([
            self.aws_bucket_name,
            self.aws_region,
            self.aws_access_key_id,
            self.aws_secret_access_key,
        ])


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
