"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageProvider(str, Enum):
    GCS = "gcs"
    S3 = "s3"
    MEMORY = "memory"


class ArtifactVisibility(str, Enum):
    """Who may fetch a rendered artifact straight from the object store."""
    PUBLIC = "public"    # permanent public URL stored on the record
    SIGNED = "signed"    # opaque locator, time-limited signed URLs on demand
    PRIVATE = "private"  # opaque locator, never handed out


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Internship Documents"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    log_level: str = "info"
    allowed_origins: str = "*"

    # Database (None -> in-memory repository)
    database_url: Optional[str] = None

    # Storage
    storage_provider: StorageProvider = StorageProvider.MEMORY
    documents_bucket: str = "documents"
    artifact_visibility: ArtifactVisibility = ArtifactVisibility.SIGNED
    signed_url_ttl_seconds: int = 3600
    public_base_url: Optional[str] = None

    # GCS Config
    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None

    # S3 Config
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = "us-east-1"
    s3_bucket_name: Optional[str] = None

    # Issuance
    verification_base_url: Optional[str] = None
    offer_letter_validity_days: int = 90
    storage_timeout_seconds: float = 10.0
    persistence_timeout_seconds: float = 5.0
    infra_retry_attempts: int = 3
    compensation_attempts: int = 3
    code_generation_attempts: int = 5

    # Verification
    verify_min_response_ms: int = 50

    @property
    def bucket_name(self) -> str:
        """Get the appropriate bucket name based on storage provider."""
        if self.storage_provider == StorageProvider.GCS:
            if not self.gcs_bucket_name:
                raise ValueError("GCS_BUCKET_NAME required when STORAGE_PROVIDER=gcs")
            return self.gcs_bucket_name
        if self.storage_provider == StorageProvider.S3:
            if not self.s3_bucket_name:
                raise ValueError("S3_BUCKET_NAME required when STORAGE_PROVIDER=s3")
            return self.s3_bucket_name
        return self.documents_bucket


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
