"""
Runtime Environment Validation Module

Validates configuration at application startup. If validation fails, the
service refuses to start (hard fail) and prints every problem it found,
not just the first.
"""

import sys
from typing import List, Optional

from pydantic import ValidationError

from internship_docs.core.config import ArtifactVisibility, Settings, StorageProvider


def find_configuration_problems(settings: Settings) -> List[str]:
    """Return one human-readable line per misconfigured setting."""
    problems: List[str] = []

    # 1. CORS: wildcard only allowed in debug
    if not settings.debug:
        origins = [o.strip() for o in settings.allowed_origins.split(",")]
        if "*" in origins:
            problems.append(
                "ALLOWED_ORIGINS: wildcard (*) is not allowed unless DEBUG=true"
            )

    # 2. Storage Provider: provider-specific configuration
    if settings.storage_provider == StorageProvider.GCS:
        if not settings.gcs_bucket_name or not settings.gcs_project_id:
            problems.append(
                "GCS_BUCKET_NAME and GCS_PROJECT_ID required when STORAGE_PROVIDER=gcs"
            )
    elif settings.storage_provider == StorageProvider.S3:
        if not settings.s3_bucket_name or not settings.aws_access_key_id or not settings.aws_secret_access_key:
            problems.append(
                "S3_BUCKET_NAME, AWS_ACCESS_KEY_ID, and AWS_SECRET_ACCESS_KEY required when STORAGE_PROVIDER=s3"
            )

    if settings.artifact_visibility == ArtifactVisibility.PUBLIC and settings.storage_provider == StorageProvider.MEMORY:
        if not settings.public_base_url:
            problems.append("PUBLIC_BASE_URL required for public artifacts with STORAGE_PROVIDER=memory")

    # 3. Database URL: basic format validation
    if settings.database_url and not settings.database_url.startswith("postgresql"):
        problems.append(
            "DATABASE_URL must be a PostgreSQL connection string (postgresql:// or postgresql+asyncpg://)"
        )

    # 4. Issuance bounds
    for name in ("infra_retry_attempts", "compensation_attempts", "code_generation_attempts"):
        if getattr(settings, name) < 1:
            problems.append(f"{name.upper()} must be at least 1")
    for name in ("storage_timeout_seconds", "persistence_timeout_seconds"):
        if getattr(settings, name) <= 0:
            problems.append(f"{name.upper()} must be positive")
    if settings.offer_letter_validity_days < 1:
        problems.append("OFFER_LETTER_VALIDITY_DAYS must be at least 1")

    return problems


def validate_environment(settings: Optional[Settings] = None) -> Settings:
    """
    Validate configuration at startup.

    Returns:
        Settings: the validated settings object

    Raises:
        SystemExit: If validation fails (exit code 1)
    """
    try:
        settings = settings or Settings()
    except ValidationError as e:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        print("\nMissing or invalid environment variables:", file=sys.stderr)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            print(f"   • {field}: {error['msg']}", file=sys.stderr)
        sys.exit(1)

    problems = find_configuration_problems(settings)
    if problems:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        for problem in problems:
            print(f"   • {problem}", file=sys.stderr)
        print("\nThe service cannot start with invalid configuration.", file=sys.stderr)
        sys.exit(1)

    print("✅ Environment validation passed")
    print(f"   App: {settings.app_name}")
    print(f"   Storage: {settings.storage_provider.value} ({settings.artifact_visibility.value})")
    print(f"   Database: {'postgresql' if settings.database_url else 'in-memory'}")
    return settings


if __name__ == "__main__":
    validate_environment()
