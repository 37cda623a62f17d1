"""Storage service with provider interface (GCS/S3/in-memory)."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, Optional, Tuple
from uuid import UUID

from internship_docs.core.config import ArtifactVisibility, Settings, StorageProvider
from internship_docs.models.enums import DocumentKind

logger = logging.getLogger(__name__)


class StorageProviderInterface(ABC):
    """Abstract interface for storage providers."""

    @abstractmethod
    async def put_object(
        self,
        bucket: str,
        object_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Upload bytes under the given key, replacing nothing (keys are unique)."""
        pass

    @abstractmethod
    async def delete_object(self, bucket: str, object_path: str) -> None:
        """Delete an object. Deleting a missing key is not an error."""
        pass

    @abstractmethod
    async def generate_presigned_download_url(
        self,
        bucket: str,
        object_path: str,
        ttl_seconds: int,
    ) -> str:
        """Generate a presigned GET URL for download."""
        pass

    @abstractmethod
    def public_url(self, bucket: str, object_path: str) -> str:
        """Permanent URL of an object in a publicly readable bucket."""
        pass


class GCSStorageProvider(StorageProviderInterface):
    """Google Cloud Storage provider."""

    def __init__(self, project_id: Optional[str] = None):
        self.project_id = project_id
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client(project=self.project_id)
        return self._client

    def _blob(self, bucket: str, object_path: str):
        return self.client.bucket(bucket).blob(object_path)

    async def put_object(
        self,
        bucket: str,
        object_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        blob = self._blob(bucket, object_path)
        await asyncio.to_thread(
            blob.upload_from_string,
            data,
            content_type=content_type,
            if_generation_match=0,
        )

    async def delete_object(self, bucket: str, object_path: str) -> None:
        blob = self._blob(bucket, object_path)
        if await asyncio.to_thread(blob.exists):
            await asyncio.to_thread(blob.delete)

    async def generate_presigned_download_url(
        self,
        bucket: str,
        object_path: str,
        ttl_seconds: int,
    ) -> str:
        blob = self._blob(bucket, object_path)
        return blob.generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=ttl_seconds),
            method="GET",
        )

    def public_url(self, bucket: str, object_path: str) -> str:
        return f"https://storage.googleapis.com/{bucket}/{object_path}"


class S3StorageProvider(StorageProviderInterface):
    """AWS S3 storage provider."""

    def __init__(
        self,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ):
        self.region = region
        self._client = None
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    async def put_object(
        self,
        bucket: str,
        object_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=bucket,
            Key=object_path,
            Body=data,
            ContentType=content_type,
        )

    async def delete_object(self, bucket: str, object_path: str) -> None:
        # S3 DeleteObject already succeeds for missing keys
        await asyncio.to_thread(self.client.delete_object, Bucket=bucket, Key=object_path)

    async def generate_presigned_download_url(
        self,
        bucket: str,
        object_path: str,
        ttl_seconds: int,
    ) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": bucket,
                "Key": object_path,
            },
            ExpiresIn=ttl_seconds,
        )

    def public_url(self, bucket: str, object_path: str) -> str:
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{object_path}"


class InMemoryStorageProvider(StorageProviderInterface):
    """Process-local object store for development and tests."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}

    async def put_object(
        self,
        bucket: str,
        object_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        self.objects[(bucket, object_path)] = (bytes(data), content_type)

    async def delete_object(self, bucket: str, object_path: str) -> None:
        self.objects.pop((bucket, object_path), None)

    async def generate_presigned_download_url(
        self,
        bucket: str,
        object_path: str,
        ttl_seconds: int,
    ) -> str:
        return f"memory://{bucket}/{object_path}?expires_in={ttl_seconds}"

    def public_url(self, bucket: str, object_path: str) -> str:
        return f"memory://{bucket}/{object_path}"

    def exists(self, bucket: str, object_path: str) -> bool:
        return (bucket, object_path) in self.objects


class StorageService:
    """High-level storage service wrapping provider interface.

    ``visibility`` is a required policy decision, not a default: it controls
    whether the location recorded on a document is a permanent public URL
    or an opaque ``{bucket}/{key}`` locator that only this service can turn
    into a (time-limited) download link.
    """

    def __init__(
        self,
        provider: StorageProviderInterface,
        bucket: str,
        visibility: ArtifactVisibility,
        signed_url_ttl_seconds: int = 3600,
        public_base_url: Optional[str] = None,
    ):
        self.provider = provider
        self.bucket = bucket
        self.visibility = ArtifactVisibility(visibility)
        self.signed_url_ttl_seconds = signed_url_ttl_seconds
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def generate_object_path(
        self,
        kind: DocumentKind,
        internship_ref: str,
        document_id: UUID,
    ) -> str:
        """Generate a unique object path for a rendered artifact."""
        safe_ref = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in internship_ref)
        return f"{DocumentKind(kind).value}/{safe_ref}/{document_id}.pdf"

    async def put(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Upload an artifact and return its location under the visibility policy."""
        await self.provider.put_object(bucket, key, data, content_type)
        logger.info(f"[STORAGE] Uploaded {bucket}/{key} ({len(data)} bytes)")
        return self._location(bucket, key)

    async def delete(self, bucket: str, key: str) -> None:
        """Idempotent delete."""
        await self.provider.delete_object(bucket, key)
        logger.info(f"[STORAGE] Deleted {bucket}/{key}")

    async def download_url(self, location: str) -> Tuple[str, Optional[int]]:
        """Resolve a recorded location to a link a client can fetch.

        Returns:
            Tuple of (url, expires_in_seconds); the TTL is None for public URLs
        """
        if self.visibility == ArtifactVisibility.PUBLIC:
            return location, None
        if self.visibility == ArtifactVisibility.PRIVATE:
            raise PermissionError("Artifacts are private under the configured storage policy")

        bucket, key = self.parse_location(location)
        url = await self.provider.generate_presigned_download_url(
            bucket, key, self.signed_url_ttl_seconds
        )
        return url, self.signed_url_ttl_seconds

    @staticmethod
    def parse_location(location: str) -> Tuple[str, str]:
        bucket, _, key = location.partition("/")
        if not bucket or not key:
            raise ValueError(f"Not a storage locator: {location!r}")
        return bucket, key

    def _location(self, bucket: str, key: str) -> str:
        if self.visibility != ArtifactVisibility.PUBLIC:
            return f"{bucket}/{key}"
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return self.provider.public_url(bucket, key)


def get_storage_service(settings: Settings) -> StorageService:
    """Factory function to get storage service based on config."""
    if settings.storage_provider == StorageProvider.GCS:
        provider: StorageProviderInterface = GCSStorageProvider(project_id=settings.gcs_project_id)
    elif settings.storage_provider == StorageProvider.S3:
        provider = S3StorageProvider(
            region=settings.aws_region or "us-east-1",
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    else:
        provider = InMemoryStorageProvider()

    return StorageService(
        provider,
        bucket=settings.bucket_name,
        visibility=settings.artifact_visibility,
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
        public_base_url=settings.public_base_url,
    )
