import asyncio
import uuid

import pytest

from internship_docs.core.config import ArtifactVisibility, Settings, StorageProvider
from internship_docs.models.enums import DocumentKind
from internship_docs.services.storage import (
    InMemoryStorageProvider,
    S3StorageProvider,
    StorageService,
    get_storage_service,
)


def test_object_path_is_scoped_by_kind_and_internship():
    service = StorageService(InMemoryStorageProvider(), "documents", ArtifactVisibility.SIGNED)
    document_id = uuid.uuid4()

    path = service.generate_object_path(DocumentKind.COMPLETION_CERTIFICATE, "INT 2024/003", document_id)

    assert path == f"completion_certificate/INT_2024_003/{document_id}.pdf"


def test_signed_visibility_records_locator_and_signs_on_demand():
    provider = InMemoryStorageProvider()
    service = StorageService(provider, "documents", ArtifactVisibility.SIGNED, signed_url_ttl_seconds=600)

    location = asyncio.run(service.put("documents", "a/b.pdf", b"%PDF-1.4", "application/pdf"))
    url, ttl = asyncio.run(service.download_url(location))

    assert location == "documents/a/b.pdf"
    assert url == "memory://documents/a/b.pdf?expires_in=600"
    assert ttl == 600


def test_public_visibility_records_permanent_url():
    service = StorageService(
        InMemoryStorageProvider(),
        "documents",
        ArtifactVisibility.PUBLIC,
        public_base_url="https://cdn.example.com/",
    )

    location = asyncio.run(service.put("documents", "a/b.pdf", b"%PDF-1.4", "application/pdf"))

    assert location == "https://cdn.example.com/a/b.pdf"
    assert asyncio.run(service.download_url(location)) == (location, None)


def test_private_visibility_refuses_links():
    service = StorageService(InMemoryStorageProvider(), "documents", ArtifactVisibility.PRIVATE)

    location = asyncio.run(service.put("documents", "a/b.pdf", b"%PDF-1.4", "application/pdf"))

    assert location == "documents/a/b.pdf"
    with pytest.raises(PermissionError):
        asyncio.run(service.download_url(location))


def test_delete_is_idempotent():
    provider = InMemoryStorageProvider()
    service = StorageService(provider, "documents", ArtifactVisibility.SIGNED)
    asyncio.run(service.put("documents", "a/b.pdf", b"%PDF-1.4", "application/pdf"))

    asyncio.run(service.delete("documents", "a/b.pdf"))
    asyncio.run(service.delete("documents", "a/b.pdf"))

    assert not provider.exists("documents", "a/b.pdf")


def test_parse_location_rejects_urls_without_key():
    with pytest.raises(ValueError):
        StorageService.parse_location("documents")


def test_factory_selects_provider():
    memory = get_storage_service(Settings(_env_file=None))
    assert isinstance(memory.provider, InMemoryStorageProvider)
    assert memory.bucket == "documents"
    assert memory.visibility == ArtifactVisibility.SIGNED

    s3 = get_storage_service(Settings(
        _env_file=None,
        storage_provider=StorageProvider.S3,
        s3_bucket_name="offers",
        artifact_visibility="public",
    ))
    assert isinstance(s3.provider, S3StorageProvider)
    assert s3.bucket == "offers"
    assert s3.provider.public_url("offers", "k.pdf") == "https://offers.s3.us-east-1.amazonaws.com/k.pdf"
