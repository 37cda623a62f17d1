"""Shared fixtures: in-memory collaborators and an app client."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from internship_docs.core.config import ArtifactVisibility, Settings
from internship_docs.main import create_app
from internship_docs.services.engine import DocumentEngine
from internship_docs.services.issuance import IssuanceOrchestrator
from internship_docs.services.repository import InMemoryDocumentRepository
from internship_docs.services.storage import InMemoryStorageProvider, StorageService
from internship_docs.services.verification import VerificationService

BUCKET = "documents"


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 4, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def provider():
    return InMemoryStorageProvider()


@pytest.fixture
def storage(provider):
    return StorageService(provider, bucket=BUCKET, visibility=ArtifactVisibility.SIGNED)


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def orchestrator(storage, repository, clock):
    return IssuanceOrchestrator(
        storage,
        repository,
        retry_backoff_seconds=0,
        clock=clock,
    )


@pytest.fixture
def verifier(repository, clock):
    return VerificationService(repository, min_response_seconds=0, clock=clock)


@pytest.fixture
def engine(orchestrator, verifier):
    return DocumentEngine(orchestrator, verifier)


@pytest.fixture
def client(engine):
    settings = Settings(_env_file=None, allowed_origins="http://localhost:3000")
    with TestClient(create_app(engine=engine, settings=settings)) as test_client:
        yield test_client


@pytest.fixture
def offer_payload():
    return {
        "participant_name": "Priya Sharma",
        "participant_contact": "priya@example.com",
        "role_title": "Data Engineering Intern",
        "organization_name": "Acme",
        "start_date": "2024-06-01",
        "end_date": "2024-08-31",
        "compensation": "INR 25,000 / month",
        "location": "Bengaluru",
        "sponsor_name": "R. Iyer",
        "internship_ref": "INT-2024-017",
    }


@pytest.fixture
def certificate_payload():
    return {
        "participant_name": "A. Lee",
        "role_title": "Backend Intern",
        "organization_name": "Acme",
        "start_date": "2024-01-01",
        "end_date": "2024-03-15",
        "completion_date": "2024-03-20",
        "performance_grade": "A",
        "skills": ["Go", "SQL"],
        "internship_ref": "INT-2024-003",
    }
