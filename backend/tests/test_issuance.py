import asyncio
import hashlib
import logging
import time
from datetime import timedelta

import pytest

from internship_docs.core.exceptions import (
    DuplicateCode,
    DuplicateKey,
    PersistenceFailure,
    RenderFailure,
    StorageFailure,
    Timeout,
    ValidationError,
)
from internship_docs.models.enums import DocumentKind
from internship_docs.schemas.documents import CertificateRequest
from internship_docs.services.issuance import IssuanceOrchestrator
from internship_docs.services.repository import InMemoryDocumentRepository
from internship_docs.services.storage import InMemoryStorageProvider, StorageService

from tests.conftest import BUCKET


class FailingRepository(InMemoryDocumentRepository):
    def __init__(self, failures: int = 1_000):
        super().__init__()
        self.failures = failures
        self.insert_calls = 0

    async def insert(self, record):
        self.insert_calls += 1
        if self.insert_calls <= self.failures:
            raise ConnectionError("database unavailable")
        await super().insert(record)


class CollidingRepository(InMemoryDocumentRepository):
    """Reports a unique-key violation for the first ``collisions`` inserts."""

    def __init__(self, collisions: int):
        super().__init__()
        self.collisions = collisions

    async def insert(self, record):
        if self.collisions > 0:
            self.collisions -= 1
            raise DuplicateKey(record.verification_code)
        await super().insert(record)


class SlowRepository(InMemoryDocumentRepository):
    async def insert(self, record):
        await asyncio.sleep(5)
        await super().insert(record)


class SlowStorageProvider(InMemoryStorageProvider):
    async def put_object(self, bucket, object_path, data, content_type):
        await asyncio.sleep(5)
        await super().put_object(bucket, object_path, data, content_type)


class BrokenStorageProvider(InMemoryStorageProvider):
    def __init__(self, fail_put: bool = False, fail_delete: bool = False):
        super().__init__()
        self.fail_put = fail_put
        self.fail_delete = fail_delete
        self.delete_calls = 0

    async def put_object(self, bucket, object_path, data, content_type):
        if self.fail_put:
            raise OSError("bucket unreachable")
        await super().put_object(bucket, object_path, data, content_type)

    async def delete_object(self, bucket, object_path):
        self.delete_calls += 1
        if self.fail_delete:
            raise OSError("delete refused")
        await super().delete_object(bucket, object_path)


def make_orchestrator(provider, repository, clock, **kwargs):
    storage = StorageService(provider, bucket=BUCKET, visibility="signed")
    return IssuanceOrchestrator(storage, repository, retry_backoff_seconds=0, clock=clock, **kwargs)


def artifact_key(document):
    return StorageService.parse_location(document.artifact_location)[1]


def test_certificate_scenario(orchestrator, verifier, provider, certificate_payload):
    document = asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))

    assert document.kind == DocumentKind.COMPLETION_CERTIFICATE
    assert document.metadata["duration_months"] == "3"
    assert document.metadata["performance_label"] == "Outstanding"
    assert document.metadata["skills_formatted"] == "Go, SQL"
    assert document.metadata["serial_number"].startswith("CERT-")
    assert len(document.verification_code) == 16
    assert document.expires_at is None
    assert document.subject_ref == "A. Lee"

    result = asyncio.run(verifier.verify(document.verification_code))
    assert result.verified is True
    assert result.subject_ref == "A. Lee"
    assert result.internship_ref == "INT-2024-003"
    assert result.kind == DocumentKind.COMPLETION_CERTIFICATE


def test_offer_letter_expires_after_ninety_days(orchestrator, clock, offer_payload):
    document = asyncio.run(orchestrator.issue("offer_letter", offer_payload))

    assert document.issued_at == clock.now
    assert document.expires_at == clock.now + timedelta(days=90)
    assert document.subject_ref == "priya@example.com"
    assert document.metadata["expires_date"] == "2024-06-30"
    assert document.metadata["serial_number"].startswith("OFFER-")
    assert document.metadata["department"] == ""


def test_artifact_is_stored_with_hash(orchestrator, provider, offer_payload):
    document = asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload))

    key = artifact_key(document)
    assert key.startswith("offer_letter/INT-2024-017/")
    data, content_type = provider.objects[(BUCKET, key)]
    assert content_type == "application/pdf"
    assert data.startswith(b"%PDF")
    assert hashlib.sha256(data).hexdigest() == document.artifact_sha256


def test_accepts_request_model(orchestrator, repository, certificate_payload):
    request = CertificateRequest.model_validate(certificate_payload)

    document = asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, request))

    assert asyncio.run(repository.find_by_code(document.verification_code)) == document


def test_explicit_subject_ref_wins(orchestrator, certificate_payload):
    certificate_payload["subject_ref"] = "student-42"

    document = asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))

    assert document.subject_ref == "student-42"


def test_validation_lists_every_violation(orchestrator, provider, repository):
    payload = {
        "participant_name": "Priya",
        "participant_contact": "not-an-email",
        "start_date": "2024-06-01",
        "end_date": "2024-05-01",
    }

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, payload))

    fields = {v["field"] for v in exc_info.value.violations}
    assert {
        "participant_contact",
        "end_date",
        "role_title",
        "organization_name",
        "compensation",
        "location",
        "sponsor_name",
        "internship_ref",
    } <= fields
    assert "participant_name" not in fields
    assert exc_info.value.to_dict()["kind"] == "validation_error"
    assert provider.objects == {}
    assert asyncio.run(repository.list_documents()) == ([], 0)


def test_unknown_field_is_a_violation(orchestrator, offer_payload):
    offer_payload["salary_band"] = "L3"

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload))

    assert [v["field"] for v in exc_info.value.violations] == ["salary_band"]


def test_unknown_kind_is_a_violation(orchestrator, offer_payload):
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(orchestrator.issue("reference_letter", offer_payload))

    assert exc_info.value.violations[0]["field"] == "kind"


def test_wrong_request_model_for_kind(orchestrator, certificate_payload):
    request = CertificateRequest.model_validate(certificate_payload)

    with pytest.raises(ValidationError):
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, request))


def test_failed_persist_removes_artifact(clock, offer_payload):
    provider = InMemoryStorageProvider()
    repository = FailingRepository()
    orchestrator = make_orchestrator(provider, repository, clock)

    with pytest.raises(PersistenceFailure):
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload))

    assert repository.insert_calls == 3
    assert provider.objects == {}


def test_transient_persist_failure_is_retried(clock, offer_payload):
    provider = InMemoryStorageProvider()
    repository = FailingRepository(failures=2)
    orchestrator = make_orchestrator(provider, repository, clock)

    document = asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload))

    assert repository.insert_calls == 3
    assert (BUCKET, artifact_key(document)) in provider.objects


def test_upload_failure_surfaces_after_retries(clock, offer_payload):
    provider = BrokenStorageProvider(fail_put=True)
    repository = InMemoryDocumentRepository()
    orchestrator = make_orchestrator(provider, repository, clock)

    with pytest.raises(StorageFailure):
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload))

    assert asyncio.run(repository.list_documents()) == ([], 0)


def test_insert_collision_rerolls_code(clock, certificate_payload):
    codes = iter(["AAAAAAAAAAAAAAAA", "BBBBBBBBBBBBBBBB"])
    provider = InMemoryStorageProvider()
    repository = CollidingRepository(collisions=1)
    orchestrator = make_orchestrator(provider, repository, clock, code_factory=lambda: next(codes))

    document = asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))

    assert document.verification_code == "BBBBBBBBBBBBBBBB"
    assert document.metadata["verification_code"] == "BBBBBBBBBBBBBBBB"
    # the artifact rendered for the colliding code was removed
    assert list(provider.objects) == [(BUCKET, artifact_key(document))]


def test_existing_code_is_skipped_before_render(orchestrator, repository, certificate_payload):
    first = asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))
    codes = iter([first.verification_code, "CCCCCCCCCCCCCCCC"])
    orchestrator._code_factory = lambda: next(codes)

    second = asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))

    assert second.verification_code == "CCCCCCCCCCCCCCCC"


def test_duplicate_code_after_exhausted_rerolls(clock, certificate_payload):
    provider = InMemoryStorageProvider()
    repository = CollidingRepository(collisions=100)
    orchestrator = make_orchestrator(provider, repository, clock, code_generation_attempts=5)

    with pytest.raises(DuplicateCode) as exc_info:
        asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))

    assert exc_info.value.kind == "duplicate_code"
    assert provider.objects == {}


def test_slow_upload_times_out(clock, offer_payload):
    provider = SlowStorageProvider()
    repository = InMemoryDocumentRepository()
    orchestrator = make_orchestrator(provider, repository, clock)

    with pytest.raises(Timeout) as exc_info:
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload, timeout=0.05))

    assert exc_info.value.operation == "upload"
    assert provider.objects == {}
    assert asyncio.run(repository.list_documents()) == ([], 0)


def test_slow_persist_times_out_and_compensates(clock, offer_payload):
    provider = InMemoryStorageProvider()
    orchestrator = make_orchestrator(provider, SlowRepository(), clock)

    with pytest.raises(Timeout) as exc_info:
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload, timeout=0.05))

    assert exc_info.value.operation == "persist"
    assert provider.objects == {}


def test_failed_compensation_logs_orphan_and_keeps_original_error(clock, offer_payload, caplog):
    caplog.set_level(logging.WARNING, logger="internship_docs.services.issuance")
    provider = BrokenStorageProvider(fail_delete=True)
    orchestrator = make_orchestrator(provider, FailingRepository(), clock, compensation_attempts=3)

    with pytest.raises(PersistenceFailure):
        asyncio.run(orchestrator.issue(DocumentKind.OFFER_LETTER, offer_payload))

    assert provider.delete_calls == 3
    orphan_logs = [r for r in caplog.records if "ORPHANED ARTIFACT" in r.getMessage()]
    assert len(orphan_logs) == 1
    assert orphan_logs[0].levelno == logging.ERROR
    (bucket, key), = provider.objects
    assert f"bucket={bucket} key={key}" in orphan_logs[0].getMessage()


def test_qr_payload_uses_verification_base_url(storage, repository, clock):
    orchestrator = IssuanceOrchestrator(
        storage,
        repository,
        verification_base_url="https://docs.example.com/",
        clock=clock,
    )

    assert orchestrator.qr_payload("ABCDEFGHJKMNPQRS") == "https://docs.example.com/verify/ABCDEFGHJKMNPQRS"


def test_codes_stay_distinct_across_issuances(orchestrator, certificate_payload):
    async def issue_many():
        return [
            await orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload)
            for _ in range(20)
        ]

    documents = asyncio.run(issue_many())

    assert len({d.verification_code for d in documents}) == 20
    assert len({d.id for d in documents}) == 20


class BrokenRenderer:
    def render(self, document, qr_payload):
        raise RenderFailure("font missing")


class BlockingRenderer:
    """Holds its thread like a long reportlab build would."""

    def render(self, document, qr_payload):
        time.sleep(0.2)
        return b"%PDF-1.4 stub"


def test_render_failure_writes_nothing(orchestrator, provider, repository, certificate_payload):
    orchestrator.renderer = BrokenRenderer()

    with pytest.raises(RenderFailure) as exc_info:
        asyncio.run(orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload))

    assert exc_info.value.kind == "render_failure"
    assert provider.objects == {}
    assert asyncio.run(repository.list_documents()) == ([], 0)


def test_render_does_not_block_event_loop(orchestrator, certificate_payload):
    orchestrator.renderer = BlockingRenderer()

    async def run():
        gaps = []
        stop = asyncio.Event()

        async def ticker():
            last = time.monotonic()
            while not stop.is_set():
                await asyncio.sleep(0.001)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        task = asyncio.create_task(ticker())
        document = await orchestrator.issue(DocumentKind.COMPLETION_CERTIFICATE, certificate_payload)
        stop.set()
        await task
        return document, gaps

    document, gaps = asyncio.run(run())

    assert document.artifact_sha256 == hashlib.sha256(b"%PDF-1.4 stub").hexdigest()
    assert len(gaps) > 10
    assert max(gaps) < 0.1
