"""
Document Engine

The one object the HTTP layer talks to. It owns the issuance and
verification services plus their collaborators, and adds the read-side
operations (listing, download links) that do not need an orchestrator.

Collaborators are injected; ``build_engine`` wires production ones from
settings.
"""

import logging
import math
from datetime import timedelta
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID

from internship_docs.core.config import Settings, get_settings
from internship_docs.core.database import get_session_factory
from internship_docs.models.enums import DocumentKind
from internship_docs.schemas.documents import (
    DocumentPage,
    DownloadLink,
    GeneratedDocument,
    Pagination,
    VerificationResult,
)
from internship_docs.services.issuance import IssuanceOrchestrator, IssuanceRequest
from internship_docs.services.notifications import LoggingNotifier, Notifier
from internship_docs.services.pdf_generator import get_pdf_generator
from internship_docs.services.repository import (
    DocumentRepository,
    InMemoryDocumentRepository,
    SqlDocumentRepository,
)
from internship_docs.services.storage import StorageService, get_storage_service
from internship_docs.services.verification import VerificationService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class DocumentEngine:
    def __init__(
        self,
        orchestrator: IssuanceOrchestrator,
        verifier: VerificationService,
        notifier: Optional[Notifier] = None,
    ):
        self.orchestrator = orchestrator
        self.verifier = verifier
        self.notifier = notifier or LoggingNotifier()

    @property
    def repository(self) -> DocumentRepository:
        return self.orchestrator.repository

    @property
    def storage(self) -> StorageService:
        return self.orchestrator.storage

    async def issue(
        self,
        kind: Union[DocumentKind, str],
        request: Union[IssuanceRequest, Mapping[str, Any]],
        *,
        timeout: Optional[float] = None,
    ) -> GeneratedDocument:
        return await self.orchestrator.issue(kind, request, timeout=timeout)

    async def verify(self, code: str) -> VerificationResult:
        return await self.verifier.verify(code)

    async def list_by_subject(self, subject_ref: str) -> List[GeneratedDocument]:
        """All documents for one subject, newest first."""
        return await self.repository.find_by_subject(subject_ref)

    async def list_documents(
        self,
        kind: Optional[DocumentKind] = None,
        subject_ref: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> DocumentPage:
        page = max(1, page)
        limit = min(max(1, limit), MAX_PAGE_SIZE)
        documents, total = await self.repository.list_documents(
            kind=kind,
            subject_ref=subject_ref,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return DocumentPage(
            documents=documents,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if total else 0,
            ),
        )

    async def get_download_url(self, document_id: UUID) -> Optional[DownloadLink]:
        """
        Link to a document's artifact, or None if the document is unknown.

        Raises:
            PermissionError: artifacts are private under the storage policy
        """
        document = await self.repository.find_by_id(document_id)
        if document is None:
            return None
        url, ttl = await self.storage.download_url(document.artifact_location)
        return DownloadLink(url=url, expires_in_seconds=ttl)

    async def notify_issued(self, document: GeneratedDocument) -> None:
        """Tell the notifier about a new document. Failures are logged, not raised."""
        recipient = document.metadata.get("participant_contact") or document.subject_ref
        try:
            await self.notifier.document_issued(document, recipient)
        except Exception as e:
            logger.warning(f"[NOTIFY] Notification for {document.id} failed: {e}")


def build_engine(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[DocumentRepository] = None,
    storage: Optional[StorageService] = None,
    notifier: Optional[Notifier] = None,
) -> DocumentEngine:
    """Wire an engine from settings. Explicit collaborators win over settings."""
    settings = settings or get_settings()

    if repository is None:
        session_factory = get_session_factory() if settings.database_url else None
        if session_factory is not None:
            repository = SqlDocumentRepository(session_factory)
        else:
            repository = InMemoryDocumentRepository()

    if storage is None:
        storage = get_storage_service(settings)

    orchestrator = IssuanceOrchestrator(
        storage,
        repository,
        get_pdf_generator(),
        offer_letter_validity=timedelta(days=settings.offer_letter_validity_days),
        storage_timeout=settings.storage_timeout_seconds,
        persistence_timeout=settings.persistence_timeout_seconds,
        infra_retry_attempts=settings.infra_retry_attempts,
        compensation_attempts=settings.compensation_attempts,
        code_generation_attempts=settings.code_generation_attempts,
        verification_base_url=settings.verification_base_url,
    )
    verifier = VerificationService(
        repository,
        min_response_seconds=settings.verify_min_response_ms / 1000,
        lookup_timeout=settings.persistence_timeout_seconds,
    )
    logger.info(
        f"[ENGINE] repository={type(repository).__name__} "
        f"storage={type(storage.provider).__name__} visibility={storage.visibility.value}"
    )
    return DocumentEngine(orchestrator, verifier, notifier)
