"""
Issuance Orchestrator

Coordinates one issuance end to end:

    validate -> derive fields -> pick code -> resolve template -> render
             -> upload artifact -> persist record

Upload and persist touch two different systems and cannot be made atomic,
so a failed persist is followed by deleting the artifact that was just
uploaded. That compensating delete is retried a few times; if it still
fails the artifact is logged as orphaned and the original persistence error
is what the caller sees.

A request uploads one artifact, with one exception: when the insert reports
a verification-code collision (a unique-key race the pre-insert lookup
cannot rule out), the artifact carrying the losing code is deleted and a new
one is rendered and uploaded under a fresh code. Codes are 16 symbols from a
32-symbol alphabet, so this path is practically never taken.
"""

import asyncio
import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from internship_docs.core.exceptions import (
    DuplicateCode,
    DuplicateKey,
    IssuanceError,
    PersistenceFailure,
    StorageFailure,
    Timeout,
    ValidationError,
)
from internship_docs.models.enums import DocumentKind
from internship_docs.schemas.documents import (
    REQUEST_MODELS,
    CertificateRequest,
    GeneratedDocument,
    OfferLetterRequest,
)
from internship_docs.services import derived_fields
from internship_docs.services.codes import generate_verification_code
from internship_docs.services.pdf_generator import PDF_CONTENT_TYPE, PDFGenerator
from internship_docs.services.repository import DocumentRepository
from internship_docs.services.storage import StorageService
from internship_docs.services.templates import resolve_template

logger = logging.getLogger(__name__)

T = TypeVar("T")

IssuanceRequest = Union[OfferLetterRequest, CertificateRequest]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _violation(error: Mapping[str, Any]) -> Dict[str, str]:
    field = ".".join(str(part) for part in error.get("loc", ())) or "request"
    return {"field": field, "message": error.get("msg", "invalid value")}


class IssuanceOrchestrator:
    """Issues offer letters and completion certificates."""

    def __init__(
        self,
        storage: StorageService,
        repository: DocumentRepository,
        renderer: Optional[PDFGenerator] = None,
        *,
        offer_letter_validity: timedelta = timedelta(days=90),
        storage_timeout: float = 10.0,
        persistence_timeout: float = 5.0,
        infra_retry_attempts: int = 3,
        compensation_attempts: int = 3,
        code_generation_attempts: int = 5,
        retry_backoff_seconds: float = 0.1,
        verification_base_url: Optional[str] = None,
        code_factory: Callable[[], str] = generate_verification_code,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.storage = storage
        self.repository = repository
        self.renderer = renderer or PDFGenerator()
        self.offer_letter_validity = offer_letter_validity
        self.storage_timeout = storage_timeout
        self.persistence_timeout = persistence_timeout
        self.infra_retry_attempts = max(1, infra_retry_attempts)
        self.compensation_attempts = max(1, compensation_attempts)
        self.code_generation_attempts = max(1, code_generation_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self.verification_base_url = verification_base_url.rstrip("/") if verification_base_url else None
        self._code_factory = code_factory
        self._clock = clock

    async def issue(
        self,
        kind: Union[DocumentKind, str],
        request: Union[IssuanceRequest, Mapping[str, Any]],
        *,
        timeout: Optional[float] = None,
    ) -> GeneratedDocument:
        """
        Issue one document.

        Args:
            kind: offer_letter or completion_certificate
            request: a request model or a raw mapping to validate
            timeout: per-step bound (seconds) for upload and persist;
                defaults to the configured storage/persistence timeouts

        Returns:
            The persisted GeneratedDocument

        Raises:
            ValidationError, RenderFailure, StorageFailure, PersistenceFailure,
            DuplicateCode, Timeout
        """
        kind, parsed = self.validate(kind, request)
        storage_timeout = timeout if timeout is not None else self.storage_timeout
        persistence_timeout = timeout if timeout is not None else self.persistence_timeout

        issued_at = self._clock()
        expires_at = None
        if kind == DocumentKind.OFFER_LETTER:
            expires_at = issued_at + self.offer_letter_validity

        for attempt in range(1, self.code_generation_attempts + 1):
            code = self._code_factory()
            if await self._code_taken(code, persistence_timeout):
                logger.warning(f"[ISSUANCE] Code collision before render, re-rolling (attempt {attempt})")
                continue

            document_id = uuid.uuid4()
            fields = self.build_fields(kind, parsed, code, document_id, issued_at, expires_at)
            resolved = resolve_template(kind, fields)
            # reportlab and qrcode are synchronous
            artifact = await asyncio.to_thread(self.renderer.render, resolved, self.qr_payload(code))

            key = self.storage.generate_object_path(kind, parsed.internship_ref, document_id)
            location = await self._upload(key, artifact, storage_timeout)

            document = GeneratedDocument(
                id=document_id,
                kind=kind,
                subject_ref=parsed.resolved_subject_ref,
                internship_ref=parsed.internship_ref,
                verification_code=code,
                artifact_location=location,
                artifact_sha256=hashlib.sha256(artifact).hexdigest(),
                metadata=fields,
                issued_at=issued_at,
                expires_at=expires_at,
            )

            try:
                await self._persist(document, persistence_timeout)
            except DuplicateKey:
                await self._compensate(key)
                logger.warning(f"[ISSUANCE] Code collision on insert, re-rolling (attempt {attempt})")
                continue
            except IssuanceError:
                await self._compensate(key)
                raise

            logger.info(
                f"[ISSUANCE] Issued {kind.value} id={document.id} code={code[:4]}****"
            )
            return document

        raise DuplicateCode(
            f"Could not allocate a unique verification code after {self.code_generation_attempts} attempts"
        )

    def validate(
        self,
        kind: Union[DocumentKind, str],
        request: Union[BaseModel, Mapping[str, Any]],
    ) -> Tuple[DocumentKind, IssuanceRequest]:
        """Check the request against its kind-specific schema, collecting every violation."""
        try:
            kind = DocumentKind(kind)
        except ValueError:
            raise ValidationError([{"field": "kind", "message": f"unknown document kind {kind!r}"}]) from None

        model = REQUEST_MODELS[kind]
        if isinstance(request, model):
            return kind, request
        if isinstance(request, BaseModel):
            raise ValidationError([{
                "field": "request",
                "message": f"{type(request).__name__} cannot be issued as {kind.value}",
            }])

        try:
            return kind, model.model_validate(dict(request or {}))
        except PydanticValidationError as e:
            raise ValidationError([_violation(err) for err in e.errors()]) from None

    def build_fields(
        self,
        kind: DocumentKind,
        request: IssuanceRequest,
        code: str,
        document_id: uuid.UUID,
        issued_at: datetime,
        expires_at: Optional[datetime],
    ) -> Dict[str, str]:
        """Full string field map: caller facts plus derived values."""
        fields: Dict[str, str] = {
            "participant_name": request.participant_name,
            "role_title": request.role_title,
            "organization_name": request.organization_name,
            "start_date": request.start_date.isoformat(),
            "end_date": request.end_date.isoformat(),
            "internship_ref": request.internship_ref,
            "duration_months": str(derived_fields.duration_months(request.start_date, request.end_date)),
            "verification_code": code,
            "document_id": str(document_id),
            "issued_date": issued_at.date().isoformat(),
        }

        if isinstance(request, OfferLetterRequest):
            fields.update({
                "participant_contact": str(request.participant_contact),
                "compensation": request.compensation,
                "location": request.location,
                "sponsor_name": request.sponsor_name,
                "sponsor_title": request.sponsor_title or "",
                "department": request.department or "",
                "expires_date": expires_at.date().isoformat() if expires_at else "",
                "serial_number": derived_fields.serial_number(derived_fields.OFFER_SERIAL_PREFIX, issued_at),
            })
        else:
            fields.update({
                "completion_date": request.completion_date.isoformat(),
                "performance_grade": request.performance_grade.value,
                "performance_label": derived_fields.grade_label(request.performance_grade),
                "skills_formatted": ", ".join(request.skills),
                "sponsor_name": request.sponsor_name or "",
                "hr_manager_name": request.hr_manager_name or "",
                "serial_number": derived_fields.serial_number(derived_fields.CERTIFICATE_SERIAL_PREFIX, issued_at),
            })
        return fields

    def qr_payload(self, code: str) -> str:
        if self.verification_base_url:
            return f"{self.verification_base_url}/verify/{code}"
        return code

    async def _code_taken(self, code: str, timeout: float) -> bool:
        existing = await self._bounded(
            "lookup",
            lambda: self.repository.find_by_code(code),
            timeout,
            PersistenceFailure,
        )
        return existing is not None

    async def _upload(self, key: str, artifact: bytes, timeout: float) -> str:
        bucket = self.storage.bucket
        try:
            return await self._bounded(
                "upload",
                lambda: self.storage.put(bucket, key, artifact, PDF_CONTENT_TYPE),
                timeout,
                StorageFailure,
            )
        except Timeout:
            # The object may still land after we stop waiting
            await self._compensate(key)
            raise

    async def _persist(self, document: GeneratedDocument, timeout: float) -> None:
        await self._bounded(
            "persist",
            lambda: self.repository.insert(document),
            timeout,
            PersistenceFailure,
        )

    async def _bounded(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        timeout: float,
        failure: Type[IssuanceError],
    ) -> T:
        """Run ``call`` with bounded retries, the whole step capped at ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(self._retrying(operation, call, failure), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[ISSUANCE] {operation} timed out after {timeout}s")
            raise Timeout(f"{operation} did not complete within {timeout}s", operation=operation) from None

    async def _retrying(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        failure: Type[IssuanceError],
    ) -> T:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.infra_retry_attempts + 1):
            try:
                return await call()
            except (DuplicateKey, IssuanceError):
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[ISSUANCE] {operation} attempt {attempt}/{self.infra_retry_attempts} failed: {e}"
                )
                if attempt < self.infra_retry_attempts:
                    await asyncio.sleep(self.retry_backoff_seconds * attempt)
        raise failure(
            f"{operation} failed after {self.infra_retry_attempts} attempts: {last_error}"
        ) from last_error

    async def _compensate(self, key: str) -> bool:
        """Delete a just-uploaded artifact. Never raises."""
        bucket = self.storage.bucket
        for attempt in range(1, self.compensation_attempts + 1):
            try:
                await asyncio.wait_for(self.storage.delete(bucket, key), self.storage_timeout)
                return True
            except Exception as e:
                logger.warning(
                    f"[ISSUANCE] Compensating delete of {bucket}/{key} "
                    f"attempt {attempt}/{self.compensation_attempts} failed: {e}"
                )
                if attempt < self.compensation_attempts:
                    await asyncio.sleep(self.retry_backoff_seconds * attempt)

        logger.error(
            f"[ISSUANCE] ORPHANED ARTIFACT bucket={bucket} key={key} needs out-of-band cleanup"
        )
        return False
