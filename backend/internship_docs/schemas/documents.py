"""Issuance request, record and verification schemas."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from internship_docs.models.enums import DocumentKind, PerformanceGrade
from internship_docs.schemas.base import BaseSchema

__all__ = [
    "OfferLetterRequest",
    "CertificateRequest",
    "REQUEST_MODELS",
    "GeneratedDocument",
    "PUBLIC_VERIFICATION_FIELDS",
    "VerificationResult",
    "Pagination",
    "DocumentPage",
    "DownloadLink",
]


def _end_not_before_start(value: date, info: ValidationInfo) -> date:
    start = info.data.get("start_date")
    if start is not None and value < start:
        raise ValueError("end_date must not be before start_date")
    return value


class OfferLetterRequest(BaseSchema):
    """Facts needed to issue an internship offer letter."""

    model_config = ConfigDict(extra="forbid")

    participant_name: str = Field(..., min_length=1, max_length=100)
    participant_contact: EmailStr
    role_title: str = Field(..., min_length=1, max_length=200)
    organization_name: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date
    compensation: str = Field(..., min_length=1, max_length=50)
    location: str = Field(..., min_length=1, max_length=100)
    sponsor_name: str = Field(..., min_length=1, max_length=100)
    internship_ref: str = Field(..., min_length=1, max_length=255)

    # Cosmetic, rendered blank when absent
    department: Optional[str] = Field(None, max_length=100)
    sponsor_title: Optional[str] = Field(None, max_length=100)

    # Defaults to participant_contact
    subject_ref: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("end_date")
    @classmethod
    def check_end_date(cls, value: date, info: ValidationInfo) -> date:
        return _end_not_before_start(value, info)

    @property
    def resolved_subject_ref(self) -> str:
        return self.subject_ref or str(self.participant_contact)


class CertificateRequest(BaseSchema):
    """Facts needed to issue an internship completion certificate."""

    model_config = ConfigDict(extra="forbid")

    participant_name: str = Field(..., min_length=1, max_length=100)
    role_title: str = Field(..., min_length=1, max_length=200)
    organization_name: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date
    completion_date: date
    performance_grade: PerformanceGrade
    skills: List[str] = Field(..., min_length=1, max_length=10)
    internship_ref: str = Field(..., min_length=1, max_length=255)

    sponsor_name: Optional[str] = Field(None, max_length=100)
    hr_manager_name: Optional[str] = Field(None, max_length=100)

    # Defaults to participant_name
    subject_ref: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("end_date")
    @classmethod
    def check_end_date(cls, value: date, info: ValidationInfo) -> date:
        return _end_not_before_start(value, info)

    @field_validator("skills")
    @classmethod
    def check_skills(cls, value: List[str]) -> List[str]:
        cleaned = [skill.strip() for skill in value]
        for skill in cleaned:
            if not skill or len(skill) > 100:
                raise ValueError("each skill must be 1-100 characters")
        return cleaned

    @property
    def resolved_subject_ref(self) -> str:
        return self.subject_ref or self.participant_name


REQUEST_MODELS = {
    DocumentKind.OFFER_LETTER: OfferLetterRequest,
    DocumentKind.COMPLETION_CERTIFICATE: CertificateRequest,
}


class GeneratedDocument(BaseSchema):
    """The persisted issuance record. Never mutated after creation."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    id: UUID
    kind: DocumentKind
    subject_ref: str
    internship_ref: str
    verification_code: str
    artifact_location: str
    artifact_sha256: str
    metadata: Dict[str, Any]
    issued_at: datetime
    expires_at: Optional[datetime] = None


PUBLIC_VERIFICATION_FIELDS = frozenset({
    "verified",
    "kind",
    "subject_ref",
    "internship_ref",
    "issued_at",
    "expires_at",
    "artifact_location",
})


class VerificationResult(BaseSchema):
    """Redacted view safe to hand to an anonymous verifier."""

    verified: bool
    kind: Optional[DocumentKind] = None
    subject_ref: Optional[str] = None
    internship_ref: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    artifact_location: Optional[str] = None

    @classmethod
    def not_verified(cls) -> "VerificationResult":
        return cls(verified=False)

    @classmethod
    def from_document(cls, document: GeneratedDocument) -> "VerificationResult":
        return cls(
            verified=True,
            kind=document.kind,
            subject_ref=document.subject_ref,
            internship_ref=document.internship_ref,
            issued_at=document.issued_at,
            expires_at=document.expires_at,
            artifact_location=document.artifact_location,
        )

    def public_dict(self) -> Dict[str, Any]:
        """JSON-ready payload; a miss is always exactly ``{"verified": false}``."""
        if not self.verified:
            return {"verified": False}
        return self.model_dump(mode="json", exclude_none=True)


class Pagination(BaseSchema):
    page: int
    limit: int
    total: int
    total_pages: int


class DocumentPage(BaseSchema):
    """Admin listing page."""

    documents: List[GeneratedDocument]
    pagination: Pagination


class DownloadLink(BaseSchema):
    url: str
    expires_in_seconds: Optional[int] = None
