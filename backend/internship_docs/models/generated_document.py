"""GeneratedDocument model - the persisted issuance record."""

import uuid
from datetime import datetime
from typing import Optional, Any

from sqlalchemy import String, DateTime, Enum as SQLEnum, Text, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from internship_docs.core.database import Base
from internship_docs.models.enums import DocumentKind


class GeneratedDocumentRow(Base):
    """Immutable record of one issued artifact.

    Rows are written once and never updated. Expiry is applied at read time
    by the verification service; expired rows stay in the table.
    """

    __tablename__ = "generated_documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    kind: Mapped[DocumentKind] = mapped_column(
        SQLEnum(DocumentKind, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )

    # Opaque references, not foreign keys
    subject_ref: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    internship_ref: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Exact-match lookup key; UNIQUE backs the optimistic collision check
    verification_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)

    artifact_location: Mapped[str] = mapped_column(Text, nullable=False)
    artifact_sha256: Mapped[str] = mapped_column(String(64), nullable=False)

    # Full resolved field set used to render the artifact
    document_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONB, nullable=False)

    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_generated_documents_subject_issued", "subject_ref", "issued_at"),
    )
