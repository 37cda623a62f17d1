"""SQLAlchemy models for the document issuance engine."""

from internship_docs.models.enums import DocumentKind, PerformanceGrade
from internship_docs.models.generated_document import GeneratedDocumentRow

__all__ = [
    "DocumentKind",
    "PerformanceGrade",
    "GeneratedDocumentRow",
]
