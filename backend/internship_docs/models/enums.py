"""Enumeration types for the document issuance domain."""

from enum import Enum


class DocumentKind(str, Enum):
    """Which fixed template a document is rendered from."""
    OFFER_LETTER = "offer_letter"
    COMPLETION_CERTIFICATE = "completion_certificate"


class PerformanceGrade(str, Enum):
    """Closed grade set accepted on completion certificates."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
