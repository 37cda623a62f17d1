"""
Derived fields

Pure calculations for values the caller does not supply: internship
duration, the qualitative label printed for a grade, and the cosmetic serial
number shown on the artifact.
"""

import math
import secrets
import string
from datetime import date, datetime
from typing import Union

from internship_docs.models.enums import PerformanceGrade

DAYS_PER_MONTH = 30

GRADE_LABELS = {
    PerformanceGrade.A.value: "Outstanding",
    PerformanceGrade.B.value: "Excellent",
    PerformanceGrade.C.value: "Good",
    PerformanceGrade.D.value: "Satisfactory",
}
DEFAULT_GRADE_LABEL = "Excellent"

OFFER_SERIAL_PREFIX = "OFFER"
CERTIFICATE_SERIAL_PREFIX = "CERT"

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def duration_months(start: date, end: date) -> int:
    """Whole months between two dates, rounded up so short stints are not undercounted.

    Examples:
        2024-01-01 -> 2024-03-01 (60 days) -> 2
        2024-01-01 -> 2024-03-02 (61 days) -> 3
    """
    days = (end - start).days
    if days <= 0:
        return 0
    return math.ceil(days / DAYS_PER_MONTH)


def grade_label(grade: Union[PerformanceGrade, str, None]) -> str:
    """Map a grade letter to its printed label, falling back to ``Excellent``."""
    if isinstance(grade, PerformanceGrade):
        grade = grade.value
    return GRADE_LABELS.get(str(grade or "").strip().upper(), DEFAULT_GRADE_LABEL)


def serial_number(prefix: str, issued_at: datetime) -> str:
    """Human reference like ``CERT-1710892800000-7QK2``.

    Cosmetic only; it is never accepted in place of a verification code.
    """
    millis = int(issued_at.timestamp() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{prefix}-{millis}-{suffix}".upper()
