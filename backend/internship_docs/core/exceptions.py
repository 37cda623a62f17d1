"""
Issuance Exceptions

Every failure the engine reports to a caller is an ``IssuanceError`` with a
stable ``kind`` string for programmatic handling. A verification miss is not
an exception; it is a normal negative ``VerificationResult``.
"""

from typing import Any, Dict, List, Optional


class IssuanceError(Exception):
    """Base exception for all issuance failures."""

    kind = "issuance_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(IssuanceError):
    """
    Raised when an issuance request is malformed.

    Carries every violated field, not just the first one found.
    """

    kind = "validation_error"

    def __init__(self, violations: List[Dict[str, str]]):
        self.violations = violations
        fields = ", ".join(v["field"] for v in violations)
        super().__init__(f"Invalid issuance request: {fields}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["violations"] = self.violations
        return data


class RenderFailure(IssuanceError):
    """Raised when the artifact could not be produced. Safe to retry with identical input."""

    kind = "render_failure"


class StorageFailure(IssuanceError):
    """Raised when the object store rejected an upload after bounded retries."""

    kind = "storage_failure"


class PersistenceFailure(IssuanceError):
    """Raised when the document record could not be written after bounded retries."""

    kind = "persistence_failure"


class DuplicateCode(IssuanceError):
    """Raised only when every verification-code re-roll collided."""

    kind = "duplicate_code"


class Timeout(IssuanceError):
    """Raised when a storage or persistence call exceeded its time bound."""

    kind = "timeout"

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


class DuplicateKey(Exception):
    """
    Raised by a document repository when ``verification_code`` already exists.

    This is the persistence collaborator's signal; the orchestrator turns it
    into a re-roll and never shows it to the caller directly.
    """

    def __init__(self, verification_code: str):
        self.verification_code = verification_code
        super().__init__("verification_code already exists")
