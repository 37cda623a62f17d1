"""Services for internship document issuance and verification."""

from internship_docs.services.storage import StorageService, get_storage_service
from internship_docs.services.repository import (
    DocumentRepository,
    InMemoryDocumentRepository,
    SqlDocumentRepository,
)
from internship_docs.services.issuance import IssuanceOrchestrator
from internship_docs.services.verification import VerificationService
from internship_docs.services.notifications import LoggingNotifier, Notifier
from internship_docs.services.engine import DocumentEngine, build_engine

__all__ = [
    "StorageService",
    "get_storage_service",
    "DocumentRepository",
    "InMemoryDocumentRepository",
    "SqlDocumentRepository",
    "IssuanceOrchestrator",
    "VerificationService",
    "LoggingNotifier",
    "Notifier",
    "DocumentEngine",
    "build_engine",
]
