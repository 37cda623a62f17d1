"""API Routers for internship document issuance and verification."""

from internship_docs.routers.documents import router as documents_router
from internship_docs.routers.verify import router as verify_router

__all__ = [
    "documents_router",
    "verify_router",
]
