"""Shared router dependencies."""

from fastapi import Request

from internship_docs.services.engine import DocumentEngine


def get_document_engine(request: Request) -> DocumentEngine:
    """The engine wired into the running application."""
    return request.app.state.engine
