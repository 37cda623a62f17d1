"""Documents router - issuance, per-subject history and admin listing."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from internship_docs.models.enums import DocumentKind
from internship_docs.routers.deps import get_document_engine
from internship_docs.schemas.documents import DocumentPage, DownloadLink, GeneratedDocument
from internship_docs.services.engine import DocumentEngine

router = APIRouter(prefix="/documents", tags=["documents"])


async def _issue(engine: DocumentEngine, kind: DocumentKind, payload: Dict[str, Any]) -> GeneratedDocument:
    # Validation happens in the orchestrator so every violation is reported together
    document = await engine.issue(kind, payload)
    await engine.notify_issued(document)
    return document


@router.post("/offer-letter", response_model=GeneratedDocument, status_code=status.HTTP_201_CREATED)
async def issue_offer_letter(
    payload: Dict[str, Any] = Body(...),
    engine: DocumentEngine = Depends(get_document_engine),
):
    """Issue an internship offer letter (valid for verification for 90 days)."""
    return await _issue(engine, DocumentKind.OFFER_LETTER, payload)


@router.post("/completion-certificate", response_model=GeneratedDocument, status_code=status.HTTP_201_CREATED)
async def issue_completion_certificate(
    payload: Dict[str, Any] = Body(...),
    engine: DocumentEngine = Depends(get_document_engine),
):
    """Issue an internship completion certificate."""
    return await _issue(engine, DocumentKind.COMPLETION_CERTIFICATE, payload)


@router.get("/subject/{subject_ref}", response_model=List[GeneratedDocument])
async def list_documents_for_subject(
    subject_ref: str,
    engine: DocumentEngine = Depends(get_document_engine),
):
    """All documents issued to one subject, newest first."""
    return await engine.list_by_subject(subject_ref)


@router.get("", response_model=DocumentPage)
async def list_documents(
    kind: Optional[DocumentKind] = None,
    subject_ref: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    engine: DocumentEngine = Depends(get_document_engine),
):
    """Paginated listing of every issued document."""
    return await engine.list_documents(kind=kind, subject_ref=subject_ref, page=page, limit=limit)


@router.get("/{document_id}/download", response_model=DownloadLink)
async def get_download_url(
    document_id: UUID,
    engine: DocumentEngine = Depends(get_document_engine),
):
    """Get a link to the rendered PDF."""
    try:
        link = await engine.get_download_url(document_id)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return link
