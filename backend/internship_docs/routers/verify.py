"""Public verification router. No authentication, no details on a miss."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from internship_docs.routers.deps import get_document_engine
from internship_docs.services.engine import DocumentEngine

router = APIRouter(prefix="/verify", tags=["verification"])


@router.get("/{code}")
async def verify_document(
    code: str,
    engine: DocumentEngine = Depends(get_document_engine),
):
    """Check a verification code.

    Returns the redacted document view with 200, or ``{"verified": false}``
    with 404 for unknown, malformed and expired codes alike.
    """
    result = await engine.verify(code)
    status_code = status.HTTP_200_OK if result.verified else status.HTTP_404_NOT_FOUND
    return JSONResponse(status_code=status_code, content=result.public_dict())
