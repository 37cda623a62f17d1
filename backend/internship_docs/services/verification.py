"""
Verification Service

Answers "is this code genuine?" for anonymous callers. The answer never
says *why* a code failed: unknown, malformed and expired codes all produce
the same ``{"verified": false}`` after the same minimum delay.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from internship_docs.schemas.documents import VerificationResult
from internship_docs.services.codes import is_well_formed, normalize_code
from internship_docs.services.repository import DocumentRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationService:
    def __init__(
        self,
        repository: DocumentRepository,
        *,
        min_response_seconds: float = 0.05,
        lookup_timeout: float = 5.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.min_response_seconds = max(0.0, min_response_seconds)
        self.lookup_timeout = lookup_timeout
        self._clock = clock

    async def verify(self, raw_code: str) -> VerificationResult:
        """Look up a code and return the redacted public view, or a uniform miss."""
        started = time.monotonic()
        try:
            return await self._verify(raw_code)
        finally:
            remaining = self.min_response_seconds - (time.monotonic() - started)
            if remaining > 0:
                await asyncio.sleep(remaining)

    async def _verify(self, raw_code: str) -> VerificationResult:
        code = normalize_code(raw_code)
        if not is_well_formed(code):
            logger.info("[VERIFY] Rejected malformed code")
            return VerificationResult.not_verified()

        try:
            document = await asyncio.wait_for(self.repository.find_by_code(code), self.lookup_timeout)
        except Exception as e:
            # Outages answer like a miss; the log is the only place they show
            logger.error(f"[VERIFY] Lookup failed for {code[:4]}****: {e!r}")
            return VerificationResult.not_verified()

        if document is None:
            logger.info(f"[VERIFY] No match for {code[:4]}****")
            return VerificationResult.not_verified()

        if document.expires_at is not None and document.expires_at <= self._clock():
            logger.info(f"[VERIFY] Expired {document.kind.value} {code[:4]}****")
            return VerificationResult.not_verified()

        logger.info(f"[VERIFY] Verified {document.kind.value} {code[:4]}****")
        return VerificationResult.from_document(document)
