"""Post-issuance notification hook.

Delivery (email, SMS) lives outside this service. A notifier is only told
that a document exists and who should hear about it.
"""

import logging
from typing import Protocol

from internship_docs.schemas.documents import GeneratedDocument

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def document_issued(self, document: GeneratedDocument, recipient: str) -> None: ...


class LoggingNotifier:
    """Default notifier: records the event and delivers nothing."""

    async def document_issued(self, document: GeneratedDocument, recipient: str) -> None:
        logger.info(
            f"[NOTIFY] {document.kind.value} {document.id} ready for {recipient}"
        )
