"""Persistence collaborators for GeneratedDocument records.

``DocumentRepository`` is the contract the issuance and verification
services depend on. ``SqlDocumentRepository`` backs it with PostgreSQL;
``InMemoryDocumentRepository`` is used for development and tests.
Records are insert-only; nothing here updates a row in place.
"""

from typing import Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from internship_docs.core.exceptions import DuplicateKey
from internship_docs.models.enums import DocumentKind
from internship_docs.models.generated_document import GeneratedDocumentRow
from internship_docs.schemas.documents import GeneratedDocument


class DocumentRepository(Protocol):
    async def insert(self, record: GeneratedDocument) -> None: ...
    async def find_by_code(self, code: str) -> Optional[GeneratedDocument]: ...
    async def find_by_id(self, document_id: UUID) -> Optional[GeneratedDocument]: ...
    async def find_by_subject(self, subject_ref: str) -> List[GeneratedDocument]: ...
    async def list_documents(
        self,
        kind: Optional[DocumentKind] = None,
        subject_ref: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[GeneratedDocument], int]: ...


class InMemoryDocumentRepository:
    def __init__(self) -> None:
        self._by_code: Dict[str, GeneratedDocument] = {}

    async def insert(self, record: GeneratedDocument) -> None:
        if record.verification_code in self._by_code:
            raise DuplicateKey(record.verification_code)
        self._by_code[record.verification_code] = record

    async def find_by_code(self, code: str) -> Optional[GeneratedDocument]:
        return self._by_code.get(code)

    async def find_by_id(self, document_id: UUID) -> Optional[GeneratedDocument]:
        for record in self._by_code.values():
            if record.id == document_id:
                return record
        return None

    async def find_by_subject(self, subject_ref: str) -> List[GeneratedDocument]:
        records = [r for r in self._by_code.values() if r.subject_ref == subject_ref]
        return sorted(records, key=lambda r: r.issued_at, reverse=True)

    async def list_documents(
        self,
        kind: Optional[DocumentKind] = None,
        subject_ref: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[GeneratedDocument], int]:
        records = [
            r for r in self._by_code.values()
            if (kind is None or r.kind == kind)
            and (subject_ref is None or r.subject_ref == subject_ref)
        ]
        records.sort(key=lambda r: r.issued_at, reverse=True)
        return records[offset:offset + limit], len(records)


class SqlDocumentRepository:
    """Satisfies the DocumentRepository Protocol using PostgreSQL.

    Each call runs in its own short-lived session so that the orchestrator
    can bound, retry and cancel persistence independently of the request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, record: GeneratedDocument) -> None:
        row = GeneratedDocumentRow(
            id=record.id,
            kind=record.kind,
            subject_ref=record.subject_ref,
            internship_ref=record.internship_ref,
            verification_code=record.verification_code,
            artifact_location=record.artifact_location,
            artifact_sha256=record.artifact_sha256,
            document_metadata=dict(record.metadata),
            issued_at=record.issued_at,
            expires_at=record.expires_at,
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if "verification_code" in str(e.orig):
                    raise DuplicateKey(record.verification_code) from e
                raise

    async def find_by_code(self, code: str) -> Optional[GeneratedDocument]:
        stmt = select(GeneratedDocumentRow).where(GeneratedDocumentRow.verification_code == code)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_document(row)

    async def find_by_id(self, document_id: UUID) -> Optional[GeneratedDocument]:
        stmt = select(GeneratedDocumentRow).where(GeneratedDocumentRow.id == document_id)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_document(row)

    async def find_by_subject(self, subject_ref: str) -> List[GeneratedDocument]:
        stmt = (
            select(GeneratedDocumentRow)
            .where(GeneratedDocumentRow.subject_ref == subject_ref)
            .order_by(GeneratedDocumentRow.issued_at.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_document(row) for row in rows]

    async def list_documents(
        self,
        kind: Optional[DocumentKind] = None,
        subject_ref: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[GeneratedDocument], int]:
        query = select(GeneratedDocumentRow)
        if kind is not None:
            query = query.where(GeneratedDocumentRow.kind == kind)
        if subject_ref is not None:
            query = query.where(GeneratedDocumentRow.subject_ref == subject_ref)

        count_query = select(func.count()).select_from(query.subquery())
        page_query = (
            query.order_by(GeneratedDocumentRow.issued_at.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            total = (await session.execute(count_query)).scalar_one()
            rows = (await session.execute(page_query)).scalars().all()
        return [_row_to_document(row) for row in rows], total


def _row_to_document(row: GeneratedDocumentRow) -> GeneratedDocument:
    return GeneratedDocument(
        id=row.id,
        kind=row.kind,
        subject_ref=row.subject_ref,
        internship_ref=row.internship_ref,
        verification_code=row.verification_code,
        artifact_location=row.artifact_location,
        artifact_sha256=row.artifact_sha256,
        metadata=row.document_metadata or {},
        issued_at=row.issued_at,
        expires_at=row.expires_at,
    )
