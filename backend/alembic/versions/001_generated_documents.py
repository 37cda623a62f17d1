"""Generated documents table

Revision ID: 001_generated_documents
Revises: 
Create Date: 2026-10-19

One insert-only row per issued offer letter or completion certificate.
verification_code is UNIQUE; the application re-rolls on violation.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_generated_documents'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'generated_documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'kind',
            sa.Enum('offer_letter', 'completion_certificate', name='documentkind'),
            nullable=False,
        ),
        sa.Column('subject_ref', sa.String(255), nullable=False),
        sa.Column('internship_ref', sa.String(255), nullable=False),
        sa.Column('verification_code', sa.String(16), nullable=False),
        sa.Column('artifact_location', sa.Text(), nullable=False),
        sa.Column('artifact_sha256', sa.String(64), nullable=False),
        sa.Column('metadata', postgresql.JSONB(), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('verification_code', name='uq_generated_documents_verification_code'),
    )
    op.create_index('ix_generated_documents_kind', 'generated_documents', ['kind'])
    op.create_index('ix_generated_documents_subject_ref', 'generated_documents', ['subject_ref'])
    op.create_index('ix_generated_documents_internship_ref', 'generated_documents', ['internship_ref'])
    op.create_index(
        'ix_generated_documents_subject_issued',
        'generated_documents',
        ['subject_ref', 'issued_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_generated_documents_subject_issued', table_name='generated_documents')
    op.drop_index('ix_generated_documents_internship_ref', table_name='generated_documents')
    op.drop_index('ix_generated_documents_subject_ref', table_name='generated_documents')
    op.drop_index('ix_generated_documents_kind', table_name='generated_documents')
    op.drop_table('generated_documents')
    sa.Enum(name='documentkind').drop(op.get_bind(), checkfirst=True)
