"""
Module: lekka_kernel.selectors.document_selector
Responsibility: Read access to finalized documents -- duplicate detection
    for the duplicate_document rule and lookups for callers.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from lekka_kernel.domain.dtos import DocumentType
from lekka_kernel.models.document import Document, DocumentStatus, IdempotencyKey
from lekka_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class DocumentInfo:
    document_id: UUID
    doc_type: DocumentType
    number: str
    reference: str | None
    doc_date: date
    party: str | None
    gross_minor: int
    preview_id: UUID


class DocumentSelector(BaseSelector[Document]):
    """Read-only document queries."""

    def has_duplicate(
        self,
        tenant_id: str,
        doc_type: DocumentType,
        reference: str,
        doc_date: date,
    ) -> bool:
        """True when a finalized document with the same reference and date exists."""
        found = self.session.execute(
            select(func.count())
            .select_from(Document)
            .where(
                Document.tenant_id == tenant_id,
                Document.doc_type == doc_type.value,
                Document.reference == reference,
                Document.doc_date == doc_date,
                Document.status == DocumentStatus.FINALIZED.value,
            )
        ).scalar_one()
        return found > 0

    def by_number(self, tenant_id: str, doc_type: DocumentType, number: str) -> DocumentInfo | None:
        row = self.session.execute(
            select(Document).where(
                Document.tenant_id == tenant_id,
                Document.doc_type == doc_type.value,
                Document.number == number,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return DocumentInfo(
            document_id=row.id,
            doc_type=DocumentType(row.doc_type),
            number=row.number,
            reference=row.reference,
            doc_date=row.doc_date,
            party=row.party,
            gross_minor=row.gross_minor,
            preview_id=row.preview_id,
        )

    def idempotency_preview(self, tenant_id: str, key: str) -> UUID | None:
        """Preview id first recorded under ``key``, if any."""
        return self.session.execute(
            select(IdempotencyKey.preview_id).where(
                IdempotencyKey.tenant_id == tenant_id,
                IdempotencyKey.key == key,
            )
        ).scalar_one_or_none()
