"""
Module: lekka_kernel.models.document
Responsibility: Finalized human documents (invoice, receipt, vouchers) and
    the tenant-scoped idempotency keys recorded at confirm.
Architecture position: Kernel > Models.  Written by PostingOrchestrator.

Invariants enforced:
    - (tenant_id, doc_type, number) is unique: one document per issued number.
    - (tenant_id, key) is unique for idempotency keys; a repeated key is
      ignored, not an error.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import MinorUnits, Name, ShortCode, TenantId


class DocumentStatus(str, Enum):
    FINALIZED = "FINALIZED"


class Document(TimestampedBase):
    """Metadata row for a confirmed human document."""

    __tablename__ = "documents"

    __table_args__ = (
        UniqueConstraint("tenant_id", "doc_type", "number", name="uq_document_number"),
        Index("idx_document_reference", "tenant_id", "doc_type", "reference", "doc_date"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    doc_type: Mapped[ShortCode] = mapped_column(nullable=False)

    number: Mapped[ShortCode] = mapped_column(nullable=False)

    reference: Mapped[ShortCode | None] = mapped_column(nullable=True)

    doc_date: Mapped[date] = mapped_column(Date, nullable=False)

    party: Mapped[Name | None] = mapped_column(nullable=True)

    gross_minor: Mapped[MinorUnits] = mapped_column(nullable=False, default=0)

    status: Mapped[DocumentStatus] = mapped_column(
        String(12), nullable=False, default=DocumentStatus.FINALIZED.value
    )

    preview_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)


class IdempotencyKey(TimestampedBase):
    """Client-supplied confirm key, scoped to a tenant."""

    __tablename__ = "idempotency_keys"

    __table_args__ = (
        UniqueConstraint("tenant_id", "key", name="uq_idempotency_tenant_key"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    key: Mapped[str] = mapped_column(String(200), nullable=False)

    preview_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
