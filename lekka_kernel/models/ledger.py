"""
Module: lekka_kernel.models.ledger
Responsibility: The permanent, tenant-scoped ledger of posted pairs.
Architecture position: Kernel > Models.  Written only by
    PostingOrchestrator.confirm; read by selectors.

Invariants enforced:
    - amount_minor > 0 and debit_account <> credit_account, as CHECK
      constraints, so a bug upstream still cannot persist a degenerate pair.
    - Rows are append-only; nothing in the kernel updates or deletes them.

Audit relevance:
    Every row is stamped with the document number and preview id that
    produced it, tying the ledger back to the confirmed snapshot.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import LongText, MinorUnits, Name, ShortCode, TenantId


class LedgerEntry(TimestampedBase):
    """One posted debit/credit pair."""

    __tablename__ = "ledger_entries"

    __table_args__ = (
        CheckConstraint("amount_minor > 0", name="ck_ledger_amount_positive"),
        CheckConstraint("debit_account <> credit_account", name="ck_ledger_distinct_accounts"),
        Index("idx_ledger_tenant_debit", "tenant_id", "debit_account", "transaction_date"),
        Index("idx_ledger_tenant_credit", "tenant_id", "credit_account", "transaction_date"),
        Index("idx_ledger_preview", "preview_id"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    debit_account: Mapped[Name] = mapped_column(nullable=False)

    credit_account: Mapped[Name] = mapped_column(nullable=False)

    amount_minor: Mapped[MinorUnits] = mapped_column(nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    narration: Mapped[LongText] = mapped_column(default="", nullable=False)

    document_number: Mapped[ShortCode] = mapped_column(nullable=False)

    document_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    preview_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.document_number} Dr {self.debit_account} "
            f"Cr {self.credit_account} {self.amount_minor}>"
        )
