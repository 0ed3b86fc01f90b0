"""
Module: lekka_kernel.selectors.ledger_selector
Responsibility: Balances and entry listings derived from posted LedgerEntry
    rows.  There are no stored balances anywhere; every figure here is
    computed at query time.
Architecture position: Kernel > Selectors.

Conventions:
    - balance = debits - credits, up to and including the given date.
    - Account names match on their normalized (case-folded) form.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select

from lekka_kernel.domain.coa import normalize_key
from lekka_kernel.domain.dtos import LedgerPair
from lekka_kernel.models.ledger import LedgerEntry
from lekka_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PostedEntry:
    """A single posted pair as read back from the ledger."""

    entry_id: UUID
    debit_account: str
    credit_account: str
    amount_minor: int
    transaction_date: date
    narration: str
    document_number: str
    preview_id: UUID

    def to_pair(self) -> LedgerPair:
        return LedgerPair(
            debit_account=self.debit_account,
            credit_account=self.credit_account,
            amount=self.amount_minor,
            date=self.transaction_date.isoformat(),
            narration=self.narration,
        )


def _to_posted(row: LedgerEntry) -> PostedEntry:
    return PostedEntry(
        entry_id=row.id,
        debit_account=row.debit_account,
        credit_account=row.credit_account,
        amount_minor=row.amount_minor,
        transaction_date=row.transaction_date,
        narration=row.narration,
        document_number=row.document_number,
        preview_id=row.preview_id,
    )


class LedgerSelector(BaseSelector[LedgerEntry]):
    """Read-only ledger queries."""

    def _side_total(self, tenant_id: str, column, key: str, as_of: date | None) -> int:
        stmt = select(func.coalesce(func.sum(LedgerEntry.amount_minor), 0)).where(
            LedgerEntry.tenant_id == tenant_id,
            func.lower(column) == key,
        )
        if as_of is not None:
            stmt = stmt.where(LedgerEntry.transaction_date <= as_of)
        return int(self.session.execute(stmt).scalar_one())

    def balance_as_of(self, tenant_id: str, account: str, as_of: date | None = None) -> int:
        """Debits minus credits for ``account``, through ``as_of`` inclusive."""
        key = normalize_key(account)
        debits = self._side_total(tenant_id, LedgerEntry.debit_account, key, as_of)
        credits = self._side_total(tenant_id, LedgerEntry.credit_account, key, as_of)
        return debits - credits

    def entries(self, tenant_id: str, account: str | None = None) -> list[PostedEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.tenant_id == tenant_id)
        if account is not None:
            key = normalize_key(account)
            stmt = stmt.where(
                or_(
                    func.lower(LedgerEntry.debit_account) == key,
                    func.lower(LedgerEntry.credit_account) == key,
                )
            )
        stmt = stmt.order_by(LedgerEntry.transaction_date, LedgerEntry.created_at)
        return [_to_posted(r) for r in self.session.execute(stmt).scalars()]

    def entries_for_preview(self, preview_id: UUID) -> list[PostedEntry]:
        rows = self.session.execute(
            select(LedgerEntry).where(LedgerEntry.preview_id == preview_id)
        ).scalars()
        return [_to_posted(r) for r in rows]

    def count(self, tenant_id: str) -> int:
        return int(
            self.session.execute(
                select(func.count()).select_from(LedgerEntry).where(
                    LedgerEntry.tenant_id == tenant_id
                )
            ).scalar_one()
        )

