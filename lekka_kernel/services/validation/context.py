"""
Validation context and the read-only lookups rules may consult.

Rules never touch the session directly.  Everything they need from the
database goes through ValidationLookups, which wraps the selectors and
is bound to one tenant, one clock reading and one session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from lekka_kernel.domain.dtos import DocumentModel, DocumentType, Headroom, JournalLine
from lekka_kernel.domain.policy import LedgerPolicy
from lekka_kernel.domain.tax import TdsAggregateProvider, ZeroTdsAggregates
from lekka_kernel.selectors.account_selector import AccountInfo
from lekka_kernel.selectors.document_selector import DocumentSelector
from lekka_kernel.selectors.funds_selector import FundsSelector
from lekka_kernel.selectors.inventory_selector import InventorySelector
from lekka_kernel.services.chart_service import ChartService
from lekka_kernel.services.period_lock_service import PeriodLockService


class ValidationLookups:
    """
    Tenant-bound read facade for rules.

    Contract:
        Every method is a pure read.  Account lookups are memoized for
        the lifetime of the instance (one validation pass).
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        now: datetime,
        tds_aggregates: TdsAggregateProvider | None = None,
    ):
        self._tenant_id = tenant_id
        self._now = now
        self._chart = ChartService(session)
        self._periods = PeriodLockService(session)
        self._documents = DocumentSelector(session)
        self._inventory = InventorySelector(session)
        self._funds = FundsSelector(session)
        self._tds = tds_aggregates or ZeroTdsAggregates()
        self._accounts: dict[str, AccountInfo | None] = {}

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def account(self, name: str) -> AccountInfo | None:
        if name not in self._accounts:
            self._accounts[name] = self._chart.lookup(self._tenant_id, name)
        return self._accounts[name]

    def is_period_locked(self, on: date) -> bool:
        return self._periods.is_locked(self._tenant_id, on)

    def has_duplicate_document(self, doc_type: DocumentType, reference: str, on: date) -> bool:
        return self._documents.has_duplicate(self._tenant_id, doc_type, reference, on)

    def on_hand(self, item_code: str) -> Decimal | None:
        return self._inventory.on_hand(self._tenant_id, item_code)

    def available_headroom(self, account: str, on: date) -> Headroom:
        return self._funds.available_headroom(self._tenant_id, account, on, self._now)

    def tds_aggregate(self, party: str | None, section: str, fiscal_year: int) -> int:
        return self._tds.aggregate(self._tenant_id, party, section, fiscal_year)


@dataclass(frozen=True)
class ValidationContext:
    """Everything a rule may read."""

    doc_type: DocumentType
    lines: tuple[JournalLine, ...]
    tenant_id: str
    policy: LedgerPolicy
    as_of: date
    lookups: ValidationLookups
    document: DocumentModel = field(default_factory=DocumentModel)
    idempotency_key: str | None = None

    def account_type(self, name: str):
        info = self.lookups.account(name)
        return info.account_type if info is not None else None
