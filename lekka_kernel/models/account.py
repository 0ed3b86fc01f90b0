"""
Module: lekka_kernel.models.account
Responsibility: ORM persistence for chart-of-accounts ledgers, in two tiers:
    tenant-owned rows and the shared "GLOBAL" tier that every tenant falls
    back to.
Architecture position: Kernel > Models.  May import from db/ and domain/coa.

Invariants enforced:
    - (tenant_id, normalized_name) is unique; lookups compare on the
      normalized key so "Office  expenses" and "Office Expenses" are one
      ledger.
    - Ledgers are never hard-deleted; ``is_active`` is cleared instead.

Failure modes:
    - IntegrityError when two transactions auto-provision the same name
      concurrently (ChartService retries inside a savepoint).
    - IntegrityError when two transactions create the same LedgerLock row;
      the loser rolls back its savepoint and locks the winner's row.
"""

from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import GLOBAL_TENANT, Name, ShortCode, TenantId
from lekka_kernel.domain.coa import AccountType, NormalBalance


class ChartAccount(TimestampedBase):
    """
    A ledger in the chart of accounts.

    Contract:
        ``account_type`` and ``normal_balance`` are stored as their enum
        values; ``parent_id`` links "Parent - Child" sub-ledgers.
    """

    __tablename__ = "chart_accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "normalized_name", name="uq_chart_tenant_name"),
        Index("idx_chart_tenant_active", "tenant_id", "is_active"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    code: Mapped[ShortCode] = mapped_column(nullable=False)

    name: Mapped[Name] = mapped_column(nullable=False)

    normalized_name: Mapped[Name] = mapped_column(nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    auto_created: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<ChartAccount {self.tenant_id}:{self.code} {self.name}>"

    @property
    def is_global(self) -> bool:
        return self.tenant_id == GLOBAL_TENANT

    @property
    def type(self) -> AccountType:
        return AccountType(self.account_type)


class LedgerLock(TimestampedBase):
    """
    Per-tenant serialization point for a ledger.

    Preview row-locks these instead of ``ChartAccount`` rows, so tenants
    sharing a GLOBAL ledger such as "Bank" never wait on each other.
    Rows are created on first use and never removed.
    """

    __tablename__ = "ledger_locks"

    __table_args__ = (
        UniqueConstraint("tenant_id", "normalized_name", name="uq_ledger_lock_tenant_name"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    normalized_name: Mapped[Name] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerLock {self.tenant_id}:{self.normalized_name}>"
