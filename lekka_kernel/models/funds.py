"""
Module: lekka_kernel.models.funds
Responsibility: Credit facilities configured on instrument ledgers and the
    temporary holds outstanding previews place on headroom.
Architecture position: Kernel > Models.  Mutated by FundsService; read by
    the funds selector.

Invariants enforced:
    - At most one facility per (tenant, account_name).
    - limit_minor >= 0 and hold amount > 0 (CHECK constraints).
    - A hold only counts while expires_at is in the future.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import MinorUnits, Name, TenantId


class FacilityType(str, Enum):
    OD = "OD"
    OCC = "OCC"
    LOAN = "LOAN"
    LIMIT_ONLY = "LIMIT_ONLY"


class AccountFacility(TimestampedBase):
    """Overdraft, cash-credit, loan or plain limit on an instrument ledger."""

    __tablename__ = "account_facilities"

    __table_args__ = (
        UniqueConstraint("tenant_id", "account_name", name="uq_facility_tenant_account"),
        CheckConstraint("limit_minor >= 0", name="ck_facility_limit_non_negative"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    account_name: Mapped[Name] = mapped_column(nullable=False)

    facility_type: Mapped[FacilityType] = mapped_column(String(12), nullable=False)

    limit_minor: Mapped[MinorUnits] = mapped_column(nullable=False, default=0)

    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)

    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def active_on(self, on: date) -> bool:
        if self.valid_from is not None and on < self.valid_from:
            return False
        if self.valid_to is not None and on > self.valid_to:
            return False
        return True


class FundsHold(TimestampedBase):
    """Headroom reserved by an outstanding preview on one (account, date)."""

    __tablename__ = "funds_holds"

    __table_args__ = (
        CheckConstraint("amount_minor > 0", name="ck_hold_amount_positive"),
        Index("idx_hold_lookup", "tenant_id", "account_name", "hold_date"),
        Index("idx_hold_preview", "preview_id"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    account_name: Mapped[Name] = mapped_column(nullable=False)

    hold_date: Mapped[date] = mapped_column(Date, nullable=False)

    amount_minor: Mapped[MinorUnits] = mapped_column(nullable=False)

    preview_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(nullable=False)
