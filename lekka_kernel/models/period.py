"""
Module: lekka_kernel.models.period
Responsibility: Closed-period markers.  A tenant's books are locked for every
    date on or before its latest ``period_end``.
Architecture position: Kernel > Models.  Written by PeriodLockService.
"""

from datetime import date

from sqlalchemy import Date, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase
from lekka_kernel.db.types import Name, TenantId


class ClosedPeriod(TimestampedBase):
    __tablename__ = "closed_periods"

    __table_args__ = (
        UniqueConstraint("tenant_id", "period_end", name="uq_closed_period"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    # Inclusive
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    closed_by: Mapped[Name | None] = mapped_column(nullable=True)
