"""
Module: lekka_kernel.models.series
Responsibility: Document number counters and the reservations drawn from them.
Architecture position: Kernel > Models.  Mutated only by NumberingService.

Invariants enforced:
    - One SeriesCounter row per (tenant, doc_type, fiscal_year); its value
      only ever increases.
    - (tenant, doc_type, fiscal_year, number) is unique across ALL
      reservations regardless of status, so a number is never issued twice.

Lifecycle:
    HELD --finalize--> USED
    HELD --cancel / expiry--> EXPIRED
    USED and EXPIRED are terminal.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import ShortCode, TenantId


class ReservationStatus(str, Enum):
    HELD = "HELD"
    USED = "USED"
    EXPIRED = "EXPIRED"


class SeriesCounter(TimestampedBase):
    """Per-(tenant, type, fiscal year) monotonic counter."""

    __tablename__ = "series_counters"

    __table_args__ = (
        UniqueConstraint("tenant_id", "doc_type", "fiscal_year", name="uq_series_counter"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    doc_type: Mapped[ShortCode] = mapped_column(nullable=False)

    fiscal_year: Mapped[int] = mapped_column(nullable=False)

    current_value: Mapped[int] = mapped_column(nullable=False, default=0)


class SeriesReservation(TimestampedBase):
    """A number drawn from a counter, held for one preview."""

    __tablename__ = "series_reservations"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "doc_type", "fiscal_year", "number",
            name="uq_series_reservation_number",
        ),
        Index("idx_series_reservation_status_expiry", "status", "expires_at"),
    )

    reservation_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    doc_type: Mapped[ShortCode] = mapped_column(nullable=False)

    fiscal_year: Mapped[int] = mapped_column(nullable=False)

    sequence: Mapped[int] = mapped_column(nullable=False)

    number: Mapped[ShortCode] = mapped_column(nullable=False)

    status: Mapped[ReservationStatus] = mapped_column(
        String(10), nullable=False, default=ReservationStatus.HELD.value
    )

    preview_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def state(self) -> ReservationStatus:
        return ReservationStatus(self.status)

    def __repr__(self) -> str:
        return f"<SeriesReservation {self.number} {self.status}>"
