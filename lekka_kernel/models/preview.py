"""
Module: lekka_kernel.models.preview
Responsibility: Persisted preview snapshots -- the exact payload a user is
    about to confirm, with its content hash.
Architecture position: Kernel > Models.  Written by SnapshotService.

Invariants enforced:
    - payload and payload_hash are written once at creation and never
      updated; only status changes.
    - ACTIVE -> USED happens at most once (confirm), ACTIVE -> EXPIRED on
      cancel or sweep.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import Name, PayloadHash, ShortCode, TenantId


class SnapshotStatus(str, Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    EXPIRED = "EXPIRED"


class PreviewSnapshot(TimestampedBase):
    """Content-hashed, time-bounded staging record."""

    __tablename__ = "preview_snapshots"

    __table_args__ = (
        Index("idx_preview_tenant_status", "tenant_id", "status"),
    )

    preview_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    doc_type: Mapped[ShortCode] = mapped_column(nullable=False)

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    payload_hash: Mapped[PayloadHash] = mapped_column(nullable=False)

    reservation_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    document_number: Mapped[ShortCode] = mapped_column(nullable=False)

    status: Mapped[SnapshotStatus] = mapped_column(
        String(10), nullable=False, default=SnapshotStatus.ACTIVE.value
    )

    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    created_by: Mapped[Name | None] = mapped_column(nullable=True)

    session_id: Mapped[ShortCode | None] = mapped_column(nullable=True)

    used_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def state(self) -> SnapshotStatus:
        return SnapshotStatus(self.status)
