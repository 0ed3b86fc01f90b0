"""
SnapshotService -- content-hashed, time-bounded preview snapshots.

Responsibility:
    Persists the exact payload a caller will confirm, hashes it, and
    decides at confirm time whether that snapshot may still be committed.

Architecture position:
    Kernel > Services.  Called by PostingOrchestrator.

Invariants enforced:
    - The stored payload and hash are immutable; only ``status`` and
      ``used_at`` change.
    - ACTIVE -> USED happens at most once.  A second confirm sees USED
      and gets PreviewGoneError.
    - ``verify_for_confirm`` recomputes the hash of the stored payload, so a
      snapshot altered in the database is refused even if the caller's
      hash matches the stored one.

Failure modes (in check order):
    PreviewNotFoundError, PreviewGoneError, PreviewExpiredError,
    PreviewTenantMismatchError, PreviewHashMismatchError.
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update

from lekka_kernel.domain.dtos import DocumentType
from lekka_kernel.exceptions import (
    PreviewExpiredError,
    PreviewGoneError,
    PreviewHashMismatchError,
    PreviewNotFoundError,
    PreviewTenantMismatchError,
)
from lekka_kernel.logging_config import get_logger
from lekka_kernel.models.preview import PreviewSnapshot, SnapshotStatus
from lekka_kernel.services.base import BaseService
from lekka_kernel.utils.hashing import hash_payload

logger = get_logger("services.snapshot")


class SnapshotService(BaseService[PreviewSnapshot]):
    """Preview snapshot lifecycle."""

    def create(
        self,
        tenant_id: str,
        doc_type: DocumentType,
        payload: dict[str, Any],
        reservation_id: UUID,
        document_number: str,
        now: datetime,
        ttl_seconds: int,
        preview_id: UUID | None = None,
        created_by: str | None = None,
        session_id: str | None = None,
    ) -> PreviewSnapshot:
        payload_hash = hash_payload(payload)
        snapshot = PreviewSnapshot(
            preview_id=preview_id or uuid4(),
            tenant_id=tenant_id,
            doc_type=doc_type.value,
            payload=payload,
            payload_hash=payload_hash,
            reservation_id=reservation_id,
            document_number=document_number,
            status=SnapshotStatus.ACTIVE.value,
            expires_at=now + timedelta(seconds=ttl_seconds),
            created_by=created_by,
            session_id=session_id,
        )
        self.session.add(snapshot)
        self.session.flush()
        logger.info(
            "snapshot_created",
            extra={
                "preview_id": str(snapshot.preview_id),
                "tenant_id": tenant_id,
                "payload_hash": payload_hash,
                "document_number": document_number,
            },
        )
        return snapshot

    def get(self, preview_id: UUID, for_update: bool = False) -> PreviewSnapshot | None:
        stmt = (
            select(PreviewSnapshot)
            .where(PreviewSnapshot.preview_id == preview_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def verify_for_confirm(
        self,
        preview_id: UUID,
        expected_hash: str,
        tenant_id: str,
        now: datetime,
    ) -> PreviewSnapshot:
        """Lock and return the snapshot if it may be confirmed, else raise."""
        snapshot = self.get(preview_id, for_update=True)
        if snapshot is None:
            raise PreviewNotFoundError(preview_id)
        if snapshot.status == SnapshotStatus.USED.value:
            raise PreviewGoneError(preview_id, snapshot.status)
        if snapshot.status == SnapshotStatus.EXPIRED.value or snapshot.expires_at <= now:
            raise PreviewExpiredError(preview_id, snapshot.expires_at)
        if snapshot.tenant_id != tenant_id:
            raise PreviewTenantMismatchError(preview_id, tenant_id)
        if expected_hash != snapshot.payload_hash:
            raise PreviewHashMismatchError(preview_id, snapshot.payload_hash, expected_hash)
        recomputed = hash_payload(snapshot.payload)
        if recomputed != snapshot.payload_hash:
            logger.error(
                "snapshot_payload_tampered",
                extra={"preview_id": str(preview_id), "stored_hash": snapshot.payload_hash},
            )
            raise PreviewHashMismatchError(preview_id, recomputed, expected_hash)
        return snapshot

    def mark_used(self, snapshot: PreviewSnapshot, now: datetime) -> None:
        if snapshot.status != SnapshotStatus.ACTIVE.value:
            raise PreviewGoneError(snapshot.preview_id, snapshot.status)
        snapshot.status = SnapshotStatus.USED.value
        snapshot.used_at = now
        self.session.flush()

    def expire(self, snapshot: PreviewSnapshot) -> None:
        if snapshot.status == SnapshotStatus.USED.value:
            raise PreviewGoneError(snapshot.preview_id, snapshot.status)
        snapshot.status = SnapshotStatus.EXPIRED.value
        self.session.flush()

    def expire_stale(self, now: datetime) -> int:
        result = self.session.execute(
            update(PreviewSnapshot)
            .where(
                PreviewSnapshot.status == SnapshotStatus.ACTIVE.value,
                PreviewSnapshot.expires_at <= now,
            )
            .values(status=SnapshotStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        expired = result.rowcount or 0
        if expired:
            logger.info("snapshots_expired", extra={"count": expired})
        return expired
