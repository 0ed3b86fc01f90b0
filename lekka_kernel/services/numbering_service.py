"""
NumberingService -- gap-tolerant document numbering with reservations.

Responsibility:
    Issues human-readable numbers ``PREFIX-FY-NNNNN`` per (tenant, document
    type, fiscal year) and tracks each issued number as a reservation that
    is HELD during preview, then USED at confirm or EXPIRED on cancel or
    lapse.

Architecture position:
    Kernel > Services.  Called by PostingOrchestrator (reserve at preview,
    finalize at confirm, cancel on cancel_preview) and by the sweep.

Invariants enforced:
    - The counter increment is one atomic statement
      (UPDATE ... SET current_value = current_value + 1 RETURNING), so two
      transactions can never read the same value.
    - Numbers are never reused: expired reservations keep their number and
      the unique (tenant, doc_type, fiscal_year, number) constraint spans
      every status.  Gaps are permitted.
    - HELD -> USED and HELD -> EXPIRED are the only transitions.

Failure modes:
    - NumberingUnavailableError after ``max_attempts`` consecutive insert
      conflicts.  Retryable.
    - ReservationNotFoundError / ReservationStateError from finalize and
      cancel.
"""

from datetime import date, datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from lekka_kernel.domain.dtos import DocumentType, ReservationInfo
from lekka_kernel.exceptions import (
    NumberingUnavailableError,
    ReservationNotFoundError,
    ReservationStateError,
)
from lekka_kernel.logging_config import get_logger
from lekka_kernel.models.series import ReservationStatus, SeriesCounter, SeriesReservation
from lekka_kernel.services.base import BaseService

logger = get_logger("services.numbering")


def fiscal_year_for(on: date, start_month: int = 1) -> int:
    """Calendar year in which the fiscal year containing ``on`` starts."""
    if not 1 <= start_month <= 12:
        raise ValueError(f"start_month must be 1..12, got {start_month}")
    return on.year if on.month >= start_month else on.year - 1


def format_number(prefix: str, fiscal_year: int, sequence: int) -> str:
    return f"{prefix}-{fiscal_year}-{sequence:05d}"


class NumberingService(BaseService[SeriesReservation]):
    """
    Document number reservation.

    Contract:
        ``reserve_next`` returns a HELD reservation whose number no other
        reservation for the same series has ever held.  Everything is
        flushed in the caller's transaction; a rollback returns the
        counter increment too.

    Non-goals:
        - Does NOT guarantee gapless series.
    """

    def __init__(
        self,
        session,
        max_attempts: int = 25,
        fiscal_year_start_month: int = 1,
    ):
        super().__init__(session)
        self._max_attempts = max_attempts
        self._start_month = fiscal_year_start_month

    def _increment(self, tenant_id: str, doc_type: str, fiscal_year: int) -> int | None:
        stmt = (
            update(SeriesCounter)
            .where(
                SeriesCounter.tenant_id == tenant_id,
                SeriesCounter.doc_type == doc_type,
                SeriesCounter.fiscal_year == fiscal_year,
            )
            .values(current_value=SeriesCounter.current_value + 1)
            .returning(SeriesCounter.current_value)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _ensure_counter(self, tenant_id: str, doc_type: str, fiscal_year: int) -> None:
        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                SeriesCounter(
                    tenant_id=tenant_id,
                    doc_type=doc_type,
                    fiscal_year=fiscal_year,
                    current_value=0,
                )
            )
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            # Created concurrently; the winner's row is the counter
            savepoint.rollback()
            logger.debug(
                "series_counter_race",
                extra={"tenant_id": tenant_id, "doc_type": doc_type, "fiscal_year": fiscal_year},
            )

    def next_sequence(self, tenant_id: str, doc_type: DocumentType, fiscal_year: int) -> int:
        value = self._increment(tenant_id, doc_type.value, fiscal_year)
        if value is None:
            self._ensure_counter(tenant_id, doc_type.value, fiscal_year)
            value = self._increment(tenant_id, doc_type.value, fiscal_year)
        return int(value)

    def reserve_next(
        self,
        tenant_id: str,
        doc_type: DocumentType,
        on: date,
        now: datetime,
        ttl_seconds: int,
        preview_id: UUID | None = None,
    ) -> ReservationInfo:
        """
        Reserve the next number of the series for ``on``.

        Raises:
            NumberingUnavailableError: every attempt hit a uniqueness conflict.
        """
        fiscal_year = fiscal_year_for(on, self._start_month)
        expires_at = now + timedelta(seconds=ttl_seconds)

        for attempt in range(1, self._max_attempts + 1):
            sequence = self.next_sequence(tenant_id, doc_type, fiscal_year)
            number = format_number(doc_type.series_prefix, fiscal_year, sequence)
            reservation = SeriesReservation(
                reservation_id=uuid4(),
                tenant_id=tenant_id,
                doc_type=doc_type.value,
                fiscal_year=fiscal_year,
                sequence=sequence,
                number=number,
                status=ReservationStatus.HELD.value,
                preview_id=preview_id,
                expires_at=expires_at,
            )
            savepoint = self.session.begin_nested()
            try:
                self.session.add(reservation)
                self.session.flush()
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                logger.warning(
                    "reservation_retry",
                    extra={
                        "tenant_id": tenant_id,
                        "doc_type": doc_type.value,
                        "number": number,
                        "attempt": attempt,
                    },
                )
                continue

            logger.info(
                "number_reserved",
                extra={
                    "tenant_id": tenant_id,
                    "doc_type": doc_type.value,
                    "number": number,
                    "reservation_id": str(reservation.reservation_id),
                    "expires_at": expires_at.isoformat(),
                },
            )
            return ReservationInfo(
                reservation_id=reservation.reservation_id,
                number=number,
                fiscal_year=fiscal_year,
                expires_at=expires_at,
            )

        logger.error(
            "numbering_unavailable",
            extra={
                "tenant_id": tenant_id,
                "doc_type": doc_type.value,
                "fiscal_year": fiscal_year,
                "attempts": self._max_attempts,
            },
        )
        raise NumberingUnavailableError(tenant_id, doc_type.value, fiscal_year, self._max_attempts)

    def _load(self, reservation_id: UUID) -> SeriesReservation:
        row = self.session.execute(
            select(SeriesReservation)
            .where(SeriesReservation.reservation_id == reservation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise ReservationNotFoundError(reservation_id)
        return row

    def _transition(self, reservation_id: UUID, target: ReservationStatus) -> SeriesReservation:
        row = self._load(reservation_id)
        if row.status != ReservationStatus.HELD.value:
            raise ReservationStateError(reservation_id, row.status, target.value)
        row.status = target.value
        self.session.flush()
        logger.info(
            "reservation_transitioned",
            extra={
                "reservation_id": str(reservation_id),
                "number": row.number,
                "status": target.value,
            },
        )
        return row

    def attach_preview(self, reservation_id: UUID, preview_id: UUID) -> None:
        row = self._load(reservation_id)
        row.preview_id = preview_id
        self.session.flush()

    def finalize(self, reservation_id: UUID) -> str:
        """HELD -> USED.  Returns the number."""
        return self._transition(reservation_id, ReservationStatus.USED).number

    def cancel(self, reservation_id: UUID) -> str:
        """HELD -> EXPIRED.  The number is not returned to the pool."""
        return self._transition(reservation_id, ReservationStatus.EXPIRED).number

    def get_status(self, reservation_id: UUID) -> ReservationStatus:
        return self._load(reservation_id).state

    def expire_stale(self, now: datetime) -> int:
        """Move every HELD reservation with ``expires_at < now`` to EXPIRED."""
        result = self.session.execute(
            update(SeriesReservation)
            .where(
                SeriesReservation.status == ReservationStatus.HELD.value,
                SeriesReservation.expires_at < now,
            )
            .values(status=ReservationStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        expired = result.rowcount or 0
        if expired:
            logger.info("reservations_expired", extra={"count": expired})
        return expired
