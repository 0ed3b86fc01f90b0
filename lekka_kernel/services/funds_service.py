"""
FundsService -- facility configuration and preview holds.

Responsibility:
    Maintains credit facilities on instrument ledgers and the temporary
    holds that outstanding previews place on headroom.  Headroom itself
    is read through FundsSelector.

Architecture position:
    Kernel > Services.  Called by PostingOrchestrator (create holds at
    preview, release at confirm/cancel) and by the sweep.

Invariants enforced:
    - Holds are only created for positive outflows.
    - Releasing holds is idempotent: releasing a preview with no holds
      deletes nothing and does not fail.
"""

from datetime import date, datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy import delete, func, select

from lekka_kernel.domain.coa import clean_name, normalize_key
from lekka_kernel.domain.funds import Outflow
from lekka_kernel.exceptions import FacilityConflictError
from lekka_kernel.logging_config import get_logger
from lekka_kernel.models.funds import AccountFacility, FacilityType, FundsHold
from lekka_kernel.services.base import BaseService

logger = get_logger("services.funds")


class FundsService(BaseService[FundsHold]):

    def set_facility(
        self,
        tenant_id: str,
        account: str,
        facility_type: FacilityType | str,
        limit_minor: int,
        valid_from: date | None = None,
        valid_to: date | None = None,
    ) -> AccountFacility:
        """
        Create or replace the facility on ``account``.

        Raises:
            FacilityConflictError: negative limit or an inverted validity window.
        """
        kind = FacilityType(facility_type)
        if limit_minor < 0:
            raise FacilityConflictError(account, "limit must not be negative")
        if valid_from and valid_to and valid_to < valid_from:
            raise FacilityConflictError(account, "valid_to precedes valid_from")

        row = self.session.execute(
            select(AccountFacility).where(
                AccountFacility.tenant_id == tenant_id,
                func.lower(AccountFacility.account_name) == normalize_key(account),
            )
        ).scalar_one_or_none()
        if row is None:
            row = AccountFacility(tenant_id=tenant_id, account_name=clean_name(account))
            self.session.add(row)
        row.facility_type = kind.value
        row.limit_minor = limit_minor
        row.valid_from = valid_from
        row.valid_to = valid_to
        self.session.flush()
        logger.info(
            "facility_set",
            extra={
                "tenant_id": tenant_id,
                "account": row.account_name,
                "facility_type": kind.value,
                "limit_minor": limit_minor,
            },
        )
        return row

    def lock_facilities(self, tenant_id: str, names: Iterable[str]) -> None:
        keys = sorted({normalize_key(n) for n in names if n})
        if not keys:
            return
        self.session.execute(
            select(AccountFacility.id)
            .where(
                AccountFacility.tenant_id == tenant_id,
                func.lower(AccountFacility.account_name).in_(keys),
            )
            .order_by(AccountFacility.account_name)
            .with_for_update()
        ).all()

    def create_holds(
        self,
        tenant_id: str,
        preview_id: UUID,
        outflows: Iterable[Outflow],
        expires_at: datetime,
    ) -> int:
        created = 0
        for outflow in outflows:
            if outflow.amount <= 0:
                continue
            self.session.add(
                FundsHold(
                    tenant_id=tenant_id,
                    account_name=outflow.account,
                    hold_date=date.fromisoformat(outflow.date),
                    amount_minor=outflow.amount,
                    preview_id=preview_id,
                    expires_at=expires_at,
                )
            )
            created += 1
        self.session.flush()
        if created:
            logger.info(
                "funds_hold_created",
                extra={"preview_id": str(preview_id), "holds": created},
            )
        return created

    def release_holds(self, preview_id: UUID) -> int:
        result = self.session.execute(
            delete(FundsHold)
            .where(FundsHold.preview_id == preview_id)
            .execution_options(synchronize_session=False)
        )
        released = result.rowcount or 0
        if released:
            logger.info(
                "funds_hold_released",
                extra={"preview_id": str(preview_id), "holds": released},
            )
        return released

    def purge_expired(self, now: datetime) -> int:
        result = self.session.execute(
            delete(FundsHold)
            .where(FundsHold.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        purged = result.rowcount or 0
        if purged:
            logger.info("funds_holds_purged", extra={"count": purged})
        return purged
