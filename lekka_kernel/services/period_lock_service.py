"""
PeriodLockService -- closing the books through a date.

A tenant's books are locked for every date on or before the latest
``period_end`` it has closed.  Closing is monotonic in effect: closing an
earlier date after a later one changes nothing.
"""

from datetime import date

from sqlalchemy import func, select

from lekka_kernel.logging_config import get_logger
from lekka_kernel.models.period import ClosedPeriod
from lekka_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodLockService(BaseService[ClosedPeriod]):

    def close_through(self, tenant_id: str, period_end: date, closed_by: str | None = None) -> None:
        exists = self.session.execute(
            select(ClosedPeriod.id).where(
                ClosedPeriod.tenant_id == tenant_id,
                ClosedPeriod.period_end == period_end,
            )
        ).scalar_one_or_none()
        if exists is not None:
            return
        self.session.add(
            ClosedPeriod(tenant_id=tenant_id, period_end=period_end, closed_by=closed_by)
        )
        self.session.flush()
        logger.info(
            "period_closed",
            extra={"tenant_id": tenant_id, "period_end": period_end.isoformat()},
        )

    def latest_closed(self, tenant_id: str) -> date | None:
        return self.session.execute(
            select(func.max(ClosedPeriod.period_end)).where(
                ClosedPeriod.tenant_id == tenant_id
            )
        ).scalar_one()

    def is_locked(self, tenant_id: str, on: date) -> bool:
        latest = self.latest_closed(tenant_id)
        return latest is not None and on <= latest
