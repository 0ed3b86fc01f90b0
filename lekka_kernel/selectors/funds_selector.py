"""
Module: lekka_kernel.selectors.funds_selector
Responsibility: Headroom on an instrument ledger for one date: ledger
    balance, the facility active on that date, and unexpired holds placed
    by other outstanding previews.
Architecture position: Kernel > Selectors.  Used by the funds guard rule
    through ValidationLookups.

Invariants enforced:
    - A hold counts only for its own (account, date) and only while
      ``expires_at > now``.
    - A facility counts only when active on the date in question.
"""

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func, select

from lekka_kernel.domain.coa import normalize_key
from lekka_kernel.domain.dtos import Headroom
from lekka_kernel.domain.funds import compute_available
from lekka_kernel.models.funds import AccountFacility, FundsHold
from lekka_kernel.selectors.base import BaseSelector
from lekka_kernel.selectors.ledger_selector import LedgerSelector


@dataclass(frozen=True)
class FacilityInfo:
    account_name: str
    facility_type: str
    limit_minor: int
    valid_from: date | None
    valid_to: date | None


class FundsSelector(BaseSelector[FundsHold]):
    """Read-only funds queries."""

    def facility_for(self, tenant_id: str, account: str, on: date) -> FacilityInfo | None:
        """The facility on ``account`` if one is active on ``on``."""
        row = self.session.execute(
            select(AccountFacility).where(
                AccountFacility.tenant_id == tenant_id,
                func.lower(AccountFacility.account_name) == normalize_key(account),
            )
        ).scalar_one_or_none()
        if row is None or not row.active_on(on):
            return None
        return FacilityInfo(
            account_name=row.account_name,
            facility_type=row.facility_type,
            limit_minor=row.limit_minor,
            valid_from=row.valid_from,
            valid_to=row.valid_to,
        )

    def held_amount(self, tenant_id: str, account: str, on: date, now: datetime) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(FundsHold.amount_minor), 0)).where(
                FundsHold.tenant_id == tenant_id,
                func.lower(FundsHold.account_name) == normalize_key(account),
                FundsHold.hold_date == on,
                FundsHold.expires_at > now,
            )
        ).scalar_one()
        return int(total)

    def available_headroom(self, tenant_id: str, account: str, on: date, now: datetime) -> Headroom:
        balance = LedgerSelector(self.session).balance_as_of(tenant_id, account, on)
        facility = self.facility_for(tenant_id, account, on)
        facility_type = facility.facility_type if facility is not None else None
        limit = facility.limit_minor if facility is not None else 0
        held = self.held_amount(tenant_id, account, on, now)
        return Headroom(
            account=account,
            as_of=on,
            balance=balance,
            facility_type=facility_type,
            limit=limit,
            held=held,
            available=compute_available(balance, facility_type, limit, held),
        )

    def active_holds(self, preview_id) -> list[tuple[str, date, int]]:
        rows = self.session.execute(
            select(FundsHold.account_name, FundsHold.hold_date, FundsHold.amount_minor)
            .where(FundsHold.preview_id == preview_id)
            .order_by(FundsHold.account_name, FundsHold.hold_date)
        ).all()
        return [(r[0], r[1], int(r[2])) for r in rows]
