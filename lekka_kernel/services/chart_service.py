"""
ChartService -- chart-of-accounts lookup and auto-provisioning.

Responsibility:
    Resolves ledger names for a tenant (tenant rows first, then the GLOBAL
    chart), creates tenant ledgers on demand with an inferred type, seeds
    the GLOBAL base chart, and deactivates ledgers.

Architecture position:
    Kernel > Services.  Called by PostingOrchestrator during preview
    (auto-provisioning) and by ValidationLookups (read-only lookup).

Invariants enforced:
    - Ledgers are never deleted; ``deactivate`` clears ``is_active``.
    - A "Parent - Child" ledger is created under its parent, and the
      parent is provisioned first when missing.
    - Concurrent provisioning of the same name converges on one row: the
      insert runs in a savepoint and an IntegrityError re-reads the winner.
    - Preview serialization locks per-tenant LedgerLock rows, never the
      shared GLOBAL chart rows.

Failure modes:
    - AccountNotFoundError from ``deactivate`` for an unknown tenant ledger.
    - AccountInactiveError from ``ensure_ledger`` when the tenant has
      deactivated the ledger; it is not silently revived.
"""

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from lekka_kernel.db.types import GLOBAL_TENANT
from lekka_kernel.domain.coa import (
    BASE_CHART,
    AccountType,
    canonical_ledger_name,
    clean_name,
    infer_account_type,
    normal_balance_for,
    normalize_key,
    split_parent,
)
from lekka_kernel.exceptions import AccountInactiveError, AccountNotFoundError
from lekka_kernel.logging_config import get_logger
from lekka_kernel.models.account import ChartAccount, LedgerLock
from lekka_kernel.selectors.account_selector import AccountInfo, AccountSelector
from lekka_kernel.services.base import BaseService

logger = get_logger("services.chart")


def _auto_code() -> str:
    return f"AUTO-{uuid4().hex[:8].upper()}"


class ChartService(BaseService[ChartAccount]):
    """
    Chart-of-accounts maintenance.

    Contract:
        ``lookup`` is read-only.  ``ensure_ledger`` returns the existing
        active ledger or creates a tenant ledger, flushing but never
        committing.
    """

    def __init__(self, session):
        super().__init__(session)
        self._selector = AccountSelector(session)

    def lookup(self, tenant_id: str, name: str) -> AccountInfo | None:
        found = self._selector.find(tenant_id, name)
        if found is None:
            canonical = canonical_ledger_name(name)
            if normalize_key(canonical) != normalize_key(name):
                found = self._selector.find(tenant_id, canonical)
        return found

    def ensure_ledger(
        self,
        tenant_id: str,
        name: str,
        account_type: AccountType | None = None,
    ) -> tuple[AccountInfo, bool]:
        """
        Return ``(ledger, created)`` for ``name``.

        Raises:
            AccountInactiveError: the resolved ledger is deactivated.
        """
        existing = self.lookup(tenant_id, name)
        if existing is not None:
            if not existing.is_active:
                raise AccountInactiveError(tenant_id, existing.name)
            return existing, False

        display = clean_name(canonical_ledger_name(name))
        parent_id = None
        parent = split_parent(display)
        if parent is not None:
            parent_info, _ = self.ensure_ledger(tenant_id, parent[0], account_type)
            parent_id = parent_info.account_id
            if account_type is None:
                account_type = parent_info.account_type

        resolved_type = account_type or infer_account_type(display)
        row = ChartAccount(
            tenant_id=tenant_id,
            code=_auto_code(),
            name=display,
            normalized_name=normalize_key(display),
            account_type=resolved_type.value,
            normal_balance=normal_balance_for(resolved_type).value,
            is_active=True,
            auto_created=True,
            parent_id=parent_id,
        )

        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "ledger_provision_race",
                extra={"tenant_id": tenant_id, "ledger": display},
            )
            winner = self._selector.find(tenant_id, display)
            if winner is None:
                raise
            return winner, False

        logger.info(
            "ledger_provisioned",
            extra={
                "tenant_id": tenant_id,
                "ledger": display,
                "account_type": resolved_type.value,
                "code": row.code,
            },
        )
        return self._selector.find(tenant_id, display), True

    def deactivate(self, tenant_id: str, name: str) -> None:
        row = self.session.execute(
            select(ChartAccount).where(
                ChartAccount.tenant_id == tenant_id,
                ChartAccount.normalized_name == normalize_key(name),
            )
        ).scalar_one_or_none()
        if row is None:
            raise AccountNotFoundError(tenant_id, name)
        row.is_active = False
        self.session.flush()
        logger.info("ledger_deactivated", extra={"tenant_id": tenant_id, "ledger": row.name})

    def seed_base_chart(self) -> int:
        """Insert any missing BASE_CHART ledgers in GLOBAL scope; returns how many."""
        existing = set(
            self.session.execute(
                select(ChartAccount.normalized_name).where(
                    ChartAccount.tenant_id == GLOBAL_TENANT
                )
            ).scalars()
        )
        created = 0
        for code, name, account_type in BASE_CHART:
            key = normalize_key(name)
            if key in existing:
                continue
            self.session.add(
                ChartAccount(
                    tenant_id=GLOBAL_TENANT,
                    code=code,
                    name=name,
                    normalized_name=key,
                    account_type=account_type.value,
                    normal_balance=normal_balance_for(account_type).value,
                    is_active=True,
                    auto_created=False,
                )
            )
            created += 1
        self.session.flush()
        if created:
            logger.info("base_chart_seeded", extra={"seeded": created})
        return created

    def lock_accounts(self, tenant_id: str, names) -> None:
        """
        Row-lock this tenant's LedgerLock rows for ``names`` in sorted order.

        Missing lock rows are created first, each in its own savepoint.
        Sorting keeps two previews touching the same ledgers from
        deadlocking on lock order.
        """
        keys = sorted({normalize_key(n) for n in names if n})
        if not keys:
            return
        existing = set(
            self.session.execute(
                select(LedgerLock.normalized_name).where(
                    LedgerLock.tenant_id == tenant_id,
                    LedgerLock.normalized_name.in_(keys),
                )
            ).scalars()
        )
        for key in keys:
            if key not in existing:
                self._ensure_lock_row(tenant_id, key)
        self.session.execute(
            select(LedgerLock.id)
            .where(
                LedgerLock.tenant_id == tenant_id,
                LedgerLock.normalized_name.in_(keys),
            )
            .order_by(LedgerLock.normalized_name)
            .with_for_update()
        ).all()

    def _ensure_lock_row(self, tenant_id: str, key: str) -> None:
        savepoint = self.session.begin_nested()
        try:
            self.session.add(LedgerLock(tenant_id=tenant_id, normalized_name=key))
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            # Created concurrently; the winner's row is locked below
            savepoint.rollback()
