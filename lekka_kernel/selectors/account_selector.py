"""
Module: lekka_kernel.selectors.account_selector
Responsibility: Chart-of-accounts lookup with tenant-first, GLOBAL-fallback
    resolution.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A tenant row always shadows a GLOBAL row with the same normalized name,
      including when the tenant row is inactive.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import case, select

from lekka_kernel.db.types import GLOBAL_TENANT
from lekka_kernel.domain.coa import AccountType, normalize_key
from lekka_kernel.models.account import ChartAccount
from lekka_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountInfo:
    account_id: UUID
    tenant_id: str
    code: str
    name: str
    account_type: AccountType
    is_active: bool

    @property
    def is_global(self) -> bool:
        return self.tenant_id == GLOBAL_TENANT


def _to_info(row: ChartAccount) -> AccountInfo:
    return AccountInfo(
        account_id=row.id,
        tenant_id=row.tenant_id,
        code=row.code,
        name=row.name,
        account_type=AccountType(row.account_type),
        is_active=row.is_active,
    )


class AccountSelector(BaseSelector[ChartAccount]):
    """Read-only chart queries."""

    def find(self, tenant_id: str, name: str) -> AccountInfo | None:
        """Resolve ``name`` for a tenant, falling back to the GLOBAL chart."""
        key = normalize_key(name)
        if not key:
            return None
        # Tenant rows sort ahead of GLOBAL rows
        tenant_first = case((ChartAccount.tenant_id == tenant_id, 0), else_=1)
        row = self.session.execute(
            select(ChartAccount)
            .where(
                ChartAccount.normalized_name == key,
                ChartAccount.tenant_id.in_((tenant_id, GLOBAL_TENANT)),
            )
            .order_by(tenant_first)
            .limit(1)
        ).scalar_one_or_none()
        return _to_info(row) if row is not None else None

    def list_accounts(self, tenant_id: str, include_global: bool = True) -> list[AccountInfo]:
        scopes = (tenant_id, GLOBAL_TENANT) if include_global else (tenant_id,)
        rows = self.session.execute(
            select(ChartAccount)
            .where(ChartAccount.tenant_id.in_(scopes))
            .order_by(ChartAccount.code, ChartAccount.name)
        ).scalars()
        return [_to_info(r) for r in rows]
