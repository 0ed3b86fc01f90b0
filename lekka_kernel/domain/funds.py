"""
Funds arithmetic -- outflows per instrument and headroom under a facility.

Pure functions shared by the funds guard rule, FundsService (hold
creation) and the funds selector.

Headroom:
    LOAN        outstanding = max(0, -balance)
                available   = max(0, limit - outstanding) - held
    otherwise   available   = balance + limit - held

    ``balance`` is debits minus credits, so a bank account in credit
    (overdrawn) has a negative balance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from lekka_kernel.domain.coa import clean_name, normalize_key
from lekka_kernel.domain.dtos import JournalLine

LOAN = "LOAN"


@dataclass(frozen=True)
class Outflow:
    account: str
    date: str
    amount: int


def net_outflows(lines: Iterable[JournalLine]) -> list[Outflow]:
    """
    Net credit (credits - debits) per (account, date), positive ones only.

    Accounts group on their normalized name; the first spelling seen is
    kept for display.  Order follows first appearance.
    """
    display: dict[tuple[str, str], str] = {}
    net: dict[tuple[str, str], int] = {}
    for line in lines:
        key = (normalize_key(line.account), line.date)
        display.setdefault(key, clean_name(line.account))
        net[key] = net.get(key, 0) + line.credit - line.debit
    return [
        Outflow(account=display[key], date=key[1], amount=amount)
        for key, amount in net.items()
        if amount > 0
    ]


def compute_available(balance: int, facility_type: str | None, limit: int, held: int) -> int:
    if facility_type == LOAN:
        outstanding = max(0, -balance)
        return max(0, limit - outstanding) - held
    return balance + limit - held
