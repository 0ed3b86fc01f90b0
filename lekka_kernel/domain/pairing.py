"""
Ledger pairing -- single-sided lines to double-entry pairs.

Responsibility:
    Turns a balanced set of JournalLines into the minimal list of
    LedgerPairs that the permanent ledger stores.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Algorithm:
    Lines are split into a debit bucket and a credit bucket, each entry
    tracking its remaining amount.  Two cursors walk the buckets; each step
    emits one pair for min(remaining debit, remaining credit) and advances
    whichever cursor reached zero.  Before emitting, a same-account
    debit/credit is avoided by swapping a later, non-exhausted entry with a
    different account into the cursor position (credits are scanned first,
    then debits).  When no swap exists the same-account pair is emitted and
    left for the same_account rule / commit-time check to reject.

Invariants enforced:
    - sum(pair.amount) equals the debit total and the credit total exactly,
      because every emitted amount is subtracted from both sides.
    - At most len(debits) + len(credits) - 1 pairs are emitted.
    - Zero-amount lines never produce a pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from lekka_kernel.domain.dtos import JournalLine, LedgerPair


@dataclass
class _BucketEntry:
    account: str
    remaining: int
    date: str
    narration: str


def _split(lines: Iterable[JournalLine]) -> tuple[list[_BucketEntry], list[_BucketEntry]]:
    debits: list[_BucketEntry] = []
    credits: list[_BucketEntry] = []
    for line in lines:
        account = line.account.strip()
        if line.debit > 0:
            debits.append(_BucketEntry(account, line.debit, line.date, line.narration))
        if line.credit > 0:
            credits.append(_BucketEntry(account, line.credit, line.date, line.narration))
    return debits, credits


def _swap_ahead(bucket: list[_BucketEntry], pos: int, avoid: str) -> bool:
    for k in range(pos + 1, len(bucket)):
        candidate = bucket[k]
        if candidate.remaining > 0 and candidate.account != avoid:
            bucket[pos], bucket[k] = candidate, bucket[pos]
            return True
    return False


def pair_lines(lines: Iterable[JournalLine]) -> tuple[LedgerPair, ...]:
    """
    Pair balanced single-sided lines.

    Returns an empty tuple when debit and credit totals differ or when
    there is nothing to post.
    """
    debits, credits = _split(lines)

    total = sum(d.remaining for d in debits)
    if total == 0 or total != sum(c.remaining for c in credits):
        return ()

    pairs: list[LedgerPair] = []
    i = j = 0
    while i < len(debits) and j < len(credits):
        d, c = debits[i], credits[j]
        if d.account == c.account:
            if _swap_ahead(credits, j, d.account) or _swap_ahead(debits, i, c.account):
                d, c = debits[i], credits[j]

        amount = min(d.remaining, c.remaining)
        pairs.append(
            LedgerPair(
                debit_account=d.account,
                credit_account=c.account,
                amount=amount,
                date=d.date or c.date,
                narration=d.narration or c.narration,
            )
        )
        d.remaining -= amount
        c.remaining -= amount
        if d.remaining == 0:
            i += 1
        if c.remaining == 0:
            j += 1

    return tuple(pairs)


def same_account_pairs(pairs: Iterable[LedgerPair]) -> tuple[LedgerPair, ...]:
    return tuple(p for p in pairs if p.is_same_account)


def has_unavoidable_same_account(lines: Iterable[JournalLine]) -> bool:
    """True when pairing these lines cannot avoid a same-account pair."""
    return bool(same_account_pairs(pair_lines(lines)))
