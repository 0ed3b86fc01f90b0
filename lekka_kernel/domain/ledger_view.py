"""Plain-text ledger view of paired entries, shown to the user before confirm."""

from __future__ import annotations

from typing import Iterable

from lekka_kernel.domain.dtos import LedgerPair
from lekka_kernel.domain.money import format_minor

HEADER = ("Date", "Account", "Debit", "Credit", "Narration")


def ledger_rows(pairs: Iterable[LedgerPair]) -> list[tuple[str, str, str, str, str]]:
    """Each pair renders as its debit row followed by its credit row."""
    zero = format_minor(0)
    rows = []
    for pair in pairs:
        amount = format_minor(pair.amount)
        rows.append((pair.date, pair.debit_account, amount, zero, pair.narration))
        rows.append((pair.date, pair.credit_account, zero, amount, pair.narration))
    return rows


def render_ledger_view(pairs: Iterable[LedgerPair]) -> str:
    rows = ledger_rows(pairs)
    widths = [len(h) for h in HEADER]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    def _fmt(cells) -> str:
        return " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    separator = " | ".join("-" * width for width in widths)
    return "\n".join([_fmt(HEADER), separator, *(_fmt(row) for row in rows)])
