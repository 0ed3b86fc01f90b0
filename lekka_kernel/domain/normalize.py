"""
Row normalization -- untrusted upstream rows to JournalLines.

Upstream collaborators send either single-sided rows
(``{account, debit | credit, date, narration}``) or pair-style rows
(``{debit_account, credit_account, amount, date}``).  When at least half of
the rows are pair-style the whole batch is read as pairs and each pair
expands into one debit line and one credit line; otherwise rows are read as
single-sided, accepting ``ledger`` / ``account_name`` / ``name`` as aliases
for ``account``.

Amounts arrive in major units and are converted to minor units here.  Shape
problems that validation can describe (both sides set, missing account,
bad dates) are passed through untouched so the validation engine reports
them; only unparseable amounts raise.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from lekka_kernel.domain.dtos import JournalLine
from lekka_kernel.domain.money import to_minor_units
from lekka_kernel.exceptions import LineParseError

_ACCOUNT_ALIASES = ("account", "account_name", "ledger", "name")


def _is_pair_row(row: Mapping[str, Any]) -> bool:
    return bool(
        (row.get("debit_account") or row.get("debitAccount"))
        and (row.get("credit_account") or row.get("creditAccount"))
        and ("amount" in row or "value" in row)
    )


def _clean_account(value: Any) -> str:
    return " ".join(str(value or "").split())


def _row_date(row: Mapping[str, Any]) -> str:
    return str(row.get("date") or row.get("transaction_date") or "").strip()


def _amount(index: int, field: str, value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return to_minor_units(value)
    except ValueError as exc:
        raise LineParseError(index, field, value) from exc


def normalize_rows(rows: Iterable[Mapping[str, Any] | None]) -> tuple[JournalLine, ...]:
    """
    Convert raw rows into JournalLines.

    Raises:
        LineParseError: when an amount cannot be parsed.
    """
    batch = [row for row in rows if row]
    if not batch:
        return ()

    pair_count = sum(1 for row in batch if _is_pair_row(row))
    if pair_count >= math.ceil(len(batch) * 0.5):
        return _expand_pairs(batch)

    lines = []
    for index, row in enumerate(batch):
        account = next((row[k] for k in _ACCOUNT_ALIASES if row.get(k)), "")
        lines.append(
            JournalLine(
                account=_clean_account(account),
                date=_row_date(row),
                debit=_amount(index, "debit", row.get("debit")),
                credit=_amount(index, "credit", row.get("credit")),
                narration=str(row.get("narration") or "").strip(),
            )
        )
    return tuple(lines)


def _expand_pairs(batch: list[Mapping[str, Any]]) -> tuple[JournalLine, ...]:
    lines: list[JournalLine] = []
    for index, row in enumerate(batch):
        debit_account = _clean_account(row.get("debit_account") or row.get("debitAccount"))
        credit_account = _clean_account(row.get("credit_account") or row.get("creditAccount"))
        raw_amount = row.get("amount", row.get("value"))
        amount = _amount(index, "amount", raw_amount)
        # Minority single-sided rows in a pair batch are dropped
        if not debit_account or not credit_account or amount <= 0:
            continue
        date = _row_date(row)
        narration = str(row.get("narration") or "").strip()
        lines.append(JournalLine(debit_account, date, debit=amount, narration=narration))
        lines.append(JournalLine(credit_account, date, credit=amount, narration=narration))
    return tuple(lines)
