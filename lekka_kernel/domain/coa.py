"""
Chart of accounts -- ledger naming, type inference and the base chart.

Responsibility:
    Pure helpers shared by ChartService (auto-provisioning) and the
    validation rules that need to know whether a ledger is a cash/bank
    instrument.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Naming:
    ``normalize_key`` is the comparison key for every ledger lookup:
    unicode dashes become "-", whitespace collapses, case folds.
    ``canonical_ledger_name`` maps common aliases onto the base chart's
    spelling ("bank a/c" -> "Bank", "cgst input" -> "GST Input (CGST)",
    "debtors - Acme" -> "Debtors (Accounts Receivable) - Acme").
"""

from __future__ import annotations

import re
from enum import Enum


class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


_CREDIT_NORMAL = frozenset({AccountType.INCOME, AccountType.LIABILITY, AccountType.EQUITY})


def normal_balance_for(account_type: AccountType) -> NormalBalance:
    return NormalBalance.CREDIT if account_type in _CREDIT_NORMAL else NormalBalance.DEBIT


# (code, name, type)
BASE_CHART: tuple[tuple[str, str, AccountType], ...] = (
    ("3000", "Share Capital", AccountType.EQUITY),
    ("3100", "Capital Account", AccountType.EQUITY),
    ("3200", "Reserves & Surplus", AccountType.EQUITY),
    ("3300", "Drawings", AccountType.EQUITY),
    ("1000", "Bank", AccountType.ASSET),
    ("1010", "Cash", AccountType.ASSET),
    ("1011", "Petty Cash", AccountType.ASSET),
    ("1100", "Debtors (Accounts Receivable)", AccountType.ASSET),
    ("1110", "Advance to Suppliers", AccountType.ASSET),
    ("1120", "Prepaid Expenses", AccountType.ASSET),
    ("1140", "TDS Receivable", AccountType.ASSET),
    ("1200", "GST Input (IGST)", AccountType.ASSET),
    ("1210", "GST Input (CGST)", AccountType.ASSET),
    ("1220", "GST Input (SGST)", AccountType.ASSET),
    ("1300", "Inventory", AccountType.ASSET),
    ("1500", "Fixed Assets", AccountType.ASSET),
    ("2000", "Creditors (Accounts Payable)", AccountType.LIABILITY),
    ("2010", "Salary Payable", AccountType.LIABILITY),
    ("2040", "TDS Payable", AccountType.LIABILITY),
    ("2100", "Secured Loans", AccountType.LIABILITY),
    ("2110", "Unsecured Loans", AccountType.LIABILITY),
    ("4000", "Sales", AccountType.INCOME),
    ("4200", "Interest Income", AccountType.INCOME),
    ("4900", "Round-off (Income)", AccountType.INCOME),
    ("5000", "Purchases", AccountType.EXPENSE),
    ("5300", "Cost of Goods Sold", AccountType.EXPENSE),
    ("6000", "Salaries", AccountType.EXPENSE),
    ("6010", "Rent", AccountType.EXPENSE),
    ("6040", "Office Expenses", AccountType.EXPENSE),
    ("6070", "Professional Fees", AccountType.EXPENSE),
    ("6080", "Bank Charges", AccountType.EXPENSE),
    ("6130", "Miscellaneous Expenses", AccountType.EXPENSE),
    ("6900", "Round-off (Expense)", AccountType.EXPENSE),
    ("7000", "GST Output (IGST)", AccountType.LIABILITY),
    ("7010", "GST Output (CGST)", AccountType.LIABILITY),
    ("7020", "GST Output (SGST)", AccountType.LIABILITY),
)

_DASHES = re.compile(r"[‒–—−]")
_SPACES = re.compile(r"\s+")


def clean_name(raw: str) -> str:
    return _SPACES.sub(" ", _DASHES.sub("-", raw or "")).strip()


def normalize_key(raw: str) -> str:
    return clean_name(raw).lower()


def split_parent(name: str) -> tuple[str, str] | None:
    """'Debtors (Accounts Receivable) - Acme' -> ('Debtors (Accounts Receivable)', 'Acme')."""
    parts = re.split(r"\s+-\s+|\s*:\s*", clean_name(name), maxsplit=1)
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0].strip(), parts[1].strip()
    return None


_BANK_ALIAS = re.compile(r"^(bank( account| a/c| acc| ac)?|(current|savings) account)$", re.IGNORECASE)
_CASH_ALIAS = re.compile(r"^cash( account| a/c| acc| ac)?$", re.IGNORECASE)
_GST_SLAB = re.compile(r"(i|c|s)gst")
_RECEIVABLE = re.compile(
    r"^(accounts\s*receivable|debtors)(?:\s*\(accounts\s*receivable\))?\s*[-:]\s*(.+)$",
    re.IGNORECASE,
)
_PAYABLE = re.compile(
    r"^(accounts\s*payable|creditors)(?:\s*\(accounts\s*payable\))?\s*[-:]\s*(.+)$",
    re.IGNORECASE,
)


def canonical_ledger_name(raw: str) -> str:
    name = clean_name(raw)
    if not name:
        return name
    low = name.lower()

    if _BANK_ALIAS.match(name):
        return "Bank"
    if _CASH_ALIAS.match(name):
        return "Cash"

    slab_match = _GST_SLAB.search(low)
    if slab_match:
        slab = {"i": "IGST", "c": "CGST", "s": "SGST"}[slab_match.group(1)]
        if re.search(r"\b(input|itc)\b", low):
            return f"GST Input ({slab})"
        if re.search(r"\b(output|out)\b", low):
            return f"GST Output ({slab})"

    m = _RECEIVABLE.match(name)
    if m:
        return f"Debtors (Accounts Receivable) - {m.group(2).strip()}"
    m = _PAYABLE.match(name)
    if m:
        return f"Creditors (Accounts Payable) - {m.group(2).strip()}"
    return name


# First match wins; order matters ("Bank Charges" is an expense, "Salary Payable" a liability)
_TYPE_KEYWORDS: tuple[tuple[AccountType, tuple[str, ...]], ...] = (
    (AccountType.LIABILITY, ("payable", "creditor", "loan", "output", "unearned")),
    (AccountType.EQUITY, ("capital", "reserve", "drawings", "surplus")),
    (AccountType.INCOME, ("sale", "income", "revenue", "received")),
    (AccountType.EXPENSE, ("charges", "expense", "fee", "purchase", "cost", "rent", "salar")),
    (AccountType.ASSET, ("receivable", "debtor", "bank", "cash", "input", "advance", "prepaid", "asset", "inventory")),
)


def infer_account_type(name: str) -> AccountType:
    low = normalize_key(name)
    for account_type, keywords in _TYPE_KEYWORDS:
        if any(k in low for k in keywords):
            return account_type
    return AccountType.EXPENSE


def looks_like_cash_or_bank(name: str, account_type: AccountType | None = None) -> bool:
    """Bank/cash instrument: asset-typed ledger whose name mentions bank or cash."""
    low = normalize_key(name)
    if "bank" not in low and "cash" not in low:
        return False
    return (account_type or infer_account_type(name)) == AccountType.ASSET


def looks_like_instrument(name: str, account_type: AccountType | None = None) -> bool:
    """Funds-guarded ledger: bank, cash, loan or overdraft carried on the balance sheet."""
    low = normalize_key(name)
    if not any(k in low for k in ("bank", "cash", "loan", "od", "overdraft")):
        return False
    resolved = account_type or infer_account_type(name)
    if resolved == AccountType.ASSET:
        return "bank" in low or "cash" in low or "od" in low.split() or "overdraft" in low
    return resolved == AccountType.LIABILITY and ("loan" in low or "overdraft" in low)
