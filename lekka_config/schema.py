"""
Policy configuration schema (``lekka_config.schema``).

Frozen dataclasses describing the parsed policy file.  These are
configuration-side types; the kernel consumes ``LedgerPolicy`` produced by
``lekka_config.bridges`` and never sees these classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

TDS_APPLY_ON = frozenset({"amount_excluding_gst", "amount_including_gst"})


@dataclass(frozen=True)
class DatesConfig:
    allow_future_dates: bool
    backdate_window_days: int


@dataclass(frozen=True)
class CashBankConfig:
    block_negative: bool


@dataclass(frozen=True)
class GstConfig:
    enabled: bool
    assume_intra_if_unknown: bool
    tolerance_minor: int


@dataclass(frozen=True)
class TdsConfig:
    enabled: bool
    rates: dict[str, Decimal]
    no_pan_rate_override: Decimal | None
    apply_on: str
    tolerance_minor: int
    payable_ledger: str


@dataclass(frozen=True)
class InventoryConfig:
    enabled: bool
    block_negative_stock: bool


@dataclass(frozen=True)
class NumberingConfig:
    reservation_ttl_seconds: int
    max_reserve_attempts: int
    fiscal_year_start_month: int


@dataclass(frozen=True)
class PreviewConfig:
    ttl_seconds: int
    funds_hold_ttl_seconds: int


@dataclass(frozen=True)
class SessionStateConfig:
    ttl_seconds: int


@dataclass(frozen=True)
class PolicyConfig:
    """A fully parsed and range-checked policy, with its provenance."""

    hard_error_codes: frozenset[str]
    dates: DatesConfig
    cash_bank: CashBankConfig
    gst: GstConfig
    tds: TdsConfig
    inventory: InventoryConfig
    numbering: NumberingConfig
    preview: PreviewConfig
    session_state: SessionStateConfig
    checksum: str
    sources: tuple[Path, ...] = field(default_factory=tuple)
