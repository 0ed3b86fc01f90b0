"""
LedgerPolicy -- the kernel-side view of tenant policy.

The kernel never reads configuration files.  ``lekka_config`` parses YAML
and bridges it into this frozen value object; tests construct it directly.
Defaults here match the shipped ``lekka_config/defaults.yaml``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_HARD_ERROR_CODES = frozenset({
    "SHAPE_MIN_LINES",
    "DRCR_EXCLUSIVE",
    "NOT_BALANCED",
    "LEDGER_SAME_ACCOUNT",
    "BANK_SINGLELINE",
    "BANK_MIXED",
    "TOTALS_MISMATCH",
    "NUMBER_UNAVAILABLE",
    "PERIOD_LOCKED",
    "DATE_INVALID",
    "INV_ITEM_MISSING",
    "INV_NEG_STOCK",
    "BANK_CASH_INSUFFICIENT",
    "GST_SUPPLIER_INVALID",
    "GST_CUSTOMER_INVALID",
    "GST_SPLIT_INTER",
    "GST_SPLIT_INTRA",
    "GST_TAX_MISMATCH",
    "GST_GROSS_MISMATCH",
    "TDS_SECTION_MISSING",
    "TDS_MISMATCH",
    "TDS_LEDGER_MISSING",
    "DUPLICATE_DOC",
})


@dataclass(frozen=True)
class DatePolicy:
    allow_future_dates: bool = False
    backdate_window_days: int = 30


@dataclass(frozen=True)
class CashBankPolicy:
    block_negative: bool = True


@dataclass(frozen=True)
class GstPolicy:
    enabled: bool = True
    assume_intra_if_unknown: bool = False
    tolerance_minor: int = 0


@dataclass(frozen=True)
class TdsPolicy:
    enabled: bool = True
    rates: dict[str, Decimal] = field(default_factory=lambda: {
        "194C": Decimal("1"),
        "194J": Decimal("10"),
        "194H": Decimal("5"),
        "194I": Decimal("10"),
    })
    no_pan_rate: Decimal | None = Decimal("20")
    apply_on: str = "amount_excluding_gst"
    tolerance_minor: int = 0
    payable_ledger: str = "TDS Payable"


@dataclass(frozen=True)
class InventoryPolicy:
    enabled: bool = False
    block_negative_stock: bool = True


@dataclass(frozen=True)
class NumberingPolicy:
    reservation_ttl_seconds: int = 1800
    max_reserve_attempts: int = 25
    fiscal_year_start_month: int = 1


@dataclass(frozen=True)
class PreviewPolicy:
    ttl_seconds: int = 1800
    funds_hold_ttl_seconds: int = 1800


@dataclass(frozen=True)
class LedgerPolicy:
    """Everything the validation engine and orchestrator consult."""

    hard_error_codes: frozenset[str] = DEFAULT_HARD_ERROR_CODES
    dates: DatePolicy = field(default_factory=DatePolicy)
    cash_bank: CashBankPolicy = field(default_factory=CashBankPolicy)
    gst: GstPolicy = field(default_factory=GstPolicy)
    tds: TdsPolicy = field(default_factory=TdsPolicy)
    inventory: InventoryPolicy = field(default_factory=InventoryPolicy)
    numbering: NumberingPolicy = field(default_factory=NumberingPolicy)
    preview: PreviewPolicy = field(default_factory=PreviewPolicy)
    checksum: str | None = None

    def __post_init__(self) -> None:
        # Holds and reservations must not lapse before the snapshot they back
        ttl = self.preview.ttl_seconds
        if self.preview.funds_hold_ttl_seconds < ttl:
            raise ValueError(
                f"funds_hold_ttl_seconds ({self.preview.funds_hold_ttl_seconds}) "
                f"must not be shorter than the preview ttl ({ttl})"
            )
        if self.numbering.reservation_ttl_seconds < ttl:
            raise ValueError(
                f"reservation_ttl_seconds ({self.numbering.reservation_ttl_seconds}) "
                f"must not be shorter than the preview ttl ({ttl})"
            )

    def is_hard(self, code: str) -> bool:
        return code in self.hard_error_codes
