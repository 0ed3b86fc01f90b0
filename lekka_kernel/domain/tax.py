"""
Tax arithmetic -- Indian GST breakup and TDS withholding.

Pure functions used by the gst and tds validation rules.  All amounts are
minor units; rates are percentages (18 means 18%).

GST:
    An inter-state supply carries IGST only; an intra-state supply splits
    the tax equally into CGST and SGST, with the odd minor unit going to
    SGST so the components always add up to the total.

TDS:
    The annual aggregate per (party, section) is supplied by a
    TdsAggregateProvider.  Only ZeroTdsAggregates exists today, so no
    threshold logic is applied on top of the per-document computation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from lekka_kernel.domain.dtos import DocumentItem
from lekka_kernel.domain.money import percent_of, round_minor

_GSTIN_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][0-9A-Z]Z[0-9A-Z]$", re.IGNORECASE)


def gstin_is_valid(gstin: str | None) -> bool:
    return bool(gstin) and _GSTIN_RE.match(gstin) is not None


def state_code(gstin: str | None) -> str | None:
    """First two digits of a valid GSTIN, else None."""
    return gstin[:2] if gstin_is_valid(gstin) else None


def is_inter_state(
    origin: str | None,
    place_of_supply: str | None,
    assume_intra_if_unknown: bool = False,
) -> bool:
    """Unknown origin or destination is treated as inter-state unless configured otherwise."""
    if not origin or not place_of_supply:
        return not assume_intra_if_unknown
    return str(origin) != str(place_of_supply)


@dataclass(frozen=True)
class GstBreakup:
    taxable: int
    igst: int
    cgst: int
    sgst: int
    total_tax: int
    gross: int


def compute_gst_breakup(
    items: Iterable[DocumentItem],
    inter: bool,
    default_rate: Decimal | None = None,
) -> GstBreakup:
    """Tax per item at its own rate (or ``default_rate``), rounded once on the total."""
    taxable = 0
    tax = Decimal(0)
    for item in items:
        amount = item.line_total()
        rate = item.gst_rate if item.gst_rate is not None else (default_rate or Decimal(0))
        taxable += amount
        tax += Decimal(amount) * rate / Decimal(100)

    total_tax = round_minor(tax)
    if inter:
        igst, cgst, sgst = total_tax, 0, 0
    else:
        cgst = total_tax // 2
        igst, sgst = 0, total_tax - cgst
    return GstBreakup(taxable, igst, cgst, sgst, total_tax, taxable + total_tax)


# ---------------------------------------------------------------------------
# TDS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TdsComputation:
    section: str
    base: int
    rate_percent: Decimal
    amount: int


def tds_rate(
    section: str,
    rates: dict[str, Decimal],
    pan_available: bool = True,
    no_pan_rate: Decimal | None = None,
) -> Decimal:
    if not pan_available and no_pan_rate is not None:
        return no_pan_rate
    return rates.get(section, Decimal(0))


def compute_tds(section: str, base_minor: int, rate_percent: Decimal) -> TdsComputation:
    return TdsComputation(
        section=section,
        base=base_minor,
        rate_percent=rate_percent,
        amount=percent_of(base_minor, rate_percent),
    )


class TdsAggregateProvider(Protocol):
    """Year-to-date withholding base already paid to a party under a section."""

    def aggregate(self, tenant_id: str, party: str | None, section: str, fiscal_year: int) -> int:
        ...


class ZeroTdsAggregates:
    """
    Default provider: every aggregate is zero.

    Threshold rules depend on the real annual aggregate; until that source
    exists nothing is inferred from it.
    """

    def aggregate(self, tenant_id: str, party: str | None, section: str, fiscal_year: int) -> int:
        return 0
