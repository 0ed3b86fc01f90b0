"""
Tests for GST breakup and TDS arithmetic.
"""

from decimal import Decimal

from lekka_kernel.domain.dtos import DocumentItem
from lekka_kernel.domain.tax import (
    ZeroTdsAggregates,
    compute_gst_breakup,
    compute_tds,
    gstin_is_valid,
    is_inter_state,
    state_code,
    tds_rate,
)

KA_GSTIN = "29ABCDE1234F1Z5"
MH_GSTIN = "27ABCDE1234F1Z5"


class TestGstin:
    def test_valid_gstin(self):
        assert gstin_is_valid(KA_GSTIN)
        assert state_code(KA_GSTIN) == "29"

    def test_invalid_gstin(self):
        assert not gstin_is_valid("29ABCDE1234F1X5")
        assert not gstin_is_valid(None)
        assert state_code("bogus") is None


class TestInterState:
    def test_same_state_is_intra(self):
        assert not is_inter_state("29", "29")

    def test_different_state_is_inter(self):
        assert is_inter_state("29", "27")

    def test_unknown_defaults_to_inter(self):
        assert is_inter_state(None, "29")
        assert not is_inter_state(None, "29", assume_intra_if_unknown=True)


class TestGstBreakup:
    def test_inter_state_is_all_igst(self):
        breakup = compute_gst_breakup([DocumentItem("Widget", amount_minor=100000)], True, Decimal("18"))

        assert (breakup.igst, breakup.cgst, breakup.sgst) == (18000, 0, 0)
        assert breakup.gross == 118000

    def test_intra_state_odd_unit_goes_to_sgst(self):
        breakup = compute_gst_breakup([DocumentItem("Widget", amount_minor=1001)], False, Decimal("5"))

        # 5% of 10.01 = 0.5005 -> 50 minor units
        assert breakup.total_tax == 50
        assert breakup.cgst + breakup.sgst == breakup.total_tax

        odd = compute_gst_breakup([DocumentItem("Widget", amount_minor=1100)], False, Decimal("1"))
        assert (odd.cgst, odd.sgst) == (5, 6)

    def test_item_rate_overrides_default(self):
        items = [
            DocumentItem("A", amount_minor=10000, gst_rate=Decimal("5")),
            DocumentItem("B", qty=Decimal("2"), rate_minor=5000),
        ]
        breakup = compute_gst_breakup(items, True, Decimal("18"))

        assert breakup.taxable == 20000
        assert breakup.total_tax == 500 + 1800


class TestTds:
    rates = {"194C": Decimal("1"), "194J": Decimal("10")}

    def test_rate_by_section(self):
        assert tds_rate("194J", self.rates) == Decimal("10")
        assert tds_rate("194X", self.rates) == Decimal(0)

    def test_no_pan_rate(self):
        assert tds_rate("194C", self.rates, pan_available=False, no_pan_rate=Decimal("20")) == Decimal("20")
        assert tds_rate("194C", self.rates, pan_available=False) == Decimal("1")

    def test_compute(self):
        result = compute_tds("194J", 500000, Decimal("10"))

        assert result.amount == 50000

    def test_zero_aggregates(self):
        assert ZeroTdsAggregates().aggregate("t", "party", "194C", 2025) == 0
