"""
Tests for document rules: totals, GST, TDS, stock and duplicates.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from lekka_kernel.domain.dtos import DocumentItem, DocumentModel, DocumentType, GstDetails, TdsDetails
from lekka_kernel.domain.policy import InventoryPolicy, LedgerPolicy, TdsPolicy
from lekka_kernel.models.document import Document, DocumentStatus
from lekka_kernel.models.inventory import StockItem, StockMovement
from lekka_kernel.services.validation.document_rules import (
    DuplicateDocumentRule,
    GstRule,
    StockRule,
    TdsRule,
    TotalsRule,
)

TENANT = "tenant-a"
KA = "29ABCDE1234F1Z5"
KA_CUSTOMER = "29PQRST6789K1Z2"
MH_CUSTOMER = "27PQRST6789K1Z2"
INVOICE_ROWS = [("Debtors (Accounts Receivable)", 118000, 0), ("Sales", 0, 100000), ("GST Output (CGST)", 0, 9000), ("GST Output (SGST)", 0, 9000)]


def codes(result, kind="errors"):
    return [issue.code for issue in getattr(result, kind)]


def invoice(gst=None, tax=18000, total=118000, items=None, reference=None, doc_date=None):
    return DocumentModel(
        doc_date=doc_date,
        reference=reference,
        items=items or (DocumentItem("Consulting", amount_minor=100000),),
        tax_minor=tax,
        total_minor=total,
        gst=gst,
    )


class TestTotals:
    def test_matching_totals(self, make_ctx):
        assert TotalsRule().check(make_ctx(INVOICE_ROWS, document=invoice())).is_valid

    def test_mismatch(self, make_ctx):
        result = TotalsRule().check(make_ctx(INVOICE_ROWS, document=invoice(total=120000)))

        assert codes(result) == ["TOTALS_MISMATCH"]
        assert result.errors[0].metadata == {"computed_minor": 118000, "shown_minor": 120000}

    def test_no_items_is_skipped(self, make_ctx):
        assert TotalsRule().check(make_ctx(INVOICE_ROWS, document=DocumentModel(total_minor=5))).is_valid


class TestGst:
    def test_intra_state_split_ok(self, make_ctx):
        gst = GstDetails(supplier_gstin=KA, customer_gstin=KA_CUSTOMER, rate_percent=Decimal("18"),
                         cgst_minor=9000, sgst_minor=9000)
        result = GstRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=invoice(gst)))

        assert result.is_valid

    def test_inter_state_must_be_igst(self, make_ctx):
        gst = GstDetails(supplier_gstin=KA, customer_gstin=MH_CUSTOMER, rate_percent=Decimal("18"),
                         cgst_minor=9000, sgst_minor=9000)
        result = GstRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=invoice(gst)))

        assert codes(result) == ["GST_SPLIT_INTER"]

    def test_intra_state_must_not_use_igst(self, make_ctx):
        gst = GstDetails(supplier_gstin=KA, place_of_supply="29", rate_percent=Decimal("18"), igst_minor=18000)
        result = GstRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=invoice(gst)))

        assert codes(result) == ["GST_SPLIT_INTRA"]

    def test_invalid_supplier_gstin(self, make_ctx):
        gst = GstDetails(supplier_gstin="BAD", customer_gstin=KA_CUSTOMER, rate_percent=Decimal("18"),
                         igst_minor=18000)
        result = GstRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=invoice(gst)))

        assert codes(result) == ["GST_SUPPLIER_INVALID"]

    def test_tax_and_gross_mismatch(self, make_ctx):
        gst = GstDetails(supplier_gstin=KA, customer_gstin=KA_CUSTOMER, rate_percent=Decimal("18"),
                         cgst_minor=8500, sgst_minor=8500)
        document = invoice(gst, tax=17000, total=117000)
        result = GstRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=document))

        assert codes(result) == ["GST_TAX_MISMATCH", "GST_GROSS_MISMATCH"]

    def test_only_invoices(self, make_ctx):
        gst = GstDetails(supplier_gstin="BAD", rate_percent=Decimal("18"))
        result = GstRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.RECEIPT, document=invoice(gst)))

        assert result.is_valid


class TestTds:
    rows = [("Professional Fees", 100000, 0), ("Bank", 0, 90000), ("TDS Payable", 0, 10000)]

    def _doc(self, **tds):
        fields = {"apply": True, "section": "194J", "base_minor": 100000, "amount_minor": 10000}
        fields.update(tds)
        return DocumentModel(party="Asha Consultants", tds=TdsDetails(**fields))

    def _check(self, make_ctx, document, rows=None, policy=None):
        return TdsRule().check(
            make_ctx(rows or self.rows, doc_type=DocumentType.PAYMENT_VOUCHER, document=document, policy=policy)
        )

    def test_correct_withholding(self, make_ctx):
        result = self._check(make_ctx, self._doc())

        assert result.is_valid
        assert codes(result, "info") == ["TDS_COMPUTED"]
        assert result.info[0].metadata["amount_minor"] == 10000
        assert result.info[0].metadata["aggregate_ytd"] == 0

    def test_amount_mismatch(self, make_ctx):
        result = self._check(make_ctx, self._doc(amount_minor=9000))

        assert codes(result) == ["TDS_MISMATCH"]

    def test_payable_ledger_required(self, make_ctx):
        rows = [("Professional Fees", 100000, 0), ("Bank", 0, 100000)]

        assert codes(self._check(make_ctx, self._doc(), rows=rows)) == ["TDS_LEDGER_MISSING"]

    def test_section_required(self, make_ctx):
        assert codes(self._check(make_ctx, self._doc(section=None))) == ["TDS_SECTION_MISSING"]

    def test_no_pan_rate(self, make_ctx):
        result = self._check(make_ctx, self._doc(pan_available=False, amount_minor=20000))

        assert result.is_valid
        assert result.info[0].metadata["rate_percent"] == "20"

    def test_base_including_gst(self, make_ctx):
        policy = replace(LedgerPolicy(), tds=TdsPolicy(apply_on="amount_including_gst"))
        result = self._check(make_ctx, self._doc(gross_minor=118000, amount_minor=11800), policy=policy)

        assert result.is_valid
        assert result.info[0].metadata["base_minor"] == 118000

    def test_not_applied(self, make_ctx):
        assert self._check(make_ctx, self._doc(apply=False)) == self._check(make_ctx, DocumentModel())


@pytest.fixture
def stock(session):
    def _stock(code, quantity):
        item = StockItem(tenant_id=TENANT, item_code=code, name=code)
        session.add(item)
        session.flush()
        session.add(StockMovement(tenant_id=TENANT, item_id=item.id, quantity=Decimal(quantity)))
        session.flush()

    return _stock


class TestStock:
    enabled = replace(LedgerPolicy(), inventory=InventoryPolicy(enabled=True))

    def _doc(self, code="W-1", qty="5"):
        return invoice(items=(DocumentItem("Widget", qty=Decimal(qty), amount_minor=100000, item_code=code, stock_tracked=True),))

    def test_sufficient_stock(self, make_ctx, stock):
        stock("W-1", "10")

        assert StockRule().check(make_ctx(INVOICE_ROWS, document=self._doc(), policy=self.enabled)).is_valid

    def test_negative_stock_blocks(self, make_ctx, stock):
        stock("W-1", "2")
        result = StockRule().check(make_ctx(INVOICE_ROWS, document=self._doc(), policy=self.enabled))

        assert codes(result) == ["INV_NEG_STOCK"]
        assert result.errors[0].path == "items[0]"

    def test_negative_stock_warns_when_not_blocking(self, make_ctx, stock):
        stock("W-1", "2")
        policy = replace(LedgerPolicy(), inventory=InventoryPolicy(enabled=True, block_negative_stock=False))
        result = StockRule().check(make_ctx(INVOICE_ROWS, document=self._doc(), policy=policy))

        assert codes(result, "warnings") == ["INV_NEG_STOCK_WARN"]

    def test_unknown_item(self, make_ctx):
        result = StockRule().check(make_ctx(INVOICE_ROWS, document=self._doc(code="NOPE"), policy=self.enabled))

        assert codes(result) == ["INV_ITEM_MISSING"]

    def test_disabled(self, make_ctx):
        assert StockRule().check(make_ctx(INVOICE_ROWS, document=self._doc(code="NOPE"))).is_valid


class TestDuplicate:
    def _existing(self, session):
        session.add(
            Document(
                tenant_id=TENANT,
                doc_type=DocumentType.INVOICE.value,
                number="INV-2025-00001",
                reference="SUP-42",
                doc_date=date(2025, 4, 1),
                gross_minor=118000,
                status=DocumentStatus.FINALIZED.value,
                preview_id=uuid4(),
            )
        )
        session.flush()

    def test_duplicate_reference_and_date(self, session, make_ctx):
        self._existing(session)
        document = invoice(reference="SUP-42", doc_date="2025-04-01")
        result = DuplicateDocumentRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=document))

        assert codes(result) == ["DUPLICATE_DOC"]

    def test_different_date_is_not_duplicate(self, session, make_ctx):
        self._existing(session)
        document = invoice(reference="SUP-42", doc_date="2025-03-31")
        result = DuplicateDocumentRule().check(make_ctx(INVOICE_ROWS, doc_type=DocumentType.INVOICE, document=document))

        assert result.is_valid

    def test_needs_reference(self, make_ctx):
        assert DuplicateDocumentRule().check(make_ctx(INVOICE_ROWS, document=invoice(doc_date="2025-04-01"))).is_valid
