"""
Rules over the structured document: invoice totals, GST, TDS, stock and
duplicate detection.

All comparisons are in minor units.  GST and TDS compare within the
policy tolerance (0 by default, i.e. exact).
"""

from lekka_kernel.domain.coa import normalize_key
from lekka_kernel.domain.dtos import DocumentType, ValidationResult
from lekka_kernel.domain.money import format_minor
from lekka_kernel.domain.tax import (
    compute_gst_breakup,
    compute_tds,
    gstin_is_valid,
    is_inter_state,
    state_code,
    tds_rate,
)
from lekka_kernel.services.numbering_service import fiscal_year_for
from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.context import ValidationContext
from lekka_kernel.services.validation.ledger_rules import parse_iso_date


class TotalsRule(Rule):
    """Item subtotal plus declared tax must equal the declared total."""

    name = "totals"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        doc = ctx.document
        if not doc.items:
            return ValidationResult.empty()
        computed = doc.items_subtotal() + (doc.tax_minor or 0)
        shown = doc.total_minor if doc.total_minor is not None else computed
        if shown != computed:
            return ValidationResult.error(
                "TOTALS_MISMATCH",
                f"Totals mismatch: computed {format_minor(computed)} vs shown {format_minor(shown)}",
                computed_minor=computed,
                shown_minor=shown,
            )
        return ValidationResult.empty()


class GstRule(Rule):
    """
    GSTIN shape, IGST vs CGST+SGST split for the supply type, and the
    computed tax and gross against what the invoice shows.
    """

    name = "gst"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        policy = ctx.policy.gst
        if not policy.enabled or ctx.doc_type != DocumentType.INVOICE:
            return ValidationResult.empty()

        doc = ctx.document
        gst = doc.gst
        if gst is None:
            return ValidationResult.empty()

        results = []
        if gst.supplier_gstin and not gstin_is_valid(gst.supplier_gstin):
            results.append(
                ValidationResult.error(
                    "GST_SUPPLIER_INVALID", "Supplier GSTIN invalid", supplier=gst.supplier_gstin
                )
            )
        if gst.customer_gstin and not gstin_is_valid(gst.customer_gstin):
            results.append(
                ValidationResult.error(
                    "GST_CUSTOMER_INVALID", "Customer GSTIN invalid", customer=gst.customer_gstin
                )
            )

        origin = state_code(gst.supplier_gstin)
        place_of_supply = gst.place_of_supply or state_code(gst.customer_gstin)
        inter = is_inter_state(origin, place_of_supply, policy.assume_intra_if_unknown)

        igst = gst.igst_minor or 0
        cgst = gst.cgst_minor or 0
        sgst = gst.sgst_minor or 0
        if inter and (cgst or sgst):
            results.append(
                ValidationResult.error(
                    "GST_SPLIT_INTER",
                    "Inter-state supply must use IGST only",
                    igst_minor=igst,
                    cgst_minor=cgst,
                    sgst_minor=sgst,
                )
            )
        if not inter and igst:
            results.append(
                ValidationResult.error(
                    "GST_SPLIT_INTRA",
                    "Intra-state supply must split as CGST + SGST",
                    igst_minor=igst,
                    cgst_minor=cgst,
                    sgst_minor=sgst,
                )
            )

        breakup = compute_gst_breakup(doc.items, inter, gst.rate_percent)
        shown_tax = doc.tax_minor if doc.tax_minor is not None else igst + cgst + sgst
        if abs(breakup.total_tax - shown_tax) > policy.tolerance_minor:
            results.append(
                ValidationResult.error(
                    "GST_TAX_MISMATCH",
                    f"GST mismatch: computed {format_minor(breakup.total_tax)} vs shown {format_minor(shown_tax)}",
                    computed_minor=breakup.total_tax,
                    shown_minor=shown_tax,
                    inter_state=inter,
                )
            )
        if doc.total_minor and abs(breakup.gross - doc.total_minor) > policy.tolerance_minor:
            results.append(
                ValidationResult.error(
                    "GST_GROSS_MISMATCH",
                    f"Gross mismatch: computed {format_minor(breakup.gross)} vs shown {format_minor(doc.total_minor)}",
                    computed_minor=breakup.gross,
                    shown_minor=doc.total_minor,
                )
            )
        return ValidationResult.combine(results)


class TdsRule(Rule):
    """Withholding declared on a payment: section, amount and payable ledger."""

    name = "tds"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        policy = ctx.policy.tds
        tds = ctx.document.tds
        if not policy.enabled or tds is None or not tds.apply:
            return ValidationResult.empty()

        if not tds.section:
            return ValidationResult.error(
                "TDS_SECTION_MISSING", "TDS section is required when TDS applies"
            )

        doc = ctx.document
        if policy.apply_on == "amount_including_gst":
            base = tds.gross_minor if tds.gross_minor is not None else (doc.total_minor or 0)
        elif tds.base_minor is not None:
            base = tds.base_minor
        elif doc.gst is not None and doc.gst.taxable_minor is not None:
            base = doc.gst.taxable_minor
        else:
            base = doc.items_subtotal()

        rate = tds_rate(tds.section, policy.rates, tds.pan_available, policy.no_pan_rate)
        expected = compute_tds(tds.section, base, rate)
        fiscal_year = fiscal_year_for(ctx.as_of, ctx.policy.numbering.fiscal_year_start_month)
        aggregate = ctx.lookups.tds_aggregate(doc.party, tds.section, fiscal_year)

        results = [
            ValidationResult.note(
                "TDS_COMPUTED",
                f"TDS {tds.section} at {rate}% on {format_minor(base)} = {format_minor(expected.amount)}",
                section=tds.section,
                base_minor=base,
                rate_percent=str(rate),
                amount_minor=expected.amount,
                aggregate_ytd=aggregate,
            )
        ]

        shown = tds.amount_minor or 0
        if abs(shown - expected.amount) > policy.tolerance_minor:
            results.append(
                ValidationResult.error(
                    "TDS_MISMATCH",
                    f"TDS mismatch: computed {format_minor(expected.amount)} vs shown {format_minor(shown)}",
                    section=tds.section,
                    base_minor=base,
                    rate_percent=str(rate),
                    expected_minor=expected.amount,
                    shown_minor=shown,
                )
            )

        required = normalize_key(policy.payable_ledger)
        if not any(normalize_key(line.account) == required for line in ctx.lines):
            results.append(
                ValidationResult.error(
                    "TDS_LEDGER_MISSING",
                    f"Required TDS ledger not found in entry: {policy.payable_ledger}",
                    ledger=policy.payable_ledger,
                )
            )
        return ValidationResult.combine(results)


class StockRule(Rule):
    name = "stock"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        policy = ctx.policy.inventory
        if not policy.enabled:
            return ValidationResult.empty()

        results = []
        for index, item in enumerate(ctx.document.items):
            if not item.stock_tracked or not item.item_code or item.qty <= 0:
                continue
            on_hand = ctx.lookups.on_hand(item.item_code)
            path = f"items[{index}]"
            if on_hand is None:
                results.append(
                    ValidationResult.error(
                        "INV_ITEM_MISSING",
                        f"Item not found: {item.item_code}",
                        path,
                        index=index,
                        code=item.item_code,
                    )
                )
                continue
            if on_hand < item.qty:
                meta = {
                    "index": index,
                    "code": item.item_code,
                    "on_hand": str(on_hand),
                    "qty": str(item.qty),
                }
                if policy.block_negative_stock:
                    results.append(
                        ValidationResult.error(
                            "INV_NEG_STOCK",
                            f"Insufficient stock for {item.item_code}: on-hand {on_hand}, requested {item.qty}",
                            path,
                            **meta,
                        )
                    )
                else:
                    results.append(
                        ValidationResult.warning(
                            "INV_NEG_STOCK_WARN",
                            f"Stock would go negative for {item.item_code}",
                            path,
                            **meta,
                        )
                    )
        return ValidationResult.combine(results)


class DuplicateDocumentRule(Rule):
    name = "duplicate_document"

    def check(self, ctx: ValidationContext) -> ValidationResult:
        doc = ctx.document
        on = parse_iso_date(doc.doc_date)
        if not doc.reference or on is None:
            return ValidationResult.empty()
        if ctx.lookups.has_duplicate_document(ctx.doc_type, doc.reference, on):
            return ValidationResult.error(
                "DUPLICATE_DOC",
                f"{ctx.doc_type.value} {doc.reference} already exists for {doc.doc_date}",
                reference=doc.reference,
                date=doc.doc_date,
                party=doc.party,
            )
        return ValidationResult.empty()
