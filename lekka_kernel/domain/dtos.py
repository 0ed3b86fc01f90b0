"""
DTOs -- immutable data flowing through the preview/confirm pipeline.

Responsibility:
    Defines the value objects shared by validation, pairing, numbering,
    snapshots and the orchestrator: JournalLine (input), LedgerPair
    (persisted shape), ValidationIssue / ValidationResult, the document
    model, and the preview / confirm responses.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  No ORM imports.

Invariants enforced:
    - Amounts are int minor units everywhere in this module.
    - ValidationResult is append-only: merge() returns a new result and
      never drops an entry from either side.

Data flow:
    JournalLine[] -> ValidationResult -> LedgerPair[] -> PreviewResult
    -> (confirm) -> ConfirmResult
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from lekka_kernel.domain.money import round_minor, to_decimal, to_minor_units
from lekka_kernel.exceptions import DocumentParseError

# =============================================================================
# Document types
# =============================================================================

_DOC_TYPE_ALIASES = {
    "invoice": "invoice",
    "sales_invoice": "invoice",
    "receipt": "receipt",
    "payment_voucher": "payment_voucher",
    "payment": "payment_voucher",
    "voucher": "payment_voucher",
    "contra_voucher": "contra_voucher",
    "contra": "contra_voucher",
    "journal": "journal",
    "journal_voucher": "journal",
    "jv": "journal",
}

_SERIES_PREFIXES = {
    "invoice": "INV",
    "receipt": "RCT",
    "payment_voucher": "PV",
    "contra_voucher": "CV",
    "journal": "JV",
}


class DocumentType(str, Enum):
    """Document types with their own rule pack and number series."""

    INVOICE = "invoice"
    RECEIPT = "receipt"
    PAYMENT_VOUCHER = "payment_voucher"
    CONTRA_VOUCHER = "contra_voucher"
    JOURNAL = "journal"

    @classmethod
    def parse(cls, value: str | DocumentType | None) -> DocumentType:
        """Resolve an upstream hint; anything unrecognized is a journal."""
        if isinstance(value, DocumentType):
            return value
        key = (value or "").strip().lower().replace("-", "_").replace(" ", "_")
        return cls(_DOC_TYPE_ALIASES.get(key, "journal"))

    @property
    def series_prefix(self) -> str:
        return _SERIES_PREFIXES[self.value]

    @property
    def carries_document(self) -> bool:
        """Whether confirm writes a human document metadata row."""
        return self is not DocumentType.JOURNAL


# =============================================================================
# Journal lines and ledger pairs
# =============================================================================


@dataclass(frozen=True)
class JournalLine:
    """
    One single-sided proposed line.

    Constructed from untrusted input, so the invariant "exactly one side
    strictly positive" is checked by validation rules, not here.
    """

    account: str
    date: str
    debit: int = 0
    credit: int = 0
    narration: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "date": self.date,
            "debit": self.debit,
            "credit": self.credit,
            "narration": self.narration,
        }


@dataclass(frozen=True)
class LedgerPair:
    """
    A debit/credit pair -- the only shape ever persisted to the ledger.

    Guarantees:
        - amount > 0 (enforced at construction).
    """

    debit_account: str
    credit_account: str
    amount: int
    date: str
    narration: str = ""

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"LedgerPair amount must be positive, got {self.amount}")

    @property
    def is_same_account(self) -> bool:
        return self.debit_account == self.credit_account

    def to_payload(self) -> dict[str, Any]:
        return {
            "debit_account": self.debit_account,
            "credit_account": self.credit_account,
            "amount": self.amount,
            "date": self.date,
            "narration": self.narration,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> LedgerPair:
        return cls(
            debit_account=data["debit_account"],
            credit_account=data["credit_account"],
            amount=int(data["amount"]),
            date=data["date"],
            narration=data.get("narration") or "",
        )


# =============================================================================
# Validation results
# =============================================================================


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single finding: error, warning or informational note.

    The severity is given by which list of ValidationResult holds it.
    """

    code: str
    message: str
    path: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "path": self.path,
            "meta": dict(self.metadata),
        }


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of a validation pass.

    Contract:
        Holds errors, warnings and informational notes.  Rule outputs are
        combined with ``merge``; nothing is ever discarded.

    Non-goals:
        - Does NOT decide which error codes are blocking; see
          ``services.validation.classification.classify``.
    """

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    info: tuple[ValidationIssue, ...] = ()

    @classmethod
    def empty(cls) -> ValidationResult:
        return cls()

    @classmethod
    def error(cls, code: str, message: str, path: str | None = None, **metadata: Any) -> ValidationResult:
        return cls(errors=(ValidationIssue(code, message, path, metadata),))

    @classmethod
    def warning(cls, code: str, message: str, path: str | None = None, **metadata: Any) -> ValidationResult:
        return cls(warnings=(ValidationIssue(code, message, path, metadata),))

    @classmethod
    def note(cls, code: str, message: str, path: str | None = None, **metadata: Any) -> ValidationResult:
        return cls(info=(ValidationIssue(code, message, path, metadata),))

    @classmethod
    def combine(cls, results: Iterable[ValidationResult]) -> ValidationResult:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        info: list[ValidationIssue] = []
        for result in results:
            errors.extend(result.errors)
            warnings.extend(result.warnings)
            info.extend(result.info)
        return cls(tuple(errors), tuple(warnings), tuple(info))

    def merge(self, other: ValidationResult) -> ValidationResult:
        return ValidationResult.combine((self, other))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error_codes(self) -> frozenset[str]:
        return frozenset(issue.code for issue in self.errors)

    def all_codes(self) -> frozenset[str]:
        return frozenset(
            issue.code for issue in (*self.errors, *self.warnings, *self.info)
        )

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "info": [i.to_dict() for i in self.info],
        }


# =============================================================================
# Document model
# =============================================================================


def _minor_or_none(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        return to_minor_units(value)
    except ValueError as exc:
        raise DocumentParseError(key, value) from exc


def _decimal_or_none(data: Mapping[str, Any], key: str) -> Decimal | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise DocumentParseError(key, value) from exc


@dataclass(frozen=True)
class DocumentItem:
    """An invoice line item.  ``rate_minor`` is per unit."""

    name: str
    qty: Decimal = Decimal(1)
    rate_minor: int | None = None
    amount_minor: int | None = None
    item_code: str | None = None
    gst_rate: Decimal | None = None
    stock_tracked: bool = False

    def line_total(self) -> int:
        if self.amount_minor is not None:
            return self.amount_minor
        if self.rate_minor is None:
            return 0
        return round_minor(self.qty * self.rate_minor)

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "qty": str(self.qty),
            "rate_minor": self.rate_minor,
            "amount_minor": self.amount_minor,
            "item_code": self.item_code,
            "gst_rate": None if self.gst_rate is None else str(self.gst_rate),
            "stock_tracked": self.stock_tracked,
        }


@dataclass(frozen=True)
class GstDetails:
    """Declared GST fields on an invoice."""

    supplier_gstin: str | None = None
    customer_gstin: str | None = None
    place_of_supply: str | None = None
    rate_percent: Decimal | None = None
    taxable_minor: int | None = None
    igst_minor: int | None = None
    cgst_minor: int | None = None
    sgst_minor: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "supplier_gstin": self.supplier_gstin,
            "customer_gstin": self.customer_gstin,
            "place_of_supply": self.place_of_supply,
            "rate_percent": None if self.rate_percent is None else str(self.rate_percent),
            "taxable_minor": self.taxable_minor,
            "igst_minor": self.igst_minor,
            "cgst_minor": self.cgst_minor,
            "sgst_minor": self.sgst_minor,
        }


@dataclass(frozen=True)
class TdsDetails:
    """Declared withholding on a payment."""

    apply: bool = False
    section: str | None = None
    amount_minor: int | None = None
    base_minor: int | None = None
    gross_minor: int | None = None
    pan_available: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "apply": self.apply,
            "section": self.section,
            "amount_minor": self.amount_minor,
            "base_minor": self.base_minor,
            "gross_minor": self.gross_minor,
            "pan_available": self.pan_available,
        }


@dataclass(frozen=True)
class DocumentModel:
    """
    Structured document fields derived upstream from the transaction.

    ``reference`` is the counterparty's own document number (e.g. a
    supplier invoice number); the kernel issues its own series number
    separately.
    """

    doc_date: str | None = None
    reference: str | None = None
    party: str | None = None
    items: tuple[DocumentItem, ...] = ()
    tax_minor: int | None = None
    total_minor: int | None = None
    gst: GstDetails | None = None
    tds: TdsDetails | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> DocumentModel:
        """
        Parse an upstream document dict with major-unit amounts.

        Raises:
            DocumentParseError: when an amount or quantity is not numeric.
        """
        if not data:
            return cls()

        items = []
        for raw in data.get("items") or ():
            qty = _decimal_or_none(raw, "qty")
            items.append(
                DocumentItem(
                    name=str(raw.get("name") or raw.get("item_code") or ""),
                    qty=Decimal(1) if qty is None else qty,
                    rate_minor=_minor_or_none(raw, "rate"),
                    amount_minor=_minor_or_none(raw, "amount"),
                    item_code=raw.get("item_code"),
                    gst_rate=_decimal_or_none(raw, "gst_rate"),
                    stock_tracked=bool(raw.get("stock_tracked", False)),
                )
            )

        gst = None
        if data.get("gst"):
            g = data["gst"]
            gst = GstDetails(
                supplier_gstin=g.get("supplier_gstin"),
                customer_gstin=g.get("customer_gstin"),
                place_of_supply=g.get("place_of_supply"),
                rate_percent=_decimal_or_none(g, "rate"),
                taxable_minor=_minor_or_none(g, "taxable"),
                igst_minor=_minor_or_none(g, "igst"),
                cgst_minor=_minor_or_none(g, "cgst"),
                sgst_minor=_minor_or_none(g, "sgst"),
            )

        tds = None
        if data.get("tds"):
            t = data["tds"]
            tds = TdsDetails(
                apply=bool(t.get("apply", True)),
                section=t.get("section"),
                amount_minor=_minor_or_none(t, "amount"),
                base_minor=_minor_or_none(t, "base"),
                gross_minor=_minor_or_none(t, "gross"),
                pan_available=bool(t.get("pan_available", True)),
            )

        return cls(
            doc_date=data.get("date"),
            reference=data.get("reference"),
            party=data.get("party"),
            items=tuple(items),
            tax_minor=_minor_or_none(data, "tax_total"),
            total_minor=_minor_or_none(data, "total"),
            gst=gst,
            tds=tds,
        )

    def items_subtotal(self) -> int:
        return sum(item.line_total() for item in self.items)

    def to_payload(self) -> dict[str, Any]:
        return {
            "doc_date": self.doc_date,
            "reference": self.reference,
            "party": self.party,
            "items": [item.to_payload() for item in self.items],
            "tax_minor": self.tax_minor,
            "total_minor": self.total_minor,
            "gst": self.gst.to_payload() if self.gst else None,
            "tds": self.tds.to_payload() if self.tds else None,
        }


# =============================================================================
# Funds
# =============================================================================


@dataclass(frozen=True)
class Headroom:
    """Spendable amount on one (account, date)."""

    account: str
    as_of: date
    balance: int
    facility_type: str | None
    limit: int
    held: int
    available: int


# =============================================================================
# Numbering and previews
# =============================================================================


@dataclass(frozen=True)
class ReservationInfo:
    reservation_id: Any
    number: str
    fiscal_year: int
    expires_at: datetime


class PreviewStatus(str, Enum):
    PREVIEW = "preview"
    INVALID = "invalid"
    FOLLOWUP_NEEDED = "followup_needed"


@dataclass(frozen=True)
class PreviewRequest:
    """
    Inbound proposal from the upstream collaborator.

    ``lines`` are already normalized; see ``domain.normalize.normalize_rows``
    for converting raw rows.
    """

    tenant_id: str
    doc_type: DocumentType
    lines: tuple[JournalLine, ...]
    document: DocumentModel = field(default_factory=DocumentModel)
    idempotency_key: str | None = None
    actor: str | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class PreviewResult:
    """Preview response."""

    status: PreviewStatus
    doc_type: DocumentType
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    info: tuple[ValidationIssue, ...] = ()
    preview_id: Any = None
    hash: str | None = None
    expires_at: datetime | None = None
    pairs: tuple[LedgerPair, ...] = ()
    ledger_view: str = ""
    document_number: str | None = None
    reservation_id: Any = None
    new_accounts: tuple[str, ...] = ()

    @property
    def is_preview(self) -> bool:
        return self.status is PreviewStatus.PREVIEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "doc_type": self.doc_type.value,
            "preview_id": None if self.preview_id is None else str(self.preview_id),
            "hash": self.hash,
            "expires_at": None if self.expires_at is None else self.expires_at.isoformat(),
            "paired_journal": [p.to_payload() for p in self.pairs],
            "ledger_view": self.ledger_view,
            "document_number": self.document_number,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "info": [i.to_dict() for i in self.info],
            "new_accounts": list(self.new_accounts),
        }


@dataclass(frozen=True)
class PostedDocument:
    """Metadata of a finalized human document."""

    document_id: Any
    tenant_id: str
    doc_type: DocumentType
    number: str
    doc_date: date
    party: str | None
    gross_minor: int


@dataclass(frozen=True)
class ConfirmResult:
    """Confirm response; ``warnings`` carries post-commit side-effect failures."""

    preview_id: Any
    posted: int
    document_number: str
    document: PostedDocument | None = None
    warnings: tuple[ValidationIssue, ...] = ()
    rendered_path: str | None = None
    status: str = "posted"

    def to_dict(self) -> dict[str, Any]:
        doc = None
        if self.document is not None:
            doc = {
                "id": str(self.document.document_id),
                "type": self.document.doc_type.value,
                "number": self.document.number,
                "date": self.document.doc_date.isoformat(),
                "party": self.document.party,
                "gross_minor": self.document.gross_minor,
                "file": self.rendered_path,
            }
        return {
            "status": self.status,
            "posted": self.posted,
            "document_number": self.document_number,
            "document": doc,
            "warnings": [w.to_dict() for w in self.warnings],
        }
