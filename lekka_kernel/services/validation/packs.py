"""
Rule packs per document type.

Order is significant only for the order findings appear in; every rule
in a pack always runs.
"""

from lekka_kernel.domain.dtos import DocumentType
from lekka_kernel.services.validation.base import Rule
from lekka_kernel.services.validation.document_rules import (
    DuplicateDocumentRule,
    GstRule,
    StockRule,
    TdsRule,
    TotalsRule,
)
from lekka_kernel.services.validation.journal_rules import (
    BalanceRule,
    ExclusivityRule,
    SameAccountRule,
    ShapeRule,
)
from lekka_kernel.services.validation.ledger_rules import (
    FundsGuardRule,
    IdempotencyRule,
    InstrumentHygieneRule,
    LedgerExistenceRule,
    PeriodDateRule,
)

_CORE: tuple[Rule, ...] = (
    ShapeRule(),
    ExclusivityRule(),
    BalanceRule(),
    SameAccountRule(),
    LedgerExistenceRule(),
    PeriodDateRule(),
)

JOURNAL_PACK: tuple[Rule, ...] = (*_CORE, FundsGuardRule(), IdempotencyRule())

RECEIPT_PACK: tuple[Rule, ...] = (
    *_CORE,
    InstrumentHygieneRule(),
    FundsGuardRule(),
    IdempotencyRule(),
)

PAYMENT_VOUCHER_PACK: tuple[Rule, ...] = (
    *_CORE,
    InstrumentHygieneRule(),
    FundsGuardRule(),
    TdsRule(),
    IdempotencyRule(),
)

INVOICE_PACK: tuple[Rule, ...] = (
    *_CORE,
    InstrumentHygieneRule(),
    FundsGuardRule(),
    TotalsRule(),
    GstRule(),
    StockRule(),
    DuplicateDocumentRule(),
    IdempotencyRule(),
)

RULE_PACKS: dict[DocumentType, tuple[Rule, ...]] = {
    DocumentType.JOURNAL: JOURNAL_PACK,
    DocumentType.RECEIPT: RECEIPT_PACK,
    # BANK_MIXED is suppressed inside InstrumentHygieneRule for contra
    DocumentType.CONTRA_VOUCHER: RECEIPT_PACK,
    DocumentType.PAYMENT_VOUCHER: PAYMENT_VOUCHER_PACK,
    DocumentType.INVOICE: INVOICE_PACK,
}


def pack_for(doc_type: DocumentType | str | None) -> tuple[Rule, ...]:
    return RULE_PACKS.get(DocumentType.parse(doc_type), JOURNAL_PACK)
