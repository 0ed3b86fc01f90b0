"""Read-only selectors."""

from lekka_kernel.selectors.account_selector import AccountInfo, AccountSelector
from lekka_kernel.selectors.document_selector import DocumentInfo, DocumentSelector
from lekka_kernel.selectors.funds_selector import FacilityInfo, FundsSelector
from lekka_kernel.selectors.inventory_selector import InventorySelector
from lekka_kernel.selectors.ledger_selector import LedgerSelector, PostedEntry

__all__ = [
    "AccountInfo",
    "AccountSelector",
    "DocumentInfo",
    "DocumentSelector",
    "FacilityInfo",
    "FundsSelector",
    "InventorySelector",
    "LedgerSelector",
    "PostedEntry",
]
