"""ORM models.  Importing this package registers every table on Base.metadata."""

from lekka_kernel.models.account import ChartAccount, LedgerLock
from lekka_kernel.models.document import Document, DocumentStatus, IdempotencyKey
from lekka_kernel.models.funds import AccountFacility, FacilityType, FundsHold
from lekka_kernel.models.inventory import StockItem, StockMovement
from lekka_kernel.models.ledger import LedgerEntry
from lekka_kernel.models.period import ClosedPeriod
from lekka_kernel.models.preview import PreviewSnapshot, SnapshotStatus
from lekka_kernel.models.series import ReservationStatus, SeriesCounter, SeriesReservation

__all__ = [
    "ChartAccount",
    "LedgerLock",
    "Document",
    "DocumentStatus",
    "IdempotencyKey",
    "AccountFacility",
    "FacilityType",
    "FundsHold",
    "StockItem",
    "StockMovement",
    "LedgerEntry",
    "ClosedPeriod",
    "PreviewSnapshot",
    "SnapshotStatus",
    "ReservationStatus",
    "SeriesCounter",
    "SeriesReservation",
]
