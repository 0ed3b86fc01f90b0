"""
Module: lekka_kernel.models.inventory
Responsibility: Stock items and their signed quantity movements.  On-hand is
    always derived (sum of movements); nothing stores a running balance.
Architecture position: Kernel > Models.  Read by the inventory selector for
    the stock guard rule.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lekka_kernel.db.base import TimestampedBase, UUIDString
from lekka_kernel.db.types import Name, ShortCode, TenantId


class StockItem(TimestampedBase):
    __tablename__ = "stock_items"

    __table_args__ = (
        UniqueConstraint("tenant_id", "item_code", name="uq_stock_item_code"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    item_code: Mapped[ShortCode] = mapped_column(nullable=False)

    name: Mapped[Name] = mapped_column(nullable=False)


class StockMovement(TimestampedBase):
    """Positive quantity is stock in, negative is stock out."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_stock_movement_item", "tenant_id", "item_id"),
    )

    tenant_id: Mapped[TenantId] = mapped_column(nullable=False)

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)

    reference: Mapped[ShortCode | None] = mapped_column(nullable=True)
