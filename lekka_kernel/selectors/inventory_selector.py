"""
Module: lekka_kernel.selectors.inventory_selector
Responsibility: On-hand quantities, derived as the sum of signed stock
    movements.
Architecture position: Kernel > Selectors.
"""

from decimal import Decimal

from sqlalchemy import func, select

from lekka_kernel.models.inventory import StockItem, StockMovement
from lekka_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector[StockItem]):

    def on_hand(self, tenant_id: str, item_code: str) -> Decimal | None:
        """Current quantity for ``item_code``; None when the item is unknown."""
        item_id = self.session.execute(
            select(StockItem.id).where(
                StockItem.tenant_id == tenant_id,
                StockItem.item_code == item_code,
            )
        ).scalar_one_or_none()
        if item_id is None:
            return None
        total = self.session.execute(
            select(func.coalesce(func.sum(StockMovement.quantity), 0)).where(
                StockMovement.tenant_id == tenant_id,
                StockMovement.item_id == item_id,
            )
        ).scalar_one()
        return Decimal(str(total))
