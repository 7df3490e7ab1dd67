"""
Accounting Facade Inputs (``p2p_modules.accounting.models``).

Frozen value objects handed to ``AccountingFacade`` by callers outside
the purchase-to-pay cycle (inventory adjustments, sales).  Amounts are
already aggregated by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from p2p_kernel.db.types import ZERO


class StockMovementType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    RETURN = "return"


@dataclass(frozen=True)
class StockMovement:
    """A stock movement as recorded by inventory."""
    movement_type: StockMovementType
    variant_id: UUID
    quantity: Decimal
    movement_date: date
    unit_cost: Decimal | None = None
    sku: str | None = None
    reference: str | None = None

    @property
    def is_costed_purchase(self) -> bool:
        return (
            StockMovementType(self.movement_type) is StockMovementType.PURCHASE
            and self.unit_cost is not None
            and self.unit_cost > ZERO
        )


@dataclass(frozen=True)
class SalesOrderTotals:
    """Totals of a completed sales order; ``total_cost`` drives COGS."""
    sales_order_id: UUID
    order_date: date
    subtotal_amount: Decimal
    total_tax_amount: Decimal
    total_amount: Decimal
    total_cost: Decimal = ZERO

    @property
    def short_id(self) -> str:
        return str(self.sales_order_id)[:8]


@dataclass(frozen=True)
class SaleEntries:
    """Journal entries posted for one sale."""
    revenue_entry_id: UUID
    cogs_entry_id: UUID | None = None
