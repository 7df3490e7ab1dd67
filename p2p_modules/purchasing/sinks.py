"""
Inventory hand-off for received stock (``p2p_modules.purchasing.sinks``).

The receiving engine reports every received line to a StockMovementSink.
Stock quantities live outside this system; the default sink only logs.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID

from p2p_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.sinks")


@runtime_checkable
class StockMovementSink(Protocol):
    """Receives one call per posted receipt line, inside the posting transaction."""

    def register_purchase(
        self,
        organization_id: UUID,
        variant_id: UUID,
        quantity: Decimal,
        unit_cost: Decimal,
        receipt_id: UUID,
    ) -> None: ...


class LoggingStockMovementSink:
    """Default sink: records the movement in the structured log."""

    def register_purchase(
        self,
        organization_id: UUID,
        variant_id: UUID,
        quantity: Decimal,
        unit_cost: Decimal,
        receipt_id: UUID,
    ) -> None:
        logger.info(
            "stock_purchase_registered",
            extra={
                "organization_id": str(organization_id),
                "variant_id": str(variant_id),
                "quantity": str(quantity),
                "unit_cost": str(unit_cost),
                "receipt_id": str(receipt_id),
            },
        )
