"""
Purchasing Module (``p2p_modules.purchasing``).

Goods receipts from vendors: draft/submit/cancel, and receipt posting
(cost layers, stock movements and the Inventory / Tax receivable /
Accounts payable journal entry) through ``PurchaseReceivingEngine``.
"""

from p2p_modules.purchasing.models import (
    CostLayerInfo,
    LineAmounts,
    PurchaseItemInfo,
    PurchaseReceiptInfo,
    ReceiptLineInput,
    ReceiptStatus,
    ReceivingDefaults,
    compute_line_amounts,
)
from p2p_modules.purchasing.service import PurchaseReceivingEngine
from p2p_modules.purchasing.sinks import LoggingStockMovementSink, StockMovementSink
from p2p_modules.purchasing.workflows import RECEIPT_WORKFLOW

__all__ = [
    "CostLayerInfo",
    "LineAmounts",
    "LoggingStockMovementSink",
    "PurchaseItemInfo",
    "PurchaseReceiptInfo",
    "PurchaseReceivingEngine",
    "RECEIPT_WORKFLOW",
    "ReceiptLineInput",
    "ReceiptStatus",
    "ReceivingDefaults",
    "StockMovementSink",
    "compute_line_amounts",
]
