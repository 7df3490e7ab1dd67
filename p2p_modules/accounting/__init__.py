"""
Accounting Module (``p2p_modules.accounting``).

Transaction-owning facades over the kernel: ``AccountingFacade`` for
journal entries, purchase and sale postings and reversals;
``SerieNoFacade`` for document numbers and number-series maintenance.
"""

from p2p_modules.accounting.facade import AccountingFacade, SerieNoFacade
from p2p_modules.accounting.models import (
    SaleEntries,
    SalesOrderTotals,
    StockMovement,
    StockMovementType,
)

__all__ = [
    "AccountingFacade",
    "SaleEntries",
    "SalesOrderTotals",
    "SerieNoFacade",
    "StockMovement",
    "StockMovementType",
]
