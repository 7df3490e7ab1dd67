"""
Purchasing Domain Models (``p2p_modules.purchasing.models``).

Responsibility
--------------
Frozen value objects for purchase receiving: receipt and line inputs, the
call-site account defaults, and read-side snapshots of receipts, items and
FIFO cost layers.  Also the one pricing rule every receipt line follows.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  These
objects flow into ``PurchaseReceivingEngine`` and come back out of it.

Invariants enforced
-------------------
* All monetary fields are ``Decimal``.
* ``compute_line_amounts`` rounds half-even to the minor unit at exactly
  two points (subtotal, total); tax is their difference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from p2p_kernel.db.types import HUNDRED, ZERO, ensure_decimal, round_money
from p2p_kernel.exceptions import InvalidAmountError


class ReceiptStatus(str, Enum):
    """Receipt workflow states.  Must align with ``workflows.RECEIPT_WORKFLOW.states``."""
    DRAFT = "draft"
    PENDING = "pending"
    RECEIVED = "received"
    POSTED = "posted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class LineAmounts:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_line_amounts(
    quantity: Decimal,
    unit_cost: Decimal,
    discount_percent: Decimal = ZERO,
    tax_rate: Decimal = ZERO,
) -> LineAmounts:
    """
    Price one receipt line.

    ``subtotal = round(q * c * (1 - d/100))`` and
    ``total = round(q * c * (1 - d/100) * (1 + t/100))``; percentages are
    percent numbers (16 means 16%).
    """
    net = quantity * unit_cost * (1 - discount_percent / HUNDRED)
    subtotal = round_money(net)
    total = round_money(net * (1 + tax_rate / HUNDRED))
    return LineAmounts(subtotal=subtotal, tax=total - subtotal, total=total)


@dataclass(frozen=True)
class ReceiptLineInput:
    """Caller's definition of one received line."""
    product_id: UUID
    variant_id: UUID
    quantity_received: Decimal
    unit_cost: Decimal
    discount_percent: Decimal = ZERO
    tax_rate: Decimal = ZERO
    quantity_ordered: Decimal | None = None
    inventory_account_id: UUID | None = None

    def validated(self, line_number: int) -> ReceiptLineInput:
        """Coerce amounts to Decimal and check their ranges."""
        quantity = ensure_decimal(f"items[{line_number}].quantity_received", self.quantity_received)
        unit_cost = ensure_decimal(f"items[{line_number}].unit_cost", self.unit_cost)
        discount = ensure_decimal(f"items[{line_number}].discount_percent", self.discount_percent)
        tax_rate = ensure_decimal(f"items[{line_number}].tax_rate", self.tax_rate)
        ordered = (
            ensure_decimal(f"items[{line_number}].quantity_ordered", self.quantity_ordered)
            if self.quantity_ordered is not None
            else None
        )
        if quantity <= ZERO:
            raise InvalidAmountError(f"items[{line_number}].quantity_received", quantity, "must be positive")
        if unit_cost < ZERO:
            raise InvalidAmountError(f"items[{line_number}].unit_cost", unit_cost, "must not be negative")
        if not ZERO <= discount <= HUNDRED:
            raise InvalidAmountError(
                f"items[{line_number}].discount_percent", discount, "must be between 0 and 100"
            )
        if tax_rate < ZERO:
            raise InvalidAmountError(f"items[{line_number}].tax_rate", tax_rate, "must not be negative")
        if ordered is not None and ordered < ZERO:
            raise InvalidAmountError(f"items[{line_number}].quantity_ordered", ordered, "must not be negative")
        return ReceiptLineInput(
            product_id=self.product_id,
            variant_id=self.variant_id,
            quantity_received=quantity,
            unit_cost=unit_cost,
            discount_percent=discount,
            tax_rate=tax_rate,
            quantity_ordered=ordered,
            inventory_account_id=self.inventory_account_id,
        )


@dataclass(frozen=True)
class ReceivingDefaults:
    """Call-site account overrides for ``receive_purchase``."""
    inventory_account_id: UUID | None = None
    accounts_payable_account_id: UUID | None = None
    tax_receivable_account_id: UUID | None = None


@dataclass(frozen=True)
class PurchaseItemInfo:
    line_number: int
    product_id: UUID
    variant_id: UUID
    quantity_ordered: Decimal | None
    quantity_received: Decimal
    unit_cost: Decimal
    discount_percent: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    line_total: Decimal
    inventory_account_id: UUID | None = None

    @property
    def line_subtotal(self) -> Decimal:
        return self.line_total - self.tax_amount


@dataclass(frozen=True)
class PurchaseReceiptInfo:
    """Read-side snapshot of a purchase receipt."""
    id: UUID
    organization_id: UUID
    number: str | None
    vendor_id: UUID
    receipt_date: date
    status: ReceiptStatus
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    purchase_order_id: UUID | None = None
    journal_entry_id: UUID | None = None
    notes: str | None = None
    received_at: datetime | None = None
    received_by_id: UUID | None = None
    items: tuple[PurchaseItemInfo, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CostLayerInfo:
    """One FIFO cost layer created by a received line."""
    id: UUID
    receipt_id: UUID
    line_number: int
    product_id: UUID
    variant_id: UUID
    unit_cost: Decimal
    original_quantity: Decimal
    remaining_quantity: Decimal
    received_on: date
    created_at: datetime | None
    receipt_sequence: int = 0
