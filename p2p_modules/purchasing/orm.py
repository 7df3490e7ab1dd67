"""
Purchasing ORM Models (``p2p_modules.purchasing.orm``).

Responsibility
--------------
SQLAlchemy persistence for purchase receipts, their items, and the FIFO
stock cost layers created when a receipt is posted.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``p2p_kernel.db.base`` and
sibling ``models.py``.  MUST NOT be imported by ``p2p_kernel``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from p2p_kernel.db.base import Base, OrganizationScoped, TrackedBase


class PurchaseReceiptModel(OrganizationScoped, TrackedBase):
    """
    ORM model for purchase receipts.

    Guarantees:
        - (organization_id, number) unique once a number is assigned.
        - status stored as string enum value.
        - ``version`` guards concurrent posting of the same receipt.
    """

    __tablename__ = "purchase_receipts"

    __table_args__ = (
        UniqueConstraint("organization_id", "number", name="uq_purchase_receipts_org_number"),
        Index("idx_purchase_receipts_vendor", "organization_id", "vendor_id"),
        Index("idx_purchase_receipts_status", "organization_id", "status"),
    )

    number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    purchase_order_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    received_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    items: Mapped[list["PurchaseItemModel"]] = relationship(
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="PurchaseItemModel.line_number",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from p2p_modules.purchasing.models import PurchaseReceiptInfo, ReceiptStatus

        return PurchaseReceiptInfo(
            id=self.id,
            organization_id=self.organization_id,
            number=self.number,
            vendor_id=self.vendor_id,
            receipt_date=self.receipt_date,
            status=ReceiptStatus(self.status),
            subtotal=self.subtotal,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            purchase_order_id=self.purchase_order_id,
            journal_entry_id=self.journal_entry_id,
            notes=self.notes,
            received_at=self.received_at,
            received_by_id=self.received_by_id,
            items=tuple(item.to_dto() for item in self.items),
        )

    def __repr__(self) -> str:
        return f"<PurchaseReceiptModel {self.number or self.id} [{self.status}]>"


class PurchaseItemModel(Base):
    """ORM model for one received line of a purchase receipt."""

    __tablename__ = "purchase_items"

    __table_args__ = (
        UniqueConstraint("receipt_id", "line_number", name="uq_purchase_items_receipt_line"),
        CheckConstraint("quantity_received > 0", name="ck_purchase_items_quantity_positive"),
    )

    receipt_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_receipts.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(nullable=False)
    variant_id: Mapped[UUID] = mapped_column(nullable=False)
    quantity_ordered: Mapped[Decimal | None] = mapped_column(nullable=True)
    quantity_received: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    line_total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    inventory_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )

    receipt: Mapped[PurchaseReceiptModel] = relationship(back_populates="items")

    def to_dto(self):
        from p2p_modules.purchasing.models import PurchaseItemInfo

        return PurchaseItemInfo(
            line_number=self.line_number,
            product_id=self.product_id,
            variant_id=self.variant_id,
            quantity_ordered=self.quantity_ordered,
            quantity_received=self.quantity_received,
            unit_cost=self.unit_cost,
            discount_percent=self.discount_percent,
            tax_rate=self.tax_rate,
            tax_amount=self.tax_amount,
            line_total=self.line_total,
            inventory_account_id=self.inventory_account_id,
        )


class StockCostLayerModel(OrganizationScoped, TrackedBase):
    """
    ORM model for a FIFO cost layer.

    Guarantees:
        - One layer per received line (uq_stock_cost_layers_item).
        - 0 <= remaining_quantity <= original_quantity.
        - FIFO order is (received_on, receipt_sequence, receipt_id,
          line_number); every layer of one receipt shares its
          receipt_sequence, the per-organization posting order.
    """

    __tablename__ = "stock_cost_layers"

    __table_args__ = (
        UniqueConstraint("purchase_item_id", name="uq_stock_cost_layers_item"),
        CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= original_quantity",
            name="ck_stock_cost_layers_remaining",
        ),
        Index("idx_stock_cost_layers_variant", "organization_id", "variant_id"),
        Index("idx_stock_cost_layers_sequence", "organization_id", "receipt_sequence"),
    )

    receipt_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_receipts.id"), nullable=False)
    purchase_item_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_items.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(nullable=False)
    variant_id: Mapped[UUID] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    original_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    remaining_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    received_on: Mapped[date] = mapped_column(Date, nullable=False)
    receipt_sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    def to_dto(self):
        from p2p_modules.purchasing.models import CostLayerInfo

        return CostLayerInfo(
            id=self.id,
            receipt_id=self.receipt_id,
            line_number=self.line_number,
            product_id=self.product_id,
            variant_id=self.variant_id,
            unit_cost=self.unit_cost,
            original_quantity=self.original_quantity,
            remaining_quantity=self.remaining_quantity,
            received_on=self.received_on,
            created_at=self.created_at,
            receipt_sequence=self.receipt_sequence,
        )
