"""
Module: p2p_kernel.models.account_configuration
Responsibility: Per-organization mapping from business role slots to
    concrete accounts.  One row per organization, upserted in place.
Architecture position: Kernel > Models.  May import from db/ and sibling
    models only.

Invariants enforced:
    - At most one configuration per organization (uq_account_configurations_org).
    - Slot -> expected account class table (SLOT_CLASSES) is the single
      definition used by the configuration service.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from p2p_kernel.db.base import OrganizationScoped, TrackedBase
from p2p_kernel.models.account import AccountClass, SystemRole

# slot column -> (role it satisfies, accepted account classes)
SLOT_CLASSES: dict[str, tuple[SystemRole, tuple[AccountClass, ...]]] = {
    "inventory_account_id": (SystemRole.INVENTORY, (AccountClass.ASSET,)),
    "accounts_payable_account_id": (SystemRole.ACCOUNTS_PAYABLE, (AccountClass.LIABILITY,)),
    "accounts_receivable_account_id": (SystemRole.ACCOUNTS_RECEIVABLE, (AccountClass.ASSET,)),
    "sales_revenue_account_id": (SystemRole.SALES_REVENUE, (AccountClass.REVENUE,)),
    "cost_of_goods_sold_account_id": (SystemRole.COGS, (AccountClass.EXPENSE,)),
    "tax_payable_account_id": (SystemRole.TAX_PAYABLE, (AccountClass.LIABILITY,)),
    "tax_receivable_account_id": (SystemRole.TAX_RECEIVABLE, (AccountClass.ASSET,)),
    "cash_account_id": (SystemRole.CASH, (AccountClass.ASSET,)),
    "default_bank_account_id": (SystemRole.BANK, (AccountClass.ASSET,)),
    "purchase_discount_account_id": (
        SystemRole.PURCHASE_DISCOUNT,
        (AccountClass.REVENUE, AccountClass.EXPENSE),
    ),
}

ROLE_SLOTS: dict[SystemRole, str] = {role: slot for slot, (role, _) in SLOT_CLASSES.items()}


class AccountConfiguration(OrganizationScoped, TrackedBase):
    """Default accounts for one organization. Every slot is nullable."""

    __tablename__ = "account_configurations"

    __table_args__ = (
        UniqueConstraint("organization_id", name="uq_account_configurations_org"),
    )

    inventory_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    accounts_payable_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    accounts_receivable_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    sales_revenue_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    cost_of_goods_sold_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    tax_payable_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    tax_receivable_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    cash_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    default_bank_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))
    purchase_discount_account_id: Mapped[UUID | None] = mapped_column(ForeignKey("accounts.id"))

    def slot_values(self) -> dict[str, UUID | None]:
        return {slot: getattr(self, slot) for slot in SLOT_CLASSES}
