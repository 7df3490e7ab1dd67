"""
Module: p2p_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every journal line -- and the enums that classify accounts.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (organization_id, code) is unique (uq_accounts_org_code).
    - account_class is fixed once journal lines reference the account
      (db/immutability.py).
    - system_role is an optional tag used as the last-resort lookup when an
      organization has no explicit configuration for a role.

Audit relevance:
    Changing the class of a referenced account would reclassify historical
    balances, so the class column is locked once used.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from p2p_kernel.db.base import OrganizationScoped, TrackedBase


class AccountClass(str, Enum):
    """Top-level classification of a ledger account."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class SystemRole(str, Enum):
    """Business role an account can be tagged with."""

    INVENTORY = "inventory"
    ACCOUNTS_PAYABLE = "accounts_payable"
    ACCOUNTS_RECEIVABLE = "accounts_receivable"
    SALES_REVENUE = "sales_revenue"
    COGS = "cogs"
    TAX_PAYABLE = "tax_payable"
    TAX_RECEIVABLE = "tax_receivable"
    CASH = "cash"
    BANK = "bank"
    PURCHASE_DISCOUNT = "purchase_discount"


class Account(OrganizationScoped, TrackedBase):
    """
    A ledger account owned by one organization.

    Guarantees:
        - code unique per organization.
        - account_class and system_role stored as string enum values.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_accounts_org_code"),
        Index("idx_accounts_org_role", "organization_id", "system_role"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_class: Mapped[str] = mapped_column(String(20), nullable=False)
    system_role: Mapped[str | None] = mapped_column(String(40), nullable=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    parent_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def class_enum(self) -> AccountClass:
        return AccountClass(self.account_class)

    @property
    def role_enum(self) -> SystemRole | None:
        return SystemRole(self.system_role) if self.system_role else None

    def to_dto(self):
        from p2p_kernel.domain.dtos import AccountInfo

        return AccountInfo(
            id=self.id,
            organization_id=self.organization_id,
            code=self.code,
            name=self.name,
            account_class=self.account_class,
            system_role=self.system_role,
            is_active=self.is_active,
            currency=self.currency,
            parent_account_id=self.parent_account_id,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name} ({self.account_class})>"
