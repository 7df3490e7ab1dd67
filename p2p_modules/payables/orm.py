"""
Payables ORM Models (``p2p_modules.payables.orm``).

Responsibility
--------------
SQLAlchemy persistence for vendor invoices, payment terms, company bank
accounts, payments and payment applications.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``p2p_kernel.db.base`` and
sibling ``models.py``.  MUST NOT be imported by ``p2p_kernel``.

Invariants enforced
-------------------
* VendorInvoiceModel and CompanyBankAccountModel carry a ``version``
  column mapped as SQLAlchemy's ``version_id_col``: an UPDATE against a
  row another transaction changed first matches no row and raises
  StaleDataError.
* 0 <= amount_paid <= total_amount on every invoice.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
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


# ---------------------------------------------------------------------------
# 1. PaymentTermsModel
# ---------------------------------------------------------------------------


class PaymentTermsModel(OrganizationScoped, TrackedBase):
    """ORM model for payment terms (net days plus early-payment discount)."""

    __tablename__ = "payment_terms"

    __table_args__ = (
        CheckConstraint("due_days >= 0", name="ck_payment_terms_due_days"),
        CheckConstraint("discount_days >= 0", name="ck_payment_terms_discount_days"),
    )

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    due_days: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(
        Numeric(9, 4), nullable=False, default=Decimal("0")
    )
    discount_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self):
        from p2p_modules.payables.models import PaymentTermsInfo

        return PaymentTermsInfo(
            id=self.id,
            organization_id=self.organization_id,
            description=self.description,
            due_days=self.due_days,
            discount_percentage=self.discount_percentage,
            discount_days=self.discount_days,
            is_active=self.is_active,
        )


# ---------------------------------------------------------------------------
# 2. VendorInvoiceModel
# ---------------------------------------------------------------------------


class VendorInvoiceModel(OrganizationScoped, TrackedBase):
    """
    ORM model for vendor invoices.

    Guarantees:
        - (organization_id, number) unique.
        - status and payment_status stored as string enum values;
          payment_status is never "overdue".
        - settled_from_status holds the status an invoice had when it
          became paid, so a void reopens it to that status.
    """

    __tablename__ = "vendor_invoices"

    __table_args__ = (
        UniqueConstraint("organization_id", "number", name="uq_vendor_invoices_org_number"),
        CheckConstraint(
            "amount_paid >= 0 AND amount_paid <= total_amount",
            name="ck_vendor_invoices_amount_paid",
        ),
        Index("idx_vendor_invoices_vendor", "organization_id", "vendor_id"),
        Index("idx_vendor_invoices_due_date", "organization_id", "due_date"),
    )

    number: Mapped[str] = mapped_column(String(20), nullable=False)
    vendor_invoice_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    purchase_receipt_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_receipts.id"), nullable=True
    )
    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_terms_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payment_terms.id"), nullable=True
    )
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="unpaid")
    settled_from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    payment_terms: Mapped[PaymentTermsModel | None] = relationship(lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    @property
    def amount_due(self) -> Decimal:
        return self.total_amount - self.amount_paid

    def to_dto(self, as_of: date | None = None):
        """Snapshot; with ``as_of`` the payment status may be derived Overdue."""
        from p2p_modules.payables.models import (
            InvoicePaymentStatus,
            InvoiceStatus,
            VendorInvoiceInfo,
            derive_payment_status,
        )

        if as_of is None:
            payment_status = InvoicePaymentStatus(self.payment_status)
        else:
            payment_status = derive_payment_status(
                self.total_amount, self.amount_paid, self.due_date, as_of
            )
        return VendorInvoiceInfo(
            id=self.id,
            organization_id=self.organization_id,
            number=self.number,
            vendor_id=self.vendor_id,
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            subtotal=self.subtotal,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            amount_paid=self.amount_paid,
            status=InvoiceStatus(self.status),
            payment_status=payment_status,
            purchase_receipt_id=self.purchase_receipt_id,
            payment_terms_id=self.payment_terms_id,
            vendor_invoice_reference=self.vendor_invoice_reference,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<VendorInvoiceModel {self.number} [{self.status}/{self.payment_status}]>"


# ---------------------------------------------------------------------------
# 3. CompanyBankAccountModel
# ---------------------------------------------------------------------------


class CompanyBankAccountModel(OrganizationScoped, TrackedBase):
    """ORM model for a company bank account backed by an Asset GL account."""

    __tablename__ = "company_bank_accounts"

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "account_number", name="uq_company_bank_accounts_number"
        ),
    )

    gl_account_id: Mapped[UUID] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_number: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    current_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from p2p_modules.payables.models import BankAccountInfo

        return BankAccountInfo(
            id=self.id,
            organization_id=self.organization_id,
            gl_account_id=self.gl_account_id,
            bank_name=self.bank_name,
            account_number=self.account_number,
            currency=self.currency,
            current_balance=self.current_balance,
            is_active=self.is_active,
        )


# ---------------------------------------------------------------------------
# 4. PaymentModel / PaymentApplicationModel
# ---------------------------------------------------------------------------


class PaymentModel(OrganizationScoped, TrackedBase):
    """
    ORM model for vendor payments.

    Guarantees:
        - (organization_id, number) unique once numbered (at posting).
        - Voiding keeps the row and records the reversal entry.
    """

    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint("organization_id", "number", name="uq_payments_org_number"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        Index("idx_payments_vendor", "organization_id", "vendor_id"),
    )

    number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vendor_id: Mapped[UUID] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    bank_account_id: Mapped[UUID] = mapped_column(
        ForeignKey("company_bank_accounts.id"), nullable=False
    )
    vendor_bank_account_id: Mapped[UUID | None] = mapped_column(nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(38, 18), nullable=False, default=Decimal("1")
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    reversal_journal_entry_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    applications: Mapped[list["PaymentApplicationModel"]] = relationship(
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentApplicationModel.line_number",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from p2p_modules.payables.models import PaymentInfo, PaymentMethod, PaymentStatus

        return PaymentInfo(
            id=self.id,
            organization_id=self.organization_id,
            number=self.number,
            vendor_id=self.vendor_id,
            payment_date=self.payment_date,
            method=PaymentMethod(self.method),
            bank_account_id=self.bank_account_id,
            amount=self.amount,
            currency=self.currency,
            exchange_rate=self.exchange_rate,
            status=PaymentStatus(self.status),
            journal_entry_id=self.journal_entry_id,
            reversal_journal_entry_id=self.reversal_journal_entry_id,
            vendor_bank_account_id=self.vendor_bank_account_id,
            reference_number=self.reference_number,
            notes=self.notes,
            applications=tuple(a.to_dto() for a in self.applications),
        )

    def __repr__(self) -> str:
        return f"<PaymentModel {self.number or self.id} {self.amount} [{self.status}]>"


class PaymentApplicationModel(Base):
    """ORM model for the part of a payment applied to one invoice."""

    __tablename__ = "payment_applications"

    __table_args__ = (
        UniqueConstraint("payment_id", "line_number", name="uq_payment_applications_line"),
        CheckConstraint(
            "amount_applied >= 0 AND discount_taken >= 0",
            name="ck_payment_applications_non_negative",
        ),
        Index("idx_payment_applications_invoice", "invoice_id"),
    )

    payment_id: Mapped[UUID] = mapped_column(ForeignKey("payments.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("vendor_invoices.id"), nullable=False)
    amount_applied: Mapped[Decimal] = mapped_column(nullable=False)
    discount_taken: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    application_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment: Mapped[PaymentModel] = relationship(back_populates="applications")

    def to_dto(self):
        from p2p_modules.payables.models import PaymentApplicationInfo

        return PaymentApplicationInfo(
            invoice_id=self.invoice_id,
            amount_applied=self.amount_applied,
            discount_taken=self.discount_taken,
            application_date=self.application_date,
        )
