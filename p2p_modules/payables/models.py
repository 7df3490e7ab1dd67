"""
Payables Domain Models (``p2p_modules.payables.models``).

Responsibility
--------------
Frozen value objects for accounts payable: vendor invoices, payment terms,
company bank accounts, payments and their applications, plus the payment
request a caller submits.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (never ``float``).
* ``amount_due == total_amount - amount_paid``.
* ``Overdue`` is never stored; ``derive_payment_status`` computes it at
  read time from the due date.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from p2p_kernel.db.types import ZERO


class InvoiceStatus(str, Enum):
    """Invoice workflow states.  Must align with ``workflows.INVOICE_WORKFLOW.states``."""
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


class InvoicePaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentStatus(str, Enum):
    """Payment workflow states.  Must align with ``workflows.PAYMENT_WORKFLOW.states``."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    POSTED = "posted"
    VOIDED = "voided"


class PaymentMethod(str, Enum):
    """How a vendor is paid."""
    CASH = "cash"
    CHECK = "check"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    OTHER = "other"


def stored_payment_status(total_amount: Decimal, amount_paid: Decimal) -> InvoicePaymentStatus:
    """Persisted settlement status: Unpaid, PartiallyPaid or Paid."""
    if amount_paid >= total_amount:
        return InvoicePaymentStatus.PAID
    if amount_paid > ZERO:
        return InvoicePaymentStatus.PARTIALLY_PAID
    return InvoicePaymentStatus.UNPAID


def derive_payment_status(
    total_amount: Decimal,
    amount_paid: Decimal,
    due_date: date,
    as_of: date,
) -> InvoicePaymentStatus:
    """Settlement status as seen on ``as_of``; unsettled past due is Overdue."""
    status = stored_payment_status(total_amount, amount_paid)
    if status is not InvoicePaymentStatus.PAID and due_date < as_of:
        return InvoicePaymentStatus.OVERDUE
    return status


@dataclass(frozen=True)
class PaymentTermsInfo:
    """Net days and early-payment discount (percent number, 2 means 2%)."""
    id: UUID
    organization_id: UUID
    description: str
    due_days: int
    discount_percentage: Decimal = ZERO
    discount_days: int = 0
    is_active: bool = True

    def discount_window_end(self, invoice_date: date) -> date:
        return invoice_date + timedelta(days=self.discount_days)


@dataclass(frozen=True)
class VendorInvoiceInfo:
    """Read-side snapshot of a vendor invoice.

    ``payment_status`` is derived for the date the snapshot was taken, so
    it may be Overdue.
    """
    id: UUID
    organization_id: UUID
    number: str
    vendor_id: UUID
    invoice_date: date
    due_date: date
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    status: InvoiceStatus
    payment_status: InvoicePaymentStatus
    purchase_receipt_id: UUID | None = None
    payment_terms_id: UUID | None = None
    vendor_invoice_reference: str | None = None
    notes: str | None = None

    @property
    def amount_due(self) -> Decimal:
        return self.total_amount - self.amount_paid


@dataclass(frozen=True)
class BankAccountInfo:
    id: UUID
    organization_id: UUID
    gl_account_id: UUID
    bank_name: str
    account_number: str
    currency: str
    current_balance: Decimal
    is_active: bool


@dataclass(frozen=True)
class ApplicationInput:
    """Part of a payment applied to one invoice, with any discount taken."""
    invoice_id: UUID
    amount_applied: Decimal
    discount_taken: Decimal = ZERO


@dataclass(frozen=True)
class PaymentAccountDefaults:
    """Call-site account overrides for payment posting."""
    accounts_payable_account_id: UUID | None = None
    purchase_discount_account_id: UUID | None = None


@dataclass(frozen=True)
class PaymentRequest:
    """A vendor payment as submitted by the caller."""
    vendor_id: UUID
    amount: Decimal
    bank_account_id: UUID
    payment_date: date
    applications: tuple[ApplicationInput, ...] = field(default_factory=tuple)
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    currency: str = "MXN"
    exchange_rate: Decimal = Decimal("1")
    vendor_bank_account_id: UUID | None = None
    reference_number: str | None = None
    notes: str | None = None
    number: str | None = None
    defaults: PaymentAccountDefaults = field(default_factory=PaymentAccountDefaults)


@dataclass(frozen=True)
class PaymentApplicationInfo:
    invoice_id: UUID
    amount_applied: Decimal
    discount_taken: Decimal
    application_date: date


@dataclass(frozen=True)
class PaymentInfo:
    """Read-side snapshot of a vendor payment."""
    id: UUID
    organization_id: UUID
    number: str | None
    vendor_id: UUID
    payment_date: date
    method: PaymentMethod
    bank_account_id: UUID
    amount: Decimal
    currency: str
    exchange_rate: Decimal
    status: PaymentStatus
    journal_entry_id: UUID | None = None
    reversal_journal_entry_id: UUID | None = None
    vendor_bank_account_id: UUID | None = None
    reference_number: str | None = None
    notes: str | None = None
    applications: tuple[PaymentApplicationInfo, ...] = field(default_factory=tuple)

    @property
    def total_applied(self) -> Decimal:
        return sum((a.amount_applied for a in self.applications), ZERO)

    @property
    def total_discount(self) -> Decimal:
        return sum((a.discount_taken for a in self.applications), ZERO)

    @property
    def unapplied_amount(self) -> Decimal:
        return self.amount - self.total_applied
