"""
Tests for invoice settlement status.

Unpaid, PartiallyPaid and Paid are stored; Overdue is derived at read
time from the due date and never persisted.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from p2p_modules.payables.models import (
    InvoicePaymentStatus,
    PaymentTermsInfo,
    derive_payment_status,
    stored_payment_status,
)

TOTAL = Decimal("100.00")


class TestStoredPaymentStatus:
    def test_unpaid(self):
        assert stored_payment_status(TOTAL, Decimal("0")) is InvoicePaymentStatus.UNPAID

    def test_partially_paid(self):
        assert stored_payment_status(TOTAL, Decimal("60.00")) is InvoicePaymentStatus.PARTIALLY_PAID

    def test_paid(self):
        assert stored_payment_status(TOTAL, Decimal("100.00")) is InvoicePaymentStatus.PAID


class TestDerivedPaymentStatus:
    due = date(2026, 2, 14)

    def test_not_overdue_on_due_date(self):
        status = derive_payment_status(TOTAL, Decimal("0"), self.due, self.due)
        assert status is InvoicePaymentStatus.UNPAID

    def test_overdue_after_due_date(self):
        status = derive_payment_status(TOTAL, Decimal("40.00"), self.due, date(2026, 2, 15))
        assert status is InvoicePaymentStatus.OVERDUE

    def test_paid_invoice_is_never_overdue(self):
        status = derive_payment_status(TOTAL, TOTAL, self.due, date(2026, 6, 1))
        assert status is InvoicePaymentStatus.PAID


class TestDiscountWindow:
    def test_window_ends_discount_days_after_invoice_date(self):
        terms = PaymentTermsInfo(
            id=uuid4(),
            organization_id=uuid4(),
            description="2/10 net 30",
            due_days=30,
            discount_percentage=Decimal("2"),
            discount_days=10,
        )
        assert terms.discount_window_end(date(2026, 1, 15)) == date(2026, 1, 25)
