"""
Tests for PayablesService: payment terms, bank accounts and vendor invoices.

Invoices take their amounts from the receipt they bill, their due date
from their terms, and show Overdue only when read after the due date.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from p2p_kernel.exceptions import (
    AccountClassMismatchError,
    EntityNotFoundError,
    InvalidAmountError,
    InvalidTransitionError,
    VendorMismatchError,
)
from p2p_modules.payables.models import InvoicePaymentStatus, InvoiceStatus

INVOICE_DATE = date(2026, 1, 15)


class TestInvoiceFromReceipt:
    def test_amounts_from_receipt(self, payables, org_id, test_actor_id, vendor_id, posted_receipt):
        invoice = payables.create_vendor_invoice(
            org_id, test_actor_id, vendor_id, INVOICE_DATE, purchase_receipt_id=posted_receipt.id,
            vendor_invoice_reference="F-1029",
        )

        assert invoice.number == "PINV-2026-0001"
        assert invoice.subtotal == Decimal("50.00")
        assert invoice.tax_amount == Decimal("8.00")
        assert invoice.total_amount == Decimal("58.00")
        assert invoice.amount_due == Decimal("58.00")
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.payment_status == InvoicePaymentStatus.UNPAID
        assert invoice.purchase_receipt_id == posted_receipt.id
        assert invoice.vendor_invoice_reference == "F-1029"

    def test_vendor_must_match_receipt(self, payables, org_id, test_actor_id, posted_receipt):
        with pytest.raises(VendorMismatchError):
            payables.create_vendor_invoice(
                org_id, test_actor_id, uuid4(), INVOICE_DATE, purchase_receipt_id=posted_receipt.id
            )

    def test_unknown_receipt(self, payables, org_id, test_actor_id, vendor_id, seeded_series):
        with pytest.raises(EntityNotFoundError):
            payables.create_vendor_invoice(
                org_id, test_actor_id, vendor_id, INVOICE_DATE, purchase_receipt_id=uuid4()
            )

    def test_explicit_amounts_override_receipt(self, payables, org_id, test_actor_id, vendor_id,
                                               posted_receipt):
        invoice = payables.create_vendor_invoice(
            org_id, test_actor_id, vendor_id, INVOICE_DATE, purchase_receipt_id=posted_receipt.id,
            subtotal=Decimal("49.50"), tax_amount=Decimal("7.92"),
        )
        assert invoice.total_amount == Decimal("57.42")


class TestInvoiceTermsAndStatus:
    def test_due_date_from_terms(self, make_invoice, discount_terms):
        invoice = make_invoice("100.00", payment_terms_id=discount_terms.id)
        assert invoice.due_date == INVOICE_DATE + timedelta(days=30)
        assert invoice.payment_terms_id == discount_terms.id

    def test_due_date_defaults_to_invoice_date(self, make_invoice):
        assert make_invoice("100.00").due_date == INVOICE_DATE

    def test_overdue_is_derived_when_read(self, payables, org_id, make_invoice, discount_terms):
        invoice = make_invoice("100.00", payment_terms_id=discount_terms.id)

        before = payables.get_invoice(org_id, invoice.id, as_of=invoice.due_date)
        after = payables.get_invoice(org_id, invoice.id, as_of=invoice.due_date + timedelta(days=1))

        assert before.payment_status == InvoicePaymentStatus.UNPAID
        assert after.payment_status == InvoicePaymentStatus.OVERDUE

    def test_list_open_invoices(self, payables, org_id, make_invoice, vendor_id):
        later = make_invoice("20.00", due_date=date(2026, 3, 1))
        sooner = make_invoice("10.00", due_date=date(2026, 2, 1))
        make_invoice("30.00", vendor=uuid4())
        cancelled = make_invoice("40.00")
        payables.cancel_invoice(org_id, uuid4(), cancelled.id)

        open_invoices = payables.list_open_invoices(org_id, vendor_id=vendor_id)
        assert [i.id for i in open_invoices] == [sooner.id, later.id]

    def test_approve_and_cancel(self, payables, org_id, test_actor_id, make_invoice):
        invoice = make_invoice("100.00")
        approved = payables.approve_invoice(org_id, test_actor_id, invoice.id)
        assert approved.status == InvoiceStatus.APPROVED

        cancelled = payables.cancel_invoice(org_id, test_actor_id, invoice.id)
        assert cancelled.status == InvoiceStatus.CANCELLED

        with pytest.raises(InvalidTransitionError):
            payables.approve_invoice(org_id, test_actor_id, invoice.id)

    def test_invoices_numbered_in_sequence(self, make_invoice):
        assert [make_invoice("1.00").number for _ in range(3)] == [
            "PINV-2026-0001",
            "PINV-2026-0002",
            "PINV-2026-0003",
        ]


class TestInvoiceValidation:
    def test_amounts_required_without_receipt(self, payables, org_id, test_actor_id, vendor_id,
                                              seeded_series):
        with pytest.raises(InvalidAmountError):
            payables.create_vendor_invoice(org_id, test_actor_id, vendor_id, INVOICE_DATE)

    def test_zero_total_refused(self, make_invoice):
        with pytest.raises(InvalidAmountError):
            make_invoice("0.00")

    def test_float_refused(self, payables, org_id, test_actor_id, vendor_id, seeded_series):
        with pytest.raises(InvalidAmountError):
            payables.create_vendor_invoice(
                org_id, test_actor_id, vendor_id, INVOICE_DATE, subtotal=100.0
            )

    def test_unknown_terms(self, make_invoice):
        with pytest.raises(EntityNotFoundError):
            make_invoice("100.00", payment_terms_id=uuid4())


class TestPaymentTermsAndBankAccounts:
    def test_terms_discount_window(self, discount_terms):
        assert discount_terms.discount_percentage == Decimal("3")
        assert discount_terms.discount_window_end(INVOICE_DATE) == date(2026, 1, 25)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"due_days": -1},
            {"discount_percentage": Decimal("101")},
            {"discount_days": -5},
        ],
    )
    def test_invalid_terms(self, payables, org_id, test_actor_id, kwargs):
        values = {"due_days": 30, "discount_percentage": Decimal("2"), "discount_days": 10}
        values.update(kwargs)
        with pytest.raises(InvalidAmountError):
            payables.create_payment_terms(org_id, test_actor_id, "bad", **values)

    def test_bank_account_opening_balance(self, payables, org_id, bank_account, standard_accounts):
        fetched = payables.get_bank_account(org_id, bank_account.id)
        assert fetched.current_balance == Decimal("50000.00")
        assert fetched.gl_account_id == standard_accounts["bank"]
        assert fetched.is_active

    def test_bank_account_needs_asset_account(self, payables, org_id, test_actor_id,
                                              standard_accounts):
        with pytest.raises(AccountClassMismatchError):
            payables.create_bank_account(
                org_id, test_actor_id, standard_accounts["accounts_payable"], "Banco", "999"
            )
