"""Shared fixtures for the receiving, payables and accounting module tests."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from p2p_modules.purchasing.models import ReceiptLineInput

RECEIPT_DATE = date(2026, 1, 15)


@pytest.fixture
def variant_id():
    return uuid4()


@pytest.fixture
def widget_line(variant_id):
    """10 units @ 5.00 with 16% tax: 50.00 + 8.00 = 58.00."""
    return ReceiptLineInput(
        product_id=uuid4(),
        variant_id=variant_id,
        quantity_received=Decimal("10"),
        unit_cost=Decimal("5.00"),
        tax_rate=Decimal("16"),
    )


@pytest.fixture
def posted_receipt(receiving_engine, org_id, test_actor_id, vendor_id, widget_line,
                   standard_accounts, seeded_series):
    receipt = receiving_engine.create_receipt(
        org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
    )
    return receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)


@pytest.fixture
def make_invoice(payables, org_id, test_actor_id, vendor_id, standard_accounts, seeded_series):
    """Factory: a Pending vendor invoice for ``total`` with no tax."""

    def _make(total, invoice_date=RECEIPT_DATE, payment_terms_id=None, vendor=None, due_date=None):
        return payables.create_vendor_invoice(
            org_id,
            test_actor_id,
            vendor or vendor_id,
            invoice_date,
            subtotal=Decimal(total),
            tax_amount=Decimal("0"),
            payment_terms_id=payment_terms_id,
            due_date=due_date,
        )

    return _make


@pytest.fixture
def discount_terms(payables, org_id, test_actor_id):
    """3% discount within 10 days, net 30."""
    return payables.create_payment_terms(
        org_id, test_actor_id, "3/10 net 30", 30, Decimal("3"), 10
    )
