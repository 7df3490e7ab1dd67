"""
Payables Module (``p2p_modules.payables``).

Vendor invoices, payment terms and company bank accounts
(``PayablesService``) and vendor payments with early-payment discounts
(``PaymentSettlementEngine``).
"""

from p2p_modules.payables.models import (
    ApplicationInput,
    BankAccountInfo,
    InvoicePaymentStatus,
    InvoiceStatus,
    PaymentAccountDefaults,
    PaymentApplicationInfo,
    PaymentInfo,
    PaymentMethod,
    PaymentRequest,
    PaymentStatus,
    PaymentTermsInfo,
    VendorInvoiceInfo,
    derive_payment_status,
)
from p2p_modules.payables.payment_service import PaymentSettlementEngine
from p2p_modules.payables.service import PayablesService
from p2p_modules.payables.workflows import INVOICE_WORKFLOW, PAYMENT_WORKFLOW

__all__ = [
    "ApplicationInput",
    "BankAccountInfo",
    "INVOICE_WORKFLOW",
    "InvoicePaymentStatus",
    "InvoiceStatus",
    "PAYMENT_WORKFLOW",
    "PayablesService",
    "PaymentAccountDefaults",
    "PaymentApplicationInfo",
    "PaymentInfo",
    "PaymentMethod",
    "PaymentRequest",
    "PaymentSettlementEngine",
    "PaymentStatus",
    "PaymentTermsInfo",
    "VendorInvoiceInfo",
    "derive_payment_status",
]
