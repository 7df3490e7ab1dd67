"""
Payables Service (``p2p_modules.payables.service``).

Responsibility
--------------
Maintains the payables master data and documents that payments settle:
payment terms, company bank accounts, and vendor invoices through their
approval / cancellation lifecycle.

Architecture position
---------------------
**Modules layer** -- ``PayablesService`` is the public entry point for
payables maintenance.  Payment posting lives in ``payment_service``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary.
* An invoice linked to a receipt has the receipt's vendor.
* Invoice numbers come from the default PurchaseInvoice series; a
  caller-supplied number is registered as a manual number.
* A bank account's GL account is an active Asset account of the
  organization.
* An invoice is cancelled only while nothing has been paid on it.

Failure modes
-------------
* ``VendorMismatchError`` for a receipt of another vendor.
* ``AccountClassMismatchError`` for a non-Asset bank GL account.
* ``InvalidTransitionError`` for lifecycle violations.
* ``InvalidAmountError`` for malformed amounts or percentages.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from p2p_kernel.db.types import HUNDRED, ZERO, ensure_decimal, round_money
from p2p_kernel.domain.clock import Clock, SystemClock
from p2p_kernel.exceptions import (
    AccountClassMismatchError,
    EntityNotFoundError,
    InvalidAmountError,
    InvalidTransitionError,
    VendorMismatchError,
)
from p2p_kernel.logging_config import LogContext, get_logger
from p2p_kernel.models.account import AccountClass
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService
from p2p_kernel.services.sequence_service import SequenceService
from p2p_modules._posting_helpers import flush_versioned, unit_of_work
from p2p_modules.payables.models import (
    BankAccountInfo,
    InvoicePaymentStatus,
    InvoiceStatus,
    PaymentTermsInfo,
    VendorInvoiceInfo,
)
from p2p_modules.payables.orm import (
    CompanyBankAccountModel,
    PaymentTermsModel,
    VendorInvoiceModel,
)
from p2p_modules.payables.workflows import INVOICE_WORKFLOW
from p2p_modules.purchasing.models import ReceiptStatus
from p2p_modules.purchasing.orm import PurchaseReceiptModel
from p2p_modules.purchasing.workflows import RECEIPT_WORKFLOW

logger = get_logger("modules.payables.service")


class PayablesService:
    """
    Payment terms, bank accounts and vendor invoices.

    Usage::

        payables = PayablesService(session, clock=clock)
        terms = payables.create_payment_terms(org_id, user_id, "2/10 net 30", 30, Decimal("2"), 10)
        invoice = payables.create_vendor_invoice(
            org_id, user_id, vendor_id, date(2026, 1, 15),
            subtotal=Decimal("1000.00"), tax_amount=Decimal("160.00"),
            payment_terms_id=terms.id,
        )
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence = sequence or SequenceService(session, self._clock)
        self._chart = ChartOfAccountsService(session, self._clock)

    # ------------------------------------------------------------------
    # Payment terms
    # ------------------------------------------------------------------

    def create_payment_terms(
        self,
        organization_id: UUID,
        user_id: UUID,
        description: str,
        due_days: int,
        discount_percentage: Decimal = ZERO,
        discount_days: int = 0,
    ) -> PaymentTermsInfo:
        with unit_of_work(self._session, "create_payment_terms"):
            percentage = ensure_decimal("discount_percentage", discount_percentage)
            if not ZERO <= percentage <= HUNDRED:
                raise InvalidAmountError("discount_percentage", percentage, "must be between 0 and 100")
            if due_days < 0:
                raise InvalidAmountError("due_days", due_days, "must not be negative")
            if discount_days < 0:
                raise InvalidAmountError("discount_days", discount_days, "must not be negative")

            terms = PaymentTermsModel(
                organization_id=organization_id,
                description=description,
                due_days=due_days,
                discount_percentage=percentage,
                discount_days=discount_days,
                created_by_id=user_id,
            )
            self._session.add(terms)
            self._session.flush()
            logger.info(
                "payment_terms_created",
                extra={
                    "organization_id": str(organization_id),
                    "payment_terms_id": str(terms.id),
                    "due_days": due_days,
                    "discount_percentage": str(percentage),
                    "discount_days": discount_days,
                },
            )
            result = terms.to_dto()
        return result

    def get_payment_terms(self, organization_id: UUID, payment_terms_id: UUID) -> PaymentTermsInfo:
        return self._load_terms(organization_id, payment_terms_id).to_dto()

    # ------------------------------------------------------------------
    # Bank accounts
    # ------------------------------------------------------------------

    def create_bank_account(
        self,
        organization_id: UUID,
        user_id: UUID,
        gl_account_id: UUID,
        bank_name: str,
        account_number: str,
        currency: str = "MXN",
        opening_balance: Decimal = ZERO,
    ) -> BankAccountInfo:
        with unit_of_work(self._session, "create_bank_account"):
            balance = ensure_decimal("opening_balance", opening_balance)
            gl_account = self._chart.require_postable(organization_id, [gl_account_id])[gl_account_id]
            if gl_account.account_class != AccountClass.ASSET.value:
                raise AccountClassMismatchError(
                    slot="bank_account.gl_account_id",
                    account_id=gl_account_id,
                    actual=gl_account.account_class,
                    expected=(AccountClass.ASSET.value,),
                )
            bank = CompanyBankAccountModel(
                organization_id=organization_id,
                gl_account_id=gl_account_id,
                bank_name=bank_name,
                account_number=account_number,
                currency=currency,
                current_balance=round_money(balance),
                created_by_id=user_id,
            )
            self._session.add(bank)
            self._session.flush()
            logger.info(
                "bank_account_created",
                extra={
                    "organization_id": str(organization_id),
                    "bank_account_id": str(bank.id),
                    "gl_account_id": str(gl_account_id),
                    "opening_balance": str(bank.current_balance),
                },
            )
            result = bank.to_dto()
        return result

    def get_bank_account(self, organization_id: UUID, bank_account_id: UUID) -> BankAccountInfo:
        bank = self._session.get(CompanyBankAccountModel, bank_account_id, populate_existing=True)
        if bank is None or bank.organization_id != organization_id:
            raise EntityNotFoundError("CompanyBankAccount", bank_account_id)
        return bank.to_dto()

    # ------------------------------------------------------------------
    # Vendor invoices
    # ------------------------------------------------------------------

    def create_vendor_invoice(
        self,
        organization_id: UUID,
        user_id: UUID,
        vendor_id: UUID,
        invoice_date: date,
        subtotal: Decimal | None = None,
        tax_amount: Decimal | None = None,
        purchase_receipt_id: UUID | None = None,
        payment_terms_id: UUID | None = None,
        due_date: date | None = None,
        vendor_invoice_reference: str | None = None,
        notes: str | None = None,
        number: str | None = None,
    ) -> VendorInvoiceInfo:
        """
        Register a vendor invoice in Pending status.

        Amounts default to the linked receipt's totals.  The due date is
        ``due_date``, else ``invoice_date + terms.due_days``, else the
        invoice date.
        """
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "create_vendor_invoice"):
                if purchase_receipt_id is not None:
                    receipt = self._session.get(PurchaseReceiptModel, purchase_receipt_id)
                    if receipt is None or receipt.organization_id != organization_id:
                        raise EntityNotFoundError("PurchaseReceipt", purchase_receipt_id)
                    if receipt.vendor_id != vendor_id:
                        raise VendorMismatchError("PurchaseReceipt", purchase_receipt_id, vendor_id)
                    if receipt.status == ReceiptStatus.CANCELLED.value:
                        raise InvalidTransitionError(RECEIPT_WORKFLOW.name, receipt.status, "invoice")
                    if subtotal is None:
                        subtotal = receipt.subtotal
                    if tax_amount is None:
                        tax_amount = receipt.tax_amount

                if subtotal is None:
                    raise InvalidAmountError("subtotal", None, "required without a purchase receipt")
                subtotal = round_money(ensure_decimal("subtotal", subtotal))
                tax = round_money(ensure_decimal("tax_amount", tax_amount if tax_amount is not None else ZERO))
                if subtotal < ZERO or tax < ZERO:
                    raise InvalidAmountError("subtotal", subtotal, "amounts must not be negative")
                total = subtotal + tax
                if total <= ZERO:
                    raise InvalidAmountError("total_amount", total, "must be positive")

                terms = None
                if payment_terms_id is not None:
                    terms = self._load_terms(organization_id, payment_terms_id)
                if due_date is None:
                    due_date = invoice_date + timedelta(days=terms.due_days) if terms else invoice_date

                if number is None:
                    number = self._sequence.next_number_by_type(
                        organization_id, DocumentType.PURCHASE_INVOICE, as_of=invoice_date
                    )
                elif self._sequence.has_default_series(organization_id, DocumentType.PURCHASE_INVOICE):
                    self._sequence.register_manual_number_by_type(
                        organization_id, DocumentType.PURCHASE_INVOICE, number, as_of=invoice_date
                    )

                invoice = VendorInvoiceModel(
                    organization_id=organization_id,
                    number=number,
                    vendor_invoice_reference=vendor_invoice_reference,
                    purchase_receipt_id=purchase_receipt_id,
                    vendor_id=vendor_id,
                    invoice_date=invoice_date,
                    due_date=due_date,
                    payment_terms_id=payment_terms_id,
                    subtotal=subtotal,
                    tax_amount=tax,
                    total_amount=total,
                    amount_paid=ZERO,
                    status=INVOICE_WORKFLOW.initial_state,
                    payment_status=InvoicePaymentStatus.UNPAID.value,
                    notes=notes,
                    created_by_id=user_id,
                )
                self._session.add(invoice)
                self._session.flush()

                logger.info(
                    "vendor_invoice_created",
                    extra={
                        "invoice_id": str(invoice.id),
                        "number": number,
                        "vendor_id": str(vendor_id),
                        "total": str(total),
                        "due_date": due_date.isoformat(),
                    },
                )
                result = invoice.to_dto()
            return result

    def approve_invoice(self, organization_id: UUID, user_id: UUID, invoice_id: UUID) -> VendorInvoiceInfo:
        return self._transition(organization_id, user_id, invoice_id, "approve")

    def cancel_invoice(self, organization_id: UUID, user_id: UUID, invoice_id: UUID) -> VendorInvoiceInfo:
        return self._transition(organization_id, user_id, invoice_id, "cancel")

    def get_invoice(
        self, organization_id: UUID, invoice_id: UUID, as_of: date | None = None
    ) -> VendorInvoiceInfo:
        """Invoice snapshot with its payment status derived for ``as_of`` (default today)."""
        invoice = self._load_invoice(organization_id, invoice_id)
        return invoice.to_dto(as_of=as_of or self._clock.today())

    def list_open_invoices(
        self,
        organization_id: UUID,
        vendor_id: UUID | None = None,
        as_of: date | None = None,
    ) -> list[VendorInvoiceInfo]:
        """Pending or Approved invoices with an amount due, oldest due first."""
        stmt = select(VendorInvoiceModel).where(
            VendorInvoiceModel.organization_id == organization_id,
            VendorInvoiceModel.status.in_(
                (InvoiceStatus.PENDING.value, InvoiceStatus.APPROVED.value)
            ),
            VendorInvoiceModel.payment_status != InvoicePaymentStatus.PAID.value,
        )
        if vendor_id is not None:
            stmt = stmt.where(VendorInvoiceModel.vendor_id == vendor_id)
        stmt = stmt.order_by(VendorInvoiceModel.due_date, VendorInvoiceModel.number)
        as_of = as_of or self._clock.today()
        return [inv.to_dto(as_of=as_of) for inv in self._session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(
        self, organization_id: UUID, user_id: UUID, invoice_id: UUID, action: str
    ) -> VendorInvoiceInfo:
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, f"{action}_invoice"):
                invoice = self._load_invoice(organization_id, invoice_id)
                if action == "cancel" and invoice.amount_paid > ZERO:
                    raise InvalidTransitionError(INVOICE_WORKFLOW.name, invoice.status, action)
                previous = invoice.status
                invoice.status = INVOICE_WORKFLOW.apply(previous, action)
                invoice.updated_by_id = user_id
                flush_versioned(self._session, "VendorInvoice", invoice.id)
                logger.info(
                    "vendor_invoice_status_changed",
                    extra={
                        "invoice_id": str(invoice.id),
                        "from_state": previous,
                        "to_state": invoice.status,
                    },
                )
                result = invoice.to_dto(as_of=self._clock.today())
            return result

    def _load_invoice(self, organization_id: UUID, invoice_id: UUID) -> VendorInvoiceModel:
        invoice = self._session.get(VendorInvoiceModel, invoice_id, populate_existing=True)
        if invoice is None or invoice.organization_id != organization_id:
            raise EntityNotFoundError("VendorInvoice", invoice_id)
        return invoice

    def _load_terms(self, organization_id: UUID, payment_terms_id: UUID) -> PaymentTermsModel:
        terms = self._session.get(PaymentTermsModel, payment_terms_id)
        if terms is None or terms.organization_id != organization_id:
            raise EntityNotFoundError("PaymentTerms", payment_terms_id)
        return terms
