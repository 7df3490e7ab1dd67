"""
Payment Settlement Engine (``p2p_modules.payables.payment_service``).

Responsibility
--------------
Applies vendor payments to open invoices, with early-payment discounts,
and keeps three things consistent in one transaction: invoice balances,
the company bank balance, and one balanced journal entry
(Dr Accounts payable / Cr Bank / Cr Purchase discount).  Voids a posted
payment by restoring all three and posting the reversal.

Architecture position
---------------------
**Modules layer** -- ``PaymentSettlementEngine`` is the sole public entry
point for payment posting.  It composes kernel services (account
configuration, sequence, ledger) on the caller's session.

Invariants enforced
-------------------
* Each public method owns the transaction boundary; everything is
  validated before anything is mutated.
* ``amount_applied`` excludes the discount; an invoice is settled by
  ``amount_applied + discount_taken``.
* Sum of amount_applied <= payment amount; per invoice,
  applied + discount <= amount due.
* Discounts only inside ``invoice_date + discount_days`` and never above
  ``total * discount_percentage / 100``.
* Invoice and bank rows are optimistically locked (version_id_col).
* Journal: AP debit = settled amount plus any unapplied remainder (its
  own line), Bank credit = payment amount, Discount credit = discounts.

Failure modes
-------------
* ``OverApplicationError``, ``DiscountWindowExpiredError``,
  ``DiscountExceedsTermsError``, ``InsufficientFundsError`` (policy).
* ``VendorMismatchError``, ``InvoiceNotPayableError``,
  ``InvoiceFullyPaidError`` (per invoice).
* ``OptimisticLockError`` when another transaction changed an invoice or
  the bank account first.

Audit relevance
---------------
``payment_posted`` / ``payment_voided`` carry the payment id, number,
journal entry ids and amounts.  Voiding never deletes a row.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from p2p_kernel.db.types import HUNDRED, ZERO, ensure_decimal, round_money
from p2p_kernel.domain.clock import Clock, SystemClock
from p2p_kernel.domain.dtos import LineSpec
from p2p_kernel.exceptions import (
    AlreadyPostedError,
    DiscountExceedsTermsError,
    DiscountWindowExpiredError,
    EntityNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvoiceFullyPaidError,
    InvoiceNotPayableError,
    OverApplicationError,
    UnknownAccountError,
    VendorMismatchError,
)
from p2p_kernel.logging_config import LogContext, get_logger
from p2p_kernel.models.account import SystemRole
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.services.account_configuration_service import AccountConfigurationService
from p2p_kernel.services.ledger_service import LedgerService
from p2p_kernel.services.sequence_service import SequenceService
from p2p_modules._posting_helpers import flush_versioned, unit_of_work
from p2p_modules.payables.models import (
    InvoicePaymentStatus,
    InvoiceStatus,
    PaymentAccountDefaults,
    PaymentInfo,
    PaymentMethod,
    PaymentRequest,
    PaymentStatus,
    stored_payment_status,
)
from p2p_modules.payables.orm import (
    CompanyBankAccountModel,
    PaymentApplicationModel,
    PaymentModel,
    VendorInvoiceModel,
)
from p2p_modules.payables.workflows import INVOICE_WORKFLOW, PAYMENT_WORKFLOW

logger = get_logger("modules.payables.payment_service")


@dataclass(frozen=True)
class _Settlement:
    invoice: VendorInvoiceModel
    amount_applied: Decimal
    discount_taken: Decimal

    @property
    def settled(self) -> Decimal:
        return self.amount_applied + self.discount_taken


def _append_note(notes: str | None, text: str) -> str:
    return f"{notes}\n{text}" if notes else text


class PaymentSettlementEngine:
    """
    Settles vendor invoices with payments.

    Contract
    --------
    ``create_payment`` = submit + post in one transaction.  The staged
    workflow is ``submit_payment`` -> (``approve_payment``) ->
    ``post_payment``, with ``reject_payment`` for pending payments and
    ``void_payment`` for posted ones.

    Usage::

        engine = PaymentSettlementEngine(session, clock=clock)
        payment = engine.create_payment(org_id, user_id, PaymentRequest(
            vendor_id=vendor_id, amount=Decimal("1136.80"),
            bank_account_id=bank.id, payment_date=date(2026, 1, 20),
            applications=(ApplicationInput(invoice.id, Decimal("1136.80"), Decimal("23.20")),),
        ))
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence: SequenceService | None = None,
        allow_overdraft: bool = False,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence = sequence or SequenceService(session, self._clock)
        self._accounts = AccountConfigurationService(session, clock=self._clock)
        self._ledger = LedgerService(session, self._clock, sequence=self._sequence)
        self._allow_overdraft = allow_overdraft

    @classmethod
    def from_config(cls, session: Session, config, clock: Clock | None = None) -> PaymentSettlementEngine:
        """Build an engine from a loaded ``P2PConfig``."""
        sequence = SequenceService(
            session,
            clock,
            max_attempts=config.numbering.max_allocation_attempts,
        )
        return cls(
            session,
            clock=clock,
            sequence=sequence,
            allow_overdraft=config.payments.allow_overdraft,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def create_payment(
        self, organization_id: UUID, user_id: UUID, request: PaymentRequest
    ) -> PaymentInfo:
        """Record and post a payment in one transaction."""
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            logger.info(
                "payment_create_started",
                extra={"vendor_id": str(request.vendor_id), "amount": str(request.amount)},
            )
            with unit_of_work(self._session, "create_payment"):
                payment = self._new_payment(organization_id, user_id, request)
                self._post(organization_id, user_id, payment, request.defaults)
                result = payment.to_dto()
            return result

    def submit_payment(
        self, organization_id: UUID, user_id: UUID, request: PaymentRequest
    ) -> PaymentInfo:
        """Record a Pending payment; nothing is applied or posted yet."""
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "submit_payment"):
                payment = self._new_payment(organization_id, user_id, request)
                result = payment.to_dto()
            return result

    def approve_payment(self, organization_id: UUID, user_id: UUID, payment_id: UUID) -> PaymentInfo:
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "approve_payment"):
                payment = self._load_payment(organization_id, payment_id)
                payment.status = PAYMENT_WORKFLOW.apply(payment.status, "approve")
                payment.updated_by_id = user_id
                flush_versioned(self._session, "Payment", payment.id)
                logger.info("payment_approved", extra={"payment_id": str(payment.id)})
                result = payment.to_dto()
            return result

    def reject_payment(
        self, organization_id: UUID, user_id: UUID, payment_id: UUID, reason: str
    ) -> PaymentInfo:
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "reject_payment"):
                payment = self._load_payment(organization_id, payment_id)
                payment.status = PAYMENT_WORKFLOW.apply(payment.status, "reject")
                payment.notes = _append_note(payment.notes, f"[REJECTED] {reason}")
                payment.updated_by_id = user_id
                flush_versioned(self._session, "Payment", payment.id)
                logger.info(
                    "payment_rejected",
                    extra={"payment_id": str(payment.id), "reason": reason},
                )
                result = payment.to_dto()
            return result

    def post_payment(
        self,
        organization_id: UUID,
        user_id: UUID,
        payment_id: UUID,
        defaults: PaymentAccountDefaults | None = None,
    ) -> PaymentInfo:
        """Post a Pending or Approved payment (same effect as ``create_payment``)."""
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "post_payment"):
                payment = self._load_payment(organization_id, payment_id)
                self._post(organization_id, user_id, payment, defaults or PaymentAccountDefaults())
                result = payment.to_dto()
            return result

    def void_payment(
        self, organization_id: UUID, user_id: UUID, payment_id: UUID, reason: str
    ) -> PaymentInfo:
        """
        Void a posted payment.

        Restores every settled invoice and the bank balance, posts the
        reversal of the payment entry, and marks the payment Voided.  A
        paid invoice reopens to the status it was settled from, so one
        that was never approved goes back to Pending.
        """
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "void_payment"):
                payment = self._load_payment(organization_id, payment_id)
                new_status = PAYMENT_WORKFLOW.apply(payment.status, "void")

                for application in payment.applications:
                    invoice = self._load_invoice(organization_id, application.invoice_id)
                    invoice.amount_paid -= application.amount_applied + application.discount_taken
                    if invoice.status == InvoiceStatus.PAID.value:
                        action = (
                            "reopen_unapproved"
                            if invoice.settled_from_status == InvoiceStatus.PENDING.value
                            else "reopen"
                        )
                        invoice.status = INVOICE_WORKFLOW.apply(invoice.status, action)
                        invoice.settled_from_status = None
                    invoice.payment_status = stored_payment_status(
                        invoice.total_amount, invoice.amount_paid
                    ).value
                    invoice.updated_by_id = user_id
                    flush_versioned(self._session, "VendorInvoice", invoice.id)

                bank = self._load_bank(organization_id, payment.bank_account_id)
                bank.current_balance += payment.amount
                bank.updated_by_id = user_id
                flush_versioned(self._session, "CompanyBankAccount", bank.id)

                reversal_id = self._ledger.reverse(
                    organization_id,
                    payment.journal_entry_id,
                    user_id,
                    reversal_date=self._clock.today(),
                    description=f"Void payment {payment.number}: {reason}",
                )

                payment.reversal_journal_entry_id = reversal_id
                payment.status = new_status
                payment.notes = _append_note(payment.notes, f"[VOIDED] {reason}")
                payment.updated_by_id = user_id
                flush_versioned(self._session, "Payment", payment.id)

                logger.info(
                    "payment_voided",
                    extra={
                        "payment_id": str(payment.id),
                        "number": payment.number,
                        "journal_entry_id": str(payment.journal_entry_id),
                        "reversal_journal_entry_id": str(reversal_id),
                        "amount": str(payment.amount),
                        "reason": reason,
                    },
                )
                result = payment.to_dto()
            return result

    def get_payment(self, organization_id: UUID, payment_id: UUID) -> PaymentInfo:
        return self._load_payment(organization_id, payment_id).to_dto()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_payment(
        self, organization_id: UUID, user_id: UUID, request: PaymentRequest
    ) -> PaymentModel:
        amount = ensure_decimal("amount", request.amount)
        if amount <= ZERO:
            raise InvalidAmountError("amount", amount, "must be positive")
        exchange_rate = ensure_decimal("exchange_rate", request.exchange_rate)
        if exchange_rate <= ZERO:
            raise InvalidAmountError("exchange_rate", exchange_rate, "must be positive")
        self._load_bank(organization_id, request.bank_account_id)

        total_applied = ZERO
        applications = []
        for line_number, app in enumerate(request.applications, start=1):
            applied = ensure_decimal(f"applications[{line_number}].amount_applied", app.amount_applied)
            discount = ensure_decimal(f"applications[{line_number}].discount_taken", app.discount_taken)
            if applied < ZERO or discount < ZERO:
                raise InvalidAmountError(
                    f"applications[{line_number}]", applied, "amounts must not be negative"
                )
            if applied + discount <= ZERO:
                raise InvalidAmountError(
                    f"applications[{line_number}]", applied, "nothing applied to the invoice"
                )
            invoice = self._load_invoice(organization_id, app.invoice_id)
            if invoice.vendor_id != request.vendor_id:
                raise VendorMismatchError("VendorInvoice", invoice.id, request.vendor_id)
            total_applied += applied
            applications.append(
                PaymentApplicationModel(
                    line_number=line_number,
                    invoice_id=invoice.id,
                    amount_applied=applied,
                    discount_taken=discount,
                    application_date=request.payment_date,
                )
            )
        if total_applied > amount:
            raise OverApplicationError("Payment", total_applied, amount)

        if request.number is not None and self._sequence.has_default_series(
            organization_id, DocumentType.PAYMENT
        ):
            self._sequence.register_manual_number_by_type(
                organization_id, DocumentType.PAYMENT, request.number, as_of=request.payment_date
            )

        payment = PaymentModel(
            organization_id=organization_id,
            number=request.number,
            vendor_id=request.vendor_id,
            payment_date=request.payment_date,
            method=PaymentMethod(request.method).value,
            bank_account_id=request.bank_account_id,
            vendor_bank_account_id=request.vendor_bank_account_id,
            amount=amount,
            currency=request.currency,
            exchange_rate=exchange_rate,
            status=PAYMENT_WORKFLOW.initial_state,
            reference_number=request.reference_number,
            notes=request.notes,
            created_by_id=user_id,
        )
        payment.applications.extend(applications)
        self._session.add(payment)
        self._session.flush()

        logger.info(
            "payment_submitted",
            extra={
                "payment_id": str(payment.id),
                "vendor_id": str(request.vendor_id),
                "amount": str(amount),
                "application_count": len(applications),
            },
        )
        return payment

    def _post(
        self,
        organization_id: UUID,
        user_id: UUID,
        payment: PaymentModel,
        defaults: PaymentAccountDefaults,
    ) -> None:
        if payment.status == PaymentStatus.POSTED.value:
            raise AlreadyPostedError("Payment", payment.id, payment.journal_entry_id)
        new_status = PAYMENT_WORKFLOW.apply(payment.status, "post")

        # Validate everything before the first mutation.
        bank = self._load_bank(organization_id, payment.bank_account_id)
        if not bank.is_active:
            raise UnknownAccountError(bank.id, organization_id, reason="inactive bank account")

        settlements = self._validate_settlements(organization_id, payment)
        total_applied = sum((s.amount_applied for s in settlements), ZERO)
        if total_applied > payment.amount:
            raise OverApplicationError(payment.id, total_applied, payment.amount)
        if not self._allow_overdraft and bank.current_balance < payment.amount:
            raise InsufficientFundsError(bank.id, bank.current_balance, payment.amount)

        ap_account = self._accounts.resolve_account(
            organization_id, SystemRole.ACCOUNTS_PAYABLE, defaults.accounts_payable_account_id
        )
        total_discount = sum((s.discount_taken for s in settlements), ZERO)
        discount_account = None
        if total_discount > ZERO:
            discount_account = self._accounts.resolve_account(
                organization_id, SystemRole.PURCHASE_DISCOUNT, defaults.purchase_discount_account_id
            )

        for settlement in settlements:
            invoice = settlement.invoice
            invoice.amount_paid += settlement.settled
            invoice.payment_status = stored_payment_status(
                invoice.total_amount, invoice.amount_paid
            ).value
            if invoice.payment_status == InvoicePaymentStatus.PAID.value:
                invoice.settled_from_status = invoice.status
                invoice.status = INVOICE_WORKFLOW.apply(invoice.status, "settle")
            invoice.updated_by_id = user_id
            flush_versioned(self._session, "VendorInvoice", invoice.id)

        bank.current_balance -= payment.amount
        bank.updated_by_id = user_id
        flush_versioned(self._session, "CompanyBankAccount", bank.id)

        if payment.number is None:
            payment.number = self._sequence.next_number_by_type(
                organization_id, DocumentType.PAYMENT, as_of=payment.payment_date
            )

        lines = self._journal_lines(
            payment, total_applied, total_discount, ap_account, bank.gl_account_id, discount_account
        )
        entry_id = self._ledger.post(
            organization_id=organization_id,
            entry_date=payment.payment_date,
            description=f"Payment {payment.number}",
            lines=lines,
            actor_id=user_id,
            reference=payment.number,
        )

        payment.journal_entry_id = entry_id
        payment.status = new_status
        payment.updated_by_id = user_id
        flush_versioned(self._session, "Payment", payment.id)

        logger.info(
            "payment_posted",
            extra={
                "payment_id": str(payment.id),
                "number": payment.number,
                "journal_entry_id": str(entry_id),
                "amount": str(payment.amount),
                "applied": str(total_applied),
                "discount": str(total_discount),
                "unapplied": str(payment.amount - total_applied),
                "invoice_count": len(settlements),
            },
        )

    def _validate_settlements(
        self, organization_id: UUID, payment: PaymentModel
    ) -> list[_Settlement]:
        settlements: list[_Settlement] = []
        # Running amount due per invoice, so repeated invoices are checked cumulatively.
        remaining: dict[UUID, Decimal] = {}
        for application in payment.applications:
            invoice = self._load_invoice(organization_id, application.invoice_id)
            if invoice.vendor_id != payment.vendor_id:
                raise VendorMismatchError("VendorInvoice", invoice.id, payment.vendor_id)
            if invoice.status == InvoiceStatus.CANCELLED.value:
                raise InvoiceNotPayableError(invoice.id, invoice.status)

            due = remaining.get(invoice.id, invoice.amount_due)
            if invoice.status == InvoiceStatus.PAID.value or due <= ZERO:
                raise InvoiceFullyPaidError(invoice.id)

            applied = application.amount_applied
            discount = application.discount_taken
            if discount > ZERO:
                self._check_discount(invoice, discount, payment)
            if applied + discount > due:
                raise OverApplicationError(invoice.id, applied + discount, due)

            remaining[invoice.id] = due - applied - discount
            settlements.append(_Settlement(invoice, applied, discount))
        return settlements

    def _check_discount(
        self, invoice: VendorInvoiceModel, discount: Decimal, payment: PaymentModel
    ) -> None:
        terms = invoice.payment_terms
        if terms is None or terms.discount_percentage <= ZERO:
            raise DiscountExceedsTermsError(invoice.id, discount, ZERO)
        window_end = terms.to_dto().discount_window_end(invoice.invoice_date)
        if payment.payment_date > window_end:
            raise DiscountWindowExpiredError(invoice.id, payment.payment_date, window_end)
        allowed = round_money(invoice.total_amount * terms.discount_percentage / HUNDRED)
        if discount > allowed:
            raise DiscountExceedsTermsError(invoice.id, discount, allowed)

    @staticmethod
    def _journal_lines(
        payment: PaymentModel,
        total_applied: Decimal,
        total_discount: Decimal,
        ap_account: UUID,
        bank_gl_account: UUID,
        discount_account: UUID | None,
    ) -> list[LineSpec]:
        """
        Build the payment entry in ledger currency.

        Each amount is converted with the stored exchange rate and rounded
        once; the applied AP line absorbs the rounding so the entry
        balances.
        """
        rate = payment.exchange_rate
        bank_credit = round_money(payment.amount * rate)
        discount_credit = round_money(total_discount * rate)
        unapplied = payment.amount - total_applied
        unapplied_debit = round_money(unapplied * rate) if unapplied > ZERO else ZERO
        applied_debit = bank_credit + discount_credit - unapplied_debit

        lines: list[LineSpec] = []
        if applied_debit > ZERO:
            lines.append(
                LineSpec.dr(ap_account, applied_debit, "Vendor invoices settled", payment.vendor_id)
            )
        if unapplied_debit > ZERO:
            lines.append(
                LineSpec.dr(ap_account, unapplied_debit, "Unapplied vendor credit", payment.vendor_id)
            )
        lines.append(LineSpec.cr(bank_gl_account, bank_credit, "Bank disbursement"))
        if discount_credit > ZERO and discount_account is not None:
            lines.append(LineSpec.cr(discount_account, discount_credit, "Early payment discount"))
        return lines

    def _load_payment(self, organization_id: UUID, payment_id: UUID) -> PaymentModel:
        payment = self._session.get(PaymentModel, payment_id, populate_existing=True)
        if payment is None or payment.organization_id != organization_id:
            raise EntityNotFoundError("Payment", payment_id)
        return payment

    def _load_invoice(self, organization_id: UUID, invoice_id: UUID) -> VendorInvoiceModel:
        invoice = self._session.get(VendorInvoiceModel, invoice_id, populate_existing=True)
        if invoice is None or invoice.organization_id != organization_id:
            raise EntityNotFoundError("VendorInvoice", invoice_id)
        return invoice

    def _load_bank(self, organization_id: UUID, bank_account_id: UUID) -> CompanyBankAccountModel:
        bank = self._session.get(CompanyBankAccountModel, bank_account_id, populate_existing=True)
        if bank is None or bank.organization_id != organization_id:
            raise EntityNotFoundError("CompanyBankAccount", bank_account_id)
        return bank
