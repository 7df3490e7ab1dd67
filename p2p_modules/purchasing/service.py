"""
Purchase Receiving Engine (``p2p_modules.purchasing.service``).

Responsibility
--------------
Maintains purchase receipts and posts them: prices every line server-side,
creates one FIFO cost layer per line, allocates the receipt number and
writes one balanced journal entry (Dr Inventory + Dr Tax receivable / Cr
Accounts payable).  The stock sink hears about each line only once the
posting has committed.

Architecture position
---------------------
**Modules layer** -- ``PurchaseReceivingEngine`` is the sole public entry
point for receiving.  It composes kernel services (account configuration,
sequence, ledger) on the caller's session.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (commit on success,
  rollback on failure or exception).
* Only Draft or Pending receipts are received; a Posted receipt is never
  posted twice.
* Every status change goes through ``RECEIPT_WORKFLOW``.
* Accounts resolve override -> configuration -> role-tagged account.

Failure modes
-------------
* ``AlreadyPostedError`` for a posted receipt; ``InvalidTransitionError``
  for a cancelled one.
* ``MissingAccountMappingError`` when a required account cannot be found.
* Any failure leaves the receipt at its prior status (rollback).

Audit relevance
---------------
``receipt_posted`` carries the receipt id, number, journal entry id and
totals.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from p2p_kernel.db.types import ZERO
from p2p_kernel.domain.clock import Clock, SystemClock
from p2p_kernel.domain.dtos import LineSpec
from p2p_kernel.exceptions import (
    AlreadyPostedError,
    EntityNotFoundError,
    InvalidAmountError,
    InvalidTransitionError,
)
from p2p_kernel.logging_config import LogContext, get_logger
from p2p_kernel.models.account import SystemRole
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.services.account_configuration_service import AccountConfigurationService
from p2p_kernel.services.ledger_service import LedgerService
from p2p_kernel.services.sequence_service import SequenceService
from p2p_modules._posting_helpers import flush_versioned, unit_of_work
from p2p_modules.purchasing.models import (
    CostLayerInfo,
    PurchaseReceiptInfo,
    ReceiptLineInput,
    ReceiptStatus,
    ReceivingDefaults,
    compute_line_amounts,
)
from p2p_modules.purchasing.orm import (
    PurchaseItemModel,
    PurchaseReceiptModel,
    StockCostLayerModel,
)
from p2p_modules.purchasing.sinks import LoggingStockMovementSink, StockMovementSink
from p2p_modules.purchasing.workflows import RECEIPT_WORKFLOW

logger = get_logger("modules.purchasing.service")


class PurchaseReceivingEngine:
    """
    Receives vendor merchandise into inventory.

    Contract
    --------
    Every public method is one unit of work on ``session``.  Read methods
    return DTOs and do not commit.

    Usage::

        engine = PurchaseReceivingEngine(session, clock=clock)
        receipt = engine.create_receipt(org_id, user_id, vendor_id, date(2026, 1, 15), items)
        posted = engine.receive_purchase(org_id, user_id, receipt.id)
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sink: StockMovementSink | None = None,
        sequence: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sink = sink or LoggingStockMovementSink()
        self._sequence = sequence or SequenceService(session, self._clock)
        self._accounts = AccountConfigurationService(session, clock=self._clock)
        self._ledger = LedgerService(session, self._clock, sequence=self._sequence)

    # ------------------------------------------------------------------
    # Receipt maintenance
    # ------------------------------------------------------------------

    def create_receipt(
        self,
        organization_id: UUID,
        user_id: UUID,
        vendor_id: UUID,
        receipt_date: date,
        items: Sequence[ReceiptLineInput],
        number: str | None = None,
        purchase_order_id: UUID | None = None,
        notes: str | None = None,
    ) -> PurchaseReceiptInfo:
        """Create a Draft receipt; a caller-supplied number is registered as manual."""
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "create_receipt"):
                if not items:
                    raise InvalidAmountError("items", 0, "at least one item is required")
                validated = [line.validated(n) for n, line in enumerate(items, start=1)]

                if number is not None and self._sequence.has_default_series(
                    organization_id, DocumentType.PURCHASE_RECEIPT
                ):
                    self._sequence.register_manual_number_by_type(
                        organization_id, DocumentType.PURCHASE_RECEIPT, number, as_of=receipt_date
                    )

                receipt = PurchaseReceiptModel(
                    organization_id=organization_id,
                    number=number,
                    purchase_order_id=purchase_order_id,
                    vendor_id=vendor_id,
                    receipt_date=receipt_date,
                    status=RECEIPT_WORKFLOW.initial_state,
                    notes=notes,
                    created_by_id=user_id,
                )
                for line_number, line in enumerate(validated, start=1):
                    amounts = compute_line_amounts(
                        line.quantity_received, line.unit_cost, line.discount_percent, line.tax_rate
                    )
                    receipt.items.append(
                        PurchaseItemModel(
                            line_number=line_number,
                            product_id=line.product_id,
                            variant_id=line.variant_id,
                            quantity_ordered=line.quantity_ordered,
                            quantity_received=line.quantity_received,
                            unit_cost=line.unit_cost,
                            discount_percent=line.discount_percent,
                            tax_rate=line.tax_rate,
                            tax_amount=amounts.tax,
                            line_total=amounts.total,
                            inventory_account_id=line.inventory_account_id,
                        )
                    )
                self._apply_totals(receipt)
                if receipt.total_amount <= ZERO:
                    raise InvalidAmountError(
                        "total_amount", receipt.total_amount, "receipt has no value to post"
                    )
                self._session.add(receipt)
                self._session.flush()

                logger.info(
                    "receipt_created",
                    extra={
                        "receipt_id": str(receipt.id),
                        "number": number,
                        "vendor_id": str(vendor_id),
                        "line_count": len(validated),
                        "total": str(receipt.total_amount),
                    },
                )
                result = receipt.to_dto()
            return result

    def submit_receipt(self, organization_id: UUID, user_id: UUID, receipt_id: UUID) -> PurchaseReceiptInfo:
        return self._transition(organization_id, user_id, receipt_id, "submit")

    def cancel_receipt(self, organization_id: UUID, user_id: UUID, receipt_id: UUID) -> PurchaseReceiptInfo:
        return self._transition(organization_id, user_id, receipt_id, "cancel")

    def delete_receipt(self, organization_id: UUID, user_id: UUID, receipt_id: UUID) -> None:
        """Delete a Draft or Pending receipt; anything later is kept for audit."""
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "delete_receipt"):
                receipt = self._load(organization_id, receipt_id)
                if receipt.status not in (ReceiptStatus.DRAFT.value, ReceiptStatus.PENDING.value):
                    raise InvalidTransitionError(RECEIPT_WORKFLOW.name, receipt.status, "delete")
                self._session.delete(receipt)
                flush_versioned(self._session, "PurchaseReceipt", receipt_id)
                logger.info("receipt_deleted", extra={"receipt_id": str(receipt_id)})

    def get_receipt(self, organization_id: UUID, receipt_id: UUID) -> PurchaseReceiptInfo:
        return self._load(organization_id, receipt_id).to_dto()

    def list_open_cost_layers(
        self,
        organization_id: UUID,
        variant_id: UUID | None = None,
    ) -> list[CostLayerInfo]:
        """Layers with stock remaining, oldest first (FIFO)."""
        stmt = select(StockCostLayerModel).where(
            StockCostLayerModel.organization_id == organization_id,
            StockCostLayerModel.remaining_quantity > 0,
        )
        if variant_id is not None:
            stmt = stmt.where(StockCostLayerModel.variant_id == variant_id)
        stmt = stmt.order_by(
            StockCostLayerModel.received_on,
            StockCostLayerModel.receipt_sequence,
            StockCostLayerModel.receipt_id,
            StockCostLayerModel.line_number,
        )
        return [layer.to_dto() for layer in self._session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def receive_purchase(
        self,
        organization_id: UUID,
        user_id: UUID,
        receipt_id: UUID,
        defaults: ReceivingDefaults | None = None,
    ) -> PurchaseReceiptInfo:
        """
        Receive and post a Draft or Pending receipt.

        Preconditions:
            - receipt status is Draft or Pending.
        Postconditions:
            - one cost layer per line; one sink call per line after commit.
            - one journal entry linked to the receipt; status Posted.
        Raises:
            AlreadyPostedError, InvalidTransitionError,
            MissingAccountMappingError, InvalidAmountError for a
            receipt worth nothing, and any ledger validation error.
        """
        defaults = defaults or ReceivingDefaults()
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            logger.info("receipt_receive_started", extra={"receipt_id": str(receipt_id)})
            with unit_of_work(self._session, "receive_purchase"):
                receipt = self._load(organization_id, receipt_id)
                if receipt.status == ReceiptStatus.POSTED.value:
                    raise AlreadyPostedError("PurchaseReceipt", receipt.id, receipt.journal_entry_id)
                if not receipt.items:
                    raise InvalidAmountError("items", 0, "at least one item is required")
                receipt.status = RECEIPT_WORKFLOW.apply(receipt.status, "receive")

                ap_account = self._accounts.resolve_account(
                    organization_id,
                    SystemRole.ACCOUNTS_PAYABLE,
                    defaults.accounts_payable_account_id,
                )

                # Ordered by first appearance so the entry layout is stable.
                inventory_totals: dict[UUID, Decimal] = {}
                tax_total = ZERO
                grand_total = ZERO
                fallback_inventory: UUID | None = None
                movements: list[tuple[UUID, Decimal, Decimal]] = []
                receipt_sequence = self._next_receipt_sequence(organization_id)
                for item in receipt.items:
                    amounts = compute_line_amounts(
                        item.quantity_received, item.unit_cost, item.discount_percent, item.tax_rate
                    )
                    item.tax_amount = amounts.tax
                    item.line_total = amounts.total

                    if item.inventory_account_id is not None:
                        inventory_account = self._accounts.resolve_account(
                            organization_id, SystemRole.INVENTORY, item.inventory_account_id
                        )
                    else:
                        if fallback_inventory is None:
                            fallback_inventory = self._accounts.resolve_account(
                                organization_id, SystemRole.INVENTORY, defaults.inventory_account_id
                            )
                        inventory_account = fallback_inventory
                    inventory_totals[inventory_account] = (
                        inventory_totals.get(inventory_account, ZERO) + amounts.subtotal
                    )
                    tax_total += amounts.tax
                    grand_total += amounts.total

                    self._session.add(
                        StockCostLayerModel(
                            organization_id=organization_id,
                            receipt_id=receipt.id,
                            purchase_item_id=item.id,
                            line_number=item.line_number,
                            product_id=item.product_id,
                            variant_id=item.variant_id,
                            unit_cost=item.unit_cost,
                            original_quantity=item.quantity_received,
                            remaining_quantity=item.quantity_received,
                            received_on=receipt.receipt_date,
                            receipt_sequence=receipt_sequence,
                            created_by_id=user_id,
                        )
                    )
                    movements.append((item.variant_id, item.quantity_received, item.unit_cost))

                self._apply_totals(receipt)
                if grand_total <= ZERO:
                    raise InvalidAmountError("total_amount", grand_total, "receipt has no value to post")

                if receipt.number is None:
                    receipt.number = self._sequence.next_number_by_type(
                        organization_id, DocumentType.PURCHASE_RECEIPT, as_of=receipt.receipt_date
                    )

                lines = [
                    LineSpec.dr(account_id, amount, description="Inventory received")
                    for account_id, amount in inventory_totals.items()
                    if amount > ZERO
                ]
                if tax_total > ZERO:
                    tax_account = self._accounts.resolve_account(
                        organization_id,
                        SystemRole.TAX_RECEIVABLE,
                        defaults.tax_receivable_account_id,
                    )
                    lines.append(LineSpec.dr(tax_account, tax_total, description="Purchase tax"))
                lines.append(
                    LineSpec.cr(
                        ap_account,
                        grand_total,
                        description="Accounts payable",
                        vendor_id=receipt.vendor_id,
                    )
                )

                entry_id = self._ledger.post(
                    organization_id=organization_id,
                    entry_date=receipt.receipt_date,
                    description=f"Purchase receipt {receipt.number}",
                    lines=lines,
                    actor_id=user_id,
                    reference=receipt.number,
                )

                receipt.journal_entry_id = entry_id
                receipt.status = RECEIPT_WORKFLOW.apply(receipt.status, "post")
                receipt.received_at = self._clock.now()
                receipt.received_by_id = user_id
                receipt.updated_by_id = user_id
                flush_versioned(self._session, "PurchaseReceipt", receipt.id)

                logger.info(
                    "receipt_posted",
                    extra={
                        "receipt_id": str(receipt.id),
                        "number": receipt.number,
                        "journal_entry_id": str(entry_id),
                        "subtotal": str(receipt.subtotal),
                        "tax": str(receipt.tax_amount),
                        "total": str(receipt.total_amount),
                        "line_count": len(receipt.items),
                    },
                )
                result = receipt.to_dto()

            for variant_id, quantity, unit_cost in movements:
                self._sink.register_purchase(
                    organization_id=organization_id,
                    variant_id=variant_id,
                    quantity=quantity,
                    unit_cost=unit_cost,
                    receipt_id=receipt_id,
                )
            return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(
        self, organization_id: UUID, user_id: UUID, receipt_id: UUID, action: str
    ) -> PurchaseReceiptInfo:
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, f"{action}_receipt"):
                receipt = self._load(organization_id, receipt_id)
                if receipt.status == ReceiptStatus.POSTED.value:
                    raise AlreadyPostedError("PurchaseReceipt", receipt.id, receipt.journal_entry_id)
                previous = receipt.status
                receipt.status = RECEIPT_WORKFLOW.apply(previous, action)
                receipt.updated_by_id = user_id
                flush_versioned(self._session, "PurchaseReceipt", receipt.id)
                logger.info(
                    "receipt_status_changed",
                    extra={
                        "receipt_id": str(receipt.id),
                        "from_state": previous,
                        "to_state": receipt.status,
                    },
                )
                result = receipt.to_dto()
            return result

    @staticmethod
    def _apply_totals(receipt: PurchaseReceiptModel) -> None:
        total = sum((item.line_total for item in receipt.items), ZERO)
        tax = sum((item.tax_amount for item in receipt.items), ZERO)
        receipt.total_amount = total
        receipt.tax_amount = tax
        receipt.subtotal = total - tax

    def _next_receipt_sequence(self, organization_id: UUID) -> int:
        last = self._session.execute(
            select(func.max(StockCostLayerModel.receipt_sequence)).where(
                StockCostLayerModel.organization_id == organization_id
            )
        ).scalar()
        return (last or 0) + 1

    def _load(self, organization_id: UUID, receipt_id: UUID) -> PurchaseReceiptModel:
        receipt = self._session.get(PurchaseReceiptModel, receipt_id, populate_existing=True)
        if receipt is None or receipt.organization_id != organization_id:
            raise EntityNotFoundError("PurchaseReceipt", receipt_id)
        return receipt
