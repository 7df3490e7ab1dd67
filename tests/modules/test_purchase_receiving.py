"""
Tests for PurchaseReceivingEngine.

Receiving prices every line, creates FIFO cost layers, notifies the stock
sink and posts Dr Inventory + Dr Tax receivable / Cr Accounts payable in
one transaction.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from p2p_kernel.exceptions import (
    AlreadyPostedError,
    EntityNotFoundError,
    InvalidAmountError,
    InvalidTransitionError,
    ManualNumbersNotAllowedError,
    MissingAccountMappingError,
)
from p2p_kernel.models.account import AccountClass, SystemRole
from p2p_kernel.selectors.journal_selector import JournalSelector
from p2p_kernel.services.ledger_service import LedgerService
from p2p_modules.purchasing.models import ReceiptLineInput, ReceiptStatus, ReceivingDefaults
from p2p_modules.purchasing.orm import PurchaseReceiptModel

RECEIPT_DATE = date(2026, 1, 15)


class TestReceivePurchase:
    """Receipt of 10 units @ 5.00 with 16% tax."""

    def test_journal_entry(self, session, org_id, posted_receipt, standard_accounts):
        entry = LedgerService(session).get_entry(org_id, posted_receipt.journal_entry_id)

        assert [(l.account_id, l.debit, l.credit) for l in entry.lines] == [
            (standard_accounts["inventory"], Decimal("50.00"), Decimal("0")),
            (standard_accounts["tax_receivable"], Decimal("8.00"), Decimal("0")),
            (standard_accounts["accounts_payable"], Decimal("0"), Decimal("58.00")),
        ]
        assert entry.total_debits == entry.total_credits == Decimal("58.00")
        assert entry.reference == "PREC-2026-0001"
        assert entry.description == "Purchase receipt PREC-2026-0001"

    def test_receipt_posted_with_totals(self, posted_receipt):
        assert posted_receipt.status == ReceiptStatus.POSTED
        assert posted_receipt.number == "PREC-2026-0001"
        assert posted_receipt.subtotal == Decimal("50.00")
        assert posted_receipt.tax_amount == Decimal("8.00")
        assert posted_receipt.total_amount == Decimal("58.00")
        assert posted_receipt.received_at is not None
        assert posted_receipt.items[0].line_total == Decimal("58.00")

    def test_cost_layer_created(self, receiving_engine, org_id, posted_receipt, variant_id):
        layers = receiving_engine.list_open_cost_layers(org_id, variant_id)

        assert len(layers) == 1
        assert layers[0].receipt_id == posted_receipt.id
        assert layers[0].original_quantity == Decimal("10")
        assert layers[0].remaining_quantity == Decimal("10")
        assert layers[0].unit_cost == Decimal("5.00")
        assert layers[0].received_on == RECEIPT_DATE

    def test_stock_sink_notified(self, recording_sink, org_id, posted_receipt, variant_id):
        assert recording_sink.calls == [
            {
                "organization_id": org_id,
                "variant_id": variant_id,
                "quantity": Decimal("10"),
                "unit_cost": Decimal("5.00"),
                "receipt_id": posted_receipt.id,
            }
        ]

    def test_posting_logged(self, receiving_engine, org_id, test_actor_id, vendor_id, widget_line,
                            standard_accounts, seeded_series, captured_logs):
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        posted = [r for r in captured_logs() if r["message"] == "receipt_posted"]
        assert len(posted) == 1
        assert posted[0]["number"] == "PREC-2026-0001"
        assert posted[0]["total"] == "58.00"
        assert posted[0]["organization_id"] == str(org_id)

    def test_receive_twice_refused(self, receiving_engine, org_id, test_actor_id, posted_receipt):
        with pytest.raises(AlreadyPostedError):
            receiving_engine.receive_purchase(org_id, test_actor_id, posted_receipt.id)

    def test_receive_from_pending(self, receiving_engine, org_id, test_actor_id, vendor_id,
                                  widget_line, standard_accounts, seeded_series):
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        assert receiving_engine.submit_receipt(org_id, test_actor_id, receipt.id).status == (
            ReceiptStatus.PENDING
        )
        posted = receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)
        assert posted.status == ReceiptStatus.POSTED

    def test_receipts_numbered_in_sequence(self, receiving_engine, org_id, test_actor_id, vendor_id,
                                           widget_line, standard_accounts, seeded_series):
        numbers = []
        for _ in range(2):
            receipt = receiving_engine.create_receipt(
                org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
            )
            numbers.append(receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id).number)
        assert numbers == ["PREC-2026-0001", "PREC-2026-0002"]


class TestCostLayerOrder:
    @pytest.fixture
    def receive(self, receiving_engine, org_id, test_actor_id, vendor_id, standard_accounts,
                seeded_series):
        def _receive(receipt_date, *costs):
            items = [ReceiptLineInput(uuid4(), uuid4(), Decimal("1"), Decimal(c)) for c in costs]
            receipt = receiving_engine.create_receipt(
                org_id, test_actor_id, vendor_id, receipt_date, items
            )
            return receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        return _receive

    def test_receipts_posted_together_do_not_interleave(self, receiving_engine, org_id, receive):
        first = receive(RECEIPT_DATE, "1.00", "2.00")
        second = receive(RECEIPT_DATE, "3.00", "4.00")

        layers = receiving_engine.list_open_cost_layers(org_id)
        assert [(layer.receipt_id, layer.line_number) for layer in layers] == [
            (first.id, 1), (first.id, 2), (second.id, 1), (second.id, 2),
        ]
        assert [layer.receipt_sequence for layer in layers] == [1, 1, 2, 2]

    def test_earlier_receipt_date_comes_first(self, receiving_engine, org_id, receive):
        late = receive(RECEIPT_DATE, "1.00")
        backdated = receive(date(2026, 1, 10), "2.00")

        layers = receiving_engine.list_open_cost_layers(org_id)
        assert [layer.receipt_id for layer in layers] == [backdated.id, late.id]


class TestReceivingRollback:
    def test_missing_account_leaves_receipt_untouched(
        self, session, receiving_engine, recording_sink, create_account, org_id,
        test_actor_id, vendor_id, widget_line, variant_id, seeded_series,
    ):
        create_account("2100", "Accounts payable", AccountClass.LIABILITY, SystemRole.ACCOUNTS_PAYABLE)
        create_account("1180", "VAT receivable", AccountClass.ASSET, SystemRole.TAX_RECEIVABLE)
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )

        with pytest.raises(MissingAccountMappingError) as exc_info:
            receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)
        assert exc_info.value.role == "inventory"

        assert receiving_engine.get_receipt(org_id, receipt.id).status == ReceiptStatus.DRAFT
        assert receiving_engine.list_open_cost_layers(org_id, variant_id) == []
        assert recording_sink.calls == []

        # The number was never consumed.
        create_account("1150", "Inventory", AccountClass.ASSET, SystemRole.INVENTORY)
        posted = receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)
        assert posted.number == "PREC-2026-0001"

    def test_failed_posting_never_reaches_stock_sink(
        self, receiving_engine, recording_sink, create_account, org_id,
        test_actor_id, vendor_id, widget_line, variant_id, seeded_series,
    ):
        create_account("1150", "Inventory", AccountClass.ASSET, SystemRole.INVENTORY)
        create_account("2100", "Accounts payable", AccountClass.LIABILITY, SystemRole.ACCOUNTS_PAYABLE)
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )

        with pytest.raises(MissingAccountMappingError) as exc_info:
            receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        assert exc_info.value.role == "tax_receivable"
        assert receiving_engine.get_receipt(org_id, receipt.id).status == ReceiptStatus.DRAFT
        assert receiving_engine.list_open_cost_layers(org_id, variant_id) == []
        assert recording_sink.calls == []

    def test_stock_sink_sees_committed_receipt(
        self, session_factory, receiving_engine, recording_sink, org_id, test_actor_id,
        vendor_id, widget_line, standard_accounts, seeded_series,
    ):
        statuses = []

        def _record_status(**movement):
            other = session_factory()
            try:
                statuses.append(other.get(PurchaseReceiptModel, movement["receipt_id"]).status)
            finally:
                other.close()

        recording_sink.register_purchase = _record_status
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        assert statuses == [ReceiptStatus.POSTED.value]


class TestReceivingAccounts:
    def test_line_inventory_account_override(
        self, session, receiving_engine, create_account, org_id, test_actor_id, vendor_id,
        standard_accounts, seeded_series,
    ):
        raw_materials = create_account("1160", "Raw materials", AccountClass.ASSET).id
        items = [
            ReceiptLineInput(uuid4(), uuid4(), Decimal("2"), Decimal("10.00")),
            ReceiptLineInput(uuid4(), uuid4(), Decimal("1"), Decimal("7.50"),
                             inventory_account_id=raw_materials),
        ]
        receipt = receiving_engine.create_receipt(org_id, test_actor_id, vendor_id, RECEIPT_DATE, items)
        posted = receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        entry = LedgerService(session).get_entry(org_id, posted.journal_entry_id)
        debits = {l.account_id: l.debit for l in entry.lines if l.debit}
        assert debits == {
            standard_accounts["inventory"]: Decimal("20.00"),
            raw_materials: Decimal("7.50"),
        }
        assert posted.tax_amount == Decimal("0")

    def test_call_site_payable_override(
        self, session, receiving_engine, create_account, org_id, test_actor_id, vendor_id,
        widget_line, standard_accounts, seeded_series,
    ):
        accrued = create_account("2110", "Goods received not invoiced", AccountClass.LIABILITY).id
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        receiving_engine.receive_purchase(
            org_id, test_actor_id, receipt.id,
            defaults=ReceivingDefaults(accounts_payable_account_id=accrued),
        )

        journal = JournalSelector(session)
        assert journal.account_balance(org_id, accrued) == Decimal("-58.00")
        assert journal.account_balance(org_id, standard_accounts["accounts_payable"]) == Decimal("0")


class TestReceiptMaintenance:
    def test_line_amounts_priced_at_creation(self, receiving_engine, org_id, test_actor_id, vendor_id):
        line = ReceiptLineInput(
            uuid4(), uuid4(), Decimal("3"), Decimal("19.99"),
            discount_percent=Decimal("10"), tax_rate=Decimal("16"),
        )
        receipt = receiving_engine.create_receipt(org_id, test_actor_id, vendor_id, RECEIPT_DATE, [line])

        assert receipt.status == ReceiptStatus.DRAFT
        assert receipt.number is None
        # 3 * 19.99 * 0.9 = 53.973 -> 53.97; * 1.16 = 62.60868 -> 62.61
        assert receipt.subtotal == Decimal("53.97")
        assert receipt.tax_amount == Decimal("8.64")
        assert receipt.total_amount == Decimal("62.61")

    def test_empty_receipt_refused(self, receiving_engine, org_id, test_actor_id, vendor_id):
        with pytest.raises(InvalidAmountError):
            receiving_engine.create_receipt(org_id, test_actor_id, vendor_id, RECEIPT_DATE, [])

    @pytest.mark.parametrize(
        "unit_cost, discount",
        [(Decimal("0.00"), Decimal("0")), (Decimal("5.00"), Decimal("100"))],
    )
    def test_receipt_without_value_refused(self, receiving_engine, org_id, test_actor_id, vendor_id,
                                           unit_cost, discount):
        line = ReceiptLineInput(
            uuid4(), uuid4(), Decimal("10"), unit_cost, discount_percent=discount,
            tax_rate=Decimal("16"),
        )
        with pytest.raises(InvalidAmountError) as exc_info:
            receiving_engine.create_receipt(org_id, test_actor_id, vendor_id, RECEIPT_DATE, [line])
        assert exc_info.value.field == "total_amount"

    def test_free_line_gets_cost_layer(self, session, receiving_engine, org_id, test_actor_id,
                                       vendor_id, widget_line, standard_accounts, seeded_series):
        sample = ReceiptLineInput(uuid4(), uuid4(), Decimal("2"), Decimal("0.00"))
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line, sample]
        )
        posted = receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        layers = receiving_engine.list_open_cost_layers(org_id, sample.variant_id)
        assert [layer.unit_cost for layer in layers] == [Decimal("0")]
        entry = LedgerService(session).get_entry(org_id, posted.journal_entry_id)
        assert entry.total_debits == Decimal("58.00")
        assert len(entry.lines) == 3

    def test_float_amount_refused(self, receiving_engine, org_id, test_actor_id, vendor_id):
        line = ReceiptLineInput(uuid4(), uuid4(), Decimal("1"), 5.0)
        with pytest.raises(InvalidAmountError):
            receiving_engine.create_receipt(org_id, test_actor_id, vendor_id, RECEIPT_DATE, [line])

    def test_cancel_then_receive_refused(self, receiving_engine, org_id, test_actor_id, vendor_id,
                                         widget_line):
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        cancelled = receiving_engine.cancel_receipt(org_id, test_actor_id, receipt.id)
        assert cancelled.status == ReceiptStatus.CANCELLED

        with pytest.raises(InvalidTransitionError):
            receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

    def test_cancel_posted_refused(self, receiving_engine, org_id, test_actor_id, posted_receipt):
        with pytest.raises(AlreadyPostedError):
            receiving_engine.cancel_receipt(org_id, test_actor_id, posted_receipt.id)

    def test_delete_draft(self, receiving_engine, org_id, test_actor_id, vendor_id, widget_line):
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        receiving_engine.delete_receipt(org_id, test_actor_id, receipt.id)

        with pytest.raises(EntityNotFoundError):
            receiving_engine.get_receipt(org_id, receipt.id)

    def test_delete_posted_refused(self, receiving_engine, org_id, test_actor_id, posted_receipt):
        with pytest.raises(InvalidTransitionError):
            receiving_engine.delete_receipt(org_id, test_actor_id, posted_receipt.id)

    def test_other_organization_cannot_see_receipt(self, receiving_engine, org_id, test_actor_id,
                                                   vendor_id, widget_line):
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line]
        )
        with pytest.raises(EntityNotFoundError):
            receiving_engine.get_receipt(uuid4(), receipt.id)


class TestManualReceiptNumbers:
    def test_manual_number_kept_without_series(self, receiving_engine, org_id, test_actor_id,
                                               vendor_id, widget_line, standard_accounts):
        receipt = receiving_engine.create_receipt(
            org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line], number="RCV-77"
        )
        posted = receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)
        assert posted.number == "RCV-77"

    def test_manual_number_refused_by_seeded_series(self, receiving_engine, org_id, test_actor_id,
                                                     vendor_id, widget_line, seeded_series):
        with pytest.raises(ManualNumbersNotAllowedError):
            receiving_engine.create_receipt(
                org_id, test_actor_id, vendor_id, RECEIPT_DATE, [widget_line],
                number="PREC-2026-0100",
            )
