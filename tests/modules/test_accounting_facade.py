"""
Tests for AccountingFacade and SerieNoFacade.

The facades are the transaction-owning entry points for callers outside
the purchase-to-pay engines: inventory, sales and manual journals.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from p2p_kernel.domain.dtos import LineSpec, SeriesLineSpec
from p2p_kernel.exceptions import (
    EntryAlreadyReversedError,
    MissingAccountMappingError,
    NoDefaultSeriesError,
    SeriesLineInUseError,
    UnbalancedEntryError,
)
from p2p_kernel.models.account import AccountClass, SystemRole
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.selectors.journal_selector import JournalSelector
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService
from p2p_modules.accounting import (
    AccountingFacade,
    SalesOrderTotals,
    SerieNoFacade,
    StockMovement,
    StockMovementType,
)

TODAY = date(2026, 1, 15)


@pytest.fixture
def accounting(session, deterministic_clock):
    return AccountingFacade(session, clock=deterministic_clock)


@pytest.fixture
def numbering(session, deterministic_clock):
    return SerieNoFacade(session, clock=deterministic_clock)


class TestManualJournalEntries:
    def test_create_and_read_back(self, accounting, org_id, test_actor_id, standard_accounts,
                                  seeded_series):
        record = accounting.create_journal_entry(
            org_id,
            test_actor_id,
            TODAY,
            "Opening cash",
            [
                LineSpec.dr(standard_accounts["bank"], Decimal("1000.00")),
                LineSpec.cr(standard_accounts["accounts_payable"], Decimal("1000.00")),
            ],
            reference="OPEN-1",
        )

        assert record.entry_number == "JE-2026-0001"
        assert record.total_debits == Decimal("1000.00")
        assert [e.id for e in accounting.get_journal_entries(org_id, TODAY, TODAY)] == [record.id]

    def test_unbalanced_entry_rolls_back(self, accounting, org_id, test_actor_id, standard_accounts):
        with pytest.raises(UnbalancedEntryError):
            accounting.create_journal_entry(
                org_id,
                test_actor_id,
                TODAY,
                "Broken",
                [
                    LineSpec.dr(standard_accounts["bank"], Decimal("10.00")),
                    LineSpec.cr(standard_accounts["accounts_payable"], Decimal("9.99")),
                ],
            )
        assert accounting.get_journal_entries(org_id, TODAY, TODAY) == []

    def test_reverse(self, session, accounting, org_id, test_actor_id, standard_accounts):
        original = accounting.create_journal_entry(
            org_id,
            test_actor_id,
            TODAY,
            "Accrual",
            [
                LineSpec.dr(standard_accounts["inventory"], Decimal("25.00")),
                LineSpec.cr(standard_accounts["accounts_payable"], Decimal("25.00")),
            ],
        )
        reversal = accounting.reverse(org_id, test_actor_id, original.id, date(2026, 1, 31))

        assert reversal.reversal_of_id == original.id
        assert reversal.entry_date == date(2026, 1, 31)
        assert JournalSelector(session).account_balance(org_id, standard_accounts["inventory"]) == 0

        with pytest.raises(EntryAlreadyReversedError):
            accounting.reverse(org_id, test_actor_id, original.id)


class TestRegisterPurchase:
    def test_costed_purchase_posts_inventory(self, session, accounting, org_id, test_actor_id,
                                             standard_accounts):
        movement = StockMovement(
            StockMovementType.PURCHASE, uuid4(), Decimal("4"), TODAY,
            unit_cost=Decimal("12.345"), sku="WID-01",
        )
        entry_id = accounting.register_purchase(org_id, test_actor_id, movement)

        entry = JournalSelector(session).get_entry(entry_id)
        assert entry.description == "Inventory purchase - SKU: WID-01"
        # 4 * 12.345 = 49.38
        assert [(l.account_id, l.debit, l.credit) for l in entry.lines] == [
            (standard_accounts["inventory"], Decimal("49.38"), Decimal("0")),
            (standard_accounts["accounts_payable"], Decimal("0"), Decimal("49.38")),
        ]

    @pytest.mark.parametrize(
        "movement_type, unit_cost",
        [
            (StockMovementType.SALE, Decimal("5.00")),
            (StockMovementType.PURCHASE, None),
            (StockMovementType.PURCHASE, Decimal("0")),
        ],
    )
    def test_uncosted_movements_ignored(self, accounting, org_id, test_actor_id, movement_type,
                                        unit_cost):
        movement = StockMovement(movement_type, uuid4(), Decimal("1"), TODAY, unit_cost=unit_cost)
        assert accounting.register_purchase(org_id, test_actor_id, movement) is None
        assert accounting.get_journal_entries(org_id, TODAY, TODAY) == []


class TestRegisterSale:
    def test_revenue_and_cost_entries(self, session, accounting, org_id, test_actor_id,
                                      standard_accounts):
        order = SalesOrderTotals(
            sales_order_id=uuid4(),
            order_date=TODAY,
            subtotal_amount=Decimal("200.00"),
            total_tax_amount=Decimal("32.00"),
            total_amount=Decimal("232.00"),
            total_cost=Decimal("120.00"),
        )
        entries = accounting.register_sale(org_id, test_actor_id, order)

        journal = JournalSelector(session)
        revenue = journal.get_entry(entries.revenue_entry_id)
        assert [(l.account_id, l.debit, l.credit) for l in revenue.lines] == [
            (standard_accounts["accounts_receivable"], Decimal("232.00"), Decimal("0")),
            (standard_accounts["sales_revenue"], Decimal("0"), Decimal("200.00")),
            (standard_accounts["tax_payable"], Decimal("0"), Decimal("32.00")),
        ]
        cogs = journal.get_entry(entries.cogs_entry_id)
        assert cogs.total_debits == Decimal("120.00")
        assert journal.count_by_reference(org_id, str(order.sales_order_id)) == 2

    def test_sale_without_cost_or_tax(self, session, accounting, org_id, test_actor_id,
                                      standard_accounts):
        order = SalesOrderTotals(uuid4(), TODAY, Decimal("50.00"), Decimal("0"), Decimal("50.00"))
        entries = accounting.register_sale(org_id, test_actor_id, order)

        assert entries.cogs_entry_id is None
        revenue = JournalSelector(session).get_entry(entries.revenue_entry_id)
        assert len(revenue.lines) == 2

    def test_missing_cogs_account_rolls_back_both(self, accounting, create_account, org_id,
                                                  test_actor_id):
        create_account("1200", "AR", AccountClass.ASSET, SystemRole.ACCOUNTS_RECEIVABLE)
        create_account("4000", "Sales", AccountClass.REVENUE, SystemRole.SALES_REVENUE)
        order = SalesOrderTotals(
            uuid4(), TODAY, Decimal("50.00"), Decimal("0"), Decimal("50.00"), Decimal("30.00")
        )

        with pytest.raises(MissingAccountMappingError) as exc_info:
            accounting.register_sale(org_id, test_actor_id, order)
        assert exc_info.value.role == "cogs"
        assert accounting.get_journal_entries(org_id, TODAY, TODAY) == []


class TestSerieNoFacade:
    def test_series_lifecycle(self, numbering, org_id, test_actor_id):
        numbering.create_series(
            org_id, test_actor_id, "PO", DocumentType.PURCHASE_ORDER, "Purchase orders",
            default_nos=True, manual_nos=True,
            lines=[SeriesLineSpec("PO-0001", "PO-9999")],
        )

        assert numbering.get_next_number(org_id, "PO") == "PO-0001"
        assert numbering.get_next_number_by_type(org_id, DocumentType.PURCHASE_ORDER) == "PO-0002"
        assert numbering.register_manual_number(org_id, "PO", "PO-0003") == "PO-0003"
        assert numbering.get_next_number(org_id, "PO") == "PO-0004"

        assert numbering.validate_number(org_id, "PO", "PO-0500")
        assert not numbering.is_number_available(org_id, "PO", "PO-0003")
        assert numbering.is_number_available(org_id, "PO", "PO-0500")

    def test_allocations_are_committed(self, numbering, session_factory, org_id, test_actor_id):
        numbering.create_series(
            org_id, test_actor_id, "PO", DocumentType.PURCHASE_ORDER, default_nos=True,
            lines=[SeriesLineSpec("PO-0001", "PO-9999")],
        )
        numbering.get_next_number(org_id, "PO")

        other = session_factory()
        try:
            line = SerieNoFacade(other).get_series(org_id, "PO").lines[0]
            assert line.last_no_used == "PO-0001"
        finally:
            other.close()

    def test_seed_defaults_uses_clock_year(self, numbering, org_id, test_actor_id):
        created = numbering.seed_defaults(org_id, test_actor_id)
        assert "PAY" in created
        assert numbering.get_next_number_by_type(org_id, DocumentType.PAYMENT) == "PAY-2026-0001"

    def test_default_switch_and_update(self, numbering, org_id, test_actor_id):
        numbering.create_series(org_id, test_actor_id, "PO", DocumentType.PURCHASE_ORDER,
                                default_nos=True)
        numbering.create_series(org_id, test_actor_id, "OC", DocumentType.PURCHASE_ORDER)
        numbering.set_default(org_id, test_actor_id, "OC")

        assert numbering.get_default_series(org_id, DocumentType.PURCHASE_ORDER).code == "OC"
        assert {s.code for s in numbering.get_series_by_type(org_id, DocumentType.PURCHASE_ORDER)} == {
            "PO",
            "OC",
        }
        updated = numbering.update_series(org_id, test_actor_id, "OC", description="Ordenes")
        assert updated.description == "Ordenes"

    def test_line_maintenance(self, numbering, org_id, test_actor_id):
        numbering.create_series(org_id, test_actor_id, "PO", DocumentType.PURCHASE_ORDER,
                                default_nos=True)
        line = numbering.add_line(org_id, "PO", SeriesLineSpec("PO-0001", "PO-0100"))
        updated = numbering.update_line(org_id, "PO", line.id, ending_no="PO-0200")
        assert updated.ending_no == "PO-0200"

        numbering.get_next_number(org_id, "PO")
        with pytest.raises(SeriesLineInUseError):
            numbering.delete_line(org_id, "PO", line.id)

    def test_delete_series(self, numbering, org_id, test_actor_id):
        numbering.create_series(org_id, test_actor_id, "PO", DocumentType.PURCHASE_ORDER,
                                default_nos=True)
        numbering.delete_series(org_id, "PO")
        with pytest.raises(NoDefaultSeriesError):
            numbering.get_default_series(org_id, DocumentType.PURCHASE_ORDER)


class TestChartSeeding:
    def test_seed_chart_commits(self, accounting, session_factory, org_id, test_actor_id):
        created = accounting.seed_chart_of_accounts(org_id, test_actor_id)

        assert "2101" in created
        with session_factory() as other:
            assert ChartOfAccountsService(other).get_by_code(org_id, "2101") is not None
        assert accounting.seed_chart_of_accounts(org_id, test_actor_id) == []

    def test_seeded_organization_receives_without_setup(
        self, session, accounting, numbering, receiving_engine, org_id, test_actor_id, vendor_id,
        widget_line,
    ):
        accounting.seed_chart_of_accounts(org_id, test_actor_id)
        numbering.seed_defaults(org_id, test_actor_id)

        receipt = receiving_engine.create_receipt(org_id, test_actor_id, vendor_id, TODAY, [widget_line])
        posted = receiving_engine.receive_purchase(org_id, test_actor_id, receipt.id)

        assert posted.number == "PREC-2026-0001"
        chart = ChartOfAccountsService(session)
        journal = JournalSelector(session)
        balances = {
            code: journal.account_balance(org_id, chart.get_by_code(org_id, code).id)
            for code in ("1300", "1400", "2101")
        }
        assert balances == {
            "1300": Decimal("50.00"),
            "1400": Decimal("8.00"),
            "2101": Decimal("-58.00"),
        }
