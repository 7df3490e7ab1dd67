"""
Accounting and Numbering Facades (``p2p_modules.accounting.facade``).

Responsibility
--------------
Transaction-owning entry points for callers outside the purchase-to-pay
engines: manual journal entries, purchase and sale postings from
inventory and sales, reversals, and document numbering with series
maintenance.

Architecture position
---------------------
**Modules layer** -- thin orchestration over kernel services.  Each
public method is one unit of work (commit on success, rollback on any
failure).

Failure modes
-------------
* Every ``P2PError`` from the kernel passes through after rollback.
* ``StorageError`` for any other database failure.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from p2p_kernel.db.types import ZERO, round_money
from p2p_kernel.domain.clock import Clock, SystemClock
from p2p_kernel.domain.dtos import (
    JournalEntryRecord,
    LineSpec,
    NoSerieInfo,
    NoSerieLineInfo,
    SeriesLineSpec,
)
from p2p_kernel.logging_config import LogContext, get_logger
from p2p_kernel.models.account import SystemRole
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.selectors.journal_selector import JournalSelector
from p2p_kernel.services.account_configuration_service import AccountConfigurationService
from p2p_kernel.services.chart_of_accounts_seeder import seed_default_accounts
from p2p_kernel.services.ledger_service import LedgerService
from p2p_kernel.services.number_series_seeder import seed_default_series
from p2p_kernel.services.number_series_service import NumberSeriesService
from p2p_kernel.services.sequence_service import SequenceService
from p2p_modules._posting_helpers import unit_of_work
from p2p_modules.accounting.models import SaleEntries, SalesOrderTotals, StockMovement

logger = get_logger("modules.accounting.facade")


class AccountingFacade:
    """
    Journal posting for callers that do not go through an engine.

    Usage::

        facade = AccountingFacade(session)
        record = facade.create_journal_entry(org_id, user_id, date.today(),
                                             "Opening balance", lines)
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._accounts = AccountConfigurationService(session, clock=self._clock)
        self._ledger = LedgerService(
            session, self._clock, sequence=sequence or SequenceService(session, self._clock)
        )
        self._journal = JournalSelector(session)

    def create_journal_entry(
        self,
        organization_id: UUID,
        user_id: UUID,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        reference: str | None = None,
    ) -> JournalEntryRecord:
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "create_journal_entry"):
                entry_id = self._ledger.post(
                    organization_id, entry_date, description, lines, user_id, reference=reference
                )
                record = self._ledger.get_entry(organization_id, entry_id)
            return record

    def register_purchase(
        self,
        organization_id: UUID,
        user_id: UUID,
        stock_movement: StockMovement,
    ) -> UUID | None:
        """
        Post Dr Inventory / Cr Accounts payable for a costed purchase movement.

        Movements that are not purchases, or carry no positive unit cost,
        are not accounted for and return None.
        """
        if not stock_movement.is_costed_purchase:
            logger.debug(
                "stock_movement_not_accounted",
                extra={
                    "variant_id": str(stock_movement.variant_id),
                    "movement_type": str(stock_movement.movement_type),
                },
            )
            return None

        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "register_purchase"):
                inventory = self._accounts.resolve_account(organization_id, SystemRole.INVENTORY)
                payable = self._accounts.resolve_account(
                    organization_id, SystemRole.ACCOUNTS_PAYABLE
                )
                value = round_money(stock_movement.quantity * stock_movement.unit_cost)
                label = stock_movement.sku or str(stock_movement.variant_id)
                entry_id = self._ledger.post(
                    organization_id,
                    stock_movement.movement_date,
                    f"Inventory purchase - SKU: {label}",
                    [LineSpec.dr(inventory, value), LineSpec.cr(payable, value)],
                    user_id,
                    reference=stock_movement.reference,
                )
            logger.info(
                "stock_purchase_posted",
                extra={
                    "variant_id": str(stock_movement.variant_id),
                    "value": str(value),
                    "journal_entry_id": str(entry_id),
                },
            )
            return entry_id

    def register_sale(
        self,
        organization_id: UUID,
        user_id: UUID,
        sales_order: SalesOrderTotals,
    ) -> SaleEntries:
        """
        Post the revenue entry and, when a cost is given, the COGS entry.

        Revenue: Dr Accounts receivable (total) / Cr Sales revenue
        (subtotal) / Cr Tax payable (tax, if any).  COGS: Dr Cost of goods
        sold / Cr Inventory.  Both entries commit together.
        """
        reference = str(sales_order.sales_order_id)
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "register_sale"):
                receivable = self._accounts.resolve_account(
                    organization_id, SystemRole.ACCOUNTS_RECEIVABLE
                )
                revenue = self._accounts.resolve_account(organization_id, SystemRole.SALES_REVENUE)
                lines = [
                    LineSpec.dr(receivable, sales_order.total_amount),
                    LineSpec.cr(revenue, sales_order.subtotal_amount),
                ]
                if sales_order.total_tax_amount > ZERO:
                    tax_payable = self._accounts.resolve_account(
                        organization_id, SystemRole.TAX_PAYABLE
                    )
                    lines.append(LineSpec.cr(tax_payable, sales_order.total_tax_amount))
                revenue_entry = self._ledger.post(
                    organization_id,
                    sales_order.order_date,
                    f"Sale - order {sales_order.short_id}",
                    lines,
                    user_id,
                    reference=reference,
                )

                cogs_entry = None
                if sales_order.total_cost > ZERO:
                    cogs = self._accounts.resolve_account(organization_id, SystemRole.COGS)
                    inventory = self._accounts.resolve_account(
                        organization_id, SystemRole.INVENTORY
                    )
                    cogs_entry = self._ledger.post(
                        organization_id,
                        sales_order.order_date,
                        f"Cost of sale - order {sales_order.short_id}",
                        [
                            LineSpec.dr(cogs, sales_order.total_cost),
                            LineSpec.cr(inventory, sales_order.total_cost),
                        ],
                        user_id,
                        reference=reference,
                    )
            logger.info(
                "sale_posted",
                extra={
                    "sales_order_id": reference,
                    "revenue_entry_id": str(revenue_entry),
                    "cogs_entry_id": str(cogs_entry) if cogs_entry else None,
                },
            )
            return SaleEntries(revenue_entry, cogs_entry)

    def reverse(
        self,
        organization_id: UUID,
        user_id: UUID,
        entry_id: UUID,
        reversal_date: date | None = None,
        description: str | None = None,
    ) -> JournalEntryRecord:
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "reverse_journal_entry"):
                reversal_id = self._ledger.reverse(
                    organization_id, entry_id, user_id, reversal_date, description
                )
                record = self._ledger.get_entry(organization_id, reversal_id)
            return record

    def seed_chart_of_accounts(
        self, organization_id: UUID, user_id: UUID, configure: bool = True
    ) -> list[str]:
        """Create the default chart (and default accounts); returns the codes created."""
        with LogContext.bind(organization_id=organization_id, actor_id=user_id):
            with unit_of_work(self._session, "seed_chart_of_accounts"):
                created = seed_default_accounts(
                    self._session, organization_id, user_id, configure=configure
                )
            return created

    def get_journal_entries(
        self,
        organization_id: UUID,
        from_date: date,
        to_date: date,
    ) -> list[JournalEntryRecord]:
        return self._journal.get_entries_by_date_range(organization_id, from_date, to_date)


class SerieNoFacade:
    """Document numbering and number-series maintenance."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_allocation_attempts: int = SequenceService.DEFAULT_MAX_ATTEMPTS,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence = SequenceService(session, self._clock, max_attempts=max_allocation_attempts)
        self._series = NumberSeriesService(session, self._clock)

    # Allocation ---------------------------------------------------------

    def get_next_number(
        self, organization_id: UUID, series_code: str, as_of: date | None = None
    ) -> str:
        with unit_of_work(self._session, "get_next_number"):
            number = self._sequence.next_number(organization_id, series_code, as_of)
        return number

    def get_next_number_by_type(
        self, organization_id: UUID, document_type: DocumentType, as_of: date | None = None
    ) -> str:
        with unit_of_work(self._session, "get_next_number_by_type"):
            number = self._sequence.next_number_by_type(organization_id, document_type, as_of)
        return number

    def register_manual_number(
        self, organization_id: UUID, series_code: str, number: str, as_of: date | None = None
    ) -> str:
        with unit_of_work(self._session, "register_manual_number"):
            result = self._sequence.register_manual_number(
                organization_id, series_code, number, as_of
            )
        return result

    def validate_number(self, organization_id: UUID, series_code: str, number: str) -> bool:
        return self._sequence.validate_number(organization_id, series_code, number)

    def is_number_available(self, organization_id: UUID, series_code: str, number: str) -> bool:
        return self._sequence.is_number_available(organization_id, series_code, number)

    # Series -------------------------------------------------------------

    def create_series(
        self,
        organization_id: UUID,
        user_id: UUID,
        code: str,
        document_type: DocumentType,
        description: str = "",
        default_nos: bool = False,
        manual_nos: bool = False,
        date_order: bool = False,
        lines: Sequence[SeriesLineSpec] = (),
    ) -> NoSerieInfo:
        with unit_of_work(self._session, "create_series"):
            info = self._series.create_series(
                organization_id,
                code,
                document_type,
                user_id,
                description=description,
                default_nos=default_nos,
                manual_nos=manual_nos,
                date_order=date_order,
                lines=lines,
            )
        return info

    def get_series(self, organization_id: UUID, code: str) -> NoSerieInfo:
        return self._series.get_series(organization_id, code)

    def get_series_by_type(
        self, organization_id: UUID, document_type: DocumentType
    ) -> list[NoSerieInfo]:
        return self._series.get_series_by_type(organization_id, document_type)

    def get_default_series(
        self, organization_id: UUID, document_type: DocumentType
    ) -> NoSerieInfo:
        return self._series.get_default_series(organization_id, document_type)

    def set_default(self, organization_id: UUID, user_id: UUID, code: str) -> NoSerieInfo:
        with unit_of_work(self._session, "set_default_series"):
            info = self._series.set_default(organization_id, code, user_id)
        return info

    def update_series(
        self,
        organization_id: UUID,
        user_id: UUID,
        code: str,
        description: str | None = None,
        manual_nos: bool | None = None,
        date_order: bool | None = None,
    ) -> NoSerieInfo:
        with unit_of_work(self._session, "update_series"):
            info = self._series.update_series(
                organization_id,
                code,
                user_id,
                description=description,
                manual_nos=manual_nos,
                date_order=date_order,
            )
        return info

    def delete_series(self, organization_id: UUID, code: str) -> None:
        with unit_of_work(self._session, "delete_series"):
            self._series.delete_series(organization_id, code)

    def seed_defaults(
        self, organization_id: UUID, user_id: UUID, year: int | None = None
    ) -> list[str]:
        """Create the standard series for ``year`` (default: current year)."""
        with unit_of_work(self._session, "seed_default_series"):
            created = seed_default_series(
                self._session, organization_id, user_id, year or self._clock.today().year
            )
        return created

    # Lines --------------------------------------------------------------

    def add_line(
        self, organization_id: UUID, code: str, spec: SeriesLineSpec
    ) -> NoSerieLineInfo:
        with unit_of_work(self._session, "add_series_line"):
            info = self._series.add_line(organization_id, code, spec)
        return info

    def update_line(self, organization_id: UUID, code: str, line_id: UUID, **changes) -> NoSerieLineInfo:
        """Change ending_no, warning_no, ending_date or open on one line."""
        with unit_of_work(self._session, "update_series_line"):
            info = self._series.update_line(organization_id, code, line_id, **changes)
        return info

    def delete_line(self, organization_id: UUID, code: str, line_id: UUID) -> None:
        with unit_of_work(self._session, "delete_series_line"):
            self._series.delete_line(organization_id, code, line_id)
