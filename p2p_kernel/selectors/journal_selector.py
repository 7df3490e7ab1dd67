"""
Module: p2p_kernel.selectors.journal_selector
Responsibility: Read-only query access to journal entries and their lines.
Architecture position: Kernel > Selectors.  May import from models/, domain
    DTOs and selectors/base.py.

Invariants enforced:
    - Read-only.
    - Entries come back as JournalEntryRecord, lines ordered by line_number.

Failure modes:
    - Returns None or an empty list when nothing matches; never raises on
      absence of data.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from p2p_kernel.domain.dtos import JournalEntryRecord
from p2p_kernel.models.journal import JournalEntry, JournalLine
from p2p_kernel.selectors.base import BaseSelector


class JournalSelector(BaseSelector):
    """Read-side queries over the journal."""

    def get_entry(self, entry_id: UUID) -> JournalEntryRecord | None:
        entry = self.session.get(JournalEntry, entry_id)
        return entry.to_dto() if entry else None

    def get_entries_by_reference(
        self, organization_id: UUID, reference: str
    ) -> list[JournalEntryRecord]:
        """Entries posted for a business document, oldest first."""
        rows = self.session.execute(
            select(JournalEntry)
            .where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.reference == reference,
            )
            .order_by(JournalEntry.created_at, JournalEntry.id)
        ).scalars()
        return [e.to_dto() for e in rows]

    def count_by_reference(self, organization_id: UUID, reference: str) -> int:
        return self.session.execute(
            select(func.count(JournalEntry.id)).where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.reference == reference,
            )
        ).scalar_one()

    def get_entries_by_date_range(
        self, organization_id: UUID, start_date: date, end_date: date
    ) -> list[JournalEntryRecord]:
        rows = self.session.execute(
            select(JournalEntry)
            .where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
            .order_by(JournalEntry.entry_date, JournalEntry.created_at)
        ).scalars()
        return [e.to_dto() for e in rows]

    def account_activity(
        self, organization_id: UUID, account_id: UUID
    ) -> tuple[Decimal, Decimal]:
        """Total (debits, credits) posted to an account."""
        debits, credits = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalEntry.id == JournalLine.entry_id)
            .where(
                JournalEntry.organization_id == organization_id,
                JournalLine.account_id == account_id,
            )
        ).one()
        return Decimal(debits), Decimal(credits)

    def account_balance(self, organization_id: UUID, account_id: UUID) -> Decimal:
        """Debits minus credits posted to an account."""
        debits, credits = self.account_activity(organization_id, account_id)
        return debits - credits
