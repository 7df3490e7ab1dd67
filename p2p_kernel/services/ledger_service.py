"""
LedgerService -- the single posting primitive.

Responsibility:
    Validates a set of journal lines, numbers them, and persists them as
    one balanced JournalEntry.  Posts reversals of existing entries and
    reads entries back as flat DTOs.

Architecture position:
    Kernel > Services -- imperative shell.  Every engine and facade posts
    through here; nothing else writes journal rows.

Invariants enforced:
    - Balance: sum(debit) == sum(credit), compared in integer minor units.
    - Each line has exactly one non-zero side, neither side negative.
    - At least two lines per entry.
    - Every account belongs to the organization and is active.
    - Append-only: no update or delete is exposed; db/immutability.py
      rejects them at the ORM level.
    - An entry is reversed at most once.

Failure modes:
    - UnbalancedEntryError, InvalidLineError, InvalidAmountError.
    - UnknownAccountError for foreign / missing / inactive accounts.
    - EntityNotFoundError for an unknown entry id.
    - EntryAlreadyReversedError on a second reversal.

Audit relevance:
    ``ledger_entry_posted`` and ``ledger_entry_reversed`` carry the entry id,
    number, reference and totals.

Non-goals:
    - Does NOT commit.  The calling engine or facade owns the transaction.
    - Does NOT resolve account roles (AccountConfigurationService does).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from p2p_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO, ensure_decimal, round_money, to_minor_units
from p2p_kernel.domain.clock import Clock
from p2p_kernel.domain.dtos import JournalEntryRecord, LineSpec
from p2p_kernel.exceptions import (
    EntityNotFoundError,
    EntryAlreadyReversedError,
    InvalidLineError,
    UnbalancedEntryError,
)
from p2p_kernel.logging_config import LogContext, get_logger
from p2p_kernel.models.journal import JournalEntry, JournalLine
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.services.base import BaseService
from p2p_kernel.services.chart_of_accounts import ChartOfAccountsService
from p2p_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger")


class LedgerService(BaseService):
    """
    Append-only store of balanced journal entries.

    When the organization has a default JOURNAL_ENTRY series, each entry
    also gets an entry_number from it, allocated in the same transaction.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        chart: ChartOfAccountsService | None = None,
        sequence: SequenceService | None = None,
        decimal_places: int = MONEY_DECIMAL_PLACES,
    ):
        super().__init__(session, clock)
        self._chart = chart or ChartOfAccountsService(session, self.clock)
        self._sequence = sequence or SequenceService(session, self.clock)
        self._decimal_places = decimal_places

    def post(
        self,
        organization_id: UUID,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        reference: str | None = None,
    ) -> UUID:
        """Validate and persist one entry; returns its id."""
        return self.write(
            organization_id, entry_date, description, lines, actor_id, reference
        ).id

    def write(
        self,
        organization_id: UUID,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        reference: str | None = None,
        reversal_of_id: UUID | None = None,
    ) -> JournalEntry:
        """Like ``post`` but returns the flushed ORM entry (kernel callers only)."""
        normalized = self._validate(lines)
        self._chart.require_postable(organization_id, {spec.account_id for spec in normalized})

        entry_number = None
        if self._sequence.has_default_series(organization_id, DocumentType.JOURNAL_ENTRY):
            entry_number = self._sequence.next_number_by_type(
                organization_id, DocumentType.JOURNAL_ENTRY, as_of=entry_date
            )

        entry = JournalEntry(
            organization_id=organization_id,
            entry_number=entry_number,
            entry_date=entry_date,
            description=description,
            reference=reference,
            reversal_of_id=reversal_of_id,
            created_by_id=actor_id,
        )
        for line_number, spec in enumerate(normalized, start=1):
            entry.lines.append(
                JournalLine(
                    line_number=line_number,
                    account_id=spec.account_id,
                    debit=spec.debit,
                    credit=spec.credit,
                    description=spec.description,
                    vendor_id=spec.vendor_id,
                )
            )
        self.session.add(entry)
        self.session.flush()

        total = sum((spec.debit for spec in normalized), ZERO)
        with LogContext.bind(entry_id=entry.id, document_number=entry_number):
            logger.info(
                "ledger_entry_posted",
                extra={
                    "organization_id": str(organization_id),
                    "entry_id": str(entry.id),
                    "entry_number": entry_number,
                    "reference": reference,
                    "line_count": len(normalized),
                    "total": str(total),
                    "reversal_of_id": str(reversal_of_id) if reversal_of_id else None,
                },
            )
        return entry

    def reverse(
        self,
        organization_id: UUID,
        entry_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        description: str | None = None,
    ) -> UUID:
        """Post the mirror image of ``entry_id``; returns the reversal's id."""
        original = self._get_model(organization_id, entry_id)
        existing = self._find_reversal(entry_id)
        if existing is not None:
            raise EntryAlreadyReversedError(entry_id, existing.id)

        mirrored = [
            LineSpec(
                account_id=line.account_id,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
                vendor_id=line.vendor_id,
            )
            for line in original.lines
        ]
        try:
            with self.session.begin_nested():
                reversal = self.write(
                    organization_id=organization_id,
                    entry_date=reversal_date or self.clock.today(),
                    description=description or f"Reversal of {original.entry_number or original.id}",
                    lines=mirrored,
                    actor_id=actor_id,
                    reference=original.reference,
                    reversal_of_id=original.id,
                )
        except IntegrityError:
            winner = self._find_reversal(entry_id)
            raise EntryAlreadyReversedError(entry_id, winner.id if winner else None) from None

        logger.info(
            "ledger_entry_reversed",
            extra={
                "organization_id": str(organization_id),
                "entry_id": str(entry_id),
                "reversal_entry_id": str(reversal.id),
            },
        )
        return reversal.id

    def get_entry(self, organization_id: UUID, entry_id: UUID) -> JournalEntryRecord:
        return self._get_model(organization_id, entry_id).to_dto()

    def _validate(self, lines: Sequence[LineSpec]) -> list[LineSpec]:
        if len(lines) < 2:
            raise InvalidLineError(None, "an entry needs at least two lines")

        normalized: list[LineSpec] = []
        for line_number, spec in enumerate(lines, start=1):
            debit = round_money(ensure_decimal("debit", spec.debit), self._decimal_places)
            credit = round_money(ensure_decimal("credit", spec.credit), self._decimal_places)
            if debit < ZERO or credit < ZERO:
                raise InvalidLineError(line_number, "amounts must not be negative")
            if debit > ZERO and credit > ZERO:
                raise InvalidLineError(line_number, "both debit and credit are non-zero")
            if debit == ZERO and credit == ZERO:
                raise InvalidLineError(line_number, "debit and credit are both zero")
            normalized.append(
                LineSpec(
                    account_id=spec.account_id,
                    debit=debit,
                    credit=credit,
                    description=spec.description,
                    vendor_id=spec.vendor_id,
                )
            )

        debits = sum((spec.debit for spec in normalized), ZERO)
        credits = sum((spec.credit for spec in normalized), ZERO)
        if to_minor_units(debits, self._decimal_places) != to_minor_units(credits, self._decimal_places):
            raise UnbalancedEntryError(debits, credits)
        return normalized

    def _find_reversal(self, entry_id: UUID) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(JournalEntry.reversal_of_id == entry_id)
        ).scalar_one_or_none()

    def _get_model(self, organization_id: UUID, entry_id: UUID) -> JournalEntry:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None or entry.organization_id != organization_id:
            raise EntityNotFoundError("JournalEntry", entry_id)
        return entry

