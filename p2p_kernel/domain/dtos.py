"""
Data transfer objects for the ledger and account registry.

Frozen dataclasses that cross service boundaries.  Services return these
instead of ORM instances so callers never trigger lazy loads on a closed
session.  Validation of line amounts is NOT done here -- the Ledger does
it so it can raise typed errors with line numbers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

ZERO = Decimal("0")


@dataclass(frozen=True)
class AccountInfo:
    """Read-side view of a chart-of-accounts entry."""

    id: UUID
    organization_id: UUID
    code: str
    name: str
    account_class: str
    system_role: str | None
    is_active: bool
    currency: str
    parent_account_id: UUID | None = None
    description: str | None = None


@dataclass(frozen=True)
class LineSpec:
    """
    Caller's request for one journal line.

    Exactly one of ``debit`` / ``credit`` must be non-zero; the Ledger
    enforces it.  ``vendor_id`` is carried for AP traceability.
    """

    account_id: UUID
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None
    vendor_id: UUID | None = None

    @classmethod
    def dr(cls, account_id: UUID, amount: Decimal, description: str | None = None,
           vendor_id: UUID | None = None) -> LineSpec:
        return cls(account_id=account_id, debit=amount, description=description, vendor_id=vendor_id)

    @classmethod
    def cr(cls, account_id: UUID, amount: Decimal, description: str | None = None,
           vendor_id: UUID | None = None) -> LineSpec:
        return cls(account_id=account_id, credit=amount, description=description, vendor_id=vendor_id)


@dataclass(frozen=True)
class JournalLineRecord:
    line_number: int
    account_id: UUID
    debit: Decimal
    credit: Decimal
    description: str | None
    vendor_id: UUID | None


@dataclass(frozen=True)
class JournalEntryRecord:
    """
    A posted journal entry.

    Guarantees:
        - lines ordered by line_number starting at 1
        - total_debits == total_credits
    """

    id: UUID
    organization_id: UUID
    entry_number: str | None
    entry_date: date
    description: str
    reference: str | None
    reversal_of_id: UUID | None
    created_at: datetime | None
    created_by_id: UUID
    lines: tuple[JournalLineRecord, ...] = field(default_factory=tuple)

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)


@dataclass(frozen=True)
class SeriesLineSpec:
    """Caller's definition of a number range."""

    starting_no: str
    ending_no: str | None = None
    warning_no: str | None = None
    starting_date: date | None = None
    ending_date: date | None = None
    increment_by: int = 1
    open: bool = True


@dataclass(frozen=True)
class NoSerieLineInfo:
    id: UUID
    starting_no: str
    ending_no: str | None
    warning_no: str | None
    last_no_used: str | None
    starting_date: date | None
    ending_date: date | None
    increment_by: int
    open: bool
    last_date_used: date | None


@dataclass(frozen=True)
class NoSerieInfo:
    """Read-side view of a number series and its ranges."""

    id: UUID
    organization_id: UUID
    code: str
    description: str
    document_type: str
    default_nos: bool
    manual_nos: bool
    date_order: bool
    lines: tuple[NoSerieLineInfo, ...] = field(default_factory=tuple)
