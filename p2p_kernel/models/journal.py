"""
Module: p2p_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    authoritative financial record.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (entry_id, line_number) unique; line numbers start at 1.
    - debit >= 0, credit >= 0, exactly one non-zero (CHECK constraints back
      the Ledger's validation).
    - Append-only: db/immutability.py rejects UPDATE/DELETE.
    - An entry is reversed at most once (unique reversal_of_id).

Failure modes:
    - IntegrityError on a second reversal of the same entry.
    - ImmutabilityViolationError on UPDATE/DELETE.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from p2p_kernel.db.base import Base, OrganizationScoped, TrackedBase


class JournalEntry(OrganizationScoped, TrackedBase):
    """
    A balanced set of journal lines recording one business event.

    ``lines`` is loaded with selectin so a fetched entry is complete without
    touching the session again.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("reversal_of_id", name="uq_journal_entries_reversal_of"),
        UniqueConstraint(
            "organization_id", "entry_number", name="uq_journal_entries_org_number"
        ),
        Index("idx_journal_entries_org_date", "organization_id", "entry_date"),
        Index("idx_journal_entries_reference", "organization_id", "reference"),
    )

    entry_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        order_by="JournalLine.line_number",
        lazy="selectin",
    )

    def to_dto(self):
        from p2p_kernel.domain.dtos import JournalEntryRecord

        return JournalEntryRecord(
            id=self.id,
            organization_id=self.organization_id,
            entry_number=self.entry_number,
            entry_date=self.entry_date,
            description=self.description,
            reference=self.reference,
            reversal_of_id=self.reversal_of_id,
            created_at=self.created_at,
            created_by_id=self.created_by_id,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number or self.id} {self.entry_date}>"


class JournalLine(Base):
    """One debit or credit against an account."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        UniqueConstraint("entry_id", "line_number", name="uq_journal_lines_entry_line"),
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_journal_lines_non_negative"),
        CheckConstraint(
            "(debit = 0 AND credit > 0) OR (debit > 0 AND credit = 0)",
            name="ck_journal_lines_one_side",
        ),
        Index("idx_journal_lines_account", "account_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(ForeignKey("journal_entries.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    account_id: Mapped[UUID] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    debit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    vendor_id: Mapped[UUID | None] = mapped_column(nullable=True)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    def to_dto(self):
        from p2p_kernel.domain.dtos import JournalLineRecord

        return JournalLineRecord(
            line_number=self.line_number,
            account_id=self.account_id,
            debit=self.debit,
            credit=self.credit,
            description=self.description,
            vendor_id=self.vendor_id,
        )
