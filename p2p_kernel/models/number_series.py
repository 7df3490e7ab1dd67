"""
Module: p2p_kernel.models.number_series
Responsibility: ORM persistence for document number series (NoSerie), their
    date-bounded ranges (NoSerieLine), and the register of every number a
    series has issued (IssuedNumber).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (organization_id, code) unique per series.
    - At most one default series per (organization_id, document_type)
      (partial unique index on default_nos).
    - (series_id, number) unique in issued_numbers -- the storage-level
      backstop against duplicate issuance.
    - NoSerieLine.version is bumped on every allocation; the sequence
      service compares-and-swaps on it.

Audit relevance:
    issued_numbers is the evidence that numbering is gapless: every issued
    number has a row written in the same transaction as the document that
    consumed it.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from p2p_kernel.db.base import Base, OrganizationScoped, TrackedBase


class DocumentType(str, Enum):
    """Document families that draw numbers from a series."""

    CUSTOMER = "customer"
    VENDOR = "vendor"
    SALES_INVOICE = "sales_invoice"
    SALES_ORDER = "sales_order"
    PURCHASE_INVOICE = "purchase_invoice"
    PURCHASE_ORDER = "purchase_order"
    PURCHASE_RECEIPT = "purchase_receipt"
    PRODUCT = "product"
    PRODUCT_VARIANT = "product_variant"
    PAYMENT = "payment"
    JOURNAL_ENTRY = "journal_entry"
    WALLET_TRANSACTION = "wallet_transaction"
    STOCK_MOVEMENT = "stock_movement"
    CONTACT = "contact"


class NoSerie(OrganizationScoped, TrackedBase):
    """A named number series for one document type."""

    __tablename__ = "no_series"

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_no_series_org_code"),
        Index(
            "uq_no_series_default_per_type",
            "organization_id",
            "document_type",
            unique=True,
            postgresql_where=text("default_nos"),
            sqlite_where=text("default_nos"),
        ),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    document_type: Mapped[str] = mapped_column(String(40), nullable=False)
    default_nos: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    manual_nos: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    date_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    lines: Mapped[list["NoSerieLine"]] = relationship(
        back_populates="series",
        cascade="all, delete-orphan",
        order_by="NoSerieLine.starting_date",
        lazy="selectin",
    )

    def to_dto(self):
        from p2p_kernel.domain.dtos import NoSerieInfo

        return NoSerieInfo(
            id=self.id,
            organization_id=self.organization_id,
            code=self.code,
            description=self.description,
            document_type=self.document_type,
            default_nos=self.default_nos,
            manual_nos=self.manual_nos,
            date_order=self.date_order,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<NoSerie {self.code} ({self.document_type})>"


class NoSerieLine(OrganizationScoped, Base):
    """
    One number range of a series, valid from ``starting_date``.

    ``last_no_used`` is None until the first allocation, which issues
    ``starting_no`` itself.
    """

    __tablename__ = "no_serie_lines"

    __table_args__ = (
        Index("idx_no_serie_lines_series", "series_id"),
    )

    series_id: Mapped[UUID] = mapped_column(ForeignKey("no_series.id"), nullable=False)
    starting_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    ending_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    starting_no: Mapped[str] = mapped_column(String(20), nullable=False)
    ending_no: Mapped[str | None] = mapped_column(String(20), nullable=True)
    warning_no: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_no_used: Mapped[str | None] = mapped_column(String(20), nullable=True)
    increment_by: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_date_used: Mapped[date | None] = mapped_column(Date, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    series: Mapped[NoSerie] = relationship(back_populates="lines")

    def covers(self, as_of: date) -> bool:
        if self.starting_date is not None and as_of < self.starting_date:
            return False
        if self.ending_date is not None and as_of > self.ending_date:
            return False
        return True

    def to_dto(self):
        from p2p_kernel.domain.dtos import NoSerieLineInfo

        return NoSerieLineInfo(
            id=self.id,
            starting_no=self.starting_no,
            ending_no=self.ending_no,
            warning_no=self.warning_no,
            last_no_used=self.last_no_used,
            starting_date=self.starting_date,
            ending_date=self.ending_date,
            increment_by=self.increment_by,
            open=self.open,
            last_date_used=self.last_date_used,
        )

    def __repr__(self) -> str:
        return f"<NoSerieLine {self.starting_no}..{self.ending_no} last={self.last_no_used}>"


class IssuedNumber(OrganizationScoped, Base):
    """A number issued from a series, automatically or by hand."""

    __tablename__ = "issued_numbers"

    __table_args__ = (
        UniqueConstraint("series_id", "number", name="uq_issued_numbers_series_number"),
    )

    series_id: Mapped[UUID] = mapped_column(ForeignKey("no_series.id"), nullable=False)
    line_id: Mapped[UUID | None] = mapped_column(ForeignKey("no_serie_lines.id"), nullable=True)
    number: Mapped[str] = mapped_column(String(20), nullable=False)
    issued_on: Mapped[date] = mapped_column(Date, nullable=False)
    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
