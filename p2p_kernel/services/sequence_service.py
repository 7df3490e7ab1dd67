"""
SequenceService -- gapless document number allocation per number series.

Responsibility:
    Issues the next number of a series (``PO-2026-0007``) inside the
    caller's transaction, registers caller-supplied manual numbers, and
    answers read-only validity / availability questions.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by the ledger (journal entry numbers), the receiving engine
    (receipt numbers), the payables services (invoice / payment numbers)
    and the SerieNoFacade.

Invariants enforced:
    - Uniqueness: NoSerieLine.last_no_used is advanced by compare-and-swap
      on NoSerieLine.version.  A caller that loses the race re-reads the
      line and tries again, up to ``max_attempts``.  Two callers can never
      both observe the same post-increment value.
    - Gapless: the line update and the issued_numbers row are written in
      the caller's transaction.  A rollback returns the number.
    - Range: a number past ``ending_no`` is never issued.
    - Date order: with ``date_order`` set, numbers are not issued for a
      date earlier than the line's ``last_date_used``.

Failure modes:
    - NoDefaultSeriesError: no default series for the document type.
    - EntityNotFoundError: unknown series code.
    - NoOpenSeriesLineError: no open line covers the date.
    - DateOutOfOrderError: date precedes the line's last date used.
    - SeriesExhaustedError: next number would exceed ``ending_no``.
    - AllocationConflictError: CAS lost ``max_attempts`` times in a row.
    - ManualNumbersNotAllowedError / ManualNumberConflictError /
      InvalidDocumentNumberError for manual registration.

Audit relevance:
    Every issued number is a row in issued_numbers.  Reaching a line's
    ``warning_no`` logs ``number_series_warning_threshold``.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from p2p_kernel.domain.clock import Clock
from p2p_kernel.domain.numbering import exceeds, in_range, increment_number, reaches
from p2p_kernel.exceptions import (
    AllocationConflictError,
    DateOutOfOrderError,
    EntityNotFoundError,
    InvalidDocumentNumberError,
    ManualNumberConflictError,
    ManualNumbersNotAllowedError,
    NoDefaultSeriesError,
    NoOpenSeriesLineError,
    SeriesExhaustedError,
)
from p2p_kernel.logging_config import get_logger
from p2p_kernel.models.number_series import DocumentType, IssuedNumber, NoSerie, NoSerieLine
from p2p_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceService(BaseService):
    """
    Number allocator for document series.

    Contract:
        ``next_number`` / ``next_number_by_type`` return a number that no
        other committed or in-flight transaction holds.  The increment is
        only visible once the caller commits.

    Non-goals:
        - Does NOT commit -- the caller owns the transaction.
        - Does NOT use dialect-specific row locks; contention is handled by
          the compare-and-swap retry loop.
    """

    DEFAULT_MAX_ATTEMPTS = 5

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        super().__init__(session, clock)
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def next_number(
        self,
        organization_id: UUID,
        series_code: str,
        as_of: date | None = None,
    ) -> str:
        series = self._get_series(organization_id, series_code)
        return self._allocate(series, as_of or self.clock.today())

    def next_number_by_type(
        self,
        organization_id: UUID,
        document_type: DocumentType,
        as_of: date | None = None,
    ) -> str:
        series = self._get_default_series(organization_id, DocumentType(document_type))
        return self._allocate(series, as_of or self.clock.today())

    def has_default_series(self, organization_id: UUID, document_type: DocumentType) -> bool:
        return self._find_default_series(organization_id, DocumentType(document_type)) is not None

    def register_manual_number(
        self,
        organization_id: UUID,
        series_code: str,
        number: str,
        as_of: date | None = None,
    ) -> str:
        """Record a caller-supplied number so automatic allocation skips it."""
        series = self._get_series(organization_id, series_code)
        return self._register_manual(series, number, as_of or self.clock.today())

    def register_manual_number_by_type(
        self,
        organization_id: UUID,
        document_type: DocumentType,
        number: str,
        as_of: date | None = None,
    ) -> str:
        series = self._get_default_series(organization_id, DocumentType(document_type))
        return self._register_manual(series, number, as_of or self.clock.today())

    # ------------------------------------------------------------------
    # Read-only checks
    # ------------------------------------------------------------------

    def validate_number(self, organization_id: UUID, series_code: str, number: str) -> bool:
        """True when ``number`` fits the pattern and bounds of any line."""
        series = self._get_series(organization_id, series_code)
        return self._line_for_number(series, number) is not None

    def is_number_available(self, organization_id: UUID, series_code: str, number: str) -> bool:
        """True when ``number`` is valid for the series and not yet issued."""
        series = self._get_series(organization_id, series_code)
        if self._line_for_number(series, number) is None:
            return False
        return not self._is_issued(series.id, number)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _allocate(self, series: NoSerie, as_of: date) -> str:
        for attempt in range(1, self._max_attempts + 1):
            line = self._select_line(series, as_of)

            if series.date_order and line.last_date_used and as_of < line.last_date_used:
                raise DateOutOfOrderError(series.code, as_of, line.last_date_used)

            candidate = self._next_candidate(series, line)
            last_date = max(as_of, line.last_date_used) if line.last_date_used else as_of

            result = self.session.execute(
                update(NoSerieLine)
                .where(
                    NoSerieLine.id == line.id,
                    NoSerieLine.version == line.version,
                )
                .values(
                    last_no_used=candidate,
                    last_date_used=last_date,
                    version=line.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info(
                    "number_allocation_conflict",
                    extra={
                        "series_code": series.code,
                        "line_id": str(line.id),
                        "attempt": attempt,
                    },
                )
                continue

            self.session.expire(line)
            if not self._record_issue(series, line.id, candidate, as_of, is_manual=False):
                # A manual registration took the number between our check
                # and insert; the line already moved past it.
                continue

            if reaches(candidate, line.warning_no):
                logger.warning(
                    "number_series_warning_threshold",
                    extra={
                        "organization_id": str(series.organization_id),
                        "series_code": series.code,
                        "number": candidate,
                        "warning_no": line.warning_no,
                        "ending_no": line.ending_no,
                    },
                )
            logger.debug(
                "number_allocated",
                extra={
                    "organization_id": str(series.organization_id),
                    "series_code": series.code,
                    "number": candidate,
                    "attempt": attempt,
                },
            )
            return candidate

        logger.warning(
            "number_allocation_exhausted_retries",
            extra={"series_code": series.code, "attempts": self._max_attempts},
        )
        raise AllocationConflictError(series.code, self._max_attempts)

    def _next_candidate(self, series: NoSerie, line: NoSerieLine) -> str:
        if line.last_no_used is None:
            candidate = line.starting_no
        else:
            candidate = increment_number(line.last_no_used, line.increment_by)
        while True:
            if exceeds(candidate, line.ending_no):
                raise SeriesExhaustedError(series.code, line.ending_no)
            if not self._is_issued(series.id, candidate):
                return candidate
            candidate = increment_number(candidate, line.increment_by)

    def _register_manual(self, series: NoSerie, number: str, as_of: date) -> str:
        if not series.manual_nos:
            raise ManualNumbersNotAllowedError(series.code)
        line = self._line_for_number(series, number)
        if line is None:
            raise InvalidDocumentNumberError(series.code, number)
        if self._is_issued(series.id, number) or not self._record_issue(
            series, line.id, number, as_of, is_manual=True
        ):
            raise ManualNumberConflictError(series.code, number)

        logger.info(
            "manual_number_registered",
            extra={
                "organization_id": str(series.organization_id),
                "series_code": series.code,
                "number": number,
            },
        )
        return number

    def _record_issue(
        self,
        series: NoSerie,
        line_id: UUID,
        number: str,
        as_of: date,
        is_manual: bool,
    ) -> bool:
        """Insert the issued_numbers row; False if the number is already taken."""
        try:
            with self.session.begin_nested():
                self.session.add(
                    IssuedNumber(
                        organization_id=series.organization_id,
                        series_id=series.id,
                        line_id=line_id,
                        number=number,
                        issued_on=as_of,
                        is_manual=is_manual,
                    )
                )
                self.session.flush()
        except IntegrityError:
            return False
        return True

    def _select_line(self, series: NoSerie, as_of: date) -> NoSerieLine:
        """Latest-starting open line covering ``as_of``, freshly read."""
        lines = self.session.execute(
            select(NoSerieLine)
            .where(NoSerieLine.series_id == series.id, NoSerieLine.open.is_(True))
            .execution_options(populate_existing=True)
        ).scalars().all()
        covering = [line for line in lines if line.covers(as_of)]
        if not covering:
            raise NoOpenSeriesLineError(series.code, as_of)
        return max(covering, key=lambda line: line.starting_date or date.min)

    def _line_for_number(self, series: NoSerie, number: str) -> NoSerieLine | None:
        lines = self.session.execute(
            select(NoSerieLine).where(NoSerieLine.series_id == series.id)
        ).scalars().all()
        for line in lines:
            if in_range(number, line.starting_no, line.ending_no):
                return line
        return None

    def _is_issued(self, series_id: UUID, number: str) -> bool:
        return self.session.execute(
            select(IssuedNumber.id).where(
                IssuedNumber.series_id == series_id,
                IssuedNumber.number == number,
            )
        ).first() is not None

    def _get_series(self, organization_id: UUID, series_code: str) -> NoSerie:
        series = self.session.execute(
            select(NoSerie).where(
                NoSerie.organization_id == organization_id,
                NoSerie.code == series_code,
            )
        ).scalar_one_or_none()
        if series is None:
            raise EntityNotFoundError("NoSerie", series_code)
        return series

    def _find_default_series(
        self, organization_id: UUID, document_type: DocumentType
    ) -> NoSerie | None:
        return self.session.execute(
            select(NoSerie).where(
                NoSerie.organization_id == organization_id,
                NoSerie.document_type == document_type.value,
                NoSerie.default_nos.is_(True),
            )
        ).scalar_one_or_none()

    def _get_default_series(self, organization_id: UUID, document_type: DocumentType) -> NoSerie:
        series = self._find_default_series(organization_id, document_type)
        if series is None:
            raise NoDefaultSeriesError(organization_id, document_type.value)
        return series
