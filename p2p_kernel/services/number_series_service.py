"""
NumberSeriesService -- configuration of document number series.

Responsibility:
    CRUD for NoSerie and NoSerieLine: create a series with its ranges,
    flip the default series of a document type, add / update / remove
    ranges, and look series up by code or type.

Architecture position:
    Kernel > Services -- imperative shell.  Exposed through the
    SerieNoFacade; the allocator itself lives in sequence_service.

Invariants enforced:
    - Series code unique per organization.
    - At most one default series per (organization, document type):
      making a series default clears the previous default first.
    - Ranges are well formed: shared prefix, start <= end, warning inside
      the range, increment >= 1.
    - A range that has issued numbers cannot be deleted or re-based.
    - Range edits compare-and-swap on NoSerieLine.version so they never
      overwrite a concurrent allocation.

Failure modes:
    - DuplicateSeriesCodeError, InvalidSeriesLineError (validation).
    - SeriesLineInUseError, OptimisticLockError (state conflicts).
    - EntityNotFoundError / NoDefaultSeriesError (lookups).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from p2p_kernel.domain.dtos import NoSerieInfo, NoSerieLineInfo, SeriesLineSpec
from p2p_kernel.domain.numbering import in_range, is_well_formed_range
from p2p_kernel.exceptions import (
    DuplicateSeriesCodeError,
    EntityNotFoundError,
    InvalidSeriesLineError,
    NoDefaultSeriesError,
    OptimisticLockError,
    SeriesLineInUseError,
)
from p2p_kernel.logging_config import get_logger
from p2p_kernel.models.number_series import DocumentType, IssuedNumber, NoSerie, NoSerieLine
from p2p_kernel.services.base import BaseService

logger = get_logger("services.number_series")

_UNSET = object()


class NumberSeriesService(BaseService):
    """Maintains number series and their ranges for one session."""

    def create_series(
        self,
        organization_id: UUID,
        code: str,
        document_type: DocumentType,
        actor_id: UUID,
        description: str = "",
        default_nos: bool = False,
        manual_nos: bool = False,
        date_order: bool = False,
        lines: Sequence[SeriesLineSpec] = (),
    ) -> NoSerieInfo:
        document_type = DocumentType(document_type)
        if self._find(organization_id, code) is not None:
            raise DuplicateSeriesCodeError(organization_id, code)
        for spec in lines:
            self._validate_spec(code, spec)

        if default_nos:
            self._clear_default(organization_id, document_type)

        series = NoSerie(
            organization_id=organization_id,
            code=code,
            description=description,
            document_type=document_type.value,
            default_nos=default_nos,
            manual_nos=manual_nos,
            date_order=date_order,
            created_by_id=actor_id,
        )
        for spec in lines:
            series.lines.append(self._line_from_spec(organization_id, spec))

        try:
            with self.session.begin_nested():
                self.session.add(series)
                self.session.flush()
        except IntegrityError:
            raise DuplicateSeriesCodeError(organization_id, code) from None

        logger.info(
            "number_series_created",
            extra={
                "organization_id": str(organization_id),
                "series_code": code,
                "document_type": document_type.value,
                "default_nos": default_nos,
                "line_count": len(lines),
            },
        )
        return series.to_dto()

    def get_series(self, organization_id: UUID, code: str) -> NoSerieInfo:
        return self._get(organization_id, code).to_dto()

    def get_series_by_type(
        self, organization_id: UUID, document_type: DocumentType
    ) -> list[NoSerieInfo]:
        rows = self.session.execute(
            select(NoSerie)
            .where(
                NoSerie.organization_id == organization_id,
                NoSerie.document_type == DocumentType(document_type).value,
            )
            .order_by(NoSerie.code)
        ).scalars()
        return [s.to_dto() for s in rows]

    def get_default_series(self, organization_id: UUID, document_type: DocumentType) -> NoSerieInfo:
        document_type = DocumentType(document_type)
        series = self.session.execute(
            select(NoSerie).where(
                NoSerie.organization_id == organization_id,
                NoSerie.document_type == document_type.value,
                NoSerie.default_nos.is_(True),
            )
        ).scalar_one_or_none()
        if series is None:
            raise NoDefaultSeriesError(organization_id, document_type.value)
        return series.to_dto()

    def set_default(self, organization_id: UUID, code: str, actor_id: UUID) -> NoSerieInfo:
        series = self._get(organization_id, code)
        if not series.default_nos:
            self._clear_default(organization_id, DocumentType(series.document_type))
            series.default_nos = True
            series.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "number_series_default_changed",
                extra={
                    "organization_id": str(organization_id),
                    "series_code": code,
                    "document_type": series.document_type,
                },
            )
        return series.to_dto()

    def update_series(
        self,
        organization_id: UUID,
        code: str,
        actor_id: UUID,
        description: str | None = None,
        manual_nos: bool | None = None,
        date_order: bool | None = None,
    ) -> NoSerieInfo:
        series = self._get(organization_id, code)
        if description is not None:
            series.description = description
        if manual_nos is not None:
            series.manual_nos = manual_nos
        if date_order is not None:
            series.date_order = date_order
        series.updated_by_id = actor_id
        self.session.flush()
        return series.to_dto()

    def delete_series(self, organization_id: UUID, code: str) -> None:
        series = self._get(organization_id, code)
        for line in series.lines:
            self._ensure_unused(series, line)
        self.session.delete(series)
        self.session.flush()
        logger.info(
            "number_series_deleted",
            extra={"organization_id": str(organization_id), "series_code": code},
        )

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def add_line(self, organization_id: UUID, code: str, spec: SeriesLineSpec) -> NoSerieLineInfo:
        series = self._get(organization_id, code)
        self._validate_spec(code, spec)
        line = self._line_from_spec(organization_id, spec)
        series.lines.append(line)
        self.session.flush()
        logger.info(
            "number_series_line_added",
            extra={
                "series_code": code,
                "line_id": str(line.id),
                "starting_no": spec.starting_no,
                "ending_no": spec.ending_no,
            },
        )
        return line.to_dto()

    def update_line(
        self,
        organization_id: UUID,
        code: str,
        line_id: UUID,
        ending_no=_UNSET,
        warning_no=_UNSET,
        ending_date=_UNSET,
        open: bool | None = None,
    ) -> NoSerieLineInfo:
        """Edit the mutable parts of a range (bounds, warning, open flag)."""
        series = self._get(organization_id, code)
        line = self._get_line(series, line_id)

        changes: dict = {}
        if ending_no is not _UNSET:
            changes["ending_no"] = ending_no
        if warning_no is not _UNSET:
            changes["warning_no"] = warning_no
        if ending_date is not _UNSET:
            changes["ending_date"] = ending_date
        if open is not None:
            changes["open"] = open
        if not changes:
            return line.to_dto()

        spec = SeriesLineSpec(
            starting_no=line.starting_no,
            ending_no=changes.get("ending_no", line.ending_no),
            warning_no=changes.get("warning_no", line.warning_no),
            starting_date=line.starting_date,
            ending_date=changes.get("ending_date", line.ending_date),
            increment_by=line.increment_by,
            open=changes.get("open", line.open),
        )
        self._validate_spec(code, spec)
        if line.last_no_used is not None and spec.ending_no is not None and not in_range(
            line.last_no_used, line.starting_no, spec.ending_no
        ):
            raise InvalidSeriesLineError(
                code, f"ending_no {spec.ending_no} is below last used {line.last_no_used}"
            )

        result = self.session.execute(
            update(NoSerieLine)
            .where(NoSerieLine.id == line.id, NoSerieLine.version == line.version)
            .values(version=line.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise OptimisticLockError("NoSerieLine", line.id)
        self.session.expire(line)

        logger.info(
            "number_series_line_updated",
            extra={"series_code": code, "line_id": str(line_id), "fields": sorted(changes)},
        )
        return line.to_dto()

    def delete_line(self, organization_id: UUID, code: str, line_id: UUID) -> None:
        series = self._get(organization_id, code)
        line = self._get_line(series, line_id)
        self._ensure_unused(series, line)
        series.lines.remove(line)
        self.session.flush()
        logger.info(
            "number_series_line_deleted",
            extra={"series_code": code, "line_id": str(line_id)},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_spec(self, code: str, spec: SeriesLineSpec) -> None:
        if spec.increment_by < 1:
            raise InvalidSeriesLineError(code, "increment_by must be at least 1")
        if not is_well_formed_range(spec.starting_no, spec.ending_no):
            raise InvalidSeriesLineError(
                code, f"range {spec.starting_no}..{spec.ending_no} is malformed"
            )
        if spec.warning_no is not None and not in_range(
            spec.warning_no, spec.starting_no, spec.ending_no
        ):
            raise InvalidSeriesLineError(code, f"warning_no {spec.warning_no} is outside the range")
        if spec.starting_date and spec.ending_date and spec.ending_date < spec.starting_date:
            raise InvalidSeriesLineError(code, "ending_date precedes starting_date")

    @staticmethod
    def _line_from_spec(organization_id: UUID, spec: SeriesLineSpec) -> NoSerieLine:
        return NoSerieLine(
            organization_id=organization_id,
            starting_no=spec.starting_no,
            ending_no=spec.ending_no,
            warning_no=spec.warning_no,
            starting_date=spec.starting_date,
            ending_date=spec.ending_date,
            increment_by=spec.increment_by,
            open=spec.open,
            version=0,
        )

    def _ensure_unused(self, series: NoSerie, line: NoSerieLine) -> None:
        issued = self.session.execute(
            select(IssuedNumber.id).where(IssuedNumber.line_id == line.id).limit(1)
        ).first()
        if line.last_no_used is not None or issued is not None:
            raise SeriesLineInUseError(series.code, line.id)

    def _clear_default(self, organization_id: UUID, document_type: DocumentType) -> None:
        current = self.session.execute(
            select(NoSerie).where(
                NoSerie.organization_id == organization_id,
                NoSerie.document_type == document_type.value,
                NoSerie.default_nos.is_(True),
            )
        ).scalar_one_or_none()
        if current is not None:
            current.default_nos = False
            self.session.flush()

    def _find(self, organization_id: UUID, code: str) -> NoSerie | None:
        return self.session.execute(
            select(NoSerie).where(
                NoSerie.organization_id == organization_id,
                NoSerie.code == code,
            )
        ).scalar_one_or_none()

    def _get(self, organization_id: UUID, code: str) -> NoSerie:
        series = self._find(organization_id, code)
        if series is None:
            raise EntityNotFoundError("NoSerie", code)
        return series

    @staticmethod
    def _get_line(series: NoSerie, line_id: UUID) -> NoSerieLine:
        for line in series.lines:
            if line.id == line_id:
                return line
        raise EntityNotFoundError("NoSerieLine", line_id)


def current_year_range(code: str, year: int) -> SeriesLineSpec:
    """Range ``CODE-YYYY-0001..CODE-YYYY-9999`` starting Jan 1, warning at 9800."""
    return SeriesLineSpec(
        starting_no=f"{code}-{year}-0001",
        ending_no=f"{code}-{year}-9999",
        warning_no=f"{code}-{year}-9800",
        starting_date=date(year, 1, 1),
        increment_by=1,
    )
