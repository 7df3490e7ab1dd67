"""
Tests for NumberSeriesService and the default series seeder.

Covers series creation, the single-default-per-type rule, line range
validation, line edits against already issued numbers, and seeding.
"""

from datetime import date
from uuid import uuid4

import pytest

from p2p_kernel.domain.dtos import SeriesLineSpec
from p2p_kernel.exceptions import (
    DuplicateSeriesCodeError,
    EntityNotFoundError,
    InvalidSeriesLineError,
    NoDefaultSeriesError,
    SeriesLineInUseError,
)
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.services.number_series_seeder import DEFAULT_SERIES, seed_default_series
from p2p_kernel.services.number_series_service import NumberSeriesService
from p2p_kernel.services.sequence_service import SequenceService

AS_OF = date(2026, 1, 15)
PO_RANGE = SeriesLineSpec("PO-0001", "PO-9999", warning_no="PO-9900")


@pytest.fixture
def series_service(session):
    return NumberSeriesService(session)


class TestSeries:
    def test_create_and_fetch(self, series_service, org_id, test_actor_id):
        info = series_service.create_series(
            org_id,
            "PO",
            DocumentType.PURCHASE_ORDER,
            test_actor_id,
            description="Purchase orders",
            default_nos=True,
            lines=[PO_RANGE],
        )

        fetched = series_service.get_series(org_id, "PO")
        assert fetched.id == info.id
        assert fetched.document_type == DocumentType.PURCHASE_ORDER
        assert fetched.default_nos
        assert len(fetched.lines) == 1
        assert fetched.lines[0].starting_no == "PO-0001"
        assert fetched.lines[0].last_no_used is None

    def test_duplicate_code(self, series_service, org_id, test_actor_id):
        series_service.create_series(org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id)
        with pytest.raises(DuplicateSeriesCodeError):
            series_service.create_series(org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id)

    def test_unknown_series(self, series_service, org_id):
        with pytest.raises(EntityNotFoundError):
            series_service.get_series(org_id, "NOPE")

    def test_one_default_per_document_type(self, series_service, org_id, test_actor_id):
        series_service.create_series(
            org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id, default_nos=True
        )
        series_service.create_series(
            org_id, "PO2", DocumentType.PURCHASE_ORDER, test_actor_id, default_nos=True
        )

        assert series_service.get_default_series(org_id, DocumentType.PURCHASE_ORDER).code == "PO2"
        assert not series_service.get_series(org_id, "PO").default_nos

        series_service.set_default(org_id, "PO", test_actor_id)
        assert series_service.get_default_series(org_id, DocumentType.PURCHASE_ORDER).code == "PO"
        assert not series_service.get_series(org_id, "PO2").default_nos

    def test_no_default(self, series_service, org_id):
        with pytest.raises(NoDefaultSeriesError):
            series_service.get_default_series(org_id, DocumentType.PAYMENT)

    def test_update_flags(self, series_service, org_id, test_actor_id):
        series_service.create_series(org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id)
        info = series_service.update_series(
            org_id, "PO", test_actor_id, description="Orders", manual_nos=True, date_order=True
        )
        assert info.description == "Orders"
        assert info.manual_nos
        assert info.date_order

    def test_delete_unused_series(self, series_service, org_id, test_actor_id):
        series_service.create_series(
            org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id, lines=[PO_RANGE]
        )
        series_service.delete_series(org_id, "PO")
        with pytest.raises(EntityNotFoundError):
            series_service.get_series(org_id, "PO")

    def test_delete_used_series_refused(self, session, series_service, org_id, test_actor_id):
        series_service.create_series(
            org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id, lines=[PO_RANGE]
        )
        SequenceService(session).next_number(org_id, "PO", AS_OF)
        with pytest.raises(SeriesLineInUseError):
            series_service.delete_series(org_id, "PO")


class TestLineValidation:
    @pytest.mark.parametrize(
        "spec",
        [
            SeriesLineSpec("PO-0001", "PO-0001", increment_by=0),
            SeriesLineSpec("PO-0009", "PO-0001"),
            SeriesLineSpec("PO-0001", "SO-9999"),
            SeriesLineSpec("PO-0001", "PO-0100", warning_no="PO-0200"),
            SeriesLineSpec(
                "PO-0001",
                "PO-9999",
                starting_date=date(2026, 6, 1),
                ending_date=date(2026, 1, 1),
            ),
        ],
    )
    def test_invalid_ranges(self, series_service, org_id, test_actor_id, spec):
        with pytest.raises(InvalidSeriesLineError):
            series_service.create_series(
                org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id, lines=[spec]
            )


class TestLines:
    @pytest.fixture
    def po_series(self, series_service, org_id, test_actor_id):
        return series_service.create_series(
            org_id, "PO", DocumentType.PURCHASE_ORDER, test_actor_id, lines=[PO_RANGE]
        )

    def test_add_line(self, series_service, org_id, po_series):
        line = series_service.add_line(
            org_id, "PO", SeriesLineSpec("PO-A0001", "PO-A9999", starting_date=date(2027, 1, 1))
        )
        assert line.starting_no == "PO-A0001"
        assert len(series_service.get_series(org_id, "PO").lines) == 2

    def test_update_line(self, series_service, org_id, po_series):
        line_id = po_series.lines[0].id
        updated = series_service.update_line(
            org_id, "PO", line_id, ending_no="PO-5000", warning_no="PO-4900"
        )
        assert updated.ending_no == "PO-5000"
        assert updated.warning_no == "PO-4900"

    def test_close_line(self, series_service, org_id, po_series):
        updated = series_service.update_line(org_id, "PO", po_series.lines[0].id, open=False)
        assert not updated.open

    def test_update_line_rejects_invalid_range(self, series_service, org_id, po_series):
        with pytest.raises(InvalidSeriesLineError):
            series_service.update_line(org_id, "PO", po_series.lines[0].id, warning_no="SO-0001")

    def test_ending_below_last_used(self, session, series_service, org_id, po_series):
        sequence = SequenceService(session)
        for _ in range(3):
            sequence.next_number(org_id, "PO", AS_OF)

        with pytest.raises(InvalidSeriesLineError):
            series_service.update_line(
                org_id, "PO", po_series.lines[0].id, ending_no="PO-0002", warning_no=None
            )

    def test_delete_unused_line(self, series_service, org_id, po_series):
        series_service.delete_line(org_id, "PO", po_series.lines[0].id)
        assert series_service.get_series(org_id, "PO").lines == ()

    def test_delete_used_line_refused(self, session, series_service, org_id, po_series):
        SequenceService(session).next_number(org_id, "PO", AS_OF)
        with pytest.raises(SeriesLineInUseError):
            series_service.delete_line(org_id, "PO", po_series.lines[0].id)

    def test_unknown_line(self, series_service, org_id, po_series):
        with pytest.raises(EntityNotFoundError):
            series_service.delete_line(org_id, "PO", uuid4())


class TestSeeder:
    def test_seeds_every_default_series(self, session, series_service, org_id, test_actor_id):
        created = seed_default_series(session, org_id, test_actor_id, 2026)

        assert created == [code for code, _, _ in DEFAULT_SERIES]
        payment = series_service.get_default_series(org_id, DocumentType.PAYMENT)
        assert payment.code == "PAY"
        line = payment.lines[0]
        assert (line.starting_no, line.ending_no, line.warning_no) == (
            "PAY-2026-0001",
            "PAY-2026-9999",
            "PAY-2026-9800",
        )
        assert line.starting_date == date(2026, 1, 1)
        assert not payment.manual_nos

    def test_seeding_logged(self, session, org_id, test_actor_id, captured_logs):
        created = seed_default_series(session, org_id, test_actor_id, 2026)

        record = next(r for r in captured_logs() if r["message"] == "default_series_seeded")
        assert record["level"] == "INFO"
        assert record["created_codes"] == created
        assert record["year"] == 2026

    def test_seeding_is_idempotent(self, session, org_id, test_actor_id):
        seed_default_series(session, org_id, test_actor_id, 2026)
        assert seed_default_series(session, org_id, test_actor_id, 2026) == []

    def test_existing_default_is_kept(self, session, series_service, org_id, test_actor_id):
        series_service.create_series(
            org_id, "OC", DocumentType.PURCHASE_ORDER, test_actor_id, default_nos=True
        )
        seed_default_series(session, org_id, test_actor_id, 2026)

        assert series_service.get_default_series(org_id, DocumentType.PURCHASE_ORDER).code == "OC"
        assert not series_service.get_series(org_id, "PO").default_nos

    def test_seeded_series_issue_numbers(self, session, org_id, seeded_series):
        sequence = SequenceService(session)
        assert sequence.next_number_by_type(org_id, DocumentType.PURCHASE_RECEIPT, AS_OF) == (
            "PREC-2026-0001"
        )
