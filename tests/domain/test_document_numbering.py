"""
Tests for document number arithmetic (``p2p_kernel.domain.numbering``).

Numbers keep their prefix, zero-padded width and suffix when incremented.
"""

import pytest

from p2p_kernel.domain.numbering import (
    exceeds,
    in_range,
    increment_number,
    is_well_formed_range,
    parse_number,
    reaches,
)


class TestParseNumber:
    def test_splits_prefix_counter_suffix(self):
        parsed = parse_number("PO-2026-0042/A")
        assert parsed.prefix == "PO-2026-"
        assert parsed.value == 42
        assert parsed.width == 4
        assert parsed.suffix == "/A"

    def test_number_without_digits_rejected(self):
        with pytest.raises(ValueError):
            parse_number("PO-")


class TestIncrementNumber:
    """The trailing counter advances; padding is preserved."""

    @pytest.mark.parametrize(
        "number, by, expected",
        [
            ("PO-0005", 1, "PO-0006"),
            ("PO-0009", 1, "PO-0010"),
            ("PO-2026-0001", 10, "PO-2026-0011"),
            ("INV9", 1, "INV10"),
            ("A-001-X", 2, "A-003-X"),
        ],
    )
    def test_increment(self, number, by, expected):
        assert increment_number(number, by) == expected

    def test_non_positive_increment_rejected(self):
        with pytest.raises(ValueError):
            increment_number("PO-0001", 0)


class TestRangeChecks:
    def test_well_formed_range(self):
        assert is_well_formed_range("PO-0001", "PO-9999")
        assert is_well_formed_range("PO-0001", None)
        assert not is_well_formed_range("PO-0010", "PO-0001")
        assert not is_well_formed_range("PO-0001", "SO-9999")
        assert not is_well_formed_range("PO-", "PO-9999")

    def test_exceeds_and_reaches(self):
        assert exceeds("PO-10000", "PO-9999")
        assert not exceeds("PO-9999", "PO-9999")
        assert not exceeds("PO-9999", None)
        assert reaches("PO-9800", "PO-9800")
        assert not reaches("PO-9799", "PO-9800")
        assert not reaches("PO-9799", None)

    def test_in_range_requires_same_pattern(self):
        assert in_range("PO-0006", "PO-0001", "PO-9999")
        assert not in_range("PO-006", "PO-0001", "PO-9999")
        assert not in_range("SO-0006", "PO-0001", "PO-9999")
        assert not in_range("PO-0000", "PO-0001", "PO-9999")
        assert not in_range("garbage", "PO-0001", "PO-9999")
