"""
Document number arithmetic (``p2p_kernel.domain.numbering``).

Responsibility
--------------
Pure functions over alphanumeric document numbers such as
``PO-2026-0001``.  The trailing run of digits is the counter; everything
before it is the prefix and any non-digit tail is the suffix.  Incrementing
keeps the zero-padded width, so ``PO-0009`` becomes ``PO-0010``.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  Used by the sequence service and by
series validation.

Failure modes
-------------
* ``ValueError`` when a number has no digits to increment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_NUMBER_RE = re.compile(r"^(.*?)(\d+)(\D*)$")


@dataclass(frozen=True)
class ParsedNumber:
    """A document number split into prefix, counter and suffix."""
    prefix: str
    value: int
    width: int
    suffix: str

    def format(self, value: int) -> str:
        return f"{self.prefix}{str(value).zfill(self.width)}{self.suffix}"

    def same_pattern(self, other: ParsedNumber) -> bool:
        return (
            self.prefix == other.prefix
            and self.suffix == other.suffix
            and self.width == other.width
        )


def parse_number(number: str) -> ParsedNumber:
    match = _NUMBER_RE.match(number)
    if match is None:
        raise ValueError(f"Document number {number!r} has no numeric part")
    prefix, digits, suffix = match.groups()
    return ParsedNumber(prefix=prefix, value=int(digits), width=len(digits), suffix=suffix)


def increment_number(number: str, by: int = 1) -> str:
    """Advance the trailing counter of ``number`` by ``by``."""
    if by <= 0:
        raise ValueError(f"Increment must be positive, got {by}")
    parsed = parse_number(number)
    return parsed.format(parsed.value + by)


def is_well_formed_range(starting_no: str, ending_no: str | None) -> bool:
    """True when both bounds share a pattern and start does not exceed end."""
    try:
        start = parse_number(starting_no)
        if ending_no is None:
            return True
        end = parse_number(ending_no)
    except ValueError:
        return False
    return start.prefix == end.prefix and start.suffix == end.suffix and start.value <= end.value


def exceeds(number: str, ending_no: str | None) -> bool:
    """True when ``number`` lies past ``ending_no`` (no bound never exceeds)."""
    if ending_no is None:
        return False
    return parse_number(number).value > parse_number(ending_no).value


def reaches(number: str, threshold_no: str | None) -> bool:
    """True when ``number`` is at or past ``threshold_no``."""
    if threshold_no is None:
        return False
    return parse_number(number).value >= parse_number(threshold_no).value


def in_range(number: str, starting_no: str, ending_no: str | None) -> bool:
    """True when ``number`` follows the line's pattern and lies in its bounds."""
    try:
        candidate = parse_number(number)
    except ValueError:
        return False
    start = parse_number(starting_no)
    if not candidate.same_pattern(start) or candidate.value < start.value:
        return False
    return not exceeds(number, ending_no)
