"""
Module: p2p_kernel.db.types
Responsibility: Annotated column aliases and the money helpers every model and
    service shares.  Centralizes precision and the rounding rule so that line
    totals and journal amounts are computed identically everywhere.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and modules.  MUST NOT import from any of those.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function.  It applies
      round-half-even to the currency's minor unit and is called at defined
      points only (line totals, journal amounts), never on intermediate
      percentages.
    - to_minor_units() is the basis for balance comparisons, so equality of
      debits and credits is an integer comparison.
    - No floats: ensure_decimal() rejects them.

Failure modes:
    - InvalidAmountError from ensure_decimal() on float, None or non-finite
      input.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Annotated, Any

from sqlalchemy import Numeric, String

from p2p_kernel.exceptions import InvalidAmountError

# Monetary amount stored with headroom beyond the minor unit
Money = Annotated[Decimal, Numeric(38, 9)]

# Quantities and percentages
Quantity = Annotated[Decimal, Numeric(38, 9)]
Percent = Annotated[Decimal, Numeric(9, 4)]

# Stored exchange-rate multiplier
Rate = Annotated[Decimal, Numeric(38, 18)]

# ISO 4217 currency code
Currency = Annotated[str, String(3)]

# Document numbers ("PO-2026-0001")
DocumentNumber = Annotated[str, String(20)]

ShortCode = Annotated[str, String(50)]
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_EVEN
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the minor unit (half-even by default)."""
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def to_minor_units(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> int:
    """Convert a monetary value to integer minor units (cents)."""
    return int(round_money(value, decimal_places).scaleb(decimal_places))


def money_from_int(value: int, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """
    Create a money value from minor units.

    Example:
        money_from_int(1050) -> Decimal("10.50")
    """
    return Decimal(value).scaleb(-decimal_places)


def ensure_decimal(field: str, value: Any) -> Decimal:
    """Coerce str/int/Decimal input to Decimal, rejecting binary floats."""
    if isinstance(value, bool) or value is None or isinstance(value, float):
        raise InvalidAmountError(field, value, "must be a fixed-point Decimal")
    try:
        result = Decimal(value)
    except (ArithmeticError, TypeError, ValueError):
        raise InvalidAmountError(field, value, "not a number") from None
    if not result.is_finite():
        raise InvalidAmountError(field, value, "must be finite")
    return result
