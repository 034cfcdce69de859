"""
TDS (Tax Deducted at Source) Calculator.

Pure functions that split a gross invoice amount into the withheld tax
and the net amount payable to the vendor. All arithmetic is Decimal.

Invariant: payable_amount + tds_amount == gross_amount, with or without
whole-unit rounding.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from paylog.app.core.exceptions import InvalidArgumentError

Number = Union[Decimal, int, float, str]

HUNDRED = Decimal("100")
WHOLE_UNIT = Decimal("1")
TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class TdsResult:
    """Outcome of a TDS calculation."""
    tds_amount: Decimal
    payable_amount: Decimal
    exact_tds: Decimal
    is_rounded: bool


def to_decimal(value: Number, field: str) -> Decimal:
    """
    Coerce a numeric input to Decimal.

    Floats go through str() so binary representation noise never enters
    the calculation. Booleans, NaN and infinities are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(f"{field} must be a number", details={field: repr(value)})
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidArgumentError(f"{field} must be a number", details={field: repr(value)})
    if not result.is_finite():
        raise InvalidArgumentError(f"{field} must be finite", details={field: str(value)})
    return result


def validate_tds_percentage(value: Number) -> bool:
    """Return True if value is a usable TDS percentage (0 to 100 inclusive)."""
    try:
        pct = to_decimal(value, "tds_percentage")
    except InvalidArgumentError:
        return False
    return Decimal(0) <= pct <= HUNDRED


def calculate_tds(
    gross_amount: Number,
    tds_percentage: Number,
    round_to_whole: bool = False
) -> TdsResult:
    """
    Calculate TDS and the net payable amount.

    Args:
        gross_amount: Invoice amount before withholding (>= 0)
        tds_percentage: Withholding rate in percent (0 to 100)
        round_to_whole: Round the TDS to the nearest whole unit (half-up)

    Returns:
        TdsResult with the withheld amount, payable amount and the
        unrounded TDS figure.

    Raises:
        InvalidArgumentError: negative gross or percentage out of range
    """
    gross = to_decimal(gross_amount, "gross_amount")
    pct = to_decimal(tds_percentage, "tds_percentage")

    if gross < 0:
        raise InvalidArgumentError(
            "Gross amount cannot be negative",
            details={"gross_amount": str(gross)}
        )
    if pct < 0 or pct > HUNDRED:
        raise InvalidArgumentError(
            "TDS percentage must be between 0 and 100",
            details={"tds_percentage": str(pct)}
        )

    exact_tds = gross * pct / HUNDRED
    if round_to_whole:
        tds_amount = exact_tds.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
    else:
        tds_amount = exact_tds

    return TdsResult(
        tds_amount=tds_amount,
        payable_amount=gross - tds_amount,
        exact_tds=exact_tds,
        is_rounded=round_to_whole and tds_amount != exact_tds,
    )


def calculate_tds_percentage(gross_amount: Number, tds_amount: Number) -> Decimal:
    """
    Reverse calculation: the percentage that produced a given TDS amount.

    Result is rounded to 2 decimal places.
    """
    gross = to_decimal(gross_amount, "gross_amount")
    tds = to_decimal(tds_amount, "tds_amount")

    if gross <= 0:
        raise InvalidArgumentError("Gross amount must be greater than zero")
    if tds < 0:
        raise InvalidArgumentError("TDS amount cannot be negative")
    if tds > gross:
        raise InvalidArgumentError("TDS amount cannot exceed gross amount")

    return (tds / gross * HUNDRED).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def tds_rounding_difference(gross_amount: Number, tds_percentage: Number) -> Decimal:
    """Whole-unit rounded TDS minus exact TDS. Negative when rounding goes down."""
    rounded = calculate_tds(gross_amount, tds_percentage, round_to_whole=True)
    return rounded.tds_amount - rounded.exact_tds


def invoice_tds(
    amount: Number,
    tds_applicable: bool,
    tds_percentage: Optional[Number],
    round_to_whole: bool = False
) -> TdsResult:
    """
    TDS for an invoice.

    A non-applicable invoice, or one with no percentage on record,
    withholds nothing regardless of any stray percentage value.
    """
    if not tds_applicable or tds_percentage is None:
        return calculate_tds(amount, 0, round_to_whole=round_to_whole)
    return calculate_tds(amount, tds_percentage, round_to_whole=round_to_whole)
