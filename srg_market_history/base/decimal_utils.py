from decimal import Decimal, InvalidOperation, localcontext
from typing import Union, Optional

ZERO = Decimal(0)


def to_decimal(amount: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Parse a subgraph numeric field (BigDecimal values arrive as strings).

    Missing or unparsable values count as zero so that a gap in the indexed
    data never breaks a series.

    Args:
        amount: The raw value from a GraphQL response

    Returns:
        Decimal: The parsed amount, or 0

    Examples:
        >>> to_decimal("250.5")
        Decimal('250.5')
        >>> to_decimal(None)
        Decimal('0')
    """
    if amount is None:
        return ZERO
    if isinstance(amount, Decimal):
        return amount
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return ZERO
    if not value.is_finite():
        return ZERO
    return value


def format_decimal(amount: Decimal) -> str:
    """
    Render a Decimal as a plain string without exponent notation or
    trailing fractional zeros.

    Examples:
        >>> format_decimal(Decimal("400") - Decimal("250"))
        '150'
        >>> format_decimal(Decimal("1.2500"))
        '1.25'
        >>> format_decimal(Decimal("1E+3"))
        '1000'
    """
    if amount == ZERO:
        return "0"
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def subtract_cumulative(current: Union[str, Decimal, None], previous: Optional[Union[str, Decimal]]) -> Decimal:
    """Exact difference between two readings of a cumulative counter, previous defaulting to 0"""
    current_value = to_decimal(current)
    previous_value = to_decimal(previous)
    with localcontext() as ctx:
        ctx.prec = _exact_precision(current_value, previous_value)
        return current_value - previous_value


def _exact_precision(*amounts: Decimal) -> int:
    """Digits spanning the highest and the finest position of the operands, plus one for a carry"""
    highest = max(amount.adjusted() for amount in amounts)
    finest = min(amount.as_tuple().exponent for amount in amounts)
    return max(highest - finest + 2, 1)
