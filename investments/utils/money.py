"""
Decimal helpers for money amounts.

Every amount stored by the ledger has two decimal places; intermediate
results are rounded half-up to the cent.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value):
    """Coerce ints, floats and strings to Decimal (floats go through str)."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")


def round_money(amount):
    return to_decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percentage_of(amount, rate):
    """
    Return ``rate`` percent of ``amount``.

    >>> percentage_of(Decimal('1000'), Decimal('2'))
    Decimal('20.00')
    """
    if not amount or not rate:
        return ZERO
    return round_money(to_decimal(amount) * to_decimal(rate) / Decimal('100'))
