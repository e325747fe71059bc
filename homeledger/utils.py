"""
Utility functions used by homeledger modules
"""
from decimal import Decimal, ROUND_HALF_UP
import datetime
from typing import Union, Optional


def first_true(iterable, default=False, pred=None):
    """Returns the first true value in the iterable.

    If no true value is found, returns *default*

    If *pred* is not None, returns the first item
    for which pred(item) is true.

    https://docs.python.org/3/library/itertools.html#itertools-recipes
    """
    # first_true([a,b,c], x) --> a or b or c or x
    # first_true([a,b], x, f) --> a if f(a) else b if f(b) else x
    return next(filter(pred, iterable), default)


ZERO = Decimal(0)
CENT = Decimal("0.01")


def round_decimal(number: Union[int, Decimal], power: int = -4) -> Decimal:
    """Convert to Decimal; round to units if possible, else round to desired exponent.
    """
    d = Decimal(number)
    return (
        d.quantize(Decimal(1))
        if d == d.to_integral_value()
        else d.quantize(Decimal("10") ** power, rounding=ROUND_HALF_UP)
    )


def round_money(number: Union[int, Decimal]) -> Decimal:
    """Round a money amount to the currency's minimum unit (0.01)."""
    return Decimal(number).quantize(CENT, rounding=ROUND_HALF_UP)


MATERIALITY_TOLERANCE = CENT


def almost_equal(
    number0: Union[int, Decimal],
    number1: Union[int, Decimal],
    tolerance: Decimal = MATERIALITY_TOLERANCE,
) -> bool:
    """Numbers differ by no more than `tolerance`."""
    return abs(number0 - number1) <= tolerance  # type: ignore


def weighted(
    value: Decimal, numerator: Decimal, denominator: Decimal
) -> Decimal:
    """Money amount `value` scaled by numerator / denominator, rounded to cents.

    A zero denominator yields zero rather than raising.
    """
    if not denominator:
        return ZERO
    return round_money(value * numerator / denominator)


def ratio(numerator: Decimal, denominator: Decimal) -> Optional[Decimal]:
    """numerator / denominator rounded to 6 places; None for a zero denominator."""
    if not denominator:
        return None
    return round_decimal(numerator / denominator, power=-6)


def year_count(start: datetime.date, end: datetime.date) -> int:
    """Inclusive count of years between two dates.

    Whole years elapsed from `start` to `end`, plus one for the year in progress,
    e.g. 2015-04-06 to 2015-04-05 the next year is 1; to 2016-04-06 is 2.
    """
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return max(years, 0) + 1
