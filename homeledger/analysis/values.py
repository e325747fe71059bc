# coding: utf-8
"""
Typed value-sets held by buckets.

Each bucket kind has its own immutable NamedTuple; changes produce a new
instance via `_replace()`, so a value-set captured in a history snapshot can
never be disturbed by later processing.

Money fields are Decimal amounts in the reporting currency unless documented
otherwise.  Fields that are not Decimal (ratios that may be unknown, enums) are
carried rather than summed by the arithmetic helpers below.
"""

__all__ = [
    "AccountValues",
    "SecurityValues",
    "PortfolioValues",
    "PayeeValues",
    "CategoryValues",
    "TaxBasisValues",
    "TagValues",
    "ValuesType",
    "SECURITY_TRANSIENT",
    "add_values",
    "subtract_values",
    "sum_values",
    "clear_fields",
]


# stdlib imports
from decimal import Decimal
from typing import NamedTuple, Optional, Union, Iterable


# local imports
from homeledger.utils import ZERO
from .types import CashType


class AccountValues(NamedTuple):
    """Deposit, cash, loan and portfolio-cash balances.

    Attributes:
        balance: balance in the account currency (FOREIGNVALUE).
        localvalue: reporting-currency value of the flows that built `balance`.
        valuation: `balance` converted at `exchangerate`.
        exchangerate: rate in effect when last valued (1 for domestic accounts).
        currencyfluct: valuation - localvalue.
        depositrate: interest rate in effect, for deposits.
        baddebt: amounts written off, for peer-to-peer deposits.
        valuedelta: valuation - base valuation (set by calculate_delta).
    """

    balance: Decimal = ZERO
    localvalue: Decimal = ZERO
    valuation: Decimal = ZERO
    exchangerate: Decimal = Decimal(1)
    currencyfluct: Decimal = ZERO
    depositrate: Optional[Decimal] = None
    baddebt: Decimal = ZERO
    valuedelta: Decimal = ZERO


class SecurityValues(NamedTuple):
    """Units, cost basis and valuation of one holding.

    Running totals:
        units, price (security currency), exchangerate, residualcost,
        realisedgains, unrealisedgains, dividend, funded (reporting currency
        invested without units), invested (net cash invested), valuation,
        marketgrowth, currencyfluct, growthadjust (value moved by takeovers in
        excess of cost), profit, valuedelta.

    Transient fields (recorded in the snapshot of one event, then cleared):
        xferredcost, xferredvalue, costdilution, cashtype, capitalgain,
        allowedcost, returnedcash, consideration, gainyears, slicedgain.
    """

    units: Decimal = ZERO
    price: Decimal = Decimal(1)
    exchangerate: Decimal = Decimal(1)
    residualcost: Decimal = ZERO
    realisedgains: Decimal = ZERO
    unrealisedgains: Decimal = ZERO
    dividend: Decimal = ZERO
    funded: Decimal = ZERO
    invested: Decimal = ZERO
    valuation: Decimal = ZERO
    marketgrowth: Decimal = ZERO
    currencyfluct: Decimal = ZERO
    growthadjust: Decimal = ZERO
    profit: Decimal = ZERO
    valuedelta: Decimal = ZERO
    xferredcost: Decimal = ZERO
    xferredvalue: Decimal = ZERO
    costdilution: Optional[Decimal] = None
    cashtype: Optional[CashType] = None
    capitalgain: Decimal = ZERO
    allowedcost: Decimal = ZERO
    returnedcash: Decimal = ZERO
    consideration: Decimal = ZERO
    gainyears: Optional[int] = None
    slicedgain: Decimal = ZERO


SECURITY_TRANSIENT = (
    "xferredcost",
    "xferredvalue",
    "costdilution",
    "cashtype",
    "capitalgain",
    "allowedcost",
    "returnedcash",
    "consideration",
    "gainyears",
    "slicedgain",
)


class PortfolioValues(NamedTuple):
    """A portfolio's cash plus all of its holdings."""

    valuation: Decimal = ZERO
    cash: Decimal = ZERO
    residualcost: Decimal = ZERO
    realisedgains: Decimal = ZERO
    unrealisedgains: Decimal = ZERO
    dividend: Decimal = ZERO
    invested: Decimal = ZERO
    marketgrowth: Decimal = ZERO
    currencyfluct: Decimal = ZERO
    profit: Decimal = ZERO
    valuedelta: Decimal = ZERO


class PayeeValues(NamedTuple):
    income: Decimal = ZERO
    expense: Decimal = ZERO
    profit: Decimal = ZERO


class CategoryValues(NamedTuple):
    income: Decimal = ZERO
    expense: Decimal = ZERO
    profit: Decimal = ZERO


class TaxBasisValues(NamedTuple):
    """Tax-basis totals; `gross` is signed (expense bases accumulate negatives)."""

    gross: Decimal = ZERO
    nett: Decimal = ZERO
    taxcredit: Decimal = ZERO


class TagValues(NamedTuple):
    income: Decimal = ZERO
    expense: Decimal = ZERO
    profit: Decimal = ZERO


ValuesType = Union[
    AccountValues,
    SecurityValues,
    PortfolioValues,
    PayeeValues,
    CategoryValues,
    TaxBasisValues,
    TagValues,
]


# Rates and prices describe a state; they are never summed or differenced.
NON_ADDITIVE = frozenset(["price", "exchangerate", "depositrate", "costdilution"])


def _additive(name, v0, v1):
    return (
        name not in NON_ADDITIVE
        and isinstance(v0, Decimal)
        and isinstance(v1, Decimal)
    )


def _combine(values0, values1, op):
    fields = {}
    for name, v0, v1 in zip(values0._fields, values0, values1):
        if _additive(name, v0, v1):
            fields[name] = op(v0, v1)
        else:
            fields[name] = v1
    return values0._replace(**fields)


def add_values(values0: ValuesType, values1: ValuesType) -> ValuesType:
    """Field-wise sum of two value-sets of the same type."""
    return _combine(values0, values1, lambda a, b: a + b)


def subtract_values(values0: ValuesType, values1: ValuesType) -> ValuesType:
    """Field-wise values0 - values1; non-Decimal fields take values0's value."""
    fields = {}
    for name, v0, v1 in zip(values0._fields, values0, values1):
        if _additive(name, v0, v1):
            fields[name] = v0 - v1
    return values0._replace(**fields)


def sum_values(template: ValuesType, iterable: Iterable[ValuesType]) -> ValuesType:
    """Fold `iterable` into the empty value-set `template`."""
    total = template
    for values in iterable:
        total = add_values(total, values)
    return total


def clear_fields(values: ValuesType, fields) -> ValuesType:
    """Reset the named fields to their declared defaults."""
    if not fields:
        return values
    defaults = type(values)._field_defaults
    return values._replace(**{name: defaults[name] for name in fields})
