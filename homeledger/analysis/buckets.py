# coding: utf-8
"""
Generic aggregate bucket.

All dimensions (accounts, holdings, payees, categories, tax bases, tags) use
the same Bucket class.  What differs between them is captured by a Strategy
looked up by BucketKind (and, for accounts, refined by the account subtype):
the value-set type, which fields are per-event provenance, how derived fields
are recomputed, and when the bucket counts as active.
"""

__all__ = ["BucketKind", "Strategy", "STRATEGIES", "strategy_for", "Bucket"]


# stdlib imports
import enum
import datetime
from typing import NamedTuple, Callable, Tuple, Any, Optional


# local imports
from .history import History
from .types import Account, AccountClass, AccountType
from .values import (
    ValuesType,
    AccountValues,
    SecurityValues,
    PortfolioValues,
    PayeeValues,
    CategoryValues,
    TaxBasisValues,
    TagValues,
    SECURITY_TRANSIENT,
    subtract_values,
    clear_fields,
)


@enum.unique
class BucketKind(enum.Enum):
    DEPOSIT = 1
    CASH = 2
    LOAN = 3
    PORTFOLIOCASH = 4
    SECURITY = 5
    PORTFOLIO = 6
    PAYEE = 7
    CATEGORY = 8
    TAXBASIS = 9
    TAG = 10


ACCOUNT_KINDS = {
    AccountType.DEPOSIT: BucketKind.DEPOSIT,
    AccountType.CASH: BucketKind.CASH,
    AccountType.LOAN: BucketKind.LOAN,
    AccountType.PORTFOLIO: BucketKind.PORTFOLIOCASH,
}


def _derive_account(values: AccountValues) -> AccountValues:
    return values._replace(currencyfluct=values.valuation - values.localvalue)


def _derive_security(values: SecurityValues) -> SecurityValues:
    return values._replace(
        unrealisedgains=values.valuation - values.residualcost,
        profit=values.valuation - values.invested + values.dividend,
    )


def _derive_profit(values):
    return values._replace(profit=values.income - values.expense)


def _derive_nothing(values):
    return values


def _account_active(values: AccountValues) -> bool:
    return values.balance != 0 or values.valuation != 0


def _security_active(values: SecurityValues) -> bool:
    return values.units != 0 or values.funded != 0 or values.residualcost != 0


def _always_active(values) -> bool:
    return True


class Strategy(NamedTuple):
    """Per-kind behaviour of a Bucket.

    Attributes:
        values_type: NamedTuple class of the bucket's value-sets.
        derive: recomputes derived fields of a value-set.
        is_active: predicate on a value-set; inactive buckets are skipped by
                   revaluation and portfolio transfers.
        transient: fields cleared after each snapshot.
        tracks_baddebt: account books written-off amounts to `baddebt`.
    """

    values_type: type
    derive: Callable[[Any], Any] = _derive_nothing
    is_active: Callable[[Any], bool] = _always_active
    transient: Tuple[str, ...] = ()
    tracks_baddebt: bool = False


_ACCOUNT = Strategy(AccountValues, _derive_account, _account_active)


STRATEGIES = {
    BucketKind.DEPOSIT: _ACCOUNT,
    BucketKind.CASH: _ACCOUNT,
    BucketKind.LOAN: _ACCOUNT,
    BucketKind.PORTFOLIOCASH: _ACCOUNT,
    BucketKind.SECURITY: Strategy(
        SecurityValues, _derive_security, _security_active, SECURITY_TRANSIENT
    ),
    BucketKind.PORTFOLIO: Strategy(PortfolioValues),
    BucketKind.PAYEE: Strategy(PayeeValues, _derive_profit),
    BucketKind.CATEGORY: Strategy(CategoryValues, _derive_profit),
    BucketKind.TAXBASIS: Strategy(TaxBasisValues),
    BucketKind.TAG: Strategy(TagValues, _derive_profit),
}


#  Refinements keyed by (kind, account subtype)
SUBTYPE_STRATEGIES = {
    (BucketKind.DEPOSIT, AccountClass.PEER2PEER): _ACCOUNT._replace(
        tracks_baddebt=True
    ),
}


def strategy_for(kind: BucketKind, key: Any = None) -> Strategy:
    if isinstance(key, Account):
        refined = SUBTYPE_STRATEGIES.get((kind, key.subtype))
        if refined is not None:
            return refined
    return STRATEGIES[kind]


class Bucket:
    """Aggregate accumulator for one entity.

    Args:
        kind: BucketKind.
        key: the entity (Account, Holding, Payee, Category, TaxClass, Tag), or
             None for a totals bucket.
        strategy: override the Strategy looked up from `kind` and `key`.

    Attributes:
        values: current value-set.
        history: History of snapshots; `history.base` is the base value-set.
        delta: values - base, after calculate_delta().
    """

    def __init__(
        self, kind: BucketKind, key: Any, strategy: Optional[Strategy] = None
    ) -> None:
        self.kind = kind
        self.key = key
        self.strategy = strategy or strategy_for(kind, key)
        base = self.strategy.values_type()
        self.history = History(base, reset=self.reset)
        self.values = base
        self.delta: Optional[ValuesType] = None

    def __repr__(self):
        return f"Bucket({self.kind.name}, {self.key})"

    @property
    def base(self) -> ValuesType:
        return self.history.base

    @property
    def is_idle(self) -> bool:
        return self.history.is_idle

    @property
    def is_active(self) -> bool:
        return self.strategy.is_active(self.values)

    def reset(self, values: ValuesType) -> ValuesType:
        """Clear per-event provenance fields."""
        return clear_fields(values, self.strategy.transient)

    def open(self, values: ValuesType) -> None:
        """Seed both base and current values, e.g. with an opening balance."""
        values = self.strategy.derive(values)
        self.history.base = values
        self.values = values

    def snapshot(self, event) -> None:
        """Record the current values against `event`, then clear provenance."""
        values = self.strategy.derive(self.values)
        self.history.record(event, values)
        self.values = self.reset(values)

    def calculate_delta(self) -> None:
        values = self.strategy.derive(self.values)
        if "valuedelta" in values._fields:
            values = values._replace(
                valuedelta=values.valuation - self.base.valuation
            )
        self.values = values
        self.delta = subtract_values(values, self.base)

    def _replay(self, history: History, values: ValuesType) -> "Bucket":
        bucket = Bucket(self.kind, self.key, self.strategy)
        bucket.history = history
        bucket.values = values
        return bucket

    def as_of(self, date: datetime.date) -> "Bucket":
        """Independent copy holding the state on `date`."""
        return self._replay(self.history.as_of(date), self.history.value_at(date))

    def over_range(self, start: datetime.date, end: datetime.date) -> "Bucket":
        """Independent copy holding the changes within [start, end]."""
        return self._replay(
            self.history.over_range(start, end), self.history.value_at(end)
        )
