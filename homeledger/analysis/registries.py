# coding: utf-8
"""
Registries of buckets, one per analysis dimension.

A Registry lazily creates a Bucket the first time an entity is referenced, keeps
them in first-reference order and, once an analysis pass has finished, produces
totals: per group (e.g. account subtype, payee type) and a grand total under the
key None.  Categories fold each bucket's values into every ancestor category.

A BucketSet bundles the registries of one analysis; derive() builds an
independent BucketSet of dated or ranged copies, dropping buckets that saw no
events in the window.
"""

__all__ = [
    "Registry",
    "CategoryRegistry",
    "PortfolioRegistry",
    "TaxBasisRegistry",
    "BucketSet",
]


# stdlib imports
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterator, List, Optional


# local imports
from .buckets import Bucket, BucketKind, strategy_for
from .types import Account, Security
from .values import (
    ValuesType,
    PortfolioValues,
    add_values,
    sum_values,
)


class Registry:
    """Buckets of one kind, keyed by entity.

    Args:
        kind: BucketKind of the buckets.
        groupfunc: maps a bucket key to its totals group; None for no groups.

    Attributes:
        totals: group -> value-set; None -> grand total.
        deltas: group -> change over the analysis; None -> grand total.
    """

    def __init__(
        self, kind: BucketKind, groupfunc: Optional[Callable[[Any], Any]] = None
    ) -> None:
        self.kind = kind
        self.groupfunc = groupfunc
        self._buckets: Dict[Any, Bucket] = OrderedDict()
        self.totals: Dict[Any, ValuesType] = {}
        self.deltas: Dict[Any, ValuesType] = {}

    def __repr__(self):
        return f"{self.__class__.__name__}({self.kind.name}, {len(self)} buckets)"

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[Bucket]:
        return iter(list(self._buckets.values()))

    def __contains__(self, key) -> bool:
        return key in self._buckets

    def __getitem__(self, key) -> Bucket:
        return self._buckets[key]

    def get(self, key) -> Optional[Bucket]:
        return self._buckets.get(key)

    def keys(self):
        return self._buckets.keys()

    def bucket(self, key) -> Bucket:
        """Bucket for `key`, created on first reference."""
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = self.new_bucket(key)
        return bucket

    def new_bucket(self, key) -> Bucket:
        return Bucket(self.kind, key)

    def add(self, bucket: Bucket) -> None:
        self._buckets[bucket.key] = bucket

    def _empty(self) -> ValuesType:
        return strategy_for(self.kind).values_type()

    def groups(self, key) -> List[Any]:
        """Totals groups a bucket key contributes to (besides the grand total)."""
        if self.groupfunc is None:
            return []
        return [self.groupfunc(key)]

    def produce_totals(self) -> None:
        """Recompute deltas and totals; safe to call repeatedly."""
        empty = self._empty()
        totals: Dict[Any, ValuesType] = OrderedDict()
        deltas: Dict[Any, ValuesType] = OrderedDict()
        for bucket in self._buckets.values():
            bucket.calculate_delta()
            for group in self.groups(bucket.key) + [None]:
                totals[group] = add_values(totals.get(group, empty), bucket.values)
                deltas[group] = add_values(deltas.get(group, empty), bucket.delta)
        totals.setdefault(None, empty)
        deltas.setdefault(None, empty)
        self.totals = totals
        self.deltas = deltas

    def derive(self, view: Callable[[Bucket], Bucket]) -> "Registry":
        """Registry of `view(bucket)` copies, without idle copies."""
        derived = self._clone()
        for bucket in self._buckets.values():
            copy = view(bucket)
            if not copy.is_idle:
                derived.add(copy)
        return derived

    def _clone(self) -> "Registry":
        return Registry(self.kind, self.groupfunc)


class CategoryRegistry(Registry):
    """Category buckets; totals fold every bucket into each of its ancestors."""

    def __init__(self) -> None:
        super().__init__(BucketKind.CATEGORY)

    def groups(self, key) -> List[Any]:
        ancestors = []
        parent = key.parent
        while parent is not None:
            ancestors.append(parent)
            parent = parent.parent
        return ancestors

    def _clone(self) -> "CategoryRegistry":
        return CategoryRegistry()


class TaxBasisRegistry(Registry):
    """Tax-basis buckets plus the chargeable gains recorded against them."""

    def __init__(self) -> None:
        super().__init__(BucketKind.TAXBASIS, lambda taxclass: taxclass.is_expense)
        self.chargeables: List[Any] = []

    def record_chargeable(self, event) -> None:
        self.chargeables.append(event)

    def _clone(self) -> "TaxBasisRegistry":
        return TaxBasisRegistry()


class PortfolioRegistry:
    """Portfolio cash accounts and security holdings.

    Attributes:
        cash: Registry of PORTFOLIOCASH buckets keyed by portfolio Account.
        holdings: Registry of SECURITY buckets keyed by Holding.
        totals: portfolio -> PortfolioValues; None -> all portfolios.
        deltas: portfolio -> change over the analysis; None -> all portfolios.
    """

    def __init__(self) -> None:
        self.cash = Registry(BucketKind.PORTFOLIOCASH)
        self.holdings = Registry(BucketKind.SECURITY, lambda h: h.portfolio)
        self.totals: Dict[Any, PortfolioValues] = {}
        self.deltas: Dict[Any, PortfolioValues] = {}

    def __repr__(self):
        return f"PortfolioRegistry({len(self.cash)} cash, {len(self.holdings)} holdings)"

    def portfolios(self) -> List[Account]:
        """Portfolios with cash or holdings, in first-reference order."""
        seen: Dict[Account, None] = OrderedDict()
        for key in self.cash.keys():
            seen[key] = None
        for key in self.holdings.keys():
            seen[key.portfolio] = None
        return list(seen)

    def holdings_of(self, portfolio: Account) -> List[Bucket]:
        return [b for b in self.holdings if b.key.portfolio == portfolio]

    def holdings_for(self, security: Security) -> List[Bucket]:
        return [b for b in self.holdings if b.key.security == security]

    def produce_totals(self) -> None:
        self.cash.produce_totals()
        self.holdings.produce_totals()

        totals: Dict[Any, PortfolioValues] = OrderedDict()
        deltas: Dict[Any, PortfolioValues] = OrderedDict()
        for portfolio in self.portfolios():
            cash = self.cash.get(portfolio)
            holdings = self.holdings_of(portfolio)
            totals[portfolio] = _portfolio_values(
                cash.values if cash else None, [b.values for b in holdings]
            )
            deltas[portfolio] = _portfolio_values(
                cash.delta if cash else None, [b.delta for b in holdings]
            )
        totals[None] = sum_values(PortfolioValues(), totals.values())
        deltas[None] = sum_values(PortfolioValues(), deltas.values())
        self.totals = totals
        self.deltas = deltas

    def derive(self, view: Callable[[Bucket], Bucket]) -> "PortfolioRegistry":
        derived = PortfolioRegistry()
        derived.cash = self.cash.derive(view)
        derived.holdings = self.holdings.derive(view)
        return derived


def _portfolio_values(cash, holdings) -> PortfolioValues:
    values = PortfolioValues()
    if cash is not None:
        values = values._replace(
            valuation=cash.valuation,
            cash=cash.valuation,
            currencyfluct=cash.currencyfluct,
            valuedelta=cash.valuedelta,
        )
    for holding in holdings:
        values = values._replace(
            valuation=values.valuation + holding.valuation,
            residualcost=values.residualcost + holding.residualcost,
            realisedgains=values.realisedgains + holding.realisedgains,
            unrealisedgains=values.unrealisedgains + holding.unrealisedgains,
            dividend=values.dividend + holding.dividend,
            invested=values.invested + holding.invested,
            marketgrowth=values.marketgrowth + holding.marketgrowth,
            currencyfluct=values.currencyfluct + holding.currencyfluct,
            profit=values.profit + holding.profit,
            valuedelta=values.valuedelta + holding.valuedelta,
        )
    return values


class BucketSet:
    """All registries of one analysis (or of a view derived from one).

    Attributes:
        deposits, cash, loans: Registry of account buckets, grouped by subtype.
        portfolios: PortfolioRegistry.
        payees: Registry grouped by PayeeType.
        categories: CategoryRegistry.
        taxbases: TaxBasisRegistry.
        tags: Registry.
    """

    def __init__(self) -> None:
        self.deposits = Registry(BucketKind.DEPOSIT, _subtype)
        self.cash = Registry(BucketKind.CASH, _subtype)
        self.loans = Registry(BucketKind.LOAN, _subtype)
        self.portfolios = PortfolioRegistry()
        self.payees = Registry(BucketKind.PAYEE, lambda payee: payee.type)
        self.categories = CategoryRegistry()
        self.taxbases = TaxBasisRegistry()
        self.tags = Registry(BucketKind.TAG)

    def account_registries(self) -> List[Registry]:
        """Registries of money balances (including portfolio cash)."""
        return [self.deposits, self.cash, self.loans, self.portfolios.cash]

    def registries(self) -> List[Any]:
        return [
            self.deposits,
            self.cash,
            self.loans,
            self.portfolios,
            self.payees,
            self.categories,
            self.taxbases,
            self.tags,
        ]

    def produce_totals(self) -> None:
        for registry in self.registries():
            registry.produce_totals()

    def derive(
        self,
        view: Callable[[Bucket], Bucket],
        predicate: Callable[[Any], bool] = lambda date: True,
        into: Optional["BucketSet"] = None,
    ) -> "BucketSet":
        """Independent BucketSet of `view` copies, totals produced.

        Args:
            view: maps a bucket to its dated or ranged copy.
            predicate: selects chargeable events by date.
            into: empty BucketSet to populate; a new one by default.
        """
        derived = into if into is not None else BucketSet()
        derived.deposits = self.deposits.derive(view)
        derived.cash = self.cash.derive(view)
        derived.loans = self.loans.derive(view)
        derived.portfolios = self.portfolios.derive(view)
        derived.payees = self.payees.derive(view)
        derived.categories = self.categories.derive(view)
        derived.taxbases = self.taxbases.derive(view)
        derived.taxbases.chargeables = [
            event
            for event in self.taxbases.chargeables
            if predicate(event.transaction.date)
        ]
        derived.tags = self.tags.derive(view)
        derived.produce_totals()
        return derived


def _subtype(account: Account):
    return account.subtype
