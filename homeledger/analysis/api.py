# coding: utf-8
"""
Public interface of the ledger analysis engine.

    analysis = analyse(dataset)
    analysis.payees.totals[None]          # grand total of all payees
    view = analysis.dated(date)           # state on a date
    view = analysis.ranged(start, end)    # changes over a period

Analysis walks the events of a DataSet in order (see cursor.EventCursor),
applies each one through a fresh EventContext, and finally produces the
registry totals.  Dated and ranged views are derived from the bucket histories
without re-running the pass, and are cached.
"""

__all__ = ["Analysis", "AnalysisView", "analyse"]


# stdlib imports
import datetime
import logging
from typing import Dict, Tuple, Optional


# local imports
from . import classify, market
from .buckets import Bucket, ACCOUNT_KINDS
from .context import EventContext
from .cursor import PriceCursor, RateCursor, DepositRateCursor, EventCursor
from .errors import LogicError
from .registries import BucketSet
from .types import (
    Account,
    AccountType,
    Category,
    CategoryClass,
    DataSet,
    Event,
    EventType,
    Holding,
    Payee,
    Tag,
    TaxClass,
)


class AnalysisView(BucketSet):
    """Dated or ranged view of a finished Analysis.

    Attributes:
        start: first date covered (None for a dated view).
        end: last date covered.
    """

    def __init__(self, start: Optional[datetime.date], end: datetime.date) -> None:
        super().__init__()
        self.start = start
        self.end = end

    def __repr__(self):
        return f"AnalysisView(start={self.start}, end={self.end})"


class Analysis(BucketSet):
    """Aggregated state of a DataSet.

    Args:
        dataset: the DataSet to analyse.

    Attributes:
        dataset: the DataSet analysed.
        prices: PriceCursor.
        rates: RateCursor.
        depositrates: DepositRateCursor.
        events: count of events processed.
    """

    def __init__(self, dataset: DataSet) -> None:
        super().__init__()
        self.dataset = dataset
        self.prices = PriceCursor(dataset.prices)
        self.rates = RateCursor(dataset.rates, dataset.currency)
        self.depositrates = DepositRateCursor(dataset.depositrates)
        self.events = 0
        self._views: Dict[Tuple, AnalysisView] = {}
        self._date: Optional[datetime.date] = None

    def __repr__(self):
        return f"Analysis({self.dataset.currency}, {self.events} events)"

    #  Singular entities, required only when something must be booked to them.
    @property
    def market(self) -> Payee:
        payee = self.dataset.market
        if payee is None:
            raise LogicError(None, "No Market payee defined")
        return payee

    @property
    def taxman(self) -> Payee:
        payee = self.dataset.taxman
        if payee is None:
            raise LogicError(None, "No TaxMan payee defined")
        return payee

    @property
    def state_pension(self) -> Holding:
        holding = self.dataset.state_pension
        if holding is None:
            raise LogicError(None, "No state pension holding defined")
        return holding

    #  Bucket lookup
    def account_bucket(self, account: Account) -> Bucket:
        registry = {
            AccountType.DEPOSIT: self.deposits,
            AccountType.CASH: self.cash,
            AccountType.LOAN: self.loans,
            AccountType.PORTFOLIO: self.portfolios.cash,
        }[account.type]
        bucket = registry.get(account)
        if bucket is None:
            bucket = registry.bucket(account)
            self._init_account(bucket)
        return bucket

    def _init_account(self, bucket: Bucket) -> None:
        account = bucket.key
        fields = {}
        if self._date is not None:
            fields["exchangerate"] = self.rates.rate_at(account.currency, self._date)
            if account.type is AccountType.DEPOSIT:
                fields["depositrate"] = self.depositrates.rate_at(account, self._date)
        if fields:
            bucket.open(bucket.values._replace(**fields))

    def holding_bucket(self, holding: Holding) -> Bucket:
        return self.portfolios.holdings.bucket(holding)

    def payee_bucket(self, payee: Payee) -> Bucket:
        return self.payees.bucket(payee)

    def category_bucket(self, category: Category) -> Bucket:
        return self.categories.bucket(category)

    def singular_bucket(self, cls: CategoryClass) -> Bucket:
        return self.categories.bucket(self.dataset.singular_category(cls))

    def taxbasis_bucket(self, taxclass: TaxClass) -> Bucket:
        return self.taxbases.bucket(taxclass)

    def tag_bucket(self, tag: Tag) -> Bucket:
        return self.tags.bucket(tag)

    #  Processing
    def run(self) -> "Analysis":
        """Process every event of the dataset, then produce totals."""
        for event in EventCursor(self.dataset):
            self.process(event)
        self.produce_totals()
        logging.info("Analysed %d events", self.events)
        return self

    def process(self, event: Event) -> None:
        self._date = event.date
        ctx = EventContext(self, event)
        handler = {
            EventType.SECURITYPRICE: self._process_prices,
            EventType.XCHGRATE: self._process_rates,
            EventType.DEPOSITRATE: self._process_depositrates,
            EventType.OPENINGBALANCE: self._process_opening,
            EventType.TRANSACTION: self._process_transaction,
        }[event.type]
        handler(ctx)
        ctx.finish()
        self.events += 1

    def _process_prices(self, ctx: EventContext) -> None:
        market.apply_prices(ctx, ctx.event.payload)

    def _process_rates(self, ctx: EventContext) -> None:
        market.apply_rates(ctx, ctx.event.payload)

    def _process_depositrates(self, ctx: EventContext) -> None:
        market.apply_deposit_rates(ctx, ctx.event.payload)

    def _process_opening(self, ctx: EventContext) -> None:
        """Seed account balances with their opening balances."""
        for account in self.dataset.accounts:
            if not account.opening or account.type not in ACCOUNT_KINDS:
                continue
            bucket = self.account_bucket(account)
            rate = self.rates.rate_at(account.currency, ctx.date)
            local = self.rates.convert(account.opening, account.currency, ctx.date)
            bucket.open(
                bucket.values._replace(
                    balance=account.opening,
                    localvalue=local,
                    valuation=local,
                    exchangerate=rate,
                )
            )
            ctx.touch(bucket)
            logging.info("Opening balance %s for %s", account.opening, account)

    def _process_transaction(self, ctx: EventContext) -> None:
        transaction = ctx.transaction
        logging.debug("Processing %s", transaction)
        classify.process_transaction(ctx, transaction)

    #  Views
    def dated(self, date: datetime.date) -> AnalysisView:
        """State of the analysis on `date` (inclusive)."""
        key = (None, date)
        view = self._views.get(key)
        if view is None:
            view = self._views[key] = self.derive(
                lambda bucket: bucket.as_of(date),
                lambda d: d <= date,
                into=AnalysisView(None, date),
            )
        return view

    def ranged(self, start: datetime.date, end: datetime.date) -> AnalysisView:
        """Changes within [start, end], based on the state before `start`."""
        if end < start:
            raise ValueError(f"Range ends ({end}) before it starts ({start})")
        key = (start, end)
        view = self._views.get(key)
        if view is None:
            view = self._views[key] = self.derive(
                lambda bucket: bucket.over_range(start, end),
                lambda d: start <= d <= end,
                into=AnalysisView(start, end),
            )
        return view


def analyse(dataset: DataSet) -> Analysis:
    """Run a complete analysis pass over `dataset`.

    Raises:
        LogicError: if the data is inconsistent.
    """
    return Analysis(dataset).run()
