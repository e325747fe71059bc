# coding: utf-8
"""
Cursors over the dated input streams.

PriceCursor, RateCursor and DepositRateCursor answer "what was in effect on
date D" for a key (security, currency, deposit).  Lookups for a key usually move
forward in time during a pass, so each key remembers where the last lookup
landed and scans forward from there; an earlier date falls back to bisection.

EventCursor merges the four independently sorted streams (security prices,
exchange rates, deposit rates, transactions) into the single event order of an
analysis pass:
    * earliest date first;
    * on the same date, EventType order: prices, exchange rates, deposit rates,
      the opening balance, then transactions;
    * all prices (or rates) sharing a date form one event;
    * exactly one OPENINGBALANCE event, after the price/rate events of the
      start date and before the first transaction;
    * deleted transactions never surface.
"""

__all__ = [
    "PriceCursor",
    "RateCursor",
    "DepositRateCursor",
    "EventCursor",
]


# stdlib imports
import bisect
import itertools
import logging
from collections import defaultdict
from decimal import Decimal
import datetime
from typing import Iterable, Callable, Any, Optional, Dict, Tuple, Iterator


# local imports
from homeledger import utils
from .errors import LogicError
from .types import (
    Account,
    Security,
    SecurityPrice,
    ExchangeRate,
    DepositRate,
    DataSet,
    Event,
    EventType,
)


class _DatedCursor:
    """Record in effect at a date, per key.

    Args:
        records: dated records (any order; sorted by date per key on load).
        keyfunc: extracts the lookup key from a record.
    """

    def __init__(self, records: Iterable, keyfunc: Callable[[Any], Any]) -> None:
        grouped: Dict[Any, list] = defaultdict(list)
        for record in records:
            grouped[keyfunc(record)].append(record)
        self._records = {
            key: sorted(recs, key=lambda r: r.date) for key, recs in grouped.items()
        }
        self._dates = {
            key: [r.date for r in recs] for key, recs in self._records.items()
        }
        # key -> (date of last lookup, count of records dated on/before it)
        self._position: Dict[Any, Tuple[datetime.date, int]] = {}

    def lookup(self, key: Any, date: datetime.date) -> Optional[Any]:
        dates = self._dates.get(key)
        if not dates:
            return None

        last = self._position.get(key)
        if last is not None and date >= last[0]:
            index = last[1]
            while index < len(dates) and dates[index] <= date:
                index += 1
        else:
            index = bisect.bisect_right(dates, date)
        self._position[key] = (date, index)

        if index == 0:
            return None
        return self._records[key][index - 1]

    def keys(self):
        return self._records.keys()


class PriceCursor:
    """Security prices in effect at a date."""

    #  Price assumed before any price has been recorded
    DEFAULT_PRICE = Decimal(1)

    def __init__(self, prices: Iterable[SecurityPrice]) -> None:
        self._cursor = _DatedCursor(prices, lambda p: p.security)

    def price_at(self, security: Security, date: datetime.date) -> Decimal:
        record = self._cursor.lookup(security, date)
        if record is None:
            return self.DEFAULT_PRICE
        return record.price

    def is_priced(self, security: Security, date: datetime.date) -> bool:
        """A price for `security` has been recorded on or before `date`."""
        return self._cursor.lookup(security, date) is not None


class RateCursor:
    """Exchange rates in effect at a date, relative to the reporting currency.

    Args:
        rates: ExchangeRate records.
        currency: ISO 4217 code of the reporting currency.
    """

    def __init__(self, rates: Iterable[ExchangeRate], currency: str) -> None:
        if not currency:
            raise LogicError(None, "No reporting currency configured")
        self.currency = currency
        self._cursor = _DatedCursor(rates, lambda r: r.currency)

    def is_foreign(self, currency: str) -> bool:
        return currency != self.currency

    def rate_at(self, currency: str, date: datetime.date) -> Decimal:
        """Reporting-currency value of one unit of `currency` on `date`.

        Raises:
            LogicError: if no rate for `currency` is in effect on `date`.
        """
        if not self.is_foreign(currency):
            return Decimal(1)
        record = self._cursor.lookup(currency, date)
        if record is None:
            raise LogicError(None, f"No exchange rate for {currency} on {date}")
        return record.rate

    def convert(
        self, amount: Decimal, currency: str, date: datetime.date
    ) -> Decimal:
        """Translate `amount` of `currency` into the reporting currency."""
        if not self.is_foreign(currency):
            return amount
        return convert(amount, self.rate_at(currency, date))


def convert(amount: Decimal, rate: Decimal) -> Decimal:
    """Apply an exchange rate, rounding to the currency's minimum unit."""
    return utils.round_money(amount * rate)


class DepositRateCursor:
    """Deposit interest rates in effect at a date."""

    def __init__(self, rates: Iterable[DepositRate]) -> None:
        self._cursor = _DatedCursor(rates, lambda r: r.deposit)

    def rate_at(self, deposit: Account, date: datetime.date) -> Optional[Decimal]:
        record = self._cursor.lookup(deposit, date)
        if record is None:
            return None
        if record.enddate is not None and date > record.enddate:
            return None
        return record.rate


class _Stream:
    """One buffered input stream.

    Args:
        records: date-sorted records.
        grouped: pop() returns every record sharing the next date as a tuple.
    """

    def __init__(self, records: Iterable, grouped: bool = True) -> None:
        self._iter = iter(records)
        self._grouped = grouped
        self._next = self._advance()

    def _advance(self):
        for record in self._iter:
            if not getattr(record, "deleted", False):
                return record
        return None

    @property
    def date(self) -> Optional[datetime.date]:
        return self._next.date if self._next is not None else None

    def pop(self):
        record = self._next
        self._next = self._advance()
        if not self._grouped:
            return record
        records = [record]
        while self._next is not None and self._next.date == record.date:
            records.append(self._next)
            self._next = self._advance()
        return tuple(records)


class EventCursor:
    """Merge a DataSet's streams into a single ordered sequence of Events.

    Args:
        dataset: the DataSet to walk.

    Raises:
        LogicError: (from next_event) if a stream is not sorted by date.
    """

    def __init__(self, dataset: DataSet) -> None:
        self.start = dataset.start_date
        self._streams = {
            EventType.SECURITYPRICE: _Stream(dataset.prices),
            EventType.XCHGRATE: _Stream(dataset.rates),
            EventType.DEPOSITRATE: _Stream(dataset.depositrates),
            EventType.TRANSACTION: _Stream(dataset.transactions, grouped=False),
        }
        self._opening_pending = self.start is not None
        self._sequence = itertools.count(1)
        self._last: Optional[datetime.date] = None

    def __iter__(self) -> Iterator[Event]:
        return iter(self.next_event, None)

    def next_event_type(self) -> Optional[EventType]:
        """Type of the event next_event() will return, or None when exhausted."""
        candidate = self._candidate()
        return candidate[1] if candidate is not None else None

    def _candidate(self) -> Optional[Tuple[datetime.date, EventType]]:
        candidates = [
            (stream.date, type_)
            for type_, stream in self._streams.items()
            if stream.date is not None
        ]
        best = min(candidates, key=lambda c: (c[0], c[1].value), default=None)
        if self._opening_pending:
            opening = (self.start, EventType.OPENINGBALANCE)
            if best is None or best[1] is EventType.TRANSACTION:
                if best is not None and best[0] < self.start:
                    opening = (best[0], EventType.OPENINGBALANCE)
                return opening
            if (opening[0], opening[1].value) < (best[0], best[1].value):
                return opening
        return best

    def next_event(self) -> Optional[Event]:
        """Pop the next event; None when all streams are exhausted."""
        candidate = self._candidate()
        if candidate is None:
            return None

        date, type_ = candidate
        if self._last is not None and date < self._last:
            raise LogicError(None, f"{type_.name} dated {date} follows {self._last}")
        self._last = date

        if type_ is EventType.OPENINGBALANCE:
            self._opening_pending = False
            payload = None
        else:
            payload = self._streams[type_].pop()

        event = Event(next(self._sequence), type_, date, payload)
        logging.debug("Event %s", event.id)
        return event
