# coding: utf-8
"""
Per-event processing context.

An EventContext is created for each event of a pass and handed explicitly to
every processing function.  It owns the set of buckets touched while the event
is applied (with the value-set each had when first touched), and the market
accumulators.  finish() settles the market entries, takes one snapshot of every
touched bucket and clears the set, so each event yields exactly one consistent
snapshot per bucket.
"""

__all__ = ["EventContext"]


# stdlib imports
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Any


# local imports
from homeledger.utils import ZERO
from .buckets import Bucket
from .types import Event
from .values import ValuesType


class EventContext:
    """Pending state for one event.

    Args:
        analysis: the Analysis being built.
        event: the Event being applied.

    Attributes:
        growth: market growth accumulated during the event.
        fluctuation: currency fluctuation accumulated during the event.
    """

    def __init__(self, analysis, event: Event) -> None:
        self.analysis = analysis
        self.event = event
        self.growth = ZERO
        self.fluctuation = ZERO
        self._touched: Dict[int, Bucket] = OrderedDict()
        self._initial: Dict[int, ValuesType] = {}

    @property
    def date(self):
        return self.event.date

    @property
    def transaction(self):
        return self.event.transaction

    @property
    def touched(self) -> List[Bucket]:
        return list(self._touched.values())

    def touch(self, bucket: Bucket) -> Bucket:
        """Register interest in `bucket` for this event."""
        key = id(bucket)
        if key not in self._touched:
            self._touched[key] = bucket
            self._initial[key] = bucket.values
        return bucket

    def initial(self, bucket: Bucket) -> ValuesType:
        """Value-set `bucket` had when first touched during this event."""
        return self._initial[id(bucket)]

    def adjust(self, bucket: Bucket, **deltas: Any) -> None:
        """Add `deltas` to the named fields of `bucket`."""
        self.touch(bucket)
        values = bucket.values
        bucket.values = values._replace(
            **{name: getattr(values, name) + delta for name, delta in deltas.items()}
        )

    def assign(self, bucket: Bucket, **fields: Any) -> None:
        """Overwrite the named fields of `bucket`."""
        self.touch(bucket)
        bucket.values = bucket.values._replace(**fields)

    def book(self, bucket: Bucket, delta: Decimal, income: bool) -> None:
        """Change the profit of a payee/category/tag bucket by `delta`.

        Args:
            bucket: bucket with income/expense fields.
            delta: signed change in profit.
            income: book against income (else as a negative expense).
        """
        if income:
            self.adjust(bucket, income=delta)
        else:
            self.adjust(bucket, expense=-delta)

    def book_signed(self, bucket: Bucket, delta: Decimal) -> None:
        """Gains as income, losses as expense."""
        if delta >= 0:
            self.adjust(bucket, income=delta)
        else:
            self.adjust(bucket, expense=-delta)

    def finish(self) -> None:
        """Settle market entries, then snapshot and release all touched buckets."""
        from .market import settle

        settle(self)
        for bucket in self._touched.values():
            bucket.snapshot(self.event)
        self._touched.clear()
        self._initial.clear()
