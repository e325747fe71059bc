# coding: utf-8
"""
Append-only history of a bucket's value-sets.

Each processed event that touches a bucket appends one Snapshot holding the
complete value-set the bucket had after the event.  Nothing is ever rolled back:
the state "as of" any date is a pure function of the log (the last snapshot on
or before the date, else the base), which is how dated and ranged views are
derived from a finished analysis without re-running it.

Snapshots keep the per-event provenance fields (transferred cost, cash type,
etc.); `value_at()` returns running state with those fields cleared, i.e. the
value-set the bucket carried into the next event.
"""

__all__ = ["Snapshot", "History"]


# stdlib imports
import bisect
import datetime
from typing import NamedTuple, List, Dict, Optional, Callable, Iterator


# local imports
from .errors import LogicError
from .types import Event
from .values import ValuesType, subtract_values


class Snapshot(NamedTuple):
    event: Event
    values: ValuesType


def _identity(values):
    return values


class History:
    """Ordered (event -> value-set) log for one bucket.

    Args:
        base: value-set before the first snapshot.
        reset: function mapping a snapshot value-set to running state
               (clears transient fields).
    """

    def __init__(
        self,
        base: ValuesType,
        reset: Optional[Callable[[ValuesType], ValuesType]] = None,
    ) -> None:
        self.base = base
        self.reset = reset or _identity
        self._log: List[Snapshot] = []
        self._dates: List[datetime.date] = []
        self._index: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._log)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self._log)

    @property
    def is_idle(self) -> bool:
        """No event has been recorded."""
        return not self._log

    @property
    def latest(self) -> Optional[Snapshot]:
        return self._log[-1] if self._log else None

    def record(self, event: Event, values: ValuesType) -> None:
        """Append the value-set produced by `event`.

        Recording the same event again replaces its snapshot.

        Raises:
            LogicError: if `event` is dated before the latest snapshot.
        """
        position = self._index.get(event.id)
        if position is not None:
            self._log[position] = Snapshot(event, values)
            return
        if self._dates and event.date < self._dates[-1]:
            raise LogicError(
                event.transaction,
                f"event dated {event.date} recorded after {self._dates[-1]}",
            )
        self._index[event.id] = len(self._log)
        self._log.append(Snapshot(event, values))
        self._dates.append(event.date)

    def values_for(self, event: Event) -> Optional[ValuesType]:
        """Complete value-set recorded for `event`, or None if not touched by it."""
        position = self._index.get(event.id)
        if position is None:
            return None
        return self._log[position].values

    def previous(self, event: Event) -> ValuesType:
        """Running state immediately before `event` was applied.

        Raises:
            KeyError: if `event` is not in the log.
        """
        position = self._index[event.id]
        if position == 0:
            return self.base
        return self.reset(self._log[position - 1].values)

    def delta_for(self, event: Event) -> Optional[ValuesType]:
        """Change in value-set caused by `event`, or None if not touched by it."""
        values = self.values_for(event)
        if values is None:
            return None
        return subtract_values(values, self.previous(event))

    def value_at(self, cutoff: datetime.date) -> ValuesType:
        """Running state after all events dated on or before `cutoff`."""
        position = bisect.bisect_right(self._dates, cutoff)
        if position == 0:
            return self.base
        return self.reset(self._log[position - 1].values)

    def value_before(self, date: datetime.date) -> ValuesType:
        """Running state after all events dated strictly before `date`."""
        position = bisect.bisect_left(self._dates, date)
        if position == 0:
            return self.base
        return self.reset(self._log[position - 1].values)

    def _copy(self, base: ValuesType, snapshots: List[Snapshot]) -> "History":
        history = History(base, self.reset)
        for snapshot in snapshots:
            history.record(*snapshot)
        return history

    def as_of(self, cutoff: datetime.date) -> "History":
        """Independent history truncated after `cutoff`."""
        position = bisect.bisect_right(self._dates, cutoff)
        return self._copy(self.base, self._log[:position])

    def over_range(self, start: datetime.date, end: datetime.date) -> "History":
        """Independent history of the events in [start, end], based on the state
        before `start`.
        """
        first = bisect.bisect_left(self._dates, start)
        last = bisect.bisect_right(self._dates, end)
        return self._copy(self.value_before(start), self._log[first:last])
