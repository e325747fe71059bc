# coding: utf-8
"""
Unit tests for homeledger.analysis.history and homeledger.analysis.buckets
"""
# stdlib imports
import unittest
from datetime import date
from decimal import Decimal


# local imports
from homeledger.analysis import (
    AccountValues,
    Bucket,
    BucketKind,
    CashType,
    Event,
    EventType,
    History,
    LogicError,
    SecurityValues,
)
from common import CURRENT, ACME, holding


def event(id_, date_):
    return Event(id_, EventType.TRANSACTION, date_)


def balance(amount):
    return AccountValues(balance=Decimal(amount), valuation=Decimal(amount))


class HistoryTestCase(unittest.TestCase):
    def setUp(self):
        self.history = History(balance(100))
        self.events = [
            event(1, date(2020, 1, 1)),
            event(2, date(2020, 1, 1)),
            event(3, date(2020, 2, 1)),
        ]
        for evt, amount in zip(self.events, (110, 120, 150)):
            self.history.record(evt, balance(amount))

    def testIdle(self):
        self.assertTrue(History(balance(0)).is_idle)
        self.assertFalse(self.history.is_idle)
        self.assertEqual(len(self.history), 3)

    def testValueAt(self):
        self.assertEqual(self.history.value_at(date(2019, 12, 31)).balance, 100)
        self.assertEqual(self.history.value_at(date(2020, 1, 1)).balance, 120)
        self.assertEqual(self.history.value_at(date(2020, 1, 31)).balance, 120)
        self.assertEqual(self.history.value_at(date(2020, 2, 1)).balance, 150)

    def testValueBefore(self):
        self.assertEqual(self.history.value_before(date(2020, 1, 1)).balance, 100)
        self.assertEqual(self.history.value_before(date(2020, 2, 1)).balance, 120)

    def testDeltaFor(self):
        first, second, third = self.events
        self.assertEqual(self.history.delta_for(first).balance, 10)
        self.assertEqual(self.history.delta_for(third).balance, 30)
        self.assertEqual(self.history.previous(third).balance, 120)
        self.assertIsNone(self.history.delta_for(event(99, date(2020, 3, 1))))

    def testRecordSameEventReplaces(self):
        self.history.record(self.events[2], balance(160))
        self.assertEqual(len(self.history), 3)
        self.assertEqual(self.history.latest.values.balance, 160)

    def testRecordOutOfOrder(self):
        with self.assertRaises(LogicError):
            self.history.record(event(4, date(2019, 12, 1)), balance(0))

    def testAsOf(self):
        history = self.history.as_of(date(2020, 1, 31))
        self.assertEqual(len(history), 2)
        self.assertEqual(history.base.balance, 100)
        self.assertEqual(len(self.history), 3)

    def testOverRange(self):
        history = self.history.over_range(date(2020, 1, 2), date(2020, 2, 1))
        self.assertEqual(len(history), 1)
        self.assertEqual(history.base.balance, 120)
        self.assertTrue(
            self.history.over_range(date(2020, 3, 1), date(2020, 3, 31)).is_idle
        )


class BucketTestCase(unittest.TestCase):
    def testTransientFieldsCleared(self):
        bucket = Bucket(BucketKind.SECURITY, holding(ACME))
        bucket.values = bucket.values._replace(
            units=Decimal(10),
            residualcost=Decimal(100),
            allowedcost=Decimal(50),
            cashtype=CashType.SMALLCASH,
        )
        evt = event(1, date(2020, 1, 1))
        bucket.snapshot(evt)

        recorded = bucket.history.values_for(evt)
        self.assertEqual(recorded.allowedcost, 50)
        self.assertEqual(recorded.cashtype, CashType.SMALLCASH)
        self.assertEqual(bucket.values.allowedcost, 0)
        self.assertIsNone(bucket.values.cashtype)
        self.assertEqual(bucket.values.units, 10)
        self.assertIsNone(bucket.history.value_at(date(2020, 1, 1)).cashtype)

    def testDerivedFields(self):
        bucket = Bucket(BucketKind.SECURITY, holding(ACME))
        bucket.values = SecurityValues(
            residualcost=Decimal(100),
            invested=Decimal(100),
            valuation=Decimal(130),
            dividend=Decimal(5),
        )
        bucket.calculate_delta()
        self.assertEqual(bucket.values.unrealisedgains, 30)
        self.assertEqual(bucket.values.profit, 35)
        self.assertEqual(bucket.values.valuedelta, 130)
        self.assertEqual(bucket.delta.residualcost, 100)

    def testOpen(self):
        bucket = Bucket(BucketKind.DEPOSIT, CURRENT)
        bucket.open(balance(100)._replace(localvalue=Decimal(90)))
        self.assertEqual(bucket.base.currencyfluct, 10)
        self.assertTrue(bucket.is_idle)
        self.assertTrue(bucket.is_active)

    def testAsOfIndependent(self):
        bucket = Bucket(BucketKind.DEPOSIT, CURRENT)
        bucket.values = balance(100)
        bucket.snapshot(event(1, date(2020, 1, 1)))
        bucket.values = balance(150)
        bucket.snapshot(event(2, date(2020, 2, 1)))

        copy = bucket.as_of(date(2020, 1, 15))
        self.assertEqual(copy.values.balance, 100)
        self.assertEqual(len(copy.history), 1)
        self.assertEqual(bucket.values.balance, 150)

        copy = bucket.over_range(date(2020, 2, 1), date(2020, 2, 28))
        self.assertEqual(copy.base.balance, 100)
        self.assertEqual(copy.values.balance, 150)


if __name__ == "__main__":
    unittest.main(verbosity=3)
