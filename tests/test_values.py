# coding: utf-8
"""
Unit tests for homeledger.analysis.values
"""
# stdlib imports
import unittest
from decimal import Decimal


# local imports
from homeledger.analysis import (
    AccountValues,
    SecurityValues,
    PayeeValues,
    CashType,
)
from homeledger.analysis.values import (
    SECURITY_TRANSIENT,
    add_values,
    subtract_values,
    sum_values,
    clear_fields,
)


class ArithmeticTestCase(unittest.TestCase):
    def testAddKeepsRates(self):
        values0 = AccountValues(
            balance=Decimal(100), valuation=Decimal(80), exchangerate=Decimal("0.8")
        )
        values1 = AccountValues(
            balance=Decimal(50), valuation=Decimal(35), exchangerate=Decimal("0.7")
        )
        total = add_values(values0, values1)
        self.assertEqual(total.balance, Decimal(150))
        self.assertEqual(total.valuation, Decimal(115))
        self.assertEqual(total.exchangerate, Decimal("0.7"))
        self.assertIsNone(total.depositrate)

    def testSubtract(self):
        values0 = SecurityValues(
            units=Decimal(10), price=Decimal(12), cashtype=CashType.LARGECASH
        )
        values1 = SecurityValues(units=Decimal(4), price=Decimal(10))
        delta = subtract_values(values0, values1)
        self.assertEqual(delta.units, Decimal(6))
        self.assertEqual(delta.price, Decimal(12))
        self.assertEqual(delta.cashtype, CashType.LARGECASH)

    def testSum(self):
        total = sum_values(
            PayeeValues(),
            [
                PayeeValues(income=Decimal(10)),
                PayeeValues(expense=Decimal(4), profit=Decimal(-4)),
            ],
        )
        self.assertEqual(total, PayeeValues(Decimal(10), Decimal(4), Decimal(-4)))
        self.assertEqual(sum_values(PayeeValues(), []), PayeeValues())

    def testClearFields(self):
        values = SecurityValues(
            units=Decimal(5),
            xferredcost=Decimal(20),
            costdilution=Decimal("0.5"),
            gainyears=3,
        )
        cleared = clear_fields(values, SECURITY_TRANSIENT)
        self.assertEqual(cleared.units, Decimal(5))
        self.assertEqual(cleared.xferredcost, 0)
        self.assertIsNone(cleared.costdilution)
        self.assertIsNone(cleared.gainyears)
        self.assertIs(clear_fields(values, ()), values)


if __name__ == "__main__":
    unittest.main(verbosity=3)
