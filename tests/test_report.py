# coding: utf-8
"""
Unit tests for homeledger.analysis.report
"""
# stdlib imports
import unittest
from datetime import date
from decimal import Decimal


# local imports
from homeledger.analysis import Direction, SecurityValues
from homeledger.analysis.report import (
    REGISTRIES,
    get_registry,
    export_values,
    flatten_registry,
    flatten_totals,
    flatten_chargeables,
)
from common import (
    AnalysisMixin,
    make_transaction,
    CURRENT,
    EMPLOYER,
    SHOP,
    SALARY,
    GROCERIES,
)


class ReportTestCase(AnalysisMixin, unittest.TestCase):
    def setUp(self):
        self.analyse(
            [
                make_transaction(
                    date(2020, 1, 31),
                    CURRENT,
                    EMPLOYER,
                    SALARY,
                    2000,
                    direction=Direction.FROM,
                ),
                make_transaction(date(2020, 2, 1), CURRENT, SHOP, GROCERIES, "12.345"),
            ]
        )

    def testGetRegistry(self):
        self.assertIs(get_registry(self.analysis, "payees"), self.analysis.payees)
        self.assertIs(
            get_registry(self.analysis, "holdings"), self.analysis.portfolios.holdings
        )
        for name in REGISTRIES:
            get_registry(self.analysis, name)

    def testFlattenRegistry(self):
        dataset = flatten_registry(self.analysis.payees)
        self.assertEqual(
            dataset.headers, ["name", "group", "income", "expense", "profit"]
        )
        self.assertEqual(dataset.height, 2)
        self.assertEqual(
            dataset[0], ("Employer", "EMPLOYER", Decimal("2000"), 0, Decimal("2000"))
        )
        self.assertEqual(dataset[1][0], "Shop")
        self.assertEqual(dataset[1][3], Decimal("12.35"))

    def testFlattenEmptyRegistry(self):
        dataset = flatten_registry(self.analysis.loans)
        self.assertEqual(dataset.height, 0)
        self.assertEqual(dataset.headers[:3], ["name", "group", "balance"])

    def testFlattenTotals(self):
        dataset = flatten_totals(self.analysis.deposits)
        names = [row[0] for row in dataset]
        self.assertEqual(names, ["CHECKING", "Total"])
        self.assertEqual(dataset[1][2], Decimal("2987.66"))

    def testExportValues(self):
        row = export_values(SecurityValues(units=Decimal("1.005")))
        self.assertEqual(row[0], Decimal("1.01"))
        self.assertIsNone(row[SecurityValues._fields.index("cashtype")])

    def testFlattenChargeablesEmpty(self):
        dataset = flatten_chargeables(self.analysis)
        self.assertEqual(dataset.height, 0)
        self.assertEqual(dataset.headers[0], "date")


if __name__ == "__main__":
    unittest.main(verbosity=3)
