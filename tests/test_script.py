# coding: utf-8
"""
Unit tests for homeledger.script
"""
# stdlib imports
import unittest
from datetime import date


# 3rd party imports
import tablib


# local imports
from homeledger import script
from homeledger.analysis import AnalysisView, Direction
from common import AnalysisMixin, make_transaction, CURRENT, EMPLOYER, SALARY


class ArgParserTestCase(unittest.TestCase):
    def setUp(self):
        self.argparser, self.subparsers = script.make_argparser()

    def testAnalyse(self):
        args = self.argparser.parse_args(
            ["-vv", "analyse", "-d", "payees", "-t", "-e", "2020-04-05", "out.csv"]
        )
        self.assertEqual(args.verbose, 2)
        self.assertEqual(args.file, "out.csv")
        self.assertEqual(args.dimension, "payees")
        self.assertTrue(args.totals)
        self.assertEqual(args.dtend, "2020-04-05")
        self.assertIsNone(args.dtstart)
        self.assertIs(args.func, script.dump_analysis)

    def testAliases(self):
        self.assertIs(
            self.argparser.parse_args(["dump", "out.csv"]).func, script.dump_analysis
        )
        self.assertIs(
            self.argparser.parse_args(["erase"]).func, script.drop_all_tables
        )

    def testCheck(self):
        args = self.argparser.parse_args(["check", "-c", "USD"])
        self.assertEqual(args.currency, "USD")
        self.assertIs(args.func, script.check_analysis)

    def testBadDimension(self):
        with self.assertRaises(SystemExit):
            self.argparser.parse_args(["analyse", "-d", "widgets", "out.csv"])


class DumpTestCase(AnalysisMixin, unittest.TestCase):
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
                )
            ]
        )
        self.argparser, _ = script.make_argparser()

    def testSelectView(self):
        args = self.argparser.parse_args(["check"])
        self.assertIs(script.select_view(self.analysis, args), self.analysis)

        args.dtend = date(2020, 1, 15)
        view = script.select_view(self.analysis, args)
        self.assertIsInstance(view, AnalysisView)
        self.assertIsNone(view.start)

        args.dtstart = date(2020, 1, 1)
        args.dtend = None
        view = script.select_view(self.analysis, args)
        self.assertEqual(view.start, date(2020, 1, 1))
        self.assertEqual(view.end, date.max)

    def testStack(self):
        dataset = tablib.Dataset()
        dataset = script.stack(
            dataset, script.flatten(self.analysis, "payees", False), "payees"
        )
        self.assertEqual(
            dataset.headers, ["dimension", "name", "group", "field", "value"]
        )
        self.assertEqual(
            [row[3] for row in dataset], ["income", "expense", "profit"]
        )
        self.assertEqual(dataset[0][:3], ("payees", "Employer", "EMPLOYER"))


if __name__ == "__main__":
    unittest.main(verbosity=3)
