# coding: utf-8
"""
Unit tests for homeledger.loader
"""
# stdlib imports
import unittest
from datetime import date
from decimal import Decimal


# local imports
from homeledger import models
from homeledger.loader import Loader, load_dataset
from homeledger.analysis import (
    AccountType,
    AccountClass,
    PayeeType,
    SecurityClass,
    CategoryClass,
    Direction,
    Holding,
    analyse,
    check_totals,
)
from common import DatabaseMixin


class LoaderTestCase(DatabaseMixin, unittest.TestCase):
    def setUp(self):
        super(LoaderTestCase, self).setUp()
        session = self.session
        market = models.Payee(name="Market", type=PayeeType.MARKET)
        employer = models.Payee(name="Employer", type=PayeeType.EMPLOYER)
        shop = models.Payee(name="Shop", type=PayeeType.PAYEE)
        bank = models.Payee(name="Bank", type=PayeeType.INSTITUTION)

        salary = models.Category(name="Salary", cls=CategoryClass.TAXEDINCOME)
        household = models.Category(name="Household", cls=CategoryClass.EXPENSE)
        groceries = models.Category(
            name="Groceries", cls=CategoryClass.EXPENSE, parent=household
        )
        transfer = models.Category(name="Transfer", cls=CategoryClass.TRANSFER)

        current = models.Account(
            name="Current",
            type=AccountType.DEPOSIT,
            subtype=AccountClass.CHECKING,
            currency="GBP",
            parent=bank,
            opening=Decimal("1000"),
        )
        dealing = models.Account(
            name="Dealing",
            type=AccountType.PORTFOLIO,
            subtype=AccountClass.STANDARD,
            currency="GBP",
            parent=bank,
        )
        acme = models.Security(name="Acme", type=SecurityClass.SHARES, currency="GBP")
        holiday = models.Tag(name="Holiday")

        session.add_all([market, employer, shop, bank])
        session.flush()
        session.add_all([salary, transfer, groceries, current, dealing])
        session.add_all(
            [
                models.Transaction(
                    date=date(2020, 1, 31),
                    account=current,
                    partnerpayee=employer,
                    direction=Direction.FROM,
                    category=salary,
                    amount=Decimal("2000"),
                ),
                models.Transaction(
                    date=date(2020, 2, 1),
                    account=current,
                    partnerpayee=shop,
                    direction=Direction.TO,
                    category=groceries,
                    amount=Decimal("150"),
                    tags=[holiday],
                ),
                models.Transaction(
                    date=date(2020, 2, 2),
                    account=current,
                    partnerpayee=shop,
                    direction=Direction.TO,
                    category=groceries,
                    amount=Decimal("999"),
                    deleted=True,
                ),
                models.Transaction(
                    date=date(2020, 2, 15),
                    account=dealing,
                    security=acme,
                    partneraccount=current,
                    direction=Direction.FROM,
                    category=transfer,
                    amount=Decimal("1000"),
                    accountdeltaunits=Decimal("100"),
                ),
                models.SecurityPrice(security=acme, date=date(2020, 2, 1), price=10),
                models.SecurityPrice(security=acme, date=date(2020, 3, 1), price=12),
            ]
        )
        session.commit()

    def load(self, **kwargs):
        return load_dataset(
            self.session,
            reporting_currency="GBP",
            start_date=date(2020, 1, 1),
            **kwargs
        )

    def testEntities(self):
        dataset = self.load()
        self.assertEqual(dataset.currency, "GBP")
        self.assertEqual(dataset.start, date(2020, 1, 1))
        self.assertEqual(
            [payee.name for payee in dataset.payees],
            ["Market", "Employer", "Shop", "Bank"],
        )
        self.assertEqual(dataset.market.name, "Market")

        groceries = [c for c in dataset.categories if c.name == "Groceries"][0]
        self.assertEqual(groceries.parent.name, "Household")

        current = [a for a in dataset.accounts if a.name == "Current"][0]
        self.assertIs(current.parent, dataset.payees[-1])
        self.assertEqual(current.opening, Decimal("1000"))
        self.assertFalse(current.closed)

    def testTransactions(self):
        dataset = self.load()
        self.assertEqual(len(dataset.transactions), 3)
        salary, groceries, purchase = dataset.transactions
        self.assertEqual(salary.partner.name, "Employer")
        self.assertEqual([tag.name for tag in groceries.tags], ["Holiday"])
        self.assertIsInstance(purchase.account, Holding)
        self.assertEqual(purchase.account.security.name, "Acme")
        self.assertEqual(purchase.partner.name, "Current")
        self.assertIs(purchase.partner, salary.account)
        self.assertEqual(purchase.accountdeltaunits, Decimal("100"))

    def testEndDate(self):
        dataset = self.load(end_date=date(2020, 2, 10))
        self.assertEqual(len(dataset.transactions), 2)
        self.assertEqual(len(dataset.prices), 1)

    def testMemoized(self):
        loader = Loader(self.session)
        account = self.session.query(models.Account).filter_by(name="Current").one()
        self.assertIs(loader.account(account), loader.account(account))
        self.assertIsNone(loader.payee(None))

    def testSecurityOutsidePortfolio(self):
        loader = Loader(self.session)
        account = self.session.query(models.Account).filter_by(name="Current").one()
        acme = self.session.query(models.Security).one()
        with self.assertRaises(models.ModelError):
            loader.asset(account, acme)

    def testAnalyse(self):
        analysis = analyse(self.load())
        current = [a for a in analysis.dataset.accounts if a.name == "Current"][0]
        self.assertEqual(analysis.deposits[current].values.balance, Decimal("1850"))

        holding = analysis.dataset.transactions[-1].account
        values = analysis.portfolios.holdings[holding].values
        self.assertEqual(values.units, Decimal("100"))
        self.assertEqual(values.valuation, Decimal("1200"))
        self.assertEqual(analysis.payees[analysis.market].values.profit, Decimal("200"))
        self.assertTrue(check_totals(analysis))


if __name__ == "__main__":
    unittest.main(verbosity=3)
