# coding: utf-8
""" Reusable test elements """
# stdlib imports
import itertools
from datetime import date
from decimal import Decimal


# 3rd party imports
from sqlalchemy import create_engine


# local imports
from homeledger.config import CONFIG
from homeledger import database
from homeledger.analysis import (
    AccountType,
    AccountClass,
    PayeeType,
    SecurityClass,
    CategoryClass,
    Direction,
    Payee,
    Account,
    Security,
    Holding,
    Category,
    Tag,
    Transaction,
    SecurityPrice,
    ExchangeRate,
    DataSet,
    analyse,
)


DB_URI = CONFIG.test_db_uri

START = date(2020, 1, 1)


class DatabaseMixin(object):
    """ Mixin providing a session on a freshly created database per test """

    def setUp(self):
        """ Called multiple times, before every test method """
        self.engine = create_engine(DB_URI)
        database.Base.metadata.create_all(bind=self.engine)
        self.session = database.Session(bind=self.engine)

    def tearDown(self):
        """ Called multiple times, after every test method """
        self.session.close()
        database.Base.metadata.drop_all(bind=self.engine)
        self.engine.dispose()


#  Ledger entities shared by the analysis tests
MARKET = Payee("market", "Market", PayeeType.MARKET)
TAXMAN = Payee("taxman", "HMRC", PayeeType.TAXMAN)
BANK = Payee("bank", "Bank", PayeeType.INSTITUTION)
BROKER = Payee("broker", "Broker", PayeeType.INSTITUTION)
EMPLOYER = Payee("employer", "Employer", PayeeType.EMPLOYER)
SHOP = Payee("shop", "Shop")
SUNDRY = Payee("sundry", "Sundries")
ISSUER = Payee("issuer", "Acme plc", PayeeType.INSTITUTION)
INSURER = Payee("insurer", "Insurer", PayeeType.INSTITUTION)
AGENT = Payee("agent", "Letting Agent", PayeeType.INSTITUTION)
LENDER = Payee("lender", "Lending Platform", PayeeType.INSTITUTION)

SALARY = Category("salary", "Salary", CategoryClass.TAXEDINCOME)
INTEREST = Category("interest", "Interest", CategoryClass.INTEREST)
DIVIDEND = Category("dividend", "Dividends", CategoryClass.DIVIDEND)
HOUSEHOLD = Category("household", "Household", CategoryClass.EXPENSE)
GROCERIES = Category("groceries", "Groceries", CategoryClass.EXPENSE, HOUSEHOLD)
SUNDRIES = Category("sundries", "Sundries", CategoryClass.EXPENSE, HOUSEHOLD)
TRANSFER = Category("transfer", "Transfer", CategoryClass.TRANSFER)
STOCKSPLIT = Category("split", "Stock Split", CategoryClass.STOCKSPLIT)
DEMERGER = Category("demerger", "Demerger", CategoryClass.STOCKDEMERGER)
TAKEOVER = Category("takeover", "Takeover", CategoryClass.STOCKTAKEOVER)
PORTFOLIOXFER = Category("pxfer", "Portfolio Transfer", CategoryClass.PORTFOLIOXFER)
CLOSURE = Category("closure", "Closure", CategoryClass.SECURITYCLOSURE)
RENT = Category("rent", "Rent", CategoryClass.RENTALINCOME)
CASHBACK = Category("cashback", "Cashback", CategoryClass.CASHBACK)
LOANINTEREST = Category(
    "loaninterest", "Loan Interest", CategoryClass.LOANINTERESTEARNED
)
WRITEOFF = Category("writeoff", "Write Off", CategoryClass.WRITEOFF)
BADDEBT = Category("baddebt", "Bad Debt", CategoryClass.BADDEBTCAPITAL)

CURRENT = Account(
    "current",
    "Current Account",
    AccountType.DEPOSIT,
    "GBP",
    parent=BANK,
    subtype=AccountClass.CHECKING,
    opening=Decimal("1000"),
)
ISA = Account(
    "isa",
    "Cash ISA",
    AccountType.DEPOSIT,
    "GBP",
    parent=BANK,
    subtype=AccountClass.TAXFREESAVINGS,
)
DOLLARS = Account(
    "dollars",
    "Dollar Account",
    AccountType.DEPOSIT,
    "USD",
    parent=BANK,
    subtype=AccountClass.CHECKING,
)
WALLET = Account(
    "wallet",
    "Wallet",
    AccountType.CASH,
    "GBP",
    subtype=AccountClass.AUTOEXPENSE,
    autoexpense=SUNDRIES,
    autopayee=SUNDRY,
)
DEALING = Account(
    "dealing",
    "Dealing Account",
    AccountType.PORTFOLIO,
    "GBP",
    parent=BROKER,
    subtype=AccountClass.STANDARD,
)
NOMINEE = Account(
    "nominee",
    "Nominee Account",
    AccountType.PORTFOLIO,
    "GBP",
    parent=BROKER,
    subtype=AccountClass.STANDARD,
)
PENSIONS = Account(
    "pensions",
    "Pensions",
    AccountType.PORTFOLIO,
    "GBP",
    subtype=AccountClass.PENSION,
)
CARD = Account(
    "card",
    "Credit Card",
    AccountType.LOAN,
    "GBP",
    parent=BANK,
    subtype=AccountClass.CREDITCARD,
)
P2P = Account(
    "p2p",
    "Peer Lending",
    AccountType.DEPOSIT,
    "GBP",
    parent=LENDER,
    subtype=AccountClass.PEER2PEER,
)
LETTING = Account(
    "letting",
    "Letting Account",
    AccountType.DEPOSIT,
    "GBP",
    parent=AGENT,
    subtype=AccountClass.CHECKING,
)

ACME = Security("acme", "Acme", SecurityClass.SHARES, "GBP", parent=ISSUER)
NEWCO = Security("newco", "Newco", SecurityClass.SHARES, "GBP", parent=ISSUER)
SPINCO = Security("spinco", "Spinco", SecurityClass.SHARES, "GBP", parent=ISSUER)
BOND = Security("bond", "Growth Bond", SecurityClass.LIFEBOND, "GBP", parent=INSURER)
HOUSE = Security("house", "House", SecurityClass.PROPERTY, "GBP")
STATEPENSION = Security("sp", "State Pension", SecurityClass.STATEPENSION, "GBP")
USACME = Security("usacme", "US Acme", SecurityClass.SHARES, "USD", parent=ISSUER)

HOLIDAY = Tag("holiday", "Holiday")

PAYEES = (
    MARKET,
    TAXMAN,
    BANK,
    BROKER,
    EMPLOYER,
    SHOP,
    SUNDRY,
    ISSUER,
    INSURER,
    AGENT,
    LENDER,
)
CATEGORIES = (
    SALARY,
    INTEREST,
    DIVIDEND,
    HOUSEHOLD,
    GROCERIES,
    SUNDRIES,
    TRANSFER,
    STOCKSPLIT,
    DEMERGER,
    TAKEOVER,
    PORTFOLIOXFER,
    CLOSURE,
    RENT,
    CASHBACK,
    LOANINTEREST,
    WRITEOFF,
    BADDEBT,
)
ACCOUNTS = (
    CURRENT,
    ISA,
    DOLLARS,
    WALLET,
    DEALING,
    NOMINEE,
    PENSIONS,
    CARD,
    P2P,
    LETTING,
)
SECURITIES = (ACME, NEWCO, SPINCO, BOND, HOUSE, STATEPENSION, USACME)


def holding(security, portfolio=DEALING):
    return Holding(portfolio, security)


def D(value):
    return Decimal(str(value))


_SEQUENCE = itertools.count(1)


def make_transaction(
    date_, account, partner, category, amount, direction=Direction.TO, **kwargs
):
    """Transaction with a fresh id; money amounts given as str/int."""
    for name in (
        "partneramount",
        "taxcredit",
        "employerni",
        "employeeni",
        "benefit",
        "withheld",
        "returnedcash",
        "accountdeltaunits",
        "partnerdeltaunits",
        "dilution",
    ):
        if kwargs.get(name) is not None:
            kwargs[name] = D(kwargs[name])
    return Transaction(
        id=kwargs.pop("id", next(_SEQUENCE)),
        date=date_,
        account=account,
        partner=partner,
        direction=direction,
        category=category,
        amount=D(amount),
        **kwargs
    )


def price(security, date_, value):
    return SecurityPrice(security, date_, D(value))


def rate(currency, date_, value):
    return ExchangeRate(currency, date_, D(value))


def make_dataset(transactions=(), prices=(), rates=(), depositrates=(), **kwargs):
    """DataSet over the shared entities, streams sorted as loaded from the DB."""
    fields = dict(
        currency="GBP",
        start=START,
        payees=PAYEES,
        accounts=ACCOUNTS,
        securities=SECURITIES,
        categories=CATEGORIES,
        tags=(HOLIDAY,),
    )
    fields.update(kwargs)
    return DataSet(
        transactions=tuple(sorted(transactions, key=lambda tx: (tx.date, tx.id))),
        prices=tuple(sorted(prices, key=lambda p: p.date)),
        rates=tuple(sorted(rates, key=lambda r: r.date)),
        depositrates=tuple(sorted(depositrates, key=lambda r: r.date)),
        **fields
    )


class AnalysisMixin(object):
    """ Mixin running an analysis over the shared entities """

    def analyse(self, transactions=(), prices=(), rates=(), **kwargs):
        self.dataset = make_dataset(transactions, prices, rates, **kwargs)
        self.analysis = analyse(self.dataset)
        return self.analysis

    def holding_values(self, security, portfolio=DEALING):
        return self.analysis.portfolios.holdings[holding(security, portfolio)].values

    def latest(self, security, portfolio=DEALING):
        """Snapshot values (with per-event fields) of the last event."""
        bucket = self.analysis.portfolios.holdings[holding(security, portfolio)]
        return bucket.history.latest.values
