# coding: utf-8
"""
Read-only view of a household ledger, as consumed by the analysis engine.

Entities (payees, accounts, securities, categories, tags) and the four dated
streams (security prices, exchange rates, deposit rates, transactions) are
immutable NamedTuples.  They are hashable, so they serve directly as bucket keys.

A Transaction names a single `account` and a `partner` plus a `direction`;
Direction.TO means money leaves the account for the partner, Direction.FROM
means money arrives in the account from the partner.  Either side may be a
Payee, an Account, or a Holding (a security held in a portfolio account, a/k/a
"pocket").  `amount` is denominated in the account's currency; `partneramount`
is only given when the partner is denominated in a different currency.

A DataSet bundles one complete, sorted ledger together with the reporting
currency and the first day of the books.

Exchange rates are quoted as units of reporting currency per one unit of the
foreign currency, i.e. foreign amount * rate == reporting amount.
"""

__all__ = [
    "AccountType",
    "AccountClass",
    "PayeeType",
    "SecurityClass",
    "CategoryClass",
    "TaxClass",
    "Direction",
    "EventType",
    "CashType",
    "Payee",
    "Account",
    "Security",
    "Holding",
    "Category",
    "Tag",
    "Transaction",
    "SecurityPrice",
    "ExchangeRate",
    "DepositRate",
    "Event",
    "DataSet",
    "AssetType",
]


# stdlib imports
import enum
import datetime as _datetime
from decimal import Decimal
from typing import NamedTuple, Optional, Tuple, Union, Any


# local imports
from homeledger import utils


@enum.unique
class AccountType(enum.Enum):
    DEPOSIT = 1
    CASH = 2
    LOAN = 3
    PORTFOLIO = 4


@enum.unique
class AccountClass(enum.Enum):
    # Deposits
    CHECKING = 1
    SAVINGS = 2
    TAXFREESAVINGS = 3
    BOND = 4
    TAXFREEBOND = 5
    PEER2PEER = 6
    # Cash
    CASH = 10
    AUTOEXPENSE = 11
    # Loans
    CREDITCARD = 20
    PRIVATELOAN = 21
    LOAN = 22
    # Portfolios
    STANDARD = 30
    TAXFREE = 31
    PENSION = 32

    @property
    def is_taxfree(self) -> bool:
        return self in (AccountClass.TAXFREESAVINGS, AccountClass.TAXFREEBOND)


@enum.unique
class PayeeType(enum.Enum):
    MARKET = 1
    TAXMAN = 2
    GOVERNMENT = 3
    EMPLOYER = 4
    INSTITUTION = 5
    INDIVIDUAL = 6
    PAYEE = 7


@enum.unique
class SecurityClass(enum.Enum):
    SHARES = 1
    INCOMEUNITTRUST = 2
    GROWTHUNITTRUST = 3
    LIFEBOND = 4
    ENDOWMENT = 5
    PROPERTY = 6
    VEHICLE = 7
    DEFINEDCONTRIBUTION = 8
    DEFINEDBENEFIT = 9
    STATEPENSION = 10
    ASSET = 11

    @property
    def auto_units(self) -> Optional[Decimal]:
        """Units assumed once a valuation is known for an asset that isn't unitised."""
        if self in _AUTO_UNITS:
            return Decimal(1)
        return None

    @property
    def is_chargeable(self) -> bool:
        """Gains are chargeable gains (insurance bonds), sliced over years held."""
        return self is SecurityClass.LIFEBOND


_AUTO_UNITS = frozenset(
    [
        SecurityClass.ENDOWMENT,
        SecurityClass.PROPERTY,
        SecurityClass.VEHICLE,
        SecurityClass.DEFINEDBENEFIT,
        SecurityClass.STATEPENSION,
        SecurityClass.ASSET,
    ]
)


@enum.unique
class CategoryClass(enum.Enum):
    # Income
    TAXEDINCOME = 1
    GROSSINCOME = 2
    OTHERINCOME = 3
    INTEREST = 4
    TAXEDINTEREST = 5
    GROSSINTEREST = 6
    TAXFREEINTEREST = 7
    PEER2PEERINTEREST = 8
    DIVIDEND = 9
    SHAREDIVIDEND = 10
    UNITTRUSTDIVIDEND = 11
    FOREIGNDIVIDEND = 12
    TAXFREEDIVIDEND = 13
    LOYALTYBONUS = 14
    TAXEDLOYALTYBONUS = 15
    GROSSLOYALTYBONUS = 16
    TAXFREELOYALTYBONUS = 17
    GIFTEDINCOME = 18
    INHERITED = 19
    RENTALINCOME = 20
    ROOMRENTALINCOME = 21
    LOANINTERESTEARNED = 22
    CASHBACK = 23
    PENSIONCONTRIB = 24
    RECOVEREDEXPENSES = 25
    TAXRELIEF = 26
    OPENINGBALANCE = 27
    # Expense
    EXPENSE = 40
    LOCALTAXES = 41
    WRITEOFF = 42
    LOANINTERESTCHARGED = 43
    INCOMETAX = 44
    BADDEBTCAPITAL = 45
    BADDEBTINTEREST = 46
    RENTALEXPENSE = 47
    # Transfers & security structure
    TRANSFER = 60
    STOCKSPLIT = 61
    UNITSADJUST = 62
    STOCKDEMERGER = 63
    SECURITYREPLACE = 64
    STOCKTAKEOVER = 65
    STOCKRIGHTSISSUE = 66
    PORTFOLIOXFER = 67
    SECURITYCLOSURE = 68
    # Booked by the engine itself
    MARKETGROWTH = 80
    CURRENCYFLUCTUATION = 81
    CAPITALGAIN = 82
    CHARGEABLEGAIN = 83
    TAXCREDIT = 84
    EMPLOYEENI = 85
    EMPLOYERNI = 86
    DEEMEDBENEFIT = 87
    WITHHELD = 88

    @property
    def is_income(self) -> bool:
        return self in _INCOME

    @property
    def is_expense(self) -> bool:
        return not self.is_income and not self.is_transfer

    @property
    def is_transfer(self) -> bool:
        return 60 <= self.value < 80

    @property
    def is_dividend(self) -> bool:
        return self in _DIVIDENDS

    @property
    def is_interest(self) -> bool:
        return self in _INTEREST


_INCOME = frozenset(
    [cls for cls in CategoryClass if cls.value < 40]
    + [
        CategoryClass.MARKETGROWTH,
        CategoryClass.CURRENCYFLUCTUATION,
        CategoryClass.CAPITALGAIN,
        CategoryClass.CHARGEABLEGAIN,
        CategoryClass.EMPLOYEENI,
        CategoryClass.EMPLOYERNI,
        CategoryClass.DEEMEDBENEFIT,
    ]
)

_DIVIDENDS = frozenset(
    [
        CategoryClass.DIVIDEND,
        CategoryClass.SHAREDIVIDEND,
        CategoryClass.UNITTRUSTDIVIDEND,
        CategoryClass.FOREIGNDIVIDEND,
        CategoryClass.TAXFREEDIVIDEND,
    ]
)

_INTEREST = frozenset(
    [
        CategoryClass.INTEREST,
        CategoryClass.TAXEDINTEREST,
        CategoryClass.GROSSINTEREST,
        CategoryClass.TAXFREEINTEREST,
        CategoryClass.PEER2PEERINTEREST,
        CategoryClass.LOYALTYBONUS,
        CategoryClass.TAXEDLOYALTYBONUS,
        CategoryClass.GROSSLOYALTYBONUS,
        CategoryClass.TAXFREELOYALTYBONUS,
    ]
)


@enum.unique
class TaxClass(enum.Enum):
    SALARY = 1
    ROOMRENTAL = 2
    RENTALINCOME = 3
    OTHERINCOME = 4
    TAXEDINTEREST = 5
    UNTAXEDINTEREST = 6
    PEER2PEERINTEREST = 7
    DIVIDEND = 8
    UNITTRUSTDIVIDEND = 9
    FOREIGNDIVIDEND = 10
    CHARGEABLEGAINS = 11
    CAPITALGAINS = 12
    TAXFREE = 13
    MARKET = 14
    TAXPAID = 15
    EXPENSE = 16
    VIRTUAL = 17

    @property
    def is_expense(self) -> bool:
        return self in (TaxClass.TAXPAID, TaxClass.EXPENSE)


@enum.unique
class Direction(enum.Enum):
    TO = 1
    FROM = 2


@enum.unique
class EventType(enum.Enum):
    # Listed in same-date processing order
    SECURITYPRICE = 1
    XCHGRATE = 2
    DEPOSITRATE = 3
    OPENINGBALANCE = 4
    TRANSACTION = 5


@enum.unique
class CashType(enum.Enum):
    SMALLCASH = 1
    LARGECASH = 2


class Payee(NamedTuple):
    """Counterparty that isn't one of our own assets.

    Attributes:
        id: unique identifier.
        name: display name.
        type: PayeeType; MARKET and TAXMAN payees are singular.
        parent: not used for payees; present for a uniform `parent` interface.
    """

    id: Any
    name: str
    type: PayeeType = PayeeType.PAYEE
    parent: None = None

    def __str__(self):
        return self.name


class Category(NamedTuple):
    """Transaction category.

    Attributes:
        id: unique identifier.
        name: display name.
        cls: CategoryClass driving analysis behaviour.
        parent: enclosing Category, or None for a top-level category.
    """

    id: Any
    name: str
    cls: CategoryClass
    parent: Optional["Category"] = None

    def __str__(self):
        return self.name


class Account(NamedTuple):
    """Deposit, cash, loan or portfolio account.

    Attributes:
        id: unique identifier.
        name: display name.
        type: AccountType.
        currency: ISO 4217 code.
        parent: Payee holding the account (bank, broker, lender).
        subtype: AccountClass refining the type.
        autoexpense: for cash accounts, the category to which spending is booked
                     directly instead of keeping a balance.
        autopayee: for cash accounts, the payee standing in for the account when
                   spending is booked directly.
        opening: opening balance (account currency) on the first day of the books.
        closed: account has been closed.
    """

    id: Any
    name: str
    type: AccountType
    currency: str
    parent: Optional[Payee] = None
    subtype: Optional[AccountClass] = None
    autoexpense: Optional[Category] = None
    autopayee: Optional[Payee] = None
    opening: Optional[Decimal] = None
    closed: bool = False

    @property
    def is_autoexpense(self) -> bool:
        return self.type is AccountType.CASH and self.autoexpense is not None

    def __str__(self):
        return self.name


class Security(NamedTuple):
    """Security, fund, pension or other priced asset.

    Attributes:
        id: unique identifier.
        name: display name.
        type: SecurityClass.
        currency: ISO 4217 code of the price.
        parent: issuer/manager Payee; the counterparty for dividends.
        symbol: ticker or other short code.
    """

    id: Any
    name: str
    type: SecurityClass
    currency: str
    parent: Optional[Payee] = None
    symbol: Optional[str] = None

    def __str__(self):
        return self.name


class Holding(NamedTuple):
    """A security held in a portfolio account."""

    portfolio: Account
    security: Security

    @property
    def currency(self) -> str:
        return self.security.currency

    @property
    def parent(self) -> Optional[Payee]:
        return self.security.parent

    def __str__(self):
        return f"{self.portfolio.name}:{self.security.name}"


class Tag(NamedTuple):
    id: Any
    name: str

    def __str__(self):
        return self.name


AssetType = Union[Payee, Account, Holding]


class Transaction(NamedTuple):
    """One ledger transaction, as entered.

    Attributes:
        id: unique identifier.
        date: accrual date.
        account: Account or Holding on the owning side.
        partner: Payee, Account or Holding on the other side.
        direction: Direction.TO (account -> partner) or Direction.FROM.
        category: Category.
        amount: money amount (account currency, positive).
        partneramount: partner-currency amount, when the currencies differ.
        taxcredit: tax deducted at source.
        employerni: employer National Insurance contribution.
        employeeni: employee National Insurance contribution.
        benefit: deemed benefit (taxable value received in kind).
        withheld: amount withheld at source (e.g. salary sacrifice).
        returnedcash: cash returned by a takeover.
        returnedcashaccount: Account receiving `returnedcash`.
        accountdeltaunits: change in units of the account holding.
        partnerdeltaunits: change in units of the partner holding.
        dilution: cost dilution ratio for demergers.
        tags: sequence of Tag.
        deleted: transaction is deleted and must be ignored.
        memo: free text.
    """

    id: Any
    date: _datetime.date
    account: "AssetType"
    partner: "AssetType"
    direction: Direction
    category: Category
    amount: Decimal
    partneramount: Optional[Decimal] = None
    taxcredit: Optional[Decimal] = None
    employerni: Optional[Decimal] = None
    employeeni: Optional[Decimal] = None
    benefit: Optional[Decimal] = None
    withheld: Optional[Decimal] = None
    returnedcash: Optional[Decimal] = None
    returnedcashaccount: Optional[Account] = None
    accountdeltaunits: Optional[Decimal] = None
    partnerdeltaunits: Optional[Decimal] = None
    dilution: Optional[Decimal] = None
    tags: Tuple[Tag, ...] = ()
    deleted: bool = False
    memo: Optional[str] = None

    def __str__(self):
        return f"Transaction(id={self.id!r}, date={self.date}, category={self.category})"


class SecurityPrice(NamedTuple):
    security: Security
    date: _datetime.date
    price: Decimal


class ExchangeRate(NamedTuple):
    """Reporting-currency value of one unit of `currency`, from `date`."""

    currency: str
    date: _datetime.date
    rate: Decimal


class DepositRate(NamedTuple):
    deposit: Account
    date: _datetime.date
    rate: Decimal
    enddate: Optional[_datetime.date] = None


class Event(NamedTuple):
    """One step of an analysis pass.

    Attributes:
        id: sequence number, unique within a pass.
        type: EventType.
        date: effective date.
        payload: Transaction for TRANSACTION events; a tuple of the
                 SecurityPrice/ExchangeRate/DepositRate records sharing a date for
                 the rate events; None for the OPENINGBALANCE event.
    """

    id: int
    type: EventType
    date: _datetime.date
    payload: Any = None

    @property
    def transaction(self) -> Optional[Transaction]:
        if self.type is EventType.TRANSACTION:
            return self.payload
        return None


class DataSet(NamedTuple):
    """A complete ledger ready for analysis.

    All dated sequences must be sorted by date; `transactions` by (date, id).
    """

    currency: str
    start: Optional[_datetime.date] = None
    payees: Tuple[Payee, ...] = ()
    accounts: Tuple[Account, ...] = ()
    securities: Tuple[Security, ...] = ()
    categories: Tuple[Category, ...] = ()
    tags: Tuple[Tag, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    prices: Tuple[SecurityPrice, ...] = ()
    rates: Tuple[ExchangeRate, ...] = ()
    depositrates: Tuple[DepositRate, ...] = ()

    @property
    def start_date(self) -> Optional[_datetime.date]:
        """First day of the books: configured start, else the earliest event date."""
        if self.start is not None:
            return self.start
        dates = [seq[0].date for seq in self._streams() if seq]
        return min(dates) if dates else None

    def _streams(self):
        return (self.prices, self.rates, self.depositrates, self.transactions)

    @property
    def market(self) -> Optional[Payee]:
        return utils.first_true(
            self.payees, default=None, pred=lambda p: p.type is PayeeType.MARKET
        )

    @property
    def taxman(self) -> Optional[Payee]:
        return utils.first_true(
            self.payees, default=None, pred=lambda p: p.type is PayeeType.TAXMAN
        )

    @property
    def state_pension(self) -> Optional[Holding]:
        """Holding of the STATEPENSION security in the PENSION portfolio."""
        portfolio = utils.first_true(
            self.accounts,
            default=None,
            pred=lambda a: a.type is AccountType.PORTFOLIO
            and a.subtype is AccountClass.PENSION,
        )
        security = utils.first_true(
            self.securities,
            default=None,
            pred=lambda s: s.type is SecurityClass.STATEPENSION,
        )
        if portfolio is None or security is None:
            return None
        return Holding(portfolio, security)

    def singular_category(self, cls: CategoryClass) -> Category:
        """The category of class `cls`; a placeholder if the ledger defines none."""
        category = utils.first_true(
            self.categories, default=None, pred=lambda c: c.cls is cls
        )
        if category is None:
            category = Category(id=f"#{cls.name}", name=cls.name.title(), cls=cls)
        return category
