# coding: utf-8
"""
Ledger record tables.

One table per entity (payees, accounts, securities, categories, tags) plus the
dated streams (transactions, security prices, exchange rates, deposit rates).
Classifications reuse the enums of homeledger.analysis.types, so a row maps onto
its analysis record without translation (q.v. homeledger.loader).
"""
# stdlib imports
import logging


# 3rd party imports
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    Boolean,
    Numeric,
    ForeignKey,
    Enum,
    Table,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql.schema import UniqueConstraint, CheckConstraint
from ofxtools.models.i18n import CURRENCY_CODES


# Local imports
from homeledger.database import Base
from homeledger.analysis.types import (
    AccountType,
    AccountClass,
    PayeeType,
    SecurityClass,
    CategoryClass,
    Direction,
)


class ModelError(Exception):
    """ Base class for exceptions raised by this module.  """

    pass


CurrencyType = Enum(*CURRENCY_CODES, name="currency_type")


class Mergeable(object):
    """Mixin implementing merge() classmethod.
    """

    signature = NotImplemented

    # Not `cls`: Category has a column of that name.
    @classmethod
    def merge(klass, session, **kwargs):
        """
        Query DB for unique persisted instance matching given values for
        signature attributes; if not found, insert a new instance with
        all attributes from kwargs.
        """
        if klass.signature is NotImplemented:
            raise NotImplementedError
        sig = {k: v for k, v in kwargs.items() if k in klass.signature}
        instance = session.query(klass).filter_by(**sig).one_or_none()
        msg = "Existing {} loaded from DB".format(instance)
        if instance is None:
            instance = klass(**kwargs)
            msg = "Created {}".format(instance)
        logging.info(msg)
        session.add(instance)
        return instance


class Payee(Base, Mergeable):
    """Counterparty: employer, shop, bank, the market, the tax man..."""

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    type = Column(
        Enum(PayeeType, name="payee_type"),
        nullable=False,
        default=PayeeType.PAYEE,
        comment=f"One of {tuple(PayeeType.__members__.keys())}",
    )

    __table_args__ = ({"comment": "Counterparties"},)

    signature = ("name",)


class Category(Base, Mergeable):
    """Transaction category, optionally nested under a parent category."""

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    cls = Column(
        Enum(CategoryClass, name="category_class"),
        nullable=False,
        comment="Drives how transactions in the category are analysed",
    )
    parent_id = Column(
        Integer,
        ForeignKey("category.id", onupdate="CASCADE"),
        comment="Enclosing category (FK category.id)",
    )
    parent = relationship("Category", remote_side=[id], backref="children")

    __table_args__ = (
        UniqueConstraint("name", "parent_id"),
        {"comment": "Transaction Categories"},
    )

    signature = ("name", "parent")


class Account(Base, Mergeable):
    """Deposit, cash, loan or portfolio account."""

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    type = Column(
        Enum(AccountType, name="account_type"),
        nullable=False,
        comment=f"One of {tuple(AccountType.__members__.keys())}",
    )
    subtype = Column(Enum(AccountClass, name="account_class"))
    currency = Column(CurrencyType, nullable=False, comment="ISO4217")
    parent_id = Column(
        Integer,
        ForeignKey("payee.id", onupdate="CASCADE"),
        comment="Institution holding the account (FK payee.id)",
    )
    # Multiple join paths from Account to Payee (parent; autopayee)
    parent = relationship("Payee", foreign_keys=[parent_id], backref="accounts")
    autoexpense_id = Column(
        Integer,
        ForeignKey("category.id", onupdate="CASCADE"),
        comment="Cash accounts: category spending is booked to (FK category.id)",
    )
    autoexpense = relationship("Category")
    autopayee_id = Column(
        Integer,
        ForeignKey("payee.id", onupdate="CASCADE"),
        comment="Cash accounts: payee spending is booked to (FK payee.id)",
    )
    autopayee = relationship("Payee", foreign_keys=[autopayee_id])
    opening = Column(Numeric, comment="Opening balance on the first day of the books")
    closed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "(autoexpense_id IS NULL) = (autopayee_id IS NULL)",
            name="autoexpense_pair",
        ),
        {"comment": "Deposit, Cash, Loan & Portfolio Accounts"},
    )

    signature = ("name",)


class Security(Base, Mergeable):
    """Security, fund, pension or other priced asset."""

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    type = Column(
        Enum(SecurityClass, name="security_class"),
        nullable=False,
        comment=f"One of {tuple(SecurityClass.__members__.keys())}",
    )
    currency = Column(CurrencyType, nullable=False, comment="ISO4217 of the price")
    symbol = Column(String)
    parent_id = Column(
        Integer,
        ForeignKey("payee.id", onupdate="CASCADE"),
        comment="Issuer; pays the dividends (FK payee.id)",
    )
    parent = relationship("Payee", backref="securities")

    prices = relationship(
        "SecurityPrice", back_populates="security", order_by="SecurityPrice.date"
    )

    __table_args__ = ({"comment": "Securities & Other Priced Assets"},)

    signature = ("name",)


class Tag(Base, Mergeable):
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)

    signature = ("name",)


transaction_tag = Table(
    "transaction_tag",
    Base.metadata,
    Column("transaction_id", ForeignKey("transaction.id"), primary_key=True),
    Column("tag_id", ForeignKey("tag.id"), primary_key=True),
)


#  The partner of a transaction is a payee or an account, never both; either
#  side may name a security, in which case it's the holding of that security
#  in the (portfolio) account.
PARTNER_CONSTRAINT = (
    "(partnerpayee_id IS NOT NULL AND partneraccount_id IS NULL "
    "AND partnersecurity_id IS NULL) "
    "OR (partnerpayee_id IS NULL AND partneraccount_id IS NOT NULL)"
)


class Transaction(Base, Mergeable):
    """Ledger transaction.
    """

    id = Column(Integer, primary_key=True)
    uniqueid = Column(String, unique=True, comment="Source system identifier")
    date = Column(Date, nullable=False, comment="Accrual date")
    account_id = Column(
        Integer,
        ForeignKey("account.id", onupdate="CASCADE"),
        nullable=False,
        comment="FK account.id",
    )
    # Multiple join paths from Transaction to Account (account; partneraccount;
    # returnedcashaccount) so must use relationship(backref) on the ForeignKey side.
    account = relationship("Account", foreign_keys=[account_id], backref="transactions")
    security_id = Column(
        Integer,
        ForeignKey("security.id", onupdate="CASCADE"),
        comment="Holding of this security in `account` (FK security.id)",
    )
    security = relationship("Security", foreign_keys=[security_id])
    partnerpayee_id = Column(
        Integer, ForeignKey("payee.id", onupdate="CASCADE"), comment="FK payee.id"
    )
    partnerpayee = relationship("Payee")
    partneraccount_id = Column(
        Integer, ForeignKey("account.id", onupdate="CASCADE"), comment="FK account.id"
    )
    partneraccount = relationship("Account", foreign_keys=[partneraccount_id])
    partnersecurity_id = Column(
        Integer,
        ForeignKey("security.id", onupdate="CASCADE"),
        comment="Holding of this security in `partneraccount` (FK security.id)",
    )
    partnersecurity = relationship("Security", foreign_keys=[partnersecurity_id])
    direction = Column(
        Enum(Direction, name="direction"),
        nullable=False,
        comment="TO: account pays partner; FROM: partner pays account",
    )
    category_id = Column(
        Integer,
        ForeignKey("category.id", onupdate="CASCADE"),
        nullable=False,
        comment="FK category.id",
    )
    category = relationship("Category")
    amount = Column(
        Numeric,
        CheckConstraint("amount >= 0", name="amount_not_negative"),
        nullable=False,
        comment="Money amount in the account currency",
    )
    partneramount = Column(
        Numeric, comment="Money amount in the partner currency, if different"
    )
    taxcredit = Column(Numeric, comment="Tax deducted at source")
    employerni = Column(Numeric, comment="Employer National Insurance")
    employeeni = Column(Numeric, comment="Employee National Insurance")
    benefit = Column(Numeric, comment="Deemed benefit in kind")
    withheld = Column(Numeric, comment="Amount withheld at source")
    returnedcash = Column(Numeric, comment="Takeovers: cash returned")
    returnedcashaccount_id = Column(
        Integer,
        ForeignKey("account.id", onupdate="CASCADE"),
        comment="Takeovers: account receiving the returned cash (FK account.id)",
    )
    returnedcashaccount = relationship(
        "Account", foreign_keys=[returnedcashaccount_id]
    )
    accountdeltaunits = Column(Numeric, comment="Change in units of account holding")
    partnerdeltaunits = Column(Numeric, comment="Change in units of partner holding")
    dilution = Column(
        Numeric,
        CheckConstraint(
            "dilution >= 0 AND dilution <= 1", name="dilution_fraction"
        ),
        comment="Demergers: fraction of cost passed to the new security",
    )
    deleted = Column(Boolean, nullable=False, default=False)
    memo = Column(Text)

    tags = relationship("Tag", secondary=transaction_tag, backref="transactions")

    __table_args__ = (
        CheckConstraint(PARTNER_CONSTRAINT, name="enforce_one_partner"),
        {"comment": "Ledger Transactions"},
    )

    signature = ("uniqueid",)

    @classmethod
    def between(cls, session, start=None, end=None):
        """Live transactions dated within [start, end], in processing order."""
        query = session.query(cls).filter(cls.deleted == False)  # noqa: E712
        if start is not None:
            query = query.filter(cls.date >= start)
        if end is not None:
            query = query.filter(cls.date <= end)
        return query.order_by(cls.date, cls.id).all()


class SecurityPrice(Base, Mergeable):
    """Security price per unit, from `date`."""

    id = Column(Integer, primary_key=True)
    security_id = Column(
        Integer,
        ForeignKey("security.id", onupdate="CASCADE"),
        nullable=False,
        comment="FK security.id",
    )
    security = relationship("Security", back_populates="prices")
    date = Column(Date, nullable=False)
    price = Column(
        Numeric,
        CheckConstraint("price >= 0", name="price_not_negative"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("security_id", "date"),
        {"comment": "Security Prices"},
    )

    signature = ("security", "date")


class ExchangeRate(Base, Mergeable):
    """Exchange rate of a currency against the reporting currency."""

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False)
    currency = Column(CurrencyType, nullable=False, comment="ISO4217")
    rate = Column(
        Numeric,
        CheckConstraint("rate > 0", name="rate_positive"),
        nullable=False,
        comment="Multiply this rate by a `currency` amount to yield reporting currency",
    )

    __table_args__ = (
        UniqueConstraint("date", "currency"),
        {"comment": "Exchange Rates against the Reporting Currency"},
    )

    signature = ("date", "currency")


class DepositRate(Base, Mergeable):
    """Interest rate of a deposit account, from `date` until `enddate`."""

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer,
        ForeignKey("account.id", onupdate="CASCADE"),
        nullable=False,
        comment="FK account.id",
    )
    account = relationship("Account", backref="depositrates")
    date = Column(Date, nullable=False)
    enddate = Column(Date)
    rate = Column(Numeric, nullable=False, comment="Annual percentage rate")

    __table_args__ = (
        UniqueConstraint("account_id", "date"),
        CheckConstraint(
            "enddate IS NULL OR enddate >= date", name="enddate_after_date"
        ),
        {"comment": "Deposit Account Interest Rates"},
    )

    signature = ("account", "date")
