# coding: utf-8
"""
Read the ledger tables into a homeledger.analysis.types.DataSet.

Rows are converted into the immutable analysis records once, each entity
memoized by primary key so that every reference to it resolves to the same
record.  The dated streams come out sorted the way the analysis expects them.
"""
__all__ = ["Loader", "load_dataset"]


# stdlib imports
import datetime
import logging
from typing import Dict, Optional


# 3rd party imports
import sqlalchemy


# local imports
from homeledger import models, CONFIG
from homeledger.analysis import types


class Loader:
    """Convert model instances to analysis records.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
    """

    def __init__(self, session: sqlalchemy.orm.session.Session) -> None:
        self.session = session
        self._payees: Dict[int, types.Payee] = {}
        self._categories: Dict[int, types.Category] = {}
        self._accounts: Dict[int, types.Account] = {}
        self._securities: Dict[int, types.Security] = {}
        self._tags: Dict[int, types.Tag] = {}

    def payee(self, instance: Optional[models.Payee]) -> Optional[types.Payee]:
        if instance is None:
            return None
        record = self._payees.get(instance.id)
        if record is None:
            record = self._payees[instance.id] = types.Payee(
                id=instance.id, name=instance.name, type=instance.type
            )
        return record

    def category(self, instance: Optional[models.Category]) -> Optional[types.Category]:
        if instance is None:
            return None
        record = self._categories.get(instance.id)
        if record is None:
            record = self._categories[instance.id] = types.Category(
                id=instance.id,
                name=instance.name,
                cls=instance.cls,
                parent=self.category(instance.parent),
            )
        return record

    def account(self, instance: Optional[models.Account]) -> Optional[types.Account]:
        if instance is None:
            return None
        record = self._accounts.get(instance.id)
        if record is None:
            record = self._accounts[instance.id] = types.Account(
                id=instance.id,
                name=instance.name,
                type=instance.type,
                currency=instance.currency,
                parent=self.payee(instance.parent),
                subtype=instance.subtype,
                autoexpense=self.category(instance.autoexpense),
                autopayee=self.payee(instance.autopayee),
                opening=instance.opening,
                closed=bool(instance.closed),
            )
        return record

    def security(self, instance: Optional[models.Security]) -> Optional[types.Security]:
        if instance is None:
            return None
        record = self._securities.get(instance.id)
        if record is None:
            record = self._securities[instance.id] = types.Security(
                id=instance.id,
                name=instance.name,
                type=instance.type,
                currency=instance.currency,
                parent=self.payee(instance.parent),
                symbol=instance.symbol,
            )
        return record

    def tag(self, instance: models.Tag) -> types.Tag:
        record = self._tags.get(instance.id)
        if record is None:
            record = self._tags[instance.id] = types.Tag(
                id=instance.id, name=instance.name
            )
        return record

    def asset(self, account, security, payee=None):
        """Payee, Account, or Holding of `security` in `account`."""
        if payee is not None:
            return self.payee(payee)
        if security is not None:
            if account.type is not types.AccountType.PORTFOLIO:
                raise models.ModelError(
                    "{} holds {} but isn't a portfolio".format(
                        account.name, security.name
                    )
                )
            return types.Holding(self.account(account), self.security(security))
        return self.account(account)

    def transaction(self, instance: models.Transaction) -> types.Transaction:
        return types.Transaction(
            id=instance.id,
            date=instance.date,
            account=self.asset(instance.account, instance.security),
            partner=self.asset(
                instance.partneraccount,
                instance.partnersecurity,
                payee=instance.partnerpayee,
            ),
            direction=instance.direction,
            category=self.category(instance.category),
            amount=instance.amount,
            partneramount=instance.partneramount,
            taxcredit=instance.taxcredit,
            employerni=instance.employerni,
            employeeni=instance.employeeni,
            benefit=instance.benefit,
            withheld=instance.withheld,
            returnedcash=instance.returnedcash,
            returnedcashaccount=self.account(instance.returnedcashaccount),
            accountdeltaunits=instance.accountdeltaunits,
            partnerdeltaunits=instance.partnerdeltaunits,
            dilution=instance.dilution,
            tags=tuple(self.tag(tag) for tag in instance.tags),
            deleted=bool(instance.deleted),
            memo=instance.memo,
        )

    def load(
        self,
        reporting_currency: Optional[str] = None,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
    ) -> types.DataSet:
        """Build a DataSet of every record dated on/before `end_date`.

        Args:
            reporting_currency: ISO4217 code; defaults to CONFIG.
            start_date: first day of the books; defaults to CONFIG.
            end_date: if set, ignore later records.
        """
        session = self.session

        def dated(model):
            query = session.query(model)
            if end_date is not None:
                query = query.filter(model.date <= end_date)
            return query.order_by(model.date, model.id).all()

        #  Entities in id order so that derived registries are stable.
        def entities(model):
            return session.query(model).order_by(model.id).all()

        dataset = types.DataSet(
            currency=reporting_currency or CONFIG.reporting_currency,
            start=start_date or CONFIG.start_date,
            payees=tuple(self.payee(p) for p in entities(models.Payee)),
            categories=tuple(self.category(c) for c in entities(models.Category)),
            accounts=tuple(self.account(a) for a in entities(models.Account)),
            securities=tuple(self.security(s) for s in entities(models.Security)),
            tags=tuple(self.tag(t) for t in entities(models.Tag)),
            transactions=tuple(
                self.transaction(tx)
                for tx in models.Transaction.between(session, end=end_date)
            ),
            prices=tuple(
                types.SecurityPrice(
                    security=self.security(p.security), date=p.date, price=p.price
                )
                for p in dated(models.SecurityPrice)
            ),
            rates=tuple(
                types.ExchangeRate(currency=r.currency, date=r.date, rate=r.rate)
                for r in dated(models.ExchangeRate)
            ),
            depositrates=tuple(
                types.DepositRate(
                    deposit=self.account(r.account),
                    date=r.date,
                    rate=r.rate,
                    enddate=r.enddate,
                )
                for r in dated(models.DepositRate)
            ),
        )
        logging.info(
            "Loaded %d transactions, %d prices, %d exchange rates, %d deposit rates",
            len(dataset.transactions),
            len(dataset.prices),
            len(dataset.rates),
            len(dataset.depositrates),
        )
        return dataset


def load_dataset(
    session: sqlalchemy.orm.session.Session,
    reporting_currency: Optional[str] = None,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
) -> types.DataSet:
    """Read the ledger tables into a DataSet ready for analysis."""
    return Loader(session).load(
        reporting_currency=reporting_currency,
        start_date=start_date,
        end_date=end_date,
    )
