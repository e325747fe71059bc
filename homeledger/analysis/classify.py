# coding: utf-8
"""
Transaction classification and dispatch.

A Transaction is first normalized into a TransactionView: debit and credit legs
in money-flow order (debit pays, credit receives), each leg's amount and units,
the local (reporting-currency) amount, and the parent substitutions some
category classes call for.  The view is then routed:

    * either leg a security holding -> securities processor;
    * portfolio to portfolio transfer -> securities processor;
    * otherwise (accounts and payees) -> standard processing.

Every transaction then also books its tags, registers any child account, books
its tax items and finally its profit against payee, category and tax basis.
"""

__all__ = [
    "TransactionView",
    "adjust_parent",
    "normalize",
    "local_amount",
    "adjust_account",
    "process_transaction",
]


# stdlib imports
from decimal import Decimal
from typing import NamedTuple, Optional, Any


# local imports
from homeledger.utils import ZERO
from . import market, securities, tax
from .context import EventContext
from .errors import LogicError
from .types import (
    Account,
    AccountClass,
    AccountType,
    Category,
    CategoryClass,
    Direction,
    Holding,
    Payee,
    Transaction,
)


class TransactionView(NamedTuple):
    """Transaction normalized into debit (paying) and credit (receiving) legs.

    Attributes:
        transaction: the original Transaction.
        category: Category after any detailed-interest substitution.
        debit: asset paying out.
        credit: asset receiving.
        debitamount: amount leaving `debit`, in its currency.
        creditamount: amount arriving at `credit`, in its currency.
        localamount: the amount in the reporting currency.
        debitunits: units leaving a debit holding.
        creditunits: units arriving at a credit holding.
        payee: the payee whose profit the transaction affects.
        payee_is_debit: `payee` is the paying side.
        natural: money flows the usual way for the category (income paid by the
                 payee, expenses paid to it), as opposed to a refund.
        child: account standing in for a substituted parent.
        autodebit: debit is an auto-expense cash account booked by category.
        autocredit: credit is an auto-expense cash account booked by category.
        taxcredit, employerni, employeeni, benefit, withheld: tax items in the
            reporting currency.
    """

    transaction: Transaction
    category: Category
    debit: Any
    credit: Any
    debitamount: Decimal
    creditamount: Decimal
    localamount: Decimal
    debitunits: Optional[Decimal] = None
    creditunits: Optional[Decimal] = None
    payee: Optional[Payee] = None
    payee_is_debit: bool = False
    natural: bool = True
    child: Optional[Account] = None
    autodebit: Optional[Account] = None
    autocredit: Optional[Account] = None
    taxcredit: Decimal = ZERO
    employerni: Decimal = ZERO
    employeeni: Decimal = ZERO
    benefit: Decimal = ZERO
    withheld: Decimal = ZERO


def currency_of(asset) -> Optional[str]:
    """Currency an asset is denominated in; None for payees."""
    if isinstance(asset, (Account, Holding)):
        return asset.currency
    return None


def local_amount(ctx: EventContext, transaction: Transaction) -> Decimal:
    """Reporting-currency amount of a transaction.

    The amount of a leg already denominated in the reporting currency is used as
    is; otherwise the account amount is converted at the rate in effect.
    """
    rates = ctx.analysis.rates
    legs = [(transaction.account, transaction.amount)]
    if transaction.partneramount is not None:
        legs.append((transaction.partner, transaction.partneramount))
    for asset, amount in legs:
        currency = currency_of(asset)
        if currency is None or not rates.is_foreign(currency):
            return amount
    asset, amount = legs[0]
    return rates.convert(amount, currency_of(asset), transaction.date)


def _local(ctx: EventContext, transaction: Transaction, amount) -> Decimal:
    if not amount:
        return ZERO
    currency = currency_of(transaction.account)
    if currency is None:
        return amount
    return ctx.analysis.rates.convert(amount, currency, transaction.date)


def _parent(transaction: Transaction, asset):
    parent = asset.parent
    if parent is None:
        raise LogicError(transaction, f"{asset} has no parent")
    return parent


def _detailed_category(ctx: EventContext, category: Category, debit) -> Category:
    """Refine generic interest categories by the type of deposit paying them."""
    if not isinstance(debit, Account) or debit.type is not AccountType.DEPOSIT:
        return category
    cls = category.cls
    if debit.subtype is not None and debit.subtype.is_taxfree:
        detailed = {
            CategoryClass.INTEREST: CategoryClass.TAXFREEINTEREST,
            CategoryClass.LOYALTYBONUS: CategoryClass.TAXFREELOYALTYBONUS,
        }.get(cls)
    elif debit.subtype is AccountClass.PEER2PEER:
        detailed = {
            CategoryClass.INTEREST: CategoryClass.PEER2PEERINTEREST,
        }.get(cls)
    else:
        detailed = None
    if detailed is None:
        return category
    return ctx.analysis.dataset.singular_category(detailed)


def adjust_parent(transaction: Transaction, cls: CategoryClass, debit, credit):
    """Substitute the true counterparty for an account the category implies.

    Interest, loan interest earned and cashback are paid by the parent of the
    account they're booked on; rental income by the parent of the receiving
    account; write-offs and loan interest charged are owed to the parent.

    Returns:
        (debit, credit, child) where child is the account interest or rent
        was earned on when it isn't the receiving account, else None.

    Raises:
        LogicError: if the account to be replaced has no parent.
    """
    child = None
    if isinstance(debit, Account):
        if cls.is_interest:
            if debit != credit:
                child = debit
            debit = _parent(transaction, debit)
        elif cls in (CategoryClass.LOANINTERESTEARNED, CategoryClass.CASHBACK):
            debit = _parent(transaction, debit)
        elif cls in (CategoryClass.RENTALINCOME, CategoryClass.ROOMRENTALINCOME):
            if debit != credit:
                child = debit
            debit = _parent(transaction, credit)
    if isinstance(credit, Account):
        if cls in (CategoryClass.WRITEOFF, CategoryClass.LOANINTERESTCHARGED):
            credit = _parent(transaction, credit)
    return debit, credit, child


def normalize(ctx: EventContext, transaction: Transaction) -> TransactionView:
    """Put a transaction's legs in debit/credit order and resolve substitutions.

    Raises:
        LogicError: if a substituted parent is missing.
    """
    amount = transaction.amount
    partneramount = transaction.partneramount
    if partneramount is None:
        partneramount = amount

    if transaction.direction is Direction.TO:
        debit, credit = transaction.account, transaction.partner
        debitamount, creditamount = amount, partneramount
        debitunits = transaction.accountdeltaunits
        creditunits = transaction.partnerdeltaunits
    else:
        debit, credit = transaction.partner, transaction.account
        debitamount, creditamount = partneramount, amount
        debitunits = transaction.partnerdeltaunits
        creditunits = transaction.accountdeltaunits

    category = _detailed_category(ctx, transaction.category, debit)
    cls = category.cls

    debit, credit, child = adjust_parent(transaction, cls, debit, credit)

    # Auto-expense cash: spend is booked straight to the account's autopayee.
    autodebit = autocredit = None
    if isinstance(debit, Account) and debit.is_autoexpense:
        if cls.is_transfer or isinstance(credit, Payee):
            autodebit = debit
        debit = debit.autopayee
    if isinstance(credit, Account) and credit.is_autoexpense:
        if cls.is_transfer or isinstance(debit, Payee):
            autocredit = credit
        credit = credit.autopayee

    payee = None
    payee_is_debit = False
    if isinstance(debit, Payee) and autodebit is None:
        payee, payee_is_debit = debit, True
    elif isinstance(credit, Payee) and autocredit is None:
        payee = credit
    elif cls.is_dividend and isinstance(debit, Holding):
        payee, payee_is_debit = _parent(transaction, debit), True

    if payee is None:
        natural = True
    elif cls.is_income:
        natural = payee_is_debit
    else:
        natural = not payee_is_debit

    return TransactionView(
        transaction=transaction,
        category=category,
        debit=debit,
        credit=credit,
        debitamount=debitamount,
        creditamount=creditamount,
        localamount=local_amount(ctx, transaction),
        debitunits=debitunits,
        creditunits=creditunits,
        payee=payee,
        payee_is_debit=payee_is_debit,
        natural=natural,
        child=child if isinstance(child, Account) else None,
        autodebit=autodebit,
        autocredit=autocredit,
        taxcredit=_local(ctx, transaction, transaction.taxcredit),
        employerni=_local(ctx, transaction, transaction.employerni),
        employeeni=_local(ctx, transaction, transaction.employeeni),
        benefit=_local(ctx, transaction, transaction.benefit),
        withheld=_local(ctx, transaction, transaction.withheld),
    )


def adjust_account(
    ctx: EventContext, account: Account, amount: Decimal, local: Decimal
) -> None:
    """Move money in (positive) or out (negative) of an account.

    Args:
        amount: change in the account currency.
        local: the same change in the reporting currency.
    """
    bucket = ctx.analysis.account_bucket(account)
    ctx.adjust(bucket, balance=amount, localvalue=local)
    market.value_account(ctx, bucket)


def debit_leg(ctx: EventContext, view: TransactionView) -> None:
    """Money leaves the debit asset, unless it's a payee or a holding."""
    if view.autodebit is not None:
        tax.book_profit(
            ctx,
            view.autodebit.autopayee,
            view.autodebit.autoexpense,
            view.localamount,
            payee_is_debit=True,
        )
    elif isinstance(view.debit, Account):
        adjust_account(ctx, view.debit, -view.debitamount, -view.localamount)


def credit_leg(ctx: EventContext, view: TransactionView) -> None:
    """Money arrives at the credit asset, unless it's a payee or a holding."""
    if view.autocredit is not None:
        tax.book_profit(
            ctx,
            view.autocredit.autopayee,
            view.autocredit.autoexpense,
            view.localamount,
            payee_is_debit=False,
        )
    elif isinstance(view.credit, Account):
        adjust_account(ctx, view.credit, view.creditamount, view.localamount)


def process_standard(ctx: EventContext, view: TransactionView) -> None:
    """Transaction between accounts and/or payees."""
    debit_leg(ctx, view)
    credit_leg(ctx, view)


def _book_baddebt(ctx: EventContext, view: TransactionView) -> None:
    if view.category.cls not in (
        CategoryClass.BADDEBTCAPITAL,
        CategoryClass.BADDEBTINTEREST,
    ):
        return
    for asset in (view.debit, view.credit, view.child):
        if isinstance(asset, Account):
            bucket = ctx.analysis.account_bucket(asset)
            if bucket.strategy.tracks_baddebt:
                ctx.adjust(bucket, baddebt=view.localamount)


def _book_tags(ctx: EventContext, view: TransactionView) -> None:
    cls = view.category.cls
    amount = view.localamount
    signed = amount if view.natural else -amount
    for tag in view.transaction.tags:
        bucket = ctx.analysis.tag_bucket(tag)
        if cls.is_transfer:
            ctx.touch(bucket)
        elif cls.is_income:
            ctx.adjust(bucket, income=signed)
        else:
            ctx.adjust(bucket, expense=signed)


def _is_portfolio(asset) -> bool:
    return isinstance(asset, Account) and asset.type is AccountType.PORTFOLIO


def process_transaction(ctx: EventContext, transaction: Transaction) -> TransactionView:
    """Apply one transaction to the analysis.

    Raises:
        LogicError: if the transaction is inconsistent with its category.
    """
    view = normalize(ctx, transaction)
    debit, credit = view.debit, view.credit

    if isinstance(debit, Holding) or isinstance(credit, Holding):
        securities.process(ctx, view)
    elif (
        view.category.cls is CategoryClass.PORTFOLIOXFER
        and _is_portfolio(debit)
        and _is_portfolio(credit)
        and debit != credit
    ):
        securities.transfer_portfolio(ctx, debit, credit)
    elif isinstance(debit, (Account, Payee)) and isinstance(credit, (Account, Payee)):
        process_standard(ctx, view)
    else:
        raise LogicError(transaction, f"Invalid asset pair {debit} / {credit}")

    _book_tags(ctx, view)
    if view.child is not None:
        ctx.touch(ctx.analysis.account_bucket(view.child))
    _book_baddebt(ctx, view)

    tax.book_tax_items(ctx, view)
    tax.book_transaction(ctx, view)
    return view
