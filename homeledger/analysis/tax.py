# coding: utf-8
"""
Tax basis booking.

Every non-transfer category class maps onto a TaxClass.  The profit booked
against a category is mirrored into the `gross` (and, for the cash actually
received or paid, the `nett`) total of its tax basis.

Tax items carried by a transaction (tax credit, National Insurance, deemed
benefits, amounts withheld) are booked symmetrically: each one raises the
taxable gross of the transaction's payee, category and tax basis, and is offset
by a counter-entry (the TaxMan, the state pension, or the VIRTUAL basis) so that
profit totals keep agreeing with the change in asset values.
"""

__all__ = [
    "TAX_BASIS",
    "tax_basis_for",
    "book_transaction",
    "book_profit",
    "book_tax_items",
]


# stdlib imports
from decimal import Decimal
from typing import Optional


# local imports
from .context import EventContext
from .errors import LogicError
from .types import CategoryClass, TaxClass


TAX_BASIS = {
    CategoryClass.TAXEDINCOME: TaxClass.SALARY,
    CategoryClass.GROSSINCOME: TaxClass.SALARY,
    CategoryClass.OTHERINCOME: TaxClass.OTHERINCOME,
    CategoryClass.INTEREST: TaxClass.TAXEDINTEREST,
    CategoryClass.TAXEDINTEREST: TaxClass.TAXEDINTEREST,
    CategoryClass.GROSSINTEREST: TaxClass.UNTAXEDINTEREST,
    CategoryClass.TAXFREEINTEREST: TaxClass.TAXFREE,
    CategoryClass.PEER2PEERINTEREST: TaxClass.PEER2PEERINTEREST,
    CategoryClass.DIVIDEND: TaxClass.DIVIDEND,
    CategoryClass.SHAREDIVIDEND: TaxClass.DIVIDEND,
    CategoryClass.UNITTRUSTDIVIDEND: TaxClass.UNITTRUSTDIVIDEND,
    CategoryClass.FOREIGNDIVIDEND: TaxClass.FOREIGNDIVIDEND,
    CategoryClass.TAXFREEDIVIDEND: TaxClass.TAXFREE,
    CategoryClass.LOYALTYBONUS: TaxClass.TAXEDINTEREST,
    CategoryClass.TAXEDLOYALTYBONUS: TaxClass.TAXEDINTEREST,
    CategoryClass.GROSSLOYALTYBONUS: TaxClass.UNTAXEDINTEREST,
    CategoryClass.TAXFREELOYALTYBONUS: TaxClass.TAXFREE,
    CategoryClass.GIFTEDINCOME: TaxClass.TAXFREE,
    CategoryClass.INHERITED: TaxClass.TAXFREE,
    CategoryClass.RENTALINCOME: TaxClass.RENTALINCOME,
    CategoryClass.ROOMRENTALINCOME: TaxClass.ROOMRENTAL,
    CategoryClass.LOANINTERESTEARNED: TaxClass.UNTAXEDINTEREST,
    CategoryClass.CASHBACK: TaxClass.TAXFREE,
    CategoryClass.PENSIONCONTRIB: TaxClass.TAXFREE,
    CategoryClass.RECOVEREDEXPENSES: TaxClass.TAXFREE,
    CategoryClass.TAXRELIEF: TaxClass.TAXPAID,
    CategoryClass.OPENINGBALANCE: TaxClass.TAXFREE,
    CategoryClass.EXPENSE: TaxClass.EXPENSE,
    CategoryClass.LOCALTAXES: TaxClass.EXPENSE,
    CategoryClass.WRITEOFF: TaxClass.EXPENSE,
    CategoryClass.LOANINTERESTCHARGED: TaxClass.EXPENSE,
    CategoryClass.INCOMETAX: TaxClass.TAXPAID,
    CategoryClass.BADDEBTCAPITAL: TaxClass.EXPENSE,
    CategoryClass.BADDEBTINTEREST: TaxClass.EXPENSE,
    CategoryClass.RENTALEXPENSE: TaxClass.EXPENSE,
    CategoryClass.MARKETGROWTH: TaxClass.MARKET,
    CategoryClass.CURRENCYFLUCTUATION: TaxClass.MARKET,
    CategoryClass.CAPITALGAIN: TaxClass.CAPITALGAINS,
    CategoryClass.CHARGEABLEGAIN: TaxClass.CHARGEABLEGAINS,
    CategoryClass.TAXCREDIT: TaxClass.TAXPAID,
    CategoryClass.EMPLOYEENI: TaxClass.SALARY,
    CategoryClass.EMPLOYERNI: TaxClass.TAXFREE,
    CategoryClass.DEEMEDBENEFIT: TaxClass.VIRTUAL,
    CategoryClass.WITHHELD: TaxClass.VIRTUAL,
}


def tax_basis_for(cls: CategoryClass) -> Optional[TaxClass]:
    """TaxClass of a category class; None for transfers."""
    return TAX_BASIS.get(cls)


def book_transaction(ctx: EventContext, view) -> None:
    """Book the transaction's profit to its payee, category and tax basis.

    Args:
        ctx: EventContext.
        view: normalized transaction (see classify.TransactionView).
    """
    analysis = ctx.analysis
    category = view.category
    amount = view.localamount

    if category.cls.is_transfer:
        # Transfers touch no category; a payee on either side still sees the money.
        if view.payee is not None:
            delta = amount if view.payee_is_debit else -amount
            ctx.book(analysis.payee_bucket(view.payee), delta, income=False)
        return

    income = category.cls.is_income
    signed = amount if view.natural else -amount
    delta = signed if income else -signed

    if view.payee is not None:
        ctx.book(analysis.payee_bucket(view.payee), delta, income)
    ctx.book(analysis.category_bucket(category), delta, income)

    taxclass = tax_basis_for(category.cls)
    if taxclass is None:
        raise LogicError(ctx.transaction, f"No tax basis for category {category}")
    ctx.adjust(analysis.taxbasis_bucket(taxclass), gross=delta, nett=delta)


def book_profit(ctx: EventContext, payee, category, amount: Decimal,
                payee_is_debit: bool) -> None:
    """Book `amount` against an explicit payee/category pair.

    Used for spending booked directly through an auto-expense cash account.
    """
    analysis = ctx.analysis
    income = category.cls.is_income
    natural = payee_is_debit if income else not payee_is_debit
    signed = amount if natural else -amount
    delta = signed if income else -signed

    ctx.book(analysis.payee_bucket(payee), delta, income)
    ctx.book(analysis.category_bucket(category), delta, income)
    taxclass = tax_basis_for(category.cls)
    if taxclass is None:
        raise LogicError(ctx.transaction, f"No tax basis for category {category}")
    ctx.adjust(analysis.taxbasis_bucket(taxclass), gross=delta, nett=delta)


def book_tax_items(ctx: EventContext, view) -> None:
    """Book the tax credit, NI contributions, deemed benefit and withheld amounts.

    Raises:
        LogicError: tax items present without a payee or tax basis to carry
                    them, or without the TaxMan / state pension they require.
    """
    items = (
        view.taxcredit,
        view.employeeni,
        view.employerni,
        view.benefit,
        view.withheld,
    )
    if not any(items):
        return

    transaction = ctx.transaction
    category = view.category
    taxclass = tax_basis_for(category.cls)
    if view.payee is None or taxclass is None:
        raise LogicError(transaction, "Tax items without a payee and tax basis")

    analysis = ctx.analysis
    income = category.cls.is_income
    sign = 1 if view.natural else -1
    payee = analysis.payee_bucket(view.payee)
    basis = analysis.taxbasis_bucket(taxclass)

    if view.taxcredit:
        taxman = analysis.taxman
        delta = sign * view.taxcredit
        if not income:
            delta = -delta
        ctx.book(payee, delta, income)
        ctx.book(analysis.category_bucket(category), delta, income)
        ctx.book(analysis.payee_bucket(taxman), -delta, not income)
        ctx.book(
            analysis.singular_bucket(CategoryClass.TAXCREDIT), -delta, not income
        )
        ctx.adjust(basis, gross=delta, taxcredit=delta)
        ctx.adjust(analysis.taxbasis_bucket(TaxClass.TAXPAID), gross=-delta)

    others = (view.employeeni, view.employerni, view.benefit, view.withheld)
    if not any(others):
        return
    if not income:
        raise LogicError(
            transaction, f"NI/benefit/withheld on non-income category {category}"
        )

    if view.employeeni or view.employerni:
        pension = analysis.holding_bucket(analysis.state_pension)

    if view.employeeni:
        amount = sign * view.employeeni
        ctx.adjust(payee, income=amount)
        ctx.adjust(analysis.singular_bucket(CategoryClass.EMPLOYEENI), income=amount)
        ctx.adjust(basis, gross=amount)
        ctx.adjust(pension, residualcost=amount, invested=amount, funded=amount)

    if view.employerni:
        amount = sign * view.employerni
        ctx.adjust(payee, income=amount)
        ctx.adjust(analysis.singular_bucket(CategoryClass.EMPLOYERNI), income=amount)
        ctx.adjust(analysis.taxbasis_bucket(TaxClass.TAXFREE), gross=amount)
        ctx.adjust(pension, residualcost=amount, invested=amount, funded=amount)

    if view.benefit:
        amount = sign * view.benefit
        ctx.adjust(payee, income=amount, expense=amount)
        ctx.adjust(
            analysis.singular_bucket(CategoryClass.DEEMEDBENEFIT), income=amount
        )
        ctx.adjust(analysis.singular_bucket(CategoryClass.WITHHELD), expense=amount)
        ctx.adjust(basis, gross=amount)
        ctx.adjust(analysis.taxbasis_bucket(TaxClass.VIRTUAL), gross=-amount)

    if view.withheld:
        amount = sign * view.withheld
        ctx.adjust(payee, income=amount, expense=amount)
        ctx.adjust(analysis.category_bucket(category), income=amount)
        ctx.adjust(analysis.singular_bucket(CategoryClass.WITHHELD), expense=amount)
        ctx.adjust(basis, gross=amount)
        ctx.adjust(analysis.taxbasis_bucket(TaxClass.VIRTUAL), gross=-amount)
