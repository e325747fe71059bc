# coding: utf-8
"""
Security transactions and corporate actions.

Holdings carry their cost basis (`residualcost`) and the net cash invested in
them (`invested`) in the reporting currency.  Disposals release a share of the
cost basis (the allowed cost) and book the difference from the cash received as
a realised gain.  Corporate actions move cost between holdings without creating
or destroying any of it:

    * stock split / units adjustment changes units only;
    * demerger moves a fixed proportion of cost to the new holding;
    * stock-only takeover moves everything to the acquirer's holding;
    * stock-and-cash takeover allocates the cost between the new stock and the
      cash, the cash share being a disposal;
    * portfolio transfers move holdings (and cash) between portfolios 1:1.

The cash received on a disposal is "large" when it exceeds both LIMIT_VALUE and
LIMIT_RATE of the total consideration; large cash releases cost pro rata to the
consideration, small cash releases cost up to the cash received.
"""

__all__ = [
    "LIMIT_VALUE",
    "LIMIT_RATE",
    "ChargeableEvent",
    "is_large_cash",
    "process",
    "transfer_in",
    "transfer_out",
    "transfer_portfolio",
]


# stdlib imports
import logging
from decimal import Decimal
from typing import NamedTuple, Optional


# local imports
from homeledger import utils
from homeledger.utils import ZERO
from . import market
from .buckets import Bucket
from .context import EventContext
from .cursor import convert
from .errors import LogicError
from .types import Account, AccountType, CashType, CategoryClass, Holding, Transaction


#  Cash returned in a disposal is "large" when it exceeds both of these
LIMIT_VALUE = Decimal(3000)
LIMIT_RATE = Decimal("0.05")


class ChargeableEvent(NamedTuple):
    """Chargeable gain on an insurance bond, sliced over the years held."""

    transaction: Transaction
    holding: Holding
    gain: Decimal
    years: int
    slice: Decimal


def is_large_cash(cash: Decimal, value: Decimal) -> bool:
    """Cash exceeds both the fixed limit and the percentage of `value`."""
    return cash > LIMIT_VALUE and cash > value * LIMIT_RATE


def process(ctx: EventContext, view) -> None:
    """Dispatch a transaction with a security holding on either side.

    Raises:
        LogicError: for a category that can't apply to these assets.
    """
    from .classify import debit_leg, credit_leg

    debit, credit = view.debit, view.credit
    if isinstance(debit, Holding) and isinstance(credit, Holding):
        _process_holdings(ctx, view)
    elif isinstance(debit, Holding):
        _process_debit(ctx, view)
        credit_leg(ctx, view)
    else:
        _process_credit(ctx, view)
        debit_leg(ctx, view)


def _unexpected(view) -> LogicError:
    return LogicError(
        view.transaction, f"Unexpected category type {view.category.cls.name}"
    )


_DISPOSALS = (
    CategoryClass.TRANSFER,
    CategoryClass.SECURITYCLOSURE,
    CategoryClass.EXPENSE,
    CategoryClass.INHERITED,
    CategoryClass.OTHERINCOME,
)


def _process_debit(ctx: EventContext, view) -> None:
    """Holding pays out to an account or payee."""
    holding = view.debit
    cls = view.category.cls
    if cls is CategoryClass.STOCKRIGHTSISSUE:
        transfer_out(ctx, view, holding)
    elif cls.is_dividend:
        _dividend(ctx, view)
    elif cls is CategoryClass.PORTFOLIOXFER:
        if not _is_portfolio(view.credit):
            raise _unexpected(view)
        _move_holding(ctx, holding, Holding(view.credit, holding.security))
    elif cls in _DISPOSALS:
        if holding.security.type.is_chargeable:
            _chargeable_gain(ctx, view, holding)
        else:
            transfer_out(ctx, view, holding)
    else:
        raise _unexpected(view)


def _process_credit(ctx: EventContext, view) -> None:
    """Account or payee pays into a holding."""
    holding = view.credit
    cls = view.category.cls
    if cls in (
        CategoryClass.STOCKRIGHTSISSUE,
        CategoryClass.TRANSFER,
        CategoryClass.EXPENSE,
        CategoryClass.INHERITED,
        CategoryClass.OTHERINCOME,
        CategoryClass.PENSIONCONTRIB,
    ):
        transfer_in(ctx, holding, view.localamount, view.creditunits)
    elif cls.is_dividend:
        _reinvest(ctx, view)
    elif cls is CategoryClass.PORTFOLIOXFER:
        if not _is_portfolio(view.debit):
            raise _unexpected(view)
        _move_holding(ctx, Holding(view.debit, holding.security), holding)
    else:
        raise _unexpected(view)


def _process_holdings(ctx: EventContext, view) -> None:
    """Both sides are holdings."""
    debit, credit = view.debit, view.credit
    cls = view.category.cls
    if cls in (CategoryClass.STOCKSPLIT, CategoryClass.UNITSADJUST):
        _adjust_units(ctx, view)
    elif cls is CategoryClass.STOCKDEMERGER:
        _demerger(ctx, view)
    elif cls in (CategoryClass.SECURITYREPLACE, CategoryClass.STOCKTAKEOVER):
        transaction = view.transaction
        if transaction.returnedcash and transaction.returnedcashaccount is not None:
            _takeover_stock_and_cash(ctx, view)
        else:
            _takeover_stock(ctx, view)
    elif cls.is_dividend:
        _reinvest(ctx, view)
    elif cls is CategoryClass.PORTFOLIOXFER:
        if debit.security != credit.security:
            raise _unexpected(view)
        _move_holding(ctx, debit, credit)
    elif cls in (
        CategoryClass.TRANSFER,
        CategoryClass.EXPENSE,
        CategoryClass.INHERITED,
        CategoryClass.OTHERINCOME,
    ):
        # Stock exchange: sell one holding to buy the other.
        transfer_out(ctx, view, debit)
        transfer_in(ctx, credit, view.localamount, view.creditunits)
    else:
        raise _unexpected(view)


def _is_portfolio(asset) -> bool:
    return isinstance(asset, Account) and asset.type is AccountType.PORTFOLIO


def _value_of(ctx: EventContext, holding: Holding, units: Decimal) -> Decimal:
    """Reporting-currency value of `units` of a holding's security."""
    analysis = ctx.analysis
    price = analysis.prices.price_at(holding.security, ctx.date)
    rate = analysis.rates.rate_at(holding.currency, ctx.date)
    return convert(units * price, rate)


def _first_date(bucket: Bucket, default):
    history = bucket.history
    if history.is_idle:
        return default
    return next(iter(history)).event.date


def transfer_in(
    ctx: EventContext,
    holding: Holding,
    amount: Decimal,
    units: Optional[Decimal] = None,
) -> None:
    """Money invested in a holding.

    Args:
        holding: the Holding receiving the money.
        amount: reporting-currency amount.
        units: units acquired; without units the money is held as funding,
               unless the asset is valued as a whole and already priced.
    """
    analysis = ctx.analysis
    bucket = analysis.holding_bucket(holding)
    security = holding.security
    if (
        not units
        and not bucket.values.units
        and security.type.auto_units
        and analysis.prices.is_priced(security, ctx.date)
    ):
        units = security.type.auto_units
    if units:
        ctx.adjust(bucket, residualcost=amount, invested=amount, units=units)
    else:
        ctx.adjust(bucket, residualcost=amount, invested=amount, funded=amount)
    market.value_holding(ctx, bucket)


def transfer_out(ctx: EventContext, view, holding: Holding) -> None:
    """Money withdrawn from a holding; a (partial) disposal.

    With known units sold, cost is released in proportion to units.  Otherwise
    the cash is compared with the value of stock remaining: large cash releases
    cost in proportion to the consideration, small cash releases cost up to the
    cash received.
    """
    bucket = ctx.analysis.holding_bucket(holding)
    values = bucket.values
    cash = view.localamount
    cost = values.residualcost

    units = view.debitunits
    if view.category.cls is CategoryClass.SECURITYCLOSURE:
        units = values.units

    cashtype = None
    if units:
        remaining = values.units - units
        allowed = utils.weighted(cost, units, values.units)
        dilution = utils.ratio(remaining, values.units)
        consideration = cash
    else:
        units = ZERO
        stockvalue = values.valuation
        consideration = cash + stockvalue
        if is_large_cash(cash, consideration):
            allowed = utils.weighted(cost, cash, consideration)
            dilution = utils.ratio(stockvalue, consideration)
            cashtype = CashType.LARGECASH
        else:
            allowed = min(cost, cash)
            dilution = None
            cashtype = CashType.SMALLCASH
    allowed = min(allowed, cost)
    gain = cash - allowed
    closure = view.category.cls is CategoryClass.SECURITYCLOSURE

    ctx.adjust(
        bucket,
        units=-units,
        funded=-_released_funding(values, cash, closure),
        residualcost=-allowed,
        invested=-cash,
        realisedgains=gain,
    )
    ctx.assign(
        bucket,
        returnedcash=cash,
        allowedcost=allowed,
        consideration=consideration,
        costdilution=dilution,
        cashtype=cashtype,
        capitalgain=gain,
    )
    market.value_holding(ctx, bucket)
    _record_gain(ctx, bucket, gain)


def _released_funding(values, cash: Decimal, closure: bool) -> Decimal:
    """Unitless funding withdrawn with `cash`; all of it when the holding closes."""
    if closure:
        return values.funded
    return min(values.funded, cash)


def _record_gain(ctx: EventContext, bucket: Bucket, gain: Decimal) -> None:
    holding = bucket.key
    if not holding.security.type.is_chargeable:
        market.book_gain(ctx, gain)
        return

    years = utils.year_count(_first_date(bucket, ctx.date), ctx.date)
    slice_ = utils.round_money(gain / years)
    ctx.assign(bucket, gainyears=years, slicedgain=slice_)
    ctx.analysis.taxbases.record_chargeable(
        ChargeableEvent(ctx.transaction, holding, gain, years, slice_)
    )
    market.book_gain(ctx, gain, chargeable=True)


def _chargeable_gain(ctx: EventContext, view, holding: Holding) -> None:
    """Withdrawal from an insurance bond.

    Cost is released up to the amount withdrawn (in proportion to units when
    units are surrendered); any excess is a chargeable gain.
    """
    bucket = ctx.analysis.holding_bucket(holding)
    values = bucket.values
    amount = view.localamount
    cost = values.residualcost

    units = view.debitunits or ZERO
    if view.category.cls is CategoryClass.SECURITYCLOSURE:
        units = values.units
    if units:
        reduction = utils.weighted(cost, units, values.units)
    else:
        reduction = amount
    reduction = min(reduction, cost)
    gain = amount - reduction
    closure = view.category.cls is CategoryClass.SECURITYCLOSURE

    ctx.adjust(
        bucket,
        units=-units,
        funded=-_released_funding(values, amount, closure),
        residualcost=-reduction,
        invested=-amount,
        realisedgains=gain,
    )
    ctx.assign(
        bucket, returnedcash=amount, allowedcost=reduction, capitalgain=gain
    )
    market.value_holding(ctx, bucket)
    if gain:
        _record_gain(ctx, bucket, gain)


def _dividend(ctx: EventContext, view) -> None:
    """Dividend paid out to an account."""
    bucket = ctx.analysis.holding_bucket(view.debit)
    ctx.adjust(bucket, dividend=view.localamount + view.taxcredit)


def _reinvest(ctx: EventContext, view) -> None:
    """Dividend reinvested in a holding."""
    units = view.creditunits if view.creditunits is not None else view.debitunits
    transfer_in(ctx, view.credit, view.localamount, units)
    if view.taxcredit and isinstance(view.debit, Holding):
        bucket = ctx.analysis.holding_bucket(view.debit)
        ctx.adjust(bucket, dividend=view.taxcredit)


def _adjust_units(ctx: EventContext, view) -> None:
    """Stock split or units adjustment; cost is unchanged."""
    transaction = view.transaction
    holding = transaction.account
    if not isinstance(holding, Holding):
        holding = view.debit
    delta = transaction.accountdeltaunits
    if delta is None:
        delta = transaction.partnerdeltaunits
    if not delta:
        raise LogicError(transaction, "Units adjustment without a change in units")
    ctx.adjust(ctx.analysis.holding_bucket(holding), units=delta)


def _demerger(ctx: EventContext, view) -> None:
    """Part of the debit holding's cost moves to the demerged credit holding."""
    transaction = view.transaction
    dilution = transaction.dilution
    if dilution is None:
        raise LogicError(transaction, "Demerger without a dilution")

    analysis = ctx.analysis
    source = analysis.holding_bucket(view.debit)
    target = analysis.holding_bucket(view.credit)
    values = source.values

    newcost = utils.round_money(values.residualcost * dilution)
    xferred = values.residualcost - newcost
    invested = values.invested - utils.round_money(values.invested * dilution)
    units = view.creditunits or ZERO

    ctx.adjust(source, residualcost=-xferred, invested=-invested)
    ctx.assign(source, xferredcost=-xferred, costdilution=dilution)
    if view.debitunits:
        ctx.adjust(source, units=-view.debitunits)

    ctx.adjust(target, residualcost=xferred, invested=invested, units=units)
    ctx.assign(
        target,
        xferredcost=xferred,
        xferredvalue=_value_of(ctx, view.credit, units),
        costdilution=dilution,
    )


def _takeover_stock(ctx: EventContext, view) -> None:
    """All-stock takeover: units and cost move whole to the acquirer's holding."""
    analysis = ctx.analysis
    source = analysis.holding_bucket(view.debit)
    target = analysis.holding_bucket(view.credit)
    values = source.values

    units = view.creditunits or ZERO
    adjust = values.valuation - values.residualcost

    ctx.adjust(
        target,
        units=units,
        residualcost=values.residualcost,
        invested=values.invested,
        realisedgains=values.realisedgains,
        growthadjust=adjust,
    )
    ctx.assign(
        target,
        xferredcost=values.residualcost,
        xferredvalue=_value_of(ctx, view.credit, units),
    )
    ctx.adjust(
        source,
        units=-values.units,
        residualcost=-values.residualcost,
        invested=-values.invested,
        realisedgains=-values.realisedgains,
        growthadjust=-adjust,
    )
    ctx.assign(source, xferredcost=-values.residualcost)


def _takeover_stock_and_cash(ctx: EventContext, view) -> None:
    """Takeover for stock plus cash.

    The cash share of the consideration is a disposal: it is allowed a share of
    the cost (large cash) or cost up to the cash (small cash), and the rest of
    the cost moves to the acquirer's holding.
    """
    from .classify import adjust_account

    transaction = view.transaction
    analysis = ctx.analysis
    account = transaction.returnedcashaccount
    cash = analysis.rates.convert(
        transaction.returnedcash, account.currency, ctx.date
    )

    source = analysis.holding_bucket(view.debit)
    target = analysis.holding_bucket(view.credit)
    if source is target:
        raise LogicError(transaction, "Takeover into the same holding")
    values = source.values
    cost = values.residualcost

    units = view.creditunits or ZERO
    stockvalue = _value_of(ctx, view.credit, units)
    consideration = cash + stockvalue

    if is_large_cash(cash, values.valuation):
        xferred = utils.weighted(cost, stockvalue, consideration)
        allowed = cost - xferred
        dilution = utils.ratio(cash, consideration)
        cashtype = CashType.LARGECASH
    else:
        allowed = min(cost, cash)
        xferred = cost - allowed
        dilution = None
        cashtype = CashType.SMALLCASH
    gain = cash - allowed
    logging.info(
        "Takeover of %s: cash %s, cost transferred %s, gain %s",
        view.debit,
        cash,
        xferred,
        gain,
    )

    ctx.adjust(
        source,
        units=-values.units,
        residualcost=-cost,
        invested=-values.invested,
        realisedgains=gain,
    )
    ctx.assign(
        source,
        xferredcost=-xferred,
        returnedcash=cash,
        allowedcost=allowed,
        consideration=consideration,
        costdilution=dilution,
        cashtype=cashtype,
        capitalgain=gain,
    )
    ctx.adjust(
        target,
        units=units,
        residualcost=xferred,
        invested=values.invested - cash,
    )
    ctx.assign(target, xferredcost=xferred, xferredvalue=stockvalue)

    adjust_account(ctx, account, transaction.returnedcash, cash)
    _record_gain(ctx, source, gain)


_MOVED = ("units", "residualcost", "realisedgains", "invested", "funded", "growthadjust")


def _move_holding(ctx: EventContext, source: Holding, target: Holding) -> None:
    """Move a holding to another portfolio, unchanged."""
    if source == target:
        return
    analysis = ctx.analysis
    src = analysis.holding_bucket(source)
    dst = analysis.holding_bucket(target)
    values = src.values
    moved = {name: getattr(values, name) for name in _MOVED}
    ctx.adjust(dst, **moved)
    ctx.adjust(src, **{name: -amount for name, amount in moved.items()})
    ctx.assign(dst, xferredcost=values.residualcost)
    ctx.assign(src, xferredcost=-values.residualcost)


def transfer_portfolio(ctx: EventContext, source: Account, target: Account) -> None:
    """Move a portfolio's cash and all its active holdings to another portfolio."""
    from .classify import adjust_account

    analysis = ctx.analysis
    cash = analysis.portfolios.cash.get(source)
    if cash is not None and cash.is_active:
        values = cash.values
        if source.currency != target.currency:
            raise LogicError(
                ctx.transaction, "Portfolio transfer between different currencies"
            )
        adjust_account(ctx, source, -values.balance, -values.localvalue)
        adjust_account(ctx, target, values.balance, values.localvalue)

    for bucket in list(analysis.portfolios.holdings_of(source)):
        if bucket.is_active:
            _move_holding(ctx, bucket.key, Holding(target, bucket.key.security))
