# coding: utf-8
"""
Valuation and market movements.

Assets are revalued from the price and rate cursors whenever they are touched.
Any change in an asset's valuation that isn't explained by cash invested or
withdrawn (or by a realised gain, booked separately) is a market movement:
market growth for securities, currency fluctuation for foreign balances (and for
securities revalued by an exchange-rate event).

Market movements are accumulated per event and flushed once, against the Market
payee, the MARKETGROWTH / CURRENCYFLUCTUATION categories and the MARKET tax
basis, so that the change in total asset value is matched by profit and loss.
"""

__all__ = [
    "value_account",
    "value_holding",
    "apply_prices",
    "apply_rates",
    "apply_deposit_rates",
    "settle",
    "flush",
    "book_gain",
]


# stdlib imports
from decimal import Decimal


# local imports
from homeledger.utils import ZERO
from .buckets import Bucket, BucketKind, ACCOUNT_KINDS
from .cursor import convert
from .context import EventContext
from .types import CategoryClass, TaxClass, EventType


ACCOUNT_BUCKETS = frozenset(ACCOUNT_KINDS.values())


def value_account(ctx: EventContext, bucket: Bucket) -> None:
    """Value the balance of an account at the rate in effect."""
    account = bucket.key
    rates = ctx.analysis.rates
    balance = bucket.values.balance
    if rates.is_foreign(account.currency):
        rate = rates.rate_at(account.currency, ctx.date)
        ctx.assign(bucket, exchangerate=rate, valuation=convert(balance, rate))
    else:
        ctx.assign(bucket, valuation=balance)


def value_holding(ctx: EventContext, bucket: Bucket) -> None:
    """Value a holding: units at the price in effect, plus unitless funding."""
    holding = bucket.key
    values = bucket.values
    price = ctx.analysis.prices.price_at(holding.security, ctx.date)
    rate = ctx.analysis.rates.rate_at(holding.currency, ctx.date)
    valuation = convert(values.units * price, rate) + values.funded
    ctx.assign(bucket, price=price, exchangerate=rate, valuation=valuation)


def apply_prices(ctx: EventContext, prices) -> None:
    """Revalue existing holdings of each newly priced security.

    Funding paid into an asset without units is absorbed once the asset is
    priced; assets valued as a whole take a single unit.
    """
    for price in prices:
        security = price.security
        for bucket in ctx.analysis.portfolios.holdings_for(security):
            values = bucket.values
            if values.funded:
                units = values.units or security.type.auto_units
                if units:
                    ctx.assign(bucket, units=units, funded=ZERO)
            if bucket.is_active:
                value_holding(ctx, bucket)


def apply_rates(ctx: EventContext, rates) -> None:
    """Revalue active accounts and holdings denominated in a re-rated currency."""
    currencies = {rate.currency for rate in rates}
    analysis = ctx.analysis
    for registry in analysis.account_registries():
        for bucket in registry:
            if bucket.key.currency in currencies and bucket.is_active:
                value_account(ctx, bucket)
    for bucket in analysis.portfolios.holdings:
        if bucket.key.currency in currencies and bucket.is_active:
            value_holding(ctx, bucket)


def apply_deposit_rates(ctx: EventContext, depositrates) -> None:
    """Record the new interest rate on deposits already being tracked."""
    for record in depositrates:
        bucket = ctx.analysis.deposits.get(record.deposit)
        if bucket is not None:
            ctx.assign(bucket, depositrate=record.rate)


def settle(ctx: EventContext) -> None:
    """Revalue every touched asset and attribute unexplained value changes."""
    touched = ctx.touched
    for bucket in touched:
        if bucket.kind is BucketKind.SECURITY:
            value_holding(ctx, bucket)
        elif bucket.kind in ACCOUNT_BUCKETS:
            value_account(ctx, bucket)

    rerated = ctx.event.type is EventType.XCHGRATE
    for bucket in touched:
        start = ctx.initial(bucket)
        values = bucket.values
        if bucket.kind is BucketKind.SECURITY:
            residual = (
                (values.valuation - start.valuation)
                - (values.invested - start.invested)
                - (values.realisedgains - start.realisedgains)
            )
            if not residual:
                continue
            if rerated:
                ctx.fluctuation += residual
                ctx.adjust(bucket, currencyfluct=residual)
            else:
                ctx.growth += residual
                ctx.adjust(bucket, marketgrowth=residual)
        elif bucket.kind in ACCOUNT_BUCKETS:
            ctx.fluctuation += (values.valuation - start.valuation) - (
                values.localvalue - start.localvalue
            )

    flush(ctx)


def flush(ctx: EventContext) -> None:
    """Book accumulated market growth and currency fluctuation, then reset."""
    growth, fluctuation = ctx.growth, ctx.fluctuation
    if not growth and not fluctuation:
        return

    analysis = ctx.analysis
    total = growth + fluctuation
    ctx.book_signed(analysis.payee_bucket(analysis.market), total)
    if growth:
        ctx.book_signed(analysis.singular_bucket(CategoryClass.MARKETGROWTH), growth)
    if fluctuation:
        ctx.book_signed(
            analysis.singular_bucket(CategoryClass.CURRENCYFLUCTUATION), fluctuation
        )
    ctx.adjust(analysis.taxbasis_bucket(TaxClass.MARKET), gross=total, nett=total)

    ctx.growth = ZERO
    ctx.fluctuation = ZERO


def book_gain(ctx: EventContext, gain: Decimal, chargeable: bool = False) -> None:
    """Book a realised (or chargeable) gain against the Market payee."""
    if not gain:
        return
    analysis = ctx.analysis
    if chargeable:
        cls, taxclass = CategoryClass.CHARGEABLEGAIN, TaxClass.CHARGEABLEGAINS
    else:
        cls, taxclass = CategoryClass.CAPITALGAIN, TaxClass.CAPITALGAINS
    ctx.book_signed(analysis.payee_bucket(analysis.market), gain)
    ctx.book_signed(analysis.singular_bucket(cls), gain)
    ctx.adjust(analysis.taxbasis_bucket(taxclass), gross=gain, nett=gain)
