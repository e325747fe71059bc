# coding: utf-8
"""
Cross-dimension consistency check.

Every money movement is booked twice: once to the assets it moves between and
once as profit/loss against a payee, a category and a tax basis.  Over any
analysis (or view) the change in total asset value therefore equals the total
payee profit, the total category profit and the total tax-basis gross.  A
mismatch means unsupported or inconsistent data; it's reported as a warning,
not an error, so the remaining figures can still be inspected.
"""

__all__ = ["TOLERANCE", "Totals", "compare_totals", "check_totals"]


# stdlib imports
import warnings
from decimal import Decimal
from typing import NamedTuple


# local imports
from homeledger import utils
from .errors import DataIntegrityWarning


#  Rounding allowance for the comparisons
TOLERANCE = utils.MATERIALITY_TOLERANCE


class Totals(NamedTuple):
    """Change in value over an analysis, per dimension."""

    assets: Decimal
    payees: Decimal
    categories: Decimal
    taxbases: Decimal

    @property
    def is_consistent(self) -> bool:
        return all(
            utils.almost_equal(self.assets, other, TOLERANCE)
            for other in (self.payees, self.categories, self.taxbases)
        )


def compare_totals(bucketset) -> Totals:
    """Collect the totals of an analysis whose totals have been produced.

    Args:
        bucketset: Analysis or AnalysisView.
    """
    assets = sum(
        registry.deltas[None].valuedelta
        for registry in (bucketset.deposits, bucketset.cash, bucketset.loans)
    )
    assets += bucketset.portfolios.deltas[None].valuedelta

    return Totals(
        assets=assets,
        payees=bucketset.payees.deltas[None].profit,
        categories=bucketset.categories.deltas[None].profit,
        taxbases=bucketset.taxbases.deltas[None].gross,
    )


def check_totals(bucketset) -> bool:
    """Verify the totals of an analysis reconcile.

    Issues DataIntegrityWarning if they don't.

    Returns:
        True if the totals reconcile.
    """
    totals = compare_totals(bucketset)
    if totals.is_consistent:
        return True
    warnings.warn(
        "Totals don't reconcile: assets {0.assets}, payees {0.payees}, "
        "categories {0.categories}, tax bases {0.taxbases}".format(totals),
        DataIntegrityWarning,
    )
    return False
