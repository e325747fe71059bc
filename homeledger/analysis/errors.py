# coding: utf-8
"""Exceptions and warnings raised while analysing a ledger."""

__all__ = ["AnalysisError", "LogicError", "DataIntegrityWarning"]


class AnalysisError(Exception):
    """ Base class for Exceptions defined in this package """


class LogicError(AnalysisError):
    """Exception raised when the input data cannot be analysed.

    Raising it aborts the whole pass; it signals malformed input (an impossible
    asset pairing, an unmapped category class, a missing singular asset or
    exchange rate) rather than a condition local to one transaction.

    Args:
        transaction: the transaction being processed, or None.
        msg: Error message detailing the problem.

    Attributes:
        transaction: the transaction being processed, or None.
        msg: Error message detailing the problem.
    """

    def __init__(self, transaction, msg: str) -> None:
        self.transaction = transaction
        self.msg = msg
        if transaction is None:
            super(LogicError, self).__init__(msg)
        else:
            super(LogicError, self).__init__(f"{transaction} invalid: {msg}")


class DataIntegrityWarning(UserWarning):
    """Totals that should agree after a pass do not reconcile."""
