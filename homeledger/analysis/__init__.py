# coding: utf-8
from .errors import AnalysisError, LogicError, DataIntegrityWarning
from .types import (
    AccountType,
    AccountClass,
    PayeeType,
    SecurityClass,
    CategoryClass,
    TaxClass,
    Direction,
    EventType,
    CashType,
    Payee,
    Account,
    Security,
    Holding,
    Category,
    Tag,
    Transaction,
    SecurityPrice,
    ExchangeRate,
    DepositRate,
    Event,
    DataSet,
)
from .values import (
    AccountValues,
    SecurityValues,
    PortfolioValues,
    PayeeValues,
    CategoryValues,
    TaxBasisValues,
    TagValues,
)
from .history import Snapshot, History
from .buckets import BucketKind, Bucket
from .cursor import PriceCursor, RateCursor, DepositRateCursor, EventCursor
from .securities import LIMIT_VALUE, LIMIT_RATE, ChargeableEvent, is_large_cash
from .registries import BucketSet
from .api import Analysis, AnalysisView, analyse
from .check import Totals, compare_totals, check_totals
