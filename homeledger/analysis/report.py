# coding: utf-8
"""Flatten analysis registries into tablib.Dataset containers for serialization.

Each bucket becomes one row: its name, its totals group, then the fields of its
value-set.  Money amounts are rounded to cents and enums written by name, so the
values look right when tablib.Dataset type-converts them during serialization.

This module doesn't perform the actual writing; callers handle that by working
with the tablib.Dataset instances returned.
"""
__all__ = [
    "REGISTRIES",
    "flatten_registry",
    "flatten_totals",
    "flatten_chargeables",
    "export_values",
    "get_registry",
]

# stdlib imports
import enum
from decimal import Decimal
from typing import Any, Tuple

# 3rd party imports
import tablib

# local imports
from homeledger import utils
from .buckets import strategy_for
from .registries import BucketSet, Registry
from .values import ValuesType


#  Registry name -> BucketSet attribute path
REGISTRIES = {
    "deposits": ("deposits",),
    "cash": ("cash",),
    "loans": ("loans",),
    "portfoliocash": ("portfolios", "cash"),
    "holdings": ("portfolios", "holdings"),
    "payees": ("payees",),
    "categories": ("categories",),
    "taxbases": ("taxbases",),
    "tags": ("tags",),
}


def get_registry(bucketset: BucketSet, name: str) -> Registry:
    registry: Any = bucketset
    for attr in REGISTRIES[name]:
        registry = getattr(registry, attr)
    return registry


def _name(key: Any) -> str:
    if key is None:
        return "Total"
    if isinstance(key, enum.Enum):
        return key.name
    return str(key)


def _export(value: Any) -> Any:
    if isinstance(value, Decimal):
        return utils.round_decimal(value, power=-2)
    if isinstance(value, enum.Enum):
        return value.name
    return value


def export_values(values: ValuesType) -> Tuple:
    """Convert a value-set into a row (tuple) ready for serialization."""
    return tuple(_export(value) for value in values)


def _headers(registry: Registry) -> Tuple[str, ...]:
    values_type = strategy_for(registry.kind).values_type
    return ("name", "group") + values_type._fields


def flatten_registry(registry: Registry) -> tablib.Dataset:
    """Convert the buckets of a Registry into a tablib.Dataset.

    Columns are name, group and the fields of the bucket value-set; buckets
    that saw no events are skipped.
    """
    dataset = tablib.Dataset(headers=_headers(registry))
    for bucket in registry:
        if bucket.is_idle:
            continue
        groups = registry.groups(bucket.key)
        group = _name(groups[0]) if groups else None
        dataset.append((_name(bucket.key), group) + export_values(bucket.values))
    return dataset


def flatten_totals(registry: Registry) -> tablib.Dataset:
    """Convert the produced totals of a Registry into a tablib.Dataset."""
    dataset = tablib.Dataset(headers=_headers(registry))
    for group, values in registry.totals.items():
        dataset.append((_name(group), None) + export_values(values))
    return dataset


def flatten_chargeables(bucketset: BucketSet) -> tablib.Dataset:
    """Chargeable gains recorded against the tax bases."""
    dataset = tablib.Dataset(
        headers=("date", "transaction", "holding", "gain", "years", "slice")
    )
    for event in bucketset.taxbases.chargeables:
        dataset.append(
            (
                event.transaction.date.isoformat(),
                event.transaction.id,
                str(event.holding),
                _export(event.gain),
                event.years,
                _export(event.slice),
            )
        )
    return dataset
