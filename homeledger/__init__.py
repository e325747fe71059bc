# coding: utf-8
"""Household ledger aggregation: balances, income, gains and tax bases."""
from homeledger.config import CONFIG


__all__ = ["CONFIG"]
