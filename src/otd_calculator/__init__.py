"""
Out-the-door vehicle price and down-payment decision toolkit.

This package resolves Illinois sales tax by ZIP code, derives the
out-the-door price of a purchase (discounts, add-ons, fees, tax and
trade-in), prices the loan for every term, and projects whether financing
while investing the cash beats putting more money down.
"""

from .schemas import (
    DecisionParams,
    DecisionResult,
    LineItem,
    OtdResult,
    SpecialApr,
    TaxRateIndex,
    TaxResult,
    TransactionSnapshot,
    Verdict,
    parse_number,
)
from .config import CalculatorSettings
from .data_sources import load_tax_index
from .tax import TaxResolver
from .pricing import price_transaction
from .amortization import apr_for, monthly_payment
from .decision import decide, default_params

__all__ = [
    "CalculatorSettings",
    "DecisionParams",
    "DecisionResult",
    "LineItem",
    "OtdResult",
    "SpecialApr",
    "TaxRateIndex",
    "TaxResolver",
    "TaxResult",
    "TransactionSnapshot",
    "Verdict",
    "apr_for",
    "decide",
    "default_params",
    "load_tax_index",
    "monthly_payment",
    "parse_number",
    "price_transaction",
]
