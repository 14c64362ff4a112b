"""Out-the-door price derivation.

Illinois taxes the selling price, taxable add-ons and taxable fees; the
trade-in value comes off that base dollar-for-dollar (never below zero).
Trade equity is then subtracted from the total, so negative equity is
rolled into the price rather than credited.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .amortization import payment_table
from .config import CalculatorSettings
from .schemas import Fee, OtdResult, TaxResult, TransactionSnapshot


def applicable_fees(fees: Iterable[Fee], county: Optional[str]) -> tuple[Fee, ...]:
    return tuple(fee for fee in fees if fee.applies_to(county))


def trade_tax_savings(trade_value: float, taxable_before_trade: float, rate: float) -> float:
    return min(trade_value, taxable_before_trade) * rate


def price_transaction(
    tx: TransactionSnapshot,
    tax: TaxResult,
    config: CalculatorSettings,
    terms: Optional[Sequence[int]] = None,
) -> OtdResult:
    total_discounts = tx.total_discounts
    selling_price = max(0.0, tx.vehicle_price - total_discounts)

    taxable_addons = tx.taxable_addons
    non_taxable_addons = tx.non_taxable_addons
    vehicle_subtotal = selling_price + taxable_addons + non_taxable_addons

    fees = applicable_fees(config.fee_schedule, tax.county)
    taxable_fees = sum(fee.amount for fee in fees if fee.taxable)
    non_taxable_fees = sum(fee.amount for fee in fees if not fee.taxable)

    taxable_before_trade = selling_price + taxable_addons + taxable_fees
    taxable_amount = max(0.0, taxable_before_trade - tx.trade_value)
    sales_tax = taxable_amount * tax.rate

    trade_equity = tx.trade_equity
    total_before_trade = vehicle_subtotal + taxable_fees + sales_tax + non_taxable_fees
    out_the_door = total_before_trade - trade_equity
    amount_to_finance = max(0.0, out_the_door - tx.down_payment)

    payments = payment_table(
        amount_to_finance,
        tx.credit_tier,
        tx.special_aprs,
        config.tier_rates,
        terms if terms is not None else config.loan_terms,
    )

    return OtdResult(
        selling_price=selling_price,
        total_discounts=total_discounts,
        taxable_addons=taxable_addons,
        non_taxable_addons=non_taxable_addons,
        vehicle_subtotal=vehicle_subtotal,
        taxable_fees=taxable_fees,
        non_taxable_fees=non_taxable_fees,
        taxable_before_trade=taxable_before_trade,
        taxable_amount=taxable_amount,
        tax_rate=tax.rate,
        sales_tax=sales_tax,
        trade_value=tx.trade_value,
        trade_owed=tx.trade_owed,
        trade_equity=trade_equity,
        trade_tax_savings=trade_tax_savings(tx.trade_value, taxable_before_trade, tax.rate),
        total_before_trade=total_before_trade,
        out_the_door=out_the_door,
        amount_to_finance=amount_to_finance,
        fees=fees,
        payments=payments,
    )
