"""Finance vs. cash-down decision engine.

The cash not put down is assumed invested as a lump sum for the loan term.
Comparing the after-tax investment profit against the loan interest says
whether financing or a bigger down payment leaves the buyer better off.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from .amortization import apr_for, monthly_payment, total_interest
from .config import CalculatorSettings
from .pricing import price_transaction
from .schemas import DecisionParams, DecisionResult, TaxResult, TransactionSnapshot

logger = logging.getLogger(__name__)


def default_params(
    config: CalculatorSettings,
    selected_term: int = 60,
    *,
    investment_return: Optional[float] = None,
    capital_gains_tax_rate: Optional[float] = None,
    residual_pct: Optional[float] = None,
) -> DecisionParams:
    """Decision parameters pre-filled from the calculator defaults."""
    defaults = config.down_payment
    return DecisionParams(
        selected_term=selected_term,
        investment_return=(
            defaults.default_investment_return
            if investment_return is None
            else investment_return
        ),
        capital_gains_tax_rate=(
            defaults.default_gains_tax_rate
            if capital_gains_tax_rate is None
            else capital_gains_tax_rate
        ),
        residual_pct=residual_pct,
        maintenance_by_year=dict(defaults.maintenance_by_year),
    )


def investment_value(cash: float, annual_return: float, years: float) -> float:
    """Future value of a lump sum compounded annually."""
    if cash <= 0:
        return 0.0
    return cash * (1 + annual_return) ** years


def total_maintenance(schedule: Mapping[int, float], years: float) -> float:
    """Sum yearly costs over the term, pro-rating a partial final year.

    Years past the end of the schedule reuse its last year.
    """
    if not schedule or years <= 0:
        return 0.0
    last_year = max(schedule)
    whole_years = math.floor(years)
    total = 0.0
    for year in range(1, whole_years + 1):
        total += schedule.get(min(year, last_year), 0.0)
    fraction = years - whole_years
    if fraction > 0:
        total += schedule.get(min(whole_years + 1, last_year), 0.0) * fraction
    return total


def decide(
    tx: TransactionSnapshot,
    params: DecisionParams,
    tax: TaxResult,
    config: CalculatorSettings,
) -> DecisionResult:
    otd = price_transaction(tx, tax, config)
    term = params.selected_term
    years = term / 12

    total_due = otd.out_the_door
    down_payment = min(tx.down_payment, total_due)
    amount_financed = max(0.0, total_due - down_payment)
    cash_invested = total_due - down_payment

    quote = apr_for(term, tx.credit_tier, tx.special_aprs, config.tier_rates)
    payment = monthly_payment(amount_financed, quote.rate, term)
    total_payments = payment * term
    interest = total_interest(payment, term, amount_financed)

    # only the gain is taxed, never the principal
    r = params.investment_return
    fv = investment_value(cash_invested, r, years)
    gain = max(0.0, fv - cash_invested)
    gains_tax = gain * params.capital_gains_tax_rate
    investment_value_net = fv - gains_tax

    maintenance = total_maintenance(params.maintenance_by_year, years)

    residual_pct = (
        params.residual_pct if params.residual_pct is not None else config.residual_for(term)
    )
    residual_value = tx.vehicle_price * residual_pct

    total_cash_out = down_payment + total_payments + maintenance
    ending_assets = residual_value + investment_value_net
    net_position = ending_assets - total_cash_out

    result = DecisionResult(
        otd=otd,
        term=term,
        years=years,
        down_payment=down_payment,
        down_payment_pct=down_payment / total_due if total_due > 0 else 0.0,
        amount_financed=amount_financed,
        apr=quote.rate,
        is_special_apr=quote.is_special,
        monthly_payment=payment,
        total_payments=total_payments,
        total_interest=interest,
        cash_invested=cash_invested,
        investment_return=r,
        after_tax_return=r * (1 - params.capital_gains_tax_rate),
        investment_gain=gain,
        investment_tax=gains_tax,
        investment_value_net=investment_value_net,
        total_maintenance=maintenance,
        residual_pct=residual_pct,
        residual_value=residual_value,
        total_cash_out=total_cash_out,
        ending_assets=ending_assets,
        net_position=net_position,
    )
    logger.debug(
        "Decision for %d months: financed=%.2f interest=%.2f invested=%.2f verdict=%s",
        term,
        amount_financed,
        interest,
        cash_invested,
        result.verdict.value if result.verdict else "n/a",
    )
    return result
