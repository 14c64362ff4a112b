from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Sequence

from .schemas import AmortizationRow, AprQuote, SpecialApr, TermPayment


def apr_for(
    term: int,
    credit_tier: str,
    special_aprs: Iterable[SpecialApr],
    tiers: Mapping[str, Mapping[int, float]],
) -> AprQuote:
    """A special APR for exactly this term beats the credit-tier table.

    A term missing from the tier borrows the rate of the nearest listed term,
    the shorter one on ties. An unknown or empty tier quotes 0%.
    """
    for special in special_aprs:
        if special.term == term:
            return AprQuote(rate=special.rate, is_special=True)
    rates = tiers.get(credit_tier) or {}
    if not rates:
        return AprQuote(rate=0.0, is_special=False)
    if term not in rates:
        term = min(rates, key=lambda t: (abs(t - term), t))
    return AprQuote(rate=rates[term], is_special=False)


def monthly_payment(
    principal: float, annual_rate_pct: float, term_months: int
) -> float:
    if principal <= 0 or term_months <= 0:
        return 0.0
    monthly_rate = annual_to_monthly_rate(annual_rate_pct)
    if monthly_rate == 0:
        return principal / term_months
    try:
        growth = (1 + monthly_rate) ** term_months
        payment = principal * (monthly_rate * growth) / (growth - 1)
    except (OverflowError, ZeroDivisionError):
        return 0.0
    return payment if math.isfinite(payment) else 0.0


def annual_to_monthly_rate(annual_rate_pct: float) -> float:
    if not annual_rate_pct > 0:
        return 0.0
    return annual_rate_pct / 100.0 / 12.0


def total_interest(payment: float, term_months: int, principal: float) -> float:
    # float noise can leave a tiny negative when principal is 0
    return max(0.0, payment * term_months - principal)


def term_payment(principal: float, term: int, quote: AprQuote) -> TermPayment:
    payment = monthly_payment(principal, quote.rate, term)
    total = payment * term
    return TermPayment(
        term=term,
        apr=quote.rate,
        is_special=quote.is_special,
        payment=payment,
        total_payments=total,
        total_interest=total_interest(payment, term, principal),
    )


def payment_table(
    principal: float,
    credit_tier: str,
    special_aprs: Iterable[SpecialApr],
    tiers: Mapping[str, Mapping[int, float]],
    terms: Sequence[int],
) -> Dict[int, TermPayment]:
    specials = tuple(special_aprs)
    return {
        term: term_payment(principal, term, apr_for(term, credit_tier, specials, tiers))
        for term in terms
    }


def amortization_schedule(
    principal: float, annual_rate_pct: float, term_months: int
) -> List[AmortizationRow]:
    """Month-by-month split of each payment into interest and principal."""
    payment = monthly_payment(principal, annual_rate_pct, term_months)
    monthly_rate = annual_to_monthly_rate(annual_rate_pct)
    balance = max(principal, 0.0)
    rows: List[AmortizationRow] = []

    for month in range(1, term_months + 1):
        interest_payment = balance * monthly_rate if balance > 0 else 0.0
        principal_payment = 0.0
        if balance > 0 and payment > 0:
            principal_portion = max(payment - interest_payment, 0.0)
            principal_payment = min(principal_portion, balance)
            if month == term_months:
                principal_payment = balance
            balance = max(balance - principal_payment, 0.0)

        rows.append(
            AmortizationRow(
                month=month,
                payment=payment,
                interest=interest_payment,
                principal=principal_payment,
                balance=balance,
            )
        )

    return rows
