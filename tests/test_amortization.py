"""Tests for APR resolution and loan amortization."""

import pytest

from otd_calculator.amortization import (
    amortization_schedule,
    annual_to_monthly_rate,
    apr_for,
    monthly_payment,
    payment_table,
    total_interest,
)
from otd_calculator.schemas import AprQuote, SpecialApr

TIERS = {
    "excellent": {36: 5.49, 60: 6.49},
    "poor": {36: 15.49, 60: 16.49},
}


class TestAprResolution:
    def test_tier_rate(self):
        assert apr_for(60, "excellent", [], TIERS) == AprQuote(6.49, False)
        assert apr_for(60, "poor", [], TIERS) == AprQuote(16.49, False)

    def test_special_apr_wins_for_its_term(self):
        specials = [SpecialApr(term=36, rate=1.9)]
        assert apr_for(36, "poor", specials, TIERS) == AprQuote(1.9, True)
        assert apr_for(60, "poor", specials, TIERS) == AprQuote(16.49, False)

    def test_unlisted_term_uses_nearest(self):
        assert apr_for(40, "excellent", [], TIERS) == AprQuote(5.49, False)
        assert apr_for(72, "poor", [], TIERS) == AprQuote(16.49, False)
        # 48 sits halfway between 36 and 60
        assert apr_for(48, "excellent", [], TIERS) == AprQuote(5.49, False)

    def test_unknown_tier_quotes_zero(self):
        assert apr_for(60, "platinum", [], TIERS) == AprQuote(0.0, False)
        assert apr_for(60, "excellent", [], {"excellent": {}}) == AprQuote(0.0, False)

    def test_zero_percent_special(self):
        assert apr_for(60, "excellent", [SpecialApr(60, 0.0)], TIERS).rate == 0.0


class TestMonthlyPayment:
    def test_zero_rate_is_straight_line(self):
        payment = monthly_payment(20000, 0, 60)
        assert payment == 20000 / 60
        assert total_interest(payment, 60, 20000) == 0

    @pytest.mark.parametrize("rate", [0, 4.99, 17.49, 99.0])
    @pytest.mark.parametrize("term", [24, 60, 84])
    def test_zero_principal(self, rate, term):
        payment = monthly_payment(0, rate, term)
        assert payment == 0
        assert total_interest(payment, term, 0) == 0

    def test_standard_annuity(self):
        assert monthly_payment(20000, 6.0, 60) == pytest.approx(386.66, abs=0.01)

    def test_interest_positive_with_rate(self):
        payment = monthly_payment(30000, 6.49, 72)
        assert total_interest(payment, 72, 30000) > 0

    def test_non_positive_term(self):
        assert monthly_payment(20000, 5.0, 0) == 0

    def test_overflow_returns_zero(self):
        assert monthly_payment(1_000_000, 1e6, 1_000_000) == 0

    def test_nan_rate_treated_as_zero(self):
        assert monthly_payment(1200, float("nan"), 12) == 100

    def test_monthly_rate_conversion(self):
        assert annual_to_monthly_rate(12.0) == pytest.approx(0.01)
        assert annual_to_monthly_rate(0) == 0
        assert annual_to_monthly_rate(-3) == 0

    def test_total_interest_floor(self):
        assert total_interest(0.0, 60, 0.0) == 0
        assert total_interest(100.0, 10, 1000.0000001) == 0


class TestPaymentTable:
    def test_row_per_term(self):
        table = payment_table(25000, "excellent", [SpecialApr(36, 0.9)], TIERS, [36, 60])
        assert list(table) == [36, 60]
        assert table[36].is_special is True
        assert table[36].apr == 0.9
        assert table[60].apr == 6.49
        row = table[60]
        assert row.total_payments == pytest.approx(row.payment * 60)
        assert row.total_interest == pytest.approx(row.total_payments - 25000)

    def test_nothing_to_finance(self):
        table = payment_table(0, "poor", [], TIERS, [36, 60])
        assert all(row.payment == 0 and row.total_interest == 0 for row in table.values())


class TestSchedule:
    def test_pays_off_in_full(self):
        rows = amortization_schedule(20000, 6.0, 60)
        assert len(rows) == 60
        assert rows[-1].balance == 0
        assert sum(r.principal for r in rows) == pytest.approx(20000)
        assert sum(r.interest for r in rows) == pytest.approx(
            total_interest(monthly_payment(20000, 6.0, 60), 60, 20000), abs=0.01
        )

    def test_first_month_interest(self):
        first = amortization_schedule(12000, 12.0, 12)[0]
        assert first.interest == pytest.approx(120.0)
        assert first.principal == pytest.approx(first.payment - 120.0)

    def test_zero_principal(self):
        rows = amortization_schedule(0, 5.0, 12)
        assert all(r.payment == 0 and r.balance == 0 for r in rows)
