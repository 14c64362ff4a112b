"""Tests for input normalization and entity invariants."""

import pytest

from otd_calculator.schemas import (
    Fee,
    LineItem,
    SpecialApr,
    TransactionSnapshot,
    parse_number,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("$25,000", 25000.0),
        ("25000.50", 25000.5),
        ("12.5%", 12.5),
        ("1.2.3", 1.2),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (True, 0.0),
        (1500, 1500.0),
        (-5, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        ("-300", 300.0),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


class TestTransactionSnapshot:
    def test_from_inputs_normalizes(self):
        tx = TransactionSnapshot.from_inputs(
            vehicle_price="$32,500",
            zip_code="60601-1234",
            trade_value="oops",
            trade_owed=None,
            down_payment="2,000",
        )
        assert tx.vehicle_price == 32500
        assert tx.zip_code == "60601"
        assert tx.trade_value == 0
        assert tx.trade_owed == 0
        assert tx.down_payment == 2000

    def test_lists_become_tuples(self):
        tx = TransactionSnapshot(addons=[LineItem("tint", "Window Tint", 400, True)])
        assert isinstance(tx.addons, tuple)
        assert tx.taxable_addons == 400
        assert tx.non_taxable_addons == 0

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            TransactionSnapshot(vehicle_price=-1)

    def test_negative_trade_rejected(self):
        with pytest.raises(ValueError):
            TransactionSnapshot(trade_owed=-1)

    def test_duplicate_addon_ids_rejected(self):
        item = LineItem("tint", "Window Tint", 400, True)
        with pytest.raises(ValueError, match="duplicate addon id"):
            TransactionSnapshot(addons=[item, item])

    def test_one_special_apr_per_term(self):
        with pytest.raises(ValueError, match="special APR term"):
            TransactionSnapshot(special_aprs=[SpecialApr(36, 1.9), SpecialApr(36, 2.9)])

    def test_trade_equity_signed(self):
        assert TransactionSnapshot(trade_value=5000, trade_owed=8000).trade_equity == -3000


def test_negative_amounts_rejected():
    with pytest.raises(ValueError):
        LineItem("dealer", "Dealer Discount", -10)
    with pytest.raises(ValueError):
        Fee("Doc Fee", -1)


def test_fee_county_filter():
    fee = Fee("Cook County Clerk Fee", 15, county="COOK")
    assert fee.applies_to("COOK")
    assert not fee.applies_to("DUPAGE")
    assert Fee("Title Fee", 165).applies_to(None)
