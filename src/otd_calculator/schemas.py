from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

STATE_DEFAULT_RATE = 0.0625
CHICAGO_RATE = 0.0950

_LEADING_NUMBER = re.compile(r"\d*\.?\d*")


def parse_number(value) -> float:
    """Normalize raw user input to a non-negative number (garbage -> 0)."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) and value >= 0 else 0.0
    cleaned = re.sub(r"[^0-9.]", "", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    try:
        return float(match.group(0)) if match else 0.0
    except ValueError:
        return 0.0


@dataclass(frozen=True)
class TaxRateIndex:
    """Static tax lookup data: Chicago ZIPs, ZIP/prefix -> county, county -> rate."""

    chicago_zips: FrozenSet[str] = frozenset()
    zip_to_county: Dict[str, str] = field(default_factory=dict)
    prefix_to_county: Dict[str, str] = field(default_factory=dict)
    county_rates: Dict[str, float] = field(default_factory=dict)
    default_rate: float = STATE_DEFAULT_RATE

    @classmethod
    def empty(cls, default_rate: float = STATE_DEFAULT_RATE) -> "TaxRateIndex":
        return cls(default_rate=default_rate)

    @property
    def is_empty(self) -> bool:
        return not self.county_rates

    def rate_for(self, county: Optional[str]) -> Optional[float]:
        if county is None:
            return None
        return self.county_rates.get(county)


@dataclass(frozen=True)
class TaxResult:
    rate: float  # decimal, e.g. 0.0825
    location: str
    county: Optional[str] = None
    is_estimate: bool = False


@dataclass(frozen=True)
class Fee:
    """A dealership fee. ``county`` limits the fee to one county code."""

    name: str
    amount: float
    taxable: bool = False
    county: Optional[str] = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"fee {self.name!r} amount must be >= 0")

    def applies_to(self, county: Optional[str]) -> bool:
        return self.county is None or self.county == county


@dataclass(frozen=True)
class LineItem:
    """A user-added add-on or discount."""

    id: str
    name: str
    amount: float
    taxable: bool = False

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"line item {self.id!r} amount must be >= 0")


@dataclass(frozen=True)
class SpecialApr:
    """Promotional APR for one loan term, overriding the credit-tier table."""

    term: int
    rate: float  # annual percentage, e.g. 1.9


@dataclass(frozen=True)
class AprQuote:
    rate: float  # annual percentage
    is_special: bool = False


def _check_unique(ids, label: str) -> None:
    seen = set()
    for item_id in ids:
        if item_id in seen:
            raise ValueError(f"duplicate {label} {item_id!r}")
        seen.add(item_id)


@dataclass(frozen=True)
class TransactionSnapshot:
    """Everything the pricing engine needs for one calculation."""

    vehicle_price: float = 0.0
    zip_code: str = ""
    trade_value: float = 0.0
    trade_owed: float = 0.0
    addons: Tuple[LineItem, ...] = ()
    discounts: Tuple[LineItem, ...] = ()
    credit_tier: str = "excellent"
    special_aprs: Tuple[SpecialApr, ...] = ()
    down_payment: float = 0.0
    selected_term: int = 60

    def __post_init__(self) -> None:
        if self.vehicle_price < 0:
            raise ValueError("vehicle_price must be >= 0")
        if self.trade_value < 0 or self.trade_owed < 0:
            raise ValueError("trade_value and trade_owed must be >= 0")
        if self.down_payment < 0:
            raise ValueError("down_payment must be >= 0")
        # accept lists from callers but keep the snapshot hashable
        object.__setattr__(self, "addons", tuple(self.addons))
        object.__setattr__(self, "discounts", tuple(self.discounts))
        object.__setattr__(self, "special_aprs", tuple(self.special_aprs))
        _check_unique((a.id for a in self.addons), "addon id")
        _check_unique((d.id for d in self.discounts), "discount id")
        _check_unique((s.term for s in self.special_aprs), "special APR term")

    @classmethod
    def from_inputs(
        cls,
        *,
        vehicle_price=None,
        zip_code="",
        trade_value=None,
        trade_owed=None,
        down_payment=None,
        **kwargs,
    ) -> "TransactionSnapshot":
        """Build a snapshot from raw form values, normalizing numbers first."""
        digits = re.sub(r"\D", "", str(zip_code or ""))[:5]
        return cls(
            vehicle_price=parse_number(vehicle_price),
            zip_code=digits,
            trade_value=parse_number(trade_value),
            trade_owed=parse_number(trade_owed),
            down_payment=parse_number(down_payment),
            **kwargs,
        )

    @property
    def total_discounts(self) -> float:
        return sum(d.amount for d in self.discounts)

    @property
    def taxable_addons(self) -> float:
        return sum(a.amount for a in self.addons if a.taxable)

    @property
    def non_taxable_addons(self) -> float:
        return sum(a.amount for a in self.addons if not a.taxable)

    @property
    def trade_equity(self) -> float:
        return self.trade_value - self.trade_owed


@dataclass(frozen=True)
class TermPayment:
    term: int
    apr: float
    is_special: bool
    payment: float
    total_payments: float
    total_interest: float


@dataclass(frozen=True)
class AmortizationRow:
    month: int
    payment: float
    interest: float
    principal: float
    balance: float


@dataclass(frozen=True)
class OtdResult:
    selling_price: float
    total_discounts: float
    taxable_addons: float
    non_taxable_addons: float
    vehicle_subtotal: float
    taxable_fees: float
    non_taxable_fees: float
    taxable_before_trade: float
    taxable_amount: float
    tax_rate: float
    sales_tax: float
    trade_value: float
    trade_owed: float
    trade_equity: float
    trade_tax_savings: float
    total_before_trade: float
    out_the_door: float
    amount_to_finance: float
    fees: Tuple[Fee, ...] = ()
    payments: Dict[int, TermPayment] = field(default_factory=dict)

    @property
    def total_addons(self) -> float:
        return self.taxable_addons + self.non_taxable_addons


@dataclass(frozen=True)
class DecisionParams:
    """Knobs for the finance-vs-cash-down projection."""

    selected_term: int = 60
    investment_return: float = 0.07  # annual, decimal
    capital_gains_tax_rate: float = 0.15
    residual_pct: Optional[float] = None  # None -> look up by term
    maintenance_by_year: Dict[int, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.selected_term <= 0:
            raise ValueError("selected_term must be positive")
        if self.investment_return <= -1:
            raise ValueError("investment_return must be greater than -100%")
        if not 0 <= self.capital_gains_tax_rate <= 1:
            raise ValueError("capital_gains_tax_rate must be between 0 and 1")
        if self.residual_pct is not None and not 0 <= self.residual_pct <= 1:
            raise ValueError("residual_pct must be between 0 and 1")


class Verdict(str, Enum):
    FINANCE = "finance"
    CASH_DOWN = "cash_down"


@dataclass(frozen=True)
class DecisionResult:
    otd: OtdResult
    term: int
    years: float
    down_payment: float
    down_payment_pct: float
    amount_financed: float
    apr: float
    is_special_apr: bool
    monthly_payment: float
    total_payments: float
    total_interest: float
    cash_invested: float
    investment_return: float
    after_tax_return: float
    investment_gain: float
    investment_tax: float
    investment_value_net: float
    total_maintenance: float
    residual_pct: float
    residual_value: float
    total_cash_out: float
    ending_assets: float
    net_position: float

    @property
    def investment_gain_net(self) -> float:
        return self.investment_value_net - self.cash_invested

    @property
    def has_tradeoff(self) -> bool:
        return self.cash_invested > 0 and self.amount_financed > 0

    @property
    def finance_advantage(self) -> Optional[float]:
        """Investment profit minus loan interest; positive favors financing."""
        if not self.has_tradeoff:
            return None
        return self.investment_gain_net - self.total_interest

    @property
    def verdict(self) -> Optional[Verdict]:
        advantage = self.finance_advantage
        if advantage is None:
            return None
        if advantage >= 0:
            return Verdict.FINANCE
        return Verdict.CASH_DOWN

