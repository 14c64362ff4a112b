"""Calculator configuration.

Fees, product and discount catalogs, credit-tier APR tables, loan terms and
down-payment calculator defaults. Loaded from YAML (the bundled
``data/calculator.yaml`` unless a path or ``OTD_CONFIG`` says otherwise).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .schemas import Fee, LineItem, STATE_DEFAULT_RATE

DATA_DIR = Path(__file__).parent / "data"
BUNDLED_CONFIG = DATA_DIR / "calculator.yaml"


class FeeSettings(BaseModel):
    name: str
    amount: float = Field(ge=0)
    taxable: bool = False
    county: Optional[str] = None

    def to_fee(self) -> Fee:
        return Fee(name=self.name, amount=self.amount, taxable=self.taxable, county=self.county)


class ProductSettings(BaseModel):
    id: str
    name: str
    default_price: float = Field(ge=0)


class ProductCatalog(BaseModel):
    taxable: List[ProductSettings] = Field(default_factory=list)
    non_taxable: List[ProductSettings] = Field(default_factory=list)


class DiscountSettings(BaseModel):
    id: str
    name: str
    default_amount: float = Field(ge=0)


class CreditTierSettings(BaseModel):
    name: str
    rates: Dict[int, float]  # term (months) -> APR %


class DownPaymentSettings(BaseModel):
    default_investment_return: float = 0.07
    default_gains_tax_rate: float = Field(default=0.15, ge=0, le=1)
    residual_by_term: Dict[int, float] = Field(default_factory=dict)
    maintenance_by_year: Dict[int, float] = Field(default_factory=dict)

    @field_validator("maintenance_by_year")
    @classmethod
    def _non_negative_costs(cls, value: Dict[int, float]) -> Dict[int, float]:
        for year, cost in value.items():
            if year < 1:
                raise ValueError(f"maintenance year must start at 1, got {year}")
            if cost < 0:
                raise ValueError(f"maintenance cost for year {year} must be >= 0")
        return value

    @field_validator("residual_by_term")
    @classmethod
    def _residuals_are_fractions(cls, value: Dict[int, float]) -> Dict[int, float]:
        for term, pct in value.items():
            if not 0 <= pct <= 1:
                raise ValueError(f"residual for {term} months must be between 0 and 1")
        return value


class CalculatorSettings(BaseModel):
    default_tax_rate: float = Field(default=STATE_DEFAULT_RATE, ge=0, le=1)
    fees: Dict[str, FeeSettings] = Field(default_factory=dict)
    products: ProductCatalog = Field(default_factory=ProductCatalog)
    discounts: List[DiscountSettings] = Field(default_factory=list)
    credit_tiers: Dict[str, CreditTierSettings] = Field(default_factory=dict)
    loan_terms: List[int] = Field(default_factory=lambda: [24, 36, 48, 60, 72, 84])
    down_payment: DownPaymentSettings = Field(default_factory=DownPaymentSettings)

    @model_validator(mode="after")
    def _tiers_cover_terms(self) -> "CalculatorSettings":
        for key, tier in self.credit_tiers.items():
            missing = [term for term in self.loan_terms if term not in tier.rates]
            if missing:
                raise ValueError(f"credit tier {key!r} has no rate for terms {missing}")
        return self

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "CalculatorSettings":
        """Load settings from YAML, falling back to the bundled defaults."""
        path = Path(path or os.environ.get("OTD_CONFIG") or BUNDLED_CONFIG)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @property
    def fee_schedule(self) -> Tuple[Fee, ...]:
        return tuple(fee.to_fee() for fee in self.fees.values())

    @property
    def tier_rates(self) -> Dict[str, Dict[int, float]]:
        return {key: dict(tier.rates) for key, tier in self.credit_tiers.items()}

    def addon(self, product_id: str, amount: Optional[float] = None) -> LineItem:
        for taxable, products in (
            (True, self.products.taxable),
            (False, self.products.non_taxable),
        ):
            for product in products:
                if product.id == product_id:
                    price = product.default_price if amount is None else amount
                    return LineItem(product.id, product.name, price, taxable)
        raise KeyError(f"Unknown add-on product: {product_id}")

    def discount(self, discount_id: str, amount: Optional[float] = None) -> LineItem:
        for item in self.discounts:
            if item.id == discount_id:
                value = item.default_amount if amount is None else amount
                return LineItem(item.id, item.name, value)
        raise KeyError(f"Unknown discount: {discount_id}")

    def residual_for(self, term: int) -> float:
        """Residual percent for a term; unlisted terms use the nearest one."""
        table = self.down_payment.residual_by_term
        if term in table:
            return table[term]
        if not table:
            return 0.0
        nearest = min(table, key=lambda t: (abs(t - term), t))
        return table[nearest]
