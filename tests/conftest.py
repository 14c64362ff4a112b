"""Shared test fixtures for the OTD calculator."""

import pytest

from otd_calculator.config import CalculatorSettings
from otd_calculator.data_sources import load_tax_index
from otd_calculator.schemas import TaxRateIndex, TaxResult
from otd_calculator.tax import TaxResolver


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("OTD_CONFIG", raising=False)
    monkeypatch.delenv("OTD_TAX_TABLE", raising=False)


@pytest.fixture(scope="session")
def config() -> CalculatorSettings:
    """Bundled calculator configuration."""
    return CalculatorSettings.load()


@pytest.fixture(scope="session")
def bundled_index() -> TaxRateIndex:
    return load_tax_index()


@pytest.fixture
def resolver(bundled_index) -> TaxResolver:
    return TaxResolver(bundled_index)


@pytest.fixture
def synthetic_index() -> TaxRateIndex:
    """Small hand-built table, independent of the bundled data."""
    return TaxRateIndex(
        chicago_zips=frozenset({"60601"}),
        zip_to_county={"60025": "COOK", "61701": "MCLEAN"},
        prefix_to_county={"600": "COOK", "627": "SANGAMON", "629": "DEFAULT"},
        county_rates={
            "DEFAULT": 0.0625,
            "COOK_CHICAGO": 0.0950,
            "COOK": 0.0825,
            "MCLEAN": 0.0700,
            "SANGAMON": 0.0725,
        },
        default_rate=0.0625,
    )


@pytest.fixture
def cook_tax() -> TaxResult:
    return TaxResult(rate=0.0825, location="Cook County", county="COOK")


@pytest.fixture
def dupage_tax() -> TaxResult:
    return TaxResult(rate=0.07, location="Dupage County", county="DUPAGE")
