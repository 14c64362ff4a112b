"""ZIP code -> Illinois sales tax rate resolution.

Resolution runs an ordered list of strategies (Chicago list, exact ZIP,
3-digit prefix, statewide default); the first one that returns a result wins.
The last strategy always matches, so ``TaxResolver.resolve`` is total.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .schemas import CHICAGO_RATE, TaxRateIndex, TaxResult

logger = logging.getLogger(__name__)

CHICAGO_COUNTY = "COOK_CHICAGO"
DEFAULT_COUNTY = "DEFAULT"

# Geographic ZIP numbering. 606 is left out on purpose: Chicago proper comes
# from the explicit ZIP list, everything else in 600-608 is suburban Cook.
ILLINOIS_ZIP_PREFIXES = {
    "600": "COOK", "601": "COOK", "602": "COOK", "603": "COOK",
    "604": "COOK", "605": "COOK", "607": "COOK", "608": "COOK",
    "610": "WINNEBAGO", "611": "WINNEBAGO",
    "618": "CHAMPAIGN",
    "620": "MADISON", "621": "MADISON", "622": "SAINT_CLAIR",
    "627": "SANGAMON",
    "623": DEFAULT_COUNTY, "624": DEFAULT_COUNTY, "625": DEFAULT_COUNTY,
    "626": DEFAULT_COUNTY, "628": DEFAULT_COUNTY, "629": DEFAULT_COUNTY,
}

_SPECIAL_NAMES = {
    "SAINT_CLAIR": "St. Clair County",
    CHICAGO_COUNTY: "Chicago",
    "COOK": "Cook County",
    "ROCK_ISLAND": "Rock Island County",
    DEFAULT_COUNTY: "Illinois",
}

Strategy = Callable[[TaxRateIndex, str], Optional[TaxResult]]


def format_county_name(county: Optional[str]) -> str:
    """Display label for a county code, e.g. ``MCHENRY`` -> ``McHenry County``."""
    if not county:
        return "Illinois"
    if county in _SPECIAL_NAMES:
        return _SPECIAL_NAMES[county]
    words = county.replace("_", " ").split()
    pretty = []
    for word in words:
        if word.startswith("MC") and len(word) > 2:
            pretty.append("Mc" + word[2].upper() + word[3:].lower())
        else:
            pretty.append(word.capitalize())
    return " ".join(pretty) + " County"


def normalize_zip(zip_code) -> str:
    return str(zip_code if zip_code is not None else "").strip()[:5]


def _county_result(index: TaxRateIndex, county: Optional[str]) -> Optional[TaxResult]:
    rate = index.rate_for(county)
    if rate is None:
        return None
    return TaxResult(
        rate=rate,
        location=format_county_name(county),
        county=county,
        is_estimate=False,
    )


def chicago_city(index: TaxRateIndex, zip_code: str) -> Optional[TaxResult]:
    if zip_code not in index.chicago_zips:
        return None
    return TaxResult(
        rate=index.county_rates.get(CHICAGO_COUNTY, CHICAGO_RATE),
        location="Chicago",
        county="COOK",
        is_estimate=False,
    )


def exact_zip(index: TaxRateIndex, zip_code: str) -> Optional[TaxResult]:
    return _county_result(index, index.zip_to_county.get(zip_code))


def zip_prefix(index: TaxRateIndex, zip_code: str) -> Optional[TaxResult]:
    return _county_result(index, index.prefix_to_county.get(zip_code[:3]))


def statewide_default(index: TaxRateIndex, zip_code: str) -> TaxResult:
    return TaxResult(
        rate=index.default_rate,
        location="Illinois",
        county=None,
        is_estimate=True,
    )


DEFAULT_STRATEGIES: Sequence[Strategy] = (
    chicago_city,
    exact_zip,
    zip_prefix,
    statewide_default,
)


class TaxResolver:
    """Resolve sales tax for a ZIP code against an injected rate index.

    Build it with ``TaxRateIndex.empty()`` until the real table is available;
    lookups then land on the statewide default and are flagged as estimates.
    """

    def __init__(
        self,
        index: Optional[TaxRateIndex] = None,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.index = index or TaxRateIndex.empty()
        self.strategies = tuple(strategies)

    def with_index(self, index: TaxRateIndex) -> "TaxResolver":
        return TaxResolver(index, self.strategies)

    def resolve(self, zip_code) -> TaxResult:
        normalized = normalize_zip(zip_code)
        for strategy in self.strategies:
            result = strategy(self.index, normalized)
            if result is not None:
                return result
        logger.debug("No strategy matched ZIP %r; using statewide default", normalized)
        return statewide_default(self.index, normalized)
