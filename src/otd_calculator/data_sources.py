from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Dict, Optional, Union

import requests

from .schemas import STATE_DEFAULT_RATE, TaxRateIndex
from .tax import DEFAULT_COUNTY, ILLINOIS_ZIP_PREFIXES

logger = logging.getLogger(__name__)

BUNDLED_TAX_TABLE = Path(__file__).parent / "data" / "il_sales_tax_lookup.json"

Source = Union[str, Path]


class TaxTableClient:
    """Fetch the sales tax lookup document from a URL or a local file."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, source: Source) -> dict:
        source_str = str(source)
        if source_str.startswith(("http://", "https://")):
            response = self.session.get(source_str, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        else:
            with open(source_str, "r", encoding="utf-8") as f:
                data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Tax table at {source_str} is not a JSON object")
        return data


def load_tax_index(
    source: Optional[Source] = None,
    client: Optional[TaxTableClient] = None,
    default_rate: float = STATE_DEFAULT_RATE,
) -> TaxRateIndex:
    """Load and validate a tax table, degrading to an empty index on failure.

    A missing file, HTTP error or unparseable document never propagates:
    the caller gets an empty index and every lookup falls back to
    ``default_rate``, which also fills in when the table has no ``DEFAULT``.
    """
    source = source or BUNDLED_TAX_TABLE
    client = client or TaxTableClient()
    try:
        data = client.fetch(source)
    except (requests.RequestException, OSError, ValueError) as exc:
        logger.warning("Failed to load sales tax data from %s: %s", source, exc)
        return TaxRateIndex.empty(default_rate)

    index = build_index(data, default_rate)
    logger.info(
        "Loaded sales tax data from %s: %d counties, %d ZIPs, %d Chicago ZIPs",
        source,
        len(index.county_rates),
        len(index.zip_to_county),
        len(index.chicago_zips),
    )
    return index


def build_index(data: dict, default_rate: float = STATE_DEFAULT_RATE) -> TaxRateIndex:
    """Turn a raw lookup document into a consistent ``TaxRateIndex``.

    Malformed sections become empty, invalid rates are dropped and map
    entries pointing at counties without a rate are pruned.
    """
    county_rates = _parse_rates(data.get("countyRates"))

    chicago_raw = data.get("chicagoZips")
    chicago_zips = frozenset(
        str(z).strip() for z in chicago_raw if str(z).strip()
    ) if isinstance(chicago_raw, list) else frozenset()

    zip_to_county = _parse_county_map(data.get("zipToCounty"), county_rates, "zipToCounty")
    prefix_raw = data.get("zipPrefixToCounty")
    if prefix_raw is None and county_rates:
        prefix_raw = ILLINOIS_ZIP_PREFIXES
    prefix_to_county = _parse_county_map(prefix_raw, county_rates, "zipPrefixToCounty")

    return TaxRateIndex(
        chicago_zips=chicago_zips,
        zip_to_county=zip_to_county,
        prefix_to_county=prefix_to_county,
        county_rates=county_rates,
        default_rate=county_rates.get(DEFAULT_COUNTY, default_rate),
    )


def _parse_rates(raw) -> Dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    rates: Dict[str, float] = {}
    for county, value in raw.items():
        rate = _to_rate(value)
        if rate is None:
            logger.debug("Dropping invalid rate %r for county %s", value, county)
            continue
        rates[str(county)] = rate
    return rates


def _parse_county_map(raw, county_rates: Dict[str, float], label: str) -> Dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    mapping: Dict[str, str] = {}
    for key, county in raw.items():
        if not isinstance(county, str) or county not in county_rates:
            logger.debug("%s entry %s -> %r has no county rate", label, key, county)
            continue
        mapping[str(key)] = county
    return mapping


def _to_rate(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or not 0 <= rate <= 1:
        return None
    return rate
