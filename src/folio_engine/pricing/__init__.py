"""
Pricing module for the portfolio valuation engine.

Provides currency conversion against a rate table and resolution of
provider quotes and manual overrides into prices the valuators use.
"""

from folio_engine.pricing.fx import (
    RateUnavailableError,
    UnsupportedCurrencyError,
    convert,
    parse_base_currency,
    rate_table_from_provider,
    required_currencies,
)
from folio_engine.pricing.quotes import (
    PriceOverrideProvider,
    StaticPriceOverrides,
    crypto_quote_from_payload,
    quote_identifiers,
    resolve_crypto_quote,
    resolve_stock_quote,
)

__all__ = [
    "RateUnavailableError",
    "UnsupportedCurrencyError",
    "convert",
    "parse_base_currency",
    "rate_table_from_provider",
    "required_currencies",
    "PriceOverrideProvider",
    "StaticPriceOverrides",
    "crypto_quote_from_payload",
    "quote_identifiers",
    "resolve_crypto_quote",
    "resolve_stock_quote",
]
