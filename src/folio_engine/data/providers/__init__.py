"""
Data providers for quotes and FX rates.

Provides pluggable price and FX interfaces, in-memory implementations, and a
helper that fetches one coherent market snapshot concurrently.
"""

from folio_engine.data.providers.base import (
    DataProviderError,
    FXProvider,
    MarketSnapshot,
    PriceProvider,
    StaticFXProvider,
    StaticPriceProvider,
    collect_market_snapshot,
)

__all__ = [
    "DataProviderError",
    "FXProvider",
    "MarketSnapshot",
    "PriceProvider",
    "StaticFXProvider",
    "StaticPriceProvider",
    "collect_market_snapshot",
]
