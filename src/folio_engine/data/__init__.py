"""
Data ingestion module for the portfolio valuation engine.

Provides loading of holdings, quotes, FX rates and snapshot history from
YAML/CSV files, and output of per-asset valuation reports.
"""

from folio_engine.data.loaders import (
    DataLoadError,
    load_crypto_quotes,
    load_fx_rates,
    load_holdings,
    load_snapshots,
    load_stock_quotes,
    save_asset_valuations,
    save_snapshots,
)
from folio_engine.data.schemas import (
    CRYPTO_QUOTES_SCHEMA,
    FX_RATES_SCHEMA,
    SNAPSHOTS_SCHEMA,
    STOCK_QUOTES_SCHEMA,
)

__all__ = [
    "DataLoadError",
    "load_crypto_quotes",
    "load_fx_rates",
    "load_holdings",
    "load_snapshots",
    "load_stock_quotes",
    "save_asset_valuations",
    "save_snapshots",
    "CRYPTO_QUOTES_SCHEMA",
    "FX_RATES_SCHEMA",
    "SNAPSHOTS_SCHEMA",
    "STOCK_QUOTES_SCHEMA",
]
