"""
Analytics module for the portfolio valuation engine.

Provides per-class breakdowns, cross-listing merging, two-portfolio
holdings comparison and dashboard insights.
"""

from folio_engine.analytics.breakdown import (
    CryptoGrouping,
    build_breakdowns,
    build_cash_breakdown,
    build_crypto_breakdown,
    build_equities_breakdown,
)
from folio_engine.analytics.listings import (
    build_listing_rows,
    merge_listings,
    sort_listings,
)
from folio_engine.analytics.comparison import (
    compare_holdings,
    compare_portfolios,
    summarize_overlap,
)
from folio_engine.analytics.insights import compute_insights

__all__ = [
    "CryptoGrouping",
    "build_breakdowns",
    "build_cash_breakdown",
    "build_crypto_breakdown",
    "build_equities_breakdown",
    "build_listing_rows",
    "merge_listings",
    "sort_listings",
    "compare_holdings",
    "compare_portfolios",
    "summarize_overlap",
    "compute_insights",
]
