"""
Portfolio module for the valuation engine.

Provides position aggregation, per-class valuation, the portfolio
summary and snapshot comparisons.
"""

from folio_engine.portfolio.holdings import (
    display_ticker,
    infer_peg_currency,
    is_stablecoin,
    total_quantity,
)
from folio_engine.portfolio.valuation import (
    ValuationError,
    summarize_portfolio,
    value_cash,
    value_crypto,
    value_equities,
    value_portfolio,
)
from folio_engine.portfolio.snapshots import (
    build_snapshot_record,
    change_since,
    period_changes,
)

__all__ = [
    "display_ticker",
    "infer_peg_currency",
    "is_stablecoin",
    "total_quantity",
    "ValuationError",
    "summarize_portfolio",
    "value_cash",
    "value_crypto",
    "value_equities",
    "value_portfolio",
    "build_snapshot_record",
    "change_since",
    "period_changes",
]
