"""
Decision logging module for the portfolio valuation engine.

Provides append-only decision logging for audit and reproducibility.
"""

from folio_engine.logging.decision_log import (
    DecisionLogger,
    log_action,
    get_logger,
)

__all__ = [
    "DecisionLogger",
    "log_action",
    "get_logger",
]
