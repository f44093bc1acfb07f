"""
Portfolio Valuation & Aggregation Engine (folio-engine)

Values a personal portfolio of crypto assets, stocks/ETFs/bonds and fiat cash
in a single base currency. Produces a consolidated summary with allocation and
value-weighted 24h change, per-class breakdowns, merged cross-listings and
side-by-side comparisons of two portfolios priced from one set of quotes.

The engine is pure computation: quotes and FX rates are fetched by the caller
and passed in.
"""

__version__ = "0.1.0"
__author__ = "Folio Engine Team"
