"""
Holdings utilities for the portfolio valuation engine.

Provides position aggregation and the classification rules shared by the
valuators, the listing merger and the holdings comparator.
"""

from decimal import Decimal
from typing import Iterable, Sequence

from folio_engine.models import CryptoAsset, Position, StockAsset


DEFAULT_STABLECOIN_SUBCATEGORY = "stablecoin"
DEFAULT_TICKER_SEPARATORS: tuple[str, ...] = (".",)

# Fiat currencies a stablecoin may be pegged to, checked in order
PEG_CURRENCIES: tuple[str, ...] = ("EUR", "GBP", "CHF")


def total_quantity(positions: Iterable[Position]) -> Decimal:
    """
    Sum quantity across positions.

    Args:
        positions: Positions of a single asset

    Returns:
        Total quantity (0 for no positions)
    """
    return sum((p.quantity for p in positions), Decimal("0"))


def is_stablecoin(
    asset: CryptoAsset,
    stablecoin_subcategory: str = DEFAULT_STABLECOIN_SUBCATEGORY,
) -> bool:
    """
    Check whether a crypto asset is reclassified as cash.

    Args:
        asset: Crypto asset
        stablecoin_subcategory: Subcategory marking stablecoins

    Returns:
        True if the asset's subcategory matches (case-insensitive)
    """
    if not asset.subcategory:
        return False
    return asset.subcategory.strip().lower() == stablecoin_subcategory.lower()


def display_ticker(
    ticker: str,
    separators: Sequence[str] = DEFAULT_TICKER_SEPARATORS,
) -> str:
    """
    Strip the exchange suffix from a ticker.

    The display ticker is the substring before the first separator character,
    so "VWCE.DE" and "VWCE.AS" both become "VWCE".

    Args:
        ticker: Instrument ticker
        separators: Characters that start an exchange suffix

    Returns:
        Display ticker
    """
    cut = len(ticker)
    for separator in separators:
        index = ticker.find(separator)
        if index != -1:
            cut = min(cut, index)
    return ticker[:cut]


def infer_peg_currency(ticker: str, name: str) -> str:
    """
    Infer the fiat currency a stablecoin is pegged to from its ticker/name.

    Args:
        ticker: Stablecoin ticker (e.g. EURC)
        name: Stablecoin name

    Returns:
        Currency code, USD when nothing else matches
    """
    ticker = ticker.upper()
    name = name.upper()
    for currency in PEG_CURRENCIES:
        if currency in ticker or currency in name:
            return currency
    return "USD"


def count_positions(assets: Iterable[CryptoAsset | StockAsset]) -> int:
    """Number of positions across assets."""
    return sum(len(asset.positions) for asset in assets)
