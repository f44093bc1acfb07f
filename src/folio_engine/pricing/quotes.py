"""
Quote resolution for the class valuators.

Turns provider quotes (and optional manual price overrides) into a single
ResolvedQuote per asset, or None when the asset is unpriced.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from folio_engine.models import (
    BaseCurrency,
    CryptoAsset,
    CryptoQuote,
    PortfolioHoldings,
    QuoteLeg,
    QuoteSource,
    ResolvedQuote,
    StockAsset,
    StockQuote,
)
from folio_engine.pricing.fx import currency_code


logger = logging.getLogger(__name__)


# Provider field names for each base currency: (price field, 24h change field)
QUOTE_FIELDS: dict[BaseCurrency, tuple[str, str]] = {
    BaseCurrency.USD: ("usd", "usd_24h_change"),
    BaseCurrency.EUR: ("eur", "eur_24h_change"),
}


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def crypto_quote_from_payload(payload: Mapping[str, Any]) -> CryptoQuote:
    """
    Parse a provider payload such as ``{"usd": 50000, "usd_24h_change": 1.2}``.

    Currencies whose price field is absent are left out of the quote.

    Args:
        payload: Raw provider fields for one coin

    Returns:
        CryptoQuote with one leg per currency present
    """
    legs: dict[BaseCurrency, QuoteLeg] = {}
    for currency, (price_field, change_field) in QUOTE_FIELDS.items():
        price = _to_decimal(payload.get(price_field))
        if price is None:
            continue
        legs[currency] = QuoteLeg(
            price=price,
            change_percent=_to_decimal(payload.get(change_field)),
        )
    return CryptoQuote(legs=legs)


class PriceOverrideProvider(ABC):
    """
    Source of manually-entered prices for instruments without a live quote.

    The valuators consult it only after the live quote lookup misses.
    """

    @abstractmethod
    def get_override(self, identifier: str) -> Optional[ResolvedQuote]:
        """
        Get a manual price for an identifier.

        Args:
            identifier: Crypto provider id or stock provider ticker

        Returns:
            ResolvedQuote with source MANUAL, or None
        """
        pass


class StaticPriceOverrides(PriceOverrideProvider):
    """Manual prices held in memory."""

    def __init__(self, prices: Optional[Mapping[str, Mapping[str, Any]]] = None):
        """
        Initialize from a mapping of identifier -> {"price", "currency"}.

        Args:
            prices: Manual prices; currency defaults to USD
        """
        self._prices: dict[str, ResolvedQuote] = {}
        for identifier, entry in (prices or {}).items():
            self._prices[identifier] = ResolvedQuote(
                price=Decimal(str(entry["price"])),
                currency=currency_code(entry.get("currency", "USD")),
                change_percent=None,
                source=QuoteSource.MANUAL,
            )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "StaticPriceOverrides":
        """Load overrides from the ``manual_prices`` section of a YAML file."""
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        return cls(raw.get("manual_prices") or {})

    def get_override(self, identifier: str) -> Optional[ResolvedQuote]:
        return self._prices.get(identifier)

    def __len__(self) -> int:
        return len(self._prices)


def resolve_crypto_quote(
    asset: CryptoAsset,
    quotes: Mapping[str, CryptoQuote],
    base_currency: BaseCurrency,
    overrides: Optional[PriceOverrideProvider] = None,
) -> Optional[ResolvedQuote]:
    """
    Resolve the price of a crypto asset in the base currency.

    Crypto quotes are natively multi-currency, so the leg for the base
    currency is selected directly and no FX conversion is needed.

    Args:
        asset: Crypto asset
        quotes: Quotes keyed by provider id
        base_currency: Valuation currency
        overrides: Optional manual price source

    Returns:
        ResolvedQuote in base currency, or None if unpriced
    """
    quote = quotes.get(asset.provider_id)
    if quote is not None:
        leg = quote.leg(base_currency)
        if leg is not None:
            return ResolvedQuote(
                price=leg.price,
                currency=base_currency.value,
                change_percent=leg.change_percent,
            )

    if overrides is not None:
        manual = overrides.get_override(asset.provider_id)
        if manual is not None:
            logger.debug("Using manual price for %s", asset.provider_id)
            return manual

    logger.debug("No price for crypto asset %s", asset.provider_id)
    return None


def resolve_stock_quote(
    asset: StockAsset,
    quotes: Mapping[str, StockQuote],
    overrides: Optional[PriceOverrideProvider] = None,
) -> Optional[ResolvedQuote]:
    """
    Resolve the native-currency price of an equity-class asset.

    Args:
        asset: Stock asset; looked up by provider ticker, else ticker
        quotes: Quotes keyed by provider ticker
        overrides: Optional manual price source

    Returns:
        ResolvedQuote in the asset's currency, or None if unpriced
    """
    key = asset.quote_key
    quote = quotes.get(key)
    if quote is not None:
        return ResolvedQuote(
            price=quote.price,
            currency=currency_code(asset.currency),
            change_percent=quote.change_percent,
        )

    if overrides is not None:
        manual = overrides.get_override(key)
        if manual is not None:
            logger.debug("Using manual price for %s", key)
            return manual

    logger.debug("No price for stock asset %s", key)
    return None


def quote_identifiers(
    portfolios: Iterable[PortfolioHoldings],
) -> tuple[list[str], list[str]]:
    """
    Union of quote identifiers across portfolios.

    Two portfolios are only comparable when priced from one set of quotes,
    so callers request the union of both sides' instruments.

    Args:
        portfolios: Portfolios to be priced together

    Returns:
        Tuple of (crypto provider ids, stock provider tickers), each
        de-duplicated in first-seen order
    """
    crypto_ids: dict[str, None] = {}
    stock_tickers: dict[str, None] = {}
    for portfolio in portfolios:
        for asset in portfolio.crypto_assets:
            crypto_ids.setdefault(asset.provider_id, None)
        for asset in portfolio.stock_assets:
            if asset.quote_key:
                stock_tickers.setdefault(asset.quote_key, None)
    return list(crypto_ids), list(stock_tickers)
