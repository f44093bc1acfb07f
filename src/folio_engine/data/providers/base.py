"""
Abstract base classes for price and FX providers.

Defines the interfaces the engine's callers fetch market data through,
plus a helper that fetches one coherent quote/rate snapshot concurrently
before any valuation runs.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from folio_engine.models import BaseCurrency, CryptoQuote, PortfolioHoldings, StockQuote
from folio_engine.pricing.fx import currency_code, required_currencies
from folio_engine.pricing.quotes import quote_identifiers


class DataProviderError(Exception):
    """Raised when a data provider encounters an error."""
    pass


class PriceProvider(ABC):
    """
    Abstract base class for quote providers.

    Identifiers missing from a returned mapping are treated as unpriced by
    the engine, never as an error.
    """

    @abstractmethod
    def get_crypto_quotes(self, identifiers: list[str]) -> dict[str, CryptoQuote]:
        """
        Fetch multi-currency quotes for crypto assets.

        Args:
            identifiers: Price-provider ids (e.g. "bitcoin")

        Returns:
            Dictionary mapping provider id to CryptoQuote

        Raises:
            DataProviderError: If the provider cannot be reached
        """
        pass

    @abstractmethod
    def get_stock_quotes(self, tickers: list[str]) -> dict[str, StockQuote]:
        """
        Fetch native-currency quotes for stocks, ETFs and bonds.

        Args:
            tickers: Provider tickers

        Returns:
            Dictionary mapping ticker to StockQuote

        Raises:
            DataProviderError: If the provider cannot be reached
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this provider."""
        pass


class FXProvider(ABC):
    """Abstract base class for FX rate providers."""

    @abstractmethod
    def get_rates(
        self,
        base_currency: BaseCurrency,
        currencies: Iterable[str],
    ) -> dict[str, Decimal]:
        """
        Fetch a rate table for a base currency.

        Args:
            base_currency: Currency the rates are expressed in
            currencies: Currency codes that must resolve

        Returns:
            Dictionary mapping currency code to base-currency units per unit

        Raises:
            DataProviderError: If the rates cannot be fetched
        """
        pass


class StaticPriceProvider(PriceProvider):
    """Quote provider backed by in-memory (e.g. file-loaded) quotes."""

    def __init__(
        self,
        crypto_quotes: Optional[Mapping[str, CryptoQuote]] = None,
        stock_quotes: Optional[Mapping[str, StockQuote]] = None,
    ):
        self._crypto = dict(crypto_quotes or {})
        self._stocks = dict(stock_quotes or {})

    def get_crypto_quotes(self, identifiers: list[str]) -> dict[str, CryptoQuote]:
        return {i: self._crypto[i] for i in identifiers if i in self._crypto}

    def get_stock_quotes(self, tickers: list[str]) -> dict[str, StockQuote]:
        return {t: self._stocks[t] for t in tickers if t in self._stocks}

    @property
    def name(self) -> str:
        return "static"


class StaticFXProvider(FXProvider):
    """
    FX provider backed by a fixed rate table.

    The table must be expressed in the base currency it is asked for;
    requesting another base raises DataProviderError.
    """

    def __init__(self, base_currency: BaseCurrency, rates: Mapping[str, Decimal]):
        self.base_currency = base_currency
        self._rates = {currency_code(c): Decimal(str(r)) for c, r in rates.items()}
        self._rates[base_currency.value] = Decimal("1")

    def get_rates(
        self,
        base_currency: BaseCurrency,
        currencies: Iterable[str],
    ) -> dict[str, Decimal]:
        if base_currency != self.base_currency:
            raise DataProviderError(
                f"Rates are in {self.base_currency.value}, "
                f"requested {base_currency.value}"
            )
        # Missing currencies are left out; conversion reports them
        codes = {currency_code(c) for c in currencies} | {base_currency.value}
        return {c: self._rates[c] for c in codes if c in self._rates}


@dataclass
class MarketSnapshot:
    """
    One coherent set of quotes and rates for a valuation call.

    Attributes:
        base_currency: Currency of the rate table
        crypto_quotes: Crypto quotes keyed by provider id
        stock_quotes: Stock quotes keyed by provider ticker
        rates: Rate table in base currency
    """
    base_currency: BaseCurrency
    crypto_quotes: dict[str, CryptoQuote]
    stock_quotes: dict[str, StockQuote]
    rates: dict[str, Decimal]


def collect_market_snapshot(
    portfolios: list[PortfolioHoldings],
    base_currency: BaseCurrency,
    price_provider: PriceProvider,
    fx_provider: FXProvider,
    max_workers: int = 3,
) -> MarketSnapshot:
    """
    Fetch quotes and rates for one or more portfolios concurrently.

    Quotes are requested for the union of all portfolios' instruments so
    that every portfolio is priced from the same snapshot.

    Args:
        portfolios: Portfolios that will be valued together
        base_currency: Valuation currency
        price_provider: Quote source
        fx_provider: Rate source
        max_workers: Thread pool size

    Returns:
        MarketSnapshot

    Raises:
        DataProviderError: If any fetch fails
    """
    crypto_ids, stock_tickers = quote_identifiers(portfolios)
    currencies = sorted(required_currencies(portfolios))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        crypto_future = executor.submit(price_provider.get_crypto_quotes, crypto_ids)
        stock_future = executor.submit(price_provider.get_stock_quotes, stock_tickers)
        rates_future = executor.submit(fx_provider.get_rates, base_currency, currencies)

        return MarketSnapshot(
            base_currency=base_currency,
            crypto_quotes=crypto_future.result(),
            stock_quotes=stock_future.result(),
            rates=rates_future.result(),
        )
