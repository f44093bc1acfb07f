"""
Tests for currency conversion and rate-table helpers.
"""

from decimal import Decimal

import pytest

from folio_engine.models import BaseCurrency, CashAccount, PortfolioHoldings, StockAsset
from folio_engine.pricing.fx import (
    RateUnavailableError,
    UnsupportedCurrencyError,
    convert,
    parse_base_currency,
    rate_table_from_provider,
    required_currencies,
)


class TestConvert:
    """Tests for the convert function."""

    @pytest.mark.parametrize("currency", ["USD", "EUR", "GBP", "JPY"])
    def test_same_currency_is_identity(self, currency: str):
        """Converting to the same currency returns the amount unchanged."""
        amount = Decimal("1234.5678")
        assert convert(amount, currency, currency, {}) == amount

    def test_same_currency_ignores_case_and_enum(self):
        """Currency codes compare case-insensitively, enums included."""
        assert convert(Decimal("10"), "usd", BaseCurrency.USD, {}) == Decimal("10")

    def test_multiplies_by_rate(self):
        """EUR -> USD at 1.1 multiplies the amount."""
        result = convert(Decimal("1000"), "EUR", "USD", {"EUR": Decimal("1.1")})
        assert result == Decimal("1100.0")

    def test_missing_rate_raises(self):
        """A missing rate fails explicitly instead of using a constant."""
        with pytest.raises(RateUnavailableError) as exc_info:
            convert(Decimal("100"), "GBP", "USD", {"EUR": Decimal("1.1")})

        assert exc_info.value.currency == "GBP"
        assert exc_info.value.base_currency == "USD"
        assert exc_info.value.retryable is True
        assert "GBP" in str(exc_info.value)

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-1.2")])
    def test_non_positive_rate_raises(self, rate: Decimal):
        """Zero and negative rates are treated as unavailable."""
        with pytest.raises(RateUnavailableError):
            convert(Decimal("100"), "EUR", "USD", {"EUR": rate})


class TestParseBaseCurrency:
    """Tests for base currency parsing."""

    def test_parses_case_insensitively(self):
        """Lower-case codes are accepted."""
        assert parse_base_currency("eur") == BaseCurrency.EUR
        assert parse_base_currency(" USD ") == BaseCurrency.USD

    def test_passes_enum_through(self):
        """An enum value is returned as is."""
        assert parse_base_currency(BaseCurrency.EUR) is BaseCurrency.EUR

    def test_unsupported_currency_raises(self):
        """Currencies without native crypto quotes are rejected."""
        with pytest.raises(UnsupportedCurrencyError):
            parse_base_currency("GBP")

    def test_unsupported_currency_is_value_error(self):
        """UnsupportedCurrencyError can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_base_currency("XXX")


class TestRateTableFromProvider:
    """Tests for inverting provider-style rates."""

    def test_inverts_rates_and_adds_base(self):
        """Units-per-base rates become base-per-unit rates."""
        table = rate_table_from_provider("USD", {"EUR": Decimal("0.8"), "gbp": Decimal("0.5")})

        assert table["USD"] == Decimal("1")
        assert table["EUR"] == Decimal("1.25")
        assert table["GBP"] == Decimal("2")

    def test_drops_non_positive_rates(self):
        """Zero rates are dropped so conversion reports them as missing."""
        table = rate_table_from_provider(BaseCurrency.EUR, {"CHF": Decimal("0")})

        assert "CHF" not in table
        with pytest.raises(RateUnavailableError):
            convert(Decimal("1"), "CHF", "EUR", table)


class TestRequiredCurrencies:
    """Tests for collecting currencies that need rates."""

    def test_collects_stock_and_cash_currencies(self):
        """Stock and cash currencies are collected across portfolios."""
        first = PortfolioHoldings(
            stock_assets=(StockAsset(ticker="VWCE.DE", name="VWCE", currency="eur"),),
        )
        second = PortfolioHoldings(
            bank_accounts=(CashAccount(name="Monzo", currency="GBP", amount=Decimal("10")),),
        )

        assert required_currencies([first, second]) == {"EUR", "GBP"}

    def test_empty_portfolio(self):
        """A portfolio without stocks or cash needs no rates."""
        assert required_currencies([PortfolioHoldings()]) == set()
