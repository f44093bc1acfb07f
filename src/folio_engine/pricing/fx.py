"""
Currency conversion against a caller-supplied rate table.

A rate table maps a currency code to the number of base-currency units one
unit of that currency is worth. The table is always fetched relative to the
single base currency of a valuation call, so the target currency of a
conversion is implied by which table was passed in.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Union

from folio_engine.models import BaseCurrency, PortfolioHoldings


RateTable = Mapping[str, Decimal]

CurrencyLike = Union[str, BaseCurrency]


class UnsupportedCurrencyError(ValueError):
    """Raised when a currency cannot be used as a valuation base."""
    pass


class RateUnavailableError(Exception):
    """
    Raised when the rate table lacks an entry for a currency in use.

    This is a data-integrity condition rather than a permanent failure:
    callers should re-fetch rates and retry.
    """

    def __init__(self, currency: str, base_currency: str):
        self.currency = currency
        self.base_currency = base_currency
        self.retryable = True
        super().__init__(
            f"FX rate unavailable for {currency} -> {base_currency}"
        )


def currency_code(currency: CurrencyLike) -> str:
    """Normalize a currency (enum or string) to an upper-case ISO code."""
    if isinstance(currency, BaseCurrency):
        return currency.value
    return str(currency).strip().upper()


def parse_base_currency(value: CurrencyLike) -> BaseCurrency:
    """
    Parse a base currency code.

    Args:
        value: Currency code (case-insensitive) or BaseCurrency

    Returns:
        The matching BaseCurrency

    Raises:
        UnsupportedCurrencyError: If the code is not a supported base currency
    """
    if isinstance(value, BaseCurrency):
        return value
    code = currency_code(value)
    try:
        return BaseCurrency(code)
    except ValueError:
        supported = ", ".join(c.value for c in BaseCurrency)
        raise UnsupportedCurrencyError(
            f"Unsupported base currency: {value!r}. Supported: {supported}"
        )


def convert(
    amount: Decimal,
    from_currency: CurrencyLike,
    to_currency: CurrencyLike,
    rate_table: RateTable,
) -> Decimal:
    """
    Convert an amount into the rate table's base currency.

    Args:
        amount: Amount in from_currency
        from_currency: Currency of the amount
        to_currency: Base currency the rate table is expressed in
        rate_table: Base-currency units per 1 unit of each currency

    Returns:
        Amount in to_currency. Returned unchanged when the currencies match.

    Raises:
        RateUnavailableError: If the table has no usable rate for from_currency
    """
    source = currency_code(from_currency)
    target = currency_code(to_currency)
    if source == target:
        return amount

    rate = rate_table.get(source)
    if rate is None or rate <= Decimal("0"):
        raise RateUnavailableError(source, target)

    return amount * rate


def rate_table_from_provider(
    base_currency: CurrencyLike,
    provider_rates: Mapping[str, Decimal],
) -> dict[str, Decimal]:
    """
    Build an engine rate table from provider-style rates.

    FX feeds usually quote "units of X per 1 unit of base". The engine needs
    the inverse, "units of base per 1 unit of X". Non-positive entries are
    dropped so they surface as unavailable rates instead of divisions by zero.

    Args:
        base_currency: Base the provider rates are relative to
        provider_rates: Units of each currency per 1 base unit

    Returns:
        Rate table in the engine convention, always including base -> 1
    """
    base = currency_code(base_currency)
    table: dict[str, Decimal] = {}
    for currency, rate in provider_rates.items():
        rate = Decimal(str(rate))
        if rate <= Decimal("0"):
            continue
        table[currency_code(currency)] = Decimal("1") / rate
    table[base] = Decimal("1")
    return table


def required_currencies(holdings: Iterable[PortfolioHoldings]) -> set[str]:
    """
    Collect the settlement currencies a set of portfolios needs rates for.

    Crypto assets are priced natively in the base currency and need no rate.

    Args:
        holdings: Portfolios that will be valued with one rate table

    Returns:
        Set of upper-case currency codes
    """
    currencies: set[str] = set()
    for portfolio in holdings:
        currencies.update(currency_code(a.currency) for a in portfolio.stock_assets)
        currencies.update(currency_code(c.currency) for c in portfolio.cash_accounts)
    return currencies
