"""
Portfolio valuation and aggregation.

This module values crypto, equities and cash holdings in a single base
currency and combines the three classes into a PortfolioSummary with
allocation percentages and a value-weighted 24h change.

Every function here is a pure function of its inputs: quotes and rates are
fetched by the caller beforehand and passed in already resolved.
"""

from decimal import Decimal
from typing import Mapping, Optional

from folio_engine.models import (
    Allocation,
    AssetClass,
    AssetValuation,
    BaseCurrency,
    CashAccount,
    CashValuation,
    ClassValuation,
    CryptoAsset,
    CryptoQuote,
    PortfolioHoldings,
    PortfolioSummary,
    PortfolioValuation,
    StockAsset,
    StockQuote,
)
from folio_engine.portfolio.holdings import (
    DEFAULT_STABLECOIN_SUBCATEGORY,
    is_stablecoin,
    total_quantity,
)
from folio_engine.pricing.fx import (
    RateTable,
    RateUnavailableError,
    convert,
    currency_code,
)
from folio_engine.pricing.quotes import (
    PriceOverrideProvider,
    resolve_crypto_quote,
    resolve_stock_quote,
)


class ValuationError(Exception):
    """Raised when valuation cannot be completed."""
    pass


def _quantity(asset: CryptoAsset | StockAsset) -> Decimal:
    if any(p.quantity < Decimal("0") for p in asset.positions):
        raise ValuationError(f"Negative position quantity for {asset.ticker}")
    return total_quantity(asset.positions)


def _add(valuation: ClassValuation, row: AssetValuation) -> None:
    valuation.assets.append(row)
    valuation.value += row.value
    valuation.weighted_change += row.weighted_change


def value_crypto(
    assets: list[CryptoAsset],
    quotes: Mapping[str, CryptoQuote],
    base_currency: BaseCurrency,
    rate_table: Optional[RateTable] = None,
    overrides: Optional[PriceOverrideProvider] = None,
    stablecoin_subcategory: str = DEFAULT_STABLECOIN_SUBCATEGORY,
) -> tuple[ClassValuation, ClassValuation]:
    """
    Value crypto assets, routing stablecoins into a separate bucket.

    Quantities are summed across positions before pricing. Assets without a
    quote contribute zero value and zero change but keep a row.

    Args:
        assets: Crypto assets with positions
        quotes: Multi-currency quotes keyed by provider id
        base_currency: Valuation currency
        rate_table: Only needed when a manual override is not in base currency
        overrides: Optional manual price source
        stablecoin_subcategory: Subcategory reclassified as cash

    Returns:
        Tuple of (crypto valuation, stablecoin valuation). The stablecoin
        valuation is reported under AssetClass.CASH.

    Raises:
        RateUnavailableError: If a manual price needs a missing FX rate
    """
    crypto = ClassValuation(asset_class=AssetClass.CRYPTO)
    stablecoins = ClassValuation(asset_class=AssetClass.CASH)

    for asset in assets:
        stable = is_stablecoin(asset, stablecoin_subcategory)
        quantity = _quantity(asset)
        resolved = resolve_crypto_quote(asset, quotes, base_currency, overrides)

        if resolved is None:
            price = Decimal("0")
            native_value = Decimal("0")
            value = Decimal("0")
            change = None
        else:
            price = resolved.price
            native_value = quantity * price
            value = convert(native_value, resolved.currency, base_currency, rate_table or {})
            change = resolved.change_percent

        row = AssetValuation(
            key=asset.provider_id,
            ticker=asset.ticker.upper(),
            name=asset.name,
            asset_class=AssetClass.CASH if stable else AssetClass.CRYPTO,
            currency=resolved.currency if resolved else base_currency.value,
            quantity=quantity,
            price=price,
            native_value=native_value,
            value=value,
            change_percent=change,
            priced=resolved is not None,
            source=asset,
            is_stablecoin=stable,
        )
        _add(stablecoins if stable else crypto, row)

    return crypto, stablecoins


def value_equities(
    assets: list[StockAsset],
    quotes: Mapping[str, StockQuote],
    base_currency: BaseCurrency,
    rate_table: RateTable,
    overrides: Optional[PriceOverrideProvider] = None,
) -> ClassValuation:
    """
    Value stocks, ETFs and bonds in the base currency.

    The native value (total quantity * price) is converted from the asset's
    native currency. The 24h change percent is currency-invariant and is
    taken from the native quote.

    Args:
        assets: Stock assets with positions
        quotes: Quotes keyed by provider ticker
        base_currency: Valuation currency
        rate_table: Base-currency units per unit of each currency
        overrides: Optional manual price source

    Returns:
        ClassValuation for equities

    Raises:
        RateUnavailableError: If a priced asset's currency has no rate
    """
    equities = ClassValuation(asset_class=AssetClass.EQUITIES)

    for asset in assets:
        quantity = _quantity(asset)
        resolved = resolve_stock_quote(asset, quotes, overrides)

        if resolved is None:
            row = AssetValuation(
                key=asset.quote_key,
                ticker=asset.ticker,
                name=asset.name,
                asset_class=AssetClass.EQUITIES,
                currency=currency_code(asset.currency),
                quantity=quantity,
                price=Decimal("0"),
                native_value=Decimal("0"),
                value=Decimal("0"),
                change_percent=None,
                priced=False,
                source=asset,
            )
        else:
            native_value = quantity * resolved.price
            row = AssetValuation(
                key=asset.quote_key,
                ticker=asset.ticker,
                name=asset.name,
                asset_class=AssetClass.EQUITIES,
                currency=resolved.currency,
                quantity=quantity,
                price=resolved.price,
                native_value=native_value,
                value=convert(native_value, resolved.currency, base_currency, rate_table),
                change_percent=resolved.change_percent,
                priced=True,
                source=asset,
            )
        _add(equities, row)

    return equities


def value_cash(
    accounts: list[CashAccount],
    base_currency: BaseCurrency,
    rate_table: RateTable,
    stablecoins: Optional[ClassValuation] = None,
) -> CashValuation:
    """
    Value fiat cash balances and attach the stablecoin bucket.

    Cash has no price lookup and carries no 24h change.

    Args:
        accounts: Bank accounts, exchange deposits and broker deposits
        base_currency: Valuation currency
        rate_table: Base-currency units per unit of each currency
        stablecoins: Stablecoin bucket from value_crypto

    Returns:
        CashValuation with fiat and stablecoin sub-totals

    Raises:
        RateUnavailableError: If an account's currency has no rate
        ValuationError: If a balance is negative
    """
    fiat = ClassValuation(asset_class=AssetClass.CASH)

    for account in accounts:
        if account.amount < Decimal("0"):
            raise ValuationError(f"Negative cash balance for {account.name}")
        code = currency_code(account.currency)
        row = AssetValuation(
            key=code,
            ticker=code,
            name=account.name,
            asset_class=AssetClass.CASH,
            currency=code,
            quantity=account.amount,
            price=Decimal("1"),
            native_value=account.amount,
            value=convert(account.amount, code, base_currency, rate_table),
            change_percent=None,
            priced=True,
            source=account,
        )
        _add(fiat, row)

    if stablecoins is None:
        stablecoins = ClassValuation(asset_class=AssetClass.CASH)

    return CashValuation(fiat=fiat, stablecoins=stablecoins)


def calculate_allocation(
    crypto_value: Decimal,
    equities_value: Decimal,
    cash_value: Decimal,
) -> Allocation:
    """
    Calculate per-class allocation percentages.

    Args:
        crypto_value: Crypto class total
        equities_value: Equities class total
        cash_value: Cash class total

    Returns:
        Allocation summing to 100 when the total is positive, else all zero
    """
    total = crypto_value + equities_value + cash_value
    if total <= Decimal("0"):
        return Allocation()

    hundred = Decimal("100")
    return Allocation(
        crypto=hundred * crypto_value / total,
        equities=hundred * equities_value / total,
        cash=hundred * cash_value / total,
    )


def weighted_change_percent(
    weighted_change: Decimal,
    value: Decimal,
) -> Decimal:
    """weighted_change / value, or 0 for an empty denominator."""
    if value == Decimal("0"):
        return Decimal("0")
    return weighted_change / value


def summarize_portfolio(
    crypto: ClassValuation,
    equities: ClassValuation,
    cash: CashValuation,
    base_currency: BaseCurrency,
) -> PortfolioSummary:
    """
    Combine class valuations into a portfolio summary.

    The weighted 24h change covers invested assets only: cash (stablecoins
    included) is left out of both the numerator and the denominator.

    Args:
        crypto: Crypto valuation (stablecoins excluded)
        equities: Equities valuation
        cash: Cash valuation
        base_currency: Valuation currency

    Returns:
        PortfolioSummary
    """
    total_value = crypto.value + equities.value + cash.value

    invested_value = crypto.value + equities.value
    invested_weighted_change = crypto.weighted_change + equities.weighted_change

    # Absolute changes are weighted numerators / 100, so they add up across classes
    hundred = Decimal("100")

    return PortfolioSummary(
        base_currency=base_currency,
        total_value=total_value,
        crypto_value=crypto.value,
        equities_value=equities.value,
        cash_value=cash.value,
        stablecoin_value=cash.stablecoin_value,
        allocation=calculate_allocation(crypto.value, equities.value, cash.value),
        change_24h_percent=weighted_change_percent(invested_weighted_change, invested_value),
        crypto_change_24h_percent=crypto.change_percent,
        equities_change_24h_percent=equities.change_percent,
        value_change_24h=invested_weighted_change / hundred,
        crypto_value_change_24h=crypto.weighted_change / hundred,
        equities_value_change_24h=equities.weighted_change / hundred,
        stablecoin_value_change_24h=cash.stablecoins.weighted_change / hundred,
    )


def value_portfolio(
    holdings: PortfolioHoldings,
    crypto_quotes: Mapping[str, CryptoQuote],
    stock_quotes: Mapping[str, StockQuote],
    base_currency: BaseCurrency,
    rate_table: RateTable,
    overrides: Optional[PriceOverrideProvider] = None,
    stablecoin_subcategory: str = DEFAULT_STABLECOIN_SUBCATEGORY,
) -> PortfolioValuation:
    """
    Create a complete portfolio valuation.

    The quotes and the rate table must come from one coherent snapshot;
    mixing quotes fetched at different times skews allocation and change.

    Args:
        holdings: Portfolio holdings
        crypto_quotes: Crypto quotes keyed by provider id
        stock_quotes: Stock quotes keyed by provider ticker
        base_currency: Valuation currency
        rate_table: Base-currency units per unit of each currency
        overrides: Optional manual price source
        stablecoin_subcategory: Subcategory reclassified as cash

    Returns:
        PortfolioValuation with summary and class valuations

    Raises:
        RateUnavailableError: If a currency in use has no rate
    """
    crypto, stablecoins = value_crypto(
        list(holdings.crypto_assets),
        crypto_quotes,
        base_currency,
        rate_table=rate_table,
        overrides=overrides,
        stablecoin_subcategory=stablecoin_subcategory,
    )
    equities = value_equities(
        list(holdings.stock_assets),
        stock_quotes,
        base_currency,
        rate_table,
        overrides=overrides,
    )
    cash = value_cash(
        list(holdings.cash_accounts),
        base_currency,
        rate_table,
        stablecoins=stablecoins,
    )

    return PortfolioValuation(
        summary=summarize_portfolio(crypto, equities, cash, base_currency),
        crypto=crypto,
        equities=equities,
        cash=cash,
    )
