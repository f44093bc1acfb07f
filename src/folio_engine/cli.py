"""
Command-line interface for the portfolio valuation engine.

Provides commands for:
- summary: Value a portfolio and print totals, allocation and 24h change
- breakdown: Print per-class breakdowns
- listings: Print equity listings with cross-listings merged
- compare: Compare two portfolios priced from one set of quotes
"""

import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click

from folio_engine.config import ConfigurationError, load_engine_config
from folio_engine.data import (
    load_crypto_quotes,
    load_fx_rates,
    load_holdings,
    load_snapshots,
    load_stock_quotes,
    save_asset_valuations,
)
from folio_engine.data.loaders import DataLoadError
from folio_engine.data.providers import (
    DataProviderError,
    MarketSnapshot,
    StaticFXProvider,
    StaticPriceProvider,
    collect_market_snapshot,
)
from folio_engine.models import (
    AssetClass,
    BreakdownEntry,
    EngineConfig,
    ListingGroup,
    ListingSortKey,
    PortfolioHoldings,
    PortfolioValuation,
)
from folio_engine.portfolio import period_changes, value_portfolio
from folio_engine.portfolio.valuation import RateUnavailableError, ValuationError
from folio_engine.pricing import StaticPriceOverrides, UnsupportedCurrencyError, parse_base_currency
from folio_engine.analytics import (
    CryptoGrouping,
    build_breakdowns,
    build_listing_rows,
    compare_portfolios,
    compute_insights,
    merge_listings,
    sort_listings,
    summarize_overlap,
)
from folio_engine.logging import DecisionLogger, get_logger


# Errors reported at the command boundary
ENGINE_ERRORS = (
    ConfigurationError,
    DataLoadError,
    DataProviderError,
    RateUnavailableError,
    UnsupportedCurrencyError,
    ValuationError,
)


def market_data_options(func):
    """Options shared by every command that values a portfolio."""
    options = [
        click.option(
            "--holdings", "-h",
            required=True,
            type=click.Path(exists=True),
            help="Path to holdings YAML file",
        ),
        click.option(
            "--crypto-quotes", "-q",
            type=click.Path(exists=True),
            default=None,
            help="Path to crypto quotes CSV file",
        ),
        click.option(
            "--stock-quotes", "-s",
            type=click.Path(exists=True),
            default=None,
            help="Path to stock quotes CSV file",
        ),
        click.option(
            "--fx-rates", "-f",
            type=click.Path(exists=True),
            default=None,
            help="Path to FX rates CSV file (base-currency units per unit)",
        ),
        click.option(
            "--provider-rates",
            is_flag=True,
            default=False,
            help="FX file quotes units of currency per 1 base unit instead",
        ),
        click.option(
            "--config", "-c",
            type=click.Path(exists=True),
            default=None,
            help="Path to engine configuration YAML file",
        ),
        click.option(
            "--base-currency", "-b",
            type=str,
            default=None,
            help="Valuation currency (USD or EUR). Defaults to config base_currency.",
        ),
        click.option(
            "--output-dir", "-o",
            type=click.Path(),
            default=None,
            help="Output directory. Defaults to config output_dir.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_market(
    portfolios: list[PortfolioHoldings],
    engine_config: EngineConfig,
    crypto_quotes: Optional[str],
    stock_quotes: Optional[str],
    fx_rates: Optional[str],
    provider_rates: bool,
) -> MarketSnapshot:
    """Load quote and FX files and fetch one snapshot for all portfolios."""
    base_currency = engine_config.base_currency

    price_provider = StaticPriceProvider(
        crypto_quotes=load_crypto_quotes(crypto_quotes) if crypto_quotes else None,
        stock_quotes=load_stock_quotes(stock_quotes) if stock_quotes else None,
    )
    rates = (
        load_fx_rates(fx_rates, base_currency, provider_convention=provider_rates)
        if fx_rates else {}
    )
    fx_provider = StaticFXProvider(base_currency, rates)

    return collect_market_snapshot(portfolios, base_currency, price_provider, fx_provider)


def _load_config(
    config: Optional[str],
    base_currency: Optional[str],
    output_dir: Optional[str],
) -> tuple[EngineConfig, DecisionLogger]:
    """Load configuration, apply command-line overrides, open the decision log."""
    engine_config = load_engine_config(config)
    if base_currency:
        engine_config.base_currency = parse_base_currency(base_currency)
    if output_dir:
        engine_config.output_dir = output_dir

    out_dir = Path(engine_config.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    decision_logger = get_logger(out_dir / "decision_log.jsonl")
    decision_logger.log_config_loaded(engine_config, config)

    return engine_config, decision_logger


def _value(
    holdings: str,
    crypto_quotes: Optional[str],
    stock_quotes: Optional[str],
    fx_rates: Optional[str],
    provider_rates: bool,
    config: Optional[str],
    base_currency: Optional[str],
    output_dir: Optional[str],
) -> tuple[EngineConfig, DecisionLogger, PortfolioValuation]:
    """Run the full load-and-value pipeline for a single portfolio."""
    engine_config, decision_logger = _load_config(config, base_currency, output_dir)
    portfolio = load_holdings(holdings)
    market = _load_market(
        [portfolio], engine_config, crypto_quotes, stock_quotes, fx_rates, provider_rates
    )

    valuation = value_portfolio(
        portfolio,
        market.crypto_quotes,
        market.stock_quotes,
        engine_config.base_currency,
        market.rates,
        overrides=StaticPriceOverrides(engine_config.manual_prices),
        stablecoin_subcategory=engine_config.stablecoin_subcategory,
    )
    decision_logger.log_valuation_calculated(valuation)

    return engine_config, decision_logger, valuation


def _money(value: Decimal, currency: str) -> str:
    return f"{value:,.2f} {currency}"


def _pct(value: Decimal, signed: bool = False) -> str:
    return f"{value:+.2f}%" if signed else f"{value:.2f}%"


def _fail(message: str, error: Exception) -> None:
    click.echo(f"{message}: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="folio")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def main(verbose: bool):
    """
    Portfolio Valuation & Aggregation Engine.

    Values crypto, equities and cash holdings in a single base currency.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@market_data_options
@click.option(
    "--snapshots",
    type=click.Path(exists=True),
    default=None,
    help="Path to snapshot history CSV for period changes",
)
def summary(
    holdings: str,
    crypto_quotes: Optional[str],
    stock_quotes: Optional[str],
    fx_rates: Optional[str],
    provider_rates: bool,
    config: Optional[str],
    base_currency: Optional[str],
    output_dir: Optional[str],
    snapshots: Optional[str],
):
    """
    Value a portfolio and print the consolidated summary.
    """
    try:
        engine_config, _, valuation = _value(
            holdings, crypto_quotes, stock_quotes, fx_rates, provider_rates,
            config, base_currency, output_dir,
        )
        history = load_snapshots(snapshots) if snapshots else []
    except ENGINE_ERRORS as e:
        _fail("Error calculating valuation", e)

    result = valuation.summary
    currency = result.base_currency.value

    valuation_path = Path(engine_config.output_dir) / f"valuation_{currency}_{date.today()}.csv"
    save_asset_valuations(valuation, valuation_path)

    click.echo(f"Portfolio Summary ({currency}):")
    click.echo(f"  Total Value:   {_money(result.total_value, currency)}")
    click.echo(
        f"  Crypto:        {_money(result.crypto_value, currency)} "
        f"({_pct(result.allocation.crypto)})"
    )
    click.echo(
        f"  Equities:      {_money(result.equities_value, currency)} "
        f"({_pct(result.allocation.equities)})"
    )
    click.echo(
        f"  Cash:          {_money(result.cash_value, currency)} "
        f"({_pct(result.allocation.cash)})"
    )
    if result.stablecoin_value > 0:
        click.echo(f"    Stablecoins: {_money(result.stablecoin_value, currency)}")
    click.echo(
        f"  24h Change:    {_pct(result.change_24h_percent, signed=True)} "
        f"({result.value_change_24h:+,.2f} {currency})"
    )

    unpriced = [row.ticker for row in valuation.assets if not row.priced]
    if unpriced:
        click.echo(f"  Unpriced:      {', '.join(unpriced)}")

    insights = compute_insights(valuation)
    click.echo()
    click.echo("Insights:")
    click.echo(f"  BTC dominance:  {_pct(insights.btc_dominance_percent)}")
    click.echo(f"  Mined/staked:   {_pct(insights.mined_staked_percent)}")
    if insights.top_holding is not None:
        click.echo(
            f"  Top holding:    {insights.top_holding.ticker} "
            f"({_pct(insights.top_holding.percent)} of equities)"
        )
    if insights.weighted_avg_apy > 0:
        click.echo(
            f"  Cash APY:       {_pct(insights.weighted_avg_apy)} "
            f"(~{_money(insights.apy_income_monthly, currency)}/month)"
        )

    changes = period_changes(result, history, date.today())
    if changes:
        click.echo()
        click.echo("Period Changes:")
        for label, change in changes.items():
            click.echo(
                f"  {label:<4} {_pct(change.percent_change, signed=True)} "
                f"({change.absolute_change:+,.2f} {currency}, since {change.snapshot_date})"
            )

    click.echo()
    click.echo(f"Valuation saved: {valuation_path}")


def _echo_entries(title: str, entries: list[BreakdownEntry], currency: str) -> None:
    click.echo(f"{title}:")
    if not entries:
        click.echo("  (none)")
        return
    for entry in entries:
        click.echo(f"  {entry.label:<12} {_money(entry.value, currency):>20} {_pct(entry.percent):>8}")
        for segment in entry.segments:
            click.echo(f"    {segment.label:<10} {_money(segment.value, currency):>20} {_pct(segment.percent):>8}")


@main.command()
@market_data_options
@click.option(
    "--crypto-group-by",
    type=click.Choice([g.value for g in CryptoGrouping]),
    default=CryptoGrouping.TICKER.value,
    help="Segment crypto alts by ticker or subcategory",
)
def breakdown(
    holdings: str,
    crypto_quotes: Optional[str],
    stock_quotes: Optional[str],
    fx_rates: Optional[str],
    provider_rates: bool,
    config: Optional[str],
    base_currency: Optional[str],
    output_dir: Optional[str],
    crypto_group_by: str,
):
    """
    Print per-class breakdowns.

    Crypto is split into Bitcoin and alts, equities by category and cash by
    settlement currency (fiat vs stablecoins).
    """
    try:
        _, decision_logger, valuation = _value(
            holdings, crypto_quotes, stock_quotes, fx_rates, provider_rates,
            config, base_currency, output_dir,
        )
    except ENGINE_ERRORS as e:
        _fail("Error calculating valuation", e)

    currency = valuation.summary.base_currency.value
    breakdowns = build_breakdowns(valuation, CryptoGrouping(crypto_group_by))
    decision_logger.log_breakdown_built(currency, breakdowns)

    _echo_entries("Crypto", breakdowns[AssetClass.CRYPTO], currency)
    click.echo()
    _echo_entries("Equities", breakdowns[AssetClass.EQUITIES], currency)
    click.echo()
    _echo_entries("Cash", breakdowns[AssetClass.CASH], currency)


@main.command()
@market_data_options
@click.option(
    "--sort-by",
    type=click.Choice([k.value for k in ListingSortKey]),
    default=ListingSortKey.VALUE.value,
    help="Sort key",
)
@click.option(
    "--ascending",
    is_flag=True,
    default=False,
    help="Sort ascending (default: descending)",
)
def listings(
    holdings: str,
    crypto_quotes: Optional[str],
    stock_quotes: Optional[str],
    fx_rates: Optional[str],
    provider_rates: bool,
    config: Optional[str],
    base_currency: Optional[str],
    output_dir: Optional[str],
    sort_by: str,
    ascending: bool,
):
    """
    Print equity listings with cross-listed tickers merged.
    """
    try:
        engine_config, decision_logger, valuation = _value(
            holdings, crypto_quotes, stock_quotes, fx_rates, provider_rates,
            config, base_currency, output_dir,
        )
    except ENGINE_ERRORS as e:
        _fail("Error calculating valuation", e)

    currency = valuation.summary.base_currency.value
    rows = build_listing_rows(valuation.equities, engine_config.ticker_separators)
    merged = merge_listings(rows)
    decision_logger.log_listings_merged(currency, len(rows), merged)

    ordered = sort_listings(merged, ListingSortKey(sort_by), descending=not ascending)

    click.echo(f"Equity Listings ({currency}):")
    for item in ordered:
        if isinstance(item, ListingGroup):
            click.echo(
                f"  {item.display_ticker:<10} {item.name[:30]:<30} "
                f"{_money(item.value, currency):>20} {_pct(item.change_percent, signed=True):>8}"
            )
            for variant in item.variants:
                click.echo(
                    f"    {variant.ticker:<8} {variant.currency:<28} "
                    f"{_money(variant.value, currency):>20} {_pct(variant.change_percent, signed=True):>8}"
                )
        else:
            click.echo(
                f"  {item.ticker:<10} {item.name[:30]:<30} "
                f"{_money(item.value, currency):>20} {_pct(item.change_percent, signed=True):>8}"
            )


@main.command()
@market_data_options
@click.option(
    "--owner-holdings",
    required=True,
    type=click.Path(exists=True),
    help="Path to the other portfolio's holdings YAML file",
)
def compare(
    holdings: str,
    crypto_quotes: Optional[str],
    stock_quotes: Optional[str],
    fx_rates: Optional[str],
    provider_rates: bool,
    config: Optional[str],
    base_currency: Optional[str],
    output_dir: Optional[str],
    owner_holdings: str,
):
    """
    Compare your holdings (--holdings) against another portfolio.

    Both portfolios are priced from the same quotes and FX rates.
    """
    try:
        engine_config, decision_logger = _load_config(config, base_currency, output_dir)
        viewer = load_holdings(holdings)
        owner = load_holdings(owner_holdings)
        market = _load_market(
            [viewer, owner], engine_config, crypto_quotes, stock_quotes, fx_rates, provider_rates
        )
        comparison = compare_portfolios(
            viewer,
            owner,
            market.crypto_quotes,
            market.stock_quotes,
            engine_config.base_currency,
            market.rates,
            overrides=StaticPriceOverrides(engine_config.manual_prices),
            stablecoin_subcategory=engine_config.stablecoin_subcategory,
            separators=engine_config.ticker_separators,
        )
    except ENGINE_ERRORS as e:
        _fail("Error comparing portfolios", e)

    overlap = summarize_overlap(comparison.holdings)
    decision_logger.log_comparison_generated(comparison, overlap)

    currency = comparison.base_currency.value
    click.echo(f"Portfolio Comparison ({currency}):")
    click.echo(f"  You:    {_money(comparison.viewer.total_value, currency)}")
    click.echo(f"  Them:   {_money(comparison.owner.total_value, currency)}")
    click.echo(
        f"  Overlap: {len(overlap.shared)} shared, {len(overlap.viewer_only)} yours only, "
        f"{len(overlap.owner_only)} theirs only ({_pct(overlap.overlap_ratio * 100)})"
    )
    click.echo()
    for item in comparison.holdings:
        click.echo(
            f"  {item.ticker:<10} {item.name[:30]:<30} "
            f"{_money(item.viewer_value, currency):>20} {_money(item.owner_value, currency):>20}"
        )


if __name__ == "__main__":
    main()
