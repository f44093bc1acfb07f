"""
Two-portfolio holdings comparison.

Values a viewer's and an owner's portfolio against one set of quotes and one
rate table, then folds every holding of both sides into a single list of
HoldingItems keyed by a canonical instrument key.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Iterator, Mapping, NamedTuple, Optional, Sequence

from folio_engine.models import (
    AssetClass,
    BaseCurrency,
    CryptoAsset,
    CryptoQuote,
    HoldingItem,
    HoldingSide,
    OverlapSummary,
    PortfolioComparison,
    PortfolioHoldings,
    PortfolioValuation,
    StockQuote,
)
from folio_engine.portfolio.holdings import (
    DEFAULT_STABLECOIN_SUBCATEGORY,
    DEFAULT_TICKER_SEPARATORS,
    display_ticker,
    is_stablecoin,
)
from folio_engine.portfolio.valuation import value_portfolio
from folio_engine.pricing.fx import RateTable, currency_code
from folio_engine.pricing.quotes import PriceOverrideProvider


logger = logging.getLogger(__name__)

CASH_KEY_PREFIX = "cash:"
STOCK_KEY_PREFIX = "stock:"


class Contribution(NamedTuple):
    """One side's value for one canonical key, before folding."""
    key: str
    name: str
    ticker: str
    asset_class: AssetClass
    image_url: Optional[str]
    value: Decimal


def crypto_holding_key(
    asset: CryptoAsset,
    stablecoin_subcategory: str = DEFAULT_STABLECOIN_SUBCATEGORY,
) -> str:
    """
    Canonical key of a crypto asset.

    Stablecoins are keyed as cash (``cash:USDC``); everything else by
    price-provider id.
    """
    if is_stablecoin(asset, stablecoin_subcategory):
        return CASH_KEY_PREFIX + asset.ticker.upper()
    return asset.provider_id


def stock_holding_key(
    ticker: str,
    separators: Sequence[str] = DEFAULT_TICKER_SEPARATORS,
) -> str:
    """Canonical key of a listing; cross-listed variants share one key."""
    return STOCK_KEY_PREFIX + display_ticker(ticker, separators)


def cash_holding_key(currency: str) -> str:
    """Canonical key of a fiat balance."""
    return CASH_KEY_PREFIX + currency_code(currency)


def _contributions(
    valuation: PortfolioValuation,
    stablecoin_subcategory: str,
    separators: Sequence[str],
) -> Iterator[Contribution]:
    """Yield one keyed contribution per valued row of a portfolio."""
    for row in valuation.crypto.assets:
        yield Contribution(
            key=crypto_holding_key(row.source, stablecoin_subcategory),
            name=row.name,
            ticker=row.ticker,
            asset_class=AssetClass.CRYPTO,
            image_url=row.source.image_url,
            value=row.value,
        )

    for row in valuation.cash.stablecoins.assets:
        yield Contribution(
            key=crypto_holding_key(row.source, stablecoin_subcategory),
            name=f"{row.ticker} (Stablecoin)",
            ticker=row.ticker,
            asset_class=AssetClass.CASH,
            image_url=row.source.image_url,
            value=row.value,
        )

    for row in valuation.equities.assets:
        short = display_ticker(row.ticker, separators)
        yield Contribution(
            key=stock_holding_key(row.ticker, separators),
            name=row.name,
            ticker=short,
            asset_class=AssetClass.EQUITIES,
            image_url=None,
            value=row.value,
        )

    for row in valuation.cash.fiat.assets:
        yield Contribution(
            key=cash_holding_key(row.currency),
            name=f"{row.currency} Cash",
            ticker=row.currency,
            asset_class=AssetClass.CASH,
            image_url=None,
            value=row.value,
        )


def _fold(
    items: dict[str, HoldingItem],
    contribution: Contribution,
    side: HoldingSide,
) -> None:
    item = items.get(contribution.key)
    if item is None:
        item = HoldingItem(
            key=contribution.key,
            name=contribution.name,
            ticker=contribution.ticker,
            asset_class=contribution.asset_class,
            image_url=contribution.image_url,
        )

    if side is HoldingSide.VIEWER:
        item = replace(item, viewer_value=item.viewer_value + contribution.value)
    else:
        item = replace(item, owner_value=item.owner_value + contribution.value)

    items[contribution.key] = item


def compare_holdings(
    viewer: PortfolioValuation,
    owner: PortfolioValuation,
    stablecoin_subcategory: str = DEFAULT_STABLECOIN_SUBCATEGORY,
    separators: Sequence[str] = DEFAULT_TICKER_SEPARATORS,
) -> list[HoldingItem]:
    """
    Fold two valued portfolios into one keyed list of holdings.

    Both valuations must be in the same base currency and come from the same
    quotes and rate table. Zero-value rows (e.g. unpriced assets) contribute
    nothing; keys whose combined value is zero are dropped.

    Args:
        viewer: Viewer's valuation
        owner: Owner's valuation
        stablecoin_subcategory: Subcategory reclassified as cash
        separators: Characters that start an exchange suffix

    Returns:
        HoldingItems sorted by max(viewer_value, owner_value) descending

    Raises:
        ValueError: If the valuations use different base currencies
    """
    if viewer.summary.base_currency != owner.summary.base_currency:
        raise ValueError(
            f"Cannot compare {viewer.summary.base_currency.value} valuation "
            f"with {owner.summary.base_currency.value} valuation"
        )

    items: dict[str, HoldingItem] = {}
    for side, valuation in ((HoldingSide.VIEWER, viewer), (HoldingSide.OWNER, owner)):
        for contribution in _contributions(valuation, stablecoin_subcategory, separators):
            if contribution.value == Decimal("0"):
                continue
            _fold(items, contribution, side)

    holdings = [
        item for item in items.values()
        if item.viewer_value + item.owner_value != Decimal("0")
    ]
    holdings.sort(key=lambda item: item.max_value, reverse=True)
    return holdings


def compare_portfolios(
    viewer: PortfolioHoldings,
    owner: PortfolioHoldings,
    crypto_quotes: Mapping[str, CryptoQuote],
    stock_quotes: Mapping[str, StockQuote],
    base_currency: BaseCurrency,
    rate_table: RateTable,
    overrides: Optional[PriceOverrideProvider] = None,
    stablecoin_subcategory: str = DEFAULT_STABLECOIN_SUBCATEGORY,
    separators: Sequence[str] = DEFAULT_TICKER_SEPARATORS,
) -> PortfolioComparison:
    """
    Value two portfolios identically and compare their holdings.

    The quotes must cover the union of both portfolios' instruments
    (see quote_identifiers).

    Args:
        viewer: Viewer's holdings
        owner: Owner's holdings
        crypto_quotes: Shared crypto quotes
        stock_quotes: Shared stock quotes
        base_currency: Single target currency for both sides
        rate_table: Shared rate table
        overrides: Optional manual price source
        stablecoin_subcategory: Subcategory reclassified as cash
        separators: Characters that start an exchange suffix

    Returns:
        PortfolioComparison with both summaries and the keyed holdings

    Raises:
        RateUnavailableError: If either side needs a missing FX rate
    """
    valuations = [
        value_portfolio(
            holdings,
            crypto_quotes,
            stock_quotes,
            base_currency,
            rate_table,
            overrides=overrides,
            stablecoin_subcategory=stablecoin_subcategory,
        )
        for holdings in (viewer, owner)
    ]
    viewer_valuation, owner_valuation = valuations

    holdings = compare_holdings(
        viewer_valuation,
        owner_valuation,
        stablecoin_subcategory=stablecoin_subcategory,
        separators=separators,
    )
    logger.debug("Compared %d distinct holdings", len(holdings))

    return PortfolioComparison(
        base_currency=base_currency,
        viewer=viewer_valuation.summary,
        owner=owner_valuation.summary,
        holdings=holdings,
    )


def summarize_overlap(items: list[HoldingItem]) -> OverlapSummary:
    """
    Partition compared holdings into shared and one-sided groups.

    Args:
        items: Output of compare_holdings

    Returns:
        OverlapSummary; overlap_ratio is shared count / distinct key count,
        0 for an empty comparison
    """
    shared = [item for item in items if item.is_shared]
    viewer_only = [item for item in items if item.is_viewer_only]
    owner_only = [item for item in items if item.is_owner_only]

    distinct = len({item.key for item in items})
    if distinct == 0:
        ratio = Decimal("0")
    else:
        ratio = Decimal(len(shared)) / Decimal(distinct)

    return OverlapSummary(
        shared=shared,
        viewer_only=viewer_only,
        owner_only=owner_only,
        overlap_ratio=ratio,
    )
