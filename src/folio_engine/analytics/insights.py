"""
Dashboard insight metrics derived from a portfolio valuation.
"""

from decimal import Decimal

from folio_engine.models import (
    AssetValuation,
    PortfolioInsights,
    PortfolioValuation,
    TopHolding,
)
from folio_engine.portfolio.holdings import count_positions


BITCOIN_PROVIDER_ID = "bitcoin"

# Acquisition methods counted as "earned" rather than bought
EARNED_METHODS = ("mined", "staked")


def _percent(value: Decimal, total: Decimal) -> Decimal:
    if total <= Decimal("0"):
        return Decimal("0")
    return Decimal("100") * value / total


def _position_values(row: AssetValuation):
    """Split a row's base-currency value across its positions by quantity."""
    for position in row.source.positions:
        if row.quantity == Decimal("0"):
            yield position, Decimal("0")
        else:
            yield position, row.value * position.quantity / row.quantity


def compute_insights(valuation: PortfolioValuation) -> PortfolioInsights:
    """
    Calculate secondary dashboard metrics.

    Args:
        valuation: Portfolio valuation

    Returns:
        PortfolioInsights covering crypto dominance, mined/staked share,
        the top equities holding and cash yield projections
    """
    # Crypto
    crypto_value = valuation.crypto.value
    btc_value = Decimal("0")
    earned_value = Decimal("0")
    earned_count = 0

    for row in valuation.crypto.assets:
        if row.key == BITCOIN_PROVIDER_ID:
            btc_value += row.value
        if not row.priced:
            continue
        for position, value in _position_values(row):
            method = (position.acquisition_method or "").lower()
            if method in EARNED_METHODS:
                earned_value += value
                earned_count += 1

    # Equities
    top_holding = None
    top_row = max(valuation.equities.assets, key=lambda r: r.value, default=None)
    if top_row is not None and top_row.value > Decimal("0"):
        top_holding = TopHolding(
            name=top_row.name,
            ticker=top_row.ticker,
            percent=_percent(top_row.value, valuation.equities.value),
        )

    # Cash yield: banks, deposits and stablecoin positions with a positive APY
    apy_weighted_sum = Decimal("0")
    apy_value = Decimal("0")
    cash_account_count = 0

    for row in valuation.cash.fiat.assets:
        account = row.source
        if account.apy > Decimal("0"):
            apy_weighted_sum += row.value * account.apy
            apy_value += row.value
        cash_account_count += 1

    for row in valuation.cash.stablecoins.assets:
        if not row.priced:
            continue
        for position, value in _position_values(row):
            if position.apy > Decimal("0"):
                apy_weighted_sum += value * position.apy
                apy_value += value
            cash_account_count += 1

    if apy_value > Decimal("0"):
        weighted_avg_apy = apy_weighted_sum / apy_value
    else:
        weighted_avg_apy = Decimal("0")

    # Income on the APY-bearing balance only, not on total cash
    yearly = apy_value * weighted_avg_apy / Decimal("100")

    return PortfolioInsights(
        crypto_asset_count=len(valuation.crypto.assets),
        btc_value=btc_value,
        btc_dominance_percent=_percent(btc_value, crypto_value),
        mined_staked_percent=_percent(earned_value, crypto_value),
        mined_staked_count=earned_count,
        stock_position_count=count_positions(
            row.source for row in valuation.equities.assets if row.priced
        ),
        top_holding=top_holding,
        cash_account_count=cash_account_count,
        weighted_avg_apy=weighted_avg_apy,
        apy_income_yearly=yearly,
        apy_income_monthly=yearly / Decimal("12"),
        apy_income_daily=yearly / Decimal("365"),
    )
