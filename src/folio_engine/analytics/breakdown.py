"""
Per-class breakdowns for display.

Subdivides each class total into labelled entries (crypto by Bitcoin vs alts,
equities by category, cash by currency) with optional second-level segments.
No new financial computation happens here: every value comes from the
per-asset rows produced by the valuators.
"""

from collections import defaultdict
from decimal import Decimal
from enum import Enum

from folio_engine.models import (
    AssetClass,
    BreakdownEntry,
    BreakdownSegment,
    CashValuation,
    ClassValuation,
    PortfolioValuation,
    StockCategory,
)
from folio_engine.portfolio.holdings import infer_peg_currency


OTHER_LABEL = "Other"
BITCOIN_LABEL = "Bitcoin"
ALTS_LABEL = "Alts"
FIAT_LABEL = "Fiat"
STABLECOIN_LABEL = "Stablecoins"

BITCOIN_PROVIDER_ID = "bitcoin"

# Display order is by value; this only maps categories to labels
CATEGORY_LABELS: dict[str, str] = {
    StockCategory.ETF.value: "ETFs",
    StockCategory.INDIVIDUAL_STOCK.value: "Stocks",
    StockCategory.BOND_FIXED_INCOME.value: "Bonds",
    StockCategory.OTHER.value: OTHER_LABEL,
}


class CryptoGrouping(Enum):
    """How the alts entry of the crypto breakdown is segmented."""
    TICKER = "ticker"
    SUBCATEGORY = "subcategory"


def _percent(value: Decimal, total: Decimal) -> Decimal:
    if total == Decimal("0"):
        return Decimal("0")
    return Decimal("100") * value / total


def _segments(
    values: dict[str, Decimal],
    parent_value: Decimal,
) -> list[BreakdownSegment]:
    """
    Turn accumulated values into sorted segments.

    Args:
        values: Segment label -> value
        parent_value: Value the segment percentages are relative to

    Returns:
        Segments sorted by value descending, or an empty list when there is
        at most one non-zero segment
    """
    segments = [
        BreakdownSegment(label=label, value=value, percent=_percent(value, parent_value))
        for label, value in values.items()
        if value > Decimal("0")
    ]
    if len(segments) <= 1:
        return []
    segments.sort(key=lambda s: s.value, reverse=True)
    return segments


def category_label(category: str | None) -> str:
    """
    Display label for an equity category.

    Args:
        category: Category value, possibly unknown or empty

    Returns:
        Label, "Other" for anything unrecognized
    """
    if not category:
        return OTHER_LABEL
    return CATEGORY_LABELS.get(category.strip().lower(), OTHER_LABEL)


def build_crypto_breakdown(
    crypto: ClassValuation,
    group_by: CryptoGrouping = CryptoGrouping.TICKER,
) -> list[BreakdownEntry]:
    """
    Split crypto value into Bitcoin and alts.

    Alts segment percentages are relative to the whole crypto class, so
    they add up to the alts entry percentage rather than to 100.

    Args:
        crypto: Crypto class valuation (stablecoins already excluded)
        group_by: Segment the alts entry by ticker or by subcategory;
            assets without a subcategory fall into "Other"

    Returns:
        Entries sorted by value descending, empty when crypto value is zero
    """
    total = crypto.value
    if total <= Decimal("0"):
        return []

    btc_value = Decimal("0")
    alts: dict[str, Decimal] = defaultdict(Decimal)

    for row in crypto.assets:
        if row.key == BITCOIN_PROVIDER_ID:
            btc_value += row.value
            continue
        if group_by is CryptoGrouping.SUBCATEGORY:
            label = (row.source.subcategory or "").strip() or OTHER_LABEL
        else:
            label = row.ticker
        alts[label] += row.value

    alts_value = sum(alts.values(), Decimal("0"))

    entries = []
    if btc_value > Decimal("0"):
        entries.append(
            BreakdownEntry(
                label=BITCOIN_LABEL,
                value=btc_value,
                percent=_percent(btc_value, total),
            )
        )
    if alts_value > Decimal("0"):
        entries.append(
            BreakdownEntry(
                label=ALTS_LABEL,
                value=alts_value,
                percent=_percent(alts_value, total),
                segments=_segments(alts, total),
            )
        )

    entries.sort(key=lambda e: e.value, reverse=True)
    return entries


def build_equities_breakdown(equities: ClassValuation) -> list[BreakdownEntry]:
    """
    Split equities value by instrument category.

    Each category entry is segmented by subtype when it holds more than one
    distinct subtype, otherwise by primary tag. Tags that merely repeat the
    category label, missing subtypes and missing tags all fall into "Other",
    so segments always sum to the entry value.

    Args:
        equities: Equities class valuation

    Returns:
        Entries sorted by value descending
    """
    total = equities.value
    if total <= Decimal("0"):
        return []

    category_values: dict[str, Decimal] = defaultdict(Decimal)
    subtypes: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
    tags: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))

    for row in equities.assets:
        if row.value <= Decimal("0"):
            continue
        asset = row.source
        label = category_label(asset.category)
        category_values[label] += row.value

        subtype = (asset.subcategory or "").strip() or OTHER_LABEL
        subtypes[label][subtype] += row.value

        primary_tag = asset.tags[0].strip() if asset.tags else ""
        if not primary_tag or primary_tag.lower() == label.lower():
            primary_tag = OTHER_LABEL
        tags[label][primary_tag] += row.value

    entries = []
    for label, value in category_values.items():
        subtype_segments = _segments(subtypes[label], value)
        tag_segments = _segments(tags[label], value)
        entries.append(
            BreakdownEntry(
                label=label,
                value=value,
                percent=_percent(value, total),
                segments=subtype_segments or tag_segments,
                tag_segments=tag_segments,
            )
        )

    entries.sort(key=lambda e: e.value, reverse=True)
    return entries


def build_cash_breakdown(cash: CashValuation) -> list[BreakdownEntry]:
    """
    Split cash value by settlement currency.

    Fiat balances are grouped by their own currency; stablecoins by the
    currency they are pegged to. Each currency entry is segmented into fiat
    and stablecoins when it holds both.

    Args:
        cash: Cash valuation

    Returns:
        Entries sorted by value descending
    """
    fiat: dict[str, Decimal] = defaultdict(Decimal)
    stable: dict[str, Decimal] = defaultdict(Decimal)

    for row in cash.fiat.assets:
        fiat[row.currency.upper()] += row.value
    for row in cash.stablecoins.assets:
        stable[infer_peg_currency(row.ticker, row.name)] += row.value

    total = cash.value
    entries = []
    for currency in list(fiat) + [c for c in stable if c not in fiat]:
        fiat_value = fiat.get(currency, Decimal("0"))
        stablecoin_value = stable.get(currency, Decimal("0"))
        value = fiat_value + stablecoin_value
        if value <= Decimal("0"):
            continue
        entries.append(
            BreakdownEntry(
                label=currency,
                value=value,
                percent=_percent(value, total),
                segments=_segments(
                    {FIAT_LABEL: fiat_value, STABLECOIN_LABEL: stablecoin_value},
                    value,
                ),
            )
        )

    entries.sort(key=lambda e: e.value, reverse=True)
    return entries


def build_breakdowns(
    valuation: PortfolioValuation,
    crypto_group_by: CryptoGrouping = CryptoGrouping.TICKER,
) -> dict[AssetClass, list[BreakdownEntry]]:
    """
    Build all three class breakdowns for a valuation.

    Args:
        valuation: Portfolio valuation
        crypto_group_by: Segmentation of the crypto alts entry

    Returns:
        Dictionary mapping asset class to its breakdown entries
    """
    return {
        AssetClass.CRYPTO: build_crypto_breakdown(valuation.crypto, crypto_group_by),
        AssetClass.EQUITIES: build_equities_breakdown(valuation.equities),
        AssetClass.CASH: build_cash_breakdown(valuation.cash),
    }
