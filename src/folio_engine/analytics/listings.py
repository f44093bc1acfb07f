"""
Cross-listing merger for equity-class holdings.

The same fund often trades on several exchanges under suffixed tickers
(VWCE.DE, VWCE.AS). Rows sharing a display ticker are merged into a single
ListingGroup with a value-weighted 24h change.
"""

from decimal import Decimal
from typing import Callable, Sequence, Union

from folio_engine.models import (
    ClassValuation,
    ListingGroup,
    ListingRow,
    ListingSortKey,
)
from folio_engine.portfolio.holdings import DEFAULT_TICKER_SEPARATORS, display_ticker


Listing = Union[ListingRow, ListingGroup]


SORT_KEYS: dict[ListingSortKey, Callable[[Listing], object]] = {
    ListingSortKey.VALUE: lambda item: item.value,
    ListingSortKey.NAME: lambda item: item.name.lower(),
    ListingSortKey.TYPE: lambda item: item.category,
    ListingSortKey.CHANGE_24H: lambda item: item.change_percent,
    ListingSortKey.CURRENCY: lambda item: item.currency,
}


def build_listing_rows(
    equities: ClassValuation,
    separators: Sequence[str] = DEFAULT_TICKER_SEPARATORS,
) -> list[ListingRow]:
    """
    Convert equities valuation rows into listing rows.

    Unpriced assets are kept with zero value so they stay visible.

    Args:
        equities: Equities class valuation
        separators: Characters that start an exchange suffix

    Returns:
        List of ListingRow in valuation order
    """
    rows = []
    for asset in equities.assets:
        rows.append(
            ListingRow(
                ticker=asset.ticker,
                display_ticker=display_ticker(asset.ticker, separators),
                name=asset.name,
                category=asset.source.category,
                currency=asset.currency,
                value=asset.value,
                change_percent=(
                    asset.change_percent if asset.change_percent is not None else Decimal("0")
                ),
            )
        )
    return rows


def merge_group(variants: list[ListingRow]) -> ListingGroup:
    """
    Merge listings of one display ticker.

    Args:
        variants: Two or more rows sharing a display ticker

    Returns:
        ListingGroup whose name, category and currency come from the
        highest-value variant (first one on ties)
    """
    total_value = sum((v.value for v in variants), Decimal("0"))
    weighted = sum((v.value * v.change_percent for v in variants), Decimal("0"))

    if total_value == Decimal("0"):
        change = Decimal("0")
    else:
        change = weighted / total_value

    representative = max(variants, key=lambda v: v.value)

    return ListingGroup(
        display_ticker=representative.display_ticker,
        name=representative.name,
        category=representative.category,
        currency=representative.currency,
        value=total_value,
        change_percent=change,
        variants=list(variants),
    )


def merge_listings(rows: list[ListingRow]) -> list[Listing]:
    """
    Group cross-listed rows by display ticker.

    Tickers with a single listing are returned as the row itself. Output
    order follows the first appearance of each display ticker.

    Args:
        rows: Listing rows

    Returns:
        Mixed list of ListingRow and ListingGroup
    """
    by_ticker: dict[str, list[ListingRow]] = {}
    for row in rows:
        by_ticker.setdefault(row.display_ticker, []).append(row)

    merged: list[Listing] = []
    for variants in by_ticker.values():
        if len(variants) == 1:
            merged.append(variants[0])
        else:
            merged.append(merge_group(variants))
    return merged


def sort_listings(
    items: list[Listing],
    sort_by: ListingSortKey = ListingSortKey.VALUE,
    descending: bool = True,
) -> list[Listing]:
    """
    Sort rows and groups by a shared key.

    The sort is stable in both directions, so ties keep input order.

    Args:
        items: Rows and/or groups
        sort_by: Sort key
        descending: Sort direction

    Returns:
        New sorted list
    """
    return sorted(items, key=SORT_KEYS[sort_by], reverse=descending)
