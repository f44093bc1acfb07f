"""
Tests for cross-listing merging and listing sorts.
"""

from decimal import Decimal

import pytest

from folio_engine.analytics.listings import (
    build_listing_rows,
    merge_group,
    merge_listings,
    sort_listings,
)
from folio_engine.models import (
    ListingGroup,
    ListingRow,
    ListingSortKey,
    PortfolioValuation,
)
from folio_engine.portfolio.holdings import display_ticker


def _row(ticker: str, value: str, change: str, name: str = "", category: str = "etf", currency: str = "EUR") -> ListingRow:
    return ListingRow(
        ticker=ticker,
        display_ticker=display_ticker(ticker),
        name=name or ticker,
        category=category,
        currency=currency,
        value=Decimal(value),
        change_percent=Decimal(change),
    )


class TestDisplayTicker:
    """Tests for exchange suffix stripping."""

    def test_strips_suffix(self):
        """The ticker is cut at the first separator."""
        assert display_ticker("VWCE.DE") == "VWCE"
        assert display_ticker("BRK.B.US") == "BRK"

    def test_no_separator(self):
        """Tickers without a suffix are unchanged."""
        assert display_ticker("AAPL") == "AAPL"

    def test_custom_separators(self):
        """The earliest of several separators wins."""
        assert display_ticker("SAP-XETRA.DE", separators=(".", "-")) == "SAP"


class TestMergeListings:
    """Tests for grouping rows by display ticker."""

    def test_vwce_scenario(self):
        """100 at +2% and 50 at -1% merge into 150 at +1%."""
        rows = [_row("VWCE.DE", "100", "2"), _row("VWCE.AS", "50", "-1")]

        merged = merge_listings(rows)

        assert len(merged) == 1
        group = merged[0]
        assert isinstance(group, ListingGroup)
        assert group.display_ticker == "VWCE"
        assert group.value == Decimal("150")
        assert group.change_percent == Decimal("1")
        assert [v.ticker for v in group.variants] == ["VWCE.DE", "VWCE.AS"]

    def test_single_listing_stays_ungrouped(self):
        """A ticker with one listing is returned as the row itself."""
        row = _row("AAPL", "200", "1", category="individual_stock", currency="USD")

        assert merge_listings([row]) == [row]

    def test_representative_is_highest_value_variant(self):
        """Name, category and currency come from the largest variant."""
        rows = [
            _row("IWDA.L", "10", "0", name="iShares London", currency="GBP"),
            _row("IWDA.AS", "90", "0", name="iShares Amsterdam", currency="EUR"),
        ]

        group = merge_listings(rows)[0]

        assert group.name == "iShares Amsterdam"
        assert group.currency == "EUR"

    def test_zero_total_value(self):
        """Zero combined value gives 0% change instead of dividing by zero."""
        group = merge_group([_row("X.DE", "0", "5"), _row("X.AS", "0", "-3")])

        assert group.value == Decimal("0")
        assert group.change_percent == Decimal("0")

    @pytest.mark.parametrize(
        "v1,c1,v2,c2",
        [
            ("100", "2", "50", "-1"),
            ("1", "10", "3", "-10"),
            ("123.45", "0.5", "0.55", "7"),
        ],
    )
    def test_weighted_change_formula(self, v1: str, c1: str, v2: str, c2: str):
        """Group change is the value-weighted mean of variant changes."""
        group = merge_group([_row("T.A", v1, c1), _row("T.B", v2, c2)])

        v1, c1, v2, c2 = map(Decimal, (v1, c1, v2, c2))
        assert group.value == v1 + v2
        assert group.change_percent == (v1 * c1 + v2 * c2) / (v1 + v2)

    def test_output_keeps_first_appearance_order(self):
        """Groups appear where their first variant appeared."""
        rows = [
            _row("AAPL", "10", "0"),
            _row("VWCE.DE", "5", "0"),
            _row("MSFT", "1", "0"),
            _row("VWCE.AS", "5", "0"),
        ]

        merged = merge_listings(rows)

        tickers = [getattr(item, "display_ticker") for item in merged]
        assert tickers == ["AAPL", "VWCE", "MSFT"]


class TestSortListings:
    """Tests for sorting rows and groups together."""

    def test_sort_by_value_descending(self):
        """Groups and rows sort by their totals."""
        merged = merge_listings([
            _row("AAPL", "120", "0"),
            _row("VWCE.DE", "100", "0"),
            _row("VWCE.AS", "50", "0"),
        ])

        ordered = sort_listings(merged, ListingSortKey.VALUE)

        assert [item.value for item in ordered] == [Decimal("150"), Decimal("120")]

    def test_ascending(self):
        """Ascending reverses the direction."""
        rows = [_row("A", "3", "0"), _row("B", "1", "0"), _row("C", "2", "0")]

        ordered = sort_listings(rows, ListingSortKey.VALUE, descending=False)

        assert [r.ticker for r in ordered] == ["B", "C", "A"]

    def test_ties_keep_input_order_both_directions(self):
        """The sort is stable ascending and descending."""
        rows = [_row("A", "1", "0"), _row("B", "1", "0"), _row("C", "1", "0")]

        assert [r.ticker for r in sort_listings(rows, ListingSortKey.VALUE)] == ["A", "B", "C"]
        assert [r.ticker for r in sort_listings(rows, ListingSortKey.VALUE, descending=False)] == ["A", "B", "C"]

    def test_sort_by_name_case_insensitive(self):
        """Names sort without regard to case."""
        rows = [_row("B", "1", "0", name="beta"), _row("A", "1", "0", name="Alpha")]

        ordered = sort_listings(rows, ListingSortKey.NAME, descending=False)

        assert [r.name for r in ordered] == ["Alpha", "beta"]

    @pytest.mark.parametrize("key", list(ListingSortKey))
    def test_every_key_sorts_mixed_items(self, key: ListingSortKey):
        """All shared keys work on groups and rows alike."""
        merged = merge_listings([
            _row("AAPL", "120", "1", category="individual_stock", currency="USD"),
            _row("VWCE.DE", "100", "2"),
            _row("VWCE.AS", "50", "-1"),
        ])

        assert len(sort_listings(merged, key)) == 2


class TestBuildListingRows:
    """Tests for turning equities valuation rows into listing rows."""

    def test_rows_from_valuation(self, sample_valuation: PortfolioValuation):
        """Each equities row becomes a listing row in base currency."""
        rows = build_listing_rows(sample_valuation.equities)

        assert [r.ticker for r in rows] == ["VWCE.DE", "VWCE.AS", "AAPL"]
        assert [r.display_ticker for r in rows] == ["VWCE", "VWCE", "AAPL"]
        assert rows[0].value == Decimal("1100")
        assert rows[0].category == "etf"

    def test_merged_valuation_rows(self, sample_valuation: PortfolioValuation):
        """The two VWCE listings merge with a weighted change of 1%."""
        merged = merge_listings(build_listing_rows(sample_valuation.equities))

        group = merged[0]
        assert isinstance(group, ListingGroup)
        assert group.value == Decimal("1650")
        assert group.change_percent == Decimal("1")
