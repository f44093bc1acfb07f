"""
Tests for the append-only decision log.
"""

import json
from decimal import Decimal
from pathlib import Path

from folio_engine.analytics.breakdown import build_breakdowns
from folio_engine.analytics.comparison import compare_holdings, summarize_overlap
from folio_engine.analytics.listings import build_listing_rows, merge_listings
from folio_engine.logging import DecisionLogger, get_logger, log_action
from folio_engine.models import (
    ActionType,
    EngineConfig,
    PortfolioComparison,
    PortfolioValuation,
)


class TestDecisionLogger:
    """Tests for DecisionLogger."""

    def test_creates_parent_directory(self, temp_output_dir: Path):
        """The log directory is created on construction."""
        logger = DecisionLogger(temp_output_dir / "nested" / "log.jsonl")

        assert logger.log_path.parent.exists()
        assert logger.read_log() == []

    def test_valuation_entry(self, temp_output_dir: Path, sample_valuation: PortfolioValuation):
        """Valuation totals are written as Decimal strings."""
        logger = DecisionLogger(temp_output_dir / "log.jsonl")

        logger.log_valuation_calculated(sample_valuation)

        line = (temp_output_dir / "log.jsonl").read_text().strip()
        record = json.loads(line)
        assert record["action_type"] == "VALUATION_CALCULATED"
        assert record["base_currency"] == "USD"
        assert Decimal(record["details"]["total_value"]) == Decimal("156350")
        assert record["details"]["num_assets"] == len(sample_valuation.assets)
        assert record["details"]["unpriced"] == []

    def test_append_only(self, temp_output_dir: Path, sample_valuation: PortfolioValuation):
        """Each call adds one line; earlier entries are kept."""
        logger = DecisionLogger(temp_output_dir / "log.jsonl")

        logger.log_config_loaded(EngineConfig(), None)
        logger.log_breakdown_built("USD", build_breakdowns(sample_valuation))
        rows = build_listing_rows(sample_valuation.equities)
        logger.log_listings_merged("USD", len(rows), merge_listings(rows))

        entries = logger.read_log()
        assert [e.action_type for e in entries] == [
            ActionType.CONFIG_LOADED,
            ActionType.BREAKDOWN_BUILT,
            ActionType.LISTINGS_MERGED,
        ]
        assert entries[1].details["cash"] == ["USD", "EUR"]
        assert entries[2].details["grouped_tickers"] == ["VWCE"]
        assert entries[2].details["row_count"] == 3

    def test_comparison_entry(self, temp_output_dir: Path, sample_valuation: PortfolioValuation):
        """Comparison entries record overlap counts."""
        logger = DecisionLogger(temp_output_dir / "log.jsonl")
        holdings = compare_holdings(sample_valuation, sample_valuation)
        comparison = PortfolioComparison(
            base_currency=sample_valuation.summary.base_currency,
            viewer=sample_valuation.summary,
            owner=sample_valuation.summary,
            holdings=holdings,
        )

        logger.log_comparison_generated(comparison, summarize_overlap(holdings))

        entry = logger.filter_by_action_type(ActionType.COMPARISON_GENERATED)[0]
        assert entry.details["shared_count"] == len(holdings)
        assert Decimal(entry.details["overlap_ratio"]) == Decimal("1")

    def test_filter_by_action_type(self, temp_output_dir: Path):
        """Only entries of the requested type are returned."""
        logger = DecisionLogger(temp_output_dir / "log.jsonl")
        logger.log_config_loaded(EngineConfig(), "config.yaml")
        logger.log_config_loaded(EngineConfig(), None)

        assert len(logger.filter_by_action_type(ActionType.CONFIG_LOADED)) == 2
        assert logger.filter_by_action_type(ActionType.BREAKDOWN_BUILT) == []


class TestLogAction:
    """Tests for the module-level helpers."""

    def test_log_action_uses_given_path(self, temp_output_dir: Path):
        """log_action writes through the global logger."""
        path = temp_output_dir / "global.jsonl"

        log_action(ActionType.CONFIG_LOADED, None, {"note": Decimal("1.5")}, log_path=path)

        entries = get_logger(path).read_log()
        assert len(entries) == 1
        assert entries[0].details == {"note": "1.5"}
        assert entries[0].base_currency is None
