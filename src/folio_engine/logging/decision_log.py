"""
Append-only decision logging for the portfolio valuation engine.

Valuations, breakdowns, listing merges and comparisons are logged with
timestamps and headline figures to support auditability and reproducibility.
"""

import json
from datetime import datetime, date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from folio_engine.models import (
    ActionType,
    AssetClass,
    BreakdownEntry,
    DecisionLogEntry,
    EngineConfig,
    ListingGroup,
    OverlapSummary,
    PortfolioComparison,
    PortfolioValuation,
)


class DecisionLogger:
    """
    Append-only decision logger.

    Writes all decisions to a JSONL file for audit purposes.
    Each line is a complete JSON object representing one action.
    """

    def __init__(self, log_path: str | Path):
        """
        Initialize the decision logger.

        Args:
            log_path: Path to the log file (will be created if not exists)
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: DecisionLogEntry) -> None:
        """
        Write a decision log entry.

        Args:
            entry: DecisionLogEntry to write
        """
        record = {
            "timestamp": entry.timestamp.isoformat(),
            "action_type": entry.action_type.value,
            "base_currency": entry.base_currency,
            "details": entry.details,
        }

        with open(self.log_path, "a") as f:
            f.write(json.dumps(record, cls=DecimalEncoder) + "\n")

    def log_config_loaded(
        self,
        config: EngineConfig,
        config_path: Optional[str],
    ) -> None:
        """
        Log configuration loading.

        Args:
            config: Loaded configuration
            config_path: Path to configuration file, None for defaults
        """
        details = {
            "config_path": config_path,
            "stablecoin_subcategory": config.stablecoin_subcategory,
            "ticker_separators": list(config.ticker_separators),
            "manual_price_count": len(config.manual_prices),
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.CONFIG_LOADED,
            base_currency=config.base_currency.value,
            details=details,
        )
        self.log(entry)

    def log_valuation_calculated(
        self,
        valuation: PortfolioValuation,
    ) -> None:
        """
        Log portfolio valuation.

        Args:
            valuation: Portfolio valuation result
        """
        summary = valuation.summary
        unpriced = [row.key for row in valuation.assets if not row.priced]

        details = {
            "total_value": summary.total_value,
            "crypto_value": summary.crypto_value,
            "equities_value": summary.equities_value,
            "cash_value": summary.cash_value,
            "stablecoin_value": summary.stablecoin_value,
            "change_24h_percent": summary.change_24h_percent,
            "num_assets": len(valuation.assets),
            "unpriced": unpriced[:10],  # First 10
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.VALUATION_CALCULATED,
            base_currency=summary.base_currency.value,
            details=details,
        )
        self.log(entry)

    def log_breakdown_built(
        self,
        base_currency: str,
        breakdowns: dict[AssetClass, list[BreakdownEntry]],
    ) -> None:
        """
        Log breakdown construction.

        Args:
            base_currency: Valuation currency
            breakdowns: Entries per asset class
        """
        details = {
            asset_class.value: [entry.label for entry in entries]
            for asset_class, entries in breakdowns.items()
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.BREAKDOWN_BUILT,
            base_currency=base_currency,
            details=details,
        )
        self.log(entry)

    def log_listings_merged(
        self,
        base_currency: str,
        row_count: int,
        listings: list,
    ) -> None:
        """
        Log cross-listing merge.

        Args:
            base_currency: Valuation currency
            row_count: Listing rows before merging
            listings: Merged rows and groups
        """
        groups = [item for item in listings if isinstance(item, ListingGroup)]

        details = {
            "row_count": row_count,
            "listing_count": len(listings),
            "group_count": len(groups),
            "grouped_tickers": [g.display_ticker for g in groups],
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.LISTINGS_MERGED,
            base_currency=base_currency,
            details=details,
        )
        self.log(entry)

    def log_comparison_generated(
        self,
        comparison: PortfolioComparison,
        overlap: OverlapSummary,
    ) -> None:
        """
        Log portfolio comparison.

        Args:
            comparison: Comparison result
            overlap: Overlap partition of the compared holdings
        """
        details = {
            "viewer_total": comparison.viewer.total_value,
            "owner_total": comparison.owner.total_value,
            "holding_count": len(comparison.holdings),
            "shared_count": len(overlap.shared),
            "viewer_only_count": len(overlap.viewer_only),
            "owner_only_count": len(overlap.owner_only),
            "overlap_ratio": overlap.overlap_ratio,
        }

        entry = DecisionLogEntry.create(
            action_type=ActionType.COMPARISON_GENERATED,
            base_currency=comparison.base_currency.value,
            details=details,
        )
        self.log(entry)

    def read_log(self) -> list[DecisionLogEntry]:
        """
        Read all entries from the log file.

        Returns:
            List of DecisionLogEntry objects
        """
        if not self.log_path.exists():
            return []

        entries = []
        with open(self.log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                entries.append(
                    DecisionLogEntry(
                        timestamp=datetime.fromisoformat(record["timestamp"]),
                        action_type=ActionType(record["action_type"]),
                        base_currency=record.get("base_currency"),
                        details=record.get("details", {}),
                    )
                )

        return entries

    def filter_by_action_type(
        self,
        action_type: ActionType,
    ) -> list[DecisionLogEntry]:
        """
        Get log entries of a specific action type.

        Args:
            action_type: Action type to filter by

        Returns:
            Filtered list of entries
        """
        return [e for e in self.read_log() if e.action_type == action_type]


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return super().default(obj)


# Global logger instance (initialized on first use)
_global_logger: Optional[DecisionLogger] = None


def get_logger(log_path: Optional[str | Path] = None) -> DecisionLogger:
    """
    Get or create the global decision logger.

    Args:
        log_path: Optional path to initialize logger (required on first call)

    Returns:
        DecisionLogger instance
    """
    global _global_logger

    if _global_logger is None:
        if log_path is None:
            log_path = "output/decision_log.jsonl"
        _global_logger = DecisionLogger(log_path)
    elif log_path is not None:
        # Allow reinitializing with new path
        _global_logger = DecisionLogger(log_path)

    return _global_logger


def log_action(
    action_type: ActionType,
    base_currency: Optional[str],
    details: dict,
    log_path: Optional[str | Path] = None,
) -> None:
    """
    Convenience function to log an action.

    Args:
        action_type: Type of action
        base_currency: Valuation currency (optional)
        details: Action details dictionary
        log_path: Optional path to log file
    """
    logger = get_logger(log_path)
    entry = DecisionLogEntry.create(
        action_type=action_type,
        base_currency=base_currency,
        details=details,
    )
    logger.log(entry)
