"""
Snapshot records and period changes.

The snapshot persistence collaborator stores a subset of each summary once a
day. This module derives that subset and compares a live summary against the
stored history ("vs yesterday", "vs 7 days ago", ...).
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from folio_engine.models import PeriodChange, PortfolioSummary, SnapshotRecord


# Period label -> days back
PERIODS: dict[str, int] = {
    "24h": 1,
    "7d": 7,
    "30d": 30,
    "1y": 365,
}


def build_snapshot_record(
    summary: PortfolioSummary,
    snapshot_date: date,
) -> SnapshotRecord:
    """
    Extract the persisted subset of a summary.

    Args:
        summary: Portfolio summary
        snapshot_date: Date the snapshot represents

    Returns:
        SnapshotRecord
    """
    return SnapshotRecord(
        snapshot_date=snapshot_date,
        base_currency=summary.base_currency,
        total_value=summary.total_value,
        crypto_value=summary.crypto_value,
        equities_value=summary.equities_value,
        cash_value=summary.cash_value,
    )


def select_snapshot_at(
    records: Iterable[SnapshotRecord],
    target_date: date,
) -> Optional[SnapshotRecord]:
    """
    Get the most recent snapshot on or before a date.

    Args:
        records: Snapshot history in any order
        target_date: Latest acceptable snapshot date

    Returns:
        Matching snapshot or None
    """
    candidates = [r for r in records if r.snapshot_date <= target_date]
    if not candidates:
        return None
    return max(candidates, key=lambda r: r.snapshot_date)


def change_since(
    summary: PortfolioSummary,
    snapshot: SnapshotRecord,
    period: str = "",
) -> PeriodChange:
    """
    Calculate the change of total value versus a snapshot.

    Args:
        summary: Current summary
        snapshot: Past snapshot in the same base currency
        period: Label for the comparison period

    Returns:
        PeriodChange; percent_change is 0 when the snapshot total is 0

    Raises:
        ValueError: If the snapshot is in a different base currency
    """
    if snapshot.base_currency != summary.base_currency:
        raise ValueError(
            f"Snapshot currency {snapshot.base_currency.value} does not match "
            f"summary currency {summary.base_currency.value}"
        )

    absolute_change = summary.total_value - snapshot.total_value
    if snapshot.total_value == Decimal("0"):
        percent_change = Decimal("0")
    else:
        percent_change = Decimal("100") * absolute_change / snapshot.total_value

    return PeriodChange(
        period=period,
        snapshot_date=snapshot.snapshot_date,
        absolute_change=absolute_change,
        percent_change=percent_change,
    )


def period_changes(
    summary: PortfolioSummary,
    records: list[SnapshotRecord],
    as_of: date,
) -> dict[str, PeriodChange]:
    """
    Calculate change versus each standard period that has history.

    Only snapshots in the summary's base currency are considered.

    Args:
        summary: Current summary
        records: Snapshot history
        as_of: Date of the current summary

    Returns:
        Dictionary mapping period label to PeriodChange; periods without a
        snapshot on or before their target date are omitted
    """
    same_currency = [r for r in records if r.base_currency == summary.base_currency]

    changes = {}
    for label, days in PERIODS.items():
        snapshot = select_snapshot_at(same_currency, as_of - timedelta(days=days))
        if snapshot is not None:
            changes[label] = change_since(summary, snapshot, period=label)
    return changes
