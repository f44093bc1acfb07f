"""
Data loading and saving functions for holdings, quotes and FX files.

Handles ingestion of holdings (YAML), crypto/stock quotes and FX rates
(CSV), snapshot history, and output of per-asset valuation reports.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import yaml

from folio_engine.models import (
    BaseCurrency,
    CashAccount,
    CashSource,
    CryptoAsset,
    CryptoQuote,
    PortfolioHoldings,
    PortfolioValuation,
    Position,
    SnapshotRecord,
    StockAsset,
    StockCategory,
    StockQuote,
)
from folio_engine.data.schemas import (
    ASSET_VALUATION_SCHEMA,
    CRYPTO_QUOTES_SCHEMA,
    FX_RATES_SCHEMA,
    SNAPSHOTS_SCHEMA,
    STOCK_QUOTES_SCHEMA,
    FileSchema,
)
from folio_engine.pricing.fx import (
    UnsupportedCurrencyError,
    currency_code,
    parse_base_currency,
    rate_table_from_provider,
)
from folio_engine.pricing.quotes import crypto_quote_from_payload


class DataLoadError(Exception):
    """Raised when data cannot be loaded or is invalid."""
    pass


# Holdings YAML section -> cash source
CASH_SECTIONS: dict[str, CashSource] = {
    "bank_accounts": CashSource.BANK,
    "exchange_deposits": CashSource.EXCHANGE,
    "broker_deposits": CashSource.BROKER,
}


def _clean(value: Any) -> Any:
    """Map pandas missing values to None."""
    if value is None or pd.isna(value):
        return None
    return value


def _decimal(value: Any, field_name: str, context: str) -> Decimal:
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise DataLoadError(f"Invalid {field_name} for {context}: {value!r}")

    if not decimal_value.is_finite():
        raise DataLoadError(f"Invalid {field_name} for {context}: {value!r}")

    return decimal_value


def load_crypto_quotes(file_path: str | Path) -> dict[str, CryptoQuote]:
    """
    Load multi-currency crypto quotes from CSV file.

    Args:
        file_path: Path to CSV with columns: id, usd, usd_24h_change,
                   eur, eur_24h_change (price columns optional per row)

    Returns:
        Dictionary mapping provider id -> CryptoQuote

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    df = _load_csv(Path(file_path), CRYPTO_QUOTES_SCHEMA)

    quotes = {}
    for _, row in df.iterrows():
        provider_id = str(row["id"]).strip()
        payload = {}
        for column in CRYPTO_QUOTES_SCHEMA.all_columns:
            if column == "id" or column not in df.columns:
                continue
            value = _clean(row[column])
            if value is not None:
                payload[column] = _decimal(value, column, provider_id)
        quotes[provider_id] = crypto_quote_from_payload(payload)

    return quotes


def load_stock_quotes(file_path: str | Path) -> dict[str, StockQuote]:
    """
    Load stock/ETF/bond quotes from CSV file.

    Args:
        file_path: Path to CSV with columns: ticker, price, currency and
                   optionally change_24h, name

    Returns:
        Dictionary mapping ticker -> StockQuote

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    df = _load_csv(Path(file_path), STOCK_QUOTES_SCHEMA)

    quotes = {}
    for _, row in df.iterrows():
        ticker = str(row["ticker"]).strip()
        change = _clean(row["change_24h"]) if "change_24h" in df.columns else None
        name = _clean(row["name"]) if "name" in df.columns else None
        quotes[ticker] = StockQuote(
            price=_decimal(row["price"], "price", ticker),
            currency=currency_code(row["currency"]),
            change_percent=(
                _decimal(change, "change_24h", ticker) if change is not None else None
            ),
            name=str(name) if name is not None else None,
        )

    return quotes


def load_fx_rates(
    file_path: str | Path,
    base_currency: BaseCurrency,
    provider_convention: bool = False,
) -> dict[str, Decimal]:
    """
    Load an FX rate table from CSV file.

    Args:
        file_path: Path to CSV with columns: currency, rate
        base_currency: Currency the rates are relative to
        provider_convention: True if rates are "units of currency per 1 base"
                            (as most FX feeds publish them) rather than
                            "base units per 1 unit of currency"

    Returns:
        Rate table in base-currency units per unit, including base -> 1

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    df = _load_csv(Path(file_path), FX_RATES_SCHEMA)

    rates = {}
    for _, row in df.iterrows():
        code = currency_code(row["currency"])
        rates[code] = _decimal(row["rate"], "rate", code)

    if provider_convention:
        return rate_table_from_provider(base_currency, rates)

    rates[base_currency.value] = Decimal("1")
    return rates


def load_holdings(file_path: str | Path) -> PortfolioHoldings:
    """
    Load portfolio holdings from a YAML file.

    Expected top-level sections (all optional): crypto, stocks,
    bank_accounts, exchange_deposits, broker_deposits.

    Args:
        file_path: Path to holdings YAML

    Returns:
        PortfolioHoldings

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DataLoadError(f"Failed to parse YAML file {file_path}: {e}")

    if not isinstance(raw, dict):
        raise DataLoadError(f"Holdings file {file_path} must contain a mapping")

    try:
        crypto = tuple(_parse_crypto_asset(item) for item in raw.get("crypto") or [])
        stocks = tuple(_parse_stock_asset(item) for item in raw.get("stocks") or [])
        cash = {
            section: tuple(
                _parse_cash_account(item, source) for item in raw.get(section) or []
            )
            for section, source in CASH_SECTIONS.items()
        }
    except KeyError as e:
        raise DataLoadError(f"Holdings file {file_path} is missing field {e}")

    return PortfolioHoldings(
        crypto_assets=crypto,
        stock_assets=stocks,
        bank_accounts=cash["bank_accounts"],
        exchange_deposits=cash["exchange_deposits"],
        broker_deposits=cash["broker_deposits"],
    )


def _parse_positions(items: Optional[list[dict]], context: str) -> tuple[Position, ...]:
    positions = []
    for item in items or []:
        positions.append(
            Position(
                quantity=_decimal(item["quantity"], "quantity", context),
                location=str(item.get("location", "")),
                apy=_decimal(item.get("apy", 0), "apy", context),
                acquisition_method=item.get("acquisition_method"),
            )
        )
    return tuple(positions)


def _parse_crypto_asset(item: dict) -> CryptoAsset:
    ticker = str(item["ticker"]).upper()
    return CryptoAsset(
        ticker=ticker,
        name=str(item.get("name", ticker)),
        provider_id=str(item["provider_id"]),
        positions=_parse_positions(item.get("positions"), ticker),
        subcategory=item.get("subcategory"),
        chain=item.get("chain"),
        image_url=item.get("image_url"),
    )


def _parse_stock_asset(item: dict) -> StockAsset:
    ticker = str(item["ticker"]).upper()
    return StockAsset(
        ticker=ticker,
        name=str(item.get("name", ticker)),
        currency=currency_code(item["currency"]),
        positions=_parse_positions(item.get("positions"), ticker),
        provider_ticker=item.get("provider_ticker"),
        category=str(item.get("category", StockCategory.OTHER.value)),
        subcategory=item.get("subcategory"),
        tags=tuple(str(t) for t in item.get("tags") or []),
        isin=item.get("isin"),
    )


def _parse_cash_account(item: dict, source: CashSource) -> CashAccount:
    name = str(item["name"])
    amount = _decimal(item["amount"], "amount", name)
    if amount < Decimal("0"):
        raise DataLoadError(f"Negative amount for {name}: {amount}")
    return CashAccount(
        name=name,
        currency=currency_code(item["currency"]),
        amount=amount,
        source=source,
        apy=_decimal(item.get("apy", 0), "apy", name),
    )


def load_snapshots(file_path: str | Path) -> list[SnapshotRecord]:
    """
    Load snapshot history from CSV file.

    Args:
        file_path: Path to CSV with columns: date, base_currency,
                   total_value, crypto_value, equities_value, cash_value

    Returns:
        List of SnapshotRecord sorted by date

    Raises:
        DataLoadError: If file cannot be loaded or is invalid
    """
    df = _load_csv(Path(file_path), SNAPSHOTS_SCHEMA)
    try:
        df["date"] = pd.to_datetime(df["date"]).dt.date
    except (ValueError, TypeError) as e:
        raise DataLoadError(f"Invalid snapshot date in {file_path}: {e}")

    records = []
    for _, row in df.iterrows():
        context = f"snapshot on {row['date']}"
        try:
            base_currency = parse_base_currency(row["base_currency"])
        except UnsupportedCurrencyError as e:
            raise DataLoadError(f"Invalid snapshot on {row['date']}: {e}")
        records.append(
            SnapshotRecord(
                snapshot_date=row["date"],
                base_currency=base_currency,
                total_value=_decimal(row["total_value"], "total_value", context),
                crypto_value=_decimal(row["crypto_value"], "crypto_value", context),
                equities_value=_decimal(row["equities_value"], "equities_value", context),
                cash_value=_decimal(row["cash_value"], "cash_value", context),
            )
        )

    records.sort(key=lambda r: r.snapshot_date)
    return records


def save_snapshots(
    records: list[SnapshotRecord],
    output_path: str | Path,
) -> Path:
    """
    Save snapshot history to CSV file.

    Args:
        records: Snapshot records
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame(
        [
            {
                "date": r.snapshot_date.isoformat(),
                "base_currency": r.base_currency.value,
                "total_value": float(r.total_value),
                "crypto_value": float(r.crypto_value),
                "equities_value": float(r.equities_value),
                "cash_value": float(r.cash_value),
            }
            for r in records
        ],
        columns=SNAPSHOTS_SCHEMA.all_columns,
    )
    df.to_csv(output_path, index=False)

    return output_path


def save_asset_valuations(
    valuation: PortfolioValuation,
    output_path: str | Path,
) -> Path:
    """
    Save per-asset valuation rows to CSV file.

    Args:
        valuation: Portfolio valuation
        output_path: Path for output CSV file

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    records = []
    for row in valuation.assets:
        records.append({
            "asset_class": row.asset_class.value,
            "key": row.key,
            "ticker": row.ticker,
            "name": row.name,
            "currency": row.currency,
            "quantity": float(row.quantity),
            "price": float(row.price),
            "native_value": float(row.native_value),
            "value": float(row.value),
            "change_24h": float(row.change_percent) if row.change_percent is not None else None,
            "priced": row.priced,
        })

    df = pd.DataFrame(records, columns=ASSET_VALUATION_SCHEMA.all_columns)
    df.to_csv(output_path, index=False)

    return output_path


def _load_csv(file_path: Path, schema: FileSchema) -> pd.DataFrame:
    """
    Load a CSV file and validate against schema.

    Args:
        file_path: Path to CSV file
        schema: Expected file schema

    Returns:
        Loaded DataFrame

    Raises:
        DataLoadError: If file cannot be loaded or has missing columns
    """
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        df = pd.read_csv(file_path)
    except Exception as e:
        raise DataLoadError(f"Failed to load CSV file {file_path}: {e}")

    is_valid, missing = schema.validate_columns(df.columns.tolist())
    if not is_valid:
        raise DataLoadError(
            f"File {file_path} is missing required columns: {missing}"
        )

    return df
