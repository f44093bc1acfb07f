"""
Data schemas for CSV file validation.

Defines expected columns and data types for quote, FX and snapshot files.
"""

from dataclasses import dataclass


@dataclass
class ColumnSchema:
    """Schema definition for a single column."""
    name: str
    dtype: str  # pandas dtype string
    required: bool = True
    nullable: bool = False


@dataclass
class FileSchema:
    """Schema definition for a file."""
    name: str
    columns: list[ColumnSchema]
    description: str

    @property
    def required_columns(self) -> list[str]:
        """Get list of required column names."""
        return [c.name for c in self.columns if c.required]

    @property
    def all_columns(self) -> list[str]:
        """Get list of all column names."""
        return [c.name for c in self.columns]

    def validate_columns(self, df_columns: list[str]) -> tuple[bool, list[str]]:
        """
        Validate that a dataframe has the required columns.

        Args:
            df_columns: List of column names from the dataframe

        Returns:
            Tuple of (is_valid, list of missing columns)
        """
        missing = [col for col in self.required_columns if col not in df_columns]
        return len(missing) == 0, missing


# Crypto Quotes Schema (one row per provider id, one column pair per base currency)
CRYPTO_QUOTES_SCHEMA = FileSchema(
    name="crypto_quotes",
    description="Multi-currency crypto prices with 24h change",
    columns=[
        ColumnSchema(name="id", dtype="str", required=True),
        ColumnSchema(name="usd", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="usd_24h_change", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="eur", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="eur_24h_change", dtype="float64", required=False, nullable=True),
    ],
)

# Stock Quotes Schema
STOCK_QUOTES_SCHEMA = FileSchema(
    name="stock_quotes",
    description="Native-currency stock/ETF/bond prices with 24h change",
    columns=[
        ColumnSchema(name="ticker", dtype="str", required=True),
        ColumnSchema(name="price", dtype="float64", required=True),
        ColumnSchema(name="currency", dtype="str", required=True),
        ColumnSchema(name="change_24h", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="name", dtype="str", required=False, nullable=True),
    ],
)

# FX Rates Schema
FX_RATES_SCHEMA = FileSchema(
    name="fx_rates",
    description="Base-currency units per one unit of each currency",
    columns=[
        ColumnSchema(name="currency", dtype="str", required=True),
        ColumnSchema(name="rate", dtype="float64", required=True),
    ],
)

# Snapshot History Schema (input/output)
SNAPSHOTS_SCHEMA = FileSchema(
    name="snapshots",
    description="Daily portfolio summary snapshots",
    columns=[
        ColumnSchema(name="date", dtype="datetime64[ns]", required=True),
        ColumnSchema(name="base_currency", dtype="str", required=True),
        ColumnSchema(name="total_value", dtype="float64", required=True),
        ColumnSchema(name="crypto_value", dtype="float64", required=True),
        ColumnSchema(name="equities_value", dtype="float64", required=True),
        ColumnSchema(name="cash_value", dtype="float64", required=True),
    ],
)

# Asset Valuation Output Schema
ASSET_VALUATION_SCHEMA = FileSchema(
    name="asset_valuations",
    description="Per-asset valuation rows in base currency",
    columns=[
        ColumnSchema(name="asset_class", dtype="str", required=True),
        ColumnSchema(name="key", dtype="str", required=True),
        ColumnSchema(name="ticker", dtype="str", required=True),
        ColumnSchema(name="name", dtype="str", required=True),
        ColumnSchema(name="currency", dtype="str", required=True),
        ColumnSchema(name="quantity", dtype="float64", required=True),
        ColumnSchema(name="price", dtype="float64", required=True),
        ColumnSchema(name="native_value", dtype="float64", required=True),
        ColumnSchema(name="value", dtype="float64", required=True),
        ColumnSchema(name="change_24h", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="priced", dtype="bool", required=True),
    ],
)
