"""
Core data models for the portfolio valuation engine.

This module defines the fundamental data structures used throughout the system,
including assets and positions, price quotes, valuation results, breakdowns,
listing groups and cross-portfolio holdings. All monetary values, quantities,
prices, rates and percentages use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class AssetClass(Enum):
    """Top-level asset class of a holding."""
    CRYPTO = "crypto"
    EQUITIES = "equities"
    CASH = "cash"


class BaseCurrency(Enum):
    """
    Currencies a valuation can be expressed in.

    Crypto quotes are delivered natively in these currencies, so they are the
    only legal base/target currencies for a valuation call.
    """
    USD = "USD"
    EUR = "EUR"


class CashSource(Enum):
    """Where a fiat cash balance is held."""
    BANK = "bank"
    EXCHANGE = "exchange"
    BROKER = "broker"


class StockCategory(Enum):
    """Instrument category for equity-class assets."""
    INDIVIDUAL_STOCK = "individual_stock"
    ETF = "etf"
    BOND_FIXED_INCOME = "bond_fixed_income"
    OTHER = "other"


class HoldingSide(Enum):
    """Which of two compared portfolios a value belongs to."""
    VIEWER = "viewer"
    OWNER = "owner"


class ListingSortKey(Enum):
    """Sort keys shared by listing rows and listing groups."""
    VALUE = "value"
    NAME = "name"
    TYPE = "type"
    CHANGE_24H = "change_24h"
    CURRENCY = "currency"


class QuoteSource(Enum):
    """Origin of a resolved price."""
    LIVE = "live"
    MANUAL = "manual"


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    CONFIG_LOADED = "CONFIG_LOADED"
    VALUATION_CALCULATED = "VALUATION_CALCULATED"
    BREAKDOWN_BUILT = "BREAKDOWN_BUILT"
    LISTINGS_MERGED = "LISTINGS_MERGED"
    COMPARISON_GENERATED = "COMPARISON_GENERATED"


# =============================================================================
# Holdings (inputs)
# =============================================================================


@dataclass(frozen=True)
class Position:
    """
    A quantity of one asset held at one location.

    Attributes:
        quantity: Units held (non-negative)
        location: Wallet, broker or bank name (display only)
        apy: Optional yield rate in percent (e.g. 4.5 for 4.5%)
        acquisition_method: How the units were obtained (bought, mined, staked, ...)
    """
    quantity: Decimal
    location: str = ""
    apy: Decimal = Decimal("0")
    acquisition_method: Optional[str] = None


@dataclass(frozen=True)
class CryptoAsset:
    """
    A crypto asset with its per-wallet positions.

    Attributes:
        ticker: Display ticker (e.g. BTC)
        name: Display name
        provider_id: Price-provider identifier (e.g. "bitcoin")
        positions: Positions across wallets
        subcategory: Classification such as "L1", "DeFi" or "stablecoin"
        chain: Chain the asset lives on, if relevant
        image_url: Optional image reference for display
    """
    ticker: str
    name: str
    provider_id: str
    positions: tuple[Position, ...] = ()
    subcategory: Optional[str] = None
    chain: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class StockAsset:
    """
    A stock, ETF or bond listing with its per-broker positions.

    Attributes:
        ticker: Instrument ticker, possibly with an exchange suffix (VWCE.DE)
        name: Display name
        currency: Native trading currency (ISO code)
        positions: Positions across brokers
        provider_ticker: Alternate ticker used by the quote provider
        category: Instrument category (see StockCategory); free-form strings
            are tolerated and treated as "other" by the breakdown builder
        subcategory: Instrument subtype (e.g. "ETF UCITS")
        tags: Theme/strategy tags, first tag is the primary one
        isin: Optional ISIN
    """
    ticker: str
    name: str
    currency: str
    positions: tuple[Position, ...] = ()
    provider_ticker: Optional[str] = None
    category: str = StockCategory.OTHER.value
    subcategory: Optional[str] = None
    tags: tuple[str, ...] = ()
    isin: Optional[str] = None

    @property
    def quote_key(self) -> str:
        """Identifier used to look up this asset's quote."""
        return self.provider_ticker or self.ticker


@dataclass(frozen=True)
class CashAccount:
    """
    A fiat balance held at a bank, exchange or broker.

    Attributes:
        name: Account or institution name
        currency: ISO currency code of the balance
        amount: Balance in native currency
        source: Bank account, exchange deposit or broker deposit
        apy: Yield rate in percent
    """
    name: str
    currency: str
    amount: Decimal
    source: CashSource = CashSource.BANK
    apy: Decimal = Decimal("0")


@dataclass(frozen=True)
class PortfolioHoldings:
    """All holdings of one portfolio, as read from the persistence layer."""
    crypto_assets: tuple[CryptoAsset, ...] = ()
    stock_assets: tuple[StockAsset, ...] = ()
    bank_accounts: tuple[CashAccount, ...] = ()
    exchange_deposits: tuple[CashAccount, ...] = ()
    broker_deposits: tuple[CashAccount, ...] = ()

    @property
    def cash_accounts(self) -> tuple[CashAccount, ...]:
        """Bank accounts, exchange deposits and broker deposits in that order."""
        return self.bank_accounts + self.exchange_deposits + self.broker_deposits


# =============================================================================
# Quotes
# =============================================================================


@dataclass(frozen=True)
class QuoteLeg:
    """Price and 24h change of a crypto asset in one currency."""
    price: Decimal
    change_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class CryptoQuote:
    """
    Multi-currency crypto quote.

    Attributes:
        legs: Price and change keyed by base currency
    """
    legs: dict[BaseCurrency, QuoteLeg]

    def leg(self, currency: BaseCurrency) -> Optional[QuoteLeg]:
        """Return the leg for a currency, or None if the provider omitted it."""
        return self.legs.get(currency)


@dataclass(frozen=True)
class StockQuote:
    """
    Single-currency equity quote.

    Attributes:
        price: Last price in native currency
        change_percent: 24h change in percent, None when unknown
        currency: Currency the price is quoted in
        name: Instrument name reported by the provider
    """
    price: Decimal
    currency: str
    change_percent: Optional[Decimal] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ResolvedQuote:
    """
    A price the engine will actually value an asset at.

    Distinguishes "zero change" (change_percent == 0) from "no change data"
    (change_percent is None).

    Attributes:
        price: Price per unit
        currency: Currency the price is expressed in
        change_percent: 24h change in percent, or None
        source: Live provider quote or manual override
    """
    price: Decimal
    currency: str
    change_percent: Optional[Decimal] = None
    source: QuoteSource = QuoteSource.LIVE

    @property
    def has_change(self) -> bool:
        """Whether 24h change data is available."""
        return self.change_percent is not None

    def weighted_change_for(self, value: Decimal) -> Decimal:
        """Contribution of a holding of this value to a weighted-change numerator."""
        if self.change_percent is None:
            return Decimal("0")
        return value * self.change_percent


# =============================================================================
# Valuation results
# =============================================================================


HoldingSource = Union[CryptoAsset, StockAsset, CashAccount]


@dataclass
class AssetValuation:
    """
    Valuation of a single asset or cash balance in the base currency.

    Attributes:
        key: Quote identifier (provider id, provider ticker or currency code)
        ticker: Display ticker
        name: Display name
        asset_class: Class the value is reported under
        currency: Native currency of the price / balance
        quantity: Total quantity across positions
        price: Resolved price per unit in native currency (0 when unpriced)
        native_value: quantity * price in native currency
        value: Value in base currency
        change_percent: 24h change, None when unknown or unpriced
        priced: Whether a price was found
        is_stablecoin: Crypto asset reclassified as cash
        source: The holding record this row was computed from
    """
    key: str
    ticker: str
    name: str
    asset_class: AssetClass
    currency: str
    quantity: Decimal
    price: Decimal
    native_value: Decimal
    value: Decimal
    change_percent: Optional[Decimal]
    priced: bool
    source: HoldingSource
    is_stablecoin: bool = False

    @property
    def weighted_change(self) -> Decimal:
        """value * change_percent, or 0 when there is no change data."""
        if self.change_percent is None:
            return Decimal("0")
        return self.value * self.change_percent


@dataclass
class ClassValuation:
    """
    Totals for one asset class (or the stablecoin bucket).

    Attributes:
        asset_class: Asset class
        value: Total value in base currency
        weighted_change: Sum of value * change_percent over the class
        assets: Per-asset rows, unpriced assets included
    """
    asset_class: AssetClass
    value: Decimal = Decimal("0")
    weighted_change: Decimal = Decimal("0")
    assets: list[AssetValuation] = field(default_factory=list)

    @property
    def change_percent(self) -> Decimal:
        """Value-weighted 24h change of the class (0 when empty)."""
        if self.value == Decimal("0"):
            return Decimal("0")
        return self.weighted_change / self.value


@dataclass
class CashValuation:
    """
    Cash class totals with a fiat / stablecoin split.

    Attributes:
        fiat: Bank accounts and exchange/broker deposits
        stablecoins: Stablecoin-reclassified crypto
    """
    fiat: ClassValuation
    stablecoins: ClassValuation

    @property
    def value(self) -> Decimal:
        """Total cash value including stablecoins."""
        return self.fiat.value + self.stablecoins.value

    @property
    def fiat_value(self) -> Decimal:
        return self.fiat.value

    @property
    def stablecoin_value(self) -> Decimal:
        return self.stablecoins.value

    @property
    def assets(self) -> list[AssetValuation]:
        return self.fiat.assets + self.stablecoins.assets


@dataclass
class Allocation:
    """Percentage of total value per asset class."""
    crypto: Decimal = Decimal("0")
    equities: Decimal = Decimal("0")
    cash: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.crypto + self.equities + self.cash


@dataclass
class PortfolioSummary:
    """
    Consolidated portfolio summary in a single base currency.

    Attributes:
        base_currency: Currency all values are expressed in
        total_value: crypto + equities + cash
        crypto_value: Crypto value, stablecoins excluded
        equities_value: Stocks/ETFs/bonds value
        cash_value: Fiat cash plus stablecoins
        stablecoin_value: Stablecoins only (subset of cash_value)
        allocation: Per-class allocation percentages
        change_24h_percent: Value-weighted 24h change of invested assets
        crypto_change_24h_percent: Value-weighted 24h change of crypto
        equities_change_24h_percent: Value-weighted 24h change of equities
        value_change_24h: Absolute 24h change of invested assets
        crypto_value_change_24h: Absolute 24h change of crypto
        equities_value_change_24h: Absolute 24h change of equities
        stablecoin_value_change_24h: Absolute 24h change of stablecoins
            (reported separately, not part of value_change_24h)
    """
    base_currency: BaseCurrency
    total_value: Decimal
    crypto_value: Decimal
    equities_value: Decimal
    cash_value: Decimal
    stablecoin_value: Decimal
    allocation: Allocation
    change_24h_percent: Decimal
    crypto_change_24h_percent: Decimal = Decimal("0")
    equities_change_24h_percent: Decimal = Decimal("0")
    value_change_24h: Decimal = Decimal("0")
    crypto_value_change_24h: Decimal = Decimal("0")
    equities_value_change_24h: Decimal = Decimal("0")
    stablecoin_value_change_24h: Decimal = Decimal("0")


@dataclass
class PortfolioValuation:
    """
    Complete valuation of one portfolio.

    Attributes:
        summary: Consolidated summary
        crypto: Crypto class valuation (stablecoins excluded)
        equities: Equities class valuation
        cash: Cash valuation including the stablecoin bucket
    """
    summary: PortfolioSummary
    crypto: ClassValuation
    equities: ClassValuation
    cash: CashValuation

    @property
    def assets(self) -> list[AssetValuation]:
        """All per-asset rows across classes."""
        return self.crypto.assets + self.equities.assets + self.cash.assets


# =============================================================================
# Presentation-oriented outputs
# =============================================================================


@dataclass
class BreakdownSegment:
    """
    One segment of a two-level breakdown bar.

    Attributes:
        label: Segment label
        value: Value in base currency
        percent: Percent of the parent entry's value
    """
    label: str
    value: Decimal
    percent: Decimal = Decimal("0")


@dataclass
class BreakdownEntry:
    """
    A labelled slice of an asset class.

    Attributes:
        label: Entry label (e.g. "Bitcoin", "ETFs", "EUR")
        value: Value in base currency
        percent: Percent of the class total
        segments: Ordered sub-segments summing to value (empty when the entry
            has a single constituent)
        tag_segments: Alternate split by primary tag (equities only)
    """
    label: str
    value: Decimal
    percent: Decimal
    segments: list[BreakdownSegment] = field(default_factory=list)
    tag_segments: list[BreakdownSegment] = field(default_factory=list)


@dataclass
class ListingRow:
    """
    A single exchange listing of an equity-class instrument.

    Attributes:
        ticker: Full ticker including exchange suffix
        display_ticker: Ticker with the exchange suffix removed
        name: Display name
        category: Instrument category
        currency: Native trading currency
        value: Value in base currency
        change_percent: 24h change (0 when unknown)
    """
    ticker: str
    display_ticker: str
    name: str
    category: str
    currency: str
    value: Decimal
    change_percent: Decimal


@dataclass
class ListingGroup:
    """
    Several listings of the same logical instrument merged into one row.

    Name, category and currency come from the highest-value variant.
    """
    display_ticker: str
    name: str
    category: str
    currency: str
    value: Decimal
    change_percent: Decimal
    variants: list[ListingRow]


@dataclass(frozen=True)
class HoldingItem:
    """
    One logical instrument in a two-portfolio comparison.

    Attributes:
        key: Canonical dedup key
        name: Display name
        ticker: Display ticker or currency code
        asset_class: Class the instrument is compared under
        image_url: Optional image reference
        viewer_value: Value held by the viewer (0 if not held)
        owner_value: Value held by the owner (0 if not held)
    """
    key: str
    name: str
    ticker: str
    asset_class: AssetClass
    image_url: Optional[str] = None
    viewer_value: Decimal = Decimal("0")
    owner_value: Decimal = Decimal("0")

    @property
    def is_shared(self) -> bool:
        return self.viewer_value > 0 and self.owner_value > 0

    @property
    def is_viewer_only(self) -> bool:
        return self.viewer_value > 0 and self.owner_value == 0

    @property
    def is_owner_only(self) -> bool:
        return self.owner_value > 0 and self.viewer_value == 0

    @property
    def max_value(self) -> Decimal:
        return max(self.viewer_value, self.owner_value)

    @property
    def delta(self) -> Decimal:
        """viewer_value - owner_value."""
        return self.viewer_value - self.owner_value


@dataclass
class OverlapSummary:
    """
    Partition of compared holdings.

    Attributes:
        shared: Held by both sides
        viewer_only: Held only by the viewer
        owner_only: Held only by the owner
        overlap_ratio: shared count / distinct key count (0 when empty)
    """
    shared: list[HoldingItem]
    viewer_only: list[HoldingItem]
    owner_only: list[HoldingItem]
    overlap_ratio: Decimal


@dataclass
class PortfolioComparison:
    """
    Result of comparing a viewer's and an owner's portfolio.

    Attributes:
        base_currency: Currency both sides were normalized to
        viewer: Viewer's summary
        owner: Owner's summary
        holdings: Keyed union of holdings, sorted by max side value
    """
    base_currency: BaseCurrency
    viewer: PortfolioSummary
    owner: PortfolioSummary
    holdings: list[HoldingItem]


@dataclass
class TopHolding:
    """Largest equities position."""
    name: str
    ticker: str
    percent: Decimal


@dataclass
class PortfolioInsights:
    """
    Secondary metrics derived from a valuation for dashboard cards.

    Attributes:
        crypto_asset_count: Non-stablecoin crypto assets
        btc_value: Bitcoin value in base currency
        btc_dominance_percent: Bitcoin share of crypto value
        mined_staked_percent: Share of crypto value acquired by mining/staking
        mined_staked_count: Number of mined/staked positions
        stock_position_count: Number of equities positions
        top_holding: Largest equities holding, if any
        cash_account_count: Cash balances plus stablecoin positions
        weighted_avg_apy: Value-weighted APY over APY-bearing cash
        apy_income_yearly: Projected yearly yield income
        apy_income_monthly: apy_income_yearly / 12
        apy_income_daily: apy_income_yearly / 365
    """
    crypto_asset_count: int
    btc_value: Decimal
    btc_dominance_percent: Decimal
    mined_staked_percent: Decimal
    mined_staked_count: int
    stock_position_count: int
    top_holding: Optional[TopHolding]
    cash_account_count: int
    weighted_avg_apy: Decimal
    apy_income_yearly: Decimal
    apy_income_monthly: Decimal
    apy_income_daily: Decimal


@dataclass
class SnapshotRecord:
    """
    Subset of a PortfolioSummary persisted for historical comparisons.

    Attributes:
        snapshot_date: Date of the snapshot
        base_currency: Currency of the stored values
        total_value: Total portfolio value
        crypto_value: Crypto value
        equities_value: Equities value
        cash_value: Cash value
    """
    snapshot_date: date
    base_currency: BaseCurrency
    total_value: Decimal
    crypto_value: Decimal
    equities_value: Decimal
    cash_value: Decimal


@dataclass
class PeriodChange:
    """Change of total value versus a past snapshot."""
    period: str
    snapshot_date: date
    absolute_change: Decimal
    percent_change: Decimal


# =============================================================================
# Configuration and logging
# =============================================================================


@dataclass
class EngineConfig:
    """
    Engine configuration loaded from YAML and the environment.

    Attributes:
        base_currency: Default valuation currency
        stablecoin_subcategory: Crypto subcategory reclassified as cash
        ticker_separators: Characters separating a ticker from its exchange suffix
        output_dir: Directory for the decision log
        manual_prices: Override prices by identifier: {"price", "currency"}
    """
    base_currency: BaseCurrency = BaseCurrency.USD
    stablecoin_subcategory: str = "stablecoin"
    ticker_separators: tuple[str, ...] = (".",)
    output_dir: str = "output"
    manual_prices: dict[str, dict] = field(default_factory=dict)


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        base_currency: Valuation currency involved (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    base_currency: Optional[str]
    details: dict

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        base_currency: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            base_currency=base_currency,
            details=details,
        )
