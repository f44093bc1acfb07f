"""
Pytest fixtures for the portfolio valuation engine tests.

Provides common holdings, quotes, rate tables and input files used across
test modules. All prices are chosen so that USD values are round numbers:

- BTC  2 x 50,000 = 100,000 (+10%)
- ETH 10 x  3,000 =  30,000 (-5%), 4 of them staked
- USDC 5,000 x 1.00 = 5,000 (stablecoin, 5% APY)
- EURC 1,000 x 1.10 = 1,100 (stablecoin)
- VWCE.DE 10 x 100 EUR = 1,100 USD (+2%), VWCE.AS 5 x 100 EUR = 550 USD (-1%)
- AAPL 10 x 200 USD = 2,000 (+1%)
- Cash: 10,000 USD + 5,000 EUR (2% APY) + 1,000 EUR exchange deposit
"""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from folio_engine.models import (
    BaseCurrency,
    CashAccount,
    CashSource,
    CryptoAsset,
    CryptoQuote,
    PortfolioHoldings,
    PortfolioValuation,
    Position,
    QuoteLeg,
    StockAsset,
    StockQuote,
)
from folio_engine.portfolio.valuation import value_portfolio


@pytest.fixture
def btc_asset() -> CryptoAsset:
    """Bitcoin held across two wallets."""
    return CryptoAsset(
        ticker="BTC",
        name="Bitcoin",
        provider_id="bitcoin",
        subcategory="L1",
        positions=(
            Position(quantity=Decimal("1"), location="Ledger"),
            Position(quantity=Decimal("1"), location="Coinbase"),
        ),
    )


@pytest.fixture
def eth_asset() -> CryptoAsset:
    """Ethereum, partly staked."""
    return CryptoAsset(
        ticker="ETH",
        name="Ethereum",
        provider_id="ethereum",
        subcategory="L1",
        positions=(
            Position(quantity=Decimal("6"), location="Ledger", acquisition_method="bought"),
            Position(quantity=Decimal("4"), location="Lido", acquisition_method="staked"),
        ),
    )


@pytest.fixture
def usdc_asset() -> CryptoAsset:
    """USD stablecoin earning yield."""
    return CryptoAsset(
        ticker="USDC",
        name="USD Coin",
        provider_id="usd-coin",
        subcategory="stablecoin",
        positions=(Position(quantity=Decimal("5000"), location="Aave", apy=Decimal("5")),),
    )


@pytest.fixture
def eurc_asset() -> CryptoAsset:
    """EUR stablecoin."""
    return CryptoAsset(
        ticker="EURC",
        name="Euro Coin",
        provider_id="euro-coin",
        subcategory="Stablecoin",
        positions=(Position(quantity=Decimal("1000"), location="Coinbase"),),
    )


@pytest.fixture
def unpriced_asset() -> CryptoAsset:
    """Crypto asset the quote provider does not cover."""
    return CryptoAsset(
        ticker="XYZ",
        name="Obscure Coin",
        provider_id="obscure-coin",
        subcategory="DeFi",
        positions=(Position(quantity=Decimal("100")),),
    )


@pytest.fixture
def vwce_de() -> StockAsset:
    """World ETF listed on Xetra."""
    return StockAsset(
        ticker="VWCE.DE",
        name="Vanguard FTSE All-World (Xetra)",
        currency="EUR",
        category="etf",
        subcategory="Equity",
        tags=("World",),
        positions=(Position(quantity=Decimal("10"), location="IBKR"),),
    )


@pytest.fixture
def vwce_as() -> StockAsset:
    """Same ETF listed on Euronext Amsterdam."""
    return StockAsset(
        ticker="VWCE.AS",
        name="Vanguard FTSE All-World (Amsterdam)",
        currency="EUR",
        category="etf",
        subcategory="Equity",
        tags=("World",),
        positions=(Position(quantity=Decimal("5"), location="DEGIRO"),),
    )


@pytest.fixture
def aapl() -> StockAsset:
    """Individual US stock."""
    return StockAsset(
        ticker="AAPL",
        name="Apple Inc.",
        currency="USD",
        category="individual_stock",
        tags=("Tech",),
        positions=(Position(quantity=Decimal("10"), location="IBKR"),),
    )


@pytest.fixture
def crypto_quotes() -> dict[str, CryptoQuote]:
    """Multi-currency crypto quotes."""
    return {
        "bitcoin": CryptoQuote(legs={
            BaseCurrency.USD: QuoteLeg(Decimal("50000"), Decimal("10")),
            BaseCurrency.EUR: QuoteLeg(Decimal("45000"), Decimal("9")),
        }),
        "ethereum": CryptoQuote(legs={
            BaseCurrency.USD: QuoteLeg(Decimal("3000"), Decimal("-5")),
            BaseCurrency.EUR: QuoteLeg(Decimal("2700"), Decimal("-5")),
        }),
        "usd-coin": CryptoQuote(legs={
            BaseCurrency.USD: QuoteLeg(Decimal("1"), Decimal("0.1")),
            BaseCurrency.EUR: QuoteLeg(Decimal("0.9"), Decimal("0.1")),
        }),
        "euro-coin": CryptoQuote(legs={
            BaseCurrency.USD: QuoteLeg(Decimal("1.1"), Decimal("0")),
            BaseCurrency.EUR: QuoteLeg(Decimal("1"), Decimal("0")),
        }),
    }


@pytest.fixture
def stock_quotes() -> dict[str, StockQuote]:
    """Native-currency stock quotes."""
    return {
        "VWCE.DE": StockQuote(price=Decimal("100"), currency="EUR", change_percent=Decimal("2")),
        "VWCE.AS": StockQuote(price=Decimal("100"), currency="EUR", change_percent=Decimal("-1")),
        "AAPL": StockQuote(price=Decimal("200"), currency="USD", change_percent=Decimal("1")),
    }


@pytest.fixture
def usd_rates() -> dict[str, Decimal]:
    """USD-based rate table: USD per unit of each currency."""
    return {"USD": Decimal("1"), "EUR": Decimal("1.1")}


@pytest.fixture
def sample_holdings(
    btc_asset: CryptoAsset,
    eth_asset: CryptoAsset,
    usdc_asset: CryptoAsset,
    eurc_asset: CryptoAsset,
    vwce_de: StockAsset,
    vwce_as: StockAsset,
    aapl: StockAsset,
) -> PortfolioHoldings:
    """A portfolio touching every asset class."""
    return PortfolioHoldings(
        crypto_assets=(btc_asset, eth_asset, usdc_asset, eurc_asset),
        stock_assets=(vwce_de, vwce_as, aapl),
        bank_accounts=(
            CashAccount(name="Chase", currency="USD", amount=Decimal("10000")),
            CashAccount(name="Revolut", currency="EUR", amount=Decimal("5000"), apy=Decimal("2")),
        ),
        exchange_deposits=(
            CashAccount(
                name="Kraken",
                currency="EUR",
                amount=Decimal("1000"),
                source=CashSource.EXCHANGE,
            ),
        ),
    )


@pytest.fixture
def sample_valuation(
    sample_holdings: PortfolioHoldings,
    crypto_quotes: dict[str, CryptoQuote],
    stock_quotes: dict[str, StockQuote],
    usd_rates: dict[str, Decimal],
) -> PortfolioValuation:
    """USD valuation of sample_holdings."""
    return value_portfolio(
        sample_holdings,
        crypto_quotes,
        stock_quotes,
        BaseCurrency.USD,
        usd_rates,
    )


@pytest.fixture
def temp_output_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# =============================================================================
# Input File Fixtures
# =============================================================================


HOLDINGS_YAML = """\
crypto:
  - ticker: BTC
    name: Bitcoin
    provider_id: bitcoin
    subcategory: L1
    positions:
      - quantity: 1
        location: Ledger
      - quantity: 1
        location: Coinbase
        acquisition_method: mined
  - ticker: USDC
    name: USD Coin
    provider_id: usd-coin
    subcategory: stablecoin
    positions:
      - quantity: 5000
        apy: 5
stocks:
  - ticker: VWCE.DE
    name: Vanguard FTSE All-World
    currency: EUR
    category: etf
    tags: [World]
    positions:
      - quantity: 10
  - ticker: VWCE.AS
    name: Vanguard FTSE All-World
    currency: EUR
    category: etf
    tags: [World]
    positions:
      - quantity: 5
bank_accounts:
  - name: Chase
    currency: USD
    amount: 10000
exchange_deposits:
  - name: Kraken
    currency: eur
    amount: 1000
    apy: 2
"""

OWNER_HOLDINGS_YAML = """\
crypto:
  - ticker: BTC
    name: Bitcoin
    provider_id: bitcoin
    positions:
      - quantity: 0.5
stocks:
  - ticker: AAPL
    name: Apple Inc.
    currency: USD
    category: individual_stock
    positions:
      - quantity: 10
"""

CRYPTO_QUOTES_CSV = """\
id,usd,usd_24h_change,eur,eur_24h_change
bitcoin,50000,10,45000,9
usd-coin,1,0.1,0.9,
"""

STOCK_QUOTES_CSV = """\
ticker,price,change_24h,currency
VWCE.DE,100,2,EUR
VWCE.AS,100,-1,EUR
AAPL,200,1,USD
"""

FX_RATES_CSV = """\
currency,rate
EUR,1.1
"""


@pytest.fixture
def input_files(tmp_path: Path) -> dict[str, Path]:
    """Write holdings, quotes and FX files and return their paths."""
    files = {
        "holdings": ("holdings.yaml", HOLDINGS_YAML),
        "owner_holdings": ("owner.yaml", OWNER_HOLDINGS_YAML),
        "crypto_quotes": ("crypto_quotes.csv", CRYPTO_QUOTES_CSV),
        "stock_quotes": ("stock_quotes.csv", STOCK_QUOTES_CSV),
        "fx_rates": ("fx_rates.csv", FX_RATES_CSV),
    }
    paths = {}
    for key, (filename, content) in files.items():
        path = tmp_path / filename
        path.write_text(content)
        paths[key] = path
    return paths
