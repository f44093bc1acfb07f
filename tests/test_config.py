"""
Tests for configuration loading and environment overrides.
"""

from decimal import Decimal
from pathlib import Path

import pytest

from folio_engine.config import (
    ENV_OVERRIDES,
    ConfigurationError,
    load_engine_config,
    load_env_overrides,
    write_config,
)
from folio_engine.models import BaseCurrency


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config tests."""
    for variable in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture
def env_file(tmp_path: Path) -> Path:
    """Path to a (not yet existing) .env file."""
    return tmp_path / ".env"


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path


class TestLoadEngineConfig:
    """Tests for YAML configuration loading."""

    def test_defaults_without_file(self, env_file: Path):
        """No file and no environment gives the defaults."""
        config = load_engine_config(env_file=env_file)

        assert config.base_currency == BaseCurrency.USD
        assert config.stablecoin_subcategory == "stablecoin"
        assert config.ticker_separators == (".",)
        assert config.manual_prices == {}

    def test_full_file(self, tmp_path: Path, env_file: Path):
        """All sections are parsed."""
        path = _write(
            tmp_path,
            "base_currency: eur\n"
            "stablecoin_subcategory: Stable\n"
            "ticker_separators: ['.', ':']\n"
            "output_dir: reports\n"
            "manual_prices:\n"
            "  private-token:\n"
            "    price: 0.25\n"
            "    currency: eur\n",
        )

        config = load_engine_config(path, env_file=env_file)

        assert config.base_currency == BaseCurrency.EUR
        assert config.stablecoin_subcategory == "Stable"
        assert config.ticker_separators == (".", ":")
        assert config.output_dir == "reports"
        assert config.manual_prices["private-token"] == {
            "price": Decimal("0.25"),
            "currency": "EUR",
        }

    def test_single_separator_string(self, tmp_path: Path, env_file: Path):
        """A bare string is accepted as one separator."""
        path = _write(tmp_path, "ticker_separators: '-'\n")

        assert load_engine_config(path, env_file=env_file).ticker_separators == ("-",)

    def test_missing_file(self, tmp_path: Path, env_file: Path):
        """A missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_engine_config(tmp_path / "missing.yaml", env_file=env_file)

    def test_invalid_yaml(self, tmp_path: Path, env_file: Path):
        """Unparseable YAML raises ConfigurationError."""
        path = _write(tmp_path, "base_currency: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_engine_config(path, env_file=env_file)

    @pytest.mark.parametrize(
        "content,message",
        [
            ("base_currency: GBP\n", "GBP"),
            ("stablecoin_subcategory: '  '\n", "stablecoin_subcategory"),
            ("ticker_separators: ['..']\n", "ticker_separators"),
            ("manual_prices:\n  x:\n    currency: USD\n", "must have a price"),
            ("manual_prices:\n  x:\n    price: -1\n", "must be >= 0"),
            ("manual_prices:\n  x:\n    price: abc\n", "Invalid decimal"),
        ],
    )
    def test_invalid_values(self, tmp_path: Path, env_file: Path, content: str, message: str):
        """Invalid settings are rejected with a descriptive error."""
        path = _write(tmp_path, content)

        with pytest.raises(ConfigurationError, match=message):
            load_engine_config(path, env_file=env_file)


class TestEnvOverrides:
    """Tests for .env and environment overrides."""

    def test_env_file_overrides_yaml(self, tmp_path: Path, env_file: Path):
        """Values from the .env file replace YAML values."""
        path = _write(tmp_path, "base_currency: USD\n")
        env_file.write_text("FOLIO_BASE_CURRENCY=EUR\n")

        assert load_engine_config(path, env_file=env_file).base_currency == BaseCurrency.EUR

    def test_environment_wins_over_env_file(self, env_file: Path, monkeypatch):
        """Process environment variables take precedence."""
        env_file.write_text("FOLIO_OUTPUT_DIR=from-file\n")
        monkeypatch.setenv("FOLIO_OUTPUT_DIR", "from-env")

        assert load_env_overrides(env_file) == {"output_dir": "from-env"}

    def test_invalid_env_currency(self, env_file: Path, monkeypatch):
        """Overrides are validated like file values."""
        monkeypatch.setenv("FOLIO_BASE_CURRENCY", "JPY")

        with pytest.raises(ConfigurationError):
            load_engine_config(env_file=env_file)


class TestWriteConfig:
    """Tests for writing configuration back to YAML."""

    def test_written_config_loads_back(self, tmp_path: Path, env_file: Path):
        """write_config output is accepted by load_engine_config."""
        source = _write(
            tmp_path,
            "base_currency: EUR\n"
            "manual_prices:\n"
            "  PRIVATE:\n"
            "    price: 12.5\n",
        )
        config = load_engine_config(source, env_file=env_file)

        output = tmp_path / "out" / "config.yaml"
        write_config(config, output)

        assert load_engine_config(output, env_file=env_file) == config
