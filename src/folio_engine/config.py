"""
Configuration loading and management for the portfolio valuation engine.

This module handles loading engine settings from a YAML file, applying
environment overrides (.env file and process environment), and validation
of configuration parameters.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import dotenv_values

from folio_engine.models import EngineConfig
from folio_engine.pricing.fx import UnsupportedCurrencyError, parse_base_currency


# Default paths for configuration files
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

# Environment variable -> config field
ENV_OVERRIDES: dict[str, str] = {
    "FOLIO_BASE_CURRENCY": "base_currency",
    "FOLIO_OUTPUT_DIR": "output_dir",
}


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def load_env_overrides(env_file: str | Path | None = None) -> dict[str, str]:
    """
    Collect configuration overrides from the environment.

    Sources are checked in this order (later sources override earlier):
    1. .env file in project root (or env_file)
    2. Environment variables

    Args:
        env_file: Path to .env file (defaults to project root .env)

    Returns:
        Dictionary mapping config field name to raw string value
    """
    overrides: dict[str, str] = {}

    env_path = Path(env_file) if env_file else DEFAULT_ENV_FILE
    if env_path.exists():
        env_values = dotenv_values(env_path)
        for variable, field_name in ENV_OVERRIDES.items():
            if env_values.get(variable):
                overrides[field_name] = str(env_values[variable])

    for variable, field_name in ENV_OVERRIDES.items():
        if os.environ.get(variable):
            overrides[field_name] = os.environ[variable]

    return overrides


def load_engine_config(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> EngineConfig:
    """
    Load engine configuration from YAML and the environment.

    Args:
        config_path: Path to the YAML configuration file; defaults are used
                     when omitted
        env_file: Path to .env file (defaults to project root .env)

    Returns:
        EngineConfig object with validated settings

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    raw: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(raw, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

    raw.update(load_env_overrides(env_file))

    return _parse_engine_config(raw)


def _parse_engine_config(raw: dict[str, Any]) -> EngineConfig:
    """
    Parse and validate raw configuration dictionary into EngineConfig.

    Args:
        raw: Dictionary loaded from YAML, with environment overrides applied

    Returns:
        Validated EngineConfig

    Raises:
        ConfigurationError: If fields are invalid
    """
    try:
        base_currency = parse_base_currency(raw.get("base_currency", "USD"))
    except UnsupportedCurrencyError as e:
        raise ConfigurationError(str(e))

    stablecoin_subcategory = str(raw.get("stablecoin_subcategory", "stablecoin")).strip()
    if not stablecoin_subcategory:
        raise ConfigurationError("stablecoin_subcategory cannot be empty")

    separators = raw.get("ticker_separators", ["."])
    if isinstance(separators, str):
        separators = [separators]
    if not separators or any(not isinstance(s, str) or len(s) != 1 for s in separators):
        raise ConfigurationError(
            f"ticker_separators must be a list of single characters, got {separators!r}"
        )

    output_dir = str(raw.get("output_dir", "output"))

    manual_prices = _parse_manual_prices(raw.get("manual_prices") or {})

    return EngineConfig(
        base_currency=base_currency,
        stablecoin_subcategory=stablecoin_subcategory,
        ticker_separators=tuple(separators),
        output_dir=output_dir,
        manual_prices=manual_prices,
    )


def _parse_manual_prices(raw: Any) -> dict[str, dict]:
    """
    Validate the manual_prices section.

    Args:
        raw: Mapping of identifier -> {price, currency}

    Returns:
        Mapping with Decimal prices and upper-case currencies

    Raises:
        ConfigurationError: If an entry is malformed
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("manual_prices must be a mapping")

    prices = {}
    for identifier, entry in raw.items():
        if not isinstance(entry, dict) or "price" not in entry:
            raise ConfigurationError(
                f"manual_prices entry for {identifier} must have a price"
            )
        prices[str(identifier)] = {
            "price": _parse_decimal(
                entry["price"],
                f"manual_prices.{identifier}.price",
                min_val=Decimal("0"),
            ),
            "currency": str(entry.get("currency", "USD")).upper(),
        }
    return prices


def _parse_decimal(
    value: Any,
    field_name: str,
    min_val: Optional[Decimal] = None,
    max_val: Optional[Decimal] = None,
) -> Decimal:
    """
    Parse a decimal value with optional range validation.

    Args:
        value: The value to parse
        field_name: Name of the field for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Parsed Decimal

    Raises:
        ConfigurationError: If the value is invalid or out of range
    """
    try:
        decimal_value = Decimal(str(value))
    except Exception:
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if not decimal_value.is_finite():
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if min_val is not None and decimal_value < min_val:
        raise ConfigurationError(
            f"{field_name} must be >= {min_val}, got {decimal_value}"
        )

    if max_val is not None and decimal_value > max_val:
        raise ConfigurationError(
            f"{field_name} must be <= {max_val}, got {decimal_value}"
        )

    return decimal_value


def write_config(config: EngineConfig, output_path: str | Path) -> None:
    """
    Write an EngineConfig to a YAML file.

    Args:
        config: The configuration to write
        output_path: Path to write the YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = {
        "base_currency": config.base_currency.value,
        "stablecoin_subcategory": config.stablecoin_subcategory,
        "ticker_separators": list(config.ticker_separators),
        "output_dir": config.output_dir,
        "manual_prices": {
            identifier: {"price": str(entry["price"]), "currency": entry["currency"]}
            for identifier, entry in config.manual_prices.items()
        },
    }

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
