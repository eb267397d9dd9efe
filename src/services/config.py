"""Configuration loading for the billing engine.

Loads settings from .env file and environment variables with sensible defaults.
Validates configuration and provides clear error messages.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class BillingConfig:
    """Configuration for bill generation."""

    database_url: str = "sqlite:///./condo_billing.db"
    """SQLAlchemy database URL (default: local SQLite)"""

    log_file: str = "logs/server.log"
    """Path to log file (default: logs/server.log)"""

    bill_number_prefix: str = "MT"
    """Bill number prefix used when the tenant has none"""

    reading_day: int = 26
    """Day of month closing the consumption period"""

    statement_day: int = 27
    """Day of the bill month the statement is issued"""

    due_day: int = 6
    """Day of the following month the bill is due"""

    water_flat_tiers: int = 3
    """Number of leading water tiers charged as flat fees"""

    water_charge_minimum_on_zero: bool = False
    """Charge tier 1's flat fee for a zero water reading"""


def _int_setting(name: str, default: int, low: int, high: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


def _bool_setting(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def load_config() -> BillingConfig:
    """
    Load configuration from .env file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (DATABASE_URL, BILL_NUMBER_PREFIX, etc.)
    2. .env file in project root
    3. Default values

    Returns:
        BillingConfig with all settings

    Raises:
        ValueError: If a setting is present but invalid

    Example:
        Create .env file:
        ```
        DATABASE_URL=sqlite:///./condo_billing.db
        BILL_NUMBER_PREFIX=MT
        ```

        Then call:
        ```
        config = load_config()
        ```
    """
    # Load .env file from project root
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    defaults = BillingConfig()

    prefix = os.getenv("BILL_NUMBER_PREFIX", defaults.bill_number_prefix).strip()
    if not prefix or "-" in prefix:
        raise ValueError(
            "BILL_NUMBER_PREFIX must be non-empty and must not contain '-'. "
            f"Got {prefix!r}"
        )

    return BillingConfig(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        log_file=os.getenv("LOG_FILE", defaults.log_file),
        bill_number_prefix=prefix,
        reading_day=_int_setting("BILLING_READING_DAY", defaults.reading_day, 1, 27),
        statement_day=_int_setting("BILLING_STATEMENT_DAY", defaults.statement_day, 1, 28),
        due_day=_int_setting("BILLING_DUE_DAY", defaults.due_day, 1, 28),
        water_flat_tiers=_int_setting("WATER_FLAT_TIERS", defaults.water_flat_tiers, 0, 6),
        water_charge_minimum_on_zero=_bool_setting(
            "WATER_CHARGE_MINIMUM_ON_ZERO", defaults.water_charge_minimum_on_zero
        ),
    )


__all__ = ["BillingConfig", "load_config"]
