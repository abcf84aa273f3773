"""Configuration management for DealFlow."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings

from dealflow.errors import ConfigurationError

CONFIG_DIR = Path(__file__).parent.parent / "config"

DEFAULT_HUD_DATA_PATH = "./data/hud-rental-data.json"


class _Section(BaseModel):
    """Config section that accepts both snake_case (TOML) and camelCase (JSON) keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MortgageConfig(_Section):
    interest_rate: float = Field(ge=0)  # annual percentage rate
    down_payment_percent: float = Field(ge=0, le=100)
    loan_term_years: int = Field(gt=0)
    points: float = 0.0  # percent of loan amount
    closing_costs_percent: float = 0.0  # percent of purchase price


class OperatingExpensesConfig(_Section):
    # Percent of gross monthly rent
    property_management_percent: float = Field(ge=0)
    maintenance_percent: float = Field(ge=0)
    vacancy_rate: float = Field(ge=0)
    utilities_percent: float = 0.0
    other_expenses_percent: float = 0.0
    # Percent of purchase price, annually
    insurance_percent: float = Field(ge=0)
    property_tax_percent: float = Field(ge=0)
    # Flat monthly
    hoa_fees: float = 0.0


class AppreciationConfig(_Section):
    annual_appreciation_percent: float = Field(gt=-100)
    holding_period_years: float = Field(ge=0)


class RentalConfig(_Section):
    use_hud_data: bool
    hud_data_path: Optional[str] = None
    fallback_rent_percent: float = 0.8  # annual rent as percent of price


class FinancialConfig(_Section):
    mortgage: MortgageConfig
    operating_expenses: OperatingExpensesConfig
    appreciation: AppreciationConfig
    rental: RentalConfig


class RangeFilter(_Section):
    min: Optional[float] = None
    max: Optional[float] = None


class BuyboxConfig(_Section):
    name: str = "default"
    zip_codes: list[str] = []
    property_types: list[str] = []
    price_range: RangeFilter = RangeFilter()
    bedrooms: RangeFilter = RangeFilter()
    bathrooms: RangeFilter = RangeFilter()
    square_feet: RangeFilter = RangeFilter()
    year_built: RangeFilter = RangeFilter()
    days_on_market: Optional[str] = None  # '1', '7', '30', '6m', '12m', ...


class ListingApiConfig(BaseModel):
    source: str = "zillow"
    host: str = "zillow-com1.p.rapidapi.com"
    rate_limit: int = 100  # requests per window
    rate_window: int = 86_400  # seconds
    page_delay: float = 1.0  # seconds between result pages
    timeout: float = 30.0


class StorageConfig(BaseModel):
    data_path: str = "./data"
    retention_days: int = 30


class SchedulerConfig(BaseModel):
    enabled: bool = True
    cron_schedule: str = "0 2 * * *"
    timezone: str = "America/New_York"


class AppConfig(BaseModel):
    financial: FinancialConfig
    buybox: BuyboxConfig = BuyboxConfig()
    listing_api: ListingApiConfig = ListingApiConfig()
    storage: StorageConfig = StorageConfig()
    scheduler: SchedulerConfig = SchedulerConfig()


class Settings(BaseSettings):
    """Secrets and deployment overrides read from the environment."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    rapidapi_key: str = ""
    rapidapi_host: str = ""
    data_path: str = ""
    config_path: str = ""


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def _describe(error: PydanticValidationError) -> str:
    return ", ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML files.

    Loads default.toml first, then merges local.toml or a custom path on top.
    An explicitly given path must exist.
    """
    default_path = CONFIG_DIR / "default.toml"
    data: dict[str, Any] = {}

    if default_path.exists():
        data = _read_toml(default_path)

    if config_path is not None and not Path(config_path).exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    local_path = Path(config_path) if config_path else CONFIG_DIR / "local.toml"
    if local_path.exists():
        data = _deep_merge(data, _read_toml(local_path))

    try:
        return AppConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {_describe(e)}") from e


def load_financial_config(path: Path) -> FinancialConfig:
    """Load a stand-alone financial.json (camelCase keys)."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Financial config file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to load financial config: {e}") from e
    try:
        return FinancialConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid financial config: {_describe(e)}") from e
