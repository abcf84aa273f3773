"""Tests for configuration loading."""

import json

import pytest

from dealflow.config import AppConfig, FinancialConfig, load_config, load_financial_config
from dealflow.errors import ConfigurationError


def test_load_default_config():
    cfg = load_config()
    assert isinstance(cfg, AppConfig)
    assert cfg.financial.mortgage.interest_rate > 0
    assert len(cfg.buybox.zip_codes) > 0


def test_config_has_all_sections():
    cfg = load_config()
    assert cfg.financial.mortgage.loan_term_years == 30
    assert cfg.financial.operating_expenses.vacancy_rate >= 0
    assert cfg.financial.appreciation.holding_period_years > 0
    assert cfg.financial.rental.fallback_rent_percent == 0.8
    assert cfg.listing_api.rate_limit == 100
    assert cfg.listing_api.rate_window == 86_400
    assert cfg.storage.retention_days == 30
    assert cfg.scheduler.cron_schedule == "0 2 * * *"


def test_config_deep_merge():
    from dealflow.config import _deep_merge

    base = {"a": {"b": 1, "c": 2}, "d": 3}
    override = {"a": {"b": 10}, "e": 5}
    result = _deep_merge(base, override)
    assert result == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}


def test_explicit_path_overrides_defaults(tmp_path):
    local = tmp_path / "local.toml"
    local.write_text("[financial.mortgage]\ninterest_rate = 6.25\n")
    cfg = load_config(local)
    assert cfg.financial.mortgage.interest_rate == 6.25
    # Untouched keys keep their defaults
    assert cfg.financial.mortgage.down_payment_percent == 20


def test_missing_explicit_path_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "nope.toml")


def test_invalid_toml_raises(tmp_path):
    bad = tmp_path / "bad.toml"
    bad.write_text("[financial.mortgage\ninterest_rate = ")
    with pytest.raises(ConfigurationError, match="Invalid TOML"):
        load_config(bad)


def test_schema_violation_raises(tmp_path):
    bad = tmp_path / "bad.toml"
    bad.write_text("[financial.mortgage]\ndown_payment_percent = 150\n")
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(bad)


def test_optional_fields_get_defaults():
    cfg = FinancialConfig.model_validate(
        {
            "mortgage": {"interestRate": 7.5, "downPaymentPercent": 20, "loanTermYears": 30},
            "operatingExpenses": {
                "propertyManagementPercent": 10,
                "maintenancePercent": 8,
                "vacancyRate": 5,
                "insurancePercent": 0.5,
                "propertyTaxPercent": 1.2,
            },
            "appreciation": {"annualAppreciationPercent": 3, "holdingPeriodYears": 10},
            "rental": {"useHudData": False},
        }
    )
    assert cfg.mortgage.points == 0
    assert cfg.mortgage.closing_costs_percent == 0
    assert cfg.operating_expenses.hoa_fees == 0
    assert cfg.operating_expenses.utilities_percent == 0
    assert cfg.rental.fallback_rent_percent == 0.8
    assert cfg.rental.hud_data_path is None


def test_load_financial_json(tmp_path):
    path = tmp_path / "financial.json"
    path.write_text(
        json.dumps(
            {
                "mortgage": {"interestRate": 6, "downPaymentPercent": 25, "loanTermYears": 15},
                "operatingExpenses": {
                    "propertyManagementPercent": 8,
                    "maintenancePercent": 5,
                    "vacancyRate": 4,
                    "insurancePercent": 0.4,
                    "propertyTaxPercent": 1.0,
                    "hoaFees": 50,
                },
                "appreciation": {"annualAppreciationPercent": 2, "holdingPeriodYears": 5},
                "rental": {"useHudData": True, "hudDataPath": "./hud.json"},
            }
        )
    )
    cfg = load_financial_config(path)
    assert cfg.mortgage.loan_term_years == 15
    assert cfg.operating_expenses.hoa_fees == 50
    assert cfg.rental.hud_data_path == "./hud.json"


def test_load_financial_json_missing_group(tmp_path):
    path = tmp_path / "financial.json"
    path.write_text(json.dumps({"mortgage": {"interestRate": 6}}))
    with pytest.raises(ConfigurationError):
        load_financial_config(path)
