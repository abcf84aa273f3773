"""Tests for the single-property analysis engine."""

import pytest

from dealflow.analysis import PropertyAnalyzer
from dealflow.config import FinancialConfig
from dealflow.errors import AnalysisError
from dealflow.models import Confidence, Property, RentSource
from dealflow.rent import ReferenceRentMatcher, ReferenceRentStore, RentalEstimator


def _make_property(**overrides) -> Property:
    defaults = dict(
        property_id="12345",
        address="123 Main St, Columbus, OH 43211",
        price=150_000,
        bedrooms=3,
        bathrooms=2,
        living_area=1200,
        rent_zestimate=1200,
    )
    defaults.update(overrides)
    return Property(**defaults)


def _financial_config(**rental) -> FinancialConfig:
    return FinancialConfig.model_validate(
        {
            "mortgage": {
                "interest_rate": 7.5,
                "down_payment_percent": 20,
                "loan_term_years": 30,
            },
            "operating_expenses": {
                "property_management_percent": 10,
                "maintenance_percent": 8,
                "vacancy_rate": 5,
                "insurance_percent": 0.5,
                "property_tax_percent": 1.2,
            },
            "appreciation": {"annual_appreciation_percent": 3, "holding_period_years": 10},
            "rental": {"use_hud_data": False, **rental},
        }
    )


@pytest.fixture
def analyzer(tmp_path):
    store = ReferenceRentStore(tmp_path / "hud.json")
    return PropertyAnalyzer(RentalEstimator(ReferenceRentMatcher(store)))


def test_analyze_end_to_end(analyzer):
    result = analyzer.analyze(_make_property(), _financial_config())
    m = result.financial_metrics

    assert result.property_id == "12345"
    assert result.zip_code == "43211"
    assert result.rental_estimate.source == RentSource.LISTING_API
    assert result.rental_estimate.confidence == Confidence.MEDIUM

    assert m.monthly_rent == 1200
    assert m.monthly_mortgage_payment == pytest.approx(839.06, abs=0.01)
    assert m.monthly_interest_payment == 750
    assert m.monthly_principal_payment == pytest.approx(89.06, abs=0.01)
    assert m.monthly_operating_expenses == 488.5
    assert m.net_operating_income == 8538
    assert m.monthly_cash_flow == pytest.approx(-127.56, abs=0.01)
    assert m.annual_cash_flow == pytest.approx(-1530.72, abs=0.02)
    assert m.total_cash_invested == 30_000
    assert m.cash_on_cash_return == pytest.approx(-5.10, abs=0.01)
    assert m.cap_rate == 5.69
    assert m.gross_rent_multiplier == 10.42
    assert m.debt_service_coverage_ratio == pytest.approx(0.85, abs=0.01)
    assert m.projected_value == pytest.approx(201_587.46, abs=0.01)
    assert m.appreciation_value == pytest.approx(51_587.46, abs=0.01)
    assert m.total_return == pytest.approx(36_280.26, abs=0.05)
    assert m.total_return_projected == m.total_return
    assert m.total_cash_flow_projected == pytest.approx(-15_307.2, abs=0.2)
    assert m.annualized_return == 3.0
    assert m.operating_expenses_breakdown.property_tax == 150
    assert m.mortgage_details.down_payment == 30_000


def test_assumptions_snapshot(analyzer):
    result = analyzer.analyze(_make_property(), _financial_config())
    a = result.assumptions
    assert a.mortgage_rate == 7.5
    assert a.down_payment_percent == 20
    assert a.vacancy_rate == 5
    assert a.annual_appreciation_percent == 3


def test_data_quality(analyzer):
    result = analyzer.analyze(_make_property(), _financial_config())
    quality = result.data_quality
    assert quality.has_rental_data
    assert not quality.has_zestimate
    assert not quality.has_price_history
    assert quality.missing_data_fields == [
        "zestimate",
        "imgSrc",
        "priceChange",
        "datePriceChanged",
    ]


def test_fallback_rent_has_no_rental_data(analyzer):
    result = analyzer.analyze(_make_property(rent_zestimate=None), _financial_config())
    assert result.rental_estimate.source == RentSource.FALLBACK
    assert result.financial_metrics.monthly_rent == 100.0
    assert not result.data_quality.has_rental_data
    assert "rentZestimate" in result.data_quality.missing_data_fields


def test_result_serializes_camel_case(analyzer):
    result = analyzer.analyze(_make_property(), _financial_config())
    data = result.model_dump(mode="json", by_alias=True)
    assert data["propertyId"] == "12345"
    assert "cashOnCashReturn" in data["financialMetrics"]
    assert data["rentalEstimate"]["source"] == "LISTING_API"


def test_failure_raises_analysis_error(analyzer):
    config = _financial_config()
    bad_mortgage = config.mortgage.model_copy(update={"loan_term_years": 0, "interest_rate": 0})
    config = config.model_copy(update={"mortgage": bad_mortgage})

    with pytest.raises(AnalysisError) as exc_info:
        analyzer.analyze(_make_property(), config)
    assert exc_info.value.property_id == "12345"
    assert "12345" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, ZeroDivisionError)
