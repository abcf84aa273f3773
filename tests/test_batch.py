"""Tests for batch analysis."""

import pytest

from dealflow.analysis import BatchAnalyzer, PropertyAnalyzer, summarize_results
from dealflow.config import FinancialConfig, RentalConfig
from dealflow.models import Property
from dealflow.rent import ReferenceRentMatcher, ReferenceRentStore, RentalEstimator


def _make_property(**overrides) -> Property:
    defaults = dict(
        property_id="1",
        address="123 Main St, Columbus, OH 43211",
        price=150_000,
        bedrooms=3,
        bathrooms=2,
        living_area=1200,
        rent_zestimate=1200,
    )
    defaults.update(overrides)
    return Property(**defaults)


def _financial_config() -> FinancialConfig:
    return FinancialConfig.model_validate(
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


class _FlakyEstimator(RentalEstimator):
    """Raises for property ids in `fail_ids`."""

    def __init__(self, store, fail_ids):
        super().__init__(ReferenceRentMatcher(store))
        self.fail_ids = set(fail_ids)

    def estimate(self, prop: Property, rental: RentalConfig):
        if prop.property_id in self.fail_ids:
            raise RuntimeError("rent service down")
        return super().estimate(prop, rental)


@pytest.fixture
def store(tmp_path):
    return ReferenceRentStore(tmp_path / "hud.json")


@pytest.fixture
def batch_analyzer(store):
    return BatchAnalyzer(PropertyAnalyzer(RentalEstimator(ReferenceRentMatcher(store))))


def test_all_succeed(batch_analyzer):
    properties = [
        _make_property(property_id="a"),
        _make_property(property_id="b", address="9 Elm St, Columbus, OH 43207"),
        _make_property(property_id="c"),
    ]
    batch = batch_analyzer.analyze_batch(properties, _financial_config())

    assert batch.total_properties == 3
    assert batch.successful_analyses == 3
    assert batch.failed_analyses == 0
    assert [r.property_id for r in batch.results] == ["a", "b", "c"]
    assert batch.zip_codes == ["43211", "43207"]


def test_failures_are_recorded(store):
    analyzer = BatchAnalyzer(PropertyAnalyzer(_FlakyEstimator(store, {"b"})))
    properties = [_make_property(property_id=pid) for pid in ("a", "b", "c")]
    batch = analyzer.analyze_batch(properties, _financial_config())

    assert batch.successful_analyses + batch.failed_analyses == batch.total_properties
    assert batch.failed_analyses == 1
    assert [r.property_id for r in batch.results] == ["a", "c"]

    error = batch.errors[0]
    assert error.property_id == "b"
    assert error.error_type == "ANALYSIS_ERROR"
    assert "rent service down" in error.error_message
    assert error.error_details == "RuntimeError: rent service down"
    assert error.context.zip_code == "43211"
    assert error.context.operation == "batch_analysis"


def test_empty_batch(batch_analyzer):
    batch = batch_analyzer.analyze_batch([], _financial_config())
    assert batch.total_properties == 0
    assert batch.successful_analyses == 0
    assert batch.failed_analyses == 0
    assert batch.zip_codes == []
    assert batch.summary.average_cash_flow == 0
    assert batch.summary.average_roi == 0
    assert batch.summary.top_performers == []
    assert batch.summary.data_quality_score == 0


def test_all_fail(store):
    analyzer = BatchAnalyzer(PropertyAnalyzer(_FlakyEstimator(store, {"a", "b"})))
    properties = [_make_property(property_id="a"), _make_property(property_id="b")]
    batch = analyzer.analyze_batch(properties, _financial_config())
    assert batch.failed_analyses == 2
    assert batch.results == []
    assert batch.summary.top_performers == []


def test_summary_top_performers(batch_analyzer):
    # Cheaper properties at the same rent return more on cash
    prices = {"p1": 150_000, "p2": 90_000, "p3": 120_000, "p4": 60_000, "p5": 200_000, "p6": 80_000}
    properties = [_make_property(property_id=pid, price=p) for pid, p in prices.items()]
    batch = batch_analyzer.analyze_batch(properties, _financial_config())

    assert batch.summary.top_performers == ["p4", "p6", "p2", "p3", "p1"]
    rois = [r.financial_metrics.cash_on_cash_return for r in batch.results]
    assert batch.summary.average_roi == pytest.approx(sum(rois) / len(rois), abs=0.01)


def test_data_quality_score(batch_analyzer):
    properties = [
        _make_property(property_id="good", zestimate=155_000, img_src="x.jpg"),
        _make_property(property_id="thin"),
    ]
    batch = batch_analyzer.analyze_batch(properties, _financial_config())
    assert batch.summary.data_quality_score == 50


def test_summarize_results_empty():
    summary = summarize_results([])
    assert summary.average_cap_rate == 0
    assert summary.top_performers == []
