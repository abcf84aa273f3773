"""Tests for property collection and the scheduled cycle."""

import asyncio

import pytest

from dealflow.analysis import BatchAnalyzer, PropertyAnalyzer
from dealflow.collector import PropertyCollector, group_by_zip
from dealflow.config import BuyboxConfig, ListingApiConfig, Settings, load_config
from dealflow.errors import PropertySourceError
from dealflow.models import Property
from dealflow.rent import ReferenceRentMatcher, ReferenceRentStore, RentalEstimator
from dealflow.scheduler import build_scheduler, run_cycle
from dealflow.sources.base import PropertySource
from dealflow.storage import AnalysisRepository


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


class FakeSource(PropertySource):
    SOURCE_NAME = "fake"

    def __init__(self, properties=None, error=None, **config):
        super().__init__(ListingApiConfig(**config))
        self.properties = properties or []
        self.error = error
        self.closed = False

    async def fetch_buybox(self, buybox):
        if self.error:
            raise self.error
        self.request_count += 1
        return self.properties

    async def close(self):
        self.closed = True


@pytest.fixture
def repo(tmp_path):
    return AnalysisRepository(tmp_path / "data")


@pytest.fixture
def batch_analyzer(tmp_path):
    store = ReferenceRentStore(tmp_path / "hud.json")
    return BatchAnalyzer(PropertyAnalyzer(RentalEstimator(ReferenceRentMatcher(store))))


def _buybox() -> BuyboxConfig:
    return BuyboxConfig(name="starter", zip_codes=["43211", "43207"])


def test_group_by_zip():
    grouped = group_by_zip(
        [
            _make_property(property_id="1"),
            _make_property(property_id="2", address="9 Elm St, Columbus, OH 43207"),
            _make_property(property_id="3", address="no zip here"),
            _make_property(property_id="4"),
        ]
    )
    assert {k: [p.property_id for p in v] for k, v in grouped.items()} == {
        "43211": ["1", "4"],
        "43207": ["2"],
        "unknown": ["3"],
    }


class TestPropertyCollector:
    def test_collect_saves_by_zip(self, repo):
        source = FakeSource(
            [
                _make_property(property_id="1"),
                _make_property(property_id="2", address="9 Elm St, Columbus, OH 43207"),
            ]
        )
        result = asyncio.run(PropertyCollector(source, repo).collect(_buybox()))

        assert result.success
        assert result.errors == []
        assert result.stats.total_properties == 2
        assert result.stats.zip_codes_processed == 2
        assert result.stats.api_requests_used == 1
        assert result.stats.remaining_requests == 99

        day = repo.available_dates("43207")[0]
        saved = repo.load_properties("43207", day, "starter")
        assert [p.property_id for p in saved] == ["2"]
        assert repo.available_zip_codes() == ["43207", "43211"]

    def test_api_failure_is_recorded(self, repo):
        source = FakeSource(error=PropertySourceError("Invalid API key"))
        result = asyncio.run(PropertyCollector(source, repo).collect(_buybox()))

        assert not result.success
        assert result.properties == []
        error = result.errors[0]
        assert error.error_type == "API_ERROR"
        assert error.error_details == "Invalid API key"
        assert error.context.operation == "fetch_properties"
        assert error.context.buybox_name == "starter"

        stored = repo.load_errors(error.timestamp.date().isoformat())
        assert [e.error_type for e in stored] == ["API_ERROR"]


class TestRunCycle:
    def setup_method(self):
        self.cfg = load_config()
        self.cfg.financial.rental.use_hud_data = False

    def test_full_cycle(self, repo, batch_analyzer):
        source = FakeSource(
            [
                _make_property(property_id="1"),
                _make_property(property_id="2", address="9 Elm St, Columbus, OH 43207"),
            ]
        )
        result = asyncio.run(
            run_cycle(self.cfg, Settings(), source=source, repo=repo, batch_analyzer=batch_analyzer)
        )

        assert result.success
        assert source.closed
        buybox = self.cfg.buybox.name
        assert repo.analyzed_zip_codes() == ["43207", "43211"]
        day = repo.analysis_dates("43211")[0]
        results = repo.load_analysis_results("43211", day, buybox)
        assert [r.property_id for r in results] == ["1"]

    def test_failed_fetch_skips_analysis(self, repo, batch_analyzer):
        source = FakeSource(error=PropertySourceError("boom"))
        result = asyncio.run(
            run_cycle(self.cfg, Settings(), source=source, repo=repo, batch_analyzer=batch_analyzer)
        )
        assert not result.success
        assert source.closed
        assert repo.analyzed_zip_codes() == []

    def test_skipped_without_api_key(self, repo):
        settings = Settings(rapidapi_key="")
        assert asyncio.run(run_cycle(self.cfg, settings, repo=repo)) is None

    def test_skipped_when_budget_spent(self, repo, batch_analyzer):
        source = FakeSource([_make_property()], rate_limit=0)
        result = asyncio.run(
            run_cycle(self.cfg, Settings(), source=source, repo=repo, batch_analyzer=batch_analyzer)
        )
        assert result is None
        assert repo.available_zip_codes() == []


def test_build_scheduler():
    cfg = load_config()
    scheduler = build_scheduler(cfg, Settings())
    jobs = scheduler.get_jobs()
    assert len(jobs) == 1
    assert jobs[0].id == "collection_cycle"
