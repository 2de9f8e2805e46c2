"""
Tests for the data loader: per-source failure tracking, partial summaries,
scoping through AccessControl, and year options.
"""

from datetime import date

import pytest

from utils.target_performance import data_loader
from utils.target_performance.access_control import AccessControl
from utils.target_performance.constants import Category
from utils.target_performance.data_loader import PerformanceDataLoader
from utils.target_performance.exceptions import PartialFetchFailure
from utils.target_performance.models import PeriodInterval, YearMonth

MARCH_2025 = PeriodInterval(YearMonth(2025, 3), YearMonth(2025, 3))


def _broken(*args):
    raise ConnectionError("database unavailable")


@pytest.fixture
def sample_data(make_transaction, make_target):
    transactions = [
        make_transaction('X', 2000, 2025, 3),
        make_transaction('Y', 700, 2025, 3, category=Category.ORDERS),
        make_transaction('Z', 1000, 2025, 3),
    ]
    targets = [make_target('X', 4000, 2025, 3), make_target('Z', 1000, 2025, 3)]
    return transactions, targets


@pytest.fixture
def loader(sample_data, actors, teams):
    transactions, targets = sample_data
    return PerformanceDataLoader(
        fetch_transactions=lambda category, interval: [
            t for t in transactions if t.category == category
        ],
        fetch_target_records=lambda category, interval: [
            r for r in targets if category is None or r.category == category
        ],
        fetch_actors=lambda: actors.values(),
        fetch_teams=lambda: teams.values(),
    )


class TestLoad:

    def test_complete_load(self, loader):
        inputs = loader.load(Category.SALES, MARCH_2025)
        assert len(inputs.transactions) == 2
        assert len(inputs.targets) == 2
        assert not inputs.is_partial
        inputs.raise_if_partial()

    def test_failed_targets_source(self, sample_data):
        transactions, _ = sample_data
        loader = PerformanceDataLoader(lambda c, i: transactions, _broken)

        inputs = loader.load(Category.SALES, MARCH_2025)
        assert inputs.failed_sources == ('targets',)
        assert inputs.targets == []
        assert len(inputs.transactions) == 3

        with pytest.raises(PartialFetchFailure) as exc_info:
            inputs.raise_if_partial()
        assert exc_info.value.failed_sources == ('targets',)

    def test_both_sources_failed(self):
        inputs = PerformanceDataLoader(_broken, _broken).load(Category.ORDERS, MARCH_2025)
        assert inputs.failed_sources == ('transactions', 'targets')


class TestDirectory:

    def test_keyed_by_id(self, loader):
        directory = loader.load_directory()
        assert list(directory.actors) == ['X', 'Y', 'Z', 'W']
        assert set(directory.teams) == {'A', 'B', 'C'}
        assert directory.failed_sources == ()

    def test_failed_teams(self, actors):
        loader = PerformanceDataLoader(_broken, _broken, lambda: actors.values(), _broken)
        directory = loader.load_directory()
        assert directory.teams == {}
        assert len(directory.actors) == 4
        assert directory.failed_sources == ('teams',)


class TestSummarize:

    def test_organization_summary(self, loader):
        summary = loader.summarize(Category.SALES, MARCH_2025)
        assert summary.total_actual == 3000
        assert summary.total_target == 5000
        assert summary.percentage == 60

    def test_scoped_to_employee(self, loader, actors, teams):
        access = AccessControl('employee', 'Z', actors, teams)
        summary = loader.summarize(Category.SALES, MARCH_2025, access)
        assert [a.actor_id for a in summary.by_actor] == ['Z']
        assert summary.percentage == 100

    def test_partial_summary(self, sample_data):
        transactions, _ = sample_data
        loader = PerformanceDataLoader(lambda c, i: transactions, _broken)
        summary = loader.summarize(Category.SALES, MARCH_2025)
        assert summary.is_partial
        assert summary.failed_sources == ('targets',)
        assert summary.total_actual == 3000


class TestAvailableYears:

    def test_years_from_all_categories(self, loader):
        assert loader.available_years(today=date(2026, 1, 10)) == [2026, 2025]

    def test_fallback_on_failure(self, monkeypatch):
        monkeypatch.setattr(data_loader.config, 'get_app_setting', lambda key, default=None: 3)
        loader = PerformanceDataLoader(_broken, _broken)
        assert loader.available_years(today=date(2025, 4, 1)) == [2025, 2024, 2023]
