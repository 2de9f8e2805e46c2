"""
Tests for year discovery: data years plus the current year, and the
fallback window when nothing is found or a source fails.
"""

from datetime import date

from utils.target_performance.period_discovery import (
    discover_years,
    discover_years_from_sources,
    fallback_years,
)

TODAY = date(2025, 4, 1)


class TestFallbackYears:

    def test_default_window(self):
        assert fallback_years(TODAY) == [2025, 2024, 2023, 2022, 2021]

    def test_custom_window(self):
        assert fallback_years(TODAY, window=2) == [2025, 2024]


class TestDiscoverYears:

    def test_union_of_sources_plus_current_year(self, make_transaction, make_target):
        transactions = [make_transaction('A', 10, 2022, 5), make_transaction('A', 10, 2024, 1)]
        targets = [make_target('A', 100, 2023, 12), make_target('A', 100, 2024, 2)]
        assert discover_years(transactions, targets, today=TODAY) == [2025, 2024, 2023, 2022]

    def test_future_target_year_included(self, make_target):
        assert discover_years([], [make_target('A', 100, 2026, 1)], today=TODAY) == [2026, 2025]

    def test_empty_data_uses_fallback(self):
        assert discover_years([], [], today=TODAY, fallback_window=3) == [2025, 2024, 2023]


class TestDiscoverFromSources:

    def test_success(self, make_transaction):
        years = discover_years_from_sources(
            lambda: [make_transaction('A', 10, 2023, 6)],
            lambda: [],
            today=TODAY,
        )
        assert years == [2025, 2023]

    def test_failing_source_uses_fallback(self, make_transaction):
        def broken():
            raise ConnectionError("database unavailable")

        years = discover_years_from_sources(
            lambda: [make_transaction('A', 10, 2019, 6)],
            broken,
            today=TODAY,
            fallback_window=2,
        )
        assert years == [2025, 2024]
