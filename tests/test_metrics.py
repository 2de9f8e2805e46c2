"""
Tests for the performance aggregator: bucketing, percentages, sort order,
partial summaries, team rollups and DataFrame views.
"""

from datetime import date
from decimal import Decimal

import pytest

from utils.target_performance.constants import Category
from utils.target_performance.metrics import (
    PerformanceAggregator,
    aggregate_performance,
    summarize_teams,
    summary_to_frames,
)
from utils.target_performance.models import PeriodInterval, Team, Transaction, YearMonth

SPRING_2025 = PeriodInterval(YearMonth(2025, 3), YearMonth(2025, 4))


@pytest.fixture
def two_month_data(make_transaction, make_target):
    """Actor A: March 2000 vs 4000, April 3000 vs 2000."""
    transactions = [
        make_transaction('A', 1200, 2025, 3),
        make_transaction('A', 800, 2025, 3, day=31),
        make_transaction('A', 3000, 2025, 4, day=1),
    ]
    targets = [
        make_target('A', 4000, 2025, 3),
        make_target('A', 2000, 2025, 4),
    ]
    return transactions, targets


class TestPercentage:

    @pytest.mark.parametrize("actual,target,expected", [
        (2000, 4000, 50),
        (3000, 2000, 150),
        (5000, 6000, 83),
        (1, 8, 13),        # 12.5 rounds half-up
        (1, 300, 0),
        (500, 0, 0),
        (500, -10, 0),
        (0, 100, 0),
    ])
    def test_calc_percentage(self, actual, target, expected):
        assert PerformanceAggregator.calc_percentage(actual, target) == expected


class TestSummarize:

    def test_monthly_and_actor_figures(self, two_month_data):
        transactions, targets = two_month_data
        summary = aggregate_performance(SPRING_2025, Category.SALES, transactions, targets)

        march, april = summary.by_month
        assert march.period == YearMonth(2025, 3)
        assert (march.figures.actual, march.figures.target, march.figures.percentage) == (2000, 4000, 50)
        assert (april.figures.actual, april.figures.target, april.figures.percentage) == (3000, 2000, 150)

        (actor,) = summary.by_actor
        assert actor.actor_id == 'A'
        assert (actor.figures.actual, actor.figures.target, actor.figures.percentage) == (5000, 6000, 83)
        assert summary.percentage == 83

    def test_zero_target_gives_zero_percent(self, make_transaction):
        summary = aggregate_performance(
            PeriodInterval(), Category.SALES, [make_transaction('A', 500, 2025, 3)], []
        )
        assert summary.total_target == 0
        assert summary.percentage == 0
        assert summary.by_actor_month[0].figures.percentage == 0

    def test_filters_by_interval_and_category(self, make_transaction, make_target):
        transactions = [
            make_transaction('A', 100, 2025, 2),
            make_transaction('A', 200, 2025, 3),
            make_transaction('A', 400, 2025, 3, category=Category.ORDERS),
            make_transaction('A', 800, 2025, 5),
        ]
        targets = [make_target('A', 1000, 2025, 3, category=Category.ORDERS)]

        summary = aggregate_performance(SPRING_2025, Category.SALES, transactions, targets)
        assert summary.total_actual == 200
        assert summary.total_target == 0

    def test_target_only_month_still_listed(self, make_target):
        summary = aggregate_performance(
            SPRING_2025, Category.SALES, [], [make_target('A', 1000, 2025, 4)]
        )
        assert [m.period for m in summary.by_month] == [YearMonth(2025, 4)]
        assert summary.by_month[0].figures.actual == 0

    def test_quantities_aggregate(self, make_transaction, make_target):
        transactions = [
            make_transaction('A', 100, 2025, 3, quantity=2),
            make_transaction('A', 100, 2025, 3, quantity=3),
            make_transaction('A', 100, 2025, 4, quantity=1),
        ]
        targets = [
            make_target('A', 500, 2025, 3, quantity=10),
            make_target('A', 500, 2025, 4, quantity=10),
        ]
        summary = aggregate_performance(SPRING_2025, Category.SALES, transactions, targets)
        actor = summary.by_actor[0].figures
        assert actor.actual_quantity == 6
        assert actor.target_quantity == 20

    def test_duplicate_targets_sum_amount_keep_first_quantity(self, make_target):
        targets = [
            make_target('A', 1000, 2025, 3, quantity=10),
            make_target('A', 500, 2025, 3, quantity=7),
        ]
        summary = aggregate_performance(SPRING_2025, Category.SALES, [], targets)
        cell = summary.by_actor_month[0].figures
        assert cell.target == 1500
        assert cell.target_quantity == 10

    def test_actor_sort_order(self, make_transaction):
        transactions = [
            make_transaction('B', 100, 2025, 3),
            make_transaction('C', 300, 2025, 3),
            make_transaction('A', 100, 2025, 3),
        ]
        summary = aggregate_performance(SPRING_2025, Category.SALES, transactions, [])
        assert [a.actor_id for a in summary.by_actor] == ['C', 'A', 'B']

    def test_months_chronological_across_years(self, make_transaction):
        transactions = [
            make_transaction('A', 1, 2025, 1),
            make_transaction('A', 1, 2024, 12),
            make_transaction('A', 1, 2024, 2),
        ]
        summary = aggregate_performance(PeriodInterval(), Category.SALES, transactions, [])
        assert [m.period for m in summary.by_month] == [
            YearMonth(2024, 2), YearMonth(2024, 12), YearMonth(2025, 1)
        ]

    def test_accepts_plain_dates(self):
        transaction = Transaction(Category.SALES, 'A', Decimal('50'), Decimal('1'), date(2025, 3, 1))
        summary = aggregate_performance(SPRING_2025, Category.SALES, [transaction], [])
        assert summary.total_actual == 50


class TestEmptyAndPartial:

    def test_empty_inputs(self):
        summary = aggregate_performance(SPRING_2025, Category.ORDERS, [], [])
        assert summary.by_month == ()
        assert summary.by_actor == ()
        assert summary.total_actual == 0
        assert summary.percentage == 0
        assert not summary.is_partial

    def test_failed_source_flags_summary(self, two_month_data):
        transactions, _ = two_month_data
        summary = PerformanceAggregator(transactions, [], failed_sources=['targets']).summarize(
            SPRING_2025, Category.SALES
        )
        assert summary.is_partial
        assert summary.failed_sources == ('targets',)
        assert summary.total_actual == 5000
        assert summary.percentage == 0


class TestTeamRollup:

    def test_team_figures(self, make_transaction, make_target):
        transactions = [
            make_transaction('X', 1000, 2025, 3),
            make_transaction('Z', 3000, 2025, 3),
            make_transaction('Q', 9999, 2025, 3),
        ]
        targets = [make_target('X', 2000, 2025, 3), make_target('Z', 2000, 2025, 3)]
        summary = aggregate_performance(SPRING_2025, Category.SALES, transactions, targets)

        teams = [
            Team('A', 'Team A', member_ids=('X', 'Y', 'Z')),
            Team('B', 'Team B', member_ids=('Y',)),
        ]
        team_a, team_b = summarize_teams(summary, teams)

        assert team_a.team_id == 'A'
        assert team_a.member_count == 3
        assert (team_a.figures.actual, team_a.figures.target, team_a.figures.percentage) == (4000, 4000, 100)
        assert team_b.figures.actual == 0
        assert team_b.figures.percentage == 0


class TestFrames:

    def test_summary_to_frames(self, two_month_data):
        transactions, targets = two_month_data
        summary = aggregate_performance(SPRING_2025, Category.SALES, transactions, targets)
        frames = summary_to_frames(summary, {'A': 'Anh'})

        assert list(frames['by_month']['period']) == ['March 2025', 'April 2025']
        assert list(frames['by_month']['percentage']) == [50, 150]
        assert frames['by_actor'].iloc[0]['name'] == 'Anh'

    def test_empty_frames_keep_columns(self):
        summary = aggregate_performance(SPRING_2025, Category.SALES, [], [])
        frames = summary_to_frames(summary)
        assert frames['by_actor'].empty
        assert 'percentage' in frames['by_actor'].columns
