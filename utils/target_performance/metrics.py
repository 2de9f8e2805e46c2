"""
Performance Aggregation for Target Performance

Handles all actual-vs-target calculations:
- Bucketing transactions and targets by (actor, year, month)
- Per-cell, per-actor, per-month and overall achievement percentages
- Team rollups
- DataFrame views for page code

Inputs are assumed already scoped (individual, team or organization) by
the caller; this module only filters by category and period.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .constants import Category
from .models import (
    ActorMonthPerformance,
    ActorPerformance,
    MonthlyPerformance,
    PerformanceFigures,
    PerformanceSummary,
    PeriodInterval,
    TargetRecord,
    Team,
    TeamPerformance,
    Transaction,
    YearMonth,
)

logger = logging.getLogger(__name__)

BUCKET_KEYS = ['actor_id', 'year', 'month']
FIGURE_COLUMNS = ['actual', 'target', 'actual_quantity', 'target_quantity']


def _empty_buckets(*figure_columns: str) -> pd.DataFrame:
    """Typed empty bucket frame so outer merges keep integer keys."""
    return pd.DataFrame({
        'actor_id': pd.Series(dtype=object),
        'year': pd.Series(dtype='int64'),
        'month': pd.Series(dtype='int64'),
        **{column: pd.Series(dtype=float) for column in figure_columns},
    })


class PerformanceAggregator:
    """
    Actual-vs-target aggregation over a canonical period.

    Usage:
        aggregator = PerformanceAggregator(transactions, targets)
        summary = aggregator.summarize(interval, Category.SALES)

        for row in summary.by_actor:
            print(row.actor_id, row.figures.percentage)
    """

    def __init__(
        self,
        transactions: Iterable[Transaction],
        targets: Iterable[TargetRecord],
        failed_sources: Sequence[str] = ()
    ):
        """
        Initialize with data.

        Args:
            transactions: Sales/orders, any category
            targets: Target records, any category
            failed_sources: Sources that failed to load and were replaced
                            by empty sets; marks summaries as partial
        """
        self.transactions = list(transactions)
        self.targets = list(targets)
        self.failed_sources = tuple(failed_sources)

    # =========================================================================
    # PERCENTAGE
    # =========================================================================

    @staticmethod
    def calc_percentage(actual: float, target: float) -> int:
        """
        Achievement percentage, rounded half-up to an integer.

        A zero or missing target yields 0, never a division error. The true
        ratio is reported; clamping for display is up to the caller.
        """
        if not target or target <= 0:
            return 0
        ratio = actual / target * 100
        if not math.isfinite(ratio):
            return 0
        return int(math.floor(ratio + 0.5))

    # =========================================================================
    # BUCKETING
    # =========================================================================

    def _bucket_transactions(self, interval: PeriodInterval, category: Category) -> pd.DataFrame:
        """Sum transaction amount and quantity per (actor, year, month)."""
        rows = [
            {
                'actor_id': t.actor_id,
                'year': t.occurred_at.year,
                'month': t.occurred_at.month,
                'actual': float(t.amount),
                'actual_quantity': float(t.quantity),
            }
            for t in self.transactions
            if t.category == category
            and interval.contains(t.occurred_at.year, t.occurred_at.month)
        ]

        if not rows:
            return _empty_buckets('actual', 'actual_quantity')

        return pd.DataFrame(rows).groupby(BUCKET_KEYS, as_index=False).agg(
            actual=('actual', 'sum'),
            actual_quantity=('actual_quantity', 'sum')
        )

    def _bucket_targets(self, interval: PeriodInterval, category: Category) -> pd.DataFrame:
        """
        Sum target amounts per (actor, year, month).

        Several records in one bucket should not happen after apportionment
        but are tolerated: amounts add up, quantity is taken from the first
        record since quantity is uniform rather than additive.
        """
        rows = [
            {
                'actor_id': r.actor_id,
                'year': r.year,
                'month': r.month,
                'target': float(r.amount),
                'target_quantity': float(r.quantity),
            }
            for r in self.targets
            if r.category == category and interval.contains(r.year, r.month)
        ]

        if not rows:
            return _empty_buckets('target', 'target_quantity')

        df = pd.DataFrame(rows)
        duplicated = df.duplicated(BUCKET_KEYS).sum()
        if duplicated:
            logger.warning(f"{duplicated} duplicate target records merged into existing buckets")

        return df.groupby(BUCKET_KEYS, as_index=False).agg(
            target=('target', 'sum'),
            target_quantity=('target_quantity', 'first')
        )

    def build_cells(self, interval: PeriodInterval, category: Category) -> pd.DataFrame:
        """
        One row per (actor, year, month) present in either source.

        Returns:
            DataFrame with actor_id, year, month, actual, target,
            actual_quantity, target_quantity, percentage
        """
        actual_df = self._bucket_transactions(interval, category)
        target_df = self._bucket_targets(interval, category)

        cells = actual_df.merge(target_df, on=BUCKET_KEYS, how='outer')
        for column in FIGURE_COLUMNS:
            cells[column] = pd.to_numeric(cells[column]).fillna(0.0).astype(float)

        if cells.empty:
            cells['percentage'] = pd.Series(dtype=int)
            return cells

        cells['year'] = cells['year'].astype(int)
        cells['month'] = cells['month'].astype(int)
        cells['percentage'] = [
            self.calc_percentage(actual, target)
            for actual, target in zip(cells['actual'], cells['target'])
        ]
        return cells.sort_values(BUCKET_KEYS).reset_index(drop=True)

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def summarize(self, interval: PeriodInterval, category: Category) -> PerformanceSummary:
        """
        Build the performance summary for a category and period.

        Returns:
            PerformanceSummary with totals, chronological per-month rows,
            per-actor rows sorted by actual descending, and per-cell rows
        """
        cells = self.build_cells(interval, category)
        is_partial = bool(self.failed_sources)

        if cells.empty:
            logger.info(f"No {category.value} data in period; returning empty summary")
            return PerformanceSummary(
                category=category,
                interval=interval,
                totals=PerformanceFigures(),
                is_partial=is_partial,
                failed_sources=self.failed_sources,
            )

        by_actor_month = tuple(
            ActorMonthPerformance(
                actor_id=row.actor_id,
                period=YearMonth(int(row.year), int(row.month)),
                figures=self._figures_from_row(row),
            )
            for row in cells.itertuples(index=False)
        )

        # Per-actor totals across months
        actor_df = cells.groupby('actor_id', as_index=False)[FIGURE_COLUMNS].sum()
        actor_df = actor_df.sort_values(['actual', 'actor_id'], ascending=[False, True])
        by_actor = tuple(
            ActorPerformance(actor_id=row.actor_id, figures=self._figures_from_row(row))
            for row in actor_df.itertuples(index=False)
        )

        # Per-month totals across actors
        month_df = cells.groupby(['year', 'month'], as_index=False)[FIGURE_COLUMNS].sum()
        month_df = month_df.sort_values(['year', 'month'])
        by_month = tuple(
            MonthlyPerformance(
                period=YearMonth(int(row.year), int(row.month)),
                figures=self._figures_from_row(row),
            )
            for row in month_df.itertuples(index=False)
        )

        totals = self._make_figures(
            cells['actual'].sum(),
            cells['target'].sum(),
            cells['actual_quantity'].sum(),
            cells['target_quantity'].sum(),
        )

        logger.info(
            f"{category.value} summary: actual={totals.actual:,.2f}, "
            f"target={totals.target:,.2f}, {totals.percentage}% "
            f"({len(by_actor)} actors, {len(by_month)} months)"
            + (f" PARTIAL: {', '.join(self.failed_sources)}" if is_partial else "")
        )

        return PerformanceSummary(
            category=category,
            interval=interval,
            totals=totals,
            by_month=by_month,
            by_actor=by_actor,
            by_actor_month=by_actor_month,
            is_partial=is_partial,
            failed_sources=self.failed_sources,
        )

    def _figures_from_row(self, row) -> PerformanceFigures:
        return self._make_figures(row.actual, row.target, row.actual_quantity, row.target_quantity)

    def _make_figures(
        self,
        actual: float,
        target: float,
        actual_quantity: float,
        target_quantity: float
    ) -> PerformanceFigures:
        actual = float(actual)
        target = float(target)
        return PerformanceFigures(
            actual=round(actual, 2),
            target=round(target, 2),
            percentage=self.calc_percentage(actual, target),
            actual_quantity=float(actual_quantity),
            target_quantity=float(target_quantity),
        )


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def aggregate_performance(
    interval: PeriodInterval,
    category: Category,
    transactions: Iterable[Transaction],
    targets: Iterable[TargetRecord],
    failed_sources: Sequence[str] = ()
) -> PerformanceSummary:
    """Summarize performance in one call."""
    aggregator = PerformanceAggregator(transactions, targets, failed_sources)
    return aggregator.summarize(interval, category)


# =============================================================================
# TEAM ROLLUP
# =============================================================================

def summarize_teams(
    summary: PerformanceSummary,
    teams: Iterable[Team]
) -> List[TeamPerformance]:
    """
    Roll per-actor figures up to teams.

    An actor in two teams counts toward both teams; organization totals in
    the summary are unaffected.

    Returns:
        TeamPerformance rows sorted by actual descending
    """
    by_actor = {row.actor_id: row.figures for row in summary.by_actor}
    results = []

    for team in teams:
        members = [by_actor[m] for m in team.member_ids if m in by_actor]
        actual = sum(f.actual for f in members)
        target = sum(f.target for f in members)
        results.append(
            TeamPerformance(
                team_id=team.team_id,
                team_name=team.name,
                member_count=len(team.member_ids),
                figures=PerformanceFigures(
                    actual=round(actual, 2),
                    target=round(target, 2),
                    percentage=PerformanceAggregator.calc_percentage(actual, target),
                    actual_quantity=sum(f.actual_quantity for f in members),
                    target_quantity=sum(f.target_quantity for f in members),
                ),
            )
        )

    results.sort(key=lambda t: (-t.figures.actual, t.team_name))
    return results


# =============================================================================
# DATAFRAME VIEWS
# =============================================================================

def summary_to_frames(
    summary: PerformanceSummary,
    actor_names: Optional[Mapping[str, str]] = None
) -> Dict[str, pd.DataFrame]:
    """
    Flatten a summary into DataFrames for tables.

    Args:
        summary: Result of PerformanceAggregator.summarize()
        actor_names: Optional actor_id -> display name

    Returns:
        Dict with 'by_month' and 'by_actor' DataFrames
    """
    names = actor_names or {}

    by_month = pd.DataFrame([
        {
            'period': row.period.label,
            'year': row.period.year,
            'month': row.period.month,
            **_figures_dict(row.figures),
        }
        for row in summary.by_month
    ], columns=['period', 'year', 'month', 'actual', 'target', 'percentage',
                'actual_quantity', 'target_quantity'])

    by_actor = pd.DataFrame([
        {
            'actor_id': row.actor_id,
            'name': names.get(row.actor_id, row.actor_id),
            **_figures_dict(row.figures),
        }
        for row in summary.by_actor
    ], columns=['actor_id', 'name', 'actual', 'target', 'percentage',
                'actual_quantity', 'target_quantity'])

    return {'by_month': by_month, 'by_actor': by_actor}


def _figures_dict(figures: PerformanceFigures) -> Dict[str, float]:
    return {
        'actual': figures.actual,
        'target': figures.target,
        'percentage': figures.percentage,
        'actual_quantity': figures.actual_quantity,
        'target_quantity': figures.target_quantity,
    }
