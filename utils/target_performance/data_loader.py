"""
Data Loader for Target Performance

Runs the fetchers a dashboard needs and keeps going when one of them fails:
the failed source becomes an empty set and is recorded, so the page can
still render what it has and flag the result as partial.

Fetchers are plain callables (usually bound methods of
TargetPerformanceQueries), which keeps this module testable without a
database.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from utils.config import config
from .access_control import AccessControl
from .constants import (
    Category,
    SOURCE_ACTORS,
    SOURCE_TARGETS,
    SOURCE_TEAMS,
    SOURCE_TRANSACTIONS,
    YEAR_FALLBACK_WINDOW,
)
from .exceptions import PartialFetchFailure
from .metrics import PerformanceAggregator
from .models import (
    Actor,
    PerformanceSummary,
    PeriodInterval,
    TargetRecord,
    Team,
    Transaction,
)
from .period_discovery import discover_years_from_sources

logger = logging.getLogger(__name__)


@dataclass
class PerformanceInputs:
    """Everything the aggregator needs for one category and period."""
    category: Category
    interval: PeriodInterval
    transactions: List[Transaction] = field(default_factory=list)
    targets: List[TargetRecord] = field(default_factory=list)
    failed_sources: Tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_sources)

    def raise_if_partial(self) -> None:
        """For callers that would rather fail than show partial figures."""
        if self.failed_sources:
            raise PartialFetchFailure(self.failed_sources)


@dataclass
class Directory:
    """Actor and team snapshot used for resolution and scoping."""
    actors: Dict[str, Actor] = field(default_factory=dict)
    teams: Dict[str, Team] = field(default_factory=dict)
    failed_sources: Tuple[str, ...] = ()


class PerformanceDataLoader:
    """
    Load performance inputs with per-source failure tracking.

    Usage:
        queries = TargetPerformanceQueries()
        loader = PerformanceDataLoader.from_queries(queries)

        inputs = loader.load(Category.SALES, normalized.interval)
        summary = loader.summarize(Category.SALES, normalized.interval, access)
        years = loader.available_years()
    """

    def __init__(
        self,
        fetch_transactions: Callable[..., Iterable[Transaction]],
        fetch_target_records: Callable[..., Iterable[TargetRecord]],
        fetch_actors: Optional[Callable[[], Iterable[Actor]]] = None,
        fetch_teams: Optional[Callable[[], Iterable[Team]]] = None
    ):
        """
        Args:
            fetch_transactions: (category, interval) -> transactions
            fetch_target_records: (category, interval) -> target records
            fetch_actors: () -> actors
            fetch_teams: () -> teams
        """
        self.fetch_transactions = fetch_transactions
        self.fetch_target_records = fetch_target_records
        self.fetch_actors = fetch_actors or (lambda: [])
        self.fetch_teams = fetch_teams or (lambda: [])

    @classmethod
    def from_queries(cls, queries) -> 'PerformanceDataLoader':
        return cls(
            fetch_transactions=queries.fetch_transactions,
            fetch_target_records=queries.fetch_target_records,
            fetch_actors=queries.fetch_actors,
            fetch_teams=queries.fetch_teams,
        )

    # =========================================================================
    # LOADING
    # =========================================================================

    def _fetch(self, source: str, fetcher: Callable[[], Iterable], failed: List[str]) -> list:
        try:
            return list(fetcher())
        except Exception as e:
            logger.warning(f"Failed to load {source}, continuing without it: {e}")
            failed.append(source)
            return []

    def load(self, category: Category, interval: PeriodInterval) -> PerformanceInputs:
        """
        Fetch transactions and targets for one category and period.

        Never raises on fetch errors; see PerformanceInputs.failed_sources.
        """
        failed: List[str] = []
        transactions = self._fetch(
            SOURCE_TRANSACTIONS,
            lambda: self.fetch_transactions(category, interval),
            failed
        )
        targets = self._fetch(
            SOURCE_TARGETS,
            lambda: self.fetch_target_records(category, interval),
            failed
        )

        logger.info(
            f"Loaded {category.value}: {len(transactions)} transactions, "
            f"{len(targets)} targets"
            + (f" (failed: {', '.join(failed)})" if failed else "")
        )
        return PerformanceInputs(
            category=category,
            interval=interval,
            transactions=transactions,
            targets=targets,
            failed_sources=tuple(failed),
        )

    def load_directory(self) -> Directory:
        """Fetch actors and teams, keyed by id."""
        failed: List[str] = []
        actors = self._fetch(SOURCE_ACTORS, self.fetch_actors, failed)
        teams = self._fetch(SOURCE_TEAMS, self.fetch_teams, failed)
        return Directory(
            actors={a.actor_id: a for a in actors},
            teams={t.team_id: t for t in teams},
            failed_sources=tuple(failed),
        )

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def summarize(
        self,
        category: Category,
        interval: PeriodInterval,
        access: Optional[AccessControl] = None
    ) -> PerformanceSummary:
        """
        Load, scope to what the user may see, and aggregate.

        Args:
            category: Sales or orders
            interval: Canonical period from normalize_period()
            access: Optional scope; None means organization-wide
        """
        inputs = self.load(category, interval)
        transactions = inputs.transactions
        targets = inputs.targets

        if access is not None:
            transactions = access.filter_records(transactions)
            targets = access.filter_records(targets)

        aggregator = PerformanceAggregator(transactions, targets, inputs.failed_sources)
        return aggregator.summarize(interval, category)

    # =========================================================================
    # YEAR OPTIONS
    # =========================================================================

    def available_years(self, today: Optional[date] = None) -> List[int]:
        """Years for the period filter; falls back to a recent window on any failure."""
        window = config.get_app_setting('YEAR_FALLBACK_WINDOW', YEAR_FALLBACK_WINDOW)

        def all_transactions() -> List[Transaction]:
            transactions = []
            for category in Category:
                transactions.extend(self.fetch_transactions(category, None))
            return transactions

        return discover_years_from_sources(
            all_transactions,
            lambda: self.fetch_target_records(None, None),
            today=today,
            fallback_window=window
        )
