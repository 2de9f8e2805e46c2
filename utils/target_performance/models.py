"""
Record shapes for the target performance engine.

Actors, teams and transactions are owned outside this package and are
treated as read-only snapshots. Target requests/records are produced by
apportionment; performance summaries are derived on demand and never
persisted.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple, Union

from .constants import Capability, Category, MONTH_MAPPING


# =============================================================================
# ACTORS & TEAMS
# =============================================================================

@dataclass(frozen=True)
class Actor:
    """An employee who can receive targets and originate transactions."""
    actor_id: str
    name: str
    capability: Capability
    role: Optional[str] = None


@dataclass(frozen=True)
class Team:
    """Named group of actors with an optional manager."""
    team_id: str
    name: str
    member_ids: Tuple[str, ...] = ()
    manager_id: Optional[str] = None


@dataclass(frozen=True)
class ActorRef:
    """Recipient entry naming a single actor."""
    actor_id: str


@dataclass(frozen=True)
class TeamRef:
    """Recipient entry naming a whole team."""
    team_id: str


RecipientRef = Union[ActorRef, TeamRef]


# =============================================================================
# TARGETS
# =============================================================================

def _new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TargetRequest:
    """
    Aggregate target submitted by an admin or team manager.

    Attributes:
        category: Sales or Orders
        amount: Shared revenue goal, divided among recipients
        quantity: Per-person minimum activity count, never divided
        month: 1-12
        year: Calendar year
        recipients: Ordered mix of ActorRef / TeamRef
    """
    category: Category
    amount: Decimal
    quantity: Decimal
    month: int
    year: int
    recipients: Tuple[RecipientRef, ...] = ()
    request_id: str = field(default_factory=_new_request_id)
    created_by: Optional[str] = None


@dataclass(frozen=True)
class TargetRecord:
    """One apportioned target for one actor and month."""
    actor_id: str
    category: Category
    month: int
    year: int
    amount: Decimal
    quantity: Decimal
    request_id: Optional[str] = None
    original_total: Optional[Decimal] = None
    members_count: Optional[int] = None
    target_id: Optional[str] = None

    @property
    def period(self) -> 'YearMonth':
        return YearMonth(self.year, self.month)


@dataclass(frozen=True)
class TargetBatch:
    """All records produced by one apportionment; written all-or-nothing."""
    request: TargetRequest
    records: Tuple[TargetRecord, ...]

    @property
    def total_amount(self) -> Decimal:
        return sum((r.amount for r in self.records), Decimal('0'))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[TargetRecord]:
        return iter(self.records)


# =============================================================================
# TRANSACTIONS
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    """Immutable historical sale or order."""
    category: Category
    actor_id: str
    amount: Decimal
    quantity: Decimal
    occurred_at: Union[datetime, date]
    transaction_id: Optional[str] = None

    @property
    def period(self) -> 'YearMonth':
        return YearMonth(self.occurred_at.year, self.occurred_at.month)


# =============================================================================
# PERIODS
# =============================================================================

@dataclass(frozen=True, order=True)
class YearMonth:
    """A (year, month) point, ordered chronologically."""
    year: int
    month: int

    @property
    def label(self) -> str:
        return f"{MONTH_MAPPING[self.month]} {self.year}"

    def next(self) -> 'YearMonth':
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)


@dataclass(frozen=True)
class PeriodInterval:
    """
    Closed interval of (year, month) pairs.

    A None bound is open on that side; AllTime is (None, None).
    """
    start: Optional[YearMonth] = None
    end: Optional[YearMonth] = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, year: int, month: int) -> bool:
        point = YearMonth(year, month)
        if self.start is not None and point < self.start:
            return False
        if self.end is not None and point > self.end:
            return False
        return True

    def months(self) -> List[YearMonth]:
        """Every month in a bounded interval, chronologically."""
        if not self.is_bounded:
            raise ValueError("Cannot enumerate months of an unbounded interval")
        result = []
        current = self.start
        while current <= self.end:
            result.append(current)
            current = current.next()
        return result


@dataclass(frozen=True)
class AllTime:
    """No period restriction."""


@dataclass(frozen=True)
class Month:
    """A single calendar month."""
    year: int
    month: int


@dataclass(frozen=True)
class MonthRange:
    """From (start_year, start_month) through (end_year, end_month)."""
    start_year: int
    start_month: int
    end_year: int
    end_month: int


@dataclass(frozen=True)
class YearRange:
    """January of start_year through December of end_year."""
    start_year: int
    end_year: int


PeriodFilter = Union[AllTime, Month, MonthRange, YearRange]


@dataclass(frozen=True)
class NormalizedPeriod:
    """Validated filter with its canonical interval and status text."""
    filter: PeriodFilter
    interval: PeriodInterval
    status: str


# =============================================================================
# PERFORMANCE
# =============================================================================

@dataclass(frozen=True)
class PerformanceFigures:
    """Actual vs target for one scope."""
    actual: float = 0.0
    target: float = 0.0
    percentage: int = 0
    actual_quantity: float = 0.0
    target_quantity: float = 0.0


@dataclass(frozen=True)
class MonthlyPerformance:
    period: YearMonth
    figures: PerformanceFigures


@dataclass(frozen=True)
class ActorPerformance:
    actor_id: str
    figures: PerformanceFigures


@dataclass(frozen=True)
class ActorMonthPerformance:
    actor_id: str
    period: YearMonth
    figures: PerformanceFigures


@dataclass(frozen=True)
class TeamPerformance:
    team_id: str
    team_name: str
    member_count: int
    figures: PerformanceFigures


@dataclass(frozen=True)
class PerformanceSummary:
    """
    Actual-vs-target comparison for a scope and period.

    is_partial is set when one of the input sources failed to load and was
    treated as empty; callers should warn instead of presenting the zeros
    as ground truth.
    """
    category: Category
    interval: PeriodInterval
    totals: PerformanceFigures
    by_month: Tuple[MonthlyPerformance, ...] = ()
    by_actor: Tuple[ActorPerformance, ...] = ()
    by_actor_month: Tuple[ActorMonthPerformance, ...] = ()
    is_partial: bool = False
    failed_sources: Tuple[str, ...] = ()

    @property
    def total_actual(self) -> float:
        return self.totals.actual

    @property
    def total_target(self) -> float:
        return self.totals.target

    @property
    def percentage(self) -> int:
        return self.totals.percentage
