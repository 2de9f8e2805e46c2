"""
Period Normalizer

Translates the dashboard's period filter choice into a canonical
(year, month) interval plus a status line.

Filter types:
- all_time:     no values                      -> unbounded interval
- month:        year, month                    -> that month
- month_range:  start/end year and month       -> closed month range
- year_range:   start_year, end_year           -> Jan start_year .. Dec end_year

Endpoint order and year bounds are enforced; future periods are allowed.
"""

import logging
from typing import Any, Dict, Optional

from .constants import (
    FILTER_ALL_TIME,
    FILTER_MONTH,
    FILTER_MONTH_RANGE,
    FILTER_YEAR_RANGE,
    MAX_YEAR,
    MIN_YEAR,
    MONTH_MAPPING,
    PERIOD_FILTER_TYPES,
    STATUS_ALL_TIME,
)
from .exceptions import PeriodRangeError, ValidationError
from .models import (
    AllTime,
    Month,
    MonthRange,
    NormalizedPeriod,
    PeriodFilter,
    PeriodInterval,
    YearMonth,
    YearRange,
)

logger = logging.getLogger(__name__)


# Field names required by each filter type, with their "missing" message
_REQUIRED_FIELDS = {
    FILTER_ALL_TIME: {},
    FILTER_MONTH: {
        'year': "Please select a year",
        'month': "Please select a month",
    },
    FILTER_MONTH_RANGE: {
        'start_year': "Please select a start year",
        'start_month': "Please select a start month",
        'end_year': "Please select an end year",
        'end_month': "Please select an end month",
    },
    FILTER_YEAR_RANGE: {
        'start_year': "Please select a start year",
        'end_year': "Please select an end year",
    },
}


# =============================================================================
# BUILD
# =============================================================================

def build_period_filter(filter_type: str, **values: Any) -> PeriodFilter:
    """
    Build a PeriodFilter from the filter type and the user's selections.

    Raises:
        ValidationError: unknown type, or required selections missing
    """
    if filter_type not in PERIOD_FILTER_TYPES:
        raise ValidationError(f"Unknown filter type: {filter_type!r}", field='filter_type')

    errors = {}
    parsed: Dict[str, int] = {}
    for name, missing_message in _REQUIRED_FIELDS[filter_type].items():
        value = values.get(name)
        if value is None or value == '':
            errors[name] = missing_message
            continue
        try:
            parsed[name] = int(value)
        except (TypeError, ValueError):
            errors[name] = f"Invalid value for {name.replace('_', ' ')}"

    if errors:
        field = next(iter(errors))
        raise ValidationError(errors[field], field=field, errors=errors)

    if filter_type == FILTER_MONTH:
        return Month(year=parsed['year'], month=parsed['month'])
    if filter_type == FILTER_MONTH_RANGE:
        return MonthRange(**parsed)
    if filter_type == FILTER_YEAR_RANGE:
        return YearRange(**parsed)
    return AllTime()


# =============================================================================
# NORMALIZE
# =============================================================================

def normalize_period(period_filter: PeriodFilter) -> NormalizedPeriod:
    """
    Validate a filter and compute its canonical interval and status.

    Raises:
        ValidationError: month or year out of range
        PeriodRangeError: range end precedes start
    """
    if isinstance(period_filter, AllTime):
        return NormalizedPeriod(period_filter, PeriodInterval(), STATUS_ALL_TIME)

    if isinstance(period_filter, Month):
        _check_year(period_filter.year, 'year')
        _check_month(period_filter.month, 'month')
        point = YearMonth(period_filter.year, period_filter.month)
        return NormalizedPeriod(
            period_filter,
            PeriodInterval(point, point),
            f"Showing {point.label}"
        )

    if isinstance(period_filter, MonthRange):
        _check_year(period_filter.start_year, 'start_year')
        _check_year(period_filter.end_year, 'end_year')
        _check_month(period_filter.start_month, 'start_month')
        _check_month(period_filter.end_month, 'end_month')
        start = YearMonth(period_filter.start_year, period_filter.start_month)
        end = YearMonth(period_filter.end_year, period_filter.end_month)
        if end < start:
            raise PeriodRangeError("End date cannot be earlier than start date")
        return NormalizedPeriod(
            period_filter,
            PeriodInterval(start, end),
            f"Showing from {start.label} to {end.label}"
        )

    if isinstance(period_filter, YearRange):
        _check_year(period_filter.start_year, 'start_year')
        _check_year(period_filter.end_year, 'end_year')
        if period_filter.end_year < period_filter.start_year:
            raise PeriodRangeError("End year cannot be earlier than start year")
        return NormalizedPeriod(
            period_filter,
            PeriodInterval(
                YearMonth(period_filter.start_year, 1),
                YearMonth(period_filter.end_year, 12)
            ),
            f"Showing from {period_filter.start_year} to {period_filter.end_year}"
        )

    raise ValidationError(f"Unsupported period filter: {period_filter!r}", field='filter_type')


def _check_month(month: int, field: str) -> None:
    if month not in MONTH_MAPPING:
        raise ValidationError("Month must be between 1 and 12", field=field)


def _check_year(year: int, field: str) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}", field=field)


# =============================================================================
# APPLIED FILTER STATE
# =============================================================================

class PeriodFilterState:
    """
    Holds the currently applied period filter for a dashboard.

    A failed apply() records field errors and keeps the previously applied
    filter, so a bad selection never wipes out what the user is looking at.

    Usage:
        state = PeriodFilterState()
        state.apply('month_range', start_year=2024, start_month=1,
                    end_year=2025, end_month=12)
        interval = state.applied.interval
    """

    def __init__(self, initial: Optional[NormalizedPeriod] = None):
        self.applied: NormalizedPeriod = initial or normalize_period(AllTime())
        self.errors: Dict[str, str] = {}

    @property
    def status(self) -> str:
        return self.applied.status

    def apply(self, filter_type: str, **values: Any) -> Optional[NormalizedPeriod]:
        """
        Try to apply a new filter.

        Returns:
            The new NormalizedPeriod, or None when validation failed
            (see self.errors)
        """
        try:
            normalized = normalize_period(build_period_filter(filter_type, **values))
        except ValidationError as e:
            self.errors = dict(e.errors)
            logger.info(f"Period filter rejected ({filter_type}): {self.errors}")
            return None

        self.errors = {}
        self.applied = normalized
        logger.debug(f"Period filter applied: {normalized.status}")
        return normalized

    def reset(self) -> NormalizedPeriod:
        """Go back to all-time."""
        self.errors = {}
        self.applied = normalize_period(AllTime())
        return self.applied
