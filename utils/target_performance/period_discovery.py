"""
Year Discovery - Valid year options for the period filter

Scans transactions and targets for the years that actually carry data and
always includes the current year, so the filter can select a year before
its first sale lands.

If nothing is found, or a source cannot be read, falls back to a fixed
window of recent years ending at the current year.
"""

import logging
from datetime import date
from typing import Callable, Iterable, List, Optional

from .constants import YEAR_FALLBACK_WINDOW
from .models import TargetRecord, Transaction

logger = logging.getLogger(__name__)


def fallback_years(today: Optional[date] = None, window: Optional[int] = None) -> List[int]:
    """
    Recent years, newest first.

    Example: today=2025-04-01, window=5 -> [2025, 2024, 2023, 2022, 2021]
    """
    current_year = (today or date.today()).year
    window = window or YEAR_FALLBACK_WINDOW
    return [current_year - offset for offset in range(window)]


def discover_years(
    transactions: Iterable[Transaction],
    targets: Iterable[TargetRecord],
    today: Optional[date] = None,
    fallback_window: Optional[int] = None
) -> List[int]:
    """
    Distinct years present in the data plus the current year, descending.

    Args:
        transactions: Unfiltered transactions (all categories)
        targets: Unfiltered target records
        today: Reference date; defaults to date.today()
        fallback_window: Years to offer when no data is found

    Returns:
        List of years, newest first
    """
    today = today or date.today()

    years = {t.occurred_at.year for t in transactions}
    years.update(r.year for r in targets)

    if not years:
        logger.info("No dated records found, using fallback year window")
        return fallback_years(today, fallback_window)

    years.add(today.year)
    return sorted(years, reverse=True)


def discover_years_from_sources(
    fetch_transactions: Callable[[], Iterable[Transaction]],
    fetch_targets: Callable[[], Iterable[TargetRecord]],
    today: Optional[date] = None,
    fallback_window: Optional[int] = None
) -> List[int]:
    """
    Run the unfiltered fetchers and discover years from their results.

    Any retrieval failure yields the fallback window rather than an error;
    the filter must always have something to offer.
    """
    try:
        transactions = list(fetch_transactions())
        targets = list(fetch_targets())
    except Exception as e:
        logger.warning(f"Year discovery failed, using fallback window: {e}")
        return fallback_years(today, fallback_window)

    return discover_years(transactions, targets, today, fallback_window)
