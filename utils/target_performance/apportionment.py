"""
Target Apportionment

Turns one TargetRequest plus its resolved recipients into one TargetRecord
per recipient:
- amount is divided evenly, rounded to cents; the last recipient in
  iteration order absorbs the rounding remainder so the batch sums to the
  requested amount exactly
- quantity is NOT divided: every recipient gets the full quantity
  (quantity is a per-person minimum, amount is a shared goal)

Editing a record afterwards touches that record only.
"""

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Any, Optional, Sequence, Type

from .constants import AMOUNT_DECIMAL_PLACES, MAX_YEAR, MIN_YEAR
from .exceptions import InvalidAmount, InvalidQuantity, ValidationError
from .models import TargetBatch, TargetRecord, TargetRequest

logger = logging.getLogger(__name__)

_CENT = Decimal(1).scaleb(-AMOUNT_DECIMAL_PLACES)


# =============================================================================
# VALIDATION
# =============================================================================

def parse_positive_decimal(
    value: Any,
    error_cls: Type[ValidationError]
) -> Decimal:
    """
    Convert user input into a positive Decimal.

    Raises:
        error_cls: value is missing, non-numeric, non-finite or <= 0
    """
    if value is None or isinstance(value, bool):
        raise error_cls()
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise error_cls()
    if not number.is_finite() or number <= 0:
        raise error_cls()
    return number


def parse_amount(value: Any) -> Decimal:
    """
    Positive amount with at most cent precision.

    Sub-cent input is rejected rather than rounded: the stored records must
    still sum to exactly what the user typed.
    """
    number = parse_positive_decimal(value, InvalidAmount)
    try:
        in_cents = number.quantize(_CENT)
    except InvalidOperation:
        raise InvalidAmount()
    if in_cents != number:
        raise InvalidAmount(
            f"Target amount cannot have more than {AMOUNT_DECIMAL_PLACES} decimal places"
        )
    return number


def validate_period(month: Any, year: Any) -> None:
    """Reject a month outside 1..12 or a missing/non-integer year."""
    errors = {}
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
        errors['month'] = "Month must be between 1 and 12"
    if not isinstance(year, int) or isinstance(year, bool) or not MIN_YEAR <= year <= MAX_YEAR:
        errors['year'] = f"Year must be between {MIN_YEAR} and {MAX_YEAR}"
    if errors:
        field = next(iter(errors))
        raise ValidationError(errors[field], field=field, errors=errors)


def validate_target_request(request: TargetRequest) -> TargetRequest:
    """
    Validate numeric inputs and period before recipient resolution.

    Returns:
        The request with amount/quantity coerced to Decimal

    Raises:
        InvalidAmount, InvalidQuantity, ValidationError
    """
    amount = parse_amount(request.amount)
    quantity = parse_positive_decimal(request.quantity, InvalidQuantity)
    validate_period(request.month, request.year)
    return replace(request, amount=amount, quantity=quantity)


# =============================================================================
# APPORTIONMENT
# =============================================================================

def split_amount(amount: Decimal, recipient_count: int) -> Sequence[Decimal]:
    """
    Split an amount into `recipient_count` cent-rounded shares.

    Every share but the last is round(amount / n, 2); the last takes
    whatever remains so the shares sum to `amount`.
    """
    if recipient_count <= 0:
        raise ValueError("recipient_count must be positive")

    share = (amount / recipient_count).quantize(_CENT, rounding=ROUND_HALF_UP)
    if share * (recipient_count - 1) > amount:
        # Rounding up would leave the last share negative on tiny amounts
        share = (amount / recipient_count).quantize(_CENT, rounding=ROUND_DOWN)

    last = amount - share * (recipient_count - 1)
    return [share] * (recipient_count - 1) + [last]


def apportion(request: TargetRequest, recipient_ids: Sequence[str]) -> TargetBatch:
    """
    Produce one TargetRecord per recipient.

    Args:
        request: Validated target request
        recipient_ids: Non-empty, deduplicated IDs from resolve_recipients()

    Returns:
        TargetBatch to be persisted atomically
    """
    if not recipient_ids:
        raise ValueError("apportion() needs at least one recipient")

    shares = split_amount(request.amount, len(recipient_ids))
    records = tuple(
        TargetRecord(
            actor_id=actor_id,
            category=request.category,
            month=request.month,
            year=request.year,
            amount=share,
            quantity=request.quantity,
            request_id=request.request_id,
            original_total=request.amount,
            members_count=len(recipient_ids),
        )
        for actor_id, share in zip(recipient_ids, shares)
    )

    logger.info(
        f"Apportioned {request.category.value} target {request.amount} across "
        f"{len(records)} recipients ({shares[0]} each, qty {request.quantity})"
    )
    return TargetBatch(request=request, records=records)


# =============================================================================
# EDITING
# =============================================================================

def edit_target_record(
    record: TargetRecord,
    amount: Optional[Any] = None,
    quantity: Optional[Any] = None,
    month: Optional[int] = None,
    year: Optional[int] = None
) -> TargetRecord:
    """
    Change a single record's amount, quantity or period.

    Siblings from the same request are never touched and recipients are
    never re-resolved; the originating request_id is kept.
    """
    changes = {}
    if amount is not None:
        changes['amount'] = parse_amount(amount)
    if quantity is not None:
        changes['quantity'] = parse_positive_decimal(quantity, InvalidQuantity)

    new_month = record.month if month is None else month
    new_year = record.year if year is None else year
    validate_period(new_month, new_year)
    changes['month'] = new_month
    changes['year'] = new_year

    logger.debug(f"Editing target {record.target_id} for actor {record.actor_id}: {changes}")
    return replace(record, **changes)
