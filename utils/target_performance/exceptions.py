"""
Error taxonomy for the target performance engine.

Every error here is recoverable at the call site: re-prompt the user,
retry the write, or degrade to defaults.
"""

from typing import Dict, List, Optional, Sequence


class TargetPerformanceError(Exception):
    """Base class for target performance errors."""


class ValidationError(TargetPerformanceError):
    """
    Bad user input (numeric values, period endpoints, recipient references).

    Attributes:
        field: Form field the error belongs to (e.g. 'amount', 'range')
        errors: Mapping of field -> message when several fields failed at once
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[Dict[str, str]] = None
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        if errors is None:
            errors = {field: message} if field else {}
        self.errors = dict(errors)


class InvalidAmount(ValidationError):
    """Target amount is missing, non-numeric or not positive."""

    def __init__(self, message: str = "Target amount must be a positive number"):
        super().__init__(message, field='amount')


class InvalidQuantity(ValidationError):
    """Target quantity is missing, non-numeric or not positive."""

    def __init__(self, message: str = "Target quantity must be a positive number"):
        super().__init__(message, field='quantity')


class PeriodRangeError(ValidationError):
    """Period filter end bound precedes its start bound."""

    def __init__(self, message: str = "End date cannot be earlier than start date"):
        super().__init__(message, field='range')


class NoEligibleRecipients(TargetPerformanceError):
    """
    Recipient resolution produced nobody to apportion to.

    Carries what was rejected so the caller can tell the user why.
    """

    def __init__(
        self,
        category: str,
        ineligible_teams: Sequence[str] = (),
        excluded_actors: Sequence[str] = ()
    ):
        self.category = category
        self.ineligible_teams: List[str] = list(ineligible_teams)
        self.excluded_actors: List[str] = list(excluded_actors)
        super().__init__(
            f"No eligible employees found with {category} permission"
        )


class PartialFetchFailure(TargetPerformanceError):
    """One or more data sources failed while others succeeded."""

    def __init__(self, failed_sources: Sequence[str]):
        self.failed_sources = tuple(failed_sources)
        super().__init__(
            f"Data could not be loaded from: {', '.join(self.failed_sources)}"
        )


class PersistenceError(TargetPerformanceError):
    """A target batch could not be written; nothing from the batch was kept."""
