# utils/target_performance/__init__.py
"""
Target Performance Module

Target distribution and actual-vs-target aggregation for sales and orders.

Components:
- capability: Which categories an employee's permission admits
- recipient_resolver: Employees/teams -> deduplicated eligible recipients
- apportionment: Even split of a target amount across recipients
- period: Period filter -> canonical month interval + status line
- metrics: Actual-vs-target aggregation (pandas)
- period_discovery: Year options for the period filter
- access_control: Role-based data scope (admin/team_manager/employee)
- queries: SQL loading and atomic target persistence
- data_loader: Loading with partial-failure tracking
- target_service: validate -> resolve -> apportion -> persist

Usage:
    from utils.target_performance import (
        AccessControl,
        TargetPerformanceQueries,
        PerformanceDataLoader,
        PerformanceAggregator,
        TargetAssignmentService,
        PeriodFilterState,
    )
"""

from .access_control import AccessControl, access_level_for_role, describe_access
from .apportionment import apportion, edit_target_record, split_amount, validate_target_request
from .capability import (
    compatible_categories,
    is_compatible,
    parse_capability,
    parse_category,
    team_has_capability,
    visible_categories,
)
from .data_loader import Directory, PerformanceDataLoader, PerformanceInputs
from .exceptions import (
    InvalidAmount,
    InvalidQuantity,
    NoEligibleRecipients,
    PartialFetchFailure,
    PeriodRangeError,
    PersistenceError,
    TargetPerformanceError,
    ValidationError,
)
from .metrics import PerformanceAggregator, aggregate_performance, summarize_teams, summary_to_frames
from .models import (
    Actor,
    ActorRef,
    AllTime,
    Month,
    MonthRange,
    NormalizedPeriod,
    PerformanceSummary,
    PeriodInterval,
    TargetBatch,
    TargetRecord,
    TargetRequest,
    Team,
    TeamRef,
    Transaction,
    YearMonth,
    YearRange,
)
from .period import PeriodFilterState, build_period_filter, normalize_period
from .period_discovery import discover_years, discover_years_from_sources
from .queries import TargetPerformanceQueries
from .recipient_resolver import ResolutionResult, duplicate_selections, resolve_recipients
from .target_service import AssignmentResult, TargetAssignmentService

# Constants
from .constants import (
    Capability,
    Category,
    FULL_ACCESS_ROLES,
    TEAM_ACCESS_ROLES,
    SELF_ACCESS_ROLES,
    TARGET_ASSIGNER_ROLES,
    MONTH_NAMES,
    PERIOD_FILTER_TYPES,
)

__all__ = [
    # Classes
    'AccessControl',
    'TargetPerformanceQueries',
    'PerformanceDataLoader',
    'PerformanceInputs',
    'Directory',
    'PerformanceAggregator',
    'TargetAssignmentService',
    'AssignmentResult',
    'PeriodFilterState',
    'ResolutionResult',

    # Functions
    'access_level_for_role',
    'describe_access',
    'is_compatible',
    'compatible_categories',
    'parse_capability',
    'parse_category',
    'team_has_capability',
    'visible_categories',
    'resolve_recipients',
    'duplicate_selections',
    'validate_target_request',
    'apportion',
    'split_amount',
    'edit_target_record',
    'build_period_filter',
    'normalize_period',
    'aggregate_performance',
    'summarize_teams',
    'summary_to_frames',
    'discover_years',
    'discover_years_from_sources',

    # Models
    'Actor',
    'Team',
    'ActorRef',
    'TeamRef',
    'TargetRequest',
    'TargetRecord',
    'TargetBatch',
    'Transaction',
    'YearMonth',
    'PeriodInterval',
    'AllTime',
    'Month',
    'MonthRange',
    'YearRange',
    'NormalizedPeriod',
    'PerformanceSummary',

    # Exceptions
    'TargetPerformanceError',
    'ValidationError',
    'InvalidAmount',
    'InvalidQuantity',
    'PeriodRangeError',
    'NoEligibleRecipients',
    'PartialFetchFailure',
    'PersistenceError',

    # Constants
    'Capability',
    'Category',
    'FULL_ACCESS_ROLES',
    'TEAM_ACCESS_ROLES',
    'SELF_ACCESS_ROLES',
    'TARGET_ASSIGNER_ROLES',
    'MONTH_NAMES',
    'PERIOD_FILTER_TYPES',
]

__version__ = '1.0.0'
