"""
Constants for Target Performance Module

Centralized configuration for:
- Transaction categories and actor capabilities
- Role definitions
- Month naming
- Period filter types
- Business defaults (rounding, year fallback window)
"""

from enum import Enum


# =====================================================================
# CATEGORIES & CAPABILITIES
# =====================================================================

class Category(str, Enum):
    """Transaction category a target or transaction belongs to."""
    SALES = 'sales'
    ORDERS = 'orders'

    @property
    def display_name(self) -> str:
        return CATEGORY_DISPLAY_NAMES[self]


class Capability(str, Enum):
    """Transaction categories an actor is authorized to be measured against."""
    SALES = 'Sales'
    ORDERS = 'Orders'
    SALES_AND_ORDERS = 'Sales & Orders'
    ALL = 'All Permissions'


CATEGORY_DISPLAY_NAMES = {
    Category.SALES: 'Sales',
    Category.ORDERS: 'Orders',
}

# Upstream labels seen in user profiles and target rows
CATEGORY_ALIASES = {
    'sale': Category.SALES,
    'sales': Category.SALES,
    'order': Category.ORDERS,
    'orders': Category.ORDERS,
}

CAPABILITY_ALIASES = {
    'sales': Capability.SALES,
    'orders': Capability.ORDERS,
    'sales & orders': Capability.SALES_AND_ORDERS,
    'sales&orders': Capability.SALES_AND_ORDERS,
    'sales_and_orders': Capability.SALES_AND_ORDERS,
    'all': Capability.ALL,
    'all permissions': Capability.ALL,
}

# =====================================================================
# ROLE DEFINITIONS
# =====================================================================

# Full access: organization-wide data, can assign targets to anyone
FULL_ACCESS_ROLES = ['admin']

# Team access: self + members of managed teams
TEAM_ACCESS_ROLES = ['team_manager']

# Self access: own data only
SELF_ACCESS_ROLES = ['employee']

# Roles allowed to submit target requests
TARGET_ASSIGNER_ROLES = ['admin', 'team_manager']

# What each access level shows, for the account overview
ACCESS_LEVEL_DESCRIPTIONS = {
    'full': "🔓 Everyone's targets and performance; can assign, edit and delete targets",
    'team': "👥 You and the teams you manage; can assign, edit and delete targets within those teams",
    'self': "👤 Your own targets and performance",
}

# =====================================================================
# MONTHS
# =====================================================================

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December"
]

MONTH_MAPPING = {index + 1: name for index, name in enumerate(MONTH_NAMES)}

# =====================================================================
# PERIOD FILTER TYPES
# =====================================================================

FILTER_ALL_TIME = 'all_time'
FILTER_MONTH = 'month'
FILTER_MONTH_RANGE = 'month_range'
FILTER_YEAR_RANGE = 'year_range'

PERIOD_FILTER_TYPES = [
    FILTER_ALL_TIME,
    FILTER_MONTH,
    FILTER_MONTH_RANGE,
    FILTER_YEAR_RANGE,
]

STATUS_ALL_TIME = "Showing all data till today"

# Selectable years for filters and target periods
MIN_YEAR = 1900
MAX_YEAR = 2100

# =====================================================================
# BUSINESS LOGIC SETTINGS
# =====================================================================

# Apportioned amounts are rounded to cents
AMOUNT_DECIMAL_PLACES = 2

# Number of years offered when no data years can be discovered
YEAR_FALLBACK_WINDOW = 5

# Data source names used when reporting partial fetch failures
SOURCE_TRANSACTIONS = 'transactions'
SOURCE_TARGETS = 'targets'
SOURCE_ACTORS = 'actors'
SOURCE_TEAMS = 'teams'
