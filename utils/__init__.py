# utils/__init__.py
"""
Shared Utilities Package for the Targets dashboard

This package contains common utilities shared across all pages:
- auth: Authentication and session management
- config: Configuration management (local + Streamlit Cloud)
- db: Database connection management with pooling
- target_performance: Target distribution and performance aggregation

Usage:
    from utils.auth import AuthManager, current_actor_role
    from utils.db import get_db_engine, get_transaction
    from utils.config import config

    # Or import commonly used items directly
    from utils import AuthManager, get_db_engine, config
"""

# Authentication
from .auth import (
    AuthManager,
    current_actor_role,
    current_actor,
)

# Configuration
from .config import (
    config,
    Config,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
    get_connection,
    get_transaction,
)

__all__ = [
    # Auth
    'AuthManager',
    'current_actor_role',
    'current_actor',

    # Config
    'config',
    'Config',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection',
    'get_transaction',
]

__version__ = '2.1.0'
