# utils/auth.py
"""
Authentication Manager for Streamlit Apps

Version: 2.1.0
Features:
- SHA256 password hashing (compatible with existing database)
- Role and permission carried in the session for page-level scoping
- Session management with timeout
- current_actor_role() / current_actor() accessors for page code
"""

import streamlit as st
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple
import logging
from sqlalchemy import text
from .db import get_connection
from .config import config

logger = logging.getLogger(__name__)


class AuthManager:
    """Authentication manager for Streamlit apps"""

    def __init__(self):
        self.session_timeout = timedelta(
            hours=config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
        )

    # ==================== PASSWORD HASHING ====================

    def hash_password(self, password: str, salt: str = None) -> Tuple[str, str]:
        """
        Hash password with SHA256 + salt

        Args:
            password: Plain text password
            salt: Optional salt (generated if not provided)

        Returns:
            Tuple of (hash, salt)
        """
        if not salt:
            salt = secrets.token_hex(32)

        pwd_hash = hashlib.sha256((password + salt).encode()).hexdigest()
        return pwd_hash, salt

    def verify_password(self, password: str, stored_hash: str, salt: str) -> bool:
        """Verify password against stored hash"""
        pwd_hash, _ = self.hash_password(password, salt)
        return secrets.compare_digest(pwd_hash, stored_hash or '')

    # ==================== AUTHENTICATION ====================

    def authenticate(self, username: str, password: str) -> Tuple[bool, Optional[Dict]]:
        """
        Authenticate user against database

        Returns:
            Tuple of (success: bool, user_info: dict or error: dict)
        """
        try:
            query = text("""
                SELECT
                    u.id,
                    u.username,
                    u.password_hash,
                    u.password_salt,
                    u.email,
                    u.role,
                    u.is_active,
                    u.employee_id,
                    e.name as full_name,
                    e.permission
                FROM users u
                LEFT JOIN employees e ON u.employee_id = e.id
                WHERE u.username = :username
                AND u.delete_flag = 0
            """)

            with get_connection() as conn:
                result = conn.execute(query, {'username': username}).fetchone()

            if not result:
                logger.warning(f"Login attempt for non-existent user: {username}")
                return False, {"error": "Invalid username or password"}

            user = dict(result._mapping)

            if not user['is_active']:
                logger.warning(f"Login attempt for inactive user: {username}")
                return False, {"error": "Account is inactive. Please contact administrator."}

            if not self.verify_password(password, user['password_hash'], user['password_salt']):
                logger.warning(f"Invalid password for user: {username}")
                return False, {"error": "Invalid username or password"}

            self._update_last_login(user['id'])

            logger.info(f"User {username} authenticated successfully")

            return True, {
                'id': user['id'],
                'username': user['username'],
                'email': user['email'],
                'role': user['role'],
                'employee_id': user['employee_id'],
                'permission': user['permission'],
                'full_name': user['full_name'] or user['username'],
                'login_time': datetime.now()
            }

        except Exception as e:
            logger.error(f"Authentication error: {e}")
            return False, {"error": "Authentication failed. Please try again."}

    def _update_last_login(self, user_id: int):
        """Update user's last login timestamp"""
        try:
            query = text("UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = :user_id")
            with get_connection() as conn:
                conn.execute(query, {'user_id': user_id})
        except Exception as e:
            logger.warning(f"Could not update last_login: {e}")

    # ==================== SESSION MANAGEMENT ====================

    def check_session(self) -> bool:
        """Check if user session is valid and not expired"""
        if not st.session_state.get('authenticated'):
            return False

        login_time = st.session_state.get('login_time')
        if login_time:
            elapsed = datetime.now() - login_time
            if elapsed > self.session_timeout:
                logger.info(f"Session expired for user: {st.session_state.get('username')}")
                self.logout()
                return False

        return True

    def login(self, user_info: Dict):
        """Initialize user session after successful authentication"""
        st.session_state.authenticated = True
        st.session_state.user_id = user_info['id']
        st.session_state.username = user_info['username']
        st.session_state.user_email = user_info['email']
        st.session_state.user_role = user_info['role']
        st.session_state.user_permission = user_info.get('permission')
        st.session_state.user_fullname = user_info['full_name']
        st.session_state.employee_id = user_info['employee_id']
        st.session_state.login_time = user_info['login_time']
        st.session_state.debug_mode = config.is_feature_enabled("DEBUG_MODE")

        logger.info(f"User {user_info['username']} ({user_info['role']}) logged in successfully")

    def logout(self):
        """Clear user session and cache"""
        username = st.session_state.get('username', 'Unknown')

        auth_keys = [
            'authenticated', 'user_id', 'username', 'user_email',
            'user_role', 'user_permission', 'user_fullname',
            'employee_id', 'login_time', 'debug_mode'
        ]

        for key in auth_keys:
            if key in st.session_state:
                del st.session_state[key]

        st.cache_data.clear()

        logger.info(f"User {username} logged out")

    # ==================== ACCESS CONTROL ====================

    def require_auth(self) -> bool:
        """
        Require authentication to access a page
        Use at the beginning of each protected page
        """
        if not self.check_session():
            st.warning("⚠️ Please login to access this page")
            st.stop()
            return False
        return True

    # ==================== USER INFO HELPERS ====================

    def get_user_display_name(self) -> str:
        """Get user's display name for UI"""
        if st.session_state.get('user_fullname'):
            return st.session_state.user_fullname
        return st.session_state.get('username', 'User')


# ==================== SESSION ACCESSORS ====================

def current_actor_role() -> Optional[str]:
    """Role of the logged-in user, or None when nobody is logged in."""
    if not st.session_state.get('authenticated'):
        return None
    return st.session_state.get('user_role')


def current_actor():
    """
    The logged-in user as an Actor, or None.

    Users without a linked employee or with an unreadable permission label
    have no Actor.
    """
    from .target_performance.capability import parse_capability
    from .target_performance.exceptions import ValidationError
    from .target_performance.models import Actor

    employee_id = st.session_state.get('employee_id')
    if not st.session_state.get('authenticated') or employee_id is None:
        return None

    try:
        capability = parse_capability(st.session_state.get('user_permission'))
    except ValidationError:
        logger.warning(f"User {st.session_state.get('username')} has no usable permission")
        return None

    return Actor(
        actor_id=str(employee_id),
        name=st.session_state.get('user_fullname') or str(employee_id),
        capability=capability,
        role=st.session_state.get('user_role'),
    )


# ==================== MODULE EXPORTS ====================

__all__ = [
    'AuthManager',
    'current_actor_role',
    'current_actor',
]
