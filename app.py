# app.py
"""
Targets & Performance - Entry Point

Logged out: login form.
Logged in: what this account can see (role scope, permission, visible
target categories, applied period) and a link to the dashboard.

Version: 1.1.0
"""

import logging

import streamlit as st

from utils.auth import AuthManager, current_actor, current_actor_role
from utils.db import check_db_connection
from utils.target_performance import describe_access, visible_categories
from utils.target_performance.constants import STATUS_ALL_TIME

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DASHBOARD_PAGE = "pages/1_🎯_Target_Performance.py"

st.set_page_config(page_title="Targets & Performance", page_icon="🎯", layout="centered")

auth = AuthManager()


def login_form():
    st.title("🎯 Targets & Performance")

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        return

    with st.form("login_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submit = st.form_submit_button("🔑 Login", type="primary")

    if not submit:
        return
    if not username or not password:
        st.warning("Please enter both username and password")
        return

    success, result = auth.authenticate(username, password)
    if success:
        auth.login(result)
        st.rerun()
    else:
        st.error(result.get("error", "Authentication failed"))


def account_overview():
    role = current_actor_role() or 'employee'
    actor = current_actor()

    st.title(f"👋 {auth.get_user_display_name()}")
    st.caption(describe_access(role))

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Role", role.replace('_', ' ').title())
    with col2:
        st.metric("Permission", actor.capability.value if actor else "None")

    categories = visible_categories(role, actor.capability if actor else None)
    if categories:
        st.markdown("**Target types:** " + ", ".join(c.display_name for c in categories))
    else:
        st.warning("No Sales or Orders permission is linked to this account.")

    if actor is None and role != 'admin':
        st.info("Your login is not linked to an employee record, so no personal figures are shown.")

    period_state = st.session_state.get('target_period_state')
    st.caption(period_state.status if period_state else STATUS_ALL_TIME)

    st.page_link(DASHBOARD_PAGE, label="Open Target Performance", icon="🎯")

    with st.sidebar:
        if st.button("🚪 Logout", use_container_width=True):
            auth.logout()
            st.rerun()


def main():
    if auth.check_session():
        account_overview()
    else:
        login_form()


if __name__ == "__main__":
    main()
