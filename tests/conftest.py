"""
Pytest fixtures for the target performance test suite.

Provides:
- A small actor/team directory covering every capability
- Transaction and target record builders
- A SQLite engine with the dashboard schema for adapter tests
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text

from utils.target_performance.constants import Capability, Category
from utils.target_performance.models import Actor, TargetRecord, Team, Transaction


# =============================================================================
# DIRECTORY
# =============================================================================

@pytest.fixture
def actors():
    """X: Sales, Y: Orders, Z: Sales & Orders, W: All Permissions."""
    return {
        'X': Actor('X', 'Xuan', Capability.SALES, role='employee'),
        'Y': Actor('Y', 'Yen', Capability.ORDERS, role='employee'),
        'Z': Actor('Z', 'Zara', Capability.SALES_AND_ORDERS, role='employee'),
        'W': Actor('W', 'Wes', Capability.ALL, role='team_manager'),
    }


@pytest.fixture
def teams():
    return {
        'A': Team('A', 'Team A', member_ids=('X', 'Y', 'Z'), manager_id='W'),
        'B': Team('B', 'Team B', member_ids=('Y',), manager_id=None),
        'C': Team('C', 'Team C', member_ids=('Z', 'W'), manager_id='Z'),
    }


# =============================================================================
# RECORD BUILDERS
# =============================================================================

def _make_transaction(actor_id, amount, year, month, category=Category.SALES, quantity=1, day=15):
    return Transaction(
        category=category,
        actor_id=actor_id,
        amount=Decimal(str(amount)),
        quantity=Decimal(str(quantity)),
        occurred_at=datetime(year, month, day, 10, 30),
    )


def _make_target(actor_id, amount, year, month, category=Category.SALES, quantity=10):
    return TargetRecord(
        actor_id=actor_id,
        category=category,
        month=month,
        year=year,
        amount=Decimal(str(amount)),
        quantity=Decimal(str(quantity)),
    )


@pytest.fixture
def make_transaction():
    return _make_transaction


@pytest.fixture
def make_target():
    return _make_target


# =============================================================================
# DATABASE
# =============================================================================

SCHEMA = [
    """
    CREATE TABLE employees (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT,
        permission TEXT,
        role TEXT,
        delete_flag INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE teams (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        manager_id INTEGER,
        delete_flag INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE team_members (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        team_id INTEGER NOT NULL,
        employee_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE sales (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id INTEGER,
        sales_amount NUMERIC,
        sales_qty NUMERIC,
        sale_date TEXT,
        delete_flag INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id INTEGER,
        order_amount NUMERIC,
        order_qty NUMERIC,
        order_date TEXT,
        delete_flag INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE targets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id INTEGER NOT NULL,
        target_type TEXT NOT NULL,
        target_amount NUMERIC NOT NULL CHECK (target_amount > 0),
        target_qty NUMERIC NOT NULL,
        month INTEGER NOT NULL,
        year INTEGER NOT NULL,
        request_id TEXT,
        original_total NUMERIC,
        members_count INTEGER,
        created_by TEXT,
        delete_flag INTEGER DEFAULT 0
    )
    """,
]


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine with an empty schema."""
    engine = create_engine(f"sqlite:///{tmp_path / 'crm.db'}")
    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def seeded_engine(engine):
    """Schema plus a few employees, a team, sales, orders and one target."""
    with engine.begin() as conn:
        conn.execute(text("""
            INSERT INTO employees (id, name, permission, role) VALUES
                (1, 'Xuan', 'Sales', 'employee'),
                (2, 'Yen', 'orders', 'employee'),
                (3, 'Zara', 'Sales & Orders', 'employee'),
                (4, 'Ghost', 'Marketing', 'employee')
        """))
        conn.execute(text("INSERT INTO teams (id, name, manager_id) VALUES (10, 'Team A', 3)"))
        conn.execute(text("""
            INSERT INTO team_members (team_id, employee_id) VALUES (10, 2), (10, 1), (10, 3)
        """))
        conn.execute(text("""
            INSERT INTO sales (employee_id, sales_amount, sales_qty, sale_date) VALUES
                (1, 1500, 2, '2025-03-05 09:00:00'),
                (1, 500, 1, '2025-03-31 23:59:59'),
                (3, 3000, 4, '2025-04-01 00:00:00'),
                (NULL, 999, 1, '2025-04-02 00:00:00')
        """))
        conn.execute(text("""
            INSERT INTO orders (employee_id, order_amount, order_qty, order_date) VALUES
                (2, 800, 3, '2024-12-20 12:00:00')
        """))
        conn.execute(text("""
            INSERT INTO targets (employee_id, target_type, target_amount, target_qty, month, year)
            VALUES (1, 'sale', 4000, 10, 3, 2025)
        """))
    return engine
