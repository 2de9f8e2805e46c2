"""
SQL Queries and Data Loading for Target Performance

Handles all database interactions:
- Sales and orders from the `sales` / `orders` tables
- Target records from `targets`
- Actor and team snapshots from `employees`, `teams`, `team_members`
- Atomic persistence of apportioned target batches

Upstream rows are messy: the two transaction tables name their amount,
quantity and date columns differently, older rows use `sale`/`order`
labels, and ids come back as floats when a column has NULLs. Every row is
mapped onto the canonical dataclasses here so nothing downstream has to
know about it.

CHANGELOG:
- v1.2.0: Added delete_target_record() (soft delete via delete_flag)
- v1.1.0: Added update_target_record() for single-record edits
          - Only the edited row changes; sibling records keep their values
- v1.0.0: Initial implementation
"""

import logging
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd
from sqlalchemy import text

from utils.db import get_db_engine, get_transaction
from .capability import parse_capability, parse_category
from .constants import Category
from .exceptions import PersistenceError, ValidationError
from .models import Actor, PeriodInterval, TargetBatch, TargetRecord, Team, Transaction

logger = logging.getLogger(__name__)


# =============================================================================
# UPSTREAM FIELD NAMES
# =============================================================================

# Tried in order; the first present, non-null value wins
AMOUNT_FIELDS = ['amount', 'sales_amount', 'salesAmount', 'order_amount', 'orderAmount', 'total_amount', 'totalAmount']
QUANTITY_FIELDS = ['quantity', 'qty', 'sales_qty', 'salesQty', 'order_qty', 'orderQty']
DATE_FIELDS = ['occurred_at', 'date', 'sale_date', 'order_date', 'created_at', 'createdAt']
ACTOR_FIELDS = ['actor_id', 'employee_id', 'employeeId', 'user_id', 'userId']

TARGET_AMOUNT_FIELDS = ['target_amount', 'targetAmount', 'amount']
TARGET_QUANTITY_FIELDS = ['target_qty', 'targetQty', 'quantity', 'qty']
TARGET_TYPE_FIELDS = ['target_type', 'targetType', 'category']

TRANSACTION_TABLES = {
    Category.SALES: {'table': 'sales', 'date_column': 'sale_date'},
    Category.ORDERS: {'table': 'orders', 'date_column': 'order_date'},
}


# =============================================================================
# ROW MAPPING
# =============================================================================

def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def _first_present(row: Mapping[str, Any], fields: Sequence[str]) -> Any:
    for name in fields:
        if name in row and not _is_missing(row[name]):
            return row[name]
    return None


def _to_id(value: Any) -> Optional[str]:
    """Normalize an id column value to str ('5.0' from a NULL-able column -> '5')."""
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if _is_missing(value):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _to_datetime(value: Any) -> Optional[datetime]:
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def map_transaction_row(row: Mapping[str, Any], category: Category) -> Optional[Transaction]:
    """
    Map one upstream sales/orders row onto a Transaction.

    Returns:
        Transaction, or None when actor, amount or date cannot be read.
        A missing quantity counts as 0.
    """
    actor_id = _to_id(_first_present(row, ACTOR_FIELDS))
    amount = _to_decimal(_first_present(row, AMOUNT_FIELDS))
    occurred_at = _to_datetime(_first_present(row, DATE_FIELDS))

    if actor_id is None or amount is None or occurred_at is None:
        return None

    quantity = _to_decimal(_first_present(row, QUANTITY_FIELDS)) or Decimal(0)
    return Transaction(
        category=category,
        actor_id=actor_id,
        amount=amount,
        quantity=quantity,
        occurred_at=occurred_at,
        transaction_id=_to_id(row.get('id')),
    )


def map_target_row(row: Mapping[str, Any]) -> Optional[TargetRecord]:
    """
    Map one upstream target row onto a TargetRecord.

    Accepts 'sale'/'sales'/'order'/'orders' type labels in any case.
    """
    try:
        category = parse_category(_first_present(row, TARGET_TYPE_FIELDS))
    except ValidationError:
        return None

    actor_id = _to_id(_first_present(row, ACTOR_FIELDS))
    amount = _to_decimal(_first_present(row, TARGET_AMOUNT_FIELDS))
    month = _first_present(row, ['month'])
    year = _first_present(row, ['year'])

    if actor_id is None or amount is None or month is None or year is None:
        return None

    original_total = _to_decimal(row.get('original_total'))
    members_count = row.get('members_count')
    return TargetRecord(
        actor_id=actor_id,
        category=category,
        month=int(month),
        year=int(year),
        amount=amount,
        quantity=_to_decimal(_first_present(row, TARGET_QUANTITY_FIELDS)) or Decimal(0),
        request_id=_to_id(row.get('request_id')),
        original_total=original_total,
        members_count=None if _is_missing(members_count) else int(members_count),
        target_id=_to_id(row.get('id')),
    )


def map_actor_row(row: Mapping[str, Any]) -> Optional[Actor]:
    """Map an employees row; rows with an unknown permission label are skipped."""
    actor_id = _to_id(row.get('id'))
    if actor_id is None:
        return None
    try:
        capability = parse_capability(row.get('permission'))
    except ValidationError:
        logger.warning(f"Employee {actor_id} has unknown permission {row.get('permission')!r}")
        return None
    return Actor(
        actor_id=actor_id,
        name=actor_id if _is_missing(row.get('name')) else str(row['name']),
        capability=capability,
        role=row.get('role'),
    )


def _map_rows(df: pd.DataFrame, mapper, what: str) -> List[Any]:
    mapped = []
    skipped = 0
    for row in df.to_dict('records'):
        item = mapper(row)
        if item is None:
            skipped += 1
        else:
            mapped.append(item)
    if skipped:
        logger.warning(f"Skipped {skipped} unreadable {what} rows")
    return mapped


def _interval_bounds(interval: PeriodInterval) -> Dict[str, Any]:
    """Half-open date bounds [start, end) as ISO strings."""
    params = {}
    if interval.start is not None:
        params['start_date'] = date(interval.start.year, interval.start.month, 1).isoformat()
    if interval.end is not None:
        after = interval.end.next()
        params['end_date'] = date(after.year, after.month, 1).isoformat()
    return params


# =============================================================================
# QUERIES
# =============================================================================

class TargetPerformanceQueries:
    """
    Data loading and persistence for target performance.

    Usage:
        queries = TargetPerformanceQueries()

        sales = queries.fetch_transactions(Category.SALES, interval)
        targets = queries.fetch_target_records(Category.SALES, interval)
        ids = queries.persist_target_batch(batch)
    """

    def __init__(self, engine=None):
        """
        Args:
            engine: Optional SQLAlchemy engine; defaults to the shared one
        """
        self._engine = engine

    @property
    def engine(self):
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def fetch_transactions(
        self,
        category: Category,
        interval: Optional[PeriodInterval] = None
    ) -> List[Transaction]:
        """
        Load sales or orders, optionally restricted to an interval.

        Raises:
            Any database error, so the loader can mark the source failed
        """
        source = TRANSACTION_TABLES[category]
        date_column = source['date_column']

        query = f"""
            SELECT *
            FROM {source['table']}
            WHERE delete_flag = 0
        """
        params = _interval_bounds(interval) if interval else {}
        if 'start_date' in params:
            query += f" AND {date_column} >= :start_date"
        if 'end_date' in params:
            query += f" AND {date_column} < :end_date"
        query += f" ORDER BY {date_column}"

        df = self._execute_query(query, params, f"fetch_transactions[{category.value}]")
        return _map_rows(df, lambda row: map_transaction_row(row, category), category.value)

    # =========================================================================
    # TARGETS
    # =========================================================================

    def fetch_target_records(
        self,
        category: Optional[Category] = None,
        interval: Optional[PeriodInterval] = None
    ) -> List[TargetRecord]:
        """
        Load target records. Category filtering happens after mapping since
        upstream labels vary ('sale' vs 'sales').
        """
        query = """
            SELECT
                id,
                employee_id,
                target_type,
                target_amount,
                target_qty,
                month,
                year,
                request_id,
                original_total,
                members_count
            FROM targets
            WHERE delete_flag = 0
        """
        params = {}
        if interval is not None and interval.start is not None:
            query += " AND (year * 100 + month) >= :start_key"
            params['start_key'] = interval.start.year * 100 + interval.start.month
        if interval is not None and interval.end is not None:
            query += " AND (year * 100 + month) <= :end_key"
            params['end_key'] = interval.end.year * 100 + interval.end.month
        query += " ORDER BY year, month, id"

        df = self._execute_query(query, params, "fetch_target_records")
        records = _map_rows(df, map_target_row, 'target')
        if category is not None:
            records = [r for r in records if r.category == category]
        return records

    # =========================================================================
    # ACTORS / TEAMS
    # =========================================================================

    def fetch_actors(self) -> List[Actor]:
        query = """
            SELECT id, name, permission, role
            FROM employees
            WHERE delete_flag = 0
            ORDER BY name
        """
        df = self._execute_query(query, {}, "fetch_actors")
        return _map_rows(df, map_actor_row, 'employee')

    def fetch_teams(self) -> List[Team]:
        """Teams with members in insertion order."""
        teams_df = self._execute_query(
            """
            SELECT id, name, manager_id
            FROM teams
            WHERE delete_flag = 0
            ORDER BY name
            """,
            {},
            "fetch_teams"
        )
        members_df = self._execute_query(
            """
            SELECT team_id, employee_id
            FROM team_members
            ORDER BY team_id, id
            """,
            {},
            "fetch_team_members"
        )

        members: Dict[str, List[str]] = {}
        for row in members_df.to_dict('records'):
            team_id = _to_id(row['team_id'])
            member_id = _to_id(row['employee_id'])
            if team_id and member_id:
                members.setdefault(team_id, []).append(member_id)

        teams = []
        for row in teams_df.to_dict('records'):
            team_id = _to_id(row['id'])
            teams.append(Team(
                team_id=team_id,
                name=row['name'],
                member_ids=tuple(members.get(team_id, [])),
                manager_id=_to_id(row.get('manager_id')),
            ))
        return teams

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def persist_target_batch(self, batch: TargetBatch) -> List[str]:
        """
        Insert every record of a batch in one transaction.

        Returns:
            New target IDs, in record order

        Raises:
            PersistenceError: Nothing was written
        """
        query = text("""
            INSERT INTO targets (
                employee_id, target_type, target_amount, target_qty,
                month, year, request_id, original_total, members_count,
                created_by, delete_flag
            ) VALUES (
                :employee_id, :target_type, :target_amount, :target_qty,
                :month, :year, :request_id, :original_total, :members_count,
                :created_by, 0
            )
        """)

        ids = []
        try:
            with get_transaction(self.engine) as conn:
                for record in batch.records:
                    result = conn.execute(query, {
                        'employee_id': record.actor_id,
                        'target_type': record.category.value,
                        'target_amount': str(record.amount),
                        'target_qty': str(record.quantity),
                        'month': record.month,
                        'year': record.year,
                        'request_id': record.request_id,
                        'original_total': None if record.original_total is None else str(record.original_total),
                        'members_count': record.members_count,
                        'created_by': batch.request.created_by,
                    })
                    ids.append(str(result.lastrowid))
        except Exception as e:
            logger.error(f"Error persisting target batch {batch.request.request_id}: {e}")
            raise PersistenceError(f"Could not save targets: {e}") from e

        logger.info(f"Persisted {len(ids)} target records for request {batch.request.request_id}")
        return ids

    def update_target_record(self, record: TargetRecord) -> None:
        """
        Write back a single edited record.

        Raises:
            PersistenceError: Record has no id, does not exist, or the write failed
        """
        if record.target_id is None:
            raise PersistenceError("Cannot update a target that was never saved")

        query = text("""
            UPDATE targets
            SET target_amount = :target_amount,
                target_qty = :target_qty,
                month = :month,
                year = :year
            WHERE id = :target_id
              AND delete_flag = 0
        """)

        try:
            with get_transaction(self.engine) as conn:
                result = conn.execute(query, {
                    'target_amount': str(record.amount),
                    'target_qty': str(record.quantity),
                    'month': record.month,
                    'year': record.year,
                    'target_id': record.target_id,
                })
                updated = result.rowcount
        except Exception as e:
            logger.error(f"Error updating target {record.target_id}: {e}")
            raise PersistenceError(f"Could not update target: {e}") from e

        if not updated:
            raise PersistenceError(f"Target {record.target_id} not found")
        logger.info(f"Updated target {record.target_id} for actor {record.actor_id}")

    def delete_target_record(self, record: TargetRecord) -> None:
        """
        Soft-delete a single record (delete_flag = 1); siblings are kept.

        Raises:
            PersistenceError: Record has no id, is already gone, or the write failed
        """
        if record.target_id is None:
            raise PersistenceError("Cannot delete a target that was never saved")

        query = text("""
            UPDATE targets
            SET delete_flag = 1
            WHERE id = :target_id
              AND delete_flag = 0
        """)

        try:
            with get_transaction(self.engine) as conn:
                deleted = conn.execute(query, {'target_id': record.target_id}).rowcount
        except Exception as e:
            logger.error(f"Error deleting target {record.target_id}: {e}")
            raise PersistenceError(f"Could not delete target: {e}") from e

        if not deleted:
            raise PersistenceError(f"Target {record.target_id} not found")
        logger.info(f"Deleted target {record.target_id} for actor {record.actor_id}")

    # =========================================================================
    # HELPER
    # =========================================================================

    def _execute_query(
        self,
        query: str,
        params: dict,
        query_name: str = "query"
    ) -> pd.DataFrame:
        """
        Execute SQL query and return DataFrame.

        Errors are logged and re-raised; callers decide whether a failed
        source is fatal.
        """
        try:
            logger.debug(f"Executing {query_name}")
            df = pd.read_sql(text(query), self.engine, params=params)
            logger.debug(f"{query_name} returned {len(df)} rows")
            return df
        except Exception as e:
            logger.error(f"Error executing {query_name}: {e}")
            raise
