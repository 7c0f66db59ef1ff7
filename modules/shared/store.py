import os
import json
import uuid
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from modules.shared.db import execute_query, get_transaction
from modules.shared.errors import (
    RecordNotFound, StoreError, StoreInvalidInput, StoreUnavailable, translate_db_error,
)
from modules.shared.response import serialize_data

logger = logging.getLogger("shared.store")

USERS = "users"
REQUESTORS = "requestors"
RESPONDERS = "responders"
EMERGENCIES = "emergencies"

# Whitelisted columns per table; identifiers are interpolated, values never are.
TABLE_COLUMNS = {
    USERS: ("id", "name", "email", "phone", "role", "type", "created_at"),
    REQUESTORS: ("id", "user_id", "name", "email", "phone", "situation", "concern", "created_at"),
    RESPONDERS: ("id", "user_id", "name", "email", "phone", "type", "status", "responding_to", "created_at"),
    EMERGENCIES: (
        "id", "user_id", "type", "description", "location", "address", "status", "priority",
        "reported_at", "updated_at", "responder_id", "responder",
    ),
}

JSON_COLUMNS = {
    EMERGENCIES: ("location",),
}

DEFAULT_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))
DEFAULT_RETRY_DELAY = float(os.getenv("STORE_RETRY_DELAY", "0.2"))


def _check_table(table: str) -> None:
    if table not in TABLE_COLUMNS:
        raise ValueError(f"Unknown table: {table}")


def _check_columns(table: str, columns) -> None:
    unknown = [c for c in columns if c not in TABLE_COLUMNS[table]]
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")


def _where(table: str, filters: Optional[Dict[str, Any]], start: int = 1):
    """Build an equality WHERE clause; list or tuple values match any member."""
    if not filters:
        return "", []
    _check_columns(table, filters.keys())
    conditions = []
    params = []
    index = start
    for column, value in filters.items():
        if value is None:
            conditions.append(f"{column} IS NULL")
            continue
        if isinstance(value, (list, tuple)):
            conditions.append(f"{column} = ANY(${index})")
            params.append(list(value))
        else:
            conditions.append(f"{column} = ${index}")
            params.append(value)
        index += 1
    return " WHERE " + " AND ".join(conditions), params


def build_select(table: str, filters: Optional[Dict[str, Any]] = None, order_by: Optional[str] = None,
                 descending: bool = False, count_only: bool = False, limit: Optional[int] = None):
    _check_table(table)
    where_clause, params = _where(table, filters)
    target = "COUNT(*)" if count_only else "*"
    sql = f"SELECT {target} FROM {table}{where_clause}"
    if count_only:
        return sql, params
    if order_by:
        _check_columns(table, [order_by])
        sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
    if limit is not None:
        params.append(int(limit))
        sql += f" LIMIT ${len(params)}"
    return sql, params


def build_insert(table: str, payload: Dict[str, Any]):
    _check_table(table)
    _check_columns(table, payload.keys())
    columns = list(payload.keys())
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *"
    return sql, [payload[c] for c in columns]


def build_update(table: str, record_id: str, changes: Dict[str, Any]):
    _check_table(table)
    if not changes:
        raise ValueError("No changes supplied")
    _check_columns(table, changes.keys())
    columns = list(changes.keys())
    assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=1))
    sql = f"UPDATE {table} SET {assignments} WHERE id = ${len(columns) + 1} RETURNING *"
    return sql, [changes[c] for c in columns] + [record_id]


def build_delete(table: str, record_id: str):
    _check_table(table)
    return f"DELETE FROM {table} WHERE id = $1 RETURNING id", [record_id]


def encode_values(table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Encode JSON column values to JSON text for binding; plain strings become JSON strings."""
    encoded = dict(payload)
    for column in JSON_COLUMNS.get(table, ()):
        value = encoded.get(column)
        if value is not None:
            encoded[column] = json.dumps(value)
    return encoded


def normalize_row(table: str, row) -> Dict[str, Any]:
    """Convert a driver record into plain JSON-ready data."""
    data = serialize_data(dict(row))
    for column in JSON_COLUMNS.get(table, ()):
        value = data.get(column)
        if isinstance(value, str):
            try:
                data[column] = json.loads(value)
            except ValueError:
                # Already decoded by the driver's jsonb codec
                pass
    return data


class RecordStore:
    """
    Client for the four remote collections: users, requestors, responders, emergencies.

    Failures are raised as StoreError subclasses. Idempotent calls (reads, updates, deletes)
    are retried on StoreUnavailable when not bound to a transaction.
    """

    def __init__(self, conn=None, retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
                 retry_delay: float = DEFAULT_RETRY_DELAY):
        self._conn = conn
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None

    async def _call(self, table: str, sql: str, params, fetch_one: bool = False, retry: bool = True):
        attempts = self.retry_attempts if retry and not self.in_transaction else 1
        for attempt in range(1, attempts + 1):
            try:
                return await execute_query(sql, params, fetch_one=fetch_one, conn=self._conn)
            except Exception as e:
                error = translate_db_error(e, table)
                if isinstance(error, StoreUnavailable) and attempt < attempts:
                    logger.warning(f"Transient failure on {table} (attempt {attempt}/{attempts}): {error.message}")
                    await asyncio.sleep(self.retry_delay * attempt)
                    continue
                logger.error(f"Store call on {table} failed: {error.__class__.__name__}: {error.message}")
                raise error from e

    async def list(self, table: str, filters: Optional[Dict[str, Any]] = None, order_by: Optional[str] = None,
                   descending: bool = False, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        sql, params = build_select(table, filters, order_by, descending, limit=limit)
        rows = await self._call(table, sql, params)
        return [normalize_row(table, r) for r in rows or []]

    async def _call_by_id(self, table: str, sql: str, params):
        # The id is the only bound value; one the column type rejects matches no row
        try:
            return await self._call(table, sql, params, fetch_one=True)
        except StoreInvalidInput as e:
            raise RecordNotFound(f"{table} record {params[0]} not found ({e.message})", table) from e

    async def get(self, table: str, record_id: str) -> Dict[str, Any]:
        sql, params = build_select(table, {"id": record_id})
        row = await self._call_by_id(table, sql, params)
        if not row:
            raise RecordNotFound(f"{table} record {record_id} not found", table)
        return normalize_row(table, row)

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        sql, params = build_select(table, filters, count_only=True)
        row = await self._call(table, sql, params, fetch_one=True)
        return int(row[0]) if row else 0

    async def insert(self, table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = encode_values(table, payload)
        payload.setdefault("id", str(uuid.uuid4()))
        sql, params = build_insert(table, payload)
        row = await self._call(table, sql, params, fetch_one=True, retry=False)
        if not row:
            raise StoreError(f"Insert into {table} returned no row", table)
        return normalize_row(table, row)

    async def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        sql, params = build_update(table, record_id, encode_values(table, changes))
        row = await self._call(table, sql, params, fetch_one=True)
        if not row:
            raise RecordNotFound(f"{table} record {record_id} not found", table)
        return normalize_row(table, row)

    async def delete(self, table: str, record_id: str) -> bool:
        sql, params = build_delete(table, record_id)
        row = await self._call_by_id(table, sql, params)
        if not row:
            raise RecordNotFound(f"{table} record {record_id} not found", table)
        return True

    @asynccontextmanager
    async def transaction(self):
        """Yield a store bound to a single connection inside one database transaction."""
        if self.in_transaction:
            # Nested use joins the outer transaction
            yield self
            return
        try:
            async with get_transaction() as conn:
                yield RecordStore(conn=conn, retry_attempts=1, retry_delay=self.retry_delay)
        except StoreError:
            raise
        except Exception as e:
            error = translate_db_error(e)
            if error.__class__ is StoreError:
                # Not a driver failure; let the caller's own exception through
                raise
            raise error from e


def get_store() -> RecordStore:
    """FastAPI dependency returning a pool-backed store"""
    return RecordStore()
