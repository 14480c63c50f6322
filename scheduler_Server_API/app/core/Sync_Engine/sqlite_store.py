# sqlite_store.py
# Description: SQLite backed row store. One table per collection; store metadata lives in `$`-prefixed columns.
#
# Imports
import asyncio
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .exceptions import RowNotFoundError, StoreError
from .models import Collection, Record, STORE_ID_FIELD, is_internal_field
from .row_store import Row, RowStore, new_row_id, utc_timestamp
#
########################################################################################################################
#
# Functions:

# Column sets used when bootstrapping an empty database for a scheduler project
DEFAULT_SCHEDULER_COLUMNS: Dict[Collection, List[str]] = {
    Collection.RESOURCES: ["name", "calendar", "image", "eventColor"],
    Collection.EVENTS: [
        "name", "startDate", "endDate", "duration", "durationUnit", "calendar",
        "constraintType", "constraintDate", "percentDone", "manuallyScheduled",
        "recurrenceRule", "exceptionDates", "segments", "eventColor", "allDay",
    ],
    Collection.ASSIGNMENTS: ["eventId", "resourceId", "units"],
    Collection.DEPENDENCIES: ["fromEvent", "toEvent", "type", "lag", "lagUnit", "fromSide", "toSide"],
    Collection.CALENDARS: ["name", "intervals", "unspecifiedTimeIsWorking"],
}

# SQLite keeps booleans as 0 / 1; these columns are turned back into bools on read
DEFAULT_BOOLEAN_COLUMNS: Dict[Collection, List[str]] = {
    Collection.EVENTS: ["manuallyScheduled", "allDay"],
    Collection.CALENDARS: ["unspecifiedTimeIsWorking"],
}

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_METADATA_COLUMNS = ('"$id" TEXT PRIMARY KEY', '"$createdAt" TEXT NOT NULL', '"$updatedAt" TEXT NOT NULL')


def _quote(identifier: str) -> str:
    if not _IDENTIFIER_RE.match(identifier):
        raise StoreError(f"Invalid identifier: {identifier!r}", context={"identifier": identifier})
    return f'"{identifier}"'


class SQLiteRowStore(RowStore):
    """
    Row store on top of a single SQLite file.

    sqlite3 is synchronous, so every call runs in a worker thread through
    asyncio.to_thread; a lock serializes access to the shared connection.
    """

    def __init__(self, db_path: Union[str, Path], tables: Optional[Dict[str, Iterable[str]]] = None,
                 boolean_columns: Optional[Dict[str, Iterable[str]]] = None):
        self.db_path_str = str(db_path)
        self._boolean_columns: Dict[str, Set[str]] = {
            table_id: set(columns) for table_id, columns in (boolean_columns or {}).items()
        }
        if self.db_path_str != ":memory:":
            Path(self.db_path_str).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path_str, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if self.db_path_str != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL;")
        logger.info(f"Opened SQLite row store at {self.db_path_str}")
        if tables:
            self.ensure_tables(tables)

    # --- Synchronous helpers (run in worker threads) ---

    def _execute(self, query: str, params: tuple = (), *, operation: str, table_id: str,
                 row_id: Optional[str] = None, fetch: bool = False) -> Union[List[sqlite3.Row], int]:
        """Runs one statement. Returns the fetched rows when `fetch` is set, else the affected row count."""
        try:
            with self._lock:
                cursor = self._conn.execute(query, params)
                if fetch:
                    return cursor.fetchall()
                self._conn.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            logger.error(f"SQLite {operation} on '{table_id}' failed: {e}")
            raise StoreError(f"SQLite {operation} failed: {e}", operation=operation, table_id=table_id,
                             row_id=row_id, original_error=e) from e

    def ensure_tables(self, tables: Dict[str, Iterable[str]]) -> None:
        """Creates missing tables and adds missing columns. Existing data is kept."""
        for table_id, columns in tables.items():
            table = _quote(table_id)
            self._execute(f"CREATE TABLE IF NOT EXISTS {table} ({', '.join(_METADATA_COLUMNS)})",
                          operation="create_table", table_id=table_id)
            existing = self._columns(table_id)
            for column in columns:
                if column not in existing:
                    self._execute(f"ALTER TABLE {table} ADD COLUMN {_quote(column)}",
                                  operation="add_column", table_id=table_id)
            logger.debug(f"Ensured SQLite table '{table_id}' with columns {sorted(columns)}")

    def _columns(self, table_id: str) -> Set[str]:
        rows = self._execute(f"PRAGMA table_info({_quote(table_id)})", operation="list_schema", table_id=table_id,
                             fetch=True)
        return {row["name"] for row in rows}

    def _list_schema_sync(self, table_id: str) -> Set[str]:
        columns = self._columns(table_id)
        if not columns:
            raise StoreError(f"Table '{table_id}' does not exist", operation="list_schema", table_id=table_id)
        return {column for column in columns if not is_internal_field(column)}

    def _to_row(self, table_id: str, record: sqlite3.Row) -> Row:
        row = dict(record)
        for column in self._boolean_columns.get(table_id, ()):
            if isinstance(row.get(column), int) and row[column] in (0, 1):
                row[column] = bool(row[column])
        return row

    def _get_row_sync(self, table_id: str, row_id: str, operation: str = "get_row") -> Row:
        rows = self._execute(f'SELECT * FROM {_quote(table_id)} WHERE "$id" = ?', (row_id,),
                             operation=operation, table_id=table_id, row_id=row_id, fetch=True)
        if not rows:
            raise RowNotFoundError(f"Row '{row_id}' not found", operation=operation, table_id=table_id, row_id=row_id)
        return self._to_row(table_id, rows[0])

    def _list_rows_sync(self, table_id: str) -> List[Row]:
        rows = self._execute(f'SELECT * FROM {_quote(table_id)} ORDER BY "$createdAt", rowid',
                             operation="list_rows", table_id=table_id, fetch=True)
        return [self._to_row(table_id, row) for row in rows]

    def _create_row_sync(self, table_id: str, row_id: Optional[str], fields: Record) -> Row:
        row_id = row_id or new_row_id()
        now = utc_timestamp()
        values: Dict[str, Any] = {STORE_ID_FIELD: row_id, "$createdAt": now, "$updatedAt": now, **fields}
        columns = ", ".join(f'"{name}"' if is_internal_field(name) else _quote(name) for name in values)
        placeholders = ", ".join("?" for _ in values)
        self._execute(f"INSERT INTO {_quote(table_id)} ({columns}) VALUES ({placeholders})",
                      tuple(values.values()), operation="create_row", table_id=table_id, row_id=row_id)
        return self._get_row_sync(table_id, row_id, "create_row")

    def _update_row_sync(self, table_id: str, row_id: str, fields: Record) -> Row:
        values: Dict[str, Any] = {**fields, "$updatedAt": utc_timestamp()}
        assignments = ", ".join(
            f'"{name}" = ?' if is_internal_field(name) else f"{_quote(name)} = ?" for name in values
        )
        updated = self._execute(f'UPDATE {_quote(table_id)} SET {assignments} WHERE "$id" = ?',
                                (*values.values(), row_id), operation="update_row", table_id=table_id, row_id=row_id)
        if updated == 0:
            raise RowNotFoundError(f"Row '{row_id}' not found", operation="update_row", table_id=table_id, row_id=row_id)
        return self._get_row_sync(table_id, row_id, "update_row")

    def _delete_row_sync(self, table_id: str, row_id: str) -> None:
        deleted = self._execute(f'DELETE FROM {_quote(table_id)} WHERE "$id" = ?', (row_id,),
                                operation="delete_row", table_id=table_id, row_id=row_id)
        if deleted == 0:
            raise RowNotFoundError(f"Row '{row_id}' not found", operation="delete_row", table_id=table_id, row_id=row_id)

    # --- RowStore interface ---

    async def list_schema(self, table_id: str) -> Set[str]:
        return await asyncio.to_thread(self._list_schema_sync, table_id)

    async def list_rows(self, table_id: str) -> List[Row]:
        return await asyncio.to_thread(self._list_rows_sync, table_id)

    async def get_row(self, table_id: str, row_id: str) -> Row:
        return await asyncio.to_thread(self._get_row_sync, table_id, row_id)

    async def create_row(self, table_id: str, row_id: Optional[str], fields: Record) -> Row:
        return await asyncio.to_thread(self._create_row_sync, table_id, row_id, fields)

    async def update_row(self, table_id: str, row_id: str, fields: Record) -> Row:
        return await asyncio.to_thread(self._update_row_sync, table_id, row_id, fields)

    async def delete_row(self, table_id: str, row_id: str) -> None:
        await asyncio.to_thread(self._delete_row_sync, table_id, row_id)

    def close_connection(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info(f"Closed SQLite row store at {self.db_path_str}")

    async def close(self) -> None:
        self.close_connection()

#
# End of sqlite_store.py
########################################################################################################################
