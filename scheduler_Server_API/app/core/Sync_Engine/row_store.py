# row_store.py
# Description: Row store interface consumed by the sync engine, plus a dict-backed implementation
#   used in development mode and tests.
#
# Imports
import copy
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .exceptions import RowNotFoundError, StoreError
from .models import Record, STORE_ID_FIELD
#
########################################################################################################################
#
# Functions:

Row = Dict[str, Any]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + '+00:00'


def new_row_id() -> str:
    """Store-generated row identifier."""
    return uuid.uuid4().hex[:20]


class RowStore(ABC):
    """Abstract base class for the row-oriented stores the engine writes to."""

    @abstractmethod
    async def list_schema(self, table_id: str) -> Set[str]:
        """
        Returns the user-defined column names of a table.

        Raises:
            StoreError: If the table cannot be described.
        """
        pass

    @abstractmethod
    async def list_rows(self, table_id: str) -> List[Row]:
        """Returns every row of a table, each carrying its `$id` and metadata."""
        pass

    @abstractmethod
    async def get_row(self, table_id: str, row_id: str) -> Row:
        """
        Raises:
            RowNotFoundError: If no row has that id.
        """
        pass

    @abstractmethod
    async def create_row(self, table_id: str, row_id: Optional[str], fields: Record) -> Row:
        """
        Creates a row. When `row_id` is None the store assigns the identifier.

        Returns:
            The persisted row including its `$id`.
        """
        pass

    @abstractmethod
    async def update_row(self, table_id: str, row_id: str, fields: Record) -> Row:
        """
        Overwrites the given fields of an existing row; other fields are kept.

        Raises:
            RowNotFoundError: If no row has that id.
        """
        pass

    @abstractmethod
    async def delete_row(self, table_id: str, row_id: str) -> None:
        """
        Raises:
            RowNotFoundError: If no row has that id.
        """
        pass

    async def close(self) -> None:
        """Releases connections held by the store."""
        return None


class InMemoryRowStore(RowStore):
    """
    Dict-backed row store.

    Tables and their columns are declared up front; writing an undeclared column is
    rejected the same way a real backend rejects an unknown attribute.
    """

    def __init__(self, schemas: Dict[str, Iterable[str]]):
        self._schemas: Dict[str, Set[str]] = {table_id: set(columns) for table_id, columns in schemas.items()}
        self._tables: Dict[str, Dict[str, Row]] = {table_id: {} for table_id in self._schemas}
        logger.info(f"In-memory row store initialized with tables: {sorted(self._schemas)}")

    def _table(self, table_id: str, operation: str) -> Dict[str, Row]:
        if table_id not in self._tables:
            raise StoreError(f"Table '{table_id}' does not exist", operation=operation, table_id=table_id)
        return self._tables[table_id]

    def _check_columns(self, table_id: str, fields: Record, operation: str, row_id: Optional[str]) -> None:
        unknown = set(fields) - self._schemas[table_id]
        if unknown:
            raise StoreError(
                f"Invalid row structure: unknown attribute(s) {sorted(unknown)}",
                operation=operation, table_id=table_id, row_id=row_id,
            )

    async def list_schema(self, table_id: str) -> Set[str]:
        self._table(table_id, "list_schema")
        return set(self._schemas[table_id])

    async def list_rows(self, table_id: str) -> List[Row]:
        table = self._table(table_id, "list_rows")
        return [copy.deepcopy(row) for row in table.values()]

    async def get_row(self, table_id: str, row_id: str) -> Row:
        table = self._table(table_id, "get_row")
        if row_id not in table:
            raise RowNotFoundError(f"Row '{row_id}' not found", operation="get_row", table_id=table_id, row_id=row_id)
        return copy.deepcopy(table[row_id])

    async def create_row(self, table_id: str, row_id: Optional[str], fields: Record) -> Row:
        table = self._table(table_id, "create_row")
        row_id = row_id or new_row_id()
        if row_id in table:
            raise StoreError(f"Row '{row_id}' already exists", operation="create_row", table_id=table_id, row_id=row_id)
        self._check_columns(table_id, fields, "create_row", row_id)
        now = utc_timestamp()
        row = {
            STORE_ID_FIELD: row_id,
            "$tableId": table_id,
            "$createdAt": now,
            "$updatedAt": now,
            **{column: None for column in self._schemas[table_id]},
        }
        row.update(copy.deepcopy(fields))
        table[row_id] = row
        return copy.deepcopy(row)

    async def update_row(self, table_id: str, row_id: str, fields: Record) -> Row:
        table = self._table(table_id, "update_row")
        if row_id not in table:
            raise RowNotFoundError(f"Row '{row_id}' not found", operation="update_row", table_id=table_id, row_id=row_id)
        self._check_columns(table_id, fields, "update_row", row_id)
        row = table[row_id]
        row.update(copy.deepcopy(fields))
        row["$updatedAt"] = utc_timestamp()
        return copy.deepcopy(row)

    async def delete_row(self, table_id: str, row_id: str) -> None:
        table = self._table(table_id, "delete_row")
        if row_id not in table:
            raise RowNotFoundError(f"Row '{row_id}' not found", operation="delete_row", table_id=table_id, row_id=row_id)
        del table[row_id]

#
# End of row_store.py
########################################################################################################################
