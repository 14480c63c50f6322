"""
Read-through cache of table schemas.

With a TTL of 0 every lookup goes to the store, which keeps schemas accurate at
the time of use without any invalidation. A positive TTL caches each table's
field set for that many seconds; `invalidate()` drops entries early, e.g. after
a column was added or removed.
"""

import asyncio
import threading
from typing import Dict, Iterable, Optional, Set

from cachetools import TTLCache
from loguru import logger

from .exceptions import SchemaLookupError, StoreError
from .row_store import RowStore


class SchemaRegistry:
    """Table id -> set of field names, fetched through a RowStore."""

    def __init__(self, ttl: int = 0, maxsize: int = 64):
        self.ttl = ttl
        self._cache: Optional[TTLCache] = TTLCache(maxsize=maxsize, ttl=ttl) if ttl > 0 else None
        self._lock = threading.Lock()
        self._fetches = 0

    @property
    def fetch_count(self) -> int:
        """Number of schema lookups that reached the store."""
        return self._fetches

    async def get_schema(self, store: RowStore, table_id: str) -> Set[str]:
        if self._cache is not None:
            with self._lock:
                cached = self._cache.get(table_id)
            if cached is not None:
                return set(cached)

        try:
            self._fetches += 1
            schema = await store.list_schema(table_id)
        except StoreError as e:
            logger.error(f"Schema lookup failed for table '{table_id}': {e}")
            raise SchemaLookupError(f"Could not read the schema of table '{table_id}'",
                                    table_id=table_id, original_error=e) from e

        if self._cache is not None:
            with self._lock:
                self._cache[table_id] = frozenset(schema)
        logger.debug(f"Schema for '{table_id}': {sorted(schema)}")
        return set(schema)

    async def load(self, store: RowStore, table_ids: Iterable[str]) -> Dict[str, Set[str]]:
        """Looks up several tables concurrently; the first failure propagates."""
        table_ids = list(dict.fromkeys(table_ids))
        schemas = await asyncio.gather(*(self.get_schema(store, table_id) for table_id in table_ids))
        return dict(zip(table_ids, schemas))

    def invalidate(self, table_id: Optional[str] = None) -> None:
        if self._cache is None:
            return
        with self._lock:
            if table_id is None:
                self._cache.clear()
            else:
                self._cache.pop(table_id, None)
        logger.info(f"Invalidated cached schema for {table_id or 'all tables'}")
