# mutator.py
# Description: Applies one collection's added / removed / updated records to the row store.
#
# Imports
import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Set, TypeVar
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .config import SyncEngineConfig
from .models import ID_FIELD, STORE_ID_FIELD, CollectionDelta, PhantomIdPair, Record
from .row_store import RowStore
from .sanitizer import sanitize, unknown_fields
#
########################################################################################################################
#
# Functions:

T = TypeVar("T")


class RowMutator:
    """
    Runs the three batch operations for a single table.

    Rows inside one batch are written concurrently; `apply()` runs the batches
    strictly one after the other: creates, then deletes, then updates. A failing
    row operation propagates once the rest of its batch has settled, and nothing
    already written is undone.
    """

    def __init__(self, store: RowStore, table_id: str, schema: Set[str],
                 config: Optional[SyncEngineConfig] = None, collection: Optional[str] = None):
        self.store = store
        self.table_id = table_id
        self.schema = schema
        self.config = config or SyncEngineConfig()
        self.collection = collection or table_id
        limit = self.config.max_concurrent_operations
        self._semaphore = asyncio.Semaphore(limit) if limit > 0 else None

    def _sanitize(self, record: Record) -> Record:
        dropped = unknown_fields(self.schema, record)
        if dropped and not self.config.reject_unknown_fields:
            logger.debug(f"[{self.collection}] Dropping fields not in schema: {dropped}")
        return sanitize(
            self.schema,
            record,
            reject_unknown=self.config.reject_unknown_fields,
            exclude=(ID_FIELD, self.config.phantom_id_field),
            collection=self.collection,
        )

    async def _gather(self, records: List[Any], operation: Callable[[Any], Awaitable[T]]) -> List[T]:
        async def _bounded(record):
            if self._semaphore is None:
                return await operation(record)
            async with self._semaphore:
                return await operation(record)
        # Wait for every sibling before surfacing a failure; the first one in input order wins
        results = await asyncio.gather(*(_bounded(record) for record in records), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def create_many(self, records: List[Record]) -> List[PhantomIdPair]:
        """Creates one row per record; returns phantom -> persistent id pairs in input order."""
        if not records:
            return []
        phantom_field = self.config.phantom_id_field
        # Sanitize up front so a strict-policy rejection happens before any write
        payloads = [(record.get(phantom_field), self._sanitize(record)) for record in records]

        async def _create(item) -> PhantomIdPair:
            phantom_id, fields = item
            row = await self.store.create_row(self.table_id, None, fields)
            return PhantomIdPair(phantom_id=phantom_id, id=row[STORE_ID_FIELD])

        pairs = await self._gather(payloads, _create)
        logger.debug(f"[{self.collection}] Created {len(pairs)} row(s)")
        return pairs

    async def delete_many(self, refs: List[Record]) -> None:
        if not refs:
            return

        async def _delete(ref: Record) -> None:
            await self.store.delete_row(self.table_id, ref[ID_FIELD])

        await self._gather(refs, _delete)
        logger.debug(f"[{self.collection}] Deleted {len(refs)} row(s)")

    async def update_many(self, records: List[Record]) -> None:
        """Writes only the fields each record carries; other columns keep their values."""
        if not records:
            return
        payloads = [(record[ID_FIELD], self._sanitize(record)) for record in records]

        async def _update(item) -> None:
            row_id, fields = item
            await self.store.update_row(self.table_id, row_id, fields)

        await self._gather(payloads, _update)
        logger.debug(f"[{self.collection}] Updated {len(records)} row(s)")

    async def apply(self, delta: CollectionDelta) -> List[PhantomIdPair]:
        created = await self.create_many(delta.added)
        await self.delete_many(delta.removed)
        await self.update_many(delta.updated)
        return created

#
# End of mutator.py
########################################################################################################################
