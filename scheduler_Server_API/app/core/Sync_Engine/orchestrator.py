# orchestrator.py
# Description: Sequences the sanitizer, mutator and phantom resolver across all collections of a sync request.
#
# Imports
import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .config import SyncEngineConfig
from .exceptions import InvalidChangeSetError, SyncEngineError, UnknownFieldError
from .models import (
    FOREIGN_KEYS, ID_FIELD, Collection, CollectionDelta, ForeignKey, LoadResult, PhantomIdPair, SyncResult,
)
from .mutator import RowMutator
from .resolver import build_phantom_mapping, resolve_references
from .row_store import RowStore
from .sanitizer import declean, unknown_fields
from .schema_registry import SchemaRegistry
#
########################################################################################################################
#
# Functions:


def dependency_order(collections: Sequence[Collection], foreign_keys: Iterable[ForeignKey]) -> List[Collection]:
    """
    Orders collections so every referenced collection comes before the collections
    pointing at it. Among collections that are ready at the same time, the order of
    `collections` is kept.

    Raises:
        SyncEngineError: If the foreign keys form a cycle.
    """
    position = {collection: index for index, collection in enumerate(collections)}
    depends_on: Dict[Collection, Set[Collection]] = {collection: set() for collection in collections}
    for fk in foreign_keys:
        if fk.collection in position and fk.references in position and fk.collection != fk.references:
            depends_on[fk.collection].add(fk.references)

    ordered: List[Collection] = []
    remaining = list(collections)
    while remaining:
        ready = [c for c in remaining if not depends_on[c] - set(ordered)]
        if not ready:
            raise SyncEngineError(
                "Collection dependencies contain a cycle",
                context={"collections": [c.value for c in remaining]},
            )
        nxt = min(ready, key=position.__getitem__)
        ordered.append(nxt)
        remaining.remove(nxt)
    return ordered


class ChangeSetOrchestrator:
    """
    Applies a multi-collection change set in one linear pass.

    Collections are processed in dependency order. Before a collection is written,
    references in its added records that point at phantom ids created earlier in the
    same request are rewritten to the persistent ids. The first failure aborts the
    pass; changes already written stay written.
    """

    def __init__(
        self,
        store: RowStore,
        table_ids: Optional[Mapping[Collection, str]] = None,
        schema_registry: Optional[SchemaRegistry] = None,
        config: Optional[SyncEngineConfig] = None,
        foreign_keys: Iterable[ForeignKey] = FOREIGN_KEYS,
    ):
        self.store = store
        self.table_ids: Dict[Collection, str] = {c: c.value for c in Collection}
        self.table_ids.update(table_ids or {})
        self.config = config or SyncEngineConfig()
        self.schema_registry = schema_registry or SchemaRegistry(
            ttl=self.config.schema_cache_ttl, maxsize=self.config.schema_cache_size
        )
        self.foreign_keys = tuple(foreign_keys)
        self.order = dependency_order(list(Collection), self.foreign_keys)

    # --- Write path ---

    def _validate(self, deltas: Mapping[Collection, CollectionDelta]) -> None:
        phantom_field = self.config.phantom_id_field
        for collection, delta in deltas.items():
            for index, record in enumerate(delta.added):
                if not isinstance(record, dict) or record.get(phantom_field) is None:
                    raise InvalidChangeSetError(
                        f"Added record #{index} has no '{phantom_field}'", collection=collection.value
                    )
            for kind, entries in (("updated", delta.updated), ("removed", delta.removed)):
                for index, record in enumerate(entries):
                    if not isinstance(record, dict) or record.get(ID_FIELD) is None:
                        raise InvalidChangeSetError(
                            f"{kind.capitalize()} record #{index} has no '{ID_FIELD}'", collection=collection.value
                        )

    def _check_unknown_fields(self, deltas: Mapping[Collection, CollectionDelta],
                              schemas: Mapping[str, Set[str]]) -> None:
        """Strict policy: reject the whole request before the first write."""
        for collection, delta in deltas.items():
            schema = schemas[self.table_ids[collection]]
            for record in (*delta.added, *delta.updated):
                unknown = unknown_fields(schema, record)
                if unknown:
                    raise UnknownFieldError(
                        f"Field '{unknown[0]}' is not part of the table schema",
                        field_name=unknown[0],
                        collection=collection.value,
                    )

    def _request_phantoms(self, deltas: Mapping[Collection, CollectionDelta]) -> Set[Any]:
        phantom_field = self.config.phantom_id_field
        phantoms: Set[Any] = set()
        for delta in deltas.values():
            for record in delta.added:
                try:
                    phantoms.add(record[phantom_field])
                except TypeError:
                    continue
        return phantoms

    async def apply_change_set(self, deltas: Mapping[Collection, CollectionDelta]) -> SyncResult:
        """
        Args:
            deltas: Pending changes keyed by collection; absent collections are untouched.

        Returns:
            SyncResult with the phantom -> persistent id pairs of every collection that created rows.

        Raises:
            InvalidChangeSetError: Before any write, if an entry lacks its phantom id or id.
            SchemaLookupError: Before any write, if a table schema cannot be read.
            StoreError: If the store rejects a row operation.
        """
        deltas = {
            collection: delta for collection, delta in deltas.items() if delta is not None and not delta.is_empty()
        }
        self._validate(deltas)
        result = SyncResult()
        if not deltas:
            return result

        schemas = await self.schema_registry.load(self.store, (self.table_ids[c] for c in deltas))
        if self.config.reject_unknown_fields:
            self._check_unknown_fields(deltas, schemas)
        known_phantoms = self._request_phantoms(deltas) if self.config.reject_unresolved_references else None
        mappings: Dict[Collection, Dict[Any, str]] = {}

        for collection in self.order:
            delta = deltas.get(collection)
            if delta is None:
                continue

            added = delta.added
            for fk in self.foreign_keys:
                if fk.collection != collection:
                    continue
                mapping = mappings.get(fk.references, {})
                if mapping or known_phantoms is not None:
                    added = resolve_references(added, mapping, fk.field, known_phantoms=known_phantoms,
                                               collection=collection.value)

            table_id = self.table_ids[collection]
            mutator = RowMutator(self.store, table_id, schemas[table_id], self.config, collection.value)
            logger.info(
                f"Applying {collection.value}: {len(added)} added, {len(delta.removed)} removed, "
                f"{len(delta.updated)} updated"
            )
            created: List[PhantomIdPair] = await mutator.apply(
                CollectionDelta(added=added, updated=delta.updated, removed=delta.removed)
            )
            if created:
                mappings[collection] = build_phantom_mapping(created)
                result.rows[collection] = created

        return result

    # --- Read path ---

    async def load_all(self) -> LoadResult:
        """Reads every collection concurrently and returns the cleaned rows."""
        collections = list(Collection)
        row_sets = await asyncio.gather(*(self.store.list_rows(self.table_ids[c]) for c in collections))
        result = LoadResult()
        for collection, rows in zip(collections, row_sets):
            result.rows[collection] = [declean(row) for row in rows]
        logger.info("Loaded " + ", ".join(f"{len(result.rows[c])} {c.value}" for c in collections))
        return result

#
# End of orchestrator.py
########################################################################################################################
