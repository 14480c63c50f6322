# Sync_Engine/__init__.py
from .config import SyncEngineConfig
from .exceptions import (
    SyncEngineError, SchemaLookupError, StoreError, RowNotFoundError, InvalidChangeSetError,
    UnknownFieldError, UnresolvedReferenceError,
)
from .models import (
    Collection, StructuredField, ForeignKey, FOREIGN_KEYS, CollectionDelta, PhantomIdPair, SyncResult, LoadResult,
)
from .mutator import RowMutator
from .orchestrator import ChangeSetOrchestrator, dependency_order
from .resolver import build_phantom_mapping, resolve_references
from .row_store import RowStore, InMemoryRowStore
from .sanitizer import sanitize, declean
from .schema_registry import SchemaRegistry

__all__ = [
    "SyncEngineConfig",
    "SyncEngineError",
    "SchemaLookupError",
    "StoreError",
    "RowNotFoundError",
    "InvalidChangeSetError",
    "UnknownFieldError",
    "UnresolvedReferenceError",
    "Collection",
    "StructuredField",
    "ForeignKey",
    "FOREIGN_KEYS",
    "CollectionDelta",
    "PhantomIdPair",
    "SyncResult",
    "LoadResult",
    "RowMutator",
    "ChangeSetOrchestrator",
    "dependency_order",
    "build_phantom_mapping",
    "resolve_references",
    "RowStore",
    "InMemoryRowStore",
    "sanitize",
    "declean",
    "SchemaRegistry",
]
