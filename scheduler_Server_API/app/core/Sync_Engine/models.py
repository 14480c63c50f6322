"""
Data model for the scheduler sync engine.

Collections, structured fields and the foreign-key graph between collections
are declared here once; the sanitizer, resolver and orchestrator only ever
iterate these declarations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


Record = Dict[str, Any]

# Keys starting with this prefix are store-internal metadata ($id, $createdAt, ...)
INTERNAL_FIELD_PREFIX = "$"
STORE_ID_FIELD = "$id"
ID_FIELD = "id"


class Collection(str, Enum):
    """The record collections a scheduler project is made of."""
    RESOURCES = "resources"
    EVENTS = "events"
    ASSIGNMENTS = "assignments"
    DEPENDENCIES = "dependencies"
    CALENDARS = "calendars"


class StructuredField(str, Enum):
    """Fields held as nested values in memory but as JSON text in the store."""
    INTERVALS = "intervals"
    EXCEPTION_DATES = "exceptionDates"
    SEGMENTS = "segments"


@dataclass(frozen=True)
class ForeignKey:
    """`collection.field` holds an identifier of a row in `references`."""
    collection: Collection
    field: str
    references: Collection


FOREIGN_KEYS: Tuple[ForeignKey, ...] = (
    ForeignKey(Collection.ASSIGNMENTS, "eventId", Collection.EVENTS),
    ForeignKey(Collection.ASSIGNMENTS, "resourceId", Collection.RESOURCES),
    ForeignKey(Collection.DEPENDENCIES, "fromEvent", Collection.EVENTS),
    ForeignKey(Collection.DEPENDENCIES, "toEvent", Collection.EVENTS),
)


def is_internal_field(name: str) -> bool:
    return name.startswith(INTERNAL_FIELD_PREFIX)


@dataclass
class CollectionDelta:
    """Pending client changes for one collection."""
    added: List[Record] = field(default_factory=list)
    updated: List[Record] = field(default_factory=list)
    removed: List[Record] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CollectionDelta":
        data = data or {}
        return cls(
            added=list(data.get("added") or []),
            updated=list(data.get("updated") or []),
            removed=list(data.get("removed") or []),
        )

    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)


@dataclass(frozen=True)
class PhantomIdPair:
    """Links a client phantom id to the persistent id the store assigned."""
    phantom_id: Any
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"phantomId": self.phantom_id, "id": self.id}


@dataclass
class SyncResult:
    """Creations per collection; collections without creations are absent."""
    rows: Dict[Collection, List[PhantomIdPair]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            collection.value: {"rows": [pair.to_dict() for pair in pairs]}
            for collection, pairs in self.rows.items()
        }


@dataclass
class LoadResult:
    """Cleaned rows of every collection, as returned by the read path."""
    rows: Dict[Collection, List[Record]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {collection.value: {"rows": records} for collection, records in self.rows.items()}
