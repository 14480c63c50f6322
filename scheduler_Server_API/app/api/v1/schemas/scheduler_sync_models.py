# scheduler_sync_models.py
# Description: Request and response models for the scheduler load / sync API.
#
# Imports
from typing import Any, Dict, List, Optional, Union
#
# 3rd-party Libraries
from pydantic import BaseModel, ConfigDict, Field, field_validator
#
# Local Imports
from scheduler_Server_API.app.core.Sync_Engine.models import Collection, CollectionDelta
#
########################################################################################################################
#
# Functions:

# --- Pydantic Models ---

class CollectionChanges(BaseModel):
    """
    Pending client changes for one collection.

    Entries are not typed here: a non-object entry is reported by the engine as an
    invalid change set, inside the regular sync failure envelope.
    """
    added: List[Any] = Field(default_factory=list, description="New records, each carrying its phantom id.")
    updated: List[Any] = Field(default_factory=list, description="Changed fields of existing records, each with its `id`.")
    removed: List[Any] = Field(default_factory=list, description="References `{id}` of records to delete.")

    model_config = ConfigDict(extra="ignore")

    @field_validator("added", "updated", "removed", mode="before")
    @classmethod
    def null_means_empty(cls, value):
        return [] if value is None else value

    def to_delta(self) -> CollectionDelta:
        return CollectionDelta.from_dict(self.model_dump())


class SyncRequest(BaseModel):
    """Body of POST /sync."""
    requestId: Optional[Union[str, int]] = Field(None, description="Client correlation id, echoed in the response.")
    resources: Optional[CollectionChanges] = None
    events: Optional[CollectionChanges] = None
    assignments: Optional[CollectionChanges] = None
    dependencies: Optional[CollectionChanges] = None
    calendars: Optional[CollectionChanges] = None

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "requestId": "r1",
                "events": {"added": [{"$PhantomId": "tmp1", "name": "Standup"}]},
                "assignments": {"added": [{"$PhantomId": "tmp2", "eventId": "tmp1", "resourceId": "res-1"}]},
            }
        }
    )

    def to_deltas(self) -> Dict[Collection, CollectionDelta]:
        deltas = {}
        for collection in Collection:
            changes: Optional[CollectionChanges] = getattr(self, collection.value)
            if changes is not None:
                deltas[collection] = changes.to_delta()
        return deltas


class PhantomIdRow(BaseModel):
    phantomId: Any
    id: str


class CreatedRows(BaseModel):
    rows: List[PhantomIdRow]


class SyncResponse(BaseModel):
    """Collections appear only when they created rows."""
    requestId: Optional[Union[str, int]] = None
    success: bool = True
    resources: Optional[CreatedRows] = None
    events: Optional[CreatedRows] = None
    assignments: Optional[CreatedRows] = None
    dependencies: Optional[CreatedRows] = None
    calendars: Optional[CreatedRows] = None


class LoadedRows(BaseModel):
    rows: List[Dict[str, Any]]


class LoadResponse(BaseModel):
    success: bool = True
    resources: LoadedRows
    events: LoadedRows
    assignments: LoadedRows
    dependencies: LoadedRows
    calendars: LoadedRows


class FailureResponse(BaseModel):
    requestId: Optional[Union[str, int]] = None
    success: bool = False
    message: str

#
# End of scheduler_sync_models.py
#######################################################################################################################
