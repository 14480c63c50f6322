# Store_Deps.py
# Description: Provides the row store and change-set orchestrator for a request, based on the configured backend.
#
# Imports
import threading
from typing import AsyncIterator, Optional
#
# 3rd-party Libraries
from fastapi import Depends, HTTPException, status
from loguru import logger
#
# Local Imports
from scheduler_Server_API.app.core.AuthNZ.User_DB_Handling import get_request_user, User
from scheduler_Server_API.app.core.config import settings, sync_engine_config
from scheduler_Server_API.app.core.Sync_Engine.appwrite_store import AppwriteRowStore
from scheduler_Server_API.app.core.Sync_Engine.orchestrator import ChangeSetOrchestrator
from scheduler_Server_API.app.core.Sync_Engine.row_store import InMemoryRowStore, RowStore
from scheduler_Server_API.app.core.Sync_Engine.schema_registry import SchemaRegistry
from scheduler_Server_API.app.core.Sync_Engine.sqlite_store import (
    DEFAULT_BOOLEAN_COLUMNS,
    DEFAULT_SCHEDULER_COLUMNS,
    SQLiteRowStore,
)
#
#######################################################################################################################

TABLE_IDS = settings["TABLE_IDS"]

# Shared across requests so a positive schema_cache_ttl actually caches
schema_registry = SchemaRegistry(ttl=sync_engine_config.schema_cache_ttl,
                                 maxsize=sync_engine_config.schema_cache_size)

# Process-wide stores for the local backends; Appwrite stores are per request
_shared_store: Optional[RowStore] = None
_shared_store_lock = threading.Lock()


def _by_table_id(columns_by_collection):
    return {TABLE_IDS[collection]: columns for collection, columns in columns_by_collection.items()}


def _get_shared_store() -> RowStore:
    global _shared_store
    with _shared_store_lock:
        if _shared_store is None:
            backend = settings["STORE_BACKEND"]
            if backend == "memory":
                _shared_store = InMemoryRowStore(_by_table_id(DEFAULT_SCHEDULER_COLUMNS))
            elif backend == "sqlite":
                _shared_store = SQLiteRowStore(
                    settings["SQLITE_DB_PATH"],
                    tables=_by_table_id(DEFAULT_SCHEDULER_COLUMNS),
                    boolean_columns=_by_table_id(DEFAULT_BOOLEAN_COLUMNS),
                )
            else:
                raise ValueError(f"Store backend '{backend}' is not a shared backend")
            logger.info(f"Initialized shared '{backend}' row store.")
        return _shared_store


async def close_shared_store() -> None:
    global _shared_store
    with _shared_store_lock:
        store, _shared_store = _shared_store, None
    if store is not None:
        await store.close()


async def get_row_store(current_user: User = Depends(get_request_user)) -> AsyncIterator[RowStore]:
    """
    FastAPI dependency yielding the row store for this request.

    For the Appwrite backend a client is built per request with the caller's JWT
    (falling back to the server API key in single-user mode) and closed afterwards.
    """
    backend = settings["STORE_BACKEND"]
    if backend != "appwrite":
        yield _get_shared_store()
        return

    if not settings["PROJECT_ID"] or not settings["DATABASE_ID"]:
        logger.error("Appwrite backend selected but PROJECT_ID / DATABASE_ID are not configured.")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Row store is not configured.")

    store = AppwriteRowStore(
        endpoint=settings["APPWRITE_ENDPOINT"],
        project_id=settings["PROJECT_ID"],
        database_id=settings["DATABASE_ID"],
        jwt=current_user.token,
        api_key=settings["APPWRITE_API_KEY"],
        timeout=settings["STORE_TIMEOUT"],
    )
    try:
        yield store
    finally:
        await store.close()


async def get_orchestrator(store: RowStore = Depends(get_row_store)) -> ChangeSetOrchestrator:
    return ChangeSetOrchestrator(
        store,
        table_ids=TABLE_IDS,
        schema_registry=schema_registry,
        config=sync_engine_config,
    )

#
# End of Store_Deps.py
#######################################################################################################################
