# scheduler_sync.py
# Description: FastAPI endpoints for loading and syncing scheduler project data.
#
# Imports
from typing import Optional, Union
#
# 3rd-party imports
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from loguru import logger
#
# Local Imports
from scheduler_Server_API.app.api.v1.API_Deps.Store_Deps import get_orchestrator, schema_registry
from scheduler_Server_API.app.api.v1.schemas.scheduler_sync_models import (
    FailureResponse,
    LoadResponse,
    SyncRequest,
    SyncResponse,
)
from scheduler_Server_API.app.core.AuthNZ.User_DB_Handling import get_request_user, User
from scheduler_Server_API.app.core.Sync_Engine.exceptions import (
    InvalidChangeSetError,
    RowNotFoundError,
    SchemaLookupError,
    StoreError,
    SyncEngineError,
    UnknownFieldError,
    UnresolvedReferenceError,
)
from scheduler_Server_API.app.core.Sync_Engine.orchestrator import ChangeSetOrchestrator
#
#######################################################################################################################
#
# Functions:

router = APIRouter()

LOAD_FAILURE_MESSAGE = "Scheduler Pro data could not be loaded"


def _status_for(error: Exception) -> int:
    """Maps an engine error onto the HTTP status of the failure envelope."""
    if isinstance(error, (InvalidChangeSetError, UnknownFieldError, UnresolvedReferenceError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, RowNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, (SchemaLookupError, StoreError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _failure(request_id: Optional[Union[str, int]], error: Exception) -> JSONResponse:
    message = error.message if isinstance(error, SyncEngineError) else str(error)
    body = FailureResponse(requestId=request_id, message=message or type(error).__name__)
    return JSONResponse(status_code=_status_for(error), content=body.model_dump())


# --- FastAPI Endpoint Definitions ---

@router.get("/load",
            response_model=LoadResponse,
            summary="Load every scheduler collection",
            responses={500: {"model": FailureResponse}})
async def load_project(
    current_user: User = Depends(get_request_user),
    orchestrator: ChangeSetOrchestrator = Depends(get_orchestrator),
):
    try:
        result = await orchestrator.load_all()
    except Exception as e:
        logger.exception(f"[{current_user.username}] Loading scheduler data failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": LOAD_FAILURE_MESSAGE},
        )
    return {"success": True, **result.to_dict()}


@router.post("/sync",
             response_model=SyncResponse,
             response_model_exclude_none=True,
             summary="Apply a change set from the client",
             responses={
                 400: {"model": FailureResponse},
                 404: {"model": FailureResponse},
                 500: {"model": FailureResponse},
                 502: {"model": FailureResponse},
             })
async def sync_changes(
    payload: SyncRequest,
    current_user: User = Depends(get_request_user),
    orchestrator: ChangeSetOrchestrator = Depends(get_orchestrator),
):
    """
    Applies added / removed / updated records of every collection in the payload and
    returns the persistent ids assigned to each phantom record.
    """
    request_id = payload.requestId
    try:
        result = await orchestrator.apply_change_set(payload.to_deltas())
    except SyncEngineError as e:
        logger.error(f"[{current_user.username}] Sync request {request_id} failed: {e}")
        return _failure(request_id, e)
    except Exception as e:
        logger.exception(f"[{current_user.username}] Unexpected error in sync request {request_id}: {e}")
        return _failure(request_id, e)

    created = sum(len(pairs) for pairs in result.rows.values())
    logger.info(f"[{current_user.username}] Sync request {request_id} applied, {created} row(s) created")
    return {"requestId": request_id, "success": True, **result.to_dict()}


@router.post("/schema/invalidate",
             status_code=status.HTTP_200_OK,
             summary="Drop cached table schemas")
async def invalidate_schema_cache(
    table_id: Optional[str] = None,
    current_user: User = Depends(get_request_user),
):
    schema_registry.invalidate(table_id)
    logger.info(f"[{current_user.username}] Schema cache invalidated for {table_id or 'all tables'}")
    return {"success": True, "tableId": table_id}

#
# End of scheduler_sync.py
#######################################################################################################################
