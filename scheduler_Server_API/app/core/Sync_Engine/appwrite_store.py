# appwrite_store.py
# Description: Row store backed by the Appwrite TablesDB REST API.
#
# Imports
import json
from typing import Any, Dict, List, Optional, Set
#
# 3rd-party Libraries
import httpx
from loguru import logger
#
# Local Imports
from .exceptions import RowNotFoundError, StoreError
from .models import Record, STORE_ID_FIELD
from .row_store import Row, RowStore
#
########################################################################################################################
#
# Functions:

# Asks Appwrite to generate the row id server-side
UNIQUE_ID = "unique()"
PAGE_SIZE = 100


def _query(method: str, *values: Any) -> str:
    return json.dumps({"method": method, "values": list(values)})


class AppwriteRowStore(RowStore):
    """
    Talks to one Appwrite database.

    Requests are authenticated either with the calling user's JWT (so row
    permissions apply to that user) or with a server API key.
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        database_id: str,
        jwt: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not endpoint.endswith('/'):
            endpoint += '/'
        headers = {"X-Appwrite-Project": project_id, "Content-Type": "application/json"}
        if jwt:
            headers["X-Appwrite-JWT"] = jwt
        elif api_key:
            headers["X-Appwrite-Key"] = api_key
        self.database_id = database_id
        self._client = httpx.AsyncClient(base_url=endpoint, headers=headers, timeout=timeout, transport=transport)
        logger.debug(f"Appwrite row store initialized for {endpoint} (database: {database_id})")

    def _table_path(self, table_id: str) -> str:
        return f"tablesdb/{self.database_id}/tables/{table_id}"

    async def _request(self, method: str, path: str, *, operation: str, table_id: str,
                       row_id: Optional[str] = None, **kwargs) -> Optional[Dict[str, Any]]:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_message(e.response)
            logger.error(f"Appwrite {operation} on '{table_id}' failed ({e.response.status_code}): {detail}")
            error_cls = RowNotFoundError if e.response.status_code == 404 and row_id is not None else StoreError
            raise error_cls(detail, operation=operation, table_id=table_id, row_id=row_id, original_error=e) from e
        except httpx.RequestError as e:
            logger.error(f"Could not reach Appwrite for {operation} on '{table_id}': {e}")
            raise StoreError(f"Could not reach Appwrite: {e}", operation=operation, table_id=table_id,
                             row_id=row_id, original_error=e) from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def list_schema(self, table_id: str) -> Set[str]:
        data = await self._request("GET", f"{self._table_path(table_id)}/columns",
                                   operation="list_schema", table_id=table_id)
        return {column["key"] for column in (data or {}).get("columns", [])}

    async def list_rows(self, table_id: str) -> List[Row]:
        rows: List[Row] = []
        cursor: Optional[str] = None
        while True:
            queries = [_query("limit", PAGE_SIZE)]
            if cursor:
                queries.append(_query("cursorAfter", cursor))
            data = await self._request("GET", f"{self._table_path(table_id)}/rows", params={"queries[]": queries},
                                       operation="list_rows", table_id=table_id) or {}
            page = data.get("rows", [])
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                break
            cursor = page[-1][STORE_ID_FIELD]
        logger.debug(f"Fetched {len(rows)} rows from Appwrite table '{table_id}'")
        return rows

    async def get_row(self, table_id: str, row_id: str) -> Row:
        return await self._request("GET", f"{self._table_path(table_id)}/rows/{row_id}",
                                   operation="get_row", table_id=table_id, row_id=row_id)

    async def create_row(self, table_id: str, row_id: Optional[str], fields: Record) -> Row:
        return await self._request("POST", f"{self._table_path(table_id)}/rows",
                                   json={"rowId": row_id or UNIQUE_ID, "data": fields},
                                   operation="create_row", table_id=table_id)

    async def update_row(self, table_id: str, row_id: str, fields: Record) -> Row:
        return await self._request("PATCH", f"{self._table_path(table_id)}/rows/{row_id}", json={"data": fields},
                                   operation="update_row", table_id=table_id, row_id=row_id)

    async def delete_row(self, table_id: str, row_id: str) -> None:
        await self._request("DELETE", f"{self._table_path(table_id)}/rows/{row_id}",
                            operation="delete_row", table_id=table_id, row_id=row_id)

    async def close(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text or f"HTTP {response.status_code}"

#
# End of appwrite_store.py
########################################################################################################################
