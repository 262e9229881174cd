"""Async CRUD client for the per-entity REST endpoints using httpx.

Each entity type is served under ``{base_url}/{entity}`` (collection) and
``{base_url}/{entity}/{id}`` (single record). Failures are reported by the
server with a non-2xx status and a JSON ``{"message": ...}`` body.

There is no retry loop: a failed write is reported to the caller (the
mutation pipeline rolls back its optimistic change).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from config import settings

__all__ = ["NetworkError", "EntityApiClient"]

log = logging.getLogger(__name__)


class NetworkError(RuntimeError):
    """Non-2xx response (or transport failure) from the persistence layer."""

    def __init__(self, message: str, *, status: int | None = None, url: str | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.url = url


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {resp.status_code} for {resp.request.method} {resp.request.url}"


class EntityApiClient:
    """CRUD operations for one entity type.

    ``client`` may be injected (tests pass an ``httpx.AsyncClient`` bound to a
    ``MockTransport``); otherwise one is created per call and closed after.
    """

    def __init__(
        self,
        entity: str,
        *,
        base_url: str | None = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float | None = None,
    ) -> None:
        self.entity = entity
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._client = client
        self._timeout = timeout or settings.DEFAULT_TIMEOUT

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def fetch_all(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", self._collection_url())
        return list(data or [])

    async def fetch_by_id(self, row_id: Any) -> Dict[str, Any]:
        return await self._request("GET", self._item_url(row_id))

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", self._collection_url(), json=dict(data))

    async def update(self, row_id: Any, partial: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", self._item_url(row_id), json=dict(partial))

    async def delete(self, row_id: Any) -> None:
        await self._request("DELETE", self._item_url(row_id))

    async def bulk_delete(self, ids: Iterable[Any]) -> None:
        await self._request("DELETE", self._collection_url(), json={"ids": list(ids)})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _collection_url(self) -> str:
        return f"{self.base_url}/{self.entity}"

    def _item_url(self, row_id: Any) -> str:
        return f"{self.base_url}/{self.entity}/{row_id}"

    async def _request(self, method: str, url: str, *, json: Any = None) -> Any:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_client = True
        try:
            try:
                resp = await client.request(method, url, json=json)
            except httpx.HTTPError as e:
                log.warning("%s %s failed: %s", method, url, e)
                raise NetworkError(f"{method} {url} failed: {e}", url=url) from e
            if resp.is_error:
                message = _error_message(resp)
                log.warning("%s %s -> %s: %s", method, url, resp.status_code, message)
                raise NetworkError(message, status=resp.status_code, url=url)
            if resp.status_code == 204 or not resp.content:
                return None
            return resp.json()
        finally:
            if close_client:
                await client.aclose()
