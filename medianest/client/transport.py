"""Async HTTP client for the MediaNest action endpoint."""

import asyncio
import logging
import os
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

# Only connection failures are retried: the request never reached the
# server, so replaying a mutation cannot apply it twice.
MAX_RETRIES = 3
RETRY_BASE_DELAY = 0.5  # seconds; exponential: 0.5s, 1s


class TransportError(Exception):
    """Network failure or a response that is not a valid envelope."""


class RpcError(Exception):
    """The server answered with a failure envelope."""

    def __init__(self, code: str, message: str, details: Optional[dict] = None, status_code: int = 0):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    @property
    def invariant(self) -> Optional[str]:
        return self.details.get("invariant")


class RpcTransport:
    """Async client for ``POST /api/rpc`` and the item routes.

    Configuration via environment variables:
        MEDIANEST_API_URL     -- Backend base URL (default: http://localhost:8000)
        MEDIANEST_API_TOKEN   -- Optional Bearer token
        MEDIANEST_API_TIMEOUT -- Request timeout in seconds (default: 30)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ) -> None:
        self.base_url = base_url or os.environ.get("MEDIANEST_API_URL", "http://localhost:8000")
        self.token = token if token is not None else os.environ.get("MEDIANEST_API_TOKEN", "")
        self.timeout = timeout if timeout is not None else float(os.environ.get("MEDIANEST_API_TIMEOUT", "30"))
        self.retry_base_delay = retry_base_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers: dict[str, str] = {}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RpcTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request_with_retry(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request, retrying only when the connection could not be made."""
        client = await self._get_client()

        for attempt in range(MAX_RETRIES):
            try:
                return await client.request(method, path, **kwargs)
            except httpx.ConnectError as exc:
                if attempt == MAX_RETRIES - 1:
                    raise TransportError(f"Cannot reach {self.base_url}: {exc}") from exc
                delay = self.retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Request %s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    method, path, attempt + 1, MAX_RETRIES, delay, exc,
                )
                await asyncio.sleep(delay)
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {path} failed: {exc}") from exc

        raise TransportError(f"{method} {path} failed")

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"Malformed response (HTTP {resp.status_code})") from exc

    # -- Action channel ---------------------------------------------------

    async def call(self, action: str, payload: Optional[dict] = None) -> Any:
        """Run *action* and return the envelope's ``data``.

        Raises:
            RpcError: failure envelope from the server.
            TransportError: network failure or malformed response.
        """
        resp = await self._request_with_retry(
            "POST", "/api/rpc", json={"action": action, "payload": payload or {}},
        )
        body = self._decode(resp)
        if not isinstance(body, dict) or "success" not in body:
            raise TransportError(f"Unexpected response to {action} (HTTP {resp.status_code})")
        if body["success"]:
            return body.get("data")

        error = body.get("error") or {}
        raise RpcError(
            error.get("error", "INTERNAL_ERROR"),
            error.get("message", "Request failed"),
            error.get("details"),
            status_code=resp.status_code,
        )

    async def get_folders(self) -> dict[str, Any]:
        return await self.call("getFolders")

    async def create_folder(self, name: str, parent: int = 0) -> dict[str, Any]:
        return await self.call("createFolder", {"name": name, "parent": parent})

    async def rename_folder(self, folder_id: int, name: str) -> dict[str, Any]:
        return await self.call("renameFolder", {"folderId": folder_id, "name": name})

    async def delete_folder(self, folder_id: int) -> dict[str, Any]:
        return await self.call("deleteFolder", {"folderId": folder_id})

    async def move_folder(self, folder_id: int, new_parent: int) -> dict[str, Any]:
        return await self.call("moveFolder", {"folderId": folder_id, "newParent": new_parent})

    async def assign_media(self, item_ids: list[int], folder_id: int) -> dict[str, Any]:
        return await self.call("assignMedia", {"itemIds": item_ids, "folderId": folder_id})

    async def get_folder_contents(
        self, folder_id: Any = None, page: int = 1, per_page: Optional[int] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"folderId": folder_id, "page": page}
        if per_page is not None:
            payload["perPage"] = per_page
        return await self.call("getFolderContents", payload)

    # -- Item routes --------------------------------------------------------

    async def register_item(
        self,
        filename: str,
        title: str = "",
        url: Optional[str] = None,
        mime_type: Optional[str] = None,
        folder_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """Record an upload. Maps to POST /api/items."""
        resp = await self._request_with_retry(
            "POST",
            "/api/items",
            json={
                "filename": filename,
                "title": title,
                "url": url,
                "mimeType": mime_type,
                "folderId": folder_id,
            },
        )
        body = self._decode(resp)
        if resp.status_code >= 400:
            if isinstance(body, dict) and "error" in body:
                raise RpcError(body["error"], body.get("message", ""), body.get("details"), resp.status_code)
            raise RpcError("VALIDATION_ERROR", "Invalid item", {"errors": body}, resp.status_code)
        return body
