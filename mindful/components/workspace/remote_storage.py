"""HTTP client for the remote bookmarks backend.

API Reference:
- GET    {base}/bookmarks -> BookmarkGroup[]
- POST   {base}/bookmarks  body: BookmarkGroup[]
- DELETE {base}/bookmarks

Every call is fallible; transport errors, non-success responses and
malformed bodies raise `StorageError`.
"""

import logging

import httpx
from pydantic import ValidationError

from mindful.components.workspace.models import BookmarkGroup, dump_groups, load_groups
from mindful.errors import StorageError
from mindful.settings import settings

logger = logging.getLogger(__name__)


class RemoteBookmarkStorage:
    """Remote load/save/delete backend.

    Args:
        base_url: API root (defaults to settings.remote_api_base_url)
        auth_token: bearer token sent with every request
        timeout: per-request timeout in seconds
        transport: optional httpx transport (MockTransport in tests)
    """

    def __init__(
        self,
        base_url: str | None = None,
        auth_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.remote_api_base_url).rstrip("/")
        self.auth_token = auth_token
        self.timeout = timeout if timeout is not None else settings.remote_timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self.timeout)

    async def _request(self, method: str, user_id: str, workspace_id: str, json_body=None) -> httpx.Response:
        if not self.base_url:
            raise StorageError("Remote storage is not configured")
        try:
            async with self._client() as client:
                resp = await client.request(
                    method,
                    f"{self.base_url}/bookmarks",
                    params={"userId": user_id, "workspaceId": workspace_id},
                    json=json_body,
                    headers=self._get_headers(),
                )
                resp.raise_for_status()
                return resp
        except httpx.HTTPStatusError as e:
            raise StorageError(f"Remote {method} failed: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StorageError(f"Remote {method} failed: {e}") from e

    async def load(self, user_id: str, workspace_id: str) -> list[BookmarkGroup]:
        resp = await self._request("GET", user_id, workspace_id)
        try:
            return load_groups(resp.json())
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Remote bookmarks payload is malformed: {e}") from e

    async def save(self, groups: list[BookmarkGroup], user_id: str, workspace_id: str) -> None:
        await self._request("POST", user_id, workspace_id, json_body=dump_groups(groups))
        logger.info(f"Saved {len(groups)} groups remotely for workspace {workspace_id}")

    async def delete(self, user_id: str, workspace_id: str) -> None:
        await self._request("DELETE", user_id, workspace_id)
        logger.info(f"Deleted remote bookmarks for workspace {workspace_id}")
