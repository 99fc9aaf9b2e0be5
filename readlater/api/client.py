"""Remote client for the read-later REST API.

One coroutine per remote capability. Failures surface as NetworkError (no
response) or RemoteError (non-2xx). The client never retries; retry policy
belongs to the pending-write queue.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from readlater.config import ServerSettings, normalize_server_url
from readlater.errors import NetworkError, RemoteError
from readlater.models.schemas import Article, Tag

logger = logging.getLogger(__name__)


class RemoteClient:
    """Async client for the /api endpoints of the read-later service."""

    def __init__(
        self,
        settings: ServerSettings,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "User-Agent": "ReadLater/1.0",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        server_url: Optional[str] = None,
    ) -> Any:
        """Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path below the server URL, starting with /api
            params: Query parameters
            json: JSON body
            server_url: Override for the configured server URL

        Returns:
            Decoded JSON, or None for empty/204 responses

        Raises:
            NetworkError: If no response was received
            RemoteError: If the server answered with a non-2xx status
        """
        base = server_url or self.settings.server_url
        url = base + path

        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as e:
            logger.warning(f"{method} {url} failed: {e!r}")
            raise NetworkError(str(e) or type(e).__name__) from e

        if not response.is_success:
            message = response.text.strip()
            logger.info(f"{method} {url} -> {response.status_code}")
            raise RemoteError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(response.status_code, "Invalid JSON in response") from e

    async def create_article(self, url: str) -> Article:
        if not url:
            raise ValueError("url is required")
        data = await self._request("POST", "/api/articles", json={"url": url})
        if not data:
            raise RemoteError(201, "Empty response for created article")
        return Article.from_json(data)

    async def get_article(self, article_id: int) -> Article:
        data = await self._request("GET", f"/api/articles/{article_id}")
        if not data:
            raise RemoteError(200, f"Empty response for article {article_id}")
        return Article.from_json(data)

    async def list_articles(
        self,
        archived: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
        tag: Optional[str] = None,
    ) -> List[Article]:
        """List articles, optionally filtered by archived state or tag.

        The server ignores the archived filter when a tag is given.

        Args:
            archived: Filter by archived flag (None for all)
            limit: Page size
            offset: Page offset
            tag: Only articles carrying this tag

        Returns:
            Articles as returned by the remote (no content body)
        """
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if archived is not None:
            params["archived"] = "true" if archived else "false"
        if tag:
            params["tag"] = tag

        data = await self._request("GET", "/api/articles", params=params)
        return [Article.from_json(item) for item in data or []]

    async def update_article(
        self,
        article_id: int,
        archived: Optional[bool] = None,
        mark_read: Optional[bool] = None,
    ) -> None:
        """Change the archived flag and/or mark the article read.

        The server stamps read_at itself and answers 204, so nothing is
        returned. mark_read=False is accepted but has no effect on the server.
        """
        body: Dict[str, Any] = {}
        if archived is not None:
            body["archived"] = archived
        if mark_read is not None:
            body["mark_read"] = mark_read
        await self._request("PATCH", f"/api/articles/{article_id}", json=body)

    async def delete_article(self, article_id: int) -> None:
        await self._request("DELETE", f"/api/articles/{article_id}")

    async def search(self, query: str, limit: int = 20) -> List[Article]:
        if not query:
            raise ValueError("query is required")
        data = await self._request(
            "GET", "/api/search", params={"q": query, "limit": limit}
        )
        return [Article.from_json(item) for item in data or []]

    async def list_tags(self) -> List[Tag]:
        data = await self._request("GET", "/api/tags")
        return [Tag.from_json(item) for item in data or []]

    async def add_tag(self, article_id: int, tag: str) -> None:
        if not tag:
            raise ValueError("tag is required")
        await self._request(
            "POST", f"/api/articles/{article_id}/tags", json={"tag": tag}
        )

    async def remove_tag(self, article_id: int, tag: str) -> None:
        if not tag:
            raise ValueError("tag is required")
        await self._request(
            "DELETE", f"/api/articles/{article_id}/tags/{quote(tag, safe='')}"
        )

    async def ping(self, server_url: Optional[str] = None) -> None:
        """Check that a server answers the article list endpoint.

        Args:
            server_url: Server to test (defaults to the configured one)

        Raises:
            NetworkError: If the server cannot be reached
            RemoteError: If the server rejects the request
        """
        if server_url is not None:
            server_url = normalize_server_url(server_url)
        await self._request(
            "GET", "/api/articles", params={"limit": 1}, server_url=server_url
        )
