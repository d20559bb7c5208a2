"""REST fallback client for environments without the realtime channel."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from client.errors import ApiError


class ApiService:
    """Thin async wrapper over the server's article endpoints."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, action: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"Failed to {action}: {exc}") from exc
        return response

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        if response.is_error:
            raise ApiError(f"Failed to {action}: HTTP {response.status_code}")
        return response.json()

    async def health_check(self) -> Dict[str, Any]:
        response = await self._request("GET", "/health", "check server health")
        return self._json(response, "check server health")

    async def get_articles(self) -> List[str]:
        response = await self._request("GET", "/articles", "get articles")
        return self._json(response, "get articles")

    async def get_article(self, filename: str) -> Optional[str]:
        """Return the article content, or None when it does not exist."""
        response = await self._request("GET", f"/articles/{quote(filename)}", "get article")
        if response.status_code == 404:
            return None
        return self._json(response, "get article")["content"]

    async def create_article(self, filename: str, content: str) -> Dict[str, Any]:
        response = await self._request(
            "POST", "/articles", "create article", json={"filename": filename, "content": content}
        )
        return self._json(response, "create article")

    async def update_article(self, filename: str, content: str) -> Dict[str, Any]:
        response = await self._request(
            "PUT", f"/articles/{quote(filename)}", "update article", json={"content": content}
        )
        return self._json(response, "update article")

    async def delete_article(self, filename: str) -> Dict[str, Any]:
        response = await self._request("DELETE", f"/articles/{quote(filename)}", "delete article")
        return self._json(response, "delete article")

    async def get_stats(self) -> Dict[str, Any]:
        response = await self._request("GET", "/stats", "get stats")
        return self._json(response, "get stats")
