# src/focus_companion/services/memory.py

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class Mem0Memory:
    """
    Long-term memory backed by the Mem0 HTTP API.

    Both calls are best-effort: search returns "" and save returns quietly on any error.
    """

    def __init__(
        self,
        *,
        api_key: str,
        user_id: str,
        base_url: str = "https://api.mem0.ai/v1",
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 10.0,
        search_limit: int = 5,
    ) -> None:
        self._api_key = api_key
        self._user_id = user_id
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._timeout_s = timeout_s
        self._search_limit = search_limit

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self._api_key}", "Content-Type": "application/json"}

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        if self._http is not None:
            resp = await self._http.post(url, json=payload, headers=self._headers(), timeout=self._timeout_s)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await client.post(url, json=payload, headers=self._headers())
        resp.raise_for_status()
        return resp.json()

    async def search(self, query: str) -> str:
        if not query or not query.strip():
            return ""
        try:
            data = await self._post(
                "/memories/search/",
                {"query": query, "user_id": self._user_id, "limit": self._search_limit},
            )
        except (httpx.HTTPError, ValueError):
            logger.warning("Mem0 search failed", exc_info=True)
            return ""

        items = data if isinstance(data, list) else (data or {}).get("results", [])
        if not isinstance(items, list):
            return ""
        return "\n".join(str(m.get("memory", "")) for m in items if isinstance(m, dict) and m.get("memory"))

    async def save(self, content: str) -> None:
        if not content or not content.strip():
            return
        try:
            await self._post(
                "/memories/",
                {"messages": [{"role": "user", "content": content}], "user_id": self._user_id},
            )
            logger.debug("Memory saved: %r", content[:80])
        except (httpx.HTTPError, ValueError):
            logger.warning("Mem0 save failed", exc_info=True)


class NullMemory:
    """Used when no Mem0 key is configured."""

    async def search(self, query: str) -> str:
        return ""

    async def save(self, content: str) -> None:
        return None
