# tests/test_memory.py

from __future__ import annotations

import json

import httpx
import pytest

from focus_companion.services.memory import Mem0Memory, NullMemory


@pytest.mark.asyncio
async def test_search_joins_memories() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        assert request.headers["Authorization"] == "Token k"
        return httpx.Response(200, json=[{"memory": "likes tea"}, {"memory": "works late"}, {"other": 1}])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        mem = Mem0Memory(api_key="k", user_id="u1", base_url="https://mem0.example/v1/", http_client=http)
        assert await mem.search("evening") == "likes tea\nworks late"

    assert seen[0]["user_id"] == "u1"
    assert seen[0]["query"] == "evening"


@pytest.mark.asyncio
async def test_failures_are_swallowed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        mem = Mem0Memory(api_key="k", user_id="u1", http_client=http)
        assert await mem.search("anything") == ""
        await mem.save("[task done] report")


@pytest.mark.asyncio
async def test_null_memory() -> None:
    mem = NullMemory()
    assert await mem.search("x") == ""
    assert await mem.save("x") is None
