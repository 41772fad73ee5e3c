"""Async HTTP client for the chat REST surface."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data: "


class ChatApiError(Exception):
    """A REST call returned a non-success status."""

    def __init__(self, status_code: int, detail: str = ""):
        super().__init__(f"HTTP {status_code}: {detail}" if detail else f"HTTP {status_code}")
        self.status_code = status_code
        self.detail = detail


def parse_event_line(line: str) -> dict | None:
    """Decode one ``data: {...}`` line of the respond stream.

    Returns None for anything that is not a well-formed event object,
    including blank separator lines and garbled JSON.
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    try:
        event = json.loads(line[len(SSE_DATA_PREFIX):])
    except ValueError:
        logger.debug("Dropping malformed stream line: %.80s", line)
        return None
    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        return None
    return event


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or "")
    return ""


class ChatApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the ``/api/chats`` routes.

    The caller owns the ``httpx.AsyncClient`` (and its base URL, timeouts and
    transport).
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        resp = await self.http.request(method, url, **kwargs)
        if resp.is_error:
            raise ChatApiError(resp.status_code, _detail(resp))
        return resp.json()

    async def health(self) -> bool:
        try:
            resp = await self.http.get("/health")
        except httpx.HTTPError:
            return False
        return resp.status_code == 200

    async def list_chats(self) -> list[dict]:
        return await self._request("GET", "/api/chats")

    async def create_chat(self, title: str, language: str) -> dict:
        return await self._request("POST", "/api/chats", json={"title": title, "language": language})

    async def get_chat(self, chat_id: int) -> dict:
        return await self._request("GET", f"/api/chats/{chat_id}")

    async def list_messages(self, chat_id: int) -> list[dict]:
        return await self._request("GET", f"/api/chats/{chat_id}/messages")

    async def post_message(self, chat_id: int, content: str, role: str, metadata: dict | None = None) -> dict:
        body = {"content": content, "role": role, "metadata": metadata}
        return await self._request("POST", f"/api/chats/{chat_id}/messages", json=body)

    async def respond_legacy(self, chat_id: int, user_message: str, language: str, topic: str | None = None) -> dict:
        body = {"userMessage": user_message, "language": language, "topic": topic}
        return await self._request("POST", f"/api/chats/{chat_id}/respond-legacy", json=body)

    def stream_respond(self, chat_id: int, user_message: str, language: str, topic: str | None = None):
        """Open the respond stream; use as ``async with api.stream_respond(...) as resp``."""
        body = {"userMessage": user_message, "language": language, "topic": topic}
        return self.http.stream("POST", f"/api/chats/{chat_id}/respond", json=body)

    async def list_topics(self) -> list[dict]:
        return await self._request("GET", "/api/topics")
