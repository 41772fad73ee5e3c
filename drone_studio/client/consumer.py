"""Client-side consumer of the respond stream.

``StreamConsumer`` is a small state machine::

    Idle -> Requesting -> Streaming -> (Completing | Failed) -> Idle

The server sends the full accumulated text in every ``content`` event, so
``partial_content`` is always *replaced*, never appended to. Listeners
registered with ``subscribe`` are called after every observable change;
``close()`` detaches the view, after which nothing is written or notified.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

import httpx

from drone_studio.client.api import ChatApiClient, ChatApiError, parse_event_line

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "Failed to get AI response"

Listener = Callable[["StreamConsumer"], None]


class ConsumerState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETING = "completing"
    FAILED = "failed"


class ConsumerBusyError(RuntimeError):
    """A submission was made while a response is still in flight."""


class StreamConsumer:
    def __init__(self, api: ChatApiClient, on_change: Listener | None = None):
        self.api = api
        self.state = ConsumerState.IDLE
        self.chat_id: int | None = None
        self.partial_content = ""
        self.messages: list[dict] = []
        self.notice: str | None = None
        self._listeners: list[Listener] = [on_change] if on_change else []
        self._closed = False

    # ── Observable state ─────────────────────────────────────────────────────

    @property
    def is_streaming(self) -> bool:
        return self.state is ConsumerState.STREAMING

    @property
    def is_ai_responding(self) -> bool:
        """True while a submission must be refused."""
        return self.state is not ConsumerState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Detach the view: stop consuming events and stop notifying."""
        self._closed = True
        self._listeners.clear()

    def _update(self, **changes) -> None:
        if self._closed:
            return
        for name, value in changes.items():
            setattr(self, name, value)
        for listener in list(self._listeners):
            listener(self)

    # ── Transitions ──────────────────────────────────────────────────────────

    def _begin(self, chat_id: int) -> None:
        if self._closed:
            raise RuntimeError("consumer is closed")
        if self.is_ai_responding:
            raise ConsumerBusyError(f"a response for chat {self.chat_id} is still in flight")
        self._update(
            state=ConsumerState.REQUESTING,
            chat_id=chat_id,
            partial_content="",
            notice=None,
        )

    async def _complete(self, chat_id: int, message: dict | None) -> dict | None:
        self._update(state=ConsumerState.COMPLETING, partial_content="")
        try:
            messages = await self.api.list_messages(chat_id)
        except (ChatApiError, httpx.HTTPError):
            logger.warning("Could not refresh messages for chat %s", chat_id, exc_info=True)
        else:
            self._update(messages=messages)
        if self._closed:
            self._abandon()
        self._update(state=ConsumerState.IDLE)
        return message

    def _fail(self) -> None:
        if self._closed:
            self._abandon()
            return
        self._update(state=ConsumerState.FAILED, partial_content="", notice=FAILURE_NOTICE)
        self._update(state=ConsumerState.IDLE)

    def _abandon(self) -> None:
        # Silent reset; the view is gone or the task was cancelled
        self.state = ConsumerState.IDLE
        self.partial_content = ""

    # ── Public API ───────────────────────────────────────────────────────────

    async def respond(
        self,
        chat_id: int,
        user_message: str,
        language: str,
        topic: str | None = None,
    ) -> dict | None:
        """Stream the assistant's answer for *user_message*.

        Returns the persisted assistant message, or None if the stream failed
        (``notice`` then holds the user-facing failure text) or the view was
        closed.
        """
        self._begin(chat_id)
        try:
            async with self.api.stream_respond(chat_id, user_message, language, topic) as resp:
                if resp.is_error:
                    logger.warning("Respond request for chat %s failed with HTTP %s", chat_id, resp.status_code)
                    self._fail()
                    return None

                async for line in resp.aiter_lines():
                    if self._closed:
                        logger.debug("View closed, dropping the rest of chat %s stream", chat_id)
                        self._abandon()
                        return None

                    event = parse_event_line(line)
                    if event is None:
                        continue

                    kind = event["type"]
                    if kind == "content":
                        content = event.get("content")
                        if isinstance(content, str):
                            self._update(state=ConsumerState.STREAMING, partial_content=content)
                    elif kind == "complete":
                        return await self._complete(chat_id, event.get("message"))
                    elif kind == "error":
                        logger.warning("Server reported an error for chat %s: %s", chat_id, event.get("message"))
                        self._fail()
                        return None
        except asyncio.CancelledError:
            self._abandon()
            raise
        except httpx.HTTPError:
            logger.warning("Stream for chat %s dropped", chat_id, exc_info=True)
            self._fail()
            return None

        if self._closed:
            self._abandon()
            return None
        logger.warning("Stream for chat %s ended without a terminal event", chat_id)
        self._fail()
        return None

    async def respond_legacy(
        self,
        chat_id: int,
        user_message: str,
        language: str,
        topic: str | None = None,
    ) -> dict | None:
        """Fetch the whole answer in one reply (streaming disabled)."""
        self._begin(chat_id)
        try:
            message = await self.api.respond_legacy(chat_id, user_message, language, topic)
        except asyncio.CancelledError:
            self._abandon()
            raise
        except (ChatApiError, httpx.HTTPError):
            logger.warning("One-shot respond for chat %s failed", chat_id, exc_info=True)
            self._fail()
            return None
        return await self._complete(chat_id, message)
