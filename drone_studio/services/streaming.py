"""Streamed and one-shot delivery of assistant responses.

The streamed protocol is a server-sent event sequence. Every ``content``
event carries the *whole* answer accumulated so far, so a client replaces its
buffer on each event instead of appending. Exactly one terminal event
(``complete`` or ``error``) ends the stream.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Callable, Iterator

from pydantic import BaseModel

from drone_studio.logging_config import StreamLogAdapter
from drone_studio.models.chat import Message
from drone_studio.schemas.chat import CompleteEvent, ContentEvent, ErrorEvent, MessageOut, MessageRole
from drone_studio.services.responses import resolve
from drone_studio.services.store import MessageStore

logger = logging.getLogger(__name__)

Resolver = Callable[..., str]

GENERATION_FAILED = "Failed to generate response"
GENERATION_TIMED_OUT = "Response timed out"


def tokenize(text: str) -> list[str]:
    """Split *text* into space-separated word tokens.

    Only the space character separates tokens; line breaks stay inside the
    token they follow, so joining the tokens with single spaces rebuilds
    *text* exactly.
    """
    return text.split(" ") if text else []


def iter_prefixes(tokens: list[str]) -> Iterator[tuple[str, bool]]:
    """Yield ``(accumulated_prefix, is_last)`` for each token in order."""
    prefix = ""
    last = len(tokens) - 1
    for i, token in enumerate(tokens):
        prefix = token if i == 0 else f"{prefix} {token}"
        yield prefix, i == last


def format_sse(event: BaseModel) -> str:
    """Encode one event as an SSE ``data:`` frame."""
    return f"data: {event.model_dump_json(by_alias=True)}\n\n"


def _message_metadata(language: str, topic: str | None) -> dict:
    return {"language": language, "topic": topic}


class StreamingResponder:
    """Produces the SSE frames for one ``respond`` request at a time.

    ``delay_ms`` is the (min, max) pause between successive content events,
    drawn uniformly; ``(0, 0)`` streams without pacing. ``max_seconds``
    bounds the whole session.
    """

    def __init__(
        self,
        store: MessageStore,
        resolver: Resolver = resolve,
        delay_ms: tuple[int, int] = (50, 150),
        max_seconds: float | None = 60.0,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.resolver = resolver
        self.delay_ms = delay_ms
        self.max_seconds = max_seconds
        self._rng = rng or random.Random()

    def _next_delay(self) -> float:
        low, high = self.delay_ms
        if high <= 0:
            return 0.0
        return self._rng.uniform(low, high) / 1000.0

    async def stream(
        self,
        chat_id: int,
        user_message: str,
        language: str,
        topic: str | None = None,
    ) -> AsyncIterator[str]:
        log = StreamLogAdapter(logger)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_seconds if self.max_seconds else None
        emitted = 0

        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self.resolver, user_message, language, topic),
                timeout=self.max_seconds or None,
            )
            tokens = tokenize(text)

            for prefix, is_last in iter_prefixes(tokens):
                if emitted:
                    delay = self._next_delay()
                    if delay:
                        await asyncio.sleep(delay)
                if deadline is not None and loop.time() > deadline:
                    log.warning("Stream for chat %s timed out after %d tokens", chat_id, emitted)
                    yield format_sse(ErrorEvent(message=GENERATION_TIMED_OUT))
                    return
                yield format_sse(ContentEvent(content=prefix, is_complete=is_last))
                emitted += 1

            message = await asyncio.to_thread(
                self.store.create_message,
                chat_id,
                MessageRole.ASSISTANT.value,
                text,
                _message_metadata(language, topic),
            )
        except (asyncio.CancelledError, GeneratorExit):
            log.info("Client left chat %s stream after %d tokens, nothing persisted", chat_id, emitted)
            raise
        except asyncio.TimeoutError:
            log.warning("Resolving a response for chat %s timed out", chat_id)
            yield format_sse(ErrorEvent(message=GENERATION_TIMED_OUT))
            return
        except Exception:
            log.exception("Streaming response failed for chat %s", chat_id)
            yield format_sse(ErrorEvent(message=GENERATION_FAILED))
            return

        log.info("Streamed %d tokens to chat %s, saved as message %s", emitted, chat_id, message.id)
        yield format_sse(CompleteEvent(message=MessageOut.model_validate(message)))


def respond_once(
    store: MessageStore,
    chat_id: int,
    user_message: str,
    language: str,
    topic: str | None = None,
    resolver: Resolver = resolve,
) -> Message:
    """Resolve and persist an answer in one step (the non-streaming path)."""
    text = resolver(user_message, language, topic)
    message = store.create_message(
        chat_id,
        MessageRole.ASSISTANT.value,
        text,
        _message_metadata(language, topic),
    )
    logger.info("Saved one-shot response %s to chat %s", message.id, chat_id)
    return message
