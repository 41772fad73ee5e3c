"""Shared helpers for API routers."""

from __future__ import annotations

import random

from fastapi import Depends, HTTPException

from drone_studio.config import settings
from drone_studio.errors import ChatNotFoundError
from drone_studio.logging_config import chat_id_var
from drone_studio.models.chat import Chat
from drone_studio.services.store import MessageStore, get_store
from drone_studio.services.streaming import StreamingResponder


def parse_chat_id(raw: str) -> int:
    """Turn a path segment into a chat id, or fail with 400."""
    if not raw.isdigit():
        raise HTTPException(status_code=400, detail="Invalid chat ID")
    chat_id = int(raw)
    chat_id_var.set(str(chat_id))
    return chat_id


def get_chat_or_404(chat_id: int, store: MessageStore) -> Chat:
    try:
        return store.require_chat(chat_id)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found.")


def get_responder(store: MessageStore = Depends(get_store)) -> StreamingResponder:
    """FastAPI dependency building a responder from the current settings."""
    return StreamingResponder(
        store,
        delay_ms=settings.stream_delay_ms,
        max_seconds=settings.STREAM_MAX_SECONDS,
        rng=random.Random(),
    )
