"""Chat and message endpoints, plus the streamed and one-shot respond endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from drone_studio.api._helpers import get_chat_or_404, get_responder, parse_chat_id
from drone_studio.config import settings
from drone_studio.errors import ChatNotFoundError
from drone_studio.schemas.chat import ChatIn, ChatOut, MessageIn, MessageOut, RespondIn
from drone_studio.services.store import MessageStore, get_store
from drone_studio.services.streaming import StreamingResponder, respond_once

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ── Chats ─────────────────────────────────────────────────────────────────────


@router.get("", response_model=list[ChatOut])
def list_chats(store: MessageStore = Depends(get_store)):
    return store.list_chats()


@router.post("", response_model=ChatOut)
def create_chat(payload: ChatIn, store: MessageStore = Depends(get_store)):
    return store.create_chat(payload.title, payload.language or settings.DEFAULT_LANGUAGE)


@router.get("/{chat_id}", response_model=ChatOut)
def get_chat(chat_id: str, store: MessageStore = Depends(get_store)):
    return get_chat_or_404(parse_chat_id(chat_id), store)


# ── Messages ──────────────────────────────────────────────────────────────────


@router.get("/{chat_id}/messages", response_model=list[MessageOut])
def list_messages(chat_id: str, store: MessageStore = Depends(get_store)):
    cid = parse_chat_id(chat_id)
    get_chat_or_404(cid, store)
    return store.list_messages(cid)


@router.post("/{chat_id}/messages", response_model=MessageOut)
def create_message(chat_id: str, payload: MessageIn, store: MessageStore = Depends(get_store)):
    """Append a message to a chat.

    A malformed id is a 400; a well-formed id with no chat behind it is a 404,
    the same split every other chat route makes.
    """
    cid = parse_chat_id(chat_id)
    try:
        return store.create_message(cid, payload.role.value, payload.content, payload.metadata)
    except ChatNotFoundError:
        raise HTTPException(status_code=404, detail="Chat not found.")


# ── Respond ───────────────────────────────────────────────────────────────────


@router.post("/{chat_id}/respond")
async def respond(
    chat_id: str,
    payload: RespondIn,
    store: MessageStore = Depends(get_store),
    responder: StreamingResponder = Depends(get_responder),
):
    """Stream the assistant's answer as server-sent events.

    Each ``content`` event holds the full text so far; the stream ends with
    one ``complete`` event (carrying the saved message) or one ``error``
    event. Request problems are reported with a status code before the
    stream starts; anything later is reported in-band.
    """
    cid = parse_chat_id(chat_id)
    await asyncio.to_thread(get_chat_or_404, cid, store)
    language = payload.language or settings.DEFAULT_LANGUAGE
    return StreamingResponse(
        responder.stream(cid, payload.user_message, language, payload.topic),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/{chat_id}/respond-legacy", response_model=MessageOut)
def respond_legacy(chat_id: str, payload: RespondIn, store: MessageStore = Depends(get_store)):
    """Resolve, save and return the assistant's answer in a single reply."""
    cid = parse_chat_id(chat_id)
    get_chat_or_404(cid, store)
    language = payload.language or settings.DEFAULT_LANGUAGE
    try:
        return respond_once(store, cid, payload.user_message, language, payload.topic)
    except Exception:
        logger.exception("One-shot response failed for chat %s", cid)
        raise HTTPException(status_code=500, detail="Failed to generate response")
