"""MessageStore: chats and their append-only message history."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from drone_studio.errors import ChatNotFoundError
from drone_studio.models.chat import Chat, Message

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MessageStore:
    """Owns chat/message persistence on top of a session factory.

    Identifiers come from the tables' autoincrement sequences, so their
    lifetime is the lifetime of the database the factory is bound to.
    Appending a message and bumping its chat's ``updated_at`` happen in one
    transaction, serialised per chat id.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._locks: defaultdict[int, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _chat_lock(self, chat_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks[chat_id]

    # ── Chats ────────────────────────────────────────────────────────────────

    def create_chat(self, title: str, language: str) -> Chat:
        now = _utcnow()
        chat = Chat(title=title, language=language, created_at=now, updated_at=now)
        with self._session_factory() as session:
            session.add(chat)
            session.commit()
            session.refresh(chat)
        logger.info("Created chat %s (%s)", chat.id, language)
        return chat

    def list_chats(self) -> list[Chat]:
        stmt = select(Chat).order_by(Chat.updated_at.desc(), Chat.id.desc())
        with self._session_factory() as session:
            return list(session.execute(stmt).scalars().all())

    def get_chat(self, chat_id: int) -> Chat | None:
        with self._session_factory() as session:
            return session.get(Chat, chat_id)

    def require_chat(self, chat_id: int) -> Chat:
        chat = self.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        return chat

    # ── Messages ─────────────────────────────────────────────────────────────

    def create_message(
        self,
        chat_id: int,
        role: str,
        content: str,
        metadata: dict | None = None,
    ) -> Message:
        with self._chat_lock(chat_id), self._session_factory() as session:
            chat = session.get(Chat, chat_id)
            if chat is None:
                raise ChatNotFoundError(chat_id)

            # Clock skew must not reorder a chat's history
            created_at = max(_utcnow(), chat.updated_at)
            message = Message(
                chat_id=chat_id,
                role=role,
                content=content,
                metadata_=metadata,
                created_at=created_at,
            )
            session.add(message)
            chat.updated_at = created_at
            session.commit()
            session.refresh(message)

        logger.debug("Appended %s message %s to chat %s", role, message.id, chat_id)
        return message

    def list_messages(self, chat_id: int) -> list[Message]:
        stmt = (
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at, Message.id)
        )
        with self._session_factory() as session:
            return list(session.execute(stmt).scalars().all())


_store: MessageStore | None = None
_store_guard = threading.Lock()


def get_store() -> MessageStore:
    """FastAPI dependency returning the process-wide store."""
    global _store
    with _store_guard:
        if _store is None:
            from drone_studio.database import SessionLocal

            _store = MessageStore(SessionLocal)
        return _store
