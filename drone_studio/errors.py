"""Domain exceptions shared by the store, the transports and the API layer."""

from __future__ import annotations


class StudioError(Exception):
    """Base class for errors raised by drone_studio."""


class NotFoundError(StudioError):
    """A well-formed identifier that does not reference an existing record."""


class ChatNotFoundError(NotFoundError):
    def __init__(self, chat_id: int) -> None:
        super().__init__(f"Chat {chat_id} not found")
        self.chat_id = chat_id
