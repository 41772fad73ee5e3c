"""ChatSession: what the chat page does when the user sends something."""

from __future__ import annotations

import logging

from drone_studio.client.api import ChatApiClient
from drone_studio.client.consumer import ConsumerBusyError, StreamConsumer
from drone_studio.services.responses import DEFAULT_LANGUAGE, QUICK_TOPICS

logger = logging.getLogger(__name__)

NEW_CHAT_TITLE = "New Chat"
TITLE_LENGTH = 50


def title_from(content: str) -> str:
    if len(content) > TITLE_LENGTH:
        return content[:TITLE_LENGTH] + "..."
    return content


class ChatSession:
    """Tracks the selected chat and language, and routes each submission to
    the streaming or one-shot respond path."""

    def __init__(
        self,
        api: ChatApiClient,
        consumer: StreamConsumer,
        language: str = DEFAULT_LANGUAGE,
        streaming_enabled: bool = True,
    ):
        self.api = api
        self.consumer = consumer
        self.language = language
        self.streaming_enabled = streaming_enabled
        self.chat_id: int | None = None
        self.chats: list[dict] = []

    async def refresh_chats(self) -> list[dict]:
        self.chats = await self.api.list_chats()
        if self.chat_id is None and self.chats:
            self.chat_id = self.chats[0]["id"]
        return self.chats

    async def new_chat(self, title: str = NEW_CHAT_TITLE) -> dict:
        chat = await self.api.create_chat(title, self.language)
        self.chat_id = chat["id"]
        await self.refresh_chats()
        return chat

    async def select_chat(self, chat_id: int) -> list[dict]:
        self.chat_id = chat_id
        self.consumer.messages = await self.api.list_messages(chat_id)
        return self.consumer.messages

    async def send(self, content: str, topic: str | None = None) -> dict | None:
        """Post the user's message, then fetch the assistant's answer.

        Creates a chat titled after *content* when none is selected.
        """
        content = content.strip()
        if not content:
            return None
        if self.consumer.is_ai_responding:
            raise ConsumerBusyError("wait for the current answer to finish")
        if self.chat_id is None:
            await self.new_chat(title_from(content))

        chat_id = self.chat_id
        await self.api.post_message(chat_id, content, "user", {"language": self.language})
        logger.debug("Posted user message to chat %s (streaming=%s)", chat_id, self.streaming_enabled)

        if self.streaming_enabled:
            return await self.consumer.respond(chat_id, content, self.language, topic)
        return await self.consumer.respond_legacy(chat_id, content, self.language, topic)

    async def ask_quick_topic(self, topic: str) -> dict | None:
        if topic not in QUICK_TOPICS:
            raise ValueError(f"unknown topic {topic!r}")
        _, question = QUICK_TOPICS[topic]
        return await self.send(question, topic)
