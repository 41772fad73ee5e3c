"""Chat, message and stream-event schemas.

Field names are camelCase on the wire and accepted in either case on input.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from drone_studio.services.responses import LANGUAGES


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# ── Chats ─────────────────────────────────────────────────────────────────────


class ChatIn(WireModel):
    title: str = Field(min_length=1, max_length=255)
    language: str | None = None

    @field_validator("language")
    @classmethod
    def _known_language(cls, value: str | None) -> str | None:
        if value is not None and value not in LANGUAGES:
            raise ValueError(f"unsupported language {value!r}")
        return value


class ChatOut(WireModel):
    id: int
    title: str
    language: str
    created_at: datetime
    updated_at: datetime


# ── Messages ──────────────────────────────────────────────────────────────────


class MessageIn(WireModel):
    content: str
    role: MessageRole
    metadata: dict[str, Any] | None = None


class MessageOut(WireModel):
    id: int
    chat_id: int
    role: MessageRole
    content: str
    # ORM rows carry the column as ``metadata_``; plain dicts use ``metadata``
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("metadata_", "metadata"),
        serialization_alias="metadata",
    )
    created_at: datetime


# ── Respond ───────────────────────────────────────────────────────────────────


class RespondIn(WireModel):
    user_message: str
    language: str | None = None
    topic: str | None = None


# ── Stream events ─────────────────────────────────────────────────────────────


class ContentEvent(WireModel):
    """Carries the full accumulated text so far, never a delta."""

    type: Literal["content"] = "content"
    content: str
    is_complete: bool


class CompleteEvent(WireModel):
    type: Literal["complete"] = "complete"
    message: MessageOut


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str


StreamEvent = ContentEvent | CompleteEvent | ErrorEvent


# ── Reference data ────────────────────────────────────────────────────────────


class LanguageOut(WireModel):
    code: str
    name: str


class QuickTopicOut(WireModel):
    id: str
    label: str
    question: str
