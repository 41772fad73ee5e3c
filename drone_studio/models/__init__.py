"""SQLAlchemy models, re-exported."""

from drone_studio.models.chat import Chat, Message  # noqa: F401
