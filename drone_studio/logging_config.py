"""Logging for the studio server and the terminal chat client.

Every line carries where it came from: the process role, the HTTP request
and chat being served, and for the respond endpoint the stream that is
being written::

    2026-10-19 14:30:01 [Server][Req 9f3a1c2e][Chat 3][Stream 51d0c9ab][INFO] drone_studio.services.streaming:140 - Streamed 42 tokens

Request and chat ids live in context variables set by the middleware and
the route helpers. A stream id is attached per call through
:class:`StreamLogAdapter`, since one request owns exactly one stream.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path

request_id_var: ContextVar[str] = ContextVar("request_id_var", default="")
chat_id_var: ContextVar[str] = ContextVar("chat_id_var", default="")

STREAM_HANDLER = "_studio_stream"
FILE_HANDLER = "_studio_file"

# Chatty below WARNING; the client polls health and streams many lines
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "watchfiles", "sqlalchemy.engine")
UVICORN_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


class StreamLogAdapter(logging.LoggerAdapter):
    """Tags every record of one respond stream with a short ``stream_id``.

    Extra fields passed at the call site are kept alongside the tag.
    """

    def __init__(self, logger: logging.Logger, stream_id: str | None = None):
        super().__init__(logger, {"stream_id": stream_id or uuid.uuid4().hex[:8]})

    @property
    def stream_id(self) -> str:
        return self.extra["stream_id"]

    def process(self, msg, kwargs):
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


class ContextFilter(logging.Filter):
    """Stamps ``role``, ``request_id``, ``chat_id`` and ``stream_id`` on each record."""

    def __init__(self, role: str) -> None:
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role  # type: ignore[attr-defined]
        record.request_id = request_id_var.get("")  # type: ignore[attr-defined]
        # An explicit chat id on the record beats the request's
        if not getattr(record, "chat_id", ""):
            record.chat_id = chat_id_var.get("")  # type: ignore[attr-defined]
        if not hasattr(record, "stream_id"):
            record.stream_id = ""  # type: ignore[attr-defined]
        return True


class ContextFormatter(logging.Formatter):
    """Renders the context fields as a bracketed prefix, skipping empty ones."""

    FIELDS = (("request_id", "Req", 8), ("chat_id", "Chat", None), ("stream_id", "Stream", 8))

    def prefix(self, record: logging.LogRecord) -> str:
        role = getattr(record, "role", "")
        parts = [f"[{role}]"] if role else []
        for attr, label, width in self.FIELDS:
            value = str(getattr(record, attr, "") or "")
            if value:
                parts.append(f"[{label} {value[:width] if width else value}]")
        parts.append(f"[{record.levelname}]")
        return "".join(parts)

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        formatted = f"{timestamp} {self.prefix(record)} {record.name}:{record.lineno} - {record.getMessage()}"
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            formatted += "\n" + record.exc_text
        if record.stack_info:
            formatted += "\n" + record.stack_info
        return formatted


def _handler(handler: logging.Handler, name: str, role: str) -> logging.Handler:
    handler.name = name
    handler.addFilter(ContextFilter(role))
    handler.setFormatter(ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(role: str, level: str | None = None) -> None:
    """Configure the root logger for *role* (``"Server"`` or ``"Client"``).

    *level* overrides ``settings.LOG_LEVEL``; the client passes ``WARNING``
    unless run with ``--verbose`` so log lines do not interleave with the
    answer being typed out. A second call only adjusts the level.
    """
    from drone_studio.config import settings

    root = logging.getLogger()
    level_name = (level or settings.LOG_LEVEL).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if any(getattr(h, "name", None) == STREAM_HANDLER for h in root.handlers):
        return

    root.addHandler(_handler(logging.StreamHandler(sys.stderr), STREAM_HANDLER, role))

    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        root.addHandler(_handler(file_handler, FILE_HANDLER, role))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if role.lower() == "server":
        for name in UVICORN_LOGGERS:
            uv_logger = logging.getLogger(name)
            uv_logger.handlers.clear()
            uv_logger.propagate = True
