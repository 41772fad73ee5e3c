"""Tests for the unified logging configuration."""

from __future__ import annotations

import logging
import sys

import pytest

from drone_studio.logging_config import (
    ContextFilter,
    ContextFormatter,
    StreamLogAdapter,
    chat_id_var,
    request_id_var,
    setup_logging,
)

_OURS = ("_studio_stream", "_studio_file")


@pytest.fixture(autouse=True)
def _clean_root_logger():
    """Remove any handlers we add during tests so they don't leak."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    root.handlers = [h for h in root.handlers if getattr(h, "name", None) not in _OURS]
    yield
    root.handlers = before
    root.setLevel(level)


def _record(name="test", level=logging.INFO, lineno=1, msg="msg", exc_info=None, **extra):
    record = logging.LogRecord(name, level, "", lineno, msg, (), exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ── ContextFilter tests ────────────────────────────────────────────────────


def test_context_filter_stamps_role():
    record = _record()
    assert ContextFilter("Server").filter(record) is True
    assert record.role == "Server"  # type: ignore[attr-defined]
    assert record.request_id == ""  # type: ignore[attr-defined]
    assert record.chat_id == ""  # type: ignore[attr-defined]
    assert record.stream_id == ""  # type: ignore[attr-defined]


def test_context_filter_reads_contextvars():
    token_req = request_id_var.set("9f3a1c2e77")
    token_chat = chat_id_var.set("3")
    try:
        record = _record()
        ContextFilter("Server").filter(record)
        assert record.request_id == "9f3a1c2e77"  # type: ignore[attr-defined]
        assert record.chat_id == "3"  # type: ignore[attr-defined]
    finally:
        chat_id_var.reset(token_chat)
        request_id_var.reset(token_req)


def test_context_filter_keeps_explicit_chat_id():
    token = chat_id_var.set("3")
    try:
        record = _record(chat_id="8")
        ContextFilter("Server").filter(record)
        assert record.chat_id == "8"  # type: ignore[attr-defined]
    finally:
        chat_id_var.reset(token)


# ── StreamLogAdapter tests ─────────────────────────────────────────────────


def test_stream_adapter_tags_records(caplog):
    log = StreamLogAdapter(logging.getLogger("test.stream"), "51d0c9ab")
    with caplog.at_level(logging.INFO, logger="test.stream"):
        log.info("first")
        log.info("second", extra={"tokens": 4})
    assert [r.stream_id for r in caplog.records] == ["51d0c9ab", "51d0c9ab"]
    assert caplog.records[1].tokens == 4


def test_stream_adapter_generates_short_ids():
    first = StreamLogAdapter(logging.getLogger("test.stream"))
    second = StreamLogAdapter(logging.getLogger("test.stream"))
    assert len(first.stream_id) == 8
    assert first.stream_id != second.stream_id


# ── ContextFormatter tests ─────────────────────────────────────────────────


def test_formatter_no_context():
    fmt = ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    line = fmt.format(_record("drone_studio.main", lineno=42, msg="hello", role="Server", request_id="", chat_id=""))
    assert "[Server][INFO]" in line
    assert "drone_studio.main:42 - hello" in line
    assert "[Req" not in line
    assert "[Chat" not in line


def test_formatter_with_request_and_chat():
    fmt = ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    record = _record(
        "drone_studio.services.streaming", logging.WARNING, 97, "timed out",
        role="Server", request_id="abcdef1234567890", chat_id="7",
    )
    line = fmt.format(record)
    assert "[Server][Req abcdef12][Chat 7][WARNING]" in line


def test_formatter_with_stream():
    fmt = ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    record = _record(role="Server", chat_id="7", stream_id="51d0c9ab")
    assert "[Server][Chat 7][Stream 51d0c9ab][INFO]" in fmt.format(record)


def test_formatter_includes_exception():
    fmt = ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    try:
        raise ValueError("boom")
    except ValueError:
        exc_info = sys.exc_info()

    line = fmt.format(_record(level=logging.ERROR, msg="failed", exc_info=exc_info, role="Client"))
    assert "failed" in line
    assert "ValueError: boom" in line


# ── setup_logging tests ───────────────────────────────────────────────────


def test_setup_logging_adds_stream_handler():
    setup_logging("TestServer")
    names = [getattr(h, "name", None) for h in logging.getLogger().handlers]
    assert "_studio_stream" in names


def test_setup_logging_idempotent():
    root = logging.getLogger()
    setup_logging("TestServer")
    count = len(root.handlers)
    setup_logging("TestServer")
    assert len(root.handlers) == count


def test_setup_logging_file_handler(monkeypatch, tmp_path):
    import drone_studio.config as config

    log_file = tmp_path / "logs" / "studio.log"
    monkeypatch.setattr(config, "settings", config.Settings(LOG_FILE=str(log_file)))

    setup_logging("TestFile")
    names = [getattr(h, "name", None) for h in logging.getLogger().handlers]
    assert "_studio_file" in names

    logging.getLogger("test.file_handler").warning("file handler test message")
    for handler in logging.getLogger().handlers:
        handler.flush()
    content = log_file.read_text()
    assert "file handler test message" in content
    assert "[TestFile]" in content


def test_setup_logging_tames_noisy_loggers():
    setup_logging("TestTame")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_setup_logging_server_propagates_uvicorn():
    setup_logging("Server")
    assert logging.getLogger("uvicorn.access").propagate is True
    assert logging.getLogger("uvicorn.error").handlers == []


def test_setup_logging_level_override():
    setup_logging("TestLevel", level="warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_again_only_changes_level():
    root = logging.getLogger()
    setup_logging("TestLevel", level="DEBUG")
    count = len(root.handlers)
    setup_logging("TestLevel", level="ERROR")
    assert len(root.handlers) == count
    assert root.level == logging.ERROR
