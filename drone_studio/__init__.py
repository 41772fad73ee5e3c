"""Drone AI Studio: multilingual drone assistant with streamed responses."""

from pathlib import Path

try:
    __version__ = (Path(__file__).resolve().parent.parent / "VERSION").read_text().strip()
except Exception:  # pragma: no cover
    __version__ = "0.0.0-dev"
