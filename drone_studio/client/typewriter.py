"""Typewriter rendering of assistant messages.

Two modes, picked by ``speed`` (milliseconds per character):

- replay (``speed > 0``): reveal an already complete message one character
  per tick, starting over whenever the message text changes;
- live (``speed == 0``): show the given text verbatim. Used while a response
  streams in, because the server already paces the growing prefix.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass

INDICATOR = "●"

_BOLD_RE = re.compile(r"(\*\*.*?\*\*)")

ANSI_BOLD = "\033[1m"
ANSI_RESET = "\033[0m"


@dataclass(frozen=True)
class Segment:
    text: str
    bold: bool = False


def format_line(line: str) -> list[Segment]:
    """Split one line into plain and ``**bold**`` segments, markers stripped."""
    segments = []
    for part in _BOLD_RE.split(line):
        if not part:
            continue
        if len(part) >= 4 and part.startswith("**") and part.endswith("**"):
            segments.append(Segment(part[2:-2], bold=True))
        else:
            segments.append(Segment(part))
    return segments


def format_content(text: str) -> list[list[list[Segment]]]:
    """Paragraphs (blank-line separated) of lines of segments."""
    return [
        [format_line(line) for line in paragraph.split("\n")]
        for paragraph in text.split("\n\n")
    ]


def render_text(text: str, indicator: bool = False, ansi: bool = True) -> str:
    """Render *text* for a terminal, optionally with the trailing indicator."""
    paragraphs = []
    for paragraph in format_content(text):
        lines = []
        for segments in paragraph:
            lines.append("".join(
                f"{ANSI_BOLD}{s.text}{ANSI_RESET}" if s.bold and ansi else s.text
                for s in segments
            ))
        paragraphs.append("\n".join(lines))
    rendered = "\n\n".join(paragraphs)
    if indicator:
        rendered += f" {INDICATOR}"
    return rendered


class Typewriter:
    def __init__(self, content: str = "", speed: int = 30, streaming: bool = False):
        self.speed = speed
        self.streaming = streaming
        self._content = ""
        self._index = 0
        self.set_content(content)

    @property
    def live(self) -> bool:
        return self.speed <= 0

    @property
    def content(self) -> str:
        return self._content

    @property
    def displayed(self) -> str:
        return self._content[:self._index]

    @property
    def is_complete(self) -> bool:
        return self._index >= len(self._content)

    @property
    def show_indicator(self) -> bool:
        if self.live:
            return self.streaming
        return not self.is_complete

    def set_content(self, content: str) -> None:
        if self.live:
            self._content = content
            self._index = len(content)
            return
        if content == self._content:
            return
        self._content = content
        self._index = 0

    def tick(self) -> bool:
        """Reveal one more character. False once everything is shown."""
        if self.is_complete:
            return False
        self._index += 1
        return True

    def render(self, ansi: bool = True) -> str:
        return render_text(self.displayed, indicator=self.show_indicator, ansi=ansi)

    async def play(self, on_frame: Callable[["Typewriter"], None] | None = None) -> None:
        """Run the reveal until complete; cancel the task to stop early."""
        if self.live:
            if on_frame:
                on_frame(self)
            return
        while not self.is_complete:
            await asyncio.sleep(self.speed / 1000)
            self.tick()
            if on_frame:
                on_frame(self)
