"""Interactive terminal client for Drone AI Studio.

Usage:
    drone-studio-chat                           # Interactive mode
    drone-studio-chat "How do I assemble a drone?"
    drone-studio-chat --language hi --topic rules "DGCA"
    drone-studio-chat --no-stream               # One-shot answers
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import httpx

from drone_studio.client.api import ChatApiClient, ChatApiError
from drone_studio.client.consumer import FAILURE_NOTICE, ConsumerState, StreamConsumer
from drone_studio.client.session import ChatSession
from drone_studio.client.typewriter import Typewriter, render_text
from drone_studio.config import settings
from drone_studio.services.responses import LANGUAGES, QUICK_TOPICS

logger = logging.getLogger(__name__)


class Colors:
    """ANSI color codes."""
    GREEN = "\033[92m"
    BLUE = "\033[94m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    CYAN = "\033[96m"
    END = "\033[0m"


def print_colored(text: str, color: str = "", out=None) -> None:
    print(f"{color}{text}{Colors.END}", file=out or sys.stdout)


HELP = """
Commands:
  exit, quit, q  - Exit the program
  new            - Start a new chat
  lang <code>    - Switch language ({languages})
  stream         - Toggle streamed answers
  topics         - List quick topics; ask one with '/<topic>'
  history        - Replay the current chat
  help           - Show this help
"""


class LiveView:
    """Writes the growing answer to the terminal as the consumer updates.

    The live-mode typewriter shows each snapshot verbatim; only the part not
    yet on screen is written.
    """

    def __init__(self, out=None):
        self.out = out or sys.stdout
        self.typewriter = Typewriter(speed=0)
        self._shown = ""

    def __call__(self, consumer: StreamConsumer) -> None:
        if consumer.state is ConsumerState.REQUESTING:
            self._shown = ""
        elif consumer.state is ConsumerState.STREAMING:
            if not self._shown:
                print_colored("Assistant:", Colors.CYAN, out=self.out)
            self.typewriter.streaming = True
            self.typewriter.set_content(consumer.partial_content)
            text = self.typewriter.displayed
            if text.startswith(self._shown):
                self.out.write(text[len(self._shown):])
            else:
                self.out.write("\n" + text)
            self.out.flush()
            self._shown = text
        elif consumer.state is ConsumerState.COMPLETING:
            self.typewriter.streaming = False
            if self._shown:
                self.out.write("\n\n")
                self.out.flush()
        elif consumer.state is ConsumerState.FAILED:
            print_colored(f"\n{consumer.notice}", Colors.RED, out=self.out)


async def replay(messages: list[dict], speed: int = 0, out=None) -> None:
    """Print a chat's persisted history, assistant turns via the typewriter."""
    out = out or sys.stdout
    for message in messages:
        if message["role"] == "user":
            print_colored(f"You: {message['content']}", Colors.GREEN, out=out)
            continue
        print_colored("Assistant:", Colors.CYAN, out=out)
        if speed > 0:
            typewriter = Typewriter(message["content"], speed=speed)
            await typewriter.play()
            print(typewriter.render(), file=out)
        else:
            print(render_text(message["content"]), file=out)
        print(file=out)


async def ask(session: ChatSession, text: str) -> None:
    """Handle one line of input that is not a command."""
    if text.startswith("/") and text[1:] in QUICK_TOPICS:
        message = await session.ask_quick_topic(text[1:])
    else:
        message = await session.send(text)
    # Streamed answers were already written by LiveView
    if message and not session.streaming_enabled:
        await replay([message])


async def interactive(session: ChatSession) -> None:
    print_colored("Drone AI Studio - Interactive Mode", Colors.BLUE)
    print_colored("Commands: 'exit', 'new', 'lang <code>', 'stream', 'topics', 'help'", Colors.YELLOW)
    print("-" * 50)

    while True:
        try:
            line = (await asyncio.to_thread(input, f"{Colors.GREEN}You:{Colors.END} ")).strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not line:
            continue
        command, _, arg = line.partition(" ")
        command = command.lower()

        if command in ("exit", "quit", "q"):
            break
        try:
            await dispatch(session, command, arg, line)
        except ChatApiError as e:
            print_colored(f"Error: {e}", Colors.RED)
        except httpx.HTTPError:
            logger.warning("Request to the server failed", exc_info=True)
            print_colored(FAILURE_NOTICE, Colors.RED)

    print_colored("Goodbye!", Colors.CYAN)


async def dispatch(session: ChatSession, command: str, arg: str, line: str) -> None:
    """Run one REPL command, or send *line* as a question."""
    if command == "new":
        chat = await session.new_chat()
        print_colored(f"New chat #{chat['id']}", Colors.YELLOW)
    elif command == "lang":
        if arg in LANGUAGES:
            session.language = arg
            print_colored(f"Language: {LANGUAGES[arg]}", Colors.YELLOW)
        else:
            print_colored(f"Unknown language {arg!r}", Colors.RED)
    elif command == "stream":
        session.streaming_enabled = not session.streaming_enabled
        print_colored(f"Streaming {'ON' if session.streaming_enabled else 'OFF'}", Colors.YELLOW)
    elif command == "topics":
        for topic, (label, question) in QUICK_TOPICS.items():
            print(f"  /{topic:<12} {label}: {question}")
    elif command == "history":
        if session.chat_id is not None:
            await replay(await session.select_chat(session.chat_id), speed=5)
    elif command == "help":
        print(HELP.format(languages=", ".join(LANGUAGES)))
    else:
        await ask(session, line)


async def run(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient(base_url=args.url, timeout=settings.CLIENT_TIMEOUT_SECONDS) as http:
        api = ChatApiClient(http)
        if not await api.health():
            print_colored(f"Cannot connect to server at {args.url}", Colors.RED)
            return 1

        consumer = StreamConsumer(api, on_change=LiveView())
        session = ChatSession(api, consumer, language=args.language, streaming_enabled=not args.no_stream)

        if args.message:
            try:
                message = await session.send(args.message, args.topic)
            except ChatApiError as e:
                print_colored(f"Error: {e}", Colors.RED)
                return 1
            except httpx.HTTPError:
                logger.warning("Request to the server failed", exc_info=True)
                print_colored(FAILURE_NOTICE, Colors.RED)
                return 1
            if message and not session.streaming_enabled:
                await replay([message])
            return 1 if consumer.notice else 0

        await interactive(session)
        return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Terminal client for Drone AI Studio",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("message", nargs="?", help="Message to send, then exit")
    parser.add_argument("--url", default=settings.CLIENT_BASE_URL, help="Server URL")
    parser.add_argument("--language", default=settings.DEFAULT_LANGUAGE, choices=sorted(LANGUAGES))
    parser.add_argument("--topic", choices=sorted(QUICK_TOPICS), help="Force a topic for the message")
    parser.add_argument("--no-stream", action="store_true", help="Fetch answers in one reply")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    args = parser.parse_args(argv)
    args.url = args.url.rstrip("/")

    from drone_studio.logging_config import setup_logging
    setup_logging("Client", level="DEBUG" if args.verbose else "WARNING")

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
