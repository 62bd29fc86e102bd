"""Terminal transport: stdin lines in, stdout lines out.

Every line read is a message from a single console user in a
direct-message context (no server, so role levels do not apply).
"""

import asyncio
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional, TextIO

import structlog

from .exceptions import TransportError
from .transport import Channel, FileLike, Message, Transport, User

logger = structlog.get_logger("chainbot.transport")

CONSOLE_USER = User(id="console", name="console")
CONSOLE_CHANNEL = Channel(id="console", name="console")
BOT_ID = "chainbot"


class ConsoleTransport(Transport):
    """Prints responses; grants every channel permission to the console user."""

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self._message_counter = 0
        # stdin is read on a thread no command body can occupy
        self._reader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="console-reader")

    @property
    def self_id(self) -> Any:
        return BOT_ID

    def _sent(self, text: str, channel: Channel) -> Message:
        self._message_counter += 1
        return Message(
            content=text,
            author=User(id=BOT_ID, name=BOT_ID),
            channel=channel,
            id=self._message_counter,
        )

    def _write(self, text: str) -> None:
        try:
            self.stdout.write(text.rstrip("\n") + "\n")
            self.stdout.flush()
        except OSError as e:
            raise TransportError("Console write failed", error=str(e)) from e

    async def respond(self, channel: Channel, text: str) -> Message:
        self._write(text)
        return self._sent(text, channel)

    async def send_file(
        self, channel: Channel, file: FileLike, caption: Optional[str] = None
    ) -> Message:
        name = Path(file).name if isinstance(file, (str, Path)) else getattr(file, "name", "file")
        self._write(f"[file: {name}]" + (f" {caption}" if caption else ""))
        return self._sent(caption or "", channel)

    async def send_direct(self, user: User, text: str) -> Message:
        self._write(f"[dm to {user.name or user.id}] {text}")
        return self._sent(text, CONSOLE_CHANNEL)

    def has_permission(self, user: User, action: str, channel: Channel) -> bool:
        return True

    async def read_messages(self, on_message) -> None:
        """Feed stdin lines to ``on_message`` until EOF."""
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(self._reader, self.stdin.readline)
            if not line:
                logger.info("console_eof")
                return
            self._message_counter += 1
            on_message(
                Message(
                    content=line.rstrip("\n"),
                    author=CONSOLE_USER,
                    channel=CONSOLE_CHANNEL,
                    id=self._message_counter,
                )
            )
