"""Per-message execution context handed to command handlers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Coroutine, Optional, Union

from .transport import Channel, FileLike, Message, Server, Transport, User

if TYPE_CHECKING:
    from .registry import Command

Sent = Union[Message, Awaitable[Message]]


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class CommandEvent:
    """State of one execution unit.

    Created for a single triggering message and owned by the unit that
    processes it. Handlers can queue output with append() and attach a
    file; both are flushed together with the chain's final result.

    On the event loop the send methods return an awaitable. Sync
    handlers run on a thread of their own; there the same calls block
    until the message is sent and return it.
    """

    def __init__(self, message: Message, transport: Transport, bot: Any = None):
        self.message = message
        self.transport = transport
        self.bot = bot
        self.command: Optional["Command"] = None
        self.file: Optional[FileLike] = None
        self._saved_message = ""
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def author(self) -> Optional[User]:
        return self.message.author

    @property
    def user(self) -> Optional[User]:
        return self.message.author

    @property
    def channel(self) -> Channel:
        return self.message.channel

    @property
    def server(self) -> Optional[Server]:
        return self.message.server

    @property
    def content(self) -> str:
        return self.message.content

    @property
    def saved_message(self) -> str:
        return self._saved_message

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remember the loop that owns the transport, for calls from handler threads."""
        self._loop = loop

    def _send(self, coro: Coroutine[Any, Any, Message]) -> Sent:
        if self._loop is None or _running_loop() is self._loop:
            return coro
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def respond(self, text: str) -> Sent:
        """Send text to the originating channel right away."""
        return self._send(self.transport.respond(self.channel, text))

    def send_file(self, file: FileLike, caption: Optional[str] = None) -> Sent:
        return self._send(self.transport.send_file(self.channel, file, caption))

    def send_direct(self, text: str) -> Sent:
        """Send a direct message to the author."""
        return self._send(self.transport.send_direct(self.author, text))

    def append(self, text: Any) -> None:
        """Queue a line to be sent with the chain's result."""
        self._saved_message += f"{text}\n"

    def attach_file(self, file: FileLike) -> None:
        """Send ``file`` when the chain completes, captioned with its result."""
        self.file = file

    def detach_file(self) -> None:
        self.file = None

    def drain(self) -> None:
        self._saved_message = ""

    def drain_into(self, result: Any) -> Optional[str]:
        """Prefix queued output to ``result`` and clear the queue.

        A Message result was already sent by the handler, so it yields
        None and the queue is kept for the next flush.
        """
        if isinstance(result, Message):
            return None
        text = self._saved_message + ("" if result is None else str(result))
        self.drain()
        return text
