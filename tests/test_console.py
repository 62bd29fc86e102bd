"""Tests for the terminal transport."""

import io

import pytest

from chainbot.bot import CommandBot
from chainbot.console import CONSOLE_USER, ConsoleTransport
from chainbot.exceptions import TransportError


class _BrokenStream(io.StringIO):
    def write(self, text):
        raise OSError("stdout closed")


def _make_transport(lines=""):
    return ConsoleTransport(stdin=io.StringIO(lines), stdout=io.StringIO())


@pytest.mark.asyncio
async def test_respond_and_file_output():
    """Responses, files and direct messages are printed one per line."""
    transport = _make_transport()
    sent = await transport.respond(None, "hello\n")
    await transport.send_file(None, "/tmp/report.csv", caption="rows")
    await transport.send_direct(CONSOLE_USER, "psst")
    assert transport.stdout.getvalue() == (
        "hello\n[file: report.csv] rows\n[dm to console] psst\n"
    )
    assert sent.author.id == transport.self_id


@pytest.mark.asyncio
async def test_write_failure_raises_transport_error():
    """A failed stdout write raises a retryable TransportError."""
    transport = ConsoleTransport(stdin=io.StringIO(), stdout=_BrokenStream())
    with pytest.raises(TransportError) as exc_info:
        await transport.respond(None, "x")
    assert exc_info.value.is_retryable


@pytest.mark.asyncio
async def test_read_messages_until_eof():
    """Each stdin line becomes a console-user message until EOF."""
    transport = _make_transport("!one\n!two\n")
    received = []
    await transport.read_messages(received.append)
    assert [m.content for m in received] == ["!one", "!two"]
    assert all(m.author is CONSOLE_USER and m.server is None for m in received)


@pytest.mark.asyncio
async def test_console_bot_round_trip():
    """A command read from stdin is answered on stdout."""
    transport = _make_transport("!echo hi there\n")
    bot = CommandBot(transport, prefix="!")
    bot.add_command("echo", lambda event, *words: " ".join(words))
    tasks = []
    await transport.read_messages(lambda m: tasks.append(bot.on_message_received(m)))
    for task in tasks:
        await task
    assert transport.stdout.getvalue() == "hi there\n"
