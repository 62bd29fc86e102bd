"""Shared fixtures: an in-memory transport and message/event factories."""

from typing import Any, List, Optional

import pytest

from chainbot.events import CommandEvent
from chainbot.exceptions import NoPermission
from chainbot.transport import Channel, Message, Role, Server, Transport, User


class FakeTransport(Transport):
    """Records everything sent; channel permissions are configurable."""

    def __init__(self, self_id: Any = None):
        self._self_id = self_id
        self.sent: List[str] = []
        self.files: List[tuple] = []
        self.direct: List[tuple] = []
        self.denied_actions = set()
        self.raising_actions = set()

    @property
    def self_id(self) -> Any:
        return self._self_id

    def _message(self, text: str, channel: Channel) -> Message:
        return Message(content=text, author=User(id="bot"), channel=channel)

    async def respond(self, channel: Channel, text: str) -> Message:
        self.sent.append(text)
        return self._message(text, channel)

    async def send_file(self, channel: Channel, file, caption: Optional[str] = None) -> Message:
        self.files.append((file, caption))
        return self._message(caption or "", channel)

    async def send_direct(self, user: User, text: str) -> Message:
        self.direct.append((user.id, text))
        return self._message(text, Channel(id="dm"))

    def has_permission(self, user: User, action: str, channel: Channel) -> bool:
        if action in self.raising_actions:
            raise NoPermission("Backend refused", action=action)
        return action not in self.denied_actions


SERVER = Server(id=1, name="guild")
GUILD_CHANNEL = Channel(id=10, name="general", server=SERVER)
DM_CHANNEL = Channel(id=20, name="dm")


@pytest.fixture
def transport():
    return FakeTransport(self_id="bot")


@pytest.fixture
def author():
    return User(id=100, name="alice", roles=[Role(id=7, name="mods"), Role(id=8, name="crew")])


@pytest.fixture
def make_message(author):
    def _make(content: str = "", user: Optional[User] = author, in_server: bool = True) -> Message:
        channel = GUILD_CHANNEL if in_server else DM_CHANNEL
        return Message(content=content, author=user, channel=channel)
    return _make


@pytest.fixture
def make_event(transport, make_message):
    def _make(content: str = "", **kwargs) -> CommandEvent:
        return CommandEvent(make_message(content, **kwargs), transport)
    return _make


@pytest.fixture
def make_transport():
    return FakeTransport
