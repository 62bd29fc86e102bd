"""Transport contract and platform-neutral data models.

The command core never talks to a chat network directly. A Transport
implementation delivers responses, files and direct messages and
answers capability questions (channel permissions, role membership)
on the core's behalf.

Key classes:
    Role, User, Server, Channel, Message: Plain data carried through
        the core.
    Transport: ABC every chat backend implements.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Union

FileLike = Union[str, Path, BinaryIO]


@dataclass(frozen=True)
class Role:
    id: Any
    name: str = ""


@dataclass
class User:
    """A message author, with the roles they hold on the current server."""
    id: Any
    name: str = ""
    roles: List[Role] = field(default_factory=list)

    def role_ids(self) -> List[Any]:
        return [role.id for role in self.roles]


@dataclass(frozen=True)
class Server:
    id: Any
    name: str = ""


@dataclass(frozen=True)
class Channel:
    """Where a message came from. ``server`` is None for direct messages."""
    id: Any
    name: str = ""
    server: Optional[Server] = None


@dataclass
class Message:
    """A received or sent chat message."""
    content: str
    author: Optional[User]
    channel: Channel
    id: Any = None

    @property
    def server(self) -> Optional[Server]:
        return self.channel.server


class Transport(ABC):
    """Outbound side of a chat backend.

    respond/send_file/send_direct return the sent Message so command
    bodies can hand it back; the dispatcher never echoes a Message
    result a second time.
    """

    @property
    def self_id(self) -> Any:
        """ID of the bot's own account, or None if unknown."""
        return None

    @abstractmethod
    async def respond(self, channel: Channel, text: str) -> Message:
        """Send a text message to a channel."""
        ...

    @abstractmethod
    async def send_file(
        self, channel: Channel, file: FileLike, caption: Optional[str] = None
    ) -> Message:
        """Send a file to a channel with an optional caption."""
        ...

    @abstractmethod
    async def send_direct(self, user: User, text: str) -> Message:
        """Send a direct (private) message to a user."""
        ...

    @abstractmethod
    def has_permission(self, user: User, action: str, channel: Channel) -> bool:
        """Whether the user may perform ``action`` in ``channel``.

        May raise NoPermission when the backend itself refuses to answer.
        """
        ...

    def has_role(self, user: User, role_id: Any) -> bool:
        """Whether the user holds the role. Accepts a Role or a raw ID."""
        if isinstance(role_id, Role):
            role_id = role_id.id
        return role_id in user.role_ids()
