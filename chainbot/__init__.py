"""chainbot: prefix-triggered command chains for chat bots."""

from .attributes import Attributes
from .bot import CommandBot
from .events import CommandEvent
from .exceptions import (
    ChainBotError,
    ChainDepthError,
    ChainParseError,
    ConfigurationError,
    ErrorCategory,
    NoPermission,
    TransportError,
)
from .registry import Command, CommandRegistry
from .transport import Channel, Message, Role, Server, Transport, User

__version__ = "0.1.0"

__all__ = [
    "Attributes",
    "ChainBotError",
    "ChainDepthError",
    "ChainParseError",
    "Channel",
    "Command",
    "CommandBot",
    "CommandEvent",
    "CommandRegistry",
    "ConfigurationError",
    "ErrorCategory",
    "Message",
    "NoPermission",
    "Role",
    "Server",
    "Transport",
    "TransportError",
    "User",
]
