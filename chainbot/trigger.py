"""Prefix triggers.

A prefix decides whether a message is a command invocation at all and,
if so, yields the raw chain text that follows it. Three forms exist:

    LiteralPrefix("!")          "!ping" -> "ping"
    PrefixList(("!", "?"))      first candidate that matches wins
    CustomPrefix(fn)            fn(message) -> chain text or None

make_prefix() normalizes the loose configuration value (str, list,
callable) into one of these once, at bot construction.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

import structlog

from .attributes import Attributes
from .exceptions import ConfigurationError

logger = structlog.get_logger("chainbot.bot")


@dataclass(frozen=True)
class LiteralPrefix:
    """Message must start with exactly this string (may be empty)."""
    value: str

    def match(self, message: str) -> Optional[str]:
        if not message.startswith(self.value):
            return None
        return message[len(self.value):]


@dataclass(frozen=True)
class PrefixList:
    """Ordered candidates; the first one the message starts with wins."""
    values: Tuple[str, ...]

    def match(self, message: str) -> Optional[str]:
        for value in self.values:
            if message.startswith(value):
                return message[len(value):]
        return None


@dataclass(frozen=True)
class CustomPrefix:
    """Delegates to a function returning the chain text or None."""
    func: Callable[[str], Optional[str]]

    def match(self, message: str) -> Optional[str]:
        return self.func(message)


Prefix = Union[LiteralPrefix, PrefixList, CustomPrefix]


def make_prefix(value: Union[str, Sequence[str], Callable[[str], Optional[str]], Prefix]) -> Prefix:
    """Normalize a configured prefix into a Prefix variant.

    Raises:
        ConfigurationError: If the value is not a string, a sequence of
            strings, a callable or an already-built prefix.
    """
    if isinstance(value, (LiteralPrefix, PrefixList, CustomPrefix)):
        return value
    if isinstance(value, str):
        return LiteralPrefix(value)
    if isinstance(value, (list, tuple)):
        if not value or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(
                "Prefix list must be a non-empty list of strings",
                setting_name="prefix",
            )
        return PrefixList(tuple(value))
    if callable(value):
        return CustomPrefix(value)
    raise ConfigurationError(
        f"Unsupported prefix type: {type(value).__name__}",
        setting_name="prefix",
    )


def extract_chain(message: str, prefix: Prefix, attributes: Attributes) -> Optional[str]:
    """Return the raw chain text if the message triggers the bot.

    Applies the prefix, then the two silent policy gates: a chain may
    not start with whitespace unless spaces are allowed, and a chain
    that is blank after trimming is ignored.
    """
    chain = prefix.match(message)
    if chain is None:
        return None

    if chain[:1].isspace() and not attributes.spaces_allowed:
        logger.debug("chain_starts_with_space")
        return None

    if not chain.strip():
        logger.debug("chain_empty")
        return None

    return chain
