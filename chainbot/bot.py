"""Command bot: message intake, command registration and admin API.

CommandBot is what a chat backend talks to. The backend calls
on_message_received() for every incoming message; the bot filters
it, matches the prefix and spawns an execution unit that parses the
chain, dispatches it and delivers the result through the Transport.

Key classes:
    CommandBot: Owns the attributes, prefix, permission table,
        command registry, dispatcher and scheduler of one bot.
"""

import asyncio
from typing import Any, Optional, Sequence, Union

import structlog

from .attributes import Attributes
from .config import Config, get_config
from .dispatcher import Dispatcher
from .events import CommandEvent
from .exceptions import ChainDepthError
from .help import register_help
from .permissions import PermissionTable
from .registry import Command, CommandHandler, CommandRegistry
from .scheduler import ExecutionScheduler
from .transport import Message, Server, Transport, User
from .trigger import Prefix, extract_chain, make_prefix

logger = structlog.get_logger("chainbot.bot")

DEFAULT_SHUTDOWN_TIMEOUT = 10


class CommandBot:
    """Bot that runs commands and command chains.

    Args:
        transport: Chat backend used for replies and capability checks.
        prefix: A string, a list of strings (first match wins) or a
            callable returning the chain text or None.
        attributes: Prebuilt Attributes. Mutually exclusive with
            ``**options``.
        shutdown_timeout: Seconds stop() waits for in-flight units.
        **options: Attribute options (advanced_functionality,
            help_command, spaces_allowed, previous, ...).

    Raises:
        ConfigurationError: On an invalid prefix or attribute value.
    """

    def __init__(
        self,
        transport: Transport,
        prefix: Any = "!",
        attributes: Optional[Attributes] = None,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        **options: Any,
    ):
        if attributes is not None and options:
            raise TypeError("Pass either attributes or attribute options, not both")

        self.transport = transport
        self.prefix: Prefix = make_prefix(prefix)
        self.attributes = attributes or Attributes.from_options(**options)
        self.shutdown_timeout = shutdown_timeout

        self.permissions = PermissionTable()
        self.registry = CommandRegistry()
        self.dispatcher = Dispatcher(
            self.attributes, self.registry, self.permissions, transport
        )
        self.scheduler = ExecutionScheduler()

        if self.attributes.help_command_names:
            register_help(self.registry, self.attributes.help_command_names)

    @classmethod
    def from_config(cls, transport: Transport, config: Optional[Config] = None) -> "CommandBot":
        """Create a bot from settings.yaml / environment configuration."""
        config = config or get_config()
        return cls(
            transport,
            prefix=config.prefix,
            attributes=config.attributes(),
            shutdown_timeout=config.shutdown_timeout,
        )

    # --- Commands ---

    def command(self, names: Union[str, Sequence[str]], **attributes: Any):
        """Decorator registering a handler; see Command for attributes."""
        return self.registry.command(names, **attributes)

    def add_command(
        self, names: Union[str, Sequence[str]], handler: CommandHandler, **attributes: Any
    ) -> Command:
        return self.registry.add(names, handler, **attributes)

    def remove_command(self, name: str) -> Optional[Command]:
        return self.registry.remove(name)

    # --- Permissions ---

    def set_user_permission(self, user_id: Any, level: int) -> None:
        """Set a user's personal permission level."""
        self.permissions.set_user_permission(user_id, level)

    def set_role_permission(self, role_id: Any, level: int) -> None:
        """Set the level granted to every holder of a role."""
        self.permissions.set_role_permission(role_id, level)

    def permission(self, user: User, level: int, server: Optional[Server]) -> bool:
        """Whether ``user`` has at least ``level`` on ``server``."""
        return self.permissions.permission(user, level, server)

    # --- Execution ---

    async def execute_command(
        self, name: str, event: CommandEvent, arguments: Sequence[str], chained: bool = False
    ) -> Optional[str]:
        return await self.dispatcher.execute_command(name, event, arguments, chained)

    async def simple_execute(self, text: str, event: CommandEvent) -> Optional[str]:
        return await self.dispatcher.simple_execute(text, event)

    async def execute_chain(self, text: str, event: CommandEvent) -> Optional[str]:
        return await self.dispatcher.execute_chain(text, event)

    def trigger(self, content: str) -> Optional[str]:
        """Chain text if ``content`` would trigger the bot, else None."""
        return extract_chain(content, self.prefix, self.attributes)

    def on_message_received(self, message: Message) -> Optional[asyncio.Task]:
        """Entry point for the transport, called once per received message.

        Must be called from the running event loop. Returns the spawned
        execution unit, or None when the message does not trigger.
        """
        if message.author is None:
            logger.warning(
                "message_without_author",
                message_id=message.id,
                channel_id=message.channel.id,
            )
            return None

        self_id = self.transport.self_id
        if self_id is not None and message.author.id == self_id and not self.attributes.parse_self:
            return None

        chain = self.trigger(message.content)
        if chain is None:
            return None

        logger.info(
            "chain_triggered",
            author_id=message.author.id,
            channel_id=message.channel.id,
            length=len(chain),
        )
        event = CommandEvent(message, self.transport, bot=self)
        return self.scheduler.spawn(self._run_unit(chain, event))

    async def _run_unit(self, chain: str, event: CommandEvent) -> None:
        logger.debug("chain_parsing", chain=chain)
        try:
            result = await self.dispatcher.execute_chain(chain, event)
        except ChainDepthError as e:
            logger.warning(
                "chain_too_deep", max_depth=e.max_depth, author_id=event.author.id
            )
            return
        await self.dispatcher.deliver(event, result)

    @property
    def in_flight(self) -> int:
        return self.scheduler.in_flight

    async def stop(self) -> None:
        """Wait for in-flight chains, cancelling any that outlast the timeout."""
        cancelled = await self.scheduler.drain(timeout=self.shutdown_timeout)
        logger.info("bot_stopped", cancelled_units=cancelled)
