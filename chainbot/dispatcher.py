"""Command dispatch: chain execution, permission gates and delivery.

The Dispatcher turns parsed chains into handler calls. Each
invocation's arguments are resolved just before it runs, so a
sub-chain executes only when the argument holding it is evaluated and
a previous-result marker sees the output of the step right before it.

Key classes:
    Dispatcher: execute_command / simple_execute / execute_chain /
        deliver, shared by all execution units of one bot.
"""

from typing import Any, List, Optional, Sequence

import structlog

from .attributes import Attributes
from .events import CommandEvent
from .exceptions import NoPermission
from .parser import Argument, CommandChain, PreviousResult, Text, parse_chain, parse_simple
from .permissions import PermissionTable, required_permissions_held, required_roles_held
from .registry import Command, CommandRegistry
from .transport import Message, Transport

logger = structlog.get_logger("chainbot.dispatch")


def stringify(result: Any) -> str:
    """Display form of a handler result; a sent Message displays as ''."""
    if result is None or isinstance(result, Message):
        return ""
    return str(result)


class Dispatcher:
    """Runs commands and chains against one registry and permission table.

    Args:
        attributes: Bot attributes (grammar, templates, mode).
        registry: Command lookup.
        permissions: Level table used by the first gate.
        transport: Answers capability checks and delivers output.
    """

    def __init__(
        self,
        attributes: Attributes,
        registry: CommandRegistry,
        permissions: PermissionTable,
        transport: Transport,
    ):
        self.attributes = attributes
        self.registry = registry
        self.permissions = permissions
        self.transport = transport

    def _authorized(self, command: Command, event: CommandEvent) -> bool:
        return (
            self.permissions.permission(event.author, command.permission_level, event.server)
            and required_permissions_held(
                self.transport, event.author, command.required_permissions, event.channel
            )
            and required_roles_held(self.transport, event.author, command.required_roles)
        )

    async def execute_command(
        self,
        name: str,
        event: CommandEvent,
        arguments: Sequence[str],
        chained: bool = False,
    ) -> Optional[str]:
        """Execute a single command by name.

        Args:
            name: Command name or alias.
            event: Execution context of the current unit.
            arguments: Already-resolved argument strings.
            chained: Whether this runs as part of a chain; commands
                with chain_usable=False refuse to run when True.

        Returns:
            The command's result as a string, or None if the command
            does not exist or a permission gate failed.

        Raises:
            NoPermission: Re-raised after the no-permission message when
                a capability check (or the handler) signals it.
        """
        logger.debug("command_executing", command=name, arguments=list(arguments))
        command = self.registry.get(name)
        if command is None:
            logger.info("command_not_found", command=name)
            template = self.attributes.command_doesnt_exist_message
            if template:
                await event.respond(template.replace("%command%", name))
            return None

        try:
            if self._authorized(command, event):
                event.command = command
                result = await command.call(event, list(arguments), chained)
                return stringify(result)

            logger.info(
                "permission_denied",
                command=name,
                user_id=event.author.id,
                required_level=command.permission_level,
            )
            if command.permission_message:
                await event.respond(command.permission_message.replace("%name%", name))
            return None
        except NoPermission:
            logger.warning("no_permission_raised", command=name, user_id=event.author.id)
            if self.attributes.no_permission_message is not None:
                await event.respond(self.attributes.no_permission_message)
            raise

    async def simple_execute(self, text: str, event: CommandEvent) -> Optional[str]:
        """Execute whitespace-split text as one command, no chain syntax."""
        chain = parse_simple(text)
        if not chain:
            return None
        invocation = chain.invocations[0]
        return await self.execute_command(
            invocation.name, event, [arg.literal for arg in invocation.arguments]
        )

    async def execute_chain(self, text: str, event: CommandEvent) -> Optional[str]:
        """Parse and fully execute raw chain text in the bot's mode.

        Raises:
            ChainDepthError: If sub-chains nest too deep (advanced mode).
        """
        if not self.attributes.advanced_functionality:
            return await self.simple_execute(text, event)

        chain = parse_chain(text, self.attributes)
        logger.debug("chain_parsed", invocations=len(chain))
        return await self.run_chain(chain, event)

    async def run_chain(
        self, chain: CommandChain, event: CommandEvent, subchain: bool = False
    ) -> Optional[str]:
        """Execute invocations in order, threading each result into the next.

        A step without a result (unknown command, failed gate) does not
        stop the chain; a following previous-result marker resolves to ''.
        """
        chained = subchain or len(chain) > 1
        previous: Optional[str] = None
        for invocation in chain:
            arguments: List[str] = []
            for argument in invocation.arguments:
                arguments.append(await self._resolve(argument, event, previous))
            previous = await self.execute_command(
                invocation.name, event, arguments, chained
            )
        return previous

    async def _resolve(
        self, argument: Argument, event: CommandEvent, previous: Optional[str]
    ) -> str:
        pieces: List[str] = []
        for part in argument.parts:
            if isinstance(part, Text):
                pieces.append(part.value)
            elif isinstance(part, PreviousResult):
                pieces.append(previous or "")
            else:
                result = await self.run_chain(part.chain, event, subchain=True)
                pieces.append(result or "")
        return "".join(pieces)

    async def deliver(self, event: CommandEvent, result: Optional[str]) -> None:
        """Flush queued output, the pending file and the final result.

        With a pending file the text becomes its caption; otherwise the
        text is sent on its own unless it is empty.
        """
        text = event.drain_into(result)
        if event.file is not None:
            await self.transport.send_file(event.channel, event.file, text)
            logger.debug("file_delivered", channel_id=event.channel.id)
        elif text:
            await self.transport.respond(event.channel, text)
            logger.debug("response_delivered", channel_id=event.channel.id, length=len(text))
