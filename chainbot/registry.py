"""Command descriptors and the name -> command registry.

A Command couples a handler callable with the metadata the dispatcher
consults: permission level, required channel permissions and roles,
argument-count bounds, chain usability and help text. The registry
maps every name and alias to its Command.

Key classes:
    Command: Descriptor plus the call policy (argument bounds,
        chain usability, sync/async handler invocation).
    CommandRegistry: Thread-safe name -> Command mapping.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import threading
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple, Union,
)

import structlog

from .permissions import ReadWriteLock

if TYPE_CHECKING:
    from .events import CommandEvent

logger = structlog.get_logger("chainbot.dispatch")

DEFAULT_PERMISSION_MESSAGE = "You don't have permission to execute command `%name%`!"

# Handler signature: (event, *arguments) -> result, sync or async
CommandHandler = Callable[..., Any]


def _settle(
    future: asyncio.Future, result: Any = None, error: Optional[BaseException] = None
) -> None:
    if future.cancelled():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def run_in_thread(
    func: Callable[..., Any], *args: Any, name: Optional[str] = None
) -> Any:
    """Run a blocking callable on a thread of its own and await its result.

    There is no shared pool, so hung callables cannot starve other
    callers. If the awaiting task is cancelled the thread keeps running
    and its outcome is discarded.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    context = contextvars.copy_context()

    def runner() -> None:
        try:
            outcome = (context.run(func, *args), None)
        except BaseException as e:
            outcome = (None, e)
        try:
            loop.call_soon_threadsafe(_settle, future, *outcome)
        except RuntimeError:
            # Loop closed while the body was still running
            logger.debug("thread_outcome_discarded", thread=threading.current_thread().name)

    threading.Thread(target=runner, name=name, daemon=True).start()
    return await future


@dataclass
class Command:
    """A registered command.

    Attributes:
        name: Primary name.
        handler: Called as handler(event, *arguments). Coroutine
            functions are awaited; plain functions run on a thread of
            their own and may call the event's send methods directly.
        permission_level: Minimum effective level required.
        permission_message: Sent on a failed gate (%name% substituted),
            None for silence.
        required_permissions: Channel permissions the author must hold.
        required_roles: A role or list of roles the author must hold.
        chain_usable: False refuses to run as part of a chain.
        help_available: Listed by the help command.
        min_args / max_args: Argument-count bounds, max_args -1 = unlimited.
    """

    name: str
    handler: CommandHandler
    description: Optional[str] = None
    usage: Optional[str] = None
    parameters: Optional[List[str]] = None
    permission_level: int = 0
    permission_message: Optional[str] = DEFAULT_PERMISSION_MESSAGE
    required_permissions: Tuple[str, ...] = ()
    required_roles: Any = ()
    chain_usable: bool = True
    help_available: bool = True
    min_args: int = 0
    max_args: int = -1
    aliases: Tuple[str, ...] = ()

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.name,) + tuple(self.aliases)

    async def call(
        self, event: "CommandEvent", arguments: Sequence[str], chained: bool = False
    ) -> Any:
        """Run the handler if the argument count and chain policy allow it.

        Returns:
            The handler's result merged with the event's queued output,
            or None when the call was refused.
        """
        if len(arguments) < self.min_args:
            await event.respond(f"Too few arguments for command `{self.name}`!")
            if self.usage:
                await event.respond(f"Usage: `{self.usage}`")
            return None

        if 0 <= self.max_args < len(arguments):
            await event.respond(f"Too many arguments for command `{self.name}`!")
            if self.usage:
                await event.respond(f"Usage: `{self.usage}`")
            return None

        if chained and not self.chain_usable:
            await event.respond(
                f"Command `{self.name}` cannot be used in a command chain!"
            )
            return None

        if inspect.iscoroutinefunction(self.handler):
            result = await self.handler(event, *arguments)
        else:
            event.bind_loop(asyncio.get_running_loop())
            result = await run_in_thread(
                self.handler, event, *arguments, name=f"cmd-{self.name}"
            )
            if inspect.isawaitable(result):
                result = await result
        return event.drain_into(result)


class CommandRegistry:
    """Maps command names and aliases to Command descriptors.

    Reads vastly outnumber writes; both go through a ReadWriteLock so
    registration from a worker thread is safe while units dispatch.
    """

    def __init__(self):
        self._commands: Dict[str, Command] = {}
        self._lock = ReadWriteLock()

    def register(self, command: Command) -> Command:
        """Register a command under its name and all aliases.

        Later registrations replace earlier ones with a warning.
        """
        with self._lock.write():
            for name in command.names:
                if name in self._commands:
                    logger.warning("command_handler_conflict", command=name)
                self._commands[name] = command
        logger.debug("command_registered", command=command.name, aliases=command.aliases)
        return command

    def add(
        self, names: Union[str, Sequence[str]], handler: CommandHandler, **attributes: Any
    ) -> Command:
        """Build a Command from a name (or list of name + aliases) and register it."""
        if isinstance(names, str):
            names = [names]
        names = list(names)
        if not names:
            raise ValueError("A command needs at least one name")
        if "required_permissions" in attributes:
            attributes["required_permissions"] = tuple(attributes["required_permissions"])
        command = Command(
            name=names[0], handler=handler, aliases=tuple(names[1:]), **attributes
        )
        return self.register(command)

    def command(self, names: Union[str, Sequence[str]], **attributes: Any):
        """Decorator form of add()."""
        def decorator(handler: CommandHandler) -> CommandHandler:
            self.add(names, handler, **attributes)
            return handler
        return decorator

    def remove(self, name: str) -> Optional[Command]:
        """Unregister a single name. Returns the command it pointed to."""
        with self._lock.write():
            return self._commands.pop(name, None)

    def get(self, name: str) -> Optional[Command]:
        """Look up a command by name or alias."""
        with self._lock.read():
            return self._commands.get(name)

    def commands(self) -> List[Command]:
        """Distinct registered commands in registration order."""
        with self._lock.read():
            seen: Dict[int, Command] = {}
            for command in self._commands.values():
                seen.setdefault(id(command), command)
            return list(seen.values())

    @property
    def command_names(self) -> frozenset:
        """All registered names and aliases."""
        with self._lock.read():
            return frozenset(self._commands.keys())
