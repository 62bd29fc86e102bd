"""Built-in help command."""

from typing import Callable, List, Optional

from .events import CommandEvent
from .registry import Command, CommandRegistry

NO_DESCRIPTION = "*No description available*"
HELP_DESCRIPTION = (
    "Shows a list of all the commands available or displays help for a specific command."
)
HELP_USAGE = "help [command name]"

# Up to this many commands are listed with their descriptions.
DETAILED_LIMIT = 5
# Beyond this many the list goes to the author privately.
INLINE_LIMIT = 50


def describe_command(name: str, command: Command) -> str:
    """Description, usage and parameters of one command."""
    lines = [f"**`{name}`**: {command.description or NO_DESCRIPTION}"]
    if command.usage:
        lines.append(f"Usage: `{command.usage}`")
    if command.parameters:
        lines.append("Accepted Parameters:")
        lines.extend(f"    `{p}`" for p in command.parameters)
    return "\n".join(lines)


def list_commands(commands: List[Command]) -> str:
    """Command listing, detailed for short lists and names-only otherwise."""
    header = "**List of commands:**\n"
    if len(commands) <= DETAILED_LIMIT:
        return header + "".join(
            f"**`{c.name}`**: {c.description or NO_DESCRIPTION}\n" for c in commands
        )
    return header + ", ".join(f"`{c.name}`" for c in commands)


def make_help_handler(registry: CommandRegistry) -> Callable:
    """Create the help handler bound to ``registry``."""

    async def handle_help(event: CommandEvent, command_name: Optional[str] = None) -> str:
        if command_name:
            command = registry.get(command_name)
            if command is None:
                return f"The command `{command_name}` does not exist!"
            return describe_command(command_name, command)

        available = [c for c in registry.commands() if c.help_available]
        if len(available) > INLINE_LIMIT:
            await event.send_direct(list_commands(available))
            return "Sending list in PM!"
        return list_commands(available)

    return handle_help


def register_help(registry: CommandRegistry, names) -> Command:
    """Register the help command under ``names`` (name or list of aliases)."""
    return registry.add(
        list(names),
        make_help_handler(registry),
        max_args=1,
        description=HELP_DESCRIPTION,
        usage=HELP_USAGE,
    )
