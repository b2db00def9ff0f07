"""Command registry for Seoy

Every command is described by a CommandSpec (name, handler and metadata).
The registry is built once at startup from the command modules and then
turned into discord.py commands by register_commands.

Categories:
- meta.py: ping, say, botinvite, enable, disable, prefix
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from discord.ext import commands

from ..config import logger

if TYPE_CHECKING:
    from ..context import AppContext

# Commands that enable/disable can never switch off
PROTECTED_COMMANDS = frozenset({"enable", "disable", "help"})


@dataclass
class CommandSpec:
    """A command and the metadata the dispatcher needs to register it.

    Attributes:
        name: Command name as typed after the prefix
        callback: Coroutine function (ctx, ...) implementing the command
        description: Help text
        usage: Argument synopsis shown in help and usage errors
        aliases: Alternative names
        guild_only: Refuse the command in direct messages
        max_args: Reject invocations with more arguments than the handler takes
        permissions: Guild permissions the invoking member must have
    """

    name: str
    callback: Callable
    description: str
    usage: str = ""
    aliases: Tuple[str, ...] = ()
    guild_only: bool = False
    max_args: Optional[int] = None
    permissions: Dict[str, bool] = field(default_factory=dict)

    def to_command(self) -> commands.Command:
        command = commands.Command(
            self.callback,
            name=self.name,
            help=self.description,
            usage=self.usage or None,
            aliases=list(self.aliases),
            ignore_extra=self.max_args is None,
            extras={"guild_only": self.guild_only, "max_args": self.max_args},
        )
        # Checks run in the order they are added
        if self.guild_only:
            command = commands.guild_only()(command)
        if self.permissions:
            command = commands.has_permissions(**self.permissions)(command)
        return command


def build_registry(app: "AppContext") -> Dict[str, CommandSpec]:
    """Collect every command spec, keyed by name.

    Args:
        app: Application context handed to the command modules

    Raises:
        ValueError: If two commands share a name or alias

    """
    from .meta import build_meta_commands

    registry: Dict[str, CommandSpec] = {}
    taken = set()
    for spec in build_meta_commands(app):
        names = {spec.name, *spec.aliases}
        clash = names & taken
        if clash:
            raise ValueError(f"Duplicate command name(s): {', '.join(sorted(clash))}")
        taken |= names
        registry[spec.name] = spec
    return registry


def register_commands(bot: commands.Bot, registry: Dict[str, CommandSpec]):
    """Register all commands with the bot.

    Args:
        bot: The Discord bot instance
        registry: Specs built by build_registry
    """
    for spec in registry.values():
        bot.add_command(spec.to_command())
    logger.info(f"Registered {len(registry)} commands: {', '.join(registry)}")
