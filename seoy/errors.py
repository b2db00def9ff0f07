"""Command errors raised by Seoy checks"""
from discord.ext import commands


class CommandDisabledHere(commands.CheckFailure):
    """The command is disabled for this guild, channel, role or user."""

    def __init__(self, command_name: str):
        self.command_name = command_name
        super().__init__(f"`{command_name}` is disabled here.")


class SettingsUnavailable(commands.CommandError):
    """Guild settings could not be loaded while checking a command."""
