"""Event handlers for Seoy

This module contains the Discord event handlers and global checks:
- on_ready: Bot startup
- on_command: Command invocation logging
- on_command_error: Turns command failures into replies
- command_enabled_check: Refuses commands disabled for a guild/channel/role/user
"""
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from .commands import PROTECTED_COMMANDS
from .config import logger
from .errors import CommandDisabledHere, SettingsUnavailable
from .guild_settings import SettingsError, is_command_disabled

if TYPE_CHECKING:
    from .context import AppContext

SETTINGS_ERROR_MESSAGE = "❌ Could not update settings, try again."
GUILD_ONLY_MESSAGE = "❌ This command can only be used in a server."
GENERIC_ERROR_MESSAGE = "❌ An error occurred while running this command. Please try again."


def command_usage(ctx: commands.Context) -> str:
    command = ctx.command
    usage = f"{ctx.clean_prefix}{command.qualified_name}"
    if command.signature:
        usage = f"{usage} {command.signature}"
    return f"`{usage}`"


def make_command_enabled_check(app: "AppContext"):
    """Build the global check that enforces the disabled-command matrix."""

    async def command_enabled_check(ctx: commands.Context) -> bool:
        if ctx.guild is None or ctx.command is None:
            return True

        name = ctx.command.qualified_name
        if name in PROTECTED_COMMANDS:
            return True

        try:
            settings = app.settings.fetch_or_create(ctx.guild.id)
        except SettingsError as e:
            raise SettingsUnavailable(str(e)) from e

        role_ids = [role.id for role in getattr(ctx.author, "roles", [])]
        if is_command_disabled(settings, name, ctx.channel.id, role_ids, ctx.author.id):
            raise CommandDisabledHere(name)
        return True

    return command_enabled_check


async def handle_command_error(ctx: commands.Context, error: commands.CommandError):
    """Reply to the invoking user with what went wrong."""
    original = error.original if isinstance(error, commands.CommandInvokeError) else error

    if isinstance(error, commands.CommandNotFound):
        return

    if isinstance(original, SettingsError) or isinstance(error, SettingsUnavailable):
        logger.error(f"Settings error in {ctx.command}: {original}")
        message = SETTINGS_ERROR_MESSAGE
    elif isinstance(error, commands.NoPrivateMessage):
        message = GUILD_ONLY_MESSAGE
    elif isinstance(error, CommandDisabledHere):
        message = f"❌ {error}"
    elif isinstance(error, commands.MissingPermissions):
        perms = ", ".join(p.replace("_", " ").title() for p in error.missing_permissions)
        message = f"❌ You need the {perms} permission to do that."
    elif isinstance(error, commands.UserInputError):
        message = f"❌ {error}\nUsage: {command_usage(ctx)}"
    elif isinstance(error, commands.CheckFailure):
        message = "❌ You can't use this command here."
    else:
        logger.error(f"Unhandled error in {ctx.command}", exc_info=original)
        message = GENERIC_ERROR_MESSAGE

    try:
        await ctx.reply(message)
    except discord.HTTPException as e:
        logger.warning(f"Could not send error reply in channel {ctx.channel.id}: {e}")


def register_events(bot: commands.Bot, app: "AppContext"):
    """Register all event handlers with the bot.

    Args:
        bot: The Discord bot instance
        app: Application context
    """

    @bot.event
    async def on_ready():
        logger.info(f"{bot.user.name} is connected! Serving {len(bot.guilds)} servers")

    @bot.event
    async def on_command(ctx: commands.Context):
        where = f"guild {ctx.guild.id}" if ctx.guild else "DM"
        logger.debug(f"{ctx.command.qualified_name} called by {ctx.author} in {where}")

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        await handle_command_error(ctx, error)

    bot.add_check(make_command_enabled_check(app))
