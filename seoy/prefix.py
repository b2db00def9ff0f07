"""Dynamic per-guild command prefix"""
from typing import TYPE_CHECKING, List

import discord

from .config import logger
from .guild_settings import SettingsError

if TYPE_CHECKING:
    from discord.ext import commands

    from .context import AppContext


def mention_prefixes(bot: "commands.Bot", user_id=None) -> List[str]:
    """Both mention forms for the bot, so `@Bot ping` works everywhere."""
    if user_id is None:
        if bot.user is None:
            return []
        user_id = bot.user.id
    return [f"<@{user_id}> ", f"<@!{user_id}> "]


def make_prefix_resolver(app: "AppContext"):
    """Build the `command_prefix` callable for the bot.

    Args:
        app: Application context

    Returns:
        Coroutine function (bot, message) -> list of accepted prefixes

    """
    config = app.config

    async def get_prefix(bot: "commands.Bot", message: discord.Message) -> List[str]:
        prefixes = mention_prefixes(bot, config.user_id)

        if message.guild is None:
            prefixes.append(config.dm_prefix)
            if config.no_dm_prefix:
                # Must stay last: the empty prefix matches everything
                prefixes.append("")
            return prefixes

        try:
            prefix = app.settings.get_prefix(message.guild.id)
        except SettingsError:
            logger.warning(f"Falling back to default prefix for guild {message.guild.id}")
            prefix = config.prefix

        prefixes.append(prefix)
        return prefixes

    return get_prefix
