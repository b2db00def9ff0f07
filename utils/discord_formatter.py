"""Embed builders for bot replies"""
from typing import Iterable, Optional, Tuple

import discord

INVITE_COLOR = discord.Color(64141)
MAX_FIELD_LENGTH = 1024
MAX_FIELDS = 25
MAX_MESSAGE_LENGTH = 2000


def truncate_field(value: str, limit: int = MAX_FIELD_LENGTH) -> str:
    """Fit a string into an embed field value."""
    if len(value) > limit:
        return value[:limit - 3] + "..."
    return value


def format_invite_embed(url: str) -> discord.Embed:
    """Embed whose title links to the bot's OAuth2 invite URL."""
    return discord.Embed(
        title="Bot Invite Link",
        url=url,
        color=INVITE_COLOR,
        description="Click the title to invite me to your server",
    )


def format_help_embed(
    title: str,
    description: Optional[str] = None,
    fields: Iterable[Tuple[str, str]] = (),
    footer: Optional[str] = None,
    color: Optional[discord.Color] = None,
) -> discord.Embed:
    """Build a help embed from (name, value) pairs.

    Args:
        title: Embed title
        description: Text shown under the title
        fields: Pairs of field name and value, rendered non-inline
        footer: Optional footer tip
        color: Embed colour, defaults to blurple

    Returns:
        Discord Embed object
    """
    embed = discord.Embed(
        title=title,
        description=description,
        color=color or discord.Color.blurple(),
    )

    for count, (name, value) in enumerate(fields):
        if count >= MAX_FIELDS:
            break
        embed.add_field(name=name, value=truncate_field(value) or "\u200b", inline=False)

    if footer:
        embed.set_footer(text=footer)

    return embed
