"""Meta Commands - Basic bot commands and per-server configuration

Prefix commands:
- ping - Check the bot is alive
- say - Repeat a message with mentions made safe
- botinvite / invite - Link to add the bot to a server
- enable / disable - Turn commands on or off per server, channel, role or user
- prefix - Show or change the server's command prefix
"""
from typing import TYPE_CHECKING, List, Optional, Tuple

import discord
from discord.ext import commands

from utils.discord_formatter import MAX_MESSAGE_LENGTH, format_invite_embed, truncate_field

from ..config import logger
from ..scope_parser import ALL, ScopeSyntaxError, parse_scope_arguments
from . import PROTECTED_COMMANDS, CommandSpec

if TYPE_CHECKING:
    from ..context import AppContext

SCOPE_USAGE = "<command>[, <command>...] [in <channel>...] [for <role or user>...]"

# Mentions are rendered as names; channel mentions are kept as they notify nobody
SafeText = commands.clean_content(use_nicknames=True, fix_channel_mentions=False)

# ============================================================================
# SCOPE RESOLUTION HELPERS
# ============================================================================

def resolve_command_names(bot: commands.Bot, tokens: List[str]) -> Tuple[List[str], List[str]]:
    """Map typed command names (or aliases) to registered command names.

    Returns:
        (valid names in input order without duplicates, rejected tokens)
    """
    names: List[str] = []
    rejected: List[str] = []

    for token in tokens:
        if token.lower() == ALL:
            candidates = sorted(
                cmd.qualified_name for cmd in bot.commands
                if cmd.qualified_name not in PROTECTED_COMMANDS
            )
        else:
            command = bot.get_command(token)
            if command is None or command.qualified_name in PROTECTED_COMMANDS:
                rejected.append(token)
                continue
            candidates = [command.qualified_name]

        for name in candidates:
            if name not in names:
                names.append(name)

    return names, rejected


async def resolve_channels(ctx: commands.Context, tokens: List[str]) -> Tuple[List[discord.abc.GuildChannel], List[str]]:
    converter = commands.TextChannelConverter()
    channels = []
    rejected = []
    for token in tokens:
        try:
            channels.append(await converter.convert(ctx, token))
        except commands.BadArgument:
            rejected.append(token)
    return channels, rejected


async def resolve_targets(ctx: commands.Context, tokens: List[str]):
    """Split `for` targets into roles and members.

    Roles are tried first, then members.

    Returns:
        (roles, members, rejected tokens)
    """
    role_converter = commands.RoleConverter()
    member_converter = commands.MemberConverter()
    roles = []
    members = []
    rejected = []

    for token in tokens:
        try:
            roles.append(await role_converter.convert(ctx, token))
            continue
        except commands.BadArgument:
            pass
        try:
            members.append(await member_converter.convert(ctx, token))
        except commands.BadArgument:
            rejected.append(token)

    return roles, members, rejected


def describe_change(verb: str, names: List[str], channels, roles, members) -> str:
    text = f"✅ {verb} " + ", ".join(f"`{name}`" for name in names)
    if channels:
        text += " in " + ", ".join(channel.mention for channel in channels)
    targets = [role.mention for role in roles] + [member.mention for member in members]
    if targets:
        text += " for " + ", ".join(targets)
    return text

# ============================================================================
# COMMANDS
# ============================================================================

def build_meta_commands(app: "AppContext") -> List[CommandSpec]:
    """Build the meta command specs.

    Args:
        app: Application context (settings store, config)
    """
    store = app.settings

    async def ping(ctx: commands.Context):
        await ctx.reply("Pong!")

    async def say(ctx: commands.Context, *, text: SafeText):
        if not text.strip():
            raise commands.BadArgument("There is nothing to say.")
        await ctx.send(truncate_field(text, MAX_MESSAGE_LENGTH), allowed_mentions=discord.AllowedMentions.none())

    async def botinvite(ctx: commands.Context):
        client_id = ctx.bot.application_id or ctx.bot.user.id
        url = discord.utils.oauth_url(
            client_id,
            permissions=discord.Permissions(administrator=True),
            scopes=("bot",),
        )
        await ctx.reply(embed=format_invite_embed(url), mention_author=False)

    async def toggle(ctx: commands.Context, text: str, enable: bool):
        try:
            scope = parse_scope_arguments(text)
        except ScopeSyntaxError as e:
            raise commands.BadArgument(str(e)) from e

        names, rejected = resolve_command_names(ctx.bot, scope.commands)

        channels = []
        roles = []
        members = []
        if scope.channels is not None:
            channels, bad = await resolve_channels(ctx, scope.channels)
            rejected.extend(bad)
        if scope.targets is not None:
            roles, members, bad = await resolve_targets(ctx, scope.targets)
            rejected.extend(bad)

        ignored = ", ".join(f"`{token}`" for token in rejected)

        # A clause that resolved to nothing must not widen the change to the whole server
        if not names or (scope.channels is not None and not channels) or \
                (scope.targets is not None and not roles and not members):
            await ctx.reply(f"❌ Nothing to change. Could not resolve: {ignored or 'no commands given'}")
            return

        apply = store.enable_command if enable else store.disable_command
        still_disabled = []
        for name in names:
            result = apply(
                ctx.guild.id,
                name,
                channels=[channel.id for channel in channels],
                roles=[role.id for role in roles],
                users=[member.id for member in members],
            )
            if enable and result.server:
                still_disabled.append(name)

        reply = describe_change("Enabled" if enable else "Disabled", names, channels, roles, members)
        if still_disabled:
            listed = ", ".join(f"`{name}`" for name in still_disabled)
            reply += f"\n⚠️ Still disabled server-wide: {listed}. Use `enable` without `in`/`for` to lift it."
        if rejected:
            reply += f"\n⚠️ Ignored: {ignored}"
        await ctx.reply(reply)

    async def enable(ctx: commands.Context, *, text: str):
        await toggle(ctx, text, enable=True)

    async def disable(ctx: commands.Context, *, text: str):
        await toggle(ctx, text, enable=False)

    async def prefix(ctx: commands.Context, new_prefix: Optional[str] = None):
        guild_id = ctx.guild.id

        if new_prefix is None:
            await ctx.reply(f"current prefix is {store.get_prefix(guild_id)}")
            return

        if not ctx.author.guild_permissions.manage_guild:
            raise commands.MissingPermissions(["manage_guild"])

        if not new_prefix.strip():
            raise commands.BadArgument("The prefix cannot be empty.")

        store.set_prefix(guild_id, new_prefix)
        logger.info(f"{ctx.author} changed the prefix of guild {guild_id} to {new_prefix!r}")
        await ctx.reply(f'Prefix changed to "{new_prefix}"')

    return [
        CommandSpec(
            name="ping",
            callback=ping,
            description="Check that the bot is responding.",
        ),
        CommandSpec(
            name="say",
            callback=say,
            description="Repeat a message. Mentions are shown as names and never ping anyone.",
            usage="<text>",
        ),
        CommandSpec(
            name="botinvite",
            callback=botinvite,
            description="Get a link to invite the bot to your server.",
            aliases=("invite",),
        ),
        CommandSpec(
            name="enable",
            callback=enable,
            description="Enable commands for the whole server, or only in some channels or for some roles/users.",
            usage=SCOPE_USAGE,
            guild_only=True,
            permissions={"manage_guild": True},
        ),
        CommandSpec(
            name="disable",
            callback=disable,
            description="Disable commands for the whole server, or only in some channels or for some roles/users.",
            usage=SCOPE_USAGE,
            guild_only=True,
            permissions={"manage_guild": True},
        ),
        CommandSpec(
            name="prefix",
            callback=prefix,
            description="Show the current prefix, or set a new one (wrap it in quotes if it contains spaces).",
            usage='["new prefix"]',
            guild_only=True,
            max_args=1,
        ),
    ]
