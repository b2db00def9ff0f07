"""Embed-based help command

Lists every registered command, shows details for a single command and
suggests close matches for unknown names.
"""
import difflib
from typing import List, Mapping, Optional

import discord
from discord.ext import commands

from utils.discord_formatter import format_help_embed

COMMAND_TIP = "If you want more information about a specific command, just pass the command as argument."
NOT_FOUND_TEXT = "Could not find: `{}`."
MAX_SUGGESTIONS = 3


class EmbedHelpCommand(commands.HelpCommand):
    """Help command that replies with embeds."""

    def __init__(self, **options):
        options.setdefault("command_attrs", {
            "help": "Shows this message",
            "usage": "[command]",
        })
        super().__init__(**options)

    def command_usage(self, command: commands.Command) -> str:
        usage = f"{self.context.clean_prefix}{command.qualified_name}"
        if command.signature:
            usage = f"{usage} {command.signature}"
        return f"`{usage}`"

    async def send_bot_help(self, mapping: Mapping[Optional[commands.Cog], List[commands.Command]]):
        all_commands = [cmd for cmds in mapping.values() for cmd in cmds]
        filtered = await self.filter_commands(all_commands, sort=True)

        # In DMs, server-only commands are struck through instead of hidden
        wrong_place = []
        if self.context.guild is None:
            shown = {cmd.qualified_name for cmd in filtered}
            wrong_place = [
                cmd for cmd in all_commands
                if cmd.extras.get("guild_only") and not cmd.hidden and cmd.qualified_name not in shown
            ]
        listed = sorted(filtered + wrong_place, key=lambda cmd: cmd.name)

        fields = []
        for cmd in listed:
            name = self.command_usage(cmd)
            if cmd in wrong_place:
                name = f"~~{name}~~"
            fields.append((name, cmd.short_doc or "No description"))
        embed = format_help_embed(
            title="Commands",
            description=COMMAND_TIP,
            fields=fields,
        )
        await self.get_destination().send(embed=embed)

    async def send_command_help(self, command: commands.Command):
        fields = [("Usage", self.command_usage(command))]
        if command.aliases:
            fields.append(("Aliases", ", ".join(f"`{alias}`" for alias in command.aliases)))
        if command.extras.get("guild_only"):
            fields.append(("Availability", "Servers only"))

        embed = format_help_embed(
            title=command.qualified_name,
            description=command.help or command.short_doc or "No description",
            fields=fields,
        )
        await self.get_destination().send(embed=embed)

    def command_not_found(self, string: str) -> str:
        text = NOT_FOUND_TEXT.format(string)
        names = list(self.context.bot.all_commands.keys())
        matches = difflib.get_close_matches(string, names, n=MAX_SUGGESTIONS)
        if matches:
            text += " Did you mean " + ", ".join(f"`{name}`" for name in matches) + "?"
        return text

    async def send_error_message(self, error: str):
        await self.get_destination().send(error, allowed_mentions=discord.AllowedMentions.none())
