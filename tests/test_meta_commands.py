"""
Tests for seoy/commands/meta.py - ping, say, botinvite, enable, disable, prefix.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from discord.ext import commands

from seoy.commands import build_registry
from seoy.commands.meta import SafeText, build_meta_commands, resolve_command_names
from seoy.guild_settings import SettingsError
from utils.discord_formatter import MAX_MESSAGE_LENGTH


def fake_bot(*names, aliases=None):
    """A bot stub exposing `commands` and `get_command` for the given names."""
    registered = {}
    for name in names:
        command = Mock()
        command.qualified_name = name
        registered[name] = command

    lookup = dict(registered)
    for alias, target in (aliases or {}).items():
        lookup[alias] = registered[target]

    bot = Mock()
    bot.commands = set(registered.values())
    bot.get_command = Mock(side_effect=lookup.get)
    bot.get_user = Mock(return_value=None)
    return bot


ALL_NAMES = ("ping", "say", "botinvite", "enable", "disable", "prefix", "help")


@pytest.fixture
def handlers(app):
    return {spec.name: spec.callback for spec in build_meta_commands(app)}


@pytest.fixture
def toggle_ctx(ctx):
    ctx.bot = fake_bot(*ALL_NAMES, aliases={"invite": "botinvite"})
    return ctx


def channel_converter(channels):
    async def convert(ctx, token):
        if token in channels:
            return channels[token]
        raise commands.ChannelNotFound(token)
    return AsyncMock(side_effect=convert)


def role_converter(roles):
    async def convert(ctx, token):
        if token in roles:
            return roles[token]
        raise commands.RoleNotFound(token)
    return AsyncMock(side_effect=convert)


def member_converter(members):
    async def convert(ctx, token):
        if token in members:
            return members[token]
        raise commands.MemberNotFound(token)
    return AsyncMock(side_effect=convert)


class TestPing:

    @pytest.mark.asyncio
    async def test_replies_pong(self, handlers, ctx):
        await handlers["ping"](ctx)

        ctx.reply.assert_awaited_once_with("Pong!")


class TestSay:
    """`say` text goes through clean_content before the handler sees it."""

    CAROL_ID = 180000000000000801
    HELPERS_ID = 180000000000000700

    @pytest.fixture
    def mentioned(self, ctx):
        # Neither is in the guild cache, only in the message's mention lists
        carol = Mock(id=self.CAROL_ID, display_name="Carol C.")
        helpers = Mock(id=self.HELPERS_ID)
        helpers.name = "Helpers"
        ctx.message.mentions = [carol]
        ctx.message.role_mentions = [helpers]
        return ctx

    async def say(self, handlers, ctx, raw):
        text = await SafeText.convert(ctx, raw)
        await handlers["say"](ctx, text=text)
        return ctx.send.await_args

    def test_command_uses_clean_content(self, app):
        command = build_registry(app)["say"].to_command()

        assert command.clean_params["text"].converter is SafeText

    @pytest.mark.asyncio
    async def test_uncached_member_shown_by_display_name(self, handlers, mentioned):
        args, kwargs = await self.say(
            handlers, mentioned,
            f"hello <@{self.CAROL_ID}> and <@&{self.HELPERS_ID}> in <#180000000000000900>",
        )

        assert args[0] == "hello @Carol C. and @Helpers in <#180000000000000900>"
        assert kwargs["allowed_mentions"].users is False
        assert kwargs["allowed_mentions"].roles is False
        assert kwargs["allowed_mentions"].everyone is False

    @pytest.mark.asyncio
    async def test_mass_mentions_neutralized(self, handlers, mentioned):
        args, _ = await self.say(handlers, mentioned, "@everyone and @here")

        assert "@everyone" not in args[0]
        assert "@here" not in args[0]
        assert args[0].replace("\u200b", "") == "@everyone and @here"

    @pytest.mark.asyncio
    async def test_direct_message_has_no_raw_mentions(self, handlers, dm_ctx):
        dm_ctx.message.mentions = []
        dm_ctx.message.role_mentions = []

        args, _ = await self.say(handlers, dm_ctx, "<@180000000000000801> <@&180000000000000700>")

        assert "<@" not in args[0]
        assert args[0] == "@deleted-user @deleted-role"

    @pytest.mark.asyncio
    async def test_long_text_is_capped(self, handlers, ctx):
        await handlers["say"](ctx, text="a" * (MAX_MESSAGE_LENGTH + 50))

        assert len(ctx.send.await_args.args[0]) == MAX_MESSAGE_LENGTH

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, handlers, ctx):
        with pytest.raises(commands.BadArgument):
            await handlers["say"](ctx, text="   ")
        ctx.send.assert_not_awaited()


class TestBotInvite:

    @pytest.mark.asyncio
    async def test_sends_administrator_invite_embed(self, handlers, ctx):
        ctx.bot.application_id = 4242

        await handlers["botinvite"](ctx)

        embed = ctx.reply.await_args.kwargs["embed"]
        assert embed.title == "Bot Invite Link"
        assert embed.description == "Click the title to invite me to your server"
        assert embed.color.value == 64141
        assert "client_id=4242" in embed.url
        assert "permissions=8" in embed.url
        assert "scope=bot" in embed.url


class TestPrefix:

    @pytest.mark.asyncio
    async def test_show_current_prefix(self, handlers, ctx, guilds):
        await handlers["prefix"](ctx)

        ctx.reply.assert_awaited_once_with("current prefix is ae")
        assert guilds.count_documents({"_id": 555}) == 1

    @pytest.mark.asyncio
    async def test_change_prefix(self, handlers, ctx, app):
        await handlers["prefix"](ctx, "new value")

        ctx.reply.assert_awaited_once_with('Prefix changed to "new value"')
        assert app.settings.get_prefix(555) == "new value"

    @pytest.mark.asyncio
    async def test_show_after_change(self, handlers, ctx):
        await handlers["prefix"](ctx, "!")
        await handlers["prefix"](ctx)

        assert ctx.reply.await_args.args[0] == "current prefix is !"

    @pytest.mark.asyncio
    async def test_change_requires_manage_guild(self, handlers, ctx, app):
        ctx.author.guild_permissions.manage_guild = False

        with pytest.raises(commands.MissingPermissions):
            await handlers["prefix"](ctx, "!")
        assert app.settings.get_prefix(555) == "ae"

    @pytest.mark.asyncio
    async def test_blank_prefix_rejected(self, handlers, ctx):
        with pytest.raises(commands.BadArgument):
            await handlers["prefix"](ctx, "  ")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, app, ctx):
        app.settings = Mock()
        app.settings.set_prefix.side_effect = SettingsError("down")
        handlers = {spec.name: spec.callback for spec in build_meta_commands(app)}

        with pytest.raises(SettingsError):
            await handlers["prefix"](ctx, "!")
        ctx.reply.assert_not_awaited()


class TestResolveCommandNames:

    def test_all_skips_protected_commands(self):
        bot = fake_bot(*ALL_NAMES)

        names, rejected = resolve_command_names(bot, ["all"])

        assert names == ["botinvite", "ping", "prefix", "say"]
        assert rejected == []

    def test_alias_and_unknown(self):
        bot = fake_bot(*ALL_NAMES, aliases={"invite": "botinvite"})

        names, rejected = resolve_command_names(bot, ["invite", "nope", "disable", "botinvite"])

        assert names == ["botinvite"]
        assert rejected == ["nope", "disable"]


class TestEnableDisable:

    @pytest.mark.asyncio
    async def test_disable_server_wide(self, handlers, toggle_ctx, app):
        await handlers["disable"](toggle_ctx, text="ping, say")

        disabled = app.settings.fetch_or_create(555).disabled_commands
        assert disabled["ping"].server is True
        assert disabled["say"].server is True
        toggle_ctx.reply.assert_awaited_once_with("✅ Disabled `ping`, `say`")

    @pytest.mark.asyncio
    async def test_disable_in_channel(self, handlers, toggle_ctx, app, guild):
        general = guild.test_objects["general"]

        with patch.object(commands.TextChannelConverter, "convert", new=channel_converter({"#general": general})):
            await handlers["disable"](toggle_ctx, text="ping in #general")

        scope = app.settings.fetch_or_create(555).disabled_commands["ping"]
        assert scope.server is False
        assert scope.channels == [900]
        toggle_ctx.reply.assert_awaited_once_with("✅ Disabled `ping` in <#900>")

    @pytest.mark.asyncio
    async def test_disable_for_role_and_member(self, handlers, toggle_ctx, app, guild):
        mods = guild.test_objects["mods"]
        bob = guild.test_objects["bob"]

        with patch.object(commands.RoleConverter, "convert", new=role_converter({"@Mods": mods})), \
                patch.object(commands.MemberConverter, "convert", new=member_converter({"bob": bob})):
            await handlers["disable"](toggle_ctx, text="say for @Mods bob ghost")

        scope = app.settings.fetch_or_create(555).disabled_commands["say"]
        assert scope.roles == [700]
        assert scope.users == [802]
        reply = toggle_ctx.reply.await_args.args[0]
        assert reply.startswith("✅ Disabled `say` for <@&700>, <@802>")
        assert "Ignored: `ghost`" in reply

    @pytest.mark.asyncio
    async def test_alias_is_stored_under_command_name(self, handlers, toggle_ctx, app):
        await handlers["disable"](toggle_ctx, text="invite")

        assert "botinvite" in app.settings.fetch_or_create(555).disabled_commands

    @pytest.mark.asyncio
    async def test_unresolvable_channel_does_not_disable_server_wide(self, handlers, toggle_ctx, app):
        with patch.object(commands.TextChannelConverter, "convert", new=channel_converter({})):
            await handlers["disable"](toggle_ctx, text="ping in #nowhere")

        assert app.settings.fetch_or_create(555).disabled_commands == {}
        assert toggle_ctx.reply.await_args.args[0].startswith("❌ Nothing to change")

    @pytest.mark.asyncio
    async def test_protected_command_cannot_be_disabled(self, handlers, toggle_ctx, app):
        await handlers["disable"](toggle_ctx, text="disable")

        assert app.settings.fetch_or_create(555).disabled_commands == {}
        assert "`disable`" in toggle_ctx.reply.await_args.args[0]

    @pytest.mark.asyncio
    async def test_enable_reverts_disable(self, handlers, toggle_ctx, app):
        await handlers["disable"](toggle_ctx, text="all")
        await handlers["enable"](toggle_ctx, text="ping")

        disabled = app.settings.fetch_or_create(555).disabled_commands
        assert "ping" not in disabled
        assert set(disabled) == {"botinvite", "prefix", "say"}
        assert toggle_ctx.reply.await_args.args[0] == "✅ Enabled `ping`"

    @pytest.mark.asyncio
    async def test_enable_first_use_initializes_guild(self, handlers, toggle_ctx, guilds):
        await handlers["enable"](toggle_ctx, text="ping")

        assert guilds.count_documents({"_id": 555}) == 1
        assert guilds.find_one({"_id": 555})["prefix"] == "ae"

    @pytest.mark.asyncio
    async def test_empty_clause_is_a_usage_error(self, handlers, toggle_ctx):
        with pytest.raises(commands.BadArgument):
            await handlers["disable"](toggle_ctx, text="ping in")

    @pytest.mark.asyncio
    async def test_scoped_enable_reports_server_wide_disable(self, handlers, toggle_ctx, app, guild):
        general = guild.test_objects["general"]
        app.settings.disable_command(555, "ping")

        with patch.object(commands.TextChannelConverter, "convert", new=channel_converter({"#general": general})):
            await handlers["enable"](toggle_ctx, text="ping in #general")

        reply = toggle_ctx.reply.await_args.args[0]
        assert reply.startswith("✅ Enabled `ping` in <#900>")
        assert "Still disabled server-wide: `ping`" in reply
        assert app.settings.fetch_or_create(555).disabled_commands["ping"].server is True
