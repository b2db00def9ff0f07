"""
Shared pytest fixtures for Seoy tests.
"""

import os
import sys
from unittest.mock import AsyncMock, Mock

import mongomock
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def database():
    """An in-memory MongoDB database."""
    client = mongomock.MongoClient()
    yield client["aezakmi"]
    client.close()


@pytest.fixture
def guilds(database):
    return database["guilds"]


@pytest.fixture
def settings_store(guilds):
    """Create a GuildSettingsStore on the in-memory collection."""
    from seoy.guild_settings import GuildSettingsStore

    return GuildSettingsStore(guilds, default_prefix="ae")


@pytest.fixture
def bot_config():
    from seoy.config import BotConfig

    return BotConfig(token="test-token", prefix="ae", user_id=1234)


@pytest.fixture
def app(bot_config, database):
    """Application context wired to the in-memory database."""
    from seoy.context import AppContext

    return AppContext.create(bot_config, database)


# ============================================================================
# Discord Object Fixtures
# ============================================================================

def make_role(role_id, name):
    role = Mock()
    role.id = role_id
    role.name = name
    role.mention = f"<@&{role_id}>"
    return role


def make_member(user_id, name, display_name=None, roles=(), manage_guild=True):
    member = Mock()
    member.id = user_id
    member.name = name
    member.display_name = display_name or name
    member.mention = f"<@{user_id}>"
    member.roles = list(roles)
    member.guild_permissions.manage_guild = manage_guild
    return member


def make_channel(channel_id, name):
    channel = Mock()
    channel.id = channel_id
    channel.name = name
    channel.mention = f"<#{channel_id}>"
    return channel


@pytest.fixture
def guild():
    """A guild with one role, two members and one text channel."""
    guild = Mock()
    guild.id = 555
    guild.name = "Test Server"

    mods = make_role(700, "Mods")
    alice = make_member(801, "alice", display_name="Alice A.", roles=[mods])
    bob = make_member(802, "bob")
    general = make_channel(900, "general")

    guild.get_role = Mock(side_effect=lambda rid: {700: mods}.get(rid))
    guild.get_member = Mock(side_effect=lambda uid: {801: alice, 802: bob}.get(uid))
    guild.get_channel = Mock(side_effect=lambda cid: {900: general}.get(cid))
    guild.test_objects = {"mods": mods, "alice": alice, "bob": bob, "general": general}
    return guild


@pytest.fixture
def ctx(guild):
    """A command context invoked by alice in #general."""
    ctx = Mock()
    ctx.guild = guild
    ctx.author = guild.test_objects["alice"]
    ctx.channel = guild.test_objects["general"]
    ctx.clean_prefix = "ae"
    ctx.reply = AsyncMock()
    ctx.send = AsyncMock()
    ctx.bot = Mock()
    ctx.bot.get_user = Mock(return_value=None)
    return ctx


@pytest.fixture
def dm_ctx(ctx):
    """The same context, but in a direct message."""
    ctx.guild = None
    return ctx
