#!/usr/bin/env python3
"""Seoy - Main Entry Point

A small Discord bot with per-server prefixes and command toggles,
backed by MongoDB.
"""
import sys
from typing import Optional

import discord
from discord.ext import commands
from pymongo.errors import PyMongoError

from seoy.commands import build_registry, register_commands
from seoy.config import ConfigError, build_intents, load_config, logger, set_log_level
from seoy.context import AppContext
from seoy.database import connect_to_database
from seoy.event_handlers import register_events
from seoy.help_command import EmbedHelpCommand
from seoy.prefix import make_prefix_resolver


def create_bot(app: AppContext) -> commands.Bot:
    """Build the bot with its prefix resolver, help command, events and commands."""
    bot = commands.Bot(
        command_prefix=make_prefix_resolver(app),
        intents=build_intents(),
        help_command=EmbedHelpCommand(),
        allowed_mentions=discord.AllowedMentions.none(),
        strip_after_prefix=True,
    )

    register_events(bot, app)
    register_commands(bot, build_registry(app))

    return bot


def main(config_path: Optional[str] = None):
    """Main entry point for the bot."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    set_log_level(config.log_level)

    try:
        database = connect_to_database(config.database)
    except PyMongoError as e:
        logger.error(f"❌ Cannot connect to the database: {e}")
        sys.exit(1)

    logger.info("🚀 Starting Seoy...")

    app = AppContext.create(config, database)
    bot = create_bot(app)

    try:
        # Logging is already configured, don't let discord.py add a second handler
        bot.run(config.token, log_handler=None)
    except discord.LoginFailure:
        logger.error("❌ INVALID TOKEN - Bot token may be revoked!")
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Client error: {e}")
        sys.exit(1)
    finally:
        database.client.close()

    logger.info("Gateway connection closed, exiting")


if __name__ == "__main__":
    main()
