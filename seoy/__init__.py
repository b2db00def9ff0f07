"""Seoy - Small Discord Bot with Per-Server Settings

This package contains the core bot functionality split into logical modules.

Structure:
- config.py: Configuration loading and logging setup
- database.py: MongoDB connection
- guild_settings.py: Per-server settings (prefix, disabled commands)
- scope_parser.py: Argument parsing for enable/disable
- context.py: Application context shared by all handlers
- prefix.py: Dynamic per-guild command prefix
- help_command.py: Embed-based help command
- event_handlers.py: Discord event handlers and global checks
- commands/: Command registry and implementations

Usage:
    from seoy.config import load_config
    from seoy.database import connect_to_database
    from seoy.context import AppContext
    from seoy.event_handlers import register_events
    from seoy.commands import build_registry, register_commands

    app = AppContext.create(config, database)
    bot = commands.Bot(command_prefix=make_prefix_resolver(app), intents=intents)
    register_events(bot, app)
    register_commands(bot, build_registry(app))
    bot.run(config.token)
"""

__version__ = "1.0.0"
