"""Application context shared by every handler"""
from dataclasses import dataclass

from pymongo.database import Database

from .config import BotConfig
from .database import GUILDS_COLLECTION
from .guild_settings import GuildSettingsStore


@dataclass
class AppContext:
    """Built once at startup and handed to the prefix resolver, events and commands."""

    config: BotConfig
    database: Database
    settings: GuildSettingsStore

    @classmethod
    def create(cls, config: BotConfig, database: Database) -> "AppContext":
        store = GuildSettingsStore(database[GUILDS_COLLECTION], config.prefix)
        return cls(config=config, database=database, settings=store)
