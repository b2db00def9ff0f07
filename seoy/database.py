"""MongoDB connection for Seoy"""
from pymongo import MongoClient
from pymongo.database import Database

from .config import DatabaseConfig, logger

GUILDS_COLLECTION = "guilds"


def connect_to_database(config: DatabaseConfig) -> Database:
    """Open a client, ping the named database and return a handle to it.

    Args:
        config: Database section of the bot configuration

    Returns:
        pymongo Database handle

    Raises:
        pymongo.errors.PyMongoError: If the server cannot be reached

    """
    client = MongoClient(
        config.uri,
        appname=config.app_name,
        serverSelectionTimeoutMS=config.timeout_ms,
    )
    database = client[config.name]

    # Ping the server to see if you can connect to the cluster
    database.command("ping")
    logger.info(f"Connected to database {config.name!r} successfully.")

    return database
