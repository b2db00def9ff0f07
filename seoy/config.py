"""Configuration and initialization for Seoy

Loads settings from:
1. Environment variables (.env)
2. config.toml file
3. Default values

This module should be imported first by all other modules.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import discord
import toml
from dotenv import load_dotenv

# ============================================================================
# LOGGING SETUP
# ============================================================================

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
)
logger = logging.getLogger("Seoy")


def set_log_level(level: str):
    """Apply the configured log level to the root and application loggers."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        logger.warning(f"Unknown log level {level!r}, keeping INFO")
        return
    logging.getLogger().setLevel(numeric)
    logger.setLevel(numeric)

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_CONFIG_PATH = "config.toml"
DEFAULT_PREFIX = "ae"
DEFAULT_DM_PREFIX = "ae"
DEFAULT_DATABASE_URI = "mongodb://localhost:27017"
DEFAULT_DATABASE_NAME = "aezakmi"
DEFAULT_APP_NAME = "seoy"
DEFAULT_DATABASE_TIMEOUT_MS = 5000


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


@dataclass(frozen=True)
class DatabaseConfig:
    uri: str = DEFAULT_DATABASE_URI
    name: str = DEFAULT_DATABASE_NAME
    app_name: str = DEFAULT_APP_NAME
    timeout_ms: int = DEFAULT_DATABASE_TIMEOUT_MS


@dataclass(frozen=True)
class BotConfig:
    """Typed view of config.toml.

    Attributes:
        token: Discord bot token
        prefix: Default command prefix for guilds without a stored one
        user_id: Bot user ID used for the mention trigger (optional)
        dm_prefix: Prefix accepted in direct messages
        no_dm_prefix: Also accept commands without any prefix in DMs
        log_level: Logging level name
        database: MongoDB connection settings
    """

    token: str
    prefix: str = DEFAULT_PREFIX
    user_id: Optional[int] = None
    dm_prefix: str = DEFAULT_DM_PREFIX
    no_dm_prefix: bool = True
    log_level: str = "INFO"
    database: DatabaseConfig = DatabaseConfig()

# ============================================================================
# CONFIGURATION PARSING HELPERS
# ============================================================================

def _require_type(data: dict, key: str, expected, default=None, section: str = ""):
    """Fetch a key from the parsed TOML and check its type."""
    if key not in data:
        return default
    value = data[key]
    # bool is a subclass of int, don't let `user_id = true` through
    if isinstance(value, bool) and expected is not bool:
        value_ok = False
    else:
        value_ok = isinstance(value, expected)
    if not value_ok:
        name = f"{section}.{key}" if section else key
        raise ConfigError(f"'{name}' must be of type {expected.__name__}, got {type(value).__name__}")
    return value


def _parse_database(data: dict) -> DatabaseConfig:
    section = data.get("database", {})
    if not isinstance(section, dict):
        raise ConfigError("'database' must be a table")

    uri = os.getenv("MONGO_URI") or _require_type(section, "uri", str, DEFAULT_DATABASE_URI, "database")
    return DatabaseConfig(
        uri=uri,
        name=_require_type(section, "name", str, DEFAULT_DATABASE_NAME, "database"),
        app_name=_require_type(section, "app_name", str, DEFAULT_APP_NAME, "database"),
        timeout_ms=_require_type(section, "timeout_ms", int, DEFAULT_DATABASE_TIMEOUT_MS, "database"),
    )


def load_config(path: Optional[str] = None) -> BotConfig:
    """Load and validate the bot configuration.

    Args:
        path: Path to the TOML file. Defaults to $SEOY_CONFIG or ./config.toml

    Returns:
        BotConfig instance

    Raises:
        ConfigError: If the file is missing, is not valid TOML or fails validation

    """
    load_dotenv()
    config_path = Path(path or os.getenv("SEOY_CONFIG") or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        raise ConfigError(f"Cannot find {config_path}")

    try:
        data = toml.load(str(config_path))
    except toml.TomlDecodeError as e:
        raise ConfigError(f"Cannot parse {config_path}: {e}") from e

    token = os.getenv("BOT_TOKEN") or _require_type(data, "token", str)
    if not token:
        raise ConfigError(f"'token' is missing from {config_path}")

    prefix = _require_type(data, "prefix", str, DEFAULT_PREFIX)
    if not prefix.strip():
        raise ConfigError("'prefix' must not be empty")

    config = BotConfig(
        token=token,
        prefix=prefix,
        user_id=_require_type(data, "user_id", int),
        dm_prefix=_require_type(data, "dm_prefix", str, DEFAULT_DM_PREFIX),
        no_dm_prefix=_require_type(data, "no_dm_prefix", bool, True),
        log_level=_require_type(data, "log_level", str, "INFO"),
        database=_parse_database(data),
    )
    logger.info(f"Loaded configuration from {config_path} (default prefix {config.prefix!r})")
    return config

# ============================================================================
# DISCORD BOT INTENTS
# ============================================================================

def build_intents() -> discord.Intents:
    """Intents needed for prefix commands and member display names."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True
    intents.guilds = True
    return intents
