"""Guild Settings System - Per-Server Configuration

Manages server-specific settings stored in the `guilds` MongoDB collection:
one document per guild holding its command prefix and the disabled-command
matrix.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .config import logger

# ============================================================================
# MODELS
# ============================================================================

SCOPE_LISTS = ("channels", "roles", "users")
DISABLED_COMMANDS_KEY = "disabled_commands"
LEGACY_COMMANDS_KEY = "commands"


class SettingsError(Exception):
    """Raised when the settings database cannot be read or written."""


class GuildNotFoundError(SettingsError):
    """Raised when a guild has no settings document and no fallback was given."""


@dataclass
class CommandScope:
    """Where a single command is disabled inside a guild."""

    server: bool = False
    channels: List[int] = field(default_factory=list)
    roles: List[int] = field(default_factory=list)
    users: List[int] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CommandScope":
        return cls(
            server=bool(doc.get("server", False)),
            channels=[int(x) for x in doc.get("channels", [])],
            roles=[int(x) for x in doc.get("roles", [])],
            users=[int(x) for x in doc.get("users", [])],
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "server": self.server,
            "channels": list(self.channels),
            "roles": list(self.roles),
            "users": list(self.users),
        }

    def is_empty(self) -> bool:
        return not (self.server or self.channels or self.roles or self.users)


@dataclass
class GuildSettings:
    """Configuration for a Discord guild."""

    guild_id: int
    prefix: str
    disabled_commands: Dict[str, CommandScope] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc: Dict[str, Any], default_prefix: str) -> "GuildSettings":
        """Build settings from a stored document.

        Older documents may lack the disabled-command map or carry entries
        under the legacy `commands` key. Both maps are merged, and an entry
        under `disabled_commands` wins over a legacy one for the same command.
        """
        raw = dict(doc.get(LEGACY_COMMANDS_KEY) or {})
        raw.update(doc.get(DISABLED_COMMANDS_KEY) or {})
        return cls(
            guild_id=int(doc["_id"]),
            prefix=doc.get("prefix") or default_prefix,
            disabled_commands={
                name: CommandScope.from_document(scope or {})
                for name, scope in raw.items()
            },
        )


def is_command_disabled(
    settings: GuildSettings,
    command: str,
    channel_id: Optional[int],
    role_ids: Iterable[int],
    user_id: Optional[int],
) -> bool:
    """Check whether a command is disabled for this invocation.

    A command is disabled if it is turned off server-wide, in the invoking
    channel, for the invoking user, or for any role the user holds.
    """
    scope = settings.disabled_commands.get(command)
    if scope is None:
        return False
    if scope.server:
        return True
    if channel_id is not None and channel_id in scope.channels:
        return True
    if user_id is not None and user_id in scope.users:
        return True
    return any(role_id in scope.roles for role_id in role_ids)

# ============================================================================
# STORE
# ============================================================================

class GuildSettingsStore:
    """Reads and writes guild settings documents.

    All driver errors are re-raised as SettingsError so command handlers can
    report them to the user.
    """

    def __init__(self, collection: Collection, default_prefix: str):
        self.collection = collection
        self.default_prefix = default_prefix

    def _defaults(self) -> Dict[str, Any]:
        return {"prefix": self.default_prefix, DISABLED_COMMANDS_KEY: {}}

    def _fetch_document(self, guild_id: int) -> Dict[str, Any]:
        # A single upsert, so concurrent first lookups cannot insert two documents
        try:
            return self.collection.find_one_and_update(
                {"_id": int(guild_id)},
                {"$setOnInsert": self._defaults()},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Error loading settings for guild {guild_id}: {e}")
            raise SettingsError(f"could not load settings for guild {guild_id}") from e

    def fetch_or_create(self, guild_id: int) -> GuildSettings:
        """Return a guild's settings, creating the document if it is missing."""
        return GuildSettings.from_document(self._fetch_document(guild_id), self.default_prefix)

    def update_field(self, guild_id: int, update: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update to a guild's document.

        Args:
            guild_id: Discord guild ID
            update: MongoDB update expression, e.g. {"$set": {"prefix": "!"}}

        Returns:
            The document as it was before the update, or None

        """
        self._fetch_document(guild_id)
        try:
            return self.collection.find_one_and_update(
                {"_id": int(guild_id)},
                update,
                return_document=ReturnDocument.BEFORE,
            )
        except PyMongoError as e:
            logger.error(f"Error updating settings for guild {guild_id}: {e}")
            raise SettingsError(f"could not update settings for guild {guild_id}") from e

    _MISSING = object()

    def read_field(self, guild_id: int, field_name: str, default: Any = _MISSING) -> Any:
        """Get a single field of a guild's document.

        Raises:
            GuildNotFoundError: If the guild has no document and no default is given

        """
        try:
            doc = self.collection.find_one({"_id": int(guild_id)}, {field_name: 1})
        except PyMongoError as e:
            logger.error(f"Error reading {field_name} for guild {guild_id}: {e}")
            raise SettingsError(f"could not read settings for guild {guild_id}") from e

        if doc is None:
            if default is self._MISSING:
                raise GuildNotFoundError(f"no settings stored for guild {guild_id}")
            return default
        if field_name not in doc and default is not self._MISSING:
            return default
        return doc.get(field_name)

    # ------------------------------------------------------------------------
    # Prefix
    # ------------------------------------------------------------------------

    def get_prefix(self, guild_id: int) -> str:
        return self.fetch_or_create(guild_id).prefix

    def set_prefix(self, guild_id: int, prefix: str) -> Optional[str]:
        """Store a new prefix and return the previous one."""
        previous = self.update_field(guild_id, {"$set": {"prefix": prefix}})
        logger.info(f"Guild {guild_id}: prefix set to {prefix!r}")
        return previous.get("prefix") if previous else None

    # ------------------------------------------------------------------------
    # Disabled commands
    #
    # Changes are atomic updates on field paths, never a read-modify-write of
    # the record, so concurrent handlers never overwrite each other's ids.
    # ------------------------------------------------------------------------

    def disable_command(
        self,
        guild_id: int,
        command: str,
        channels: Optional[Iterable[int]] = None,
        roles: Optional[Iterable[int]] = None,
        users: Optional[Iterable[int]] = None,
    ) -> CommandScope:
        """Disable a command server-wide, or only for the given scopes.

        Returns:
            The command's scope after the change
        """
        scopes = _scope_lists(channels, roles, users)
        path = _command_path(command)
        self._ensure_scope(guild_id, command)

        if scopes:
            update = {"$addToSet": {
                f"{path}.{name}": {"$each": ids} for name, ids in scopes.items()
            }}
        else:
            update = {"$set": {f"{path}.server": True}}

        doc = self._modify(guild_id, update)
        logger.info(f"Guild {guild_id}: disabled {command} ({_describe_scopes(scopes)})")
        return _scope_in(doc, command)

    def enable_command(
        self,
        guild_id: int,
        command: str,
        channels: Optional[Iterable[int]] = None,
        roles: Optional[Iterable[int]] = None,
        users: Optional[Iterable[int]] = None,
    ) -> CommandScope:
        """Re-enable a command everywhere, or lift the given scopes only.

        Lifting a channel, role or user scope leaves a server-wide disable in
        place. The record is removed once nothing in it is disabled anymore.

        Returns:
            The command's scope after the change
        """
        scopes = _scope_lists(channels, roles, users)
        path = _command_path(command)
        doc = self._fetch_document(guild_id)
        stored = command in (doc.get(DISABLED_COMMANDS_KEY) or {})
        legacy = (doc.get(LEGACY_COMMANDS_KEY) or {}).get(command)

        if not stored and legacy is None:
            return CommandScope()

        if not scopes:
            unset = {}
            if stored:
                unset[path] = ""
            if legacy is not None:
                unset[f"{LEGACY_COMMANDS_KEY}.{command}"] = ""
            self._modify(guild_id, {"$unset": unset})
            logger.info(f"Guild {guild_id}: enabled {command} (server-wide)")
            return CommandScope()

        self._ensure_scope(guild_id, command)
        doc = self._modify(guild_id, {"$pullAll": {
            f"{path}.{name}": ids for name, ids in scopes.items()
        }})

        # Only matches while the record is still empty, so an id added
        # concurrently keeps the record alive
        empty = {f"{path}.server": {"$ne": True}}
        empty.update({f"{path}.{name}": {"$size": 0} for name in SCOPE_LISTS})
        cleared = self._modify(guild_id, {"$unset": {path: ""}}, empty)

        logger.info(f"Guild {guild_id}: enabled {command} ({_describe_scopes(scopes)})")
        if cleared is not None:
            return CommandScope()
        return _scope_in(doc, command)

    def _ensure_scope(self, guild_id: int, command: str):
        """Create the command's record if missing, moving a legacy entry into place."""
        doc = self._fetch_document(guild_id)
        legacy = (doc.get(LEGACY_COMMANDS_KEY) or {}).get(command)

        update = {"$set": {
            _command_path(command): CommandScope.from_document(legacy or {}).to_document(),
        }}
        if legacy is not None:
            update["$unset"] = {f"{LEGACY_COMMANDS_KEY}.{command}": ""}

        self._modify(guild_id, update, {_command_path(command): {"$exists": False}})

    def _modify(
        self,
        guild_id: int,
        update: Dict[str, Any],
        condition: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Apply an update and return the document after it.

        Returns None when `condition` does not match the guild's document.
        """
        query = {"_id": int(guild_id)}
        query.update(condition or {})
        try:
            return self.collection.find_one_and_update(
                query,
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Error updating commands for guild {guild_id}: {e}")
            raise SettingsError(f"could not update settings for guild {guild_id}") from e


def _command_path(command: str) -> str:
    return f"{DISABLED_COMMANDS_KEY}.{command}"


def _scope_in(doc: Optional[Dict[str, Any]], command: str) -> CommandScope:
    if doc is None:
        return CommandScope()
    return CommandScope.from_document((doc.get(DISABLED_COMMANDS_KEY) or {}).get(command) or {})


def _scope_lists(channels, roles, users) -> Dict[str, List[int]]:
    """Drop empty scope lists and normalize IDs to ints."""
    scopes = {}
    for name, ids in zip(SCOPE_LISTS, (channels, roles, users)):
        if ids:
            scopes[name] = [int(x) for x in ids]
    return scopes


def _describe_scopes(scopes: Dict[str, List[int]]) -> str:
    if not scopes:
        return "server-wide"
    return ", ".join(f"{name}={ids}" for name, ids in scopes.items())
