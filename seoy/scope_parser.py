"""Argument parsing for the enable/disable commands

Splits `<command>[, <command> ...] [in <channel> ...] [for <role-or-user> ...]`
into its three parts. The `in` and `for` clauses may appear in either order.
Keywords are matched literally, so a command or channel called "in" or "for"
cannot be named.
"""
import re
from dataclasses import dataclass
from typing import List, Optional

ALL = "all"
IN_KEYWORD = "in"
FOR_KEYWORD = "for"

_SEPARATORS = re.compile(r"[\s,]+")


class ScopeSyntaxError(ValueError):
    """Raised when an `in` or `for` clause has nothing after it."""


@dataclass
class ScopeArguments:
    commands: List[str]
    channels: Optional[List[str]] = None
    targets: Optional[List[str]] = None


def tokenize(text: str) -> List[str]:
    return [token for token in _SEPARATORS.split(text.strip()) if token]


def _clause(tokens: List[str], keyword: str) -> List[str]:
    if not tokens:
        raise ScopeSyntaxError(f"expected at least one value after `{keyword}`")
    return tokens


def parse_scope_arguments(text: str) -> ScopeArguments:
    """Partition an argument string into commands, channels and targets.

    Args:
        text: Raw argument string, e.g. "ping, say in #general for @Mods"

    Returns:
        ScopeArguments; absent clauses are None and an empty command list
        becomes ["all"]

    Raises:
        ScopeSyntaxError: If `in` or `for` is not followed by anything

    """
    tokens = tokenize(text)
    in_at = tokens.index(IN_KEYWORD) if IN_KEYWORD in tokens else None
    for_at = tokens.index(FOR_KEYWORD) if FOR_KEYWORD in tokens else None

    channels = None
    targets = None

    if in_at is None and for_at is None:
        commands = tokens
    elif for_at is None:
        commands = tokens[:in_at]
        channels = _clause(tokens[in_at + 1:], IN_KEYWORD)
    elif in_at is None:
        commands = tokens[:for_at]
        targets = _clause(tokens[for_at + 1:], FOR_KEYWORD)
    elif in_at < for_at:
        commands = tokens[:in_at]
        channels = _clause(tokens[in_at + 1:for_at], IN_KEYWORD)
        targets = _clause(tokens[for_at + 1:], FOR_KEYWORD)
    else:
        commands = tokens[:for_at]
        targets = _clause(tokens[for_at + 1:in_at], FOR_KEYWORD)
        channels = _clause(tokens[in_at + 1:], IN_KEYWORD)

    return ScopeArguments(
        commands=commands or [ALL],
        channels=channels,
        targets=targets,
    )
