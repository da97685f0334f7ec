"""
Command Parser - Split raw palette input into an alias and a search term.

Two alias styles exist:
  >help        immediate alias, may abut the term (longest prefix wins)
  t github     separator alias, a short token followed by a space

A token that is too long or has unexpected characters is not an alias;
the whole input then becomes the search term.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from omnitab.search.models import Command

ALIAS_MAX_LENGTH = 10

_ALIAS_PATTERN = re.compile(r"""^[A-Za-z0-9_\-!@#$%^&*()+=\[\]{};':"|,.<>?/\\~`]+$""")


@dataclass(frozen=True)
class ParsedQuery:
    search_term: str
    alias: Optional[str] = None


def parse_command(raw: str, commands: Iterable[Command]) -> ParsedQuery:
    """
    Parse palette input against the known commands.

    Args:
        raw: Text exactly as typed
        commands: Registered commands, in registration order

    Returns:
        ParsedQuery with the alias in its canonical casing when it is known.
    """
    query = raw.strip()
    if not query:
        return ParsedQuery("")

    commands = list(commands)

    immediate = _match_immediate_alias(query, commands)
    if immediate is not None:
        return ParsedQuery(query[len(immediate):].strip(), immediate)

    space_index = query.find(" ")
    if space_index == -1:
        return ParsedQuery(query)

    token = query[:space_index]
    rest = query[space_index + 1:]

    if len(token) <= ALIAS_MAX_LENGTH and _ALIAS_PATTERN.match(token):
        return ParsedQuery(rest.strip(), _canonical_alias(token, commands))

    return ParsedQuery(query)


def find_command(alias: str, commands: Iterable[Command]) -> Optional[Command]:
    """Case-insensitive alias lookup. The last registered owner of an alias wins."""
    found = None
    for command in commands:
        if command.has_alias(alias):
            found = command
    return found


def _match_immediate_alias(query: str, commands: list[Command]) -> Optional[str]:
    lowered = query.lower()
    best = None
    for command in commands:
        if not command.is_immediate:
            continue
        for alias in command.aliases:
            if not alias or not lowered.startswith(alias.lower()):
                continue
            # >= so that an equal-length alias from a later command takes over
            if best is None or len(alias) >= len(best):
                best = alias
    return best


def _canonical_alias(token: str, commands: list[Command]) -> str:
    command = find_command(token, commands)
    if command is None:
        return token
    lowered = token.lower()
    for alias in command.aliases:
        if alias.lower() == lowered:
            return alias
    return token
