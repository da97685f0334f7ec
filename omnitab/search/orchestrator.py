"""
Search Orchestrator - Turn one palette query into ranked results.

  - an alias that names a search command targets that provider only
  - an alias that names an action command yields a single "command" result
    to confirm, nothing is executed while the user is still typing
  - anything else fans out to every search command concurrently; providers
    that fail are logged and left out

Final ordering is always delegated to the ranking engine.
"""

import asyncio
import dataclasses
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from loguru import logger

from omnitab.search.models import Command, CommandKind, Outcome, Result, ScoredResult
from omnitab.search.parser import find_command, parse_command
from omnitab.search.ranking import RankOptions, rank


class SearchBroker(Protocol):
    """The part of the UI broker a search needs."""

    async def send_search(self, provider_id: str, command_id: str, query: str) -> Outcome:
        ...


@dataclass
class SearchResponse:
    results: list[ScoredResult] = field(default_factory=list)
    active_provider: Optional[str] = None
    active_command: Optional[str] = None
    error: Optional[str] = None


class SearchFailed(Exception):
    """A single-target search failed; the message is shown to the user."""


async def perform_search(
    raw_query: str,
    commands: Iterable[Command],
    broker: SearchBroker,
    *,
    options: Optional[RankOptions] = None,
    scope: Optional[Command] = None,
) -> SearchResponse:
    """
    Run one search turn.

    Args:
        raw_query: Palette input as typed
        commands: Enabled commands, in registration order
        broker: Sends search requests to providers
        options: Ranking constants
        scope: Search command pinned by the UI, used when no alias is typed

    Returns:
        SearchResponse; errors are reported in .error, never raised.
    """
    if not raw_query or not raw_query.strip():
        return SearchResponse()

    commands = list(commands)
    query = raw_query.strip()

    try:
        parsed = parse_command(raw_query, commands)
        command = find_command(parsed.alias, commands) if parsed.alias else None

        if command is not None and command.kind == CommandKind.ACTION:
            return SearchResponse(results=rank([command.to_result()], "", options))

        if command is not None:
            return await _search_single(command, parsed.search_term, broker, options)

        if scope is not None:
            return await _search_single(scope, query, broker, options)

        results = await search_all(query, commands, broker)
        return SearchResponse(results=rank(results, query, options))
    except SearchFailed as e:
        return SearchResponse(error=str(e))
    except Exception as e:
        logger.exception(f"Search failed for query {query!r}")
        return SearchResponse(error=str(e) or "Search failed")


async def search_all(term: str, commands: Iterable[Command], broker: SearchBroker) -> list[Result]:
    """Query every search command concurrently; failed providers contribute nothing."""
    targets = [c for c in commands if c.kind == CommandKind.SEARCH]
    batches = await asyncio.gather(
        *(_safe_search(command, term, broker) for command in targets),
        return_exceptions=True,
    )

    merged = []
    for command, batch in zip(targets, batches):
        if isinstance(batch, BaseException):
            logger.warning(f"Search {command.full_id} failed: {batch!r}")
            continue
        merged.extend(batch)
    return merged


async def search_command(command: Command, term: str, broker: SearchBroker) -> list[Result]:
    """
    Query a single search command.

    Raises:
        SearchFailed: the provider answered with a failure
    """
    outcome = await broker.send_search(command.provider_id, command.id, term)
    if not outcome.success:
        raise SearchFailed(outcome.error or "Search failed")
    return _stamp(outcome.data or [], command)


async def _search_single(command: Command, term: str, broker: SearchBroker, options: Optional[RankOptions]) -> SearchResponse:
    results = await search_command(command, term, broker)
    return SearchResponse(
        results=rank(results, term, options),
        active_provider=command.provider_id,
        active_command=command.id,
    )


async def _safe_search(command: Command, term: str, broker: SearchBroker) -> list[Result]:
    try:
        return await search_command(command, term, broker)
    except SearchFailed as e:
        logger.warning(f"Search {command.full_id} failed: {e}")
        return []


def _stamp(results: list[Result], command: Command) -> list[Result]:
    """Record which provider/command produced each result."""
    return [
        result if result.provider_id else dataclasses.replace(
            result,
            provider_id=command.provider_id,
            command_id=command.id,
        )
        for result in results
    ]
