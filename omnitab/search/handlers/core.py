"""
Core Provider - Palette commands about the palette itself.

Commands:
  ?        help, lists the search commands and their aliases
  >        search commands by name, description or alias
  reload   reload every other provider
  get-commands (unlisted action) returns the enabled command list to the UI
"""

from loguru import logger

from omnitab.search.models import (
    Action,
    ActionPayload,
    ActivationMode,
    Command,
    CommandKind,
    COMMAND_CATEGORY,
    Outcome,
    Result,
    SearchPayload,
    SELECT_ACTION_ID,
)
from omnitab.services.registry import ProviderRegistry

CORE_PROVIDER_ID = "core"

HELP = "help"
SEARCH_COMMANDS = "search-commands"
RELOAD = "reload"
GET_COMMANDS = "get-commands"


class CoreProvider:
    """Command discovery and provider reload."""

    id = CORE_PROVIDER_ID
    display_name = "Core System"
    icon = None

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry
        self.commands = [
            Command(
                id=HELP,
                name="Help",
                description="Show available search commands",
                aliases=("?",),
                kind=CommandKind.SEARCH,
                activation=ActivationMode.IMMEDIATE,
            ),
            Command(
                id=RELOAD,
                name="Reload Extensions",
                description="Reload all extensions",
                aliases=("reload",),
                kind=CommandKind.ACTION,
            ),
            Command(
                id=SEARCH_COMMANDS,
                name="Search Commands",
                description="Search for available commands",
                aliases=(">",),
                kind=CommandKind.SEARCH,
                activation=ActivationMode.IMMEDIATE,
            ),
        ]

    async def handle_search(self, command_id: str, payload: SearchPayload) -> Outcome:
        commands = self.registry.all_commands()
        if command_id == SEARCH_COMMANDS:
            return Outcome.ok(search_commands(payload.query, commands))
        if command_id == HELP:
            return Outcome.ok(help_results(payload.query, commands))
        return Outcome.failure(f"Unknown command: {command_id}")

    async def handle_action(self, command_id: str, payload: ActionPayload) -> Outcome:
        if command_id == GET_COMMANDS:
            return Outcome.ok({"commands": self.registry.all_commands()})
        if command_id == RELOAD:
            return await self._reload()
        if command_id == SEARCH_COMMANDS:
            return Outcome.ok({"message": "Use > prefix to search commands"})
        return Outcome.failure(f"Unknown command: {command_id}")

    async def _reload(self) -> Outcome:
        reloaded = 0
        for provider in self.registry.providers():
            if provider.id == self.id:
                continue
            await self.registry.reload(provider.id)
            reloaded += 1
        logger.debug(f"Reloaded {reloaded} providers")
        return Outcome.ok({"message": "Extensions reloaded", "count": reloaded})


def search_commands(query: str, commands: list[Command]) -> list[Result]:
    """Commands whose name, description or an alias contains the query."""
    q = query.strip().lower()
    return [
        command.to_result()
        for command in commands
        if q in command.name.lower()
        or q in (command.description or "").lower()
        or any(q in alias.lower() for alias in command.aliases)
    ]


def help_results(query: str, commands: list[Command]) -> list[Result]:
    """
    One entry per search command, titled by its primary alias.

    Only shown for an empty query: once the user types, help gets out of
    the way.
    """
    if query.strip():
        return []

    results = []
    for command in commands:
        if command.kind != CommandKind.SEARCH or command.full_id == f"{CORE_PROVIDER_ID}.{HELP}":
            continue
        results.append(Result(
            id=command.full_id,
            title=command.aliases[0] if command.aliases else command.name,
            category=COMMAND_CATEGORY,
            secondary_text=command.description or "",
            icon=command.icon,
            actions=(Action(SELECT_ACTION_ID, "Select", "Enter", is_primary=True),),
            metadata={"command": command.to_dict()},
        ))
    return results
