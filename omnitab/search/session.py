"""
Search Session - UI-side state for one palette.

Features:
- Debounced search: a burst of keystrokes starts a single search turn
- Last-request-wins: a turn that finishes after a newer one started is discarded
- Command list refetched from the backend after the registry changes
- Pinned scope after choosing a search command ("Search Tabs" → tab search)
- Action execution routed back to the provider that produced the result
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from loguru import logger

from omnitab.search.models import COMMAND_CATEGORY, Command, CommandKind, Outcome, ScoredResult
from omnitab.search.orchestrator import SearchFailed, perform_search, search_command
from omnitab.search.ranking import RankOptions, rank
from omnitab.services.broker import UIBroker

DEFAULT_DEBOUNCE_MS = 150
DEFAULT_INITIAL_COMMAND = "tab.search-tab"
EXECUTE_ACTION_ID = "execute"


@dataclass
class SearchState:
    query: str = ""
    results: list[ScoredResult] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    active_provider: Optional[str] = None
    active_command: Optional[str] = None


class SearchSession:
    """
    Palette state machine between the UI and the broker.

    Args:
        broker: UI-side broker
        commands: Enabled commands (see load_commands())
        debounce_ms: Quiet period before a typed query is searched
        options: Ranking constants
        initial_command: Full id of the search run with an empty query on open()
        on_change: Called with the state after every applied update
    """

    def __init__(
        self,
        broker: UIBroker,
        commands: Iterable[Command] = (),
        *,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        options: Optional[RankOptions] = None,
        initial_command: Optional[str] = DEFAULT_INITIAL_COMMAND,
        on_change: Optional[Callable[[SearchState], None]] = None,
    ):
        self.broker = broker
        self.commands = list(commands)
        self.debounce_ms = debounce_ms
        self.options = options
        self.initial_command = initial_command
        self.on_change = on_change

        self.state = SearchState()
        self._scope: Optional[Command] = None
        self._turns = itertools.count(1)
        self._latest_turn = 0
        self._debounce: Optional[asyncio.Task] = None
        self._searches: set[asyncio.Task] = set()
        self._commands_stale = not self.commands

    async def load_commands(self) -> list[Command]:
        """Fetch the enabled command list from the core provider."""
        outcome = await self.broker.send_action("core", "get-commands", "list")
        if not outcome.success:
            logger.warning(f"Could not load commands: {outcome.error}")
            return self.commands
        try:
            self.commands = [Command.from_dict(c) for c in (outcome.data or {}).get("commands", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed command list: {e}")
            return self.commands
        self._commands_stale = False
        return self.commands

    def invalidate_commands(self) -> None:
        """Mark the command list out of date; the next turn fetches it again."""
        self._commands_stale = True

    def update_query(self, query: str) -> None:
        """Record typed input and (re)start the debounce timer."""
        self.state.query = query
        if self._debounce is not None and not self._debounce.done():
            self._debounce.cancel()
        self._debounce = asyncio.get_running_loop().create_task(self._debounced(query))

    async def search(self, query: str) -> SearchState:
        """Run one search turn now; stale turns are not applied."""
        turn = next(self._turns)
        self._latest_turn = turn
        self.state.loading = True
        if self._commands_stale:
            await self.load_commands()

        response = await perform_search(
            query,
            self.commands,
            self.broker,
            options=self.options,
            scope=self._scope,
        )

        if turn != self._latest_turn:
            logger.debug(f"Discarding stale search turn {turn} for {query!r}")
            return self.state

        self.state.query = query
        self.state.results = response.results
        self.state.error = response.error
        self.state.loading = False
        if response.active_provider:
            self.state.active_provider = response.active_provider
            self.state.active_command = response.active_command
        elif self._scope is None:
            self.state.active_provider = None
            self.state.active_command = None
        self._notify()
        return self.state

    async def open(self) -> SearchState:
        """Reset and show the initial results (open tabs by default)."""
        self.close()
        if self._commands_stale:
            await self.load_commands()
        command = self._find_command(self.initial_command) if self.initial_command else None
        if command is None:
            return self.state

        turn = next(self._turns)
        self._latest_turn = turn
        self.state.loading = True
        try:
            results = await search_command(command, "", self.broker)
        except SearchFailed as e:
            logger.warning(f"Initial results unavailable: {e}")
            results = []
        if turn == self._latest_turn:
            self.state.results = rank(results, "", self.options)
            self.state.loading = False
            self._notify()
        return self.state

    async def execute_action(self, result_id: str, action_id: Optional[str] = None) -> Outcome:
        """Run an action of a displayed result through its provider."""
        scored = next((r for r in self.state.results if r.id == result_id), None)
        if scored is None:
            return Outcome.failure(f"Unknown result: {result_id}")
        result = scored.result

        if result.category == COMMAND_CATEGORY and "command" in result.metadata:
            command = Command.from_dict(result.metadata["command"])
            if command.kind == CommandKind.SEARCH:
                self._pin(command)
                return Outcome.ok()
            outcome = await self.broker.send_action(command.provider_id, command.id, EXECUTE_ACTION_ID)
            if outcome.success:
                # e.g. reload may have changed the registered commands
                self.invalidate_commands()
        else:
            action = result.find_action(action_id) if action_id else result.primary_action
            if action is None:
                return Outcome.failure(f"Unknown action: {action_id}")
            if not result.provider_id:
                return Outcome.failure(f"Result {result_id} has no provider")
            outcome = await self.broker.send_action(
                result.provider_id,
                result.command_id or "",
                action.id,
                result.id,
                result.metadata,
            )

        if outcome.success:
            self.close()
        else:
            self.state.error = outcome.error
            self._notify()
        return outcome

    async def wait_idle(self) -> None:
        """Wait for the pending debounce timer and every started turn."""
        if self._debounce is not None:
            await asyncio.gather(self._debounce, return_exceptions=True)
        while self._searches:
            await asyncio.gather(*list(self._searches), return_exceptions=True)

    def close(self) -> None:
        """Cancel the debounce timer and forget state. In-flight turns go stale."""
        if self._debounce is not None and not self._debounce.done():
            self._debounce.cancel()
        self._debounce = None
        self._latest_turn = next(self._turns)
        self._scope = None
        self.state = SearchState()
        self._notify()

    async def _debounced(self, query: str) -> None:
        await asyncio.sleep(self.debounce_ms / 1000)
        # The turn itself runs detached so a later keystroke never cancels it
        task = asyncio.get_running_loop().create_task(self.search(query))
        self._searches.add(task)
        task.add_done_callback(self._searches.discard)

    def _pin(self, command: Command) -> None:
        self._scope = command
        self._latest_turn = next(self._turns)
        self.state.query = ""
        self.state.results = []
        self.state.error = None
        self.state.loading = False
        self.state.active_provider = command.provider_id
        self.state.active_command = command.id
        self._notify()

    def _find_command(self, full_id: str) -> Optional[Command]:
        for command in self.commands:
            if command.full_id == full_id:
                return command
        return None

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state)
