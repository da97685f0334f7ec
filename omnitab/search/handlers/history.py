"""
History Provider - Search browsing history.

An empty query shows the last week of history (20 entries); a typed query
searches the whole history (50 entries). Visit counts and last visit times
travel in result metadata so the ranking engine can apply frecency.
"""

import time
from dataclasses import dataclass
from typing import Optional, Protocol

from omnitab.search.models import (
    Action,
    ActionPayload,
    Command,
    CommandKind,
    Outcome,
    Result,
    SearchPayload,
)
from omnitab.services.frecency import SECONDS_PER_DAY
from omnitab.utils.helpers import get_domain, get_favicon_url

HISTORY_CATEGORY = "history"

SEARCH_HISTORY = "search-history"

OPEN = "open"
REMOVE = "remove"

MAX_RESULTS_WITH_QUERY = 50
MAX_RESULTS_WITHOUT_QUERY = 20
RECENT_HISTORY_DAYS = 7


@dataclass(frozen=True)
class HistoryItem:
    id: str
    url: str
    title: Optional[str] = None
    visit_count: int = 0
    last_visit_time: Optional[float] = None


class HistorySource(Protocol):
    """Host history API. Times are Unix timestamps in seconds."""

    async def search(self, text: str, max_results: int, start_time: Optional[float] = None) -> list[HistoryItem]:
        ...

    async def open(self, url: str) -> None:
        ...

    async def delete(self, url: str) -> None:
        ...


class HistoryProvider:
    id = "history"
    display_name = "History"
    icon = "history"

    def __init__(self, source: HistorySource):
        self.source = source
        self.commands = [
            Command(
                id=SEARCH_HISTORY,
                name="Search History",
                description="Search through browser history",
                aliases=("h", "hist", "history"),
                placeholder="Search history...",
                kind=CommandKind.SEARCH,
            ),
        ]

    async def handle_search(self, command_id: str, payload: SearchPayload) -> Outcome:
        if command_id != SEARCH_HISTORY:
            return Outcome.failure(f"Unknown command: {command_id}")
        items = await self.search_history(payload.query)
        return Outcome.ok([history_item_to_result(item) for item in items])

    async def handle_action(self, command_id: str, payload: ActionPayload) -> Outcome:
        if command_id != SEARCH_HISTORY:
            return Outcome.failure(f"Unknown command: {command_id}")

        url = (payload.metadata or {}).get("url")
        if not url:
            return Outcome.failure("History entry has no URL")

        if payload.action_id == OPEN:
            await self.source.open(url)
            return Outcome.ok()
        if payload.action_id == REMOVE:
            await self.source.delete(url)
            return Outcome.ok()
        return Outcome.failure(f"Unknown action: {command_id} - {payload.action_id}")

    async def search_history(self, query: str, now: Optional[float] = None) -> list[HistoryItem]:
        text = query.strip()
        if text:
            return await self.source.search(text, MAX_RESULTS_WITH_QUERY)

        if now is None:
            now = time.time()
        start_time = now - RECENT_HISTORY_DAYS * SECONDS_PER_DAY
        return await self.source.search("", MAX_RESULTS_WITHOUT_QUERY, start_time)


def history_item_to_result(item: HistoryItem) -> Result:
    return Result(
        id=f"history-{item.id}",
        title=item.title or "Untitled",
        category=HISTORY_CATEGORY,
        secondary_text=get_domain(item.url),
        icon=get_favicon_url(item.url),
        actions=(
            Action(OPEN, "Open in New Tab", "Enter", is_primary=True),
            Action(REMOVE, "Remove from History", "Ctrl+D"),
        ),
        metadata={
            "url": item.url,
            "visit_count": item.visit_count,
            "last_visit_time": item.last_visit_time,
        },
    )
