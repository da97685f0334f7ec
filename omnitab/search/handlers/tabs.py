"""
Tab Provider - Search open tabs and act on them.

Commands:
  t / tab / tabs         search open tabs (title or URL substring)
  dup / duplicates       close every duplicate tab, keeping the active one

The browser's tab API is injected as a TabSource so the provider can run
against any host (and against in-memory fakes in tests).
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from loguru import logger

from omnitab.search.models import (
    Action,
    ActionPayload,
    Command,
    CommandKind,
    Outcome,
    Result,
    SearchPayload,
)
from omnitab.utils.helpers import get_domain, get_favicon_url

TAB_CATEGORY = "tab"

SEARCH_TAB = "search-tab"
CLOSE_ALL_DUPLICATES = "close-all-duplicates"

SWITCH = "switch"
CLOSE = "close"


@dataclass(frozen=True)
class Tab:
    id: int
    title: Optional[str] = None
    url: Optional[str] = None
    window_id: Optional[int] = None
    active: bool = False
    pinned: bool = False


class TabSource(Protocol):
    """Host tab API."""

    async def list_tabs(self) -> list[Tab]:
        ...

    async def activate(self, tab_id: int) -> None:
        ...

    async def close_tabs(self, tab_ids: list[int]) -> None:
        ...


class TabProvider:
    """Open tabs as results; switch to or close them."""

    id = "tab"
    display_name = "Tab Manager"
    icon = "tab"

    def __init__(self, source: TabSource):
        self.source = source
        self.commands = [
            Command(
                id=SEARCH_TAB,
                name="Search Tabs",
                description="Search through open tabs",
                aliases=("t", "tab", "tabs"),
                placeholder="Search tabs...",
                kind=CommandKind.SEARCH,
            ),
            Command(
                id=CLOSE_ALL_DUPLICATES,
                name="Close All Duplicate Tabs",
                description="Close all tabs with duplicate URLs",
                aliases=("dup", "duplicates"),
                kind=CommandKind.ACTION,
            ),
        ]

    async def handle_search(self, command_id: str, payload: SearchPayload) -> Outcome:
        if command_id != SEARCH_TAB:
            return Outcome.failure(f"Unknown command: {command_id}")
        tabs = await self.search_tabs(payload.query)
        return Outcome.ok([tab_to_result(tab) for tab in tabs])

    async def handle_action(self, command_id: str, payload: ActionPayload) -> Outcome:
        if command_id == CLOSE_ALL_DUPLICATES:
            return await self.close_all_duplicates()

        if command_id != SEARCH_TAB:
            return Outcome.failure(f"Unknown command: {command_id}")

        tab_id = parse_tab_id(payload.result_id)
        if tab_id is None:
            return Outcome.failure(f"Invalid tab result: {payload.result_id}")

        if payload.action_id == SWITCH:
            await self.source.activate(tab_id)
            return Outcome.ok()
        if payload.action_id == CLOSE:
            await self.source.close_tabs([tab_id])
            return Outcome.ok()
        return Outcome.failure(f"Unknown action: {command_id} - {payload.action_id}")

    async def search_tabs(self, query: str) -> list[Tab]:
        """Tabs whose title or URL contains the query, active tab first."""
        tabs = await self.source.list_tabs()
        q = query.strip().lower()
        if q:
            tabs = [
                tab for tab in tabs
                if q in (tab.title or "").lower() or q in (tab.url or "").lower()
            ]
        # Stable: everything but the active tab keeps host order
        return sorted(tabs, key=lambda tab: not tab.active)

    async def close_all_duplicates(self) -> Outcome:
        by_url: dict[str, list[Tab]] = {}
        for tab in await self.source.list_tabs():
            if tab.url:
                by_url.setdefault(tab.url, []).append(tab)

        to_close = []
        for group in by_url.values():
            if len(group) < 2:
                continue
            keep = next((tab for tab in group if tab.active), group[0])
            to_close.extend(tab.id for tab in group if tab.id != keep.id)

        if not to_close:
            return Outcome.ok({"message": "No duplicate tabs found"})

        await self.source.close_tabs(to_close)
        logger.debug(f"Closed {len(to_close)} duplicate tabs")
        return Outcome.ok({"message": f"Closed {len(to_close)} duplicate tabs"})


def tab_to_result(tab: Tab) -> Result:
    url = tab.url or ""
    return Result(
        id=f"tab-{tab.id}",
        title=tab.title or "Untitled",
        category=TAB_CATEGORY,
        secondary_text=get_domain(url),
        icon=get_favicon_url(url),
        actions=(
            Action(SWITCH, "Switch to Tab", "Enter", is_primary=True),
            Action(CLOSE, "Close Tab", "Ctrl+D"),
        ),
        metadata={
            "url": tab.url,
            "window_id": tab.window_id,
            "active": tab.active,
            "pinned": tab.pinned,
        },
    )


def parse_tab_id(result_id: Optional[str]) -> Optional[int]:
    """tab-<id> → id"""
    if not result_id or not result_id.startswith("tab-"):
        return None
    try:
        return int(result_id[len("tab-"):])
    except ValueError:
        return None
