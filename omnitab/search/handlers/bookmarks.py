"""
Bookmark Provider - Search the bookmark tree.

Folders are walked recursively; only nodes with a URL become results.
Without a query the 20 most recently added bookmarks are shown.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

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

BOOKMARK_CATEGORY = "bookmark"

SEARCH_BOOKMARKS = "search-bookmarks"

OPEN = "open"
REMOVE = "remove"

MAX_RECENT_BOOKMARKS = 20


@dataclass(frozen=True)
class BookmarkNode:
    """A bookmark (url set) or a folder (children set)."""
    id: str
    title: Optional[str] = None
    url: Optional[str] = None
    date_added: Optional[float] = None
    parent_id: Optional[str] = None
    children: tuple["BookmarkNode", ...] = field(default_factory=tuple)


class BookmarkSource(Protocol):
    async def get_tree(self) -> list[BookmarkNode]:
        ...

    async def open(self, url: str) -> None:
        ...

    async def remove(self, bookmark_id: str) -> None:
        ...


class BookmarkProvider:
    id = "bookmark"
    display_name = "Bookmarks"
    icon = "bookmark"

    def __init__(self, source: BookmarkSource):
        self.source = source
        self.commands = [
            Command(
                id=SEARCH_BOOKMARKS,
                name="Search Bookmarks",
                description="Search through bookmarks",
                aliases=("b", "bm", "bookmark", "bookmarks"),
                placeholder="Search bookmarks...",
                kind=CommandKind.SEARCH,
            ),
        ]

    async def handle_search(self, command_id: str, payload: SearchPayload) -> Outcome:
        if command_id != SEARCH_BOOKMARKS:
            return Outcome.failure(f"Unknown command: {command_id}")
        bookmarks = await self.search_bookmarks(payload.query)
        return Outcome.ok([bookmark_to_result(node) for node in bookmarks])

    async def handle_action(self, command_id: str, payload: ActionPayload) -> Outcome:
        if command_id != SEARCH_BOOKMARKS:
            return Outcome.failure(f"Unknown command: {command_id}")

        metadata = payload.metadata or {}
        if payload.action_id == OPEN:
            url = metadata.get("url")
            if not url:
                return Outcome.failure("Bookmark has no URL")
            await self.source.open(url)
            return Outcome.ok()
        if payload.action_id == REMOVE:
            bookmark_id = metadata.get("id")
            if not bookmark_id:
                return Outcome.failure("Bookmark has no id")
            await self.source.remove(bookmark_id)
            return Outcome.ok({"message": "Bookmark removed"})
        return Outcome.failure(f"Unknown action: {command_id} - {payload.action_id}")

    async def search_bookmarks(self, query: str) -> list[BookmarkNode]:
        bookmarks = list(flatten(await self.source.get_tree()))
        q = query.strip().lower()
        if q:
            return [
                node for node in bookmarks
                if q in (node.title or "").lower() or q in (node.url or "").lower()
            ]
        bookmarks.sort(key=lambda node: node.date_added or 0, reverse=True)
        return bookmarks[:MAX_RECENT_BOOKMARKS]


def flatten(nodes: Iterable[BookmarkNode]) -> Iterable[BookmarkNode]:
    """Every node with a URL, depth-first in tree order."""
    for node in nodes:
        if node.url:
            yield node
        if node.children:
            yield from flatten(node.children)


def bookmark_to_result(node: BookmarkNode) -> Result:
    url = node.url or ""
    return Result(
        id=f"bookmark-{node.id}",
        title=node.title or "Untitled",
        category=BOOKMARK_CATEGORY,
        secondary_text=get_domain(url),
        icon=get_favicon_url(url),
        actions=(
            Action(OPEN, "Open in New Tab", "Enter", is_primary=True),
            Action(REMOVE, "Remove Bookmark", "Ctrl+Enter"),
        ),
        metadata={
            "id": node.id,
            "url": node.url,
            "date_added": node.date_added,
            "parent_id": node.parent_id,
        },
    )
