"""
Shared test fixtures for the OmniTab test suite.

Host APIs (tabs, history, bookmarks, top sites) are in-memory fakes; settings use real
TOML files on disk (no mocking of the filesystem).
"""

import asyncio
import time

import pytest
import toml

from omnitab.search.handlers.bookmarks import BookmarkNode
from omnitab.search.handlers.history import HistoryItem
from omnitab.search.handlers.tabs import Tab
from omnitab.search.handlers.topsites import TopSite
from omnitab.search.models import Command, CommandKind, Outcome, Result

DAY = 24 * 3600


class FakeTabs:
    def __init__(self, tabs):
        self.tabs = list(tabs)
        self.activated = []
        self.closed = []

    async def list_tabs(self):
        return list(self.tabs)

    async def activate(self, tab_id):
        self.activated.append(tab_id)

    async def close_tabs(self, tab_ids):
        self.closed.extend(tab_ids)
        self.tabs = [tab for tab in self.tabs if tab.id not in tab_ids]


class FakeHistory:
    def __init__(self, items):
        self.items = list(items)
        self.queries = []
        self.opened = []
        self.deleted = []

    async def search(self, text, max_results, start_time=None):
        self.queries.append((text, max_results, start_time))
        items = self.items
        if text:
            items = [
                item for item in items
                if text.lower() in (item.title or "").lower() or text.lower() in item.url.lower()
            ]
        if start_time is not None:
            items = [item for item in items if (item.last_visit_time or 0) >= start_time]
        return items[:max_results]

    async def open(self, url):
        self.opened.append(url)

    async def delete(self, url):
        self.deleted.append(url)


class FakeBookmarks:
    def __init__(self, tree):
        self.tree = list(tree)
        self.opened = []
        self.removed = []

    async def get_tree(self):
        return list(self.tree)

    async def open(self, url):
        self.opened.append(url)

    async def remove(self, bookmark_id):
        self.removed.append(bookmark_id)


class FakeTopSites:
    def __init__(self, sites, denied=False):
        self.sites = list(sites)
        self.denied = denied
        self.opened = []

    async def most_visited(self):
        if self.denied:
            raise PermissionError("topSites permission denied")
        return list(self.sites)

    async def open(self, url):
        self.opened.append(url)


class StubProvider:
    """
    Minimal provider with one search command.

    results: list returned on every search
    error: failure Outcome instead of results
    raises: exception raised from handle_search
    delay: seconds to sleep before answering
    """

    def __init__(self, provider_id, results=(), *, aliases=None, category=None,
                 error=None, raises=None, delay=0.0, kind=CommandKind.SEARCH):
        self.id = provider_id
        self.display_name = provider_id.title()
        self.results = list(results)
        self.error = error
        self.raises = raises
        self.delay = delay
        self.searches = []
        self.actions = []
        self.initialized = 0
        self.destroyed = 0
        self.commands = [
            Command(
                id="search",
                name=f"Search {provider_id}",
                aliases=tuple(aliases if aliases is not None else (provider_id[0],)),
                kind=kind,
            )
        ]

    async def initialize(self):
        self.initialized += 1

    async def destroy(self):
        self.destroyed += 1

    async def handle_search(self, command_id, payload):
        self.searches.append((command_id, payload.query))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return Outcome.failure(self.error)
        return Outcome.ok(self.results)

    async def handle_action(self, command_id, payload):
        self.actions.append((command_id, payload))
        if self.delay:
            await asyncio.sleep(self.delay)
        return Outcome.ok({"done": payload.action_id})


class RecordingBroker:
    """SearchBroker stand-in that answers from a dict of (provider, command) → Outcome."""

    def __init__(self, answers=None):
        self.answers = answers or {}
        self.calls = []

    async def send_search(self, provider_id, command_id, query):
        self.calls.append((provider_id, command_id, query))
        answer = self.answers.get((provider_id, command_id), Outcome.ok([]))
        if isinstance(answer, Exception):
            raise answer
        return answer


def make_result(result_id, title, category="tab", **kwargs):
    return Result(id=result_id, title=title, category=category, **kwargs)


@pytest.fixture
def now():
    return time.time()


@pytest.fixture
def tabs():
    return FakeTabs([
        Tab(1, "GitHub - React Documentation", "https://github.com/facebook/react", window_id=1),
        Tab(2, "Python docs", "https://docs.python.org/3/", window_id=1, active=True),
        Tab(3, "GitHub - React Documentation", "https://github.com/facebook/react", window_id=2),
    ])


@pytest.fixture
def history(now):
    return FakeHistory([
        HistoryItem("1", "https://github.com/pulls", "Pull requests", visit_count=40, last_visit_time=now - DAY),
        HistoryItem("2", "https://news.ycombinator.com/", "Hacker News", visit_count=5, last_visit_time=now - 2 * DAY),
        HistoryItem("3", "https://example.org/old", "Old page", visit_count=90, last_visit_time=now - 30 * DAY),
    ])


@pytest.fixture
def bookmarks(now):
    return FakeBookmarks([
        BookmarkNode("0", "root", children=(
            BookmarkNode("10", "Bookmarks Bar", parent_id="0", children=(
                BookmarkNode("11", "GitLab", "https://gitlab.com/", date_added=now - 300 * DAY, parent_id="10"),
                BookmarkNode("12", "Rust Book", "https://doc.rust-lang.org/book/", date_added=now - DAY, parent_id="10"),
            )),
            BookmarkNode("13", "Pytest", "https://docs.pytest.org/", date_added=now - 10 * DAY, parent_id="0"),
        )),
    ])


@pytest.fixture
def top_sites():
    return FakeTopSites([
        TopSite("https://github.com/", "GitHub"),
        TopSite("https://news.ycombinator.com/", "Hacker News"),
        TopSite("https://mail.example.com/inbox"),
    ])


@pytest.fixture
def tmp_settings(tmp_path):
    """Create a real settings TOML file overriding a few sections."""
    settings_path = tmp_path / "settings.toml"
    data = {
        "broker": {"request_timeout": 0.5},
        "search": {"debounce_ms": 10},
        "commands": {"disabled": ["tab.close-all-duplicates"]},
    }
    settings_path.write_text(toml.dumps(data))
    return settings_path
