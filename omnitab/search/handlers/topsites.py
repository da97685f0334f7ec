"""
Top Sites Provider - Search the browser's most visited sites.

The host returns its most visited list already ordered; an empty query
shows the top 20, a typed query keeps the sites whose title, URL or
hostname contains it.
"""

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
from omnitab.utils.helpers import get_domain, get_favicon_url

TOPSITE_CATEGORY = "topsite"

SEARCH_TOP_SITES = "search-top-sites"

OPEN = "open"

MAX_RESULTS = 20

PERMISSION_DENIED = "Permission denied. Top sites access requires user permission."


@dataclass(frozen=True)
class TopSite:
    url: str
    title: Optional[str] = None


class TopSitesSource(Protocol):
    """Host most-visited API."""

    async def most_visited(self) -> list[TopSite]:
        ...

    async def open(self, url: str) -> None:
        ...


class TopSitesProvider:
    id = "topsites"
    display_name = "Top Sites"
    icon = "topsites"

    def __init__(self, source: TopSitesSource):
        self.source = source
        self.commands = [
            Command(
                id=SEARCH_TOP_SITES,
                name="Search Top Sites",
                description="Search your most visited sites",
                aliases=("top",),
                placeholder="Search top sites...",
                kind=CommandKind.SEARCH,
            ),
        ]

    async def handle_search(self, command_id: str, payload: SearchPayload) -> Outcome:
        if command_id != SEARCH_TOP_SITES:
            return Outcome.failure(f"Unknown command: {command_id}")
        try:
            sites = await self.source.most_visited()
        except PermissionError:
            return Outcome.failure(PERMISSION_DENIED)
        return Outcome.ok([
            top_site_to_result(site, rank)
            for rank, site in enumerate(filter_top_sites(sites, payload.query))
        ])

    async def handle_action(self, command_id: str, payload: ActionPayload) -> Outcome:
        if command_id != SEARCH_TOP_SITES:
            return Outcome.failure(f"Unknown command: {command_id}")
        if payload.action_id != OPEN:
            return Outcome.failure(f"Unknown action: {command_id} - {payload.action_id}")

        url = (payload.metadata or {}).get("url")
        if not url:
            return Outcome.failure("Top site has no URL")
        await self.source.open(url)
        return Outcome.ok({"action": "opened", "url": url})


def filter_top_sites(sites: list[TopSite], query: str) -> list[TopSite]:
    q = query.strip().lower()
    if not q:
        return sites[:MAX_RESULTS]
    matches = [
        site for site in sites
        if q in (site.title or "").lower()
        or q in site.url.lower()
        or q in get_domain(site.url).lower()
    ]
    return matches[:MAX_RESULTS]


def top_site_to_result(site: TopSite, rank: int) -> Result:
    domain = get_domain(site.url)
    return Result(
        id=f"topsite-{rank}",
        title=site.title or domain or site.url,
        category=TOPSITE_CATEGORY,
        secondary_text=domain,
        icon=get_favicon_url(site.url),
        actions=(Action(OPEN, "Open site", "Enter", is_primary=True),),
        metadata={"url": site.url, "rank": rank},
    )
