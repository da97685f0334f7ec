"""
Search providers - Reference result sources.

Each provider declares its commands and answers search and action
requests with Outcomes. Host APIs are injected as source objects.
"""

from .bookmarks import BookmarkProvider
from .core import CoreProvider
from .history import HistoryProvider
from .tabs import TabProvider
from .topsites import TopSitesProvider

__all__ = [
    "CoreProvider",
    "TabProvider",
    "HistoryProvider",
    "BookmarkProvider",
    "TopSitesProvider",
]
