# OmniTab Package
"""
Command palette core: one text input to search and act on open tabs,
history, bookmarks and palette commands.

Layers:
  - search: parsing, orchestration, ranking, session state
  - services: provider registry, message broker, transport
  - utils: settings and URL helpers
"""

__version__ = "0.1.0"
