"""
Search package - Command parsing, fan-out and relevance ranking.

A palette query is parsed into an optional command alias and a search
term, dispatched to one or all providers, and merged into a single
category-ordered result list.
"""

from .models import Action, Command, CommandKind, ActivationMode, Outcome, Result, ScoredResult
from .parser import ParsedQuery, parse_command, find_command
from .ranking import RankOptions, rank
from .orchestrator import SearchResponse, perform_search

__all__ = [
    "Action",
    "Command",
    "CommandKind",
    "ActivationMode",
    "Outcome",
    "Result",
    "ScoredResult",
    "ParsedQuery",
    "parse_command",
    "find_command",
    "RankOptions",
    "rank",
    "SearchResponse",
    "perform_search",
]
