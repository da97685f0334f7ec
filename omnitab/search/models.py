"""
Search Models - Commands, results and outcomes shared by every layer.

Everything that crosses the broker has a to_dict()/from_dict() pair so it
can travel as plain data between the UI side and the backend side.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class CommandKind(str, Enum):
    """Search commands return results, action commands execute."""
    SEARCH = "search"
    ACTION = "action"


class ActivationMode(str, Enum):
    """Whether an alias may directly abut the query (">help") or needs a space."""
    IMMEDIATE = "immediate"
    REQUIRES_SEPARATOR = "separator"


COMMAND_CATEGORY = "command"
SELECT_ACTION_ID = "select"


@dataclass(frozen=True)
class Action:
    """An action offered on a result (switch to tab, open, remove...)."""
    id: str
    label: str
    shortcut_hint: Optional[str] = None
    is_primary: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "shortcut_hint": self.shortcut_hint,
            "is_primary": self.is_primary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Action":
        return cls(
            id=data["id"],
            label=data["label"],
            shortcut_hint=data.get("shortcut_hint"),
            is_primary=bool(data.get("is_primary", False)),
        )


@dataclass(frozen=True)
class Result:
    """A single search result from any provider."""
    id: str
    title: str
    category: str
    secondary_text: Optional[str] = None
    icon: Optional[str] = None
    actions: tuple[Action, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    provider_id: Optional[str] = None
    command_id: Optional[str] = None

    def __post_init__(self):
        if sum(1 for action in self.actions if action.is_primary) > 1:
            raise ValueError(f"Result {self.id} has more than one primary action")

    @property
    def primary_action(self) -> Optional[Action]:
        for action in self.actions:
            if action.is_primary:
                return action
        return None

    def find_action(self, action_id: str) -> Optional[Action]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "secondary_text": self.secondary_text,
            "icon": self.icon,
            "actions": [action.to_dict() for action in self.actions],
            "metadata": dict(self.metadata),
            "provider_id": self.provider_id,
            "command_id": self.command_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Result":
        return cls(
            id=data["id"],
            title=data["title"],
            category=data["category"],
            secondary_text=data.get("secondary_text"),
            icon=data.get("icon"),
            actions=tuple(Action.from_dict(a) for a in data.get("actions") or ()),
            metadata=dict(data.get("metadata") or {}),
            provider_id=data.get("provider_id"),
            command_id=data.get("command_id"),
        )


@dataclass(frozen=True)
class Command:
    """
    A named, aliasable operation exposed by a provider.

    provider_id is empty while the command is declared on its provider and
    stamped by the registry at registration time.
    """
    id: str
    name: str
    kind: CommandKind = CommandKind.SEARCH
    aliases: tuple[str, ...] = ()
    activation: ActivationMode = ActivationMode.REQUIRES_SEPARATOR
    description: Optional[str] = None
    placeholder: Optional[str] = None
    icon: Optional[str] = None
    provider_id: Optional[str] = None

    @property
    def full_id(self) -> str:
        return f"{self.provider_id}.{self.id}"

    @property
    def is_immediate(self) -> bool:
        return self.activation == ActivationMode.IMMEDIATE

    def has_alias(self, alias: str) -> bool:
        lowered = alias.lower()
        return any(a.lower() == lowered for a in self.aliases)

    def to_result(self) -> Result:
        """Build the selectable "command" result shown for this command."""
        return Result(
            id=self.full_id,
            title=self.name,
            category=COMMAND_CATEGORY,
            secondary_text=self.description or f"{self.provider_id} - {self.kind.value} command",
            icon=self.icon,
            actions=(Action(SELECT_ACTION_ID, "Select", "Enter", is_primary=True),),
            metadata={"command": self.to_dict()},
            provider_id=self.provider_id,
            command_id=self.id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "aliases": list(self.aliases),
            "activation": self.activation.value,
            "description": self.description,
            "placeholder": self.placeholder,
            "icon": self.icon,
            "provider_id": self.provider_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Command":
        return cls(
            id=data["id"],
            name=data["name"],
            kind=CommandKind(data.get("kind", CommandKind.SEARCH.value)),
            aliases=tuple(data.get("aliases") or ()),
            activation=ActivationMode(
                data.get("activation", ActivationMode.REQUIRES_SEPARATOR.value)
            ),
            description=data.get("description"),
            placeholder=data.get("placeholder"),
            icon=data.get("icon"),
            provider_id=data.get("provider_id"),
        )


@dataclass
class ScoredResult:
    """A Result with its score for one search turn. Never persisted."""
    result: Result
    score: float
    matched_fields: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.result.id

    @property
    def title(self) -> str:
        return self.result.title

    @property
    def category(self) -> str:
        return self.result.category


@dataclass
class Outcome:
    """Structured reply of a provider call: never an exception across the broker."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Outcome":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "Outcome":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        return {"success": self.success, "data": to_wire(self.data), "error": self.error}

    @classmethod
    def from_dict(cls, data: dict) -> "Outcome":
        return cls(
            success=bool(data.get("success", False)),
            data=data.get("data"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class SearchPayload:
    query: str


@dataclass(frozen=True)
class ActionPayload:
    action_id: str
    result_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


def to_wire(value: Any) -> Any:
    """Recursively convert model objects into plain data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, Enum):
        return value.value
    return value
