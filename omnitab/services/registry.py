"""
Provider Registry - The set of installed result providers and their commands.

A provider is anything exposing the Provider protocol below; no base class
is required. The registry is an explicit instance owned by the backend and
handed to the broker and the core provider, so tests get a fresh one each.

Aliases are matched case-insensitively against the enabled commands in
registration order, the same way the UI resolves them from its copy of the
command list. When two commands claim the same alias the later
registration wins and the conflict is logged.
"""

import dataclasses
from typing import Callable, Iterable, Optional, Protocol

from loguru import logger

from omnitab.search.models import ActionPayload, Command, Outcome, SearchPayload
from omnitab.search.parser import find_command

RemovalListener = Callable[[str], None]
ChangeListener = Callable[[], None]


class Provider(Protocol):
    """Capability interface every result provider implements."""

    id: str
    display_name: str
    commands: list[Command]

    async def handle_search(self, command_id: str, payload: SearchPayload) -> Outcome:
        ...

    async def handle_action(self, command_id: str, payload: ActionPayload) -> Outcome:
        ...


class RegistryError(Exception):
    """Registration rejected (duplicate provider or command id)."""


class ProviderRegistry:
    """Holds registered providers and their commands in registration order."""

    def __init__(self, disabled_commands: Iterable[str] = ()):
        self._providers: dict[str, Provider] = {}
        self._commands: dict[str, list[Command]] = {}
        self._removal_listeners: list[RemovalListener] = []
        self._change_listeners: list[ChangeListener] = []
        self.disabled_commands = set(disabled_commands)

    async def register(self, provider: Provider) -> None:
        """
        Register a provider, run its initialize() hook and add its commands.

        Raises:
            RegistryError: provider id already registered or duplicate command ids
        """
        if provider.id in self._providers:
            raise RegistryError(f"Provider {provider.id} is already registered")

        seen = set()
        for command in provider.commands:
            if command.id in seen:
                raise RegistryError(f"Provider {provider.id} declares command {command.id} twice")
            seen.add(command.id)

        initialize = getattr(provider, "initialize", None)
        if initialize is not None:
            await initialize()

        commands = [
            dataclasses.replace(
                command,
                provider_id=provider.id,
                icon=command.icon or getattr(provider, "icon", None),
            )
            for command in provider.commands
        ]
        self._log_alias_conflicts(commands)

        self._providers[provider.id] = provider
        self._commands[provider.id] = commands

        logger.debug(f"Registered provider {provider.id} with {len(commands)} commands")
        self._notify_changed()

    async def unregister(self, provider_id: str) -> None:
        """Remove a provider and its commands; unknown ids are ignored."""
        provider = self._providers.pop(provider_id, None)
        if provider is None:
            return
        self._commands.pop(provider_id, None)

        for listener in list(self._removal_listeners):
            listener(provider_id)

        destroy = getattr(provider, "destroy", None)
        if destroy is not None:
            try:
                await destroy()
            except Exception:
                logger.exception(f"Provider {provider_id} failed to shut down cleanly")

        logger.debug(f"Unregistered provider {provider_id}")
        self._notify_changed()

    async def reload(self, provider_id: str) -> bool:
        """
        Unregister and re-register a provider. Returns False if unknown.

        The reloaded provider moves to the end of the registration order,
        so it takes over any alias it shares with another provider.
        """
        provider = self._providers.get(provider_id)
        if provider is None:
            return False
        await self.unregister(provider_id)
        await self.register(provider)
        return True

    async def destroy(self) -> None:
        for provider_id in list(self._providers):
            await self.unregister(provider_id)

    def resolve(self, provider_id: str) -> Optional[Provider]:
        return self._providers.get(provider_id)

    def providers(self) -> list[Provider]:
        return list(self._providers.values())

    def all_commands(self, include_disabled: bool = False) -> list[Command]:
        """All registered commands in registration order."""
        commands = [c for group in self._commands.values() for c in group]
        if include_disabled:
            return commands
        return [c for c in commands if c.full_id not in self.disabled_commands]

    def find_command(self, alias: str) -> Optional[Command]:
        """Enabled command owning alias, resolved like the palette resolves it."""
        return find_command(alias, self.all_commands())

    def add_removal_listener(self, listener: RemovalListener) -> None:
        """Call listener(provider_id) whenever a provider is unregistered."""
        self._removal_listeners.append(listener)

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Call listener() after every register or unregister."""
        self._change_listeners.append(listener)

    def _log_alias_conflicts(self, commands: list[Command]) -> None:
        existing = self.all_commands(include_disabled=True)
        for command in commands:
            for alias in command.aliases:
                owner = find_command(alias, existing)
                if owner is not None and owner.full_id != command.full_id:
                    logger.warning(f"Alias '{alias}' of {command.full_id} overrides {owner.full_id}")

    def _notify_changed(self) -> None:
        for listener in list(self._change_listeners):
            listener()
