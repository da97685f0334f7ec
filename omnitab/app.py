"""
OmniTab - Wire the palette together.

Builds both sides of the broker on an in-process hub:

  UI peer       SearchSession → UIBroker ─┐
                                          │ LocalHub
  backend peer  BackendBroker → registry ─┘ → providers

Usage:
  app = await create_app([TabProvider(tabs), HistoryProvider(history)])
  app.session.update_query("t git")
  ...
  await app.shutdown()
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from loguru import logger

from omnitab.search.handlers.core import CoreProvider
from omnitab.search.ranking import RankOptions
from omnitab.search.session import SearchSession
from omnitab.services.broker import BACKEND_PEER, BackendBroker, UIBroker
from omnitab.services.registry import Provider, ProviderRegistry
from omnitab.services.transport import LocalHub
from omnitab.utils.helpers import default_settings, load_settings

UI_PEER = "ui"


@dataclass
class OmniTab:
    hub: LocalHub
    registry: ProviderRegistry
    backend: BackendBroker
    broker: UIBroker
    session: SearchSession
    settings: dict[str, Any]

    async def shutdown(self) -> None:
        """Stop searching, fail anything pending and tear down providers."""
        self.session.close()
        self.broker.close()
        await self.registry.destroy()
        self.hub.disconnect(UI_PEER)
        self.hub.disconnect(BACKEND_PEER)
        logger.debug("OmniTab shut down")


async def create_app(providers: Iterable[Provider] = (), settings: Optional[dict[str, Any]] = None) -> OmniTab:
    """
    Build a ready-to-search palette.

    Args:
        providers: Result providers registered after the core provider
        settings: Settings dict (see load_settings()); loaded from disk when None
    """
    if settings is None:
        settings = load_settings()
    defaults = default_settings()
    broker_settings = settings.get("broker", defaults["broker"])
    search_settings = settings.get("search", defaults["search"])
    command_settings = settings.get("commands", defaults["commands"])

    hub = LocalHub()
    ui_transport = hub.connect(UI_PEER)
    backend_transport = hub.connect(BACKEND_PEER)

    registry = ProviderRegistry(disabled_commands=command_settings.get("disabled", []))
    backend = BackendBroker(registry, backend_transport)
    broker = UIBroker(
        ui_transport,
        backend_peer=BACKEND_PEER,
        timeout=broker_settings.get("request_timeout", defaults["broker"]["request_timeout"]),
    )

    await registry.register(CoreProvider(registry))
    for provider in providers:
        await registry.register(provider)

    session = SearchSession(
        broker,
        debounce_ms=search_settings.get("debounce_ms", defaults["search"]["debounce_ms"]),
        options=RankOptions.from_settings(settings),
        initial_command=search_settings.get("initial_command", defaults["search"]["initial_command"]),
    )
    await session.load_commands()
    registry.add_change_listener(session.invalidate_commands)

    logger.info(
        f"OmniTab ready: {len(registry.providers())} providers, {len(session.commands)} commands"
    )
    return OmniTab(
        hub=hub,
        registry=registry,
        backend=backend,
        broker=broker,
        session=session,
        settings=settings,
    )
