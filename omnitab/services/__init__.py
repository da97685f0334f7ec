# OmniTab Services Package
"""
Backend services for the palette: provider registry, request broker and
the transport both ends of the broker talk over.
"""

from .frecency import calculate_frecency
from .transport import Envelope, LocalHub, Transport
from .registry import Provider, ProviderRegistry, RegistryError
from .broker import BackendBroker, UIBroker

__all__ = [
    "calculate_frecency",
    "Envelope",
    "LocalHub",
    "Transport",
    "Provider",
    "ProviderRegistry",
    "RegistryError",
    "BackendBroker",
    "UIBroker",
]
