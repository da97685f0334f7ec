"""
Transport - Peer-addressed envelope delivery between the UI and the backend.

The real transport belongs to the host environment (browser runtime
messaging, a socket, a pipe). This module defines the contract the brokers
rely on plus LocalHub, an in-process implementation used for wiring a
single-process palette and for tests.
"""

import asyncio
import copy
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from loguru import logger

Receiver = Callable[["Envelope", str], Awaitable[None]]
DisconnectHandler = Callable[[str], None]


class Origin(str, Enum):
    UI = "ui"
    BACKEND = "backend"


@dataclass
class Envelope:
    """Addressed, correlated wrapper for every broker message."""
    id: str
    origin: Origin
    body: dict
    timestamp: float = field(default_factory=time.time)


class TransportError(Exception):
    """Envelope could not be handed to the transport."""


class PeerUnreachable(TransportError):
    """The target peer is not connected (closed tab, dead process)."""

    def __init__(self, peer_id: str):
        super().__init__(f"peer {peer_id} is unreachable")
        self.peer_id = peer_id


class Transport(Protocol):
    peer_id: str

    def set_receiver(self, receiver: Receiver) -> None:
        ...

    def add_disconnect_handler(self, handler: DisconnectHandler) -> None:
        ...

    async def send(self, target: str, envelope: Envelope) -> None:
        ...


class LocalTransport:
    """One peer's endpoint on a LocalHub."""

    def __init__(self, hub: "LocalHub", peer_id: str):
        self.peer_id = peer_id
        self._hub = hub
        self._receiver: Optional[Receiver] = None
        self._disconnect_handlers: list[DisconnectHandler] = []
        self._tasks: set[asyncio.Task] = set()

    def set_receiver(self, receiver: Receiver) -> None:
        self._receiver = receiver

    def add_disconnect_handler(self, handler: DisconnectHandler) -> None:
        self._disconnect_handlers.append(handler)

    async def send(self, target: str, envelope: Envelope) -> None:
        if not self._hub.is_connected(self.peer_id):
            raise TransportError(f"peer {self.peer_id} is disconnected")
        self._hub.deliver(self.peer_id, target, envelope)

    def _accept(self, envelope: Envelope, sender: str) -> None:
        if self._receiver is None:
            logger.debug(f"{self.peer_id}: no receiver, dropping envelope {envelope.id}")
            return
        task = asyncio.get_running_loop().create_task(self._receiver(envelope, sender))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error(
                f"{self.peer_id}: receiver failed"
            )

    def _peer_disconnected(self, peer_id: str) -> None:
        for handler in list(self._disconnect_handlers):
            handler(peer_id)


class LocalHub:
    """
    In-memory switchboard connecting LocalTransport peers.

    Delivery is asynchronous (a task on the running loop) and copies the
    body, so sender and receiver never share objects.
    """

    def __init__(self):
        self._peers: dict[str, LocalTransport] = {}

    def connect(self, peer_id: str) -> LocalTransport:
        if peer_id in self._peers:
            raise TransportError(f"peer {peer_id} is already connected")
        transport = LocalTransport(self, peer_id)
        self._peers[peer_id] = transport
        logger.debug(f"Peer {peer_id} connected")
        return transport

    def disconnect(self, peer_id: str) -> None:
        """Remove a peer and tell every remaining peer about it."""
        if self._peers.pop(peer_id, None) is None:
            return
        logger.debug(f"Peer {peer_id} disconnected")
        for transport in list(self._peers.values()):
            transport._peer_disconnected(peer_id)

    def is_connected(self, peer_id: str) -> bool:
        return peer_id in self._peers

    def deliver(self, sender: str, target: str, envelope: Envelope) -> None:
        transport = self._peers.get(target)
        if transport is None:
            raise PeerUnreachable(target)
        logger.debug(f"{sender} → {target}: envelope {envelope.id}")
        transport._accept(
            Envelope(
                id=envelope.id,
                origin=envelope.origin,
                body=copy.deepcopy(envelope.body),
                timestamp=envelope.timestamp,
            ),
            sender,
        )
