"""
Message Broker - Correlated request/response between the UI and the backend.

UIBroker (initiating side):
  - wraps every call in an Envelope with a broker-unique id
  - keeps a PendingRequest per id until the matching response arrives
  - resolves pending requests with a failure Outcome on timeout, backend
    disconnect or close(), so nothing is ever left hanging

BackendBroker (receiving side):
  - looks up the provider in the registry and awaits its handler
  - always answers exactly one response envelope, to the sender only
  - converts missing providers and handler exceptions into failure Outcomes
"""

import asyncio
import itertools
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from loguru import logger

from omnitab.search.models import ActionPayload, Outcome, Result, SearchPayload
from omnitab.services.registry import ProviderRegistry
from omnitab.services.transport import Envelope, Origin, Transport, TransportError

BACKEND_PEER = "backend"
DEFAULT_TIMEOUT = 5.0

PROVIDER_NOT_FOUND = "provider not found"
REQUEST_TIMED_OUT = "request timed out"
PEER_DISCONNECTED = "peer disconnected"
BROKER_CLOSED = "broker closed"


class RequestKind(str, Enum):
    SEARCH = "search"
    ACTION = "action"


@dataclass
class PendingRequest:
    id: str
    provider_id: str
    future: asyncio.Future
    issued_at: float = field(default_factory=time.monotonic)


class UIBroker:
    """Sends provider requests to the backend peer and awaits their responses."""

    def __init__(self, transport: Transport, backend_peer: str = BACKEND_PEER, timeout: float = DEFAULT_TIMEOUT):
        self._transport = transport
        self._backend_peer = backend_peer
        self._timeout = timeout
        self._pending: dict[str, PendingRequest] = {}
        self._ids = itertools.count(1)
        self._closed = False

        transport.set_receiver(self._on_envelope)
        transport.add_disconnect_handler(self._on_peer_disconnected)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def send(self, provider_id: str, command_id: str, kind: RequestKind, payload: dict) -> Outcome:
        """
        Send one request and wait for its outcome.

        Never raises for transport problems: timeouts, disconnects and send
        failures come back as failure Outcomes.
        """
        if self._closed:
            return Outcome.failure(BROKER_CLOSED)

        envelope = Envelope(
            id=f"{self._transport.peer_id}-{next(self._ids)}",
            origin=Origin.UI,
            body={
                "provider_id": provider_id,
                "command_id": command_id,
                "kind": RequestKind(kind).value,
                "payload": payload,
            },
        )
        future = asyncio.get_running_loop().create_future()
        self._pending[envelope.id] = PendingRequest(envelope.id, provider_id, future)

        try:
            await self._transport.send(self._backend_peer, envelope)
            return await asyncio.wait_for(future, self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Request {envelope.id} to {provider_id}.{command_id} timed out")
            return Outcome.failure(REQUEST_TIMED_OUT)
        except TransportError as e:
            logger.warning(f"Request {envelope.id} to {provider_id}.{command_id} not sent: {e}")
            return Outcome.failure(str(e))
        finally:
            self._pending.pop(envelope.id, None)

    async def send_search(self, provider_id: str, command_id: str, query: str) -> Outcome:
        """Search request; successful data is decoded into Result objects."""
        outcome = await self.send(provider_id, command_id, RequestKind.SEARCH, {"query": query})
        if not outcome.success:
            return outcome
        try:
            results = [Result.from_dict(item) for item in outcome.data or []]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed search response from {provider_id}.{command_id}: {e}")
            return Outcome.failure(f"malformed response from {provider_id}")
        return Outcome.ok(results)

    async def send_action(
        self,
        provider_id: str,
        command_id: str,
        action_id: str,
        result_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Outcome:
        payload = {"action_id": action_id, "result_id": result_id, "metadata": metadata}
        return await self.send(provider_id, command_id, RequestKind.ACTION, payload)

    def close(self) -> None:
        """Fail every pending request and refuse new ones."""
        self._closed = True
        self._fail_pending(BROKER_CLOSED)

    async def _on_envelope(self, envelope: Envelope, sender: str) -> None:
        if envelope.origin != Origin.BACKEND:
            return
        pending = self._pending.get(envelope.id)
        if pending is None or pending.future.done():
            logger.debug(f"Dropping response {envelope.id}: no pending request")
            return
        pending.future.set_result(Outcome.from_dict(envelope.body))

    def _on_peer_disconnected(self, peer_id: str) -> None:
        if peer_id == self._backend_peer:
            self._fail_pending(PEER_DISCONNECTED)

    def _fail_pending(self, error: str) -> None:
        for pending in list(self._pending.values()):
            if not pending.future.done():
                pending.future.set_result(Outcome.failure(error))


class BackendBroker:
    """Dispatches incoming requests to registered providers."""

    def __init__(self, registry: ProviderRegistry, transport: Transport):
        self._registry = registry
        self._transport = transport
        self._inflight: dict[str, set[asyncio.Task]] = defaultdict(set)

        transport.set_receiver(self._on_envelope)
        registry.add_removal_listener(self._on_provider_removed)

    async def dispatch(self, provider_id: str, command_id: str, kind: str, payload: dict) -> Outcome:
        """Run one request against its provider and return the outcome."""
        provider = self._registry.resolve(provider_id)
        if provider is None:
            return Outcome.failure(PROVIDER_NOT_FOUND)

        try:
            if kind == RequestKind.SEARCH.value:
                call = provider.handle_search(command_id, SearchPayload(query=payload.get("query", "")))
            elif kind == RequestKind.ACTION.value:
                call = provider.handle_action(command_id, ActionPayload(
                    action_id=payload.get("action_id", ""),
                    result_id=payload.get("result_id"),
                    metadata=payload.get("metadata"),
                ))
            else:
                return Outcome.failure(f"Unknown request kind: {kind}")
            task = asyncio.ensure_future(call)
        except Exception as e:
            logger.exception(f"Provider {provider_id} rejected {kind} {command_id}")
            return Outcome.failure(str(e) or e.__class__.__name__)

        self._inflight[provider_id].add(task)
        try:
            await asyncio.wait({task})
        finally:
            self._inflight[provider_id].discard(task)
            if not self._inflight[provider_id]:
                del self._inflight[provider_id]

        if task.cancelled():
            return Outcome.failure(PROVIDER_NOT_FOUND)

        error = task.exception()
        if error is not None:
            logger.opt(exception=error).warning(f"Provider {provider_id} failed on {kind} {command_id}")
            return Outcome.failure(str(error) or error.__class__.__name__)

        result = task.result()
        return result if isinstance(result, Outcome) else Outcome.ok(result)

    async def _on_envelope(self, envelope: Envelope, sender: str) -> None:
        if envelope.origin != Origin.UI:
            return
        body = envelope.body
        outcome = await self.dispatch(
            body.get("provider_id", ""),
            body.get("command_id", ""),
            body.get("kind", ""),
            body.get("payload") or {},
        )
        reply = Envelope(id=envelope.id, origin=Origin.BACKEND, body=outcome.to_dict())
        try:
            await self._transport.send(sender, reply)
        except TransportError as e:
            # Sender went away (closed tab); nobody is waiting for this reply
            logger.debug(f"Dropping response {envelope.id}: {e}")

    def _on_provider_removed(self, provider_id: str) -> None:
        for task in list(self._inflight.get(provider_id, ())):
            task.cancel()
