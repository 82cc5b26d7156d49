"""
Fire-and-forget notification sink.

Credential managers call ``Notifier.send`` only after their write has
committed. ``QueuedNotifier`` puts the event on an in-process queue and
returns immediately; a worker task hands queued events to a transport, so a
slow or failing mail/analytics pipeline can never block or roll back a
credential operation.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import httpx

from loginvault.config import Settings
from loginvault.kernel.events.event_types import EventPayload, NotificationEvent
from loginvault.logging_config import get_logger

logger = get_logger(__name__)

QueuedEvent = Tuple[NotificationEvent, Dict[str, Any]]


class Notifier(ABC):
    """Receives lifecycle events for downstream delivery."""

    @abstractmethod
    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        """Hand off an event. Must not block on delivery."""


class EventTransport(ABC):
    """Delivers one event to the outside world."""

    @abstractmethod
    async def deliver(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        ...

    async def aclose(self) -> None:
        return None


class LoggingEventTransport(EventTransport):
    """
    Logs events instead of delivering them.

    Used when no queue URL is configured, e.g. in local development where
    the login link is read from the console.
    """

    async def deliver(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        logger.info("Notification %s (no queue configured)", event.value)
        logger.debug("Notification %s payload: %s", event.value, payload)


class HttpEventTransport(EventTransport):
    """POSTs events as JSON to the notification queue endpoint."""

    def __init__(
        self,
        queue_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.queue_url = queue_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def deliver(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        response = await self._client.post(
            self.queue_url,
            json={"event": event.value, "data": payload},
        )
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()


class QueuedNotifier(Notifier):
    """
    Notifier backed by a bounded asyncio.Queue and one delivery worker.

    Usage:
        notifier = QueuedNotifier(HttpEventTransport(url))
        await notifier.start()
        ...
        await notifier.stop()
    """

    def __init__(self, transport: EventTransport, maxsize: int = 1000):
        self.transport = transport
        self._queue: asyncio.Queue[QueuedEvent] = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None

    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        try:
            self._queue.put_nowait((event, payload))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping %s", event.value)

    async def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="loginvault-notifier")

    async def _run(self) -> None:
        while True:
            event, payload = await self._queue.get()
            try:
                await self.transport.deliver(event, payload)
            except Exception:
                # Delivery failures stay here; the credential change is already committed
                logger.exception("Failed to deliver notification %s", event.value)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been handed to the transport."""
        await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        """Deliver what is queued (bounded by timeout), then stop the worker."""
        if self._worker is not None:
            try:
                await asyncio.wait_for(self.drain(), timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Notifier stopped with %d undelivered events", self._queue.qsize()
                )
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        await self.transport.aclose()

    @property
    def pending(self) -> int:
        return self._queue.qsize()


def build_notifier(settings: Settings) -> QueuedNotifier:
    """Create the notifier described by settings (not yet started)."""
    if settings.notifier_queue_url:
        transport: EventTransport = HttpEventTransport(
            settings.notifier_queue_url,
            timeout=settings.notifier_timeout_seconds,
        )
    else:
        transport = LoggingEventTransport()
    return QueuedNotifier(transport, maxsize=settings.notifier_queue_size)


def notify_safely(notifier: Notifier, event: NotificationEvent, payload: EventPayload) -> None:
    """Send an event, logging instead of raising if the notifier misbehaves."""
    try:
        notifier.send(event, payload.to_wire())
    except Exception:
        logger.exception("Notifier rejected %s", event.value)
