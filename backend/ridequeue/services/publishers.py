"""
Delivery channels for notification events.

Anything with `async publish(group, event)` can back the fanout. The
in-memory broadcaster feeds websocket subscribers inside this process; the
webhook relay hands events to an external push service.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Set

import aiohttp

from ridequeue.schemas.events import NotificationEvent

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    async def publish(self, group: str, event: NotificationEvent) -> None:
        ...


class InMemoryBroadcaster:
    """
    Per-group subscriber queues. Slow subscribers lose events instead of
    blocking the publisher.
    """

    DEFAULT_QUEUE_SIZE = 100

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    def subscribe(self, groups: Iterable[str]) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        for group in groups:
            self._subscribers.setdefault(group, set()).add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        for group in list(self._subscribers):
            members = self._subscribers[group]
            members.discard(queue)
            if not members:
                del self._subscribers[group]

    def subscriber_count(self, group: str) -> int:
        return len(self._subscribers.get(group, ()))

    async def publish(self, group: str, event: NotificationEvent) -> None:
        for queue in list(self._subscribers.get(group, ())):
            try:
                queue.put_nowait({"group": group, "event": event.model_dump(mode="json")})
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full for group {group}; dropped {event.event}")


class WebhookRelayPublisher:
    """POSTs each event to a relay endpoint as {"group": ..., "event": {...}}."""

    def __init__(self, url: str, timeout_seconds: float = 5.0):
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def publish(self, group: str, event: NotificationEvent) -> bool:
        payload = {"group": group, "event": event.model_dump(mode="json")}
        try:
            session = self._get_session()
            async with session.post(self.url, json=payload) as response:
                if 200 <= response.status < 300:
                    logger.debug(f"Relayed {event.event} to {group}")
                    return True
                error_text = await response.text()
                logger.error(f"Failed to relay {event.event} to {group}: {response.status} - {error_text}")
                return False
        except Exception as e:
            logger.error(f"Error relaying {event.event} to {group}: {e}")
            return False


class CompositePublisher:
    def __init__(self, publishers: Optional[List[EventPublisher]] = None):
        self.publishers = list(publishers or [])

    def add(self, publisher: EventPublisher) -> None:
        self.publishers.append(publisher)

    async def publish(self, group: str, event: NotificationEvent) -> None:
        results = await asyncio.gather(
            *(publisher.publish(group, event) for publisher in self.publishers),
            return_exceptions=True
        )
        for publisher, result in zip(self.publishers, results):
            if isinstance(result, Exception):
                logger.error(f"{type(publisher).__name__} failed to publish {event.event} to {group}: {result}")

    async def close(self) -> None:
        for publisher in self.publishers:
            close = getattr(publisher, "close", None)
            if close is not None:
                await close()
