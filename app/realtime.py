"""
In-process publish/subscribe hub for live views.

Replaces store "listen" callbacks: a view subscribes to a topic (a room id,
"bookings", "catalog"), receives events on an asyncio queue and must close its
subscription when it goes away. Publishing is thread-safe so synchronous
endpoints running in the threadpool can emit after their commit.
"""

import asyncio
import json
import logging
from threading import Lock
from typing import Any, AsyncIterator, Iterable, Optional

from fastapi import Request

logger = logging.getLogger(__name__)

BOOKINGS_TOPIC = "bookings"
CATALOG_TOPIC = "catalog"


def room_topic(room_id: str) -> str:
    return f"room:{room_id}"


class Subscription:
    """One subscriber's handle on a topic; always close() it"""

    def __init__(self, hub: "RealtimeHub", topic: str, loop: asyncio.AbstractEventLoop, max_queue: int):
        self.hub = hub
        self.topic = topic
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.closed = False

    def deliver(self, event: dict) -> None:
        if self.closed:
            return
        if self.queue.full():
            # Slow consumer: drop the oldest event rather than block publishers
            self.queue.get_nowait()
        self.queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> Optional[dict]:
        """Next event, or None when the timeout elapses"""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.hub.unsubscribe(self)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class RealtimeHub:
    def __init__(self, max_queue: int = 100):
        self._subscribers: dict[str, list[Subscription]] = {}
        self._lock = Lock()
        self.max_queue = max_queue

    def subscribe(self, topic: str) -> Subscription:
        """Must be called from inside a running event loop"""
        subscription = Subscription(self, topic, asyncio.get_running_loop(), self.max_queue)
        with self._lock:
            self._subscribers.setdefault(topic, []).append(subscription)
        logger.debug(f"📡 Subscribed to {topic} ({self.subscriber_count(topic)} listeners)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._subscribers.get(subscription.topic, [])
            if subscription in listeners:
                listeners.remove(subscription)
            if not listeners:
                self._subscribers.pop(subscription.topic, None)
        logger.debug(f"📴 Unsubscribed from {subscription.topic}")

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def publish(self, topic: str, event_type: str, data: Any) -> int:
        """Fan an event out to every subscriber of the topic; returns listener count"""
        with self._lock:
            listeners = list(self._subscribers.get(topic, []))

        event = {"type": event_type, "data": data}
        for subscription in listeners:
            try:
                subscription.loop.call_soon_threadsafe(subscription.deliver, event)
            except RuntimeError:
                # Loop already shut down; the view is gone
                subscription.close()
        return len(listeners)


hub = RealtimeHub()


def format_sse(event: dict) -> str:
    return f"event: {event['type']}\ndata: {json.dumps(event['data'], default=str)}\n\n"


async def event_stream(
    request: Request, subscription: Subscription, replay: Iterable[dict] = (), heartbeat: float = 15.0
) -> AsyncIterator[str]:
    """
    Server-sent events for one subscription: replayed history first, then live
    events until the client disconnects. The subscription is closed on exit.

    Subscribe before loading the history to replay; live events already present
    in the replay (same data id) are skipped.
    """
    try:
        seen_ids = set()
        for event in replay:
            seen_ids.add(event["data"].get("id"))
            yield format_sse(event)

        while not await request.is_disconnected():
            event = await subscription.get(timeout=heartbeat)
            if event is None:
                yield ": keep-alive\n\n"
                continue
            event_id = event["data"].get("id") if isinstance(event["data"], dict) else None
            if event_id is not None and event_id in seen_ids:
                continue
            yield format_sse(event)
    finally:
        subscription.close()
