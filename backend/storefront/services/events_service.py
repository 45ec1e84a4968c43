# Overview: In-process event broker behind the /api/events server-sent event stream.

"""
Event broker for server-sent events.

Each connected stream owns a queue. publish() fans a message out to every
subscriber, or only to the subscribers of one user when user_id is given
(order status changes are private to the order owner).

NOTE: The broker is per process. Deployments running several workers only
reach the streams connected to the worker that handled the status change.
"""

from __future__ import annotations

import json
import queue
import threading
from dataclasses import dataclass, field
from itertools import count

from storefront.time_utils import utcnow, to_utc_z


MAX_QUEUED_MESSAGES = 100


@dataclass
class Subscription:
    id: int
    user_id: int | None
    messages: queue.Queue = field(default_factory=lambda: queue.Queue(maxsize=MAX_QUEUED_MESSAGES))
    # Set when the broker drops a subscriber; its stream ends so the client reconnects
    closed: bool = False


class EventBroker:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[int, Subscription] = {}
        self._ids = count(1)

    def subscribe(self, user_id: int | None = None) -> Subscription:
        with self._lock:
            sub = Subscription(id=next(self._ids), user_id=user_id)
            self._subscribers[sub.id] = sub
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(sub.id, None)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event_type: str, data: dict | None = None, user_id: int | None = None) -> int:
        """Queue a message; returns how many subscribers received it."""
        message = {"type": event_type, "data": data or {}}
        with self._lock:
            targets = [
                sub for sub in self._subscribers.values()
                if user_id is None or sub.user_id == user_id
            ]
        delivered = 0
        for sub in targets:
            try:
                sub.messages.put_nowait(message)
                delivered += 1
            except queue.Full:
                # Slow consumer; end its stream, the client refetches on reconnect
                sub.closed = True
                self.unsubscribe(sub)
        return delivered


broker = EventBroker()


def format_sse(message: dict) -> str:
    return f"data: {json.dumps(message)}\n\n"


def connected_message(sub: Subscription) -> dict:
    return {
        "type": "connected",
        "data": {
            "clientId": sub.id,
            "isAuthenticated": sub.user_id is not None,
            "timestamp": to_utc_z(utcnow()),
        },
    }


def handle_client_message(raw: str | bytes) -> dict | None:
    """
    Reply to a message sent by a realtime client.

    {"type": "ping"} is answered with a pong; anything else gets no reply.
    Malformed JSON yields an error message instead of raising.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {"type": "error", "error": "Invalid message"}

    if isinstance(data, dict) and data.get("type") == "ping":
        return {"type": "pong", "timestamp": to_utc_z(utcnow())}
    return None


def stream(sub: Subscription, keepalive_seconds: float):
    """
    Generator yielding SSE frames until the client disconnects or the broker
    drops the subscription for falling behind.

    Idle periods produce comment frames so proxies keep the connection open.
    """
    try:
        yield format_sse(connected_message(sub))
        while not sub.closed:
            try:
                message = sub.messages.get(timeout=keepalive_seconds)
            except queue.Empty:
                yield ": keepalive\n\n"
                continue
            yield format_sse(message)
    finally:
        broker.unsubscribe(sub)
