# Overview: Reconnecting realtime connection with exponential backoff and keepalive pings.

"""
Realtime connection helper.

Transport agnostic: connect(on_message, on_close) must open a connection
and return an object with send(text) and close(code, reason). The
transport reports closure by calling on_close(code, reason); connect may
also raise, which counts as an abnormal close.

Timers go through a scheduler with call_later(delay, callback) -> handle
and cancel(handle). ThreadingScheduler is the default; tests pass a
manual scheduler and fire callbacks themselves.

Policy:
- closes with code 1000 (normal) or 1001 (going away) are final
- any other close schedules a reconnect after min(1s * 2**n, 30s)
- after 10 consecutive failed attempts the helper stops and emits
  "connection-failed" to listeners
- while connected, {"type": "ping"} is sent every 30 seconds
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
GOING_AWAY = 1001
ABNORMAL_CLOSURE = 1006

BASE_DELAY = 1.0
MAX_DELAY = 30.0
MAX_ATTEMPTS = 10
PING_INTERVAL = 30.0

EVENT_CONNECTED = "connected"
EVENT_MESSAGE = "message"
EVENT_CONNECTION_FAILED = "connection-failed"


def backoff_delay(attempt: int, base: float = BASE_DELAY, cap: float = MAX_DELAY) -> float:
    """Delay before reconnect attempt number `attempt` (1-based)."""
    return min(base * (2 ** (attempt - 1)), cap)


class ThreadingScheduler:
    def call_later(self, delay: float, callback: Callable[[], None]):
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle) -> None:
        handle.cancel()


class ReconnectingConnection:
    def __init__(
        self,
        connect: Callable[[Callable[[Any], None], Callable[[int, str], None]], Any],
        scheduler=None,
        max_attempts: int = MAX_ATTEMPTS,
        ping_interval: float = PING_INTERVAL,
    ):
        self._connect = connect
        self.scheduler = scheduler or ThreadingScheduler()
        self.max_attempts = max_attempts
        self.ping_interval = ping_interval

        self.connection = None
        self.attempts = 0
        self.closed_by_user = False
        self.gave_up = False
        self._reconnect_handle = None
        self._ping_handle = None
        self._closes = 0
        self._listeners: Dict[str, List[Callable[..., None]]] = {}

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def on(self, event: str, listener: Callable[..., None]) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def _emit(self, event: str, *args) -> None:
        for listener in list(self._listeners.get(event, [])):
            listener(*args)

    def connect(self) -> None:
        self.closed_by_user = False
        self._reconnect_handle = None
        closes_before = self._closes
        try:
            connection = self._connect(self._handle_message, self._handle_close)
        except Exception as exc:
            logger.warning("Realtime connect failed: %s", exc)
            self.connection = None
            self._schedule_reconnect()
            return

        if self._closes != closes_before:
            # Closed before connect returned; _handle_close already decided what next
            return

        self.connection = connection
        self.attempts = 0
        self.gave_up = False
        self._schedule_ping()
        self._emit(EVENT_CONNECTED)

    def send(self, data: Any) -> bool:
        """Send JSON; returns False when not connected."""
        if self.connection is None:
            return False
        try:
            self.connection.send(json.dumps(data))
        except Exception as exc:
            logger.warning("Realtime send failed: %s", exc)
            return False
        return True

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "Client closed") -> None:
        self.closed_by_user = True
        self._cancel_timers()
        connection, self.connection = self.connection, None
        if connection is not None:
            connection.close(code, reason)

    def _handle_message(self, raw: Any) -> None:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed realtime message")
            return
        self._emit(EVENT_MESSAGE, data)

    def _handle_close(self, code: int, reason: str = "") -> None:
        self._closes += 1
        self.connection = None
        self._cancel_ping()
        if self.closed_by_user or code in (NORMAL_CLOSURE, GOING_AWAY):
            return
        logger.info("Realtime connection closed (%s): %s", code, reason or "no reason")
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.attempts >= self.max_attempts:
            self.gave_up = True
            logger.error("Realtime reconnect gave up after %s attempts", self.attempts)
            self._emit(EVENT_CONNECTION_FAILED, {"attempts": self.attempts})
            return
        self.attempts += 1
        delay = backoff_delay(self.attempts)
        self._reconnect_handle = self.scheduler.call_later(delay, self.connect)

    def _schedule_ping(self) -> None:
        self._ping_handle = self.scheduler.call_later(self.ping_interval, self._ping)

    def _ping(self) -> None:
        if self.connection is None:
            return
        self.send({"type": "ping"})
        self._schedule_ping()

    def _cancel_ping(self) -> None:
        if self._ping_handle is not None:
            self.scheduler.cancel(self._ping_handle)
            self._ping_handle = None

    def _cancel_timers(self) -> None:
        self._cancel_ping()
        if self._reconnect_handle is not None:
            self.scheduler.cancel(self._reconnect_handle)
            self._reconnect_handle = None
