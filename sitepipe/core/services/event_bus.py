"""
EventBus — thread-safe, in-process pub/sub with bounded replay.

Carries reload signals from the watch loop (asyncio thread) to the
browsers connected to the dev server (Flask worker threads).

Thread safety model
───────────────────
- ``_lock`` protects ``_seq``, ``_buffer`` and ``_subscribers``.
- Each subscriber gets its own ``queue.Queue``; the publisher pushes
  into all queues under the lock, each SSE generator consumes from its
  own queue independently.

Event shape::

    {
        "v": 1,                     # schema version
        "ts": 1739648400.123,       # server timestamp
        "seq": 47,                  # monotonic sequence
        "type": "reload:css",       # <domain>:<action>
        "key": "styles.css",        # resource identifier
        "data": { ... },            # event-specific payload
    }

Event types in use:

    reload:css     a compiled style-sheet changed (key = output name)
    reload:page    markup or assets changed; reload the document
    build:error    a watched rebuild failed (data.error)
    sys:ready      first event of every SSE connection (not broadcast)
    sys:heartbeat  keep-alive while idle (per connection, not broadcast)
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from typing import Any, Generator

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

RELOAD_CSS = "reload:css"
RELOAD_PAGE = "reload:page"
BUILD_ERROR = "build:error"


class EventBus:
    """Thread-safe, in-process pub/sub with bounded replay buffer.

    Parameters
    ----------
    buffer_size : int
        Maximum number of events kept for replay. Older events are
        discarded; a client reconnecting after its ``Last-Event-Id`` was
        evicted simply starts from the live stream.
    subscriber_queue_size : int
        Maximum backlog per SSE client. A client whose queue fills up
        is dropped.
    """

    def __init__(
        self,
        *,
        buffer_size: int = 100,
        subscriber_queue_size: int = 50,
    ) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._buffer: deque[dict] = deque(maxlen=buffer_size)
        self._subscribers: list[queue.Queue[dict]] = []
        self._subscriber_queue_size = subscriber_queue_size
        self._instance_id: str = time.strftime("%Y-%m-%dT%H:%M:%S")

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        with self._lock:
            return self._seq

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # ── Publishing ──────────────────────────────────────────────

    def publish(
        self,
        event_type: str,
        *,
        key: str = "",
        data: dict[str, Any] | None = None,
        **kw: Any,
    ) -> dict:
        """Broadcast an event to every subscriber and the replay buffer.

        Returns the full event dict with ``seq`` assigned.
        """
        with self._lock:
            self._seq += 1
            event: dict[str, Any] = {
                "v": _SCHEMA_VERSION,
                "ts": time.time(),
                "seq": self._seq,
                "type": event_type,
                "key": key,
                "data": data or {},
                **kw,
            }
            self._buffer.append(event)

            dead: list[queue.Queue[dict]] = []
            for q in self._subscribers:
                try:
                    q.put_nowait(event)
                except queue.Full:
                    dead.append(q)
            for q in dead:
                self._subscribers.remove(q)
                logger.info("Dropped unresponsive SSE subscriber (queue full)")

        logger.debug("event %s key=%s", event_type, key or "-")
        return event

    def reload_css(self, output_name: str) -> dict:
        return self.publish(RELOAD_CSS, key=output_name)

    def reload_page(self, reason: str = "") -> dict:
        return self.publish(RELOAD_PAGE, key=reason)

    # ── Reading ─────────────────────────────────────────────────

    def recent(self, since: int = 0) -> list[dict]:
        """Buffered events with ``seq > since``, oldest first."""
        with self._lock:
            return [e for e in self._buffer if e["seq"] > since]

    def subscribe(
        self,
        *,
        since: int = 0,
        heartbeat_interval: float = 30.0,
    ) -> Generator[dict, None, None]:
        """Yield events for an SSE client. Blocks between events.

        Parameters
        ----------
        since : int
            Sequence number to resume from (``Last-Event-Id``). Buffered
            events with ``seq > since`` are replayed first. 0 means
            "live events only".
        heartbeat_interval : float
            Seconds between heartbeat events when idle.
        """
        q: queue.Queue[dict] = queue.Queue(maxsize=self._subscriber_queue_size)

        with self._lock:
            if since > 0:
                missed = [e for e in self._buffer if e["seq"] > since]
                # Only the newest events matter for a reload client
                for event in missed[-self._subscriber_queue_size:]:
                    q.put_nowait(event)
            self._subscribers.append(q)
            count = len(self._subscribers)

        logger.info("SSE client connected (since=%d, subscribers=%d)", since, count)

        try:
            yield self._client_event("sys:ready", {"instance_id": self._instance_id})
            while True:
                try:
                    yield q.get(timeout=heartbeat_interval)
                except queue.Empty:
                    yield self._client_event("sys:heartbeat")
        finally:
            with self._lock:
                if q in self._subscribers:
                    self._subscribers.remove(q)
                count = len(self._subscribers)
            logger.info("SSE client disconnected (subscribers=%d)", count)

    # ── Internal helpers ────────────────────────────────────────

    def _client_event(self, event_type: str, data: dict[str, Any] | None = None) -> dict:
        """An event for one connection only: not buffered, not broadcast.

        It carries the current ``seq`` so the client's ``Last-Event-Id``
        still points at the last broadcast event.
        """
        with self._lock:
            seq = self._seq
        return {
            "v": _SCHEMA_VERSION,
            "ts": time.time(),
            "seq": seq,
            "type": event_type,
            "key": "",
            "data": data or {},
        }


# ── Module-level singleton ──────────────────────────────────────

bus = EventBus()
"""The global event bus instance.

Import and use::

    from sitepipe.core.services.event_bus import bus
    bus.reload_css("styles.css")
"""
