"""In-memory async event bus for league activity.

The core publishes events (schedule generated, status changed, match
scheduled, result recorded, rankings rebuilt); the SSE endpoint subscribes. Each subscriber
owns a bounded ``asyncio.Queue``; events published with nobody listening
are dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from typing import Any

logger = logging.getLogger(__name__)

SCHEDULE_GENERATED = "league.schedule_generated"
SCHEDULE_CLEARED = "league.schedule_cleared"
STATUS_CHANGED = "league.status_changed"
MATCH_SCHEDULED = "match.scheduled"
RESULT_RECORDED = "match.result_recorded"
RANKINGS_RECALCULATED = "league.rankings_recalculated"


class EventBus:
    """Async pub/sub keyed by event type, plus catch-all subscribers.

    Usage:
        bus = EventBus()

        async with bus.subscribe(STATUS_CHANGED) as sub:
            event = await sub.get(timeout=1.0)

        await bus.publish(STATUS_CHANGED, {"league_id": "l-1", "to_status": "active"})
    """

    def __init__(self) -> None:
        self._subscribers: dict[str | None, list[asyncio.Queue[dict[str, Any]]]] = (
            defaultdict(list)
        )

    async def publish(self, event_type: str, data: dict[str, Any]) -> int:
        """Deliver an event to typed and catch-all subscribers.

        Returns how many subscribers received it.
        """
        envelope = {"type": event_type, "data": data}
        delivered = 0
        for queue in [*self._subscribers.get(event_type, []), *self._subscribers.get(None, [])]:
            try:
                queue.put_nowait(envelope)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("event_dropped type=%s reason=slow_subscriber", event_type)
        return delivered

    def subscribe(self, event_type: str | None = None, max_size: int = 100) -> Subscription:
        """Subscribe to one event type, or to everything when ``event_type`` is None."""
        return Subscription(self, asyncio.Queue(maxsize=max_size), event_type)

    def _register(self, queue: asyncio.Queue[dict[str, Any]], event_type: str | None) -> None:
        self._subscribers[event_type].append(queue)

    def _unregister(self, queue: asyncio.Queue[dict[str, Any]], event_type: str | None) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers[event_type].remove(queue)

    @property
    def subscriber_count(self) -> int:
        return sum(len(queues) for queues in self._subscribers.values())


class Subscription:
    """Active subscription. Use as an async context manager and async iterator."""

    def __init__(
        self,
        bus: EventBus,
        queue: asyncio.Queue[dict[str, Any]],
        event_type: str | None,
    ) -> None:
        self._bus = bus
        self._queue = queue
        self._event_type = event_type
        self._active = False

    async def __aenter__(self) -> Subscription:
        self._bus._register(self._queue, self._event_type)
        self._active = True
        return self

    async def __aexit__(self, *args: object) -> None:
        self._active = False
        self._bus._unregister(self._queue, self._event_type)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> dict[str, Any]:
        if not self._active:
            raise StopAsyncIteration
        return await self._queue.get()

    async def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next event, or None if ``timeout`` seconds pass first."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except TimeoutError:
            return None
