"""Realtime fan-out hub.

Delivery is at-most-once and nothing is buffered: a subscriber that connects
late asks for the current state explicitly (``get-config``). A subscriber whose
send fails or times out is dropped and closed, so the client knows to
reconnect and ask again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

EVENT_STATUS = "status"
EVENT_NOW_PLAYING = "now-playing"
EVENT_RANKING = "ranking-update"
EVENT_SETTINGS = "settings-updated"
EVENT_ERROR = "error"

# WebSocket close code for "internal error"
CLOSE_SEND_FAILED = 1011


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


def make_message(event: str, data: Any) -> dict[str, Any]:
    return {"event": event, "data": jsonable_encoder(data)}


class Broadcaster:
    """Set of live subscribers with best-effort publish."""

    def __init__(self, send_timeout: float = 5.0) -> None:
        self.send_timeout = send_timeout
        self._subscribers: set[Subscriber] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)
        logger.debug(f"Subscriber joined ({len(self._subscribers)} connected)")

    def is_subscribed(self, subscriber: Subscriber) -> bool:
        return subscriber in self._subscribers

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)
        logger.debug(f"Subscriber left ({len(self._subscribers)} connected)")

    async def send(self, subscriber: Subscriber, event: str, data: Any) -> bool:
        """Deliver one event to one subscriber (replies to client requests)."""
        return await self._deliver(subscriber, make_message(event, data))

    async def publish(self, event: str, data: Any) -> int:
        """Send *event* to every subscriber; returns how many received it."""
        if not self._subscribers:
            return 0
        message = make_message(event, data)
        targets = list(self._subscribers)
        results = await asyncio.gather(*(self._deliver(s, message) for s in targets))
        delivered = sum(results)
        logger.debug(f"Published {event} to {delivered}/{len(targets)} subscribers")
        return delivered

    async def _deliver(self, subscriber: Subscriber, message: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(subscriber.send_json(message), timeout=self.send_timeout)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.info(f"Dropping subscriber after failed send: {type(e).__name__}: {e}")
            self._subscribers.discard(subscriber)
            await self._close(subscriber)
            return False

    async def _close(self, subscriber: Subscriber) -> None:
        try:
            await asyncio.wait_for(
                subscriber.close(code=CLOSE_SEND_FAILED), timeout=self.send_timeout
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"Close after failed send also failed: {type(e).__name__}: {e}")
