"""Best-effort fan-out of committed changes to connected dashboards."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class NotificationName:
    TICKET_CREATED = "ticket:created"
    TICKET_UPDATED = "ticket:updated"
    TICKET_DELETED = "ticket:deleted"
    EVENT_CREATED = "event:created"
    ATTACHMENT_CREATED = "attachment:created"
    ANNOUNCEMENT_CREATED = "announcement:created"
    ANNOUNCEMENT_DELETED = "announcement:deleted"
    USER_UPDATED = "user:updated"


@dataclass(frozen=True, slots=True)
class Notification:
    event: str
    data: Any


@dataclass(eq=False, slots=True)
class Listener:
    """One connected dashboard; its queue is the only per-listener state."""

    queue: asyncio.Queue[Notification] = field(default_factory=asyncio.Queue)
    dropped: int = 0


class NotificationHub:
    """Process-wide broadcast registry.

    Listeners are added on connect and removed on disconnect. ``publish`` is
    synchronous and never raises into the caller: a listener whose queue is
    full misses the notification. Nothing is persisted or replayed, clients
    re-fetch authoritative state when told something changed.
    """

    def __init__(self, *, queue_size: int = 100, heartbeat_seconds: float = 15.0) -> None:
        if queue_size <= 0:
            raise ValueError("queue_size must be greater than zero")
        self._queue_size = queue_size
        self._heartbeat_seconds = heartbeat_seconds
        self._listeners: set[Listener] = set()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def connect(self) -> Listener:
        listener = Listener(queue=asyncio.Queue(maxsize=self._queue_size))
        self._listeners.add(listener)
        logger.debug("Listener connected (%d total)", len(self._listeners))
        return listener

    def disconnect(self, listener: Listener) -> None:
        self._listeners.discard(listener)
        logger.debug("Listener disconnected (%d total)", len(self._listeners))

    def publish(self, event: str, data: Any) -> int:
        """Queue ``event`` for every connected listener; return how many got it."""

        if isinstance(data, BaseModel):
            payload = data.model_dump(mode="json", by_alias=True)
        else:
            payload = jsonable_encoder(data, by_alias=True)
        notification = Notification(event=event, data=payload)

        delivered = 0
        for listener in tuple(self._listeners):
            try:
                listener.queue.put_nowait(notification)
            except asyncio.QueueFull:
                listener.dropped += 1
                logger.warning("Dropped %s for a slow listener (%d dropped)", event, listener.dropped)
                continue
            delivered += 1
        return delivered

    async def iter_sse(self, listener: Listener) -> AsyncIterator[str]:
        """Yield Server-Sent Event frames until the listener is disconnected."""

        try:
            yield "event: ready\ndata: {}\n\n"
            while True:
                try:
                    notification = await asyncio.wait_for(
                        listener.queue.get(), timeout=self._heartbeat_seconds
                    )
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: {notification.event}\ndata: {json.dumps(notification.data)}\n\n"
        finally:
            self.disconnect(listener)

    async def stream_websocket(self, websocket, listener: Listener) -> None:
        """Forward notifications until either side closes the connection."""

        pump = asyncio.create_task(self._pump_websocket(websocket, listener))
        watch = asyncio.create_task(self._watch_websocket(websocket))
        try:
            done, _ = await asyncio.wait({pump, watch}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (pump, watch):
                task.cancel()
            await asyncio.gather(pump, watch, return_exceptions=True)
        for task in done:
            task.result()

    @staticmethod
    async def _pump_websocket(websocket, listener: Listener) -> None:
        while True:
            notification = await listener.queue.get()
            await websocket.send_json({"event": notification.event, "data": notification.data})

    @staticmethod
    async def _watch_websocket(websocket) -> None:
        # Client frames carry nothing; only the close matters.
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
