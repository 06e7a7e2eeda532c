from __future__ import annotations

import asyncio
import json

import pytest

from siteservices.notifications import NotificationHub
from siteservices.schemas import UserModel

from conftest import make_user


def test_publish_reaches_every_listener():
    hub = NotificationHub()
    first, second = hub.connect(), hub.connect()

    delivered = hub.publish("ticket:deleted", {"id": 3})

    assert delivered == 2
    assert first.queue.get_nowait().data == {"id": 3}
    assert second.queue.get_nowait().event == "ticket:deleted"


def test_full_queue_drops_instead_of_blocking():
    hub = NotificationHub(queue_size=1)
    slow = hub.connect()

    assert hub.publish("ticket:updated", {"id": 1}) == 1
    assert hub.publish("ticket:updated", {"id": 2}) == 0

    assert slow.dropped == 1
    assert slow.queue.qsize() == 1
    assert slow.queue.get_nowait().data == {"id": 1}


def test_models_are_serialized_with_camel_case_keys():
    hub = NotificationHub()
    listener = hub.connect()

    hub.publish("user:updated", UserModel.model_validate(make_user(4)))

    payload = listener.queue.get_nowait().data
    assert payload["fullName"] == "User 4"
    assert payload["isActive"] is True
    assert isinstance(payload["createdAt"], str)


def test_disconnected_listener_receives_nothing():
    hub = NotificationHub()
    listener = hub.connect()
    hub.disconnect(listener)

    assert hub.publish("ticket:created", {}) == 0
    assert hub.listener_count == 0


@pytest.mark.asyncio
async def test_sse_frames_and_cleanup():
    hub = NotificationHub(heartbeat_seconds=0.01)
    listener = hub.connect()
    hub.publish("event:created", {"ticketId": 9})
    stream = hub.iter_sse(listener)

    ready = await stream.__anext__()
    frame = await stream.__anext__()
    heartbeat = await stream.__anext__()
    await stream.aclose()

    assert ready.startswith("event: ready\n")
    name_line, data_line, *_ = frame.split("\n")
    assert name_line == "event: event:created"
    assert json.loads(data_line.removeprefix("data: ")) == {"ticketId": 9}
    assert heartbeat == ": keep-alive\n\n"
    assert hub.listener_count == 0


class DummyWebSocket:
    def __init__(self, limit: int = 100):
        self.sent_messages: list[dict] = []
        self._limit = limit
        self._closed = asyncio.Event()

    def close_from_client(self) -> None:
        self._closed.set()

    async def receive(self):
        await self._closed.wait()
        return {"type": "websocket.disconnect", "code": 1000}

    async def send_json(self, message):
        self.sent_messages.append(message)
        if len(self.sent_messages) >= self._limit:
            raise ConnectionResetError


@pytest.mark.asyncio
async def test_websocket_forwards_event_envelopes():
    hub = NotificationHub()
    listener = hub.connect()
    hub.publish("announcement:created", {"id": 1})
    hub.publish("announcement:deleted", {"id": 1})
    websocket = DummyWebSocket(limit=2)

    with pytest.raises(ConnectionResetError):
        await hub.stream_websocket(websocket, listener)

    assert websocket.sent_messages == [
        {"event": "announcement:created", "data": {"id": 1}},
        {"event": "announcement:deleted", "data": {"id": 1}},
    ]


@pytest.mark.asyncio
async def test_websocket_stream_ends_when_client_disconnects_while_idle():
    hub = NotificationHub()
    listener = hub.connect()
    websocket = DummyWebSocket()

    stream = asyncio.create_task(hub.stream_websocket(websocket, listener))
    await asyncio.sleep(0)
    websocket.close_from_client()
    await asyncio.wait_for(stream, timeout=1)

    assert stream.done()
    assert websocket.sent_messages == []
