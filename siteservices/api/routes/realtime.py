from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.responses import StreamingResponse

from siteservices.core.config import get_settings
from siteservices.core.errors import DomainError
from siteservices.dependencies.auth import CurrentUser
from siteservices.dependencies.services import NotificationHubDep

router = APIRouter(prefix="/api/realtime", tags=["realtime"])


@router.get(
    "/stream",
    response_class=StreamingResponse,
    summary="Stream change notifications via Server-Sent Events",
)
async def stream_notifications(_: CurrentUser, hub: NotificationHubDep) -> StreamingResponse:
    listener = hub.connect()
    return StreamingResponse(
        hub.iter_sse(listener),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    hub = getattr(websocket.app.state, "notification_hub", None)
    resolver = getattr(websocket.app.state, "session_resolver", None)
    if hub is None or resolver is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    try:
        await resolver.resolve(websocket.cookies.get(get_settings().session_cookie_name))
    except DomainError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    listener = hub.connect()
    try:
        await hub.stream_websocket(websocket, listener)
    except WebSocketDisconnect:
        return
    finally:
        hub.disconnect(listener)
