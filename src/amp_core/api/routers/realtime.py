"""WebSocket endpoint for per-account real-time events.

Clients connect to ``/ws?token=<bearer token>`` and exchange JSON frames of
the form ``{"event": "<name>", "data": {...}}``. Every event except
``join:room`` is scoped by ``data.accountId`` and requires the connection to
have joined that account's room.
"""
import json
import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from amp_core import crud, permissions
from amp_core.database import SessionLocal
from amp_core.errors import InvalidTokenError
from amp_core.permissions import Actor
from amp_core.realtime import Connection, RealtimeHub
from amp_core.security import get_token_issuer

logger = logging.getLogger("amp-core.realtime")

router = APIRouter(tags=["realtime"])

# Relayed verbatim to the whole room, sender included
BROADCAST_EVENTS = {
    "message:send": "message:received",
    "task:updated": "task:updated",
    "account:statusChange": "account:statusChange",
}

# Relayed to everyone but the sender, restricted to these fields
PROJECTED_EVENTS = {
    "user:typing": ("userId", "accountId", "isTyping"),
    "message:read": ("messageId", "accountId", "userId"),
}


def _parse_account_id(value: Any) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _can_join(actor: Actor, account_id: UUID) -> Optional[str]:
    """Return None if the actor may join the room, otherwise the reason."""
    with SessionLocal() as db:
        account = crud.get_account_summary(db, account_id)
    if not account:
        return "Account not found"
    if not permissions.can_read_account(actor, account):
        return "You are not authorized to join this room"
    return None


async def _join_room(hub: RealtimeHub, connection: Connection, data: Any) -> None:
    # Accept both a bare id and {"accountId": id}
    raw = data.get("accountId") if isinstance(data, dict) else data
    account_id = _parse_account_id(raw)
    if account_id is None:
        hub.send(connection, "error", {"message": "Invalid account ID"})
        return

    reason = await run_in_threadpool(_can_join, connection.actor, account_id)
    if reason:
        logger.warning(f"{connection} refused room account-{account_id}: {reason}")
        hub.send(connection, "error", {"message": reason, "accountId": str(account_id)})
        return

    hub.join(connection, account_id)
    hub.send(connection, "room:joined", {"accountId": str(account_id)})


def _relay(hub: RealtimeHub, connection: Connection, event: str, data: Any) -> None:
    if not isinstance(data, dict):
        hub.send(connection, "error", {"message": f"{event} requires an object payload"})
        return

    account_id = _parse_account_id(data.get("accountId"))
    if account_id is None:
        hub.send(connection, "error", {"message": "Invalid account ID"})
        return
    if str(account_id) not in connection.rooms:
        hub.send(connection, "error", {"message": "Join the room first", "accountId": str(account_id)})
        return

    if event in BROADCAST_EVENTS:
        hub.publish(account_id, BROADCAST_EVENTS[event], data)
    else:
        projected = {field: data.get(field) for field in PROJECTED_EVENTS[event]}
        hub.publish(account_id, event, projected, exclude=connection)


async def _dispatch(hub: RealtimeHub, connection: Connection, frame: str) -> None:
    try:
        message = json.loads(frame)
    except json.JSONDecodeError:
        hub.send(connection, "error", {"message": "Frames must be JSON"})
        return
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        hub.send(connection, "error", {"message": "Frames must look like {\"event\": ..., \"data\": ...}"})
        return

    event = message["event"]
    data = message.get("data")
    if event == "join:room":
        await _join_room(hub, connection, data)
    elif event == "leave:room":
        account_id = _parse_account_id(data.get("accountId") if isinstance(data, dict) else data)
        if account_id is not None:
            hub.leave(connection, account_id)
    elif event in BROADCAST_EVENTS or event in PROJECTED_EVENTS:
        _relay(hub, connection, event, data)
    else:
        hub.send(connection, "error", {"message": f"Unknown event: {event}"})


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Authenticate, then relay room events until the client goes away."""
    hub: RealtimeHub = websocket.app.state.hub

    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        claims = get_token_issuer().verify(token)
    except InvalidTokenError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    actor = Actor(id=claims.id, email=claims.email, role=claims.role)
    connection = await hub.connect(websocket, actor)
    try:
        while True:
            frame = await websocket.receive_text()
            await _dispatch(hub, connection, frame)
    except WebSocketDisconnect as e:
        logger.debug(f"{connection} closed with code {e.code}")
    finally:
        hub.disconnect(connection)
