"""Per-account real-time fan-out.

Connections join rooms keyed by account id. ``publish`` enqueues an event on
every member's outbound queue and returns immediately; a per-connection sender
task drains the queue onto the websocket. Delivery is at-most-once: a full
queue drops the event and nothing is persisted.

``publish`` may be called from the event loop (websocket handlers) or from the
worker threads that run sync endpoints. Off-loop calls are marshalled with
``call_soon_threadsafe`` so room bookkeeping only ever happens on the loop.
"""
import asyncio
import logging
from typing import Any, Optional
from uuid import UUID, uuid4

from starlette.websockets import WebSocket

from .permissions import Actor

logger = logging.getLogger("amp-core.realtime")


class Connection:
    """A joined websocket with its outbound queue."""

    def __init__(self, websocket: WebSocket, actor: Optional[Actor], queue_size: int):
        self.id = uuid4().hex[:12]
        self.websocket = websocket
        self.actor = actor
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.rooms: set[str] = set()
        self.sender: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        who = self.actor.email if self.actor else "anonymous"
        return f"<Connection {self.id} ({who})>"


def _room_key(account_id: UUID | str) -> str:
    return str(account_id)


class RealtimeHub:
    """Registry of rooms and the connections subscribed to them."""

    def __init__(self, queue_size: int = 100, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.queue_size = queue_size
        self._loop = loop
        self._rooms: dict[str, set[Connection]] = {}
        self._connections: set[Connection] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def room_size(self, account_id: UUID | str) -> int:
        return len(self._rooms.get(_room_key(account_id), ()))

    async def connect(self, websocket: WebSocket, actor: Optional[Actor] = None) -> Connection:
        """Accept the websocket and start its sender task."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        await websocket.accept()
        connection = Connection(websocket, actor, self.queue_size)
        connection.sender = asyncio.create_task(self._drain(connection))
        self._connections.add(connection)
        logger.info(f"User connected: {connection}")
        return connection

    def join(self, connection: Connection, account_id: UUID | str) -> None:
        key = _room_key(account_id)
        self._rooms.setdefault(key, set()).add(connection)
        connection.rooms.add(key)
        logger.info(f"{connection} joined room: account-{key}")

    def leave(self, connection: Connection, account_id: UUID | str) -> None:
        key = _room_key(account_id)
        members = self._rooms.get(key)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._rooms[key]
        connection.rooms.discard(key)

    def disconnect(self, connection: Connection) -> None:
        """Remove a connection from every room and stop its sender."""
        for key in list(connection.rooms):
            self.leave(connection, key)
        self._connections.discard(connection)
        if connection.sender is not None and not connection.sender.done():
            connection.sender.cancel()
        logger.info(f"User disconnected: {connection}")

    def send(self, connection: Connection, event: str, payload: Any) -> bool:
        """Queue an event for a single connection. Returns False if it was dropped."""
        try:
            connection.queue.put_nowait({"event": event, "data": payload})
            return True
        except asyncio.QueueFull:
            logger.warning(f"Dropping {event} for {connection}: outbound queue full")
            return False

    def publish(
        self,
        account_id: UUID | str,
        event: str,
        payload: Any,
        exclude: Optional[Connection] = None,
    ) -> None:
        """
        Deliver an event to every connection in an account's room.

        Never blocks. Safe to call from any thread.

        Args:
            account_id: Room to deliver to
            event: Event name, e.g. "task:updated"
            payload: JSON-serialisable event body
            exclude: Connection to skip (usually the sender)
        """
        if self._loop is None or self._loop.is_closed():
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._fan_out(_room_key(account_id), event, payload, exclude)
        else:
            self._loop.call_soon_threadsafe(self._fan_out, _room_key(account_id), event, payload, exclude)

    def _fan_out(self, key: str, event: str, payload: Any, exclude: Optional[Connection]) -> None:
        members = list(self._rooms.get(key, ()))
        for connection in members:
            if connection is exclude:
                continue
            self.send(connection, event, payload)
        logger.debug(f"Published {event} to account-{key} ({len(members)} members)")

    async def _drain(self, connection: Connection) -> None:
        while True:
            message = await connection.queue.get()
            try:
                await connection.websocket.send_json(message)
            except Exception as e:
                # Peer went away mid-send; the receive loop will clean up
                logger.info(f"Stopped sending to {connection}: {e}")
                return

    async def close(self) -> None:
        """Disconnect everything (application shutdown)."""
        senders = [c.sender for c in self._connections if c.sender is not None]
        for connection in list(self._connections):
            self.disconnect(connection)
        if senders:
            await asyncio.gather(*senders, return_exceptions=True)
