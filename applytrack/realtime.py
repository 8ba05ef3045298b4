"""
Per-user realtime fan-out.

A ``ConnectionRegistry`` maps each user id to the live connections that joined
that user's room. ``NotificationHub`` wraps it with the join / leave / emit
contract used by the websocket endpoint and the job service. Delivery is best
effort: there is no queue or replay, a client that was offline reconciles by
listing its jobs again.

The registry is shared by every connection handler and by background emit
tasks, so all access to its tables goes through one lock. Sends happen outside
the lock on a snapshot of the room.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from typing import Any, Protocol

from fastapi import WebSocket
from starlette.requests import HTTPConnection

LOGGER = logging.getLogger(__name__)

# Server -> client events
EVENT_NEW_JOB = "new-job"
EVENT_JOB_CHANGED = "job-changed"
EVENT_JOB_REMOVED = "job-removed"

# Client -> server messages a joined connection may relay to its own room
RELAYED_EVENTS = {
    "job-created": EVENT_NEW_JOB,
    "job-updated": EVENT_JOB_CHANGED,
    "job-deleted": EVENT_JOB_REMOVED,
}


class Connection(Protocol):
    id: str

    async def send(self, event: str, data: Any) -> None: ...


class WebSocketConnection:
    """A websocket seen through the hub's ``Connection`` interface."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex

    async def send(self, event: str, data: Any) -> None:
        await self.websocket.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id}>"


class ConnectionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rooms: dict[str, dict[str, Connection]] = {}
        self._membership: dict[str, str] = {}

    def add(self, connection: Connection, user_id: str) -> str | None:
        """Put ``connection`` in ``user_id``'s room; return the room it left, if any."""
        with self._lock:
            previous = self._membership.get(connection.id)
            if previous is not None and previous != user_id:
                self._discard(previous, connection.id)
            self._rooms.setdefault(user_id, {})[connection.id] = connection
            self._membership[connection.id] = user_id
            return previous if previous != user_id else None

    def remove(self, connection_id: str) -> str | None:
        with self._lock:
            user_id = self._membership.pop(connection_id, None)
            if user_id is not None:
                self._discard(user_id, connection_id)
            return user_id

    def members(self, user_id: str) -> list[Connection]:
        with self._lock:
            return list(self._rooms.get(user_id, {}).values())

    def room_of(self, connection_id: str) -> str | None:
        with self._lock:
            return self._membership.get(connection_id)

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._membership)

    def _discard(self, user_id: str, connection_id: str) -> None:
        room = self._rooms.get(user_id)
        if room is None:
            return
        room.pop(connection_id, None)
        if not room:
            del self._rooms[user_id]


class NotificationHub:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry

    def join(self, connection: Connection, user_id: str) -> None:
        """Register ``connection`` in the room of ``user_id``.

        ``user_id`` must come from the authenticated identity of the connection,
        never from a client message; the hub does not check it again.
        """
        previous = self.registry.add(connection, user_id)
        if previous is not None:
            LOGGER.info("Connection %s moved from room %s to %s", connection.id, previous, user_id)
        else:
            LOGGER.info("Connection %s joined room %s", connection.id, user_id)

    def leave(self, connection: Connection) -> None:
        """Drop ``connection`` from its room. Safe to call more than once."""
        user_id = self.registry.remove(connection.id)
        if user_id is not None:
            LOGGER.info("Connection %s left room %s", connection.id, user_id)

    def room_of(self, connection: Connection) -> str | None:
        return self.registry.room_of(connection.id)

    async def emit(
        self,
        user_id: str,
        event: str,
        payload: Any,
        exclude: str | None = None,
    ) -> int:
        """Send ``event`` to every connection in ``user_id``'s room except ``exclude``.

        Returns the number of successful deliveries. A connection whose send
        fails is logged and removed from its room; the failure never propagates.
        """
        targets = [c for c in self.registry.members(user_id) if c.id != exclude]
        if not targets:
            return 0
        results = await asyncio.gather(
            *(connection.send(event, payload) for connection in targets),
            return_exceptions=True,
        )
        delivered = 0
        for connection, result in zip(targets, results):
            if isinstance(result, BaseException):
                LOGGER.warning(
                    "Dropping connection %s after failed %s delivery: %s",
                    connection.id, event, result,
                )
                self.leave(connection)
            else:
                delivered += 1
        LOGGER.debug("Emitted %s to %d/%d connection(s) of user %s", event, delivered, len(targets), user_id)
        return delivered


def get_hub(connection: HTTPConnection) -> NotificationHub:
    """The hub owned by the running application (see main.create_app)."""
    return connection.app.state.hub
