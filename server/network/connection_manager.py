"""
Connection manager for WebSocket clients.

Tracks connected clients and the rooms (broadcast groups) they belong to.
Handles sending messages to individual connections or broadcasting to a room,
and keeps the futures for acknowledgements a client still owes the server.

State changes here are synchronous so that a handler can finish mutating
before its first await. Only sending is a coroutine.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from shared.protocol import Message


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionLostError(ConnectionError):
    """The connection that owed an acknowledgement went away."""

    def __init__(self, connection_id: str):
        super().__init__(f"Connection {connection_id} closed before acknowledging")
        self.connection_id = connection_id


@dataclass
class ClientConnection:
    """Tracks a connected client's state."""
    connection_id: str
    websocket: Any
    rooms: set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)

    def update_activity(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = _utcnow()


@dataclass
class PendingAck:
    connection_id: str
    future: asyncio.Future


class ConnectionManager:
    """
    Manages WebSocket connections and room membership.

    Provides methods for:
    - Registering and dropping connections
    - Joining and leaving rooms
    - Sending to one connection or broadcasting to a room
    - Waiting for acknowledgements of messages sent with a request_id
    """

    def __init__(self, id_factory: Callable[[], str] | None = None):
        # connection_id -> ClientConnection
        self._connections: dict[str, ClientConnection] = {}

        # room -> set of connection_ids
        self._rooms: dict[str, set[str]] = {}

        # request_id -> PendingAck
        self._pending_acks: dict[str, PendingAck] = {}

        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    def connect(self, websocket: Any) -> ClientConnection:
        """Register a new connection under a fresh connection id."""
        connection_id = self._id_factory()
        connection = ClientConnection(connection_id=connection_id, websocket=websocket)
        self._connections[connection_id] = connection

        logger.info(f"Connection {connection_id} opened")

        return connection

    def disconnect(self, connection_id: str) -> ClientConnection | None:
        """
        Drop a connection.

        Removes it from every room and fails any acknowledgement it still owes.

        Returns:
            The ClientConnection if found, None otherwise
        """
        connection = self._connections.pop(connection_id, None)
        if not connection:
            return None

        for room in list(connection.rooms):
            self._remove_from_room(connection_id, room)
        connection.rooms.clear()

        for request_id, pending in list(self._pending_acks.items()):
            if pending.connection_id == connection_id:
                del self._pending_acks[request_id]
                if not pending.future.done():
                    pending.future.set_exception(ConnectionLostError(connection_id))

        logger.info(f"Connection {connection_id} closed")

        return connection

    # =========================================================================
    # Rooms
    # =========================================================================

    def join_room(self, connection_id: str, room: str) -> bool:
        """
        Add a connection to a room.

        Returns:
            True if successful, False if the connection is unknown
        """
        connection = self._connections.get(connection_id)
        if not connection:
            return False

        self._rooms.setdefault(room, set()).add(connection_id)
        connection.rooms.add(room)
        logger.debug(f"Connection {connection_id} joined room {room}")
        return True

    def leave_room(self, connection_id: str, room: str) -> None:
        """Remove a connection from a room. Unknown connections are ignored."""
        self._remove_from_room(connection_id, room)
        connection = self._connections.get(connection_id)
        if connection:
            connection.rooms.discard(room)

    def _remove_from_room(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room]

    # =========================================================================
    # Queries
    # =========================================================================

    def get_connection(self, connection_id: str) -> ClientConnection | None:
        return self._connections.get(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def get_room_members(self, room: str) -> set[str]:
        """Connection ids currently in a room."""
        return self._rooms.get(room, set()).copy()

    def is_in_room(self, connection_id: str, room: str) -> bool:
        return connection_id in self._rooms.get(room, set())

    # =========================================================================
    # Messaging
    # =========================================================================

    async def send_to(self, connection_id: str, message: Message | dict | str) -> bool:
        """
        Send a message to one connection.

        Returns:
            True if sent successfully, False if not connected or the send failed
        """
        connection = self._connections.get(connection_id)
        if not connection:
            return False
        return await self._send(connection, message)

    async def send_to_many(self, connection_ids: Iterable[str], message: Message | dict | str) -> int:
        """
        Send a message to each of the given connections.

        Returns:
            Number of connections the message was sent to
        """
        sent_count = 0
        for connection_id in list(connection_ids):
            if await self.send_to(connection_id, message):
                sent_count += 1
        return sent_count

    async def broadcast(
        self,
        room: str,
        message: Message | dict | str,
        exclude_connection_id: str | None = None
    ) -> int:
        """
        Broadcast a message to every connection in a room.

        Membership is read when the call is made, before any send.

        Returns:
            Number of connections the message was sent to
        """
        members = self.get_room_members(room)
        if exclude_connection_id:
            members.discard(exclude_connection_id)
        return await self.send_to_many(sorted(members), message)

    async def _send(self, connection: ClientConnection, message: Message | dict | str) -> bool:
        """Internal helper to send a message to a websocket."""
        try:
            if isinstance(message, Message):
                data = message.to_json()
            elif isinstance(message, dict):
                data = json.dumps(message)
            else:
                data = message

            await connection.websocket.send(data)
            connection.update_activity()

            return True

        except Exception as e:
            logger.error(f"Failed to send message to {connection.connection_id}: {e}")
            return False

    # =========================================================================
    # Acknowledgements
    # =========================================================================

    def expect_ack(self, connection_id: str, request_id: str) -> asyncio.Future:
        """
        Register an acknowledgement owed by a connection.

        The returned future resolves when acknowledge() is called with the
        same request id from the same connection, and fails with
        ConnectionLostError if the connection drops first.
        """
        future = asyncio.get_running_loop().create_future()
        if connection_id not in self._connections:
            future.set_exception(ConnectionLostError(connection_id))
            return future

        self._pending_acks[request_id] = PendingAck(connection_id, future)
        return future

    def acknowledge(self, connection_id: str, request_id: str | None) -> bool:
        """
        Resolve a pending acknowledgement.

        Returns:
            True if an acknowledgement from this connection was pending
        """
        pending = self._pending_acks.get(request_id) if request_id else None
        if not pending or pending.connection_id != connection_id:
            logger.debug(f"Unexpected ack {request_id} from {connection_id}")
            return False

        del self._pending_acks[request_id]
        if not pending.future.done():
            pending.future.set_result(None)
        return True

    def discard_ack(self, request_id: str) -> None:
        """Stop waiting for an acknowledgement."""
        pending = self._pending_acks.pop(request_id, None)
        if pending and not pending.future.done():
            pending.future.cancel()

    @property
    def pending_ack_count(self) -> int:
        return len(self._pending_acks)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """Get connection statistics."""
        return {
            "total_connections": len(self._connections),
            "active_rooms": len(self._rooms),
            "pending_acks": len(self._pending_acks),
            "connections_per_room": {
                room: len(members)
                for room, members in self._rooms.items()
            },
        }
