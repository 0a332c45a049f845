"""
WebSocket client for connecting to the relay server.

Handles connection, the prepareGame acknowledgement and message passing.
Incoming events are queued for the caller; there is no UI dependency.
"""

import asyncio
import json
import logging
from enum import Enum, auto
from typing import Optional

import websockets
from websockets.asyncio.client import ClientConnection, connect

from client.config import settings
from shared.enums import MessageType
from shared.protocol import (
    AckMessage,
    CreateGameRequest,
    InitSessionRequest,
    JoinGameRequest,
    Message,
    MovePlayedRequest,
    game_request,
)


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection state."""
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    FAILED = auto()


class RelayClient:
    """
    Client for one player.

    Every server message is put on an asyncio queue as a parsed dict.
    prepareGame is acknowledged automatically unless auto_ack is False.
    """

    def __init__(self, url: str | None = None, auto_ack: bool = True):
        self._url = url or settings.server_url
        self._auto_ack = auto_ack

        self._websocket: Optional[ClientConnection] = None
        self._state = ConnectionState.DISCONNECTED
        self._receive_task: Optional[asyncio.Task] = None

        self._events: asyncio.Queue[dict] = asyncio.Queue()

        self.session_id: Optional[str] = None
        self.game_id: Optional[str] = None
        self.player_id: Optional[int] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    async def connect(self) -> bool:
        """
        Connect to the server.

        Returns:
            True if connection successful
        """
        if self._state == ConnectionState.CONNECTED:
            return True

        self._state = ConnectionState.CONNECTING
        try:
            self._websocket = await connect(self._url)
        except (OSError, websockets.InvalidHandshake) as e:
            logger.error(f"Connection to {self._url} failed: {e}")
            self._state = ConnectionState.FAILED
            return False

        self._state = ConnectionState.CONNECTED
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.info(f"Connected to {self._url}")
        return True

    async def disconnect(self) -> None:
        """Disconnect from the server."""
        if self._websocket:
            await self._websocket.close()

        if self._receive_task:
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        self._websocket = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("Disconnected from server")

    async def _receive_loop(self) -> None:
        """Receive messages from server."""
        try:
            async for raw_message in self._websocket:
                try:
                    data = json.loads(raw_message)
                except json.JSONDecodeError as e:
                    logger.error(f"Failed to parse message: {e}")
                    continue
                await self._handle_message(data)

        except websockets.ConnectionClosed:
            logger.info("Connection closed by server")
        finally:
            self._state = ConnectionState.DISCONNECTED

    async def _handle_message(self, data: dict) -> None:
        """Update local state, acknowledge if asked, and queue the event."""
        msg_type = data.get("type")
        payload = data.get("data") or {}

        if msg_type == MessageType.SESSION_CREATED.value:
            self.session_id = payload.get("sessionId")

        elif msg_type == MessageType.GAME_CREATED.value:
            self.game_id = payload.get("gameId")
            self.player_id = payload.get("playerId")

        elif msg_type == MessageType.PREPARE_GAME.value:
            self.game_id = payload.get("gameId")
            self.player_id = payload.get("playerId")
            if self._auto_ack and data.get("request_id"):
                await self.acknowledge(data["request_id"])

        elif msg_type in (MessageType.HOST_LEFT.value, MessageType.PLAYER_LEFT.value):
            self.game_id = None

        await self._events.put(data)

    async def send(self, message: Message | dict) -> None:
        """Send a message to the server."""
        if not self._websocket:
            raise ConnectionError("Not connected to server")

        if isinstance(message, Message):
            data = message.to_json()
        else:
            data = json.dumps(message)

        await self._websocket.send(data)

    async def next_event(self, timeout: float = 5.0) -> dict:
        """Return the next server message."""
        return await asyncio.wait_for(self._events.get(), timeout)

    async def wait_for(self, message_type: MessageType, timeout: float = 5.0) -> dict:
        """
        Return the next message of a given type, dropping others before it.

        Raises:
            asyncio.TimeoutError: if none arrives in time
        """
        async def _wait() -> dict:
            while True:
                event = await self._events.get()
                if event.get("type") == message_type.value:
                    return event

        return await asyncio.wait_for(_wait(), timeout)

    def drain(self) -> list[dict]:
        """Return every queued message without waiting."""
        events = []
        while not self._events.empty():
            events.append(self._events.get_nowait())
        return events

    # =========================================================================
    # Convenience methods for common actions
    # =========================================================================

    async def acknowledge(self, request_id: str) -> None:
        await self.send(AckMessage.create(request_id))

    async def init_session(self, session_id: str | None = None) -> None:
        await self.send(InitSessionRequest.create(session_id))

    async def create_game(self, player_name: str) -> None:
        await self.send(CreateGameRequest.create(player_name))

    async def join_game(self, game_id: str, player_name: str) -> None:
        await self.send(JoinGameRequest.create(game_id, player_name))

    async def play(self, column_index: int) -> None:
        await self.send(MovePlayedRequest.create(self.game_id, column_index))

    async def request_reset_board(self) -> None:
        await self.send(game_request(MessageType.REQUEST_RESET_BOARD, self.game_id))

    async def confirm_reset_board(self) -> None:
        await self.send(game_request(MessageType.CONFIRM_RESET_BOARD, self.game_id))

    async def request_reset_scores(self) -> None:
        await self.send(game_request(MessageType.REQUEST_RESET_SCORES, self.game_id))

    async def confirm_reset_scores(self) -> None:
        await self.send(game_request(MessageType.CONFIRM_RESET_SCORES, self.game_id))

    async def reject_reset(self) -> None:
        await self.send(game_request(MessageType.REJECT_RESET, self.game_id))

    async def reset_board(self) -> None:
        await self.send(game_request(MessageType.RESET_BOARD, self.game_id))

    async def reset_scores(self) -> None:
        await self.send(game_request(MessageType.RESET_SCORES, self.game_id))
