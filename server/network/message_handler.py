"""
Message handler for routing client messages to game actions.

Parses incoming frames and dispatches each to exactly one handler. Every
inbound message type must have a handler; the table is checked when the
handler is built.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine

from server.network.connection_manager import ConnectionManager
from server.network.disconnects import DisconnectHandler
from server.network.membership import MembershipProtocol
from server.network.resets import ResetNegotiationProtocol
from server.network.session_registry import SessionRegistry
from server.network.turns import TurnCoordinator
from shared.enums import INBOUND_MESSAGE_TYPES, MessageType
from shared.protocol import (
    ErrorMessage,
    Message,
    SessionCreatedMessage,
    UnknownMessageTypeError,
    parse_message,
)


logger = logging.getLogger(__name__)

Handler = Callable[[str, Message], Awaitable[Any]]


class MessageHandler:
    """
    Routes incoming messages to the session, membership, turn and reset
    components.

    Handlers send their own replies and broadcasts through the
    ConnectionManager. A move for an unknown game raises GameNotFoundError
    out of handle_message; it is not turned into a reply.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        sessions: SessionRegistry,
        membership: MembershipProtocol,
        turns: TurnCoordinator,
        resets: ResetNegotiationProtocol,
        disconnects: DisconnectHandler
    ):
        self._connections = connections
        self._sessions = sessions
        self._membership = membership
        self._turns = turns
        self._resets = resets
        self._disconnects = disconnects

        # Join rendezvous still waiting for acknowledgements
        self._background: set[asyncio.Task] = set()

        self._handlers: dict[MessageType, Handler] = {
            # Session identity
            MessageType.INIT_SESSION: self._handle_init_session,

            # Lobby
            MessageType.CREATE_GAME: self._handle_create_game,
            MessageType.JOIN_GAME: self._handle_join_game,
            MessageType.ACK: self._handle_ack,

            # Turns
            MessageType.MOVE_PLAYED: self._handle_move_played,

            # Negotiated resets
            MessageType.REQUEST_RESET_BOARD: self._handle_request_reset_board,
            MessageType.CONFIRM_RESET_BOARD: self._handle_confirm_reset_board,
            MessageType.REQUEST_RESET_SCORES: self._handle_request_reset_scores,
            MessageType.CONFIRM_RESET_SCORES: self._handle_confirm_reset_scores,
            MessageType.REJECT_RESET: self._handle_reject_reset,

            # Unconditional resets
            MessageType.RESET_BOARD: self._handle_reset_board,
            MessageType.RESET_SCORES: self._handle_reset_scores,
        }

        missing = INBOUND_MESSAGE_TYPES - self._handlers.keys()
        if missing:
            raise RuntimeError(f"No handler for message types: {sorted(t.value for t in missing)}")

    @property
    def handled_types(self) -> frozenset[MessageType]:
        return frozenset(self._handlers)

    async def handle_message(self, connection_id: str, message: Message | str | bytes | dict) -> None:
        """
        Handle an incoming message from a connection.

        Args:
            connection_id: ID of the connection sending the message
            message: The message (Message object, JSON string, or dict)
        """
        # Parse message if needed
        if not isinstance(message, Message):
            try:
                if isinstance(message, dict):
                    message = Message.from_dict(message)
                else:
                    message = parse_message(message)
            except UnknownMessageTypeError as e:
                logger.warning(f"Unknown message type from {connection_id}: {e.type_name}")
                await self._connections.send_to(
                    connection_id,
                    ErrorMessage.create(str(e), "UNKNOWN_MESSAGE_TYPE")
                )
                return
            except Exception as e:
                logger.error(f"Failed to parse message from {connection_id}: {e}")
                await self._connections.send_to(
                    connection_id,
                    ErrorMessage.create(f"Invalid message format: {e}", "PARSE_ERROR")
                )
                return

        handler = self._handlers.get(message.type)
        if not handler:
            # Outbound-only types sent by a client
            await self._connections.send_to(
                connection_id,
                ErrorMessage.create(
                    f"Unknown message type: {message.type.value}",
                    "UNKNOWN_MESSAGE_TYPE",
                    message.request_id
                )
            )
            return

        logger.debug(f"{message.type.value} from {connection_id}: {message.data}")
        await handler(connection_id, message)

    async def handle_disconnect(self, connection_id: str) -> None:
        await self._disconnects.handle_disconnect(connection_id)

    # =========================================================================
    # Background tasks
    # =========================================================================

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception():
            logger.error("Background task failed", exc_info=task.exception())

    async def wait_for_background(self) -> None:
        """Wait for every pending rendezvous to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def cancel_background(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)

    @property
    def pending_rendezvous(self) -> int:
        return len(self._background)

    # =========================================================================
    # Session and Lobby Handlers
    # =========================================================================

    async def _handle_init_session(self, connection_id: str, message: Message) -> None:
        new_session_id = self._sessions.init_session(connection_id, message.data.get("sessionId"))
        if new_session_id:
            await self._connections.send_to(connection_id, SessionCreatedMessage.create(new_session_id))

    async def _handle_create_game(self, connection_id: str, message: Message) -> None:
        await self._membership.create_game(connection_id, message.data.get("playerName"))

    async def _handle_join_game(self, connection_id: str, message: Message) -> None:
        rendezvous = await self._membership.join_game(
            connection_id,
            message.data.get("gameId"),
            message.data.get("playerName")
        )
        if rendezvous:
            # The joining connection must stay free to read its own ack
            self._spawn(self._membership.start_when_ready(rendezvous))

    async def _handle_ack(self, connection_id: str, message: Message) -> None:
        self._connections.acknowledge(connection_id, message.request_id)

    # =========================================================================
    # Game Handlers
    # =========================================================================

    async def _handle_move_played(self, connection_id: str, message: Message) -> None:
        await self._turns.move_played(
            connection_id,
            message.data.get("gameId"),
            message.data.get("columnIndex")
        )

    async def _handle_request_reset_board(self, connection_id: str, message: Message) -> None:
        await self._resets.request_reset_board(connection_id, message.data.get("gameId"))

    async def _handle_confirm_reset_board(self, connection_id: str, message: Message) -> None:
        await self._resets.confirm_reset_board(connection_id, message.data.get("gameId"))

    async def _handle_request_reset_scores(self, connection_id: str, message: Message) -> None:
        await self._resets.request_reset_scores(connection_id, message.data.get("gameId"))

    async def _handle_confirm_reset_scores(self, connection_id: str, message: Message) -> None:
        await self._resets.confirm_reset_scores(connection_id, message.data.get("gameId"))

    async def _handle_reject_reset(self, connection_id: str, message: Message) -> None:
        await self._resets.reject_reset(connection_id, message.data.get("gameId"))

    async def _handle_reset_board(self, connection_id: str, message: Message) -> None:
        await self._resets.reset_board(connection_id, message.data.get("gameId"))

    async def _handle_reset_scores(self, connection_id: str, message: Message) -> None:
        await self._resets.reset_scores(connection_id, message.data.get("gameId"))
