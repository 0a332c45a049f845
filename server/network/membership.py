"""
Creating and joining games.

Joining is two-phase: both players are sent prepareGame and must acknowledge
it before gameStarted is broadcast, so neither client receives gameplay
messages before its board is ready.
"""

import logging
import random
from dataclasses import dataclass

from server.game import (
    GameDirectory,
    GameSession,
    Player,
    normalize_name,
    validate_create,
    validate_join,
)
from server.network.connection_manager import ConnectionManager
from server.network.rendezvous import AcknowledgementBarrier
from server.network.session_registry import SessionRegistry
from shared.constants import GUEST_PLAYER_ID, HOST_PLAYER_ID, PLAYER_IDS
from shared.enums import GameState
from shared.protocol import (
    GameCreatedMessage,
    GameErrorMessage,
    GameStartedMessage,
    PrepareGameMessage,
)


logger = logging.getLogger(__name__)


@dataclass
class Rendezvous:
    """A join waiting for both players to acknowledge prepareGame."""
    session: GameSession
    host: Player
    guest: Player
    barrier: AcknowledgementBarrier

    @property
    def game_id(self) -> str:
        return self.session.id


class MembershipProtocol:
    """Validates and executes game creation and joining."""

    def __init__(
        self,
        directory: GameDirectory,
        connections: ConnectionManager,
        sessions: SessionRegistry,
        rng: random.Random
    ):
        self._directory = directory
        self._connections = connections
        self._sessions = sessions
        self._rng = rng

    async def create_game(self, connection_id: str, player_name) -> GameSession | None:
        """
        Create a game hosted by this connection.

        Replies gameCreated to the creator, or gameError on a bad name.
        """
        name = normalize_name(player_name)
        result = validate_create(name)
        if not result.valid:
            await self._connections.send_to(
                connection_id,
                GameErrorMessage.create(result.message, result.error.value)
            )
            return None

        host = Player(
            connection_id=connection_id,
            name=name,
            session_id=self._sessions.get(connection_id),
        )
        session = self._directory.create(host)
        self._connections.join_room(connection_id, session.id)

        await self._connections.send_to(
            connection_id,
            GameCreatedMessage.create(session.id, HOST_PLAYER_ID, name)
        )
        return session

    async def join_game(self, connection_id: str, game_id, player_name) -> Rendezvous | None:
        """
        Add this connection as the guest and send both players prepareGame.

        Returns:
            The pending Rendezvous, or None after replying gameError
        """
        name = normalize_name(player_name)
        session = self._directory.get(game_id)
        result = validate_join(session, game_id, name, connection_id)
        if not result.valid:
            logger.info(f"Join of game {game_id} by {connection_id} refused: {result.error.value}")
            await self._connections.send_to(
                connection_id,
                GameErrorMessage.create(result.message, result.error.value)
            )
            return None

        guest = Player(
            connection_id=connection_id,
            name=name,
            session_id=self._sessions.get(connection_id),
        )
        session.add_player(guest)
        self._connections.join_room(connection_id, session.id)
        host = session.host

        logger.info(f"Player {name} ({connection_id}) joined game {session.id}")

        barrier = AcknowledgementBarrier(self._connections)
        host_request = barrier.expect(host.connection_id)
        guest_request = barrier.expect(guest.connection_id)

        await self._connections.send_to(
            host.connection_id,
            PrepareGameMessage.create(session.id, HOST_PLAYER_ID, host.name, guest.name, host_request)
        )
        await self._connections.send_to(
            guest.connection_id,
            PrepareGameMessage.create(session.id, GUEST_PLAYER_ID, guest.name, host.name, guest_request)
        )

        return Rendezvous(session=session, host=host, guest=guest, barrier=barrier)

    async def start_when_ready(self, rendezvous: Rendezvous) -> bool:
        """
        Wait for both acknowledgements, then pick a starting player and
        broadcast gameStarted.

        Returns:
            True if the game started, False if the rendezvous was abandoned
        """
        if not await rendezvous.barrier.wait():
            logger.info(f"Game {rendezvous.game_id} not started: a player left during prepareGame")
            return False

        session = rendezvous.session
        # Either player may have left, and the game been torn down, while we waited
        if (
            self._directory.get(session.id) is not session
            or session.player_number(rendezvous.host.connection_id) != HOST_PLAYER_ID
            or session.player_number(rendezvous.guest.connection_id) != GUEST_PLAYER_ID
        ):
            logger.info(f"Game {session.id} not started: membership changed during prepareGame")
            return False

        session.current_player = self._rng.choice(PLAYER_IDS)
        session.state = GameState.PLAYING

        logger.info(f"Game {session.id} started, player {session.current_player} begins")

        await self._connections.broadcast(
            session.id,
            GameStartedMessage.create(session.current_player, session.host.name, session.guest.name)
        )
        return True
