"""
Board and score resets.

Each reset exists twice: a negotiated path (request, then confirm or reject
from the other player) and an unconditional path any player may fire. The
two paths are independent and nothing stops a reset from crossing a move in
flight.
"""

import logging
import random

from server.game import GameDirectory, GameSession, Player, new_grid
from server.network.connection_manager import ConnectionManager
from shared.constants import HOST_PLAYER_ID, PLAYER_IDS
from shared.enums import GameState, MessageType
from shared.protocol import (
    BoardResetMessage,
    Message,
    ResetRejectedMessage,
    ResetRequestedMessage,
)


logger = logging.getLogger(__name__)


class ResetNegotiationProtocol:
    """Request/confirm/reject flows for resetting the board or the scores."""

    def __init__(self, directory: GameDirectory, connections: ConnectionManager, rng: random.Random):
        self._directory = directory
        self._connections = connections
        self._rng = rng

    def _get_game(self, game_id: str, action: str) -> GameSession | None:
        session = self._directory.get(game_id)
        if session is None:
            logger.info(f"{action} ignored: game {game_id} not found")
        return session

    def _get_participant(self, connection_id: str, game_id: str, action: str) -> tuple[GameSession, Player] | None:
        """The game and the sender's Player, or None if either is missing."""
        session = self._get_game(game_id, action)
        if session is None:
            return None

        player = session.get_player(connection_id)
        if player is None:
            logger.info(f"{action} from {connection_id} ignored: not a player in game {game_id}")
            return None
        return session, player

    def _get_full_game(self, connection_id: str, game_id: str, action: str) -> GameSession | None:
        # A turn exists only once both players are in
        found = self._get_participant(connection_id, game_id, action)
        if found is None:
            return None

        session, _ = found
        if not session.is_full:
            logger.info(f"{action} ignored: game {game_id} is waiting for a second player")
            return None
        return session

    # =========================================================================
    # Board
    # =========================================================================

    async def request_reset_board(self, connection_id: str, game_id: str) -> bool:
        """Ask the other player to confirm a board reset."""
        found = self._get_participant(connection_id, game_id, "requestResetBoard")
        if found is None:
            return False

        session, requester = found
        other = session.other_player(connection_id)
        if other is None:
            return False

        return await self._connections.send_to(
            other.connection_id,
            ResetRequestedMessage.create(MessageType.RESET_BOARD_REQUESTED, requester.name)
        )

    async def confirm_reset_board(self, connection_id: str, game_id: str) -> bool:
        """Clear the board and draw a new starting player."""
        session = self._get_full_game(connection_id, game_id, "confirmResetBoard")
        if session is None:
            return False

        session.current_player = self._rng.choice(PLAYER_IDS)
        session.state = GameState.PLAYING
        session.grid = new_grid()

        logger.info(f"Board of game {game_id} reset, player {session.current_player} begins")

        await self._connections.broadcast(
            game_id,
            BoardResetMessage.create(session.current_player, session.grid)
        )
        return True

    async def reset_board(self, connection_id: str, game_id: str) -> bool:
        """Unconditional reset: the host starts and no grid is sent."""
        session = self._get_full_game(connection_id, game_id, "resetBoard")
        if session is None:
            return False

        session.current_player = HOST_PLAYER_ID
        session.state = GameState.PLAYING

        await self._connections.broadcast(game_id, BoardResetMessage.create())
        return True

    # =========================================================================
    # Scores
    # =========================================================================

    async def request_reset_scores(self, connection_id: str, game_id: str) -> bool:
        """Ask the rest of the room to confirm a score reset."""
        found = self._get_participant(connection_id, game_id, "requestResetScores")
        if found is None:
            return False

        _, requester = found
        await self._connections.broadcast(
            game_id,
            ResetRequestedMessage.create(MessageType.RESET_SCORES_REQUESTED, requester.name),
            exclude_connection_id=connection_id
        )
        return True

    async def confirm_reset_scores(self, connection_id: str, game_id: str) -> bool:
        # Scores live on the clients; the server only relays the decision
        if self._get_participant(connection_id, game_id, "confirmResetScores") is None:
            return False

        await self._connections.broadcast(game_id, Message(type=MessageType.RESET_SCORES))
        return True

    async def reset_scores(self, connection_id: str, game_id: str) -> bool:
        if self._get_participant(connection_id, game_id, "resetScores") is None:
            return False

        await self._connections.broadcast(game_id, Message(type=MessageType.SCORES_RESET))
        return True

    # =========================================================================
    # Rejection
    # =========================================================================

    async def reject_reset(self, connection_id: str, game_id: str) -> bool:
        """Tell both players who turned down the pending reset."""
        found = self._get_participant(connection_id, game_id, "rejectReset")
        if found is None:
            return False

        _, rejecter = found
        await self._connections.broadcast(game_id, ResetRejectedMessage.create(rejecter.name))
        return True
