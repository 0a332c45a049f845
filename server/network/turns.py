"""
Turn coordination.

Only the current player's move is relayed. Column bounds and fullness are
the clients' business; the server relays the column index as sent.
"""

import logging
from typing import Any

from server.game import GameDirectory, GameNotFoundError
from server.network.connection_manager import ConnectionManager
from shared.constants import GUEST_PLAYER_ID, HOST_PLAYER_ID
from shared.protocol import OpponentPlayedMessage


logger = logging.getLogger(__name__)


class TurnCoordinator:
    """Enforces whose turn it is and advances it."""

    def __init__(self, directory: GameDirectory, connections: ConnectionManager):
        self._directory = directory
        self._connections = connections

    async def move_played(self, connection_id: str, game_id: str, column_index: Any) -> bool:
        """
        Relay a move if it comes from the current player.

        Raises:
            GameNotFoundError: if the game does not exist

        Returns:
            True if the move was relayed, False if it was ignored
        """
        session = self._directory.get(game_id)
        if session is None:
            raise GameNotFoundError(game_id)

        player_number = session.player_number(connection_id)
        if player_number is None:
            logger.info(f"Move from {connection_id} ignored: not a player in game {game_id}")
            return False

        if session.current_player != player_number:
            logger.info(f"Move from player {player_number} in game {game_id} ignored: not their turn")
            return False

        next_player = GUEST_PLAYER_ID if player_number == HOST_PLAYER_ID else HOST_PLAYER_ID
        session.current_player = next_player

        await self._connections.broadcast(
            game_id,
            OpponentPlayedMessage.create(column_index, player_number, next_player)
        )
        return True
