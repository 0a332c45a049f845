"""
Game directory: the single owner of all live game sessions.
"""
import logging
import uuid
from typing import Callable

from shared.constants import GAME_ID_LENGTH
from shared.enums import GameState

from .session import GameSession, Player


logger = logging.getLogger(__name__)


def default_id_factory() -> str:
    return str(uuid.uuid4())


class GameDirectory:
    """
    Maps game ids to sessions.

    The directory is the only place sessions are created or deleted.
    """

    def __init__(self, id_factory: Callable[[], str] | None = None):
        # game_id -> GameSession
        self._games: dict[str, GameSession] = {}
        self._id_factory = id_factory or default_id_factory

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._games

    def create(self, host: Player) -> GameSession:
        """Create a waiting session with the host as its only player."""
        game_id = self._new_game_id()
        session = GameSession(id=game_id, players=[host])
        self._games[game_id] = session

        logger.info(f"Game {game_id} created by {host.name} ({host.connection_id})")

        return session

    def get(self, game_id: str | None) -> GameSession | None:
        if not isinstance(game_id, str):
            return None
        return self._games.get(game_id)

    def delete(self, game_id: str) -> GameSession | None:
        session = self._games.pop(game_id, None)
        if session:
            logger.info(f"Game {game_id} deleted")
        return session

    def sessions_for_connection(self, connection_id: str) -> list[GameSession]:
        """All sessions in which this connection is a player."""
        return [
            session for session in self._games.values()
            if session.player_number(connection_id) is not None
        ]

    def get_stats(self) -> dict:
        return {
            "total_games": len(self._games),
            "waiting": sum(1 for s in self._games.values() if s.state == GameState.WAITING),
            "playing": sum(1 for s in self._games.values() if s.state == GameState.PLAYING),
        }

    def _new_game_id(self) -> str:
        # Short ids are meant to be shared by hand, so retry on a collision
        while True:
            game_id = self._id_factory()[:GAME_ID_LENGTH]
            if game_id not in self._games:
                return game_id
