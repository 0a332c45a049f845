"""
Teardown when a connection drops.

A departure always ends the game. There is no waiting for a reconnect.
"""

import logging

from server.game import GameDirectory
from server.network.connection_manager import ConnectionManager
from server.network.session_registry import SessionRegistry
from shared.constants import HOST_PLAYER_ID
from shared.enums import MessageType
from shared.protocol import Message, PlayerLeftMessage


logger = logging.getLogger(__name__)


class DisconnectHandler:
    """Notifies the remaining player and deletes every game of a dropped connection."""

    def __init__(
        self,
        directory: GameDirectory,
        connections: ConnectionManager,
        sessions: SessionRegistry
    ):
        self._directory = directory
        self._connections = connections
        self._sessions = sessions

    async def handle_disconnect(self, connection_id: str) -> list[str]:
        """
        Tear down all games this connection was playing in.

        Returns:
            The ids of the deleted games
        """
        self._connections.disconnect(connection_id)
        self._sessions.remove(connection_id)

        # Work out every notification and finish all teardown before sending
        notifications: list[tuple[list[str], Message]] = []
        deleted: list[str] = []

        for session in self._directory.sessions_for_connection(connection_id):
            player_number = session.player_number(connection_id)
            others = [
                player.connection_id for player in session.players
                if player.connection_id != connection_id
            ]

            if player_number == HOST_PLAYER_ID:
                recipients = sorted(self._connections.get_room_members(session.id))
                notifications.append((recipients, Message(type=MessageType.HOST_LEFT)))
                logger.info(f"Host left game {session.id}")
            else:
                departed = session.get_player(connection_id)
                notifications.append((
                    [session.host.connection_id],
                    PlayerLeftMessage.create(departed.name)
                ))
                logger.info(f"Player {departed.name} left game {session.id}")

            self._directory.delete(session.id)
            for other_id in others:
                self._connections.leave_room(other_id, session.id)
            deleted.append(session.id)

        for recipients, message in notifications:
            await self._connections.send_to_many(recipients, message)

        return deleted
