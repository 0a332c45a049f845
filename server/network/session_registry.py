"""
Session identities for live connections.

A session id outlives a single connection on the client side, but the server
only records it; nothing is restored from it on reconnect.
"""

import logging
import uuid
from typing import Callable


logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps connection ids to session ids."""

    def __init__(self, id_factory: Callable[[], str] | None = None):
        # connection_id -> session_id
        self._sessions: dict[str, str] = {}
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def __len__(self) -> int:
        return len(self._sessions)

    def init_session(self, connection_id: str, supplied_session_id: str | None = None) -> str | None:
        """
        Bind a session id to a connection.

        Returns:
            The newly generated session id when none was supplied, else None
        """
        if supplied_session_id:
            self._sessions[connection_id] = supplied_session_id
            logger.debug(f"Connection {connection_id} resumed session {supplied_session_id}")
            return None

        session_id = self._id_factory()
        self._sessions[connection_id] = session_id
        logger.debug(f"Connection {connection_id} got new session {session_id}")
        return session_id

    def get(self, connection_id: str) -> str | None:
        return self._sessions.get(connection_id)

    def remove(self, connection_id: str) -> str | None:
        return self._sessions.pop(connection_id, None)
